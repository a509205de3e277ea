"""
Module: stock_ledger.models.movement
Responsibility: ORM persistence for stock movements -- the append-only
    ledger from which every product's stock level is derived.
Architecture position: Ledger > Models.  May import from db/base.py, domain/values.py and
    its sibling models.

Invariants enforced:
    - quantity > 0 (CHECK constraint).
    - signed_quantity is +quantity for entries and returns, -quantity for
      deliveries (CHECK constraint ties the two together).
    - reference and sequence_number are unique.
    - Rows are never updated or deleted (db/immutability.py).
    - Exit kinds reference an employee; entries never do.

Failure modes:
    - IntegrityError on duplicate reference/sequence_number or a missing
      product/employee foreign key.
    - ImmutabilityViolationError (from db/immutability.py) on any ORM
      UPDATE or DELETE.

Audit relevance:
    stock_after records the product level right after this movement was
    applied, so the ledger can be replayed and checked row by row.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_ledger.db.base import Base, UUIDString
from stock_ledger.domain.values import MovementKind
from stock_ledger.models.employee import Employee
from stock_ledger.models.product import Product


class StockMovement(Base):
    """
    One immutable stock movement.

    Contract:
        Inserted once by MovementService in the same transaction as the
        matching stock UPDATE on the product.  Never updated or deleted;
        a wrong movement is corrected by recording a compensating one.
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        UniqueConstraint("reference", name="uq_movement_reference"),
        UniqueConstraint("sequence_number", name="uq_movement_sequence"),
        CheckConstraint("quantity > 0", name="ck_movement_quantity_positive"),
        CheckConstraint(
            "signed_quantity = quantity OR signed_quantity = -quantity",
            name="ck_movement_signed_quantity",
        ),
        CheckConstraint("stock_after >= 0", name="ck_movement_stock_after"),
        Index("idx_movement_product_date", "product_id", "effective_date"),
        Index("idx_movement_employee", "employee_id"),
        Index("idx_movement_order", "effective_date", "recorded_at", "sequence_number"),
    )

    # e.g. SAL-20240115-000042
    reference: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
    )

    # Ledger-wide allocation order
    sequence_number: Mapped[int] = mapped_column(
        nullable=False,
    )

    kind: Mapped[MovementKind] = mapped_column(
        String(20),
        nullable=False,
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    employee_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=True,
    )

    quantity: Mapped[int] = mapped_column(
        nullable=False,
    )

    signed_quantity: Mapped[int] = mapped_column(
        nullable=False,
    )

    stock_after: Mapped[int] = mapped_column(
        nullable=False,
    )

    effective_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    recorded_by: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    signature: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    supplier: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    product: Mapped[Product] = relationship(lazy="joined")
    employee: Mapped[Employee | None] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<StockMovement {self.reference}: {self.kind} {self.signed_quantity:+d}>"
