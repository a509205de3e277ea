"""
Module: stock_ledger.models.product
Responsibility: ORM persistence for stocked products (uniforms and
    medications).  Holds the current stock level, the minimum-stock alert
    threshold and the catalog status.
Architecture position: Ledger > Models.  May import from db/base.py and domain/values.py.

Invariants enforced:
    - code is unique (uq_product_code) and immutable once assigned
      (db/immutability.py).
    - current_stock >= 0 and minimum_stock >= 0 (CHECK constraints).
    - current_stock is never assigned through the ORM after insert; it only
      moves through MovementService's conditional UPDATE
      (db/immutability.py rejects ORM writes).
    - Products are never deleted, only deactivated.

Failure modes:
    - IntegrityError on duplicate code or on a stock UPDATE that would make
      current_stock negative (last line of defense behind the conditional
      UPDATE).
"""

from sqlalchemy import CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_ledger.db.base import TrackedBase
from stock_ledger.domain.values import ProductCategory, ProductStatus


class Product(TrackedBase):
    """
    A stocked item.

    Contract:
        current_stock is a derived value: the sum of the signed quantities
        of this product's movements.  Callers read it; only MovementService
        writes it, through a single conditional UPDATE.

    Guarantees:
        - code is globally unique.
        - stock_version increases by one with every applied movement.
    """

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("code", name="uq_product_code"),
        CheckConstraint("current_stock >= 0", name="ck_product_stock_non_negative"),
        CheckConstraint("minimum_stock >= 0", name="ck_product_minimum_non_negative"),
        Index("idx_product_category", "category"),
        Index("idx_product_status", "status"),
    )

    # Human-readable SKU
    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    category: Mapped[ProductCategory] = mapped_column(
        String(20),
        nullable=False,
    )

    # Unit of measure (pcs, box, ...)
    unit: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pcs",
    )

    current_stock: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )

    minimum_stock: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )

    # Bumped by every applied movement
    stock_version: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )

    status: Mapped[ProductStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ProductStatus.ACTIVE,
    )

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Product {self.code}: {self.name} stock={self.current_stock}>"
