"""
MovementService -- applies stock movements to products.

Responsibility:
    Records entries, deliveries and returns.  Each movement changes the
    product's current_stock and appends one immutable StockMovement row,
    inside the caller's transaction.

Architecture position:
    Ledger > Services -- imperative shell.  Flush-only (see BaseService).
    Called by StockLedger, which owns the transaction and the retry loop.

Invariants enforced:
    - Stock never goes negative: the stock check and the stock change are
      one conditional UPDATE, so two concurrent deliveries can never both
      pass a check against the same level.
    - Stock equals the ledger sum: the UPDATE and the movement INSERT share
      a transaction, so either both are committed or neither is.
    - A delivered exit carries a signature (domain/stock_rules.py).
    - Every movement gets a unique sequence number and reference from the
      movement sequence (SequenceService).

Lock order:
    The only row lock is the product row taken by the conditional UPDATE,
    so movements on different products never wait on each other.  On
    PostgreSQL the number comes from a native sequence, which locks
    nothing.  On SQLite the UPDATE is the first write of the transaction
    and takes the database write lock before the counter row is read and
    incremented.

Failure modes:
    - InvalidQuantityError / MissingSignatureError / InvalidMovementKindError:
      raised before any database write.
    - UnknownProductError: product missing or inactive.
    - UnknownEmployeeError: employee missing or inactive.
    - InsufficientStockError: the delivery would make stock negative.
      Nothing is written.

Audit relevance:
    Each movement records stock_after, recorded_by and recorded_at, so the
    ledger can be replayed row by row (see StockSelector.verify_stock_integrity).
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from stock_ledger.config import LedgerSettings
from stock_ledger.domain.clock import Clock
from stock_ledger.domain.stock_rules import (
    format_reference,
    parse_exit_kind,
    require_signature,
    signed_delta,
    validate_quantity,
)
from stock_ledger.domain.values import ExitKind, MovementKind, ProductStatus
from stock_ledger.exceptions import InsufficientStockError, UnknownProductError
from stock_ledger.logging_config import get_logger
from stock_ledger.models.movement import StockMovement
from stock_ledger.models.product import Product
from stock_ledger.services.base import BaseService
from stock_ledger.services.employee_service import EmployeeService
from stock_ledger.services.sequence_service import SequenceService

logger = get_logger("services.movement")


class MovementService(BaseService[StockMovement]):
    """
    Write side of the stock ledger.

    Contract:
        record_entry() and record_exit() either apply the movement
        completely (stock updated, movement flushed) or raise before
        anything was written.

    Non-goals:
        - Does NOT commit; StockLedger does.
        - Does NOT retry on lock conflicts; StockLedger does.
    """

    def __init__(self, session: Session, clock: Clock, settings: LedgerSettings):
        super().__init__(session)
        self._clock = clock
        self._settings = settings
        self._sequences = SequenceService(session)
        self._employees = EmployeeService(session)

    def record_entry(
        self,
        product_id: UUID,
        quantity: int,
        actor: str,
        supplier: str | None = None,
        effective_date: date | None = None,
        notes: str | None = None,
    ) -> StockMovement:
        """Receive ``quantity`` units of a product into stock."""
        validate_quantity(quantity)
        return self._apply(
            kind=MovementKind.ENTRY,
            product_id=product_id,
            quantity=quantity,
            actor=actor,
            effective_date=effective_date,
            supplier=supplier,
            notes=notes,
        )

    def record_exit(
        self,
        product_id: UUID,
        employee_id: UUID,
        quantity: int,
        kind: ExitKind | str,
        actor: str,
        signature: str | None = None,
        effective_date: date | None = None,
        notes: str | None = None,
    ) -> StockMovement:
        """
        Deliver units to an employee, or take back units an employee returns.

        A delivery decreases stock and needs a signature.  A return
        increases stock; a signature is stored if given.

        Raises:
            InvalidQuantityError, InvalidMovementKindError,
            MissingSignatureError, UnknownProductError,
            UnknownEmployeeError, InsufficientStockError.
        """
        validate_quantity(quantity)
        exit_kind = parse_exit_kind(kind)
        if exit_kind is ExitKind.DELIVERED:
            signature = require_signature(signature, product_id, employee_id)
        elif signature is not None:
            signature = signature.strip() or None

        self._employees.get_active(employee_id)

        return self._apply(
            kind=exit_kind.movement_kind,
            product_id=product_id,
            quantity=quantity,
            actor=actor,
            effective_date=effective_date,
            employee_id=employee_id,
            signature=signature,
            notes=notes,
        )

    def _apply(
        self,
        kind: MovementKind,
        product_id: UUID,
        quantity: int,
        actor: str,
        effective_date: date | None = None,
        employee_id: UUID | None = None,
        signature: str | None = None,
        supplier: str | None = None,
        notes: str | None = None,
    ) -> StockMovement:
        delta = signed_delta(kind, quantity)

        result = self.session.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.status == ProductStatus.ACTIVE.value,
                Product.current_stock + delta >= 0,
            )
            .values(
                current_stock=Product.current_stock + delta,
                stock_version=Product.stock_version + 1,
                updated_by=actor,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise self._rejection(product_id, kind, quantity)

        stock_after = self.session.execute(
            select(Product.current_stock).where(Product.id == product_id)
        ).scalar_one()

        sequence_number = self._sequences.next_value(SequenceService.STOCK_MOVEMENT)
        effective_date = effective_date or self._clock.today()
        reference = format_reference(
            self._settings.prefix_for(kind.value), effective_date, sequence_number
        )

        movement = StockMovement(
            reference=reference,
            sequence_number=sequence_number,
            kind=kind.value,
            product_id=product_id,
            employee_id=employee_id,
            quantity=quantity,
            signed_quantity=delta,
            stock_after=stock_after,
            effective_date=effective_date,
            recorded_at=self._clock.now(),
            recorded_by=actor,
            signature=signature,
            supplier=supplier,
            notes=notes,
        )
        self.session.add(movement)
        self.session.flush()

        logger.info(
            "movement_recorded",
            extra={
                "movement_id": str(movement.id),
                "reference": reference,
                "kind": kind.value,
                "product_id": str(product_id),
                "quantity": quantity,
                "stock_after": stock_after,
            },
        )
        return movement

    def _rejection(
        self, product_id: UUID, kind: MovementKind, quantity: int
    ) -> Exception:
        """Explain why the conditional stock UPDATE matched no row."""
        row = self.session.execute(
            select(Product.status, Product.current_stock).where(
                Product.id == product_id
            )
        ).one_or_none()

        if row is None:
            return UnknownProductError(str(product_id))
        status, available = row
        if status != ProductStatus.ACTIVE.value:
            return UnknownProductError(str(product_id), reason="inactive")

        logger.warning(
            "stock_insufficient",
            extra={
                "product_id": str(product_id),
                "kind": kind.value,
                "requested": quantity,
                "available": available,
            },
        )
        return InsufficientStockError(str(product_id), quantity, available)
