"""
StockLedger -- the public facade of the stock ledger.

Responsibility:
    Exposes every stock operation (movements, stock status, movement
    listing, catalog and employee maintenance, inventory reporting) behind
    one object.  Each call runs in its own session and transaction.

Architecture position:
    Ledger > Services -- the transaction boundary.  Request handlers call
    StockLedger; StockLedger calls the flush-only services and the
    read-only selectors.

Invariants enforced:
    - Atomicity: a write operation either commits completely or rolls back
      completely.  No partially applied movement is ever visible.
    - Bounded retry: a transient database conflict (deadlock,
      serialization failure, lock timeout, SQLite "database is locked")
      re-runs the whole operation in a fresh transaction, up to
      ``settings.max_retries`` attempts.  Business rejections such as
      InsufficientStockError are never retried.

Failure modes:
    - Every StockLedgerError raised by the services propagates unchanged.
    - ConcurrentUpdateConflictError once the retry budget is spent.

Audit relevance:
    Each operation runs under a fresh correlation_id bound to the log
    context together with the operation name, and with the actor and
    product when known.  It logs its outcome and duration.

Usage:
    ledger = StockLedger.from_settings(load_settings("config/stock_ledger.yaml"))
    movement = ledger.record_exit(
        product_id=shirt_id,
        employee_id=employee_id,
        quantity=2,
        kind="delivered",
        effective_date=None,
        actor="warehouse@example.com",
        signature="Juan Perez",
    )
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date
from typing import TypeVar
from uuid import UUID, uuid4

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from stock_ledger.config import LedgerSettings
from stock_ledger.db.engine import get_session_factory, init_engine_from_url
from stock_ledger.db.immutability import register_immutability_listeners
from stock_ledger.domain.clock import Clock, SystemClock
from stock_ledger.domain.dtos import (
    DashboardStats,
    EmployeeInfo,
    InventorySummary,
    MovementExportRow,
    MovementFilter,
    MovementRecord,
    MovementReportSummary,
    ProductStock,
    StockDiscrepancy,
    StockLevel,
)
from stock_ledger.domain.values import (
    ExitKind,
    ProductCategory,
    ProductStatus,
    StockFilter,
)
from stock_ledger.exceptions import (
    ConcurrentUpdateConflictError,
    InvalidQuantityError,
    StockLedgerError,
)
from stock_ledger.logging_config import LogContext, configure_logging, get_logger
from stock_ledger.selectors.movement_selector import MovementSelector
from stock_ledger.selectors.stock_selector import StockSelector
from stock_ledger.services.employee_service import EmployeeService
from stock_ledger.services.movement_service import MovementService
from stock_ledger.services.product_service import ProductService

logger = get_logger("services.ledger")

T = TypeVar("T")

# PostgreSQL: serialization_failure, deadlock_detected, lock_not_available
_TRANSIENT_PGCODES = frozenset({"40001", "40P01", "55P03"})
_TRANSIENT_MESSAGES = ("deadlock", "database is locked", "could not serialize")

OPENING_STOCK_NOTE = "Opening stock"


def is_transient_conflict(exc: OperationalError) -> bool:
    """True if the database aborted the statement because it lost a race."""
    orig = exc.orig
    if getattr(orig, "pgcode", None) in _TRANSIENT_PGCODES:
        return True
    message = str(orig).lower()
    return any(fragment in message for fragment in _TRANSIENT_MESSAGES)


class StockLedger:
    """
    Facade over the stock ledger.

    Contract:
        Every public method is one unit of work.  Write methods commit
        before returning; read methods return DTOs and never write.
        list_movements() and export_movements() are lazy: the query runs
        when iteration starts, and each call runs a fresh query.

    Guarantees:
        - Callers never receive ORM instances.
        - current_stock of every product equals the sum of its movements'
          signed quantities after every committed operation.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._settings = settings or LedgerSettings()
        self._clock = clock or SystemClock()
        register_immutability_listeners()

    @classmethod
    def from_settings(
        cls, settings: LedgerSettings, clock: Clock | None = None
    ) -> StockLedger:
        """Build the module-level engine from ``settings`` and wrap it."""
        configure_logging(level=settings.log_level)
        init_engine_from_url(
            settings.database_url,
            echo=settings.echo_sql,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
        )
        return cls(get_session_factory(), settings, clock)

    @property
    def settings(self) -> LedgerSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Transaction handling
    # ------------------------------------------------------------------

    def _write(
        self,
        operation: str,
        work: Callable[[Session], T],
        actor: str | None = None,
        product_id: UUID | None = None,
    ) -> T:
        """Run ``work`` in its own transaction, retrying transient conflicts."""
        max_attempts = self._settings.max_retries

        with LogContext.bind(
            correlation_id=str(uuid4()),
            operation=operation,
            actor_id=actor,
            product_id=str(product_id) if product_id else None,
        ):
            logger.info("stock_operation_started")
            t0 = time.monotonic()

            for attempt in range(1, max_attempts + 1):
                session = self._session_factory()
                try:
                    result = work(session)
                    session.commit()
                except OperationalError as exc:
                    session.rollback()
                    if not is_transient_conflict(exc):
                        logger.error("stock_operation_failed", exc_info=True)
                        raise
                    if attempt == max_attempts:
                        logger.error(
                            "stock_operation_conflict_exhausted",
                            extra={"attempts": attempt},
                        )
                        raise ConcurrentUpdateConflictError(
                            operation, str(exc.orig), attempts=attempt
                        ) from exc
                    logger.warning(
                        "conflict_retry",
                        extra={"attempt": attempt, "detail": str(exc.orig)},
                    )
                    time.sleep(self._settings.retry_backoff_seconds * attempt)
                    continue
                except StockLedgerError as exc:
                    session.rollback()
                    logger.warning(
                        "stock_operation_rejected",
                        extra={"error_code": exc.code},
                    )
                    raise
                except Exception:
                    session.rollback()
                    logger.error("stock_operation_failed", exc_info=True)
                    raise
                finally:
                    session.close()

                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                logger.info(
                    "stock_operation_completed",
                    extra={"attempts": attempt, "duration_ms": duration_ms},
                )
                return result

        raise AssertionError("unreachable")  # pragma: no cover

    @contextmanager
    def _read_session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
        finally:
            session.close()

    def _movements(self, session: Session) -> MovementService:
        return MovementService(session, self._clock, self._settings)

    # ------------------------------------------------------------------
    # Movements
    # ------------------------------------------------------------------

    def record_entry(
        self,
        product_id: UUID,
        quantity: int,
        supplier: str | None,
        effective_date: date | None,
        actor: str,
        notes: str | None = None,
    ) -> MovementRecord:
        """
        Receive stock for an active product.

        Raises:
            InvalidQuantityError: quantity is not a positive integer.
            UnknownProductError: product missing or inactive.
        """

        def work(session: Session) -> MovementRecord:
            movement = self._movements(session).record_entry(
                product_id,
                quantity,
                actor,
                supplier=supplier,
                effective_date=effective_date,
                notes=notes,
            )
            return MovementRecord.from_model(movement)

        return self._write("record_entry", work, actor=actor, product_id=product_id)

    def record_exit(
        self,
        product_id: UUID,
        employee_id: UUID,
        quantity: int,
        kind: ExitKind | str,
        effective_date: date | None,
        actor: str,
        signature: str | None = None,
        notes: str | None = None,
    ) -> MovementRecord:
        """
        Deliver stock to an employee, or take back a return.

        Raises:
            InvalidQuantityError, InvalidMovementKindError,
            MissingSignatureError: rejected before touching the database.
            UnknownProductError, UnknownEmployeeError: bad references.
            InsufficientStockError: the delivery exceeds current stock.
            ConcurrentUpdateConflictError: retry budget exhausted.
        """

        def work(session: Session) -> MovementRecord:
            movement = self._movements(session).record_exit(
                product_id,
                employee_id,
                quantity,
                kind,
                actor,
                signature=signature,
                effective_date=effective_date,
                notes=notes,
            )
            return MovementRecord.from_model(movement)

        return self._write("record_exit", work, actor=actor, product_id=product_id)

    def get_stock_status(self, product_id: UUID) -> StockLevel:
        with self._read_session() as session:
            return StockSelector(session).get_stock_status(product_id)

    def list_movements(
        self, movement_filter: MovementFilter | None = None
    ) -> Iterator[MovementRecord]:
        """
        Movements matching the filter, newest first.

        Ordered by effective_date, then recorded_at, then sequence number,
        all descending.  Streamed in batches of
        ``settings.stream_batch_size``.
        """
        with self._read_session() as session:
            selector = MovementSelector(session, self._settings.stream_batch_size)
            yield from selector.iter_movements(movement_filter)

    def export_movements(
        self, movement_filter: MovementFilter | None = None
    ) -> Iterator[MovementExportRow]:
        """Flattened report rows in list_movements() order."""
        with self._read_session() as session:
            selector = MovementSelector(session, self._settings.stream_batch_size)
            yield from selector.iter_export_rows(movement_filter)

    def movement_report_summary(
        self, movement_filter: MovementFilter | None = None
    ) -> MovementReportSummary:
        """Movement counts and unit totals over the rows list_movements() yields."""
        with self._read_session() as session:
            return MovementSelector(session).report_summary(movement_filter)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def create_product(
        self,
        code: str,
        name: str,
        category: ProductCategory | str,
        unit: str,
        minimum_stock: int | None,
        actor: str,
        initial_stock: int = 0,
    ) -> ProductStock:
        """
        Add a product to the catalog.

        A positive ``initial_stock`` is recorded as an opening entry
        movement in the same transaction, so the stock level is backed by
        the ledger from the start.
        """
        if minimum_stock is None:
            minimum_stock = self._settings.default_minimum_stock
        if isinstance(initial_stock, bool) or not isinstance(initial_stock, int) \
                or initial_stock < 0:
            raise InvalidQuantityError(initial_stock)

        def work(session: Session) -> ProductStock:
            product = ProductService(session).create(
                code, name, category, unit, minimum_stock, actor
            )
            if initial_stock > 0:
                self._movements(session).record_entry(
                    product.id, initial_stock, actor, notes=OPENING_STOCK_NOTE
                )
                session.refresh(product)
            return ProductStock.from_model(product)

        return self._write("create_product", work, actor=actor)

    def get_product(self, product_id: UUID) -> ProductStock:
        with self._read_session() as session:
            return StockSelector(session).get_product(product_id)

    def update_minimum_stock(
        self, product_id: UUID, minimum_stock: int, actor: str
    ) -> ProductStock:
        def work(session: Session) -> ProductStock:
            product = ProductService(session).update_minimum_stock(
                product_id, minimum_stock, actor
            )
            return ProductStock.from_model(product)

        return self._write(
            "update_minimum_stock", work, actor=actor, product_id=product_id
        )

    def update_product_details(
        self,
        product_id: UUID,
        actor: str,
        name: str | None = None,
        unit: str | None = None,
    ) -> ProductStock:
        def work(session: Session) -> ProductStock:
            product = ProductService(session).update_details(
                product_id, actor, name=name, unit=unit
            )
            return ProductStock.from_model(product)

        return self._write(
            "update_product_details", work, actor=actor, product_id=product_id
        )

    def deactivate_product(self, product_id: UUID, actor: str) -> ProductStock:
        return self._set_product_status(product_id, ProductStatus.INACTIVE, actor)

    def reactivate_product(self, product_id: UUID, actor: str) -> ProductStock:
        return self._set_product_status(product_id, ProductStatus.ACTIVE, actor)

    def _set_product_status(
        self, product_id: UUID, status: ProductStatus, actor: str
    ) -> ProductStock:
        def work(session: Session) -> ProductStock:
            product = ProductService(session).set_status(product_id, status, actor)
            return ProductStock.from_model(product)

        return self._write(
            f"set_product_{status.value}", work, actor=actor, product_id=product_id
        )

    # ------------------------------------------------------------------
    # Employees
    # ------------------------------------------------------------------

    def register_employee(
        self,
        employee_code: str,
        full_name: str,
        area: str,
        actor: str,
        position: str | None = None,
        email: str | None = None,
    ) -> EmployeeInfo:
        def work(session: Session) -> EmployeeInfo:
            employee = EmployeeService(session).register(
                employee_code, full_name, area, actor, position=position, email=email
            )
            return EmployeeInfo.from_model(employee)

        return self._write("register_employee", work, actor=actor)

    def deactivate_employee(self, employee_id: UUID, actor: str) -> EmployeeInfo:
        def work(session: Session) -> EmployeeInfo:
            employee = EmployeeService(session).deactivate(employee_id, actor)
            return EmployeeInfo.from_model(employee)

        return self._write("deactivate_employee", work, actor=actor)

    # ------------------------------------------------------------------
    # Inventory reporting
    # ------------------------------------------------------------------

    def list_products(
        self,
        category: ProductCategory | str | None = None,
        search: str | None = None,
        stock_filter: StockFilter | str = StockFilter.ALL,
        include_inactive: bool = False,
    ) -> list[ProductStock]:
        with self._read_session() as session:
            return StockSelector(session).list_products(
                category=category,
                search=search,
                stock_filter=stock_filter,
                include_inactive=include_inactive,
            )

    def inventory_summary(self) -> InventorySummary:
        with self._read_session() as session:
            return StockSelector(session).inventory_summary()

    def low_stock_products(self) -> list[ProductStock]:
        with self._read_session() as session:
            return StockSelector(session).low_stock_products()

    def dashboard_stats(self, as_of: date | None = None) -> DashboardStats:
        """Dashboard aggregates for the month of ``as_of`` (default: today)."""
        with self._read_session() as session:
            return StockSelector(session).dashboard_stats(
                as_of or self._clock.today(),
                recent_limit=self._settings.recent_activity_limit,
            )

    def verify_stock_integrity(
        self, product_id: UUID | None = None
    ) -> list[StockDiscrepancy]:
        """Products whose stored stock disagrees with their movement ledger."""
        with self._read_session() as session:
            discrepancies = StockSelector(session).verify_stock_integrity(product_id)
        if discrepancies:
            logger.error(
                "stock_integrity_violation",
                extra={
                    "discrepancies": len(discrepancies),
                    "product_codes": [d.product_code for d in discrepancies],
                },
            )
        return discrepancies
