"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures returned across the ledger's
    public boundary: product and employee snapshots, stock levels,
    movement records, movement filters, the flattened export row and the
    inventory/dashboard aggregates.

Architecture position:
    Ledger > Domain -- pure functional core, zero I/O.
    from_model() class methods exist as boundary converters but are only
    invoked from the service and selector layers.

Invariants enforced:
    - Callers never receive ORM entities, so nothing outside the ledger can
      mutate a Product or StockMovement through a returned object.
    - MovementFilter rejects an inverted date range and an unknown kind
      when it is built, before any query runs.

Data flow:
    StockMovement (ORM) -> MovementRecord -> MovementExportRow
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from stock_ledger.domain.stock_rules import classify_stock, resolve_movement_kinds
from stock_ledger.domain.values import (
    ExitKind,
    MovementKind,
    ProductCategory,
    ProductStatus,
    StockStatus,
)

if TYPE_CHECKING:
    from stock_ledger.models.employee import Employee as EmployeeModel
    from stock_ledger.models.movement import StockMovement as StockMovementModel
    from stock_ledger.models.product import Product as ProductModel


@dataclass(frozen=True)
class ProductStock:
    """Snapshot of a product and its stock level."""

    id: UUID
    code: str
    name: str
    category: ProductCategory
    unit: str
    current_stock: int
    minimum_stock: int
    status: ProductStatus

    @property
    def stock_status(self) -> StockStatus:
        return classify_stock(self.current_stock, self.minimum_stock)

    @property
    def is_active(self) -> bool:
        return self.status is ProductStatus.ACTIVE

    @classmethod
    def from_model(cls, model: ProductModel) -> ProductStock:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            category=ProductCategory(model.category),
            unit=model.unit,
            current_stock=model.current_stock,
            minimum_stock=model.minimum_stock,
            status=ProductStatus(model.status),
        )


@dataclass(frozen=True)
class EmployeeInfo:
    """Snapshot of an employee."""

    id: UUID
    employee_code: str
    full_name: str
    area: str
    position: str | None
    email: str | None
    is_active: bool

    @classmethod
    def from_model(cls, model: EmployeeModel) -> EmployeeInfo:
        return cls(
            id=model.id,
            employee_code=model.employee_code,
            full_name=model.full_name,
            area=model.area,
            position=model.position,
            email=model.email,
            is_active=model.is_active,
        )


@dataclass(frozen=True)
class StockLevel:
    """Result of get_stock_status: the level and its alert state."""

    product_id: UUID
    level: int
    minimum_stock: int
    status: StockStatus

    @classmethod
    def of(cls, product_id: UUID, level: int, minimum_stock: int) -> StockLevel:
        return cls(
            product_id=product_id,
            level=level,
            minimum_stock=minimum_stock,
            status=classify_stock(level, minimum_stock),
        )


@dataclass(frozen=True)
class MovementRecord:
    """An immutable stock movement as seen by callers."""

    id: UUID
    reference: str
    sequence_number: int
    kind: MovementKind
    product_id: UUID
    employee_id: UUID | None
    quantity: int
    signed_quantity: int
    stock_after: int
    effective_date: date
    recorded_at: datetime
    recorded_by: str
    signature: str | None = None
    supplier: str | None = None
    notes: str | None = None

    @property
    def is_confirmed(self) -> bool:
        """Deliveries are confirmed by a signature; other kinds always are."""
        if self.kind is MovementKind.EXIT_DELIVERED:
            return bool(self.signature)
        return True

    @classmethod
    def from_model(cls, model: StockMovementModel) -> MovementRecord:
        return cls(
            id=model.id,
            reference=model.reference,
            sequence_number=model.sequence_number,
            kind=MovementKind(model.kind),
            product_id=model.product_id,
            employee_id=model.employee_id,
            quantity=model.quantity,
            signed_quantity=model.signed_quantity,
            stock_after=model.stock_after,
            effective_date=model.effective_date,
            recorded_at=model.recorded_at,
            recorded_by=model.recorded_by,
            signature=model.signature,
            supplier=model.supplier,
            notes=model.notes,
        )


@dataclass(frozen=True)
class MovementFilter:
    """
    Filter for listing movements.

    Both date bounds are inclusive.  None means "no constraint".
    ``kind`` takes a MovementKind, an ExitKind, their string values, or
    ``"exit"`` for every exit; the resolved set is exposed as ``kinds``.
    """

    start_date: date | None = None
    end_date: date | None = None
    product_id: UUID | None = None
    employee_id: UUID | None = None
    kind: MovementKind | ExitKind | str | None = None
    category: ProductCategory | None = None
    kinds: frozenset[MovementKind] = field(init=False, default=frozenset())

    def __post_init__(self) -> None:
        if (
            self.start_date is not None
            and self.end_date is not None
            and self.start_date > self.end_date
        ):
            raise ValueError(
                f"start_date {self.start_date} is after end_date {self.end_date}"
            )
        if self.kind is not None:
            object.__setattr__(self, "kinds", resolve_movement_kinds(self.kind))


@dataclass(frozen=True)
class MovementExportRow:
    """Flattened, read-only projection of a movement for reports."""

    reference: str
    kind: MovementKind
    effective_date: date
    product_code: str
    product_name: str
    category: ProductCategory
    unit: str
    quantity: int
    employee_code: str | None
    employee_name: str | None
    area: str | None
    supplier: str | None
    recorded_by: str
    notes: str | None

    @classmethod
    def from_model(cls, model: StockMovementModel) -> MovementExportRow:
        employee = model.employee
        return cls(
            reference=model.reference,
            kind=MovementKind(model.kind),
            effective_date=model.effective_date,
            product_code=model.product.code,
            product_name=model.product.name,
            category=ProductCategory(model.product.category),
            unit=model.product.unit,
            quantity=model.quantity,
            employee_code=employee.employee_code if employee else None,
            employee_name=employee.full_name if employee else None,
            area=employee.area if employee else None,
            supplier=model.supplier,
            recorded_by=model.recorded_by,
            notes=model.notes,
        )


@dataclass(frozen=True)
class InventorySummary:
    """Counts shown above the inventory table."""

    total_products: int
    total_units: int
    low_stock_count: int
    out_of_stock_count: int


@dataclass(frozen=True)
class MovementReportSummary:
    """
    Totals over the movements matching a report filter.

    Exits count both deliveries and returns, and ``units_out`` sums the
    quantities of both.  ``net_change`` is the signed effect of the matched
    movements on stock, where returns add back what deliveries removed.
    """

    total_movements: int
    entry_count: int
    exit_count: int
    units_in: int
    units_out: int
    net_change: int


@dataclass(frozen=True)
class DashboardStats:
    """Aggregates for the dashboard landing page."""

    total_stock: int
    entries_this_month: int
    exits_this_month: int
    low_stock_alerts: int
    recent_activity: tuple[MovementRecord, ...] = field(default_factory=tuple)
    low_stock_products: tuple[ProductStock, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class StockDiscrepancy:
    """A product whose stored stock disagrees with its ledger sum."""

    product_id: UUID
    product_code: str
    current_stock: int
    ledger_stock: int

    @property
    def difference(self) -> int:
        return self.current_stock - self.ledger_stock
