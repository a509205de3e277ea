"""
Module: stock_ledger.selectors.stock_selector
Responsibility: Read-only stock queries -- per-product stock status, the
    filtered inventory listing, inventory and dashboard aggregates, and the
    ledger integrity check.
Architecture position: Ledger > Selectors.  May import from models/,
    domain/ and selectors/base.py.  MUST NOT import from services/.

Invariants enforced:
    - Stock status classification comes from domain/stock_rules.py; the SQL
      filters here mirror it exactly (0 is OUT, 0 < level <= minimum is LOW).
    - verify_stock_integrity() recomputes every level from the movement
      ledger and reports any product whose stored level disagrees.

Failure modes:
    - UnknownProductError from get_stock_status() for a missing product.

Audit relevance:
    verify_stock_integrity() is the replay check for the invariant
    current_stock == sum(signed_quantity).  An empty result means the
    stored levels are exactly what the movement history says.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import and_, case, func, or_, select

from stock_ledger.domain.dtos import (
    DashboardStats,
    InventorySummary,
    MovementRecord,
    ProductStock,
    StockDiscrepancy,
    StockLevel,
)
from stock_ledger.domain.values import (
    MovementKind,
    ProductCategory,
    ProductStatus,
    StockFilter,
)
from stock_ledger.exceptions import UnknownProductError
from stock_ledger.models.movement import StockMovement
from stock_ledger.models.product import Product
from stock_ledger.selectors.base import BaseSelector


def _is_low():
    return and_(Product.current_stock > 0, Product.current_stock <= Product.minimum_stock)


def _is_out():
    return Product.current_stock <= 0


class StockSelector(BaseSelector[Product]):
    """Read-side queries over products and their stock levels."""

    def get_stock_status(self, product_id: UUID) -> StockLevel:
        """
        Current level and alert state of one product.

        Inactive products are still reported; only missing ones raise.
        """
        row = self.session.execute(
            select(Product.current_stock, Product.minimum_stock).where(
                Product.id == product_id
            )
        ).one_or_none()
        if row is None:
            raise UnknownProductError(str(product_id))
        level, minimum = row
        return StockLevel.of(product_id, level, minimum)

    def get_product(self, product_id: UUID) -> ProductStock:
        product = self.session.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if product is None:
            raise UnknownProductError(str(product_id))
        return ProductStock.from_model(product)

    def list_products(
        self,
        category: ProductCategory | str | None = None,
        search: str | None = None,
        stock_filter: StockFilter | str = StockFilter.ALL,
        include_inactive: bool = False,
    ) -> list[ProductStock]:
        """
        Inventory listing, ordered by name then code.

        ``search`` matches a case-insensitive substring of the name or code.
        """
        query = select(Product).execution_options(populate_existing=True)
        if not include_inactive:
            query = query.where(Product.status == ProductStatus.ACTIVE.value)
        if category is not None:
            query = query.where(Product.category == ProductCategory(category).value)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(Product.name.ilike(pattern), Product.code.ilike(pattern))
            )

        stock_filter = StockFilter(stock_filter)
        if stock_filter is StockFilter.LOW:
            query = query.where(_is_low())
        elif stock_filter is StockFilter.OUT:
            query = query.where(_is_out())

        query = query.order_by(Product.name, Product.code)
        return [ProductStock.from_model(p) for p in self.session.scalars(query)]

    def low_stock_products(self) -> list[ProductStock]:
        """Active products at or below their minimum, lowest stock first."""
        query = (
            select(Product)
            .where(
                Product.status == ProductStatus.ACTIVE.value,
                Product.current_stock <= Product.minimum_stock,
            )
            .order_by(Product.current_stock, Product.name)
            .execution_options(populate_existing=True)
        )
        return [ProductStock.from_model(p) for p in self.session.scalars(query)]

    def inventory_summary(self) -> InventorySummary:
        """Counts over active products."""
        row = self.session.execute(
            select(
                func.count(Product.id),
                func.coalesce(func.sum(Product.current_stock), 0),
                func.coalesce(func.sum(case((_is_low(), 1), else_=0)), 0),
                func.coalesce(func.sum(case((_is_out(), 1), else_=0)), 0),
            ).where(Product.status == ProductStatus.ACTIVE.value)
        ).one()
        return InventorySummary(
            total_products=int(row[0]),
            total_units=int(row[1]),
            low_stock_count=int(row[2]),
            out_of_stock_count=int(row[3]),
        )

    def dashboard_stats(self, as_of: date, recent_limit: int = 10) -> DashboardStats:
        """
        Dashboard aggregates for the calendar month containing ``as_of``.

        entries_this_month and exits_this_month are unit totals of entry
        and delivered-exit movements dated from the first of the month up
        to and including ``as_of``.
        """
        month_start = as_of.replace(day=1)

        def units_of(kind: MovementKind) -> int:
            total = self.session.execute(
                select(func.coalesce(func.sum(StockMovement.quantity), 0)).where(
                    StockMovement.kind == kind.value,
                    StockMovement.effective_date >= month_start,
                    StockMovement.effective_date <= as_of,
                )
            ).scalar_one()
            return int(total)

        summary = self.inventory_summary()
        low_products = self.low_stock_products()

        recent: list[MovementRecord] = []
        if recent_limit > 0:
            rows = self.session.scalars(
                select(StockMovement)
                .order_by(
                    StockMovement.recorded_at.desc(),
                    StockMovement.sequence_number.desc(),
                )
                .limit(recent_limit)
            )
            recent = [MovementRecord.from_model(m) for m in rows]

        return DashboardStats(
            total_stock=summary.total_units,
            entries_this_month=units_of(MovementKind.ENTRY),
            exits_this_month=units_of(MovementKind.EXIT_DELIVERED),
            low_stock_alerts=len(low_products),
            recent_activity=tuple(recent),
            low_stock_products=tuple(low_products),
        )

    def verify_stock_integrity(
        self, product_id: UUID | None = None
    ) -> list[StockDiscrepancy]:
        """
        Compare each product's stored level with the sum of its movements.

        Returns:
            One StockDiscrepancy per product that disagrees, ordered by code.
            An empty list means the ledger is consistent.
        """
        ledger_sums = (
            select(
                StockMovement.product_id.label("product_id"),
                func.sum(StockMovement.signed_quantity).label("ledger_stock"),
            )
            .group_by(StockMovement.product_id)
            .subquery()
        )
        ledger_stock = func.coalesce(ledger_sums.c.ledger_stock, 0)

        query = (
            select(Product.id, Product.code, Product.current_stock, ledger_stock)
            .outerjoin(ledger_sums, ledger_sums.c.product_id == Product.id)
            .where(Product.current_stock != ledger_stock)
            .order_by(Product.code)
        )
        if product_id is not None:
            query = query.where(Product.id == product_id)

        return [
            StockDiscrepancy(
                product_id=row[0],
                product_code=row[1],
                current_stock=int(row[2]),
                ledger_stock=int(row[3]),
            )
            for row in self.session.execute(query)
        ]
