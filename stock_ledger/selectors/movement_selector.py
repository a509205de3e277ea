"""
Module: stock_ledger.selectors.movement_selector
Responsibility: Read-only queries over the movement ledger -- the filtered,
    ordered movement listing, the flattened export projection and the
    report totals over the same filter.
Architecture position: Ledger > Selectors.  May import from models/,
    domain/ and selectors/base.py.  MUST NOT import from services/.

Invariants enforced:
    - Ordering is effective_date DESC, recorded_at DESC, sequence_number
      DESC.  The sequence number makes the order total, so two listings of
      the same ledger state are identical.
    - Results are streamed in batches of ``batch_size`` rows; nothing
      materializes the whole ledger.
    - report_summary() applies exactly the filter clauses the listing does,
      so its totals describe the rows list_movements() would yield.

Failure modes:
    - None specific; an empty ledger yields nothing and sums to zero.
"""

from collections.abc import Iterator

from sqlalchemy import Select, case, func, select
from sqlalchemy.orm import Session

from stock_ledger.domain.dtos import (
    MovementExportRow,
    MovementFilter,
    MovementRecord,
    MovementReportSummary,
)
from stock_ledger.domain.values import MovementKind, ProductCategory
from stock_ledger.models.movement import StockMovement
from stock_ledger.models.product import Product
from stock_ledger.selectors.base import BaseSelector


class MovementSelector(BaseSelector[StockMovement]):
    """Read-side queries over stock movements."""

    def __init__(self, session: Session, batch_size: int = 200):
        super().__init__(session)
        self._batch_size = batch_size

    def _apply_filter(self, query: Select, movement_filter: MovementFilter) -> Select:
        f = movement_filter
        if f.start_date is not None:
            query = query.where(StockMovement.effective_date >= f.start_date)
        if f.end_date is not None:
            query = query.where(StockMovement.effective_date <= f.end_date)
        if f.product_id is not None:
            query = query.where(StockMovement.product_id == f.product_id)
        if f.employee_id is not None:
            query = query.where(StockMovement.employee_id == f.employee_id)
        if f.kinds:
            query = query.where(
                StockMovement.kind.in_(sorted(k.value for k in f.kinds))
            )
        if f.category is not None:
            query = query.join(Product, StockMovement.product_id == Product.id).where(
                Product.category == ProductCategory(f.category).value
            )
        return query

    def _filtered(self, movement_filter: MovementFilter) -> Select:
        return self._apply_filter(select(StockMovement), movement_filter).order_by(
            StockMovement.effective_date.desc(),
            StockMovement.recorded_at.desc(),
            StockMovement.sequence_number.desc(),
        )

    def _stream(self, movement_filter: MovementFilter) -> Iterator[StockMovement]:
        result = self.session.scalars(
            self._filtered(movement_filter).execution_options(
                yield_per=self._batch_size
            )
        )
        yield from result

    def iter_movements(
        self, movement_filter: MovementFilter | None = None
    ) -> Iterator[MovementRecord]:
        """Movements matching ``movement_filter``, newest first."""
        for movement in self._stream(movement_filter or MovementFilter()):
            yield MovementRecord.from_model(movement)

    def iter_export_rows(
        self, movement_filter: MovementFilter | None = None
    ) -> Iterator[MovementExportRow]:
        """Flattened report rows, in the same order as iter_movements()."""
        for movement in self._stream(movement_filter or MovementFilter()):
            yield MovementExportRow.from_model(movement)

    def report_summary(
        self, movement_filter: MovementFilter | None = None
    ) -> MovementReportSummary:
        """Counts and unit totals over the movements matching the filter."""
        is_entry = StockMovement.kind == MovementKind.ENTRY.value
        query = self._apply_filter(
            select(
                func.count(StockMovement.id),
                func.coalesce(func.sum(case((is_entry, 1), else_=0)), 0),
                func.coalesce(
                    func.sum(case((is_entry, StockMovement.quantity), else_=0)), 0
                ),
                func.coalesce(
                    func.sum(case((is_entry, 0), else_=StockMovement.quantity)), 0
                ),
                func.coalesce(func.sum(StockMovement.signed_quantity), 0),
            ).select_from(StockMovement),
            movement_filter or MovementFilter(),
        )
        total, entries, units_in, units_out, net = self.session.execute(query).one()
        return MovementReportSummary(
            total_movements=int(total),
            entry_count=int(entries),
            exit_count=int(total) - int(entries),
            units_in=int(units_in),
            units_out=int(units_out),
            net_change=int(net),
        )
