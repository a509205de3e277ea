"""Read-only query selectors."""

from stock_ledger.selectors.base import BaseSelector
from stock_ledger.selectors.movement_selector import MovementSelector
from stock_ledger.selectors.stock_selector import StockSelector

__all__ = [
    "BaseSelector",
    "MovementSelector",
    "StockSelector",
]
