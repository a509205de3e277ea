"""
Stock Ledger

The stock-consistency core of an inventory system for uniforms and
medications handed out to employees:
- Append-only movement ledger (entries, deliveries, returns)
- Atomic stock updates that never go negative under concurrency
- Signature gate on deliveries
- Stock alerts, inventory reporting and ledger integrity checks
"""

__version__ = "0.1.0"

from stock_ledger.config import LedgerSettings, load_settings
from stock_ledger.services.ledger_service import StockLedger

__all__ = [
    "LedgerSettings",
    "StockLedger",
    "load_settings",
    "__version__",
]
