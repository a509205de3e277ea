"""
Write-side services and the StockLedger facade.

Services flush within the caller's transaction; StockLedger owns the
transaction boundary and the conflict retry loop.
"""

from stock_ledger.services.base import BaseService
from stock_ledger.services.employee_service import EmployeeService
from stock_ledger.services.ledger_service import StockLedger, is_transient_conflict
from stock_ledger.services.movement_service import MovementService
from stock_ledger.services.product_service import ProductService
from stock_ledger.services.sequence_service import SequenceCounter, SequenceService

__all__ = [
    "BaseService",
    "EmployeeService",
    "MovementService",
    "ProductService",
    "SequenceCounter",
    "SequenceService",
    "StockLedger",
    "is_transient_conflict",
]
