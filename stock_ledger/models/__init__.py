"""ORM models for the stock ledger."""

from stock_ledger.models.employee import Employee, EmployeeStatus
from stock_ledger.models.movement import MovementKind, StockMovement
from stock_ledger.models.product import Product, ProductCategory, ProductStatus

__all__ = [
    "Employee",
    "EmployeeStatus",
    "MovementKind",
    "Product",
    "ProductCategory",
    "ProductStatus",
    "StockMovement",
]
