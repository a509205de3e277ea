"""
Pure domain layer.

This module contains pure data transfer objects and stock rules with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock (except the injectable Clock itself)
- I/O
"""

from stock_ledger.domain.clock import Clock, DeterministicClock, SystemClock
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
    EmployeeStatus,
    ExitKind,
    MovementKind,
    ProductCategory,
    ProductStatus,
    StockFilter,
    StockStatus,
)

__all__ = [
    "Clock",
    "DashboardStats",
    "DeterministicClock",
    "EmployeeInfo",
    "EmployeeStatus",
    "ExitKind",
    "InventorySummary",
    "MovementExportRow",
    "MovementFilter",
    "MovementKind",
    "MovementRecord",
    "MovementReportSummary",
    "ProductCategory",
    "ProductStatus",
    "ProductStock",
    "StockDiscrepancy",
    "StockFilter",
    "StockLevel",
    "StockStatus",
    "SystemClock",
]
