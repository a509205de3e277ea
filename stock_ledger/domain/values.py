"""
Values -- enumerations shared by the domain, the models and the selectors.

Architecture position:
    Ledger > Domain -- pure, zero I/O.  The ORM models re-export these so
    the persisted string values and the domain values cannot drift apart.
"""

from enum import Enum


class ProductCategory(str, Enum):
    """Kind of item handed out to employees."""

    UNIFORM = "uniform"
    MEDICATION = "medication"


class ProductStatus(str, Enum):
    """Catalog status.  Inactive products accept no new movements."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class MovementKind(str, Enum):
    """Kind of stock movement."""

    ENTRY = "entry"
    EXIT_DELIVERED = "exit_delivered"
    EXIT_RETURNED = "exit_returned"

    @property
    def is_exit(self) -> bool:
        return self is not MovementKind.ENTRY


class ExitKind(str, Enum):
    """Exit kinds accepted by StockLedger.record_exit."""

    DELIVERED = "delivered"
    RETURNED = "returned"

    @property
    def movement_kind(self) -> MovementKind:
        if self is ExitKind.DELIVERED:
            return MovementKind.EXIT_DELIVERED
        return MovementKind.EXIT_RETURNED


class StockStatus(str, Enum):
    """Alert state derived from a product's stock level."""

    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"
    NORMAL = "normal"


class StockFilter(str, Enum):
    """Inventory listing filter by alert state."""

    ALL = "all"
    LOW = "low"
    OUT = "out"
