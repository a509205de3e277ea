"""
Stock rules -- the pure business rules of the stock ledger.

Responsibility:
    Every rule that decides whether a movement is admissible, and what it
    does to stock, lives here once: quantity validation, the delivery
    signature gate, the sign convention per movement kind, the stock-status
    classification and the movement reference format.  Services call these;
    nothing else re-implements them.

Architecture position:
    Ledger > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Quantities are positive integers (bool is rejected).
    - A delivered exit carries a non-blank signature.
    - Listing filters only name known movement kinds.
    - Entries and returns add stock; deliveries remove it.
    - Stock at exactly the minimum is LOW_STOCK, not NORMAL.
"""

from datetime import date
from uuid import UUID

from stock_ledger.domain.values import ExitKind, MovementKind, StockStatus
from stock_ledger.exceptions import (
    InvalidMinimumStockError,
    InvalidMovementKindError,
    InvalidQuantityError,
    MissingSignatureError,
)


def validate_quantity(quantity: object) -> int:
    """Return ``quantity`` if it is a positive integer, else raise."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError(quantity)
    return quantity


def validate_minimum_stock(minimum_stock: object) -> int:
    """Return ``minimum_stock`` if it is a non-negative integer, else raise."""
    if (
        isinstance(minimum_stock, bool)
        or not isinstance(minimum_stock, int)
        or minimum_stock < 0
    ):
        raise InvalidMinimumStockError(minimum_stock)
    return minimum_stock


def parse_exit_kind(kind: ExitKind | str) -> ExitKind:
    """Accept an ExitKind or its string value ("delivered" / "returned")."""
    if isinstance(kind, ExitKind):
        return kind
    try:
        return ExitKind(kind)
    except ValueError:
        raise InvalidMovementKindError(
            kind, tuple(k.value for k in ExitKind)
        ) from None


EXIT_KINDS = frozenset({MovementKind.EXIT_DELIVERED, MovementKind.EXIT_RETURNED})

# "exit" selects both exit kinds in movement listings and reports
ALL_EXITS = "exit"


def resolve_movement_kinds(
    kind: MovementKind | ExitKind | str,
) -> frozenset[MovementKind]:
    """
    Movement kinds selected by a listing filter value.

    Accepts a MovementKind, an ExitKind (the words record_exit() takes),
    their string values, or ``"exit"`` for every exit kind.
    """
    if isinstance(kind, MovementKind):
        return frozenset({kind})
    if isinstance(kind, ExitKind):
        return frozenset({kind.movement_kind})
    if kind == ALL_EXITS:
        return EXIT_KINDS
    try:
        return frozenset({MovementKind(kind)})
    except ValueError:
        pass
    try:
        return frozenset({ExitKind(kind).movement_kind})
    except ValueError:
        allowed = (
            *(k.value for k in MovementKind),
            *(k.value for k in ExitKind),
            ALL_EXITS,
        )
        raise InvalidMovementKindError(kind, allowed) from None


def require_signature(
    signature: str | None,
    product_id: UUID,
    employee_id: UUID,
) -> str:
    """The delivery gate: a delivered exit needs a non-blank signature."""
    if signature is None or not signature.strip():
        raise MissingSignatureError(str(product_id), str(employee_id))
    return signature.strip()


def signed_delta(kind: MovementKind, quantity: int) -> int:
    """Stock delta for a movement: +quantity in, -quantity out."""
    if kind is MovementKind.EXIT_DELIVERED:
        return -quantity
    return quantity


def classify_stock(current_stock: int, minimum_stock: int) -> StockStatus:
    """
    Alert state for a stock level.

    Postconditions:
        OUT_OF_STOCK when the level is 0; LOW_STOCK when
        0 < level <= minimum (equality counts as low); NORMAL otherwise.
    """
    if current_stock <= 0:
        return StockStatus.OUT_OF_STOCK
    if current_stock <= minimum_stock:
        return StockStatus.LOW_STOCK
    return StockStatus.NORMAL


def format_reference(prefix: str, effective_date: date, sequence_number: int) -> str:
    """Movement reference, e.g. ``SAL-20240115-000042``."""
    return f"{prefix}-{effective_date:%Y%m%d}-{sequence_number:06d}"
