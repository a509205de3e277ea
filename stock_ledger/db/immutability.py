"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Stock levels are only trustworthy if the movement history behind them is.
Movements are append-only: a wrong delivery is corrected by recording a
return, never by editing or deleting the original row.  Likewise a
product's current_stock must only move through the conditional UPDATE in
MovementService; assigning it through the ORM would bypass both the stock
check and the ledger.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events:

    session.flush()
         |
         v
    [before_update event] --> _check_*() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_*_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Core ``update()`` statements do not fire mapper events, which is exactly
what lets MovementService apply stock deltas while ORM code cannot.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity         | Rule
---------------|-------------------------------------------------------------
StockMovement  | Never updated, never deleted
Product        | code and current_stock never change through the ORM;
               | rows are never deleted (deactivate instead)

===============================================================================
USAGE
===============================================================================

    from stock_ledger.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup; idempotent

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from stock_ledger.exceptions import ImmutabilityViolationError
from stock_ledger.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(entity_type: str, entity_id: str, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": entity_id,
            "operation": operation,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=entity_id,
        reason=reason,
    )


def _check_movement_immutability(mapper, connection, target):
    """Prevent any updates to StockMovement records."""
    raise _blocked(
        "StockMovement",
        str(target.id),
        "UPDATE",
        "Stock movements are immutable; record a compensating movement instead",
    )


def _check_movement_delete(mapper, connection, target):
    """Prevent deletion of StockMovement records."""
    raise _blocked(
        "StockMovement",
        str(target.id),
        "DELETE",
        "Stock movements cannot be deleted; record a compensating movement instead",
    )


def _check_product_immutability(mapper, connection, target):
    """
    Prevent ORM writes to Product.code and Product.current_stock.

    current_stock only changes via MovementService's Core UPDATE, which does
    not pass through this listener.
    """
    code_history = get_history(target, "code")
    if code_history.deleted and code_history.added:
        raise _blocked(
            "Product",
            str(target.id),
            "UPDATE",
            "Product code is immutable once assigned",
        )

    stock_history = get_history(target, "current_stock")
    if stock_history.deleted and stock_history.added:
        raise _blocked(
            "Product",
            str(target.id),
            "UPDATE",
            "current_stock can only change by recording a stock movement",
        )


def _check_product_delete(mapper, connection, target):
    """Prevent deletion of Product records."""
    raise _blocked(
        "Product",
        str(target.id),
        "DELETE",
        "Products are never deleted; deactivate the product instead",
    )


def _listeners():
    from stock_ledger.models.movement import StockMovement
    from stock_ledger.models.product import Product

    return [
        (StockMovement, "before_update", _check_movement_immutability),
        (StockMovement, "before_delete", _check_movement_delete),
        (Product, "before_update", _check_product_immutability),
        (Product, "before_delete", _check_product_delete),
    ]


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Safe to call more than once; already-registered listeners are skipped.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
