"""
Stock Ledger Invariants Contract.

These invariants are structural law. They are hardcoded in the movement
service, the ORM immutability listeners and the database constraints. No
setting in LedgerSettings may switch them off.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across MovementService, SequenceService,
db/immutability.py and the CHECK constraints on the models.
"""

from enum import Enum, unique


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants enforced by the stock ledger.

    Each value names one structural guarantee the ledger provides
    unconditionally.
    """

    STOCK_EQUALS_LEDGER_SUM = "stock_equals_ledger_sum"
    """A product's current_stock equals the sum of the signed quantities of
    its movements. Enforced by applying the stock delta and inserting the
    movement in the same transaction (MovementService)."""

    NON_NEGATIVE_STOCK = "non_negative_stock"
    """current_stock never drops below zero. Enforced by the conditional
    UPDATE in MovementService and a CHECK constraint on products."""

    APPEND_ONLY_MOVEMENTS = "append_only_movements"
    """Movements are never updated or deleted; corrections are
    compensating movements. Enforced by db/immutability.py."""

    NO_DIRECT_STOCK_WRITES = "no_direct_stock_writes"
    """current_stock is never assigned through the ORM. Enforced by
    db/immutability.py."""

    UNIQUE_MOVEMENT_REFERENCE = "unique_movement_reference"
    """Every movement reference is unique, even under concurrent creation.
    Enforced by SequenceService (native sequence or locked counter row)
    and a unique constraint."""

    SIGNED_DELIVERY = "signed_delivery"
    """A delivered exit carries a non-blank receiver signature. Enforced by
    domain.stock_rules before any write."""


# All invariants as a frozenset for programmatic checks.
ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)
