"""Tests for the typed exception hierarchy and the invariant catalog."""

import pytest

from stock_ledger import exceptions
from stock_ledger.exceptions import (
    ConcurrencyError,
    ConcurrentUpdateConflictError,
    EmployeeError,
    ImmutabilityViolationError,
    InsufficientStockError,
    InvalidQuantityError,
    MissingSignatureError,
    ProductError,
    StockError,
    StockLedgerError,
    UnknownEmployeeError,
    UnknownProductError,
    ValidationError,
)
from stock_ledger.invariants import ALL_LEDGER_INVARIANTS, LedgerInvariant


def _all_error_classes():
    return [
        obj
        for obj in vars(exceptions).values()
        if isinstance(obj, type) and issubclass(obj, StockLedgerError)
    ]


class TestErrorCodes:
    """Every error carries a unique machine-readable code."""

    def test_codes_are_unique(self):
        codes = [cls.code for cls in _all_error_classes()]
        assert len(codes) == len(set(codes))

    def test_codes_are_upper_snake_case(self):
        for cls in _all_error_classes():
            assert cls.code == cls.code.upper()
            assert " " not in cls.code


class TestHierarchy:

    @pytest.mark.parametrize(
        "error, family",
        [
            (InvalidQuantityError(0), ValidationError),
            (MissingSignatureError("p", "e"), ValidationError),
            (UnknownProductError("p"), ProductError),
            (UnknownEmployeeError("e"), EmployeeError),
            (InsufficientStockError("p", 5, 3), StockError),
            (ConcurrentUpdateConflictError("record_exit", "locked"), ConcurrencyError),
        ],
    )
    def test_family(self, error, family):
        assert isinstance(error, family)
        assert isinstance(error, StockLedgerError)


class TestMessages:
    """Messages name the violated constraint."""

    def test_insufficient_stock_message(self):
        error = InsufficientStockError("prod-1", requested=5, available=3)
        assert "requested 5" in str(error)
        assert "available 3" in str(error)

    def test_unknown_product_reason(self):
        error = UnknownProductError("prod-1", reason="inactive")
        assert error.reason == "inactive"
        assert "inactive" in str(error)

    def test_conflict_reports_attempts(self):
        error = ConcurrentUpdateConflictError("record_exit", "deadlock", attempts=3)
        assert error.attempts == 3
        assert "3 attempt" in str(error)

    def test_immutability_violation_names_entity(self):
        error = ImmutabilityViolationError("StockMovement", "abc", "immutable")
        assert error.entity_type == "StockMovement"
        assert "StockMovement abc" in str(error)


class TestLedgerInvariants:

    def test_catalog_is_complete(self):
        assert ALL_LEDGER_INVARIANTS == frozenset(LedgerInvariant)
        assert len(ALL_LEDGER_INVARIANTS) == 6

    def test_values_are_snake_case_names(self):
        for invariant in LedgerInvariant:
            assert invariant.value == invariant.name.lower()
