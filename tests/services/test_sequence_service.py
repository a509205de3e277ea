"""Tests for movement number allocation (stock_ledger/services/sequence_service.py)."""

from types import SimpleNamespace

import pytest
from sqlalchemy import select

from stock_ledger.services.sequence_service import (
    SequenceCounter,
    SequenceService,
    stock_movement_seq,
)

TEST_ACTOR = "tester@example.com"


def _uses_counter_rows(session) -> bool:
    return not session.get_bind().dialect.supports_sequences


class TestBackendSelection:

    def test_movement_numbers_use_native_sequence_where_supported(
        self, session, monkeypatch
    ):
        postgres_like = SimpleNamespace(dialect=SimpleNamespace(supports_sequences=True))
        monkeypatch.setattr(session, "get_bind", lambda *args, **kwargs: postgres_like)
        service = SequenceService(session)

        assert service._native_sequence(SequenceService.STOCK_MOVEMENT) is stock_movement_seq
        assert service._native_sequence("report_export") is None

    def test_sqlite_uses_counter_rows(self, session):
        if not _uses_counter_rows(session):
            pytest.skip("dialect has native sequences")
        value = SequenceService(session).next_value(SequenceService.STOCK_MOVEMENT)

        counter = session.scalars(
            select(SequenceCounter).where(
                SequenceCounter.name == SequenceService.STOCK_MOVEMENT
            )
        ).one()
        assert counter.current_value == value


class TestAllocation:

    def test_values_increase(self, session):
        service = SequenceService(session)
        first = service.next_value(SequenceService.STOCK_MOVEMENT)
        second = service.next_value(SequenceService.STOCK_MOVEMENT)
        assert 0 < first < second

    def test_unknown_name_creates_counter_on_first_use(self, session):
        service = SequenceService(session)
        assert service.current_value("report_export") is None
        assert service.next_value("report_export") == 1
        assert service.next_value("report_export") == 2

    def test_current_value_tracks_last_movement(
        self, ledger, create_product, session_factory
    ):
        product = create_product()
        ledger.record_entry(product.id, 1, None, None, TEST_ACTOR)
        last = ledger.record_entry(product.id, 1, None, None, TEST_ACTOR)

        with session_factory() as session:
            current = SequenceService(session).current_value(
                SequenceService.STOCK_MOVEMENT
            )
        assert current == last.sequence_number

    def test_counter_value_returned_on_rollback(self, session):
        if not _uses_counter_rows(session):
            pytest.skip("native sequences are not rolled back")
        service = SequenceService(session)

        allocated = service.next_value(SequenceService.STOCK_MOVEMENT)
        session.rollback()

        assert service.next_value(SequenceService.STOCK_MOVEMENT) == allocated
