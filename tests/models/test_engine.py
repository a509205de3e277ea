"""Tests for engine construction and the transactional scope (stock_ledger/db/engine.py)."""

import pytest
from sqlalchemy import select
from sqlalchemy.pool import QueuePool, StaticPool

from stock_ledger.config import LedgerSettings
from stock_ledger.db.engine import (
    SQLITE_BUSY_TIMEOUT,
    build_engine,
    create_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from stock_ledger.domain.values import ProductCategory
from stock_ledger.models.product import Product
from stock_ledger.services.ledger_service import StockLedger
from stock_ledger.services.product_service import ProductService
from stock_ledger.services.sequence_service import SequenceService

ACTOR = "tester@example.com"


@pytest.fixture
def module_engine(tmp_path):
    """Module-level engine on a SQLite file, reset afterwards."""
    engine = init_engine_from_url(f"sqlite:///{tmp_path / 'module.db'}")
    create_tables()
    yield engine
    reset_engine()


class TestBuildEngine:

    def test_in_memory_sqlite_uses_static_pool(self):
        engine = build_engine("sqlite://")
        assert isinstance(engine.pool, StaticPool)
        engine.dispose()

    def test_file_sqlite_uses_queue_pool(self, tmp_path):
        engine = build_engine(f"sqlite:///{tmp_path / 'x.db'}", pool_size=3)
        assert isinstance(engine.pool, QueuePool)
        assert engine.pool.size() == 3
        engine.dispose()

    def test_busy_timeout_is_generous(self):
        assert SQLITE_BUSY_TIMEOUT >= 5


class TestModuleEngine:

    def test_uninitialized_access_raises(self):
        reset_engine()
        with pytest.raises(RuntimeError):
            get_engine()
        with pytest.raises(RuntimeError):
            get_session_factory()

    def test_create_tables_seeds_movement_sequence(self, module_engine):
        with session_scope() as session:
            assert SequenceService(session).current_value(
                SequenceService.STOCK_MOVEMENT
            ) == 0

    def test_session_scope_commits(self, module_engine):
        with session_scope() as session:
            ProductService(session).create(
                "UNI-1", "Camisa M", ProductCategory.UNIFORM, "pcs", 5, ACTOR
            )

        with session_scope() as session:
            codes = session.scalars(select(Product.code)).all()
        assert codes == ["UNI-1"]

    def test_session_scope_rolls_back_on_error(self, module_engine):
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                ProductService(session).create(
                    "UNI-2", "Camisa L", ProductCategory.UNIFORM, "pcs", 5, ACTOR
                )
                raise RuntimeError("abort")

        with session_scope() as session:
            assert session.scalars(select(Product.code)).all() == []


class TestLedgerFromSettings:

    def test_from_settings_builds_working_ledger(self, tmp_path):
        settings = LedgerSettings(database_url=f"sqlite:///{tmp_path / 'app.db'}")
        ledger = StockLedger.from_settings(settings)
        try:
            create_tables()
            product = ledger.create_product(
                "UNI-9", "Camisa S", "uniform", "pcs", 2, ACTOR, initial_stock=4
            )
            assert ledger.get_stock_status(product.id).level == 4
            assert ledger.settings is settings
        finally:
            reset_engine()
