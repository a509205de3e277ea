"""
Tests for stock status, inventory listing and reporting aggregates
(stock_ledger/selectors/stock_selector.py through StockLedger).
"""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import update

from stock_ledger.domain.values import ProductCategory, StockFilter, StockStatus
from stock_ledger.exceptions import UnknownProductError
from stock_ledger.models.product import Product

TEST_ACTOR = "tester@example.com"


def _deliver(ledger, product, employee, quantity, effective_date=None):
    return ledger.record_exit(
        product.id, employee.id, quantity, "delivered", effective_date, TEST_ACTOR,
        signature="Juan Pérez",
    )


class TestGetStockStatus:
    """OUT at zero, LOW up to and including the minimum, NORMAL above."""

    @pytest.mark.parametrize(
        "stock, minimum, expected",
        [
            (0, 5, StockStatus.OUT_OF_STOCK),
            (1, 5, StockStatus.LOW_STOCK),
            (5, 5, StockStatus.LOW_STOCK),
            (6, 5, StockStatus.NORMAL),
            (0, 0, StockStatus.OUT_OF_STOCK),
        ],
    )
    def test_status_boundaries(self, ledger, create_product, stock, minimum, expected):
        product = create_product(initial_stock=stock, minimum_stock=minimum)

        status = ledger.get_stock_status(product.id)

        assert status.level == stock
        assert status.minimum_stock == minimum
        assert status.status is expected

    def test_unknown_product(self, ledger):
        with pytest.raises(UnknownProductError):
            ledger.get_stock_status(uuid4())

    def test_inactive_product_still_reported(self, ledger, create_product):
        product = create_product(initial_stock=4)
        ledger.deactivate_product(product.id, TEST_ACTOR)
        assert ledger.get_stock_status(product.id).level == 4


class TestListProducts:

    @pytest.fixture
    def catalog(self, create_product):
        return {
            "shirt": create_product(
                name="Camisa M", code="UNI-001", initial_stock=20, minimum_stock=5
            ),
            "pants": create_product(
                name="Pantalon 32", code="UNI-002", initial_stock=3, minimum_stock=5
            ),
            "cap": create_product(
                name="Gorra", code="UNI-003", initial_stock=0, minimum_stock=2
            ),
            "aspirin": create_product(
                name="Aspirina 100mg",
                code="MED-001",
                category=ProductCategory.MEDICATION,
                initial_stock=5,
                minimum_stock=5,
            ),
        }

    def test_all_active_ordered_by_name(self, ledger, catalog):
        names = [p.name for p in ledger.list_products()]
        assert names == ["Aspirina 100mg", "Camisa M", "Gorra", "Pantalon 32"]

    def test_category_filter(self, ledger, catalog):
        products = ledger.list_products(category="medication")
        assert [p.code for p in products] == ["MED-001"]

    def test_search_matches_name_or_code_case_insensitive(self, ledger, catalog):
        assert [p.code for p in ledger.list_products(search="camisa")] == ["UNI-001"]
        assert {p.code for p in ledger.list_products(search="uni-00")} == {
            "UNI-001", "UNI-002", "UNI-003",
        }

    def test_low_filter_excludes_zero(self, ledger, catalog):
        low = ledger.list_products(stock_filter=StockFilter.LOW)
        assert {p.code for p in low} == {"UNI-002", "MED-001"}
        assert all(p.stock_status is StockStatus.LOW_STOCK for p in low)

    def test_out_filter(self, ledger, catalog):
        out = ledger.list_products(stock_filter="out")
        assert [p.code for p in out] == ["UNI-003"]

    def test_inactive_hidden_unless_requested(self, ledger, catalog):
        ledger.deactivate_product(catalog["cap"].id, TEST_ACTOR)

        assert "UNI-003" not in {p.code for p in ledger.list_products()}
        assert "UNI-003" in {p.code for p in ledger.list_products(include_inactive=True)}

    def test_inventory_summary(self, ledger, catalog):
        summary = ledger.inventory_summary()

        assert summary.total_products == 4
        assert summary.total_units == 28
        assert summary.low_stock_count == 2
        assert summary.out_of_stock_count == 1

    def test_low_stock_products_include_zero_lowest_first(self, ledger, catalog):
        codes = [p.code for p in ledger.low_stock_products()]
        assert codes == ["UNI-003", "UNI-002", "MED-001"]

    def test_get_product(self, ledger, catalog):
        product = ledger.get_product(catalog["shirt"].id)
        assert product.current_stock == 20
        assert product.stock_status is StockStatus.NORMAL


class TestDashboardStats:

    def test_month_totals_and_alerts(self, ledger, create_product, employee):
        shirt = create_product(name="Camisa M", initial_stock=0, minimum_stock=5)
        ledger.record_entry(shirt.id, 30, "Textiles SA", date(2023, 12, 28), TEST_ACTOR)
        ledger.record_entry(shirt.id, 10, "Textiles SA", date(2024, 1, 3), TEST_ACTOR)
        _deliver(ledger, shirt, employee, 12, effective_date=date(2024, 1, 10))
        _deliver(ledger, shirt, employee, 25, effective_date=date(2024, 1, 20))

        stats = ledger.dashboard_stats(as_of=date(2024, 1, 15))

        assert stats.total_stock == 3
        assert stats.entries_this_month == 10
        assert stats.exits_this_month == 12
        assert stats.low_stock_alerts == 1
        assert [p.id for p in stats.low_stock_products] == [shirt.id]

    def test_recent_activity_limited_and_newest_first(
        self, ledger, create_product, clock
    ):
        product = create_product()
        references = []
        for _ in range(12):
            clock.tick()
            references.append(ledger.record_entry(product.id, 1, None, None, TEST_ACTOR).reference)

        stats = ledger.dashboard_stats()

        assert len(stats.recent_activity) == ledger.settings.recent_activity_limit
        assert [m.reference for m in stats.recent_activity] == references[::-1][:10]

    def test_empty_ledger(self, ledger):
        stats = ledger.dashboard_stats(as_of=date(2024, 1, 15))
        assert stats.total_stock == 0
        assert stats.entries_this_month == 0
        assert stats.recent_activity == ()


class TestVerifyStockIntegrity:
    """Stored stock is compared with the sum of the movement ledger."""

    def test_consistent_ledger_has_no_discrepancies(
        self, ledger, create_product, employee
    ):
        product = create_product(initial_stock=10)
        _deliver(ledger, product, employee, 4)
        ledger.record_exit(product.id, employee.id, 1, "returned", None, TEST_ACTOR)

        assert ledger.verify_stock_integrity() == []
        assert ledger.get_stock_status(product.id).level == 7

    def test_tampered_stock_detected(
        self, ledger, session_factory, create_product, captured_logs
    ):
        product = create_product(code="UNI-TAMPER", initial_stock=10)
        untouched = create_product(initial_stock=2)

        with session_factory() as session:
            session.execute(
                update(Product)
                .where(Product.id == product.id)
                .values(current_stock=25)
                .execution_options(synchronize_session=False)
            )
            session.commit()

        discrepancies = ledger.verify_stock_integrity()

        assert len(discrepancies) == 1
        found = discrepancies[0]
        assert found.product_code == "UNI-TAMPER"
        assert (found.current_stock, found.ledger_stock, found.difference) == (25, 10, 15)
        assert ledger.verify_stock_integrity(untouched.id) == []
        assert any(r["message"] == "stock_integrity_violation" for r in captured_logs())

    def test_product_without_movements_is_consistent(self, ledger, create_product):
        create_product(initial_stock=0)
        assert ledger.verify_stock_integrity() == []
