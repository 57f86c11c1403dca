"""
Sale creation tests.

Verifies:
- Totals, change and stock decrement for a simple cash sale
- Insufficient stock and unknown/inactive products leave no trace
- A failure part-way through the writes rolls everything back
- Discounts, tax and cash validation
- Lines and prices are stored as sold
"""

from decimal import Decimal

import pytest

from retailpos.errors import InsufficientStock, InvalidInput, NotFound, TransactionFailure
from retailpos.models import Sale, SaleLine, StockLedgerEntry
from retailpos.services import sales_service
from retailpos.services.ledger_service import check_product_ledger, net_ledger_change
from retailpos.validation import SaleLineRequest


def _counts(session):
    return (
        session.query(Sale).count(),
        session.query(SaleLine).count(),
        session.query(StockLedgerEntry).count(),
    )


class TestSimpleSale:

    def test_cash_sale_totals_change_and_stock(self, db_session, admin_user, make_product):
        product = make_product("Rice 5kg", selling_price="50.00", quantity=100)

        sale = sales_service.create_sale(
            actor_id=admin_user.id,
            lines=[(product.id, 5)],
            payment_method="cash",
            cash_received=Decimal("300"),
        )

        assert sale.subtotal == Decimal("250.00")
        assert sale.total == Decimal("250.00")
        assert sale.change == Decimal("50.00")
        assert sale.bill_number == "INV-000001"
        assert product.quantity == 95

        entries = db_session.query(StockLedgerEntry).filter_by(product_id=product.id).all()
        assert len(entries) == 1
        entry = entries[0]
        assert entry.quantity_delta == -5
        assert entry.quantity_before == 100
        assert entry.quantity_after == 95
        assert entry.reason == "sale"
        assert entry.reference_doc == sale.bill_number
        assert entry.actor_id == admin_user.id

    def test_card_sale_has_no_change(self, db_session, cashier_user, make_product):
        product = make_product(selling_price="12.50", quantity=10)

        sale = sales_service.create_sale(
            actor_id=cashier_user.id,
            lines=[SaleLineRequest(product_id=product.id, quantity=2)],
            payment_method="card",
        )

        assert sale.total == Decimal("25.00")
        assert sale.change == Decimal("0.00")
        assert sale.amount_received is None
        assert sale.cashier_id == cashier_user.id

    def test_bill_numbers_are_sequential(self, db_session, admin_user, make_product):
        product = make_product(quantity=10)

        numbers = [
            sales_service.create_sale(
                actor_id=admin_user.id, lines=[(product.id, 1)], payment_method="qr"
            ).bill_number
            for _ in range(3)
        ]

        assert numbers == ["INV-000001", "INV-000002", "INV-000003"]


class TestStockChecks:

    def test_insufficient_stock_leaves_nothing(self, db_session, admin_user, make_product):
        product = make_product("Soap", quantity=3)

        with pytest.raises(InsufficientStock) as exc_info:
            sales_service.create_sale(
                actor_id=admin_user.id,
                lines=[(product.id, 10)],
                payment_method="card",
            )

        err = exc_info.value
        assert err.product_id == product.id
        assert err.product_name == "Soap"
        assert err.requested == 10
        assert err.available == 3
        assert "Available: 3" in err.message

        assert product.quantity == 3
        assert _counts(db_session) == (0, 0, 0)

    def test_first_short_product_in_request_order_wins(self, db_session, admin_user, make_product):
        plenty = make_product("Plenty", quantity=50)
        short_b = make_product("Short B", quantity=1)
        short_a = make_product("Short A", quantity=1)

        with pytest.raises(InsufficientStock) as exc_info:
            sales_service.create_sale(
                actor_id=admin_user.id,
                lines=[(plenty.id, 1), (short_a.id, 5), (short_b.id, 5)],
                payment_method="card",
            )

        assert exc_info.value.product_id == short_a.id

    def test_duplicate_lines_are_checked_against_combined_quantity(self, db_session, admin_user, make_product):
        product = make_product(quantity=5)

        with pytest.raises(InsufficientStock) as exc_info:
            sales_service.create_sale(
                actor_id=admin_user.id,
                lines=[(product.id, 3), (product.id, 3)],
                payment_method="card",
            )

        assert exc_info.value.requested == 6
        assert product.quantity == 5

    def test_duplicate_lines_chain_ledger_entries(self, db_session, admin_user, make_product):
        product = make_product(quantity=10)

        sale = sales_service.create_sale(
            actor_id=admin_user.id,
            lines=[(product.id, 3), (product.id, 2)],
            payment_method="card",
        )

        assert len(sale.lines) == 2
        assert product.quantity == 5
        entries = (
            db_session.query(StockLedgerEntry)
            .filter_by(product_id=product.id)
            .order_by(StockLedgerEntry.id)
            .all()
        )
        assert [(e.quantity_before, e.quantity_after) for e in entries] == [(10, 7), (7, 5)]

    def test_unknown_product_is_not_found(self, db_session, admin_user, make_product):
        product = make_product(quantity=10)

        with pytest.raises(NotFound):
            sales_service.create_sale(
                actor_id=admin_user.id,
                lines=[(product.id, 1), (999999, 1)],
                payment_method="card",
            )

        assert product.quantity == 10
        assert _counts(db_session) == (0, 0, 0)

    def test_inactive_product_is_not_found(self, db_session, admin_user, make_product):
        product = make_product(quantity=10, is_active=False)

        with pytest.raises(NotFound):
            sales_service.create_sale(
                actor_id=admin_user.id,
                lines=[(product.id, 1)],
                payment_method="card",
            )


class TestAtomicity:

    def test_failure_on_second_of_three_lines_rolls_back(self, db_session, admin_user, make_product, monkeypatch):
        products = [make_product(f"P{i}", quantity=20) for i in range(3)]
        real_apply = sales_service.apply_stock_change
        calls = {"n": 0}

        def failing_apply(**kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise TransactionFailure("simulated write failure")
            return real_apply(**kwargs)

        monkeypatch.setattr(sales_service, "apply_stock_change", failing_apply)

        with pytest.raises(TransactionFailure):
            sales_service.create_sale(
                actor_id=admin_user.id,
                lines=[(p.id, 2) for p in products],
                payment_method="card",
            )

        assert [p.quantity for p in products] == [20, 20, 20]
        assert _counts(db_session) == (0, 0, 0)
        for p in products:
            assert net_ledger_change(p.id) == 0

        # the bill number was not consumed
        monkeypatch.setattr(sales_service, "apply_stock_change", real_apply)
        sale = sales_service.create_sale(
            actor_id=admin_user.id, lines=[(products[0].id, 1)], payment_method="card"
        )
        assert sale.bill_number == "INV-000001"


class TestPricing:

    def test_subtotal_and_total_identity(self, db_session, admin_user, make_product):
        a = make_product("A", selling_price="0.10", quantity=100)
        b = make_product("B", selling_price="0.20", quantity=100)
        c = make_product("C", selling_price="19.99", quantity=100)

        sale = sales_service.create_sale(
            actor_id=admin_user.id,
            lines=[(a.id, 3), (b.id, 7), (c.id, 2)],
            payment_method="cash",
            cash_received="100",
            discount_amount="1.33",
        )

        line_sum = sum((line.line_total for line in sale.lines), Decimal("0"))
        assert abs(sale.subtotal - line_sum) <= Decimal("0.01")
        assert sale.subtotal == Decimal("41.68")
        assert abs(sale.total - (sale.subtotal - sale.discount_amount + sale.tax_amount)) <= Decimal("0.01")
        assert sale.total == Decimal("40.35")
        assert sale.change == Decimal("59.65")

    def test_discount_percent(self, db_session, admin_user, make_product):
        product = make_product(selling_price="33.33", quantity=10)

        sale = sales_service.create_sale(
            actor_id=admin_user.id,
            lines=[(product.id, 3)],
            payment_method="card",
            discount_percent=Decimal("10"),
        )

        assert sale.subtotal == Decimal("99.99")
        assert sale.discount_amount == Decimal("10.00")
        assert sale.discount_percent == Decimal("10")
        assert sale.total == Decimal("89.99")

    def test_discount_amount_and_percent_are_exclusive(self, db_session, admin_user, make_product):
        product = make_product(quantity=10)

        with pytest.raises(InvalidInput):
            sales_service.create_sale(
                actor_id=admin_user.id,
                lines=[(product.id, 1)],
                payment_method="card",
                discount_amount="1.00",
                discount_percent="5",
            )

    def test_discount_above_subtotal_rejected(self, db_session, admin_user, make_product):
        product = make_product(selling_price="5.00", quantity=10)

        with pytest.raises(InvalidInput):
            sales_service.create_sale(
                actor_id=admin_user.id,
                lines=[(product.id, 1)],
                payment_method="card",
                discount_amount="6.00",
            )

        assert product.quantity == 10

    def test_configured_tax_applies_after_discount(self, app, db_session, admin_user, make_product, monkeypatch):
        monkeypatch.setitem(app.config, "SALES_TAX_PERCENT", "8")
        product = make_product(selling_price="10.00", quantity=10)

        sale = sales_service.create_sale(
            actor_id=admin_user.id,
            lines=[(product.id, 3)],
            payment_method="card",
            discount_amount="5.00",
        )

        assert sale.tax_percent == Decimal("8")
        assert sale.tax_amount == Decimal("2.00")
        assert sale.total == Decimal("27.00")

    def test_cash_below_total_rejected(self, db_session, admin_user, make_product):
        product = make_product(selling_price="10.00", quantity=10)

        with pytest.raises(InvalidInput):
            sales_service.create_sale(
                actor_id=admin_user.id,
                lines=[(product.id, 2)],
                payment_method="cash",
                cash_received="19.99",
            )

        assert product.quantity == 10
        assert _counts(db_session) == (0, 0, 0)

    def test_cash_required_for_cash_payments(self, db_session, admin_user, make_product):
        product = make_product(quantity=10)

        with pytest.raises(InvalidInput):
            sales_service.create_sale(
                actor_id=admin_user.id,
                lines=[(product.id, 1)],
                payment_method="cash",
            )

    @pytest.mark.parametrize(
        "lines,payment_method",
        [
            ([], "card"),
            ([(1, 0)], "card"),
            ([(1, -2)], "card"),
            ([(1, 1)], "bitcoin"),
        ],
    )
    def test_rejects_bad_requests_before_reading(self, db_session, admin_user, lines, payment_method):
        with pytest.raises(InvalidInput):
            sales_service.create_sale(
                actor_id=admin_user.id,
                lines=lines,
                payment_method=payment_method,
            )


class TestReadAfterWrite:

    def test_lines_match_request_and_prices_are_snapshots(self, db_session, admin_user, make_product):
        a = make_product("Tea", selling_price="4.25", quantity=10)
        b = make_product("Sugar", selling_price="1.10", quantity=10)

        sale = sales_service.create_sale(
            actor_id=admin_user.id,
            lines=[(a.id, 2), (b.id, 1)],
            payment_method="card",
        )
        sale_id = sale.id

        a.selling_price = Decimal("9.99")
        a.name = "Tea (renamed)"
        db_session.commit()

        stored = sales_service.get_sale(sale_id)
        assert [(line.product_id, line.quantity) for line in stored.lines] == [(a.id, 2), (b.id, 1)]
        assert stored.lines[0].unit_price == Decimal("4.25")
        assert stored.lines[0].product_name == "Tea"
        assert stored.lines[0].line_total == Decimal("8.50")

        body = stored.to_dict()
        assert body["bill_number"] == "INV-000001"
        assert len(body["items"]) == 2

    def test_ledger_stays_consistent_after_sales(self, db_session, admin_user, make_product):
        product = make_product(quantity=40)

        for qty in (1, 4, 7):
            sales_service.create_sale(
                actor_id=admin_user.id, lines=[(product.id, qty)], payment_method="card"
            )

        report = check_product_ledger(product.id)
        assert report["consistent"]
        assert report["net_change"] == product.quantity - 40 == -12

    def test_get_sale_not_found(self, db_session):
        with pytest.raises(NotFound):
            sales_service.get_sale(12345)
