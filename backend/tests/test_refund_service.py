import pytest

from posledger.errors import ImmutableRecordError, InvalidAmount, NoActiveCashier, NotFound, OverRefund
from posledger.extensions import db
from posledger.models import Product, RefundRecord, StockMovement, Transaction
from posledger.services import catalog_service, ledger_service, refund_service
from posledger.services.cart_service import Cart


@pytest.fixture
def sale(db_session, scenario_cart, cashier):
    """Recorded sale of 2 x Widget with 2.00 off: total 21.60."""
    scenario_cart.set_discount(200)
    return ledger_service.checkout(scenario_cart, "card", cashier.id)


def _reload(tx_id):
    db.session.expire_all()
    return db.session.get(Transaction, tx_id)


class TestFullRefund:
    def test_full_refund_restocks(self, sale, cashier, widget):
        refund_service.refund(sale.id, 2160, "Customer changed mind", cashier.id)

        tx = _reload(sale.id)
        assert tx.status == "refunded"
        assert tx.refund_amount_cents == 2160
        assert tx.refund_reason == "Customer changed mind"
        assert tx.refunded_by == cashier.id
        assert tx.refund_date is not None
        assert db.session.get(Product, widget.id).stock == 10

        restocks = db.session.query(StockMovement).filter_by(type="REFUND_RESTOCK").all()
        assert [(m.product_id, m.quantity_delta, m.transaction_id) for m in restocks] == [
            (widget.id, 2, sale.id)
        ]

        movements = catalog_service.list_stock_movements(transaction_id=sale.id)
        assert [m.type for m in movements] == ["SALE", "REFUND_RESTOCK"]
        assert sum(m.quantity_delta for m in movements) == 0

    def test_any_refund_after_full_is_over_refund(self, sale, cashier):
        refund_service.refund(sale.id, 2160, "Full", cashier.id)

        with pytest.raises(OverRefund):
            refund_service.refund(sale.id, 1, "Again", cashier.id)

        assert _reload(sale.id).refund_amount_cents == 2160

    def test_restock_follows_snapshot_quantity_not_catalog_edits(self, sale, cashier, widget):
        catalog_service.update_product(widget.id, {"price_cents": 9999})
        refund_service.refund(sale.id, 2160, "Full", cashier.id)
        assert db.session.get(Product, widget.id).stock == 10


class TestPartialRefund:
    def test_partial_refund_does_not_restock(self, sale, cashier, widget):
        record = refund_service.refund(sale.id, 500, "Scratched", cashier.id)

        tx = _reload(sale.id)
        assert tx.status == "partially_refunded"
        assert tx.refund_amount_cents == 500
        assert tx.refundable_cents == 1660
        assert record.amount_cents == 500
        assert record.document_number == "R-000001"
        assert db.session.get(Product, widget.id).stock == 8

    def test_over_refund_after_partial_changes_nothing(self, sale, cashier):
        """5.00 then 20.00 against 21.60: the second is rejected."""
        refund_service.refund(sale.id, 500, "First", cashier.id)

        with pytest.raises(OverRefund) as exc:
            refund_service.refund(sale.id, 2000, "Second", cashier.id)

        assert exc.value.details["refundable_cents"] == 1660
        tx = _reload(sale.id)
        assert tx.status == "partially_refunded"
        assert tx.refund_amount_cents == 500
        assert tx.refund_reason == "First"
        assert len(refund_service.list_refunds(sale.id)) == 1

    def test_partials_reaching_total_become_full(self, sale, cashier, widget):
        refund_service.refund(sale.id, 1000, "One", cashier.id)
        assert db.session.get(Product, widget.id).stock == 8

        refund_service.refund(sale.id, 1160, "Two", cashier.id)

        tx = _reload(sale.id)
        assert tx.status == "refunded"
        assert tx.refund_amount_cents == 2160
        assert db.session.get(Product, widget.id).stock == 10

    def test_latest_refund_overwrites_reason(self, sale, cashier, admin):
        refund_service.refund(sale.id, 100, "First reason", cashier.id)
        refund_service.refund(sale.id, 100, "Second reason", admin.id)

        tx = _reload(sale.id)
        assert tx.refund_reason == "Second reason"
        assert tx.refunded_by == admin.id
        assert tx.refund_amount_cents == 200

        records = refund_service.list_refunds(sale.id)
        assert sorted(r.reason for r in records) == ["First reason", "Second reason"]


class TestRefundFailures:
    @pytest.mark.parametrize("amount", [0, -1, 1.5, "500", None, True])
    def test_invalid_amount(self, sale, cashier, amount):
        with pytest.raises(InvalidAmount):
            refund_service.refund(sale.id, amount, "Bad", cashier.id)
        assert _reload(sale.id).status == "completed"

    def test_unknown_transaction(self, db_session, cashier):
        with pytest.raises(NotFound):
            refund_service.refund(999, 100, "Missing", cashier.id)

    def test_requires_actor(self, sale):
        with pytest.raises(NoActiveCashier):
            refund_service.refund(sale.id, 100, "Nobody", None)

    @pytest.mark.parametrize("actor", ["unknown", "inactive"])
    def test_actor_must_be_an_active_user(self, sale, cashier, actor):
        if actor == "inactive":
            cashier.is_active = False
            db.session.commit()
            actor_id = cashier.id
        else:
            actor_id = 99999

        with pytest.raises(NoActiveCashier):
            refund_service.refund(sale.id, 100, "Not allowed", actor_id)

        assert refund_service.list_refunds(sale.id) == []
        tx = _reload(sale.id)
        assert tx.status == "completed"
        assert tx.refund_amount_cents == 0

    def test_zero_total_sale_cannot_be_refunded(self, db_session, scenario_cart, cashier, widget):
        scenario_cart.set_discount(5000)
        tx = ledger_service.checkout(scenario_cart, "cash", cashier.id)
        assert tx.total_cents == 0

        with pytest.raises(OverRefund):
            refund_service.refund(tx.id, 1, "Free item", cashier.id)

        assert _reload(tx.id).status == "completed"
        assert db.session.get(Product, widget.id).stock == 8

    def test_refundable_balance(self, sale, cashier):
        assert refund_service.refundable_balance(sale.id) == 2160
        refund_service.refund(sale.id, 160, "Partial", cashier.id)
        assert refund_service.refundable_balance(sale.id) == 2000

        with pytest.raises(NotFound):
            refund_service.refundable_balance(404)


class TestAuditTrail:
    def test_one_record_per_successful_refund(self, sale, cashier):
        attempts = [(300, True), (5000, False), (0, False), (300, True), (1560, True), (1, False)]
        for amount, should_succeed in attempts:
            if should_succeed:
                refund_service.refund(sale.id, amount, "Audit", cashier.id)
            else:
                with pytest.raises((OverRefund, InvalidAmount)):
                    refund_service.refund(sale.id, amount, "Audit", cashier.id)

        records = refund_service.list_refunds(sale.id)
        assert len(records) == 3
        assert sum(r.amount_cents for r in records) == _reload(sale.id).refund_amount_cents == 2160

    def test_stock_is_conserved_across_sale_and_full_refund(self, db_session, make_product, cashier):
        first = make_product(stock=7)
        second = make_product(stock=3)
        cart = Cart()
        cart.add_item(first, 4)
        cart.add_item(second, 3)
        tx = ledger_service.checkout(cart, "cash", cashier.id)

        assert db.session.get(Product, second.id).stock == 0
        refund_service.refund(tx.id, tx.total_cents, "Return all", cashier.id)

        assert db.session.get(Product, first.id).stock == 7
        assert db.session.get(Product, second.id).stock == 3

    def test_refund_records_are_immutable(self, sale, cashier):
        record = refund_service.refund(sale.id, 100, "Original", cashier.id)

        record.amount_cents = 1
        with pytest.raises(ImmutableRecordError):
            db.session.flush()
        db.session.rollback()

        assert db.session.get(RefundRecord, record.id).amount_cents == 100
