import pytest

from posledger.errors import AuthenticationFailed, EmptyCart, NoActiveCashier, NotFound, OutOfStock
from posledger.services import catalog_service
from posledger.services.terminal_service import Terminal, get_terminal


class TestCashier:
    def test_sign_in_and_out(self, cashier):
        terminal = Terminal()
        user = terminal.sign_in("cashier", "cashier123")

        assert terminal.require_cashier() == user.id

        terminal.sign_out()
        with pytest.raises(NoActiveCashier):
            terminal.require_cashier()

    @pytest.mark.parametrize("username,password", [("cashier", "wrong"), ("ghost", "cashier123"), ("", "")])
    def test_bad_credentials(self, cashier, username, password):
        terminal = Terminal()
        with pytest.raises(AuthenticationFailed):
            terminal.sign_in(username, password)
        assert terminal.cashier_id is None

    def test_sign_out_abandons_cart(self, cashier, widget):
        terminal = Terminal()
        terminal.sign_in("cashier", "cashier123")
        terminal.add_to_cart(widget.id, 2)

        terminal.sign_out()

        assert terminal.cart.is_empty


class TestCartOperations:
    def test_scan_and_add_merge(self, db_session, widget):
        terminal = Terminal()
        terminal.scan(widget.barcode)
        line = terminal.add_to_cart(widget.id, 2)

        assert line.quantity == 3
        assert len(terminal.cart.lines) == 1

    def test_inactive_product_cannot_be_added(self, db_session, widget):
        catalog_service.update_product(widget.id, {"is_active": False})
        with pytest.raises(NotFound):
            Terminal().add_to_cart(widget.id)

    def test_unknown_barcode(self, db_session):
        with pytest.raises(NotFound):
            Terminal().scan("000")

    def test_sold_out_product(self, make_product):
        product = make_product(stock=0)
        terminal = Terminal()
        with pytest.raises(OutOfStock):
            terminal.add_to_cart(product.id)
        assert terminal.cart.is_empty

    def test_set_customer_validates(self, customer):
        terminal = Terminal()
        with pytest.raises(NotFound):
            terminal.set_customer(customer.id + 100)

        terminal.set_customer(customer.id)
        assert terminal.cart.customer_id == customer.id

        terminal.set_customer(None)
        assert terminal.cart.customer_id is None


class TestSale:
    def test_checkout_clears_cart(self, cashier, customer, widget):
        terminal = Terminal()
        terminal.sign_in("cashier", "cashier123")
        terminal.add_to_cart(widget.id, 2)
        terminal.cart.set_discount(200)
        terminal.set_customer(customer.id)

        tx = terminal.checkout("card")

        assert tx.total_cents == 2160
        assert tx.customer_id == customer.id
        assert terminal.cart.is_empty
        assert terminal.cart.discount_cents == 0
        assert terminal.cart.customer_id is None

    def test_failed_checkout_keeps_cart(self, cashier, widget):
        terminal = Terminal()
        terminal.add_to_cart(widget.id, 2)

        with pytest.raises(NoActiveCashier):
            terminal.checkout("cash")

        assert terminal.cart.item_count == 2

    def test_empty_checkout(self, cashier):
        terminal = Terminal()
        terminal.sign_in("cashier", "cashier123")
        with pytest.raises(EmptyCart):
            terminal.checkout("cash")

    def test_refund_attributed_to_signed_in_cashier(self, cashier, widget):
        terminal = Terminal()
        terminal.sign_in("cashier", "cashier123")
        terminal.add_to_cart(widget.id)
        tx = terminal.checkout("cash")

        record = terminal.refund(tx.id, 500, "Dented box")

        assert record.refunded_by == cashier.id

    def test_refund_requires_cashier(self, db_session):
        with pytest.raises(NoActiveCashier):
            Terminal().refund(1, 100, "No one here")


def test_app_keeps_one_terminal(db_session):
    assert get_terminal() is get_terminal()
