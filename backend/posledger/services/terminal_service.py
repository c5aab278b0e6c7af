"""
Terminal context: the one active cart and the signed-in cashier.

Passed explicitly to whatever drives the engine. The Flask app keeps a single
Terminal in `app.extensions` (one in-process actor per app).
"""

from __future__ import annotations

from flask import current_app

from ..errors import NoActiveCashier, NotFound, Result
from ..models import RefundRecord, Transaction, User
from . import auth_service, catalog_service, customer_service, ledger_service, refund_service
from .cart_service import Cart, CartLine

EXTENSION_KEY = "posledger.terminal"


class Terminal:
    def __init__(self):
        self.cart = Cart()
        self.cashier_id: int | None = None

    # ------------------------------------------------------------------
    # Cashier
    # ------------------------------------------------------------------

    def sign_in(self, username: str, password: str) -> User:
        user = auth_service.authenticate(username, password)
        self.cashier_id = user.id
        return user

    def sign_out(self) -> None:
        """Drop the cashier and abandon the cart."""
        self.cashier_id = None
        self.cart.clear()

    def require_cashier(self) -> int:
        if not self.cashier_id:
            raise NoActiveCashier("No cashier is signed in")
        return self.cashier_id

    # ------------------------------------------------------------------
    # Cart
    # ------------------------------------------------------------------

    def add_to_cart(self, product_id: int, quantity: int = 1) -> CartLine:
        product = catalog_service.get_product(product_id)
        if not product.is_active:
            raise NotFound(f"Product {product_id} is not for sale", details={"product_id": product_id})
        return self.cart.add_item(product, quantity)

    def scan(self, barcode: str, quantity: int = 1) -> CartLine:
        product = catalog_service.find_by_barcode(barcode)
        return self.cart.add_item(product, quantity)

    def set_quantity(self, product_id: int, quantity: int) -> Result:
        return self.cart.set_quantity(product_id, quantity)

    def set_customer(self, customer_id: int | None) -> None:
        if customer_id is not None:
            customer_service.get_customer(customer_id)
        self.cart.set_customer(customer_id)

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def checkout(self, payment_method: str) -> Transaction:
        """Record the sale, then reset lines, discount and customer together."""
        tx = ledger_service.checkout(self.cart, payment_method, self.cashier_id)
        self.cart.clear()
        return tx

    def refund(self, transaction_id: int, amount_cents: int, reason: str | None) -> RefundRecord:
        return refund_service.refund(transaction_id, amount_cents, reason, self.cashier_id)


def get_terminal() -> Terminal:
    terminal = current_app.extensions.get(EXTENSION_KEY)
    if terminal is None:
        terminal = current_app.extensions[EXTENSION_KEY] = Terminal()
    return terminal
