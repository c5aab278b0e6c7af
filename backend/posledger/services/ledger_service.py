"""
Transaction Ledger

Turns a finalized cart into an immutable Transaction and decrements catalog
stock, as one unit of work.

DESIGN:
- Check-then-act: every precondition (lines, cashier, payment method,
  products, live stock) is verified before the first write.
- Lines are copied by value from the cart's product snapshots; the
  transaction never points at live catalog prices.
- Monetary totals are the cart's full-precision aggregates, each rounded to
  a whole cent once here. Line display values are rounded separately and are
  not summed.
- Any failure rolls the session back, so either the transaction and every
  stock decrement exist, or none of them do.
- Clearing the cart afterwards is the caller's job (see Terminal.checkout).
"""

from __future__ import annotations

import logging
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..errors import EmptyCart, InvalidPaymentMethod, NoActiveCashier, NotFound, OutOfStock
from ..models import (
    Customer,
    Product,
    Transaction,
    TransactionLine,
    User,
    TRANSACTION_STATUS_COMPLETED,
)
from posledger.time_utils import utcnow
from .cart_service import Cart
from .catalog_service import MOVEMENT_SALE, apply_stock_delta
from .concurrency import lock_for_update, run_with_retry, serialized
from .document_service import next_document_number
from .pricing_service import round_cents

logger = logging.getLogger(__name__)


def _resolve_payment_method(payment_method: str | None) -> str:
    method = (payment_method or "").strip().lower()
    if not method:
        raise InvalidPaymentMethod("Payment method required")
    allowed = current_app.config.get("POS_PAYMENT_METHODS") or ()
    if allowed and method not in allowed:
        raise InvalidPaymentMethod(
            f"Unsupported payment method: {method}",
            details={"allowed": list(allowed)},
        )
    return method


def _lock_products(cart: Cart) -> dict[int, Product]:
    products: dict[int, Product] = {}
    insufficient = []
    for line in cart.lines:
        product = lock_for_update(db.session.query(Product).filter_by(id=line.product.id)).first()
        if not product:
            raise NotFound(
                f"Product {line.product.id} no longer exists",
                details={"product_id": line.product.id},
            )
        if product.stock < line.quantity:
            insufficient.append({
                "product_id": product.id,
                "requested_quantity": line.quantity,
                "on_hand": product.stock,
            })
        products[product.id] = product

    if insufficient:
        raise OutOfStock("Insufficient stock to complete sale", details={"items": insufficient})
    return products


@serialized
def checkout(cart: Cart, payment_method: str, cashier_id: int | None) -> Transaction:
    """
    Record the cart as a completed Transaction.

    Raises EmptyCart, NoActiveCashier, InvalidPaymentMethod, NotFound
    (product or customer gone) or OutOfStock. None of them leave any trace.
    """
    if cart.is_empty:
        raise EmptyCart("Cannot check out an empty cart")
    if not cashier_id:
        raise NoActiveCashier("No cashier is signed in")
    method = _resolve_payment_method(payment_method)

    def _op() -> Transaction:
        cashier = db.session.get(User, cashier_id)
        if not cashier or not cashier.is_active:
            raise NoActiveCashier(f"Cashier {cashier_id} is not active", details={"cashier_id": cashier_id})

        if cart.customer_id is not None and not db.session.get(Customer, cart.customer_id):
            raise NotFound(f"Customer {cart.customer_id} not found", details={"customer_id": cart.customer_id})

        products = _lock_products(cart)

        now = utcnow()
        tx = Transaction(
            document_number=next_document_number("TRANSACTION"),
            created_at=now,
            subtotal_cents=round_cents(cart.subtotal),
            total_tax_cents=round_cents(cart.tax),
            discount_cents=cart.discount_cents,
            total_cents=round_cents(cart.grand_total),
            profit_cents=cart.profit_cents,
            payment_method=method,
            customer_id=cart.customer_id,
            cashier_id=cashier_id,
            status=TRANSACTION_STATUS_COMPLETED,
            refund_amount_cents=0,
        )
        db.session.add(tx)
        db.session.flush()

        for position, line in enumerate(cart.lines, start=1):
            snapshot = line.product
            rounded = line.pricing.rounded()
            db.session.add(TransactionLine(
                transaction_id=tx.id,
                position=position,
                product_id=snapshot.id,
                product_name=snapshot.name,
                category=snapshot.category,
                barcode=snapshot.barcode,
                quantity=line.quantity,
                unit_price_cents=snapshot.price_cents,
                unit_cost_cents=snapshot.cost_cents,
                tax_rate_bps=snapshot.tax_rate_bps,
                line_subtotal_cents=rounded["subtotal_cents"],
                line_tax_cents=rounded["tax_cents"],
                line_total_cents=rounded["total_with_tax_cents"],
            ))
            apply_stock_delta(
                products[snapshot.id],
                -line.quantity,
                MOVEMENT_SALE,
                transaction_id=tx.id,
                actor_user_id=cashier_id,
                note=f"Sale {tx.document_number}",
                occurred_at=now,
            )

        db.session.commit()
        return tx

    tx = run_with_retry(_op)
    logger.info(
        "Checkout %s: %s lines, total %s cents, cashier %s",
        tx.document_number, len(tx.lines), tx.total_cents, cashier_id,
    )
    return tx


# =============================================================================
# QUERIES
# =============================================================================

def get_transaction(transaction_id: int) -> Transaction:
    tx = db.session.get(Transaction, transaction_id)
    if not tx:
        raise NotFound(f"Transaction {transaction_id} not found", details={"transaction_id": transaction_id})
    return tx


def list_transactions(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    status: str | None = None,
    customer_id: int | None = None,
    cashier_id: int | None = None,
    limit: int | None = None,
) -> list[Transaction]:
    """Newest first. `start` and `end` are both inclusive."""
    query = db.session.query(Transaction)
    if start is not None:
        query = query.filter(Transaction.created_at >= start)
    if end is not None:
        query = query.filter(Transaction.created_at <= end)
    if status:
        query = query.filter(Transaction.status == status)
    if customer_id is not None:
        query = query.filter(Transaction.customer_id == customer_id)
    if cashier_id is not None:
        query = query.filter(Transaction.cashier_id == cashier_id)
    query = query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()
