"""
Refund Processor

Applies partial and full refunds against a recorded Transaction.

STATE MACHINE (Transaction.status):
    completed --partial--> partially_refunded --partial--> partially_refunded
        |                          |
        +-------full---------------+--full--> refunded

RULES:
- The bound is cumulative: refund_amount + amount may never exceed total.
- A refund is "full" once refund_amount >= total.
- Only the latest refund's date, reason and actor are kept on the
  transaction; the cumulative amount is preserved. Every call is also
  recorded as its own RefundRecord.

STOCK RESTORATION POLICY:
Only the refund that makes the transaction fully refunded puts each line's
quantity back into catalog stock. Partial refunds restore nothing, not even
proportionally. This asymmetry is intended business behaviour; change it
only together with whoever owns returns policy.

A sale whose discount brought its total to zero has nothing to refund: any
positive amount is an OverRefund, so it never reaches `refunded` and its
stock is never restored through this path. Use a catalog adjustment instead.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..errors import InvalidAmount, NoActiveCashier, NotFound, OverRefund
from ..models import (
    Product,
    RefundRecord,
    Transaction,
    User,
    TRANSACTION_STATUS_PARTIALLY_REFUNDED,
    TRANSACTION_STATUS_REFUNDED,
)
from posledger.time_utils import utcnow
from .catalog_service import MOVEMENT_REFUND_RESTOCK, apply_stock_delta
from .concurrency import lock_for_update, run_with_retry, serialized
from .document_service import next_document_number

logger = logging.getLogger(__name__)


def _validate_amount(amount_cents) -> int:
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise InvalidAmount("Refund amount must be a whole number of cents", details={"amount": amount_cents})
    if amount_cents <= 0:
        raise InvalidAmount("Refund amount must be positive", details={"amount_cents": amount_cents})
    return amount_cents


def _lock_restock_products(tx: Transaction) -> list[tuple[Product, int]]:
    restock = []
    for line in tx.lines:
        product = lock_for_update(db.session.query(Product).filter_by(id=line.product_id)).first()
        if not product:
            raise NotFound(
                f"Product {line.product_id} no longer exists; cannot restock",
                details={"product_id": line.product_id},
            )
        restock.append((product, line.quantity))
    return restock


@serialized
def refund(transaction_id: int, amount_cents: int, reason: str | None, actor_id: int | None) -> RefundRecord:
    """
    Refund `amount_cents` of a transaction and append a RefundRecord.

    Raises NoActiveCashier, NotFound, InvalidAmount or OverRefund; a failed
    call writes nothing.
    """
    if not actor_id:
        raise NoActiveCashier("A signed-in user is required to refund")

    def _op() -> RefundRecord:
        actor = db.session.get(User, actor_id)
        if not actor or not actor.is_active:
            raise NoActiveCashier(f"User {actor_id} is not active", details={"actor_id": actor_id})

        tx = lock_for_update(db.session.query(Transaction).filter_by(id=transaction_id)).first()
        if not tx:
            raise NotFound(f"Transaction {transaction_id} not found", details={"transaction_id": transaction_id})

        amount = _validate_amount(amount_cents)

        new_refund_amount = tx.refund_amount_cents + amount
        if new_refund_amount > tx.total_cents:
            raise OverRefund(
                f"Refund exceeds refundable balance of transaction {tx.document_number}",
                details={
                    "requested_cents": amount,
                    "already_refunded_cents": tx.refund_amount_cents,
                    "refundable_cents": tx.refundable_cents,
                },
            )

        is_full_refund = new_refund_amount >= tx.total_cents
        restock = _lock_restock_products(tx) if is_full_refund else []

        now = utcnow()
        note = (reason or "").strip()

        tx.refund_amount_cents = new_refund_amount
        tx.status = TRANSACTION_STATUS_REFUNDED if is_full_refund else TRANSACTION_STATUS_PARTIALLY_REFUNDED
        tx.refund_date = now
        tx.refund_reason = note
        tx.refunded_by = actor_id

        record = RefundRecord(
            document_number=next_document_number("REFUND"),
            transaction_id=tx.id,
            created_at=now,
            amount_cents=amount,
            reason=note,
            refunded_by=actor_id,
            payment_method=tx.payment_method,
        )
        db.session.add(record)

        for product, quantity in restock:
            apply_stock_delta(
                product,
                quantity,
                MOVEMENT_REFUND_RESTOCK,
                transaction_id=tx.id,
                actor_user_id=actor_id,
                note=f"Full refund of {tx.document_number}",
                occurred_at=now,
            )

        db.session.commit()
        return record

    record = run_with_retry(_op)
    logger.info(
        "Refund %s on transaction %s: %s cents by user %s",
        record.document_number, transaction_id, record.amount_cents, actor_id,
    )
    return record


# =============================================================================
# QUERIES
# =============================================================================

def list_refunds(transaction_id: int | None = None) -> list[RefundRecord]:
    query = db.session.query(RefundRecord)
    if transaction_id is not None:
        query = query.filter_by(transaction_id=transaction_id)
    return query.order_by(RefundRecord.created_at.desc(), RefundRecord.id.desc()).all()


def refundable_balance(transaction_id: int) -> int:
    tx = db.session.get(Transaction, transaction_id)
    if not tx:
        raise NotFound(f"Transaction {transaction_id} not found", details={"transaction_id": transaction_id})
    return tx.refundable_cents
