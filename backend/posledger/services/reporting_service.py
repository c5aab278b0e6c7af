# Overview: Read-only sales reporting over recorded transactions and refund records.

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func

from posledger.extensions import db
from posledger.models import (
    RefundRecord,
    Transaction,
    TransactionLine,
    TRANSACTION_STATUS_PARTIALLY_REFUNDED,
    TRANSACTION_STATUS_REFUNDED,
)
from posledger.time_utils import to_utc_z
from .pricing_service import round_cents


def _in_range(query, column, start: datetime | None, end: datetime | None):
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column <= end)
    return query


def sales_summary(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    top_n: int = 5,
) -> dict:
    """
    Headline figures for transactions created in [start, end].

    Revenue, tax and profit are the recorded transaction values; refunds are
    the refund records written in the same window.
    """
    tx_query = _in_range(db.session.query(Transaction), Transaction.created_at, start, end)

    totals = tx_query.with_entities(
        func.count(Transaction.id),
        func.coalesce(func.sum(Transaction.total_cents), 0),
        func.coalesce(func.sum(Transaction.total_tax_cents), 0),
        func.coalesce(func.sum(Transaction.profit_cents), 0),
        func.count(func.distinct(Transaction.customer_id)),
    ).one()
    order_count, revenue, tax, profit, unique_customers = totals

    refunded_count = tx_query.filter(
        Transaction.status.in_([TRANSACTION_STATUS_REFUNDED, TRANSACTION_STATUS_PARTIALLY_REFUNDED])
    ).count()

    line_query = _in_range(
        db.session.query(TransactionLine).join(Transaction),
        Transaction.created_at, start, end,
    )
    cost = line_query.with_entities(
        func.coalesce(func.sum(TransactionLine.unit_cost_cents * TransactionLine.quantity), 0)
    ).scalar()

    refunds = _in_range(
        db.session.query(func.coalesce(func.sum(RefundRecord.amount_cents), 0)),
        RefundRecord.created_at, start, end,
    ).scalar()

    top_rows = (
        line_query.with_entities(
            TransactionLine.product_id,
            func.max(TransactionLine.product_name),
            func.sum(TransactionLine.quantity).label("sold"),
            func.sum(TransactionLine.line_subtotal_cents),
        )
        .group_by(TransactionLine.product_id)
        .order_by(func.sum(TransactionLine.quantity).desc(), TransactionLine.product_id.asc())
        .limit(top_n)
        .all()
    )

    by_method = (
        tx_query.with_entities(
            Transaction.payment_method,
            func.count(Transaction.id),
            func.sum(Transaction.total_cents),
        )
        .group_by(Transaction.payment_method)
        .order_by(Transaction.payment_method.asc())
        .all()
    )

    average = round_cents(Decimal(revenue) / order_count) if order_count else 0
    margin = Decimal(0)
    if revenue:
        margin = (Decimal(profit) * 100 / Decimal(revenue)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)

    return {
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "order_count": order_count,
        "revenue_cents": revenue,
        "tax_cents": tax,
        "profit_cents": profit,
        "cost_cents": cost,
        "refunds_cents": refunds,
        "refunded_transactions": refunded_count,
        "average_order_value_cents": average,
        "unique_customers": unique_customers,
        "profit_margin_pct": str(margin),
        "top_products": [
            {
                "product_id": product_id,
                "name": name,
                "quantity_sold": sold,
                "revenue_cents": line_revenue,
            }
            for product_id, name, sold, line_revenue in top_rows
        ],
        "payment_methods": [
            {"payment_method": method, "count": count, "total_cents": total}
            for method, count, total in by_method
        ],
    }
