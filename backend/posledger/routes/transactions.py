# Overview: Flask API routes for checkout, transaction history and refunds.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import LedgerError
from ..services import ledger_service, refund_service
from ..time_utils import parse_window
from ..validation import ValidationError, coerce_int
from ..decorators import require_cashier


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("/checkout")
@require_cashier
def checkout_route():
    """
    Finalize the terminal's cart.

    Request body: {"payment_method": "card"}

    Returns:
        201: transaction for receipt rendering; the cart is now empty
        400: empty cart or bad payment method
        409: insufficient stock (nothing was written)
    """
    try:
        data = request.get_json(silent=True) or {}
        tx = g.terminal.checkout(data.get("payment_method"))
        return jsonify({"transaction": tx.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to check out")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("")
def list_transactions_route():
    """Query params: start, end (ISO-8601), status, customer_id, limit"""
    try:
        start, end = parse_window(request.args.get("start"), request.args.get("end"))
        customer_id = request.args.get("customer_id")
        limit = request.args.get("limit")
        limit = coerce_int(limit, "limit") if limit else None
        if limit is not None and limit <= 0:
            return jsonify({"error": "limit must be > 0"}), 400
        transactions = ledger_service.list_transactions(
            start=start,
            end=end,
            status=request.args.get("status"),
            customer_id=coerce_int(customer_id, "customer_id") if customer_id else None,
            limit=limit,
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "items": [tx.to_dict(include_lines=False) for tx in transactions],
        "count": len(transactions),
    }), 200


@transactions_bp.get("/<int:transaction_id>")
def get_transaction_route(transaction_id: int):
    try:
        tx = ledger_service.get_transaction(transaction_id)
        return jsonify({"transaction": tx.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status


@transactions_bp.post("/<int:transaction_id>/refunds")
@require_cashier
def refund_route(transaction_id: int):
    """
    Refund part or all of a transaction.

    Request body:
    {
        "amount_cents": 500,
        "reason": "Defective product"
    }

    Returns:
        201: refund record plus the updated transaction
        400: invalid amount / missing reason
        404: unknown transaction
        409: amount exceeds the refundable balance
    """
    try:
        data = request.get_json(silent=True) or {}
        reason = (data.get("reason") or "").strip()
        if "amount_cents" not in data:
            return jsonify({"error": "amount_cents required"}), 400
        if not reason:
            return jsonify({"error": "reason required"}), 400
        amount_cents = coerce_int(data["amount_cents"], "amount_cents")

        record = g.terminal.refund(transaction_id, amount_cents, reason)
        tx = ledger_service.get_transaction(transaction_id)
        return jsonify({"refund": record.to_dict(), "transaction": tx.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to refund transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/<int:transaction_id>/refunds")
def list_transaction_refunds_route(transaction_id: int):
    try:
        ledger_service.get_transaction(transaction_id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status

    refunds = refund_service.list_refunds(transaction_id=transaction_id)
    return jsonify({"refunds": [r.to_dict() for r in refunds]}), 200
