# Overview: Flask API route for the refund audit log.

from flask import Blueprint, jsonify

from ..services import refund_service


refunds_bp = Blueprint("refunds", __name__, url_prefix="/api/refunds")


@refunds_bp.get("")
def list_refunds_route():
    refunds = refund_service.list_refunds()
    return jsonify({
        "refunds": [r.to_dict() for r in refunds],
        "count": len(refunds),
        "total_cents": sum(r.amount_cents for r in refunds),
    }), 200
