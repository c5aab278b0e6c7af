# Overview: Flask API routes for the customer directory.

from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError
from ..services import customer_service
from ..validation import ValidationError
from ..decorators import require_cashier


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers_route():
    customers = customer_service.search_customers(request.args.get("q"))
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)}), 200


@customers_bp.get("/<int:customer_id>")
def get_customer_route(customer_id: int):
    try:
        customer = customer_service.get_customer(customer_id)
        return jsonify({"customer": customer.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status


@customers_bp.post("")
@require_cashier
def create_customer_route():
    """
    Register a customer at the counter.

    Request body: {"name": "Jane Smith", "phone": "+1-555-0124", "email": "jane@example.com"}
    """
    try:
        data = request.get_json(silent=True) or {}
        customer = customer_service.create_customer(
            data.get("name"),
            phone=data.get("phone"),
            email=data.get("email"),
        )
        current_app.logger.info("Customer %s created", customer.id)
        return jsonify({"customer": customer.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500
