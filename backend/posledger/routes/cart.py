# Overview: Flask API routes for the terminal's active cart.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import LedgerError
from ..validation import ValidationError, coerce_int
from ..decorators import with_terminal


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def _cart_payload() -> dict:
    return g.terminal.cart.to_dict(current_app.config.get("POS_CURRENCY_SYMBOL", "$"))


@cart_bp.get("")
@with_terminal
def get_cart_route():
    return jsonify({"cart": _cart_payload()}), 200


@cart_bp.post("/items")
@with_terminal
def add_item_route():
    """
    Add a product by id or barcode.

    Request body: {"product_id": 1, "quantity": 2} or {"barcode": "123456789012"}
    """
    try:
        data = request.get_json(silent=True) or {}
        quantity = coerce_int(data.get("quantity", 1), "quantity")
        if quantity <= 0:
            return jsonify({"error": "quantity must be > 0"}), 400

        if data.get("barcode"):
            line = g.terminal.scan(str(data["barcode"]), quantity)
        elif data.get("product_id") is not None:
            line = g.terminal.add_to_cart(coerce_int(data["product_id"], "product_id"), quantity)
        else:
            return jsonify({"error": "product_id or barcode required"}), 400

        return jsonify({"line": line.to_dict(), "cart": _cart_payload()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to add cart item")
        return jsonify({"error": "Internal server error"}), 500


@cart_bp.patch("/items/<int:product_id>")
@with_terminal
def set_quantity_route(product_id: int):
    """Request body: {"quantity": 3}; 0 or less removes the line."""
    try:
        data = request.get_json(silent=True) or {}
        if "quantity" not in data:
            return jsonify({"error": "quantity required"}), 400
        quantity = coerce_int(data["quantity"], "quantity")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    result = g.terminal.set_quantity(product_id, quantity)
    if not result.ok:
        return jsonify({**result.error.to_dict(), "cart": _cart_payload()}), result.error.http_status
    return jsonify({"cart": _cart_payload()}), 200


@cart_bp.delete("/items/<int:product_id>")
@with_terminal
def remove_item_route(product_id: int):
    result = g.terminal.cart.remove_item(product_id)
    if not result.ok:
        return jsonify({**result.error.to_dict(), "cart": _cart_payload()}), result.error.http_status
    return jsonify({"cart": _cart_payload()}), 200


@cart_bp.delete("")
@with_terminal
def clear_cart_route():
    g.terminal.cart.clear()
    return jsonify({"cart": _cart_payload()}), 200


@cart_bp.put("/discount")
@with_terminal
def set_discount_route():
    """Request body: {"discount_cents": 200}"""
    data = request.get_json(silent=True) or {}
    try:
        g.terminal.cart.set_discount(data.get("discount_cents"))
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify({"cart": _cart_payload()}), 200


@cart_bp.put("/customer")
@with_terminal
def set_customer_route():
    """Request body: {"customer_id": 3} or {"customer_id": null}"""
    try:
        data = request.get_json(silent=True) or {}
        customer_id = data.get("customer_id")
        if customer_id is not None:
            customer_id = coerce_int(customer_id, "customer_id")
        g.terminal.set_customer(customer_id)
        return jsonify({"cart": _cart_payload()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
