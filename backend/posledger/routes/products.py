# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import LedgerError
from ..services import catalog_service
from ..validation import ValidationError, ConflictError, coerce_int
from ..decorators import require_cashier


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    """
    Search the catalog.

    Query params: q (name contains), category, include_inactive=true
    """
    products = catalog_service.search_products(
        term=request.args.get("q"),
        category=request.args.get("category"),
        include_inactive=request.args.get("include_inactive", "").lower() == "true",
    )
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@products_bp.get("/categories")
def list_categories_route():
    return jsonify({"categories": catalog_service.list_categories()}), 200


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
        return jsonify({"product": product.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status


@products_bp.get("/barcode/<string:barcode>")
def get_product_by_barcode_route(barcode: str):
    try:
        product = catalog_service.find_by_barcode(barcode)
        return jsonify({"product": product.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status


@products_bp.post("")
@require_cashier
def create_product_route():
    """
    Add a product to the catalog.

    Request body:
    {
        "name": "Wireless Mouse",
        "price_cents": 2999,
        "cost_cents": 1500,         (optional)
        "tax_rate_bps": 1800,       (optional, 18%)
        "stock": 25,                (optional, logged as RECEIVE)
        "category": "Electronics",  (optional)
        "barcode": "123456789020"   (optional, unique)
    }
    """
    try:
        product = catalog_service.create_product(request.get_json(silent=True))
        return jsonify({"product": product.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.patch("/<int:product_id>")
@require_cashier
def update_product_route(product_id: int):
    try:
        product = catalog_service.update_product(product_id, request.get_json(silent=True))
        return jsonify({"product": product.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/stock")
@require_cashier
def change_stock_route(product_id: int):
    """
    Manual stock edit.

    Request body:
    {
        "type": "receive" | "adjust",
        "quantity": 10,   (receive: > 0, adjust: non-zero delta)
        "note": "Weekly delivery"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        change_type = (data.get("type") or "").lower()
        if "quantity" not in data:
            return jsonify({"error": "quantity required"}), 400
        quantity = coerce_int(data["quantity"], "quantity")

        if change_type == "receive":
            movement = catalog_service.receive_stock(product_id, quantity, g.cashier_id, data.get("note"))
        elif change_type == "adjust":
            movement = catalog_service.adjust_stock(product_id, quantity, g.cashier_id, data.get("note"))
        else:
            return jsonify({"error": "type must be receive or adjust"}), 400

        return jsonify({"movement": movement.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to change stock")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/movements")
def list_movements_route(product_id: int):
    try:
        catalog_service.get_product(product_id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status

    movements = catalog_service.list_stock_movements(product_id=product_id)
    return jsonify({"movements": [m.to_dict() for m in movements]}), 200
