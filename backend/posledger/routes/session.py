# Overview: Flask API routes for signing a cashier in and out of the terminal.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..errors import LedgerError
from ..models import User
from ..decorators import with_terminal


session_bp = Blueprint("session", __name__, url_prefix="/api/session")


@session_bp.post("/sign-in")
@with_terminal
def sign_in_route():
    """
    Sign a cashier in. Replaces any previously signed-in cashier; the cart is
    kept.

    Request body: {"username": "cashier", "password": "..."}
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400

        user = g.terminal.sign_in(username, password)
        current_app.logger.info("Cashier %s signed in", user.username)
        return jsonify({"user": user.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to sign in")
        return jsonify({"error": "Internal server error"}), 500


@session_bp.post("/sign-out")
@with_terminal
def sign_out_route():
    """Sign out and abandon the current cart."""
    g.terminal.sign_out()
    return jsonify({"signed_out": True}), 200


@session_bp.get("")
@with_terminal
def current_session_route():
    cashier_id = g.terminal.cashier_id
    user = db.session.get(User, cashier_id) if cashier_id else None
    return jsonify({"user": user.to_dict() if user else None}), 200
