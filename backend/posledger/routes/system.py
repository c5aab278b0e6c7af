# backend/posledger/routes/system.py
"""Health endpoint for the engine and its in-process database."""

import time
from flask import Blueprint, current_app, jsonify

from ..extensions import db
from ..models import Product, Transaction, RefundRecord
from ..services.terminal_service import get_terminal
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        details = {
            "products": db.session.query(Product).count(),
            "transactions": db.session.query(Transaction).count(),
            "refunds": db.session.query(RefundRecord).count(),
        }
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "details": details,
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    terminal = get_terminal()
    status_code = 200 if database["status"] == "healthy" else 503
    return jsonify({
        "status": database["status"],
        "time": to_utc_z(utcnow()),
        "database": database,
        "terminal": {
            "cashier_signed_in": terminal.cashier_id is not None,
            "cart_lines": len(terminal.cart.lines),
        },
    }), status_code
