# Overview: Flask API routes for sales reporting.

from flask import Blueprint, request, jsonify

from ..services import reporting_service
from ..time_utils import parse_window


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
def sales_summary_route():
    """Query params: start, end (ISO-8601, inclusive)"""
    try:
        start, end = parse_window(request.args.get("start"), request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601 dates or datetimes, start before end"}), 400

    return jsonify({"summary": reporting_service.sales_summary(start=start, end=end)}), 200
