# Overview: Flask API routes for cashier reports; read only.

from flask import Blueprint, jsonify, request

from ..errors import CashierError, ValidationError
from ..services import reporting_service, voucher_service
from ._helpers import error_response, internal_error, query_int


reports_bp = Blueprint("cashier_reports", __name__, url_prefix="/api/cashier/reports")


@reports_bp.get("/monthly/<int:year>/<int:month>")
def monthly_report_route(year: int, month: int):
    try:
        return jsonify({"success": True, "data": reporting_service.monthly_report(year, month)}), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to build monthly report")


@reports_bp.get("/dashboard")
def dashboard_route():
    """GET /api/cashier/reports/dashboard?date=YYYY-MM-DD (date is required)."""
    try:
        day = request.args.get("date")
        if not day:
            raise ValidationError("date query parameter is required")
        return jsonify({"success": True, "data": reporting_service.dashboard_overview(day)}), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to build dashboard overview")


@reports_bp.get("/vouchers-history")
def vouchers_history_route():
    try:
        result = voucher_service.vouchers_history(
            status=request.args.get("status") or None,
            from_date=request.args.get("from_date") or None,
            to_date=request.args.get("to_date") or None,
            limit=query_int("limit", 50),
            offset=query_int("offset", 0),
        )
        return jsonify(result), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to load vouchers history")
