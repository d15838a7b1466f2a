# Overview: Flask API routes for the cashier audit trail (read only).

from flask import Blueprint, jsonify, request

from ..errors import CashierError
from ..services import history_service, shift_service
from ._helpers import error_response, internal_error, query_int


history_bp = Blueprint("cashier_history", __name__, url_prefix="/api/cashier/history")


@history_bp.get("")
@history_bp.get("/")
def list_history_route():
    try:
        result = history_service.list_history(
            shift_id=query_int("shift_id"),
            action=request.args.get("action") or None,
            table_affected=request.args.get("table_affected") or None,
            changed_by=request.args.get("changed_by") or None,
            from_date=request.args.get("from_date") or None,
            to_date=request.args.get("to_date") or None,
            limit=query_int("limit", 100),
            offset=query_int("offset", 0),
            sort=request.args.get("sort") or "changed_at",
            order=request.args.get("order") or "DESC",
        )
        return jsonify(result), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to list history")


@history_bp.get("/stats")
def history_stats_route():
    try:
        stats = history_service.history_stats(
            from_date=request.args.get("from_date") or None,
            to_date=request.args.get("to_date") or None,
        )
        return jsonify({"data": stats}), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to load history stats")


@history_bp.get("/shift/<int:shift_id>")
def shift_history_route(shift_id: int):
    try:
        shift_service.get_shift(shift_id)
        return jsonify({"data": history_service.shift_history(shift_id)}), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to load shift history")
