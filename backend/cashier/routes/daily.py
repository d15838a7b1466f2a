# Overview: Flask API routes for cashier days; parses input and returns JSON responses.

"""
Cashier Day API Routes

DESIGN:
- Every date is explicit in the URL; there is no server-side "today"
- GET /daily/<date> answers 404 CASHIER_DAY_NOT_FOUND until the day is initialized
- Closing goes through the same checks as the can-close probe
"""

from flask import Blueprint, g, jsonify

from ..errors import CashierError
from ..services import daily_service
from ..decorators import require_actor
from ._helpers import error_response, expected_version, internal_error, json_body


daily_bp = Blueprint("cashier_daily", __name__, url_prefix="/api/cashier/daily")


@daily_bp.get("/<day>")
def get_daily_route(day: str):
    try:
        return jsonify(daily_service.get_daily_details(day)), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to load cashier day")


@daily_bp.post("/<day>/initialize")
@require_actor
def initialize_day_route(day: str):
    """
    Initialize a day with its full shift roster.

    Request body:
    {
        "primary_user_id": "u-1",
        "secondary_user_ids": ["u-2"],   (optional)
        "initial_fund": "200.00"         (optional)
    }
    """
    try:
        data = json_body()
        daily = daily_service.initialize_day(
            day,
            data.get("primary_user_id"),
            data.get("secondary_user_ids") or [],
            data.get("initial_fund"),
            opened_by=g.actor_id,
        )
        return jsonify(daily_service.get_daily_details(daily.date)), 201
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to initialize cashier day")


@daily_bp.get("/<day>/can-close")
def can_close_route(day: str):
    try:
        return jsonify(daily_service.can_close(day)), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to check cashier day")


@daily_bp.patch("/<day>/close")
@require_actor
def close_day_route(day: str):
    try:
        data = json_body()
        daily = daily_service.close_day(
            day,
            data.get("notes"),
            closed_by=g.actor_id,
            expected_version=expected_version(data),
        )
        return jsonify({"daily": daily.to_dict()}), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to close cashier day")


@daily_bp.patch("/<day>/reopen")
@require_actor
def reopen_day_route(day: str):
    try:
        data = json_body()
        daily = daily_service.reopen_day(
            day,
            data.get("reason"),
            reopened_by=g.actor_id,
            expected_version=expected_version(data),
        )
        return jsonify({"daily": daily.to_dict()}), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to reopen cashier day")


@daily_bp.post("/<day>/repair")
@require_actor
def repair_totals_route(day: str):
    try:
        return jsonify(daily_service.repair_totals(day, changed_by=g.actor_id)), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to repair cashier day totals")
