# Overview: Flask API routes for cashier vouchers; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify

from ..errors import CashierError, ValidationError
from ..services import voucher_service
from ..decorators import require_actor
from ._helpers import error_response, expected_version, internal_error, json_body


vouchers_bp = Blueprint("cashier_vouchers", __name__, url_prefix="/api/cashier/vouchers")


@vouchers_bp.get("")
@vouchers_bp.get("/")
def list_active_route():
    try:
        return jsonify(voucher_service.list_active()), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to list vouchers")


@vouchers_bp.get("/stats")
def voucher_stats_route():
    try:
        return jsonify(voucher_service.voucher_stats()), 200
    except Exception:
        return internal_error("Failed to load voucher stats")


@vouchers_bp.get("/<int:voucher_id>")
def get_voucher_route(voucher_id: int):
    try:
        return jsonify({"voucher": voucher_service.get_voucher(voucher_id).to_dict()}), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to load voucher")


@vouchers_bp.patch("/<int:voucher_id>")
@require_actor
def update_voucher_route(voucher_id: int):
    try:
        data = json_body()
        voucher = voucher_service.update_voucher(
            voucher_id,
            changed_by=g.actor_id,
            reason=data.get("reason"),
            notes=data.get("notes"),
            amount=data.get("amount"),
            expected_version=expected_version(data),
        )
        return jsonify({"voucher": voucher.to_dict()}), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update voucher")


@vouchers_bp.patch("/<int:voucher_id>/justify")
@require_actor
def justify_voucher_route(voucher_id: int):
    """
    Request body:
    {
        "shift_id": 12,     // shift where the voucher is accounted for
        "notes": "..."      (optional)
    }
    """
    try:
        data = json_body()
        target = data.get("shift_id")
        if not isinstance(target, int) or isinstance(target, bool):
            raise ValidationError("shift_id is required")
        voucher = voucher_service.justify_voucher(
            voucher_id,
            target,
            justified_by=g.actor_id,
            notes=data.get("notes"),
            expected_version=expected_version(data),
        )
        return jsonify({"voucher": voucher.to_dict()}), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to justify voucher")


@vouchers_bp.patch("/<int:voucher_id>/cancel")
@require_actor
def cancel_voucher_route(voucher_id: int):
    try:
        data = json_body()
        voucher = voucher_service.cancel_voucher(
            voucher_id,
            cancelled_by=g.actor_id,
            reason=data.get("reason"),
            expected_version=expected_version(data),
        )
        return jsonify({"voucher": voucher.to_dict()}), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to cancel voucher")
