# Overview: Flask API routes for cashier shifts; parses input and returns JSON responses.

"""
Cashier Shift API Routes

DESIGN:
- Shift lifecycle: open -> in_progress -> closed -> audited (reopen: closed -> in_progress)
- Denominations and payments are replaced as whole sets (PUT)
- If-Match carries the version the client last read; a stale one answers 409 retryable
"""

from flask import Blueprint, g, jsonify

from ..errors import CashierError, ValidationError
from ..services import shift_service, voucher_service
from ..decorators import require_actor
from ._helpers import error_response, expected_version, internal_error, json_body


shifts_bp = Blueprint("cashier_shifts", __name__, url_prefix="/api/cashier/shifts")


@shifts_bp.get("/<int:shift_id>")
def get_shift_route(shift_id: int):
    try:
        shift = shift_service.get_shift(shift_id)
        return jsonify(shift.to_dict(include_details=True)), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to load shift")


@shifts_bp.patch("/<int:shift_id>")
@require_actor
def update_shift_route(shift_id: int):
    """
    Update the shift's declared income.

    Request body:
    {
        "income": "500.00",
        "income_breakdown": {"accommodation": "400.00", "bar": "100.00"},   (optional)
        "comments": "..."                                                   (optional)
    }
    """
    try:
        data = json_body()
        if "income" not in data:
            raise ValidationError("income is required")
        shift = shift_service.update_income(
            shift_id,
            data.get("income"),
            data.get("income_breakdown"),
            changed_by=g.actor_id,
            notes=data.get("comments", data.get("notes")),
            expected_version=expected_version(data),
        )
        return jsonify(shift.to_dict(include_details=True)), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update shift")


@shifts_bp.put("/<int:shift_id>/denominations")
@require_actor
def set_denominations_route(shift_id: int):
    """
    Replace the cash count.

    Request body:
    {
        "denominations": [{"denomination": 50, "quantity": 3}, {"denomination": "0.20", "quantity": 4}]
    }
    """
    try:
        data = json_body()
        lines = data.get("denominations")
        if not isinstance(lines, list):
            raise ValidationError("denominations must be a list")
        shift = shift_service.set_denominations(
            shift_id,
            lines,
            changed_by=g.actor_id,
            expected_version=expected_version(data),
        )
        return jsonify(shift.to_dict(include_details=True)), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to save denominations")


@shifts_bp.put("/<int:shift_id>/payments")
@require_actor
def set_payments_route(shift_id: int):
    """
    Replace the non-cash payment breakdown.

    Request body:
    {
        "payments": [{"payment_method_id": 1, "amount": "120.50"}]
    }
    """
    try:
        data = json_body()
        lines = data.get("payments")
        if not isinstance(lines, list):
            raise ValidationError("payments must be a list")
        shift = shift_service.set_payments(
            shift_id,
            lines,
            changed_by=g.actor_id,
            expected_version=expected_version(data),
        )
        return jsonify(shift.to_dict(include_details=True)), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to save payments")


@shifts_bp.patch("/<int:shift_id>/close")
@require_actor
def close_shift_route(shift_id: int):
    try:
        data = json_body()
        shift = shift_service.close_shift(
            shift_id,
            closed_by=g.actor_id,
            notes=data.get("notes"),
            expected_version=expected_version(data),
        )
        return jsonify(shift.to_dict(include_details=True)), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to close shift")


@shifts_bp.patch("/<int:shift_id>/reopen")
@require_actor
def reopen_shift_route(shift_id: int):
    try:
        data = json_body()
        shift = shift_service.reopen_shift(
            shift_id,
            data.get("reason"),
            changed_by=g.actor_id,
            expected_version=expected_version(data),
        )
        return jsonify(shift.to_dict(include_details=True)), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to reopen shift")


@shifts_bp.patch("/<int:shift_id>/audit")
@require_actor
def audit_shift_route(shift_id: int):
    try:
        data = json_body()
        shift = shift_service.audit_shift(
            shift_id,
            audited_by=g.actor_id,
            notes=data.get("notes"),
            expected_version=expected_version(data),
        )
        return jsonify(shift.to_dict(include_details=True)), 200
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to audit shift")


@shifts_bp.post("/<int:shift_id>/vouchers")
@require_actor
def create_voucher_route(shift_id: int):
    """
    Draw a voucher against the shift.

    Request body:
    {
        "amount": "50.00",
        "reason": "Petty cash for flowers",
        "notes": "..."   (optional)
    }
    """
    try:
        data = json_body()
        voucher = voucher_service.create_voucher(
            shift_id,
            data.get("amount"),
            data.get("reason"),
            created_by=g.actor_id,
            notes=data.get("notes"),
            expected_version=expected_version(data),
        )
        return jsonify({"voucher": voucher.to_dict()}), 201
    except CashierError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create voucher")
