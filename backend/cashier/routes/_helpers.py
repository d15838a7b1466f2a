# Overview: Shared request parsing and error rendering for the cashier blueprints.

from __future__ import annotations

from flask import current_app, jsonify, request

from ..errors import CashierError, ValidationError
from ..extensions import db
from ..validation import optional_version


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def expected_version(data: dict | None = None):
    """If-Match header wins over a "version" body field."""
    header = request.headers.get("If-Match")
    if header:
        return optional_version(header, "If-Match")
    return optional_version((data or {}).get("version"))


def query_int(name: str, default: int | None = None) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def error_response(exc: CashierError):
    return jsonify(exc.to_dict()), exc.status_code


def internal_error(message: str):
    db.session.rollback()
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500
