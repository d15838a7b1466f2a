# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

ACTOR_HEADER = "X-User-Id"


def require_actor(f):
    """
    Require the caller's identity.

    Authentication happens upstream; this layer only receives the already
    authenticated user id and exposes it as g.actor_id for the services
    (opened_by / changed_by / created_by are always supplied, never derived).

    Returns 401 if the header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        actor = (request.headers.get(ACTOR_HEADER) or "").strip()
        if not actor:
            return jsonify({"error": "Authentication required", "code": "CASHIER_ACTOR_REQUIRED"}), 401
        g.actor_id = actor
        return f(*args, **kwargs)

    return decorated_function
