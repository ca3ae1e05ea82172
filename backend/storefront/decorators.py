# Overview: Request decorators for API routes (acting user and role checks).

from functools import wraps
from flask import request, jsonify, g

from .constants import ROLE_RIDER, ROLE_VENDOR_ADMIN
from .extensions import db
from .models import User

ACTOR_HEADER = "X-User-Id"


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_actor(f):
    """
    Resolve the acting user.

    Identity is established upstream (gateway / auth service) and forwarded
    in the X-User-Id header. Sets g.current_user.

    Returns 401 if the header is missing, malformed, or names an unknown or
    deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get(ACTOR_HEADER) or "").strip()
        if not raw:
            return jsonify({"error": "Authentication required"}), 401
        if not raw.isdigit():
            return jsonify({"error": "Invalid user id"}), 401

        user = db.session.get(User, int(raw))
        if user is None or not user.is_active:
            return jsonify({"error": "Unknown or inactive user"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Require the acting user to hold one of the given roles. Use after @require_actor."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def vendor_scope():
    """Vendor the acting user is confined to; None for roles that span vendors."""
    user = g.current_user
    return user.vendor_id if user.role == ROLE_VENDOR_ADMIN else None


def rider_scope():
    """Rider id when the acting user is a rider, else None."""
    user = g.current_user
    return user.id if user.role == ROLE_RIDER else None

