from functools import wraps
from flask import g, jsonify, request

from utils.audit import log_event

ADMIN = "ADMIN"
MODERATOR = "MODERATOR"
MEMBER = "MEMBER"

# back-office roles that may read the ledger
STAFF_ROLES = (ADMIN, MODERATOR)


def has_role(user, role_name: str) -> bool:
    if not user:
        return False
    return any(r.name == role_name for r in user.roles)


def require_roles(*role_names: str):
    """
    Usage: @require_roles("ADMIN")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            user_roles = {r.name for r in user.roles}
            if not user_roles.intersection(set(role_names)):
                log_event("ACCESS_DENIED", user_id=user.id, metadata={"path": request.path, "required": role_names})
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
