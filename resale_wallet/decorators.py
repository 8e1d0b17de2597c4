# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

USER_HEADER = "X-User-Id"


def require_user(f):
    """
    Require a user id from the upstream auth layer.

    Authentication happens in front of this service; the authenticated
    user's stable id arrives in the X-User-Id header. Sets g.user_id.

    SECURITY: Returns 401 if the header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = (request.headers.get(USER_HEADER) or "").strip()
        if not user_id:
            return jsonify({"error": "Authentication required"}), 401
        if len(user_id) > 64:
            return jsonify({"error": "Invalid user id"}), 401

        g.user_id = user_id
        return f(*args, **kwargs)

    return decorated_function
