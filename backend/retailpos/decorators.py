# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User
from .services import token_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.token_claims: The decoded JWT claims

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid or expired token
    - User no longer exists or was deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # Extract token from Authorization header
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Access token required"}), 401

        token = auth_header.split(" ", 1)[1].strip()

        claims = token_service.decode_access_token(token)
        if not claims:
            return jsonify({"error": "Invalid or expired token"}), 401

        try:
            user_id = int(claims.get("sub"))
        except (TypeError, ValueError):
            return jsonify({"error": "Invalid or expired token"}), 401

        # Re-read the account so deactivation takes effect before token expiry
        user = db.session.get(User, user_id)
        if user is None or not user.is_active:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.token_claims = claims

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the authenticated user to hold one of the given roles.

    Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role not in roles:
                return jsonify({
                    "error": "Insufficient permissions",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
