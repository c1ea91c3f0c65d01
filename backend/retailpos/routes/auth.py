# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/retailpos/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on registration
- Accounts are created by administrators only
- Stateless bearer tokens (JWT) for the mobile client
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import token_service
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_role
from ..errors import internal_error


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and issue an access token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "Username and password are required"}), 400

        user = auth_service.authenticate(username, password)

        if not user:
            current_app.logger.info("Failed login for %r", username)
            return jsonify({"error": "Invalid credentials"}), 401

        token = token_service.create_access_token(user)

        return jsonify({
            "message": "Login successful",
            "token": token,
            "user": user.to_dict(),
        }), 200

    except Exception as e:
        return internal_error("Failed to login user", e)


@auth_bp.post("/register")
@require_auth
@require_role("admin")
def register_route():
    """
    Create a staff account.

    Requires: admin role. The first admin is created with `flask system init`.
    """
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.create_user(
            username=data.get("username"),
            password=data.get("password"),
            role=data.get("role") or "cashier",
            full_name=data.get("full_name"),
            email=data.get("email"),
        )
        return jsonify({"message": "User registered successfully", "user": user.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception as e:
        return internal_error("Failed to register user", e)


@auth_bp.get("/me")
@require_auth
def me_route():
    """Get the authenticated user."""
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.get("/users")
@require_auth
@require_role("admin", "manager")
def list_users_route():
    """
    List staff accounts.

    Requires: admin or manager role
    """
    users = auth_service.list_users()
    return jsonify([u.to_dict() for u in users]), 200
