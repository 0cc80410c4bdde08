# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/bizops/routes/auth.py
"""
Authentication API routes

- Self-registration creates a "sales" user on the standard tier
- Login issues a session token in an HttpOnly cookie and in the body
- Logout revokes the presented token
- Upgrade switches the caller to the premium tier (no billing integration)
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..extensions import db
from ..models import User
from ..services import auth_service
from ..services import session_service
from ..validation import ConflictError, ValidationError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api")


def _set_session_cookie(response, token: str) -> None:
    response.set_cookie(
        current_app.config.get("SESSION_TOKEN_COOKIE", "bizops_session"),
        token,
        max_age=current_app.config.get("SESSION_ABSOLUTE_HOURS", 24) * 3600,
        httponly=True,
        samesite="Lax",
        secure=not current_app.config.get("TESTING", False) and not current_app.debug,
    )


@auth_bp.post("/register")
def register_route():
    """
    Register a new account.

    Role and tier are fixed server-side; any role/tier in the payload is
    ignored.
    """
    data = request.get_json(silent=True) or {}

    password = data.get("password")
    confirm = data.get("confirm_password")
    if confirm is not None and confirm != password:
        return jsonify({"error": "Passwords do not match", "field": "confirm_password"}), 400

    try:
        user = auth_service.create_user(
            username=data.get("username"),
            email=data.get("email"),
            password=password,
        )
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Registered user %s", user.username)
    return jsonify({"message": "Registration successful", "user": user.to_dict()}), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by username (or email) and password.

    Returns user info and the session token; the token is also set as an
    HttpOnly cookie.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not username or not password:
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            current_app.logger.info("Failed login for %s from %s", username, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        response = jsonify({
            "user": user.to_dict(),
            "token": token,
            "expires_at": session.to_dict()["expires_at"],
            "message": "Login successful",
        })
        _set_session_cookie(response, token)
        return response, 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.session_token)
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500

    response = jsonify({"message": "Logged out successfully"})
    response.delete_cookie(current_app.config.get("SESSION_TOKEN_COOKIE", "bizops_session"))
    return response, 200


@auth_bp.get("/me")
@require_auth
def me_route():
    user = db.session.get(User, g.principal.user_id)
    return jsonify({"user": user.to_dict()}), 200


@auth_bp.post("/upgrade-subscription")
@require_auth
def upgrade_subscription_route():
    try:
        user = auth_service.set_subscription_tier(g.principal.user_id, "premium")
    except Exception:
        current_app.logger.exception("Failed to upgrade subscription")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "Subscription upgraded to premium", "user": user.to_dict()}), 200
