# Overview: Request authentication, role and subscription decorators for API routes.

from functools import wraps
from flask import current_app, g, jsonify, request

from .services import session_service


def _request_token() -> str | None:
    """Session token from the session cookie, or an Authorization: Bearer header."""
    cookie_name = current_app.config.get("SESSION_TOKEN_COOKIE", "bizops_session")
    token = request.cookies.get(cookie_name)
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def _is_authenticated() -> bool:
    return getattr(g, "principal", None) is not None


def require_auth(f):
    """
    Require a valid session.

    Sets g.principal (session_service.Principal) and g.session_token.
    Returns 401 if the token is missing, unknown, expired, idle too long
    or belongs to a deactivated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _request_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        principal = session_service.validate_session(token)
        if not principal:
            return jsonify({"error": "Authentication required"}), 401

        g.principal = principal
        g.session_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Require one of the given roles. Use below @require_auth."""
    allowed = set(roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.principal.role not in allowed:
                current_app.logger.warning(
                    "Role denied: user=%s role=%s path=%s",
                    g.principal.user_id, g.principal.role, request.path,
                )
                return jsonify({
                    "error": "Forbidden",
                    "required_roles": sorted(allowed),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_subscription(tier: str = "premium"):
    """
    Gate a route on the caller's subscription tier.

    Answers 402 rather than 403 so clients can offer the upgrade flow.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if g.principal.subscription_tier != tier:
                return jsonify({
                    "error": "Premium subscription required",
                    "required_tier": tier,
                }), 402

            return f(*args, **kwargs)

        return decorated_function
    return decorator
