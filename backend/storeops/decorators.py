# Overview: Request decorators for API routes (session identity and webhook secrets).

import hmac
from functools import wraps
from flask import current_app, request, jsonify, g

from .services import session_service
from .services.aggregation_errors import AuthError


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid session (WhoAmI) before running the route.

    Sets g.current_user to the authenticated User.

    Returns 401 {"error": "Unauthorized"} if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.current_user = current_user_or_raise()
        except AuthError:
            return jsonify({"error": "Unauthorized"}), 401

        return f(*args, **kwargs)

    return decorated_function


def current_user_or_raise():
    """WhoAmI for the current request; raises AuthError when it fails."""
    user, ok = session_service.who_am_i(bearer_token())
    if not ok:
        raise AuthError("Unauthorized")
    return user


def require_webhook_secret(config_key: str):
    """
    Require the JSON body's "secret" to equal app.config[config_key].

    Returns 500 if the secret is not configured, 401 if it is missing or
    wrong. The parsed body is left in g.webhook_payload.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            expected = current_app.config.get(config_key)
            if not expected:
                return jsonify({"error": f"{config_key} not set"}), 500

            payload = request.get_json(silent=True)
            if not isinstance(payload, dict):
                payload = {}

            provided = payload.get("secret")
            if not isinstance(provided, str) or not hmac.compare_digest(
                provided.encode("utf-8"), str(expected).encode("utf-8")
            ):
                return jsonify({"error": "Invalid or missing secret"}), 401

            g.webhook_payload = payload
            return f(*args, **kwargs)

        return decorated_function
    return decorator
