# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


def _authenticate(f, allow_query_token: bool):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None and allow_query_token:
            token = request.args.get("token") or None

        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_auth(f):
    """
    Require an authenticated session.

    Sets g.session_context (SessionContext) for the wrapped route.

    Returns 401 if:
    - No Authorization header
    - Invalid, expired or idle token
    - The access code behind the session was revoked
    """
    return _authenticate(f, allow_query_token=False)


def require_auth_or_query_token(f):
    """
    Same as require_auth, but also accepts ?token=<session token>.

    For URLs the browser opens by itself (EventSource streams, print windows,
    PDF downloads), which cannot carry an Authorization header.
    """
    return _authenticate(f, allow_query_token=True)
