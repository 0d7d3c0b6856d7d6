# Overview: Flask API routes for the access-code gate; parses input and returns JSON responses.

# backend/yomo/routes/auth.py
"""
Access-code login, logout and session check.

The token returned by login goes in the Authorization header
(Bearer <token>) of every other API call.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import ShopError
from ..responses import error_response
from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Check an access code and open a session.

    Every attempt, accepted or not, is written to the login audit.
    """
    data = request.get_json(silent=True) or {}
    code = data.get("code")
    if code is not None and not isinstance(code, str):
        return jsonify({"error": "code must be a string"}), 400

    try:
        context, token = auth_service.login(
            code,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except ShopError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to log in")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "token": token,
        "session": context.session.to_dict(),
        "access_code": context.access_code.to_dict(),
        "message": "Login successful",
    }), 200


@auth_bp.post("/logout")
def logout_route():
    """Revoke the session token and discard its cart."""
    try:
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authorization header required"}), 401

        token = auth_header.split(" ", 1)[1]

        revoked = session_service.revoke_session(token, reason="User logout")

        if not revoked:
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to log out")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/session")
@require_auth
def session_route():
    context = g.session_context
    return jsonify({
        "authenticated": True,
        "session": context.session.to_dict(),
        "access_code": context.access_code.to_dict(),
    }), 200
