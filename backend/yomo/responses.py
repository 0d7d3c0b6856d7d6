# Overview: JSON error bodies shared by the API routes.

from flask import current_app, jsonify

from .errors import ShopError


def error_response(exc: ShopError, **extra):
    """
    Serialize a ShopError as {"error", "code", "details", "expires_in_ms"}.

    expires_in_ms tells the front end when to clear the message; it is the
    error's own lifetime or MESSAGE_TTL_SECONDS.
    """
    ttl_seconds = exc.ttl_seconds
    if ttl_seconds is None:
        ttl_seconds = current_app.config.get("MESSAGE_TTL_SECONDS", 2)

    body = exc.to_dict()
    body["expires_in_ms"] = ttl_seconds * 1000
    body.update(extra)
    return jsonify(body), exc.http_status
