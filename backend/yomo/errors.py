"""
Error taxonomy shared by the services and routes.

Every error carries the message shown to the operator. Routes convert them
into JSON bodies with an expiry hint so the front end can auto-dismiss the
message; none of them is retried automatically.
"""

from __future__ import annotations


class ShopError(Exception):
    """Base class for user-facing shop errors."""

    code = "ERROR"
    http_status = 400
    # None means "use the configured default message lifetime"
    ttl_seconds: int | None = None

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class NotFound(ShopError):
    """Scanned or looked-up code has no matching record."""
    code = "NOT_FOUND"
    http_status = 404


class OutOfBounds(ShopError):
    """Requested quantity exceeds the sale or refund limit."""
    code = "OUT_OF_BOUNDS"
    http_status = 409


class EmptyCart(ShopError):
    code = "EMPTY_CART"
    http_status = 400


class InsufficientStock(ShopError):
    code = "INSUFFICIENT_STOCK"
    http_status = 409


class InsufficientSold(ShopError):
    code = "INSUFFICIENT_SOLD"
    http_status = 409


class CheckoutInProgress(ShopError):
    code = "CHECKOUT_IN_PROGRESS"
    http_status = 409


class CheckoutFailed(ShopError):
    """Aggregate checkout failure; the cart is retained."""
    code = "CHECKOUT_FAILED"
    http_status = 502
    ttl_seconds = 5


class CameraUnavailable(ShopError):
    """
    Camera missing or permission denied.

    Recorded on the session's cart; camera scans are refused until logout
    while manual entry keeps working.
    """
    code = "CAMERA_UNAVAILABLE"
    http_status = 409
    ttl_seconds = 5


class PersistenceError(ShopError):
    """Backing store read/write failure or a malformed stored record."""
    code = "PERSISTENCE_ERROR"
    http_status = 500
    ttl_seconds = 5


class InvalidInput(ShopError):
    code = "INVALID_INPUT"
    http_status = 400


class AuthenticationError(ShopError):
    code = "AUTHENTICATION_FAILED"
    http_status = 401
