# Overview: Normalizes camera detections and manual entry into barcode-observed events.

"""
Scan Input Adapter

A camera feed reports the same code many times per second while it stays in
view. A detection is accepted when it differs from the last accepted code,
or when the same code shows up again after the cooldown window. Manual
entry always produces exactly one event.

Scanner failures that mean "no camera for this session" (permission denied,
no device) become CameraUnavailable; anything else is only logged. Neither
touches the cart lines.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import CameraUnavailable, InvalidInput


SOURCE_CAMERA = "camera"
SOURCE_MANUAL = "manual"
SOURCES = (SOURCE_CAMERA, SOURCE_MANUAL)

DEFAULT_COOLDOWN_MS = 500
MAX_CODE_LENGTH = 64

CAMERA_UNAVAILABLE_ERRORS = {"NotAllowedError", "NotFoundError"}


@dataclass
class ScanDebouncer:
    cooldown_ms: int = DEFAULT_COOLDOWN_MS
    last_code: str | None = None
    last_at_ms: int | None = None

    def accept(self, code: str, now_ms: int) -> bool:
        """Record a camera detection and say whether it counts as a new scan."""
        if (
            code == self.last_code
            and self.last_at_ms is not None
            and now_ms - self.last_at_ms < self.cooldown_ms
        ):
            return False
        self.last_code = code
        self.last_at_ms = now_ms
        return True


def normalize_code(raw) -> str:
    if not isinstance(raw, str):
        raise InvalidInput("barcode must be a string")
    code = raw.strip()
    if not code:
        raise InvalidInput("barcode is required")
    if len(code) > MAX_CODE_LENGTH:
        raise InvalidInput(f"barcode cannot exceed {MAX_CODE_LENGTH} characters")
    return code


def observe(debouncer: ScanDebouncer, raw, source: str, now_ms: int) -> str | None:
    """
    Turn one raw detection or manual entry into a barcode event.

    Returns the normalized code, or None when a camera detection is a
    duplicate inside the cooldown window.
    """
    if source not in SOURCES:
        raise InvalidInput(f"source must be one of: {', '.join(SOURCES)}")

    code = normalize_code(raw)
    if source == SOURCE_MANUAL:
        return code
    return code if debouncer.accept(code, now_ms) else None


def classify_scanner_error(name: str | None) -> CameraUnavailable | None:
    """Map a browser scanner error name to CameraUnavailable when it is terminal."""
    if name in CAMERA_UNAVAILABLE_ERRORS:
        return CameraUnavailable(
            "Camera access denied or not found. Check permissions and device.",
            details={"name": name},
        )
    return None
