# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Access-Code Authentication Service

A single operator opens the shop system with a shared access code. Codes are
administered from the CLI and stored as bcrypt hashes; every login attempt
is appended to the login audit.

SECURITY NOTES:
- Codes hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Session tokens managed separately (see session_service.py)
- The audit keeps the code as typed, so it is readable only by operators
  with database access
"""

import re

import bcrypt
from flask import current_app

from ..errors import AuthenticationError, InvalidInput, NotFound
from ..extensions import db
from ..models import AccessCode, LoginEvent
from ..time_utils import utcnow
from . import session_service


MIN_CODE_LENGTH = 4
MAX_CODE_LENGTH = 128

LOGIN_SUCCESS = "success"
LOGIN_FAILURE = "failure"


def _bcrypt_rounds() -> int:
    return int(current_app.config.get("BCRYPT_ROUNDS", 12))


def hash_code(code: str) -> str:
    salt = bcrypt.gensalt(rounds=_bcrypt_rounds())
    hashed = bcrypt.hashpw(code.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_code(code: str, code_hash: str) -> bool:
    try:
        return bcrypt.checkpw(code.encode('utf-8'), code_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def add_access_code(label: str, code: str) -> AccessCode:
    """Create a new active access code."""
    label = (label or "").strip()
    code = (code or "").strip()

    if not label:
        raise InvalidInput("label is required")
    if len(code) < MIN_CODE_LENGTH:
        raise InvalidInput(f"Access code must be at least {MIN_CODE_LENGTH} characters long")
    if len(code) > MAX_CODE_LENGTH:
        raise InvalidInput(f"Access code cannot exceed {MAX_CODE_LENGTH} characters")

    if db.session.query(AccessCode).filter_by(label=label).first():
        raise InvalidInput(f"Access code label {label!r} already exists")

    access_code = AccessCode(label=label, code_hash=hash_code(code), is_active=True)
    db.session.add(access_code)
    db.session.commit()
    return access_code


def revoke_access_code(label: str) -> AccessCode:
    """Deactivate a code and end every session opened with it."""
    access_code = db.session.query(AccessCode).filter_by(label=label).first()
    if not access_code:
        raise NotFound(f"Access code {label!r} not found")

    access_code.is_active = False
    access_code.revoked_at = utcnow()
    db.session.commit()

    session_service.revoke_sessions_for_code(access_code.id, reason="Access code revoked")
    return access_code


def find_access_code(code: str) -> AccessCode | None:
    """Return the active access code matching the plaintext code, if any."""
    candidates = db.session.query(AccessCode).filter_by(is_active=True).all()
    for candidate in candidates:
        if verify_code(code, candidate.code_hash):
            return candidate
    return None


def _audit_id(timestamp: str, code: str) -> str:
    safe_timestamp = re.sub(r"[^a-zA-Z0-9]", "", timestamp)
    return f"{safe_timestamp}_{code}"


def record_login(
    code: str,
    status: str,
    access_code: AccessCode | None = None,
    ip_address: str | None = None,
) -> LoginEvent | None:
    """
    Append a login audit record.

    A failed audit write is logged and swallowed so it never blocks a login.
    """
    timestamp = utcnow().isoformat(timespec="milliseconds") + "Z"
    event = LoginEvent(
        id=_audit_id(timestamp, code)[:191],
        code=code,
        timestamp=timestamp,
        status=status,
        auth_doc_id=access_code.id if access_code else None,
        ip_address=ip_address,
    )
    try:
        db.session.add(event)
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to write login audit record")
        return None
    return event


def login(
    code: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[session_service.SessionContext, str]:
    """
    Validate an access code and open a session.

    Returns (session_context, plaintext_token).
    Raises InvalidInput for a blank code and AuthenticationError for an
    unknown or revoked code.
    """
    code = (code or "").strip()
    if not code:
        raise InvalidInput("Access code is required")
    if len(code) > MAX_CODE_LENGTH:
        raise AuthenticationError("Invalid access code")

    access_code = find_access_code(code)
    if not access_code:
        record_login(code, LOGIN_FAILURE, ip_address=ip_address)
        raise AuthenticationError("Invalid access code")

    session, token = session_service.create_session(
        access_code,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    record_login(code, LOGIN_SUCCESS, access_code=access_code, ip_address=ip_address)

    context = session_service.SessionContext(session=session, access_code=access_code, token=token)
    return context, token


def recent_logins(limit: int = 20) -> list[LoginEvent]:
    return (
        db.session.query(LoginEvent)
        .order_by(LoginEvent.timestamp.desc())
        .limit(limit)
        .all()
    )
