from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class AccessCode(db.Model):
    """
    Shared access code that opens the shop system.

    Codes are stored as bcrypt hashes. The label identifies the code in the
    CLI and in the login audit without exposing it.
    """
    __tablename__ = "access_codes"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    label = db.Column(db.String(64), nullable=False, unique=True)
    code_hash = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<AccessCode id={self.id} label={self.label!r} active={self.is_active}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "revoked_at": to_utc_z(self.revoked_at),
        }


class LoginEvent(db.Model):
    """
    Append-only login audit.

    id is "<timestamp with non-alphanumerics removed>_<code>", timestamp is
    the ISO-8601 string of the attempt. auth_doc_id points at the matching
    AccessCode on success.
    """
    __tablename__ = "login_events"

    id = db.Column(db.String(191), primary_key=True)
    code = db.Column(db.String(128), nullable=False)
    timestamp = db.Column(db.String(40), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False)
    auth_doc_id = db.Column(db.Integer, db.ForeignKey("access_codes.id"), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "timestamp": self.timestamp,
            "status": self.status,
            "auth_doc_id": self.auth_doc_id,
            "ip_address": self.ip_address,
        }


class SessionToken(db.Model):
    """
    Server-side session opened by a successful access-code login.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - 24-hour absolute timeout
    - 2-hour idle timeout
    - Revocable on logout
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    access_code_id = db.Column(db.Integer, db.ForeignKey("access_codes.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)

    access_code = db.relationship("AccessCode", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "access_code_id": self.access_code_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
