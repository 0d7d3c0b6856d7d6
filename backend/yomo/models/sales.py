from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Invoice(db.Model):
    """
    Immutable record of a completed sale or refund.

    invoice_number is "INV-<unix ms>" for sales and "REF-<unix ms>" for refunds.
    It is not declared unique: two checkouts in the same millisecond from
    different sessions would produce the same number and both are kept.

    subtotal_cents is always the magnitude; is_refund carries the sign.
    items is a list of {name, price_cents, quantity, total_cents}.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.Index("ix_invoices_timestamp", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(32), nullable=False, index=True)
    date = db.Column(db.String(32), nullable=False)
    timestamp = db.Column(db.BigInteger, nullable=False)
    items = db.Column(db.JSON, nullable=False, default=list)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    is_refund = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} number={self.invoice_number!r} refund={self.is_refund}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "date": self.date,
            "timestamp": self.timestamp,
            "items": list(self.items or []),
            "subtotal_cents": self.subtotal_cents,
            "is_refund": self.is_refund,
            "created_at": to_utc_z(self.created_at),
        }


class PosCart(db.Model):
    """
    Persisted POS cart, one per session.

    The cart is client-local state; it lives in the database only so that any
    worker serving the session sees the same cart. lines is a list of
    {item_id, category, barcode, name, price_cents, cart_quantity}.
    """
    __tablename__ = "pos_carts"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(
        db.Integer,
        db.ForeignKey("session_tokens.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    mode = db.Column(db.String(16), nullable=False, default="sale")
    lines = db.Column(db.JSON, nullable=False, default=list)

    checkout_status = db.Column(db.String(16), nullable=False, default="idle")
    status_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)
    status_message = db.Column(db.String(255), nullable=True)

    # Scan debouncer state
    last_scan_code = db.Column(db.String(64), nullable=True)
    last_scan_at_ms = db.Column(db.BigInteger, nullable=True)

    # Set by a terminal scanner error; cleared with the session
    camera_unavailable = db.Column(db.Boolean, nullable=False, default=False)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    session = db.relationship("SessionToken", backref=db.backref("cart", uselist=False, passive_deletes=True))

    def __repr__(self) -> str:
        return f"<PosCart id={self.id} session_id={self.session_id} mode={self.mode!r}>"
