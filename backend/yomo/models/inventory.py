from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


# Closed set of garment categories; each one is a storage partition.
CATEGORIES = (
    "T-Shirt",
    "Sweatshirt",
    "Pants",
    "Dress",
    "Jacket",
    "Skirts",
    "Set",
)

DEFAULT_CATEGORY = "T-Shirt"


class StockItem(db.Model):
    """
    A sellable unit type.

    PARTITIONING: rows are located by (category, id). Changing the category of
    an item is a delete followed by a create, which assigns a new id.

    COUNTERS:
    - total: lifetime stock ever received
    - sold: cumulative units sold, net of refunds
    - quantity: available units (total - sold), stored denormalized so that
      readers of the raw table see the same figure the POS uses
    0 <= sold <= total is enforced by the writers, not by the table.

    BARCODE: 13 digits, "900" + 10 random digits. Unique by convention only.
    """
    __tablename__ = "stock_items"
    __table_args__ = (
        db.Index("ix_stock_items_category_id", "category", "id"),
        db.Index("ix_stock_items_barcode", "barcode"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    category = db.Column(db.String(32), nullable=False)
    barcode = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)

    total = db.Column(db.Integer, nullable=False, default=0)
    sold = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<StockItem id={self.id} category={self.category!r} barcode={self.barcode!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "barcode": self.barcode,
            "name": self.name,
            "price_cents": self.price_cents,
            "total": self.total,
            "sold": self.sold,
            "quantity": self.quantity,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
