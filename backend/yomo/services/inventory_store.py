# Overview: Inventory store adapter; live snapshot of stock items and the only writer of stock rows.

"""
Inventory Store Adapter

Keeps a denormalized view of every stock item across the category
partitions and pushes create/update/delete mutations to the backing store.

SNAPSHOTS: readers get an immutable InventorySnapshot. Subscribers receive a
full snapshot on subscription and after every mutation made through this
adapter; there are no deltas. Rows are decoded strictly at this boundary:
a malformed stored record raises PersistenceError instead of leaking
missing or negative counters into the POS.

PARTITIONING: an item is addressed by (category, id). A category change is
a delete followed by a create and the item gets a new id.

CONCURRENCY: last write wins. Stock writes are computed from the snapshot
the caller holds, so a sale made on another device between the read and the
write is overwritten. This is accepted; there are no version checks.
"""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass
from typing import Callable, Iterator, Mapping

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import InsufficientSold, InsufficientStock, InvalidInput, NotFound, PersistenceError
from ..extensions import db
from ..models import StockItem, CATEGORIES, DEFAULT_CATEGORY
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_stock_item


BARCODE_PREFIX = "900"
BARCODE_RANDOM_DIGITS = 10

CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"barcode", "name", "price_cents", "category", "total"},
    required_on_create={"name", "price_cents", "total"},
)

UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price_cents", "category", "total", "sold"},
)


@dataclass(frozen=True)
class StockItemView:
    """Decoded, read-only stock item."""
    id: int
    category: str
    barcode: str
    name: str
    price_cents: int
    total: int
    sold: int

    @property
    def available(self) -> int:
        return self.total - self.sold

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "barcode": self.barcode,
            "name": self.name,
            "price_cents": self.price_cents,
            "total": self.total,
            "sold": self.sold,
            "available": self.available,
        }


@dataclass(frozen=True)
class InventorySnapshot:
    items: tuple[StockItemView, ...] = ()

    def __iter__(self) -> Iterator[StockItemView]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def get(self, item_id: int) -> StockItemView | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def by_barcode(self, barcode: str) -> StockItemView | None:
        for item in self.items:
            if item.barcode == barcode:
                return item
        return None

    def to_list(self) -> list[dict]:
        return [item.to_dict() for item in self.items]


def _require_int(record: Mapping, key: str) -> int:
    value = record.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise PersistenceError(
            f"Stored item has invalid {key}",
            details={"item_id": record.get("id"), "field": key},
        )
    return value


def _require_str(record: Mapping, key: str) -> str:
    value = record.get(key)
    if not isinstance(value, str) or not value.strip():
        raise PersistenceError(
            f"Stored item has invalid {key}",
            details={"item_id": record.get("id"), "field": key},
        )
    return value


def decode_item(record: Mapping) -> StockItemView:
    """Decode a raw stored record into a StockItemView or raise PersistenceError."""
    item_id = _require_int(record, "id")
    category = _require_str(record, "category")
    if category not in CATEGORIES:
        raise PersistenceError(
            f"Stored item {item_id} has unknown category {category!r}",
            details={"item_id": item_id, "field": "category"},
        )

    price_cents = _require_int(record, "price_cents")
    total = _require_int(record, "total")
    sold = _require_int(record, "sold")

    if price_cents < 0 or total < 0 or sold < 0:
        raise PersistenceError(
            f"Stored item {item_id} has negative values",
            details={"item_id": item_id},
        )
    if sold > total:
        raise PersistenceError(
            f"Stored item {item_id} has sold greater than total",
            details={"item_id": item_id, "total": total, "sold": sold},
        )

    return StockItemView(
        id=item_id,
        category=category,
        barcode=_require_str(record, "barcode"),
        name=_require_str(record, "name"),
        price_cents=price_cents,
        total=total,
        sold=sold,
    )


def generate_barcode() -> str:
    """13-digit barcode: "900" followed by 10 random digits."""
    unique_part = secrets.randbelow(10 ** BARCODE_RANDOM_DIGITS)
    return f"{BARCODE_PREFIX}{unique_part:0{BARCODE_RANDOM_DIGITS}d}"


SnapshotCallback = Callable[[InventorySnapshot], None]
ErrorCallback = Callable[[PersistenceError], None]


class InventoryStore:
    """
    Adapter over the stock_items table.

    Registered on the app like the other extensions; subscribers are kept per
    application so test apps do not leak listeners into each other.
    """

    EXTENSION_KEY = "yomo.inventory_store"

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        app.extensions[self.EXTENSION_KEY] = {
            "subscribers": [],
            "lock": threading.Lock(),
        }

    def _state(self) -> dict:
        return current_app.extensions[self.EXTENSION_KEY]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> InventorySnapshot:
        try:
            rows = db.session.query(StockItem).order_by(StockItem.id.asc()).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError("Failed to load inventory") from exc
        return InventorySnapshot(items=tuple(decode_item(self._record(row)) for row in rows))

    def search(self, term: str | None) -> list[StockItemView]:
        """Case-insensitive match on name, barcode or category."""
        items = list(self.snapshot())
        term = (term or "").strip().lower()
        if not term:
            return items
        return [
            item for item in items
            if term in item.name.lower()
            or term in item.barcode
            or term in item.category.lower()
        ]

    @staticmethod
    def _record(row: StockItem) -> dict:
        return {
            "id": row.id,
            "category": row.category,
            "barcode": row.barcode,
            "name": row.name,
            "price_cents": row.price_cents,
            "total": row.total,
            "sold": row.sold,
        }

    def _locate(self, item_id: int, category: str) -> StockItem:
        row = db.session.query(StockItem).filter_by(id=item_id, category=category).first()
        if not row:
            raise NotFound(f"Item {item_id} not found in {category}")
        return row

    def get(self, item_id: int, category: str) -> StockItemView:
        return decode_item(self._record(self._locate(item_id, category)))

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, on_change: SnapshotCallback, on_error: ErrorCallback | None = None) -> Callable[[], None]:
        """
        Register a listener and deliver the current snapshot to it.

        Returns a callable that removes the listener.
        """
        state = self._state()
        entry = (on_change, on_error)
        with state["lock"]:
            state["subscribers"].append(entry)

        self._deliver([entry])

        def unsubscribe() -> None:
            with state["lock"]:
                if entry in state["subscribers"]:
                    state["subscribers"].remove(entry)

        return unsubscribe

    def publish(self) -> None:
        """Push the current full snapshot to every subscriber."""
        state = self._state()
        with state["lock"]:
            entries = list(state["subscribers"])
        if entries:
            self._deliver(entries)

    def _deliver(self, entries) -> None:
        try:
            snapshot = self.snapshot()
        except PersistenceError as exc:
            current_app.logger.warning("Inventory snapshot failed: %s", exc.message)
            for _, on_error in entries:
                if on_error is not None:
                    on_error(exc)
            return

        for on_change, _ in entries:
            try:
                on_change(snapshot)
            except Exception:
                current_app.logger.exception("Inventory subscriber failed")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _commit(self, message: str) -> None:
        try:
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError(message) from exc

    def create(self, fields: dict) -> StockItemView:
        """
        Create a stock item. sold starts at 0 and quantity equals total.
        A barcode is generated when none is supplied.
        """
        patch = validate_payload(model=StockItem, payload=fields, policy=CREATE_POLICY, partial=False)
        patch.setdefault("category", DEFAULT_CATEGORY)
        enforce_rules_stock_item(patch, creating=True)

        row = StockItem(
            category=patch["category"],
            barcode=patch.get("barcode") or generate_barcode(),
            name=patch["name"],
            price_cents=patch["price_cents"],
            total=patch["total"],
            sold=0,
            quantity=patch["total"],
        )
        db.session.add(row)
        self._commit("Failed to add item to inventory.")

        self.publish()
        return decode_item(self._record(row))

    def update(self, item_id: int, category: str, patch: dict) -> StockItemView:
        """
        Edit an item located in its category partition.

        A category change deletes the row and recreates it under the new
        category with a new id; the barcode is kept.
        """
        clean = validate_payload(model=StockItem, payload=patch, policy=UPDATE_POLICY, partial=True)
        enforce_rules_stock_item(clean, creating=False)

        row = self._locate(item_id, category)

        name = clean.get("name", row.name)
        price_cents = clean.get("price_cents", row.price_cents)
        total = clean.get("total", row.total)
        sold = clean.get("sold", row.sold)
        new_category = clean.get("category", row.category)

        if total < sold:
            raise InvalidInput(
                "Invalid data for update. Total must be greater than or equal to Sold.",
                details={"total": total, "sold": sold},
            )

        if new_category != row.category:
            moved = StockItem(
                category=new_category,
                barcode=row.barcode,
                name=name,
                price_cents=price_cents,
                total=total,
                sold=sold,
                quantity=total - sold,
            )
            db.session.delete(row)
            db.session.add(moved)
            row = moved
        else:
            row.name = name
            row.price_cents = price_cents
            row.total = total
            row.sold = sold
            row.quantity = total - sold

        self._commit("Failed to update item.")

        self.publish()
        return decode_item(self._record(row))

    def delete(self, item_id: int, category: str) -> None:
        row = self._locate(item_id, category)
        db.session.delete(row)
        self._commit("Failed to delete item.")
        self.publish()

    def apply_stock_delta(self, item: StockItemView, quantity: int, *, refund: bool, notify: bool = True) -> StockItemView:
        """
        Apply one checkout line to the stock counters.

        Validation uses the snapshot item the caller holds: a sale needs
        available >= quantity, a refund needs sold >= quantity. The write sets
        sold and quantity = total - sold.
        """
        if quantity <= 0:
            raise InvalidInput("quantity must be greater than 0")

        if refund:
            if quantity > item.sold:
                raise InsufficientSold(
                    f"Cannot refund {quantity} of {item.name}. Only {item.sold} were sold.",
                    details={"item_id": item.id, "requested": quantity, "sold": item.sold},
                )
            new_sold = item.sold - quantity
        else:
            if item.available < quantity:
                raise InsufficientStock(
                    f"Insufficient stock for {item.name}.",
                    details={"item_id": item.id, "requested": quantity, "available": item.available},
                )
            new_sold = item.sold + quantity

        new_available = item.total - new_sold

        try:
            row = db.session.query(StockItem).filter_by(id=item.id, category=item.category).first()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError(f"Failed to update stock for {item.name}.") from exc
        if not row:
            raise PersistenceError(f"Item {item.name} not found.", details={"item_id": item.id})

        row.sold = new_sold
        row.quantity = new_available
        self._commit(f"Failed to update stock for {item.name}.")

        if notify:
            self.publish()

        return StockItemView(
            id=item.id,
            category=item.category,
            barcode=item.barcode,
            name=item.name,
            price_cents=item.price_cents,
            total=item.total,
            sold=new_sold,
        )


inventory_store = InventoryStore()
