# Overview: POS cart and checkout state machine; pure logic over an inventory snapshot.

"""
Cart & Checkout Engine

The cart is a mutable, ordered collection of lines (unique by item id) with
a mode flag:

- sale:   a line may hold at most `available` units of its item
- refund: a line may hold at most `sold` units of its item

Limits are read from the inventory snapshot passed to each call. The engine
never touches the snapshot; it only asks its collaborators to write.

CHECKOUT STATUS:
    idle -> processing -> success | failure -> idle

success and failure reset to idle on their own once their deadline passes
(3 s and 5 s by default). A processing status older than
PROCESSING_STALE_SECONDS also reads as idle so a crashed checkout cannot
lock the cart forever.

CHECKOUT:
1. Reject an empty cart (EmptyCart), no transition.
2. Enter processing and persist the invoice.
3. Apply every line independently against the snapshot item. Failures do
   not stop the other lines and nothing is rolled back.
4. All lines applied: success, clear the cart, back to sale mode.
5. Any line failed: failure with one aggregate message; the cart is kept
   and inventory may be partially updated.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Callable

from ..errors import (
    CheckoutInProgress,
    EmptyCart,
    InvalidInput,
    NotFound,
    OutOfBounds,
    ShopError,
)
from ..time_utils import utcnow
from .inventory_store import InventorySnapshot, StockItemView


MODE_SALE = "sale"
MODE_REFUND = "refund"
MODES = (MODE_SALE, MODE_REFUND)

STATUS_IDLE = "idle"
STATUS_PROCESSING = "processing"
STATUS_SUCCESS = "success"
STATUS_FAILURE = "failure"

SUCCESS_RESET_SECONDS = 3
FAILURE_RESET_SECONDS = 5
PROCESSING_STALE_SECONDS = 60


@dataclass
class CartLine:
    item_id: int
    category: str
    barcode: str
    name: str
    price_cents: int
    cart_quantity: int

    @property
    def subtotal_cents(self) -> int:
        return self.cart_quantity * self.price_cents

    @classmethod
    def from_item(cls, item: StockItemView, quantity: int = 1) -> "CartLine":
        return cls(
            item_id=item.id,
            category=item.category,
            barcode=item.barcode,
            name=item.name,
            price_cents=item.price_cents,
            cart_quantity=quantity,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        return cls(
            item_id=int(data["item_id"]),
            category=data["category"],
            barcode=data["barcode"],
            name=data["name"],
            price_cents=int(data["price_cents"]),
            cart_quantity=int(data["cart_quantity"]),
        )

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "category": self.category,
            "barcode": self.barcode,
            "name": self.name,
            "price_cents": self.price_cents,
            "cart_quantity": self.cart_quantity,
            "subtotal_cents": self.subtotal_cents,
        }


@dataclass
class Cart:
    lines: list[CartLine] = field(default_factory=list)
    mode: str = MODE_SALE
    checkout_status: str = STATUS_IDLE
    status_expires_at: datetime | None = None
    status_message: str | None = None
    camera_unavailable: bool = False

    @property
    def is_refund(self) -> bool:
        return self.mode == MODE_REFUND

    @property
    def total_cents(self) -> int:
        return sum(line.subtotal_cents for line in self.lines)

    def find(self, item_id: int) -> CartLine | None:
        for line in self.lines:
            if line.item_id == item_id:
                return line
        return None

    def current_status(self, now: datetime | None = None) -> str:
        """Checkout status with expired deadlines folded back to idle."""
        now = now or utcnow()
        if self.checkout_status != STATUS_IDLE and self.status_expires_at is not None:
            if now >= self.status_expires_at:
                self.checkout_status = STATUS_IDLE
                self.status_expires_at = None
                self.status_message = None
        return self.checkout_status

    def set_status(self, status: str, *, now: datetime, seconds: int | None, message: str | None = None) -> None:
        self.checkout_status = status
        self.status_expires_at = now + timedelta(seconds=seconds) if seconds is not None else None
        self.status_message = message

    def to_dict(self, now: datetime | None = None) -> dict:
        now = now or utcnow()
        status = self.current_status(now)
        expires_in_ms = None
        if self.status_expires_at is not None:
            expires_in_ms = max(0, int((self.status_expires_at - now).total_seconds() * 1000))
        return {
            "mode": self.mode,
            "lines": [line.to_dict() for line in self.lines],
            "line_count": len(self.lines),
            "total_cents": self.total_cents,
            "checkout_status": status,
            "status_message": self.status_message,
            "status_expires_in_ms": expires_in_ms,
            "camera_unavailable": self.camera_unavailable,
        }


def mode_limit(item: StockItemView, mode: str) -> int:
    """Most units of item a line may hold in the given mode."""
    return item.sold if mode == MODE_REFUND else item.available


def _out_of_bounds_on_scan(item: StockItemView, mode: str) -> OutOfBounds:
    limit = mode_limit(item, mode)
    if mode == MODE_REFUND:
        text = f'Only {limit} of "{item.name}" were sold (refund limit).'
    else:
        text = f'Only {limit} of "{item.name}" available.'
    return OutOfBounds(text, details={"item_id": item.id, "limit": limit, "mode": mode})


def _ensure_not_processing(cart: Cart, now: datetime | None = None) -> None:
    if cart.current_status(now) == STATUS_PROCESSING:
        raise CheckoutInProgress("A checkout is in progress. Please wait.")


def register_scan(cart: Cart, barcode: str, snapshot: InventorySnapshot, now: datetime | None = None) -> CartLine:
    """
    Add one unit of the item with this barcode.

    Raises NotFound for an unknown barcode and OutOfBounds when the mode's
    limit would be exceeded; the cart is unchanged in both cases.
    """
    _ensure_not_processing(cart, now)

    item = snapshot.by_barcode(barcode)
    if item is None:
        raise NotFound(f"Item with barcode {barcode} not found.", details={"barcode": barcode})

    if cart.mode == MODE_REFUND:
        if item.sold <= 0:
            raise OutOfBounds(
                f'Cannot refund "{item.name}". No units were sold yet.',
                details={"item_id": item.id, "limit": 0, "mode": cart.mode},
            )
    elif item.available <= 0:
        raise OutOfBounds(
            f'"{item.name}" is out of stock!',
            details={"item_id": item.id, "limit": 0, "mode": cart.mode},
        )

    line = cart.find(item.id)
    if line is None:
        line = CartLine.from_item(item)
        cart.lines.append(line)
        return line

    if line.cart_quantity + 1 > mode_limit(item, cart.mode):
        raise _out_of_bounds_on_scan(item, cart.mode)

    line.cart_quantity += 1
    return line


def adjust_quantity(
    cart: Cart,
    item_id: int,
    delta: int,
    snapshot: InventorySnapshot,
    now: datetime | None = None,
) -> CartLine | None:
    """
    Change a line's quantity by delta.

    Dropping below 1 removes the line and returns None. Exceeding the mode's
    limit raises OutOfBounds and leaves the line as it was. Items missing
    from the snapshot or the cart are ignored.
    """
    _ensure_not_processing(cart, now)

    if isinstance(delta, bool) or not isinstance(delta, int):
        raise InvalidInput("delta must be an integer")

    item = snapshot.get(item_id)
    line = cart.find(item_id)
    if item is None or line is None:
        return line

    new_quantity = line.cart_quantity + delta
    if new_quantity < 1:
        cart.lines.remove(line)
        return None

    limit = mode_limit(item, cart.mode)
    if new_quantity > limit:
        if cart.mode == MODE_REFUND:
            text = f"Cannot refund more. Only {limit} were sold."
        else:
            text = f"Cannot add more. Only {limit} available."
        raise OutOfBounds(text, details={"item_id": item_id, "limit": limit, "mode": cart.mode})

    line.cart_quantity = new_quantity
    return line


def remove_line(cart: Cart, item_id: int, now: datetime | None = None) -> bool:
    _ensure_not_processing(cart, now)
    line = cart.find(item_id)
    if line is None:
        return False
    cart.lines.remove(line)
    return True


def refund_blockers(cart: Cart, snapshot: InventorySnapshot) -> list[dict]:
    """Lines whose quantity is not covered by the item's sold count."""
    blockers = []
    for line in cart.lines:
        item = snapshot.get(line.item_id)
        sold = item.sold if item is not None else 0
        if sold < line.cart_quantity:
            blockers.append({
                "item_id": line.item_id,
                "name": line.name,
                "cart_quantity": line.cart_quantity,
                "sold": sold,
            })
    return blockers


def can_enable_refund(cart: Cart, snapshot: InventorySnapshot) -> bool:
    return bool(cart.lines) and not refund_blockers(cart, snapshot)


def set_mode(cart: Cart, mode: str, snapshot: InventorySnapshot, now: datetime | None = None) -> str:
    """
    Switch between sale and refund.

    Refund needs a non-empty cart whose every line is covered by sales.
    Existing lines are not re-validated after the switch; checkout does that.
    """
    _ensure_not_processing(cart, now)

    if mode not in MODES:
        raise InvalidInput(f"mode must be one of: {', '.join(MODES)}")

    if mode == MODE_REFUND and cart.mode != MODE_REFUND:
        if not cart.lines:
            raise EmptyCart("Cannot switch to refund mode: the cart is empty.")
        blockers = refund_blockers(cart, snapshot)
        if blockers:
            names = ", ".join(b["name"] for b in blockers)
            raise OutOfBounds(
                f"Cannot switch to refund mode: no matching sales for {names}.",
                details={"items": blockers},
            )

    cart.mode = mode
    return cart.mode


@dataclass
class LineResult:
    line: CartLine
    ok: bool
    error: ShopError | None = None

    def to_dict(self) -> dict:
        data = {
            "item_id": self.line.item_id,
            "name": self.line.name,
            "cart_quantity": self.line.cart_quantity,
            "ok": self.ok,
        }
        if self.error is not None:
            data["error"] = self.error.message
            data["code"] = self.error.code
        return data


@dataclass
class CheckoutResult:
    status: str
    is_refund: bool
    lines: list[CartLine]
    total_cents: int
    invoice: Any = None
    document: str | None = None
    message: str | None = None
    line_results: list[LineResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCESS

    @property
    def failed_lines(self) -> list[LineResult]:
        return [r for r in self.line_results if not r.ok]


def fail_checkout(cart: Cart, *, now: datetime, seconds: int = FAILURE_RESET_SECONDS) -> str:
    """Leave processing with the generic failure message; the lines are kept."""
    message = (
        "Failed to process refund. Please try again."
        if cart.is_refund
        else "Failed to complete checkout. Please try again."
    )
    cart.set_status(STATUS_FAILURE, now=now, seconds=seconds, message=message)
    return message


def begin_checkout(cart: Cart, now: datetime | None = None) -> None:
    """Validate the cart and enter processing."""
    now = now or utcnow()
    _ensure_not_processing(cart, now)
    if not cart.lines:
        raise EmptyCart("Cart is empty. Please scan items.")
    cart.set_status(STATUS_PROCESSING, now=now, seconds=PROCESSING_STALE_SECONDS)


SaveInvoice = Callable[[list[CartLine], int, bool], Any]
ApplyLine = Callable[[StockItemView, int, bool], Any]
RenderInvoice = Callable[[Any], str]


def complete_checkout(
    cart: Cart,
    snapshot: InventorySnapshot,
    *,
    save_invoice: SaveInvoice,
    apply_line: ApplyLine,
    render_invoice: RenderInvoice | None = None,
    now: datetime | None = None,
    success_reset_seconds: int = SUCCESS_RESET_SECONDS,
    failure_reset_seconds: int = FAILURE_RESET_SECONDS,
) -> CheckoutResult:
    """
    Persist the invoice, then apply every line against its snapshot item.

    Must follow begin_checkout. Never raises for line failures; they are
    collected in the result.
    """
    is_refund = cart.is_refund
    lines = [replace(line) for line in cart.lines]
    total_cents = sum(line.subtotal_cents for line in lines)

    result = CheckoutResult(
        status=STATUS_PROCESSING,
        is_refund=is_refund,
        lines=lines,
        total_cents=total_cents,
    )

    try:
        result.invoice = save_invoice(lines, total_cents, is_refund)
    except ShopError:
        result.status = STATUS_FAILURE
        result.message = fail_checkout(cart, now=now or utcnow(), seconds=failure_reset_seconds)
        return result

    for line in lines:
        item = snapshot.get(line.item_id)
        try:
            if item is None:
                raise NotFound(f"Item {line.name} not found.", details={"item_id": line.item_id})
            apply_line(item, line.cart_quantity, is_refund)
        except ShopError as exc:
            result.line_results.append(LineResult(line=line, ok=False, error=exc))
        else:
            result.line_results.append(LineResult(line=line, ok=True))

    now = now or utcnow()

    if result.failed_lines:
        result.status = STATUS_FAILURE
        result.message = (
            f"{'Refund' if is_refund else 'Checkout'} failed for one or more items. "
            "Inventory was not fully updated."
        )
        cart.set_status(STATUS_FAILURE, now=now, seconds=failure_reset_seconds, message=result.message)
        return result

    result.status = STATUS_SUCCESS
    result.message = f"{'Refund' if is_refund else 'Transaction'} Complete!"
    if render_invoice is not None:
        result.document = render_invoice(result.invoice)

    cart.lines = []
    cart.mode = MODE_SALE
    cart.set_status(STATUS_SUCCESS, now=now, seconds=success_reset_seconds, message=result.message)
    return result


def checkout(
    cart: Cart,
    snapshot: InventorySnapshot,
    *,
    save_invoice: SaveInvoice,
    apply_line: ApplyLine,
    render_invoice: RenderInvoice | None = None,
    now: datetime | None = None,
    success_reset_seconds: int = SUCCESS_RESET_SECONDS,
    failure_reset_seconds: int = FAILURE_RESET_SECONDS,
) -> CheckoutResult:
    """begin_checkout followed by complete_checkout."""
    begin_checkout(cart, now)
    return complete_checkout(
        cart,
        snapshot,
        save_invoice=save_invoice,
        apply_line=apply_line,
        render_invoice=render_invoice,
        now=now,
        success_reset_seconds=success_reset_seconds,
        failure_reset_seconds=failure_reset_seconds,
    )
