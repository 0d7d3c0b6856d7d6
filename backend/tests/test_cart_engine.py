# Overview: Pytest coverage for the cart and checkout state machine.

"""
Cart & Checkout Engine Tests

The engine is pure: every test builds an InventorySnapshot by hand and
passes fake collaborators for invoice persistence and stock writes.
"""

from datetime import datetime, timedelta

import pytest

from yomo.errors import (
    CheckoutInProgress,
    EmptyCart,
    InsufficientStock,
    InvalidInput,
    NotFound,
    OutOfBounds,
    PersistenceError,
)
from yomo.services import cart_engine
from yomo.services.cart_engine import Cart, CartLine
from yomo.services.inventory_store import InventorySnapshot, StockItemView


NOW = datetime(2026, 10, 18, 12, 0, 0)


def item(item_id=1, name="Basic Tee", barcode=None, total=10, sold=0, price_cents=25000, category="T-Shirt"):
    return StockItemView(
        id=item_id,
        category=category,
        barcode=barcode or f"900{item_id:010d}",
        name=name,
        price_cents=price_cents,
        total=total,
        sold=sold,
    )


def snapshot(*items):
    return InventorySnapshot(items=tuple(items))


class Collaborators:
    """Records invoice saves and stock writes; fails the item ids it is told to."""

    def __init__(self, fail_ids=(), fail_invoice=False):
        self.fail_ids = set(fail_ids)
        self.fail_invoice = fail_invoice
        self.invoices = []
        self.applied = []

    def save_invoice(self, lines, total_cents, is_refund):
        if self.fail_invoice:
            raise PersistenceError("Failed to save invoice")
        invoice = {"lines": lines, "total_cents": total_cents, "is_refund": is_refund}
        self.invoices.append(invoice)
        return invoice

    def apply_line(self, stock_item, quantity, is_refund):
        if stock_item.id in self.fail_ids:
            raise InsufficientStock(f"Insufficient stock for {stock_item.name}.")
        self.applied.append((stock_item.id, quantity, is_refund))

    def render(self, invoice):
        return f"<html>{len(invoice['lines'])} lines</html>"

    def checkout(self, cart, snap, now=NOW):
        return cart_engine.checkout(
            cart,
            snap,
            save_invoice=self.save_invoice,
            apply_line=self.apply_line,
            render_invoice=self.render,
            now=now,
        )


# =============================================================================
# SCANNING
# =============================================================================


class TestRegisterScan:

    def test_first_scan_adds_line_with_quantity_one(self):
        cart = Cart()
        tee = item()
        line = cart_engine.register_scan(cart, tee.barcode, snapshot(tee), NOW)

        assert line.cart_quantity == 1
        assert line.subtotal_cents == 25000
        assert cart.total_cents == 25000
        assert [l.item_id for l in cart.lines] == [1]

    def test_repeat_scan_increments_existing_line(self):
        cart = Cart()
        tee = item()
        snap = snapshot(tee)
        cart_engine.register_scan(cart, tee.barcode, snap, NOW)
        cart_engine.register_scan(cart, tee.barcode, snap, NOW)

        assert len(cart.lines) == 1
        assert cart.lines[0].cart_quantity == 2
        assert cart.total_cents == 50000

    def test_unknown_barcode_leaves_cart_untouched(self):
        cart = Cart()
        tee = item()
        cart_engine.register_scan(cart, tee.barcode, snapshot(tee), NOW)

        with pytest.raises(NotFound) as exc:
            cart_engine.register_scan(cart, "9000000000999", snapshot(tee), NOW)

        assert exc.value.message == "Item with barcode 9000000000999 not found."
        assert [(l.item_id, l.cart_quantity) for l in cart.lines] == [(1, 1)]

    def test_seven_available_eighth_scan_is_out_of_bounds(self):
        cart = Cart()
        tee = item(total=10, sold=3)
        snap = snapshot(tee)

        for _ in range(7):
            cart_engine.register_scan(cart, tee.barcode, snap, NOW)

        with pytest.raises(OutOfBounds) as exc:
            cart_engine.register_scan(cart, tee.barcode, snap, NOW)

        assert exc.value.message == 'Only 7 of "Basic Tee" available.'
        assert cart.lines[0].cart_quantity == 7

    def test_sold_out_item_rejected_in_sale_mode(self):
        cart = Cart()
        tee = item(total=5, sold=5)

        with pytest.raises(OutOfBounds) as exc:
            cart_engine.register_scan(cart, tee.barcode, snapshot(tee), NOW)

        assert exc.value.message == '"Basic Tee" is out of stock!'
        assert cart.lines == []

    def test_refund_mode_needs_prior_sales(self):
        cart = Cart(mode=cart_engine.MODE_REFUND)
        tee = item(total=5, sold=0)

        with pytest.raises(OutOfBounds) as exc:
            cart_engine.register_scan(cart, tee.barcode, snapshot(tee), NOW)

        assert exc.value.message == 'Cannot refund "Basic Tee". No units were sold yet.'

    def test_refund_mode_bounded_by_sold(self):
        cart = Cart(mode=cart_engine.MODE_REFUND)
        tee = item(total=10, sold=2)
        snap = snapshot(tee)

        cart_engine.register_scan(cart, tee.barcode, snap, NOW)
        cart_engine.register_scan(cart, tee.barcode, snap, NOW)
        with pytest.raises(OutOfBounds) as exc:
            cart_engine.register_scan(cart, tee.barcode, snap, NOW)

        assert "refund limit" in exc.value.message
        assert cart.lines[0].cart_quantity == 2


# =============================================================================
# QUANTITY EDITS
# =============================================================================


class TestAdjustQuantity:

    def test_increment_within_limit(self):
        tee = item(total=3)
        cart = Cart(lines=[CartLine.from_item(tee)])

        line = cart_engine.adjust_quantity(cart, tee.id, 2, snapshot(tee), NOW)

        assert line.cart_quantity == 3
        assert line.subtotal_cents == 75000

    def test_increment_past_limit_is_rejected_and_unchanged(self):
        tee = item(total=3)
        cart = Cart(lines=[CartLine.from_item(tee, quantity=3)])

        with pytest.raises(OutOfBounds) as exc:
            cart_engine.adjust_quantity(cart, tee.id, 1, snapshot(tee), NOW)

        assert exc.value.message == "Cannot add more. Only 3 available."
        assert cart.lines[0].cart_quantity == 3

    def test_refund_limit_message(self):
        tee = item(total=10, sold=1)
        cart = Cart(lines=[CartLine.from_item(tee)], mode=cart_engine.MODE_REFUND)

        with pytest.raises(OutOfBounds) as exc:
            cart_engine.adjust_quantity(cart, tee.id, 1, snapshot(tee), NOW)

        assert exc.value.message == "Cannot refund more. Only 1 were sold."

    def test_decrement_below_one_removes_line(self):
        tee = item()
        cart = Cart(lines=[CartLine.from_item(tee)])

        assert cart_engine.adjust_quantity(cart, tee.id, -1, snapshot(tee), NOW) is None
        assert cart.lines == []

    def test_item_missing_from_snapshot_is_ignored(self):
        tee = item()
        cart = Cart(lines=[CartLine.from_item(tee)])

        cart_engine.adjust_quantity(cart, tee.id, 5, snapshot(), NOW)

        assert cart.lines[0].cart_quantity == 1

    def test_non_integer_delta_rejected(self):
        tee = item()
        cart = Cart(lines=[CartLine.from_item(tee)])

        with pytest.raises(InvalidInput):
            cart_engine.adjust_quantity(cart, tee.id, "2", snapshot(tee), NOW)

    def test_remove_line(self):
        tee = item()
        cart = Cart(lines=[CartLine.from_item(tee)])

        assert cart_engine.remove_line(cart, tee.id, NOW) is True
        assert cart_engine.remove_line(cart, tee.id, NOW) is False
        assert cart.lines == []


# =============================================================================
# MODE SWITCH
# =============================================================================


class TestSetMode:

    def test_refund_requires_items(self):
        with pytest.raises(EmptyCart):
            cart_engine.set_mode(Cart(), cart_engine.MODE_REFUND, snapshot(), NOW)

    def test_refund_requires_matching_sales(self):
        sold_tee = item(item_id=1, sold=2)
        fresh_tee = item(item_id=2, name="Fresh Tee", sold=0)
        cart = Cart(lines=[CartLine.from_item(sold_tee), CartLine.from_item(fresh_tee)])

        with pytest.raises(OutOfBounds) as exc:
            cart_engine.set_mode(cart, cart_engine.MODE_REFUND, snapshot(sold_tee, fresh_tee), NOW)

        assert "Fresh Tee" in exc.value.message
        assert [b["item_id"] for b in exc.value.details["items"]] == [2]
        assert cart.mode == cart_engine.MODE_SALE

    def test_refund_enabled_when_every_line_covered(self):
        tee = item(sold=2)
        cart = Cart(lines=[CartLine.from_item(tee, quantity=2)])

        assert cart_engine.can_enable_refund(cart, snapshot(tee))
        assert cart_engine.set_mode(cart, cart_engine.MODE_REFUND, snapshot(tee), NOW) == cart_engine.MODE_REFUND
        assert cart.is_refund

    def test_back_to_sale_keeps_lines(self):
        tee = item(sold=2)
        cart = Cart(lines=[CartLine.from_item(tee, quantity=2)], mode=cart_engine.MODE_REFUND)

        cart_engine.set_mode(cart, cart_engine.MODE_SALE, snapshot(tee), NOW)

        assert cart.mode == cart_engine.MODE_SALE
        assert cart.lines[0].cart_quantity == 2

    def test_unknown_mode(self):
        with pytest.raises(InvalidInput):
            cart_engine.set_mode(Cart(), "exchange", snapshot(), NOW)


# =============================================================================
# CHECKOUT
# =============================================================================


class TestCheckout:

    def test_empty_cart_stays_idle(self):
        cart = Cart()
        fakes = Collaborators()

        with pytest.raises(EmptyCart) as exc:
            fakes.checkout(cart, snapshot())

        assert exc.value.message == "Cart is empty. Please scan items."
        assert cart.current_status(NOW) == cart_engine.STATUS_IDLE
        assert fakes.invoices == []

    def test_successful_sale_clears_cart(self):
        tee = item(item_id=1)
        jacket = item(item_id=2, name="Jacket", price_cents=90000, category="Jacket")
        cart = Cart(lines=[CartLine.from_item(tee, 2), CartLine.from_item(jacket)])
        fakes = Collaborators()

        result = fakes.checkout(cart, snapshot(tee, jacket))

        assert result.succeeded
        assert result.message == "Transaction Complete!"
        assert result.total_cents == 140000
        assert result.document == "<html>2 lines</html>"
        assert fakes.applied == [(1, 2, False), (2, 1, False)]
        assert cart.lines == []
        assert cart.mode == cart_engine.MODE_SALE
        assert cart.current_status(NOW) == cart_engine.STATUS_SUCCESS

    @pytest.mark.parametrize("mode,message", [
        (cart_engine.MODE_SALE, "Failed to complete checkout. Please try again."),
        (cart_engine.MODE_REFUND, "Failed to process refund. Please try again."),
    ])
    def test_fail_checkout_leaves_processing(self, mode, message):
        tee = item(sold=2)
        cart = Cart(lines=[CartLine.from_item(tee)], mode=mode)
        cart_engine.begin_checkout(cart, NOW)

        assert cart_engine.fail_checkout(cart, now=NOW) == message

        assert cart.current_status(NOW) == cart_engine.STATUS_FAILURE
        assert cart.status_message == message
        assert len(cart.lines) == 1
        assert cart.current_status(NOW + timedelta(seconds=5)) == cart_engine.STATUS_IDLE

    def test_invoice_reproduces_cart_at_checkout(self):
        tee = item()
        cart = Cart(lines=[CartLine.from_item(tee, 3)])
        fakes = Collaborators()

        result = fakes.checkout(cart, snapshot(tee))

        saved = fakes.invoices[0]["lines"]
        assert [(l.item_id, l.cart_quantity, l.price_cents) for l in saved] == [(1, 3, 25000)]
        assert fakes.invoices[0]["total_cents"] == 75000
        assert result.lines[0].cart_quantity == 3

    def test_refund_resets_mode_to_sale(self):
        tee = item(total=10, sold=3)
        cart = Cart(lines=[CartLine.from_item(tee, 3)], mode=cart_engine.MODE_REFUND)
        fakes = Collaborators()

        result = fakes.checkout(cart, snapshot(tee))

        assert result.succeeded
        assert result.is_refund
        assert result.message == "Refund Complete!"
        assert fakes.applied == [(1, 3, True)]
        assert cart.mode == cart_engine.MODE_SALE

    def test_partial_failure_keeps_cart_and_does_not_roll_back(self):
        tee = item(item_id=1)
        jacket = item(item_id=2, name="Jacket")
        cart = Cart(lines=[CartLine.from_item(tee), CartLine.from_item(jacket)])
        fakes = Collaborators(fail_ids={2})

        result = fakes.checkout(cart, snapshot(tee, jacket))

        assert not result.succeeded
        assert result.message == "Checkout failed for one or more items. Inventory was not fully updated."
        assert fakes.applied == [(1, 1, False)]
        assert [r.line.item_id for r in result.failed_lines] == [2]
        assert len(cart.lines) == 2
        assert cart.current_status(NOW) == cart_engine.STATUS_FAILURE

    def test_item_deleted_since_scan_fails_its_line(self):
        tee = item(item_id=1)
        gone = item(item_id=2, name="Gone")
        cart = Cart(lines=[CartLine.from_item(tee), CartLine.from_item(gone)])
        fakes = Collaborators()

        result = fakes.checkout(cart, snapshot(tee))

        assert not result.succeeded
        assert isinstance(result.failed_lines[0].error, NotFound)
        assert fakes.applied == [(1, 1, False)]

    def test_invoice_failure_writes_no_stock(self):
        tee = item()
        cart = Cart(lines=[CartLine.from_item(tee)])
        fakes = Collaborators(fail_invoice=True)

        result = fakes.checkout(cart, snapshot(tee))

        assert not result.succeeded
        assert result.message == "Failed to complete checkout. Please try again."
        assert fakes.applied == []
        assert len(cart.lines) == 1

    def test_status_resets_after_deadline(self):
        tee = item()
        cart = Cart(lines=[CartLine.from_item(tee)])
        Collaborators(fail_ids={1}).checkout(cart, snapshot(tee))

        assert cart.current_status(NOW + timedelta(seconds=4)) == cart_engine.STATUS_FAILURE
        assert cart.current_status(NOW + timedelta(seconds=5)) == cart_engine.STATUS_IDLE
        assert cart.status_message is None

    def test_success_resets_after_three_seconds(self):
        tee = item()
        cart = Cart(lines=[CartLine.from_item(tee)])
        Collaborators().checkout(cart, snapshot(tee))

        assert cart.current_status(NOW + timedelta(seconds=2)) == cart_engine.STATUS_SUCCESS
        assert cart.current_status(NOW + timedelta(seconds=3)) == cart_engine.STATUS_IDLE

    def test_cart_locked_while_processing(self):
        tee = item()
        cart = Cart(lines=[CartLine.from_item(tee)])
        cart_engine.begin_checkout(cart, NOW)

        with pytest.raises(CheckoutInProgress):
            cart_engine.register_scan(cart, tee.barcode, snapshot(tee), NOW)
        with pytest.raises(CheckoutInProgress):
            cart_engine.begin_checkout(cart, NOW)

    def test_stale_processing_reads_idle(self):
        tee = item()
        cart = Cart(lines=[CartLine.from_item(tee)])
        cart_engine.begin_checkout(cart, NOW)

        later = NOW + timedelta(seconds=cart_engine.PROCESSING_STALE_SECONDS)
        assert cart.current_status(later) == cart_engine.STATUS_IDLE
