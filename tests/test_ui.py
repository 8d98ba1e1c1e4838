from types import SimpleNamespace

import pytest

from repairdesk.database.models import RepairStatus, BookingType
from repairdesk.handlers.bookings import (
    LIST_LIMIT, parse_parts, board_text, board_keyboard, booking_line, booking_list_text, booking_list_keyboard, job_card_text,
)
from repairdesk.handlers.invoices import parse_item, parse_item_changes, apply_item, draft_keyboard
from repairdesk.handlers.settings import settings_text
from repairdesk.middlewares.subscription import gate_text
from repairdesk.schemas.records import Booking, ShopProfile
from repairdesk.schemas.validation import QuoteForm
from repairdesk.services.booking_service import group_by_status
from repairdesk.services.invoice_service import InvoiceDraft
from repairdesk.services.quotation_service import render_quotation
from repairdesk.utils.ui import status_style, format_currency, STATUS_STYLES, UIKeyboards, UIMessages


def test_every_status_has_a_style():
    assert set(STATUS_STYLES) == set(RepairStatus)
    for status in RepairStatus:
        assert status_style(status)
        assert status_style(status.value) == status_style(status)


def test_unknown_status_is_an_error():
    with pytest.raises(ValueError):
        status_style("Lost")


@pytest.mark.parametrize("amount,code,expected", [
    (1200, "ZAR", "R 1200.00"),
    (9.5, "USD", "$ 9.50"),
    (None, "EUR", "€ 0.00"),
    (10, "XYZ", "R 10.00"),
])
def test_format_currency(amount, code, expected):
    assert format_currency(amount, code) == expected


def test_status_picker_has_every_status():
    keyboard = UIKeyboards.status_picker("stupd")
    callbacks = [b.callback_data for row in keyboard.inline_keyboard for b in row]
    assert callbacks == [f"stupd:{i}" for i in range(len(RepairStatus))]


def test_parse_parts():
    parts = parse_parts("Screen; 900\nBattery;abc\n-\n")
    assert [(p.name, p.cost) for p in parts] == [("Screen", 900), ("Battery", 0)]


def test_parse_item():
    assert parse_item("Screen; 2; 450") == {"description": "Screen", "qty": "2", "unit_price": "450"}
    assert parse_item("Diagnostics")["qty"] == 1


def _collected(n, **fields):
    return Booking(
        id=f"job{n}", invoice_no=f"INV-{n}", customer_name=f"Customer {n}", device_model="iPhone 13",
        booking_type=BookingType.walk_in, status=RepairStatus.collected, amount=1200,
        created_at="2026-01-01T00:00:00+00:00", **fields,
    )


# --- HTML escaping ---

def test_field_escapes_value():
    assert UIMessages.field("Name", "Fix <It> & Co") == "• <b>Name:</b> Fix &lt;It&gt; &amp; Co\n"
    assert UIMessages.field("Total", "<b>R 1.00</b>", escape=False).endswith("<b>R 1.00</b>\n")
    assert UIMessages.field("Empty", "") == "• <b>Empty:</b> —\n"


def test_settings_text_escapes_company_name():
    text = settings_text(ShopProfile(company_name="Fix <It> & Co"))
    assert "Fix &lt;It&gt; &amp; Co" in text
    assert "<It>" not in text


def test_booking_text_escapes_customer_input():
    booking = _collected(1, device_issue="won't charge <50%")
    booking.customer_name = "Ann & <Bob>"

    line = booking_line(booking, "ZAR")
    assert "Ann &amp; &lt;Bob&gt;" in line
    assert "<Bob>" not in line
    assert "won't charge &lt;50%" in job_card_text(booking, "ZAR")


def test_quotation_escapes_profile_and_customer():
    profile = ShopProfile(company_name="Fix <It> & Co", address="1 <Main> Rd")
    form = QuoteForm(device_model="S21", customer_name="<Ann>", fault_description="Screen & frame")

    text = render_quotation(form, profile)
    assert "Fix &lt;It&gt; &amp; Co" in text
    assert "1 &lt;Main&gt; Rd" in text
    assert "Customer: &lt;Ann&gt;" in text
    assert "Screen &amp; frame" in text


def test_gate_text_escapes_company_name():
    assert "<b>A &amp; B</b>" in gate_text("A & B")


# --- Long lists ---

def test_booking_list_is_cut_to_limit():
    bookings = [_collected(n) for n in range(150)]

    text = booking_list_text("Collected", "⬜", bookings, "ZAR")
    keyboard = booking_list_keyboard(bookings)
    buttons = [b for row in keyboard.inline_keyboard for b in row]

    assert len(text) < 4096
    assert text.count("#INV-") == LIST_LIMIT
    assert f"Showing {LIST_LIMIT} of 150" in text
    assert len(buttons) == LIST_LIMIT + 1
    assert buttons[-1].callback_data == "bk_board"


def test_short_booking_list_has_no_cut_note():
    text = booking_list_text("Collected", "⬜", [_collected(1)], "ZAR")
    assert "Showing" not in text
    assert "No repairs" in booking_list_text("Testing", "🟪", [], "ZAR")


def test_board_lists_workshop_columns_before_closed():
    dashboard = SimpleNamespace(board=lambda: group_by_status([_collected(1)]))

    text = board_text(dashboard)
    assert text.index(RepairStatus.testing.value) < text.index("Closed") < text.index(RepairStatus.collected.value)

    callbacks = [b.callback_data for row in board_keyboard(dashboard).inline_keyboard for b in row]
    statuses = RepairStatus.ordered()
    assert callbacks[:len(statuses)] == [
        f"board:{statuses.index(s)}" for s in group_by_status([]).active_columns()
    ] + [f"board:{statuses.index(RepairStatus.collected)}", f"board:{statuses.index(RepairStatus.unable_to_repair)}"]


# --- Invoice line items ---

def _draft():
    draft = InvoiceDraft(invoice_no="INV-1", customer_name="Ann")
    draft.add_item("Screen", 1, 900)
    draft.add_item("Battery", 1, 400)
    return draft


def test_draft_keyboard_has_edit_and_remove_per_item():
    keyboard = draft_keyboard(_draft())
    callbacks = [b.callback_data for row in keyboard.inline_keyboard for b in row]

    assert keyboard.inline_keyboard[0][0].callback_data == "inv_edit:0"
    assert keyboard.inline_keyboard[0][1].callback_data == "inv_rm:0"
    assert {"inv_edit:1", "inv_rm:1", "inv_item"} <= set(callbacks)


def test_apply_item_edits_one_item():
    draft = _draft()

    apply_item(draft, "Screen (OLED); -; 1100", index=0)

    assert draft.items[0].description == "Screen (OLED)"
    assert draft.items[0].qty == 1
    assert draft.items[0].total == 1100
    assert draft.items[1].description == "Battery"
    assert draft.subtotal == 1500


def test_apply_item_without_index_appends():
    draft = _draft()
    apply_item(draft, "Diagnostics; 1; 150")
    assert [i.description for i in draft.items] == ["Screen", "Battery", "Diagnostics"]


def test_parse_item_changes_skips_kept_values():
    assert parse_item_changes("-; 3") == {"qty": "3"}
    assert parse_item_changes("Glass; ; 50") == {"description": "Glass", "unit_price": "50"}
