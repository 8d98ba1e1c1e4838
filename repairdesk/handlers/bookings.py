"""
Bookings & Repairs module: status board, intake forms, manual status
tool, search/track and the job card.
"""
import logging
from typing import List

from aiogram import Router, F
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.fsm.context import FSMContext

from repairdesk.database.models import RepairStatus, BookingType
from repairdesk.schemas.records import Booking, RepairDetails, RepairPart
from repairdesk.schemas.validation import BookingForm, to_number
from repairdesk.services import booking_service
from repairdesk.services.booking_service import SEARCH_FIELDS, TOTAL_REPAIRS
from repairdesk.services.dashboard import DashboardSession, Module
from repairdesk.services.invoice_service import generate_invoice_from_repair
from repairdesk.states import BookingFormState, StatusUpdateState, BookingSearchState, RepairDetailsState
from repairdesk.utils.ui import (
    UIEmojis, UIMessages, UIKeyboards, MENU_BOOKINGS, quote, format_currency, format_date, status_style
)
from repairdesk.handlers.forms import WALK_IN_STEPS, ONLINE_STEPS, SKIP, start_form, collect_step

router = Router()

STATUSES = RepairStatus.ordered()
LIST_LIMIT = 20


def board_text(dashboard: DashboardSession) -> str:
    board = dashboard.board()
    active = board.active_columns()
    text = UIMessages.header("Repair Status Board", UIEmojis.WRENCH)
    text += UIMessages.field(TOTAL_REPAIRS, board.total, UIEmojis.CHART)
    text += UIMessages.section("In the workshop")
    for status in active:
        text += UIMessages.field(status.value, board.count(status), status_style(status))
    text += UIMessages.section("Closed")
    for status in STATUSES:
        if status not in active:
            text += UIMessages.field(status.value, board.count(status), status_style(status))
    return text


def board_keyboard(dashboard: DashboardSession) -> InlineKeyboardMarkup:
    board = dashboard.board()
    active = board.active_columns()
    columns = active + [s for s in STATUSES if s not in active]
    items = [
        (f"{status_style(s)} {s.value} ({board.count(s)})", f"board:{STATUSES.index(s)}")
        for s in columns
    ]
    items += [
        (f"{UIEmojis.WALK_IN} Walk-in Check-in", "bk_new:walk_in"),
        (f"{UIEmojis.ONLINE} Online Request", "bk_new:online"),
        (f"{UIEmojis.PROCESSING} Update Status", "bk_status"),
        (f"{UIEmojis.SEARCH} Search / Track", "bk_search"),
    ]
    return UIKeyboards.menu_grid(items, columns=2)


def booking_line(booking: Booking, currency: str) -> str:
    line = (
        f"{status_style(booking.status)} <b>#{quote(booking.invoice_no)}</b> "
        f"{quote(booking.customer_name)} | {quote(booking.device_model)}"
    )
    if booking.amount:
        line += f" | {format_currency(booking.amount, currency)}"
    return line


def booking_list_text(title: str, emoji: str, bookings: List[Booking], currency: str) -> str:
    """Header plus one line per booking, cut at LIST_LIMIT"""
    text = UIMessages.header(title, emoji)
    if not bookings:
        return text + UIMessages.info_box("No repairs in this status.")
    text += "\n".join(booking_line(b, currency) for b in bookings[:LIST_LIMIT])
    if len(bookings) > LIST_LIMIT:
        text += "\n\n" + UIMessages.info_box(f"Showing {LIST_LIMIT} of {len(bookings)}. Use Search / Track to find older jobs.")
    return text


def booking_list_keyboard(bookings: List[Booking]) -> InlineKeyboardMarkup:
    items = [(f"#{b.invoice_no} {b.customer_name}", f"job:{b.id}") for b in bookings[:LIST_LIMIT]]
    items.append((f"{UIEmojis.BACK} Board", "bk_board"))
    return UIKeyboards.menu_grid(items, columns=1)


def job_card_text(booking: Booking, currency: str) -> str:
    text = UIMessages.header(f"Job Card #{booking.invoice_no}", UIEmojis.PHONE)
    text += UIMessages.field("Status", f"{status_style(booking.status)} {booking.status.value}")
    text += UIMessages.field("Type", booking.booking_type.value)
    text += UIMessages.field("Created", format_date(booking.created_at))
    text += UIMessages.section("Customer")
    text += UIMessages.field("Name", booking.customer_name)
    text += UIMessages.field("Phone", booking.customer_phone)
    text += UIMessages.field("Email", booking.customer_email)
    text += UIMessages.section("Device")
    text += UIMessages.field("Model", booking.device_model)
    text += UIMessages.field("IMEI", booking.imei)
    text += UIMessages.field("Issue", booking.device_issue)
    if booking.booking_type == BookingType.online:
        text += UIMessages.field("Preferred date", booking.preferred_date)
        text += UIMessages.field("Urgency", booking.urgency)

    details = booking.repair_details
    if details:
        text += UIMessages.section("Repair Details")
        text += UIMessages.field("Final fault", details.final_fault)
        text += UIMessages.field("Technician", details.technician)
        text += UIMessages.field("Notes", details.diagnostic_notes)
        for part in details.parts_used:
            text += UIMessages.field(f"Part: {part.name}", format_currency(part.cost, currency), UIEmojis.PARTS)
        text += UIMessages.field("Labor", format_currency(details.labor_cost, currency))
        text += UIMessages.field("Estimated cost", format_currency(details.estimated_cost, currency))
    return text


def job_card_keyboard(booking: Booking) -> InlineKeyboardMarkup:
    return UIKeyboards.menu_grid([
        (f"{UIEmojis.TECHNICIAN} Repair Details", f"rd:{booking.id}"),
        (f"{UIEmojis.BELL} Notify Customer", f"notify:{booking.id}"),
        (f"{UIEmojis.INVOICE} Generate Invoice", f"geninv:{booking.id}"),
        (f"{UIEmojis.BACK} Board", "bk_board"),
    ], columns=2)


def get_booking(dashboard: DashboardSession, booking_id: str) -> Booking:
    booking = dashboard.find_booking(booking_id)
    if booking is None:
        raise booking_service.BookingNotFound("This job is no longer on the board.")
    return booking


# --- Board ---

@router.message(F.text == MENU_BOOKINGS)
async def show_board(message: Message, state: FSMContext, dashboard: DashboardSession):
    await state.clear()
    dashboard.switch(Module.bookings)
    await message.answer(board_text(dashboard), reply_markup=board_keyboard(dashboard))


@router.callback_query(F.data == "bk_board")
async def cb_board(callback: CallbackQuery, state: FSMContext, dashboard: DashboardSession):
    await state.clear()
    await callback.message.edit_text(board_text(dashboard), reply_markup=board_keyboard(dashboard))
    await callback.answer()


@router.callback_query(F.data.startswith("board:"))
async def cb_board_column(callback: CallbackQuery, dashboard: DashboardSession):
    status = STATUSES[int(callback.data.split(":")[1])]
    bookings = dashboard.board().buckets[status]

    text = booking_list_text(status.value, status_style(status), bookings, dashboard.currency)
    await callback.message.edit_text(text, reply_markup=booking_list_keyboard(bookings))
    await callback.answer()


# --- Intake ---

@router.callback_query(F.data.startswith("bk_new:"))
async def cb_new_booking(callback: CallbackQuery, state: FSMContext):
    kind = callback.data.split(":")[1]
    steps = WALK_IN_STEPS if kind == "walk_in" else ONLINE_STEPS
    title = "Walk-in Check-in" if kind == "walk_in" else "Online Booking Request"

    await state.set_state(BookingFormState.filling)
    await callback.message.answer(UIMessages.header(title, UIEmojis.ADD) + UIMessages.info_box("Send /cancel to stop."))
    await start_form(callback.message, state, steps, booking_kind=kind)
    await callback.answer()


@router.message(BookingFormState.filling)
async def process_booking_step(message: Message, state: FSMContext):
    data = await state.get_data()
    steps = WALK_IN_STEPS if data["booking_kind"] == "walk_in" else ONLINE_STEPS
    values = await collect_step(message, state, steps)
    if values is None:
        return

    form = BookingForm.model_validate(values)
    text = UIMessages.header("Confirm Booking", UIEmojis.DOCUMENT)
    for step in steps:
        text += UIMessages.field(step.field.replace("_", " ").capitalize(), getattr(form, step.field))
    await state.set_state(BookingFormState.confirm)
    await message.answer(text, reply_markup=UIKeyboards.confirm_cancel("Save", confirm_callback="bk_save"))


@router.callback_query(BookingFormState.confirm, F.data == "bk_save")
async def cb_save_booking(callback: CallbackQuery, state: FSMContext, dashboard: DashboardSession):
    data = await state.get_data()
    form = BookingForm.model_validate(data["form_values"])

    if data["booking_kind"] == "walk_in":
        booking = await booking_service.check_in_walk_in(dashboard.store, dashboard.paths, dashboard.notifier, form)
        label = "Walk-in repair checked in"
    else:
        booking = await booking_service.create_online_request(dashboard.store, dashboard.paths, dashboard.notifier, form)
        label = "Online booking request submitted"
    dashboard.sync()
    await state.clear()

    await callback.message.edit_text(UIMessages.success(f"{label}: <b>#{quote(booking.invoice_no)}</b> ({booking.status.value})"))
    await callback.answer()


# --- Manual status tool ---

@router.callback_query(F.data == "bk_status")
async def cb_status_tool(callback: CallbackQuery, state: FSMContext):
    await state.set_state(StatusUpdateState.waiting_for_invoice_no)
    await callback.message.answer(f"{UIEmojis.PROCESSING} Enter the Invoice Number of the repair:")
    await callback.answer()


@router.message(StatusUpdateState.waiting_for_invoice_no)
async def process_status_invoice(message: Message, state: FSMContext, dashboard: DashboardSession):
    invoice_no = (message.text or "").strip()
    booking = booking_service.find_by_invoice_no(dashboard.bookings, invoice_no)
    if not booking:
        await message.answer(UIMessages.error(f"No repair found with Invoice Number: {quote(invoice_no or '—')}"))
        return

    await state.update_data(invoice_no=invoice_no)
    await state.set_state(StatusUpdateState.waiting_for_status)
    await message.answer(
        booking_line(booking, dashboard.currency) + "\n\nChoose the new status:",
        reply_markup=UIKeyboards.status_picker("stupd"),
    )


@router.callback_query(StatusUpdateState.waiting_for_status, F.data.startswith("stupd:"))
async def cb_apply_status(callback: CallbackQuery, state: FSMContext, dashboard: DashboardSession):
    status = STATUSES[int(callback.data.split(":")[1])]
    data = await state.get_data()

    booking = await booking_service.apply_status_update(
        dashboard.store, dashboard.paths, dashboard.notifier, dashboard.bookings, data["invoice_no"], status
    )
    dashboard.sync()
    await state.clear()
    await callback.message.edit_text(UIMessages.success(f"#{quote(booking.invoice_no)} is now {status_style(status)} {status.value}"))
    await callback.answer()


# --- Search / track ---

@router.callback_query(F.data == "bk_search")
async def cb_search(callback: CallbackQuery, state: FSMContext):
    await state.set_state(BookingSearchState.waiting_for_field)
    items = [(label, f"sf:{field}") for field, label in SEARCH_FIELDS.items()]
    await callback.message.answer(f"{UIEmojis.SEARCH} Search by:", reply_markup=UIKeyboards.menu_grid(items, columns=3))
    await callback.answer()


@router.callback_query(BookingSearchState.waiting_for_field, F.data.startswith("sf:"))
async def cb_search_field(callback: CallbackQuery, state: FSMContext):
    field = callback.data.split(":", 1)[1]
    await state.update_data(search_field=field)
    await state.set_state(BookingSearchState.waiting_for_term)
    await callback.message.edit_text(f"Enter the {SEARCH_FIELDS[field]} to search for:")
    await callback.answer()


@router.message(BookingSearchState.waiting_for_term)
async def process_search_term(message: Message, state: FSMContext, dashboard: DashboardSession):
    data = await state.get_data()
    results = booking_service.search_bookings(dashboard.bookings, data["search_field"], message.text or "")
    await state.clear()

    if not results:
        await message.answer(UIMessages.info_box("No matching repairs found."))
        return
    text = booking_list_text(f"Search Results ({len(results)})", UIEmojis.SEARCH, results, dashboard.currency)
    await message.answer(text, reply_markup=booking_list_keyboard(results))


# --- Job card ---

@router.callback_query(F.data.startswith("job:"))
async def cb_job_card(callback: CallbackQuery, dashboard: DashboardSession):
    booking = get_booking(dashboard, callback.data.split(":")[1])
    await callback.message.edit_text(job_card_text(booking, dashboard.currency), reply_markup=job_card_keyboard(booking))
    await callback.answer()


@router.callback_query(F.data.startswith("notify:"))
async def cb_notify(callback: CallbackQuery, dashboard: DashboardSession):
    booking = get_booking(dashboard, callback.data.split(":")[1])
    booking_service.notify_customer(dashboard.notifier, booking)
    await callback.answer("Customer notified.")


@router.callback_query(F.data.startswith("geninv:"))
async def cb_generate_invoice(callback: CallbackQuery, dashboard: DashboardSession):
    booking = get_booking(dashboard, callback.data.split(":")[1])
    invoice = await generate_invoice_from_repair(
        dashboard.store, dashboard.paths, dashboard.notifier, booking, dashboard.profile
    )
    dashboard.sync()
    await callback.message.edit_text(UIMessages.success(
        f"Invoice <b>#{quote(invoice.invoice_no)}</b> for {format_currency(invoice.total_amount, dashboard.currency)} "
        f"sent. Job moved to {RepairStatus.collected.value}."
    ))
    await callback.answer()


# --- Repair details ---

@router.callback_query(F.data.startswith("rd:"))
async def cb_repair_details(callback: CallbackQuery, state: FSMContext, dashboard: DashboardSession):
    booking = get_booking(dashboard, callback.data.split(":")[1])
    await state.update_data(booking_id=booking.id)
    await state.set_state(RepairDetailsState.waiting_for_fault)
    await callback.message.answer(f"{UIEmojis.TECHNICIAN} Final fault for #{quote(booking.invoice_no)}:")
    await callback.answer()


@router.message(RepairDetailsState.waiting_for_fault)
async def process_fault(message: Message, state: FSMContext):
    await state.update_data(final_fault=(message.text or "").strip())
    await state.set_state(RepairDetailsState.waiting_for_notes)
    await message.answer("Diagnostic notes (or -):")


@router.message(RepairDetailsState.waiting_for_notes)
async def process_notes(message: Message, state: FSMContext):
    notes = (message.text or "").strip()
    await state.update_data(diagnostic_notes="" if notes == SKIP else notes)
    await state.set_state(RepairDetailsState.waiting_for_technician)
    await message.answer("Technician name:")


@router.message(RepairDetailsState.waiting_for_technician)
async def process_technician(message: Message, state: FSMContext):
    await state.update_data(technician=(message.text or "").strip())
    await state.set_state(RepairDetailsState.waiting_for_labor)
    await message.answer("Labor cost (or - for 350):")


@router.message(RepairDetailsState.waiting_for_labor)
async def process_labor(message: Message, state: FSMContext):
    text = (message.text or "").strip()
    await state.update_data(labor_cost=350.0 if text == SKIP else to_number(text))
    await state.set_state(RepairDetailsState.waiting_for_parts)
    await message.answer(
        "Parts used, one per line as <code>name; cost</code> (or - for none):\n"
        "<i>Example: Screen; 900</i>"
    )


def parse_parts(text: str) -> List[RepairPart]:
    parts = []
    for line in (text or "").splitlines():
        line = line.strip()
        if not line or line == SKIP:
            continue
        name, _, cost = line.rpartition(";") if ";" in line else (line, "", "0")
        parts.append(RepairPart(name=name.strip(), cost=cost.strip()))
    return parts


@router.message(RepairDetailsState.waiting_for_parts)
async def process_parts(message: Message, state: FSMContext):
    parts = parse_parts(message.text)
    await state.update_data(parts_used=[p.model_dump() for p in parts])
    await state.set_state(RepairDetailsState.waiting_for_status)
    await message.answer("Final status for this job:", reply_markup=UIKeyboards.status_picker("rdst"))


@router.callback_query(RepairDetailsState.waiting_for_status, F.data.startswith("rdst:"))
async def cb_save_repair_details(callback: CallbackQuery, state: FSMContext, dashboard: DashboardSession):
    data = await state.get_data()
    booking = get_booking(dashboard, data["booking_id"])
    details = RepairDetails(
        final_fault=data.get("final_fault", ""),
        diagnostic_notes=data.get("diagnostic_notes", ""),
        technician=data.get("technician", ""),
        labor_cost=data.get("labor_cost", 350),
        parts_used=data.get("parts_used", []),
        final_status=STATUSES[int(callback.data.split(":")[1])],
    )

    booking = await booking_service.save_repair_details(dashboard.store, dashboard.paths, booking, details)
    dashboard.sync()
    await state.clear()
    logging.info(f"Repair details saved for {booking.invoice_no}")

    await callback.message.edit_text(
        UIMessages.success("Repair details saved.") + "\n" + job_card_text(booking, dashboard.currency),
        reply_markup=job_card_keyboard(booking),
    )
    await callback.answer()
