import pytest

from repairdesk.database.models import RepairStatus, BookingType
from repairdesk.schemas.records import Booking, RepairDetails
from repairdesk.schemas.validation import BookingForm, FormValidationError
from repairdesk.services import booking_service
from repairdesk.services.booking_service import BookingNotFound, TOTAL_REPAIRS


def make_form(**overrides):
    data = {"customer_name": "Thandi", "customer_phone": "0825551234", "device_model": "iPhone 12"}
    data.update(overrides)
    return BookingForm(**data)


async def load_bookings(store, paths):
    return [Booking.model_validate(d.to_dict()) for d in await store.list(paths.bookings)]


@pytest.mark.asyncio
async def test_walk_in_is_confirmed(store, paths, notifier):
    booking = await booking_service.check_in_walk_in(store, paths, notifier, make_form(), invoice_no="INV-1")

    assert booking.status == RepairStatus.confirmed
    assert booking.booking_type == BookingType.walk_in
    stored = await load_bookings(store, paths)
    assert stored[0].invoice_no == "INV-1"
    assert stored[0].repair_details is None
    assert notifier.history[-1].status == "Confirmed"


@pytest.mark.asyncio
async def test_online_request_starts_as_new(store, paths, notifier):
    booking = await booking_service.create_online_request(store, paths, notifier, make_form())

    assert booking.status == RepairStatus.new_request
    assert booking.invoice_no.startswith("REQ-")


@pytest.mark.asyncio
async def test_missing_required_fields_write_nothing(store, paths, notifier):
    with pytest.raises(FormValidationError):
        await booking_service.check_in_walk_in(store, paths, notifier, make_form(customer_phone=""))

    assert await store.list(paths.bookings) == []
    assert notifier.pending() == 0


@pytest.mark.asyncio
async def test_status_update_notifies_customer(store, paths, notifier):
    await booking_service.create_booking(
        store, paths, notifier, make_form(), BookingType.online, invoice_no="REQ-77"
    )
    notifier.drain()
    bookings = await load_bookings(store, paths)

    updated = await booking_service.apply_status_update(
        store, paths, notifier, bookings, "REQ-77", RepairStatus.confirmed
    )

    assert updated.status == RepairStatus.confirmed
    stored = (await load_bookings(store, paths))[0]
    assert stored.status == RepairStatus.confirmed
    assert stored.updated_at

    notices = notifier.drain()
    assert len(notices) == 1
    assert "REQ-77" in notices[0].text
    assert "Confirmed" in notices[0].text
    assert notices[0].recipient == "0825551234"


@pytest.mark.asyncio
async def test_status_update_unknown_invoice(store, paths, notifier):
    with pytest.raises(BookingNotFound):
        await booking_service.apply_status_update(store, paths, notifier, [], "INV-404", RepairStatus.testing)
    with pytest.raises(FormValidationError):
        await booking_service.apply_status_update(store, paths, notifier, [], "  ", RepairStatus.testing)


@pytest.mark.asyncio
async def test_any_transition_is_allowed(store, paths, notifier):
    booking = await booking_service.check_in_walk_in(store, paths, notifier, make_form())
    await booking_service.update_booking_status(store, paths, booking.id, RepairStatus.collected)
    await booking_service.update_booking_status(store, paths, booking.id, RepairStatus.confirmed)

    assert (await load_bookings(store, paths))[0].status == RepairStatus.confirmed


@pytest.mark.asyncio
async def test_save_repair_details(store, paths, notifier):
    booking = await booking_service.check_in_walk_in(store, paths, notifier, make_form())
    details = RepairDetails(
        final_fault="Cracked screen",
        technician="Sipho",
        parts_used=[{"name": "Screen", "cost": "900"}],
        final_status=RepairStatus.ready_for_collection,
    )

    updated = await booking_service.save_repair_details(store, paths, booking, details)

    assert updated.status == RepairStatus.ready_for_collection
    stored = (await load_bookings(store, paths))[0]
    assert stored.repair_details.parts_used[0].cost == 900
    assert stored.repair_details.estimated_cost == 1250


def _booking(n, status):
    return Booking(
        id=str(n), invoice_no=f"INV-{n}", customer_phone=f"08200000{n}", imei=f"35{n}",
        booking_type=BookingType.walk_in, status=status, created_at="2026-01-01T00:00:00+00:00",
    )


def test_grouping_covers_every_booking_once():
    statuses = [RepairStatus.confirmed, RepairStatus.testing, RepairStatus.confirmed, RepairStatus.collected]
    bookings = [_booking(i, s) for i, s in enumerate(statuses)]

    board = booking_service.group_by_status(bookings)

    assert set(board.buckets) == set(RepairStatus)
    assert sum(len(b) for b in board.buckets.values()) == len(bookings)
    assert board.count(RepairStatus.confirmed) == 2
    assert board.count(RepairStatus.awaiting_parts) == 0
    counts = board.counts()
    assert list(counts)[0] == TOTAL_REPAIRS
    assert counts[TOTAL_REPAIRS] == 4


def test_active_columns_exclude_terminal():
    columns = booking_service.group_by_status([]).active_columns()
    assert RepairStatus.collected not in columns
    assert RepairStatus.unable_to_repair not in columns
    assert len(columns) == 6


def test_search_is_case_insensitive_substring():
    bookings = [_booking(1, RepairStatus.testing), _booking(2, RepairStatus.testing)]
    bookings[1].invoice_no = "req-552"

    assert booking_service.search_bookings(bookings, "invoice_no", "REQ") == [bookings[1]]
    assert booking_service.search_bookings(bookings, "customer_phone", "082") == bookings
    assert booking_service.search_bookings(bookings, "imei", "999") == []


def test_empty_term_keeps_bookings_with_blank_field():
    bookings = [_booking(1, RepairStatus.testing), _booking(2, RepairStatus.testing)]
    bookings[1].imei = ""

    assert booking_service.search_bookings(bookings, "imei", "") == bookings
    assert booking_service.search_bookings(bookings, "imei", "35") == [bookings[0]]


def test_search_rejects_unknown_field():
    with pytest.raises(ValueError):
        booking_service.search_bookings([], "customer_name", "x")
