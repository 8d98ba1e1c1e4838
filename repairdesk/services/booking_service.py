"""
Repair workflow: bookings, status transitions, board grouping, search.

A booking's status is a plain field written directly. No transition is
refused (e.g. Collected -> Confirmed is allowed) so staff can correct
mistakes by hand.
"""
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List

from repairdesk.database.documents import DocumentStore
from repairdesk.database.models import RepairStatus, BookingType
from repairdesk.schemas.records import Booking, RepairDetails
from repairdesk.schemas.validation import BookingForm, FormValidationError
from repairdesk.services.notification_service import NotificationService
from repairdesk.services.paths import TenantPaths, BOOKINGS


class BookingNotFound(LookupError):
    pass


SEARCH_FIELDS = {
    "invoice_no": "Invoice No.",
    "imei": "IMEI",
    "customer_phone": "Phone",
}

INITIAL_STATUS = {
    BookingType.walk_in: RepairStatus.confirmed,
    BookingType.online: RepairStatus.new_request,
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_booking_number(booking_type: BookingType) -> str:
    prefix = "INV" if booking_type == BookingType.walk_in else "REQ"
    return f"{prefix}-{random.randint(0, 9999)}"


# --- Creation ---

async def create_booking(
    store: DocumentStore,
    paths: TenantPaths,
    notifier: NotificationService,
    form: BookingForm,
    booking_type: BookingType,
    invoice_no: str = None,
) -> Booking:
    """Validate, persist and notify; initial status depends on origin"""
    form.check_required()

    booking = Booking(
        **form.model_dump(),
        invoice_no=invoice_no or new_booking_number(booking_type),
        booking_type=booking_type,
        status=INITIAL_STATUS[booking_type],
        created_at=_now(),
    )
    data = booking.to_document()
    data["repair_details"] = {}

    booking.id = await store.add(paths.bookings, data)
    logging.info(f"{booking_type.value} booking {booking.invoice_no} created for tenant {paths.tenant_id}")

    notifier.send_status_notification(
        booking.customer_phone, booking.customer_name, booking.invoice_no, booking.status.value
    )
    return booking


async def check_in_walk_in(store, paths, notifier, form: BookingForm, invoice_no: str = None) -> Booking:
    """Walk-ins are confirmed immediately"""
    return await create_booking(store, paths, notifier, form, BookingType.walk_in, invoice_no)


async def create_online_request(store, paths, notifier, form: BookingForm) -> Booking:
    """Online bookings require confirmation"""
    return await create_booking(store, paths, notifier, form, BookingType.online)


# --- Transitions ---

async def update_booking_status(store: DocumentStore, paths: TenantPaths, booking_id: str, status: RepairStatus):
    status = RepairStatus(status)
    await store.update(paths.document(BOOKINGS, booking_id), {
        "status": status.value,
        "updated_at": _now(),
    })
    logging.info(f"Booking {booking_id} status updated to {status.value}")


def find_by_invoice_no(bookings: Iterable[Booking], invoice_no: str) -> Booking | None:
    for booking in bookings:
        if booking.invoice_no == invoice_no:
            return booking
    return None


async def apply_status_update(
    store: DocumentStore,
    paths: TenantPaths,
    notifier: NotificationService,
    bookings: Iterable[Booking],
    invoice_no: str,
    status: RepairStatus,
) -> Booking:
    """
    Manual "Update Repair Status" tool.

    Looks the job up in the local list by exact invoice number, writes the
    new status and sends the customer a status notification.
    """
    invoice_no = (invoice_no or "").strip()
    if not invoice_no:
        raise FormValidationError("Please enter an Invoice Number.")

    booking = find_by_invoice_no(bookings, invoice_no)
    if not booking:
        raise BookingNotFound(f"No repair found with Invoice Number: {invoice_no}")

    status = RepairStatus(status)
    await update_booking_status(store, paths, booking.id, status)
    notifier.send_status_notification(booking.customer_phone, booking.customer_name, booking.invoice_no, status.value)
    return booking.model_copy(update={"status": status})


async def save_repair_details(store: DocumentStore, paths: TenantPaths, booking: Booking, details: RepairDetails) -> Booking:
    """Store repair details; the job moves to the chosen final status"""
    updated_at = _now()
    await store.update(paths.document(BOOKINGS, booking.id), {
        "repair_details": details.model_dump(mode="json"),
        "status": details.final_status.value,
        "updated_at": updated_at,
    })
    return booking.model_copy(update={
        "repair_details": details,
        "status": details.final_status,
        "updated_at": updated_at,
    })


def notify_customer(notifier: NotificationService, booking: Booking, status: RepairStatus | str = None):
    status = status or booking.status
    label = status.value if isinstance(status, RepairStatus) else str(status)
    return notifier.send_status_notification(booking.customer_phone, booking.customer_name, booking.invoice_no, label)


# --- Board ---

TOTAL_REPAIRS = "Total Repairs"


@dataclass
class StatusBoard:
    buckets: Dict[RepairStatus, List[Booking]] = field(default_factory=dict)
    total: int = 0

    def count(self, status: RepairStatus) -> int:
        return len(self.buckets.get(status, []))

    def counts(self) -> Dict[str, int]:
        """Quick-view counts, Total Repairs first"""
        result = {TOTAL_REPAIRS: self.total}
        for status in RepairStatus.ordered():
            result[status.value] = self.count(status)
        return result

    def active_columns(self) -> List[RepairStatus]:
        return [s for s in RepairStatus.ordered() if not s.is_terminal]


def group_by_status(bookings: Iterable[Booking]) -> StatusBoard:
    """Rebuild every bucket from scratch"""
    board = StatusBoard(buckets={status: [] for status in RepairStatus.ordered()})
    for booking in bookings:
        board.buckets[RepairStatus(booking.status)].append(booking)
    board.total = sum(len(b) for b in board.buckets.values())
    return board


# --- Search ---

def search_bookings(bookings: Iterable[Booking], field_name: str, value: str) -> List[Booking]:
    """Linear case-insensitive substring match on one field"""
    if field_name not in SEARCH_FIELDS:
        raise ValueError(f"Cannot search by {field_name}")
    needle = (value or "").lower()
    results = []
    for booking in bookings:
        candidate = getattr(booking, field_name, None) or ""
        if needle in candidate.lower():
            results.append(booking)
    return results
