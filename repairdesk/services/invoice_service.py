"""
Invoicing: line-item totals, manual invoice drafts, repair-to-invoice.

Totals are always derived from the items, never edited directly:
    subtotal = sum(qty * unit_price)
    tax      = 0 if VAT exempt else subtotal * tax_rate / 100
    total    = subtotal + tax
"""
import logging
import random
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from repairdesk.database.documents import DocumentStore
from repairdesk.database.models import InvoiceStatus, RepairStatus
from repairdesk.schemas.records import Booking, Invoice, LineItem, RepairDetails, ShopProfile
from repairdesk.schemas.validation import FormValidationError, to_number
from repairdesk.services.booking_service import update_booking_status
from repairdesk.services.notification_service import NotificationService
from repairdesk.services.paths import TenantPaths
from repairdesk.services.profile_service import profile_snapshot

DEFAULT_TAX_RATE = 15.0
REPAIR_TAX_RATE = 15.0


@dataclass
class InvoiceTotals:
    subtotal: float
    tax_amount: float
    total_amount: float


def calculate_totals(items: Iterable[LineItem], tax_rate: float, is_vat_exempt: bool) -> InvoiceTotals:
    subtotal = sum(item.qty * item.unit_price for item in items)
    tax_amount = 0.0 if is_vat_exempt else subtotal * (to_number(tax_rate) / 100)
    return InvoiceTotals(subtotal=subtotal, tax_amount=tax_amount, total_amount=subtotal + tax_amount)


def new_invoice_number() -> str:
    return f"INV-{random.randint(0, 9999)}"


class InvoiceDraft:
    """
    Invoice being composed. Every mutation recomputes the totals.

    Usage:
        draft = InvoiceDraft(customer_name="Jane")
        draft.add_item("Screen", qty=1, unit_price=900)
        draft.set_vat_exempt(True)
        draft.total_amount
    """

    def __init__(
        self,
        invoice_no: Optional[str] = None,
        invoice_date: Optional[str] = None,
        customer_name: str = "",
        customer_address: str = "",
        customer_phone: str = "",
        bill_to: str = "",
        items: Optional[List[LineItem]] = None,
        tax_rate: float = DEFAULT_TAX_RATE,
        is_vat_exempt: bool = False,
        banking_details: str = "",
    ):
        self.invoice_no = invoice_no or new_invoice_number()
        self.date = invoice_date or date.today().isoformat()
        self.customer_name = customer_name
        self.customer_address = customer_address
        self.customer_phone = customer_phone
        self.bill_to = bill_to
        self.items: List[LineItem] = list(items or [])
        self.tax_rate = to_number(tax_rate)
        self.is_vat_exempt = is_vat_exempt
        self.banking_details = banking_details
        self._recalculate()

    def _recalculate(self):
        totals = calculate_totals(self.items, self.tax_rate, self.is_vat_exempt)
        self.subtotal = totals.subtotal
        self.tax_amount = totals.tax_amount
        self.total_amount = totals.total_amount

    def add_item(self, description: str = "", qty=1, unit_price=0) -> LineItem:
        item = LineItem(description=description, qty=qty, unit_price=unit_price)
        self.items.append(item)
        self._recalculate()
        return item

    def update_item(self, index: int, **fields) -> LineItem:
        data = self.items[index].model_dump(exclude={"total"})
        data.update(fields)
        self.items[index] = LineItem.model_validate(data)
        self._recalculate()
        return self.items[index]

    def remove_item(self, index: int):
        del self.items[index]
        self._recalculate()

    def set_tax_rate(self, tax_rate):
        self.tax_rate = to_number(tax_rate)
        self._recalculate()

    def set_vat_exempt(self, is_vat_exempt: bool):
        self.is_vat_exempt = bool(is_vat_exempt)
        self._recalculate()

    def to_invoice(self, status: InvoiceStatus = InvoiceStatus.draft, profile: ShopProfile = None, related_booking_id: str = None) -> Invoice:
        return Invoice(
            invoice_no=self.invoice_no,
            date=self.date,
            customer_name=self.customer_name,
            customer_address=self.customer_address,
            customer_phone=self.customer_phone,
            bill_to=self.bill_to,
            items=self.items,
            subtotal=self.subtotal,
            tax_rate=self.tax_rate,
            tax_amount=self.tax_amount,
            is_vat_exempt=self.is_vat_exempt,
            total_amount=self.total_amount,
            banking_details=self.banking_details or (profile.banking_details if profile else ""),
            status=status,
            related_booking_id=related_booking_id,
            shop_profile=profile_snapshot(profile),
        )

    def to_state(self) -> dict:
        """Plain data for FSM storage"""
        return {
            "invoice_no": self.invoice_no,
            "invoice_date": self.date,
            "customer_name": self.customer_name,
            "customer_address": self.customer_address,
            "customer_phone": self.customer_phone,
            "bill_to": self.bill_to,
            "items": [item.model_dump() for item in self.items],
            "tax_rate": self.tax_rate,
            "is_vat_exempt": self.is_vat_exempt,
            "banking_details": self.banking_details,
        }

    @classmethod
    def from_state(cls, data: dict) -> "InvoiceDraft":
        data = dict(data)
        data["items"] = [LineItem.model_validate(i) for i in data.get("items", [])]
        return cls(**data)


async def save_invoice(
    store: DocumentStore,
    paths: TenantPaths,
    notifier: NotificationService,
    draft: InvoiceDraft,
    profile: ShopProfile,
    status: InvoiceStatus = InvoiceStatus.draft,
) -> Invoice:
    if not draft.customer_name:
        raise FormValidationError("Please fill in the customer name.")
    if not draft.items:
        raise FormValidationError("Add at least one line item.")

    # Recompute before writing; the stored totals must match the items
    draft._recalculate()
    invoice = draft.to_invoice(status=InvoiceStatus(status), profile=profile)
    invoice.id = await store.add(paths.invoices, invoice.to_document())

    logging.info(f"Invoice {invoice.invoice_no} saved ({invoice.status.value}) for tenant {paths.tenant_id}")
    notifier.success("Invoice saved successfully!")
    return invoice


def build_repair_invoice(booking: Booking, details: RepairDetails, profile: ShopProfile) -> Invoice:
    """
    Invoice from finalized repair details: one labor line plus one line
    per priced, named part. VAT is always 15% here.
    """
    labor = LineItem(
        description=f"Labor: {details.final_fault or booking.device_issue}",
        qty=1,
        unit_price=details.labor_cost,
    )
    parts = [
        LineItem(description=f"Part: {part.name}", qty=1, unit_price=part.cost)
        for part in details.parts_used
        if part.cost > 0 and part.name
    ]

    draft = InvoiceDraft(
        invoice_no=f"INV-REP-{booking.invoice_no}",
        customer_name=booking.customer_name,
        customer_address=booking.customer_address or "N/A",
        customer_phone=booking.customer_phone,
        bill_to=booking.device_model,
        items=[labor, *parts],
        tax_rate=REPAIR_TAX_RATE,
        is_vat_exempt=False,
        banking_details=profile.banking_details,
    )
    return draft.to_invoice(status=InvoiceStatus.sent, profile=profile, related_booking_id=booking.id)


async def generate_invoice_from_repair(
    store: DocumentStore,
    paths: TenantPaths,
    notifier: NotificationService,
    booking: Booking,
    profile: ShopProfile,
    details: RepairDetails = None,
) -> Invoice:
    """
    Persist the repair invoice, then force the job to Collected.

    The invoice write and the status write are independent. If the status
    write fails the invoice stays saved and the error propagates.
    """
    if profile is None:
        raise FormValidationError("Shop profile is not loaded yet.")

    details = details or booking.repair_details or RepairDetails(final_status=booking.status)
    invoice = build_repair_invoice(booking, details, profile)
    invoice.id = await store.add(paths.invoices, invoice.to_document())
    logging.info(f"Repair invoice {invoice.invoice_no} generated from booking {booking.id}")

    try:
        await update_booking_status(store, paths, booking.id, RepairStatus.collected)
    except Exception:
        logging.exception(f"Invoice {invoice.invoice_no} saved but booking {booking.id} was not moved to Collected")
        raise

    notifier.send_status_notification(
        booking.customer_phone, booking.customer_name, booking.invoice_no, "Collected (Invoice Sent)"
    )
    notifier.success(
        f"Invoice #{invoice.invoice_no} generated and customer notified.",
        title="Invoice & Status Update Sent!",
    )
    return invoice


def search_invoices(invoices: Iterable[Invoice], term: str) -> List[Invoice]:
    invoices = list(invoices)
    if not term:
        return invoices
    needle = term.lower()
    return [
        inv for inv in invoices
        if needle in inv.invoice_no.lower()
        or needle in inv.customer_name.lower()
        or needle in inv.customer_phone.lower()
    ]
