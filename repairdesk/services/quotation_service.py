"""
Insurance quotations and Beyond Economical Repair (BER) reports.

The customer only ever pays the flat deductible; the premium is a mock
figure derived from the estimate.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List

from repairdesk.database.documents import DocumentStore
from repairdesk.database.models import QuotationStatus
from repairdesk.schemas.records import Quotation, ShopProfile
from repairdesk.schemas.validation import QuoteForm, to_number
from repairdesk.services.notification_service import NotificationService
from repairdesk.services.paths import TenantPaths
from repairdesk.services.profile_service import profile_snapshot
from repairdesk.utils.ui import UIMessages, format_currency, quote as escape_html

PREMIUM_RATE = 0.15
DEDUCTIBLE_FLAT = 250.0


@dataclass
class QuoteFigures:
    calculated_premium: float
    total_customer_cost: float


def calculate_quote(repair_cost_estimate) -> QuoteFigures:
    estimate = to_number(repair_cost_estimate)
    return QuoteFigures(calculated_premium=estimate * PREMIUM_RATE, total_customer_cost=DEDUCTIBLE_FLAT)


def quotation_status(is_ber: bool) -> QuotationStatus:
    return QuotationStatus.ber_report if is_ber else QuotationStatus.quote_draft


def build_quotation(form: QuoteForm, profile: ShopProfile | None) -> Quotation:
    figures = calculate_quote(form.repair_cost_estimate)
    return Quotation(
        **form.model_dump(),
        calculated_premium=figures.calculated_premium,
        total_customer_cost=figures.total_customer_cost,
        generated_date=datetime.now(timezone.utc).isoformat(),
        status=quotation_status(form.is_ber),
        shop_profile=profile_snapshot(profile, include_vat=False),
    )


async def save_quotation(
    store: DocumentStore,
    paths: TenantPaths,
    notifier: NotificationService,
    form: QuoteForm,
    profile: ShopProfile | None,
) -> Quotation:
    form.check_required()
    quote = build_quotation(form, profile)
    quote.id = await store.add(paths.quotations, quote.to_document())

    logging.info(f"Quotation saved as {quote.status.value} for tenant {paths.tenant_id}")
    notifier.success(f"Quote/Report saved successfully! Status: {quote.status.value}")
    return quote


def render_quotation(quote: Quotation | QuoteForm, profile: ShopProfile, currency: str = None) -> str:
    """Preview text: the BER report or the insurance repair quotation"""
    currency = currency or profile.currency
    figures = calculate_quote(quote.repair_cost_estimate)
    title = "BEYOND ECONOMICAL REPAIR REPORT" if quote.is_ber else "INSURANCE REPAIR QUOTATION"

    text = UIMessages.header(title)
    text += f"<b>{escape_html(profile.company_name)}</b>\n{escape_html(profile.address)}\n"
    text += f"Contact: {escape_html(profile.email_phone)}\n"
    text += f"Reg No: {escape_html(profile.registration_no)} | VAT No: {escape_html(profile.vat_no or 'N/A')}\n"
    text += f"Date: {datetime.now().date().isoformat()}\n"

    if quote.is_ber:
        text += UIMessages.section("DEVICE STATUS: UNREPAIRABLE (BER)")
        text += UIMessages.field("Device Model", quote.device_model)
        text += UIMessages.field("IMEI", quote.imei)
        text += UIMessages.field("Fault", quote.fault_description)
        text += (
            f"\n<b>Technician's Finding:</b> After full diagnostic, the estimated cost of repair "
            f"({format_currency(quote.repair_cost_estimate, currency)} excl. VAT) exceeds the economic "
            f"value threshold set by the insurer. We recommend a replacement device be issued.\n"
        )
        return text

    text += UIMessages.section(f"Customer: {quote.customer_name}")
    text += UIMessages.field("Device Model", quote.device_model)
    text += UIMessages.field("IMEI", quote.imei)
    text += UIMessages.field("Fault Reported", quote.fault_description)
    text += UIMessages.section("Financial Summary (Insurance Claim)")
    text += UIMessages.field("Estimated Repair Cost (Excl. VAT)", format_currency(quote.repair_cost_estimate, currency))
    text += UIMessages.field("Insurance Premium Covered (Mock)", format_currency(figures.calculated_premium, currency))
    text += UIMessages.field("Total Claimable Amount", format_currency(quote.repair_cost_estimate, currency))
    text += UIMessages.field("Customer Deductible Due", format_currency(figures.total_customer_cost, currency))
    text += "\n" + UIMessages.info_box(
        "This quotation is valid for 30 days. Final repair cost may vary upon physical inspection and insurer approval."
    )
    return text


def search_quotations(quotes: Iterable[Quotation], term: str) -> List[Quotation]:
    quotes = list(quotes)
    if not term:
        return quotes
    needle = term.lower()
    return [
        q for q in quotes
        if needle in q.customer_name.lower()
        or needle in q.device_model.lower()
        or needle in q.imei.lower()
    ]
