from typing import List

from aiogram import Router, F
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup
from aiogram.fsm.context import FSMContext

from repairdesk.database.models import InvoiceStatus
from repairdesk.schemas.records import Invoice
from repairdesk.services.dashboard import DashboardSession, Module
from repairdesk.services.invoice_service import InvoiceDraft, save_invoice, search_invoices
from repairdesk.states import InvoiceState, InvoiceSearchState
from repairdesk.utils.ui import (
    UIEmojis, UIMessages, UIKeyboards, MENU_INVOICES, quote, format_currency, get_invoice_badge
)
from repairdesk.handlers.forms import INVOICE_STEPS, SKIP, start_form, collect_step

router = Router()

HISTORY_LIMIT = 20


def invoices_menu() -> InlineKeyboardMarkup:
    return UIKeyboards.menu_grid([
        (f"{UIEmojis.ADD} Create Invoice", "inv_new"),
        (f"{UIEmojis.HISTORY} History", "inv_hist"),
        (f"{UIEmojis.SEARCH} Search", "inv_search"),
    ], columns=2)


def draft_text(draft: InvoiceDraft, currency: str) -> str:
    text = UIMessages.header(f"Invoice #{draft.invoice_no}", UIEmojis.INVOICE)
    text += UIMessages.field("Date", draft.date)
    text += UIMessages.field("Customer", draft.customer_name)
    text += UIMessages.field("Phone", draft.customer_phone)
    text += UIMessages.field("Address", draft.customer_address)
    text += UIMessages.field("Bill to", draft.bill_to)
    text += UIMessages.section("Items")
    if not draft.items:
        text += UIMessages.info_box("No items yet.") + "\n"
    for i, item in enumerate(draft.items, start=1):
        text += (
            f"{i}. {quote(item.description)}: {item.qty:g} x {format_currency(item.unit_price, currency)}"
            f" = {format_currency(item.total, currency)}\n"
        )
    text += UIMessages.section("Totals")
    text += UIMessages.field("Subtotal", format_currency(draft.subtotal, currency))
    vat_label = "VAT (exempt)" if draft.is_vat_exempt else f"VAT ({draft.tax_rate:g}%)"
    text += UIMessages.field(vat_label, format_currency(draft.tax_amount, currency))
    text += UIMessages.field("Total", f"<b>{format_currency(draft.total_amount, currency)}</b>", escape=False)
    return text


def draft_keyboard(draft: InvoiceDraft) -> InlineKeyboardMarkup:
    """One edit/remove pair per line item, then the draft actions"""
    vat = "Charge VAT" if draft.is_vat_exempt else "VAT Exempt"
    items = []
    for i in range(len(draft.items)):
        items.append((f"{UIEmojis.EDIT} Item {i + 1}", f"inv_edit:{i}"))
        items.append((f"{UIEmojis.DELETE} Item {i + 1}", f"inv_rm:{i}"))
    return UIKeyboards.menu_grid(items + [
        (f"{UIEmojis.ADD} Add Item", "inv_item"),
        (f"{UIEmojis.EDIT} Tax Rate", "inv_tax"),
        (f"{UIEmojis.CHECK} {vat}", "inv_vat"),
        (f"{UIEmojis.SAVE} Save Draft", f"inv_save:{InvoiceStatus.draft.value}"),
        (f"{UIEmojis.MESSAGE} Save as Sent", f"inv_save:{InvoiceStatus.sent.value}"),
        (f"{UIEmojis.CANCEL} Cancel", "cancel"),
    ], columns=2)


def invoice_line(invoice: Invoice, currency: str) -> str:
    return (
        f"{get_invoice_badge(invoice.status)} <b>#{quote(invoice.invoice_no)}</b> {quote(invoice.date)} | "
        f"{quote(invoice.customer_name)} | {format_currency(invoice.total_amount, currency)}"
    )


def history_keyboard(invoices: List[Invoice]) -> InlineKeyboardMarkup:
    items = [(f"#{inv.invoice_no}", f"inv:{inv.id}") for inv in invoices[:HISTORY_LIMIT]]
    return UIKeyboards.menu_grid(items, columns=2)


async def load_draft(state: FSMContext) -> InvoiceDraft:
    data = await state.get_data()
    return InvoiceDraft.from_state(data["draft"])


async def show_draft(message: Message, state: FSMContext, draft: InvoiceDraft, currency: str, edit: bool = False):
    await state.update_data(draft=draft.to_state())
    await state.set_state(InvoiceState.editing)
    if edit:
        await message.edit_text(draft_text(draft, currency), reply_markup=draft_keyboard(draft))
    else:
        await message.answer(draft_text(draft, currency), reply_markup=draft_keyboard(draft))


@router.message(F.text == MENU_INVOICES)
async def show_invoices(message: Message, state: FSMContext, dashboard: DashboardSession):
    await state.clear()
    dashboard.switch(Module.invoices)
    text = UIMessages.header("Invoices", UIEmojis.INVOICE)
    text += UIMessages.field("Saved invoices", len(dashboard.invoices))
    await message.answer(text, reply_markup=invoices_menu())


# --- Creation ---

@router.callback_query(F.data == "inv_new")
async def cb_new_invoice(callback: CallbackQuery, state: FSMContext):
    await state.set_state(InvoiceState.filling)
    await start_form(callback.message, state, INVOICE_STEPS)
    await callback.answer()


@router.message(InvoiceState.filling)
async def process_invoice_step(message: Message, state: FSMContext, dashboard: DashboardSession):
    values = await collect_step(message, state, INVOICE_STEPS)
    if values is None:
        return
    profile = dashboard.profile
    draft = InvoiceDraft(banking_details=profile.banking_details if profile else "", **values)
    await show_draft(message, state, draft, dashboard.currency)


ITEM_PROMPT = "Send the item as <code>description; qty; unit price</code>\n<i>Example: Screen replacement; 1; 900</i>"


@router.callback_query(InvoiceState.editing, F.data == "inv_item")
async def cb_add_item(callback: CallbackQuery, state: FSMContext):
    await state.update_data(item_index=None)
    await state.set_state(InvoiceState.waiting_for_item)
    await callback.message.answer(ITEM_PROMPT)
    await callback.answer()


@router.callback_query(InvoiceState.editing, F.data.startswith("inv_edit:"))
async def cb_edit_item(callback: CallbackQuery, state: FSMContext):
    index = int(callback.data.split(":")[1])
    draft = await load_draft(state)
    if index >= len(draft.items):
        await callback.answer("That item is gone.", show_alert=True)
        return
    item = draft.items[index]
    await state.update_data(item_index=index)
    await state.set_state(InvoiceState.waiting_for_item)
    await callback.message.answer(
        f"Item {index + 1}: <code>{quote(item.description)}; {item.qty:g}; {item.unit_price:g}</code>\n"
        f"{ITEM_PROMPT}\n<i>Use - to keep a value.</i>"
    )
    await callback.answer()


def parse_item(text: str) -> dict:
    parts = [p.strip() for p in (text or "").split(";")]
    return {
        "description": parts[0] if parts else "",
        "qty": parts[1] if len(parts) > 1 else 1,
        "unit_price": parts[2] if len(parts) > 2 else 0,
    }


def parse_item_changes(text: str) -> dict:
    """Only the values the user typed; blanks and - keep the current one"""
    keys = ("description", "qty", "unit_price")
    parts = [p.strip() for p in (text or "").split(";")]
    return {key: value for key, value in zip(keys, parts) if value and value != SKIP}


def apply_item(draft: InvoiceDraft, text: str, index: int = None):
    if index is None:
        return draft.add_item(**parse_item(text))
    return draft.update_item(index, **parse_item_changes(text))


@router.message(InvoiceState.waiting_for_item)
async def process_item(message: Message, state: FSMContext, dashboard: DashboardSession):
    data = await state.get_data()
    draft = InvoiceDraft.from_state(data["draft"])
    apply_item(draft, message.text, data.get("item_index"))
    await state.update_data(item_index=None)
    await show_draft(message, state, draft, dashboard.currency)


@router.callback_query(InvoiceState.editing, F.data.startswith("inv_rm:"))
async def cb_remove_item(callback: CallbackQuery, state: FSMContext, dashboard: DashboardSession):
    index = int(callback.data.split(":")[1])
    draft = await load_draft(state)
    if index < len(draft.items):
        draft.remove_item(index)
    await show_draft(callback.message, state, draft, dashboard.currency, edit=True)
    await callback.answer()


@router.callback_query(InvoiceState.editing, F.data == "inv_vat")
async def cb_toggle_vat(callback: CallbackQuery, state: FSMContext, dashboard: DashboardSession):
    draft = await load_draft(state)
    draft.set_vat_exempt(not draft.is_vat_exempt)
    await show_draft(callback.message, state, draft, dashboard.currency, edit=True)
    await callback.answer()


@router.callback_query(InvoiceState.editing, F.data == "inv_tax")
async def cb_tax_rate(callback: CallbackQuery, state: FSMContext):
    await state.set_state(InvoiceState.waiting_for_tax_rate)
    await callback.message.answer("Enter the tax rate in percent:")
    await callback.answer()


@router.message(InvoiceState.waiting_for_tax_rate)
async def process_tax_rate(message: Message, state: FSMContext, dashboard: DashboardSession):
    draft = await load_draft(state)
    draft.set_tax_rate(message.text)
    await show_draft(message, state, draft, dashboard.currency)


@router.callback_query(InvoiceState.editing, F.data.startswith("inv_save:"))
async def cb_save_invoice(callback: CallbackQuery, state: FSMContext, dashboard: DashboardSession):
    status = InvoiceStatus(callback.data.split(":", 1)[1])
    draft = await load_draft(state)
    invoice = await save_invoice(dashboard.store, dashboard.paths, dashboard.notifier, draft, dashboard.profile, status)
    dashboard.sync()
    await state.clear()
    await callback.message.edit_text(
        UIMessages.success(f"Invoice <b>#{quote(invoice.invoice_no)}</b> saved ({invoice.status.value}).")
    )
    await callback.answer()


# --- History ---

@router.callback_query(F.data == "inv_hist")
async def cb_history(callback: CallbackQuery, dashboard: DashboardSession):
    invoices = dashboard.invoices
    text = UIMessages.header(f"Invoice History ({len(invoices)})", UIEmojis.HISTORY)
    if not invoices:
        text += UIMessages.info_box("No invoices have been saved yet.")
    text += "\n".join(invoice_line(inv, dashboard.currency) for inv in invoices[:HISTORY_LIMIT])
    await callback.message.answer(text, reply_markup=history_keyboard(invoices))
    await callback.answer()


@router.callback_query(F.data == "inv_search")
async def cb_search(callback: CallbackQuery, state: FSMContext):
    await state.set_state(InvoiceSearchState.waiting_for_term)
    await callback.message.answer(f"{UIEmojis.SEARCH} Search by invoice no., customer name or phone:")
    await callback.answer()


@router.message(InvoiceSearchState.waiting_for_term)
async def process_search(message: Message, state: FSMContext, dashboard: DashboardSession):
    await state.clear()
    results = search_invoices(dashboard.invoices, (message.text or "").strip())
    if not results:
        await message.answer(UIMessages.info_box("No matching invoices found."))
        return
    text = UIMessages.header(f"Search Results ({len(results)})", UIEmojis.SEARCH)
    text += "\n".join(invoice_line(inv, dashboard.currency) for inv in results[:HISTORY_LIMIT])
    await message.answer(text, reply_markup=history_keyboard(results))


@router.callback_query(F.data.startswith("inv:"))
async def cb_invoice_detail(callback: CallbackQuery, dashboard: DashboardSession):
    invoice_id = callback.data.split(":", 1)[1]
    invoice = next((inv for inv in dashboard.invoices if inv.id == invoice_id), None)
    if invoice is None:
        await callback.answer("Invoice not found.", show_alert=True)
        return

    currency = invoice.shop_profile.get("currency") or dashboard.currency
    draft = InvoiceDraft(
        invoice_no=invoice.invoice_no,
        invoice_date=invoice.date,
        customer_name=invoice.customer_name,
        customer_address=invoice.customer_address,
        customer_phone=invoice.customer_phone,
        bill_to=invoice.bill_to,
        items=invoice.items,
        tax_rate=invoice.tax_rate,
        is_vat_exempt=invoice.is_vat_exempt,
    )
    text = draft_text(draft, currency)
    text += UIMessages.field("Status", f"{get_invoice_badge(invoice.status)} {invoice.status.value}")
    text += UIMessages.field("Banking", invoice.banking_details)
    if invoice.shop_profile:
        text += UIMessages.field("Issued by", invoice.shop_profile.get("company_name"))
    await callback.message.answer(text)
    await callback.answer()
