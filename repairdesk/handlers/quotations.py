from aiogram import Router, F
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup
from aiogram.fsm.context import FSMContext

from repairdesk.schemas.records import Quotation, ShopProfile
from repairdesk.schemas.validation import QuoteForm
from repairdesk.services.dashboard import DashboardSession, Module
from repairdesk.services.quotation_service import render_quotation, save_quotation, search_quotations
from repairdesk.states import QuoteFormState, QuoteSearchState
from repairdesk.utils.ui import (
    UIEmojis, UIMessages, UIKeyboards, MENU_QUOTATIONS, format_currency, format_date, quote as escape_html
)
from repairdesk.handlers.forms import QUOTE_STEPS, start_form, collect_step

router = Router()

HISTORY_LIMIT = 20


def quotations_menu() -> InlineKeyboardMarkup:
    return UIKeyboards.menu_grid([
        (f"{UIEmojis.QUOTE} New Quotation", "qt_new:quote"),
        (f"{UIEmojis.REPORT} New BER Report", "qt_new:ber"),
        (f"{UIEmojis.HISTORY} History", "qt_hist"),
        (f"{UIEmojis.SEARCH} Search", "qt_search"),
    ], columns=2)


def preview_keyboard(is_ber: bool) -> InlineKeyboardMarkup:
    toggle = "Mark as Quotation" if is_ber else "Mark as BER"
    return UIKeyboards.menu_grid([
        (f"{UIEmojis.SAVE} Save Quote/Report (Draft)", "qt_save"),
        (f"{UIEmojis.EDIT} {toggle}", "qt_ber"),
        (f"{UIEmojis.CANCEL} Cancel", "cancel"),
    ], columns=1)


def quote_line(quote: Quotation, currency: str) -> str:
    icon = UIEmojis.REPORT if quote.is_ber else UIEmojis.QUOTE
    return (
        f"{icon} {format_date(quote.generated_date)} | {escape_html(quote.customer_name)} | {escape_html(quote.device_model)} | "
        f"{quote.status.value} | {format_currency(quote.repair_cost_estimate, currency)}"
    )


@router.message(F.text == MENU_QUOTATIONS)
async def show_quotations(message: Message, state: FSMContext, dashboard: DashboardSession):
    await state.clear()
    dashboard.switch(Module.quotations)
    text = UIMessages.header("Quotations & BER", UIEmojis.QUOTE)
    text += UIMessages.field("Saved documents", len(dashboard.quotations))
    await message.answer(text, reply_markup=quotations_menu())


@router.callback_query(F.data.startswith("qt_new:"))
async def cb_new_quote(callback: CallbackQuery, state: FSMContext):
    await state.set_state(QuoteFormState.filling)
    await start_form(callback.message, state, QUOTE_STEPS, is_ber=callback.data.endswith(":ber"))
    await callback.answer()


async def show_preview(message: Message, form: QuoteForm, profile: ShopProfile, currency: str, edit: bool = False):
    text = render_quotation(form, profile, currency)
    if edit:
        await message.edit_text(text, reply_markup=preview_keyboard(form.is_ber))
    else:
        await message.answer(text, reply_markup=preview_keyboard(form.is_ber))


@router.message(QuoteFormState.filling)
async def process_quote_step(message: Message, state: FSMContext, dashboard: DashboardSession):
    values = await collect_step(message, state, QUOTE_STEPS)
    if values is None:
        return
    data = await state.get_data()
    form = QuoteForm.model_validate({**values, "is_ber": data.get("is_ber", False)})
    form.check_required()

    await state.update_data(quote=form.model_dump())
    await state.set_state(QuoteFormState.preview)
    await show_preview(message, form, dashboard.profile or ShopProfile(), dashboard.currency)


@router.callback_query(QuoteFormState.preview, F.data == "qt_ber")
async def cb_toggle_ber(callback: CallbackQuery, state: FSMContext, dashboard: DashboardSession):
    data = await state.get_data()
    form = QuoteForm.model_validate({**data["quote"], "is_ber": not data["quote"]["is_ber"]})
    await state.update_data(quote=form.model_dump())
    await show_preview(callback.message, form, dashboard.profile or ShopProfile(), dashboard.currency, edit=True)
    await callback.answer()


@router.callback_query(QuoteFormState.preview, F.data == "qt_save")
async def cb_save_quote(callback: CallbackQuery, state: FSMContext, dashboard: DashboardSession):
    data = await state.get_data()
    form = QuoteForm.model_validate(data["quote"])
    quote = await save_quotation(dashboard.store, dashboard.paths, dashboard.notifier, form, dashboard.profile)
    dashboard.sync()
    await state.clear()
    await callback.message.edit_reply_markup(reply_markup=None)
    await callback.message.answer(UIMessages.success(f"Saved as {quote.status.value}."))
    await callback.answer()


@router.callback_query(F.data == "qt_hist")
async def cb_history(callback: CallbackQuery, dashboard: DashboardSession):
    quotes = dashboard.quotations
    text = UIMessages.header(f"Quotation & BER History ({len(quotes)})", UIEmojis.HISTORY)
    if not quotes:
        text += UIMessages.info_box("No quotations or BER reports have been saved yet.")
    text += "\n".join(quote_line(q, dashboard.currency) for q in quotes[:HISTORY_LIMIT])
    await callback.message.answer(text)
    await callback.answer()


@router.callback_query(F.data == "qt_search")
async def cb_search(callback: CallbackQuery, state: FSMContext):
    await state.set_state(QuoteSearchState.waiting_for_term)
    await callback.message.answer(f"{UIEmojis.SEARCH} Search by customer name, device model or IMEI:")
    await callback.answer()


@router.message(QuoteSearchState.waiting_for_term)
async def process_search(message: Message, state: FSMContext, dashboard: DashboardSession):
    await state.clear()
    results = search_quotations(dashboard.quotations, (message.text or "").strip())
    if not results:
        await message.answer(UIMessages.info_box("No matching quotes found."))
        return
    text = UIMessages.header(f"Search Results ({len(results)})", UIEmojis.SEARCH)
    text += "\n".join(quote_line(q, dashboard.currency) for q in results[:HISTORY_LIMIT])
    await message.answer(text)
