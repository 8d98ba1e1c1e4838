import logging

from aiogram import Router, F
from aiogram.types import Message, CallbackQuery
from aiogram.filters import CommandStart, Command, StateFilter
from aiogram.fsm.context import FSMContext

from repairdesk.config import Config
from repairdesk.services.dashboard import DashboardSession
from repairdesk.services.subscription_service import activate_subscription, MONTHLY_FEE
from repairdesk.middlewares.subscription import SUBSCRIBE_CALLBACK, gate_text
from repairdesk.utils.ui import (
    UIEmojis, UIMessages, UIKeyboards, quote, MENU_HELP, MENU_BOOKINGS, MENU_INVOICES, MENU_QUOTATIONS, MENU_SETTINGS
)
from repairdesk.handlers import bookings, invoices, quotations, settings

router = Router()


def unavailable_text() -> str:
    return UIMessages.warning("Your session could not be loaded. Send /start to try again.")


@router.message(CommandStart())
async def cmd_start(message: Message, state: FSMContext, dashboard: DashboardSession = None):
    await state.clear()
    if dashboard is None:
        await message.answer(unavailable_text())
        return

    if dashboard.is_gated:
        company = dashboard.profile.company_name if dashboard.profile else ""
        await message.answer(gate_text(company), reply_markup=UIKeyboards.subscribe_button())
        return

    profile = dashboard.profile
    text = UIMessages.header("Repair Desk", UIEmojis.SHOP)
    text += f"Welcome, <b>{quote(profile.company_name)}</b>!\n"
    text += UIMessages.field("Shop ID", f"<code>{dashboard.tenant_id}</code>", escape=False)
    text += UIMessages.field("Plan", profile.plan or "Standard")
    text += UIMessages.section("Navigation")
    text += "Use the menu below to switch between modules.\n"
    await message.answer(text, reply_markup=UIKeyboards.main_reply_keyboard())


@router.message(Command("help"))
@router.message(F.text == MENU_HELP)
async def cmd_help(message: Message):
    text = UIMessages.header("Help", UIEmojis.INFO)
    text += UIMessages.field("Bookings & Repairs", "status board, walk-in check-in, online requests, job cards, tracking")
    text += UIMessages.field("Invoices", "create invoices with line items and VAT, browse history")
    text += UIMessages.field("Quotations & BER", "insurance quotations and BER reports")
    text += UIMessages.field("Settings", "shop details, banking details and currency")
    text += "\n" + UIMessages.info_box("Send /cancel to abandon any form, /id to see your shop ID.")
    await message.answer(text)


@router.message(Command("id"))
async def cmd_id(message: Message):
    await message.answer(f"Your shop ID: <code>{message.from_user.id}</code>")


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext):
    await state.clear()
    await message.answer(UIMessages.info_box("Cancelled."), reply_markup=UIKeyboards.main_reply_keyboard())


@router.callback_query(F.data == "cancel")
async def cb_cancel(callback: CallbackQuery, state: FSMContext):
    await state.clear()
    await callback.message.edit_text(UIMessages.info_box("Cancelled."))
    await callback.answer()


@router.callback_query(F.data == SUBSCRIBE_CALLBACK)
async def cb_subscribe(callback: CallbackQuery, config: Config, dashboard: DashboardSession = None):
    if dashboard is None:
        await callback.answer("Session unavailable.", show_alert=True)
        return
    if not dashboard.is_gated:
        await callback.answer("Your subscription is already active.")
        return

    await callback.answer()
    await callback.message.edit_text(
        f"{UIEmojis.PROCESSING} Processing payment of <b>{MONTHLY_FEE}</b>..."
    )
    await activate_subscription(dashboard.store, dashboard.paths, delay=config.PAYMENT_DELAY_SECONDS)
    dashboard.sync()
    logging.info(f"Tenant {dashboard.tenant_id} subscribed")

    dashboard.notifier.success("Subscription activated! Welcome to PRO.", title="Payment Successful")
    await callback.message.edit_text(UIMessages.success("Subscription active."))
    await callback.message.answer(
        UIMessages.info_box("All modules are now unlocked."),
        reply_markup=UIKeyboards.main_reply_keyboard(),
    )


MODULE_SCREENS = {
    MENU_BOOKINGS: bookings.show_board,
    MENU_INVOICES: invoices.show_invoices,
    MENU_QUOTATIONS: quotations.show_quotations,
    MENU_SETTINGS: settings.show_settings,
}


@router.message(F.text.in_(list(MODULE_SCREENS)), ~StateFilter(None))
async def leave_form(message: Message, state: FSMContext, dashboard: DashboardSession):
    """Sidebar press in the middle of a form: drop the form, open the module"""
    await state.clear()
    await MODULE_SCREENS[message.text](message, state, dashboard)
