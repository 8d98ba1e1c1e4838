from aiogram import Router, F
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup
from aiogram.fsm.context import FSMContext

from repairdesk.schemas.records import ShopProfile
from repairdesk.schemas.validation import CURRENCIES
from repairdesk.services.dashboard import DashboardSession, Module
from repairdesk.services.profile_service import update_profile_field
from repairdesk.states import SettingsState
from repairdesk.utils.ui import UIEmojis, UIMessages, UIKeyboards, MENU_SETTINGS

router = Router()

EDITABLE_FIELDS = {
    "company_name": "Company Name",
    "address": "Address",
    "registration_no": "Registration No.",
    "vat_no": "VAT No.",
    "email_phone": "Email / Phone",
    "banking_details": "Banking Details",
}


def settings_text(profile: ShopProfile) -> str:
    text = UIMessages.header("Shop Settings", UIEmojis.SETTINGS)
    for field, label in EDITABLE_FIELDS.items():
        text += UIMessages.field(label, getattr(profile, field))
    name, symbol = CURRENCIES.get(profile.currency, ("Unknown", "R"))
    text += UIMessages.field("Currency", f"{profile.currency} ({name}, {symbol})")
    text += UIMessages.section("Subscription")
    text += UIMessages.field("Status", profile.subscription_status)
    text += UIMessages.field("Plan", profile.plan or "—")
    return text


def settings_keyboard() -> InlineKeyboardMarkup:
    items = [(f"{UIEmojis.EDIT} {label}", f"set:{field}") for field, label in EDITABLE_FIELDS.items()]
    items.append((f"{UIEmojis.MONEY} Currency", "set_currency"))
    return UIKeyboards.menu_grid(items, columns=2)


@router.message(F.text == MENU_SETTINGS)
async def show_settings(message: Message, state: FSMContext, dashboard: DashboardSession):
    await state.clear()
    dashboard.switch(Module.settings)
    await message.answer(settings_text(dashboard.profile or ShopProfile()), reply_markup=settings_keyboard())


@router.callback_query(F.data.startswith("set:"))
async def cb_edit_field(callback: CallbackQuery, state: FSMContext):
    field = callback.data.split(":", 1)[1]
    await state.update_data(field=field)
    await state.set_state(SettingsState.waiting_for_value)
    await callback.message.answer(f"Enter the new {EDITABLE_FIELDS[field]}:")
    await callback.answer()


@router.message(SettingsState.waiting_for_value)
async def process_value(message: Message, state: FSMContext, dashboard: DashboardSession):
    data = await state.get_data()
    profile = await update_profile_field(
        dashboard.store, dashboard.paths, dashboard.profile, data["field"], message.text or ""
    )
    dashboard.sync()
    dashboard.notifier.shop_name = profile.company_name or dashboard.notifier.shop_name
    await state.clear()
    await message.answer(UIMessages.success("Settings saved successfully!"))
    await message.answer(settings_text(profile), reply_markup=settings_keyboard())


@router.callback_query(F.data == "set_currency")
async def cb_currency(callback: CallbackQuery):
    items = [(f"{symbol} {code}: {name}", f"cur:{code}") for code, (name, symbol) in CURRENCIES.items()]
    await callback.message.answer("Choose the currency:", reply_markup=UIKeyboards.menu_grid(items, columns=1))
    await callback.answer()


@router.callback_query(F.data.startswith("cur:"))
async def cb_set_currency(callback: CallbackQuery, dashboard: DashboardSession):
    code = callback.data.split(":", 1)[1]
    profile = await update_profile_field(dashboard.store, dashboard.paths, dashboard.profile, "currency", code)
    dashboard.sync()
    await callback.message.edit_text(UIMessages.success(f"Currency set to {profile.currency}."))
    await callback.answer()
