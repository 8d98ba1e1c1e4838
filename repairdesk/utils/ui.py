from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton, ReplyKeyboardMarkup, KeyboardButton
from aiogram.utils.text_decorations import html_decoration
from typing import List, Tuple

from repairdesk.database.models import RepairStatus, InvoiceStatus
from repairdesk.schemas.validation import CURRENCIES, to_number


def quote(value) -> str:
    """Escape user text for ParseMode.HTML"""
    return html_decoration.quote("" if value is None else str(value))


# ========== UI Constants ==========
class UIEmojis:
    # Main Icons
    MONEY = "💰"
    CHECK = "✅"
    CANCEL = "❌"
    BACK = "◀️"
    INFO = "ℹ️"
    SETTINGS = "⚙️"

    # Actions
    ADD = "➕"
    EDIT = "✏️"
    DELETE = "🗑️"
    SEARCH = "🔍"
    SAVE = "💾"

    # Status
    SUCCESS = "✅"
    ERROR = "❌"
    WARNING = "⚠️"
    PROCESSING = "🔄"

    # Repairs
    WRENCH = "🔧"
    PHONE = "📱"
    PARTS = "🔩"
    TECHNICIAN = "👨‍🔧"
    WALK_IN = "🚶"
    ONLINE = "🌐"

    # Documents
    INVOICE = "🧾"
    DOCUMENT = "📄"
    QUOTE = "📋"
    REPORT = "🛑"

    # Communication
    MESSAGE = "💬"
    BELL = "🔔"

    # Business
    SHOP = "🏪"
    PAYMENT = "💳"
    KEY = "🔑"
    CHART = "📊"
    HISTORY = "📜"


class UIMessages:
    """Formatted message templates"""

    DIVIDER_FULL = "━" * 30

    @staticmethod
    def header(title: str, emoji: str = "") -> str:
        """Create a formatted header"""
        if emoji:
            return f"\n{emoji} <b>{quote(title)}</b>\n{UIMessages.DIVIDER_FULL}\n"
        return f"\n<b>{quote(title)}</b>\n{UIMessages.DIVIDER_FULL}\n"

    @staticmethod
    def section(title: str) -> str:
        return f"\n<b>▪️ {quote(title)}</b>\n"

    @staticmethod
    def field(name: str, value, emoji: str = "", escape: bool = True) -> str:
        """`value` is quoted unless the caller passes ready HTML with escape=False"""
        prefix = f"{emoji} " if emoji else "• "
        if value in (None, ""):
            value = "—"
        elif escape:
            value = quote(value)
        return f"{prefix}<b>{quote(name)}:</b> {value}\n"

    @staticmethod
    def info_box(text: str) -> str:
        return f"ℹ️ <i>{text}</i>"

    @staticmethod
    def success(text: str) -> str:
        return f"✅ {text}"

    @staticmethod
    def error(text: str) -> str:
        return f"❌ {text}"

    @staticmethod
    def warning(text: str) -> str:
        return f"⚠️ {text}"


# --- Sidebar ---

MENU_BOOKINGS = "🔧 Bookings & Repairs"
MENU_INVOICES = "🧾 Invoices"
MENU_QUOTATIONS = "📋 Quotations & BER"
MENU_SETTINGS = "⚙️ Settings"
MENU_HELP = "❔ Help"


class UIKeyboards:
    """Common keyboard layouts"""

    @staticmethod
    def confirm_cancel(
        confirm_text: str = "Confirm",
        cancel_text: str = "Cancel",
        confirm_callback: str = "confirm",
        cancel_callback: str = "cancel"
    ) -> InlineKeyboardMarkup:
        """Confirm/Cancel buttons"""
        return InlineKeyboardMarkup(inline_keyboard=[
            [
                InlineKeyboardButton(text=f"{UIEmojis.CHECK} {confirm_text}", callback_data=confirm_callback),
                InlineKeyboardButton(text=f"{UIEmojis.CANCEL} {cancel_text}", callback_data=cancel_callback)
            ]
        ])

    @staticmethod
    def menu_grid(items: List[Tuple[str, str]], columns: int = 2) -> InlineKeyboardMarkup:
        """Create a grid menu from list of (text, callback_data) tuples"""
        keyboard = []
        row = []

        for text, callback in items:
            row.append(InlineKeyboardButton(text=text, callback_data=callback))
            if len(row) == columns:
                keyboard.append(row)
                row = []

        if row:
            keyboard.append(row)

        return InlineKeyboardMarkup(inline_keyboard=keyboard)

    @staticmethod
    def main_reply_keyboard() -> ReplyKeyboardMarkup:
        """Persistent sidebar with the four modules"""
        keyboard = [
            [KeyboardButton(text=MENU_BOOKINGS), KeyboardButton(text=MENU_INVOICES)],
            [KeyboardButton(text=MENU_QUOTATIONS), KeyboardButton(text=MENU_SETTINGS)],
            [KeyboardButton(text=MENU_HELP)],
        ]
        return ReplyKeyboardMarkup(keyboard=keyboard, resize_keyboard=True)

    @staticmethod
    def status_picker(prefix: str) -> InlineKeyboardMarkup:
        """One button per repair status, callback `{prefix}:{index}`"""
        items = [
            (f"{status_style(s)} {s.value}", f"{prefix}:{i}")
            for i, s in enumerate(RepairStatus.ordered())
        ]
        return UIKeyboards.menu_grid(items, columns=2)

    @staticmethod
    def subscribe_button() -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup(inline_keyboard=[
            [InlineKeyboardButton(text=f"{UIEmojis.PAYMENT} Subscribe Now", callback_data="subscribe_now")]
        ])


# === Helper Functions ===

def format_currency(amount, currency_code: str = "ZAR") -> str:
    """`R 1200.00`; unknown codes fall back to the Rand symbol"""
    _, symbol = CURRENCIES.get(currency_code, ("", "R"))
    return f"{symbol} {to_number(amount):.2f}"


STATUS_STYLES = {
    RepairStatus.new_request: "🆕",
    RepairStatus.confirmed: "🟦",
    RepairStatus.in_progress: "🟨",
    RepairStatus.awaiting_parts: "🟧",
    RepairStatus.testing: "🟪",
    RepairStatus.ready_for_collection: "🟩",
    RepairStatus.collected: "⬜",
    RepairStatus.unable_to_repair: "🟥",
}


def status_style(status) -> str:
    """Badge for a repair status; every status has one"""
    return STATUS_STYLES[RepairStatus(status)]


def get_invoice_badge(status) -> str:
    badges = {
        InvoiceStatus.paid: "🟢",
        InvoiceStatus.draft: "🟡",
        InvoiceStatus.sent: "🔴",
    }
    return badges.get(InvoiceStatus(status), "⚪")


def format_date(value: str) -> str:
    """ISO timestamp -> YYYY-MM-DD"""
    if not value:
        return "—"
    return value[:10]
