from typing import Callable, Dict, Any, Awaitable
from aiogram import BaseMiddleware
from aiogram.types import Message, Update

from repairdesk.services.dashboard import DashboardSession
from repairdesk.services.subscription_service import MONTHLY_FEE
from repairdesk.utils.ui import UIEmojis, UIKeyboards, UIMessages, quote

OPEN_COMMANDS = ("/start", "/help", "/id")
SUBSCRIBE_CALLBACK = "subscribe_now"


def gate_text(company_name: str) -> str:
    text = UIMessages.header("Subscription Required", UIEmojis.KEY)
    text += f"<b>{quote(company_name or 'Your shop')}</b> does not have an active subscription.\n\n"
    text += "The PRO plan unlocks bookings, invoices, quotations and settings.\n\n"
    text += UIMessages.field("Monthly fee", MONTHLY_FEE, UIEmojis.PAYMENT)
    return text


class SubscriptionGateMiddleware(BaseMiddleware):
    """Blocks every module without a loaded session or an active subscription"""

    async def __call__(
        self,
        handler: Callable[[Update, Dict[str, Any]], Awaitable[Any]],
        event: Update,
        data: Dict[str, Any]
    ) -> Any:
        dashboard: DashboardSession = data.get("dashboard")
        if dashboard is not None and not dashboard.is_gated:
            return await handler(event, data)

        if event.callback_query and event.callback_query.data == SUBSCRIBE_CALLBACK:
            return await handler(event, data)

        if event.message:
            text = (event.message.text or "").split(maxsplit=1)
            if text and text[0].split("@")[0] in OPEN_COMMANDS:
                return await handler(event, data)
            if dashboard is None:
                await event.message.answer(UIMessages.warning("Your session could not be loaded. Send /start to try again."))
            else:
                await self.send_gate(event.message, dashboard)
            return

        if event.callback_query:
            await event.callback_query.answer(
                "An active subscription is required." if dashboard else "Session unavailable.", show_alert=True
            )
            return

        return await handler(event, data)

    async def send_gate(self, message: Message, dashboard: DashboardSession):
        company = dashboard.profile.company_name if dashboard.profile else ""
        await message.answer(gate_text(company), reply_markup=UIKeyboards.subscribe_button())
