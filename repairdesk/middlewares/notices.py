import logging
from typing import Callable, Dict, Any, Awaitable
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from repairdesk.services.notification_service import Notice
from repairdesk.utils.ui import UIEmojis, quote

NOTICE_ICONS = {
    "success": UIEmojis.SUCCESS,
    "error": UIEmojis.ERROR,
    "warning": UIEmojis.WARNING,
    "info": UIEmojis.INFO,
    "status": UIEmojis.BELL,
}


def render_notice(notice: Notice) -> str:
    icon = NOTICE_ICONS.get(notice.kind, UIEmojis.INFO)
    return f"{icon} <b>{quote(notice.title)}</b>\n{quote(notice.text)}"


class NoticeMiddleware(BaseMiddleware):
    """After each handler, sends every queued notice to the chat"""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        try:
            return await handler(event, data)
        finally:
            await self.flush(data)

    async def flush(self, data: Dict[str, Any]):
        dashboard = data.get("dashboard")
        chat = data.get("event_chat")
        bot = data.get("bot")
        if dashboard is None or chat is None or bot is None:
            return
        for notice in dashboard.notifier.drain():
            try:
                await bot.send_message(chat.id, render_notice(notice))
            except Exception as e:
                logging.warning(f"Could not deliver notice '{notice.title}': {e}")
