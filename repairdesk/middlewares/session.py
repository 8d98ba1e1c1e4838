from typing import Callable, Dict, Any, Awaitable
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from repairdesk.services.dashboard import SessionRegistry


class TenantSessionMiddleware(BaseMiddleware):
    """
    Injects `dashboard`: the caller's open session, keyed by Telegram user id.

    Updates without a user get `dashboard=None` (degraded, nothing loads).
    """

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        user = data.get("event_from_user")
        if not user:
            data["dashboard"] = None
            return await handler(event, data)

        dashboard = await self.registry.get(user.id)
        # Pick up writes made by earlier updates
        dashboard.sync()
        data["dashboard"] = dashboard
        data["notifier"] = dashboard.notifier
        return await handler(event, data)
