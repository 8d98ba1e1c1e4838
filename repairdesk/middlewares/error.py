import logging
from typing import Callable, Dict, Any, Awaitable
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Update
from pydantic import ValidationError

from repairdesk.database.documents import DocumentNotFound, StoreError
from repairdesk.schemas.validation import FormValidationError
from repairdesk.services.booking_service import BookingNotFound
from repairdesk.utils.ui import UIMessages, quote


def describe_error(exc: Exception) -> str:
    """User-facing text for an exception raised by a handler"""
    if isinstance(exc, (FormValidationError, BookingNotFound)):
        return UIMessages.error(quote(str(exc)))
    if isinstance(exc, ValidationError):
        first = exc.errors()[0]
        return UIMessages.error(f"Invalid value for {quote('.'.join(map(str, first['loc'])) or 'input')}: {quote(first['msg'])}")
    if isinstance(exc, DocumentNotFound):
        return UIMessages.error("That record no longer exists.")
    if isinstance(exc, StoreError):
        return UIMessages.error(f"Failed to save changes. Error: {quote(exc)}")
    return (
        "⚠️ <b>A technical error occurred.</b>\n\n"
        "Please try the action again later."
    )


class GlobalErrorMiddleware(BaseMiddleware):
    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        try:
            return await handler(event, data)
        except (FormValidationError, BookingNotFound, ValidationError) as e:
            # Rejected input: nothing was written
            logging.info(f"Rejected input: {e}")
            await self._reply(event, describe_error(e))
            return None
        except Exception as e:
            logging.exception(f"Unhandled exception in bot update: {e}")
            await self._reply(event, describe_error(e))
            # Swallowed so polling keeps running; the traceback is logged above
            return None

    async def _reply(self, event: TelegramObject, text: str):
        message = event.message if isinstance(event, Update) else None
        callback = event.callback_query if isinstance(event, Update) else None
        try:
            if message:
                await message.answer(text)
            elif callback:
                await callback.answer()
                if callback.message:
                    await callback.message.answer(text)
        except Exception as send_error:
            logging.warning(f"Could not deliver error message: {send_error}")
