import logging
from typing import Callable, Dict, Any, Awaitable
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Message, CallbackQuery
from roomrent.services import notification_service as notifications
from roomrent.services.errors import RentalError, ErrorKind
from roomrent.utils.ui import UIMessages

ERROR_TITLES = {
    ErrorKind.validation: "Invalid data",
    ErrorKind.not_found: "Not found",
    ErrorKind.state_conflict: "Not allowed now",
    ErrorKind.consistency: "Saved with errors",
}


def describe_error(error: RentalError) -> str:
    """User-facing text for a rejected operation."""
    title = ERROR_TITLES.get(error.kind, "Error")
    text = f"<b>{title}</b> ({error.code.value})\n{error.message}"
    if error.kind == ErrorKind.consistency:
        text += "\n\nThe owners have been notified."
    return UIMessages.error(text)


async def _reply(event: TelegramObject, text: str):
    if isinstance(event, Message):
        await event.answer(text)
    elif isinstance(event, CallbackQuery):
        await event.answer(text[:200], show_alert=True)


async def report_error(event: TelegramObject, error: RentalError):
    """Tell the operator why an operation failed; consistency errors also alert the owners."""
    if error.kind == ErrorKind.consistency and notifications.notification_service:
        await notifications.notification_service.report_consistency_error(error)
    await _reply(event, describe_error(error))


class GlobalErrorMiddleware(BaseMiddleware):
    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        try:
            return await handler(event, data)
        except RentalError as e:
            if e.kind == ErrorKind.consistency:
                logging.critical(f"CONSISTENCY: {e.code.value}: {e.message}")
            else:
                logging.info(f"Rejected: {e.kind.value}/{e.code.value}: {e.message}")

            try:
                await report_error(_inner_event(event), e)
            except Exception as send_error:
                logging.warning(f"Failed to report error to user: {send_error}")
            return None
        except Exception as e:
            logging.exception(f"Unhandled exception in bot update: {e}")

            try:
                await _reply(_inner_event(event), UIMessages.warning("<b>Technical error.</b> Please try again later."))
            except Exception as send_error:
                logging.warning(f"Failed to report error to user: {send_error}")

            # Keep polling alive; the exception is logged above
            return None


def _inner_event(event: TelegramObject) -> TelegramObject:
    """Registered as an update middleware; unwrap to the message or callback."""
    return getattr(event, "message", None) or getattr(event, "callback_query", None) or event
