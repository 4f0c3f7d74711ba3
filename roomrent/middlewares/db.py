from typing import Callable, Dict, Any, Awaitable, Optional
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, User
from roomrent.config import config
from roomrent.database.core import AsyncSessionLocal


def owner_scope(user: Optional[User]) -> Optional[int]:
    """
    Owner id that scopes every rental query.
    Owners work on their own data; admins act for the first configured owner.
    """
    if user is None:
        return None
    if user.id in config.OWNER_IDS:
        return user.id
    if user.id in config.ADMIN_IDS and config.OWNER_IDS:
        return config.OWNER_IDS[0]
    return None


class DbSessionMiddleware(BaseMiddleware):
    def __init__(self, session_factory=AsyncSessionLocal):
        self.session_factory = session_factory

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        data["owner_id"] = owner_scope(data.get("event_from_user"))
        async with self.session_factory() as session:
            data["session"] = session
            try:
                result = await handler(event, data)
                # Services commit their own writes; this flushes anything a handler left pending
                await session.commit()
                return result
            except Exception:
                await session.rollback()
                raise
