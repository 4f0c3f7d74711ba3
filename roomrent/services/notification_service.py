import logging
from typing import Iterable, List, Optional
from aiogram import Bot

from roomrent.config import config
from roomrent.services.errors import RentalError


class NotificationService:
    """Telegram messages to property owners about events that need their attention."""

    def __init__(self, bot: Bot, owner_ids: Optional[List[int]] = None):
        self.bot = bot
        self.owner_ids = list(owner_ids if owner_ids is not None else config.OWNER_IDS)

    async def notify_owners(self, text: str) -> int:
        """Send to every owner; delivery failures are logged per owner. Returns how many were reached."""
        sent = 0
        for owner_id in self.owner_ids:
            try:
                await self.bot.send_message(owner_id, text, parse_mode="HTML")
                sent += 1
            except Exception as e:
                logging.warning(f"Failed to notify owner {owner_id}: {e}")
        return sent

    async def report_consistency_error(self, error: RentalError) -> int:
        text = (
            "⚠️ <b>Consistency error</b>\n"
            f"{error.message}\n"
            "Room or tenant status no longer matches the contract. Manual check required."
        )
        return await self.notify_owners(text)

    async def report_expired_contracts(self, contract_ids: Iterable[int]) -> int:
        ids = ", ".join(f"#{i}" for i in contract_ids)
        if not ids:
            return 0
        return await self.notify_owners(f"📦 <b>Contracts expired</b>: {ids}\nRooms are AVAILABLE again.")


notification_service = None

def setup_notifications(bot: Bot, owner_ids: Optional[List[int]] = None):
    global notification_service
    notification_service = NotificationService(bot, owner_ids)
