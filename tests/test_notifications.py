import pytest
from datetime import date

from roomrent import cron
from roomrent.middlewares.error import GlobalErrorMiddleware, report_error
from roomrent.services import notification_service as notifications
from roomrent.services.errors import ConsistencyError, ValidationFailed, ErrorCode

from conftest import OWNER_ID


class FakeBot:
    def __init__(self, unreachable=()):
        self.sent = []
        self.unreachable = set(unreachable)

    async def send_message(self, chat_id, text, parse_mode=None):
        if chat_id in self.unreachable:
            raise RuntimeError("chat not found")
        self.sent.append((chat_id, text))


@pytest.mark.asyncio
async def test_unreachable_owner_does_not_block_others():
    bot = FakeBot(unreachable={1})
    service = notifications.NotificationService(bot, owner_ids=[1, 2])

    assert await service.report_consistency_error(ConsistencyError(ErrorCode.side_effect_failed, "Contract 7 create")) == 1
    assert bot.sent[0][0] == 2
    assert "Contract 7 create" in bot.sent[0][1]
    assert await service.report_expired_contracts([]) == 0


@pytest.mark.asyncio
async def test_error_middleware_alerts_owners_on_consistency_error(monkeypatch):
    bot = FakeBot()
    monkeypatch.setattr(notifications, "notification_service", notifications.NotificationService(bot, owner_ids=[OWNER_ID]))
    middleware = GlobalErrorMiddleware()

    async def broken(event, data):
        raise ConsistencyError(ErrorCode.side_effect_failed, "Contract 3 activate")

    async def rejected(event, data):
        raise ValidationFailed(ErrorCode.missing_start_date)

    assert await middleware(broken, None, {}) is None
    assert await middleware(rejected, None, {}) is None
    assert len(bot.sent) == 1
    assert "Consistency error" in bot.sent[0][1]


@pytest.mark.asyncio
async def test_daily_job_reports_expired_contracts(session_maker, factory, monkeypatch):
    bot = FakeBot()
    monkeypatch.setattr(notifications, "notification_service", notifications.NotificationService(bot, owner_ids=[OWNER_ID]))
    contract = await factory.contract(await factory.room(), await factory.tenant(), end_date=date(2026, 5, 31))

    await cron.daily_lifecycle_job(session_factory=session_maker, as_of=date(2026, 6, 1))

    assert bot.sent == [(OWNER_ID, f"📦 <b>Contracts expired</b>: #{contract.id}\nRooms are AVAILABLE again.")]


@pytest.mark.asyncio
async def test_rejected_results_alert_owners_only_on_consistency(monkeypatch):
    bot = FakeBot()
    monkeypatch.setattr(notifications, "notification_service", notifications.NotificationService(bot, owner_ids=[OWNER_ID]))

    await report_error(None, ValidationFailed(ErrorCode.missing_start_date))
    assert bot.sent == []

    await report_error(None, ConsistencyError(ErrorCode.side_effect_failed, "Contract 9 terminate"))
    assert len(bot.sent) == 1
    assert "Contract 9 terminate" in bot.sent[0][1]
