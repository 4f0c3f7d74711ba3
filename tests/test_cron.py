import pytest
from datetime import date

from roomrent import cron
from roomrent.database.models import ContractStatus, InvoiceStatus, RoomStatus
from roomrent.schemas.invoices import InvoiceCreate
from roomrent.services import contract_service, invoice_service

from conftest import OWNER_ID


async def seed(async_session, factory):
    room = await factory.room()
    contract = await factory.contract(room, await factory.tenant(), end_date=date(2026, 2, 28))
    invoice = await invoice_service.create_invoice(
        async_session, OWNER_ID,
        InvoiceCreate(contract_id=contract.id, billing_month=2, billing_year=2026, rent_amount=3000000, due_date=date(2026, 2, 5)),
        as_of=date(2026, 2, 1)
    )
    return room, contract, invoice


@pytest.mark.asyncio
async def test_daily_job_expires_and_flags_overdue(async_session, session_maker, factory):
    """One run expires the ended contract and marks its unpaid invoice OVERDUE"""
    # Setup
    room, contract, invoice = await seed(async_session, factory)

    # Test
    summary = await cron.daily_lifecycle_job(session_factory=session_maker, as_of=date(2026, 3, 1))

    assert summary == {"expired": [contract.id], "invoices_changed": 1}

    await async_session.refresh(contract)
    await async_session.refresh(room)
    await async_session.refresh(invoice)
    assert contract.status == ContractStatus.expired.value
    assert room.status == RoomStatus.available.value
    assert invoice.status == InvoiceStatus.overdue.value


@pytest.mark.asyncio
async def test_daily_job_continues_after_failed_step(async_session, session_maker, factory, monkeypatch):
    _, _, invoice = await seed(async_session, factory)

    async def broken_expire(*args, **kwargs):
        raise RuntimeError("lock timeout")

    monkeypatch.setattr(contract_service, "expire_contracts", broken_expire)

    summary = await cron.daily_lifecycle_job(session_factory=session_maker, as_of=date(2026, 3, 1))

    assert summary["expired"] == []
    assert summary["invoices_changed"] == 1
    await async_session.refresh(invoice)
    assert invoice.status == InvoiceStatus.overdue.value
