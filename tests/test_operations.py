import logging
import pytest
from datetime import date

from roomrent.database.models import ContractStatus, InvoiceStatus
from roomrent.schemas.contracts import ContractCreate, ContractPatch
from roomrent.schemas.invoices import InvoiceCreate
from roomrent.schemas.pricing import PriceTier
from roomrent.services import operations, room_service
from roomrent.services.errors import ErrorCode, ErrorKind

from conftest import OWNER_ID


@pytest.mark.asyncio
async def test_create_contract_result(async_session, factory):
    room = await factory.room()
    tenant = await factory.tenant()

    result = await operations.create_contract(async_session, OWNER_ID, ContractCreate.model_validate({
        "roomId": room.id, "tenantId": tenant.id, "depositAmount": 0, "startDate": "2026-01-01"
    }))

    assert result.ok
    assert result.value.status == ContractStatus.active.value

    again = await operations.create_contract(async_session, OWNER_ID, ContractCreate.model_validate({
        "roomId": room.id, "tenantId": tenant.id, "depositAmount": 0, "startDate": "2026-01-01"
    }))

    assert not again.ok
    assert again.error.kind == ErrorKind.state_conflict
    assert again.error.code == ErrorCode.room_not_available


@pytest.mark.asyncio
async def test_lifecycle_rejections_are_results(async_session, factory):
    contract = await factory.contract(await factory.room(), await factory.tenant())

    update = await operations.update_contract(async_session, contract.id, OWNER_ID, ContractPatch(notes="x"))
    remove = await operations.remove_contract(async_session, contract.id, OWNER_ID)
    missing = await operations.activate_contract(async_session, 9999, OWNER_ID, None)

    assert update.error.code == ErrorCode.only_draft_editable
    assert remove.error.code == ErrorCode.only_draft_deletable
    assert missing.error.kind == ErrorKind.not_found
    assert missing.error.code == ErrorCode.contract_not_found


@pytest.mark.asyncio
async def test_consistency_errors_are_logged_separately(async_session, factory, monkeypatch, caplog):
    room = await factory.room()
    tenant = await factory.tenant()

    async def broken_set_room_status(*args, **kwargs):
        raise RuntimeError("room store unavailable")

    monkeypatch.setattr(room_service, "set_room_status", broken_set_room_status)

    with caplog.at_level(logging.INFO):
        result = await operations.create_contract(async_session, OWNER_ID, ContractCreate.model_validate({
            "roomId": room.id, "tenantId": tenant.id, "depositAmount": 0, "startDate": "2026-01-01"
        }))

    assert result.error.kind == ErrorKind.consistency
    flagged = [r for r in caplog.records if "CONSISTENCY" in r.getMessage()]
    assert flagged
    assert all(r.levelno >= logging.ERROR for r in flagged)


@pytest.mark.asyncio
async def test_invoice_operations(async_session, factory):
    contract = await factory.contract(await factory.room(), await factory.tenant())
    data = InvoiceCreate(contract_id=contract.id, billing_month=1, billing_year=2026, rent_amount=100, due_date=date(2026, 1, 5))

    created = await operations.create_invoice(async_session, OWNER_ID, data, as_of=date(2026, 1, 1))
    duplicate = await operations.create_invoice(async_session, OWNER_ID, data, as_of=date(2026, 1, 1))
    paid = await operations.apply_invoice_payment(async_session, created.value.id, OWNER_ID, 40, as_of=date(2026, 1, 2))

    assert created.ok
    assert duplicate.error.code == ErrorCode.duplicate_invoice
    assert paid.value.status == InvoiceStatus.partial.value
    assert paid.value.remaining_amount == 60


def test_tier_helpers():
    tiers = [PriceTier(fromValue=0, toValue=2, price=10), PriceTier(fromValue=2, toValue=-1, price=20)]

    assert operations.check_price_tiers(tiers).value is True
    assert operations.price_for_usage(tiers, 5).value == 20

    bad = operations.check_price_tiers(tiers[:1])
    assert bad.value is False
    assert bad.error.code == ErrorCode.missing_terminator
    assert operations.price_for_usage(tiers, -1).error.code == ErrorCode.no_matching_tier
