import pytest
from datetime import date

from roomrent.database.models import ContractStatus, InvoiceStatus
from roomrent.schemas.invoices import InvoiceCreate, InvoicePatch
from roomrent.schemas.pricing import ShortTermDailyPricing, PriceTier
from roomrent.services import invoice_service
from roomrent.services.errors import ErrorCode, ValidationFailed, StateConflict, NotFound

from conftest import OWNER_ID, long_term_pricing


def invoice_data(contract, **overrides) -> InvoiceCreate:
    data = {
        "contractId": contract.id,
        "month": 2,
        "year": 2026,
        "previousElectricIndex": 100,
        "currentElectricIndex": 150,
        "electricityPrice": 3500,
        "rentAmount": 3000000,
        "serviceCharges": [{"name": "Internet", "amount": 50000}],
        "dueDate": "2026-02-05",
    }
    data.update(overrides)
    return InvoiceCreate.model_validate(data)


def test_invoice_arithmetic():
    data = InvoiceCreate.model_validate({
        "contractId": 1, "month": 1, "year": 2026,
        "previousElectricIndex": 1200.5, "currentElectricIndex": 1310.5, "electricityPrice": 3500,
        "previousWaterIndex": 40, "currentWaterIndex": 47, "waterPrice": 20000,
        "rentAmount": 3000000,
        "serviceCharges": [{"name": "Internet", "amount": 169257.65}, {"name": "Trash", "amount": 30000}],
        "dueDate": "2026-01-05",
    })

    totals = invoice_service.calculate_invoice_totals(data)

    assert totals.electricity_used == 110
    assert totals.electricity_amount == 385000
    assert totals.water_used == 7
    assert totals.water_amount == 140000
    assert totals.service_total == 199257.65
    assert totals.total_amount == 3724257.65


def test_meter_going_backwards_is_rejected():
    data = InvoiceCreate.model_validate({
        "contractId": 1, "month": 1, "year": 2026,
        "previousWaterIndex": 40, "currentWaterIndex": 39,
        "dueDate": "2026-01-05",
    })
    with pytest.raises(ValidationFailed) as exc:
        invoice_service.calculate_invoice_totals(data)
    assert exc.value.code == ErrorCode.negative_usage
    assert exc.value.field == "currentWaterIndex"


@pytest.mark.parametrize("paid, due, expected", [
    (0, date(2026, 2, 5), InvoiceStatus.pending),
    (500, date(2026, 2, 5), InvoiceStatus.partial),
    (1000, date(2026, 2, 5), InvoiceStatus.paid),
    (1200, date(2026, 1, 5), InvoiceStatus.paid),
    (0, date(2026, 1, 31), InvoiceStatus.overdue),
    (500, date(2026, 1, 31), InvoiceStatus.overdue),
    (500, date(2026, 2, 1), InvoiceStatus.partial),
])
def test_derive_invoice_status(paid, due, expected):
    assert invoice_service.derive_invoice_status(1000, paid, due, as_of=date(2026, 2, 1)) == expected


@pytest.mark.asyncio
async def test_create_invoice_and_pay_part(async_session, factory):
    """Electricity 50 x 3500, rent and one service line; a partial payment leaves the rest"""
    # Setup
    room = await factory.room()
    contract = await factory.contract(room, await factory.tenant())

    # Test
    invoice = await invoice_service.create_invoice(async_session, OWNER_ID, invoice_data(contract), as_of=date(2026, 2, 1))

    assert invoice.invoice_number.startswith("INV-")
    assert invoice.electricity_amount == 175000
    assert invoice.total_amount == 3225000
    assert invoice.remaining_amount == 3225000
    assert invoice.status == InvoiceStatus.pending.value
    assert invoice.total_amount == (
        invoice.rent_amount
        + (invoice.current_electric_index - invoice.previous_electric_index) * invoice.electricity_price
        + (invoice.current_water_index - invoice.previous_water_index) * invoice.water_price
        + sum(line["amount"] for line in invoice.service_charges)
    )
    assert room.current_electric_index == 150

    invoice = await invoice_service.apply_invoice_payment(async_session, invoice.id, OWNER_ID, 2000000, as_of=date(2026, 2, 1))

    assert invoice.remaining_amount == 1225000
    assert invoice.remaining_amount == invoice.total_amount - invoice.paid_amount
    assert invoice.status == InvoiceStatus.partial.value
    assert invoice.paid_date is None


@pytest.mark.asyncio
async def test_full_payment_marks_paid(async_session, factory):
    contract = await factory.contract(await factory.room(), await factory.tenant())
    invoice = await invoice_service.create_invoice(async_session, OWNER_ID, invoice_data(contract), as_of=date(2026, 2, 1))

    invoice = await invoice_service.apply_invoice_payment(async_session, invoice.id, OWNER_ID, 3225000, as_of=date(2026, 2, 3))

    assert invoice.status == InvoiceStatus.paid.value
    assert invoice.remaining_amount == 0
    assert invoice.paid_date == date(2026, 2, 3)

    with pytest.raises(ValidationFailed) as exc:
        await invoice_service.apply_invoice_payment(async_session, invoice.id, OWNER_ID, -1)
    assert exc.value.code == ErrorCode.invalid_amount


@pytest.mark.asyncio
async def test_one_invoice_per_period(async_session, factory):
    contract = await factory.contract(await factory.room(), await factory.tenant())
    await invoice_service.create_invoice(async_session, OWNER_ID, invoice_data(contract), as_of=date(2026, 2, 1))

    with pytest.raises(StateConflict) as exc:
        await invoice_service.create_invoice(async_session, OWNER_ID, invoice_data(contract), as_of=date(2026, 2, 1))
    assert exc.value.code == ErrorCode.duplicate_invoice

    with pytest.raises(ValidationFailed) as exc:
        await invoice_service.create_invoice(async_session, OWNER_ID, invoice_data(contract, month=13))
    assert exc.value.code == ErrorCode.invalid_billing_period


@pytest.mark.asyncio
async def test_draft_contract_is_not_billed(async_session, factory):
    contract = await factory.contract(await factory.room(), await factory.tenant(), status=ContractStatus.draft.value)

    with pytest.raises(StateConflict) as exc:
        await invoice_service.create_invoice(async_session, OWNER_ID, invoice_data(contract))
    assert exc.value.code == ErrorCode.contract_not_billable


@pytest.mark.asyncio
async def test_build_invoice_from_contract_pricing(async_session, factory):
    """Unit prices and quantities of the contract; one-off lines only on the first invoice"""
    # Setup
    contract = await factory.contract(
        await factory.room(), await factory.tenant(),
        service_charges=[
            {"name": "Internet", "amount": 100000, "quantity": 2, "isRecurring": True, "serviceId": None},
            {"name": "Key card", "amount": 50000, "quantity": 1, "isRecurring": False, "serviceId": None},
        ]
    )

    # Test
    first = await invoice_service.build_invoice_for_contract(
        async_session, contract.id, OWNER_ID, 2, 2026,
        current_electric_index=150, current_water_index=15, as_of=date(2026, 2, 1)
    )

    assert first.rent_amount == 3000000
    assert first.previous_electric_index == 100
    assert first.previous_water_index == 10
    assert first.electricity_price == 3500
    assert [(line.name, line.amount) for line in first.service_charges] == [("Internet", 200000), ("Key card", 50000)]
    assert first.due_date == date(2026, 2, 5)

    invoice = await invoice_service.create_invoice(async_session, OWNER_ID, first, as_of=date(2026, 2, 1))
    assert invoice.total_amount == 3000000 + 50 * 3500 + 5 * 20000 + 250000

    second = await invoice_service.build_invoice_for_contract(
        async_session, contract.id, OWNER_ID, 3, 2026, current_electric_index=180, as_of=date(2026, 3, 1)
    )

    assert second.previous_electric_index == 150
    assert second.current_water_index == 15
    assert [line.name for line in second.service_charges] == ["Internet"]


@pytest.mark.asyncio
async def test_due_day_is_clamped_to_month_end(async_session, factory):
    contract = await factory.contract(
        await factory.room(), await factory.tenant(), pricing=long_term_pricing(payment_due_day=31)
    )

    data = await invoice_service.build_invoice_for_contract(async_session, contract.id, OWNER_ID, 2, 2026)

    assert data.due_date == date(2026, 2, 28)


@pytest.mark.asyncio
async def test_build_short_term_invoice(async_session, factory):
    daily = ShortTermDailyPricing(tiers=(
        PriceTier(fromValue=0, toValue=1, price=500000),
        PriceTier(fromValue=1, toValue=-1, price=900000),
    ))
    contract = await factory.contract(
        await factory.room(pricing=daily), await factory.tenant(), pricing=daily,
        start_date=date(2026, 3, 1), end_date=date(2026, 3, 3)
    )

    data = await invoice_service.build_invoice_for_contract(async_session, contract.id, OWNER_ID, 3, 2026)

    assert data.rent_amount == 900000
    assert data.electricity_price == 0
    assert data.due_date == date(2026, 3, 31)


@pytest.mark.asyncio
async def test_refresh_marks_overdue(async_session, factory):
    contract = await factory.contract(await factory.room(), await factory.tenant())
    invoice = await invoice_service.create_invoice(async_session, OWNER_ID, invoice_data(contract), as_of=date(2026, 2, 1))

    assert await invoice_service.refresh_invoice_statuses(async_session, as_of=date(2026, 2, 5)) == 0
    assert await invoice_service.refresh_invoice_statuses(async_session, as_of=date(2026, 2, 6)) == 1
    assert invoice.status == InvoiceStatus.overdue.value


@pytest.mark.asyncio
async def test_update_and_remove_invoice(async_session, factory):
    contract = await factory.contract(await factory.room(), await factory.tenant())
    invoice = await invoice_service.create_invoice(async_session, OWNER_ID, invoice_data(contract), as_of=date(2026, 2, 1))

    invoice = await invoice_service.update_invoice(
        async_session, invoice.id, OWNER_ID, InvoicePatch(dueDate="2026-01-20", paidAmount=25000), as_of=date(2026, 2, 1)
    )
    assert invoice.status == InvoiceStatus.overdue.value
    assert invoice.remaining_amount == 3200000

    await invoice_service.remove_invoice(async_session, invoice.id, OWNER_ID)
    with pytest.raises(NotFound) as exc:
        await invoice_service.get_invoice(async_session, invoice.id, OWNER_ID)
    assert exc.value.code == ErrorCode.invoice_not_found
