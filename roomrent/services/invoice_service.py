"""
Invoice calculation: utility index deltas x unit price, rent and service
lines, with paid/remaining tracking and status derivation.

Service line amounts on an invoice are line totals. Contract service
charges store a unit price and a quantity; `build_invoice_for_contract`
folds the quantity in.
"""
import calendar
import logging
from datetime import date
from typing import List, NamedTuple, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roomrent.database.models import Invoice, InvoiceStatus, Contract, ContractStatus
from roomrent.schemas.invoices import InvoiceCreate, InvoicePatch, InvoiceServiceLine
from roomrent.schemas.pricing import LongTermPricing
from roomrent.services import contract_service, room_service
from roomrent.services.code_service import unique_code_for, INVOICE_PREFIX
from roomrent.services.errors import ValidationFailed, NotFound, StateConflict, ErrorCode
from roomrent.services.pricing_service import resolve_charge, UsageContext


class InvoiceTotals(NamedTuple):
    """Computed amounts of an invoice"""
    electricity_used: float
    electricity_amount: float
    water_used: float
    water_amount: float
    service_total: float
    total_amount: float


def calculate_invoice_totals(data: InvoiceCreate) -> InvoiceTotals:
    """
    Pure arithmetic of an invoice.

    Raises:
        ValidationFailed(NegativeUsage) if a current index is below the previous one
    """
    if data.current_electric_index < data.previous_electric_index:
        raise ValidationFailed(
            ErrorCode.negative_usage,
            f"Electric index {data.current_electric_index} is below previous {data.previous_electric_index}",
            field="currentElectricIndex"
        )
    if data.current_water_index < data.previous_water_index:
        raise ValidationFailed(
            ErrorCode.negative_usage,
            f"Water index {data.current_water_index} is below previous {data.previous_water_index}",
            field="currentWaterIndex"
        )

    electricity_used = data.current_electric_index - data.previous_electric_index
    electricity_amount = round(electricity_used * data.electricity_price, 2)
    water_used = data.current_water_index - data.previous_water_index
    water_amount = round(water_used * data.water_price, 2)
    service_total = round(sum(line.amount for line in data.service_charges), 2)
    total = round(data.rent_amount + electricity_amount + water_amount + service_total, 2)

    return InvoiceTotals(
        electricity_used=electricity_used,
        electricity_amount=electricity_amount,
        water_used=water_used,
        water_amount=water_amount,
        service_total=service_total,
        total_amount=total,
    )


def derive_invoice_status(total_amount: float, paid_amount: float, due_date: date, as_of: Optional[date] = None) -> InvoiceStatus:
    """
    PAID when nothing remains, OVERDUE when something remains past the due
    date, PARTIAL when part is paid, PENDING otherwise.
    """
    as_of = as_of or date.today()
    remaining = round(total_amount - paid_amount, 2)

    if remaining <= 0:
        return InvoiceStatus.paid
    if due_date < as_of:
        return InvoiceStatus.overdue
    if 0 < paid_amount < total_amount:
        return InvoiceStatus.partial
    return InvoiceStatus.pending


def _apply_amounts(invoice: Invoice, as_of: Optional[date] = None):
    invoice.remaining_amount = round(invoice.total_amount - invoice.paid_amount, 2)
    invoice.status = derive_invoice_status(invoice.total_amount, invoice.paid_amount, invoice.due_date, as_of).value


async def get_invoice(session: AsyncSession, invoice_id: int, owner_id: int, for_update: bool = False) -> Invoice:
    stmt = select(Invoice).where(
        Invoice.id == invoice_id,
        Invoice.owner_id == owner_id,
        Invoice.is_deleted == False
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    invoice = result.scalar_one_or_none()
    if not invoice:
        raise NotFound(ErrorCode.invoice_not_found, f"Invoice {invoice_id} not found")
    return invoice


async def list_invoices(session: AsyncSession, owner_id: int, contract_id: Optional[int] = None) -> List[Invoice]:
    stmt = select(Invoice).where(Invoice.owner_id == owner_id, Invoice.is_deleted == False)
    if contract_id:
        stmt = stmt.where(Invoice.contract_id == contract_id)
    result = await session.execute(stmt.order_by(Invoice.billing_year.desc(), Invoice.billing_month.desc()))
    return list(result.scalars().all())


async def _billable_contract(session: AsyncSession, contract_id: int, owner_id: int) -> Contract:
    contract = await contract_service.get_contract(session, contract_id, owner_id)
    if contract.status == ContractStatus.draft.value:
        raise StateConflict(ErrorCode.contract_not_billable, f"Contract {contract_id} is still a DRAFT")
    return contract


def _check_period(month: int, year: int):
    if not 1 <= month <= 12 or year < 1:
        raise ValidationFailed(ErrorCode.invalid_billing_period, f"Invalid billing period {month}/{year}", field="month")


async def _last_invoice(session: AsyncSession, contract_id: int) -> Optional[Invoice]:
    stmt = select(Invoice).where(
        Invoice.contract_id == contract_id,
        Invoice.is_deleted == False
    ).order_by(Invoice.billing_year.desc(), Invoice.billing_month.desc()).limit(1)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_invoice(session: AsyncSession, owner_id: int, data: InvoiceCreate, as_of: Optional[date] = None) -> Invoice:
    """
    Create an invoice for one billing period of a contract.

    Args:
        session: Database session
        owner_id: Owner scope
        data: Period, meter readings, unit prices, rent and service lines
        as_of: Date used for the initial status (default: today)

    Returns:
        The saved Invoice with remainingAmount == totalAmount
    """
    contract = await _billable_contract(session, data.contract_id, owner_id)
    _check_period(data.billing_month, data.billing_year)

    dup_stmt = select(Invoice.id).where(
        Invoice.contract_id == contract.id,
        Invoice.billing_month == data.billing_month,
        Invoice.billing_year == data.billing_year,
        Invoice.is_deleted == False
    ).limit(1)
    dup = await session.execute(dup_stmt)
    if dup.first() is not None:
        raise StateConflict(
            ErrorCode.duplicate_invoice,
            f"Contract {contract.id} already has an invoice for {data.billing_month:02d}/{data.billing_year}"
        )

    totals = calculate_invoice_totals(data)

    number = await unique_code_for(session, INVOICE_PREFIX, Invoice.invoice_number)
    invoice = Invoice(
        owner_id=owner_id,
        contract_id=contract.id,
        room_id=contract.room_id,
        tenant_id=contract.tenant_id,
        invoice_number=number,
        billing_month=data.billing_month,
        billing_year=data.billing_year,
        previous_electric_index=data.previous_electric_index,
        current_electric_index=data.current_electric_index,
        electricity_used=totals.electricity_used,
        electricity_price=data.electricity_price,
        electricity_amount=totals.electricity_amount,
        previous_water_index=data.previous_water_index,
        current_water_index=data.current_water_index,
        water_used=totals.water_used,
        water_price=data.water_price,
        water_amount=totals.water_amount,
        rent_amount=data.rent_amount,
        service_charges=[line.model_dump(by_alias=True) for line in data.service_charges],
        total_amount=totals.total_amount,
        paid_amount=0.0,
        due_date=data.due_date,
        notes=data.notes,
    )
    _apply_amounts(invoice, as_of)
    session.add(invoice)

    # Room meters move forward only
    room = await room_service.get_room(session, contract.room_id, owner_id)
    await room_service.update_room_indexes(
        session, room.id, owner_id,
        electric=max(room.current_electric_index or 0.0, data.current_electric_index),
        water=max(room.current_water_index or 0.0, data.current_water_index),
    )

    await session.commit()
    logging.info(
        f"Invoice {number} for contract {contract.id} {data.billing_month:02d}/{data.billing_year}: "
        f"total {totals.total_amount}"
    )
    return invoice


async def build_invoice_for_contract(
    session: AsyncSession,
    contract_id: int,
    owner_id: int,
    month: int,
    year: int,
    current_electric_index: Optional[float] = None,
    current_water_index: Optional[float] = None,
    as_of: Optional[date] = None
) -> InvoiceCreate:
    """
    Derive an invoice request from the contract's frozen pricing.

    Previous readings come from the contract's last invoice, or the initial
    indexes for the first one. Recurring service charges are billed every
    period, one-off charges only on the first invoice.
    """
    as_of = as_of or date.today()
    contract = await _billable_contract(session, contract_id, owner_id)
    _check_period(month, year)
    config = contract_service.contract_pricing(contract)
    last = await _last_invoice(session, contract.id)

    last_day = calendar.monthrange(year, month)[1]
    if isinstance(config, LongTermPricing):
        rent = resolve_charge(config)
        electricity_price = config.electricity_unit_price or 0.0
        water_price = config.water_unit_price or 0.0
        prev_electric = last.current_electric_index if last else config.initial_electric_index
        prev_water = last.current_water_index if last else config.initial_water_index
        due_date = date(year, month, min(config.payment_due_day, last_day))
    else:
        stay_end = contract.end_date or as_of
        days = max((stay_end - contract.start_date).days, 0)
        rent = resolve_charge(config, UsageContext(hours=days * 24.0, days=float(days)))
        electricity_price = water_price = 0.0
        prev_electric = last.current_electric_index if last else 0.0
        prev_water = last.current_water_index if last else 0.0
        due_date = date(year, month, last_day)

    lines = []
    for charge in contract.service_charges or []:
        if not charge.get("isRecurring", True) and last is not None:
            continue
        quantity = charge.get("quantity") or 1
        lines.append(InvoiceServiceLine(
            name=charge["name"],
            amount=round(charge["amount"] * quantity, 2),
            service_id=charge.get("serviceId"),
        ))

    return InvoiceCreate(
        contract_id=contract.id,
        billing_month=month,
        billing_year=year,
        previous_electric_index=prev_electric,
        current_electric_index=current_electric_index if current_electric_index is not None else prev_electric,
        electricity_price=electricity_price,
        previous_water_index=prev_water,
        current_water_index=current_water_index if current_water_index is not None else prev_water,
        water_price=water_price,
        rent_amount=rent,
        service_charges=lines,
        due_date=due_date,
    )


async def apply_invoice_payment(
    session: AsyncSession,
    invoice_id: int,
    owner_id: int,
    paid_amount: float,
    paid_date: Optional[date] = None,
    as_of: Optional[date] = None
) -> Invoice:
    """Set the total paid on an invoice and re-derive remaining amount and status."""
    if paid_amount is None or paid_amount < 0:
        raise ValidationFailed(ErrorCode.invalid_amount, "paidAmount must be >= 0", field="paidAmount")

    invoice = await get_invoice(session, invoice_id, owner_id, for_update=True)
    invoice.paid_amount = round(paid_amount, 2)
    if paid_date is not None:
        invoice.paid_date = paid_date
    _apply_amounts(invoice, as_of)
    if invoice.status == InvoiceStatus.paid.value and invoice.paid_date is None:
        invoice.paid_date = as_of or date.today()

    await session.commit()
    logging.info(f"Invoice {invoice_id}: paid {invoice.paid_amount} of {invoice.total_amount} -> {invoice.status}")
    return invoice


async def update_invoice(session: AsyncSession, invoice_id: int, owner_id: int, patch: InvoicePatch, as_of: Optional[date] = None) -> Invoice:
    """Edit payment and due-date fields; status is always re-derived."""
    if patch.paid_amount is not None and patch.paid_amount < 0:
        raise ValidationFailed(ErrorCode.invalid_amount, "paidAmount must be >= 0", field="paidAmount")

    invoice = await get_invoice(session, invoice_id, owner_id, for_update=True)
    if patch.paid_amount is not None:
        invoice.paid_amount = round(patch.paid_amount, 2)
    if patch.paid_date is not None:
        invoice.paid_date = patch.paid_date
    if patch.due_date is not None:
        invoice.due_date = patch.due_date
    if patch.notes is not None:
        invoice.notes = patch.notes
    _apply_amounts(invoice, as_of)

    await session.commit()
    return invoice


async def refresh_invoice_statuses(session: AsyncSession, as_of: Optional[date] = None) -> int:
    """Re-derive the status of every open invoice. Returns how many changed."""
    as_of = as_of or date.today()
    stmt = select(Invoice).where(
        Invoice.is_deleted == False,
        Invoice.status != InvoiceStatus.paid.value
    )
    result = await session.execute(stmt)

    changed = 0
    for invoice in result.scalars().all():
        old = invoice.status
        _apply_amounts(invoice, as_of)
        if invoice.status != old:
            changed += 1
            logging.info(f"Invoice {invoice.id} status {old} -> {invoice.status}")

    await session.commit()
    return changed


async def remove_invoice(session: AsyncSession, invoice_id: int, owner_id: int):
    invoice = await get_invoice(session, invoice_id, owner_id, for_update=True)
    invoice.is_deleted = True
    await session.commit()
    logging.info(f"Invoice {invoice_id} removed by owner {owner_id}")
