import logging
from datetime import date
from typing import List, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from roomrent.database.models import Payment, PaymentMethod, InvoiceStatus
from roomrent.schemas.invoices import PaymentCreate
from roomrent.services import invoice_service
from roomrent.services.errors import ValidationFailed, NotFound, ErrorCode

PAYMENT_METHODS = {m.value for m in PaymentMethod}


async def _paid_total(session: AsyncSession, invoice_id: int) -> float:
    stmt = select(func.coalesce(func.sum(Payment.amount), 0)).where(
        Payment.invoice_id == invoice_id,
        Payment.is_deleted == False
    )
    result = await session.execute(stmt)
    return float(result.scalar())


async def record_payment(
    session: AsyncSession,
    owner_id: int,
    data: PaymentCreate,
    received_by: Optional[int] = None,
    as_of: Optional[date] = None
) -> Payment:
    """
    Store a payment against an invoice and re-apply the invoice's paid amount
    as the sum of its payments.
    """
    if data.amount is None or data.amount <= 0:
        raise ValidationFailed(ErrorCode.invalid_amount, "Payment amount must be greater than 0", field="amount")
    if data.payment_method not in PAYMENT_METHODS:
        raise ValidationFailed(ErrorCode.invalid_payment_method, f"Unknown payment method {data.payment_method}", field="paymentMethod")

    invoice = await invoice_service.get_invoice(session, data.invoice_id, owner_id, for_update=True)
    payment_date = data.payment_date or as_of or date.today()

    payment = Payment(
        owner_id=owner_id,
        invoice_id=invoice.id,
        contract_id=invoice.contract_id,
        tenant_id=invoice.tenant_id,
        amount=round(data.amount, 2),
        payment_method=data.payment_method,
        payment_date=payment_date,
        transaction_id=data.transaction_id,
        notes=data.notes,
        received_by=received_by,
    )
    session.add(payment)
    await session.flush()

    paid = await _paid_total(session, invoice.id)
    await invoice_service.apply_invoice_payment(session, invoice.id, owner_id, paid, paid_date=payment_date, as_of=as_of)
    logging.info(f"Payment {payment.id} of {payment.amount} ({data.payment_method}) recorded for invoice {invoice.id}")
    return payment


async def get_payment(session: AsyncSession, payment_id: int, owner_id: int) -> Payment:
    stmt = select(Payment).where(
        Payment.id == payment_id,
        Payment.owner_id == owner_id,
        Payment.is_deleted == False
    )
    result = await session.execute(stmt)
    payment = result.scalar_one_or_none()
    if not payment:
        raise NotFound(ErrorCode.payment_not_found, f"Payment {payment_id} not found")
    return payment


async def list_payments(session: AsyncSession, owner_id: int, invoice_id: Optional[int] = None) -> List[Payment]:
    stmt = select(Payment).where(Payment.owner_id == owner_id, Payment.is_deleted == False)
    if invoice_id:
        stmt = stmt.where(Payment.invoice_id == invoice_id)
    result = await session.execute(stmt.order_by(Payment.payment_date, Payment.id))
    return list(result.scalars().all())


async def remove_payment(session: AsyncSession, payment_id: int, owner_id: int, as_of: Optional[date] = None):
    payment = await get_payment(session, payment_id, owner_id)
    payment.is_deleted = True
    await session.flush()

    paid = await _paid_total(session, payment.invoice_id)
    invoice = await invoice_service.apply_invoice_payment(session, payment.invoice_id, owner_id, paid, as_of=as_of)
    if invoice.status != InvoiceStatus.paid.value:
        invoice.paid_date = None
        await session.commit()
    logging.info(f"Payment {payment_id} removed, invoice {payment.invoice_id} paid {paid}")
