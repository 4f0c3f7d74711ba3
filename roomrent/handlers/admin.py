from aiogram import Router, F
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.filters import Filter, Command, CommandObject
from aiogram.fsm.context import FSMContext
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import ValidationError
import logging
from datetime import datetime, timedelta

from roomrent.config import config
from roomrent.database.models import ContractStatus, PaymentMethod, ServicePriceType
from roomrent.schemas.contracts import ContractActivate
from roomrent.schemas.invoices import InvoicePatch, PaymentCreate
from roomrent.schemas.validation import AmountModel, HoursModel, DateModel
from roomrent.middlewares.error import report_error
from roomrent.services import catalog_service, contract_service, invoice_service, operations, room_service
from roomrent.services.pricing_service import usage_between
from roomrent.states import ActivateContractState, PaymentState
from roomrent.utils.ui import UIEmojis, UIMessages, UIKeyboards, format_contract, format_invoice, format_amount, get_status_badge


class AdminFilter(Filter):
    async def __call__(self, event) -> bool:
        # Works for both Message and CallbackQuery
        if hasattr(event, 'from_user'):
            user_id = event.from_user.id
            return user_id in config.ADMIN_IDS or user_id in config.OWNER_IDS
        return False

router = Router()
router.message.filter(AdminFilter())
router.callback_query.filter(AdminFilter())


def _int_args(command: CommandObject, count: int):
    parts = (command.args or "").split()
    if len(parts) < count or not all(p.isdigit() for p in parts[:count]):
        return None
    return [int(p) for p in parts[:count]], parts[count:]


# --- Contracts ---
@router.message(Command("contracts"))
async def list_contracts(message: Message, command: CommandObject, session: AsyncSession, owner_id: int):
    status = (command.args or "").strip().upper() or None
    if status and status not in {s.value for s in ContractStatus}:
        await message.answer(UIMessages.error(f"Unknown status {status}"))
        return

    contracts = await contract_service.list_contracts(session, owner_id, status)
    if not contracts:
        await message.answer(UIMessages.warning("No contracts yet."))
        return

    text = UIMessages.header("Contracts", UIEmojis.CONTRACT)
    for c in contracts[:30]:
        text += f"{get_status_badge(c.status)} <b>{c.code}</b> (#{c.id}) room {c.room_id}, tenant {c.tenant_id}\n"
    buttons = [(f"#{c.id} {c.status}", f"contract_{c.id}") for c in contracts[:10]]
    await message.answer(text, reply_markup=UIKeyboards.menu_grid(buttons))


async def _send_contract(message: Message, session: AsyncSession, owner_id: int, contract_id: int):
    contract = await contract_service.get_contract(session, contract_id, owner_id)
    kb = None
    if contract.status == ContractStatus.draft.value:
        kb = InlineKeyboardMarkup(inline_keyboard=[[
            InlineKeyboardButton(text=f"{UIEmojis.KEY} Activate", callback_data=f"activate_{contract.id}"),
            InlineKeyboardButton(text=f"{UIEmojis.CANCEL} Delete", callback_data=f"delete_contract_{contract.id}"),
        ]])
    elif contract.status == ContractStatus.active.value:
        kb = InlineKeyboardMarkup(inline_keyboard=[[
            InlineKeyboardButton(text="⛔ Terminate", callback_data=f"terminate_{contract.id}"),
        ]])
    await message.answer(format_contract(contract), reply_markup=kb)


@router.message(Command("contract"))
async def show_contract(message: Message, command: CommandObject, session: AsyncSession, owner_id: int):
    parsed = _int_args(command, 1)
    if not parsed:
        await message.answer("Usage: /contract <id>")
        return
    await _send_contract(message, session, owner_id, parsed[0][0])


@router.callback_query(F.data.startswith("contract_"))
async def show_contract_cb(call: CallbackQuery, session: AsyncSession, owner_id: int):
    contract_id = int(call.data.split("_")[1])
    await _send_contract(call.message, session, owner_id, contract_id)
    await call.answer()


# --- Activation (FSM) ---
async def _start_activation(message: Message, state: FSMContext, contract_id: int):
    await state.update_data(contract_id=contract_id)
    await message.answer(f"{UIEmojis.CALENDAR} Enter the start date (DD.MM.YYYY):")
    await state.set_state(ActivateContractState.waiting_for_start_date)


@router.message(Command("activate"))
async def cmd_activate(message: Message, command: CommandObject, state: FSMContext):
    parsed = _int_args(command, 1)
    if not parsed:
        await message.answer("Usage: /activate <contract id>")
        return
    await _start_activation(message, state, parsed[0][0])


@router.callback_query(F.data.startswith("activate_"))
async def activate_cb(call: CallbackQuery, state: FSMContext):
    await _start_activation(call.message, state, int(call.data.split("_")[1]))
    await call.answer()


@router.message(ActivateContractState.waiting_for_start_date)
async def process_start_date(message: Message, state: FSMContext):
    try:
        start = DateModel(value=message.text).value
    except ValidationError:
        await message.answer("❌ Enter a date like 13.01.2026.")
        return
    await state.update_data(start_date=start.isoformat())
    await message.answer("Enter the end date (DD.MM.YYYY) or '-' for an open-ended contract:")
    await state.set_state(ActivateContractState.waiting_for_end_date)


@router.message(ActivateContractState.waiting_for_end_date)
async def process_end_date(message: Message, state: FSMContext, session: AsyncSession, owner_id: int):
    end = None
    if message.text.strip() != "-":
        try:
            end = DateModel(value=message.text).value
        except ValidationError:
            await message.answer("❌ Enter a date like 13.01.2027 or '-'.")
            return

    data = await state.get_data()
    await state.clear()
    result = await operations.activate_contract(
        session, data["contract_id"], owner_id,
        ContractActivate(start_date=data["start_date"], end_date=end)
    )
    if not result.ok:
        await report_error(message, result.error)
        return
    await message.answer(UIMessages.success(f"Contract {result.value.code} is now ACTIVE."))


# --- Delete / terminate ---
@router.message(Command("delete_contract"))
async def cmd_delete_contract(message: Message, command: CommandObject, session: AsyncSession, owner_id: int):
    parsed = _int_args(command, 1)
    if not parsed:
        await message.answer("Usage: /delete_contract <id>")
        return
    result = await operations.remove_contract(session, parsed[0][0], owner_id)
    if not result.ok:
        await report_error(message, result.error)
        return
    await message.answer(UIMessages.success("Draft contract deleted, room released."))


@router.callback_query(F.data.startswith("delete_contract_"))
async def delete_contract_cb(call: CallbackQuery, session: AsyncSession, owner_id: int):
    contract_id = int(call.data.split("_")[2])
    result = await operations.remove_contract(session, contract_id, owner_id)
    if not result.ok:
        await report_error(call, result.error)
        return
    await call.message.edit_text(UIMessages.success(f"Draft contract #{contract_id} deleted."))
    await call.answer()


@router.message(Command("terminate"))
async def cmd_terminate(message: Message, command: CommandObject, session: AsyncSession, owner_id: int):
    parsed = _int_args(command, 1)
    if not parsed:
        await message.answer("Usage: /terminate <id> [DD.MM.YYYY]")
        return
    (contract_id,), rest = parsed
    end = None
    if rest:
        try:
            end = DateModel(value=rest[0]).value
        except ValidationError:
            await message.answer("❌ Enter a date like 31.12.2026.")
            return
    result = await operations.terminate_contract(session, contract_id, owner_id, end)
    if not result.ok:
        await report_error(message, result.error)
        return
    await message.answer(UIMessages.success(f"Contract {result.value.code} terminated."))


@router.callback_query(F.data.startswith("terminate_"))
async def terminate_cb(call: CallbackQuery, session: AsyncSession, owner_id: int):
    contract_id = int(call.data.split("_")[1])
    result = await operations.terminate_contract(session, contract_id, owner_id)
    if not result.ok:
        await report_error(call, result.error)
        return
    await call.message.edit_text(UIMessages.success(f"Contract {result.value.code} terminated."))
    await call.answer()


# --- Invoices ---
@router.message(Command("invoice"))
async def cmd_invoice(message: Message, command: CommandObject, session: AsyncSession, owner_id: int):
    """/invoice <contract> <month> <year> [electric] [water]"""
    parsed = _int_args(command, 3)
    if not parsed:
        await message.answer("Usage: /invoice <contract id> <month> <year> [electric index] [water index]")
        return
    (contract_id, month, year), rest = parsed
    try:
        readings = [float(r.replace(",", ".")) for r in rest[:2]]
    except ValueError:
        await message.answer("❌ Meter readings must be numbers.")
        return
    electric = readings[0] if len(readings) > 0 else None
    water = readings[1] if len(readings) > 1 else None

    built = await operations.build_invoice_for_contract(session, contract_id, owner_id, month, year, electric, water)
    if not built.ok:
        await report_error(message, built.error)
        return
    result = await operations.create_invoice(session, owner_id, built.value)
    if not result.ok:
        await report_error(message, result.error)
        return
    await message.answer(format_invoice(result.value))


@router.message(Command("invoices"))
async def cmd_invoices(message: Message, command: CommandObject, session: AsyncSession, owner_id: int):
    parsed = _int_args(command, 1)
    contract_id = parsed[0][0] if parsed else None
    invoices = await invoice_service.list_invoices(session, owner_id, contract_id)
    if not invoices:
        await message.answer(UIMessages.warning("No invoices."))
        return
    text = UIMessages.header("Invoices", UIEmojis.INVOICE)
    for inv in invoices[:30]:
        text += (
            f"{get_status_badge(inv.status)} #{inv.id} {inv.billing_month:02d}/{inv.billing_year} "
            f"{format_amount(inv.total_amount)} (left {format_amount(inv.remaining_amount)})\n"
        )
    await message.answer(text)


@router.message(Command("due"))
async def cmd_due(message: Message, command: CommandObject, session: AsyncSession, owner_id: int):
    """/due <invoice> <DD.MM.YYYY>: move the due date; the status follows."""
    parsed = _int_args(command, 1)
    if not parsed or not parsed[1]:
        await message.answer("Usage: /due <invoice id> <DD.MM.YYYY>")
        return
    (invoice_id,), rest = parsed
    try:
        due = DateModel(value=rest[0]).value
    except ValidationError:
        await message.answer("❌ Enter a date like 10.02.2026.")
        return
    result = await operations.update_invoice(session, invoice_id, owner_id, InvoicePatch(due_date=due))
    if not result.ok:
        await report_error(message, result.error)
        return
    await message.answer(format_invoice(result.value))


@router.message(Command("delete_invoice"))
async def cmd_delete_invoice(message: Message, command: CommandObject, session: AsyncSession, owner_id: int):
    parsed = _int_args(command, 1)
    if not parsed:
        await message.answer("Usage: /delete_invoice <invoice id>")
        return
    result = await operations.remove_invoice(session, parsed[0][0], owner_id)
    if not result.ok:
        await report_error(message, result.error)
        return
    await message.answer(UIMessages.success(f"Invoice #{parsed[0][0]} deleted."))


# --- Payments ---
@router.message(Command("pay"))
async def cmd_pay(message: Message, command: CommandObject, state: FSMContext):
    parsed = _int_args(command, 1)
    if not parsed:
        await message.answer("Usage: /pay <invoice id>")
        return
    await state.update_data(invoice_id=parsed[0][0])
    await message.answer(f"{UIEmojis.MONEY} Enter the amount received:")
    await state.set_state(PaymentState.waiting_for_amount)


@router.message(PaymentState.waiting_for_amount)
async def process_payment_amount(message: Message, state: FSMContext):
    try:
        amount = AmountModel(amount=message.text).amount
    except ValidationError:
        await message.answer("❌ Enter a positive number.")
        return
    await state.update_data(amount=amount)
    buttons = [(m.value.replace("_", " ").title(), f"paymethod_{m.value}") for m in PaymentMethod]
    await message.answer("Payment method:", reply_markup=UIKeyboards.menu_grid(buttons))
    await state.set_state(PaymentState.waiting_for_method)


@router.callback_query(PaymentState.waiting_for_method, F.data.startswith("paymethod_"))
async def process_payment_method(call: CallbackQuery, state: FSMContext, session: AsyncSession, owner_id: int):
    method = call.data.split("_", 1)[1]
    data = await state.get_data()
    await state.clear()

    result = await operations.record_payment(
        session, owner_id,
        PaymentCreate(invoice_id=data["invoice_id"], amount=data["amount"], payment_method=method),
        received_by=call.from_user.id
    )
    if not result.ok:
        await report_error(call, result.error)
        return
    invoice = await invoice_service.get_invoice(session, data["invoice_id"], owner_id)
    logging.info(f"Admin {call.from_user.id} recorded {data['amount']} on invoice {invoice.id}")
    await call.message.edit_text(format_invoice(invoice))
    await call.answer(UIMessages.success("Payment recorded"))


# --- Catalog and quotes ---
@router.message(Command("services"))
async def cmd_services(message: Message, command: CommandObject, session: AsyncSession, owner_id: int):
    """/services <building>: services that apply to a building, priced per unit."""
    parsed = _int_args(command, 1)
    if not parsed:
        await message.answer("Usage: /services <building id>")
        return
    services = await catalog_service.services_for_building(session, owner_id, parsed[0][0])
    if not services:
        await message.answer(UIMessages.warning("No services for this building."))
        return
    text = UIMessages.header("Services", UIEmojis.INFO)
    for s in services:
        price = format_amount(catalog_service.service_unit_price(s))
        if s.price_type == ServicePriceType.table.value:
            price += " from"
        text += UIMessages.field(f"{s.name} ({s.code})", f"{price} / {s.unit}")
    await message.answer(text)


@router.message(Command("quote"))
async def cmd_quote(message: Message, command: CommandObject, session: AsyncSession, owner_id: int):
    """/quote <room> <hours>: price a stay starting now from the room template."""
    parts = (command.args or "").split()
    if len(parts) != 2 or not parts[0].isdigit():
        await message.answer("Usage: /quote <room id> <hours>")
        return
    try:
        hours = HoursModel(hours=parts[1]).hours
    except ValidationError:
        await message.answer("❌ Hours must be a non-negative number.")
        return

    start = datetime.now()
    usage = usage_between(start, start + timedelta(hours=hours))
    amount = await room_service.quote_room_charge(session, int(parts[0]), owner_id, usage)
    await message.answer(UIMessages.field(f"Room #{parts[0]}, {hours:g} h", format_amount(amount), UIEmojis.MONEY))
