import logging
from datetime import date
from typing import List, Optional, Tuple
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roomrent.database.models import (
    Contract, ContractStatus, Room, RoomStatus, Tenant, TenantStatus, ServicePriceType
)
from roomrent.schemas.contracts import ContractCreate, ContractPatch, ContractActivate, NewTenant, ServiceChargeIn
from roomrent.schemas.directory import TenantCreate
from roomrent.schemas.pricing import (
    pricing_from_payload, pricing_to_payload, merge_pricing_payload, load_pricing, dump_pricing
)
from roomrent.services import room_service, tenant_service, catalog_service
from roomrent.services.code_service import unique_code_for, CONTRACT_PREFIX
from roomrent.services.errors import (
    ValidationFailed, NotFound, StateConflict, ConsistencyError, ErrorCode
)
from roomrent.services.pricing_service import validate_pricing_config

PRICE_EPSILON = 0.01

CREATABLE_STATUSES = {ContractStatus.draft.value, ContractStatus.active.value}


async def get_contract(session: AsyncSession, contract_id: int, owner_id: int, for_update: bool = False) -> Contract:
    stmt = select(Contract).where(
        Contract.id == contract_id,
        Contract.owner_id == owner_id,
        Contract.is_deleted == False
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    contract = result.scalar_one_or_none()
    if not contract:
        raise NotFound(ErrorCode.contract_not_found, f"Contract {contract_id} not found")
    return contract


async def list_contracts(session: AsyncSession, owner_id: int, status: Optional[str] = None) -> List[Contract]:
    stmt = select(Contract).where(Contract.owner_id == owner_id, Contract.is_deleted == False)
    if status:
        stmt = stmt.where(Contract.status == status.upper())
    result = await session.execute(stmt.order_by(Contract.id.desc()))
    return list(result.scalars().all())


def contract_pricing(contract: Contract):
    """Frozen pricing snapshot of a contract."""
    return load_pricing(contract.pricing)


async def _check_service_charges(session: AsyncSession, owner_id: int, charges: List[ServiceChargeIn]):
    for i, charge in enumerate(charges):
        if not charge.name or not charge.name.strip():
            raise ValidationFailed(ErrorCode.invalid_service_charge, f"Service charge {i}: name is required", index=i, field="name")
        if charge.amount is None or charge.amount < 0:
            raise ValidationFailed(ErrorCode.invalid_service_charge, f"Service charge {i}: amount must be >= 0", index=i, field="amount")
        if charge.quantity <= 0:
            raise ValidationFailed(ErrorCode.invalid_service_charge, f"Service charge {i}: quantity must be > 0", index=i, field="quantity")

        if charge.service_id is None:
            continue

        # Catalog entries: name and fixed price must match the catalog, quantity is free
        service = await catalog_service.get_service(session, charge.service_id, owner_id)
        if service.name != charge.name:
            raise ValidationFailed(
                ErrorCode.service_mismatch,
                f"Service charge {i}: name '{charge.name}' does not match service '{service.name}'",
                index=i, field="name"
            )
        if service.price_type == ServicePriceType.fixed.value and abs(charge.amount - service.fixed_price) > PRICE_EPSILON:
            raise ValidationFailed(
                ErrorCode.service_mismatch,
                f"Service charge {i}: amount {charge.amount} does not match price {service.fixed_price}",
                index=i, field="amount"
            )


async def _validate_contract(
    session: AsyncSession,
    owner_id: int,
    tenant_id: Optional[int],
    new_tenant: Optional[NewTenant],
    base_pricing: dict,
    submitted_pricing: dict,
    deposit_amount: Optional[float],
    start_date: Optional[date],
    end_date: Optional[date],
    service_charges: List[ServiceChargeIn],
    is_update: bool = False
) -> Tuple[object, Optional[Tenant]]:
    """
    Run every contract precondition after the room checks, in a fixed order.
    Nothing is written here. Returns the pricing config and the existing tenant.
    """
    # 2. Exactly one tenant source
    if (tenant_id is None) == (new_tenant is None):
        raise ValidationFailed(
            ErrorCode.tenant_specification_invalid,
            "Specify either an existing tenant or a new tenant, not both"
        )

    tenant = None
    if tenant_id is not None:
        # 3. Existing tenant
        tenant = await tenant_service.get_tenant(session, tenant_id, owner_id)
        if not is_update and tenant.status != TenantStatus.active.value:
            raise ValidationFailed(ErrorCode.tenant_not_active, f"Tenant {tenant_id} is {tenant.status}, expected ACTIVE")
    else:
        # 4. New tenant
        if not (new_tenant.full_name and new_tenant.phone and new_tenant.id_card):
            raise ValidationFailed(ErrorCode.incomplete_new_tenant, "New tenant needs full name, phone and ID card")

    # 5. Pricing
    config = pricing_from_payload(merge_pricing_payload(base_pricing, submitted_pricing))
    err = validate_pricing_config(config, is_update=is_update)
    if err:
        raise err

    # 6. Deposit
    if deposit_amount is None:
        raise ValidationFailed(ErrorCode.invalid_deposit, "depositAmount is required", field="depositAmount")
    if deposit_amount < 0:
        raise ValidationFailed(ErrorCode.invalid_deposit, "depositAmount must be >= 0", field="depositAmount")

    # 7. Dates
    if start_date is None:
        raise ValidationFailed(ErrorCode.missing_start_date, "startDate is required", field="startDate")
    if end_date is not None and end_date < start_date:
        raise ValidationFailed(ErrorCode.invalid_date_range, "endDate must not be before startDate", field="endDate")

    # 8. Service charges
    await _check_service_charges(session, owner_id, service_charges)

    return config, tenant


async def _apply_side_effects(
    session: AsyncSession,
    contract: Contract,
    owner_id: int,
    room_status: RoomStatus,
    tenant_changes: dict,
    action: str
):
    """
    Bring room and tenant in line with a contract transition.
    A failure here leaves the contract write in place; it is reported as a
    ConsistencyError and never compensated.
    """
    contract_id, room_id, tenant_id = contract.id, contract.room_id, contract.tenant_id
    try:
        await room_service.set_room_status(session, room_id, owner_id, room_status)
        await tenant_service.update_tenant(session, tenant_id, owner_id, tenant_changes, internal=True)
    except Exception as e:
        await session.rollback()
        logging.critical(
            f"CONSISTENCY: contract {contract_id} {action} was saved but room {room_id} / "
            f"tenant {tenant_id} could not be updated: {e}"
        )
        raise ConsistencyError(
            ErrorCode.side_effect_failed,
            f"Contract {contract_id} {action}: room/tenant status update failed"
        ) from e


def _activation_changes(contract: Contract) -> dict:
    return {
        "status": TenantStatus.renting,
        "current_room_id": contract.room_id,
        "move_in_date": contract.start_date,
        "move_out_date": None,
    }


def _release_changes(move_out_date: Optional[date] = None) -> dict:
    changes = {
        "status": TenantStatus.active,
        "current_room_id": None,
    }
    if move_out_date is not None:
        changes["move_out_date"] = move_out_date
    else:
        changes["move_in_date"] = None
    return changes


async def create_contract(session: AsyncSession, owner_id: int, data: ContractCreate) -> Contract:
    """
    Create a contract (DRAFT or ACTIVE).

    All checks run before any write; the first failure wins:
    room exists, room AVAILABLE, tenant source, tenant, pricing, deposit,
    start date, date range, service charges, status.
    The room row stays locked until the contract is committed.
    """
    # 1. Room
    if data.room_id is None:
        raise NotFound(ErrorCode.room_not_found, "roomId is required")
    room = await room_service.get_room(session, data.room_id, owner_id, for_update=True)
    if room.status != RoomStatus.available.value:
        raise StateConflict(ErrorCode.room_not_available, f"Room {room.id} is {room.status}")

    charges = data.service_charges or []
    config, tenant = await _validate_contract(
        session, owner_id,
        tenant_id=data.tenant_id,
        new_tenant=data.new_tenant,
        base_pricing=pricing_to_payload(room_service.room_pricing(room)),
        submitted_pricing=data.pricing_fields(),
        deposit_amount=data.deposit_amount,
        start_date=data.start_date,
        end_date=data.end_date,
        service_charges=charges,
    )

    # 9. Status
    if data.status not in CREATABLE_STATUSES:
        raise StateConflict(ErrorCode.invalid_transition, f"A contract cannot be created as {data.status}", field="status")

    # Writes
    if tenant is None:
        nt = data.new_tenant
        tenant = await tenant_service.create_tenant(
            session, owner_id,
            TenantCreate(
                full_name=nt.full_name, phone=nt.phone, id_card=nt.id_card,
                email=nt.email, permanent_address=nt.permanent_address
            ),
            commit=False
        )

    code = await unique_code_for(session, CONTRACT_PREFIX, Contract.code)
    contract = Contract(
        owner_id=owner_id,
        code=code,
        room_id=room.id,
        tenant_id=tenant.id,
        status=data.status,
        pricing=dump_pricing(config),
        deposit_amount=data.deposit_amount,
        service_charges=[c.to_record() for c in charges],
        start_date=data.start_date,
        end_date=data.end_date,
        terms=data.terms,
        notes=data.notes,
    )
    session.add(contract)
    await session.commit()
    logging.info(f"Contract {contract.id} ({code}) created as {data.status} for room {room.id}, tenant {tenant.id}")

    if data.status == ContractStatus.active.value:
        await _apply_side_effects(session, contract, owner_id, RoomStatus.occupied, _activation_changes(contract), "create")
    else:
        await _apply_side_effects(
            session, contract, owner_id, RoomStatus.deposited,
            {"status": TenantStatus.deposited, "current_room_id": contract.room_id},
            "create"
        )
    return contract


async def activate_contract(session: AsyncSession, contract_id: int, owner_id: int, data: ContractActivate) -> Contract:
    """DRAFT -> ACTIVE with new dates. An omitted endDate clears the stored one."""
    contract = await get_contract(session, contract_id, owner_id, for_update=True)
    if contract.status != ContractStatus.draft.value:
        raise StateConflict(ErrorCode.not_draft, f"Contract {contract_id} is {contract.status}, expected DRAFT")

    if data.start_date is None:
        raise ValidationFailed(ErrorCode.missing_start_date, "startDate is required", field="startDate")
    if data.end_date is not None and data.end_date < data.start_date:
        raise ValidationFailed(ErrorCode.invalid_date_range, "endDate must not be before startDate", field="endDate")

    contract.status = ContractStatus.active.value
    contract.start_date = data.start_date
    contract.end_date = data.end_date
    await session.commit()
    logging.info(f"Contract {contract_id} activated from {data.start_date}")

    await _apply_side_effects(session, contract, owner_id, RoomStatus.occupied, _activation_changes(contract), "activate")
    return contract


async def update_contract(session: AsyncSession, contract_id: int, owner_id: int, patch: ContractPatch) -> Contract:
    """
    Update a DRAFT contract.
    The patch is merged over the stored values and the full validation runs
    again (tenant status excepted). status=ACTIVE in the patch activates it.
    """
    contract = await get_contract(session, contract_id, owner_id, for_update=True)
    if contract.status != ContractStatus.draft.value:
        raise StateConflict(ErrorCode.only_draft_editable, f"Only DRAFT contracts can be edited (contract {contract_id} is {contract.status})")

    # 1. Room still exists
    await room_service.get_room(session, contract.room_id, owner_id)

    fields = patch.model_fields_set
    deposit_amount = patch.deposit_amount if "deposit_amount" in fields else contract.deposit_amount
    start_date = patch.start_date if "start_date" in fields else contract.start_date
    end_date = patch.end_date if "end_date" in fields else contract.end_date
    if "service_charges" in fields:
        charges = patch.service_charges or []
    else:
        charges = [ServiceChargeIn.model_validate(c) for c in (contract.service_charges or [])]

    config, _ = await _validate_contract(
        session, owner_id,
        tenant_id=contract.tenant_id,
        new_tenant=None,
        base_pricing=pricing_to_payload(contract_pricing(contract)),
        submitted_pricing=patch.pricing_fields(),
        deposit_amount=deposit_amount,
        start_date=start_date,
        end_date=end_date,
        service_charges=charges,
        is_update=True,
    )

    target = patch.status or ContractStatus.draft.value
    if target not in CREATABLE_STATUSES:
        raise StateConflict(ErrorCode.invalid_transition, f"DRAFT contract cannot move to {target}", field="status")

    contract.pricing = dump_pricing(config)
    contract.deposit_amount = deposit_amount
    contract.start_date = start_date
    contract.end_date = end_date
    contract.service_charges = [c.to_record() for c in charges]
    if "terms" in fields:
        contract.terms = patch.terms
    if "notes" in fields:
        contract.notes = patch.notes
    contract.status = target
    await session.commit()
    logging.info(f"Contract {contract_id} updated (status {target})")

    if target == ContractStatus.active.value:
        await _apply_side_effects(session, contract, owner_id, RoomStatus.occupied, _activation_changes(contract), "activate")
    return contract


async def remove_contract(session: AsyncSession, contract_id: int, owner_id: int):
    """Soft-delete a DRAFT contract after releasing its room and tenant."""
    contract = await get_contract(session, contract_id, owner_id, for_update=True)
    if contract.status != ContractStatus.draft.value:
        raise StateConflict(ErrorCode.only_draft_deletable, f"Only DRAFT contracts can be deleted (contract {contract_id} is {contract.status})")

    await _apply_side_effects(session, contract, owner_id, RoomStatus.available, _release_changes(), "delete")

    contract.is_deleted = True
    await session.commit()
    logging.info(f"Contract {contract_id} deleted by owner {owner_id}")


async def terminate_contract(session: AsyncSession, contract_id: int, owner_id: int, end_date: Optional[date] = None) -> Contract:
    """ACTIVE -> TERMINATED; the tenant moves out on `end_date` (default today)."""
    contract = await get_contract(session, contract_id, owner_id, for_update=True)
    if contract.status != ContractStatus.active.value:
        raise StateConflict(ErrorCode.invalid_transition, f"Only ACTIVE contracts can be terminated (contract {contract_id} is {contract.status})")

    end_date = end_date or date.today()
    if end_date < contract.start_date:
        raise ValidationFailed(ErrorCode.invalid_date_range, "endDate must not be before startDate", field="endDate")

    contract.status = ContractStatus.terminated.value
    contract.end_date = end_date
    await session.commit()
    logging.info(f"Contract {contract_id} terminated on {end_date}")

    await _apply_side_effects(session, contract, owner_id, RoomStatus.available, _release_changes(end_date), "terminate")
    return contract


async def expire_contracts(session: AsyncSession, as_of: Optional[date] = None) -> List[int]:
    """
    ACTIVE contracts whose endDate is before `as_of` become EXPIRED and
    release their room and tenant. Returns the expired contract ids.
    """
    as_of = as_of or date.today()
    stmt = select(Contract.id, Contract.owner_id).where(
        Contract.status == ContractStatus.active.value,
        Contract.is_deleted == False,
        Contract.end_date.is_not(None),
        Contract.end_date < as_of
    ).order_by(Contract.id)
    result = await session.execute(stmt)
    due = list(result.all())

    expired, failed = [], []
    for contract_id, owner_id in due:
        # Re-read each row; a failed side effect rolls the session back
        contract = await get_contract(session, contract_id, owner_id, for_update=True)
        if contract.status != ContractStatus.active.value:
            continue
        end_date = contract.end_date
        contract.status = ContractStatus.expired.value
        await session.commit()
        try:
            await _apply_side_effects(session, contract, owner_id, RoomStatus.available, _release_changes(end_date), "expire")
        except ConsistencyError:
            failed.append(contract_id)
            continue
        expired.append(contract_id)

    if failed:
        logging.error(f"Contracts expired with inconsistent room/tenant state: {failed}")
    logging.info(f"Expired {len(expired)} contracts as of {as_of}")
    return expired
