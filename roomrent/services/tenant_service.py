import logging
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roomrent.database.models import Tenant, TenantStatus
from roomrent.schemas.directory import TenantCreate, TenantPatch
from roomrent.services.code_service import unique_code_for, TENANT_PREFIX
from roomrent.services.errors import NotFound, StateConflict, ErrorCode

# Set only through the contract lifecycle
CONTRACT_STATUSES = {TenantStatus.renting.value, TenantStatus.deposited.value}

# Columns an internal update may touch besides the user-editable ones
INTERNAL_FIELDS = {"status", "current_room_id", "move_in_date", "move_out_date"}
USER_FIELDS = {"full_name", "phone", "email", "permanent_address", "notes", "status"}


async def get_tenant(session: AsyncSession, tenant_id: int, owner_id: int) -> Tenant:
    stmt = select(Tenant).where(
        Tenant.id == tenant_id,
        Tenant.owner_id == owner_id,
        Tenant.is_deleted == False
    )
    result = await session.execute(stmt)
    tenant = result.scalar_one_or_none()
    if not tenant:
        raise NotFound(ErrorCode.tenant_not_found, f"Tenant {tenant_id} not found")
    return tenant


async def list_tenants(session: AsyncSession, owner_id: int, status: Optional[str] = None) -> List[Tenant]:
    stmt = select(Tenant).where(Tenant.owner_id == owner_id, Tenant.is_deleted == False)
    if status:
        stmt = stmt.where(Tenant.status == status)
    result = await session.execute(stmt.order_by(Tenant.id))
    return list(result.scalars().all())


async def create_tenant(session: AsyncSession, owner_id: int, data: TenantCreate, commit: bool = True) -> Tenant:
    """
    Create a tenant in ACTIVE status.
    With commit=False the tenant is only flushed, so a contract can be
    written in the same transaction.
    """
    code = await unique_code_for(session, TENANT_PREFIX, Tenant.code)
    tenant = Tenant(
        owner_id=owner_id,
        code=code,
        full_name=data.full_name,
        phone=data.phone,
        id_card=data.id_card,
        email=data.email,
        permanent_address=data.permanent_address,
        notes=data.notes,
        status=TenantStatus.active.value,
    )
    session.add(tenant)
    if commit:
        await session.commit()
    else:
        await session.flush()
    logging.info(f"Tenant {tenant.id} ({code}) created by owner {owner_id}")
    return tenant


async def update_tenant(session: AsyncSession, tenant_id: int, owner_id: int, changes: dict, internal: bool = False) -> Tenant:
    """
    Apply column changes to a tenant.

    Without `internal`, status may not be set to RENTING/DEPOSITED nor
    changed away from them; those follow the tenant's contract.
    The contract lifecycle passes internal=True.
    """
    tenant = await get_tenant(session, tenant_id, owner_id)

    allowed = USER_FIELDS | INTERNAL_FIELDS if internal else USER_FIELDS
    unknown = set(changes) - allowed
    if unknown:
        raise StateConflict(ErrorCode.tenant_status_locked, f"Fields {sorted(unknown)} cannot be changed here")

    if not internal and "status" in changes:
        new_status = str(changes["status"]).upper()
        if new_status in CONTRACT_STATUSES or tenant.status in CONTRACT_STATUSES:
            raise StateConflict(
                ErrorCode.tenant_status_locked,
                f"Tenant {tenant_id} status {tenant.status} is controlled by a contract",
                field="status"
            )
        changes = dict(changes, status=new_status)

    old_status = tenant.status
    for key, value in changes.items():
        if isinstance(value, TenantStatus):
            value = value.value
        setattr(tenant, key, value)

    await session.commit()
    if tenant.status != old_status:
        logging.info(f"Tenant {tenant_id} status {old_status} -> {tenant.status}")
    return tenant


async def update_tenant_profile(session: AsyncSession, tenant_id: int, owner_id: int, patch: TenantPatch) -> Tenant:
    """User-facing update from a request body."""
    return await update_tenant(session, tenant_id, owner_id, patch.model_dump(exclude_unset=True), internal=False)


async def remove_tenant(session: AsyncSession, tenant_id: int, owner_id: int):
    tenant = await get_tenant(session, tenant_id, owner_id)
    if tenant.status in CONTRACT_STATUSES:
        raise StateConflict(ErrorCode.tenant_in_use, f"Tenant {tenant_id} is {tenant.status}")
    tenant.is_deleted = True
    await session.commit()
    logging.info(f"Tenant {tenant_id} removed by owner {owner_id}")
