import logging
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roomrent.database.models import Room, RoomStatus, Contract, ContractStatus
from roomrent.schemas.directory import RoomCreate, RoomPatch
from roomrent.schemas.pricing import (
    pricing_from_payload, pricing_to_payload, merge_pricing_payload, load_pricing, dump_pricing,
    PRICING_KEYS
)
from roomrent.services import building_service
from roomrent.services.code_service import unique_code_for, ROOM_PREFIX
from roomrent.services.errors import NotFound, StateConflict, ErrorCode
from roomrent.services.pricing_service import validate_pricing_config, resolve_charge, UsageContext

# Statuses an operator may set by hand
MANUAL_STATUSES = {RoomStatus.available.value, RoomStatus.maintenance.value}


async def get_room(session: AsyncSession, room_id: int, owner_id: int, for_update: bool = False) -> Room:
    stmt = select(Room).where(
        Room.id == room_id,
        Room.owner_id == owner_id,
        Room.is_deleted == False
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    room = result.scalar_one_or_none()
    if not room:
        raise NotFound(ErrorCode.room_not_found, f"Room {room_id} not found")
    return room


async def list_rooms(session: AsyncSession, owner_id: int, status: Optional[str] = None) -> List[Room]:
    stmt = select(Room).where(Room.owner_id == owner_id, Room.is_deleted == False)
    if status:
        stmt = stmt.where(Room.status == status)
    result = await session.execute(stmt.order_by(Room.id))
    return list(result.scalars().all())


def room_pricing(room: Room):
    """The room's pricing template as a tagged config."""
    return load_pricing(room.pricing)


async def create_room(session: AsyncSession, owner_id: int, data: RoomCreate) -> Room:
    """
    Create a room with its default pricing template.
    The template is validated the same way contract pricing is.
    """
    await building_service.get_building(session, data.building_id, owner_id)

    config = pricing_from_payload(data.model_dump(by_alias=True, exclude_none=True))
    err = validate_pricing_config(config)
    if err:
        raise err

    code = await unique_code_for(session, ROOM_PREFIX, Room.room_code)
    room = Room(
        owner_id=owner_id,
        building_id=data.building_id,
        room_code=code,
        room_name=data.room_name,
        floor=data.floor,
        area=data.area,
        status=RoomStatus.available.value,
        pricing=dump_pricing(config),
        current_electric_index=getattr(config, "initial_electric_index", 0.0),
        current_water_index=getattr(config, "initial_water_index", 0.0),
        description=data.description,
    )
    session.add(room)
    await building_service.increment_room_count(session, data.building_id, owner_id)
    await session.commit()
    logging.info(f"Room {room.id} ({code}) created in building {data.building_id}")
    return room


async def _controlling_contract(session: AsyncSession, room_id: int) -> Optional[Contract]:
    stmt = select(Contract).where(
        Contract.room_id == room_id,
        Contract.is_deleted == False,
        Contract.status.in_([ContractStatus.draft.value, ContractStatus.active.value])
    ).limit(1)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def update_room(session: AsyncSession, room_id: int, owner_id: int, patch: RoomPatch) -> Room:
    """
    User-facing room update.
    Pricing changes only affect future contracts. Status may only be toggled
    between AVAILABLE and MAINTENANCE while no contract holds the room.
    """
    room = await get_room(session, room_id, owner_id, for_update=True)

    overrides = patch.model_dump(by_alias=True, exclude_none=True)
    if any(k in PRICING_KEYS for k in overrides):
        base = pricing_to_payload(room_pricing(room))
        config = pricing_from_payload(merge_pricing_payload(base, overrides))
        err = validate_pricing_config(config, is_update=True)
        if err:
            raise err
        room.pricing = dump_pricing(config)

    if patch.status is not None:
        status = patch.status.upper()
        if status not in MANUAL_STATUSES:
            raise StateConflict(ErrorCode.room_status_locked, f"Status {status} is set by contracts only", field="status")
        if room.status not in MANUAL_STATUSES or await _controlling_contract(session, room_id):
            raise StateConflict(ErrorCode.room_status_locked, f"Room {room_id} is held by a contract", field="status")
        room.status = status

    if patch.room_name is not None:
        room.room_name = patch.room_name
    if patch.floor is not None:
        room.floor = patch.floor
    if patch.area is not None:
        room.area = patch.area
    if patch.description is not None:
        room.description = patch.description

    await session.commit()
    return room


async def set_room_status(session: AsyncSession, room_id: int, owner_id: int, status: RoomStatus) -> Room:
    """Internal status write used by the contract lifecycle."""
    room = await get_room(session, room_id, owner_id)
    old = room.status
    room.status = status.value
    await session.commit()
    logging.info(f"Room {room_id} status {old} -> {status.value}")
    return room


async def update_room_indexes(session: AsyncSession, room_id: int, owner_id: int, electric: float, water: float) -> Room:
    """Advance the meter readings; flushed only, the caller commits."""
    room = await get_room(session, room_id, owner_id)
    room.current_electric_index = electric
    room.current_water_index = water
    await session.flush()
    return room


async def remove_room(session: AsyncSession, room_id: int, owner_id: int):
    room = await get_room(session, room_id, owner_id, for_update=True)
    if room.status in (RoomStatus.occupied.value, RoomStatus.deposited.value):
        raise StateConflict(ErrorCode.room_in_use, f"Room {room_id} is {room.status}")

    room.is_deleted = True
    await building_service.decrement_room_count(session, room.building_id, owner_id)
    await session.commit()
    logging.info(f"Room {room_id} removed by owner {owner_id}")


async def quote_room_charge(session: AsyncSession, room_id: int, owner_id: int, usage: UsageContext) -> float:
    """Price a stay (or one long-term cycle) from the room's template."""
    room = await get_room(session, room_id, owner_id)
    return resolve_charge(room_pricing(room), usage)
