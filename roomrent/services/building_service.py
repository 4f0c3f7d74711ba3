import logging
from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roomrent.database.models import Building, Room
from roomrent.schemas.directory import BuildingCreate
from roomrent.services.code_service import unique_code_for, BUILDING_PREFIX
from roomrent.services.errors import NotFound, StateConflict, ErrorCode


async def create_building(session: AsyncSession, owner_id: int, data: BuildingCreate) -> Building:
    code = await unique_code_for(session, BUILDING_PREFIX, Building.code)
    building = Building(owner_id=owner_id, code=code, name=data.name, address=data.address, total_rooms=0)
    session.add(building)
    await session.commit()
    logging.info(f"Building {building.id} ({code}) created by owner {owner_id}")
    return building


async def get_building(session: AsyncSession, building_id: int, owner_id: int) -> Building:
    stmt = select(Building).where(
        Building.id == building_id,
        Building.owner_id == owner_id,
        Building.is_deleted == False
    )
    result = await session.execute(stmt)
    building = result.scalar_one_or_none()
    if not building:
        raise NotFound(ErrorCode.building_not_found, f"Building {building_id} not found")
    return building


async def list_buildings(session: AsyncSession, owner_id: int) -> List[Building]:
    stmt = select(Building).where(Building.owner_id == owner_id, Building.is_deleted == False).order_by(Building.id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def increment_room_count(session: AsyncSession, building_id: int, owner_id: int, delta: int = 1):
    """Adjust totalRooms; flushed only, the caller commits."""
    building = await get_building(session, building_id, owner_id)
    building.total_rooms = max(0, (building.total_rooms or 0) + delta)
    await session.flush()


async def decrement_room_count(session: AsyncSession, building_id: int, owner_id: int):
    await increment_room_count(session, building_id, owner_id, delta=-1)


async def remove_building(session: AsyncSession, building_id: int, owner_id: int):
    building = await get_building(session, building_id, owner_id)

    stmt = select(Room.id).where(Room.building_id == building_id, Room.is_deleted == False).limit(1)
    result = await session.execute(stmt)
    if result.first() is not None:
        raise StateConflict(ErrorCode.building_in_use, f"Building {building_id} still has rooms")

    building.is_deleted = True
    await session.commit()
    logging.info(f"Building {building_id} removed by owner {owner_id}")
