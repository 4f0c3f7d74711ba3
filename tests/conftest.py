import os

# The core must import without a bot environment or a PostgreSQL server
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession

from roomrent.database.core import build_engine, build_session_factory, create_tables
from roomrent.database.models import (
    Building, Room, RoomStatus, Tenant, TenantStatus, Service, ServicePriceType,
    Contract, ContractStatus
)
from roomrent.schemas.pricing import LongTermPricing, dump_pricing

OWNER_ID = 1001
OTHER_OWNER_ID = 2002


def long_term_pricing(**overrides) -> LongTermPricing:
    values = dict(
        rent_price=3000000,
        electricity_unit_price=3500,
        water_unit_price=20000,
        initial_electric_index=100,
        initial_water_index=10,
        payment_cycle_months=1,
        payment_due_day=5,
    )
    values.update(overrides)
    return LongTermPricing(**values)


class Factory:
    """Builds rows directly through the ORM for service tests."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._seq = 0

    def _code(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-TEST-{self._seq:04d}"

    async def building(self, owner_id: int = OWNER_ID, **kwargs) -> Building:
        building = Building(
            owner_id=owner_id,
            code=self._code("BD"),
            name=kwargs.pop("name", "Sunrise"),
            total_rooms=kwargs.pop("total_rooms", 0),
            **kwargs
        )
        self.session.add(building)
        await self.session.commit()
        return building

    async def room(self, owner_id: int = OWNER_ID, pricing=None, status: str = RoomStatus.available.value, building=None) -> Room:
        building = building or await self.building(owner_id)
        pricing = pricing or long_term_pricing()
        room = Room(
            owner_id=owner_id,
            building_id=building.id,
            room_code=self._code("RM"),
            room_name="101",
            status=status,
            pricing=dump_pricing(pricing),
            current_electric_index=getattr(pricing, "initial_electric_index", 0.0),
            current_water_index=getattr(pricing, "initial_water_index", 0.0),
        )
        self.session.add(room)
        building.total_rooms = (building.total_rooms or 0) + 1
        await self.session.commit()
        return room

    async def tenant(self, owner_id: int = OWNER_ID, status: str = TenantStatus.active.value, **kwargs) -> Tenant:
        tenant = Tenant(
            owner_id=owner_id,
            code=self._code("TN"),
            full_name=kwargs.pop("full_name", "Nguyen Van A"),
            phone=kwargs.pop("phone", "0901234567"),
            id_card=kwargs.pop("id_card", "079123456789"),
            status=status,
            **kwargs
        )
        self.session.add(tenant)
        await self.session.commit()
        return tenant

    async def service(self, owner_id: int = OWNER_ID, name: str = "Internet", fixed_price: float = 169257.65, **kwargs) -> Service:
        service = Service(
            owner_id=owner_id,
            code=self._code("SV"),
            name=name,
            unit=kwargs.pop("unit", "month"),
            price_type=kwargs.pop("price_type", ServicePriceType.fixed.value),
            fixed_price=fixed_price,
            price_tiers=kwargs.pop("price_tiers", []),
            building_ids=[],
            **kwargs
        )
        self.session.add(service)
        await self.session.commit()
        return service

    async def contract(
        self,
        room: Room,
        tenant: Tenant,
        status: str = ContractStatus.active.value,
        pricing=None,
        start_date: date = date(2026, 1, 1),
        end_date: date = None,
        service_charges: list = None,
    ) -> Contract:
        """A contract row with room/tenant statuses set to match, bypassing the lifecycle."""
        contract = Contract(
            owner_id=room.owner_id,
            code=self._code("HD"),
            room_id=room.id,
            tenant_id=tenant.id,
            status=status,
            pricing=dump_pricing(pricing or long_term_pricing()),
            deposit_amount=3000000,
            service_charges=service_charges or [],
            start_date=start_date,
            end_date=end_date,
        )
        self.session.add(contract)
        if status == ContractStatus.active.value:
            room.status = RoomStatus.occupied.value
            tenant.status = TenantStatus.renting.value
            tenant.current_room_id = room.id
            tenant.move_in_date = start_date
        elif status == ContractStatus.draft.value:
            room.status = RoomStatus.deposited.value
            tenant.status = TenantStatus.deposited.value
            tenant.current_room_id = room.id
        await self.session.commit()
        return contract


@pytest_asyncio.fixture
async def engine():
    # Use in-memory SQLite for tests
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def async_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def factory(async_session):
    return Factory(async_session)
