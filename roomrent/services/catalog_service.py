import logging
from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roomrent.database.models import Service, ServicePriceType, BuildingScope
from roomrent.schemas.directory import ServiceCreate, ServicePatch
from roomrent.schemas.pricing import PriceTier, parse_price_tiers
from roomrent.services.code_service import unique_code_for, SERVICE_PREFIX
from roomrent.services.errors import NotFound, ValidationFailed, ErrorCode
from roomrent.services.price_tiers import validate_price_tiers, evaluate_price_tiers


def service_tiers(service: Service) -> List[PriceTier]:
    return list(parse_price_tiers(service.price_tiers, field="priceTiers"))


def _check_pricing(price_type: str, fixed_price: float, tiers: List[PriceTier]):
    if price_type == ServicePriceType.fixed.value:
        if fixed_price is None or fixed_price <= 0:
            raise ValidationFailed(ErrorCode.invalid_pricing, "fixedPrice must be greater than 0", field="fixedPrice")
    elif price_type == ServicePriceType.table.value:
        err = validate_price_tiers(tiers)
        if err:
            raise err
    else:
        raise ValidationFailed(ErrorCode.invalid_pricing_mode, f"Unknown price type {price_type}", field="priceType")


def _check_scope(scope: str, building_ids: List[int]):
    if scope not in (BuildingScope.all.value, BuildingScope.specific.value):
        raise ValidationFailed(ErrorCode.invalid_pricing, f"Unknown building scope {scope}", field="buildingScope")
    if scope == BuildingScope.specific.value and not building_ids:
        raise ValidationFailed(ErrorCode.invalid_pricing, "buildingIds is required for SPECIFIC scope", field="buildingIds")


async def create_service(session: AsyncSession, owner_id: int, data: ServiceCreate) -> Service:
    price_type = data.price_type.upper()
    scope = data.building_scope.upper()
    tiers = list(parse_price_tiers(data.price_tiers, field="priceTiers"))
    _check_pricing(price_type, data.fixed_price, tiers)
    _check_scope(scope, data.building_ids)

    code = await unique_code_for(session, SERVICE_PREFIX, Service.code)
    service = Service(
        owner_id=owner_id,
        code=code,
        name=data.name,
        unit=data.unit,
        price_type=price_type,
        fixed_price=data.fixed_price if price_type == ServicePriceType.fixed.value else 0.0,
        price_tiers=[t.model_dump(by_alias=True) for t in tiers] if price_type == ServicePriceType.table.value else [],
        building_scope=scope,
        building_ids=data.building_ids if scope == BuildingScope.specific.value else [],
        is_active=data.is_active,
    )
    session.add(service)
    await session.commit()
    logging.info(f"Service {service.id} ({code}) '{data.name}' created by owner {owner_id}")
    return service


async def get_service(session: AsyncSession, service_id: int, owner_id: int) -> Service:
    stmt = select(Service).where(
        Service.id == service_id,
        Service.owner_id == owner_id,
        Service.is_deleted == False
    )
    result = await session.execute(stmt)
    service = result.scalar_one_or_none()
    if not service:
        raise NotFound(ErrorCode.service_not_found, f"Service {service_id} not found")
    return service


async def update_service(session: AsyncSession, service_id: int, owner_id: int, patch: ServicePatch) -> Service:
    """Catalog changes do not touch contracts that already copied the service."""
    service = await get_service(session, service_id, owner_id)

    price_type = (patch.price_type or service.price_type).upper()
    fixed_price = patch.fixed_price if patch.fixed_price is not None else service.fixed_price
    raw_tiers = patch.price_tiers if patch.price_tiers is not None else (service.price_tiers or [])
    tiers = list(parse_price_tiers(raw_tiers, field="priceTiers"))
    scope = (patch.building_scope or service.building_scope).upper()
    building_ids = patch.building_ids if patch.building_ids is not None else (service.building_ids or [])

    _check_pricing(price_type, fixed_price, tiers)
    _check_scope(scope, building_ids)

    service.price_type = price_type
    service.fixed_price = fixed_price if price_type == ServicePriceType.fixed.value else 0.0
    service.price_tiers = [t.model_dump(by_alias=True) for t in tiers] if price_type == ServicePriceType.table.value else []
    service.building_scope = scope
    service.building_ids = building_ids if scope == BuildingScope.specific.value else []
    if patch.name is not None:
        service.name = patch.name
    if patch.unit is not None:
        service.unit = patch.unit
    if patch.is_active is not None:
        service.is_active = patch.is_active

    await session.commit()
    return service


async def remove_service(session: AsyncSession, service_id: int, owner_id: int):
    service = await get_service(session, service_id, owner_id)
    service.is_deleted = True
    await session.commit()
    logging.info(f"Service {service_id} removed by owner {owner_id}")


async def services_for_building(session: AsyncSession, owner_id: int, building_id: int) -> List[Service]:
    """Active services that apply to a building (scope ALL or listed explicitly)."""
    stmt = select(Service).where(
        Service.owner_id == owner_id,
        Service.is_deleted == False,
        Service.is_active == True
    ).order_by(Service.id)
    result = await session.execute(stmt)
    return [
        s for s in result.scalars().all()
        if s.building_scope == BuildingScope.all.value or building_id in (s.building_ids or [])
    ]


def service_unit_price(service: Service, quantity: float = 1) -> float:
    """Unit price of a service; TABLE services are looked up by the metered quantity."""
    if service.price_type == ServicePriceType.table.value:
        return evaluate_price_tiers(service_tiers(service), quantity)
    return service.fixed_price
