from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from roomrent.schemas.pricing import PricingPayload


class BuildingCreate(BaseModel):
    name: str = Field(min_length=1)
    address: Optional[str] = None


class RoomCreate(PricingPayload):
    building_id: int = Field(alias="buildingId")
    room_name: str = Field(min_length=1, alias="roomName")
    floor: int = 1
    area: float = Field(default=0.0, ge=0)
    description: Optional[str] = None


class RoomPatch(PricingPayload):
    room_name: Optional[str] = Field(default=None, alias="roomName")
    floor: Optional[int] = None
    area: Optional[float] = Field(default=None, ge=0)
    status: Optional[str] = None
    description: Optional[str] = None


class TenantCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(min_length=1, alias="fullName")
    phone: str = Field(min_length=1)
    id_card: str = Field(min_length=1, alias="idCard")
    email: Optional[str] = None
    permanent_address: Optional[str] = Field(default=None, alias="permanentAddress")
    notes: Optional[str] = None


class TenantPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: Optional[str] = Field(default=None, alias="fullName")
    phone: Optional[str] = None
    email: Optional[str] = None
    permanent_address: Optional[str] = Field(default=None, alias="permanentAddress")
    notes: Optional[str] = None
    status: Optional[str] = None


class ServiceCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    unit: str = "month"
    price_type: str = Field(default="FIXED", alias="priceType")
    fixed_price: float = Field(default=0.0, alias="fixedPrice")
    price_tiers: List[dict] = Field(default_factory=list, alias="priceTiers")
    building_scope: str = Field(default="ALL", alias="buildingScope")
    building_ids: List[int] = Field(default_factory=list, alias="buildingIds")
    is_active: bool = Field(default=True, alias="isActive")


class ServicePatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    unit: Optional[str] = None
    price_type: Optional[str] = Field(default=None, alias="priceType")
    fixed_price: Optional[float] = Field(default=None, alias="fixedPrice")
    price_tiers: Optional[List[dict]] = Field(default=None, alias="priceTiers")
    building_scope: Optional[str] = Field(default=None, alias="buildingScope")
    building_ids: Optional[List[int]] = Field(default=None, alias="buildingIds")
    is_active: Optional[bool] = Field(default=None, alias="isActive")
