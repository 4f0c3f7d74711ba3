from datetime import date
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_validator

from roomrent.schemas.pricing import PricingPayload, PRICING_KEYS


def _blank_to_none(v):
    if v is None:
        return None
    if isinstance(v, str) and not v.strip():
        return None
    return v


class NewTenant(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: Optional[str] = Field(default=None, alias="fullName")
    phone: Optional[str] = None
    id_card: Optional[str] = Field(default=None, alias="idCard")
    email: Optional[str] = None
    permanent_address: Optional[str] = Field(default=None, alias="permanentAddress")

    @field_validator('full_name', 'phone', 'id_card', mode='before')
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class ServiceChargeIn(BaseModel):
    """
    A service line on a contract. `amount` is the unit price; `quantity`
    is kept separately and folded in when an invoice is built.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    amount: Optional[float] = None
    quantity: float = 1
    is_recurring: bool = Field(default=True, alias="isRecurring")
    service_id: Optional[int] = Field(default=None, alias="serviceId")

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


class _ContractFields(PricingPayload):
    deposit_amount: Optional[float] = Field(default=None, alias="depositAmount")
    start_date: Optional[date] = Field(default=None, alias="startDate")
    end_date: Optional[date] = Field(default=None, alias="endDate")
    service_charges: Optional[List[ServiceChargeIn]] = Field(default=None, alias="serviceCharges")
    terms: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('start_date', 'end_date', mode='before')
    def empty_date(cls, v):
        return _blank_to_none(v)

    def pricing_fields(self) -> dict:
        """Submitted pricing fields in wire form, without the ones left empty."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        return {k: v for k, v in data.items() if k in PRICING_KEYS}


class ContractCreate(_ContractFields):
    room_id: Optional[int] = Field(default=None, alias="roomId")
    tenant_id: Optional[int] = Field(default=None, alias="tenantId")
    new_tenant: Optional[NewTenant] = Field(default=None, alias="newTenant")
    status: str = "ACTIVE"

    @field_validator('status', mode='before')
    def upper_status(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class ContractPatch(_ContractFields):
    """Fields a DRAFT contract may change. Room and tenant are fixed at creation."""
    status: Optional[str] = None

    @field_validator('status', mode='before')
    def upper_status(cls, v):
        if isinstance(v, str):
            return v.strip().upper() or None
        return v


class ContractActivate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: Optional[date] = Field(default=None, alias="startDate")
    end_date: Optional[date] = Field(default=None, alias="endDate")

    @field_validator('start_date', 'end_date', mode='before')
    def empty_date(cls, v):
        return _blank_to_none(v)
