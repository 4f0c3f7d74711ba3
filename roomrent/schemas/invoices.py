from datetime import date
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_validator


class InvoiceServiceLine(BaseModel):
    """Invoice service line; `amount` is the line total."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    amount: float = Field(ge=0)
    service_id: Optional[int] = Field(default=None, alias="serviceId")


class InvoiceCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    contract_id: int = Field(alias="contractId")
    billing_month: int = Field(alias="month")
    billing_year: int = Field(alias="year")

    previous_electric_index: float = Field(default=0.0, alias="previousElectricIndex")
    current_electric_index: float = Field(default=0.0, alias="currentElectricIndex")
    electricity_price: float = Field(default=0.0, ge=0, alias="electricityPrice")

    previous_water_index: float = Field(default=0.0, alias="previousWaterIndex")
    current_water_index: float = Field(default=0.0, alias="currentWaterIndex")
    water_price: float = Field(default=0.0, ge=0, alias="waterPrice")

    rent_amount: float = Field(default=0.0, ge=0, alias="rentAmount")
    service_charges: List[InvoiceServiceLine] = Field(default_factory=list, alias="serviceCharges")

    due_date: date = Field(alias="dueDate")
    notes: Optional[str] = None


class InvoicePatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    paid_amount: Optional[float] = Field(default=None, alias="paidAmount")
    paid_date: Optional[date] = Field(default=None, alias="paidDate")
    due_date: Optional[date] = Field(default=None, alias="dueDate")
    notes: Optional[str] = None

    @field_validator('paid_date', 'due_date', mode='before')
    def empty_date(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class PaymentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    invoice_id: int = Field(alias="invoiceId")
    amount: float
    payment_method: str = Field(default="CASH", alias="paymentMethod")
    payment_date: Optional[date] = Field(default=None, alias="paymentDate")
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")
    notes: Optional[str] = None

    @field_validator('payment_method', mode='before')
    def upper_method(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v
