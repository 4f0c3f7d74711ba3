import enum
from datetime import datetime, date
from typing import Optional, List
from sqlalchemy import BigInteger, String, Boolean, ForeignKey, Integer, Numeric, DateTime, JSON, Text, DATE, Float, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from roomrent.database.core import Base

# Amounts are stored with two decimals and read back as floats
Money = Numeric(14, 2, asdecimal=False)


# Enums
class RoomStatus(str, enum.Enum):
    available = "AVAILABLE"
    occupied = "OCCUPIED"
    maintenance = "MAINTENANCE"
    deposited = "DEPOSITED"

class TenantStatus(str, enum.Enum):
    active = "ACTIVE"
    deposited = "DEPOSITED"
    renting = "RENTING"
    closed = "CLOSED"

class ContractStatus(str, enum.Enum):
    draft = "DRAFT"
    active = "ACTIVE"
    expired = "EXPIRED"
    terminated = "TERMINATED"

class InvoiceStatus(str, enum.Enum):
    pending = "PENDING"
    partial = "PARTIAL"
    paid = "PAID"
    overdue = "OVERDUE"

class PaymentMethod(str, enum.Enum):
    cash = "CASH"
    bank_transfer = "BANK_TRANSFER"
    momo = "MOMO"
    zalopay = "ZALOPAY"
    other = "OTHER"

class ServicePriceType(str, enum.Enum):
    fixed = "FIXED"
    table = "TABLE"

class BuildingScope(str, enum.Enum):
    all = "ALL"
    specific = "SPECIFIC"


# Building
class Building(Base):
    __tablename__ = "buildings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(BigInteger, index=True)
    code: Mapped[str] = mapped_column(String, index=True)
    name: Mapped[str] = mapped_column(String)
    address: Mapped[Optional[str]] = mapped_column(String)
    total_rooms: Mapped[int] = mapped_column(Integer, default=0)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    rooms: Mapped[List["Room"]] = relationship(back_populates="building")


# Room
class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(BigInteger, index=True)
    building_id: Mapped[int] = mapped_column(ForeignKey("buildings.id"))
    room_code: Mapped[str] = mapped_column(String, index=True)
    room_name: Mapped[str] = mapped_column(String)
    floor: Mapped[int] = mapped_column(Integer, default=1)
    area: Mapped[float] = mapped_column(Float, default=0.0)

    status: Mapped[str] = mapped_column(String, default=RoomStatus.available.value)

    current_electric_index: Mapped[float] = mapped_column(Float, default=0.0)
    current_water_index: Mapped[float] = mapped_column(Float, default=0.0)

    # Default pricing template (tagged PricingConfiguration), copied into new contracts
    pricing: Mapped[dict] = mapped_column(JSON)

    description: Mapped[Optional[str]] = mapped_column(Text)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    building: Mapped["Building"] = relationship(back_populates="rooms")

    __table_args__ = (
        Index("ix_rooms_owner_status", "owner_id", "status", "is_deleted"),
    )


# Tenant
class Tenant(Base):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(BigInteger, index=True)
    code: Mapped[str] = mapped_column(String, index=True)
    full_name: Mapped[str] = mapped_column(String)
    phone: Mapped[str] = mapped_column(String, index=True)
    id_card: Mapped[str] = mapped_column(String, index=True)
    email: Mapped[Optional[str]] = mapped_column(String)
    permanent_address: Mapped[Optional[str]] = mapped_column(String)

    status: Mapped[str] = mapped_column(String, default=TenantStatus.active.value)
    current_room_id: Mapped[Optional[int]] = mapped_column(ForeignKey("rooms.id"), nullable=True)
    move_in_date: Mapped[Optional[date]] = mapped_column(DATE, nullable=True)
    move_out_date: Mapped[Optional[date]] = mapped_column(DATE, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# Service (catalog entry)
class Service(Base):
    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(BigInteger, index=True)
    code: Mapped[str] = mapped_column(String, index=True)
    name: Mapped[str] = mapped_column(String)
    unit: Mapped[str] = mapped_column(String)

    price_type: Mapped[str] = mapped_column(String, default=ServicePriceType.fixed.value)
    fixed_price: Mapped[float] = mapped_column(Money, default=0.0)
    price_tiers: Mapped[list] = mapped_column(JSON, default=list)

    building_scope: Mapped[str] = mapped_column(String, default=BuildingScope.all.value)
    building_ids: Mapped[list] = mapped_column(JSON, default=list)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# Contract
class Contract(Base):
    __tablename__ = "contracts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(BigInteger, index=True)
    code: Mapped[str] = mapped_column(String, index=True)
    room_id: Mapped[int] = mapped_column(ForeignKey("rooms.id"))
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"))

    status: Mapped[str] = mapped_column(String, default=ContractStatus.active.value)

    # Frozen snapshot, independent of the room's template after creation
    pricing: Mapped[dict] = mapped_column(JSON)
    deposit_amount: Mapped[float] = mapped_column(Money, default=0.0)
    # [{name, amount (unit price), quantity, isRecurring, serviceId}]
    service_charges: Mapped[list] = mapped_column(JSON, default=list)

    start_date: Mapped[date] = mapped_column(DATE)
    end_date: Mapped[Optional[date]] = mapped_column(DATE, nullable=True)

    terms: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    room: Mapped["Room"] = relationship()
    tenant: Mapped["Tenant"] = relationship()
    invoices: Mapped[List["Invoice"]] = relationship(back_populates="contract")

    __table_args__ = (
        Index("ix_contracts_room_status", "room_id", "status"),
    )


# Invoice
class Invoice(Base):
    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(BigInteger, index=True)
    contract_id: Mapped[int] = mapped_column(ForeignKey("contracts.id"))
    room_id: Mapped[int] = mapped_column(ForeignKey("rooms.id"))
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"))
    invoice_number: Mapped[str] = mapped_column(String, unique=True, index=True)

    billing_month: Mapped[int] = mapped_column(Integer)
    billing_year: Mapped[int] = mapped_column(Integer)

    # Electric
    previous_electric_index: Mapped[float] = mapped_column(Float, default=0.0)
    current_electric_index: Mapped[float] = mapped_column(Float, default=0.0)
    electricity_used: Mapped[float] = mapped_column(Float, default=0.0)
    electricity_price: Mapped[float] = mapped_column(Money, default=0.0)
    electricity_amount: Mapped[float] = mapped_column(Money, default=0.0)

    # Water
    previous_water_index: Mapped[float] = mapped_column(Float, default=0.0)
    current_water_index: Mapped[float] = mapped_column(Float, default=0.0)
    water_used: Mapped[float] = mapped_column(Float, default=0.0)
    water_price: Mapped[float] = mapped_column(Money, default=0.0)
    water_amount: Mapped[float] = mapped_column(Money, default=0.0)

    # Charges; service line amounts are line totals
    rent_amount: Mapped[float] = mapped_column(Money, default=0.0)
    service_charges: Mapped[list] = mapped_column(JSON, default=list)

    total_amount: Mapped[float] = mapped_column(Money, default=0.0)
    paid_amount: Mapped[float] = mapped_column(Money, default=0.0)
    remaining_amount: Mapped[float] = mapped_column(Money, default=0.0)

    status: Mapped[str] = mapped_column(String, default=InvoiceStatus.pending.value)
    due_date: Mapped[date] = mapped_column(DATE)
    paid_date: Mapped[Optional[date]] = mapped_column(DATE, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    contract: Mapped["Contract"] = relationship(back_populates="invoices")
    payments: Mapped[List["Payment"]] = relationship(back_populates="invoice")

    __table_args__ = (
        Index("ix_invoices_period", "contract_id", "billing_year", "billing_month"),
        Index("ix_invoices_status_due", "status", "due_date"),
    )


# Payment
class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(BigInteger, index=True)
    invoice_id: Mapped[int] = mapped_column(ForeignKey("invoices.id"))
    contract_id: Mapped[int] = mapped_column(ForeignKey("contracts.id"))
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id"))

    amount: Mapped[float] = mapped_column(Money)
    payment_method: Mapped[str] = mapped_column(String, default=PaymentMethod.cash.value)
    payment_date: Mapped[date] = mapped_column(DATE)
    transaction_id: Mapped[Optional[str]] = mapped_column(String)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    received_by: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)  # tg_id of the operator
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    invoice: Mapped["Invoice"] = relationship(back_populates="payments")
