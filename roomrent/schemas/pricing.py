import json
from typing import Optional, Tuple, Union, Literal, Any, Annotated
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from roomrent.services.errors import ValidationFailed, ErrorCode

# Wire values
LONG_TERM = "LONG_TERM"
SHORT_TERM = "SHORT_TERM"
HOURLY = "HOURLY"
DAILY = "DAILY"
FIXED = "FIXED"
PER_HOUR = "PER_HOUR"
TABLE = "TABLE"

# Unbounded upper end of the last tier
OPEN_END = -1

PAYMENT_CYCLE_MONTHS = {
    "MONTHLY": 1,
    "MONTHLY_2": 2,
    "QUARTERLY": 3,
    "MONTHLY_6": 6,
    "MONTHLY_12": 12,
}


class PriceTier(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_value: float = Field(alias="fromValue")
    to_value: float = Field(alias="toValue")
    price: float

    @property
    def is_open_ended(self) -> bool:
        return self.to_value == OPEN_END


class _Pricing(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class LongTermPricing(_Pricing):
    mode: Literal["LONG_TERM"] = "LONG_TERM"
    rent_price: Optional[float] = Field(default=None, alias="rentPrice")
    electricity_unit_price: Optional[float] = Field(default=None, alias="electricityPrice")
    water_unit_price: Optional[float] = Field(default=None, alias="waterPrice")
    initial_electric_index: float = Field(default=0.0, alias="initialElectricIndex")
    initial_water_index: float = Field(default=0.0, alias="initialWaterIndex")
    payment_cycle_months: int = Field(default=1, alias="paymentCycleMonths")
    payment_due_day: int = Field(default=1, alias="paymentDueDay")


class ShortTermFixedPricing(_Pricing):
    mode: Literal["SHORT_TERM_FIXED"] = "SHORT_TERM_FIXED"
    fixed_price: Optional[float] = Field(default=None, alias="fixedPrice")


class ShortTermHourlyPerUnitPricing(_Pricing):
    mode: Literal["SHORT_TERM_HOURLY_PER_UNIT"] = "SHORT_TERM_HOURLY_PER_UNIT"
    price_per_hour: Optional[float] = Field(default=None, alias="pricePerHour")


class ShortTermHourlyTablePricing(_Pricing):
    mode: Literal["SHORT_TERM_HOURLY_TABLE"] = "SHORT_TERM_HOURLY_TABLE"
    tiers: Tuple[PriceTier, ...] = ()


class ShortTermDailyPricing(_Pricing):
    mode: Literal["SHORT_TERM_DAILY"] = "SHORT_TERM_DAILY"
    tiers: Tuple[PriceTier, ...] = ()


PricingConfig = Annotated[
    Union[
        LongTermPricing,
        ShortTermFixedPricing,
        ShortTermHourlyPerUnitPricing,
        ShortTermHourlyTablePricing,
        ShortTermDailyPricing,
    ],
    Field(discriminator="mode"),
]

_pricing_adapter = TypeAdapter(PricingConfig)
_tiers_adapter = TypeAdapter(Tuple[PriceTier, ...])


class PricingPayload(BaseModel):
    """
    Flat pricing fields as the front end sends them.
    Every field is optional; `pricing_from_payload` picks the ones the
    selected room type needs.
    """
    model_config = ConfigDict(populate_by_name=True)

    room_type: Optional[str] = Field(default=None, alias="roomType")
    short_term_pricing_type: Optional[str] = Field(default=None, alias="shortTermPricingType")
    hourly_pricing_mode: Optional[str] = Field(default=None, alias="hourlyPricingMode")
    price_per_hour: Optional[float] = Field(default=None, alias="pricePerHour")
    fixed_price: Optional[float] = Field(default=None, alias="fixedPrice")
    short_term_prices: Optional[list] = Field(default=None, alias="shortTermPrices")
    rent_price: Optional[float] = Field(default=None, alias="rentPrice")
    electricity_price: Optional[float] = Field(default=None, alias="electricityPrice")
    water_price: Optional[float] = Field(default=None, alias="waterPrice")
    initial_electric_index: Optional[float] = Field(default=None, alias="initialElectricIndex")
    initial_water_index: Optional[float] = Field(default=None, alias="initialWaterIndex")
    payment_cycle: Optional[str] = Field(default=None, alias="paymentCycle")
    payment_cycle_months: Optional[int] = Field(default=None, alias="paymentCycleMonths")
    payment_due_day: Optional[int] = Field(default=None, alias="paymentDueDay")

    @field_validator('room_type', 'short_term_pricing_type', 'hourly_pricing_mode', 'payment_cycle', mode='before')
    def upper_tag(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
            return v or None
        return v


PRICING_KEYS = tuple(f.alias for f in PricingPayload.model_fields.values())


def parse_price_tiers(raw, field: str = "shortTermPrices") -> Tuple[PriceTier, ...]:
    """Read a wire tier list; malformed rows are an InvalidPricing error on `field`."""
    try:
        return _tiers_adapter.validate_python(raw or [])
    except ValidationError as e:
        raise ValidationFailed(ErrorCode.invalid_pricing, f"Malformed price tier: {e.errors()[0]['msg']}", field=field) from e


def pricing_from_payload(data: dict):
    """
    Convert a flat wire payload into one of the tagged pricing variants.

    roomType defaults to LONG_TERM. For HOURLY rooms without an explicit
    hourlyPricingMode the mode is inferred: a tier list means TABLE, a
    pricePerHour means PER_HOUR.
    """
    try:
        p = PricingPayload.model_validate(data)
    except ValidationError as e:
        err = e.errors()[0]
        field = str(err["loc"][0]) if err.get("loc") else None
        raise ValidationFailed(ErrorCode.invalid_pricing, f"Invalid pricing field: {err['msg']}", field=field) from e

    room_type = p.room_type or LONG_TERM

    if room_type == LONG_TERM:
        if p.payment_cycle_months is not None:
            months = p.payment_cycle_months
        elif p.payment_cycle in PAYMENT_CYCLE_MONTHS:
            months = PAYMENT_CYCLE_MONTHS[p.payment_cycle]
        elif p.payment_cycle == "CUSTOM":
            raise ValidationFailed(ErrorCode.missing_pricing_field, "paymentCycleMonths is required for a CUSTOM cycle", field="paymentCycleMonths")
        elif p.payment_cycle is None:
            months = 1
        else:
            raise ValidationFailed(ErrorCode.invalid_pricing_mode, f"Unknown payment cycle {p.payment_cycle}", field="paymentCycle")

        return LongTermPricing(
            rent_price=p.rent_price,
            electricity_unit_price=p.electricity_price,
            water_unit_price=p.water_price,
            initial_electric_index=p.initial_electric_index or 0.0,
            initial_water_index=p.initial_water_index or 0.0,
            payment_cycle_months=months,
            payment_due_day=p.payment_due_day if p.payment_due_day is not None else 1,
        )

    if room_type != SHORT_TERM:
        raise ValidationFailed(ErrorCode.invalid_pricing_mode, f"Unknown room type {room_type}", field="roomType")

    kind = p.short_term_pricing_type
    if not kind:
        raise ValidationFailed(ErrorCode.missing_pricing_field, "shortTermPricingType is required", field="shortTermPricingType")

    if kind == FIXED:
        return ShortTermFixedPricing(fixed_price=p.fixed_price)

    if kind == DAILY:
        return ShortTermDailyPricing(tiers=parse_price_tiers(p.short_term_prices))

    if kind == HOURLY:
        mode = p.hourly_pricing_mode
        if not mode:
            if p.short_term_prices:
                mode = TABLE
            elif p.price_per_hour is not None:
                mode = PER_HOUR
            else:
                raise ValidationFailed(ErrorCode.missing_pricing_field, "hourlyPricingMode is required", field="hourlyPricingMode")

        if mode == PER_HOUR:
            return ShortTermHourlyPerUnitPricing(price_per_hour=p.price_per_hour)
        if mode == TABLE:
            return ShortTermHourlyTablePricing(tiers=parse_price_tiers(p.short_term_prices))
        raise ValidationFailed(ErrorCode.invalid_pricing_mode, f"Unknown hourly pricing mode {mode}", field="hourlyPricingMode")

    raise ValidationFailed(ErrorCode.invalid_pricing_mode, f"Unknown short-term pricing type {kind}", field="shortTermPricingType")


def _tiers_to_payload(tiers) -> list:
    return [t.model_dump(by_alias=True) for t in tiers]


def pricing_to_payload(config) -> dict:
    """Inverse of pricing_from_payload: the flat wire fields of a variant."""
    if isinstance(config, LongTermPricing):
        cycle = "CUSTOM"
        for name, months in PAYMENT_CYCLE_MONTHS.items():
            if months == config.payment_cycle_months:
                cycle = name
                break
        return {
            "roomType": LONG_TERM,
            "rentPrice": config.rent_price,
            "electricityPrice": config.electricity_unit_price,
            "waterPrice": config.water_unit_price,
            "initialElectricIndex": config.initial_electric_index,
            "initialWaterIndex": config.initial_water_index,
            "paymentCycle": cycle,
            "paymentCycleMonths": config.payment_cycle_months,
            "paymentDueDay": config.payment_due_day,
        }
    if isinstance(config, ShortTermFixedPricing):
        return {"roomType": SHORT_TERM, "shortTermPricingType": FIXED, "fixedPrice": config.fixed_price}
    if isinstance(config, ShortTermHourlyPerUnitPricing):
        return {
            "roomType": SHORT_TERM,
            "shortTermPricingType": HOURLY,
            "hourlyPricingMode": PER_HOUR,
            "pricePerHour": config.price_per_hour,
        }
    if isinstance(config, ShortTermHourlyTablePricing):
        return {
            "roomType": SHORT_TERM,
            "shortTermPricingType": HOURLY,
            "hourlyPricingMode": TABLE,
            "shortTermPrices": _tiers_to_payload(config.tiers),
        }
    if isinstance(config, ShortTermDailyPricing):
        return {"roomType": SHORT_TERM, "shortTermPricingType": DAILY, "shortTermPrices": _tiers_to_payload(config.tiers)}
    raise TypeError(f"Unsupported pricing config {type(config).__name__}")


def merge_pricing_payload(base: dict, overrides: dict) -> dict:
    """
    Lay submitted pricing fields over a base payload (room template or the
    current contract). None values in `overrides` do not override.
    Switching variant drops the fields of the previous one: a new roomType
    starts from the overrides only, a new shortTermPricingType keeps the
    roomType, a new hourlyPricingMode keeps roomType and shortTermPricingType.
    """
    overrides = {k: v for k, v in overrides.items() if k in PRICING_KEYS and v is not None}

    def changed(key):
        return key in overrides and base.get(key) is not None and str(overrides[key]).upper() != str(base[key]).upper()

    if changed("roomType"):
        return dict(overrides)
    if changed("shortTermPricingType"):
        kept = ("roomType",)
    elif changed("hourlyPricingMode"):
        kept = ("roomType", "shortTermPricingType")
    else:
        kept = tuple(base)

    merged = {k: base[k] for k in kept if k in base}
    merged.update(overrides)
    return merged


def load_pricing(raw: Any):
    """Read a stored pricing snapshot (dict or JSON string)."""
    if isinstance(raw, str):
        raw = json.loads(raw)
    return _pricing_adapter.validate_python(raw)


def dump_pricing(config) -> dict:
    return config.model_dump(by_alias=True, mode="json")
