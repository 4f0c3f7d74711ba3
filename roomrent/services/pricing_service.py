import logging
from datetime import datetime
from typing import NamedTuple, Optional

from roomrent.schemas.pricing import (
    LongTermPricing, ShortTermFixedPricing, ShortTermHourlyPerUnitPricing,
    ShortTermHourlyTablePricing, ShortTermDailyPricing
)
from roomrent.services.errors import ValidationFailed, ErrorCode
from roomrent.services.price_tiers import validate_price_tiers, evaluate_price_tiers


class UsageContext(NamedTuple):
    """Elapsed usage of a stay. Long-term and fixed pricing ignore it."""
    hours: float = 0.0
    days: float = 0.0


def usage_between(start: datetime, end: datetime) -> UsageContext:
    """Fractional hours and days between check-in and check-out."""
    seconds = (end - start).total_seconds()
    if seconds < 0:
        raise ValidationFailed(ErrorCode.invalid_date_range, "Check-out is before check-in")
    return UsageContext(hours=seconds / 3600, days=seconds / 86400)


def resolve_charge(config, usage: UsageContext = UsageContext()) -> float:
    """
    Charge for one cycle (long-term) or one stay (short-term).
    Utility charges of long-term rooms are computed by the invoice calculator.
    """
    if isinstance(config, LongTermPricing):
        amount = config.rent_price or 0.0
    elif isinstance(config, ShortTermFixedPricing):
        amount = config.fixed_price or 0.0
    elif isinstance(config, ShortTermHourlyPerUnitPricing):
        amount = (config.price_per_hour or 0.0) * usage.hours
    elif isinstance(config, ShortTermHourlyTablePricing):
        amount = evaluate_price_tiers(config.tiers, usage.hours)
    elif isinstance(config, ShortTermDailyPricing):
        amount = evaluate_price_tiers(config.tiers, usage.days)
    else:
        raise TypeError(f"Unsupported pricing config {type(config).__name__}")

    return round(amount, 2)


def _positive(value: Optional[float], field: str) -> Optional[ValidationFailed]:
    if value is None:
        return ValidationFailed(ErrorCode.missing_pricing_field, f"{field} is required", field=field)
    if value <= 0:
        return ValidationFailed(ErrorCode.invalid_pricing, f"{field} must be greater than 0", field=field)
    return None


def validate_pricing_config(config, is_update: bool = False) -> Optional[ValidationFailed]:
    """
    Required-field and positivity rules per pricing variant.
    Returns None when the configuration is valid.

    `is_update` only matters to the caller's tenant checks; pricing rules are
    the same for create and update.
    """
    logging.debug(f"Validating {config.mode} pricing (update={is_update})")

    if isinstance(config, LongTermPricing):
        for value, field in (
            (config.rent_price, "rentPrice"),
            (config.electricity_unit_price, "electricityPrice"),
            (config.water_unit_price, "waterPrice"),
        ):
            err = _positive(value, field)
            if err:
                return err
        if config.initial_electric_index < 0:
            return ValidationFailed(ErrorCode.invalid_pricing, "initialElectricIndex must be >= 0", field="initialElectricIndex")
        if config.initial_water_index < 0:
            return ValidationFailed(ErrorCode.invalid_pricing, "initialWaterIndex must be >= 0", field="initialWaterIndex")
        if config.payment_cycle_months < 1:
            return ValidationFailed(ErrorCode.invalid_pricing, "paymentCycleMonths must be >= 1", field="paymentCycleMonths")
        if not 1 <= config.payment_due_day <= 31:
            return ValidationFailed(ErrorCode.invalid_pricing, "paymentDueDay must be between 1 and 31", field="paymentDueDay")
        return None

    if isinstance(config, ShortTermFixedPricing):
        return _positive(config.fixed_price, "fixedPrice")

    if isinstance(config, ShortTermHourlyPerUnitPricing):
        return _positive(config.price_per_hour, "pricePerHour")

    if isinstance(config, (ShortTermHourlyTablePricing, ShortTermDailyPricing)):
        return validate_price_tiers(config.tiers)

    return ValidationFailed(ErrorCode.invalid_pricing_mode, f"Unsupported pricing config {type(config).__name__}")
