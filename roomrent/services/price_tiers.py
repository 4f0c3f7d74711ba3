import logging
from typing import Optional, Sequence

from roomrent.schemas.pricing import PriceTier, OPEN_END
from roomrent.services.errors import ValidationFailed, ErrorCode


def validate_price_tiers(tiers: Sequence[PriceTier]) -> Optional[ValidationFailed]:
    """
    Check that a tier table is usable for lookup.

    Rules, first failure wins:
    - the table is not empty
    - every price is positive
    - the first tier starts at 0
    - a bounded tier has toValue >= fromValue (and does not start below zero)
    - each tier starts exactly where the previous one ends
    - only the last tier is open-ended (toValue == -1)

    Returns None when the table is valid.
    """
    if not tiers:
        return ValidationFailed(ErrorCode.empty_table, "Price table must contain at least one tier")

    last = len(tiers) - 1
    for i, tier in enumerate(tiers):
        if tier.price <= 0:
            return ValidationFailed(ErrorCode.non_positive_price, f"Tier {i}: price must be greater than 0", index=i)

        if i == 0 and tier.from_value != 0:
            return ValidationFailed(ErrorCode.invalid_range, "Tier 0: fromValue must be 0", index=0)

        if tier.to_value == OPEN_END:
            if i != last:
                # An open end in the middle would swallow every tier after it
                return ValidationFailed(ErrorCode.invalid_range, f"Tier {i}: only the last tier may be open-ended", index=i)
        elif tier.to_value < tier.from_value or tier.from_value < 0:
            return ValidationFailed(ErrorCode.invalid_range, f"Tier {i}: toValue must be >= fromValue", index=i)

        if i > 0 and tier.from_value != tiers[i - 1].to_value:
            return ValidationFailed(
                ErrorCode.sequence_gap,
                f"Tier {i}: fromValue {tier.from_value} must equal previous toValue {tiers[i - 1].to_value}",
                index=i
            )

    if tiers[last].to_value != OPEN_END:
        return ValidationFailed(ErrorCode.missing_terminator, "Last tier must be open-ended (toValue = -1)", index=last)

    return None


def evaluate_price_tiers(tiers: Sequence[PriceTier], usage: float) -> float:
    """
    Return the price of the tier that covers `usage`.
    A shared boundary value belongs to the lower tier.
    Raises ValidationFailed(NoMatchingTier) for negative usage or an uncovered value.
    """
    if usage < 0:
        raise ValidationFailed(ErrorCode.no_matching_tier, f"Usage {usage} is negative")

    for tier in tiers:
        if tier.from_value <= usage and (tier.to_value == OPEN_END or usage <= tier.to_value):
            return tier.price

    logging.warning(f"No price tier covers usage {usage} ({len(tiers)} tiers)")
    raise ValidationFailed(ErrorCode.no_matching_tier, f"No price tier covers usage {usage}")
