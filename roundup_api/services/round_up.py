"""
Round-up calculation

The donation is the distance from a purchase amount to the next whole
currency unit. Amounts are ``Decimal`` end to end; the donation is quantized
to cents with ROUND_HALF_UP, which is exact for two-decimal inputs.
"""

from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

from roundup_api.types import CENT


@dataclass(frozen=True)
class RoundUp:
    rounded_amount: Decimal
    donation_amount: Decimal


def calculate_round_up(original_amount: Decimal) -> RoundUp:
    """
    Compute the rounded amount and the donation for a positive amount.

    >>> calculate_round_up(Decimal("15.75"))
    RoundUp(rounded_amount=Decimal('16.00'), donation_amount=Decimal('0.25'))
    """
    original = Decimal(original_amount)
    rounded = original.to_integral_value(rounding=ROUND_CEILING)
    donation = (rounded - original).quantize(CENT, rounding=ROUND_HALF_UP)
    return RoundUp(
        rounded_amount=rounded.quantize(CENT),
        donation_amount=donation,
    )
