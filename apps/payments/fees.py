"""Platform fee policy: a fixed 2.5 % of every participant payment."""

from decimal import Decimal, ROUND_HALF_UP

PLATFORM_FEE_RATE = Decimal('0.025')

# Split costs are whole currency units; the processor charges minor units
MINOR_UNITS_PER_UNIT = 100


def to_minor_units(amount: int) -> int:
    return amount * MINOR_UNITS_PER_UNIT


def platform_fee(amount_minor: int) -> int:
    """
    Fee retained by the platform for one payment, in minor units.

    Rounded half up, so 33300 minor units (fee 832.5) yields 833.
    """
    fee = Decimal(amount_minor) * PLATFORM_FEE_RATE
    return int(fee.quantize(Decimal('1'), rounding=ROUND_HALF_UP))
