"""Numeric helpers shared by the calculators."""

import math
from numbers import Real


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with halves going towards positive infinity.

    Dashboard percentages are rounded the way a person would read them
    (62.5 -> 63, -2.5 -> -2), not with banker's rounding.

    Args:
        value: Number to round.
        ndigits: Decimal places to keep.

    Returns:
        Rounded value. An int when ndigits is 0.
    """
    if ndigits == 0:
        return int(math.floor(value + 0.5))
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


def format_number(value: float) -> str:
    """Format a number without a trailing '.0' for whole values."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def is_number(value: object) -> bool:
    """Check for a real, non-NaN number (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return not math.isnan(float(value))
