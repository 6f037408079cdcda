"""
Input Parsing and Rounding

Field entries arrive as raw form values. Anything that is not a number is
treated as zero rather than rejected, and every "round" in the calculator
rounds halves upwards like a browser's Math.round.
"""

import math
from typing import Any


def parse_amount(value: Any) -> float:
    """
    Parse a raw field entry into a number.

    Args:
        value: Number, numeric string, empty string or None

    Returns:
        The parsed value, or 0.0 for empty or non-numeric input
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0

    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def parse_count(value: Any) -> int:
    """Parse a raw field entry into a whole count (e.g. number of flats)."""
    return int(parse_amount(value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 going towards +infinity."""
    return int(math.floor(value + 0.5))
