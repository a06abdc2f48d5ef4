"""Rounding for computed field values."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation


def round_half_up(value: float | int, decimal_places: int) -> float:
    """
    Round a number to a fixed number of decimal places, halves away from zero.

    The value is rounded as written in its shortest decimal form, so
    ``10.005`` rounds to ``10.01`` even though the nearest binary float
    is slightly below 10.005.

    Args:
        value: Number to round
        decimal_places: Digits to keep after the decimal point

    Returns:
        Rounded value as a float
    """
    exponent = Decimal(1).scaleb(-decimal_places)
    try:
        return float(Decimal(repr(value)).quantize(exponent, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        # Too many digits for the decimal context; already coarser than the rounding step
        return float(value)
