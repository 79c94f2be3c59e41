"""
Precision helpers for Hyperliquid lot formatting and fixed-point conversion.

Venue-side decimals are floored to szDecimals; fixed-point integers are
produced with Decimal to avoid float drift.
"""

from decimal import Decimal, InvalidOperation, ROUND_DOWN


def format_size(sz: Decimal, sz_decimals: int) -> str:
    """
    Format size per lot precision.

    Args:
        sz: Size (quantity)
        sz_decimals: Asset szDecimals

    Returns:
        Formatted size string, floored to sz_decimals
    """
    q = Decimal(1).scaleb(-sz_decimals)
    rounded = Decimal(sz).quantize(q, rounding=ROUND_DOWN)

    if sz_decimals > 0:
        return f"{rounded:.{sz_decimals}f}".rstrip("0").rstrip(".")
    else:
        return str(int(rounded))


def to_fixed(value, precision: int) -> int:
    """
    Convert a decimal string/number to a fixed-point integer, truncating.

    Raises:
        ValueError: if value is not numeric
    """
    try:
        scaled = Decimal(str(value)) * precision
    except InvalidOperation as e:
        raise ValueError(f"not a number: {value!r}") from e
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_fixed(amount: int, precision: int) -> Decimal:
    """Fixed-point integer back to an exact Decimal."""
    return Decimal(amount) / Decimal(precision)
