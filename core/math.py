# PATH: core/math.py
"""
Math utilities for XARB.

Money never touches float: quote-currency amounts are Decimal, on-chain
amounts are int base units.
"""

from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import Union

from core.constants import BPS_DENOMINATOR

Number = Union[str, int, float, Decimal]


def safe_decimal(value: Union[Number, None], default: Decimal = Decimal("0")) -> Decimal:
    """
    Safely convert value to Decimal.

    Floats go through str() so 0.1 stays 0.1.
    """
    if value is None:
        return default

    try:
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default


def to_base_units(amount: Number, decimals: int) -> int:
    """
    Convert a human amount to integer base units (parseUnits).

    Fractions below the smallest unit are truncated.

    Example:
        >>> to_base_units("1000", 6)
        1000000000
    """
    scaled = safe_decimal(amount) * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_base_units(amount: int, decimals: int) -> Decimal:
    """
    Convert integer base units to a human Decimal amount (formatUnits).

    Example:
        >>> from_base_units(1020000000, 6)
        Decimal('1020')
    """
    return Decimal(amount) / (Decimal(10) ** decimals)


def apply_slippage(amount: int, slippage_bps: int) -> int:
    """
    Minimum acceptable output for a swap: amount * (1 - bps/10000), floored.
    """
    if not 0 <= slippage_bps <= BPS_DENOMINATOR:
        raise ValueError(f"slippage_bps out of range: {slippage_bps}")
    return amount * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """100 * part / whole, 0 when whole is 0."""
    if whole == 0:
        return Decimal("0")
    return Decimal(100) * part / whole


def format_amount(value: Number, places: int = 2) -> str:
    """
    Format a Decimal-like value with fixed places, ROUND_HALF_UP.

    Example:
        >>> format_amount(Decimal("2.505"))
        '2.51'
    """
    quant = Decimal(1).scaleb(-places)
    return str(safe_decimal(value).quantize(quant, rounding=ROUND_HALF_UP))
