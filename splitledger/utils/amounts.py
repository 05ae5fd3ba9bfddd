"""Conversion between display amounts and integer base units."""
from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

from splitledger.core.config import settings
from splitledger.core.errors import InvalidAmount


def parse_amount(value: Union[str, int, Decimal], decimals: int | None = None) -> int:
    """
    Convert a display amount (e.g. "1.5") to integer base units.

    Rules:
    - value must be non-negative
    - value may not carry more fractional digits than the scale allows
    - floats are refused; pass a string to keep the amount exact
    """
    if decimals is None:
        decimals = settings.AMOUNT_DECIMALS

    if isinstance(value, (bool, float)):
        raise InvalidAmount(f"Amount must be a string, int or Decimal, got {type(value).__name__}")

    try:
        amount = Decimal(value.strip()) if isinstance(value, str) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(f"Amount is not a number: {value!r}")

    if not amount.is_finite():
        raise InvalidAmount(f"Amount must be finite: {value!r}")
    if amount < 0:
        raise InvalidAmount(f"Amount cannot be negative: {value!r}")

    # Wide precision so large amounts scale without rounding
    with localcontext() as ctx:
        ctx.prec = 100
        scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidAmount(f"Amount {value!r} has more than {decimals} decimal places")
    return int(scaled)


def format_amount(base_units: int, decimals: int | None = None) -> str:
    """Convert integer base units back to a display string without trailing zeros."""
    if decimals is None:
        decimals = settings.AMOUNT_DECIMALS

    sign = "-" if base_units < 0 else ""
    whole, frac = divmod(abs(base_units), 10 ** decimals)
    if decimals == 0:
        return f"{sign}{whole}"
    frac_str = str(frac).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{frac_str}"
