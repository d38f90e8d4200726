# govledger/core/units.py
"""Conversion between human decimal strings and smallest-unit integers."""

from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

from govledger.core.errors import InvalidAmount


def parse_units(value: Union[str, int], decimals: int = 18) -> int:
    """'1.5' -> 1500000000000000000 for 18 decimals. Never goes through float."""
    try:
        d = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidAmount(f"Not a decimal amount: {value!r}") from None

    if not d.is_finite() or d < 0:
        raise InvalidAmount(f"Amount must be a non-negative number: {value!r}")

    with localcontext() as ctx:
        ctx.prec = 80
        scaled = d.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidAmount(f"Too many fractional digits for {decimals} decimals: {value!r}")
    return int(scaled)


def format_units(amount: int, decimals: int = 18) -> str:
    """Inverse of parse_units; trailing zeros dropped, at least one integer digit."""
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10 ** decimals)
    if not frac:
        return f"{sign}{whole}"
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_str}"
