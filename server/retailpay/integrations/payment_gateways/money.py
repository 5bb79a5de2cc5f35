"""
Money Unit Conversion

Converts between decimal major-unit amounts and the integer minor units
(kobo, cents, pesewas) some gateway APIs expect.
"""

from decimal import ROUND_HALF_UP, Decimal, DecimalException, InvalidOperation
from typing import Any

# ISO 4217 currencies without a minor unit
ZERO_DECIMAL_CURRENCIES = frozenset({
    "BIF", "CLP", "DJF", "GNF", "ISK", "JPY", "KMF", "KRW", "PYG",
    "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
})

# ISO 4217 currencies with three minor digits
THREE_DECIMAL_CURRENCIES = frozenset({"BHD", "IQD", "JOD", "KWD", "LYD", "OMR", "TND"})

DEFAULT_DECIMALS = 2


def currency_decimals(currency: str) -> int:
    """Number of minor-unit digits for a currency code."""
    code = (currency or "").upper()
    if code in ZERO_DECIMAL_CURRENCIES:
        return 0
    if code in THREE_DECIMAL_CURRENCIES:
        return 3
    return DEFAULT_DECIMALS


def _quantum(decimals: int) -> Decimal:
    return Decimal(1).scaleb(-decimals)


def to_decimal(value: Any, default: str = "0") -> Decimal:
    """
    Convert a provider JSON value to Decimal without going through float
    arithmetic. Anything unparseable yields ``default``.
    """
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal(default)
    if value is None or isinstance(value, bool):
        return Decimal(default)
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal(default)
    if not result.is_finite():
        return Decimal(default)
    return result


def to_smallest_unit(amount: Any, currency: str) -> int:
    """Convert a major-unit amount to integer minor units, rounding half-up."""
    factor = Decimal(10) ** currency_decimals(currency)
    try:
        scaled = to_decimal(amount) * factor
        return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except (DecimalException, OverflowError):
        return 0


def from_smallest_unit(amount: Any, currency: str) -> Decimal:
    """Convert integer minor units back to a major-unit Decimal."""
    decimals = currency_decimals(currency)
    try:
        value = to_decimal(amount) / (Decimal(10) ** decimals)
        return value.quantize(_quantum(decimals), rounding=ROUND_HALF_UP)
    except DecimalException:
        return Decimal(0).quantize(_quantum(decimals))
