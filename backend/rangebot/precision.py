"""
Precision handling for order sizes

Coinbase has strict precision requirements for order sizes.
This module ensures amounts are properly formatted to avoid
PREVIEW_INVALID_QUOTE_SIZE_PRECISION and similar errors, and keeps
simulated fills on the same lot convention.
"""
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

from rangebot.constants import BASE_QUANTITY_DECIMALS, FIAT_LIKE_QUOTES


def _quantizer(precision: int) -> Decimal:
    # e.g. "0.000001" for 6 decimals
    return Decimal("0." + "0" * (precision - 1) + "1") if precision > 0 else Decimal("1")


def round_base_quantity(amount: float) -> float:
    """
    Round a base quantity to BASE_QUANTITY_DECIMALS, half-up.

    Goes through str() so that literal inputs round exactly:
        >>> round_base_quantity(100 / 50000)
        0.002
    """
    decimal_amount = Decimal(str(amount))
    rounded = decimal_amount.quantize(_quantizer(BASE_QUANTITY_DECIMALS), rounding=ROUND_HALF_UP)
    return float(rounded)


def format_quote_amount(amount: float, quote_currency: str) -> str:
    """
    Format quote currency amount with proper precision for Coinbase.

    Examples:
        >>> format_quote_amount(10.5000, "USD")
        '10.50'
        >>> format_quote_amount(0.00012345678, "BTC")
        '0.00012345'
    """
    precision = 2 if quote_currency.upper() in FIAT_LIKE_QUOTES else 8

    # Round down to avoid exceeding limits
    rounded = Decimal(str(amount)).quantize(_quantizer(precision), rounding=ROUND_DOWN)

    # DO NOT strip trailing zeros - Coinbase validates exact decimal format
    return str(rounded)


def format_base_amount(amount: float) -> str:
    """
    Format base currency amount with the base lot precision.

    Examples:
        >>> format_base_amount(0.0123456789)
        '0.012345'
    """
    rounded = Decimal(str(amount)).quantize(_quantizer(BASE_QUANTITY_DECIMALS), rounding=ROUND_DOWN)
    return str(rounded)
