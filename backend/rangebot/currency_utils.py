"""
Currency utilities for trading pairs

Order placement and pricing use different pair conventions: a pair is
always ordered under its literal product id, but may be priced through a
more liquid proxy pair (e.g. BTC-USDC priced via BTC-USD).
"""

from typing import Dict, Iterable, Optional, Tuple

from rangebot.constants import PRICING_QUOTE_PROXIES
from rangebot.exceptions import RiskViolation


def normalize_product_id(product_id: str) -> str:
    """
    Upper-case and validate a "BASE-QUOTE" product id.

    Raises:
        RiskViolation: if the product id is not of the form BASE-QUOTE
    """
    if not isinstance(product_id, str):
        raise RiskViolation(f"Invalid product_id: {product_id!r}")
    normalized = product_id.strip().upper()
    parts = normalized.split("-")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise RiskViolation(
            f"Invalid product_id format: {product_id}. Expected format: BASE-QUOTE (e.g., BTC-USD)"
        )
    return normalized


def get_currencies_from_pair(product_id: str) -> Tuple[str, str]:
    """
    Extract base and quote currencies from product_id

    Example: "ETH-USD" -> ("ETH", "USD")
    """
    base, quote = normalize_product_id(product_id).split("-")
    return base, quote


def order_product_id(product_id: str) -> str:
    """Product id used when placing an order: the literal pair."""
    return normalize_product_id(product_id)


def pricing_product_id(product_id: str, overrides: Optional[Dict[str, str]] = None) -> str:
    """
    Product id used to price a pair.

    Explicit overrides win; otherwise the quote currency is mapped through
    PRICING_QUOTE_PROXIES. Pairs without a proxy are priced as themselves.
    """
    normalized = normalize_product_id(product_id)
    if overrides:
        override = overrides.get(normalized)
        if override:
            return normalize_product_id(override)

    base, quote = normalized.split("-")
    proxy_quote = PRICING_QUOTE_PROXIES.get(quote)
    if proxy_quote:
        return f"{base}-{proxy_quote}"
    return normalized


def is_product_allowed(product_id: str, allowed: Iterable[str]) -> bool:
    """Case-insensitive allow-list membership"""
    try:
        normalized = normalize_product_id(product_id)
    except RiskViolation:
        return False
    return normalized in {p.strip().upper() for p in allowed}
