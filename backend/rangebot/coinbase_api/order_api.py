"""
Order operations for Coinbase API
Builds market order bodies and interprets order responses
"""

import json
import time
from typing import Any, Dict, Optional

from rangebot.currency_utils import get_currencies_from_pair, order_product_id
from rangebot.exceptions import RiskViolation
from rangebot.precision import format_base_amount, format_quote_amount


def build_market_order_body(
    product_id: str,
    side: str,  # "buy" or "sell", any case
    quote_size: Optional[float] = None,  # Amount of quote currency to spend
    base_size: Optional[float] = None,  # Amount of base currency to sell
    client_order_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build a market IOC order body for /api/v3/brokerage/orders

    Note: Use either quote_size OR base_size, not both
    """
    product_id = order_product_id(product_id)
    _, quote_currency = get_currencies_from_pair(product_id)

    if (quote_size is None) == (base_size is None):
        raise ValueError("Must specify exactly one of quote_size or base_size")

    market_config: Dict[str, str] = {}
    if quote_size is not None:
        market_config["quote_size"] = format_quote_amount(quote_size, quote_currency)
    else:
        market_config["base_size"] = format_base_amount(base_size)

    for size in market_config.values():
        if float(size) <= 0:
            raise RiskViolation(f"Order size rounds to zero for {product_id}")

    return {
        "client_order_id": client_order_id or f"{int(time.time() * 1000)}",
        "product_id": product_id,
        "side": side.upper(),
        "order_configuration": {"market_market_ioc": market_config},
    }


def serialize_order_body(body: Dict[str, Any]) -> str:
    """JSON text that is both signed and sent"""
    return json.dumps(body)


def parse_order_body(text: str) -> Dict[str, Any]:
    return json.loads(text)


def summarize_order_response(response: Dict[str, Any]) -> Dict[str, Any]:
    """
    Reduce a create-order response to {success, order_id, failure_reason}

    Coinbase reports rejected orders with HTTP 200 and success=false.
    """
    success_response = response.get("success_response") or {}
    error_response = response.get("error_response") or {}

    order_id = success_response.get("order_id") or response.get("order_id")
    success = bool(response.get("success", bool(order_id)))

    failure_reason = None
    if not success:
        failure_reason = (
            error_response.get("message")
            or error_response.get("error")
            or response.get("failure_reason")
            or "unknown"
        )

    return {
        "success": success,
        "order_id": order_id,
        "failure_reason": failure_reason,
    }
