"""
Application Constants

Centralized constants for pairs, precision and timing.
"""

from typing import Dict

# Recent orders kept in memory for the status endpoint
ORDER_LOG_CAPACITY = 50

# Base asset quantities are rounded to this many decimals (brokerage lot convention)
BASE_QUANTITY_DECIMALS = 6

# CDP JWT lifetime in seconds
JWT_TTL_SECONDS = 120

# Hourly candles for the moving average and ATR
CANDLE_GRANULARITY_SECONDS = 3600

# Default strategy period (15 minutes)
STRATEGY_INTERVAL_SECONDS = 900

ORDERS_ENDPOINT = "/api/v3/brokerage/orders"

USER_AGENT = "CN/1.0"

# Quote currencies without their own liquid book are priced via a proxy quote
PRICING_QUOTE_PROXIES: Dict[str, str] = {
    "USDC": "USD",
}

# Quote currencies whose amounts are formatted with cent precision
FIAT_LIKE_QUOTES = ("USD", "USDC", "USDT", "EUR", "GBP")
