"""
Price Feeds Module

Market data abstraction consumed by the strategy and the order executor.

Components:
- PriceSource: Abstract base class for price data sources
- CoinbasePriceFeed: Public Coinbase Exchange REST feed
"""

from rangebot.price_feeds.base import PriceSample, PriceSource, Ticker
from rangebot.price_feeds.coinbase_feed import CoinbasePriceFeed

__all__ = [
    "PriceSource",
    "PriceSample",
    "Ticker",
    "CoinbasePriceFeed",
]
