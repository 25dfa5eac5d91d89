"""
Base Price Source Interface

Defines the interface the strategy and executor consume for market data.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Ticker:
    """Current market snapshot; price is authoritative for sizing"""
    price: float
    bid: float
    ask: float

    @property
    def is_valid(self) -> bool:
        return math.isfinite(self.price) and self.price > 0


@dataclass(frozen=True)
class PriceSample:
    """Reference price (mean hourly close) and ATR over one lookback window"""
    reference: float
    atr: float

    @property
    def atr_pct(self) -> float:
        if self.reference <= 0:
            return 0.0
        return self.atr / self.reference * 100


class PriceSource(ABC):
    """
    Market data capability.

    get_historical_average and get_average_true_range never raise to the
    caller: they degrade to the current price and to 0 respectively.
    """

    @abstractmethod
    async def get_ticker(self, product_id: str) -> Ticker:
        """Current price/bid/ask; raises UpstreamError on failure"""

    @abstractmethod
    async def get_historical_average(self, product_id: str, hours: int) -> float:
        """Mean hourly close over the last `hours` hours"""

    @abstractmethod
    async def get_average_true_range(self, product_id: str, hours: int) -> float:
        """ATR over the last `hours` hourly candles, 0 on insufficient data"""
