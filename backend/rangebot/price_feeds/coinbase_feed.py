"""
Coinbase Price Feed

Implements PriceSource over the public (unauthenticated) Coinbase Exchange
REST API. No API credentials are needed.

Public endpoints used:
  GET /products/{product_id}/ticker
  GET /products/{product_id}/candles
"""

import asyncio
import logging
import math
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from rangebot.constants import CANDLE_GRANULARITY_SECONDS, USER_AGENT
from rangebot.exceptions import UpstreamError
from rangebot.indicator_calculator import InsufficientDataError, calculate_atr, calculate_mean_close
from rangebot.price_feeds.base import PriceSource, Ticker

logger = logging.getLogger(__name__)


class CoinbasePriceFeed(PriceSource):
    """
    Price source backed by api.exchange.coinbase.com.

    Requests are spaced at least 200ms apart and retried once on 429.
    """

    def __init__(self, base_url: str = "https://api.exchange.coinbase.com", timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._rate_lock = asyncio.Lock()
        self._last_request_time = 0.0

    async def _public_request(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> Any:
        """Rate-limited GET against a public endpoint"""
        async with self._rate_lock:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < 0.2:
                await asyncio.sleep(0.2 - elapsed)
            self._last_request_time = time.monotonic()

        url = f"{self.base_url}{endpoint}"

        for attempt in range(2):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.get(url, params=params, headers={"User-Agent": USER_AGENT})
            except httpx.HTTPError as exc:
                raise UpstreamError(f"Public API request failed for {endpoint}: {exc}") from exc

            if resp.status_code == 429 and attempt == 0:
                logger.warning("Public API rate-limited (429), backing off 1s")
                await asyncio.sleep(1.0)
                continue

            if resp.status_code >= 400:
                logger.error(f"Public API HTTP {resp.status_code} for {endpoint}: {resp.text[:200]}")
                raise UpstreamError(f"{endpoint} failed: {resp.status_code}")

            try:
                return resp.json()
            except ValueError as exc:
                raise UpstreamError(f"Invalid JSON from {endpoint}") from exc

        raise UpstreamError(f"Public API request failed after retries: {endpoint}")

    async def get_ticker(self, product_id: str) -> Ticker:
        data = await self._public_request(f"/products/{product_id}/ticker")
        try:
            ticker = Ticker(
                price=float(data["price"]),
                bid=float(data.get("bid", 0) or 0),
                ask=float(data.get("ask", 0) or 0),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamError(f"Malformed ticker for {product_id}") from exc

        if not ticker.is_valid:
            raise UpstreamError(f"Invalid ticker price for {product_id}: {ticker.price}")
        return ticker

    async def get_candles(
        self,
        product_id: str,
        hours: Optional[int] = None,
    ) -> List[List[float]]:
        """
        Hourly candles, newest first.

        With `hours`, only the window [now - hours, now] is requested;
        otherwise the exchange returns its default (latest 300).
        """
        params = {"granularity": str(CANDLE_GRANULARITY_SECONDS)}
        if hours is not None:
            end = datetime.now(timezone.utc)
            start = end - timedelta(hours=hours)
            params["start"] = start.isoformat()
            params["end"] = end.isoformat()

        candles = await self._public_request(f"/products/{product_id}/candles", params=params)
        if not isinstance(candles, list):
            raise UpstreamError(f"Unexpected candle payload for {product_id}")
        return sorted(candles, key=lambda c: c[0], reverse=True)

    async def get_historical_average(self, product_id: str, hours: int) -> float:
        """Mean hourly close; falls back to the current ticker price"""
        try:
            candles = await self.get_candles(product_id, hours=hours)
            average = calculate_mean_close(candles)
            if not math.isfinite(average):
                raise InsufficientDataError("non-finite average")
            return average
        except (UpstreamError, InsufficientDataError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"[WARN historic] {product_id}: {e}")

        ticker = await self.get_ticker(product_id)
        return ticker.price

    async def get_average_true_range(self, product_id: str, hours: int) -> float:
        """ATR over `hours` candles; 0 when it cannot be computed"""
        try:
            candles = await self.get_candles(product_id)
            return calculate_atr(candles, hours)
        except (UpstreamError, InsufficientDataError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"[ATR WARN] {product_id}: {e}")
            return 0.0
