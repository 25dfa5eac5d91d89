"""
Range Accumulation Strategy

Buys dips below a volatility-adjusted band around the moving average and
optionally skims a fraction of holdings on strong highs above it.

Band width:
    atr_pct  = ATR / MA * 100
    band_pct = clamp(atr_pct * multiplier, min_band_pct, max_band_pct)
    lower    = MA * (1 - band_pct / 100)
    upper    = MA * (1 + band_pct / 100)

The band widens in volatile regimes and narrows in calm ones; the clamp
keeps it from collapsing to zero or running away.
"""

import asyncio
import logging
import math
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from rangebot.currency_utils import pricing_product_id
from rangebot.price_feeds.base import PriceSample, PriceSource
from rangebot.trading_engine.ledger import PaperLedger
from rangebot.trading_engine.order_executor import OrderExecutor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Band:
    reference: float
    band_pct: float
    lower_bound: float
    upper_bound: float


def compute_band_pct(atr_pct: float, multiplier: float, min_band_pct: float, max_band_pct: float) -> float:
    """Clamp atr_pct * multiplier into [min_band_pct, max_band_pct]"""
    raw = atr_pct * multiplier
    if not math.isfinite(raw):
        raw = min_band_pct
    return max(min_band_pct, min(max_band_pct, raw))


def compute_band(reference: float, band_pct: float) -> Band:
    return Band(
        reference=reference,
        band_pct=band_pct,
        lower_bound=reference * (1 - band_pct / 100),
        upper_bound=reference * (1 + band_pct / 100),
    )


@dataclass
class StrategyConfig:
    """Strategy tunables"""
    symbol: str = "BTC-USD"
    buy_amount_usd: float = 5.0
    ma_window_hours: int = 12
    atr_multiplier: float = 1.2
    min_band_pct: float = 1.0
    max_band_pct: float = 5.0
    cooldown_seconds: int = 1800
    sell_enabled: bool = False
    max_sell_fraction: float = 0.2
    extra_sell_band_pct: float = 0.5
    min_base_balance: float = 0.00001
    max_trade_usd: float = 100.0
    pricing_overrides: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, config) -> "StrategyConfig":
        return cls(
            symbol=config.strat_currency.upper(),
            buy_amount_usd=config.strat_buy_amount_usd,
            ma_window_hours=config.strat_ma_window_hours,
            atr_multiplier=config.strat_atr_multiplier,
            min_band_pct=config.strat_min_band_pct,
            max_band_pct=config.strat_max_band_pct,
            cooldown_seconds=config.strat_cooldown_sec,
            sell_enabled=config.strat_sell_enabled,
            max_sell_fraction=config.strat_sell_max_fraction,
            extra_sell_band_pct=config.strat_sell_extra_band_pct,
            min_base_balance=config.strat_min_virtual_btc,
            max_trade_usd=config.max_trade_usd,
            pricing_overrides=config.get_pricing_overrides(),
        )


@dataclass
class CooldownState:
    last_buy_timestamp: Optional[float] = None  # None until the first buy

    def remaining(self, now: float, cooldown_seconds: float) -> float:
        if self.last_buy_timestamp is None:
            return 0.0
        return max(0.0, cooldown_seconds - (now - self.last_buy_timestamp))


class StrategyToggle:
    """Admin override of the configured enabled flag (None = use default)"""

    def __init__(self, default: bool):
        self.default = default
        self.override: Optional[bool] = None

    def set(self, value: Optional[bool]):
        self.override = value

    @property
    def enabled(self) -> bool:
        return self.default if self.override is None else self.override


@dataclass
class TickResult:
    action: str  # disabled, invalid_reference, cooldown, buy, sell, sell_skipped, hold, error
    trigger: str
    time: str
    price: Optional[float] = None
    band: Optional[Dict[str, float]] = None
    atr_pct: Optional[float] = None
    order: Optional[Dict[str, Any]] = None
    cooldown_remaining_sec: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RangeAccumulationStrategy:
    """
    One decision per tick: buy below the band (respecting cooldown), else
    sell a fraction of holdings well above it, else hold.
    """

    def __init__(
        self,
        strategy_config: StrategyConfig,
        price_source: PriceSource,
        executor: OrderExecutor,
        ledger: PaperLedger,
        toggle: StrategyToggle,
        cooldown: Optional[CooldownState] = None,
        mode_resolver: Callable[[], str] = lambda: "paper",
        clock: Callable[[], float] = time.time,
    ):
        self.config = strategy_config
        self.price_source = price_source
        self.executor = executor
        self.ledger = ledger
        self.toggle = toggle
        self.cooldown = cooldown or CooldownState()
        self.mode_resolver = mode_resolver
        self.clock = clock
        # One tick at a time, so two ticks cannot both pass the cooldown check
        self._tick_lock = asyncio.Lock()

    async def tick(self, trigger: str = "timer", raise_errors: bool = False) -> TickResult:
        """
        Run one strategy evaluation.

        Errors are logged and returned as action="error" unless raise_errors
        is set (manual ticks), in which case they propagate.
        """
        stamp = datetime.now(timezone.utc).isoformat()
        if not self.toggle.enabled:
            return TickResult(action="disabled", trigger=trigger, time=stamp)

        async with self._tick_lock:
            try:
                return await self._evaluate(trigger, stamp)
            except Exception as e:
                logger.error(f"[STRAT ERROR] {type(e).__name__}: {e}")
                if raise_errors:
                    raise
                return TickResult(action="error", trigger=trigger, time=stamp, error=str(e))

    async def _evaluate(self, trigger: str, stamp: str) -> TickResult:
        cfg = self.config
        pricing_product = pricing_product_id(cfg.symbol, cfg.pricing_overrides)

        ticker = await self.price_source.get_ticker(pricing_product)
        current = ticker.price
        reference = await self.price_source.get_historical_average(pricing_product, cfg.ma_window_hours)

        if reference is None or not math.isfinite(reference) or reference <= 0:
            logger.error(f"[{stamp}] ERROR: bad historic price {reference!r}")
            return TickResult(action="invalid_reference", trigger=trigger, time=stamp, price=current)

        atr = await self.price_source.get_average_true_range(pricing_product, cfg.ma_window_hours)
        sample = PriceSample(reference=reference, atr=atr)
        atr_pct = sample.atr_pct
        band_pct = compute_band_pct(atr_pct, cfg.atr_multiplier, cfg.min_band_pct, cfg.max_band_pct)
        band = compute_band(sample.reference, band_pct)
        mode = self.mode_resolver()

        logger.info(f"[{stamp}] MA={reference:.2f}, ATR%={atr_pct:.2f}, band={band_pct:.2f}%")
        logger.info(
            f"[{stamp}] range lower={band.lower_bound:.2f}, upper={band.upper_bound:.2f}, current={current}"
        )

        result = TickResult(
            action="hold", trigger=trigger, time=stamp, price=current, band=asdict(band), atr_pct=atr_pct
        )

        # BUY on dips (respect cooldown)
        if current <= band.lower_bound:
            now = self.clock()
            remaining = self.cooldown.remaining(now, cfg.cooldown_seconds)
            if remaining > 0:
                elapsed = cfg.cooldown_seconds - remaining
                logger.info(
                    f"[{stamp}] Cooldown active: last buy {elapsed / 60:.0f} min ago, "
                    f"need {cfg.cooldown_seconds / 60:.0f} min"
                )
                result.action = "cooldown"
                result.cooldown_remaining_sec = remaining
                return result

            logger.info(f"[{stamp}] RANGE BUY: {current} <= {band.lower_bound:.2f}, buying ${cfg.buy_amount_usd}")
            order = await self.executor.execute(cfg.symbol, "buy", cfg.buy_amount_usd, mode)
            self.cooldown.last_buy_timestamp = now
            result.action = "buy"
            result.order = order.to_dict()
            return result

        # SELL skim only on strong highs
        held = self.ledger.base_balance
        sell_trigger = band.upper_bound * (1 + cfg.extra_sell_band_pct / 100)
        if cfg.sell_enabled and current >= sell_trigger and mode != "paper":
            # Holdings are only known for the paper ledger; live buys never reach it
            logger.warning(f"[{stamp}] Sell skipped: no held balance source for {mode} orders")
            result.action = "sell_skipped"
            return result

        if cfg.sell_enabled and held > cfg.min_base_balance and current >= sell_trigger:
            quantity = held * cfg.max_sell_fraction
            usd_value = min(quantity * current, cfg.max_trade_usd)
            if usd_value <= 0:
                logger.info(f"[{stamp}] Sell amount is zero, skipping")
                return result

            logger.info(
                f"[{stamp}] RANGE SELL: {current} >= upper*(1+{cfg.extra_sell_band_pct}%), "
                f"selling ~{cfg.max_sell_fraction * 100:.0f}% (~${usd_value:.2f})"
            )
            order = await self.executor.execute(cfg.symbol, "sell", usd_value, mode)
            result.action = "sell"
            result.order = order.to_dict()
            return result

        logger.info(f"[{stamp}] No action (conservative).")
        return result

    def get_status(self) -> Dict[str, Any]:
        now = self.clock()
        return {
            "enabled": self.toggle.enabled,
            "default_enabled": self.toggle.default,
            "override": self.toggle.override,
            "symbol": self.config.symbol,
            "mode": self.mode_resolver(),
            "last_buy_timestamp": self.cooldown.last_buy_timestamp,
            "cooldown_remaining_sec": self.cooldown.remaining(now, self.config.cooldown_seconds),
        }
