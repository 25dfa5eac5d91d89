"""
Application state for the trading engine.

All process-wide mutable state (ledger, order log, cooldown, strategy
toggle) lives on one TradingContext instead of module globals. Ledger
mutations are serialized by the OrderExecutor lock and cooldown updates by
the strategy tick lock.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from rangebot.config import Settings, settings
from rangebot.currency_utils import get_currencies_from_pair
from rangebot.price_feeds.base import PriceSource
from rangebot.price_feeds.coinbase_feed import CoinbasePriceFeed
from rangebot.services.strategy_monitor import StrategyMonitor
from rangebot.strategies.range_accumulation import (
    CooldownState,
    RangeAccumulationStrategy,
    StrategyConfig,
    StrategyToggle,
)
from rangebot.trading_engine.ledger import PaperLedger
from rangebot.trading_engine.order_executor import OrderExecutor
from rangebot.trading_engine.order_logger import OrderLog

logger = logging.getLogger(__name__)


def strategy_mode(config: Settings) -> str:
    """Automated orders go live only when paper mode is off and live strategy orders are enabled"""
    if not config.paper_trading and config.strat_live_orders:
        return "live"
    return "paper"


@dataclass
class TradingContext:
    settings: Settings
    price_source: PriceSource
    ledger: PaperLedger
    order_log: OrderLog
    toggle: StrategyToggle
    cooldown: CooldownState
    executor: OrderExecutor
    strategy: RangeAccumulationStrategy
    monitor: StrategyMonitor

    def get_status(self) -> Dict[str, Any]:
        return {
            "paper": self.settings.paper_trading,
            "strategy_enabled": self.toggle.enabled,
            "strategy": self.strategy.get_status(),
            "monitor": self.monitor.get_status(),
            "allowed_products": self.settings.get_allowed_products(),
            "max_trade_usd": self.settings.max_trade_usd,
            "balances": self.ledger.snapshot(),
            "recent_orders": self.order_log.recent(),
        }


def build_trading_context(config: Optional[Settings] = None, price_source: Optional[PriceSource] = None) -> TradingContext:
    config = config or settings
    price_source = price_source or CoinbasePriceFeed(base_url=config.coinbase_public_base_url)

    base_currency, quote_currency = get_currencies_from_pair(config.strat_currency)
    ledger = PaperLedger(base_currency=base_currency, quote_currency=quote_currency)
    order_log = OrderLog()
    toggle = StrategyToggle(default=config.strat_enabled)
    cooldown = CooldownState()
    executor = OrderExecutor(config, price_source, ledger, order_log)

    strategy = RangeAccumulationStrategy(
        StrategyConfig.from_settings(config),
        price_source,
        executor,
        ledger,
        toggle,
        cooldown=cooldown,
        mode_resolver=lambda: strategy_mode(config),
    )
    monitor = StrategyMonitor(strategy, interval_seconds=config.strat_interval_seconds)

    context = TradingContext(
        settings=config,
        price_source=price_source,
        ledger=ledger,
        order_log=order_log,
        toggle=toggle,
        cooldown=cooldown,
        executor=executor,
        strategy=strategy,
        monitor=monitor,
    )
    return context


_context: Optional[TradingContext] = None


def get_trading_context() -> TradingContext:
    """FastAPI dependency: the process-wide context, built on first use"""
    global _context
    if _context is None:
        _context = build_trading_context()
        logger.info(
            f"Trading context ready (paper={_context.settings.paper_trading}, "
            f"strategy={_context.settings.strat_currency})"
        )
    return _context
