"""
Shared test fixtures for the trading bot backend tests.

Provides reusable fixtures for:
- Settings objects isolated from the environment / .env
- A mock PriceSource with configurable ticker, average and ATR
- Ledger, order log and executor wiring
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from rangebot.config import Settings
from rangebot.price_feeds.base import PriceSource, Ticker
from rangebot.trading_engine.ledger import PaperLedger
from rangebot.trading_engine.order_executor import OrderExecutor
from rangebot.trading_engine.order_logger import OrderLog


def make_settings(**overrides) -> Settings:
    """Settings that ignore the process environment's .env file."""
    return Settings(_env_file=None, **overrides)


def make_price_source(price=50000.0, average=50000.0, atr=1000.0):
    """Mock PriceSource; attributes can be reassigned per test."""
    source = MagicMock(spec=PriceSource)
    source.get_ticker = AsyncMock(return_value=Ticker(price=price, bid=price - 1, ask=price + 1))
    source.get_historical_average = AsyncMock(return_value=average)
    source.get_average_true_range = AsyncMock(return_value=atr)
    return source


def set_price(source, price):
    source.get_ticker.return_value = Ticker(price=price, bid=price - 1, ask=price + 1)


@pytest.fixture(name="make_settings")
def make_settings_fixture():
    return make_settings


@pytest.fixture(name="make_price_source")
def make_price_source_fixture():
    return make_price_source


@pytest.fixture(name="set_price")
def set_price_fixture():
    return set_price


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def price_source():
    return make_price_source()


@pytest.fixture
def ledger():
    return PaperLedger()


@pytest.fixture
def order_log():
    return OrderLog()


@pytest.fixture
def mock_gateway():
    gateway = MagicMock()
    gateway.submit_order = AsyncMock(return_value={
        "success": True,
        "success_response": {"order_id": "live-order-123"},
    })
    return gateway


@pytest.fixture
def executor(settings, price_source, ledger, order_log, mock_gateway):
    return OrderExecutor(settings, price_source, ledger, order_log, gateway_factory=lambda: mock_gateway)
