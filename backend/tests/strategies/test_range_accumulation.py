"""
Tests for strategies/range_accumulation.py

Band math, cooldown and toggle state, and full tick decisions against a
mocked price source and a real paper executor.
"""

import math

import pytest

from rangebot.exceptions import UpstreamError
from rangebot.strategies.range_accumulation import (
    CooldownState,
    RangeAccumulationStrategy,
    StrategyConfig,
    StrategyToggle,
    compute_band,
    compute_band_pct,
)
from rangebot.trading_engine.order_executor import OrderExecutor


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def toggle():
    return StrategyToggle(default=True)


@pytest.fixture
def make_strategy(price_source, executor, ledger, toggle, clock):
    def _make(**config_overrides):
        config = StrategyConfig(**config_overrides)
        return RangeAccumulationStrategy(config, price_source, executor, ledger, toggle, clock=clock)
    return _make


# ---------------------------------------------------------------------------
# Band math
# ---------------------------------------------------------------------------


class TestComputeBandPct:
    def test_scales_atr_pct(self):
        assert compute_band_pct(2.0, 1.2, 1.0, 5.0) == pytest.approx(2.4)

    def test_clamped_to_min(self):
        """Edge case: zero ATR falls back to the minimum band."""
        assert compute_band_pct(0.0, 1.2, 1.0, 5.0) == 1.0

    def test_clamped_to_max(self):
        assert compute_band_pct(50.0, 1.2, 1.0, 5.0) == 5.0

    def test_non_finite_uses_min(self):
        assert compute_band_pct(math.nan, 1.2, 1.0, 5.0) == 1.0
        assert compute_band_pct(math.inf, 1.2, 1.0, 5.0) == 1.0

    @pytest.mark.parametrize("atr_pct", [0.0, 0.3, 0.9, 2.0, 4.1, 10.0, 100.0])
    def test_always_within_limits(self, atr_pct):
        assert 1.0 <= compute_band_pct(atr_pct, 1.2, 1.0, 5.0) <= 5.0


class TestComputeBand:
    def test_bounds_bracket_reference(self):
        band = compute_band(50000.0, 2.4)
        assert band.lower_bound == pytest.approx(48800.0)
        assert band.upper_bound == pytest.approx(51200.0)
        assert band.lower_bound < band.reference < band.upper_bound


# ---------------------------------------------------------------------------
# State helpers
# ---------------------------------------------------------------------------


class TestCooldownState:
    def test_no_buy_yet_means_no_cooldown(self):
        assert CooldownState().remaining(now=10.0, cooldown_seconds=1800) == 0.0

    def test_remaining_after_buy(self):
        state = CooldownState(last_buy_timestamp=1000.0)
        assert state.remaining(now=1060.0, cooldown_seconds=1800) == 1740.0
        assert state.remaining(now=3000.0, cooldown_seconds=1800) == 0.0


class TestStrategyToggle:
    def test_override_and_clear(self):
        toggle = StrategyToggle(default=False)
        assert toggle.enabled is False

        toggle.set(True)
        assert toggle.enabled is True

        toggle.set(None)
        assert toggle.enabled is False


class TestStrategyConfigFromSettings:
    def test_maps_settings(self, make_settings):
        cfg = StrategyConfig.from_settings(make_settings(
            strat_currency="eth-usd",
            strat_buy_amount_usd=7,
            strat_sell_enabled=True,
            max_trade_usd=50,
            pricing_product_overrides="ETH-USD:ETH-USDT",
        ))
        assert cfg.symbol == "ETH-USD"
        assert cfg.buy_amount_usd == 7
        assert cfg.sell_enabled is True
        assert cfg.max_trade_usd == 50
        assert cfg.pricing_overrides == {"ETH-USD": "ETH-USDT"}


# ---------------------------------------------------------------------------
# tick
# ---------------------------------------------------------------------------


class TestTickBuy:
    @pytest.mark.asyncio
    async def test_buys_below_lower_band(self, make_strategy, price_source, set_price, ledger, order_log):
        """Happy path: MA 50000, ATR 2% -> band 2.4%, lower 48800; 48700 buys $5."""
        set_price(price_source, 48700.0)
        strategy = make_strategy()

        result = await strategy.tick()

        assert result.action == "buy"
        assert result.band["band_pct"] == pytest.approx(2.4)
        assert result.band["lower_bound"] == pytest.approx(48800.0)
        assert result.atr_pct == pytest.approx(2.0)
        assert result.order["quote_amount"] == 5.0
        assert ledger.base_balance == 0.000103
        assert len(order_log) == 1

    @pytest.mark.asyncio
    async def test_zero_atr_uses_min_band(self, make_strategy, price_source, set_price):
        # ATR 0 -> 1% band -> lower 49500
        price_source.get_average_true_range.return_value = 0.0
        set_price(price_source, 49499.0)

        result = await make_strategy().tick()

        assert result.action == "buy"
        assert result.band["band_pct"] == 1.0

    @pytest.mark.asyncio
    async def test_cooldown_blocks_second_buy(self, make_strategy, price_source, set_price, clock, order_log):
        """Edge case: ticks at t, t+60, t+1801 produce exactly two buys."""
        set_price(price_source, 48700.0)
        strategy = make_strategy(cooldown_seconds=1800)
        start = clock.now

        first = await strategy.tick()
        clock.now = start + 60
        second = await strategy.tick()
        clock.now = start + 1801
        third = await strategy.tick()

        assert [first.action, second.action, third.action] == ["buy", "cooldown", "buy"]
        assert second.cooldown_remaining_sec == pytest.approx(1740.0)
        assert len(order_log) == 2
        assert strategy.cooldown.last_buy_timestamp == start + 1801

    @pytest.mark.asyncio
    async def test_failed_buy_does_not_start_cooldown(self, make_strategy, price_source, set_price):
        set_price(price_source, 48700.0)
        strategy = make_strategy(buy_amount_usd=500.0)  # over max_trade_usd

        result = await strategy.tick()

        assert result.action == "error"
        assert strategy.cooldown.last_buy_timestamp is None

    @pytest.mark.asyncio
    async def test_live_mode_still_guarded_by_paper_switch(self, price_source, set_price, ledger, toggle, clock, executor):
        set_price(price_source, 48700.0)
        modes = []
        real_execute = executor.execute

        async def spy(*args):
            modes.append(args[3])
            return await real_execute(*args)

        executor.execute = spy
        strategy = RangeAccumulationStrategy(
            StrategyConfig(), price_source, executor, ledger, toggle, mode_resolver=lambda: "live", clock=clock
        )

        result = await strategy.tick()

        assert modes == ["live"]
        assert result.action == "error"
        assert "paper mode enabled" in result.error
        assert strategy.cooldown.last_buy_timestamp is None


class TestTickSell:
    @pytest.mark.asyncio
    async def test_sells_fraction_capped_at_max_trade(self, make_strategy, price_source, set_price, ledger):
        """Sell trigger: upper 51200 * 1.005 = 51456; 52000 sells min(20% of holdings, $100)."""
        ledger.base_balance = 0.01
        set_price(price_source, 52000.0)
        strategy = make_strategy(sell_enabled=True)

        result = await strategy.tick()

        assert result.action == "sell"
        # 0.002 * 52000 = 104 -> capped at 100
        assert result.order["quote_amount"] == pytest.approx(100.0)
        assert ledger.base_balance == pytest.approx(0.01 - 100.0 / 52000.0)

    @pytest.mark.asyncio
    async def test_small_holding_sells_exact_fraction(self, make_strategy, price_source, set_price, ledger):
        ledger.base_balance = 0.001
        set_price(price_source, 52000.0)

        result = await make_strategy(sell_enabled=True).tick()

        assert result.action == "sell"
        assert result.order["quote_amount"] == pytest.approx(0.0002 * 52000.0)

    @pytest.mark.asyncio
    async def test_between_upper_and_sell_trigger_holds(self, make_strategy, price_source, set_price, ledger):
        ledger.base_balance = 0.01
        set_price(price_source, 51300.0)

        result = await make_strategy(sell_enabled=True).tick()

        assert result.action == "hold"

    @pytest.mark.asyncio
    async def test_sell_disabled_holds(self, make_strategy, price_source, set_price, ledger):
        ledger.base_balance = 0.01
        set_price(price_source, 52000.0)

        result = await make_strategy(sell_enabled=False).tick()

        assert result.action == "hold"
        assert ledger.base_balance == 0.01

    @pytest.mark.asyncio
    async def test_dust_holding_not_sold(self, make_strategy, price_source, set_price, ledger):
        ledger.base_balance = 0.000005
        set_price(price_source, 52000.0)

        result = await make_strategy(sell_enabled=True).tick()

        assert result.action == "hold"


class TestTickLiveMode:
    @pytest.fixture
    def live_strategy(self, make_settings, price_source, ledger, order_log, toggle, clock, mock_gateway):
        live_executor = OrderExecutor(
            make_settings(paper_trading=False), price_source, ledger, order_log,
            gateway_factory=lambda: mock_gateway,
        )
        return RangeAccumulationStrategy(
            StrategyConfig(sell_enabled=True), price_source, live_executor, ledger, toggle,
            mode_resolver=lambda: "live", clock=clock,
        )

    @pytest.mark.asyncio
    async def test_paper_holdings_never_sold_live(self, live_strategy, executor, price_source, set_price, ledger, mock_gateway):
        """Failure: paper balance must not size a real sell order."""
        await executor.execute("BTC-USD", "buy", 100, "paper")
        assert ledger.base_balance == 0.002
        set_price(price_source, 60000.0)

        result = await live_strategy.tick()

        assert result.action == "sell_skipped"
        assert result.order is None
        mock_gateway.submit_order.assert_not_called()
        assert ledger.base_balance == 0.002

    @pytest.mark.asyncio
    async def test_live_buy_still_placed(self, live_strategy, price_source, set_price, ledger, mock_gateway):
        set_price(price_source, 48700.0)

        result = await live_strategy.tick()

        assert result.action == "buy"
        assert result.order["mode"] == "live"
        mock_gateway.submit_order.assert_awaited_once()
        assert ledger.base_balance == 0


class TestTickOther:
    @pytest.mark.asyncio
    async def test_hold_inside_band(self, make_strategy, order_log):
        result = await make_strategy().tick()

        assert result.action == "hold"
        assert result.price == 50000.0
        assert len(order_log) == 0

    @pytest.mark.asyncio
    async def test_disabled_does_nothing(self, make_strategy, toggle, price_source):
        toggle.set(False)

        result = await make_strategy().tick()

        assert result.action == "disabled"
        price_source.get_ticker.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reference", [0.0, -1.0, math.nan])
    async def test_invalid_reference(self, make_strategy, price_source, set_price, order_log, reference):
        """Failure: a bad moving average never trades."""
        set_price(price_source, 10.0)
        price_source.get_historical_average.return_value = reference

        result = await make_strategy().tick()

        assert result.action == "invalid_reference"
        assert len(order_log) == 0
        price_source.get_average_true_range.assert_not_called()

    @pytest.mark.asyncio
    async def test_errors_returned_for_timer_ticks(self, make_strategy, price_source):
        price_source.get_ticker.side_effect = UpstreamError("ticker down")

        result = await make_strategy().tick("timer")

        assert result.action == "error"
        assert result.error == "ticker down"

    @pytest.mark.asyncio
    async def test_errors_raised_when_requested(self, make_strategy, price_source):
        price_source.get_ticker.side_effect = UpstreamError("ticker down")

        with pytest.raises(UpstreamError):
            await make_strategy().tick("manual", raise_errors=True)

    @pytest.mark.asyncio
    async def test_prices_through_proxy_pair(self, make_strategy, price_source):
        await make_strategy(symbol="BTC-USDC").tick()

        price_source.get_ticker.assert_awaited_with("BTC-USD")
        price_source.get_historical_average.assert_awaited_with("BTC-USD", 12)


class TestGetStatus:
    @pytest.mark.asyncio
    async def test_status_reports_cooldown(self, make_strategy, price_source, set_price, clock):
        set_price(price_source, 48700.0)
        strategy = make_strategy()
        await strategy.tick()
        clock.now += 600

        status = strategy.get_status()

        assert status["enabled"] is True
        assert status["symbol"] == "BTC-USD"
        assert status["mode"] == "paper"
        assert status["cooldown_remaining_sec"] == pytest.approx(1200.0)
