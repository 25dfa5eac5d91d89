"""Tests for trading_context.py"""

import pytest

from rangebot.trading_context import build_trading_context, strategy_mode


class TestStrategyMode:
    @pytest.mark.parametrize("paper_trading,live_orders,expected", [
        (True, False, "paper"),
        (True, True, "paper"),
        (False, False, "paper"),
        (False, True, "live"),
    ])
    def test_live_requires_both_switches(self, make_settings, paper_trading, live_orders, expected):
        config = make_settings(paper_trading=paper_trading, strat_live_orders=live_orders)
        assert strategy_mode(config) == expected


class TestBuildTradingContext:
    def test_wires_shared_state(self, make_settings, price_source):
        context = build_trading_context(config=make_settings(strat_currency="eth-usd"), price_source=price_source)

        assert context.ledger.base_currency == "ETH"
        assert context.executor.ledger is context.ledger
        assert context.strategy.ledger is context.ledger
        assert context.executor.order_log is context.order_log
        assert context.strategy.cooldown is context.cooldown
        assert context.monitor.strategy is context.strategy

    def test_status_shape(self, make_settings, price_source):
        context = build_trading_context(config=make_settings(), price_source=price_source)

        status = context.get_status()

        assert status["paper"] is True
        assert status["balances"]["base"] == 0.0
        assert status["recent_orders"] == []
        assert status["strategy"]["mode"] == "paper"
        assert status["monitor"]["interval_seconds"] == 900
