"""
Order executor

Validates orders against the risk configuration and routes them either to
the paper ledger or to the Coinbase gateway. Every successful execution is
appended to the order log.
"""

import asyncio
import logging
import math
from typing import Callable, Optional

from rangebot.coinbase_api.gateway import CoinbaseGateway
from rangebot.coinbase_api.order_api import build_market_order_body, summarize_order_response
from rangebot.currency_utils import get_currencies_from_pair, is_product_allowed, order_product_id, pricing_product_id
from rangebot.exceptions import ExecutionFailure, RiskViolation, UpstreamError
from rangebot.precision import round_base_quantity
from rangebot.price_feeds.base import PriceSource, Ticker
from rangebot.trading_engine.ledger import PaperLedger
from rangebot.trading_engine.order_logger import OrderLog, OrderRecord

logger = logging.getLogger(__name__)

SIDES = ("buy", "sell")
MODES = ("paper", "live")


class OrderExecutor:
    """
    Executes market orders in paper or live mode.

    A single asyncio.Lock serializes executions so that a price fetch and
    the ledger mutation that depends on it cannot interleave with another
    order.
    """

    def __init__(
        self,
        config,
        price_source: PriceSource,
        ledger: PaperLedger,
        order_log: OrderLog,
        gateway_factory: Optional[Callable[[], CoinbaseGateway]] = None,
    ):
        self.config = config
        self.price_source = price_source
        self.ledger = ledger
        self.order_log = order_log
        self._gateway_factory = gateway_factory or (lambda: CoinbaseGateway.from_settings(config))
        self._gateway: Optional[CoinbaseGateway] = None
        self._lock = asyncio.Lock()

    def _get_gateway(self) -> CoinbaseGateway:
        # Built on first live order so missing credentials fail here, before any I/O
        if self._gateway is None:
            self._gateway = self._gateway_factory()
        return self._gateway

    def validate(self, product_id: str, side: str, quote_amount: float) -> tuple:
        """
        Risk checks shared by both modes.

        Returns:
            (normalized product_id, normalized side)
        """
        normalized_side = str(side).strip().lower()
        if normalized_side not in SIDES:
            raise RiskViolation(f"bad side {side}")

        product = order_product_id(product_id)
        if not is_product_allowed(product, self.config.get_allowed_products()):
            raise RiskViolation(f"symbol not allowed: {product}")

        try:
            amount = float(quote_amount)
        except (TypeError, ValueError):
            raise RiskViolation(f"Invalid amount: {quote_amount!r}")
        if not math.isfinite(amount) or amount <= 0:
            raise RiskViolation("Amount must be greater than 0")
        if amount > self.config.max_trade_usd:
            raise RiskViolation(
                f"Amount ${amount} exceeds max trade size ${self.config.max_trade_usd}"
            )
        return product, normalized_side

    def _check_ledger_asset(self, product_id: str):
        # One paper ledger; fills in another base asset would be booked as the wrong coin
        base_currency, _ = get_currencies_from_pair(product_id)
        if base_currency != self.ledger.base_currency:
            raise RiskViolation(
                f"paper ledger tracks {self.ledger.base_currency}, cannot simulate {product_id}"
            )

    async def _get_sizing_ticker(self, product_id: str) -> Ticker:
        pricing_product = pricing_product_id(product_id, self.config.get_pricing_overrides())
        try:
            ticker = await self.price_source.get_ticker(pricing_product)
        except UpstreamError:
            raise
        except Exception as e:
            raise ExecutionFailure(f"Could not get price for {product_id}: {e}") from e
        if not ticker.is_valid:
            raise ExecutionFailure(f"Could not get price for {product_id}")
        return ticker

    async def execute(self, product_id: str, side: str, quote_amount: float, mode: str = "paper") -> OrderRecord:
        """
        Execute one market order.

        Raises:
            RiskViolation: disallowed pair, bad side/amount, live while paper mode is on,
                or a paper order in a base asset the ledger does not track
            ExecutionFailure: the fill could not be computed
            GatewayError / ConfigurationError / SigningError: live path failures
        """
        mode = str(mode).strip().lower()
        if mode not in MODES:
            raise RiskViolation(f"Unknown order mode: {mode}")

        # Hard safety switch, checked before anything else
        if mode == "live" and self.config.paper_trading:
            raise RiskViolation("paper mode enabled, set PAPER_TRADING=false to place live orders")

        product, side = self.validate(product_id, side, quote_amount)
        amount = float(quote_amount)
        if mode == "paper":
            self._check_ledger_asset(product)

        async with self._lock:
            if mode == "paper":
                record = await self._execute_paper(product, side, amount)
            else:
                record = await self._execute_live(product, side, amount)
            self.order_log.append(record)

        return record

    async def _execute_paper(self, product_id: str, side: str, quote_amount: float) -> OrderRecord:
        ticker = await self._get_sizing_ticker(product_id)

        if side == "buy":
            fill = self.ledger.apply_buy(quote_amount, ticker.price)
        else:
            fill = self.ledger.apply_sell(quote_amount / ticker.price, ticker.price)

        balances = self.ledger.snapshot()
        logger.info(
            f"[AUTO PAPER] {side.upper()} ${quote_amount} @ {ticker.price:.2f} qty={fill.quantity}, "
            f"balances: {self.ledger.base_currency}={balances['base']:.6f}, "
            f"{self.ledger.quote_currency}={balances['quote']:.2f}"
        )

        return OrderRecord(
            product_id=product_id,
            side=side,
            quote_amount=quote_amount,
            mode="paper",
            price=ticker.price,
            quantity=fill.quantity,
            balances=balances,
        )

    async def _execute_live(self, product_id: str, side: str, quote_amount: float) -> OrderRecord:
        gateway = self._get_gateway()
        ticker = await self._get_sizing_ticker(product_id)

        if side == "buy":
            body = build_market_order_body(product_id, side, quote_size=quote_amount)
        else:
            body = build_market_order_body(
                product_id, side, base_size=round_base_quantity(quote_amount / ticker.price)
            )

        response = await gateway.submit_order(body)
        summary = summarize_order_response(response)

        logger.info(
            f"[LIVE ORDER] {side.upper()} {product_id} for ${quote_amount} placed "
            f"(order_id: {summary['order_id']})"
        )

        return OrderRecord(
            product_id=product_id,
            side=side,
            quote_amount=quote_amount,
            mode="live",
            price=ticker.price,
            quantity=round_base_quantity(quote_amount / ticker.price),
            order_id=summary["order_id"],
            success=summary["success"],
            response=summary,
        )
