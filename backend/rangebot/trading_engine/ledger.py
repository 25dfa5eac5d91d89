"""
Paper Trading Ledger

Simulated base/quote balances for paper fills. Uses real market prices
supplied by the caller; nothing is persisted and balances reset to zero
on restart.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict

from rangebot.exceptions import ExecutionFailure
from rangebot.precision import round_base_quantity

logger = logging.getLogger(__name__)


@dataclass
class Fill:
    quantity: float
    price: float
    quote_amount: float


class PaperLedger:
    """
    In-memory balances for a single base/quote pair.

    The quote balance tracks net spend and may go negative; buys are not
    limited by available quote funds. Callers serialize access (see
    OrderExecutor), methods themselves never await.
    """

    def __init__(self, base_currency: str = "BTC", quote_currency: str = "USD"):
        self.base_currency = base_currency
        self.quote_currency = quote_currency
        self.base_balance = 0.0
        self.quote_balance = 0.0

    @staticmethod
    def _check_price(price: float):
        if not math.isfinite(price) or price <= 0:
            raise ExecutionFailure(f"Cannot fill at price {price}")

    def apply_buy(self, quote_amount: float, price: float) -> Fill:
        """Spend `quote_amount` at `price`; quantity is rounded to 6 decimals"""
        self._check_price(price)
        quantity = round_base_quantity(quote_amount / price)
        self.base_balance += quantity
        self.quote_balance -= quote_amount
        return Fill(quantity=quantity, price=price, quote_amount=quote_amount)

    def apply_sell(self, target_quantity: float, price: float) -> Fill:
        """
        Sell up to `target_quantity` at `price`.

        Capped at the held base balance: a sell never oversells the ledger.
        """
        self._check_price(price)
        quantity = min(target_quantity, self.base_balance)
        if quantity < target_quantity:
            logger.info(
                f"Paper sell capped to held balance: requested {target_quantity:.8f}, "
                f"holding {self.base_balance:.8f} {self.base_currency}"
            )
        proceeds = quantity * price
        self.base_balance -= quantity
        self.quote_balance += proceeds
        return Fill(quantity=quantity, price=price, quote_amount=proceeds)

    def snapshot(self) -> Dict[str, float]:
        return {
            "base": self.base_balance,
            "quote": self.quote_balance,
            "base_currency": self.base_currency,
            "quote_currency": self.quote_currency,
        }
