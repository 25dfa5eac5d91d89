"""
Order logging for the trading engine

Keeps the most recent orders in memory for operational visibility. This is
not a source of truth for balances.
"""

from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

from rangebot.constants import ORDER_LOG_CAPACITY


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class OrderRecord:
    """One executed order; immutable once recorded"""
    product_id: str
    side: str  # "buy" or "sell"
    quote_amount: float  # requested quote (USD) amount
    mode: str  # "paper" or "live"
    price: float
    quantity: float
    timestamp: str = field(default_factory=_utc_now)
    order_id: Optional[str] = None
    success: bool = True
    balances: Optional[Dict[str, Any]] = None  # paper ledger after the fill
    response: Optional[Dict[str, Any]] = None  # live order summary

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class OrderLog:
    """Bounded FIFO of OrderRecord; the oldest entry is evicted first"""

    def __init__(self, capacity: int = ORDER_LOG_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: Deque[OrderRecord] = deque(maxlen=capacity)

    def append(self, record: OrderRecord):
        self._entries.append(record)

    def entries(self) -> List[OrderRecord]:
        """Oldest first"""
        return list(self._entries)

    def recent(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Newest first, as dicts"""
        items = [r.to_dict() for r in reversed(self._entries)]
        return items[:limit] if limit is not None else items

    def __len__(self) -> int:
        return len(self._entries)
