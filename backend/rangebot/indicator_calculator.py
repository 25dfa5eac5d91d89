"""
Candle math for the range strategy

Candles use the Coinbase Exchange layout:
[time, low, high, open, close, volume], newest first.
"""

from typing import List, Sequence

Candle = Sequence[float]

LOW, HIGH, CLOSE = 1, 2, 4


class InsufficientDataError(ValueError):
    """Not enough candles to compute an indicator"""


def calculate_mean_close(candles: List[Candle]) -> float:
    """Arithmetic mean of close prices"""
    if not candles:
        raise InsufficientDataError("no candle data")
    closes = [float(c[CLOSE]) for c in candles]
    return sum(closes) / len(closes)


def calculate_true_ranges(chronological: List[Candle]) -> List[float]:
    """
    True range for every candle after the first:
    max(high - low, |high - prev_close|, |low - prev_close|)
    """
    true_ranges = []
    for prev, candle in zip(chronological, chronological[1:]):
        high = float(candle[HIGH])
        low = float(candle[LOW])
        prev_close = float(prev[CLOSE])
        true_ranges.append(max(high - low, abs(high - prev_close), abs(low - prev_close)))
    return true_ranges


def calculate_atr(candles: List[Candle], period: int) -> float:
    """
    Average true range over `period` candles.

    Uses the newest period + 1 candles (one extra for the first previous
    close).
    """
    if period < 1:
        raise ValueError("period must be at least 1")
    if len(candles) < period + 1:
        raise InsufficientDataError(f"not enough candles ({len(candles)} < {period + 1})")

    chronological = list(reversed(candles[: period + 1]))
    true_ranges = calculate_true_ranges(chronological)
    return sum(true_ranges) / len(true_ranges)
