"""Indicator helpers.

Every function returns one value per complete trailing window, so the last
element always describes the window ending at the latest input.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True)
class Band:
    middle: float
    upper: float
    lower: float


def moving_average(values: Iterable[float], window: int) -> List[float]:
    values = list(values)
    if window <= 0:
        raise ValueError('window must be positive')
    if len(values) < window:
        return []
    result: List[float] = []
    for index in range(window - 1, len(values)):
        slice_ = values[index - window + 1 : index + 1]
        result.append(sum(slice_) / window)
    return result


def rolling_std(values: Iterable[float], window: int) -> List[float]:
    """Population standard deviation over each trailing window."""
    values = list(values)
    if window <= 0:
        raise ValueError('window must be positive')
    result: List[float] = []
    for index in range(window - 1, len(values)):
        slice_ = values[index - window + 1 : index + 1]
        avg = sum(slice_) / window
        variance = sum((value - avg) ** 2 for value in slice_) / window
        result.append(math.sqrt(variance))
    return result


def relative_strength_index(values: Iterable[float], period: int) -> List[float]:
    """Wilder RSI. Needs ``period + 1`` values for the first reading."""
    values = list(values)
    if period <= 0:
        raise ValueError('period must be positive')
    if len(values) <= period:
        return []

    changes = [current - previous for previous, current in zip(values, values[1:])]
    avg_gain = sum(max(change, 0.0) for change in changes[:period]) / period
    avg_loss = sum(max(-change, 0.0) for change in changes[:period]) / period
    result = [_rsi(avg_gain, avg_loss)]
    for change in changes[period:]:
        avg_gain = (avg_gain * (period - 1) + max(change, 0.0)) / period
        avg_loss = (avg_loss * (period - 1) + max(-change, 0.0)) / period
        result.append(_rsi(avg_gain, avg_loss))
    return result


def _rsi(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def bollinger_bands(values: Iterable[float], window: int, deviations: float = 2.0) -> List[Band]:
    values = list(values)
    middles = moving_average(values, window)
    spreads = rolling_std(values, window)
    return [
        Band(middle=middle, upper=middle + deviations * spread, lower=middle - deviations * spread)
        for middle, spread in zip(middles, spreads)
    ]


__all__ = [
    'Band',
    'bollinger_bands',
    'moving_average',
    'relative_strength_index',
    'rolling_std',
]
