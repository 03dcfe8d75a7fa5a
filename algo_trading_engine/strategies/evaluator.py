"""Signal evaluation for the supported bot strategies."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Sequence

from ..utils.indicators import bollinger_bands, moving_average, relative_strength_index
from .config import (
    BollingerBounceParams,
    MovingAverageCrossoverParams,
    RsiThresholdParams,
    Side,
    StrategyConfig,
    StrategyParams,
)

logger = logging.getLogger(__name__)


def _ma_crossover(prices: Sequence[float], params: MovingAverageCrossoverParams) -> Optional[Side]:
    short_ma = moving_average(prices, params.short_period)
    long_ma = moving_average(prices, params.long_period)
    previous_short, current_short = short_ma[-2], short_ma[-1]
    previous_long, current_long = long_ma[-2], long_ma[-1]
    logger.debug(
        'MA crossover short %.6f -> %.6f, long %.6f -> %.6f',
        previous_short, current_short, previous_long, current_long,
    )
    if previous_short <= previous_long and current_short > current_long:
        return 'buy'
    if previous_short >= previous_long and current_short < current_long:
        return 'sell'
    return None


def _rsi_threshold(prices: Sequence[float], params: RsiThresholdParams) -> Optional[Side]:
    current = relative_strength_index(prices, params.period)[-1]
    logger.debug('RSI(%d) = %.2f', params.period, current)
    # level check, fires on every tick while the oscillator stays outside the band
    if current < params.oversold_threshold:
        return 'buy'
    if current > params.overbought_threshold:
        return 'sell'
    return None


def _bollinger_bounce(prices: Sequence[float], params: BollingerBounceParams) -> Optional[Side]:
    band = bollinger_bands(prices, params.period, params.deviations)[-1]
    price = prices[-1]
    logger.debug('Bollinger %.6f < %.6f < %.6f, price %.6f', band.lower, band.middle, band.upper, price)
    if price < band.lower:
        return 'buy'
    if price > band.upper:
        return 'sell'
    return None


_EVALUATORS: Dict[type, Callable[[Sequence[float], StrategyParams], Optional[Side]]] = {
    MovingAverageCrossoverParams: _ma_crossover,
    RsiThresholdParams: _rsi_threshold,
    BollingerBounceParams: _bollinger_bounce,
}


def evaluate(prices: Sequence[float], config: StrategyConfig) -> Optional[Side]:
    """Return ``'buy'``, ``'sell'`` or ``None`` for the latest price.

    Histories shorter than the strategy lookback never produce a signal.
    """
    if len(prices) < config.lookback:
        return None
    handler = _EVALUATORS.get(type(config.params))
    if handler is None:
        raise TypeError(f'No evaluator for {type(config.params).__name__}')
    return handler(list(prices), config.params)


__all__ = ['evaluate']
