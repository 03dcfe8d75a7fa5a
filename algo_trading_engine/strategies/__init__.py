"""Strategy configuration and signal evaluation."""

from .config import (
    BollingerBounceParams,
    MovingAverageCrossoverParams,
    RsiThresholdParams,
    Side,
    StrategyConfig,
    StrategyKind,
    StrategyParams,
    TradingMode,
    build_params,
    validate_config,
)
from .evaluator import evaluate

__all__ = [
    'BollingerBounceParams',
    'MovingAverageCrossoverParams',
    'RsiThresholdParams',
    'Side',
    'StrategyConfig',
    'StrategyKind',
    'StrategyParams',
    'TradingMode',
    'build_params',
    'evaluate',
    'validate_config',
]
