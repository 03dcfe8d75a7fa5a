"""Bot scheduling, order execution and settlement."""

from .bot_scheduler import BotKey, BotScheduler, BotState, PriceSample
from .order_manager import OrderManager, OrderRejectedError, OrderResult
from .settlement import (
    InsufficientBalanceError,
    InsufficientPositionError,
    MissingStateError,
    SettlementEngine,
    SettlementError,
    SettlementResult,
)
from .strategy_service import StrategyService

__all__ = [
    'BotKey',
    'BotScheduler',
    'BotState',
    'InsufficientBalanceError',
    'InsufficientPositionError',
    'MissingStateError',
    'OrderManager',
    'OrderRejectedError',
    'OrderResult',
    'PriceSample',
    'SettlementEngine',
    'SettlementError',
    'SettlementResult',
    'StrategyService',
]
