"""Persistence layer exports."""

from .db_manager import DatabaseManager
from .models import (
    Base,
    Bot,
    BotRecord,
    BotStatus,
    PaperAccount,
    PaperAccountRecord,
    PaperPosition,
    PortfolioPosition,
    PositionRecord,
    Trade,
    TradeRecord,
)

__all__ = [
    'DatabaseManager',
    'Base',
    'Bot',
    'BotRecord',
    'BotStatus',
    'PaperAccount',
    'PaperAccountRecord',
    'PaperPosition',
    'PortfolioPosition',
    'PositionRecord',
    'Trade',
    'TradeRecord',
]
