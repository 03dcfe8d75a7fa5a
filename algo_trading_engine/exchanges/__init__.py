"""Exchange integrations exposed to the rest of the engine."""

from .binance_service import (
    BinanceAPIException,
    BinanceRequestException,
    BinanceService,
)

__all__ = ['BinanceService', 'BinanceAPIException', 'BinanceRequestException']
