"""Market data layer."""

from .price_source import BinancePriceSource, PriceSource, PriceUnavailableError, SimulatedPriceSource

__all__ = ['BinancePriceSource', 'PriceSource', 'PriceUnavailableError', 'SimulatedPriceSource']
