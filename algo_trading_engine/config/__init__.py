"""Configuration utilities for the trading engine."""

from .config import Settings, load_settings
from .binance_config import BinanceConfig

__all__ = ['Settings', 'BinanceConfig', 'load_settings']
