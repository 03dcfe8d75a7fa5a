"""Core package for the algorithmic trading bot engine."""

from importlib import metadata

try:
    __version__ = metadata.version('algo_trading_engine')
except metadata.PackageNotFoundError:  # pragma: no cover
    __version__ = '0.1.0-dev'

__all__ = ['__version__']
