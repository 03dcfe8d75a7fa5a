"""Utility helpers."""

from .helpers import async_retry
from .indicators import Band, bollinger_bands, moving_average, relative_strength_index, rolling_std

__all__ = [
    'async_retry',
    'Band',
    'bollinger_bands',
    'moving_average',
    'relative_strength_index',
    'rolling_std',
]
