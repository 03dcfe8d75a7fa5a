"""Current-price providers polled by running bots."""

from __future__ import annotations

import asyncio
import random
import time
from typing import Dict, Optional, Protocol

from ..exchanges import BinanceAPIException, BinanceRequestException, BinanceService


class PriceUnavailableError(RuntimeError):
    """Raised when no price can be obtained for a symbol."""


class PriceSource(Protocol):
    async def current_price(self, symbol: str) -> float:
        ...


class BinancePriceSource:
    """Reads the last traded price from the Binance ticker endpoint."""

    def __init__(self, service: BinanceService) -> None:
        self._service = service

    async def current_price(self, symbol: str) -> float:
        client = await self._service.client()
        try:
            ticker = await client.get_symbol_ticker(symbol=symbol.upper())
        except (BinanceAPIException, BinanceRequestException) as exc:  # pragma: no cover - network path
            raise PriceUnavailableError(f'Price lookup failed for {symbol}: {exc}') from exc
        try:
            return float(ticker['price'])
        except (KeyError, TypeError, ValueError) as exc:
            raise PriceUnavailableError(f'Malformed ticker for {symbol}: {ticker!r}') from exc


class SimulatedPriceSource:
    """Random-walk prices for running without exchange credentials."""

    def __init__(
        self,
        seed: Optional[float] = None,
        volatility: float = 0.002,
        base_prices: Optional[Dict[str, float]] = None,
    ) -> None:
        self._rng = random.Random(time.time() if seed is None else seed)
        self._volatility = volatility
        self._prices: Dict[str, float] = dict(base_prices or {})

    async def current_price(self, symbol: str) -> float:
        await asyncio.sleep(0)
        price = self._prices.get(symbol)
        if price is None:
            price = self._rng.uniform(10_000, 60_000)
        else:
            price *= 1 + self._rng.gauss(0.0, self._volatility)
        price = max(round(price, 2), 0.01)
        self._prices[symbol] = price
        return price


__all__ = ['BinancePriceSource', 'PriceSource', 'PriceUnavailableError', 'SimulatedPriceSource']
