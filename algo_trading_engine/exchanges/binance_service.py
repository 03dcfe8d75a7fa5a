"""Shared Binance client management."""

from __future__ import annotations

import asyncio
from typing import Optional

from binance import AsyncClient
from binance.exceptions import BinanceAPIException, BinanceRequestException

from ..config import BinanceConfig


class BinanceService:
    """Lazily instantiates the Binance AsyncClient shared by prices and orders."""

    def __init__(self, config: BinanceConfig) -> None:
        if not config.is_configured:
            raise RuntimeError('Binance API key and secret are required for live trading')
        self._config = config
        self._client: Optional[AsyncClient] = None
        self._lock = asyncio.Lock()

    @property
    def config(self) -> BinanceConfig:
        return self._config

    async def client(self) -> AsyncClient:
        async with self._lock:
            if self._client is None:
                self._client = await AsyncClient.create(**self._config.client_options())
            return self._client

    async def close(self) -> None:
        async with self._lock:
            if self._client is not None:
                await self._client.close_connection()
                self._client = None


__all__ = ['BinanceService', 'BinanceAPIException', 'BinanceRequestException']
