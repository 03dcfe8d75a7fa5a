"""Order management backed by Binance REST API."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ..config import BinanceConfig
from ..exchanges import BinanceService, BinanceAPIException, BinanceRequestException
from ..strategies import Side

logger = logging.getLogger(__name__)


class OrderRejectedError(RuntimeError):
    """The exchange refused or failed to execute an order."""


@dataclass
class OrderResult:
    order_id: str
    status: str
    filled_quantity: float
    raw: dict


class OrderManager:
    """Submits market orders to Binance or simulates fills when no service is provided."""

    def __init__(
        self,
        service: Optional[BinanceService] = None,
        config: Optional[BinanceConfig] = None,
    ) -> None:
        self._service = service
        self._config = config or (service.config if service else BinanceConfig())
        self._id_counter = 0
        self._lock = asyncio.Lock()

    @property
    def is_simulated(self) -> bool:
        return self._service is None

    async def execute(self, side: Side, symbol: str, amount: float) -> OrderResult:
        """Place a market order; raises :class:`OrderRejectedError` on failure.

        Failures are never retried here.
        """
        if side not in ('buy', 'sell'):
            raise ValueError(f'Unsupported order side: {side!r}')
        if amount <= 0:
            raise ValueError('Order amount must be positive')
        if self._service is None:
            return await self._execute_simulated(side, symbol, amount)
        return await self._execute_live(side, symbol, amount)

    async def _execute_live(self, side: Side, symbol: str, amount: float) -> OrderResult:
        client = await self._service.client()
        params = {
            'symbol': symbol.upper(),
            'side': side.upper(),
            'type': 'MARKET',
            'quantity': float(amount),
            **self._config.order_options(),
        }
        try:
            response = await client.create_order(**params)
        except (BinanceAPIException, BinanceRequestException) as exc:  # pragma: no cover - network path
            raise OrderRejectedError(f'Order rejected: {exc}') from exc

        status = response.get('status', 'UNKNOWN')
        if status in {'REJECTED', 'EXPIRED', 'CANCELED'}:
            raise OrderRejectedError(f'Order {response.get("orderId")} ended with status {status}')
        logger.info('Live %s %s %s -> %s', side, amount, symbol, status)
        return OrderResult(
            order_id=str(response.get('orderId', '')),
            status=status,
            filled_quantity=float(response.get('executedQty', amount)),
            raw=response,
        )

    async def _execute_simulated(self, side: Side, symbol: str, amount: float) -> OrderResult:
        async with self._lock:
            self._id_counter += 1
            order_id = f'sim-{self._id_counter}'
        logger.debug('Simulated %s %s %s as %s', side, amount, symbol, order_id)
        return OrderResult(
            order_id=order_id,
            status='FILLED',
            filled_quantity=float(amount),
            raw={'simulated': True},
        )

    async def close(self) -> None:
        if self._service is not None:
            await self._service.close()


__all__ = ['OrderManager', 'OrderRejectedError', 'OrderResult']
