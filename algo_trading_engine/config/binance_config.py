"""Credentials and request options for the Binance account live bots trade on."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Literal, Mapping

from .config import Settings

Network = Literal['mainnet', 'testnet']

# Binance refuses signed requests with a larger receive window
MAX_RECV_WINDOW = 60_000


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f'{name} must be an integer, got {raw!r}') from None


@dataclass(frozen=True)
class BinanceConfig:
    """API credentials plus the options every client call and order carries.

    Without credentials the engine runs on simulated prices and fills, so an
    empty config is valid; :attr:`is_configured` tells the two apart.
    """

    api_key: str = ''
    api_secret: str = ''
    network: Network = 'testnet'
    recv_window: int = 5_000
    request_timeout: int = 10

    def __post_init__(self) -> None:
        if self.network not in {'mainnet', 'testnet'}:
            raise ValueError(f'Unsupported network: {self.network}')
        if not 0 < self.recv_window <= MAX_RECV_WINDOW:
            raise ValueError(f'recv_window must be between 1 and {MAX_RECV_WINDOW} ms')
        if self.request_timeout <= 0:
            raise ValueError('request_timeout must be positive')

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_secret)

    @property
    def is_testnet(self) -> bool:
        return self.network == 'testnet'

    def client_options(self) -> Dict[str, Any]:
        """Keyword arguments for ``AsyncClient.create``."""
        return {
            'api_key': self.api_key,
            'api_secret': self.api_secret,
            'testnet': self.is_testnet,
            'requests_params': {'timeout': self.request_timeout},
        }

    def order_options(self) -> Dict[str, Any]:
        return {'recvWindow': self.recv_window}

    @classmethod
    def from_env(
        cls,
        settings: Settings,
        environ: Mapping[str, str] | None = None,
    ) -> 'BinanceConfig':
        env = environ if environ is not None else os.environ
        return cls(
            api_key=env.get('BINANCE_API_KEY', '').strip(),
            api_secret=env.get('BINANCE_API_SECRET', '').strip(),
            network='testnet' if settings.use_testnet else 'mainnet',
            recv_window=_env_int(env, 'BINANCE_RECV_WINDOW', cls.recv_window),
            request_timeout=_env_int(env, 'BINANCE_API_TIMEOUT', cls.request_timeout),
        )


__all__ = ['BinanceConfig', 'MAX_RECV_WINDOW', 'Network']
