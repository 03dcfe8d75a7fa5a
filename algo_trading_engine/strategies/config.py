"""Strategy configuration types.

A bot's configuration is fixed for the lifetime of a run; changing
parameters means stopping the bot and starting it again.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass
from typing import Any, Dict, Literal, Mapping, Union

Side = Literal['buy', 'sell']


class StrategyKind(str, enum.Enum):
    MA_CROSSOVER = 'MA_CROSSOVER'
    RSI_OVERSOLD = 'RSI_OVERSOLD'
    BOLLINGER_BOUNCE = 'BOLLINGER_BOUNCE'


class TradingMode(str, enum.Enum):
    PAPER = 'paper'
    LIVE = 'live'


@dataclass(frozen=True)
class MovingAverageCrossoverParams:
    short_period: int = 10
    long_period: int = 20

    @property
    def lookback(self) -> int:
        # one extra sample so the previous crossover state exists
        return max(self.short_period, self.long_period) + 1


@dataclass(frozen=True)
class RsiThresholdParams:
    period: int = 14
    oversold_threshold: float = 30.0
    overbought_threshold: float = 70.0

    @property
    def lookback(self) -> int:
        return self.period + 1


@dataclass(frozen=True)
class BollingerBounceParams:
    period: int = 20
    deviations: float = 2.0

    @property
    def lookback(self) -> int:
        return self.period


StrategyParams = Union[MovingAverageCrossoverParams, RsiThresholdParams, BollingerBounceParams]

_PARAMS_BY_KIND = {
    StrategyKind.MA_CROSSOVER: MovingAverageCrossoverParams,
    StrategyKind.RSI_OVERSOLD: RsiThresholdParams,
    StrategyKind.BOLLINGER_BOUNCE: BollingerBounceParams,
}

# payload key -> field name per kind; camelCase comes from the dashboard client
_PARAM_ALIASES: Dict[StrategyKind, Dict[str, str]] = {
    StrategyKind.MA_CROSSOVER: {'shortPeriod': 'short_period', 'longPeriod': 'long_period'},
    StrategyKind.RSI_OVERSOLD: {
        'rsiPeriod': 'period',
        'oversoldThreshold': 'oversold_threshold',
        'overboughtThreshold': 'overbought_threshold',
    },
    StrategyKind.BOLLINGER_BOUNCE: {'stdDev': 'deviations'},
}

_INT_FIELDS = {'short_period', 'long_period', 'period'}


def _coerce_number(name: str, value: Any) -> float | int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if name in _INT_FIELDS:
        if not number.is_integer() or number <= 0:
            return None
        return int(number)
    return number


def build_params(kind: StrategyKind, raw: Mapping[str, Any] | None) -> StrategyParams:
    """Build the parameter variant for ``kind``.

    Unknown keys are ignored and unusable values fall back to the defaults.
    """
    params_cls = _PARAMS_BY_KIND[kind]
    field_names = set(params_cls.__dataclass_fields__)
    aliases = _PARAM_ALIASES[kind]
    values: Dict[str, Any] = {}
    for key, value in (raw or {}).items():
        name = aliases.get(key, key)
        if name not in field_names:
            continue
        number = _coerce_number(name, value)
        if number is not None:
            values[name] = number
    return params_cls(**values)


@dataclass(frozen=True)
class StrategyConfig:
    kind: StrategyKind
    symbol: str
    amount: float
    interval: int
    params: StrategyParams
    mode: TradingMode = TradingMode.PAPER

    @property
    def interval_seconds(self) -> float:
        return self.interval / 1000

    @property
    def lookback(self) -> int:
        return self.params.lookback

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> 'StrategyConfig':
        """Build a config from the dashboard request body.

        Raises ``ValueError`` for an unknown strategy type or trading mode.
        Range checks on interval, symbol and amount happen in
        :func:`validate_config`.
        """
        raw_kind = payload.get('type', payload.get('kind'))
        try:
            kind = StrategyKind(raw_kind)
        except ValueError:
            raise ValueError(f'Unsupported strategy type: {raw_kind!r}') from None
        raw_mode = payload.get('mode', TradingMode.PAPER.value)
        try:
            mode = TradingMode(raw_mode)
        except ValueError:
            raise ValueError(f'Unsupported trading mode: {raw_mode!r}') from None
        return cls(
            kind=kind,
            symbol=str(payload.get('symbol') or '').strip(),
            amount=payload.get('amount', 0),
            interval=payload.get('interval', 0),
            mode=mode,
            params=build_params(kind, payload.get('params')),
        )

    def to_payload(self) -> Dict[str, Any]:
        """Serializable form stored with the persisted bot."""
        return {
            'type': self.kind.value,
            'symbol': self.symbol,
            'amount': self.amount,
            'interval': self.interval,
            'mode': self.mode.value,
            'params': asdict(self.params),
        }


def validate_config(config: StrategyConfig) -> None:
    """Reject configurations that must never reach a running bot."""
    interval = config.interval
    if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
        raise ValueError(f'interval must be a positive integer number of milliseconds, got {interval!r}')
    if not isinstance(config.symbol, str) or not config.symbol.strip():
        raise ValueError('symbol must not be empty')
    amount = config.amount
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount <= 0:
        raise ValueError(f'amount must be a positive number, got {amount!r}')
    if not isinstance(config.params, _PARAMS_BY_KIND[config.kind]):
        raise ValueError(f'{type(config.params).__name__} does not match strategy {config.kind.value}')


__all__ = [
    'BollingerBounceParams',
    'MovingAverageCrossoverParams',
    'RsiThresholdParams',
    'Side',
    'StrategyConfig',
    'StrategyKind',
    'StrategyParams',
    'TradingMode',
    'build_params',
    'validate_config',
]
