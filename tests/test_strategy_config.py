"""Tests for :mod:`algo_trading_engine.strategies.config`."""

from dataclasses import replace

import pytest

from algo_trading_engine.strategies import (
    BollingerBounceParams,
    MovingAverageCrossoverParams,
    RsiThresholdParams,
    StrategyConfig,
    StrategyKind,
    TradingMode,
    validate_config,
)


def _payload(**overrides):
    payload = {
        'type': 'MA_CROSSOVER',
        'symbol': 'BTCUSDT',
        'amount': 0.5,
        'interval': 1_000,
        'params': {},
    }
    payload.update(overrides)
    return payload


def test_missing_params_fall_back_to_defaults() -> None:
    config = StrategyConfig.from_payload(_payload())

    assert config.kind is StrategyKind.MA_CROSSOVER
    assert config.mode is TradingMode.PAPER
    assert config.params == MovingAverageCrossoverParams(short_period=10, long_period=20)
    assert config.lookback == 21


def test_camel_case_params_are_mapped() -> None:
    config = StrategyConfig.from_payload(
        _payload(
            type='RSI_OVERSOLD',
            mode='live',
            params={'rsiPeriod': 7, 'oversoldThreshold': 25, 'overboughtThreshold': 80},
        )
    )

    assert config.mode is TradingMode.LIVE
    assert config.params == RsiThresholdParams(period=7, oversold_threshold=25.0, overbought_threshold=80.0)
    assert config.lookback == 8


def test_unusable_and_unknown_params_are_ignored() -> None:
    config = StrategyConfig.from_payload(
        _payload(type='BOLLINGER_BOUNCE', params={'period': -3, 'deviations': 'wide', 'colour': 'red'})
    )

    assert config.params == BollingerBounceParams(period=20, deviations=2.0)


def test_params_belong_to_their_own_kind() -> None:
    config = StrategyConfig.from_payload(_payload(params={'period': 5, 'shortPeriod': 3}))

    assert config.params == MovingAverageCrossoverParams(short_period=3, long_period=20)


def test_camel_case_aliases_do_not_leak_across_kinds() -> None:
    bollinger = StrategyConfig.from_payload(
        _payload(type='BOLLINGER_BOUNCE', params={'rsiPeriod': 5, 'stdDev': 1.5})
    )
    rsi = StrategyConfig.from_payload(_payload(type='RSI_OVERSOLD', params={'stdDev': 3}))

    assert bollinger.params == BollingerBounceParams(period=20, deviations=1.5)
    assert rsi.params == RsiThresholdParams()


def test_unknown_strategy_type_is_rejected() -> None:
    with pytest.raises(ValueError, match='Unsupported strategy type'):
        StrategyConfig.from_payload(_payload(type='GRID'))


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValueError, match='Unsupported trading mode'):
        StrategyConfig.from_payload(_payload(mode='margin'))


@pytest.mark.parametrize('interval', [0, -1_000, 1.5, True, '1000'])
def test_validate_rejects_bad_interval(interval) -> None:
    config = replace(StrategyConfig.from_payload(_payload()), interval=interval)

    with pytest.raises(ValueError, match='interval'):
        validate_config(config)


def test_validate_rejects_empty_symbol() -> None:
    config = StrategyConfig.from_payload(_payload(symbol='   '))

    with pytest.raises(ValueError, match='symbol'):
        validate_config(config)


def test_validate_rejects_non_positive_amount() -> None:
    config = StrategyConfig.from_payload(_payload(amount=0))

    with pytest.raises(ValueError, match='amount'):
        validate_config(config)


def test_to_payload_round_trips_through_from_payload() -> None:
    config = StrategyConfig.from_payload(_payload(params={'shortPeriod': 4, 'longPeriod': 9}))

    assert StrategyConfig.from_payload(config.to_payload()) == config
