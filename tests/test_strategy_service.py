"""Integration-style tests for :mod:`algo_trading_engine.execution.strategy_service`."""

from __future__ import annotations

import asyncio
from typing import Iterable, List

import pytest

from algo_trading_engine.config import Settings
from algo_trading_engine.data import PriceUnavailableError
from algo_trading_engine.database import BotStatus, DatabaseManager
from algo_trading_engine.execution import BotScheduler, OrderManager, SettlementEngine, StrategyService


class ScriptedPriceSource:
    def __init__(self, prices: Iterable[float]) -> None:
        self._prices: List[float] = list(prices)

    async def current_price(self, symbol: str) -> float:
        if not self._prices:
            raise PriceUnavailableError(f'no more prices for {symbol}')
        return self._prices.pop(0)


class GatedPriceSource:
    """Serves prices by call index and holds one call until released."""

    def __init__(self, prices: Iterable[float], hold_at: int) -> None:
        self._prices: List[float] = list(prices)
        self._hold_at = hold_at
        self._calls = 0
        self.reached = asyncio.Event()
        self.release = asyncio.Event()

    async def current_price(self, symbol: str) -> float:
        index = self._calls
        self._calls += 1
        if index == self._hold_at:
            self.reached.set()
            await self.release.wait()
        if index >= len(self._prices):
            raise PriceUnavailableError(f'no more prices for {symbol}')
        return self._prices[index]


def _payload(**overrides):
    payload = {
        'type': 'MA_CROSSOVER',
        'symbol': 'BTCUSDT',
        'amount': 1,
        'interval': 1,
        'mode': 'paper',
        'params': {'shortPeriod': 2, 'longPeriod': 4},
    }
    payload.update(overrides)
    return payload


def _service(settings: Settings, database: DatabaseManager, prices):
    if not hasattr(prices, 'current_price'):
        prices = ScriptedPriceSource(prices)
    settlement = SettlementEngine(database, OrderManager())
    scheduler = BotScheduler(prices, settlement)
    return StrategyService(database, scheduler, settings), scheduler


def test_paper_bot_trades_end_to_end(settings: Settings, database: DatabaseManager) -> None:
    prices = [10.0, 10.0, 10.0, 10.0, 10.0, 12.0, 12.0, 10.0, 8.0, 8.0]

    async def scenario() -> None:
        service, scheduler = _service(settings, database, prices)
        bot = await service.start_strategy(1, _payload())
        state = scheduler.get_state(1, 'BTCUSDT')
        await asyncio.wait_for(state.task, timeout=5)

        assert bot.status == BotStatus.ACTIVE.value
        assert bot.config['params'] == {'short_period': 2, 'long_period': 4}

    asyncio.run(scenario())

    account = database.get_paper_account(1)
    assert account.balance == pytest.approx(10_000.0 - 12.0 + 8.0)
    trades = database.load_trades(1)
    assert [(t.side, t.price, t.pnl) for t in trades] == [
        ('buy', 12.0, None),
        ('sell', 8.0, pytest.approx(-4.0)),
    ]
    # the script running dry halts the bot, which shows as paused
    assert [bot.status for bot in database.list_bots(1)] == [BotStatus.PAUSED.value]


def test_restart_keeps_one_active_bot(settings: Settings, database: DatabaseManager) -> None:
    async def scenario() -> None:
        service, scheduler = _service(settings, database, [100.0] * 10)
        await service.start_strategy(1, _payload(interval=60_000))
        await service.start_strategy(1, _payload(interval=60_000, type='RSI_OVERSOLD'))

        assert scheduler.running_bots() == [(1, 'BTCUSDT')]
        await scheduler.shutdown()

    asyncio.run(scenario())

    bots = database.list_bots(1)
    assert [(bot.strategy, bot.status) for bot in bots] == [
        ('MA_CROSSOVER', BotStatus.STOPPED.value),
        ('RSI_OVERSOLD', BotStatus.ACTIVE.value),
    ]
    assert database.get_paper_account(1).balance == pytest.approx(settings.paper_starting_balance)


def test_stop_strategy_marks_bot_stopped(settings: Settings, database: DatabaseManager) -> None:
    async def scenario() -> None:
        service, scheduler = _service(settings, database, [100.0] * 10)
        await service.start_strategy(1, _payload(interval=60_000))
        await service.stop_strategy(1, 'BTCUSDT')
        await service.stop_strategy(1, 'BTCUSDT')
        await service.stop_strategy(3, 'ETHUSDT')

        assert scheduler.running_bots() == []

    asyncio.run(scenario())

    assert [bot.status for bot in database.list_bots(1)] == [BotStatus.STOPPED.value]


def test_live_bot_does_not_create_paper_account(settings: Settings, database: DatabaseManager) -> None:
    async def scenario() -> None:
        service, scheduler = _service(settings, database, [100.0])
        await service.start_strategy(5, _payload(mode='live', interval=60_000))
        await scheduler.shutdown()

    asyncio.run(scenario())

    assert database.get_paper_account(5) is None
    assert database.list_bots(5)[0].mode == 'live'


@pytest.mark.parametrize(
    'overrides',
    [{'interval': 0}, {'symbol': ''}, {'type': 'GRID'}, {'amount': -1}],
)
def test_invalid_payload_is_rejected_before_persisting(
    settings: Settings, database: DatabaseManager, overrides
) -> None:
    async def scenario() -> None:
        service, scheduler = _service(settings, database, [])
        with pytest.raises(ValueError):
            await service.start_strategy(1, _payload(**overrides))
        assert scheduler.running_bots() == []

    asyncio.run(scenario())

    assert database.list_bots(1) == []
    assert database.get_paper_account(1) is None


CROSSING_PRICES = [10.0, 10.0, 10.0, 10.0, 10.0, 12.0, 12.0]


def test_stop_during_price_fetch_still_settles_that_tick(settings: Settings, database: DatabaseManager) -> None:
    prices = GatedPriceSource(CROSSING_PRICES, hold_at=5)

    async def scenario() -> int:
        service, scheduler = _service(settings, database, prices)
        bot = await service.start_strategy(1, _payload())
        state = scheduler.get_state(1, 'BTCUSDT')
        await asyncio.wait_for(prices.reached.wait(), timeout=5)

        await service.stop_strategy(1, 'BTCUSDT')
        prices.release.set()
        await asyncio.wait_for(state.task, timeout=5)

        assert state.error is None
        return bot.bot_id

    bot_id = asyncio.run(scenario())

    trades = database.load_trades(1)
    assert [(t.bot_id, t.side, t.price) for t in trades] == [(bot_id, 'buy', 12.0)]
    assert database.get_paper_account(1).balance == pytest.approx(10_000.0 - 12.0)
    assert [bot.status for bot in database.list_bots(1)] == [BotStatus.STOPPED.value]


def test_replaced_bot_finishes_its_tick_under_its_own_row(settings: Settings, database: DatabaseManager) -> None:
    prices = GatedPriceSource(CROSSING_PRICES, hold_at=5)

    async def scenario() -> int:
        service, scheduler = _service(settings, database, prices)
        first = await service.start_strategy(1, _payload())
        old_state = scheduler.get_state(1, 'BTCUSDT')
        await asyncio.wait_for(prices.reached.wait(), timeout=5)

        await service.start_strategy(1, _payload(mode='live', interval=60_000))
        prices.release.set()
        await asyncio.wait_for(old_state.task, timeout=5)
        await scheduler.shutdown()

        assert old_state.error is None
        return first.bot_id

    first_id = asyncio.run(scenario())

    trades = database.load_trades(1)
    assert [(t.bot_id, t.mode, t.side) for t in trades] == [(first_id, 'paper', 'buy')]
    assert database.get_position(1, 'BTCUSDT') is None
    assert [bot.status for bot in database.list_bots(1)] == [BotStatus.STOPPED.value, BotStatus.ACTIVE.value]


def test_failed_account_creation_leaves_no_active_bot(
    settings: Settings, database: DatabaseManager, monkeypatch: pytest.MonkeyPatch
) -> None:
    def refuse(session, user_id, starting_balance):
        raise RuntimeError('paper accounts unavailable')

    async def scenario() -> None:
        service, scheduler = _service(settings, database, [100.0] * 10)
        await service.start_strategy(1, _payload(mode='live', interval=60_000))
        monkeypatch.setattr(database, '_open_paper_account', refuse)

        with pytest.raises(RuntimeError, match='paper accounts unavailable'):
            await service.start_strategy(1, _payload(interval=60_000))

        assert scheduler.running_bots() == [(1, 'BTCUSDT')]
        assert scheduler.get_state(1, 'BTCUSDT').config.mode.value == 'live'
        await scheduler.shutdown()

    asyncio.run(scenario())

    assert [(bot.mode, bot.status) for bot in database.list_bots(1)] == [('live', BotStatus.ACTIVE.value)]
    assert database.get_paper_account(1) is None


def test_halt_of_a_replaced_bot_does_not_pause_its_successor(
    settings: Settings, database: DatabaseManager
) -> None:
    async def scenario() -> None:
        service, scheduler = _service(settings, database, [100.0] * 10)
        await service.start_strategy(1, _payload(interval=60_000))
        old_state = scheduler.get_state(1, 'BTCUSDT')
        await service.start_strategy(1, _payload(interval=60_000))

        await service.mark_halted(old_state, RuntimeError('late failure'))

        assert scheduler.is_running(1, 'BTCUSDT')
        await scheduler.shutdown()

    asyncio.run(scenario())

    assert [bot.status for bot in database.list_bots(1)] == [BotStatus.STOPPED.value, BotStatus.ACTIVE.value]
