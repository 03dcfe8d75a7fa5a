"""Per-user, per-symbol polling loops that drive strategy bots."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Deque, Dict, List, Optional, Tuple

from ..data import PriceSource
from ..strategies import Side, StrategyConfig, evaluate, validate_config
from ..utils.helpers import async_retry
from .settlement import SettlementEngine

logger = logging.getLogger(__name__)

BotKey = Tuple[int, str]
HaltCallback = Callable[['BotState', BaseException], Awaitable[None]]

DEFAULT_HISTORY_SIZE = 100


@dataclass(frozen=True)
class PriceSample:
    timestamp: datetime
    price: float


@dataclass
class BotState:
    """In-memory runtime state of one running bot."""

    user_id: int
    config: StrategyConfig
    history: Deque[PriceSample]
    bot_id: Optional[int] = None
    active: bool = True
    ticks: int = 0
    last_signal: Optional[Side] = None
    error: Optional[BaseException] = None
    wake: asyncio.Event = field(default_factory=asyncio.Event)
    task: Optional[asyncio.Task[None]] = None

    @property
    def key(self) -> BotKey:
        return (self.user_id, self.config.symbol)

    def prices(self) -> List[float]:
        return [sample.price for sample in self.history]

    def deactivate(self) -> None:
        self.active = False
        self.wake.set()


class BotScheduler:
    """Owns the registry of running bots and their polling loops.

    Each bot runs as one asyncio task: tick, then wait ``interval`` ms
    measured from the end of the tick, then tick again. Stopping a bot
    wakes its wait instead of cancelling the task, so a tick that is
    already settling runs to completion.
    """

    def __init__(
        self,
        price_source: PriceSource,
        settlement: SettlementEngine,
        *,
        history_size: int = DEFAULT_HISTORY_SIZE,
        price_fetch_attempts: int = 1,
        price_retry_delay: float = 0.5,
        on_halt: Optional[HaltCallback] = None,
    ) -> None:
        if history_size <= 0:
            raise ValueError('history_size must be positive')
        self._settlement = settlement
        self._history_size = history_size
        self._fetch_price = async_retry(retries=price_fetch_attempts, delay=price_retry_delay)(
            price_source.current_price
        )
        self._on_halt = on_halt
        self._bots: Dict[BotKey, BotState] = {}

    def set_halt_callback(self, callback: Optional[HaltCallback]) -> None:
        self._on_halt = callback

    def running_bots(self) -> List[BotKey]:
        return [key for key, state in self._bots.items() if state.active]

    def get_state(self, user_id: int, symbol: str) -> Optional[BotState]:
        return self._bots.get((user_id, symbol))

    def is_running(self, user_id: int, symbol: str) -> bool:
        state = self._bots.get((user_id, symbol))
        return state is not None and state.active

    async def start(self, user_id: int, config: StrategyConfig, *, bot_id: Optional[int] = None) -> BotState:
        """Register a bot and launch its loop without waiting for it.

        ``bot_id`` names the persisted bot row its trades are booked against.
        """
        validate_config(config)
        key = (user_id, config.symbol)
        previous = self._bots.get(key)
        if previous is not None:
            logger.info('Replacing running bot for user %s on %s', user_id, config.symbol)
            previous.deactivate()

        state = BotState(
            user_id=user_id,
            config=config,
            history=deque(maxlen=self._history_size),
            bot_id=bot_id,
        )
        self._bots[key] = state
        state.task = asyncio.create_task(self._run(state), name=f'bot-{user_id}-{config.symbol}')
        logger.info(
            'Started %s bot for user %s on %s every %d ms (%s)',
            config.kind.value, user_id, config.symbol, config.interval, config.mode.value,
        )
        return state

    def stop(self, user_id: int, symbol: str) -> bool:
        """Stop a bot; returns ``False`` when nothing was running for the pair."""
        state = self._bots.pop((user_id, symbol), None)
        if state is None:
            logger.debug('No running bot for user %s on %s', user_id, symbol)
            return False
        state.deactivate()
        logger.info('Stopped bot for user %s on %s', user_id, symbol)
        return True

    async def shutdown(self) -> None:
        """Stop every bot and wait for in-flight ticks to finish."""
        states = list(self._bots.values())
        self._bots.clear()
        for state in states:
            state.deactivate()
        tasks = [state.task for state in states if state.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _is_current(self, state: BotState) -> bool:
        return state.active and self._bots.get(state.key) is state

    async def _run(self, state: BotState) -> None:
        while self._is_current(state):
            try:
                await self._tick(state)
            except Exception as error:
                await self._halt(state, error)
                return
            if not self._is_current(state):
                break
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(state.wake.wait(), timeout=state.config.interval_seconds)

    async def _tick(self, state: BotState) -> None:
        if not self._is_current(state):
            return
        config = state.config
        price = await self._fetch_price(config.symbol)
        state.history.append(PriceSample(timestamp=datetime.now(tz=timezone.utc), price=price))
        state.ticks += 1

        signal = evaluate(state.prices(), config)
        if signal is None:
            return
        state.last_signal = signal
        logger.info('%s signal for user %s on %s at %s', signal.upper(), state.user_id, config.symbol, price)
        await self._settlement.settle(state.user_id, config, signal, price, bot_id=state.bot_id)

    async def _halt(self, state: BotState, error: BaseException) -> None:
        logger.exception(
            'Bot for user %s on %s halted after tick %d: %s',
            state.user_id, state.config.symbol, state.ticks, error,
        )
        state.error = error
        was_current = self._is_current(state)
        state.deactivate()
        if self._bots.get(state.key) is state:
            del self._bots[state.key]
        # a replaced or stopped bot no longer owns the persisted status
        if was_current and self._on_halt is not None:
            try:
                await self._on_halt(state, error)
            except Exception:
                logger.exception('Halt callback failed for user %s on %s', state.user_id, state.config.symbol)


__all__ = ['BotKey', 'BotScheduler', 'BotState', 'PriceSample']
