"""Start/stop surface consumed by the HTTP layer."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional, Union

from ..config import Settings
from ..database import BotRecord, BotStatus, DatabaseManager
from ..strategies import StrategyConfig, TradingMode, validate_config
from .bot_scheduler import BotScheduler, BotState

logger = logging.getLogger(__name__)


class StrategyService:
    """Keeps persisted bot rows in step with the scheduler's running loops."""

    def __init__(self, database: DatabaseManager, scheduler: BotScheduler, settings: Settings) -> None:
        self._db = database
        self._scheduler = scheduler
        self._settings = settings
        scheduler.set_halt_callback(self.mark_halted)

    async def start_strategy(
        self,
        user_id: int,
        config: Union[StrategyConfig, Mapping[str, Any]],
    ) -> BotRecord:
        """Persist a new active bot and start its loop.

        Raises ``ValueError`` with a readable reason for bad input.
        """
        if not isinstance(config, StrategyConfig):
            config = StrategyConfig.from_payload(config)
        validate_config(config)

        starting_balance: Optional[float] = None
        if config.mode is TradingMode.PAPER:
            starting_balance = self._settings.paper_starting_balance
        record = await asyncio.to_thread(
            self._db.register_bot,
            user_id,
            config.symbol,
            config.kind.value,
            config.mode.value,
            config.to_payload(),
            paper_starting_balance=starting_balance,
        )

        await self._scheduler.start(user_id, config, bot_id=record.bot_id)
        return record

    async def stop_strategy(self, user_id: int, symbol: str) -> None:
        """Stop the pair's bot; stopping an unknown bot is not an error."""
        self._scheduler.stop(user_id, symbol)
        stopped = await asyncio.to_thread(self._db.stop_active_bots, user_id, symbol)
        if stopped:
            logger.info('Marked %d bot(s) stopped for user %s on %s', stopped, user_id, symbol)

    async def mark_halted(self, state: BotState, error: BaseException) -> None:
        """Scheduler halt callback: surface the failure as a paused bot."""
        if state.bot_id is None:
            logger.warning('Halted bot for user %s on %s has no persisted row', state.user_id, state.config.symbol)
            return
        paused = await asyncio.to_thread(
            self._db.set_bot_status, state.bot_id, BotStatus.PAUSED, only_if=BotStatus.ACTIVE
        )
        if paused:
            logger.warning('Paused bot %s for user %s on %s: %s', state.bot_id, state.user_id, state.config.symbol, error)


__all__ = ['StrategyService']
