"""Applies bot signals to the paper or live ledger."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..database import DatabaseManager
from ..database.models import Bot, BotStatus, PaperAccount, PaperPosition, PortfolioPosition, Trade
from ..strategies import Side, StrategyConfig, TradingMode
from .order_manager import OrderManager

logger = logging.getLogger(__name__)


class SettlementError(RuntimeError):
    """Base class for failures that abort a settlement."""


class MissingStateError(SettlementError):
    """The bot or paper account needed to settle does not exist."""


class InsufficientBalanceError(SettlementError):
    pass


class InsufficientPositionError(SettlementError):
    pass


@dataclass
class SettlementResult:
    trade_id: int
    mode: TradingMode
    side: Side
    symbol: str
    amount: float
    price: float
    pnl: Optional[float] = None
    balance: Optional[float] = None
    position_quantity: float = 0.0


class SettlementEngine:
    """Executes one trade per signal and records its effect atomically.

    Every ledger read-check-write happens inside a single database
    transaction with the touched rows selected ``FOR UPDATE``. Settlements
    for the same user are additionally serialised in-process so SQLite,
    which ignores row locks, sees the same ordering.
    """

    def __init__(self, database: DatabaseManager, order_manager: OrderManager) -> None:
        self._db = database
        self._orders = order_manager
        self._user_locks: Dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def settle(
        self,
        user_id: int,
        config: StrategyConfig,
        signal: Side,
        price: float,
        *,
        bot_id: Optional[int] = None,
    ) -> SettlementResult:
        """Settle one signal for the user's bot on ``config.symbol``.

        With ``bot_id`` the trade is booked against that bot row whatever its
        current status, so a tick that began before a stop or restart keeps
        its own mode. Without it the active bot for the pair is used.
        """
        if signal not in ('buy', 'sell'):
            raise ValueError(f'Unsupported signal: {signal!r}')
        if bot_id is None:
            bot_id, mode = await asyncio.to_thread(self._active_bot, user_id, config.symbol)
        else:
            mode = await asyncio.to_thread(self._bot_mode, bot_id, user_id, config.symbol)

        if mode is TradingMode.LIVE:
            # exchange first; a rejected order leaves the ledger untouched
            await self._orders.execute(signal, config.symbol, config.amount)
            async with self._user_locks[user_id]:
                result = await asyncio.to_thread(
                    self._apply_live, user_id, bot_id, config, signal, price
                )
        else:
            async with self._user_locks[user_id]:
                result = await asyncio.to_thread(
                    self._apply_paper, user_id, bot_id, config, signal, price
                )

        logger.info(
            'Settled %s %s %s @ %.8f for user %s (%s, pnl=%s)',
            signal, result.amount, result.symbol, price, user_id, mode.value, result.pnl,
        )
        return result

    def _bot_mode(self, bot_id: int, user_id: int, symbol: str) -> TradingMode:
        bot = self._db.get_bot(bot_id)
        if bot is None or bot.user_id != user_id or bot.symbol != symbol:
            raise MissingStateError(f'No bot {bot_id} for user {user_id} on {symbol}')
        return TradingMode(bot.mode)

    def _active_bot(self, user_id: int, symbol: str) -> tuple[int, TradingMode]:
        stmt = (
            select(Bot)
            .where(
                Bot.user_id == user_id,
                Bot.symbol == symbol,
                Bot.status == BotStatus.ACTIVE.value,
            )
            .order_by(Bot.id.desc())
            .limit(1)
        )
        with self._db.session() as session:
            bot = session.execute(stmt).scalar_one_or_none()
            if bot is None:
                raise MissingStateError(f'No active bot for user {user_id} on {symbol}')
            return bot.id, TradingMode(bot.mode)

    @staticmethod
    def _record_trade(
        session: Session,
        user_id: int,
        bot_id: int,
        config: StrategyConfig,
        signal: Side,
        price: float,
        mode: TradingMode,
    ) -> Trade:
        trade = Trade(
            user_id=user_id,
            bot_id=bot_id,
            symbol=config.symbol,
            side=signal,
            amount=float(config.amount),
            price=price,
            mode=mode.value,
            timestamp=datetime.now(tz=timezone.utc),
        )
        session.add(trade)
        session.flush()
        return trade

    def _apply_live(
        self,
        user_id: int,
        bot_id: int,
        config: StrategyConfig,
        signal: Side,
        price: float,
    ) -> SettlementResult:
        amount = float(config.amount)
        with self._db.session() as session:
            trade = self._record_trade(session, user_id, bot_id, config, signal, price, TradingMode.LIVE)
            position = session.execute(
                select(PortfolioPosition)
                .where(
                    PortfolioPosition.user_id == user_id,
                    PortfolioPosition.symbol == config.symbol,
                )
                .with_for_update()
            ).scalar_one_or_none()

            # sells are not checked against holdings on this path
            signed = amount if signal == 'buy' else -amount
            quantity = 0.0
            if position is not None:
                quantity = position.amount + signed
                if quantity == 0:
                    session.delete(position)
                else:
                    position.amount = quantity
            elif signal == 'buy':
                quantity = amount
                session.add(PortfolioPosition(user_id=user_id, symbol=config.symbol, amount=amount))

            return SettlementResult(
                trade_id=trade.id,
                mode=TradingMode.LIVE,
                side=signal,
                symbol=config.symbol,
                amount=amount,
                price=price,
                position_quantity=quantity,
            )

    def _apply_paper(
        self,
        user_id: int,
        bot_id: int,
        config: StrategyConfig,
        signal: Side,
        price: float,
    ) -> SettlementResult:
        amount = float(config.amount)
        trade_value = amount * price
        with self._db.session() as session:
            account = session.execute(
                select(PaperAccount).where(PaperAccount.user_id == user_id).with_for_update()
            ).scalar_one_or_none()
            if account is None:
                raise MissingStateError(f'No paper account for user {user_id}')
            position = session.execute(
                select(PaperPosition)
                .where(
                    PaperPosition.account_id == account.id,
                    PaperPosition.symbol == config.symbol,
                )
                .with_for_update()
            ).scalar_one_or_none()

            pnl: Optional[float] = None
            if signal == 'buy':
                if account.balance < trade_value:
                    raise InsufficientBalanceError(
                        f'Paper balance {account.balance:.2f} is below trade value {trade_value:.2f}'
                    )
                account.balance -= trade_value
                if position is not None:
                    quantity = position.quantity + amount
                    position.average_price = (
                        position.quantity * position.average_price + trade_value
                    ) / quantity
                    position.quantity = quantity
                else:
                    quantity = amount
                    session.add(
                        PaperPosition(
                            account_id=account.id,
                            symbol=config.symbol,
                            quantity=amount,
                            average_price=price,
                        )
                    )
                trade = self._record_trade(session, user_id, bot_id, config, signal, price, TradingMode.PAPER)
            else:
                held = position.quantity if position is not None else 0.0
                if position is None or position.quantity < amount:
                    raise InsufficientPositionError(
                        f'Paper position {held} {config.symbol} is below sell amount {amount}'
                    )
                account.balance += trade_value
                pnl = (price - position.average_price) * amount
                quantity = position.quantity - amount
                if quantity == 0:
                    session.delete(position)
                else:
                    position.quantity = quantity
                trade = self._record_trade(session, user_id, bot_id, config, signal, price, TradingMode.PAPER)
                trade.pnl = pnl

            return SettlementResult(
                trade_id=trade.id,
                mode=TradingMode.PAPER,
                side=signal,
                symbol=config.symbol,
                amount=amount,
                price=price,
                pnl=pnl,
                balance=account.balance,
                position_quantity=quantity,
            )


__all__ = [
    'InsufficientBalanceError',
    'InsufficientPositionError',
    'MissingStateError',
    'SettlementEngine',
    'SettlementError',
    'SettlementResult',
]
