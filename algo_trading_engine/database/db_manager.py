"""SQLAlchemy-backed persistence manager."""

from __future__ import annotations

import threading
from contextlib import contextmanager, nullcontext
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, ContextManager, Dict, Iterator, List, Optional

from sqlalchemy import Select, create_engine, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import (
    Base,
    Bot,
    BotRecord,
    BotStatus,
    PaperAccount,
    PaperAccountRecord,
    PaperPosition,
    PortfolioPosition,
    PositionRecord,
    Trade,
    TradeRecord,
)


def _as_utc(value: datetime) -> datetime:
    """Ensure datetimes are timezone-aware in UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _bot_record(row: Bot) -> BotRecord:
    return BotRecord(
        bot_id=row.id,
        user_id=row.user_id,
        symbol=row.symbol,
        strategy=row.strategy,
        status=row.status,
        mode=row.mode,
        config=dict(row.config or {}),
        created_at=_as_utc(row.created_at),
    )


def _paper_account_record(row: PaperAccount) -> PaperAccountRecord:
    return PaperAccountRecord(account_id=row.id, user_id=row.user_id, balance=row.balance)


class DatabaseManager:
    """High level helper around a SQLAlchemy engine and session factory.

    An in-memory SQLite URL keeps every session on one shared connection, so
    sessions are serialised with a lock; a transaction rolled back in one
    thread would otherwise discard another thread's pending writes. Use a
    file or server database for anything beyond tests.
    """

    def __init__(self, database_url: str, *, echo: bool = False) -> None:
        self._database_url = database_url
        connect_args: dict[str, object] = {}
        engine_kwargs: dict[str, object] = {}
        self._session_lock: Optional[threading.RLock] = None
        if database_url in {'sqlite://', 'sqlite:///:memory:'}:
            connect_args['check_same_thread'] = False
            engine_kwargs['poolclass'] = StaticPool
            self._session_lock = threading.RLock()
        elif database_url.startswith('sqlite:///'):
            db_path = Path(database_url.replace('sqlite:///', '', 1))
            db_path.parent.mkdir(parents=True, exist_ok=True)
            connect_args['check_same_thread'] = False
        self._engine: Engine = create_engine(
            database_url,
            echo=echo,
            connect_args=connect_args,
            **engine_kwargs,
        )
        self._session_factory = sessionmaker(
            self._engine,
            expire_on_commit=False,
        )
        self.create_schema()

    @property
    def shares_connection(self) -> bool:
        return self._session_lock is not None

    def create_schema(self) -> None:
        """Create database tables if they do not already exist."""

        Base.metadata.create_all(self._engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Context manager returning a database session with automatic commit."""

        guard: ContextManager[Any] = self._session_lock if self._session_lock is not None else nullcontext()
        with guard:
            session: Session = self._session_factory()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    # Bots

    def register_bot(
        self,
        user_id: int,
        symbol: str,
        strategy: str,
        mode: str,
        config: Dict[str, Any],
        *,
        paper_starting_balance: Optional[float] = None,
    ) -> BotRecord:
        """Insert an active bot, stopping any other active bot on the same pair.

        When ``paper_starting_balance`` is given the user's paper account is
        opened with it if missing. All writes share one transaction.
        """

        with self.session() as session:
            session.execute(
                update(Bot)
                .where(
                    Bot.user_id == user_id,
                    Bot.symbol == symbol,
                    Bot.status == BotStatus.ACTIVE.value,
                )
                .values(status=BotStatus.STOPPED.value, updated_at=datetime.now(tz=timezone.utc))
            )
            bot = Bot(
                user_id=user_id,
                symbol=symbol,
                strategy=strategy,
                status=BotStatus.ACTIVE.value,
                mode=mode,
                config=config,
            )
            session.add(bot)
            if paper_starting_balance is not None:
                self._open_paper_account(session, user_id, paper_starting_balance)
            session.flush()
            return _bot_record(bot)

    def stop_active_bots(self, user_id: int, symbol: str, status: BotStatus = BotStatus.STOPPED) -> int:
        """Move every active bot on the pair to ``status``; returns the row count."""

        with self.session() as session:
            result = session.execute(
                update(Bot)
                .where(
                    Bot.user_id == user_id,
                    Bot.symbol == symbol,
                    Bot.status == BotStatus.ACTIVE.value,
                )
                .values(status=status.value, updated_at=datetime.now(tz=timezone.utc))
            )
            return result.rowcount or 0

    def set_bot_status(
        self,
        bot_id: int,
        status: BotStatus,
        *,
        only_if: Optional[BotStatus] = None,
    ) -> bool:
        """Set one bot's status; with ``only_if`` the row must currently hold that status."""

        stmt = update(Bot).where(Bot.id == bot_id)
        if only_if is not None:
            stmt = stmt.where(Bot.status == only_if.value)
        with self.session() as session:
            result = session.execute(
                stmt.values(status=status.value, updated_at=datetime.now(tz=timezone.utc))
            )
            return bool(result.rowcount)

    def get_bot(self, bot_id: int) -> Optional[BotRecord]:
        with self.session() as session:
            bot = session.get(Bot, bot_id)
            return _bot_record(bot) if bot is not None else None

    def list_bots(self, user_id: int) -> List[BotRecord]:
        stmt: Select[tuple[Bot]] = select(Bot).where(Bot.user_id == user_id).order_by(Bot.id)
        with self.session() as session:
            rows = session.execute(stmt).scalars().all()
        return [_bot_record(row) for row in rows]

    # Paper trading

    def _open_paper_account(self, session: Session, user_id: int, starting_balance: float) -> PaperAccount:
        account = session.execute(
            select(PaperAccount).where(PaperAccount.user_id == user_id)
        ).scalar_one_or_none()
        if account is None:
            account = PaperAccount(user_id=user_id, balance=starting_balance)
            session.add(account)
        return account

    def get_paper_account(self, user_id: int) -> Optional[PaperAccountRecord]:
        with self.session() as session:
            account = session.execute(
                select(PaperAccount).where(PaperAccount.user_id == user_id)
            ).scalar_one_or_none()
            return _paper_account_record(account) if account is not None else None

    def get_paper_position(self, user_id: int, symbol: str) -> Optional[PositionRecord]:
        stmt = (
            select(PaperPosition)
            .join(PaperAccount, PaperPosition.account_id == PaperAccount.id)
            .where(PaperAccount.user_id == user_id, PaperPosition.symbol == symbol)
        )
        with self.session() as session:
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                return None
            return PositionRecord(symbol=row.symbol, quantity=row.quantity, average_price=row.average_price)

    # Live portfolio and history

    def get_position(self, user_id: int, symbol: str) -> Optional[PositionRecord]:
        stmt = select(PortfolioPosition).where(
            PortfolioPosition.user_id == user_id,
            PortfolioPosition.symbol == symbol,
        )
        with self.session() as session:
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                return None
            return PositionRecord(symbol=row.symbol, quantity=row.amount)

    def load_trades(self, user_id: int, limit: int = 50) -> List[TradeRecord]:
        """Return the most recent trades ordered from oldest to newest."""

        if limit <= 0:
            return []
        stmt: Select[tuple[Trade]] = (
            select(Trade)
            .where(Trade.user_id == user_id)
            .order_by(Trade.id.desc())
            .limit(limit)
        )
        with self.session() as session:
            rows = session.execute(stmt).scalars().all()
        return [
            TradeRecord(
                trade_id=row.id,
                user_id=row.user_id,
                bot_id=row.bot_id,
                symbol=row.symbol,
                side=row.side,
                amount=row.amount,
                price=row.price,
                mode=row.mode,
                pnl=row.pnl,
                timestamp=_as_utc(row.timestamp),
            )
            for row in reversed(rows)
        ]

    def close(self) -> None:
        """Dispose of the underlying engine and connection pool."""

        self._engine.dispose()


__all__ = ['DatabaseManager']
