"""SQLAlchemy ORM models and typed records for persistence."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class BotStatus(str, enum.Enum):
    ACTIVE = 'active'
    PAUSED = 'paused'
    STOPPED = 'stopped'


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class Bot(Base):
    """A user's strategy bot for one symbol."""

    __tablename__ = 'bots'
    __table_args__ = (
        Index('ix_bots_user_symbol_status', 'user_id', 'symbol', 'status'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    symbol: Mapped[str] = mapped_column(String(32))
    strategy: Mapped[str] = mapped_column(String(32))
    status: Mapped[str] = mapped_column(String(12), default=BotStatus.ACTIVE.value)
    mode: Mapped[str] = mapped_column(String(12))
    config: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class PortfolioPosition(Base):
    """Live holdings; a row only exists while the amount is non-zero."""

    __tablename__ = 'portfolio'
    __table_args__ = (
        UniqueConstraint('user_id', 'symbol', name='uq_portfolio_user_symbol'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    symbol: Mapped[str] = mapped_column(String(32))
    amount: Mapped[float] = mapped_column(Float)


class PaperAccount(Base):
    """Simulated cash balance, one per user."""

    __tablename__ = 'paper_accounts'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, unique=True)
    balance: Mapped[float] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class PaperPosition(Base):
    """Simulated holding with its volume-weighted entry price."""

    __tablename__ = 'paper_positions'
    __table_args__ = (
        UniqueConstraint('account_id', 'symbol', name='uq_paper_positions_account_symbol'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(ForeignKey('paper_accounts.id'), index=True)
    symbol: Mapped[str] = mapped_column(String(32))
    quantity: Mapped[float] = mapped_column(Float)
    average_price: Mapped[float] = mapped_column(Float)


class Trade(Base):
    """Append-only record of one executed bot signal."""

    __tablename__ = 'trades'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    bot_id: Mapped[Optional[int]] = mapped_column(ForeignKey('bots.id'), nullable=True)
    symbol: Mapped[str] = mapped_column(String(32), index=True)
    side: Mapped[str] = mapped_column(String(12))
    amount: Mapped[float] = mapped_column(Float)
    price: Mapped[float] = mapped_column(Float)
    mode: Mapped[str] = mapped_column(String(12))
    pnl: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, default=_utcnow)


@dataclass(slots=True)
class BotRecord:
    """Typed container returned for persisted bots."""

    bot_id: int
    user_id: int
    symbol: str
    strategy: str
    status: str
    mode: str
    config: Dict[str, Any]
    created_at: datetime


@dataclass(slots=True)
class PaperAccountRecord:
    account_id: int
    user_id: int
    balance: float


@dataclass(slots=True)
class PositionRecord:
    """Holding snapshot; ``average_price`` is only tracked for paper positions."""

    symbol: str
    quantity: float
    average_price: float | None = None


@dataclass(slots=True)
class TradeRecord:
    """Typed container for trade history."""

    trade_id: int
    user_id: int
    bot_id: int | None
    symbol: str
    side: str
    amount: float
    price: float
    mode: str
    pnl: float | None
    timestamp: datetime


__all__ = [
    'Base',
    'Bot',
    'BotRecord',
    'BotStatus',
    'PaperAccount',
    'PaperAccountRecord',
    'PaperPosition',
    'PortfolioPosition',
    'PositionRecord',
    'Trade',
    'TradeRecord',
]
