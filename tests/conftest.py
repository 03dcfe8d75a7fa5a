"""Shared pytest fixtures."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from algo_trading_engine.config import Settings  # noqa: E402
from algo_trading_engine.database import DatabaseManager  # noqa: E402


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f'sqlite:///{tmp_path / "engine.db"}',
        data_directory=tmp_path,
    )


@pytest.fixture()
def database(settings: Settings) -> Iterator[DatabaseManager]:
    manager = DatabaseManager(settings.database_url)
    yield manager
    manager.close()
