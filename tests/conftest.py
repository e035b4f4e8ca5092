"""Shared fixtures: SQLite database per test and recorded sleeps."""

from typing import List

import pytest

from constituant.config import DatabaseConfig, ImportConfig
from constituant.db.session import Database


@pytest.fixture
async def database(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'constituant.db'}"
    db = Database(DatabaseConfig(DATABASE_URL=url), url=url)
    await db.initialize()
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def sleep_calls() -> List[float]:
    return []


@pytest.fixture
def recording_sleep(sleep_calls):
    """Awaitable sleep that records delays instead of waiting."""
    async def sleep(seconds: float) -> None:
        sleep_calls.append(seconds)
    return sleep


@pytest.fixture
def import_config() -> ImportConfig:
    return ImportConfig(delay_between_sources_seconds=0.0)
