"""Shared fixtures for iceberg-rest tests."""

from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from iceberg_rest.security.key_store import EncryptionKey
from iceberg_rest.sessions.db import create_engine, create_session_factory, init_db


@pytest.fixture
def encryption_key() -> EncryptionKey:
    """Fixed 256-bit key."""
    return EncryptionKey(bytes(range(32)))


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """SQLite file in the test's temp directory."""
    return f"sqlite+aiosqlite:///{tmp_path / 'sessions.db'}"


@pytest_asyncio.fixture
async def session_factory(database_url: str) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Initialized sessions database."""
    engine = create_engine(database_url)
    await init_db(engine)
    try:
        yield create_session_factory(engine)
    finally:
        await engine.dispose()


class FakeClock:
    """Settable epoch-millisecond clock."""

    def __init__(self, now_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
