"""Sessions database (SQLAlchemy async).

One table, ``sessions``, keyed by the opaque session id. Credentials are
stored only as AES-GCM ciphertext in ``encrypted_credentials``. Timestamps
are epoch milliseconds.

The default URL is a local SQLite file via aiosqlite; any SQLAlchemy async
URL (e.g. postgresql+asyncpg://...) works.
"""

from __future__ import annotations

__all__ = [
    "Base",
    "SessionRecord",
    "create_engine",
    "create_session_factory",
    "init_db",
]

from pathlib import Path

from sqlalchemy import BigInteger, Index, String, Text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from iceberg_rest.utils.file_helpers import ensure_secure_directory


class Base(DeclarativeBase):
    pass


class SessionRecord(Base):
    """Row of the sessions table."""

    __tablename__ = "sessions"

    session_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    auth_type: Mapped[str] = mapped_column(String(16), nullable=False)
    encrypted_credentials: Mapped[str] = mapped_column(Text, nullable=False)
    endpoint: Mapped[str] = mapped_column(Text, nullable=False)
    warehouse: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_used_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Client metadata (never used for authentication)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("idx_sessions_expires", "expires_at"),)


def create_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create the async engine, making sure a SQLite file's directory exists.

    Args:
        database_url: SQLAlchemy async URL.
        echo: Log SQL statements.

    Returns:
        AsyncEngine.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        ensure_secure_directory(Path(url.database).expanduser().parent)
    return create_async_engine(database_url, echo=echo, future=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by SessionStore."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
