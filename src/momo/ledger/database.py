"""Async engine and session management for the wallet store.

One engine per process, created lazily from DATABASE_URL. Short sessions
are opened through get_db() by handlers and by the monitor's wallet source.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from momo.config import get_settings
from momo.ledger.models import Base

# SQLite waits this long for a competing writer before raising "database is locked"
SQLITE_BUSY_TIMEOUT = 30

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _database_url() -> str:
    """Configured URL, forced onto the aiosqlite driver for plain SQLite URLs."""
    url = get_settings().database_url
    if url.startswith("sqlite:///"):
        url = url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


def _prepare_sqlite_file(url: str) -> None:
    """Create the parent directory of a file-based SQLite database."""
    if not url.startswith("sqlite") or ":memory:" in url:
        return
    path = url.split(":///", 1)[-1]
    if path:
        Path(path).parent.mkdir(parents=True, exist_ok=True)


def get_engine() -> AsyncEngine:
    """Get or create the database engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        url = _database_url()

        connect_args = {}
        if url.startswith("sqlite"):
            _prepare_sqlite_file(url)
            connect_args["timeout"] = SQLITE_BUSY_TIMEOUT

        _engine = create_async_engine(
            url,
            echo=settings.debug and not settings.is_production,
            connect_args=connect_args,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One transaction: committed when the block exits, rolled back on error."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables. Existing deployments are upgraded with Alembic."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the engine; the next get_engine() call creates a fresh one."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
