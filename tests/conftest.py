"""Pytest configuration and fixtures."""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from cryptography.fernet import Fernet
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["DEBUG"] = "false"
os.environ["DRY_RUN"] = "true"
os.environ["ENCRYPTION_KEY"] = Fernet.generate_key().decode()

from momo.chain.base import SimulatedChainClient
from momo.crypto import SecretCodec, get_codec
from momo.ledger.models import Base
from momo.ledger.repository import WalletRepository
from momo.services.wallet_resolver import WalletResolver
from momo.utils.locks import clear_user_locks


@pytest.fixture(autouse=True)
def _reset_locks():
    """Locks are bound to the loop that created them."""
    clear_user_locks()
    yield
    clear_user_locks()


@pytest_asyncio.fixture
async def db_engine():
    """Create in-memory database engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def file_engine(tmp_path):
    """File-backed engine, for tests that need several connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'momo.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
def codec() -> SecretCodec:
    """Codec using the test ENCRYPTION_KEY."""
    return get_codec()


@pytest.fixture
def chain() -> SimulatedChainClient:
    """In-memory chain."""
    return SimulatedChainClient()


@pytest_asyncio.fixture
async def wallet_repo(db_session: AsyncSession, codec: SecretCodec) -> WalletRepository:
    """Create wallet repository for testing."""
    return WalletRepository(db_session, codec)


@pytest.fixture
def resolver(wallet_repo: WalletRepository, chain: SimulatedChainClient) -> WalletResolver:
    """Create wallet resolver for testing."""
    return WalletResolver(wallet_repo, chain)
