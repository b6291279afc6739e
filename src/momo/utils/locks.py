"""Per-user locking for wallet resolution.

Serialises "first wallet" creation for a user inside one process. Across
processes the unique wallet-name index is what prevents duplicates.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

logger = logging.getLogger(__name__)

# Global lock registry: telegram_id -> asyncio.Lock
_user_locks: dict[str, asyncio.Lock] = {}


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


def get_user_lock(telegram_id: str) -> asyncio.Lock:
    """Get or create the lock for a user."""
    lock = _user_locks.get(telegram_id)
    if lock is None:
        lock = _user_locks.setdefault(telegram_id, asyncio.Lock())
    return lock


@asynccontextmanager
async def user_wallet_lock(
    telegram_id: str,
    timeout: Optional[float] = 30.0,
    operation: str = "wallet_operation",
):
    """Hold the user's wallet lock for the duration of the block.

    Example:
        async with user_wallet_lock(telegram_id, operation="resolve"):
            wallets = await repo.list_wallets(telegram_id)
    """
    lock = get_user_lock(telegram_id)

    try:
        if timeout:
            await asyncio.wait_for(lock.acquire(), timeout=timeout)
        else:
            await lock.acquire()
    except asyncio.TimeoutError:
        logger.warning(f"Lock timeout for user {telegram_id}: {operation}")
        raise LockTimeoutError(
            f"Could not acquire lock for user {telegram_id} within {timeout}s"
        )

    logger.debug(f"Lock acquired for user {telegram_id}: {operation}")
    try:
        yield
    finally:
        lock.release()
        logger.debug(f"Lock released for user {telegram_id}: {operation}")


def clear_user_locks() -> None:
    """Clear all user locks (useful for testing)."""
    _user_locks.clear()
