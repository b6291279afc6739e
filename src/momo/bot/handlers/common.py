"""Helpers shared by the bot handlers."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from aiogram.types import User

from momo.chain.factory import get_chain_client
from momo.crypto import get_codec
from momo.ledger.database import get_db
from momo.ledger.repository import WalletRepository
from momo.services.wallet_resolver import WalletResolver
from momo.utils.locks import user_wallet_lock

GENERIC_ERROR = "❌ An unexpected error occurred. Please try again later."


@asynccontextmanager
async def wallet_services(
    telegram_id: str, operation: str = "wallet_operation"
) -> AsyncGenerator[tuple[WalletRepository, WalletResolver], None]:
    """Repository and resolver bound to one database transaction.

    The user's wallet lock is held until the transaction has committed, so
    two updates from the same user never interleave.
    """
    async with user_wallet_lock(telegram_id, operation=operation):
        async with get_db() as session:
            repo = WalletRepository(session, get_codec())
            yield repo, WalletResolver(repo, get_chain_client())


def telegram_id_of(user: User) -> str:
    return str(user.id)
