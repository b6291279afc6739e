"""Wallet resolution and creation.

Decides which wallet a user acts with and creates wallets so that a
user's first wallet always ends up as their default.
"""

import logging
import secrets
from typing import Optional

from momo.chain.base import ChainClient, KeyPair, normalize_address
from momo.errors import ConflictError
from momo.ledger.repository import WalletRecord, WalletRepository, validate_wallet_name

logger = logging.getLogger(__name__)

DEFAULT_WALLET_NAME = "default"


def generated_wallet_name() -> str:
    """Random system name for a wallet created without one."""
    return f"wallet_{secrets.token_hex(3)}"


def imported_wallet_name(address: str) -> str:
    """System name for an imported wallet, taken from its address."""
    return f"imported_{normalize_address(address)[:6]}"


def pick_default(wallets: list[WalletRecord]) -> WalletRecord:
    """The flagged default, else the first wallet in list order.

    The fallback is not written back; call set_default to persist it.
    """
    for wallet in wallets:
        if wallet.is_default:
            return wallet
    return wallets[0]


class WalletResolver:
    """Resolves and creates wallets for a user.

    Callers serialise work per user with user_wallet_lock around the whole
    transaction. If another process still wins the first-wallet race, the
    unique name index rejects the second insert and the winner is returned.
    """

    def __init__(self, repo: WalletRepository, chain: ChainClient):
        self.repo = repo
        self.chain = chain

    async def resolve_default(
        self, telegram_id: str, wallet_name: Optional[str] = None
    ) -> WalletRecord:
        """Get the wallet to use, creating the user's first one if needed.

        Args:
            telegram_id: User's Telegram ID
            wallet_name: Name for the wallet if one has to be created

        Returns:
            The default wallet, or the first live wallet if none is flagged
        """
        name = wallet_name or DEFAULT_WALLET_NAME

        wallets = await self.repo.list_wallets(telegram_id)
        if wallets:
            return pick_default(wallets)

        key_pair = self.chain.generate_key_pair()
        try:
            return await self._store(telegram_id, name, key_pair, is_default=True)
        except ConflictError:
            # Someone else created the first wallet; return the winner
            logger.info(f"Lost first-wallet race for user {telegram_id}, re-listing")
            wallets = await self.repo.list_wallets(telegram_id)
            if not wallets:
                raise
            return pick_default(wallets)

    async def generate_wallet(
        self, telegram_id: str, wallet_name: Optional[str] = None
    ) -> WalletRecord:
        """Create a wallet with a fresh key pair.

        Raises:
            ValidationError: User-supplied name violates the naming policy
            ConflictError: Name already taken
        """
        if wallet_name is not None:
            validate_wallet_name(wallet_name, strict=True)
        else:
            wallet_name = generated_wallet_name()

        key_pair = self.chain.generate_key_pair()
        return await self._create_first_default(telegram_id, wallet_name, key_pair)

    async def import_wallet(
        self,
        telegram_id: str,
        private_key_hex: str,
        wallet_name: Optional[str] = None,
    ) -> WalletRecord:
        """Import an existing account from its private key.

        Raises:
            ValidationError: Bad private key or wallet name
            ConflictError: Name taken or account already imported
        """
        if wallet_name is not None:
            validate_wallet_name(wallet_name, strict=True)

        key_pair = self.chain.key_pair_from_private_key(private_key_hex)
        if wallet_name is None:
            wallet_name = imported_wallet_name(key_pair.address)

        return await self._create_first_default(telegram_id, wallet_name, key_pair)

    async def _create_first_default(
        self, telegram_id: str, wallet_name: str, key_pair: KeyPair
    ) -> WalletRecord:
        wallets = await self.repo.list_wallets(telegram_id)

        target = normalize_address(key_pair.address)
        for wallet in wallets:
            if normalize_address(wallet.address) == target:
                raise ConflictError(
                    f'This account is already in your wallets as "{wallet.wallet_name}".'
                )

        make_default = not any(w.is_default for w in wallets)
        return await self._store(telegram_id, wallet_name, key_pair, is_default=make_default)

    async def _store(
        self, telegram_id: str, wallet_name: str, key_pair: KeyPair, is_default: bool
    ) -> WalletRecord:
        return await self.repo.create_wallet(
            telegram_id=telegram_id,
            wallet_name=wallet_name,
            address=key_pair.address,
            public_key=key_pair.public_key,
            private_key=key_pair.private_key,
            is_default=is_default,
        )
