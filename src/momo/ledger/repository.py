"""Repository for users and custodial wallets.

All secret columns are encrypted on the way in and decrypted on the way
out; callers only ever see WalletRecord instances holding plaintext.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from momo.crypto import SecretCodec
from momo.errors import ConflictError, DecryptionError, NotFoundError, ValidationError
from momo.ledger.models import TelegramUser, Wallet

logger = logging.getLogger(__name__)

WALLET_NAME_MAX_LENGTH = 20
WALLET_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


def validate_wallet_name(name: Optional[str], strict: bool = True) -> str:
    """Check a wallet name against the naming policy.

    Every name must be non-empty and at most 20 characters. User-supplied
    names (strict) are further limited to letters, digits and underscores.

    Raises:
        ValidationError: If the name violates the policy
    """
    if not name:
        raise ValidationError("Wallet name cannot be empty.")
    if len(name) > WALLET_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Wallet name must be at most {WALLET_NAME_MAX_LENGTH} characters."
        )
    if strict and not WALLET_NAME_PATTERN.match(name):
        raise ValidationError(
            "Wallet name can only contain letters, numbers and underscores."
        )
    return name


def is_duplicate_name(error: IntegrityError) -> bool:
    """True if error comes from the live-name unique index."""
    message = str(error.orig)
    return "uq_wallets_user_name" in message or (
        "UNIQUE constraint failed" in message and "wallet_name" in message
    )


@dataclass(frozen=True)
class WalletRecord:
    """Decrypted view of a wallet row."""

    id: int
    telegram_id: str
    wallet_name: str
    address: str
    public_key: str
    private_key: str = field(repr=False)
    is_default: bool = False
    created_at: Optional[datetime] = None

    @property
    def short_address(self) -> str:
        """Address shortened for display."""
        if len(self.address) <= 12:
            return self.address
        return f"{self.address[:6]}...{self.address[-4:]}"


class WalletRepository:
    """Repository for wallet custody operations.

    Every method works on one row at a time. set_default() is the only
    operation touching several rows and does so as two ordered statements.
    """

    def __init__(self, session: AsyncSession, codec: SecretCodec):
        self.session = session
        self.codec = codec

    # User operations
    async def upsert_user(
        self,
        telegram_id: str,
        username: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> TelegramUser:
        """Create the user or refresh their profile fields."""
        user = await self.session.get(TelegramUser, telegram_id)

        if user is None:
            user = TelegramUser(
                telegram_id=telegram_id,
                username=username,
                first_name=first_name,
                last_name=last_name,
            )
            self.session.add(user)
        else:
            user.username = username
            user.first_name = first_name
            user.last_name = last_name

        await self.session.flush()
        return user

    async def get_user(self, telegram_id: str) -> Optional[TelegramUser]:
        """Get user by Telegram ID."""
        return await self.session.get(TelegramUser, telegram_id)

    # Wallet operations
    async def create_wallet(
        self,
        telegram_id: str,
        wallet_name: str,
        address: str,
        public_key: str,
        private_key: str,
        is_default: bool = False,
    ) -> WalletRecord:
        """Store a new wallet with its secrets encrypted.

        Raises:
            ValidationError: Empty or overlong name
            ConflictError: A live wallet with this name already exists
        """
        validate_wallet_name(wallet_name, strict=False)

        if await self._find(telegram_id, wallet_name) is not None:
            raise ConflictError(f'A wallet named "{wallet_name}" already exists.')

        wallet = Wallet(
            telegram_id=telegram_id,
            wallet_name=wallet_name,
            private_key=self.codec.encrypt(private_key),
            public_key=self.codec.encrypt(public_key),
            address=self.codec.encrypt(address),
            is_default=is_default,
            deleted=False,
        )
        self.session.add(wallet)

        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            if not is_duplicate_name(e):
                raise
            # Lost a race against a concurrent insert of the same name
            raise ConflictError(f'A wallet named "{wallet_name}" already exists.')

        logger.info(f"Created wallet '{wallet_name}' for user {telegram_id}")
        return self._to_record(wallet)

    async def list_wallets(self, telegram_id: str) -> list[WalletRecord]:
        """Get all live wallets for a user in insertion order."""
        stmt = (
            select(Wallet)
            .where(Wallet.telegram_id == telegram_id, Wallet.deleted.is_(False))
            .order_by(Wallet.id)
        )
        result = await self.session.execute(stmt)
        return [self._to_record(w) for w in result.scalars().all()]

    async def get_wallet(self, telegram_id: str, wallet_name: str) -> WalletRecord:
        """Get a live wallet by name.

        Raises:
            NotFoundError: If absent or soft-deleted
        """
        return self._to_record(await self._get_row(telegram_id, wallet_name))

    async def set_default(self, telegram_id: str, wallet_name: str) -> WalletRecord:
        """Make the named wallet the user's only default.

        Runs as two steps: clear the flag on every wallet of the user, then
        set it on the target. Between the steps the user has no default;
        readers cover that window with the first-wallet fallback.

        Raises:
            NotFoundError: If the wallet does not exist
        """
        wallet = await self._get_row(telegram_id, wallet_name)

        await self.session.execute(
            update(Wallet)
            .where(Wallet.telegram_id == telegram_id, Wallet.is_default.is_(True))
            .values(is_default=False)
        )
        await self.session.execute(
            update(Wallet).where(Wallet.id == wallet.id).values(is_default=True)
        )
        await self.session.flush()
        await self.session.refresh(wallet)

        logger.info(f"Default wallet for user {telegram_id} is now '{wallet_name}'")
        return self._to_record(wallet)

    async def rename_wallet(
        self, telegram_id: str, old_name: str, new_name: str
    ) -> WalletRecord:
        """Rename a wallet. Validation happens before anything is written.

        Raises:
            ValidationError: New name violates the naming policy
            NotFoundError: No live wallet called old_name
            ConflictError: new_name already used by a live wallet
        """
        validate_wallet_name(new_name, strict=True)
        wallet = await self._get_row(telegram_id, old_name)

        if new_name == old_name:
            return self._to_record(wallet)

        if await self._find(telegram_id, new_name) is not None:
            raise ConflictError(f'A wallet named "{new_name}" already exists.')

        wallet.wallet_name = new_name
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            if not is_duplicate_name(e):
                raise
            raise ConflictError(f'A wallet named "{new_name}" already exists.')

        logger.info(f"Renamed wallet '{old_name}' to '{new_name}' for user {telegram_id}")
        return self._to_record(wallet)

    async def soft_delete_wallet(self, telegram_id: str, wallet_name: str) -> None:
        """Tombstone a wallet. Default status is not reassigned.

        Raises:
            NotFoundError: If the wallet does not exist
        """
        wallet = await self._get_row(telegram_id, wallet_name)
        wallet.deleted = True
        await self.session.flush()
        logger.info(f"Soft-deleted wallet '{wallet_name}' for user {telegram_id}")

    async def has_default(self, telegram_id: str) -> bool:
        """Check whether the user has a live default wallet."""
        stmt = select(Wallet.id).where(
            Wallet.telegram_id == telegram_id,
            Wallet.deleted.is_(False),
            Wallet.is_default.is_(True),
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def list_user_ids(self) -> list[str]:
        """Get the distinct users owning at least one live wallet."""
        stmt = (
            select(Wallet.telegram_id)
            .where(Wallet.deleted.is_(False))
            .distinct()
            .order_by(Wallet.telegram_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _find(self, telegram_id: str, wallet_name: str) -> Optional[Wallet]:
        stmt = select(Wallet).where(
            Wallet.telegram_id == telegram_id,
            Wallet.wallet_name == wallet_name,
            Wallet.deleted.is_(False),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_row(self, telegram_id: str, wallet_name: str) -> Wallet:
        wallet = await self._find(telegram_id, wallet_name)
        if wallet is None:
            raise NotFoundError(f'Wallet "{wallet_name}" not found.')
        return wallet

    def _to_record(self, wallet: Wallet) -> WalletRecord:
        """Decrypt a row into a WalletRecord."""
        try:
            return WalletRecord(
                id=wallet.id,
                telegram_id=wallet.telegram_id,
                wallet_name=wallet.wallet_name,
                address=self.codec.decrypt(wallet.address),
                public_key=self.codec.decrypt(wallet.public_key),
                private_key=self.codec.decrypt(wallet.private_key),
                is_default=wallet.is_default,
                created_at=wallet.created_at,
            )
        except DecryptionError:
            logger.critical(
                f"Wallet {wallet.id} of user {wallet.telegram_id} failed decryption - "
                f"wrong ENCRYPTION_KEY or tampered row"
            )
            raise
