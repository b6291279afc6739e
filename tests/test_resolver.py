"""Tests for wallet resolution and creation."""

import asyncio

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from momo.chain.base import SimulatedChainClient, key_pair_from_private_key, normalize_address
from momo.crypto import SecretCodec
from momo.errors import ConflictError, ValidationError
from momo.ledger.repository import WalletRepository
from momo.services.wallet_resolver import (
    DEFAULT_WALLET_NAME,
    WalletResolver,
    pick_default,
)
from momo.utils.locks import user_wallet_lock

USER = "2002"
PRIVATE_KEY = "0x" + "11" * 32


class TestResolveDefault:
    """Tests for resolve_default."""

    @pytest.mark.asyncio
    async def test_new_user_gets_default_wallet(self, resolver: WalletResolver, wallet_repo):
        wallet = await resolver.resolve_default(USER)

        wallets = await wallet_repo.list_wallets(USER)
        assert len(wallets) == 1
        assert wallet.wallet_name == DEFAULT_WALLET_NAME
        assert wallet.is_default is True
        assert wallet.address.startswith("0x")
        assert len(wallet.address) == 66

    @pytest.mark.asyncio
    async def test_custom_name_for_first_wallet(self, resolver: WalletResolver):
        wallet = await resolver.resolve_default(USER, "savings")

        assert wallet.wallet_name == "savings"

    @pytest.mark.asyncio
    async def test_idempotent(self, resolver: WalletResolver, wallet_repo):
        first = await resolver.resolve_default(USER)
        second = await resolver.resolve_default(USER)

        assert first.id == second.id
        assert len(await wallet_repo.list_wallets(USER)) == 1

    @pytest.mark.asyncio
    async def test_returns_flagged_default(self, resolver: WalletResolver, wallet_repo):
        await resolver.resolve_default(USER)
        other = await resolver.generate_wallet(USER, "other")
        await wallet_repo.set_default(USER, "other")

        resolved = await resolver.resolve_default(USER)

        assert resolved.id == other.id

    @pytest.mark.asyncio
    async def test_falls_back_to_first_wallet(self, resolver: WalletResolver, wallet_repo):
        """With the default deleted, the oldest live wallet is used but not flagged."""
        await resolver.resolve_default(USER)
        second = await resolver.generate_wallet(USER, "second")
        await resolver.generate_wallet(USER, "third")
        await wallet_repo.soft_delete_wallet(USER, DEFAULT_WALLET_NAME)

        resolved = await resolver.resolve_default(USER)

        assert resolved.id == second.id
        assert resolved.is_default is False
        assert await wallet_repo.has_default(USER) is False

    @pytest.mark.asyncio
    async def test_recreates_after_all_deleted(self, resolver: WalletResolver, wallet_repo):
        first = await resolver.resolve_default(USER)
        await wallet_repo.soft_delete_wallet(USER, DEFAULT_WALLET_NAME)

        again = await resolver.resolve_default(USER)

        assert again.wallet_name == DEFAULT_WALLET_NAME
        assert again.id != first.id
        assert again.is_default is True

    @pytest.mark.asyncio
    async def test_concurrent_first_resolution(self, file_engine, codec: SecretCodec):
        """Parallel requests for a new user agree on a single wallet."""
        factory = async_sessionmaker(bind=file_engine, class_=AsyncSession, expire_on_commit=False)
        chain = SimulatedChainClient()

        async def worker():
            async with user_wallet_lock(USER, operation="test"):
                async with factory() as session:
                    resolver = WalletResolver(WalletRepository(session, codec), chain)
                    wallet = await resolver.resolve_default(USER)
                    await session.commit()
                    return wallet

        results = await asyncio.gather(*(worker() for _ in range(5)))

        assert len({w.address for w in results}) == 1
        async with factory() as session:
            assert len(await WalletRepository(session, codec).list_wallets(USER)) == 1

    @pytest.mark.asyncio
    async def test_lost_race_returns_winner(self, file_engine, codec: SecretCodec):
        """A resolver that saw no wallets but lost the insert returns the winner."""
        factory = async_sessionmaker(bind=file_engine, class_=AsyncSession, expire_on_commit=False)
        chain = SimulatedChainClient()

        async with factory() as session:
            winner = await WalletResolver(WalletRepository(session, codec), chain).resolve_default(USER)
            await session.commit()

        async with factory() as session:
            repo = WalletRepository(session, codec)
            real_list = repo.list_wallets
            calls = []

            async def stale_list(telegram_id):
                calls.append(telegram_id)
                if len(calls) == 1:
                    return []
                return await real_list(telegram_id)

            repo.list_wallets = stale_list
            resolved = await WalletResolver(repo, chain).resolve_default(USER)

        assert resolved.id == winner.id
        assert len(calls) == 2


class TestGenerateWallet:
    """Tests for generate_wallet."""

    @pytest.mark.asyncio
    async def test_first_generated_wallet_is_default(self, resolver: WalletResolver):
        wallet = await resolver.generate_wallet(USER, "main")

        assert wallet.is_default is True

    @pytest.mark.asyncio
    async def test_later_wallets_are_not_default(self, resolver: WalletResolver):
        await resolver.generate_wallet(USER, "main")
        wallet = await resolver.generate_wallet(USER, "extra")

        assert wallet.is_default is False

    @pytest.mark.asyncio
    async def test_generated_name(self, resolver: WalletResolver):
        wallet = await resolver.generate_wallet(USER)

        assert wallet.wallet_name.startswith("wallet_")
        assert len(wallet.wallet_name) <= 20

    @pytest.mark.asyncio
    async def test_invalid_name(self, resolver: WalletResolver, wallet_repo):
        with pytest.raises(ValidationError):
            await resolver.generate_wallet(USER, "no spaces")

        assert await wallet_repo.list_wallets(USER) == []

    @pytest.mark.asyncio
    async def test_duplicate_name(self, resolver: WalletResolver):
        await resolver.generate_wallet(USER, "main")

        with pytest.raises(ConflictError):
            await resolver.generate_wallet(USER, "main")

    @pytest.mark.asyncio
    async def test_keys_are_consistent(self, resolver: WalletResolver):
        """The stored address belongs to the stored private key."""
        wallet = await resolver.generate_wallet(USER, "main")

        rebuilt = key_pair_from_private_key(wallet.private_key)

        assert rebuilt.address == wallet.address
        assert rebuilt.public_key == wallet.public_key


class TestImportWallet:
    """Tests for import_wallet."""

    @pytest.mark.asyncio
    async def test_import(self, resolver: WalletResolver):
        expected = key_pair_from_private_key(PRIVATE_KEY)

        wallet = await resolver.import_wallet(USER, PRIVATE_KEY, "cold")

        assert wallet.wallet_name == "cold"
        assert wallet.address == expected.address
        assert wallet.is_default is True

    @pytest.mark.asyncio
    async def test_import_without_prefix_and_name(self, resolver: WalletResolver):
        wallet = await resolver.import_wallet(USER, "11" * 32)

        assert wallet.wallet_name == f"imported_{normalize_address(wallet.address)[:6]}"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_key", ["", "0x1234", "zz" * 32, "11" * 33])
    async def test_invalid_private_key(self, resolver: WalletResolver, wallet_repo, bad_key):
        with pytest.raises(ValidationError):
            await resolver.import_wallet(USER, bad_key, "cold")

        assert await wallet_repo.list_wallets(USER) == []

    @pytest.mark.asyncio
    async def test_same_account_twice(self, resolver: WalletResolver):
        await resolver.import_wallet(USER, PRIVATE_KEY, "first")

        with pytest.raises(ConflictError):
            await resolver.import_wallet(USER, PRIVATE_KEY, "second")

    @pytest.mark.asyncio
    async def test_import_after_default(self, resolver: WalletResolver):
        await resolver.resolve_default(USER)

        wallet = await resolver.import_wallet(USER, PRIVATE_KEY, "cold")

        assert wallet.is_default is False


class TestPickDefault:
    """Tests for the fallback rule."""

    @pytest.mark.asyncio
    async def test_prefers_flagged(self, resolver: WalletResolver, wallet_repo):
        await resolver.generate_wallet(USER, "a")
        await resolver.generate_wallet(USER, "b")
        await wallet_repo.set_default(USER, "b")

        wallets = await wallet_repo.list_wallets(USER)

        assert pick_default(wallets).wallet_name == "b"
