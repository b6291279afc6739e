"""Tests for the wallet repository."""

import asyncio

import pytest
from sqlalchemy import event, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from momo.crypto import SecretCodec, generate_encryption_key
from momo.errors import ConflictError, DecryptionError, NotFoundError, ValidationError
from momo.ledger.models import Base, Wallet
from momo.ledger.repository import WalletRepository, validate_wallet_name

USER = "1001"


async def add_wallet(repo: WalletRepository, name: str, is_default: bool = False, user: str = USER):
    suffix = name.encode().hex().ljust(8, "0")[:8]
    return await repo.create_wallet(
        telegram_id=user,
        wallet_name=name,
        address=f"0x{suffix}",
        public_key=f"0xpub{suffix}",
        private_key=f"0xpriv{suffix}",
        is_default=is_default,
    )


class TestWalletNames:
    """Tests for the naming policy."""

    def test_valid_names(self):
        assert validate_wallet_name("main") == "main"
        assert validate_wallet_name("My_Wallet_2") == "My_Wallet_2"
        assert validate_wallet_name("a" * 20) == "a" * 20

    @pytest.mark.parametrize("name", ["", None, "a" * 21, "my wallet", "café", "a-b", "x!"])
    def test_invalid_names(self, name):
        with pytest.raises(ValidationError):
            validate_wallet_name(name)

    def test_non_strict_allows_any_characters(self):
        assert validate_wallet_name("my wallet", strict=False) == "my wallet"
        with pytest.raises(ValidationError):
            validate_wallet_name("a" * 21, strict=False)


class TestUserOperations:
    """Tests for user operations."""

    @pytest.mark.asyncio
    async def test_upsert_user(self, wallet_repo: WalletRepository, db_session):
        """Second upsert refreshes the profile instead of duplicating."""
        await wallet_repo.upsert_user(USER, username="alice", first_name="Alice")
        await db_session.commit()

        user = await wallet_repo.upsert_user(USER, username="alice2", first_name="Alice")
        await db_session.commit()

        assert user.telegram_id == USER
        assert user.username == "alice2"
        assert (await wallet_repo.get_user(USER)).username == "alice2"

    @pytest.mark.asyncio
    async def test_get_missing_user(self, wallet_repo: WalletRepository):
        assert await wallet_repo.get_user("404") is None


class TestWalletOperations:
    """Tests for wallet CRUD."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, wallet_repo: WalletRepository):
        created = await add_wallet(wallet_repo, "main", is_default=True)

        fetched = await wallet_repo.get_wallet(USER, "main")

        assert fetched.address == created.address
        assert fetched.private_key == created.private_key
        assert fetched.is_default is True
        assert fetched.created_at is not None

    @pytest.mark.asyncio
    async def test_secrets_encrypted_at_rest(self, wallet_repo: WalletRepository, db_session):
        """The stored columns never hold the plaintext."""
        record = await add_wallet(wallet_repo, "main")

        row = (await db_session.execute(select(Wallet))).scalar_one()

        assert row.address != record.address
        assert row.private_key != record.private_key
        assert row.public_key != record.public_key
        assert record.private_key not in repr(record)

    @pytest.mark.asyncio
    async def test_list_in_insertion_order(self, wallet_repo: WalletRepository):
        for name in ["zeta", "alpha", "mid"]:
            await add_wallet(wallet_repo, name)

        wallets = await wallet_repo.list_wallets(USER)

        assert [w.wallet_name for w in wallets] == ["zeta", "alpha", "mid"]

    @pytest.mark.asyncio
    async def test_list_is_per_user(self, wallet_repo: WalletRepository):
        await add_wallet(wallet_repo, "main", user="1")
        await add_wallet(wallet_repo, "main", user="2")

        assert len(await wallet_repo.list_wallets("1")) == 1
        assert await wallet_repo.list_wallets("3") == []

    @pytest.mark.asyncio
    async def test_duplicate_name_conflict(self, wallet_repo: WalletRepository):
        await add_wallet(wallet_repo, "main")

        with pytest.raises(ConflictError):
            await add_wallet(wallet_repo, "main")

    @pytest.mark.asyncio
    async def test_overlong_name_rejected(self, wallet_repo: WalletRepository):
        with pytest.raises(ValidationError):
            await add_wallet(wallet_repo, "x" * 21)

    @pytest.mark.asyncio
    async def test_get_missing_wallet(self, wallet_repo: WalletRepository):
        with pytest.raises(NotFoundError):
            await wallet_repo.get_wallet(USER, "nope")

    @pytest.mark.asyncio
    async def test_wrong_key_is_integrity_error(self, wallet_repo: WalletRepository, db_session):
        """Rows written under another key fail loudly on read."""
        await add_wallet(wallet_repo, "main")
        other = WalletRepository(db_session, SecretCodec(generate_encryption_key()))

        with pytest.raises(DecryptionError):
            await other.list_wallets(USER)


class TestDefaultWallet:
    """Tests for the single-default invariant."""

    @pytest.mark.asyncio
    async def test_set_default_moves_flag(self, wallet_repo: WalletRepository):
        await add_wallet(wallet_repo, "first", is_default=True)
        await add_wallet(wallet_repo, "second")

        result = await wallet_repo.set_default(USER, "second")
        wallets = await wallet_repo.list_wallets(USER)

        assert result.is_default is True
        assert [w.wallet_name for w in wallets if w.is_default] == ["second"]

    @pytest.mark.asyncio
    async def test_set_default_is_idempotent(self, wallet_repo: WalletRepository):
        await add_wallet(wallet_repo, "first", is_default=True)

        await wallet_repo.set_default(USER, "first")
        await wallet_repo.set_default(USER, "first")

        assert [w.is_default for w in await wallet_repo.list_wallets(USER)] == [True]

    @pytest.mark.asyncio
    async def test_set_default_missing_wallet(self, wallet_repo: WalletRepository):
        await add_wallet(wallet_repo, "first", is_default=True)

        with pytest.raises(NotFoundError):
            await wallet_repo.set_default(USER, "ghost")

        assert await wallet_repo.has_default(USER)

    @pytest.mark.asyncio
    async def test_at_most_one_default(self, wallet_repo: WalletRepository):
        """Any sequence of set_default calls leaves exactly one default."""
        names = ["a", "b", "c"]
        for name in names:
            await add_wallet(wallet_repo, name)

        for name in ["b", "a", "c", "c", "b"]:
            await wallet_repo.set_default(USER, name)
            wallets = await wallet_repo.list_wallets(USER)
            assert [w.wallet_name for w in wallets if w.is_default] == [name]

    @pytest.mark.asyncio
    async def test_set_default_leaves_other_users_alone(self, wallet_repo: WalletRepository):
        await add_wallet(wallet_repo, "main", is_default=True, user="1")
        await add_wallet(wallet_repo, "main", is_default=True, user="2")
        await add_wallet(wallet_repo, "other", user="2")

        await wallet_repo.set_default("2", "other")

        assert (await wallet_repo.get_wallet("1", "main")).is_default is True


class TestRename:
    """Tests for renaming."""

    @pytest.mark.asyncio
    async def test_rename(self, wallet_repo: WalletRepository):
        original = await add_wallet(wallet_repo, "old", is_default=True)

        renamed = await wallet_repo.rename_wallet(USER, "old", "new")

        assert renamed.wallet_name == "new"
        assert renamed.address == original.address
        assert renamed.is_default is True
        with pytest.raises(NotFoundError):
            await wallet_repo.get_wallet(USER, "old")

    @pytest.mark.asyncio
    async def test_rename_to_taken_name(self, wallet_repo: WalletRepository):
        await add_wallet(wallet_repo, "one")
        await add_wallet(wallet_repo, "two")

        with pytest.raises(ConflictError):
            await wallet_repo.rename_wallet(USER, "one", "two")

    @pytest.mark.asyncio
    async def test_rename_validates_before_lookup(self, wallet_repo: WalletRepository):
        """A bad new name is reported even if the wallet does not exist."""
        with pytest.raises(ValidationError):
            await wallet_repo.rename_wallet(USER, "ghost", "bad name")

    @pytest.mark.asyncio
    async def test_rename_missing(self, wallet_repo: WalletRepository):
        with pytest.raises(NotFoundError):
            await wallet_repo.rename_wallet(USER, "ghost", "new")

    @pytest.mark.asyncio
    async def test_rename_to_same_name(self, wallet_repo: WalletRepository):
        await add_wallet(wallet_repo, "same")

        result = await wallet_repo.rename_wallet(USER, "same", "same")

        assert result.wallet_name == "same"


class TestSoftDelete:
    """Tests for tombstoning."""

    @pytest.mark.asyncio
    async def test_deleted_wallet_is_hidden(self, wallet_repo: WalletRepository, db_session):
        await add_wallet(wallet_repo, "gone")

        await wallet_repo.soft_delete_wallet(USER, "gone")

        assert await wallet_repo.list_wallets(USER) == []
        with pytest.raises(NotFoundError):
            await wallet_repo.get_wallet(USER, "gone")
        with pytest.raises(NotFoundError):
            await wallet_repo.soft_delete_wallet(USER, "gone")

        # The row itself is kept
        rows = (await db_session.execute(select(Wallet))).scalars().all()
        assert len(rows) == 1
        assert rows[0].deleted is True

    @pytest.mark.asyncio
    async def test_deleting_default_does_not_promote(self, wallet_repo: WalletRepository):
        await add_wallet(wallet_repo, "first", is_default=True)
        await add_wallet(wallet_repo, "second")

        await wallet_repo.soft_delete_wallet(USER, "first")

        assert await wallet_repo.has_default(USER) is False
        assert (await wallet_repo.get_wallet(USER, "second")).is_default is False

    @pytest.mark.asyncio
    async def test_name_reusable_after_delete(self, wallet_repo: WalletRepository):
        await add_wallet(wallet_repo, "main")
        await wallet_repo.soft_delete_wallet(USER, "main")

        again = await add_wallet(wallet_repo, "main")

        assert [w.id for w in await wallet_repo.list_wallets(USER)] == [again.id]

    @pytest.mark.asyncio
    async def test_list_user_ids_skips_users_without_live_wallets(
        self, wallet_repo: WalletRepository
    ):
        await add_wallet(wallet_repo, "a", user="1")
        await add_wallet(wallet_repo, "b", user="1")
        await add_wallet(wallet_repo, "c", user="2")
        await add_wallet(wallet_repo, "d", user="3")
        await wallet_repo.soft_delete_wallet("3", "d")

        assert await wallet_repo.list_user_ids() == ["1", "2"]


class TestConcurrentCreate:
    """Uniqueness holds across separate connections."""

    @pytest.mark.asyncio
    async def test_unique_index_backstops_precheck(self, file_engine, codec: SecretCodec):
        """An insert that slipped past the name check is turned into a conflict."""
        factory = async_sessionmaker(bind=file_engine, class_=AsyncSession, expire_on_commit=False)

        async def create(session: AsyncSession, i: int):
            return await WalletRepository(session, codec).create_wallet(
                telegram_id=USER,
                wallet_name="default",
                address=f"0x{i:064x}",
                public_key=f"0xpub{i}",
                private_key=f"0xpriv{i}",
                is_default=True,
            )

        async with factory() as session:
            winner = await create(session, 1)
            await session.commit()

        async with factory() as session:
            repo = WalletRepository(session, codec)

            async def stale_find(telegram_id, wallet_name):
                return None

            repo._find = stale_find
            with pytest.raises(ConflictError):
                await repo.create_wallet(
                    telegram_id=USER,
                    wallet_name="default",
                    address="0x2",
                    public_key="0xpub2",
                    private_key="0xpriv2",
                )

        async with factory() as session:
            wallets = await WalletRepository(session, codec).list_wallets(USER)
        assert [w.address for w in wallets] == [winner.address]

    @pytest.mark.asyncio
    async def test_tombstone_does_not_block_backstop(self, file_engine, codec: SecretCodec):
        """The partial index only covers live wallets."""
        factory = async_sessionmaker(bind=file_engine, class_=AsyncSession, expire_on_commit=False)

        async with factory() as session:
            repo = WalletRepository(session, codec)
            await add_wallet(repo, "main")
            await repo.soft_delete_wallet(USER, "main")
            await add_wallet(repo, "main")
            await session.commit()

        async with factory() as session:
            assert len(await WalletRepository(session, codec).list_wallets(USER)) == 1

    @pytest.mark.asyncio
    async def test_two_concurrent_creates_one_wins(self, file_engine, codec: SecretCodec):
        """Without the per-user lock, one of two racing inserts is rejected."""
        factory = async_sessionmaker(bind=file_engine, class_=AsyncSession, expire_on_commit=False)

        async def create_and_commit(i: int):
            async with factory() as session:
                try:
                    record = await WalletRepository(session, codec).create_wallet(
                        telegram_id=USER,
                        wallet_name="default",
                        address=f"0x{i:064x}",
                        public_key=f"0xpub{i}",
                        private_key=f"0xpriv{i}",
                        is_default=True,
                    )
                    await session.commit()
                    return record
                except ConflictError as e:
                    return e

        results = await asyncio.gather(create_and_commit(1), create_and_commit(2))

        assert sorted(type(r).__name__ for r in results) == ["ConflictError", "WalletRecord"]
        async with factory() as session:
            assert len(await WalletRepository(session, codec).list_wallets(USER)) == 1


class TestIntegrityErrors:
    """Only a duplicate name is reported as a conflict."""

    @pytest.mark.asyncio
    async def test_foreign_key_violation_propagates(self, tmp_path, codec: SecretCodec):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fk.db'}")

        @event.listens_for(engine.sync_engine, "connect")
        def enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
        try:
            async with factory() as session:
                with pytest.raises(IntegrityError):
                    await add_wallet(WalletRepository(session, codec), "main", user="404")
        finally:
            await engine.dispose()


class TestSchema:
    """Tests for column defaults declared on the table."""

    @pytest.mark.asyncio
    async def test_boolean_flags_default_to_false_in_database(self, db_session: AsyncSession):
        await db_session.execute(
            text(
                "INSERT INTO aptos_wallets (telegram_id, wallet_name, private_key, public_key, address) "
                "VALUES ('9', 'raw', 'x', 'y', 'z')"
            )
        )

        row = (
            await db_session.execute(
                text("SELECT is_default, deleted FROM aptos_wallets WHERE wallet_name = 'raw'")
            )
        ).one()

        assert not row.is_default
        assert not row.deleted
