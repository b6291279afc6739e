"""Background transfer monitor.

Periodically sweeps every live wallet for newly received coin deposits
and hands each one to the notifier. Per wallet it remembers the last
processed sequence number and whether the account exists on-chain, so a
sweep only fetches new history and skips accounts that were never funded.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from momo.chain.base import ChainClient, ChainEvent, ChainTransaction, normalize_address
from momo.chain.tokens import (
    extract_token_type,
    get_token_name,
    is_deposit_event,
    normalize_amount,
)
from momo.crypto import SecretCodec
from momo.errors import AccountNotFoundError, CollaboratorError
from momo.ledger.repository import WalletRecord, WalletRepository
from momo.monitor.state import MonitorState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferEvent:
    """A deposit detected on one of our wallets."""

    token_type: str
    token_name: str
    amount: Decimal
    sender_address: str
    txn_hash: str


@dataclass
class MonitorStats:
    """Counters exposed through the status API."""

    sweeps_completed: int = 0
    sweeps_skipped: int = 0
    events_emitted: int = 0
    notifications_failed: int = 0
    last_sweep_at: Optional[datetime] = None
    last_sweep_seconds: float = 0.0

    def as_dict(self) -> dict:
        return {
            "sweeps_completed": self.sweeps_completed,
            "sweeps_skipped": self.sweeps_skipped,
            "events_emitted": self.events_emitted,
            "notifications_failed": self.notifications_failed,
            "last_sweep_at": self.last_sweep_at.isoformat() if self.last_sweep_at else None,
            "last_sweep_seconds": round(self.last_sweep_seconds, 3),
        }


def _parse_deposit(
    event: ChainEvent, tx: ChainTransaction, target: str
) -> Optional[TransferEvent]:
    if not is_deposit_event(event.type):
        return None
    recipient = event.recipient
    if not recipient or normalize_address(recipient) != target:
        return None

    token_type = extract_token_type(event.type)
    return TransferEvent(
        token_type=token_type,
        token_name=get_token_name(token_type),
        amount=normalize_amount(event.data.get("amount"), token_type),
        sender_address=tx.sender,
        txn_hash=tx.hash,
    )


def extract_transfers(
    transactions: Iterable[ChainTransaction], address: str
) -> list[TransferEvent]:
    """Find successful deposit events credited to address."""
    target = normalize_address(address)
    transfers = []

    for tx in transactions:
        if not tx.success:
            continue

        for event in tx.events:
            try:
                transfer = _parse_deposit(event, tx, target)
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed event in {tx.hash}: {e}")
                continue
            if transfer is not None:
                transfers.append(transfer)

    return transfers


class DatabaseWalletSource:
    """Reads the wallets to sweep from the wallet store."""

    def __init__(
        self,
        codec: SecretCodec,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ):
        if session_factory is None:
            from momo.ledger.database import get_session_factory

            session_factory = get_session_factory()
        self.codec = codec
        self.session_factory = session_factory

    async def list_user_ids(self) -> list[str]:
        async with self.session_factory() as session:
            return await WalletRepository(session, self.codec).list_user_ids()

    async def list_wallets(self, telegram_id: str) -> list[WalletRecord]:
        async with self.session_factory() as session:
            return await WalletRepository(session, self.codec).list_wallets(telegram_id)


class TransferMonitor:
    """Recurring sweep over all wallets for incoming transfers.

    Users are swept concurrently up to max_concurrency; the wallets of one
    user are checked one after another. Sweeps never overlap.
    """

    def __init__(
        self,
        chain: ChainClient,
        wallets: Any,
        notifier: Any,
        state: Optional[MonitorState] = None,
        interval: float = 10.0,
        page_size: int = 25,
        inactive_ttl: float = 3600.0,
        max_concurrency: int = 5,
        wallet_delay: float = 0.1,
    ):
        """Initialize the monitor.

        Args:
            chain: Chain collaborator used for transaction history
            wallets: Source with list_user_ids() and list_wallets(telegram_id)
            notifier: Object with notify_transfer_received(...)
            state: Cursor/activity store, a fresh one if not given
            interval: Seconds between the end of one sweep and the next
            page_size: Transactions fetched per wallet per sweep
            inactive_ttl: Seconds an address without an account is skipped
            max_concurrency: Users swept in parallel
            wallet_delay: Pause between wallets of the same user
        """
        self.chain = chain
        self.wallets = wallets
        self.notifier = notifier
        self.state = state or MonitorState()
        self.interval = interval
        self.page_size = page_size
        self.inactive_ttl = inactive_ttl
        self.wallet_delay = wallet_delay
        self.stats = MonitorStats()

        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._sweep_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def sweep_in_progress(self) -> bool:
        return self._sweep_lock.locked()

    async def sweep(self) -> int:
        """Run one sweep over all users.

        Returns:
            Number of transfer events emitted, 0 if the sweep was skipped
        """
        if self._sweep_lock.locked():
            self.stats.sweeps_skipped += 1
            logger.warning("Previous sweep still running - skipping")
            return 0

        async with self._sweep_lock:
            started = time.monotonic()
            user_ids = await self.wallets.list_user_ids()

            results = await asyncio.gather(
                *(self._sweep_user(telegram_id) for telegram_id in user_ids),
                return_exceptions=True,
            )

            emitted = 0
            for telegram_id, result in zip(user_ids, results):
                if isinstance(result, BaseException):
                    logger.error(f"Error processing wallets for user {telegram_id}: {result}")
                else:
                    emitted += result

            self.stats.sweeps_completed += 1
            self.stats.events_emitted += emitted
            self.stats.last_sweep_at = datetime.now(timezone.utc)
            self.stats.last_sweep_seconds = time.monotonic() - started

            if emitted:
                logger.info(f"Sweep found {emitted} new transfers across {len(user_ids)} users")
            return emitted

    async def _sweep_user(self, telegram_id: str) -> int:
        async with self._semaphore:
            wallets = await self.wallets.list_wallets(telegram_id)

            emitted = 0
            for index, wallet in enumerate(wallets):
                if index and self.wallet_delay:
                    await asyncio.sleep(self.wallet_delay)
                emitted += await self.check_wallet(wallet)
            return emitted

    async def check_wallet(self, wallet: WalletRecord) -> int:
        """Fetch new history for one wallet and notify about deposits.

        Returns:
            Number of transfer events emitted
        """
        address = wallet.address
        owner = wallet.telegram_id

        if self.state.is_known_inactive(owner, address, self.inactive_ttl):
            return 0

        cursor = self.state.get_cursor(owner, address)
        try:
            transactions = await self.chain.get_transactions_since(
                address, cursor, self.page_size
            )
        except AccountNotFoundError:
            # Never funded yet - expected for most new wallets
            self.state.mark_inactive(owner, address)
            return 0
        except CollaboratorError as e:
            logger.warning(f"Error checking wallet {wallet.short_address} for transfers: {e}")
            return 0
        except Exception as e:
            logger.error(f"Unexpected error checking wallet {wallet.short_address}: {e}")
            return 0

        self.state.mark_active(owner, address)

        if not transactions:
            return 0

        transfers = extract_transfers(transactions, address)

        # Advance before notifying: a lost notification beats a repeated one
        highest = max(tx.sequence_number for tx in transactions)
        self.state.advance_cursor(owner, address, highest)

        for transfer in transfers:
            await self._deliver(wallet, transfer)

        return len(transfers)

    async def _deliver(self, wallet: WalletRecord, transfer: TransferEvent) -> None:
        try:
            sent = await self.notifier.notify_transfer_received(
                telegram_id=wallet.telegram_id,
                wallet_name=wallet.wallet_name,
                wallet_address=wallet.address,
                event=transfer,
            )
        except Exception as e:
            sent = False
            logger.error(f"Notifier error for {transfer.txn_hash}: {e}")

        if sent is False:
            self.stats.notifications_failed += 1

    async def run(self) -> None:
        """Run sweeps until stop() is called."""
        self._running = True
        self._stop_event.clear()
        logger.info(f"Starting transfer monitor (interval: {self.interval}s)")

        try:
            while not self._stop_event.is_set():
                try:
                    await self.sweep()
                except Exception as e:
                    logger.error(f"Transfer monitor error: {e}")

                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            logger.info("Transfer monitor stopped")

    def stop(self) -> None:
        """Ask the run loop to exit after the current sweep."""
        self._stop_event.set()

    def status(self) -> dict:
        return {
            "running": self._running,
            "sweep_in_progress": self.sweep_in_progress,
            "interval_seconds": self.interval,
            **self.stats.as_dict(),
            **self.state.snapshot(),
        }
