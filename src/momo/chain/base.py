"""Base interface for the blockchain collaborator.

The core only needs three things from the chain: fresh key pairs, an
account's transaction history after a known sequence number, and a
balance for display.
"""

import hashlib
import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from momo.chain.tokens import APT_COIN_TYPE, DEPOSIT_EVENT_TYPE
from momo.errors import AccountNotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Aptos single-key Ed25519 authentication scheme byte
ED25519_SCHEME = b"\x00"
SUCCESS_VM_STATUS = "Executed successfully"


@dataclass(frozen=True)
class KeyPair:
    """Freshly generated or imported key material."""

    address: str
    public_key: str
    private_key: str = field(repr=False)


@dataclass
class ChainEvent:
    """An event emitted by a transaction."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)
    account_address: Optional[str] = None

    @property
    def recipient(self) -> Optional[str]:
        """Address credited by a deposit event."""
        return self.data.get("to") or self.account_address


@dataclass
class ChainTransaction:
    """A committed user transaction."""

    sequence_number: int
    vm_status: str
    sender: str
    hash: str
    events: list[ChainEvent] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.vm_status == SUCCESS_VM_STATUS


def normalize_address(address: str) -> str:
    """Canonical form for comparing addresses (lowercase, no 0x, no padding)."""
    value = address.strip().lower()
    if value.startswith("0x"):
        value = value[2:]
    return value.lstrip("0") or "0"


def derive_address(public_key: bytes) -> str:
    """Derive the account address from an Ed25519 public key."""
    auth_key = hashlib.sha3_256(public_key + ED25519_SCHEME).hexdigest()
    return f"0x{auth_key}"


def key_pair_from_private_key(private_key_hex: str) -> KeyPair:
    """Build a key pair from a 64-character hex private key.

    Raises:
        ValidationError: If the key is not 32 bytes of hex
    """
    clean = private_key_hex.strip()
    if clean.lower().startswith("0x"):
        clean = clean[2:]

    if len(clean) != 64:
        raise ValidationError(
            "Invalid private key format. Please provide a valid 64-character hex string."
        )
    try:
        raw = bytes.fromhex(clean)
    except ValueError:
        raise ValidationError(
            "Invalid private key format. Please provide a valid 64-character hex string."
        )

    key = Ed25519PrivateKey.from_private_bytes(raw)
    public = key.public_key().public_bytes_raw()

    return KeyPair(
        address=derive_address(public),
        public_key=f"0x{public.hex()}",
        private_key=f"0x{raw.hex()}",
    )


class ChainClient(ABC):
    """Abstract blockchain collaborator."""

    network: str = "mainnet"

    def generate_key_pair(self) -> KeyPair:
        """Generate a new Ed25519 account key pair."""
        key = Ed25519PrivateKey.generate()
        return key_pair_from_private_key(key.private_bytes_raw().hex())

    def key_pair_from_private_key(self, private_key_hex: str) -> KeyPair:
        """Rebuild the key pair of an existing account."""
        return key_pair_from_private_key(private_key_hex)

    @abstractmethod
    async def get_transactions_since(
        self, address: str, cursor: Optional[int], page_size: int = 25
    ) -> list[ChainTransaction]:
        """Get transactions with sequence number strictly greater than cursor.

        Args:
            address: Account address
            cursor: Last processed sequence number, None to start from the beginning
            page_size: Maximum number of transactions returned

        Raises:
            AccountNotFoundError: The account does not exist on-chain yet
            CollaboratorError: Any other node or network failure
        """
        pass

    @abstractmethod
    async def get_balance(self, address: str, coin_type: str = APT_COIN_TYPE) -> Decimal:
        """Get an account balance in whole tokens."""
        pass


class SimulatedChainClient(ChainClient):
    """In-memory chain for dry-run mode and tests (no network)."""

    def __init__(self):
        self.network = "simulated"
        self._transactions: dict[str, list[ChainTransaction]] = {}
        self._balances: dict[str, Decimal] = {}
        self._failures: dict[str, Exception] = {}
        self.calls: dict[str, int] = {}

    def activate_account(self, address: str) -> None:
        """Create the on-chain account for an address."""
        self._transactions.setdefault(normalize_address(address), [])

    def fail_next(self, address: str, error: Exception) -> None:
        """Make the next history request for an address raise error."""
        self._failures[normalize_address(address)] = error

    def add_transaction(self, address: str, tx: ChainTransaction) -> ChainTransaction:
        """Append a raw transaction to an account's history."""
        self._transactions.setdefault(normalize_address(address), []).append(tx)
        return tx

    def add_simulated_deposit(
        self,
        address: str,
        amount: int,
        sender: Optional[str] = None,
        coin_type: str = APT_COIN_TYPE,
        success: bool = True,
    ) -> ChainTransaction:
        """Add a deposit of amount base units to an address."""
        history = self._transactions.setdefault(normalize_address(address), [])
        tx = ChainTransaction(
            sequence_number=len(history),
            vm_status=SUCCESS_VM_STATUS if success else "Move abort",
            sender=sender or f"0x{secrets.token_hex(32)}",
            hash=f"0x{secrets.token_hex(32)}",
            events=[
                ChainEvent(
                    type=f"{DEPOSIT_EVENT_TYPE}<{coin_type}>",
                    data={"amount": str(amount), "to": address},
                )
            ],
        )
        history.append(tx)
        if success and coin_type == APT_COIN_TYPE:
            key = normalize_address(address)
            self._balances[key] = self._balances.get(key, Decimal("0")) + Decimal(amount) / Decimal(10**8)
        return tx

    async def get_transactions_since(
        self, address: str, cursor: Optional[int], page_size: int = 25
    ) -> list[ChainTransaction]:
        key = normalize_address(address)
        self.calls[key] = self.calls.get(key, 0) + 1

        if key in self._failures:
            raise self._failures.pop(key)
        if key not in self._transactions:
            raise AccountNotFoundError(address)

        start = -1 if cursor is None else cursor
        newer = [tx for tx in self._transactions[key] if tx.sequence_number > start]
        newer.sort(key=lambda tx: tx.sequence_number)
        return newer[:page_size]

    async def get_balance(self, address: str, coin_type: str = APT_COIN_TYPE) -> Decimal:
        return self._balances.get(normalize_address(address), Decimal("0"))
