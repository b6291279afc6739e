"""Ledger module for users and custodial wallets."""

from momo.ledger.database import get_db, init_db
from momo.ledger.models import TelegramUser, Wallet
from momo.ledger.repository import WalletRecord, WalletRepository, validate_wallet_name

__all__ = [
    # Models
    "TelegramUser",
    "Wallet",
    # Repository
    "WalletRecord",
    "WalletRepository",
    "validate_wallet_name",
    # Database
    "get_db",
    "init_db",
]
