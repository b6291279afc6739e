"""Utility modules for Momo."""

from momo.utils.locks import LockTimeoutError, get_user_lock, user_wallet_lock

__all__ = ["LockTimeoutError", "get_user_lock", "user_wallet_lock"]
