"""Services module for Momo."""

from momo.services.wallet_resolver import WalletResolver, pick_default

__all__ = ["WalletResolver", "pick_default"]
