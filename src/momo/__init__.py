"""Momo - custodial Aptos wallets on Telegram with transfer notifications."""

__version__ = "0.1.0"
