"""Typed inline-keyboard callback payloads.

Callback data is packed and validated by aiogram's CallbackData factory,
so handlers receive parsed objects instead of splitting strings.
"""

from enum import Enum

from aiogram.filters.callback_data import CallbackData


class WalletAction(str, Enum):
    """Actions offered on a single wallet."""

    SHOW = "show"
    SET_DEFAULT = "default"
    DELETE = "delete"
    CONFIRM_DELETE = "confirm_delete"


class WalletCallback(CallbackData, prefix="w"):
    """Button acting on one of the user's wallets."""

    action: WalletAction
    name: str


class MenuAction(str, Enum):
    """Top-level menu buttons."""

    LIST = "list"
    CREATE = "create"
    BALANCE = "balance"
    CANCEL = "cancel"


class MenuCallback(CallbackData, prefix="m"):
    """Button from the wallet menu or a notification."""

    action: MenuAction
