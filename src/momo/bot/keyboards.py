"""Telegram keyboard builders."""

from aiogram.types import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
)

from momo.bot.callbacks import MenuAction, MenuCallback, WalletAction, WalletCallback
from momo.ledger.repository import WalletRecord

WALLETS_BUTTON = "💼 Wallets"
BALANCE_BUTTON = "💰 Balance"
CREATE_BUTTON = "➕ New Wallet"
HELP_BUTTON = "❓ Help"


def main_menu_keyboard() -> ReplyKeyboardMarkup:
    """Create main menu keyboard."""
    keyboard = [
        [KeyboardButton(text=WALLETS_BUTTON), KeyboardButton(text=BALANCE_BUTTON)],
        [KeyboardButton(text=CREATE_BUTTON), KeyboardButton(text=HELP_BUTTON)],
    ]
    return ReplyKeyboardMarkup(keyboard=keyboard, resize_keyboard=True)


def wallets_keyboard(wallets: list[WalletRecord]) -> InlineKeyboardMarkup:
    """One button per wallet, default marked with a check."""
    buttons = []

    for wallet in wallets:
        label = f"✅ {wallet.wallet_name}" if wallet.is_default else wallet.wallet_name
        buttons.append([
            InlineKeyboardButton(
                text=label,
                callback_data=WalletCallback(action=WalletAction.SHOW, name=wallet.wallet_name).pack(),
            )
        ])

    buttons.append([
        InlineKeyboardButton(
            text="➕ Create", callback_data=MenuCallback(action=MenuAction.CREATE).pack()
        ),
        InlineKeyboardButton(
            text="💰 Balance", callback_data=MenuCallback(action=MenuAction.BALANCE).pack()
        ),
    ])

    return InlineKeyboardMarkup(inline_keyboard=buttons)


def wallet_actions_keyboard(wallet: WalletRecord) -> InlineKeyboardMarkup:
    """Actions for a single wallet."""
    row = []
    if not wallet.is_default:
        row.append(
            InlineKeyboardButton(
                text="⭐ Set default",
                callback_data=WalletCallback(
                    action=WalletAction.SET_DEFAULT, name=wallet.wallet_name
                ).pack(),
            )
        )
    row.append(
        InlineKeyboardButton(
            text="🗑 Delete",
            callback_data=WalletCallback(action=WalletAction.DELETE, name=wallet.wallet_name).pack(),
        )
    )

    return InlineKeyboardMarkup(
        inline_keyboard=[
            row,
            [InlineKeyboardButton(
                text="⬅️ Back", callback_data=MenuCallback(action=MenuAction.LIST).pack()
            )],
        ]
    )


def confirm_delete_keyboard(wallet_name: str) -> InlineKeyboardMarkup:
    """Create delete confirmation keyboard."""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text="✅ Confirm",
                    callback_data=WalletCallback(
                        action=WalletAction.CONFIRM_DELETE, name=wallet_name
                    ).pack(),
                ),
                InlineKeyboardButton(
                    text="❌ Cancel", callback_data=MenuCallback(action=MenuAction.CANCEL).pack()
                ),
            ]
        ]
    )
