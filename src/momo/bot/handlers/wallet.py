"""Wallet management and balance handlers."""

import logging
from typing import Optional

from aiogram import F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message

from momo.bot.callbacks import MenuAction, MenuCallback, WalletAction, WalletCallback
from momo.bot.handlers.common import telegram_id_of, wallet_services
from momo.bot.keyboards import (
    BALANCE_BUTTON,
    CREATE_BUTTON,
    WALLETS_BUTTON,
    confirm_delete_keyboard,
    wallet_actions_keyboard,
    wallets_keyboard,
)
from momo.chain.factory import get_chain_client
from momo.chain.tokens import format_amount
from momo.errors import BusinessError, CollaboratorError
from momo.ledger.repository import WalletRecord
from momo.services.wallet_resolver import pick_default

logger = logging.getLogger(__name__)

router = Router()


def _args(command: CommandObject) -> list[str]:
    return command.args.split() if command.args else []


def _wallets_text(wallets: list[WalletRecord]) -> str:
    lines = ["🔑 Your wallets:\n"]
    for wallet in wallets:
        marker = "✅ " if wallet.is_default else ""
        lines.append(f"{marker}<b>{wallet.wallet_name}</b>")
        lines.append(f"Address: <code>{wallet.address}</code>\n")
    lines.append("Tap a wallet to manage it, or use /setdefault &lt;name&gt;.")
    return "\n".join(lines)


def _wallet_text(wallet: WalletRecord) -> str:
    default = " (default)" if wallet.is_default else ""
    return (
        f"💼 <b>{wallet.wallet_name}</b>{default}\n\n"
        f"Address: <code>{wallet.address}</code>"
    )


async def _balance_text(wallet: WalletRecord) -> str:
    try:
        balance = await get_chain_client().get_balance(wallet.address)
    except CollaboratorError as e:
        logger.warning(f"Balance lookup failed for {wallet.short_address}: {e}")
        return "❌ Failed to fetch balance. Please try again later."

    return (
        f"💰 <b>{wallet.wallet_name}</b>\n"
        f"Address: <code>{wallet.short_address}</code>\n\n"
        f"Balance: <code>{format_amount(balance)} APT</code>"
    )


@router.message(Command("wallets", "wallet"))
@router.message(F.text == WALLETS_BUTTON)
async def cmd_wallets(message: Message) -> None:
    """List the user's wallets."""
    if not message.from_user:
        return

    telegram_id = telegram_id_of(message.from_user)
    async with wallet_services(telegram_id, "list") as (repo, _):
        wallets = await repo.list_wallets(telegram_id)

    if not wallets:
        await message.answer("You don't have any wallets yet. Use /create to create one.")
        return

    await message.answer(
        _wallets_text(wallets), parse_mode="HTML", reply_markup=wallets_keyboard(wallets)
    )


@router.message(Command("create"))
async def cmd_create(message: Message, command: CommandObject) -> None:
    """Create a wallet: /create [name]"""
    if not message.from_user:
        return

    args = _args(command)
    name = args[0] if args else None
    await _create_wallet(message, telegram_id_of(message.from_user), name)


@router.message(F.text == CREATE_BUTTON)
async def handle_create_button(message: Message) -> None:
    if not message.from_user:
        return
    await _create_wallet(message, telegram_id_of(message.from_user), None)


async def _create_wallet(message: Message, telegram_id: str, name: Optional[str]) -> None:
    try:
        async with wallet_services(telegram_id, "create") as (_, resolver):
            wallet = await resolver.generate_wallet(telegram_id, name)
    except BusinessError as e:
        await message.answer(f"❌ {e.user_message}")
        return

    default = "\nIt is now your default wallet." if wallet.is_default else ""
    await message.answer(
        f"✅ Wallet created!\n\n"
        f"Name: <b>{wallet.wallet_name}</b>\n"
        f"Address: <code>{wallet.address}</code>{default}",
        parse_mode="HTML",
    )


@router.message(Command("import"))
async def cmd_import(message: Message, command: CommandObject) -> None:
    """Import a wallet: /import <private_key> [name]"""
    if not message.from_user:
        return

    args = _args(command)

    # The message holds a private key; remove it from the chat either way
    try:
        await message.delete()
    except TelegramBadRequest:
        logger.debug("Could not delete /import message")

    if not args:
        await message.answer(
            "Please provide the private key and an optional wallet name.\n"
            "Format: /import <private_key> [wallet_name]"
        )
        return

    private_key = args[0]
    name = args[1] if len(args) > 1 else None
    telegram_id = telegram_id_of(message.from_user)

    try:
        async with wallet_services(telegram_id, "import") as (_, resolver):
            wallet = await resolver.import_wallet(telegram_id, private_key, name)
    except BusinessError as e:
        await message.answer(f"❌ {e.user_message}")
        return

    await message.answer(
        f"✅ Wallet imported successfully!\n\n"
        f"Name: <b>{wallet.wallet_name}</b>\n"
        f"Address: <code>{wallet.address}</code>\n\n"
        f"Use /wallets to see all your wallets.",
        parse_mode="HTML",
    )


@router.message(Command("setdefault"))
async def cmd_set_default(message: Message, command: CommandObject) -> None:
    """Choose the default wallet: /setdefault <name>"""
    if not message.from_user:
        return

    args = _args(command)
    if not args:
        await message.answer("Please provide the wallet name.\nFormat: /setdefault <wallet_name>")
        return

    telegram_id = telegram_id_of(message.from_user)
    try:
        async with wallet_services(telegram_id, "set_default") as (repo, _):
            wallet = await repo.set_default(telegram_id, args[0])
    except BusinessError as e:
        await message.answer(f"❌ {e.user_message} Use /wallets to see your wallets.")
        return

    await message.answer(
        f"✅ Default wallet updated!\n\n"
        f"New default wallet: <b>{wallet.wallet_name}</b>\n"
        f"Address: <code>{wallet.address}</code>",
        parse_mode="HTML",
    )


@router.message(Command("rename"))
async def cmd_rename(message: Message, command: CommandObject) -> None:
    """Rename a wallet: /rename <old_name> <new_name>"""
    if not message.from_user:
        return

    args = _args(command)
    if len(args) < 2:
        await message.answer("Format: /rename <old_name> <new_name>")
        return

    telegram_id = telegram_id_of(message.from_user)
    try:
        async with wallet_services(telegram_id, "rename") as (repo, _):
            wallet = await repo.rename_wallet(telegram_id, args[0], args[1])
    except BusinessError as e:
        await message.answer(f"❌ {e.user_message}")
        return

    await message.answer(f"✅ Wallet renamed to <b>{wallet.wallet_name}</b>.", parse_mode="HTML")


@router.message(Command("delete"))
async def cmd_delete(message: Message, command: CommandObject) -> None:
    """Ask for confirmation before deleting: /delete <name>"""
    if not message.from_user:
        return

    args = _args(command)
    if not args:
        await message.answer("Format: /delete <wallet_name>")
        return

    telegram_id = telegram_id_of(message.from_user)
    try:
        async with wallet_services(telegram_id, "delete") as (repo, _):
            wallet = await repo.get_wallet(telegram_id, args[0])
    except BusinessError as e:
        await message.answer(f"❌ {e.user_message}")
        return

    await message.answer(
        f"Delete wallet <b>{wallet.wallet_name}</b> (<code>{wallet.short_address}</code>)?\n\n"
        f"Make sure you have backed up its private key - funds on it will no "
        f"longer be reachable from this bot.",
        parse_mode="HTML",
        reply_markup=confirm_delete_keyboard(wallet.wallet_name),
    )


@router.message(Command("balance"))
async def cmd_balance(message: Message, command: CommandObject) -> None:
    """Show a wallet balance: /balance [name]"""
    if not message.from_user:
        return

    args = _args(command)
    await _reply_balance(message, telegram_id_of(message.from_user), args[0] if args else None)


@router.message(F.text == BALANCE_BUTTON)
async def handle_balance_button(message: Message) -> None:
    if not message.from_user:
        return
    await _reply_balance(message, telegram_id_of(message.from_user), None)


async def _reply_balance(message: Message, telegram_id: str, name: Optional[str]) -> None:
    try:
        async with wallet_services(telegram_id, "balance") as (repo, resolver):
            if name:
                wallet = await repo.get_wallet(telegram_id, name)
            else:
                wallet = await resolver.resolve_default(telegram_id)
    except BusinessError as e:
        await message.answer(f"❌ {e.user_message}")
        return

    await message.answer(await _balance_text(wallet), parse_mode="HTML")


# Inline keyboard callbacks

@router.callback_query(WalletCallback.filter(F.action == WalletAction.SHOW))
async def handle_show_wallet(callback: CallbackQuery, callback_data: WalletCallback) -> None:
    telegram_id = telegram_id_of(callback.from_user)
    async with wallet_services(telegram_id, "show") as (repo, _):
        wallet = await repo.get_wallet(telegram_id, callback_data.name)

    await callback.message.edit_text(
        _wallet_text(wallet), parse_mode="HTML", reply_markup=wallet_actions_keyboard(wallet)
    )
    await callback.answer()


@router.callback_query(WalletCallback.filter(F.action == WalletAction.SET_DEFAULT))
async def handle_set_default(callback: CallbackQuery, callback_data: WalletCallback) -> None:
    telegram_id = telegram_id_of(callback.from_user)
    async with wallet_services(telegram_id, "set_default") as (repo, _):
        wallet = await repo.set_default(telegram_id, callback_data.name)

    await callback.message.edit_text(
        _wallet_text(wallet), parse_mode="HTML", reply_markup=wallet_actions_keyboard(wallet)
    )
    await callback.answer("Default wallet updated")


@router.callback_query(WalletCallback.filter(F.action == WalletAction.DELETE))
async def handle_delete(callback: CallbackQuery, callback_data: WalletCallback) -> None:
    await callback.message.edit_text(
        f"Delete wallet <b>{callback_data.name}</b>?",
        parse_mode="HTML",
        reply_markup=confirm_delete_keyboard(callback_data.name),
    )
    await callback.answer()


@router.callback_query(WalletCallback.filter(F.action == WalletAction.CONFIRM_DELETE))
async def handle_confirm_delete(callback: CallbackQuery, callback_data: WalletCallback) -> None:
    telegram_id = telegram_id_of(callback.from_user)

    async with wallet_services(telegram_id, "delete") as (repo, _):
        await repo.soft_delete_wallet(telegram_id, callback_data.name)
        remaining = await repo.list_wallets(telegram_id)

    text = f"🗑 Wallet <b>{callback_data.name}</b> deleted."
    if remaining and not any(w.is_default for w in remaining):
        text += (
            f"\n\nIt was your default wallet. <b>{pick_default(remaining).wallet_name}</b> "
            f"will be used until you pick a new one with /setdefault."
        )

    await callback.message.edit_text(text, parse_mode="HTML")
    await callback.answer()


@router.callback_query(MenuCallback.filter(F.action == MenuAction.LIST))
async def handle_list(callback: CallbackQuery) -> None:
    telegram_id = telegram_id_of(callback.from_user)
    async with wallet_services(telegram_id, "list") as (repo, _):
        wallets = await repo.list_wallets(telegram_id)

    if not wallets:
        await callback.message.edit_text("You don't have any wallets yet. Use /create to create one.")
    else:
        await callback.message.edit_text(
            _wallets_text(wallets), parse_mode="HTML", reply_markup=wallets_keyboard(wallets)
        )
    await callback.answer()


@router.callback_query(MenuCallback.filter(F.action == MenuAction.CREATE))
async def handle_create(callback: CallbackQuery) -> None:
    await _create_wallet(callback.message, telegram_id_of(callback.from_user), None)
    await callback.answer()


@router.callback_query(MenuCallback.filter(F.action == MenuAction.BALANCE))
async def handle_balance(callback: CallbackQuery) -> None:
    await _reply_balance(callback.message, telegram_id_of(callback.from_user), None)
    await callback.answer()


@router.callback_query(MenuCallback.filter(F.action == MenuAction.CANCEL))
async def handle_cancel(callback: CallbackQuery) -> None:
    await callback.message.edit_text("Cancelled.")
    await callback.answer()
