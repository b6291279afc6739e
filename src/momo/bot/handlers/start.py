"""Start and basic command handlers."""

from aiogram import F, Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from momo.bot.handlers.common import telegram_id_of, wallet_services
from momo.bot.keyboards import HELP_BUTTON, main_menu_keyboard

router = Router()


@router.message(CommandStart())
async def cmd_start(message: Message) -> None:
    """Handle /start command - make sure the user has a wallet and greet them."""
    if not message.from_user:
        return

    telegram_id = telegram_id_of(message.from_user)
    async with wallet_services(telegram_id, "start") as (_, resolver):
        wallet = await resolver.resolve_default(telegram_id)

    first_name = message.from_user.first_name or "there"
    welcome_text = (
        f"Welcome to Momo, {first_name}! 👋\n\n"
        f"I keep your Aptos wallets and tell you when tokens arrive.\n\n"
        f"Your default wallet: <b>{wallet.wallet_name}</b>\n"
        f"Address: <code>{wallet.address}</code>\n\n"
        f"Type /help to see what I can do."
    )

    await message.answer(welcome_text, parse_mode="HTML", reply_markup=main_menu_keyboard())


@router.message(Command("help"))
@router.message(F.text == HELP_BUTTON)
async def cmd_help(message: Message) -> None:
    """Handle /help command."""
    help_text = """Momo Bot Commands

Wallets:
  /wallets    - List your wallets
  /create     - Create a new wallet
                Usage: /create [name]
  /import     - Import a wallet from its private key
                Usage: /import <private_key> [name]
  /setdefault - Choose the wallet used by default
                Usage: /setdefault <name>
  /rename     - Rename a wallet
                Usage: /rename <old_name> <new_name>
  /delete     - Remove a wallet
                Usage: /delete <name>

Balance:
  /balance    - Balance of your default wallet
                Usage: /balance [name]

You get a message whenever one of your wallets receives tokens.

Wallet names may use letters, numbers and underscores (max 20)."""

    await message.answer(help_text)
