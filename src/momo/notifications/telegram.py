"""Telegram notification service.

Sends transfer-received notifications to wallet owners. Uses a singleton
bot instance when none is injected.
"""

import asyncio
import html
import logging
from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from momo.bot.callbacks import MenuAction, MenuCallback
from momo.chain.factory import explorer_txn_url
from momo.chain.tokens import format_amount
from momo.config import get_settings
from momo.monitor.transfers import TransferEvent

logger = logging.getLogger(__name__)

# Singleton bot instance
_bot_instance: Optional[Bot] = None
_bot_lock = asyncio.Lock()


async def get_bot() -> Optional[Bot]:
    """Get or create the bot instance for notifications."""
    global _bot_instance

    if _bot_instance is not None:
        return _bot_instance

    async with _bot_lock:
        # Double-check after acquiring lock
        if _bot_instance is not None:
            return _bot_instance

        settings = get_settings()
        if not settings.telegram_bot_token:
            logger.warning("Telegram bot token not configured - notifications disabled")
            return None

        _bot_instance = Bot(token=settings.telegram_bot_token)
        return _bot_instance


def shorten(value: str, head: int = 6, tail: int = 4) -> str:
    """Shorten an address or hash for display."""
    if len(value) <= head + tail + 3:
        return value
    return f"{value[:head]}...{value[-tail:]}"


def transfer_keyboard(txn_hash: str) -> InlineKeyboardMarkup:
    """Buttons attached to a transfer notification."""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="View Transaction", url=explorer_txn_url(txn_hash)),
                InlineKeyboardButton(
                    text="Check Balance",
                    callback_data=MenuCallback(action=MenuAction.BALANCE).pack(),
                ),
            ]
        ]
    )


def format_transfer_message(
    wallet_name: str, wallet_address: str, event: TransferEvent
) -> str:
    """Human-readable text for a received transfer."""
    return (
        f"💰 <b>Token Received!</b>\n\n"
        f"You've received <b>{format_amount(event.amount)} {html.escape(event.token_name)}</b> "
        f"(<code>{html.escape(event.token_type)}</code>) in your wallet:\n"
        f"<b>{html.escape(wallet_name)}</b> (<code>{shorten(wallet_address)}</code>)\n\n"
        f"From: <code>{shorten(event.sender_address)}</code>"
    )


class TelegramNotifier:
    """Service for sending Telegram notifications to users."""

    def __init__(self, bot: Optional[Bot] = None):
        """Initialize with optional bot instance.

        If no bot provided, will use the singleton instance.
        """
        self._bot = bot

    async def _get_bot(self) -> Optional[Bot]:
        """Get the bot instance."""
        if self._bot:
            return self._bot
        return await get_bot()

    async def send_message(
        self,
        telegram_id: str,
        message: str,
        parse_mode: Optional[str] = "HTML",
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> bool:
        """Send a message to a user.

        Returns:
            True if message was sent successfully
        """
        bot = await self._get_bot()
        if not bot:
            logger.warning("Cannot send notification - bot not initialized")
            return False

        try:
            await bot.send_message(
                chat_id=telegram_id,
                text=message,
                parse_mode=parse_mode,
                reply_markup=reply_markup,
            )
            return True
        except TelegramForbiddenError:
            logger.warning(f"User {telegram_id} has blocked the bot")
            return False
        except TelegramBadRequest as e:
            logger.error(f"Bad request sending to {telegram_id}: {e}")
            return False
        except Exception as e:
            logger.error(f"Failed to send notification to {telegram_id}: {e}")
            return False

    async def notify_transfer_received(
        self,
        telegram_id: str,
        wallet_name: str,
        wallet_address: str,
        event: TransferEvent,
    ) -> bool:
        """Notify a user that one of their wallets received tokens.

        Returns:
            True if notification was sent
        """
        message = format_transfer_message(wallet_name, wallet_address, event)
        sent = await self.send_message(
            telegram_id, message, reply_markup=transfer_keyboard(event.txn_hash)
        )
        if sent:
            logger.info(f"Transfer notification sent to user {telegram_id} ({event.txn_hash})")
        return sent

