"""Last-resort error handler for the bot."""

import logging

from aiogram import Router
from aiogram.types import ErrorEvent

from momo.bot.handlers.common import GENERIC_ERROR
from momo.errors import BusinessError

logger = logging.getLogger(__name__)

router = Router()


@router.errors()
async def on_error(event: ErrorEvent) -> bool:
    """Log the failure and send a reply that reveals no internals."""
    exception = event.exception
    update = event.update

    if isinstance(exception, BusinessError):
        text = f"❌ {exception.user_message}"
    else:
        logger.exception(f"Error while handling update {update.update_id}", exc_info=exception)
        text = GENERIC_ERROR

    if update.message:
        await update.message.answer(text)
    elif update.callback_query:
        await update.callback_query.answer(text[:200], show_alert=True)

    return True
