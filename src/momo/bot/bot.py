"""Bot initialization and runner."""

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage

from momo.bot.handlers import setup_routers
from momo.bot.middlewares import UserRegistrationMiddleware
from momo.config import get_settings
from momo.ledger.database import close_db, init_db

logger = logging.getLogger(__name__)


def create_dispatcher() -> Dispatcher:
    """Dispatcher with routers and middlewares registered."""
    dp = Dispatcher(storage=MemoryStorage())

    registration = UserRegistrationMiddleware()
    dp.message.outer_middleware(registration)
    dp.callback_query.outer_middleware(registration)

    dp.include_router(setup_routers())
    return dp


def create_bot() -> tuple[Bot, Dispatcher]:
    """Create bot and dispatcher instances."""
    settings = get_settings()

    if not settings.telegram_bot_token:
        raise ValueError("TELEGRAM_BOT_TOKEN is not set")

    # No default parse_mode - each handler decides
    bot = Bot(token=settings.telegram_bot_token)

    return bot, create_dispatcher()


async def run_bot() -> None:
    """Run the bot in polling mode, without the transfer monitor."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("aiogram").setLevel(logging.INFO)

    logger.info("Starting Momo bot...")

    await init_db()
    logger.info("Database initialized")

    bot, dp = create_bot()

    try:
        await bot.delete_webhook(drop_pending_updates=True)
        logger.info("Starting polling...")
        await dp.start_polling(bot)
    finally:
        await bot.session.close()
        await close_db()


def main() -> None:
    """Entry point for bot-only mode."""
    asyncio.run(run_bot())


if __name__ == "__main__":
    main()
