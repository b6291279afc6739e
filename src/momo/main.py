"""Main entry point - runs the bot, the transfer monitor and the status API."""

import asyncio
import logging
import signal
from typing import Optional

import uvicorn
from aiogram import Bot, Dispatcher

from momo.api.app import create_app
from momo.bot.bot import create_bot
from momo.chain.factory import get_chain_client
from momo.config import get_settings
from momo.crypto import get_codec
from momo.ledger.database import close_db, init_db
from momo.monitor.transfers import DatabaseWalletSource, TransferMonitor
from momo.notifications.telegram import TelegramNotifier

logger = logging.getLogger(__name__)


class Application:
    """Main application that runs bot polling, monitor and API together."""

    def __init__(self):
        self.settings = get_settings()
        self.bot: Optional[Bot] = None
        self.dp: Optional[Dispatcher] = None
        self.monitor: Optional[TransferMonitor] = None
        self._shutdown_event = asyncio.Event()

    async def start(self):
        """Start all services."""
        log_level = logging.DEBUG if self.settings.debug else logging.INFO
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)

        logger.info("Starting Momo...")
        logger.info(f"Environment: {self.settings.environment}")
        logger.info(f"Aptos network: {self.settings.aptos_network} (dry run: {self.settings.dry_run})")

        # Fail fast: nothing works without the encryption key
        get_codec()

        await init_db()
        logger.info("Database initialized")

        tasks = []

        if self.settings.telegram_bot_token:
            self.bot, self.dp = create_bot()
            tasks.append(asyncio.create_task(self._run_bot()))
            logger.info("Bot task created")

            if self.settings.monitor_enabled:
                self.monitor = self._create_monitor(self.bot)
                tasks.append(asyncio.create_task(self.monitor.run()))
                logger.info("Transfer monitor task created")
        else:
            logger.warning("TELEGRAM_BOT_TOKEN not set - bot and transfer monitor disabled")

        if self.settings.api_enabled:
            tasks.append(asyncio.create_task(self._run_api()))
            logger.info("API task created")

        await self._shutdown_event.wait()

        if self.monitor:
            self.monitor.stop()

        for task in tasks:
            task.cancel()

        await asyncio.gather(*tasks, return_exceptions=True)

        await self._cleanup()

    def _create_monitor(self, bot: Bot) -> TransferMonitor:
        return TransferMonitor(
            chain=get_chain_client(),
            wallets=DatabaseWalletSource(get_codec()),
            notifier=TelegramNotifier(bot),
            interval=self.settings.monitor_interval_seconds,
            page_size=self.settings.monitor_page_size,
            inactive_ttl=self.settings.monitor_inactive_ttl_seconds,
            max_concurrency=self.settings.monitor_max_concurrency,
            wallet_delay=self.settings.monitor_wallet_delay_seconds,
        )

    async def _run_bot(self):
        """Run the Telegram bot."""
        try:
            await self.bot.delete_webhook(drop_pending_updates=True)
            logger.info("Starting bot polling...")
            await self.dp.start_polling(self.bot, handle_signals=False)
        except asyncio.CancelledError:
            logger.info("Bot polling cancelled")
        except Exception as e:
            logger.error(f"Bot error: {e}")
            raise

    async def _run_api(self):
        """Run the FastAPI server."""
        try:
            app = create_app(monitor=self.monitor)
            config = uvicorn.Config(
                app,
                host=self.settings.api_host,
                port=self.settings.api_port,
                log_level="debug" if self.settings.debug else "info",
            )
            server = uvicorn.Server(config)
            logger.info(f"Starting API server on {self.settings.api_host}:{self.settings.api_port}")
            await server.serve()
        except asyncio.CancelledError:
            logger.info("API server cancelled")
        except Exception as e:
            logger.error(f"API error: {e}")
            raise

    async def _cleanup(self):
        """Cleanup resources."""
        logger.info("Cleaning up...")

        if self.bot:
            await self.bot.session.close()

        await close_db()
        logger.info("Cleanup complete")

    def shutdown(self):
        """Signal shutdown."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()


def main():
    """Main entry point."""
    app = Application()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, app.shutdown)

    try:
        loop.run_until_complete(app.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        loop.close()


if __name__ == "__main__":
    main()
