"""
FundingArb Bot - Main Entry Point
Telegram bot for cross-exchange funding rate arbitrage opportunities.
"""
import asyncio
import sys

from aiogram import Bot, Dispatcher

from bot.handlers import callbacks, commands
from bot.notifier import Notifier
from config import ConfigurationError, get_settings
from core.arbitrage_client import ArbitrageClient
from utils.logging_config import setup_logging

loggers = setup_logging(log_level=get_settings().log_level)
logger = loggers['system']


class FundingArbBot:
    """Main bot application orchestrating all components."""

    def __init__(self):
        """Initialize bot components; refuses to start without Telegram credentials."""
        self.settings = get_settings()
        token, self.chat_config = self.settings.require_telegram()

        self.bot = Bot(token=token)
        self.dp = Dispatcher()
        self.client: ArbitrageClient = None
        self.notifier: Notifier = None
        self._notification_task: asyncio.Task = None

    async def setup(self):
        """Setup all components."""
        logger.info("Setting up FundingArb Bot...")

        self.client = ArbitrageClient(self.settings)
        self.notifier = Notifier(self.bot, self.client, self.chat_config)

        # Setup handlers
        commands.notifier = self.notifier
        callbacks.notifier = self.notifier

        self.dp.include_router(commands.router)
        self.dp.include_router(callbacks.router)

        logger.info("Setup complete!")

    async def notification_loop(self):
        """Send the top list to the configured chat on a fixed interval."""
        interval = self.settings.notification_interval_seconds
        logger.info(f"Scheduled notifications every {interval}s")

        while True:
            try:
                await self.notifier.send_top_opportunities()
            except Exception as e:
                logger.error(f"Scheduled notification failed: {e}", exc_info=True)
            await asyncio.sleep(interval)

    async def start(self):
        """Start the bot and all background tasks."""
        logger.info("Starting FundingArb Bot...")

        self._notification_task = asyncio.create_task(self.notification_loop(), name="notifications")

        try:
            await self.dp.start_polling(self.bot, allowed_updates=self.dp.resolve_used_update_types())
        finally:
            await self.shutdown()

    async def shutdown(self):
        """Graceful shutdown."""
        logger.info("Shutting down FundingArb Bot...")

        if self._notification_task and not self._notification_task.done():
            self._notification_task.cancel()
            await asyncio.gather(self._notification_task, return_exceptions=True)

        if self.client:
            await self.client.close()

        await self.bot.session.close()

        logger.info("Shutdown complete")


async def main():
    """Main entry point."""
    try:
        bot = FundingArbBot()
    except ConfigurationError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)

    try:
        await bot.setup()
        await bot.start()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
