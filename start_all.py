#!/usr/bin/env python3
"""
Run the aggregation server and the Telegram bot in one process.

Usage:
    python start_all.py

When either service exits or crashes, the other one is cancelled.
Ctrl+C (or SIGTERM) stops both.
"""
import asyncio
import logging
import signal
import sys

import uvicorn

from config import get_settings
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


async def serve_api(settings):
    from server import app

    config = uvicorn.Config(app=app, host=settings.server_host, port=settings.server_port, log_level="info")
    await uvicorn.Server(config).serve()


async def run_bot():
    from main import FundingArbBot

    bot = FundingArbBot()
    await bot.setup()
    await bot.start()


async def run_services():
    settings = get_settings()
    logger.info(f"🚀 Starting aggregation server on port {settings.server_port} and Telegram bot")

    services = {
        asyncio.create_task(serve_api(settings), name="server"),
        asyncio.create_task(run_bot(), name="telegram_bot"),
    }

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, lambda s=signum: _cancel_all(services, s))

    done, pending = await asyncio.wait(services, return_when=asyncio.FIRST_COMPLETED)
    for task in done:
        if not task.cancelled() and task.exception():
            logger.error(f"❌ {task.get_name()} crashed: {task.exception()}", exc_info=task.exception())

    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)
    logger.info("✅ All services stopped")


def _cancel_all(tasks, signum):
    logger.info(f"🛑 Received signal {signum}, stopping services...")
    for task in tasks:
        task.cancel()


def main():
    setup_logging(get_settings().log_level)
    try:
        asyncio.run(run_services())
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
