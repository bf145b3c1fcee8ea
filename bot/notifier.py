"""
Notification system for sending arbitrage summaries to Telegram.
Handles message formatting and delivery with rate limiting.
"""
import asyncio
import logging
from typing import Optional, Set, Tuple

from aiogram import Bot
from aiogram.exceptions import TelegramRetryAfter, TelegramForbiddenError
from aiogram.types import InlineKeyboardMarkup

from bot.keyboards import get_funding_keyboard
from core.arbitrage_client import ArbitrageClient, ArbitrageResult
from utils.formatting import format_top_opportunities
from utils.logging_config import log_opportunity

logger = logging.getLogger(__name__)


def parse_chat_destination(chat_config: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    """
    Parse chat destination from config string.

    Args:
        chat_config: Either "chat_id" or "chat_id:thread_id"

    Returns:
        Tuple of (chat_id, message_thread_id)
    """
    if not chat_config:
        return None, None

    try:
        if ':' in chat_config:
            chat_id_str, thread_id_str = chat_config.split(':', 1)
            return int(chat_id_str), int(thread_id_str)
        return int(chat_config), None
    except ValueError:
        logger.error(f"Invalid chat destination format: {chat_config}")
        return None, None


class Notifier:
    """
    Sends top-N arbitrage summaries to Telegram.
    Manages rate limiting and error handling.
    """

    def __init__(self, bot: Bot, client: ArbitrageClient, chat_config: Optional[str] = None):
        """Initialize notifier with bot instance and the default destination."""
        self.bot = bot
        self.client = client
        self.chat_id, self.thread_id = parse_chat_destination(chat_config)
        self._rate_limit_delay = 0.05  # 50ms between messages
        self._blocked_chats: Set[int] = set()

    async def send_top_opportunities(self, chat_id: Optional[int] = None, top_n: Optional[int] = None) -> ArbitrageResult:
        """
        Fetch the current top-N list and send it to a chat.

        Args:
            chat_id: Destination (defaults to the configured chat)
            top_n: List size (defaults to the configured size)

        Returns:
            The list that was sent
        """
        result = await self.client.get_top_opportunities(top_n)
        await self.send_result(result, chat_id)
        return result

    async def send_result(self, result: ArbitrageResult, chat_id: Optional[int] = None):
        """Send an already fetched top list to a chat (the configured one by default)."""
        thread_id = self.thread_id if chat_id is None else None
        chat_id = chat_id if chat_id is not None else self.chat_id

        for opportunity in result.opportunities:
            log_opportunity(opportunity)

        if chat_id is None:
            logger.error("No chat configured for notifications")
            return

        message = format_top_opportunities(result.opportunities)
        await self.send_text(chat_id, message, thread_id, reply_markup=get_funding_keyboard())
        logger.info(f"Sent {len(result.opportunities)} opportunities to chat {chat_id} (source: {result.source})")

    async def send_text(
        self,
        chat_id: int,
        text: str,
        message_thread_id: Optional[int] = None,
        reply_markup: Optional[InlineKeyboardMarkup] = None
    ):
        """
        Send message with rate limiting and error handling.

        Args:
            chat_id: Telegram chat ID (user, group, or supergroup)
            text: Message text to send
            message_thread_id: Optional topic/thread ID for supergroups
            reply_markup: Optional inline keyboard
        """
        if chat_id in self._blocked_chats:
            return

        await asyncio.sleep(self._rate_limit_delay)

        try:
            await self.bot.send_message(
                chat_id=chat_id,
                text=text,
                message_thread_id=message_thread_id,
                reply_markup=reply_markup,
                parse_mode=None,  # Plain text
                disable_web_page_preview=True
            )

        except TelegramRetryAfter as e:
            logger.warning(f"Rate limit hit for chat {chat_id}, waiting {e.retry_after}s")
            await asyncio.sleep(e.retry_after)
            # Retry once
            await self.bot.send_message(
                chat_id=chat_id,
                text=text,
                message_thread_id=message_thread_id,
                reply_markup=reply_markup,
                parse_mode=None,
                disable_web_page_preview=True
            )

        except TelegramForbiddenError:
            # User blocked the bot or bot removed from group
            logger.warning(f"Bot blocked or removed from chat {chat_id}")
            self._blocked_chats.add(chat_id)

        except Exception as e:
            logger.error(f"Error sending message to chat {chat_id}: {e}")
            raise
