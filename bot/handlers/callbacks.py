"""
Callback query handlers for inline keyboard interactions.
"""
import logging

from aiogram import Router, F
from aiogram.types import CallbackQuery

from bot.keyboards import REFRESH_CALLBACK, TOP_CALLBACK_PREFIX, TOP_CHOICES
from bot.notifier import Notifier

logger = logging.getLogger(__name__)

router = Router()

# Global reference (set by main.py)
notifier: Notifier = None


@router.callback_query(F.data == REFRESH_CALLBACK)
async def callback_refresh(callback: CallbackQuery):
    """Send a fresh top list."""
    await callback.answer("🔄 Refreshing...")
    await _send_top(callback, top_n=None)


@router.callback_query(F.data.startswith(TOP_CALLBACK_PREFIX))
async def callback_top(callback: CallbackQuery):
    """Send a larger top list (Top 5 / Top 10)."""
    try:
        top_n = int(callback.data[len(TOP_CALLBACK_PREFIX):])
    except ValueError:
        top_n = 0

    if top_n not in TOP_CHOICES:
        await callback.answer("❌ Unknown option", show_alert=True)
        return

    await callback.answer()
    await _send_top(callback, top_n=top_n)


async def _send_top(callback: CallbackQuery, top_n):
    chat_id = callback.message.chat.id
    try:
        await notifier.send_top_opportunities(chat_id=chat_id, top_n=top_n)
    except Exception as e:
        logger.error(f"Error sending top list to chat {chat_id}: {e}", exc_info=True)
        await callback.message.answer("❌ Failed to load funding data. Please try again later.")
