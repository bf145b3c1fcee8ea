"""
Command handlers for FundingArb Bot.
Handles /start, /funding and /help.
"""
import logging

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from bot.notifier import Notifier
from utils.formatting import HELP_TEXT, LOADING_TEXT

logger = logging.getLogger(__name__)

router = Router()

# Global reference (set by main.py)
notifier: Notifier = None


@router.message(CommandStart())
@router.message(Command("funding"))
async def cmd_funding(message: Message):
    """Handle /start and /funding: send the current top opportunities."""
    await message.answer(LOADING_TEXT)

    try:
        await notifier.send_top_opportunities(chat_id=message.chat.id)
    except Exception as e:
        logger.error(f"Error handling /funding for chat {message.chat.id}: {e}", exc_info=True)
        await message.answer("❌ Failed to load funding data. Please try again later.")


@router.message(Command("help"))
async def cmd_help(message: Message):
    """Handle /help command."""
    await message.answer(HELP_TEXT)
