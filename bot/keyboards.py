"""
Telegram inline keyboards for FundingArb Bot.
"""
from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder

REFRESH_CALLBACK = "funding:refresh"
TOP_CALLBACK_PREFIX = "funding:top:"

TOP_CHOICES = (5, 10)


def top_callback_data(top_n: int) -> str:
    return f"{TOP_CALLBACK_PREFIX}{top_n}"


def get_funding_keyboard() -> InlineKeyboardMarkup:
    """Keyboard under a top-N message: refresh plus larger lists."""
    builder = InlineKeyboardBuilder()

    builder.row(
        InlineKeyboardButton(text="🔄 Refresh", callback_data=REFRESH_CALLBACK)
    )
    builder.row(*[
        InlineKeyboardButton(text=f"📊 Top {top_n}", callback_data=top_callback_data(top_n))
        for top_n in TOP_CHOICES
    ])

    return builder.as_markup()
