"""
HTTP routes for Telegram delivery.

POST /notify sends the current top list to the configured chat (used by an
external scheduler). /telegram/webhook receives Telegram updates when the
bot runs in webhook mode instead of polling.
"""
import json
import logging
from typing import Any, Dict, Optional

from aiogram import Bot
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from bot.notifier import Notifier
from config import ConfigurationError, Settings, get_settings
from core.arbitrage_client import ArbitrageClient
from utils.formatting import HELP_TEXT, LOADING_TEXT
from utils.payloads import opportunity_summaries

logger = logging.getLogger(__name__)

# FastAPI router for notify/webhook endpoints
fastapi_router = APIRouter()

# Global references (set by server.py)
client: Optional[ArbitrageClient] = None
notifier: Optional[Notifier] = None


def _credentials_error(e: ConfigurationError) -> JSONResponse:
    logger.error(str(e))
    return JSONResponse(status_code=400, content={"error": str(e)})


def _internal_error(e: Exception) -> JSONResponse:
    logger.error(f"Unhandled error: {e}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "message": str(e)})


def _get_notifier(settings: Settings) -> Notifier:
    """Create the shared notifier on first use (credentials must already be checked)."""
    global client, notifier
    if notifier is None:
        if client is None:
            client = ArbitrageClient(settings)
        notifier = Notifier(Bot(token=settings.telegram_bot_token), client, settings.telegram_chat_id)
    return notifier


@fastapi_router.post("/notify")
async def notify():
    """Send the current top opportunities to the configured chat."""
    settings = get_settings()
    try:
        settings.require_telegram()
    except ConfigurationError as e:
        return _credentials_error(e)

    try:
        sender = _get_notifier(settings)
        result = await sender.client.get_top_opportunities()

        if not result.opportunities:
            logger.info("No arbitrage opportunities found, nothing sent")
            return {"message": "No arbitrage opportunities found", "top": []}

        await sender.send_result(result)
        return {
            "success": True,
            "message": "Telegram notification sent successfully",
            "source": result.source,
            "top": opportunity_summaries(result.opportunities),
        }
    except Exception as e:
        return _internal_error(e)


@fastapi_router.get("/telegram/webhook")
async def telegram_webhook_status():
    """Lets Telegram (or an operator) verify the endpoint."""
    try:
        get_settings().require_telegram()
    except ConfigurationError as e:
        return _credentials_error(e)
    return {"message": "Webhook endpoint is active"}


@fastapi_router.post("/telegram/webhook")
async def telegram_webhook(request: Request):
    """Handle a Telegram update carrying /funding, /start or /help."""
    settings = get_settings()
    try:
        settings.require_telegram()
    except ConfigurationError as e:
        return _credentials_error(e)

    try:
        try:
            update: Dict[str, Any] = json.loads(await request.body())
        except json.JSONDecodeError as e:
            raise ValueError("Invalid request body") from e

        message = update.get("message") if isinstance(update, dict) else None
        if not message:
            # Acknowledge other update types
            return {"ok": True}

        chat_id = message["chat"]["id"]
        text = message.get("text") or ""
        sender = _get_notifier(settings)

        if text.startswith("/funding") or text.startswith("/start"):
            await sender.send_text(chat_id, LOADING_TEXT)
            await sender.send_top_opportunities(chat_id=chat_id)
            return {"ok": True, "message": "Notification sent"}

        if text.startswith("/help"):
            await sender.send_text(chat_id, HELP_TEXT)

        return {"ok": True}
    except Exception as e:
        return _internal_error(e)
