"""
HTTP server for the funding arbitrage aggregator.

Serves the aggregation endpoint consumed by the bot and notifier, the
dashboard JSON, and the Telegram notify/webhook routes.

Usage:
    python server.py

Or with uvicorn:
    uvicorn server:app --host 0.0.0.0 --port 8080
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

from bot.handlers import webhook
from config import get_settings
from core.arbitrage_client import ArbitrageClient
from core.calculator import estimate_profit
from core.funding_rate_tracker import FundingRateTracker, build_adapters
from core.models import MarketSnapshot
from core.ranking import filter_by_search, sort_markets
from utils.logging_config import setup_logging
from utils.payloads import (
    build_arbitrage_response, build_health_response, build_markets_response, build_profit_response
)

logger = logging.getLogger(__name__)

# Global instances (set in lifespan)
tracker: Optional[FundingRateTracker] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI app."""
    global tracker

    settings = get_settings()
    logger.info("Starting funding arbitrage server...")

    tracker = FundingRateTracker(build_adapters(settings), settings.refresh_interval_seconds)
    tracking_task = asyncio.create_task(tracker.start(), name="funding_tracker")

    webhook.client = ArbitrageClient(settings)

    logger.info("✅ Server ready")

    yield

    logger.info("Shutting down server...")
    tracking_task.cancel()
    await asyncio.gather(tracking_task, return_exceptions=True)
    await tracker.stop()
    await webhook.client.close()
    if webhook.notifier is not None:
        await webhook.notifier.bot.session.close()
    logger.info("Shutdown complete")


app = FastAPI(
    title="FundingArb Server",
    description="Cross-exchange funding rate arbitrage aggregation",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(webhook.fastapi_router)


async def current_snapshot() -> MarketSnapshot:
    """Latest snapshot; the first request refreshes if the loop has not yet."""
    if tracker is None:
        raise RuntimeError("Funding rate tracker is not running")
    snapshot = tracker.snapshot
    if snapshot.refreshed_at is None:
        snapshot = await tracker.refresh()
    return snapshot


def _internal_error(e: Exception) -> JSONResponse:
    logger.error(f"Unhandled error: {e}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "message": str(e)})


@app.get("/arbitrage")
async def arbitrage(top: Optional[int] = Query(None, ge=0)):
    """Top-N opportunities by estimated APR (spread as a decimal fraction)."""
    try:
        snapshot = await current_snapshot()
        top_n = top if top is not None else get_settings().default_top_n
        return build_arbitrage_response(snapshot, top_n)
    except Exception as e:
        return _internal_error(e)


@app.get("/markets")
async def markets(
    sort: Optional[str] = None,
    direction: str = "desc",
    search: Optional[str] = None
):
    """Dashboard rows, optionally filtered by ticker and sorted by a column."""
    try:
        snapshot = await current_snapshot()
    except Exception as e:
        return _internal_error(e)

    rows = filter_by_search(snapshot.markets, search)
    try:
        rows = sort_markets(rows, sort, direction)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return build_markets_response(rows, snapshot)


@app.get("/calculator")
async def calculator(
    ticker: str,
    position_size: float = Query(1000.0),
    duration_hours: float = Query(24.0)
):
    """Funding profit estimate for holding one instrument's long/short pair."""
    if position_size <= 0 or duration_hours <= 0:
        raise HTTPException(status_code=400, detail="position_size and duration_hours must be positive")

    try:
        snapshot = await current_snapshot()
    except Exception as e:
        return _internal_error(e)

    wanted = ticker.strip().upper()
    row = next((row for row in snapshot.markets if row.ticker == wanted), None)
    if row is None:
        raise HTTPException(status_code=404, detail=f"No arbitrage opportunity for {wanted}")

    estimate = estimate_profit(row.opportunity, position_size, duration_hours)
    if estimate is None:
        raise HTTPException(status_code=400, detail=f"Cannot estimate profit for {wanted}")
    return build_profit_response(estimate, position_size, duration_hours)


@app.get("/")
async def root():
    """Health check endpoint."""
    snapshot = tracker.snapshot if tracker else MarketSnapshot()
    return {
        "status": "ok",
        "service": "FundingArb Server",
        "endpoints": {
            "arbitrage": "/arbitrage?top=3",
            "markets": "/markets",
            "calculator": "/calculator",
            "notify": "/notify",
            "webhook": "/telegram/webhook",
            "health": "/health"
        },
        "health": build_health_response(snapshot),
    }


@app.get("/health")
async def health_check():
    """Snapshot age and per-exchange quote counts."""
    return build_health_response(tracker.snapshot if tracker else MarketSnapshot())


if __name__ == "__main__":
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info(f"Starting server on {settings.server_host}:{settings.server_port}")

    uvicorn.run(
        "server:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=False,
        log_level="info"
    )
