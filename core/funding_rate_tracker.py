"""
Funding Rate Tracker

Runs the refresh cycle: fetch every exchange concurrently, normalize,
detect cross-exchange opportunities, rank them by estimated APR and publish
the result as one immutable snapshot.

Each adapter call has its own timeout; a slow or failing exchange yields no
quotes for the cycle and the rest are processed as usual. No retries happen
inside a cycle, the next scheduled refresh is the retry.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Sequence

from config import Settings
from core.detector import build_market_rows, compute_opportunities
from core.exchanges.base import ExchangeAdapter
from core.exchanges.binance import BinanceAdapter
from core.exchanges.bybit import BybitAdapter
from core.exchanges.extended import ExtendedAdapter
from core.exchanges.hyperliquid import HyperliquidAdapter
from core.exchanges.lighter import LighterAdapter
from core.exchanges.variational import VariationalAdapter
from core.models import ExchangeId, MarketSnapshot, RawQuote
from core.normalizer import normalize_all
from core.ranking import rank_by_apr

logger = logging.getLogger(__name__)


def build_adapters(settings: Settings, include_streaming: bool = True) -> List[ExchangeAdapter]:
    """
    Create one adapter per exchange from settings.

    Args:
        settings: Application settings
        include_streaming: Include the WebSocket-based Lighter adapter
    """
    adapters: List[ExchangeAdapter] = [
        VariationalAdapter(settings.variational_url, settings.rest_timeout),
        BinanceAdapter(settings.binance_url, settings.rest_timeout),
        BybitAdapter(settings.bybit_url, settings.rest_timeout, credentials=settings.bybit_credentials()),
        HyperliquidAdapter(settings.hyperliquid_url, settings.rest_timeout),
    ]
    if include_streaming:
        adapters.append(LighterAdapter(
            settings.lighter_url,
            settings.lighter_ws_url,
            timeout=settings.lighter_timeout,
            collect_window=settings.lighter_collect_window,
            auth_token=settings.lighter_auth_token,
        ))
    adapters.append(ExtendedAdapter(settings.extended_url, settings.rest_timeout))
    return adapters


async def _fetch_with_timeout(adapter: ExchangeAdapter) -> Dict[str, RawQuote]:
    try:
        return await asyncio.wait_for(adapter.fetch_quotes(), timeout=adapter.timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{adapter.name} fetch timed out after {adapter.timeout}s")
        return {}


async def fetch_all(adapters: Sequence[ExchangeAdapter]) -> Dict[ExchangeId, Dict[str, RawQuote]]:
    """Fetch every adapter concurrently; waits until all have finished or timed out."""
    results = await asyncio.gather(*(_fetch_with_timeout(adapter) for adapter in adapters))
    return {adapter.exchange: quotes for adapter, quotes in zip(adapters, results)}


async def build_snapshot(adapters: Sequence[ExchangeAdapter]) -> MarketSnapshot:
    """Run one full refresh cycle and return its snapshot."""
    raw = await fetch_all(adapters)
    quotes = normalize_all(raw)
    opportunities = rank_by_apr(compute_opportunities(quotes))

    return MarketSnapshot(
        refreshed_at=datetime.now(timezone.utc),
        quotes=quotes,
        opportunities=opportunities,
        markets=build_market_rows(quotes, opportunities),
    )


class FundingRateTracker:
    """Track funding rates across exchanges and publish ranked opportunities."""

    def __init__(self, adapters: Sequence[ExchangeAdapter], refresh_interval: int = 60):
        self.adapters = list(adapters)
        self.refresh_interval = refresh_interval
        self.running = False
        self._snapshot = MarketSnapshot()
        self._refresh_lock = asyncio.Lock()
        logger.info(f"FundingRateTracker initialized with {len(self.adapters)} exchanges")

    @property
    def snapshot(self) -> MarketSnapshot:
        """The last published snapshot (empty before the first refresh)."""
        return self._snapshot

    async def refresh(self) -> MarketSnapshot:
        """Run one refresh cycle and publish its result."""
        async with self._refresh_lock:
            snapshot = await build_snapshot(self.adapters)
            # Single reference swap: readers see either the old or the new snapshot
            self._snapshot = snapshot

        counts = ", ".join(f"{name}={count}" for name, count in snapshot.exchange_counts.items())
        logger.info(f"Refresh complete: {len(snapshot.opportunities)} opportunities ({counts})")
        return snapshot

    async def start(self):
        """Refresh on a fixed interval until stopped."""
        self.running = True
        logger.info(f"Starting funding rate tracking (every {self.refresh_interval}s)")

        while self.running:
            try:
                await self.refresh()
            except Exception as e:
                logger.error(f"Refresh cycle failed: {e}", exc_info=True)
            await asyncio.sleep(self.refresh_interval)

    async def stop(self):
        """Stop tracking and release HTTP sessions."""
        self.running = False
        for adapter in self.adapters:
            await adapter.close()
        logger.info("Funding rate tracking stopped")
