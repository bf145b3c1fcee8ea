"""
Client for the shared aggregation endpoint (GET /arbitrage?top=N).

The Telegram bot and the notifier read their top-N list from the endpoint.
When it is unreachable or reports failure they fall back to a simplified
direct computation: REST exchanges only (no Lighter stream), ranked by raw
spread instead of APR.
"""
import asyncio
import logging
from typing import Any, List, Optional, Sequence

import aiohttp
from pydantic import BaseModel

from config import Settings
from core.detector import compute_opportunities
from core.funding_rate_tracker import build_adapters, fetch_all
from core.models import Confidence, ExchangeId, Opportunity, RankMode
from core.normalizer import HOURS_PER_YEAR, normalize_all
from core.ranking import rank_by_apr, select_top

logger = logging.getLogger(__name__)

SOURCE_AGGREGATION = "aggregation"
SOURCE_FALLBACK = "fallback"


class AggregationError(Exception):
    """The aggregation endpoint failed or returned an unusable response."""


class ArbitrageResult(BaseModel):
    """Top-N list plus where it came from and how it was ranked."""
    opportunities: List[Opportunity]
    source: str
    mode: RankMode


def _parse_item(item: Any) -> Optional[Opportunity]:
    try:
        spread_percent = float(item.get("spread") or 0) * 100
        apr = float(item.get("estimatedApr") or 0)
        long_exchange = ExchangeId(str(item["longExchange"]).lower())
        short_exchange = ExchangeId(str(item["shortExchange"]).lower())
        confidence = Confidence(item.get("confidence") or Confidence.MEDIUM.value)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Skipping malformed aggregation entry {item!r}: {e}")
        return None

    return Opportunity(
        ticker=item.get("symbol") or "-",
        long_exchange=long_exchange,
        short_exchange=short_exchange,
        spread_percent=spread_percent,
        estimated_apr_percent=apr,
        confidence=confidence,
        min_interval_hours=spread_percent * HOURS_PER_YEAR / apr if apr else None,
    )


def parse_aggregation_items(items: Sequence[Any]) -> List[Opportunity]:
    """
    Convert `/arbitrage` top entries back into opportunities.

    The endpoint reports spread as a decimal fraction; it is converted back
    to percent here. Entries naming an unknown exchange are skipped.
    """
    opportunities = []
    for item in items:
        opportunity = _parse_item(item)
        if opportunity is not None:
            opportunities.append(opportunity)
    return opportunities


class ArbitrageClient:
    """Reads top opportunities from the aggregation endpoint, with fallback."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self):
        """Ensure aiohttp session exists."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.aggregation_timeout)
            )

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def fetch_from_endpoint(self, top_n: int) -> List[Opportunity]:
        """
        Fetch the APR-ranked top list from the aggregation endpoint.

        Raises:
            AggregationError: Transport failure, non-200 status or `success` not true
        """
        await self._ensure_session()
        url = self.settings.aggregation_url

        try:
            async with self._session.get(url, params={"top": top_n}) as response:
                if response.status != 200:
                    raise AggregationError(f"Aggregation endpoint returned HTTP {response.status}")
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise AggregationError(f"Aggregation endpoint request failed: {e}") from e

        if not isinstance(data, dict) or data.get("success") is not True or not isinstance(data.get("top"), list):
            raise AggregationError("Aggregation endpoint reported failure")

        return rank_by_apr(parse_aggregation_items(data["top"]))[:top_n]

    async def fetch_fallback(self, top_n: int) -> List[Opportunity]:
        """Compute the top list directly from the REST exchanges, ranked by spread."""
        adapters = build_adapters(self.settings, include_streaming=False)
        try:
            raw = await fetch_all(adapters)
        finally:
            for adapter in adapters:
                await adapter.close()

        opportunities = compute_opportunities(normalize_all(raw))
        return select_top(opportunities, top_n, mode=RankMode.SPREAD)

    async def get_top_opportunities(self, top_n: Optional[int] = None) -> ArbitrageResult:
        """Top-N opportunities from the endpoint, or from the fallback path if it fails."""
        if top_n is None:
            top_n = self.settings.default_top_n

        try:
            opportunities = await self.fetch_from_endpoint(top_n)
            return ArbitrageResult(opportunities=opportunities, source=SOURCE_AGGREGATION, mode=RankMode.APR)
        except AggregationError as e:
            logger.warning(f"⚠️ {e}, using fallback computation")

        opportunities = await self.fetch_fallback(top_n)
        logger.info(f"Fallback computation produced {len(opportunities)} opportunities")
        return ArbitrageResult(opportunities=opportunities, source=SOURCE_FALLBACK, mode=RankMode.SPREAD)
