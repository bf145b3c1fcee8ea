"""
Base class for exchange funding-rate adapters.

An adapter fetches one exchange's market data and returns a mapping of
ticker -> RawQuote with the rate already converted to percent. Adapters never
raise: any failure is logged and yields an empty mapping so the exchange is
simply absent for that refresh cycle.
"""
import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

import aiohttp

from core.models import ExchangeId, RawQuote
from core.normalizer import EXCHANGES

logger = logging.getLogger(__name__)

# Field names probed for a funding interval, in order; seconds are converted
_INTERVAL_HOUR_FIELDS = ("fundingInterval", "interval", "fundingIntervalHours", "intervalHours", "fundingIntervalHour")
_INTERVAL_SECOND_FIELDS = ("fundingIntervalSeconds", "intervalSeconds")


def parse_float(value: Any) -> Optional[float]:
    """Parse an API number (often a string); None when absent or unparsable."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def resolve_interval_hours(item: Mapping[str, Any], default: float) -> float:
    """
    Find the funding interval in an exchange payload item.

    The first field present wins; a zero or unparsable value falls back to
    the default.
    """
    for field in _INTERVAL_HOUR_FIELDS:
        if field in item:
            hours = parse_float(item[field])
            return hours if hours and hours > 0 and math.isfinite(hours) else default
    for field in _INTERVAL_SECOND_FIELDS:
        if field in item:
            seconds = parse_float(item[field])
            return seconds / 3600 if seconds and seconds > 0 and math.isfinite(seconds) else default
    return default


class ExchangeAdapter(ABC):
    """Fetches and parses one exchange's funding rates."""

    exchange: ExchangeId

    def __init__(self, url: str, timeout: float = 8.0):
        self.url = url
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def name(self) -> str:
        return EXCHANGES[self.exchange].name

    @property
    def default_interval_hours(self) -> float:
        return EXCHANGES[self.exchange].default_interval_hours

    async def _ensure_session(self):
        """Ensure aiohttp session exists."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get_json(self, url: str, **kwargs) -> Any:
        await self._ensure_session()
        async with self._session.get(url, **kwargs) as response:
            if response.status != 200:
                text = await response.text()
                raise aiohttp.ClientResponseError(
                    response.request_info, response.history,
                    status=response.status, message=text[:200]
                )
            return await response.json(content_type=None)

    async def _post_json(self, url: str, body: Any, **kwargs) -> Any:
        await self._ensure_session()
        async with self._session.post(url, json=body, **kwargs) as response:
            if response.status != 200:
                text = await response.text()
                raise aiohttp.ClientResponseError(
                    response.request_info, response.history,
                    status=response.status, message=text[:200]
                )
            return await response.json(content_type=None)

    async def fetch_quotes(self) -> Dict[str, RawQuote]:
        """
        Fetch and parse this exchange's quotes.

        Returns:
            ticker -> RawQuote; empty on any failure
        """
        try:
            payload = await self.fetch_payload()
            quotes = self.parse(payload)
            logger.info(f"{self.name}: fetched {len(quotes)} pairs with funding rates")
            return quotes
        except Exception as e:
            logger.error(f"Error fetching {self.name} data: {e}")
            return {}

    @abstractmethod
    async def fetch_payload(self) -> Any:
        """Request the exchange's raw market data."""

    @abstractmethod
    def parse(self, payload: Any) -> Dict[str, RawQuote]:
        """Map the raw payload to ticker -> RawQuote."""
