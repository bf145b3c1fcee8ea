"""
Variational funding adapter.

Variational reports an annualized funding rate as a decimal fraction
(0.10 = 10% per year) together with the funding interval in seconds.
The adapter hands the annual percent to the normalizer unchanged.
"""
from typing import Any, Dict

from core.exchanges.base import ExchangeAdapter, parse_float
from core.models import ExchangeId, RawQuote
from core.normalizer import base_ticker

DEFAULT_INTERVAL_SECONDS = 28800


class VariationalAdapter(ExchangeAdapter):
    exchange = ExchangeId.VARIATIONAL

    async def fetch_payload(self) -> Any:
        return await self._get_json(self.url)

    def parse(self, payload: Any) -> Dict[str, RawQuote]:
        pairs = {}
        listings = payload.get("listings") if isinstance(payload, dict) else None
        for listing in listings or []:
            symbol = listing.get("ticker")
            if not symbol:
                continue

            interval_seconds = parse_float(listing.get("funding_interval_s")) or DEFAULT_INTERVAL_SECONDS
            annual_rate = parse_float(listing.get("funding_rate")) or 0.0
            ticker = base_ticker(symbol)

            pairs[ticker] = RawQuote(
                ticker=ticker,
                rate=annual_rate * 100,
                interval_hours=interval_seconds / 3600,
                name=listing.get("name") or symbol,
            )
        return pairs
