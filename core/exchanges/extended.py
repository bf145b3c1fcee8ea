"""
Extended (Starknet) perpetuals funding adapter, public markets endpoint.
"""
from typing import Any, Dict

from core.exchanges.base import ExchangeAdapter, parse_float, resolve_interval_hours
from core.models import ExchangeId, RawQuote
from core.normalizer import base_ticker

USER_AGENT = "FundingArbitrage/1.0"  # Extended rejects requests without one


class ExtendedAdapter(ExchangeAdapter):
    exchange = ExchangeId.EXTENDED

    async def fetch_payload(self) -> Any:
        return await self._get_json(self.url, headers={"User-Agent": USER_AGENT})

    def parse(self, payload: Any) -> Dict[str, RawQuote]:
        pairs = {}
        markets = payload.get("data") if isinstance(payload, dict) else None
        for market in markets or []:
            symbol = market.get("name")
            if not symbol or market.get("active") is False:
                continue

            stats = market.get("marketStats") or {}
            rate = parse_float(stats.get("fundingRate"))
            if rate is None:
                continue

            ticker = base_ticker(symbol)
            pairs[ticker] = RawQuote(
                ticker=ticker,
                rate=rate * 100,
                interval_hours=resolve_interval_hours(market, self.default_interval_hours),
            )
        return pairs
