"""
Hyperliquid perpetuals funding adapter.

POST {"type": "metaAndAssetCtxs"} returns [metadata, assetContexts];
universe entries and contexts are matched by array index.
"""
from typing import Any, Dict

from core.exchanges.base import ExchangeAdapter, parse_float
from core.models import ExchangeId, RawQuote
from core.normalizer import base_ticker


class HyperliquidAdapter(ExchangeAdapter):
    exchange = ExchangeId.HYPERLIQUID

    async def fetch_payload(self) -> Any:
        return await self._post_json(self.url, {"type": "metaAndAssetCtxs"})

    def parse(self, payload: Any) -> Dict[str, RawQuote]:
        pairs = {}
        if not isinstance(payload, list) or len(payload) < 2:
            return pairs

        metadata, contexts = payload[0], payload[1]
        universe = metadata.get("universe") if isinstance(metadata, dict) else None
        if not universe or not isinstance(contexts, list):
            return pairs

        for index, asset in enumerate(universe):
            name = asset.get("name")
            context = contexts[index] if index < len(contexts) else None
            if not name or not context or "funding" not in context:
                continue

            # Hourly funding as a decimal fraction
            rate = (parse_float(context.get("funding")) or 0.0) * 100
            ticker = base_ticker(name)
            pairs[ticker] = RawQuote(
                ticker=ticker,
                rate=rate,
                interval_hours=self.default_interval_hours,
            )
        return pairs
