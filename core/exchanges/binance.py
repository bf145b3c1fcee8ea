"""
Binance USD-M futures funding adapter (public premiumIndex endpoint).
"""
from typing import Any, Dict

from core.exchanges.base import ExchangeAdapter, parse_float, resolve_interval_hours
from core.models import ExchangeId, RawQuote
from core.normalizer import base_ticker


class BinanceAdapter(ExchangeAdapter):
    exchange = ExchangeId.BINANCE

    async def fetch_payload(self) -> Any:
        return await self._get_json(self.url)

    def parse(self, payload: Any) -> Dict[str, RawQuote]:
        pairs = {}
        if not isinstance(payload, list):
            return pairs

        for item in payload:
            symbol = item.get("symbol") or ""
            if not symbol.endswith("USDT"):
                continue

            # lastFundingRate is a decimal fraction per interval
            rate = (parse_float(item.get("lastFundingRate")) or 0.0) * 100
            ticker = base_ticker(symbol)
            pairs[ticker] = RawQuote(
                ticker=ticker,
                rate=rate,
                interval_hours=resolve_interval_hours(item, self.default_interval_hours),
            )
        return pairs
