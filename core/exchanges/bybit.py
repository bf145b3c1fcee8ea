"""
Bybit linear perpetuals funding adapter.

Requests are HMAC-SHA256 signed when API credentials are configured:
sign = HMAC_SHA256(secret, timestamp + api_key + sorted_query_string).
"""
import hashlib
import hmac
import logging
import math
import time
from typing import Any, Dict, Mapping, Optional, Tuple

from core.exchanges.base import ExchangeAdapter, parse_float, resolve_interval_hours
from core.models import ExchangeId, RawQuote
from core.normalizer import base_ticker

logger = logging.getLogger(__name__)

RECV_WINDOW = "5000"


def build_query_string(params: Mapping[str, Any]) -> str:
    """Query string with keys in sorted order, as Bybit signs it."""
    return "&".join(f"{key}={params[key]}" for key in sorted(params))


def sign_request(api_key: str, api_secret: str, timestamp: str, query_string: str) -> str:
    """Hex HMAC-SHA256 signature for a Bybit v5 GET request."""
    payload = f"{timestamp}{api_key}{query_string}"
    return hmac.new(api_secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def signed_headers(api_key: str, api_secret: str, query_string: str, timestamp: Optional[str] = None) -> Dict[str, str]:
    timestamp = timestamp or str(int(time.time() * 1000))
    return {
        "X-BAPI-API-KEY": api_key,
        "X-BAPI-TIMESTAMP": timestamp,
        "X-BAPI-SIGN": sign_request(api_key, api_secret, timestamp, query_string),
        "X-BAPI-RECV-WINDOW": RECV_WINDOW,
    }


class BybitAdapter(ExchangeAdapter):
    exchange = ExchangeId.BYBIT

    def __init__(self, url: str, timeout: float = 8.0, credentials: Optional[Tuple[str, str]] = None):
        super().__init__(url, timeout)
        self.credentials = credentials

    async def fetch_payload(self) -> Any:
        query_string = build_query_string({"category": "linear"})
        headers = signed_headers(*self.credentials, query_string) if self.credentials else {}
        return await self._get_json(f"{self.url}?{query_string}", headers=headers)

    def parse(self, payload: Any) -> Dict[str, RawQuote]:
        pairs = {}
        if not isinstance(payload, dict):
            return pairs

        ret_code = payload.get("retCode")
        if ret_code is not None and ret_code != 0:
            logger.error(f"Bybit API retCode: {ret_code} {payload.get('retMsg')}")
            return pairs

        for item in (payload.get("result") or {}).get("list") or []:
            symbol = item.get("symbol") or ""
            if not symbol.endswith("USDT"):
                continue

            rate = (parse_float(item.get("fundingRate")) or 0.0) * 100
            # Bybit reports zero for stale or missing funding
            if math.isnan(rate) or rate == 0:
                continue

            ticker = base_ticker(symbol)
            pairs[ticker] = RawQuote(
                ticker=ticker,
                rate=rate,
                interval_hours=resolve_interval_hours(item, self.default_interval_hours),
            )
        return pairs
