"""
Lighter funding adapter.

Lighter only publishes funding rates over its WebSocket stream. The adapter
maps market ids to symbols via the REST orderBooks endpoint, subscribes to
`market_stats/all` and collects rates until a full snapshot arrives or the
collection window closes, returning whatever it has by then.
"""
import asyncio
import json
import logging
import math
from typing import Any, Dict, Mapping, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from core.exchanges.base import ExchangeAdapter, parse_float
from core.models import ExchangeId, RawQuote
from core.normalizer import base_ticker

logger = logging.getLogger(__name__)

SUBSCRIBE_MESSAGE = {"type": "subscribe", "channel": "market_stats/all"}
STATS_MESSAGE_TYPES = ("update/market_stats", "market_stats/all")

# Rates are already percent; anything larger suggests a unit change upstream
SUSPICIOUS_RATE_PERCENT = 10


class LighterAdapter(ExchangeAdapter):
    exchange = ExchangeId.LIGHTER

    def __init__(
        self,
        url: str,
        ws_url: str,
        timeout: float = 20.0,
        collect_window: float = 15.0,
        auth_token: Optional[str] = None,
        ping_interval: int = 20,
        ping_timeout: int = 10
    ):
        super().__init__(url, timeout)
        self.ws_url = ws_url
        self.collect_window = collect_window
        self.auth_token = auth_token
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout

    async def fetch_quotes(self) -> Dict[str, RawQuote]:
        try:
            symbols = await self._fetch_market_symbols()
            quotes = await self._collect(symbols)
            logger.info(f"Lighter: collected {len(quotes)} pairs with funding rates")
            return quotes
        except Exception as e:
            logger.error(f"Error fetching Lighter data: {e}")
            return {}

    async def fetch_payload(self) -> Any:
        headers = {"Authorization": self.auth_token} if self.auth_token else None
        return await self._get_json(self.url, headers=headers)

    def parse(self, payload: Any) -> Dict[int, str]:
        """Map market_id -> symbol from an orderBooks response."""
        symbols = {}
        books = payload.get("order_books") if isinstance(payload, dict) else None
        for book in books or []:
            if book.get("market_id") is not None and book.get("symbol"):
                symbols[int(book["market_id"])] = book["symbol"]
        return symbols

    async def _fetch_market_symbols(self) -> Dict[int, str]:
        # Stats messages usually carry the symbol, so the mapping is optional
        try:
            symbols = self.parse(await self.fetch_payload())
            logger.info(f"Lighter: mapped {len(symbols)} markets (market_id -> symbol)")
            return symbols
        except Exception as e:
            logger.warning(f"Lighter: failed to get order_books for mapping: {e}")
            return {}

    async def _collect(self, symbols: Mapping[int, str]) -> Dict[str, RawQuote]:
        """Collect market stats until a full snapshot or the window deadline."""
        pairs: Dict[str, RawQuote] = {}
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.collect_window

        logger.info(f"Lighter: connecting to WebSocket {self.ws_url}")
        try:
            async with websockets.connect(
                self.ws_url,
                ping_interval=self.ping_interval,
                ping_timeout=self.ping_timeout
            ) as ws:
                await ws.send(json.dumps(SUBSCRIBE_MESSAGE))

                while True:
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        logger.info(f"Lighter: collection window closed, collected {len(pairs)} pairs")
                        break
                    try:
                        message = await asyncio.wait_for(ws.recv(), timeout=remaining)
                    except asyncio.TimeoutError:
                        logger.info(f"Lighter: collection window closed, collected {len(pairs)} pairs")
                        break

                    if self.handle_message(message, symbols, pairs):
                        logger.info(f"Lighter: received all market data ({len(pairs)} pairs)")
                        break

        except ConnectionClosed:
            logger.warning(f"Lighter: WebSocket closed, collected {len(pairs)} pairs")
        except (OSError, WebSocketException) as e:
            logger.warning(f"Lighter: WebSocket connection failed: {e}")

        return pairs

    def handle_message(self, message: Any, symbols: Mapping[int, str], pairs: Dict[str, RawQuote]) -> bool:
        """
        Parse one stream message into `pairs`.

        Returns:
            True when the message was a full all-markets snapshot
        """
        try:
            data = json.loads(message)
        except (TypeError, ValueError):
            logger.warning(f"Lighter: failed to decode message: {str(message)[:200]}")
            return False

        if not isinstance(data, dict):
            return False

        message_type = data.get("type")
        stats = data.get("market_stats")

        if message_type in STATS_MESSAGE_TYPES and isinstance(stats, dict):
            if "market_id" in stats:
                self._add_stats(stats, None, symbols, pairs)
                return False
            for market_index, market_stats in stats.items():
                self._add_stats(market_stats, market_index, symbols, pairs)
            return True

        if message_type is None and isinstance(stats, dict):
            for market_index, market_stats in stats.items():
                self._add_stats(market_stats, market_index, symbols, pairs)
            return bool(pairs)

        if message_type in ("connected", "subscribed"):
            logger.debug(f"Lighter: {message_type}")
        else:
            logger.debug(f"Lighter: ignoring message type {message_type}")
        return False

    def _add_stats(
        self,
        stats: Any,
        market_index: Optional[str],
        symbols: Mapping[int, str],
        pairs: Dict[str, RawQuote]
    ):
        if not isinstance(stats, dict):
            return

        raw_rate = stats.get("current_funding_rate")
        if raw_rate is None:
            raw_rate = stats.get("funding_rate")
        rate = parse_float(raw_rate)
        if rate is None or not math.isfinite(rate):
            return

        market_id = stats.get("market_id", market_index)
        symbol = stats.get("symbol") or self._lookup_symbol(market_id, symbols) or f"MARKET_{market_id}"
        ticker = base_ticker(symbol)

        if abs(rate) > SUSPICIOUS_RATE_PERCENT:
            logger.warning(f"Lighter [{ticker}]: unusually large funding rate {rate}% (raw: {raw_rate})")

        pairs[ticker] = RawQuote(
            ticker=ticker,
            rate=rate,
            interval_hours=self.default_interval_hours,
        )

    @staticmethod
    def _lookup_symbol(market_id: Any, symbols: Mapping[int, str]) -> Optional[str]:
        try:
            return symbols.get(int(market_id))
        except (TypeError, ValueError):
            return None
