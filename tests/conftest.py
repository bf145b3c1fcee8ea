import asyncio
from typing import Dict, Optional

import pytest

from core.exchanges.base import ExchangeAdapter
from core.models import Confidence, ExchangeId, Opportunity, RawQuote
from core.normalizer import normalize_quote

CREDENTIAL_ENV_VARS = (
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
    "BYBIT_API_KEY",
    "BYBIT_API_SECRET",
    "LIGHTER_AUTH_TOKEN",
    "DEFAULT_TOP_N",
    "AGGREGATION_URL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Tests never see credentials from the developer's shell."""
    for name in CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_quote():
    def _make(exchange: ExchangeId, ticker: str, rate: Optional[float], interval: Optional[float] = None):
        return normalize_quote(exchange, RawQuote(ticker=ticker, rate=rate, interval_hours=interval))
    return _make


@pytest.fixture
def make_opportunity():
    def _make(ticker: str, apr: float = 10.0, spread: float = 0.01, **overrides):
        fields = dict(
            ticker=ticker,
            long_exchange=ExchangeId.HYPERLIQUID,
            short_exchange=ExchangeId.BINANCE,
            spread_percent=spread,
            estimated_apr_percent=apr,
            confidence=Confidence.LOW,
            long_rate_percent=0.0,
            short_rate_percent=spread,
            long_interval_hours=1,
            short_interval_hours=8,
            min_interval_hours=1,
        )
        fields.update(overrides)
        return Opportunity(**fields)
    return _make


class FakeAdapter(ExchangeAdapter):
    """Adapter serving canned raw quotes, optionally slow or failing."""

    def __init__(
        self,
        exchange: ExchangeId,
        quotes: Dict[str, RawQuote],
        delay: float = 0.0,
        timeout: float = 1.0,
        error: Optional[Exception] = None
    ):
        super().__init__("http://fake.invalid", timeout)
        self.exchange = exchange
        self.quotes = quotes
        self.delay = delay
        self.error = error
        self.closed = False

    async def fetch_payload(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.quotes

    def parse(self, payload):
        return dict(payload)

    async def close(self):
        self.closed = True


def raw(ticker: str, rate: Optional[float], interval: Optional[float] = None) -> RawQuote:
    return RawQuote(ticker=ticker, rate=rate, interval_hours=interval)


@pytest.fixture
def btc_adapters():
    """Binance 0.0100% (8h), Bybit 0.0050% (8h), Hyperliquid 0.0002% (1h) for BTC."""
    return [
        FakeAdapter(ExchangeId.BINANCE, {"BTC": raw("BTC", 0.01, 8), "ETH": raw("ETH", 0.02, 8)}),
        FakeAdapter(ExchangeId.BYBIT, {"BTC": raw("BTC", 0.005, 8)}),
        FakeAdapter(ExchangeId.HYPERLIQUID, {"BTC": raw("BTC", 0.0002, 1), "SOL": raw("SOL", 0.001, 1)}),
    ]


@pytest.fixture
def fake_adapter():
    return FakeAdapter


@pytest.fixture
def raw_quote():
    return raw
