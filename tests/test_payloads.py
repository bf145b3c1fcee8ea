import json
from datetime import datetime, timedelta, timezone

import pytest

from core.detector import build_market_rows, compute_opportunities
from core.models import ExchangeId, MarketSnapshot, RawQuote
from core.normalizer import normalize_all
from core.ranking import rank_by_apr
from utils.payloads import (
    build_arbitrage_response, build_health_response, build_markets_response, format_opportunity
)

REFRESHED_AT = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def snapshot(raw_quote):
    quotes = normalize_all({
        ExchangeId.VARIATIONAL: {
            "BTC": RawQuote(ticker="BTC", rate=10.0, interval_hours=8, name="Bitcoin"),
        },
        ExchangeId.BINANCE: {
            "BTC": raw_quote("BTC", 0.01, 8),
            "ETH": raw_quote("ETH", 0.02, 8),
            "SOL-PERP": raw_quote("SOL-PERP", 0.004, 8),
        },
        ExchangeId.HYPERLIQUID: {
            "BTC": raw_quote("BTC", 0.0002, 1),
            "ETH": raw_quote("ETH", -0.001, 1),
            "SOL-PERP": raw_quote("SOL-PERP", 0.001, 1),
        },
    })
    opportunities = rank_by_apr(compute_opportunities(quotes))
    return MarketSnapshot(
        refreshed_at=REFRESHED_AT,
        quotes=quotes,
        opportunities=opportunities,
        markets=build_market_rows(quotes, opportunities),
    )


def test_arbitrage_response_shape(snapshot):
    body = build_arbitrage_response(snapshot, top=2)

    assert body["success"] is True
    assert body["total"] == 3
    assert [item["symbol"] for item in body["top"]] == ["ETH", "BTC"]


def test_spread_is_a_decimal_fraction(snapshot):
    btc = next(opp for opp in snapshot.opportunities if opp.ticker == "BTC")

    item = format_opportunity(btc, snapshot)

    assert item["spread"] == pytest.approx(btc.spread_percent / 100)
    assert item["estimatedApr"] == btc.estimated_apr_percent
    assert item["longExchange"] == "hyperliquid"
    assert item["shortExchange"] == "binance"
    assert item["quoteAsset"] == "USD"
    assert item["confidence"] == "low"


def test_variational_block(snapshot):
    btc = next(opp for opp in snapshot.opportunities if opp.ticker == "BTC")
    eth = next(opp for opp in snapshot.opportunities if opp.ticker == "ETH")

    block = format_opportunity(btc, snapshot)["variational"]

    assert block["apr"] == 10.0
    assert block["rate"] == pytest.approx(10.0 / 1095 / 100)
    assert block["interval"] == 8
    assert block["name"] == "Bitcoin"
    assert format_opportunity(eth, snapshot)["variational"] is None


def test_base_asset_strips_perp_suffix(snapshot):
    sol = next(opp for opp in snapshot.opportunities if opp.ticker == "SOL-PERP")
    item = format_opportunity(sol, snapshot)
    assert item["symbol"] == "SOL-PERP"
    assert item["baseAsset"] == "SOL"


def test_arbitrage_response_for_empty_snapshot():
    assert build_arbitrage_response(MarketSnapshot(), top=3) == {"success": True, "total": 0, "top": []}


def test_markets_response(snapshot):
    body = build_markets_response(snapshot.markets, snapshot)

    assert body["total"] == 3
    assert body["updatedAt"] == REFRESHED_AT.isoformat()
    btc = next(row for row in body["markets"] if row["ticker"] == "BTC")
    assert btc["name"] == "Bitcoin"
    assert set(btc["exchanges"]) == {"variational", "binance", "hyperliquid"}
    assert btc["exchanges"]["binance"] == {"rate": 0.01, "interval": 8, "apr": pytest.approx(10.95)}


def test_health_response(snapshot):
    body = build_health_response(snapshot, now=REFRESHED_AT + timedelta(seconds=42))

    assert body["status"] == "healthy"
    assert body["snapshotAgeSeconds"] == 42
    assert body["exchanges"]["binance"] == 3
    assert body["exchanges"]["lighter"] == 0


def test_health_response_before_first_refresh():
    body = build_health_response(MarketSnapshot())
    assert body["status"] == "starting"
    assert body["snapshotAgeSeconds"] is None


@pytest.fixture
def nan_snapshot(raw_quote):
    quotes = normalize_all({
        ExchangeId.VARIATIONAL: {
            "BTC": RawQuote(ticker="BTC", rate=float("nan"), interval_hours=8),
        },
        ExchangeId.BINANCE: {
            "BTC": raw_quote("BTC", 0.01, 8),
            "ETH": raw_quote("ETH", float("nan"), 8),
        },
        ExchangeId.BYBIT: {
            "ETH": raw_quote("ETH", 0.02, 8),
        },
        ExchangeId.HYPERLIQUID: {
            "BTC": raw_quote("BTC", 0.0002, 1),
            "ETH": raw_quote("ETH", 0.001, 1),
        },
    })
    opportunities = rank_by_apr(compute_opportunities(quotes))
    return MarketSnapshot(
        refreshed_at=REFRESHED_AT,
        quotes=quotes,
        opportunities=opportunities,
        markets=build_market_rows(quotes, opportunities),
    )


def test_nan_variational_rate_renders_as_null(nan_snapshot):
    body = build_arbitrage_response(nan_snapshot, top=3)

    btc = next(item for item in body["top"] if item["symbol"] == "BTC")
    assert btc["variational"]["rate"] is None
    assert btc["variational"]["apr"] is None
    assert btc["variational"]["interval"] == 8
    json.dumps(body, allow_nan=False)


def test_nan_exchange_rate_renders_as_null(nan_snapshot):
    body = build_markets_response(nan_snapshot.markets, nan_snapshot)

    eth = next(row for row in body["markets"] if row["ticker"] == "ETH")
    assert eth["exchanges"]["binance"] == {"rate": None, "interval": 8, "apr": None}
    assert eth["shortExchange"] == "bybit"
    json.dumps(body, allow_nan=False)
