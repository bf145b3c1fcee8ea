import pytest

from core.detector import (
    build_market_rows, compute_opportunities, confidence_for, detect_opportunity, group_by_ticker
)
from core.models import Confidence, ExchangeId
from core.normalizer import normalize_all


def test_btc_scenario(make_quote):
    quotes = [
        make_quote(ExchangeId.BINANCE, "BTC", 0.01, 8),
        make_quote(ExchangeId.BYBIT, "BTC", 0.005, 8),
        make_quote(ExchangeId.HYPERLIQUID, "BTC", 0.0002, 1),
    ]

    opportunity = detect_opportunity("BTC", quotes)

    assert opportunity.long_exchange == ExchangeId.HYPERLIQUID
    assert opportunity.short_exchange == ExchangeId.BINANCE
    assert opportunity.spread_percent == pytest.approx(0.0098)
    assert opportunity.min_interval_hours == 1
    assert opportunity.estimated_apr_percent == pytest.approx(85.848)
    assert opportunity.confidence == Confidence.LOW
    assert opportunity.long_rate_percent == 0.0002
    assert opportunity.short_rate_percent == 0.01


def test_single_quote_yields_nothing(make_quote):
    assert detect_opportunity("BTC", [make_quote(ExchangeId.BINANCE, "BTC", 0.01, 8)]) is None
    assert detect_opportunity("BTC", []) is None


def test_zero_spread_is_not_an_opportunity(make_quote):
    quotes = [
        make_quote(ExchangeId.BINANCE, "BTC", 0.01, 8),
        make_quote(ExchangeId.BYBIT, "BTC", 0.01, 8),
    ]
    assert detect_opportunity("BTC", quotes) is None


def test_nan_rates_are_ignored(make_quote):
    quotes = [
        make_quote(ExchangeId.BINANCE, "BTC", float("nan"), 8),
        make_quote(ExchangeId.BYBIT, "BTC", 0.01, 8),
        make_quote(ExchangeId.HYPERLIQUID, "BTC", 0.02, 1),
    ]

    opportunity = detect_opportunity("BTC", quotes)

    assert opportunity.long_exchange == ExchangeId.BYBIT
    assert opportunity.short_exchange == ExchangeId.HYPERLIQUID
    assert opportunity.spread_percent == pytest.approx(0.01)


def test_nan_leaves_too_few_quotes(make_quote):
    quotes = [
        make_quote(ExchangeId.BINANCE, "BTC", float("nan"), 8),
        make_quote(ExchangeId.BYBIT, "BTC", 0.01, 8),
    ]
    assert detect_opportunity("BTC", quotes) is None


def test_zero_rate_counts_as_a_quote(make_quote):
    quotes = [
        make_quote(ExchangeId.BINANCE, "BTC", 0.0, 8),
        make_quote(ExchangeId.LIGHTER, "BTC", 0.004, 1),
    ]
    opportunity = detect_opportunity("BTC", quotes)
    assert opportunity.long_exchange == ExchangeId.BINANCE
    assert opportunity.spread_percent == pytest.approx(0.004)


def test_min_interval_spans_all_contributing_quotes(make_quote):
    # The 1h quote is neither the long nor the short side
    quotes = [
        make_quote(ExchangeId.BINANCE, "ETH", 0.01, 8),
        make_quote(ExchangeId.BYBIT, "ETH", 0.02, 8),
        make_quote(ExchangeId.HYPERLIQUID, "ETH", 0.015, 1),
    ]

    opportunity = detect_opportunity("ETH", quotes)

    assert opportunity.min_interval_hours == 1
    assert opportunity.estimated_apr_percent == pytest.approx(0.01 * 8760)
    assert opportunity.long_interval_hours == 8
    assert opportunity.short_interval_hours == 8


def test_ties_resolve_to_an_exchange_at_the_extreme(make_quote):
    quotes = [
        make_quote(ExchangeId.BINANCE, "BTC", 0.01, 8),
        make_quote(ExchangeId.BYBIT, "BTC", 0.01, 8),
        make_quote(ExchangeId.HYPERLIQUID, "BTC", 0.03, 1),
    ]
    opportunity = detect_opportunity("BTC", quotes)
    assert opportunity.long_exchange in (ExchangeId.BINANCE, ExchangeId.BYBIT)
    assert opportunity.short_exchange == ExchangeId.HYPERLIQUID


def test_detection_is_idempotent(make_quote):
    quotes = [
        make_quote(ExchangeId.VARIATIONAL, "SOL", 12.5, 8),
        make_quote(ExchangeId.EXTENDED, "SOL", -0.0021, 1),
        make_quote(ExchangeId.LIGHTER, "SOL", 0.0033, 1),
    ]
    assert detect_opportunity("SOL", quotes) == detect_opportunity("SOL", quotes)


@pytest.mark.parametrize("spread, expected", [
    (0.11, Confidence.HIGH),
    (0.1, Confidence.MEDIUM),
    (0.06, Confidence.MEDIUM),
    (0.05, Confidence.LOW),
    (0.0098, Confidence.LOW),
])
def test_confidence_uses_raw_spread(spread, expected):
    assert confidence_for(spread) == expected


def test_spread_invariants(make_quote):
    quotes = [
        make_quote(ExchangeId.BINANCE, "DOGE", -0.01, 4),
        make_quote(ExchangeId.BYBIT, "DOGE", 0.02, 8),
        make_quote(ExchangeId.EXTENDED, "DOGE", 0.005, 1),
    ]
    opportunity = detect_opportunity("DOGE", quotes)

    rates = [quote.rate_percent for quote in quotes]
    assert opportunity.spread_percent >= 0
    assert opportunity.spread_percent == pytest.approx(max(rates) - min(rates))
    assert opportunity.estimated_apr_percent == pytest.approx(opportunity.spread_percent * 8760 / 1)
    assert opportunity.confidence == Confidence.LOW


def test_group_by_ticker_preserves_exchange_order(make_quote):
    grouped = group_by_ticker({
        ExchangeId.BYBIT: {"BTC": make_quote(ExchangeId.BYBIT, "BTC", 0.01)},
        ExchangeId.BINANCE: {"BTC": make_quote(ExchangeId.BINANCE, "BTC", 0.02), "ETH": make_quote(ExchangeId.BINANCE, "ETH", 0.02)},
    })
    assert list(grouped) == ["BTC", "ETH"]
    assert [quote.exchange for quote in grouped["BTC"]] == [ExchangeId.BYBIT, ExchangeId.BINANCE]


def test_compute_opportunities_tolerates_missing_exchanges(raw_quote):
    quotes = normalize_all({
        ExchangeId.BINANCE: {"BTC": raw_quote("BTC", 0.01, 8), "ETH": raw_quote("ETH", 0.01, 8)},
        ExchangeId.BYBIT: {},
        ExchangeId.HYPERLIQUID: {"BTC": raw_quote("BTC", 0.0002, 1)},
    })

    opportunities = compute_opportunities(quotes)

    assert [opp.ticker for opp in opportunities] == ["BTC"]
    assert compute_opportunities({}) == []


def test_build_market_rows_uses_variational_name(raw_quote):
    quotes = normalize_all({
        ExchangeId.VARIATIONAL: {"BTC": raw_quote("BTC", 10.0, 8).model_copy(update={"name": "Bitcoin"})},
        ExchangeId.BINANCE: {"BTC": raw_quote("BTC", 0.03, 8)},
    })
    opportunities = compute_opportunities(quotes)

    rows = build_market_rows(quotes, opportunities)

    assert len(rows) == 1
    assert rows[0].name == "Bitcoin"
    assert set(rows[0].quotes) == {ExchangeId.VARIATIONAL, ExchangeId.BINANCE}
    assert rows[0].rate_for(ExchangeId.BINANCE) == 0.03
    assert rows[0].rate_for(ExchangeId.LIGHTER) is None
