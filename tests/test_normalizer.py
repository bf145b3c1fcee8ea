import math

import pytest

from core.exchanges.variational import VariationalAdapter
from core.models import ExchangeId, RawQuote
from core.normalizer import (
    HOURS_PER_YEAR, annualize, base_ticker, normalize_all, normalize_exchange, normalize_quote, periods_per_year
)


def test_periods_per_year():
    assert HOURS_PER_YEAR == 8760
    assert periods_per_year(8) == 1095
    assert periods_per_year(1) == 8760


def test_interval_rate_passes_through_and_apr_is_derived():
    quote = normalize_quote(ExchangeId.BINANCE, RawQuote(ticker="BTC", rate=0.01, interval_hours=8))

    assert quote.rate_percent == 0.01
    assert quote.interval_hours == 8
    assert quote.apr_percent == pytest.approx(0.01 * 1095)


def test_variational_annual_rate_is_kept_and_interval_rate_back_derived():
    payload = {
        "listings": [
            {"ticker": "BTC", "name": "Bitcoin", "funding_rate": "0.10", "funding_interval_s": 28800},
        ]
    }
    raw = VariationalAdapter("http://example.invalid").parse(payload)["BTC"]
    quote = normalize_quote(ExchangeId.VARIATIONAL, raw)

    assert quote.apr_percent == pytest.approx(10.0)
    assert quote.interval_hours == 8
    assert quote.rate_percent == pytest.approx(10.0 / 1095)
    assert quote.rate_percent == pytest.approx(0.00913, abs=1e-5)
    assert quote.name == "Bitcoin"


def test_variational_apr_is_not_recomputed():
    quote = normalize_quote(ExchangeId.VARIATIONAL, RawQuote(ticker="ETH", rate=7.3, interval_hours=8))
    assert quote.apr_percent == 7.3


@pytest.mark.parametrize("interval", [None, 0, -1])
def test_missing_interval_uses_exchange_default(interval):
    hyperliquid = normalize_quote(ExchangeId.HYPERLIQUID, RawQuote(ticker="BTC", rate=0.001, interval_hours=interval))
    bybit = normalize_quote(ExchangeId.BYBIT, RawQuote(ticker="BTC", rate=0.001, interval_hours=interval))

    assert hyperliquid.interval_hours == 1
    assert bybit.interval_hours == 8


def test_zero_and_nan_rates_are_valid_but_none_is_absent():
    quotes = normalize_exchange(ExchangeId.BINANCE, {
        "BTC": RawQuote(ticker="BTC", rate=0.0, interval_hours=8),
        "ETH": RawQuote(ticker="ETH", rate=float("nan"), interval_hours=8),
        "SOL": RawQuote(ticker="SOL", rate=None, interval_hours=8),
    })

    assert set(quotes) == {"BTC", "ETH"}
    assert quotes["BTC"].rate_percent == 0.0
    assert quotes["BTC"].apr_percent == 0.0
    assert math.isnan(quotes["ETH"].rate_percent)


def test_rate_and_apr_are_consistent_for_non_annual_exchanges():
    for exchange, interval in [(ExchangeId.BINANCE, 8), (ExchangeId.LIGHTER, 1), (ExchangeId.EXTENDED, 4)]:
        quote = normalize_quote(exchange, RawQuote(ticker="X", rate=-0.0123, interval_hours=interval))
        assert quote.apr_percent == pytest.approx(annualize(quote.rate_percent, quote.interval_hours))


def test_normalize_all_keeps_exchange_order():
    result = normalize_all({
        ExchangeId.HYPERLIQUID: {"BTC": RawQuote(ticker="BTC", rate=0.001)},
        ExchangeId.BINANCE: {},
    })
    assert list(result) == [ExchangeId.HYPERLIQUID, ExchangeId.BINANCE]
    assert result[ExchangeId.BINANCE] == {}


@pytest.mark.parametrize("symbol, expected", [
    ("BTCUSDT", "BTC"),
    ("ETH-USD", "ETH"),
    ("BTC-PERP", "BTC"),
    ("sol", "SOL"),
    (" kPEPE ", "KPEPE"),
    ("USDT", "USDT"),
])
def test_base_ticker(symbol, expected):
    assert base_ticker(symbol) == expected
