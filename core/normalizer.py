"""
Funding rate normalization.

Converts each exchange's raw quotes into the canonical representation:
percent per funding interval, the interval in hours, and the matching APR.
The APR is derived exactly once here and never recomputed downstream.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Mapping

from core.models import ExchangeId, NormalizedQuote, RawQuote

logger = logging.getLogger(__name__)

HOURS_PER_YEAR = 365 * 24

# Suffixes stripped from exchange symbols to get the shared ticker
_SYMBOL_SUFFIXES = ("USDT", "-USD", "-PERP")


@dataclass(frozen=True)
class ExchangeProfile:
    """Static description of an exchange's funding feed."""
    id: ExchangeId
    name: str
    default_interval_hours: float
    annual_native: bool = False


EXCHANGES: Dict[ExchangeId, ExchangeProfile] = {
    ExchangeId.VARIATIONAL: ExchangeProfile(ExchangeId.VARIATIONAL, "Variational", 8, annual_native=True),
    ExchangeId.BINANCE: ExchangeProfile(ExchangeId.BINANCE, "Binance", 8),
    ExchangeId.BYBIT: ExchangeProfile(ExchangeId.BYBIT, "Bybit", 8),
    ExchangeId.HYPERLIQUID: ExchangeProfile(ExchangeId.HYPERLIQUID, "Hyperliquid", 1),
    ExchangeId.LIGHTER: ExchangeProfile(ExchangeId.LIGHTER, "Lighter", 1),
    ExchangeId.EXTENDED: ExchangeProfile(ExchangeId.EXTENDED, "Extended", 1),
}


def periods_per_year(interval_hours: float) -> float:
    """Number of funding payments per year at the given cadence."""
    return HOURS_PER_YEAR / interval_hours


def annualize(rate_percent: float, interval_hours: float) -> float:
    """Annualize a per-interval rate (simple, not compounded)."""
    return rate_percent * periods_per_year(interval_hours)


def base_ticker(symbol: str) -> str:
    """
    Map an exchange symbol to the shared ticker.

    Examples:
        BTCUSDT -> BTC, ETH-USD -> ETH, sol -> SOL
    """
    ticker = symbol.strip().upper()
    for suffix in _SYMBOL_SUFFIXES:
        if ticker.endswith(suffix) and len(ticker) > len(suffix):
            return ticker[:-len(suffix)]
    return ticker


def normalize_quote(exchange: ExchangeId, raw: RawQuote) -> NormalizedQuote:
    """
    Normalize one raw quote.

    For annual-native exchanges the raw rate is the APR: it is kept as-is
    and the interval rate is back-derived from it. Otherwise the raw rate is
    the interval rate and the APR is derived from it.
    """
    profile = EXCHANGES[exchange]
    interval = raw.interval_hours if raw.interval_hours and raw.interval_hours > 0 else profile.default_interval_hours

    if raw.rate is None:
        rate_percent, apr_percent = None, None
    elif profile.annual_native:
        apr_percent = raw.rate
        rate_percent = raw.rate / periods_per_year(interval)
    else:
        rate_percent = raw.rate
        apr_percent = annualize(raw.rate, interval)

    return NormalizedQuote(
        exchange=exchange,
        ticker=raw.ticker,
        rate_percent=rate_percent,
        interval_hours=interval,
        apr_percent=apr_percent,
        name=raw.name,
    )


def normalize_exchange(
    exchange: ExchangeId,
    raw_quotes: Mapping[str, RawQuote]
) -> Dict[str, NormalizedQuote]:
    """
    Normalize an adapter's whole output.

    Quotes whose rate is None carry no data and are left out, so the
    exchange is absent for that ticker.
    """
    normalized = {}
    for ticker, raw in raw_quotes.items():
        if raw.rate is None:
            continue
        normalized[ticker] = normalize_quote(exchange, raw)
    logger.debug(f"{EXCHANGES[exchange].name}: normalized {len(normalized)} quotes")
    return normalized


def normalize_all(
    raw_by_exchange: Mapping[ExchangeId, Mapping[str, RawQuote]]
) -> Dict[ExchangeId, Dict[str, NormalizedQuote]]:
    """Normalize every exchange's output, keeping the input exchange order."""
    return {
        exchange: normalize_exchange(exchange, raw_quotes)
        for exchange, raw_quotes in raw_by_exchange.items()
    }
