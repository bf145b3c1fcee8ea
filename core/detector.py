"""
Cross-exchange funding arbitrage detection.

For every ticker quoted by at least two exchanges, the cheapest rate is the
long side and the richest rate is the short side. The spread is annualized
with the fastest funding cadence among the contributing quotes.
"""
import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence

from core.models import (
    Confidence, ExchangeId, MarketRow, NormalizedQuote, Opportunity
)
from core.normalizer import periods_per_year

logger = logging.getLogger(__name__)

# Thresholds apply to the per-interval spread in percent, not to the APR
HIGH_CONFIDENCE_SPREAD = 0.1
MEDIUM_CONFIDENCE_SPREAD = 0.05

FALLBACK_INTERVAL_HOURS = 8


def confidence_for(spread_percent: float) -> Confidence:
    """Classify a raw per-interval spread."""
    if spread_percent > HIGH_CONFIDENCE_SPREAD:
        return Confidence.HIGH
    if spread_percent > MEDIUM_CONFIDENCE_SPREAD:
        return Confidence.MEDIUM
    return Confidence.LOW


def _has_rate(quote: NormalizedQuote) -> bool:
    # NaN cannot be ordered against other rates
    return quote.rate_percent is not None and not math.isnan(quote.rate_percent)


def detect_opportunity(ticker: str, quotes: Sequence[NormalizedQuote]) -> Optional[Opportunity]:
    """
    Find the best long/short pair among one ticker's quotes.

    Args:
        ticker: Shared ticker of the quotes
        quotes: At most one quote per exchange, in exchange iteration order

    Returns:
        The opportunity, or None when fewer than two usable quotes exist or
        the spread is zero. Ties at the extremes go to the first quote in
        input order.
    """
    usable = [quote for quote in quotes if _has_rate(quote)]
    if len(usable) < 2:
        return None

    # min()/max() keep the first element among equals
    long_side = min(usable, key=lambda quote: quote.rate_percent)
    short_side = max(usable, key=lambda quote: quote.rate_percent)

    spread = short_side.rate_percent - long_side.rate_percent
    if spread <= 0:
        return None

    intervals = [quote.interval_hours for quote in usable if quote.interval_hours > 0]
    min_interval = min(intervals) if intervals else FALLBACK_INTERVAL_HOURS

    return Opportunity(
        ticker=ticker,
        long_exchange=long_side.exchange,
        short_exchange=short_side.exchange,
        spread_percent=spread,
        estimated_apr_percent=spread * periods_per_year(min_interval),
        confidence=confidence_for(spread),
        long_rate_percent=long_side.rate_percent,
        short_rate_percent=short_side.rate_percent,
        long_interval_hours=long_side.interval_hours,
        short_interval_hours=short_side.interval_hours,
        min_interval_hours=min_interval,
    )


def group_by_ticker(
    quotes_by_exchange: Mapping[ExchangeId, Mapping[str, NormalizedQuote]]
) -> Dict[str, List[NormalizedQuote]]:
    """
    Regroup per-exchange quotes into per-ticker instruments.

    Tickers appear in first-seen order and each instrument's quotes follow
    the exchange order of the input mapping.
    """
    instruments: Dict[str, List[NormalizedQuote]] = {}
    for quotes in quotes_by_exchange.values():
        for ticker, quote in quotes.items():
            instruments.setdefault(ticker, []).append(quote)
    return instruments


def compute_opportunities(
    quotes_by_exchange: Mapping[ExchangeId, Mapping[str, NormalizedQuote]]
) -> List[Opportunity]:
    """
    Compute one opportunity per instrument that has one.

    Exchanges with no data simply contribute nothing; instruments left with
    fewer than two quotes are skipped.
    """
    opportunities = []
    for ticker, quotes in group_by_ticker(quotes_by_exchange).items():
        opportunity = detect_opportunity(ticker, quotes)
        if opportunity is not None:
            opportunities.append(opportunity)

    logger.debug(f"Detected {len(opportunities)} opportunities")
    return opportunities


def build_market_rows(
    quotes_by_exchange: Mapping[ExchangeId, Mapping[str, NormalizedQuote]],
    opportunities: Sequence[Opportunity]
) -> List[MarketRow]:
    """Attach every exchange's quote to each opportunity for the dashboard table."""
    instruments = group_by_ticker(quotes_by_exchange)
    rows = []
    for opportunity in opportunities:
        quotes = {quote.exchange: quote for quote in instruments.get(opportunity.ticker, [])}
        name = next((quote.name for quote in quotes.values() if quote.name), opportunity.ticker)
        rows.append(MarketRow(
            ticker=opportunity.ticker,
            name=name,
            quotes=quotes,
            opportunity=opportunity,
        ))
    return rows
