"""
Ranking, selection and sorting of opportunities.

All functions are pure: they return new lists and never reorder their input.
Python's sort is stable, so equal keys keep their original relative order.
"""
import math
from typing import List, Optional, Sequence

from core.models import ExchangeId, MarketRow, Opportunity, RankMode

DEFAULT_TOP_N = 3


def _apr_key(opportunity: Opportunity) -> float:
    return opportunity.estimated_apr_percent or 0.0


def _spread_key(opportunity: Opportunity) -> float:
    return opportunity.spread_percent or 0.0


def rank_by_apr(opportunities: Sequence[Opportunity]) -> List[Opportunity]:
    """Sort by estimated APR, highest first (website and aggregation endpoint)."""
    return sorted(opportunities, key=_apr_key, reverse=True)


def rank_by_spread(opportunities: Sequence[Opportunity]) -> List[Opportunity]:
    """Sort by raw per-interval spread, highest first (bot fallback path)."""
    return sorted(opportunities, key=_spread_key, reverse=True)


def rank(opportunities: Sequence[Opportunity], mode: RankMode = RankMode.APR) -> List[Opportunity]:
    if mode == RankMode.SPREAD:
        return rank_by_spread(opportunities)
    return rank_by_apr(opportunities)


def select_top(
    opportunities: Sequence[Opportunity],
    top_n: int = DEFAULT_TOP_N,
    mode: RankMode = RankMode.APR
) -> List[Opportunity]:
    """Rank and keep the first `top_n` entries."""
    return rank(opportunities, mode)[:max(top_n, 0)]


def filter_by_search(rows: Sequence[MarketRow], term: Optional[str]) -> List[MarketRow]:
    """Keep rows whose ticker contains `term` (case-insensitive)."""
    if not term or not term.strip():
        return list(rows)
    needle = term.strip().lower()
    return [row for row in rows if needle in row.ticker.lower()]


def _market_sort_value(row: MarketRow, key: str):
    if key == "ticker":
        return row.ticker.lower()
    if key == "strategy":
        return row.opportunity.estimated_apr_percent
    # Exchange columns sort by rate magnitude, missing rates count as zero
    rate = row.rate_for(ExchangeId(key))
    if rate is None or math.isnan(rate):
        return 0.0
    return abs(rate)


def sort_markets(rows: Sequence[MarketRow], key: Optional[str], direction: str = "desc") -> List[MarketRow]:
    """
    Sort dashboard rows by a column.

    Args:
        rows: Rows to sort (not modified)
        key: "ticker", "strategy" (estimated APR) or an exchange id; None keeps input order
        direction: "asc" or "desc"

    Raises:
        ValueError: Unknown key or direction
    """
    if direction not in ("asc", "desc"):
        raise ValueError(f"Invalid sort direction: {direction}")
    if key is None:
        return list(rows)
    if key not in ("ticker", "strategy") and key not in {exchange.value for exchange in ExchangeId}:
        raise ValueError(f"Invalid sort key: {key}")
    return sorted(rows, key=lambda row: _market_sort_value(row, key), reverse=direction == "desc")
