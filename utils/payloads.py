"""
JSON shaping for the HTTP surface.

Internally every rate is percent. The `/arbitrage` payload is the one place
where units change: `spread` and the Variational `rate` are decimal
fractions there, while APRs stay in percent.
"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from core.models import MarketRow, MarketSnapshot, NormalizedQuote, Opportunity, ProfitEstimate


def _finite(value: Optional[float]) -> Optional[float]:
    """NaN and infinities become JSON null."""
    if value is None or not math.isfinite(value):
        return None
    return value


def _variational_block(quote: Optional[NormalizedQuote]) -> Optional[Dict[str, Any]]:
    if quote is None or quote.rate_percent is None:
        return None
    return {
        "rate": _finite(quote.rate_percent / 100),
        "apr": _finite(quote.apr_percent),
        "interval": quote.interval_hours,
        "name": quote.name,
    }


def format_opportunity(opportunity: Opportunity, snapshot: MarketSnapshot) -> Dict[str, Any]:
    """One `/arbitrage` top entry."""
    return {
        "symbol": opportunity.ticker,
        "baseAsset": opportunity.ticker.replace("-PERP", ""),
        "quoteAsset": "USD",
        "spread": opportunity.spread_percent / 100,
        "estimatedApr": opportunity.estimated_apr_percent,
        "longExchange": opportunity.long_exchange.value,
        "shortExchange": opportunity.short_exchange.value,
        "confidence": opportunity.confidence.value,
        "variational": _variational_block(snapshot.variational_quote(opportunity.ticker)),
    }


def build_arbitrage_response(snapshot: MarketSnapshot, top: int) -> Dict[str, Any]:
    """
    Body of `GET /arbitrage?top=N`.

    `total` counts every opportunity with a positive APR, `top` holds the
    first N of them in APR order.
    """
    valid = [opp for opp in snapshot.opportunities if opp.estimated_apr_percent and opp.estimated_apr_percent > 0]
    return {
        "success": True,
        "total": len(valid),
        "top": [format_opportunity(opp, snapshot) for opp in valid[:max(top, 0)]],
    }


def _quote_payload(quote: NormalizedQuote) -> Dict[str, Any]:
    return {
        "rate": _finite(quote.rate_percent),
        "interval": quote.interval_hours,
        "apr": _finite(quote.apr_percent),
    }


def format_market_row(row: MarketRow) -> Dict[str, Any]:
    """Dashboard row with per-exchange quotes (percent units)."""
    opportunity = row.opportunity
    return {
        "ticker": row.ticker,
        "name": row.name,
        "exchanges": {exchange.value: _quote_payload(quote) for exchange, quote in row.quotes.items()},
        "longExchange": opportunity.long_exchange.value,
        "shortExchange": opportunity.short_exchange.value,
        "spread": opportunity.spread_percent,
        "estimatedApr": opportunity.estimated_apr_percent,
        "minInterval": opportunity.min_interval_hours,
        "confidence": opportunity.confidence.value,
    }


def build_markets_response(rows: Sequence[MarketRow], snapshot: MarketSnapshot) -> Dict[str, Any]:
    """Body of `GET /markets`."""
    return {
        "success": True,
        "updatedAt": snapshot.refreshed_at.isoformat() if snapshot.refreshed_at else None,
        "total": len(rows),
        "markets": [format_market_row(row) for row in rows],
    }


def build_profit_response(estimate: ProfitEstimate, position_size: float, duration_hours: float) -> Dict[str, Any]:
    """Body of `GET /calculator`."""
    return {
        "success": True,
        "ticker": estimate.ticker,
        "positionSize": position_size,
        "durationHours": duration_hours,
        "longExchange": estimate.long_exchange.value,
        "shortExchange": estimate.short_exchange.value,
        "spread": estimate.spread_percent,
        "minInterval": estimate.min_interval_hours,
        "fundingCount": estimate.funding_count,
        "profitPerFunding": estimate.profit_per_funding,
        "totalProfit": estimate.total_profit,
        "profitRate": estimate.profit_rate_percent,
        "apr": estimate.apr_percent,
    }


def build_health_response(snapshot: MarketSnapshot, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Snapshot age and per-exchange quote counts."""
    now = now or datetime.now(timezone.utc)
    age: Optional[float] = None
    if snapshot.refreshed_at is not None:
        age = (now - snapshot.refreshed_at).total_seconds()

    return {
        "status": "healthy" if snapshot.refreshed_at else "starting",
        "updatedAt": snapshot.refreshed_at.isoformat() if snapshot.refreshed_at else None,
        "snapshotAgeSeconds": age,
        "opportunities": len(snapshot.opportunities),
        "exchanges": snapshot.exchange_counts,
    }


def opportunity_summaries(opportunities: Sequence[Opportunity]) -> List[Dict[str, Any]]:
    """Short form used in notify responses."""
    return [
        {
            "ticker": opp.ticker,
            "spread": opp.spread_percent,
            "estimatedApr": opp.estimated_apr_percent,
            "longExchange": opp.long_exchange.value,
            "shortExchange": opp.short_exchange.value,
        }
        for opp in opportunities
    ]
