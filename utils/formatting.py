"""
Message formatting utilities for Telegram notifications.
"""
from datetime import datetime, timezone
from typing import Optional, Sequence

from core.models import Confidence, Opportunity

LOADING_TEXT = "Loading data..."

NO_OPPORTUNITIES_TEXT = "=== No Arbitrage Opportunities Found ==="

HELP_TEXT = (
    "=== Funding Rate Arbitrage Bot ===\n\n"
    "Commands:\n"
    "/funding - View top 3 arbitrage opportunities\n"
    "/help - Show help\n\n"
    "Automatic notifications are sent hourly."
)

CONFIDENCE_TAGS = {
    Confidence.HIGH: "[HIGH]",
    Confidence.MEDIUM: "[MED]",
    Confidence.LOW: "[LOW]",
}


def format_apr(apr_percent: float) -> str:
    """Signed APR with two decimals, e.g. +85.85%."""
    sign = "+" if apr_percent >= 0 else ""
    return f"{sign}{apr_percent:.2f}%"


def format_top_opportunities(opportunities: Sequence[Opportunity], now: Optional[datetime] = None) -> str:
    """
    Format the top-N list as a plain-text Telegram message.

    Args:
        opportunities: Already ranked and trimmed to N
        now: Timestamp for the footer (UTC now by default)

    Returns:
        Message text; a fixed banner when the list is empty
    """
    if not opportunities:
        return NO_OPPORTUNITIES_TEXT

    lines = [f"=== Top {len(opportunities)} Arbitrage Opportunities ===", ""]

    for index, opp in enumerate(opportunities, start=1):
        tag = CONFIDENCE_TAGS.get(opp.confidence, "[MED]")
        lines.append(f"#{index} {opp.ticker} {tag}")
        lines.append(f"APR: {format_apr(opp.estimated_apr_percent or 0)} | Spread: {opp.spread_percent:.4f}%")
        lines.append(f"Long: {opp.long_exchange.value.upper()} | Short: {opp.short_exchange.value.upper()}")
        lines.append("")

    now = now or datetime.now(timezone.utc)
    lines.append("---")
    lines.append(f"Updated: {now.strftime('%Y-%m-%d %H:%M:%S')}")
    return "\n".join(lines)
