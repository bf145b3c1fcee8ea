"""
Funding profit calculator for a delta-neutral long/short position.
"""
import math
from typing import Optional

from core.models import Opportunity, ProfitEstimate
from core.normalizer import periods_per_year


def estimate_profit(
    opportunity: Opportunity,
    position_size: float,
    duration_hours: float
) -> Optional[ProfitEstimate]:
    """
    Estimate funding income from holding an opportunity's pair.

    Funding is counted at the faster of the two legs' cadences; only whole
    funding periods inside the holding duration are paid.

    Args:
        opportunity: The long/short pair
        position_size: Notional per leg in USD
        duration_hours: Holding period

    Returns:
        ProfitEstimate, or None when size or duration is not positive or
        the legs carry no funding intervals
    """
    if position_size <= 0 or duration_hours <= 0:
        return None

    intervals = [hours for hours in (opportunity.long_interval_hours, opportunity.short_interval_hours) if hours]
    if not intervals:
        return None
    min_interval = min(intervals)
    spread = opportunity.spread_percent

    funding_count = math.floor(duration_hours / min_interval)
    profit_per_funding = position_size * spread / 100
    total_profit = profit_per_funding * funding_count

    return ProfitEstimate(
        ticker=opportunity.ticker,
        long_exchange=opportunity.long_exchange,
        short_exchange=opportunity.short_exchange,
        spread_percent=spread,
        min_interval_hours=min_interval,
        funding_count=funding_count,
        profit_per_funding=profit_per_funding,
        total_profit=total_profit,
        profit_rate_percent=total_profit / position_size * 100,
        apr_percent=spread * periods_per_year(min_interval),
    )
