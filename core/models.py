"""
Pydantic models for FundingArb Bot data structures.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExchangeId(str, Enum):
    """Exchanges that supply funding rates."""
    VARIATIONAL = "variational"
    BINANCE = "binance"
    BYBIT = "bybit"
    HYPERLIQUID = "hyperliquid"
    LIGHTER = "lighter"
    EXTENDED = "extended"


class Confidence(str, Enum):
    """Coarse classification of an opportunity's raw spread."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RankMode(str, Enum):
    """Ranking policy for opportunity lists."""
    APR = "apr"  # website and aggregation endpoint
    SPREAD = "spread"  # bot fallback path


class RawQuote(BaseModel):
    """
    One exchange's funding quote for one ticker, as produced by an adapter.

    `rate` is percent per funding interval, except for exchanges that natively
    report an annual rate (Variational), where it is percent per year.
    None means the exchange has no data for the ticker.
    """
    ticker: str
    rate: Optional[float] = None
    interval_hours: Optional[float] = None
    name: Optional[str] = None


class NormalizedQuote(BaseModel):
    """Funding quote in the canonical unit: percent per interval plus APR."""
    model_config = ConfigDict(frozen=True)

    exchange: ExchangeId
    ticker: str
    rate_percent: Optional[float]
    interval_hours: float
    apr_percent: Optional[float]
    name: Optional[str] = None


class Opportunity(BaseModel):
    """Best long/short exchange pair for one instrument."""
    model_config = ConfigDict(frozen=True)

    ticker: str
    long_exchange: ExchangeId
    short_exchange: ExchangeId
    spread_percent: float
    estimated_apr_percent: float
    confidence: Confidence
    # Leg details are unknown for entries read back from the aggregation endpoint
    long_rate_percent: Optional[float] = None
    short_rate_percent: Optional[float] = None
    long_interval_hours: Optional[float] = None
    short_interval_hours: Optional[float] = None
    min_interval_hours: Optional[float] = None


class MarketRow(BaseModel):
    """Dashboard row: every exchange's quote for an instrument plus its opportunity."""
    model_config = ConfigDict(frozen=True)

    ticker: str
    name: str
    quotes: Dict[ExchangeId, NormalizedQuote]
    opportunity: Opportunity

    def rate_for(self, exchange: ExchangeId) -> Optional[float]:
        quote = self.quotes.get(exchange)
        return quote.rate_percent if quote else None


class ProfitEstimate(BaseModel):
    """Result of the funding profit calculator."""
    ticker: str
    long_exchange: ExchangeId
    short_exchange: ExchangeId
    spread_percent: float
    min_interval_hours: float
    funding_count: int
    profit_per_funding: float
    total_profit: float
    profit_rate_percent: float
    apr_percent: float


class MarketSnapshot(BaseModel):
    """
    Result of one refresh cycle.

    Built whole and published by reference swap; never mutated afterwards.
    """
    model_config = ConfigDict(frozen=True)

    refreshed_at: Optional[datetime] = None
    quotes: Dict[ExchangeId, Dict[str, NormalizedQuote]] = Field(default_factory=dict)
    opportunities: List[Opportunity] = Field(default_factory=list)  # ranked by APR
    markets: List[MarketRow] = Field(default_factory=list)

    @property
    def exchange_counts(self) -> Dict[str, int]:
        return {exchange.value: len(self.quotes.get(exchange, {})) for exchange in ExchangeId}

    def variational_quote(self, ticker: str) -> Optional[NormalizedQuote]:
        return self.quotes.get(ExchangeId.VARIATIONAL, {}).get(ticker)
