"""Typed records shared by the provider clients and the analysis pipeline.

Every provider field is optional: a missing value means the source failed or
did not report it, which is an expected state and never an error.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field, fields


class Classification(str, enum.Enum):
    EQUITY = "equity"
    CRYPTO = "crypto"


@dataclass(frozen=True)
class QuoteSnapshot:
    price: float | None = None
    change: float | None = None
    change_pct: float | None = None
    high: float | None = None
    low: float | None = None
    volume: float | None = None
    market_cap: float | None = None
    year_high: float | None = None
    year_low: float | None = None
    pe_ratio: float | None = None
    avg_volume: float | None = None
    earnings_date: str | None = None

    @property
    def market_cap_billions(self) -> float | None:
        if self.market_cap is None:
            return None
        return round(self.market_cap / 1e9, 2)

    def merged(self, other: QuoteSnapshot | None) -> QuoteSnapshot:
        """Fill fields missing here from ``other``; present fields win."""
        if other is None:
            return self
        values = {}
        for f in fields(self):
            mine = getattr(self, f.name)
            values[f.name] = mine if mine is not None else getattr(other, f.name)
        return QuoteSnapshot(**values)


@dataclass(frozen=True)
class CompanyProfile:
    name: str | None = None
    description: str | None = None
    sector: str | None = None
    industry: str | None = None


@dataclass(frozen=True)
class AnalystRatings:
    strong_buy: int = 0
    buy: int = 0
    hold: int = 0
    sell: int = 0
    strong_sell: int = 0

    @property
    def total(self) -> int:
        return self.strong_buy + self.buy + self.hold + self.sell + self.strong_sell


@dataclass(frozen=True)
class NewsArticle:
    """Raw article as returned by the news provider."""

    title: str
    source: str | None
    published_at: str | None
    url: str | None
    description: str | None = None


@dataclass(frozen=True)
class NewsItem:
    title: str
    source: str | None
    age_hours: int | None
    url: str | None
    description: str = ""


@dataclass(frozen=True)
class InsiderFiling:
    """Raw Form 4 feed entry."""

    title: str
    days_ago: int


@dataclass(frozen=True)
class InsiderTransaction:
    role: str
    type: str  # BUY, SELL or OTHER
    days_ago: int
    title: str


@dataclass(frozen=True)
class InsiderActivity:
    transactions: list[InsiderTransaction]
    total_buys: int
    total_sells: int
    net_flow: int
    sentiment: str
    other_count: int = 0


@dataclass(frozen=True)
class SocialSentimentSnapshot:
    source: str
    bullish_pct: int
    bearish_pct: int
    volume: int
    sentiment: str


@dataclass(frozen=True)
class SignalBundle:
    ticker: str
    classification: Classification
    canonical_id: str | None = None
    display_name: str | None = None
    quote: QuoteSnapshot | None = None
    company: CompanyProfile | None = None
    analyst_ratings: AnalystRatings | None = None
    news: list[NewsItem] = field(default_factory=list)
    insider: InsiderActivity | None = None
    social: SocialSentimentSnapshot | None = None

    @property
    def change_pct(self) -> float | None:
        return self.quote.change_pct if self.quote else None


@dataclass(frozen=True)
class SentimentScore:
    score: int
    label: str
    color: str


@dataclass(frozen=True)
class NarrativeSection:
    title: str
    content: str


@dataclass(frozen=True)
class AnalysisResult:
    bundle: SignalBundle | None
    interest_score: int
    interest_level: str
    interest_color: str
    sentiment: SentimentScore
    narratives: dict[str, list[NarrativeSection]]
    volatility: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        if self.bundle is not None:
            data["bundle"]["classification"] = self.bundle.classification.value
        return data
