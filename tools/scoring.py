"""Mechanical interest and news-sentiment scores.

Both scores are pure functions of the signal bundle: no clock, no randomness.
Rounding happens once, at the end.
"""

from __future__ import annotations

from collections.abc import Sequence

from models import Classification, NewsItem, SentimentScore, SignalBundle
from tools._helpers import _clamp, _round_half_up
from tools.classify import company_alias, name_tokens

STRONG_POSITIVE = ("surge", "soar", "jump", "rally", "beat", "exceed", "upgrade", "breakthrough", "record", "best")
MODERATE_POSITIVE = ("growth", "gain", "rise", "up", "profit", "strong", "increase", "positive", "success", "improve")
STRONG_NEGATIVE = ("plunge", "crash", "collapse", "miss", "downgrade", "loss", "worst", "fail", "cut")
MODERATE_NEGATIVE = ("fall", "drop", "decline", "down", "weak", "concern", "risk", "struggle", "pressure")

_WORD_WEIGHTS: tuple[tuple[tuple[str, ...], int], ...] = (
    (STRONG_POSITIVE, 15),
    (STRONG_NEGATIVE, -15),
    (MODERATE_POSITIVE, 5),
    (MODERATE_NEGATIVE, -5),
)

# (exclusive lower bound on change %, adjustment); first match wins
EQUITY_LADDER: tuple[tuple[float, int], ...] = (
    (10, 20), (5, 15), (2, 10), (0, 5),
    (-2, -5), (-5, -10), (-10, -15),
)
EQUITY_FLOOR = -20

# Crypto moves are wider, so the bands are too
CRYPTO_LADDER: tuple[tuple[float, int], ...] = (
    (20, 25), (10, 20), (5, 15), (2, 10), (0, 5),
    (-2, -5), (-5, -10), (-10, -15), (-20, -20),
)
CRYPTO_FLOOR = -25

NEUTRAL_COLOR = "#6b7280"

# (inclusive lower bound, label, colour)
SENTIMENT_LABELS: tuple[tuple[int, str, str], ...] = (
    (70, "Positive", "#10b981"),
    (60, "Slightly Positive", "#3b82f6"),
    (55, "Neutral-Positive", NEUTRAL_COLOR),
    (45, "Neutral", NEUTRAL_COLOR),
    (40, "Neutral-Negative", "#f59e0b"),
    (30, "Slightly Negative", "#f59e0b"),
)

INTEREST_LEVELS: tuple[tuple[int, str, str], ...] = (
    (75, "High Market Interest", "#10b981"),
    (60, "Elevated Interest", "#3b82f6"),
    (40, "Neutral Activity", NEUTRAL_COLOR),
    (25, "Below Average Interest", "#f59e0b"),
)


def ladder_adjustment(change_pct: float | None, classification: Classification) -> int:
    """Score adjustment for a percent move; no quote means no adjustment."""
    if change_pct is None:
        return 0
    if classification is Classification.CRYPTO:
        ladder, floor = CRYPTO_LADDER, CRYPTO_FLOOR
    else:
        ladder, floor = EQUITY_LADDER, EQUITY_FLOOR
    for bound, adjustment in ladder:
        if change_pct > bound:
            return adjustment
    return floor


def news_volume_bonus(count: int) -> int:
    if count >= 3:
        return 15
    if count >= 2:
        return 10
    if count >= 1:
        return 5
    return 0


def sentiment_label(score: float) -> tuple[str, str]:
    for bound, label, color in SENTIMENT_LABELS:
        if score >= bound:
            return label, color
    return "Negative", "#ef4444"


def interest_level(score: int) -> tuple[str, str]:
    for bound, label, color in INTEREST_LEVELS:
        if score >= bound:
            return label, color
    return "Low Market Interest", "#ef4444"


def volatility_tag(change_pct: float | None) -> str | None:
    if change_pct is None:
        return None
    move = abs(change_pct)
    if move > 10:
        return "High Volatility"
    if move > 5:
        return "Moderate Move"
    return "Stable"


def _mentions(text: str, ticker: str, aliases: Sequence[str]) -> bool:
    if ticker and ticker.lower() in text:
        return True
    return any(alias in text for alias in aliases)


def score_sentiment(
    news: Sequence[NewsItem],
    ticker: str,
    company_name: str | None = None,
) -> SentimentScore:
    """Keyword-weighted sentiment of the headlines, 0-100.

    An article counts as relevant when it names the ticker or the company
    (known alias or ``company_name``). Each listed word found in a relevant
    article adds its weight once.
    """
    if not news:
        return SentimentScore(score=50, label="Neutral", color=NEUTRAL_COLOR)

    aliases = name_tokens(company_alias(ticker)) + name_tokens(company_name)
    sentiment = 0
    relevance = 0
    for item in news:
        text = f"{item.title} {item.description or ''}".lower()
        if not _mentions(text, ticker, aliases):
            relevance -= 10
            continue
        relevance += 20
        for words, weight in _WORD_WEIGHTS:
            sentiment += weight * sum(1 for word in words if word in text)

    raw = _clamp(50 + sentiment + relevance / len(news))
    score = _round_half_up(raw)
    label, color = sentiment_label(score)
    return SentimentScore(score=score, label=label, color=color)


def score_interest(bundle: SignalBundle, sentiment: SentimentScore | int | None = None) -> int:
    """Interest score, 0-100: price-move ladder, news volume, and (equities) sentiment.

    For equities the news sentiment is computed from the bundle unless given.
    """
    score: float = 50
    score += ladder_adjustment(bundle.change_pct, bundle.classification)
    score += news_volume_bonus(len(bundle.news))

    if bundle.classification is Classification.EQUITY:
        if sentiment is None:
            company_name = bundle.company.name if bundle.company else None
            sentiment = score_sentiment(bundle.news, bundle.ticker, company_name)
        value = sentiment.score if isinstance(sentiment, SentimentScore) else sentiment
        score += (value - 50) / 5

    return _round_half_up(_clamp(score))
