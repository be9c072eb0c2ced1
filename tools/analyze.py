"""The ``analyze`` pipeline: classify, aggregate, score, compose, parse."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from models import AnalysisResult, Classification, NarrativeSection, SentimentScore
from openrouter_client import UNAVAILABLE_TEXT
from tools._helpers import DEFAULT_TIMEOUT
from tools.aggregate import FULL, AnalysisProfile, Providers, aggregate
from tools.classify import classify, crypto_id, normalize_symbol
from tools.narrative import CRYPTO, DETAILED, EQUITY, SIMPLIFIED, NarrativeVariant, compose
from tools.scoring import interest_level, score_interest, score_sentiment, volatility_tag

if TYPE_CHECKING:
    from fastmcp import FastMCP

logger = logging.getLogger(__name__)


def narrative_variants(classification: Classification, profile: AnalysisProfile) -> tuple[NarrativeVariant, ...]:
    if classification is Classification.CRYPTO:
        return (CRYPTO,)
    if profile.dual_narrative:
        return (SIMPLIFIED, DETAILED)
    return (EQUITY,)


def fallback_result(error: str) -> AnalysisResult:
    """Static payload returned when the pipeline itself breaks."""
    label, color = interest_level(50)
    return AnalysisResult(
        bundle=None,
        interest_score=50,
        interest_level=label,
        interest_color=color,
        sentiment=SentimentScore(score=50, label="Neutral", color="#6b7280"),
        narratives={"fallback": [NarrativeSection(title="ANALYSIS", content=UNAVAILABLE_TEXT)]},
        error=error,
    )


async def analyze(
    ticker: str,
    is_crypto: bool | None,
    providers: Providers,
    *,
    profile: AnalysisProfile = FULL,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> AnalysisResult:
    """Run the full analysis for one ticker.

    Raises:
        ValueError: If ``ticker`` is blank. Any other failure yields
            ``fallback_result`` instead of an exception.
    """
    symbol = normalize_symbol(ticker)
    if not symbol:
        raise ValueError("Missing ticker")

    try:
        classification = classify(symbol, is_crypto)
        bundle = await aggregate(symbol, classification, providers, profile=profile, timeout=timeout)

        sentiment = score_sentiment(bundle.news, bundle.ticker, bundle.display_name)
        interest = score_interest(bundle, sentiment)
        level, color = interest_level(interest)

        narratives = await compose(
            providers.llm,
            narrative_variants(classification, profile),
            bundle,
            interest,
            sentiment,
        )
    except Exception:
        logger.exception("Analysis of %s failed", symbol)
        return fallback_result("Analysis temporarily unavailable")

    return AnalysisResult(
        bundle=bundle,
        interest_score=interest,
        interest_level=level,
        interest_color=color,
        sentiment=sentiment,
        narratives=narratives,
        volatility=volatility_tag(bundle.change_pct),
    )


def register(
    mcp: FastMCP,
    providers: Providers,
    *,
    profile: AnalysisProfile = FULL,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> None:
    @mcp.tool(
        name="analyze",
        annotations={
            "title": "Analyze Ticker",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": False,
            "openWorldHint": True,
        }
    )
    async def analyze_ticker(ticker: str, is_crypto: bool | None = None) -> dict:
        """Educational snapshot of a stock or crypto asset.

        Gathers quotes, company profile, headlines, insider filings and social
        sentiment, derives a mechanical 0-100 interest score and a news
        sentiment score, and adds short templated commentary sections.
        Not investment advice.

        Args:
            ticker: Stock or crypto symbol (e.g. "AAPL", "BTC")
            is_crypto: Force crypto handling for symbols not recognised as crypto
        """
        try:
            result = await analyze(ticker, is_crypto, providers, profile=profile, timeout=timeout)
        except ValueError as e:
            return {"error": str(e)}
        return result.to_dict()

    @mcp.tool(
        annotations={
            "title": "Classify Ticker",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": False,
        }
    )
    async def classify_ticker(ticker: str, is_crypto: bool | None = None) -> dict:
        """Decide whether a symbol is handled as equity or crypto (no network).

        Args:
            ticker: Stock or crypto symbol
            is_crypto: Optional explicit crypto hint
        """
        symbol = normalize_symbol(ticker)
        if not symbol:
            return {"error": "Missing ticker"}
        classification = classify(symbol, is_crypto)
        result = {"symbol": symbol, "classification": classification.value}
        if classification is Classification.CRYPTO:
            result["canonical_id"] = crypto_id(symbol)
        return result
