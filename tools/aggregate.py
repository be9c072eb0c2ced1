"""Fan-out to the data providers and assembly of the per-request signal bundle.

Each provider call is isolated: a failure, timeout, or malformed payload in
one source leaves that slice of the bundle absent and never fails the request.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from models import (
    AnalystRatings,
    Classification,
    CompanyProfile,
    InsiderActivity,
    InsiderFiling,
    InsiderTransaction,
    NewsArticle,
    NewsItem,
    QuoteSnapshot,
    SignalBundle,
    SocialSentimentSnapshot,
)
from tools._helpers import DEFAULT_TIMEOUT, _hours_since, _round_half_up, _safe_call
from tools.classify import company_alias, crypto_display_name, crypto_id, name_tokens, normalize_symbol

logger = logging.getLogger(__name__)

NEWS_LIMIT = 3
NEWS_WINDOW = timedelta(days=3)
INSIDER_LIMIT = 5

FINANCIAL_DOMAINS = [
    "bloomberg.com", "reuters.com", "cnbc.com", "marketwatch.com", "seekingalpha.com",
    "fool.com", "investopedia.com", "barrons.com", "wsj.com", "ft.com", "yahoo.com",
    "benzinga.com", "thestreet.com",
]
CRYPTO_DOMAINS = [
    "coindesk.com", "cointelegraph.com", "decrypt.co", "theblock.co",
    "coinmarketcap.com", "bitcoin.com",
]

FINANCE_KEYWORDS = (
    "stock", "shares", "trading", "investor", "market", "price", "earnings", "revenue",
    "quarter", "analyst", "upgrade", "downgrade", "wall street", "profit", "loss",
)

SALE_TOKENS = ("sale", "sell", "disposed")
PURCHASE_TOKENS = ("purchase", "buy", "acquired")

# Priority order; first match wins
ROLE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("CEO", ("ceo", "chief executive")),
    ("CFO", ("cfo", "chief financial")),
    ("COO", ("coo", "chief operating")),
    ("Director", ("director",)),
    ("President", ("president",)),
    ("Officer", ("officer",)),
)


@dataclass(frozen=True)
class AnalysisProfile:
    """Which optional enrichments the equity path runs."""

    realtime_quote: bool = True
    insider: bool = True
    social: bool = True
    dual_narrative: bool = True


FULL = AnalysisProfile()
BASIC = AnalysisProfile(realtime_quote=False, insider=False, social=False, dual_narrative=False)

PROFILES = {"full": FULL, "basic": BASIC}


@dataclass
class Providers:
    """Provider adapters; ``None`` marks a provider that is not wired in."""

    alpha_vantage: Any = None
    yahoo: Any = None
    coingecko: Any = None
    news: Any = None
    sec: Any = None
    stocktwits: Any = None
    llm: Any = None

    async def close(self) -> None:
        for provider in (self.alpha_vantage, self.yahoo, self.coingecko, self.news,
                         self.sec, self.stocktwits, self.llm):
            if provider is not None and hasattr(provider, "close"):
                await provider.close()


# --- Pure filters ---


def to_news_items(articles: Sequence[NewsArticle], now: datetime) -> list[NewsItem]:
    return [
        NewsItem(
            title=a.title,
            source=a.source,
            age_hours=_hours_since(a.published_at, now),
            url=a.url,
            description=a.description or "",
        )
        for a in articles
    ]


def is_relevant_article(item: NewsItem, ticker: str, company_name: str | None) -> bool:
    """Title names the company, and the text reads like market news."""
    title = item.title.lower()
    full_text = f"{title} {(item.description or '').lower()}"
    mentions_company = ticker.lower() in title or any(
        token in title for token in name_tokens(company_name)
    )
    return mentions_company and any(keyword in full_text for keyword in FINANCE_KEYWORDS)


def filter_relevant_news(
    items: Sequence[NewsItem],
    ticker: str,
    company_name: str | None,
    limit: int = NEWS_LIMIT,
) -> list[NewsItem]:
    """Keep relevant articles in provider order (newest first), capped at ``limit``."""
    return [item for item in items if is_relevant_article(item, ticker, company_name)][:limit]


def infer_transaction_type(title: str) -> str:
    text = title.lower()
    is_sale = any(token in text for token in SALE_TOKENS)
    is_purchase = any(token in text for token in PURCHASE_TOKENS)
    if is_sale and not is_purchase:
        return "SELL"
    if is_purchase and not is_sale:
        return "BUY"
    return "OTHER"


def infer_role(title: str) -> str:
    text = title.lower()
    for role, keywords in ROLE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return role
    return "Insider"


def classify_filing(filing: InsiderFiling) -> InsiderTransaction:
    return InsiderTransaction(
        role=infer_role(filing.title),
        type=infer_transaction_type(filing.title),
        days_ago=filing.days_ago,
        title=filing.title[:100],
    )


def summarize_insiders(filings: Sequence[InsiderFiling], limit: int = INSIDER_LIMIT) -> InsiderActivity | None:
    """Buy/sell flow over the filings; None when there are no buys or sells."""
    transactions = sorted((classify_filing(f) for f in filings), key=lambda t: t.days_ago)
    buys = sum(1 for t in transactions if t.type == "BUY")
    sells = sum(1 for t in transactions if t.type == "SELL")
    relevant = [t for t in transactions if t.type in ("BUY", "SELL")]
    if not relevant:
        return None

    net_flow = buys - sells
    if net_flow > 0:
        sentiment = "Bullish"
    elif net_flow < 0:
        sentiment = "Bearish"
    else:
        sentiment = "Neutral"
    return InsiderActivity(
        transactions=relevant[:limit],
        total_buys=buys,
        total_sells=sells,
        net_flow=net_flow,
        sentiment=sentiment,
        other_count=len(transactions) - len(relevant),
    )


def summarize_social(labels: Sequence[str | None] | None, source: str = "StockTwits") -> SocialSentimentSnapshot | None:
    """Bullish share of the labeled messages; None when nothing is labeled."""
    if not labels:
        return None
    bullish = sum(1 for label in labels if label == "Bullish")
    bearish = sum(1 for label in labels if label == "Bearish")
    labeled = bullish + bearish
    if labeled == 0:
        return None

    bullish_pct = _round_half_up(bullish / labeled * 100)
    if bullish_pct > 60:
        sentiment = "Bullish"
    elif bullish_pct < 40:
        sentiment = "Bearish"
    else:
        sentiment = "Neutral"
    return SocialSentimentSnapshot(
        source=source,
        bullish_pct=bullish_pct,
        bearish_pct=100 - bullish_pct,
        volume=len(labels),
        sentiment=sentiment,
    )


# --- Provider fan-out ---


async def _none() -> None:
    return None


async def _empty() -> list:
    return []


def _since(now: datetime) -> str:
    return (now - NEWS_WINDOW).strftime("%Y-%m-%dT%H:%M:%SZ")


async def _aggregate_crypto(
    ticker: str,
    providers: Providers,
    now: datetime,
    timeout: float | None,
) -> SignalBundle:
    coin_id = crypto_id(ticker)
    display_name = crypto_display_name(coin_id)
    query = f'"{ticker}" OR "{display_name}"'
    fallback_query = f'("{ticker}" OR "{display_name}") AND (crypto OR price OR market)'

    quote_call = (
        _safe_call(providers.coingecko.fetch_quote, coin_id, timeout=timeout, label="CoinGecko quote")
        if providers.coingecko else _none()
    )
    news_call = (
        _safe_call(
            providers.news.search, query,
            since=_since(now), domains=CRYPTO_DOMAINS, fallback_query=fallback_query, page_size=10,
            default=[], timeout=timeout, label="News search",
        )
        if providers.news else _empty()
    )
    quote, articles = await asyncio.gather(quote_call, news_call)

    return SignalBundle(
        ticker=ticker,
        classification=Classification.CRYPTO,
        canonical_id=coin_id,
        display_name=display_name,
        quote=quote,
        news=to_news_items(articles or [], now)[:NEWS_LIMIT],
    )


async def _realtime_with_ratings(
    ticker: str,
    yahoo: Any,
    timeout: float | None,
) -> tuple[QuoteSnapshot | None, AnalystRatings | None]:
    # Both lookups share one timeout budget
    loop = asyncio.get_running_loop()
    deadline = None if timeout is None else loop.time() + timeout
    quote = await _safe_call(yahoo.fetch_quote, ticker, timeout=timeout, label="Yahoo quote")
    if quote is None:
        return None, None
    remaining = None if deadline is None else max(deadline - loop.time(), 0.0)
    ratings = await _safe_call(yahoo.fetch_recommendations, ticker, timeout=remaining, label="Yahoo recommendations")
    return quote, ratings


async def _aggregate_equity(
    ticker: str,
    providers: Providers,
    profile: AnalysisProfile,
    now: datetime,
    timeout: float | None,
) -> SignalBundle:
    alias = company_alias(ticker)
    query_name = alias or ticker
    av = providers.alpha_vantage

    async def _realtime() -> tuple[QuoteSnapshot | None, AnalystRatings | None]:
        if not (profile.realtime_quote and providers.yahoo):
            return None, None
        return await _realtime_with_ratings(ticker, providers.yahoo, timeout)

    calls = (
        _safe_call(av.fetch_quote, ticker, timeout=timeout, label="Alpha Vantage quote") if av else _none(),
        _safe_call(av.fetch_overview, ticker, timeout=timeout, label="Alpha Vantage overview") if av else _none(),
        _realtime(),
        (
            _safe_call(providers.sec.fetch_insider_filings, ticker, now=now, timeout=timeout, label="EDGAR Form 4")
            if profile.insider and providers.sec else _none()
        ),
        (
            _safe_call(providers.stocktwits.fetch_sentiment_labels, ticker, timeout=timeout, label="StockTwits")
            if profile.social and providers.stocktwits else _none()
        ),
        (
            _safe_call(
                providers.news.search, f'"{ticker}" OR "{query_name}"',
                since=_since(now),
                domains=FINANCIAL_DOMAINS,
                fallback_query=f'"{ticker}" AND (stock OR shares OR earnings OR trading)',
                page_size=15,
                default=[], timeout=timeout, label="News search",
            )
            if providers.news else _empty()
        ),
    )
    av_quote, company, (realtime, ratings), filings, labels, articles = await asyncio.gather(*calls)

    quote = realtime.merged(av_quote) if realtime else av_quote
    company_name = alias or (company.name if isinstance(company, CompanyProfile) else None) or ticker
    news = filter_relevant_news(to_news_items(articles or [], now), ticker, company_name)

    return SignalBundle(
        ticker=ticker,
        classification=Classification.EQUITY,
        display_name=company_name,
        quote=quote,
        company=company,
        analyst_ratings=ratings,
        news=news,
        insider=summarize_insiders(filings) if filings else None,
        social=summarize_social(labels),
    )


async def aggregate(
    ticker: str,
    classification: Classification,
    providers: Providers,
    *,
    profile: AnalysisProfile = FULL,
    now: datetime | None = None,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> SignalBundle:
    """Collect every available signal for ``ticker`` concurrently.

    Returns once every provider has answered, failed, or timed out.
    """
    now = now or datetime.now(timezone.utc)
    ticker = normalize_symbol(ticker)
    if classification is Classification.CRYPTO:
        bundle = await _aggregate_crypto(ticker, providers, now, timeout)
    else:
        bundle = await _aggregate_equity(ticker, providers, profile, now, timeout)

    missing = [
        name for name, value in (
            ("quote", bundle.quote), ("company", bundle.company), ("insider", bundle.insider),
            ("social", bundle.social),
        )
        if value is None
    ]
    logger.info(
        "Aggregated %s (%s): %d news, missing=%s",
        ticker, classification.value, len(bundle.news), ",".join(missing) or "none",
    )
    return bundle
