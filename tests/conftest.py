"""Shared test fixtures: sample provider payloads and fake providers."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from models import AnalystRatings, CompanyProfile, InsiderFiling, NewsArticle, QuoteSnapshot
from tools.aggregate import Providers

NOW = datetime(2025, 2, 3, 12, 0, tzinfo=timezone.utc)


# --- Sample response data ---

AV_GLOBAL_QUOTE = {
    "Global Quote": {
        "01. symbol": "AAPL",
        "02. open": "187.1500",
        "03. high": "190.5000",
        "04. low": "188.5000",
        "05. price": "189.8400",
        "06. volume": "55000000",
        "07. latest trading day": "2025-01-31",
        "08. previous close": "187.5000",
        "09. change": "2.3400",
        "10. change percent": "1.2480%",
    }
}

AV_OVERVIEW = {
    "Symbol": "AAPL",
    "Name": "Apple Inc",
    "Description": "Apple Inc. designs, manufactures, and markets smartphones, personal computers, tablets, wearables, and accessories worldwide.",
    "Sector": "TECHNOLOGY",
    "Industry": "ELECTRONIC COMPUTERS",
}

AV_RATE_LIMIT = {
    "Information": "Thank you for using Alpha Vantage! Our standard API rate limit is 25 requests per day.",
}

COINGECKO_BITCOIN = {
    "id": "bitcoin",
    "symbol": "btc",
    "name": "Bitcoin",
    "market_data": {
        "current_price": {"usd": 97123.456},
        "price_change_24h": 2345.678,
        "price_change_percentage_24h": 2.4712,
        "high_24h": {"usd": 98000.0},
        "low_24h": {"usd": 94500.25},
        "total_volume": {"usd": 41234567890},
        "market_cap": {"usd": 1923456789012},
    },
}

NEWSAPI_EQUITY = {
    "status": "ok",
    "totalResults": 4,
    "articles": [
        {
            "source": {"id": "reuters", "name": "Reuters"},
            "title": "Apple shares surge after earnings beat estimates",
            "description": "iPhone revenue topped analyst forecasts.",
            "url": "https://www.reuters.com/apple-earnings",
            "publishedAt": "2025-02-03T09:00:00Z",
        },
        {
            "source": {"id": None, "name": "CNBC"},
            "title": "Best restaurants in Cupertino",
            "description": "A food guide.",
            "url": "https://www.cnbc.com/food",
            "publishedAt": "2025-02-03T08:00:00Z",
        },
        {
            "source": {"id": None, "name": "MarketWatch"},
            "title": "AAPL stock slips as China demand concerns linger",
            "description": "Investors weigh weak market data.",
            "url": "https://www.marketwatch.com/aapl",
            "publishedAt": "2025-02-02T12:00:00Z",
        },
        {
            "source": {"id": None, "name": "Benzinga"},
            "title": "Apple analyst upgrade lifts price target",
            "description": None,
            "url": "https://www.benzinga.com/apple",
            "publishedAt": "2025-02-01T12:00:00Z",
        },
    ],
}

NEWSAPI_EMPTY = {"status": "ok", "totalResults": 0, "articles": []}

NEWSAPI_ERROR = {"status": "error", "code": "apiKeyInvalid", "message": "Your API key is invalid."}

SEC_FORM4_FEED = """<?xml version="1.0" encoding="ISO-8859-1" ?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>APPLE INC  (0000320193)</title>
  <entry>
    <title>4 - CEO reports sale of shares</title>
    <updated>2025-01-24T18:30:00-05:00</updated>
  </entry>
  <entry>
    <title>4 - Director 10b5-1 plan adopted</title>
    <updated>2025-01-20T18:30:00-05:00</updated>
  </entry>
  <entry>
    <title>4 - Chief Financial Officer purchase of common stock</title>
    <updated>2025-01-10T16:00:00-05:00</updated>
  </entry>
  <entry>
    <title>4 - Officer sale of shares</title>
    <updated>2024-06-01T16:00:00-05:00</updated>
  </entry>
</feed>
"""

STOCKTWITS_STREAM = {
    "symbol": {"symbol": "AAPL"},
    "messages": [
        {"id": 1, "body": "to the moon", "entities": {"sentiment": {"basic": "Bullish"}}},
        {"id": 2, "body": "selling", "entities": {"sentiment": {"basic": "Bearish"}}},
        {"id": 3, "body": "long", "entities": {"sentiment": {"basic": "Bullish"}}},
        {"id": 4, "body": "hmm", "entities": {"sentiment": None}},
        {"id": 5, "body": "calls", "entities": {"sentiment": {"basic": "Bullish"}}},
    ],
}

OPENROUTER_SIMPLIFIED = {
    "id": "gen-1",
    "choices": [{
        "message": {
            "role": "assistant",
            "content": (
                "1. WHAT THEY DO\nApple makes iPhones, Macs and services.\n\n"
                "2. GOOD SIGNS\n• Earnings beat estimates\n• Analysts raised targets\n\n"
                "3. WARNING SIGNS\n• China demand is soft\n• Regulators are watching"
            ),
        }
    }],
}


# --- Fake providers ---


class FakeAlphaVantage:
    def __init__(self, quote=None, overview=None, error: Exception | None = None):
        self.quote = quote
        self.overview = overview
        self.error = error

    async def fetch_quote(self, symbol):
        if self.error:
            raise self.error
        return self.quote

    async def fetch_overview(self, symbol):
        if self.error:
            raise self.error
        return self.overview


class FakeYahoo:
    def __init__(self, quote=None, ratings=None):
        self.quote = quote
        self.ratings = ratings
        self.recommendation_calls = 0

    async def fetch_quote(self, symbol):
        return self.quote

    async def fetch_recommendations(self, symbol):
        self.recommendation_calls += 1
        return self.ratings


class FakeCoinGecko:
    def __init__(self, quote=None):
        self.quote = quote
        self.requested: list[str] = []

    async def fetch_quote(self, coin_id):
        self.requested.append(coin_id)
        return self.quote


class FakeNews:
    def __init__(self, articles=None, error: Exception | None = None):
        self.articles = articles or []
        self.error = error
        self.calls: list[dict] = []

    async def search(self, query, *, since, domains=None, fallback_query=None, page_size=15):
        self.calls.append({"query": query, "domains": domains, "fallback_query": fallback_query})
        if self.error:
            raise self.error
        return self.articles


class FakeSec:
    def __init__(self, filings=None, error: Exception | None = None):
        self.filings = filings
        self.error = error

    async def fetch_insider_filings(self, ticker, now=None):
        if self.error:
            raise self.error
        return self.filings


class FakeStockTwits:
    def __init__(self, labels=None):
        self.labels = labels

    async def fetch_sentiment_labels(self, ticker):
        return self.labels


class FakeLLM:
    def __init__(self, replies=None, default="Analysis temporarily unavailable."):
        self.replies = replies or {}
        self.default = default
        self.prompts: list[str] = []

    async def complete(self, prompt, max_tokens, temperature=0.25):
        self.prompts.append(prompt)
        for marker, reply in self.replies.items():
            if marker in prompt:
                return reply
        return self.default


class HangingProvider:
    """Never answers; used to exercise adapter timeouts."""

    async def fetch_quote(self, *args, **kwargs):
        await asyncio.sleep(60)


APPLE_ARTICLES = [
    NewsArticle(
        title="Apple shares surge after earnings beat estimates",
        source="Reuters",
        published_at="2025-02-03T09:00:00Z",
        url="https://www.reuters.com/apple-earnings",
        description="iPhone revenue topped analyst forecasts.",
    ),
    NewsArticle(
        title="Best restaurants in Cupertino",
        source="CNBC",
        published_at="2025-02-03T08:00:00Z",
        url="https://www.cnbc.com/food",
        description="A food guide.",
    ),
    NewsArticle(
        title="AAPL stock slips as China demand concerns linger",
        source="MarketWatch",
        published_at="2025-02-02T12:00:00Z",
        url="https://www.marketwatch.com/aapl",
        description="Investors weigh weak market data.",
    ),
    NewsArticle(
        title="Apple analyst upgrade lifts price target",
        source="Benzinga",
        published_at="2025-02-01T12:00:00Z",
        url="https://www.benzinga.com/apple",
    ),
]

APPLE_FILINGS = [
    InsiderFiling(title="4 - CEO reports sale of shares", days_ago=10),
    InsiderFiling(title="4 - Director 10b5-1 plan adopted", days_ago=14),
    InsiderFiling(title="4 - Chief Financial Officer purchase of common stock", days_ago=24),
]


@pytest.fixture
def equity_providers() -> Providers:
    """Every equity provider answering with Apple data."""
    return Providers(
        alpha_vantage=FakeAlphaVantage(
            quote=QuoteSnapshot(price=189.84, change=2.34, change_pct=1.25, high=190.5, low=188.5, volume=55_000_000),
            overview=CompanyProfile(name="Apple Inc", description="Apple designs iPhones.", sector="TECHNOLOGY", industry="ELECTRONIC COMPUTERS"),
        ),
        yahoo=FakeYahoo(
            quote=QuoteSnapshot(price=190.10, market_cap=2.95e12, pe_ratio=29.57, year_high=199.62, year_low=164.08, earnings_date="Apr 24, 2025"),
            ratings=AnalystRatings(strong_buy=10, buy=20, hold=8, sell=1, strong_sell=0),
        ),
        news=FakeNews(APPLE_ARTICLES),
        sec=FakeSec(APPLE_FILINGS),
        stocktwits=FakeStockTwits(["Bullish", "Bearish", "Bullish", None, "Bullish"]),
        llm=FakeLLM(),
    )


@pytest.fixture
def crypto_providers() -> Providers:
    return Providers(
        coingecko=FakeCoinGecko(QuoteSnapshot(
            price=97123.46, change=2345.68, change_pct=2.47, high=98000.0, low=94500.25,
            volume=41_234_567_890, market_cap=1_923_456_789_012,
        )),
        news=FakeNews([
            NewsArticle(title=f"Bitcoin headline {i}", source="CoinDesk", published_at="2025-02-03T06:00:00Z", url=None)
            for i in range(5)
        ]),
        llm=FakeLLM(),
    )
