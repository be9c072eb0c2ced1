"""Async SEC EDGAR client for recent Form 4 (insider) filings."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

import feedparser
import httpx

from models import InsiderFiling

logger = logging.getLogger(__name__)

# Filings older than this are not considered insider activity
LOOKBACK_DAYS = 90


class SecError(Exception):
    """Raised when SEC EDGAR returns an error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


def parse_form4_feed(text: str, now: datetime | None = None) -> list[InsiderFiling]:
    """Parse the EDGAR Atom feed into filings from the last 90 days.

    Entries missing a title or a readable ``updated`` timestamp are skipped.
    Raises SecError when the document is not a feed.
    """
    now = now or datetime.now(timezone.utc)
    feed = feedparser.parse(text)
    if feed.bozo and not feed.entries:
        raise SecError(f"Malformed Atom feed: {feed.get('bozo_exception')}")

    filings = []
    for entry in feed.entries:
        title = entry.get("title", "").strip()
        updated = entry.get("updated_parsed")
        if not title or not updated:
            continue
        stamp = datetime(*updated[:6], tzinfo=timezone.utc)
        days_ago = int((now - stamp).total_seconds() // 86400)
        if days_ago > LOOKBACK_DAYS:
            continue
        filings.append(InsiderFiling(title=title[:100], days_ago=days_ago))
    return filings


class SecClient:
    """Async HTTP client for the EDGAR company browse feed.

    Features:
    - Simple in-memory TTL cache of raw feed text
    - Declared User-Agent (SEC rejects anonymous clients)
    - No API key required
    """

    BASE_URL = "https://www.sec.gov"

    TTL_HOURLY = 3600

    def __init__(self, user_agent: str, timeout: float = 10.0):
        self.user_agent = user_agent
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._cache: dict[str, tuple[float, str]] = {}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.BASE_URL,
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent, "Accept": "application/atom+xml"},
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def get_feed(self, ticker: str, cache_ttl: int = TTL_HOURLY) -> str:
        """Fetch the raw Form 4 Atom feed for a ticker.

        Raises:
            SecError: On HTTP or transport errors
        """
        cached = self._cache.get(ticker)
        if cache_ttl > 0 and cached is not None:
            cached_at, text = cached
            if time.monotonic() - cached_at < cache_ttl:
                return text

        params = {
            "action": "getcompany",
            "ticker": ticker,
            "type": "4",
            "dateb": "",
            "owner": "only",
            "count": 100,
            "output": "atom",
        }
        try:
            resp = await self._get_client().get("/cgi-bin/browse-edgar", params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SecError(
                f"EDGAR error {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise SecError(f"Request failed: {e}") from e

        if cache_ttl > 0:
            self._cache[ticker] = (time.monotonic(), resp.text)
        return resp.text

    async def fetch_insider_filings(self, ticker: str, now: datetime | None = None) -> list[InsiderFiling] | None:
        try:
            text = await self.get_feed(ticker)
            return parse_form4_feed(text, now=now)
        except SecError as e:
            logger.warning("EDGAR Form 4 feed for %s failed: %s", ticker, e)
            return None
