"""Async NewsAPI client with domain-restricted search and a broader fallback."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from models import NewsArticle

logger = logging.getLogger(__name__)


class NewsAPIError(Exception):
    """Raised when NewsAPI returns an error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class NewsAPIClient:
    """Async HTTP client for the NewsAPI ``/v2/everything`` endpoint.

    Features:
    - Simple in-memory TTL cache
    - ``status: error`` payloads raise NewsAPIError
    - Unconfigured (no key) searches return an empty list without a network call
    """

    BASE_URL = "https://newsapi.org"

    TTL_NEWS = 300

    def __init__(self, api_key: str | None, timeout: float = 10.0):
        self.api_key = api_key or ""
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._cache: dict[str, tuple[float, Any]] = {}

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.BASE_URL,
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def _cache_key(self, path: str, params: dict) -> str:
        return f"{path}?{'&'.join(f'{k}={v}' for k, v in sorted(params.items()))}"

    async def get(self, path: str, params: dict, cache_ttl: int = TTL_NEWS) -> Any:
        """Make a GET request to NewsAPI.

        Raises:
            NewsAPIError: On API errors or invalid responses
        """
        params = dict(params)
        params["apiKey"] = self.api_key
        key = self._cache_key(path, params)

        if cache_ttl > 0 and key in self._cache:
            cached_at, data = self._cache[key]
            if time.monotonic() - cached_at < cache_ttl:
                return data

        try:
            resp = await self._get_client().get(path, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise NewsAPIError(
                f"NewsAPI error {e.response.status_code}: {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise NewsAPIError(f"Request failed: {e}") from e
        except ValueError as e:
            raise NewsAPIError(f"Invalid JSON: {e}") from e

        if isinstance(data, dict) and data.get("status") == "error":
            raise NewsAPIError(data.get("message", "Unknown NewsAPI error"))

        if cache_ttl > 0:
            self._cache[key] = (time.monotonic(), data)
        return data

    async def get_safe(self, path: str, params: dict, cache_ttl: int = TTL_NEWS, default: Any = None) -> Any:
        """Like get() but returns default on error instead of raising."""
        try:
            return await self.get(path, params, cache_ttl=cache_ttl)
        except NewsAPIError as e:
            logger.warning("NewsAPI query %r failed: %s", params.get("q"), e)
            return default

    async def _everything(
        self,
        query: str,
        since: str,
        domains: list[str] | None,
        page_size: int,
    ) -> list[NewsArticle]:
        params: dict[str, Any] = {
            "q": query,
            "language": "en",
            "from": since,
            "sortBy": "publishedAt",
            "pageSize": page_size,
        }
        if domains:
            params["domains"] = ",".join(domains)

        data = await self.get_safe("/v2/everything", params, default={})
        raw = data.get("articles") if isinstance(data, dict) else None
        if not isinstance(raw, list):
            return []

        articles = []
        for a in raw:
            if not isinstance(a, dict) or not a.get("title"):
                continue
            source = a.get("source") if isinstance(a.get("source"), dict) else {}
            articles.append(NewsArticle(
                title=a["title"],
                source=source.get("name"),
                published_at=a.get("publishedAt"),
                url=a.get("url"),
                description=a.get("description"),
            ))
        return articles

    async def search(
        self,
        query: str,
        *,
        since: str,
        domains: list[str] | None = None,
        fallback_query: str | None = None,
        page_size: int = 15,
    ) -> list[NewsArticle]:
        """Search recent articles, newest first.

        When the domain-restricted query comes back empty and a fallback query
        is given, the fallback runs without any domain restriction.
        """
        if not self.configured:
            return []
        articles = await self._everything(query, since, domains, page_size)
        if not articles and fallback_query:
            logger.info("NewsAPI primary query empty, running fallback %r", fallback_query)
            articles = await self._everything(fallback_query, since, None, page_size)
        return articles
