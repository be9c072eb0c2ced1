"""Async StockTwits client for message-level sentiment labels."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Only the most recent messages are sampled
MAX_MESSAGES = 20


class StockTwitsError(Exception):
    """Raised when the StockTwits API returns an error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


def _message_label(msg: Any) -> str | None:
    if not isinstance(msg, dict):
        return None
    entities = msg.get("entities")
    if not isinstance(entities, dict):
        return None
    sentiment = entities.get("sentiment")
    if not isinstance(sentiment, dict):
        return None
    label = sentiment.get("basic")
    return label if label in ("Bullish", "Bearish") else None


class StockTwitsClient:
    """Async HTTP client for the public StockTwits symbol stream (no API key)."""

    BASE_URL = "https://api.stocktwits.com"

    TTL_REALTIME = 60

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._cache: dict[str, tuple[float, Any]] = {}

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

    async def get(self, path: str, cache_ttl: int = TTL_REALTIME) -> Any:
        """Make a GET request to the StockTwits API.

        Raises:
            StockTwitsError: On API errors or invalid responses
        """
        if cache_ttl > 0 and path in self._cache:
            cached_at, data = self._cache[path]
            if time.monotonic() - cached_at < cache_ttl:
                return data

        try:
            resp = await self._get_client().get(path)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise StockTwitsError(
                f"StockTwits error {e.response.status_code}: {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise StockTwitsError(f"Request failed: {e}") from e
        except ValueError as e:
            raise StockTwitsError(f"Invalid JSON: {e}") from e

        if cache_ttl > 0:
            self._cache[path] = (time.monotonic(), data)
        return data

    async def get_safe(self, path: str, cache_ttl: int = TTL_REALTIME, default: Any = None) -> Any:
        """Like get() but returns default on error instead of raising."""
        try:
            return await self.get(path, cache_ttl=cache_ttl)
        except StockTwitsError as e:
            logger.warning("StockTwits %s failed: %s", path, e)
            return default

    async def fetch_sentiment_labels(self, ticker: str) -> list[str | None] | None:
        """Return Bullish/Bearish labels of the latest messages, None per unlabeled one.

        Returns None when the stream is unavailable.
        """
        data = await self.get_safe(f"/api/2/streams/symbol/{ticker}.json")
        if not isinstance(data, dict) or not isinstance(data.get("messages"), list):
            return None
        return [_message_label(m) for m in data["messages"][:MAX_MESSAGES]]
