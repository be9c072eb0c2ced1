"""Async Alpha Vantage client for equity quotes and company overviews."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from models import CompanyProfile, QuoteSnapshot

logger = logging.getLogger(__name__)


class AlphaVantageError(Exception):
    """Raised when the Alpha Vantage API returns an error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


def _to_float(value: Any) -> float | None:
    if value in (None, "", "None", "-"):
        return None
    try:
        return float(str(value).rstrip("%"))
    except ValueError:
        return None


def _clean(value: Any) -> str | None:
    if value in (None, "", "None"):
        return None
    return str(value)


class AlphaVantageClient:
    """Async HTTP client for Alpha Vantage.

    Features:
    - Simple in-memory TTL cache
    - Throttle notes and error messages in 200 responses raise AlphaVantageError
    - Unconfigured (no key) fetches return None without a network call
    """

    BASE_URL = "https://www.alphavantage.co"

    TTL_REALTIME = 60
    TTL_DAILY = 86400

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

    def _cache_key(self, params: dict) -> str:
        return "&".join(f"{k}={v}" for k, v in sorted(params.items()))

    async def get(self, params: dict, cache_ttl: int = 300) -> Any:
        """Query the ``/query`` endpoint.

        Raises:
            AlphaVantageError: On HTTP errors, transport errors, or error payloads
        """
        params = dict(params)
        params["apikey"] = self.api_key
        key = self._cache_key(params)

        if cache_ttl > 0 and key in self._cache:
            cached_at, data = self._cache[key]
            if time.monotonic() - cached_at < cache_ttl:
                return data

        try:
            resp = await self._get_client().get("/query", params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise AlphaVantageError(
                f"Alpha Vantage error {e.response.status_code}: {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise AlphaVantageError(f"Request failed: {e}") from e
        except ValueError as e:
            raise AlphaVantageError(f"Invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise AlphaVantageError("Unexpected payload shape")
        # Errors and rate-limit notices come back as 200s
        for marker in ("Error Message", "Note", "Information"):
            if marker in data:
                raise AlphaVantageError(str(data[marker])[:200])

        if cache_ttl > 0:
            self._cache[key] = (time.monotonic(), data)
        return data

    async def get_safe(self, params: dict, cache_ttl: int = 300, default: Any = None) -> Any:
        """Like get() but returns default on error instead of raising."""
        try:
            return await self.get(params, cache_ttl=cache_ttl)
        except AlphaVantageError as e:
            logger.warning("Alpha Vantage %s failed: %s", params.get("function"), e)
            return default

    async def fetch_quote(self, symbol: str) -> QuoteSnapshot | None:
        if not self.configured:
            return None
        data = await self.get_safe(
            {"function": "GLOBAL_QUOTE", "symbol": symbol},
            cache_ttl=self.TTL_REALTIME,
        )
        quote = (data or {}).get("Global Quote")
        if not isinstance(quote, dict) or not quote.get("01. symbol"):
            return None
        return QuoteSnapshot(
            price=_to_float(quote.get("05. price")),
            change=_to_float(quote.get("09. change")),
            change_pct=_to_float(quote.get("10. change percent")),
            high=_to_float(quote.get("03. high")),
            low=_to_float(quote.get("04. low")),
            volume=_to_float(quote.get("06. volume")),
        )

    async def fetch_overview(self, symbol: str) -> CompanyProfile | None:
        if not self.configured:
            return None
        data = await self.get_safe(
            {"function": "OVERVIEW", "symbol": symbol},
            cache_ttl=self.TTL_DAILY,
        )
        if not data or not data.get("Symbol"):
            return None
        return CompanyProfile(
            name=_clean(data.get("Name")),
            description=_clean(data.get("Description")),
            sector=_clean(data.get("Sector")),
            industry=_clean(data.get("Industry")),
        )
