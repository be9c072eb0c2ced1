"""Async CoinGecko client for crypto market data (no API key required)."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from models import QuoteSnapshot

logger = logging.getLogger(__name__)


class CoinGeckoError(Exception):
    """Raised when the CoinGecko API returns an error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


def _usd(block: Any) -> float | None:
    """Pull the USD figure out of a ``{"usd": ...}`` block."""
    if isinstance(block, dict):
        block = block.get("usd")
    if isinstance(block, bool) or not isinstance(block, int | float):
        return None
    return float(block)


def _round2(value: float | None) -> float | None:
    return round(value, 2) if value is not None else None


class CoinGeckoClient:
    """Async HTTP client for the CoinGecko public API."""

    BASE_URL = "https://api.coingecko.com"

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

    def _cache_key(self, path: str, params: dict | None) -> str:
        sorted_params = sorted((params or {}).items())
        return f"{path}?{'&'.join(f'{k}={v}' for k, v in sorted_params)}"

    async def get(self, path: str, params: dict | None = None, cache_ttl: int = 60) -> Any:
        """Make a GET request to the CoinGecko API.

        Raises:
            CoinGeckoError: On API errors or invalid responses
        """
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
            raise CoinGeckoError(
                f"CoinGecko error {e.response.status_code}: {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise CoinGeckoError(f"Request failed: {e}") from e
        except ValueError as e:
            raise CoinGeckoError(f"Invalid JSON: {e}") from e

        if isinstance(data, dict) and "error" in data:
            raise CoinGeckoError(str(data["error"]))

        if cache_ttl > 0:
            self._cache[key] = (time.monotonic(), data)
        return data

    async def get_safe(
        self,
        path: str,
        params: dict | None = None,
        cache_ttl: int = 60,
        default: Any = None,
    ) -> Any:
        """Like get() but returns default on error instead of raising."""
        try:
            return await self.get(path, params=params, cache_ttl=cache_ttl)
        except CoinGeckoError as e:
            logger.warning("CoinGecko %s failed: %s", path, e)
            return default

    async def fetch_quote(self, coin_id: str) -> QuoteSnapshot | None:
        data = await self.get_safe(
            f"/api/v3/coins/{coin_id}",
            params={
                "localization": "false",
                "tickers": "false",
                "market_data": "true",
                "community_data": "false",
                "developer_data": "false",
            },
            cache_ttl=self.TTL_REALTIME,
        )
        market = (data or {}).get("market_data") if isinstance(data, dict) else None
        if not isinstance(market, dict):
            return None

        change = market.get("price_change_24h")
        change_pct = market.get("price_change_percentage_24h")
        return QuoteSnapshot(
            price=_round2(_usd(market.get("current_price"))),
            change=_round2(_usd(change)),
            change_pct=_round2(_usd(change_pct)),
            high=_round2(_usd(market.get("high_24h"))),
            low=_round2(_usd(market.get("low_24h"))),
            volume=_usd(market.get("total_volume")),
            market_cap=_usd(market.get("market_cap")),
        )
