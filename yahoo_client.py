"""Yahoo Finance quote and analyst data via yfinance (no API key required).

yfinance is synchronous, so each lookup runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from datetime import datetime, timezone
from typing import Any

import yfinance as yf

from models import AnalystRatings, QuoteSnapshot

logger = logging.getLogger(__name__)


class YahooError(Exception):
    """Raised when a yfinance lookup fails or returns nothing usable."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


def _num(value: Any) -> float | None:
    """yfinance reports missing numerics as None or NaN."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return float(value)


def _first(*values: Any) -> float | None:
    for value in values:
        number = _num(value)
        if number is not None:
            return number
    return None


def _count(value: Any) -> int:
    number = _num(value)
    return int(number) if number is not None else 0


def format_earnings_date(timestamp: Any) -> str | None:
    """Format an epoch-seconds timestamp as e.g. ``Jan 30, 2025``."""
    seconds = _num(timestamp)
    if seconds is None:
        return None
    try:
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OSError, OverflowError, ValueError):
        return None
    return f"{dt:%b} {dt.day}, {dt.year}"


def quote_from_info(info: dict) -> QuoteSnapshot | None:
    price = _first(info.get("regularMarketPrice"), info.get("currentPrice"))
    if price is None:
        return None
    return QuoteSnapshot(
        price=price,
        change=_num(info.get("regularMarketChange")),
        change_pct=_num(info.get("regularMarketChangePercent")),
        high=_first(info.get("regularMarketDayHigh"), info.get("dayHigh")),
        low=_first(info.get("regularMarketDayLow"), info.get("dayLow")),
        volume=_num(info.get("regularMarketVolume")),
        market_cap=_num(info.get("marketCap")),
        year_high=_num(info.get("fiftyTwoWeekHigh")),
        year_low=_num(info.get("fiftyTwoWeekLow")),
        pe_ratio=_num(info.get("trailingPE")),
        avg_volume=_num(info.get("averageDailyVolume3Month")),
        earnings_date=format_earnings_date(info.get("earningsTimestamp")),
    )


def ratings_from_frame(frame: Any) -> AnalystRatings | None:
    """Read the current-period row of ``Ticker.recommendations``."""
    if frame is None or getattr(frame, "empty", True):
        return None
    row = frame.iloc[0]
    return AnalystRatings(
        strong_buy=_count(row.get("strongBuy")),
        buy=_count(row.get("buy")),
        hold=_count(row.get("hold")),
        sell=_count(row.get("sell")),
        strong_sell=_count(row.get("strongSell")),
    )


class YahooClient:
    """Async facade over yfinance.

    Features:
    - Simple in-memory TTL cache
    - Blocking yfinance calls offloaded with asyncio.to_thread
    """

    TTL_REALTIME = 60
    TTL_6H = 21600

    def __init__(self) -> None:
        self._cache: dict[str, tuple[float, Any]] = {}

    async def close(self) -> None:
        self._cache.clear()

    async def get(self, symbol: str, attr: str, cache_ttl: int = TTL_REALTIME) -> Any:
        """Read a ``yf.Ticker`` attribute in a worker thread.

        Raises:
            YahooError: On any yfinance failure
        """
        key = f"{symbol}:{attr}"
        if cache_ttl > 0 and key in self._cache:
            cached_at, data = self._cache[key]
            if time.monotonic() - cached_at < cache_ttl:
                return data

        def _read() -> Any:
            return getattr(yf.Ticker(symbol), attr)

        try:
            data = await asyncio.to_thread(_read)
        except Exception as e:
            raise YahooError(f"yfinance {attr} failed for {symbol}: {e}") from e

        if cache_ttl > 0:
            self._cache[key] = (time.monotonic(), data)
        return data

    async def get_safe(self, symbol: str, attr: str, cache_ttl: int = TTL_REALTIME, default: Any = None) -> Any:
        """Like get() but returns default on error instead of raising."""
        try:
            return await self.get(symbol, attr, cache_ttl=cache_ttl)
        except YahooError as e:
            logger.warning("%s", e)
            return default

    async def fetch_quote(self, symbol: str) -> QuoteSnapshot | None:
        info = await self.get_safe(symbol, "info", cache_ttl=self.TTL_REALTIME)
        if not isinstance(info, dict):
            return None
        return quote_from_info(info)

    async def fetch_recommendations(self, symbol: str) -> AnalystRatings | None:
        frame = await self.get_safe(symbol, "recommendations", cache_ttl=self.TTL_6H)
        return ratings_from_frame(frame)
