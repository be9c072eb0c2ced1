"""Shared helpers for the analysis pipeline."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 8.0


async def _safe_call(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    default: Any = None,
    timeout: float | None = DEFAULT_TIMEOUT,
    label: str | None = None,
    **kwargs: Any,
) -> Any:
    """Await a provider call, returning ``default`` if it raises or times out."""
    name = label or getattr(fn, "__qualname__", getattr(fn, "__name__", "call"))
    try:
        if timeout is None:
            return await fn(*args, **kwargs)
        return await asyncio.wait_for(fn(*args, **kwargs), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("%s timed out after %.1fs", name, timeout)
    except Exception as e:
        logger.warning("%s failed: %s", name, e)
    return default


def _to_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) as an aware datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _hours_since(value: Any, now: datetime) -> int | None:
    stamp = _to_datetime(value)
    if stamp is None:
        return None
    return math.floor((now - stamp).total_seconds() / 3600)


def _round_half_up(value: float) -> int:
    """Round halves up (2.5 -> 3) rather than to even."""
    return math.floor(value + 0.5)


def _clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))
