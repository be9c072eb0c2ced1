"""Async OpenRouter chat-completions client for the narrative text."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "openai/gpt-4o-mini"
# Same temperature for every completion
TEMPERATURE = 0.25
UNAVAILABLE_TEXT = "Analysis temporarily unavailable."


class OpenRouterError(Exception):
    """Raised when OpenRouter returns an error or an empty completion."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class OpenRouterClient:
    """Async HTTP client for OpenRouter chat completions.

    Completions are never cached. ``complete`` never raises: any failure,
    including a missing key, yields ``UNAVAILABLE_TEXT``.
    """

    BASE_URL = "https://openrouter.ai"

    def __init__(self, api_key: str | None, model: str = DEFAULT_MODEL, timeout: float = 30.0):
        self.api_key = api_key or ""
        self.model = model
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.BASE_URL,
                timeout=self.timeout,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def post(self, prompt: str, max_tokens: int, temperature: float) -> str:
        """Request one completion and return its text.

        Raises:
            OpenRouterError: On HTTP errors or a payload without content
        """
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        try:
            resp = await self._get_client().post("/api/v1/chat/completions", json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise OpenRouterError(
                f"OpenRouter error {e.response.status_code}: {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise OpenRouterError(f"Request failed: {e}") from e
        except ValueError as e:
            raise OpenRouterError(f"Invalid JSON: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise OpenRouterError("Completion missing message content") from e
        if not isinstance(content, str) or not content.strip():
            raise OpenRouterError("Empty completion")
        return content

    async def complete(self, prompt: str, max_tokens: int, temperature: float = TEMPERATURE) -> str:
        if not self.configured:
            return UNAVAILABLE_TEXT
        try:
            return await self.post(prompt, max_tokens, temperature)
        except OpenRouterError as e:
            logger.warning("Language model completion failed: %s", e)
            return UNAVAILABLE_TEXT
