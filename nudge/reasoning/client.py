"""
Reasoning-service client — the single outbound `generate(prompt) -> text` call.

The engine owns the timeout and treats every failure as "no intervention";
this module only has to turn transport problems into ExternalTransportError.
There is no retry here. After a 429 the client refuses calls for a short
quota back-off window instead of hammering the service.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Protocol

import httpx

from ..errors import ConfigurationError, ExternalTransportError

logger = logging.getLogger(__name__)

QUOTA_BACKOFF_S = 60.0


class ReasoningClient(Protocol):
    async def generate(self, prompt: str) -> str: ...


class GeminiClient:
    """
    Minimal async client for the Gemini generateContent endpoint.

    Usage:
        client = GeminiClient(api_key="...")
        text = await client.generate(prompt)
        await client.aclose()
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not api_key:
            raise ConfigurationError("reasoning service API key is not configured (NUDGE_REASONING_API_KEY)")
        self.model = model
        self._url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self._client = httpx.AsyncClient(
            headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout, connect=5.0),
            transport=transport,
        )
        self._clock = clock
        self._quota_exceeded_at: Optional[float] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(self, prompt: str) -> str:
        remaining = self.quota_backoff_remaining()
        if remaining > 0:
            raise ExternalTransportError(f"quota back-off active ({remaining:.0f}s left)", status_code=429)

        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.7,
                "maxOutputTokens": 500,
                "responseMimeType": "application/json",
            },
        }
        try:
            resp = await self._client.post(self._url, json=body)
        except httpx.HTTPError as e:
            raise ExternalTransportError(f"{type(e).__name__}: {e}") from e

        if resp.status_code == 429:
            self._quota_exceeded_at = self._clock()
            logger.warning("Reasoning service quota exceeded; backing off for %.0fs", QUOTA_BACKOFF_S)
        if resp.status_code >= 300:
            raise ExternalTransportError(f"HTTP {resp.status_code}", status_code=resp.status_code)

        try:
            return _candidate_text(resp.json())
        except ValueError as e:
            raise ExternalTransportError(f"malformed response envelope: {e}") from e

    def quota_backoff_remaining(self) -> float:
        if self._quota_exceeded_at is None:
            return 0.0
        return max(0.0, QUOTA_BACKOFF_S - (self._clock() - self._quota_exceeded_at))

    async def aclose(self) -> None:
        await self._client.aclose()


def _candidate_text(data: Any) -> str:
    try:
        parts = data["candidates"][0]["content"]["parts"]
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    except (KeyError, IndexError, TypeError) as e:
        raise ValueError(f"no candidate text ({type(e).__name__})") from e
    if not text:
        raise ValueError("empty candidate text")
    return text


def client_from_config(cfg) -> GeminiClient:
    return GeminiClient(
        api_key=cfg.reasoning_api_key,
        model=cfg.reasoning_model,
        base_url=cfg.reasoning_base_url,
        timeout=cfg.reasoning_timeout_s,
    )
