"""
commonroom.services.completion_client — Generative Text Completion
====================================================================

Wraps any OpenAI-compatible chat-completions endpoint (OpenAI itself,
Gemini's compatibility endpoint, a local gateway …) behind one call:
prompt in, free-form text out.

Every transport or API failure surfaces as :class:`UpstreamUnavailable`
so callers see a single "AI unavailable" condition.
"""

from __future__ import annotations

import logging
import os

import httpx
from openai import OpenAI, OpenAIError

from commonroom.config import CommonRoomConfig
from commonroom.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class CompletionClient:
    """Single-prompt completion against a configured model."""

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        base_url: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 1,
    ) -> None:
        self.model = model
        self.timeout = timeout
        self._client: OpenAI | None = None
        if not api_key:
            logger.warning("No completion API key configured — AI suggestions disabled")
            return
        self._client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            http_client=httpx.Client(timeout=timeout),
            max_retries=max_retries,
        )

    @classmethod
    def from_env(cls, cfg: CommonRoomConfig) -> CompletionClient:
        """Build from ``COMPLETION_API_KEY`` / ``COMPLETION_BASE_URL`` + config."""
        return cls(
            api_key=os.getenv("COMPLETION_API_KEY", "").strip() or None,
            base_url=os.getenv("COMPLETION_BASE_URL", "").strip() or None,
            model=cfg.completion_model,
            timeout=cfg.completion_timeout,
            max_retries=cfg.completion_max_retries,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    def complete(self, prompt: str, *, timeout: float | None = None) -> str:
        """Send *prompt* as a single user message and return the reply text.

        Raises
        ------
        UpstreamUnavailable
            If no client is configured or the request fails for any reason.
        """
        if self._client is None:
            raise UpstreamUnavailable("AI service not available")

        try:
            resp = self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                timeout=timeout if timeout is not None else self.timeout,
            )
        except OpenAIError as exc:
            logger.error("Completion request to %s failed: %s", self.model, exc)
            raise UpstreamUnavailable(f"AI service not available: {exc}") from exc

        if not resp.choices:
            return ""
        return resp.choices[0].message.content or ""
