"""Client wrapper for the chat-completion language model API."""

from __future__ import annotations

from typing import Any, Dict

import httpx

from reviewbot.config import DEFAULT_MODEL_NAME
from reviewbot.errors import ApiError, TransientNetworkError
from reviewbot.logger import get_logger, log_with_context
from reviewbot.retry import DEFAULT_RETRY_POLICY, RetryPolicy, raise_for_response, with_retries

logger = get_logger()

ANTHROPIC_VERSION = "2023-06-01"


class ModelClient:
    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_MODEL_NAME,
        base_url: str = "https://api.anthropic.com/v1",
        timeout: float = 30.0,
        max_tokens: int = 2000,
        temperature: float = 0.1,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        client: httpx.Client | None = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.retry_policy = retry_policy
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)
        self._owns_client = client is None
        self._headers = {
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def complete(self, prompt: str) -> str:
        """Send a single-turn prompt and return the reply text."""

        ctx_logger = log_with_context(logger, model=self.model)
        ctx_logger.debug(f"Sending prompt ({len(prompt)} characters)")
        payload = self.request(
            "POST",
            "/messages",
            json={
                "model": self.model,
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
                "messages": [{"role": "user", "content": prompt}],
            },
        )
        text = _extract_text(payload)
        ctx_logger.debug(f"Model replied with {len(text)} characters")
        return text

    @with_retries
    def request(self, method: str, url: str, *, json: Any | None = None) -> Dict[str, Any]:
        try:
            response = self._client.request(method, url, headers=self._headers, json=json)
        except httpx.TransportError as exc:
            raise TransientNetworkError(f"Network error calling model API: {exc}") from exc

        raise_for_response(response, service="Model API", url=url, policy=self.retry_policy)
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError("Model API returned invalid JSON.", response.status_code, response.text[:200]) from exc


def _extract_text(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    blocks = payload.get("content") or []
    parts = [
        block.get("text", "")
        for block in blocks
        if isinstance(block, dict) and block.get("type", "text") == "text"
    ]
    return "".join(parts)
