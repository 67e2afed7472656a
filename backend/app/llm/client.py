"""Structured-output LLM adapter for an OpenAI-compatible chat API."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

import httpx

from backend.app.config import LLMConfig

LOGGER = logging.getLogger(__name__)

_ENDPOINT_CHAT_COMPLETIONS = "/chat/completions"


class LLMError(RuntimeError):
    """Raised when the LLM call fails or returns unusable content."""


class LLMRateLimitError(LLMError):
    """Raised when the provider rejects the call with HTTP 429."""


class LLMUnavailableError(LLMError):
    """Raised when LLM access is disabled or no API key is configured."""


@runtime_checkable
class LLMClient(Protocol):
    """Anything able to answer a prompt with JSON matching a schema."""

    async def invoke(self, prompt: str, schema: Mapping[str, Any]) -> Dict[str, Any]:
        """Return the model's JSON object for ``prompt``."""


class OpenAIJSONClient:
    """Call ``/chat/completions`` with a ``json_schema`` response format.

    Each call is a single attempt; failures surface immediately as
    :class:`LLMError` subclasses.
    """

    _SYSTEM_PROMPT = (
        "You are a research assistant for a security conference sponsorship team. "
        "Follow prompt version {prompt_version}. Answer only with JSON that matches the requested schema. "
        "Leave fields empty when you are not confident rather than guessing."
    )

    def __init__(
        self,
        *,
        settings: LLMConfig,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings
        self._api_key = api_key if api_key is not None else settings.api_key()
        self._client = client
        self._owns_client = client is None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.base_url.rstrip("/"),
                timeout=self._settings.timeout_seconds,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this adapter created it."""

        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _build_payload(self, prompt: str, schema: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "model": self._settings.model,
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_output_tokens,
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": "research_response", "schema": dict(schema)},
            },
            "messages": [
                {
                    "role": "system",
                    "content": self._SYSTEM_PROMPT.format(prompt_version=self._settings.prompt_version),
                },
                {"role": "user", "content": prompt},
            ],
        }

    async def invoke(self, prompt: str, schema: Mapping[str, Any]) -> Dict[str, Any]:
        """Send ``prompt`` and decode the JSON object in the first choice.

        Raises:
            LLMUnavailableError: If the adapter is disabled or has no API key.
            LLMRateLimitError: If the provider answers with HTTP 429.
            LLMError: On transport errors, other non-200 answers or non-JSON content.
        """

        if not self._settings.enabled:
            raise LLMUnavailableError("LLM access is disabled")
        if not self._api_key:
            raise LLMUnavailableError(
                f"LLM API key missing; set {self._settings.api_key_env}"
            )
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = await self._http().post(
                _ENDPOINT_CHAT_COMPLETIONS,
                headers=headers,
                json=self._build_payload(prompt, schema),
            )
        except httpx.HTTPError as exc:
            LOGGER.warning("LLM request failed: %s", exc)
            raise LLMError(f"LLM request failed: {exc}") from exc

        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            LOGGER.warning("LLM provider rate limited the request")
            raise LLMRateLimitError("LLM rate limit exceeded")
        if response.status_code != httpx.codes.OK:
            LOGGER.warning(
                "LLM provider returned an error",
                extra={"status_code": response.status_code, "body": response.text[:500]},
            )
            raise LLMError(f"LLM provider returned status {response.status_code}")
        return self._parse_response(response)

    @staticmethod
    def _parse_response(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise LLMError("LLM response missing message content") from exc
        if isinstance(content, dict):
            return content
        try:
            parsed = json.loads(content or "")
        except (TypeError, json.JSONDecodeError) as exc:
            raise LLMError("LLM returned non-JSON content") from exc
        if not isinstance(parsed, dict):
            raise LLMError("LLM returned JSON that is not an object")
        return parsed


__all__ = [
    "LLMClient",
    "LLMError",
    "LLMRateLimitError",
    "LLMUnavailableError",
    "OpenAIJSONClient",
]
