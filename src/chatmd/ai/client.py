"""Async completion client built around OpenAI-compatible endpoints."""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence

import httpx
from openai import AsyncOpenAI, APIConnectionError, APIError, APIStatusError, RateLimitError
from openai.types.chat import ChatCompletionMessageParam
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..errors import CompletionError, EmptyCompletionError
from ..transcript.turns import Turn

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the completion client."""

    base_url: str
    api_key: str
    model: str
    request_timeout: float | None = 30.0
    max_retries: int = 1
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    temperature: float | None = None
    default_headers: Mapping[str, str] | None = None
    debug_logging: bool = False


class AIClient:
    """Sends one context window per call and returns the first choice's text."""

    def __init__(self, settings: ClientSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client or self._build_client(settings)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def complete(self, turns: Sequence[Turn]) -> str:
        """Return the reply for ``turns``.

        Raises :class:`CompletionError` on transport or status failures and
        :class:`EmptyCompletionError` when the response has no usable choice.
        """

        payload = self._build_chat_payload(self._coerce_messages(turns))
        LOGGER.debug(
            "Requesting chat completion via %s with %s message(s)",
            self._settings.model,
            len(payload["messages"]),
        )
        if self._settings.debug_logging:
            self._log_prompt_payload(payload)

        try:
            response = await self._create(payload)
        except (APIError, httpx.HTTPError) as exc:
            raise CompletionError(f"Completion request failed: {exc}") from exc

        choices = getattr(response, "choices", None) or []
        if not choices:
            raise EmptyCompletionError("No response from API: zero choices returned")
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not content or not str(content).strip():
            raise EmptyCompletionError("No response from API: first choice has no content")
        return str(content)

    async def _create(self, payload: Mapping[str, Any]) -> Any:
        async for attempt in self._retrying():
            with attempt:
                return await self._client.chat.completions.create(**payload)
        raise CompletionError("Completion request was not attempted")  # pragma: no cover

    def _build_client(self, settings: ClientSettings) -> AsyncOpenAI:
        headers = dict(settings.default_headers) if settings.default_headers else None
        return AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout=settings.request_timeout,
            max_retries=0,
            default_headers=headers,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception_type(
                (
                    APIConnectionError,
                    APIStatusError,
                    RateLimitError,
                    httpx.TimeoutException,
                )
            ),
        )

    def _coerce_messages(self, turns: Sequence[Turn]) -> List[ChatCompletionMessageParam]:
        messages = [turn.to_chat_param() for turn in turns]
        if not messages:
            raise ValueError("At least one turn is required to request a completion")
        return messages

    def _build_chat_payload(self, messages: Sequence[ChatCompletionMessageParam]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self._settings.model,
            "messages": list(messages),
        }
        if self._settings.temperature is not None:
            payload["temperature"] = self._settings.temperature
        return payload

    def _log_prompt_payload(self, payload: Mapping[str, Any]) -> None:
        try:
            serialized = json.dumps(payload, ensure_ascii=False, indent=2)
        except (TypeError, ValueError):
            LOGGER.debug("Completion payload (unserializable): %s", payload)
        else:
            LOGGER.debug("Completion payload:\n%s", serialized)

    async def aclose(self) -> None:
        """Close the underlying OpenAI client to release network resources."""

        close = getattr(self._client, "close", None)
        if close is None:
            return
        try:
            result = close()
        except Exception as exc:  # pragma: no cover - defensive guard
            LOGGER.debug("Completion client close failed to start: %s", exc)
            return
        if inspect.isawaitable(result):
            await result
