"""Streaming LiteLLM adapter implementing the ChatTransport interface.

Routes chat requests to any LLM provider via LiteLLM's unified API and
translates each streamed chunk into a StreamDelta carrying the text
fragment and any web citations attached to it. Handles search
grounding, extended thinking, timeouts, and retry with exponential
backoff when opening the stream.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncGenerator
from typing import Any

import litellm

# Suppress LiteLLM's "Give Feedback / Get Help" and "Provider List" banners
litellm.suppress_debug_info = True

from soldiom.providers.base import ChatTransport
from soldiom.schemas.config import ChatConfig, ModelConfig
from soldiom.schemas.streaming import CitationRecord, StreamDelta

logger = logging.getLogger(__name__)

# Max retries for transient failures while opening a stream
_MAX_RETRIES = 3
_BASE_BACKOFF = 1.0  # seconds


def short_error_reason(error: BaseException) -> str:
    """Extract a short, user-friendly reason from a LiteLLM error.

    Maps error types and status codes to concise descriptions instead
    of dumping full JSON error payloads.
    """
    error_str = str(error).lower()
    if "rate" in error_str or "429" in error_str:
        return "rate limit"
    if "overloaded" in error_str or "529" in error_str:
        return "overloaded"
    if "timeout" in error_str or isinstance(error, TimeoutError):
        return "timeout"
    if "503" in error_str or "unavailable" in error_str:
        return "service unavailable"
    if "500" in error_str or "internal" in error_str:
        return "server error"
    if "connection" in error_str:
        return "connection error"
    # Fallback: first 80 chars of the error
    return str(error)[:80]


def _field(obj: Any, name: str) -> Any:
    """Read ``name`` from a dict or an attribute-style object."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def extract_citations(chunk: Any) -> list[CitationRecord]:
    """Collect web citations carried by a single stream chunk.

    Understands Gemini search grounding metadata (only ``web`` grounding
    chunks are kept) and plain URL lists as returned by search-backed
    models. Chunks without citation data yield an empty list.
    """
    records: list[CitationRecord] = []

    metadata = getattr(chunk, "vertex_ai_grounding_metadata", None)
    if isinstance(metadata, dict):
        metadata = [metadata]
    if isinstance(metadata, list):
        for entry in metadata:
            for grounding in _field(entry, "groundingChunks") or []:
                web = _field(grounding, "web")
                if not web:
                    continue
                records.append(
                    CitationRecord(
                        uri=_field(web, "uri") or "",
                        title=_field(web, "title"),
                    )
                )

    urls = getattr(chunk, "citations", None)
    if isinstance(urls, list):
        for url in urls:
            if isinstance(url, str):
                records.append(CitationRecord(uri=url))

    return records


def _chunk_text(chunk: Any) -> str:
    choices = getattr(chunk, "choices", None)
    if not choices:
        return ""
    delta = getattr(choices[0], "delta", None)
    if delta is None:
        return ""
    return getattr(delta, "content", None) or ""


class LiteLLMProvider(ChatTransport):
    """Universal streaming chat transport powered by LiteLLM.

    Routes calls to any provider (Google, OpenAI, Anthropic, etc.)
    through litellm.acompletion(stream=True).
    """

    def __init__(self, config: ModelConfig, chat: ChatConfig | None = None) -> None:
        super().__init__(config, chat)
        # Resolve API key from environment
        self._api_key = os.environ.get(config.api_key_env, "")

    async def stream(
        self,
        messages: list[dict[str, str]],
        system: str,
        *,
        thinking: bool = False,
    ) -> AsyncGenerator[StreamDelta, None]:
        """Stream a reply via LiteLLM, one StreamDelta per chunk.

        Raises:
            TimeoutError: If opening the stream times out after all retries.
            RuntimeError: If opening the stream fails after all retries,
                or immediately on authentication / bad-request errors.
        """
        full_messages = [{"role": "system", "content": system}, *messages]
        kwargs = self._build_completion_kwargs(full_messages, thinking)

        response = await self._call_streaming_with_retry(kwargs)

        async for chunk in response:
            yield StreamDelta(
                text=_chunk_text(chunk),
                citations=extract_citations(chunk),
            )

    def _build_completion_kwargs(
        self, messages: list[dict[str, str]], thinking: bool
    ) -> dict:
        """Build the kwargs dict for litellm.acompletion."""
        chat = self.chat_config
        kwargs: dict = {
            "model": self.model_id,
            "messages": messages,
            "temperature": chat.temperature,
            "timeout": float(chat.timeout),
            "stream": True,
        }

        if self._api_key:
            kwargs["api_key"] = self._api_key

        if self.config.api_base:
            kwargs["api_base"] = self.config.api_base

        if chat.web_search and self.supports_search:
            kwargs["tools"] = [{"googleSearch": {}}]

        if thinking:
            if self.supports_thinking:
                kwargs["thinking"] = {
                    "type": "enabled",
                    "budget_tokens": chat.thinking_budget,
                }
            else:
                logger.debug(
                    "Thinking requested but %s does not support it",
                    self.display_name,
                )

        return kwargs

    async def _call_streaming_with_retry(self, kwargs: dict):
        """Call litellm.acompletion with stream=True and retry on failure.

        Retries on transient errors (rate limits, server errors, timeouts).
        Non-retryable errors (auth, invalid request) are raised immediately.
        Only opening the stream is retried; a failure after chunks have
        started arriving propagates to the caller.
        """
        last_error: Exception | None = None

        for attempt in range(_MAX_RETRIES):
            try:
                return await litellm.acompletion(**kwargs)
            except TimeoutError:
                last_error = TimeoutError(
                    f"Streaming call timed out after {kwargs.get('timeout')}s "
                    f"(attempt {attempt + 1}/{_MAX_RETRIES})"
                )
            except litellm.AuthenticationError:
                raise RuntimeError(
                    f"Authentication failed for {self._config.model}. "
                    f"Check that {self._config.api_key_env} is set correctly."
                ) from None
            except litellm.BadRequestError as e:
                raise RuntimeError(
                    f"Bad request to {self._config.model}: {e}"
                ) from e
            except (
                litellm.Timeout,
                litellm.RateLimitError,
                litellm.ServiceUnavailableError,
                litellm.InternalServerError,
                litellm.APIConnectionError,
            ) as e:
                last_error = e

            if attempt < _MAX_RETRIES - 1:
                backoff = _BASE_BACKOFF * (2**attempt)
                logger.warning(
                    "Streaming retry %d/%d for %s (%s, backoff: %.1fs)",
                    attempt + 1, _MAX_RETRIES, self._config.display_name,
                    short_error_reason(last_error), backoff,
                )
                await asyncio.sleep(backoff)

        if isinstance(last_error, TimeoutError):
            raise last_error
        raise RuntimeError(
            f"Streaming call to {self._config.model} failed after "
            f"{_MAX_RETRIES} retries: {last_error}"
        ) from last_error
