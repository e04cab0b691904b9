"""Client for the single-shot inference backend (Hugging Face Inference API).

Each tool is one POST to ``<base_url>/models/<model>`` with a bearer
token. JSON tools return text pulled from a named field of the result;
binary tools (image, speech) return the raw response bytes.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from soldiom.schemas.config import InferenceConfig

logger = logging.getLogger(__name__)

_JSON = "application/json"


class InferenceError(Exception):
    """Raised when an inference request cannot be made or is rejected."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str:
    """Prefer the backend's JSON ``error`` field over the bare status."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        return payload["error"]
    return f"HF API Error: {response.status_code} {response.reason_phrase}"


def _result_field(result: Any, field: str) -> str:
    """Read ``field`` from a result that may be an object or a list of them."""
    if isinstance(result, list):
        result = result[0] if result else {}
    if not isinstance(result, dict):
        return ""
    value = result.get(field)
    return value if isinstance(value, str) else ""


class InferenceClient:
    """Async client for the per-tool inference models.

    Usage::

        client = InferenceClient(load_inference_config())
        summary = await client.summarize_text(article)
    """

    def __init__(
        self,
        config: InferenceConfig | None = None,
        *,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or InferenceConfig()
        self._token = token if token is not None else os.environ.get(self._config.token_env, "")
        self._transport = transport

    @property
    def config(self) -> InferenceConfig:
        return self._config

    async def query(
        self,
        model: str,
        data: dict[str, Any] | bytes,
        content_type: str = _JSON,
    ) -> httpx.Response:
        """POST a payload to a model and return the successful response.

        Raises:
            InferenceError: If the token is missing, the request fails, or
                the backend answers with a non-2xx status.
        """
        if not self._token:
            raise InferenceError(
                f"Missing {self._config.token_env} environment variable. "
                "Please add your Hugging Face token."
            )

        url = f"{self._config.base_url.rstrip('/')}/models/{model}"
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": content_type,
        }
        body: dict[str, Any] = (
            {"json": data} if content_type == _JSON else {"content": data}
        )

        logger.debug("Inference request to %s (%s)", model, content_type)
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout, connect=10.0),
                transport=self._transport,
            ) as client:
                response = await client.post(url, headers=headers, **body)
        except httpx.TimeoutException as e:
            raise InferenceError(
                f"Request to {model} timed out after {self._config.timeout}s"
            ) from e
        except httpx.HTTPError as e:
            raise InferenceError(f"Request to {model} failed: {e}") from e

        if response.is_error:
            raise InferenceError(_error_message(response), status_code=response.status_code)
        return response

    async def _query_json(self, model: str, data: dict[str, Any] | bytes, content_type: str = _JSON) -> Any:
        response = await self.query(model, data, content_type)
        try:
            return response.json()
        except ValueError as e:
            raise InferenceError(f"Non-JSON response from {model}") from e

    # ── Tools ─────────────────────────────────────────────────

    async def generate_image(self, prompt: str) -> bytes:
        """Generate an image from a text prompt; returns encoded image bytes."""
        response = await self.query(self._config.image_model, {"inputs": prompt})
        return response.content

    async def transcribe_audio(self, audio: bytes, content_type: str = "audio/wav") -> str:
        """Speech-to-text for a recorded audio clip."""
        result = await self._query_json(
            self._config.transcription_model, audio, content_type or "audio/wav"
        )
        return _result_field(result, "text")

    async def text_to_speech(self, text: str) -> bytes:
        response = await self.query(self._config.speech_model, {"inputs": text})
        return response.content

    async def translate_text(self, text: str, src: str, tgt: str) -> str:
        """Translate between NLLB language codes (e.g. ``eng_Latn`` → ``fra_Latn``)."""
        result = await self._query_json(
            self._config.translation_model,
            {"inputs": text, "parameters": {"src_lang": src, "tgt_lang": tgt}},
        )
        return _result_field(result, "translation_text")

    async def generate_code(self, prompt: str) -> str:
        result = await self._query_json(self._config.code_model, {"inputs": prompt})
        return _result_field(result, "generated_text")

    async def summarize_text(self, text: str) -> str:
        result = await self._query_json(self._config.summarization_model, {"inputs": text})
        return _result_field(result, "summary_text")
