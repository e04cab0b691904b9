"""Abstract base class for chat transports.

Defines the ChatTransport interface that every streaming LLM adapter
must implement. The turn orchestrator consumes transports exclusively
through this interface and never calls provider SDKs directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator

from soldiom.schemas.config import ChatConfig, ModelConfig
from soldiom.schemas.streaming import StreamDelta


class ChatTransport(ABC):
    """Abstract interface for a model that streams a reply.

    Initialized from a ModelConfig loaded from the TOML registry and the
    chat defaults. Exposes identity, capabilities, and a single async
    ``stream()`` generator.
    """

    def __init__(self, config: ModelConfig, chat: ChatConfig | None = None) -> None:
        self._config = config
        self._chat = chat or ChatConfig()

    # ── Identity ──────────────────────────────────────────────

    @property
    def model_id(self) -> str:
        """LiteLLM model identifier used for routing."""
        return self._config.model

    @property
    def display_name(self) -> str:
        """Human-friendly model name for CLI output."""
        return self._config.display_name

    @property
    def config(self) -> ModelConfig:
        return self._config

    @property
    def chat_config(self) -> ChatConfig:
        return self._chat

    # ── Capabilities ──────────────────────────────────────────

    @property
    def supports_thinking(self) -> bool:
        return self._config.supports_thinking

    @property
    def supports_search(self) -> bool:
        return self._config.supports_search

    # ── Core interface ────────────────────────────────────────

    @abstractmethod
    def stream(
        self,
        messages: list[dict[str, str]],
        system: str,
        *,
        thinking: bool = False,
    ) -> AsyncGenerator[StreamDelta, None]:
        """Stream a reply as a sequence of deltas.

        Deltas for one call are yielded strictly in arrival order. The
        iterator ends normally when the reply is complete and raises on
        a transport failure; the caller decides what to do with the text
        received before the failure.

        Args:
            messages: Conversation messages in OpenAI format
                      (list of {"role": ..., "content": ...} dicts).
            system: System instruction for this conversation.
            thinking: Request extended thinking when the model supports it.
        """
