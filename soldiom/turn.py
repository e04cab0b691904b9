"""Turn orchestration: transport → aggregator → structurer → presentation.

A Turn drives one assistant reply. It feeds every StreamDelta from the
transport into its own StreamAggregator, re-structures the full
accumulated text after each update, and publishes a TurnUpdate. A
transport failure never discards text already received: the partial
reply is kept and an error annotation is appended to it.

ChatSession keeps the in-memory conversation history, the active role,
and the extended-thinking toggle across turns.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable
from typing import Any

from soldiom.markdown.structurer import structure
from soldiom.providers.base import ChatTransport
from soldiom.providers.litellm_provider import short_error_reason
from soldiom.schemas.config import RoleConfig
from soldiom.schemas.streaming import (
    AggregatedState,
    StreamDelta,
    TurnStatus,
    TurnUpdate,
)
from soldiom.streaming.aggregator import DEFAULT_ERROR_MESSAGE, StreamAggregator

logger = logging.getLogger(__name__)

# Callback invoked with each TurnUpdate; may be sync or async
UpdateCallback = Callable[[TurnUpdate], Any]


def snapshot(state: AggregatedState) -> TurnUpdate:
    """Build the presentation triple (text, citations, nodes) for a state."""
    return TurnUpdate(
        text=state.text,
        citations=state.citations,
        nodes=structure(state.text),
        status=state.status,
        error=state.error,
    )


def describe_failure(error: BaseException) -> str:
    """Human-readable message for a transport failure."""
    return f"{DEFAULT_ERROR_MESSAGE} ({short_error_reason(error)})"


class Turn:
    """One request/response cycle against a chat transport.

    The turn exclusively owns its aggregator; its ``state`` stays valid
    and inspectable after completion, failure, or cancellation.
    """

    def __init__(
        self,
        transport: ChatTransport,
        messages: list[dict[str, str]],
        system: str,
        *,
        thinking: bool = False,
    ) -> None:
        self._transport = transport
        self._messages = messages
        self._system = system
        self._thinking = thinking
        self._aggregator = StreamAggregator()

    @property
    def state(self) -> AggregatedState:
        return self._aggregator.state

    async def run(self, on_update: UpdateCallback | None = None) -> TurnUpdate:
        """Stream the reply to completion and return the final update.

        Transport exceptions are reported as data in the returned update
        (status FAILED, annotated text), never raised. Cancellation
        freezes the state as CANCELLED and propagates. An exception from
        ``on_update`` also stops the turn as CANCELLED and propagates; it
        is never recorded as a transport failure.
        """
        stream = self._transport.stream(
            self._messages, self._system, thinking=self._thinking
        )
        try:
            await self._consume(stream, on_update)
        except BaseException:
            if not self._aggregator.state.is_complete:
                self._aggregator.cancel()
            logger.debug(
                "Turn stopped after %d deltas", self._aggregator.state.delta_count
            )
            raise
        finally:
            await stream.aclose()

        final = snapshot(self._aggregator.state)
        await _publish(on_update, final)
        return final

    async def _consume(
        self,
        stream: AsyncGenerator[StreamDelta, None],
        on_update: UpdateCallback | None,
    ) -> None:
        """Feed deltas until the stream ends or the transport fails.

        Only errors raised while pulling from the transport become a
        FAILED state; errors from publishing propagate to the caller.
        """
        while True:
            try:
                delta = await anext(stream)
            except StopAsyncIteration:
                self._aggregator.finish()
                return
            except Exception as e:
                logger.warning(
                    "Stream from %s failed after %d deltas: %s",
                    self._transport.display_name,
                    self._aggregator.state.delta_count,
                    e,
                )
                self._aggregator.fail(describe_failure(e))
                return
            await _publish(on_update, snapshot(self._aggregator.feed(delta)))


async def _publish(on_update: UpdateCallback | None, update: TurnUpdate) -> None:
    if on_update is None:
        return
    result = on_update(update)
    if asyncio.iscoroutine(result):
        await result


class ChatSession:
    """An in-memory conversation with one transport and one role.

    Changing the role or the thinking mode starts a new conversation.
    Only turns that complete successfully are added to the history.
    """

    def __init__(
        self,
        transport: ChatTransport,
        role: RoleConfig,
        *,
        thinking: bool = False,
    ) -> None:
        self.transport = transport
        self.role = role
        self.thinking = thinking
        self.history: list[dict[str, str]] = []
        self.last_turn: Turn | None = None

    def reset(self) -> None:
        """Start a new conversation."""
        self.history = []
        self.last_turn = None

    def set_role(self, role: RoleConfig) -> None:
        self.role = role
        self.reset()

    def set_thinking(self, enabled: bool) -> None:
        self.thinking = enabled
        self.reset()

    async def send(
        self, text: str, on_update: UpdateCallback | None = None
    ) -> TurnUpdate:
        """Send a user message and stream the assistant's reply.

        Raises:
            ValueError: If ``text`` is empty or whitespace only.
        """
        text = text.strip()
        if not text:
            raise ValueError("Message must not be empty")

        user_message = {"role": "user", "content": text}
        turn = Turn(
            self.transport,
            [*self.history, user_message],
            self.role.system_instruction,
            thinking=self.thinking,
        )
        self.last_turn = turn

        result = await turn.run(on_update)
        if result.status == TurnStatus.COMPLETE:
            self.history.append(user_message)
            self.history.append({"role": "assistant", "content": result.text})
        return result
