"""Tests for soldiom.turn — turn orchestration and chat sessions."""

from __future__ import annotations

import asyncio

import pytest

from soldiom.providers.base import ChatTransport
from soldiom.schemas.config import ModelConfig, RoleConfig
from soldiom.schemas.render import Bold, Paragraph, PlainText
from soldiom.schemas.streaming import (
    CitationRecord,
    StreamDelta,
    TurnStatus,
    TurnUpdate,
)
from soldiom.turn import ChatSession, Turn


# ── Helpers ───────────────────────────────────────────────────


def _model_config(**overrides) -> ModelConfig:
    defaults = {
        "provider": "test",
        "model": "test/model-v1",
        "display_name": "Test Model",
        "api_key_env": "TEST_API_KEY",
    }
    defaults.update(overrides)
    return ModelConfig(**defaults)


def _role(key: str = "general", instruction: str = "Be helpful.") -> RoleConfig:
    return RoleConfig(key=key, name=key.title(), system_instruction=instruction)


class ScriptedTransport(ChatTransport):
    """Yields a fixed list of deltas, then optionally raises."""

    def __init__(self, deltas: list[StreamDelta], error: Exception | None = None) -> None:
        super().__init__(_model_config())
        self.deltas = deltas
        self.error = error
        self.calls: list[tuple[list[dict[str, str]], str, bool]] = []
        self.closed = False

    async def stream(self, messages, system, *, thinking=False):
        self.calls.append((list(messages), system, thinking))
        try:
            for delta in self.deltas:
                yield delta
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


class HangingTransport(ChatTransport):
    """Yields one delta and then waits forever."""

    def __init__(self) -> None:
        super().__init__(_model_config())

    async def stream(self, messages, system, *, thinking=False):
        yield StreamDelta(text="partial")
        await asyncio.Event().wait()


def _texts(*fragments: str) -> list[StreamDelta]:
    return [StreamDelta(text=f) for f in fragments]


# ── Turn ──────────────────────────────────────────────────────


class TestTurn:
    @pytest.mark.asyncio
    async def test_publishes_update_per_delta_and_final(self):
        updates: list[TurnUpdate] = []
        transport = ScriptedTransport(_texts("## Hi", " there"))
        turn = Turn(transport, [{"role": "user", "content": "hey"}], "sys")

        result = await turn.run(updates.append)

        assert len(updates) == 3
        assert [u.status for u in updates] == [
            TurnStatus.STREAMING, TurnStatus.STREAMING, TurnStatus.COMPLETE,
        ]
        assert updates[0].text == "## Hi"
        assert result.text == "## Hi there"
        assert result.nodes[0].level == 2
        assert result is updates[-1]

    @pytest.mark.asyncio
    async def test_text_is_monotonic_prefix(self):
        updates: list[TurnUpdate] = []
        transport = ScriptedTransport(_texts("a", "b", "", "c"))
        await Turn(transport, [], "sys").run(updates.append)

        for earlier, later in zip(updates, updates[1:]):
            assert later.text.startswith(earlier.text)

    @pytest.mark.asyncio
    async def test_citations_deduplicated(self):
        a = CitationRecord(uri="https://a.io", title="A")
        b = CitationRecord(uri="https://b.io")
        transport = ScriptedTransport([
            StreamDelta(text="x", citations=[a]),
            StreamDelta(text="y", citations=[b, a]),
            StreamDelta(citations=[a]),
        ])
        result = await Turn(transport, [], "sys").run()
        assert result.citations == [a, b]

    @pytest.mark.asyncio
    async def test_failure_preserves_partial_text(self):
        transport = ScriptedTransport(
            _texts("Hel", "lo"), error=RuntimeError("connection reset by peer")
        )
        turn = Turn(transport, [], "sys")

        result = await turn.run()

        assert result.status == TurnStatus.FAILED
        assert result.text.startswith("Hello\n\n**System Error:** ")
        assert "connection error" in result.text
        assert turn.state.text == result.text
        assert result.nodes[0] == Paragraph(inline=[PlainText(value="Hello")])
        assert result.nodes[1].inline[0] == Bold(value="System Error:")

    @pytest.mark.asyncio
    async def test_failure_before_any_text(self):
        transport = ScriptedTransport([], error=TimeoutError("timed out"))
        result = await Turn(transport, [], "sys").run()
        assert result.status == TurnStatus.FAILED
        assert result.text.startswith("\n\n**System Error:**")
        assert "timeout" in result.error

    @pytest.mark.asyncio
    async def test_async_callback_awaited(self):
        seen: list[str] = []

        async def on_update(update: TurnUpdate) -> None:
            await asyncio.sleep(0)
            seen.append(update.text)

        await Turn(ScriptedTransport(_texts("a", "b")), [], "sys").run(on_update)
        assert seen == ["a", "ab", "ab"]

    @pytest.mark.asyncio
    async def test_cancellation_keeps_state(self):
        transport = HangingTransport()
        turn = Turn(transport, [], "sys")
        first = asyncio.Event()

        task = asyncio.create_task(turn.run(lambda update: first.set()))
        await first.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert turn.state.status == TurnStatus.CANCELLED
        assert turn.state.text == "partial"

    @pytest.mark.asyncio
    async def test_independent_turns_in_parallel(self):
        first = Turn(ScriptedTransport(_texts("one", "1")), [], "sys")
        second = Turn(ScriptedTransport(_texts("two", "2")), [], "sys")
        results = await asyncio.gather(first.run(), second.run())
        assert [r.text for r in results] == ["one1", "two2"]

    @pytest.mark.asyncio
    async def test_callback_error_is_not_a_transport_failure(self):
        transport = ScriptedTransport(_texts("Hello", " world"))
        turn = Turn(transport, [], "sys")

        def on_update(update: TurnUpdate) -> None:
            raise RuntimeError("render bug")

        with pytest.raises(RuntimeError, match="render bug"):
            await turn.run(on_update)

        assert turn.state.status == TurnStatus.CANCELLED
        assert turn.state.text == "Hello"
        assert turn.state.error is None
        assert transport.closed is True

    @pytest.mark.asyncio
    async def test_stream_closed_after_completion_and_failure(self):
        done = ScriptedTransport(_texts("a"))
        failed = ScriptedTransport(_texts("a"), error=RuntimeError("boom"))
        await Turn(done, [], "sys").run()
        await Turn(failed, [], "sys").run()
        assert done.closed and failed.closed


# ── ChatSession ───────────────────────────────────────────────


class TestChatSession:
    @pytest.mark.asyncio
    async def test_send_records_history(self):
        transport = ScriptedTransport(_texts("Hi!"))
        session = ChatSession(transport, _role(instruction="Be brief."))

        result = await session.send("  hello  ")

        assert result.status == TurnStatus.COMPLETE
        assert session.history == [
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "Hi!"},
        ]
        messages, system, thinking = transport.calls[0]
        assert messages == [{"role": "user", "content": "hello"}]
        assert system == "Be brief."
        assert thinking is False

    @pytest.mark.asyncio
    async def test_history_sent_on_next_turn(self):
        transport = ScriptedTransport(_texts("ok"))
        session = ChatSession(transport, _role())
        await session.send("first")
        await session.send("second")

        messages, _, _ = transport.calls[1]
        assert [m["content"] for m in messages] == ["first", "ok", "second"]

    @pytest.mark.asyncio
    async def test_failed_turn_not_added_to_history(self):
        transport = ScriptedTransport(_texts("part"), error=RuntimeError("boom"))
        session = ChatSession(transport, _role())
        result = await session.send("hello")

        assert result.status == TurnStatus.FAILED
        assert session.history == []
        assert session.last_turn is not None
        assert session.last_turn.state.text.startswith("part")

    @pytest.mark.asyncio
    async def test_thinking_flag_forwarded(self):
        transport = ScriptedTransport(_texts("ok"))
        session = ChatSession(transport, _role(), thinking=True)
        await session.send("hi")
        assert transport.calls[0][2] is True

    @pytest.mark.asyncio
    async def test_empty_message_rejected(self):
        session = ChatSession(ScriptedTransport([]), _role())
        with pytest.raises(ValueError, match="empty"):
            await session.send("   ")

    @pytest.mark.asyncio
    async def test_role_change_resets_history(self):
        session = ChatSession(ScriptedTransport(_texts("ok")), _role())
        await session.send("hi")
        session.set_role(_role("doctor"))
        assert session.history == []
        assert session.role.key == "doctor"

    @pytest.mark.asyncio
    async def test_thinking_toggle_resets_history(self):
        session = ChatSession(ScriptedTransport(_texts("ok")), _role())
        await session.send("hi")
        session.set_thinking(True)
        assert session.history == []
        assert session.thinking is True
