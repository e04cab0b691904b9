"""Incremental aggregation of streamed reply fragments.

Merges text deltas by ordered concatenation and folds citation batches
into a stable, uri-keyed set that preserves first-seen order. Deltas
are assumed to arrive in order; no reordering or buffering is done.
"""

from __future__ import annotations

from soldiom.schemas.streaming import (
    AggregatedState,
    CitationRecord,
    StreamDelta,
    TurnStatus,
)

# Appended to the partial reply when the transport fails mid-stream
ERROR_ANNOTATION = "\n\n**System Error:** {message}"
DEFAULT_ERROR_MESSAGE = "Unable to retrieve verified response. Please try again."


def merge_citations(
    existing: list[CitationRecord], incoming: list[CitationRecord]
) -> list[CitationRecord]:
    """Stable set union of two citation lists keyed by uri.

    Records from ``incoming`` are appended in the order given unless a
    record with the same uri is already present. Records without a uri
    are dropped; surrounding whitespace is stripped from stored uris.
    """
    merged = list(existing)
    for record in incoming:
        uri = record.uri.strip()
        if not uri:
            continue
        if any(c.uri.strip() == uri for c in merged):
            continue
        if record.uri != uri:
            record = record.model_copy(update={"uri": uri})
        merged.append(record)
    return merged


def apply_delta(state: AggregatedState, delta: StreamDelta) -> AggregatedState:
    """Return the state after applying one delta.

    Raises:
        ValueError: If ``state`` has already been finalized.
    """
    if state.is_complete:
        raise ValueError(f"Cannot apply a delta to a {state.status} stream")

    citations = state.citations
    if delta.citations:
        citations = merge_citations(state.citations, delta.citations)

    return state.model_copy(
        update={
            "text": state.text + delta.text,
            "citations": citations,
            "delta_count": state.delta_count + 1,
        }
    )


def finalize(
    state: AggregatedState,
    *,
    error: str | None = None,
    cancelled: bool = False,
) -> AggregatedState:
    """Freeze the state at the end of a stream.

    When ``error`` is given, the accumulated text is kept and an error
    annotation is appended to it. Finalizing an already-final state
    returns it unchanged.
    """
    if state.is_complete:
        return state

    if error is not None:
        message = error.strip() or DEFAULT_ERROR_MESSAGE
        return state.model_copy(
            update={
                "text": state.text + ERROR_ANNOTATION.format(message=message),
                "status": TurnStatus.FAILED,
                "error": message,
            }
        )
    if cancelled:
        return state.model_copy(update={"status": TurnStatus.CANCELLED})
    return state.model_copy(update={"status": TurnStatus.COMPLETE})


class StreamAggregator:
    """Holds the AggregatedState for one assistant turn.

    A thin owner around :func:`apply_delta` and :func:`finalize` so the
    turn orchestrator can feed deltas and read back the latest state.
    One instance per turn; not safe to share across turns.
    """

    def __init__(self) -> None:
        self._state = AggregatedState()

    @property
    def state(self) -> AggregatedState:
        return self._state

    def feed(self, delta: StreamDelta) -> AggregatedState:
        """Apply a delta and return the new state."""
        self._state = apply_delta(self._state, delta)
        return self._state

    def finish(self) -> AggregatedState:
        """Mark the stream as successfully ended."""
        self._state = finalize(self._state)
        return self._state

    def fail(self, message: str) -> AggregatedState:
        """Mark the stream as failed, keeping the partial text."""
        self._state = finalize(self._state, error=message)
        return self._state

    def cancel(self) -> AggregatedState:
        """Mark the stream as cancelled, keeping the partial text."""
        self._state = finalize(self._state, cancelled=True)
        return self._state
