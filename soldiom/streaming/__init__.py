"""Stream aggregation for assistant turns."""

from soldiom.streaming.aggregator import (
    StreamAggregator,
    apply_delta,
    finalize,
    merge_citations,
)

__all__ = ["StreamAggregator", "apply_delta", "finalize", "merge_citations"]
