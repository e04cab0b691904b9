"""Markdown structuring into render nodes."""

from soldiom.markdown.structurer import (
    classify_line,
    parse_inline,
    segment_blocks,
    structure,
)

__all__ = ["classify_line", "parse_inline", "segment_blocks", "structure"]
