"""Markdown-to-render-node structuring.

Converts raw, possibly partial markdown into an ordered list of render
nodes. The transform is pure and total: it keeps no state between calls
and never raises on string input, so it can be re-run on the full
accumulated text after every streamed delta.

Recognized grammar (nothing else is special):

- fenced code blocks opened by a line starting with three backticks and
  closed by a line that is only three backticks; an unterminated fence
  runs to the end of the input
- ``# ``, ``## ``, ``### `` headings
- ``- `` / ``* `` unordered and ``<digits>. `` ordered list items
- inline ``**bold**`` and ``[label](href)``

Every non-blank line outside a fence becomes its own node; adjacent
plain lines are not merged into one paragraph.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from soldiom.schemas.render import (
    Bold,
    CodeBlock,
    Heading,
    InlineNode,
    Link,
    ListItem,
    Paragraph,
    PlainText,
    RenderNode,
)

FENCE = "```"

# Checked in order: "### " must win over "## " and "# "
_HEADING_PREFIXES: tuple[tuple[str, int], ...] = (
    ("### ", 3),
    ("## ", 2),
    ("# ", 1),
)
_BULLET_PREFIXES = ("- ", "* ")
_ORDERED_RE = re.compile(r"(\d+\.)\s")


# ── Inline tokenizer ──────────────────────────────────────────


@dataclass(frozen=True)
class _InlineRule:
    """A single inline construct: tried only where ``trigger`` occurs."""

    trigger: str
    pattern: re.Pattern[str]
    build: Callable[[re.Match[str]], InlineNode]


# Priority order: bold before link. The link label ends at the first "]("
# and the href at the next ")", so a failed match costs one pass.
_INLINE_RULES: tuple[_InlineRule, ...] = (
    _InlineRule(
        trigger="*",
        pattern=re.compile(r"\*\*(.*?)\*\*"),
        build=lambda m: Bold(value=m.group(1)),
    ),
    _InlineRule(
        trigger="[",
        pattern=re.compile(r"\[((?:[^\]]|\](?!\())*)\]\(([^)]*)\)"),
        build=lambda m: Link(label=m.group(1), href=m.group(2)),
    ),
)


def _match_inline(
    text: str, pos: int
) -> tuple[_InlineRule, re.Match[str]] | None:
    for rule in _INLINE_RULES:
        if not text.startswith(rule.trigger, pos):
            continue
        match = rule.pattern.match(text, pos)
        if match:
            return rule, match
    return None


def parse_inline(text: str) -> list[InlineNode]:
    """Split one line of text into PlainText, Bold and Link nodes.

    Scans left to right; at each position the first matching rule wins
    and scanning resumes after the match. Anything unmatched, including
    stray ``**`` or ``[`` delimiters, is kept verbatim as PlainText.
    """
    nodes: list[InlineNode] = []
    pos = 0
    plain_start = 0
    length = len(text)

    while pos < length:
        found = _match_inline(text, pos)
        if found is None:
            pos += 1
            continue

        rule, match = found
        if pos > plain_start:
            nodes.append(PlainText(value=text[plain_start:pos]))
        nodes.append(rule.build(match))
        pos = plain_start = match.end()

    if plain_start < length:
        nodes.append(PlainText(value=text[plain_start:]))
    return nodes


# ── Block segmentation ────────────────────────────────────────


@dataclass(frozen=True)
class TextSegment:
    """A run of source lines outside any code fence."""

    lines: tuple[str, ...]


def _is_fence_close(line: str) -> bool:
    return line.strip() == FENCE


def _trim_open_tail(code_lines: list[str]) -> list[str]:
    """Drop a trailing line that is still being typed inside an open fence.

    An empty last line or a partial closing fence (one or two backticks)
    would otherwise appear in the block for a single update and then
    vanish, so it is withheld until more text arrives.
    """
    if code_lines and code_lines[-1].strip() in ("", "`", "``"):
        return code_lines[:-1]
    return code_lines


def segment_blocks(text: str) -> list[TextSegment | CodeBlock]:
    """Split text into fenced code blocks and runs of ordinary lines.

    The language tag on an opening fence is stored separately from the
    code. A line that both opens and closes a fence (```` ```x``` ````)
    is a one-line code block.
    """
    segments: list[TextSegment | CodeBlock] = []
    text_lines: list[str] = []
    code_lines: list[str] | None = None
    language = ""

    for line in text.replace("\r\n", "\n").split("\n"):
        if code_lines is not None:
            if _is_fence_close(line):
                segments.append(CodeBlock(raw="\n".join(code_lines), language=language))
                code_lines = None
            else:
                code_lines.append(line)
            continue

        stripped = line.strip()
        if not stripped.startswith(FENCE):
            text_lines.append(line)
            continue

        if text_lines:
            segments.append(TextSegment(lines=tuple(text_lines)))
            text_lines = []

        info = stripped[len(FENCE):]
        if len(stripped) >= 2 * len(FENCE) and info.endswith(FENCE):
            segments.append(CodeBlock(raw=info[: -len(FENCE)]))
            continue

        language = info.strip()
        code_lines = []

    if code_lines is not None:
        code_lines = _trim_open_tail(code_lines)
        segments.append(CodeBlock(raw="\n".join(code_lines), language=language))
    elif text_lines:
        segments.append(TextSegment(lines=tuple(text_lines)))

    return segments


# ── Line classification ───────────────────────────────────────


def classify_line(line: str) -> RenderNode:
    """Classify a single non-fence line into a block node."""
    for prefix, level in _HEADING_PREFIXES:
        if line.startswith(prefix):
            return Heading(level=level, inline=parse_inline(line[len(prefix):]))

    if line.startswith(_BULLET_PREFIXES):
        return ListItem(ordinal=None, inline=parse_inline(line[2:]))

    ordered = _ORDERED_RE.match(line)
    if ordered:
        return ListItem(
            ordinal=ordered.group(1),
            inline=parse_inline(line[ordered.end():]),
        )

    return Paragraph(inline=parse_inline(line))


def structure(text: str) -> list[RenderNode]:
    """Convert markdown text into render nodes.

    Deterministic and side-effect free; blank or empty input yields an
    empty list.
    """
    nodes: list[RenderNode] = []
    for segment in segment_blocks(text):
        if isinstance(segment, CodeBlock):
            nodes.append(segment)
            continue
        for line in segment.lines:
            if line.strip():
                nodes.append(classify_line(line))
    return nodes
