"""Rich rendering of structured replies.

Turns render nodes and citations into Rich renderables and provides a
Live view that re-renders the whole reply on every TurnUpdate. The view
only reads TurnUpdates; it never touches the transport or aggregator.
"""

from __future__ import annotations

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.style import Style
from rich.syntax import Syntax
from rich.text import Text

from soldiom.schemas.render import (
    Bold,
    CodeBlock,
    Heading,
    InlineNode,
    Link,
    ListItem,
    RenderNode,
)
from soldiom.schemas.streaming import CitationRecord, TurnStatus, TurnUpdate

BRAND = {
    "accent": "#8b5cf6",
    "link": "#3b82f6",
    "dim": "#9ca3af",
    "code_bg": "#111827",
    "red": "#ff4444",
}

_HEADING_STYLES = {
    1: "bold underline",
    2: "bold",
    3: "bold italic",
}


def render_inline(nodes: list[InlineNode]) -> Text:
    """Build one Rich Text line from inline nodes."""
    text = Text()
    for node in nodes:
        if isinstance(node, Bold):
            text.append(node.value, style="bold")
        elif isinstance(node, Link):
            text.append(
                node.label,
                style=Style(color=BRAND["link"], underline=True, link=node.href or None),
            )
        else:
            text.append(node.value)
    return text


def render_node(node: RenderNode) -> RenderableType:
    """Render a single block node."""
    if isinstance(node, Heading):
        line = render_inline(node.inline)
        line.stylize(_HEADING_STYLES[node.level])
        if node.level == 1:
            return Group(Text(), line)
        return line

    if isinstance(node, ListItem):
        marker = node.ordinal if node.ordinal is not None else "•"
        line = Text(f"  {marker} ", style=BRAND["dim"])
        line.append_text(render_inline(node.inline))
        return line

    if isinstance(node, CodeBlock):
        return Panel(
            Syntax(
                node.raw,
                node.language or "text",
                theme="monokai",
                background_color=BRAND["code_bg"],
                word_wrap=True,
            ),
            title=node.language or None,
            title_align="left",
            border_style=BRAND["dim"],
        )

    return render_inline(node.inline)


def render_nodes(nodes: list[RenderNode]) -> Group:
    return Group(*(render_node(node) for node in nodes))


def render_citations(citations: list[CitationRecord]) -> Text:
    """Numbered source list; empty Text when there are no citations."""
    text = Text()
    if not citations:
        return text
    text.append("Sources\n", style=f"bold {BRAND['dim']}")
    for index, citation in enumerate(citations, start=1):
        label = citation.title or citation.uri
        text.append(f"  [{index}] ", style=BRAND["dim"])
        text.append(label, style=Style(color=BRAND["link"], link=citation.uri))
        if citation.title:
            text.append(f"  {citation.uri}", style=BRAND["dim"])
        text.append("\n")
    return text


def render_update(update: TurnUpdate) -> Group:
    """Full reply view: structured body, sources, and a status footer."""
    parts: list[RenderableType] = [render_nodes(update.nodes)]
    if update.citations:
        parts.append(Text())
        parts.append(render_citations(update.citations))
    if update.status == TurnStatus.STREAMING:
        parts.append(Text("…", style=BRAND["dim"]))
    elif update.status == TurnStatus.CANCELLED:
        parts.append(Text("(cancelled)", style=BRAND["dim"]))
    return Group(*parts)


class StreamingReplyView:
    """Live-updating terminal view for one assistant reply.

    Usage::

        with StreamingReplyView(console) as view:
            await session.send(text, on_update=view.update)
    """

    def __init__(self, console: Console, refresh_per_second: int = 12) -> None:
        self._console = console
        self._live = Live(
            Text(""),
            console=console,
            refresh_per_second=refresh_per_second,
            transient=False,
        )
        self.last_update: TurnUpdate | None = None

    def __enter__(self) -> StreamingReplyView:
        self._live.__enter__()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._live.__exit__(*exc_info)

    def update(self, update: TurnUpdate) -> None:
        self.last_update = update
        self._live.update(render_update(update), refresh=update.is_complete)
