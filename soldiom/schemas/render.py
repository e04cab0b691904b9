"""Render node schemas produced by the markdown structurer.

Block nodes (Heading, ListItem, CodeBlock, Paragraph) and inline nodes
(PlainText, Bold, Link) are tagged by a ``kind`` literal so sequences
serialize and validate as discriminated unions.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)


# ── Inline nodes ──────────────────────────────────────────────


class PlainText(_Node):
    """A literal run of text, delimiters of unmatched constructs included."""

    kind: Literal["text"] = "text"
    value: str = Field(description="Literal text")


class Bold(_Node):
    """Strong emphasis from ``**value**``."""

    kind: Literal["bold"] = "bold"
    value: str = Field(description="Emphasized text without delimiters")


class Link(_Node):
    """A hyperlink from ``[label](href)``."""

    kind: Literal["link"] = "link"
    label: str = Field(description="Visible link text")
    href: str = Field(description="Link target")


InlineNode = Annotated[PlainText | Bold | Link, Field(discriminator="kind")]


# ── Block nodes ───────────────────────────────────────────────


class Heading(_Node):
    """A ``#``, ``##`` or ``###`` heading line."""

    kind: Literal["heading"] = "heading"
    level: int = Field(ge=1, le=3, description="Heading depth")
    inline: list[InlineNode] = Field(default_factory=list)


class ListItem(_Node):
    """A single list line, ordered when ``ordinal`` is set (e.g. ``"3."``)."""

    kind: Literal["list_item"] = "list_item"
    ordinal: str | None = Field(
        default=None, description="Numeral-and-dot token for ordered items"
    )
    inline: list[InlineNode] = Field(default_factory=list)


class CodeBlock(_Node):
    """A fenced code block; ``raw`` excludes the fences and language tag."""

    kind: Literal["code_block"] = "code_block"
    raw: str = Field(description="Code content, verbatim")
    language: str = Field(
        default="", description="Tag from the opening fence (empty = none)"
    )


class Paragraph(_Node):
    """Any other non-blank line."""

    kind: Literal["paragraph"] = "paragraph"
    inline: list[InlineNode] = Field(default_factory=list)


RenderNode = Annotated[
    Heading | ListItem | CodeBlock | Paragraph, Field(discriminator="kind")
]
