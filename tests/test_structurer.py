"""Tests for soldiom.markdown.structurer — markdown to render nodes."""

from __future__ import annotations

import time

import pytest

from soldiom.markdown.structurer import (
    classify_line,
    parse_inline,
    segment_blocks,
    structure,
)
from soldiom.schemas.render import (
    Bold,
    CodeBlock,
    Heading,
    Link,
    ListItem,
    Paragraph,
    PlainText,
)


# ── Inline parsing ───────────────────────────────────────────


class TestParseInline:
    def test_plain_text(self):
        assert parse_inline("just words") == [PlainText(value="just words")]

    def test_empty_string(self):
        assert parse_inline("") == []

    def test_bold(self):
        assert parse_inline("Hello **world**") == [
            PlainText(value="Hello "),
            Bold(value="world"),
        ]

    def test_link(self):
        assert parse_inline("See [docs](https://example.com) now") == [
            PlainText(value="See "),
            Link(label="docs", href="https://example.com"),
            PlainText(value=" now"),
        ]

    def test_multiple_constructs(self):
        nodes = parse_inline("**a** and [b](c) and **d**")
        assert nodes == [
            Bold(value="a"),
            PlainText(value=" and "),
            Link(label="b", href="c"),
            PlainText(value=" and "),
            Bold(value="d"),
        ]

    def test_bold_is_non_greedy(self):
        assert parse_inline("**a** **b**") == [
            Bold(value="a"),
            PlainText(value=" "),
            Bold(value="b"),
        ]

    def test_unmatched_bold_stays_literal(self):
        assert parse_inline("this is **unfinished") == [
            PlainText(value="this is **unfinished"),
        ]

    def test_bracket_without_target_stays_literal(self):
        assert parse_inline("[label] no link") == [PlainText(value="[label] no link")]

    def test_unclosed_link_target_stays_literal(self):
        assert parse_inline("go to [site](https://exa") == [
            PlainText(value="go to [site](https://exa"),
        ]

    def test_bold_wins_over_link_at_same_position(self):
        assert parse_inline("**[a](b)**") == [Bold(value="[a](b)")]

    def test_single_asterisks_are_plain(self):
        assert parse_inline("2 * 3 * 4") == [PlainText(value="2 * 3 * 4")]

    def test_link_label_runs_to_first_target(self):
        assert parse_inline("[x [y](z)](w)") == [
            Link(label="x [y", href="z"),
            PlainText(value="](w)"),
        ]

    def test_many_unclosed_targets_parse_quickly(self):
        line = "[](" * 1000
        start = time.perf_counter()
        nodes = parse_inline(line)
        elapsed = time.perf_counter() - start
        assert nodes == [PlainText(value=line)]
        assert elapsed < 1.0


# ── Line classification ──────────────────────────────────────


class TestClassifyLine:
    @pytest.mark.parametrize(
        ("line", "level", "content"),
        [
            ("# Title", 1, "Title"),
            ("## Section", 2, "Section"),
            ("### Sub", 3, "Sub"),
        ],
    )
    def test_headings(self, line, level, content):
        node = classify_line(line)
        assert node == Heading(level=level, inline=[PlainText(value=content)])

    def test_four_hashes_is_paragraph(self):
        assert classify_line("#### deep") == Paragraph(inline=[PlainText(value="#### deep")])

    def test_hash_without_space_is_paragraph(self):
        assert isinstance(classify_line("#hashtag"), Paragraph)

    @pytest.mark.parametrize("marker", ["- ", "* "])
    def test_unordered_items(self, marker):
        node = classify_line(f"{marker}item")
        assert node == ListItem(ordinal=None, inline=[PlainText(value="item")])

    def test_ordered_item_keeps_numeral(self):
        node = classify_line("3. Buy milk")
        assert node == ListItem(ordinal="3.", inline=[PlainText(value="Buy milk")])

    def test_multi_digit_ordinal(self):
        node = classify_line("12. Twelfth")
        assert isinstance(node, ListItem)
        assert node.ordinal == "12."

    def test_decimal_number_is_paragraph(self):
        assert isinstance(classify_line("10.5 percent"), Paragraph)

    def test_bold_line_is_not_bullet(self):
        node = classify_line("**bold** start")
        assert node == Paragraph(inline=[Bold(value="bold"), PlainText(value=" start")])

    def test_bullet_with_bold(self):
        node = classify_line("* **bold** item")
        assert node == ListItem(
            ordinal=None, inline=[Bold(value="bold"), PlainText(value=" item")]
        )

    def test_empty_heading(self):
        assert classify_line("# ") == Heading(level=1, inline=[])


# ── Block segmentation ───────────────────────────────────────


class TestSegmentBlocks:
    def test_text_only(self):
        segments = segment_blocks("a\nb")
        assert len(segments) == 1
        assert segments[0].lines == ("a", "b")

    def test_closed_fence(self):
        segments = segment_blocks("before\n```python\nx = 1\n```\nafter")
        assert len(segments) == 3
        assert segments[1] == CodeBlock(raw="x = 1", language="python")
        assert segments[2].lines == ("after",)

    def test_backticks_inside_fence_are_content(self):
        text = "```\nx = `a` + ```b```\n```"
        segments = segment_blocks(text)
        assert segments == [CodeBlock(raw="x = `a` + ```b```")]

    def test_one_line_fence(self):
        assert segment_blocks("```x = 1```") == [CodeBlock(raw="x = 1")]

    def test_indented_fence(self):
        segments = segment_blocks("  ```js\n  let a;\n  ```")
        assert segments == [CodeBlock(raw="  let a;", language="js")]


# ── structure() ──────────────────────────────────────────────


class TestStructure:
    def test_empty_input(self):
        assert structure("") == []

    def test_whitespace_only(self):
        assert structure("   \n\n \t ") == []

    def test_heading_with_inline(self):
        assert structure("## Hello **world**") == [
            Heading(level=2, inline=[PlainText(value="Hello "), Bold(value="world")]),
        ]

    def test_ordered_list_item(self):
        assert structure("3. Buy milk") == [
            ListItem(ordinal="3.", inline=[PlainText(value="Buy milk")]),
        ]

    def test_unmatched_bold(self):
        assert structure("this is **unfinished") == [
            Paragraph(inline=[PlainText(value="this is **unfinished")]),
        ]

    def test_unterminated_fence(self):
        nodes = structure("```py\nprint(1)")
        assert len(nodes) == 1
        assert isinstance(nodes[0], CodeBlock)
        assert nodes[0].raw == "print(1)"
        assert nodes[0].language == "py"

    def test_bare_opening_fence(self):
        assert structure("```") == [CodeBlock(raw="")]

    def test_lines_are_not_merged(self):
        assert structure("line one\nline two") == [
            Paragraph(inline=[PlainText(value="line one")]),
            Paragraph(inline=[PlainText(value="line two")]),
        ]

    def test_blank_lines_dropped(self):
        assert len(structure("a\n\n\nb\n")) == 2

    def test_crlf_line_endings(self):
        assert structure("# A\r\n- b") == [
            Heading(level=1, inline=[PlainText(value="A")]),
            ListItem(ordinal=None, inline=[PlainText(value="b")]),
        ]

    def test_mixed_document(self):
        text = (
            "# Plan\n"
            "Steps below:\n"
            "1. Install\n"
            "2. Run [the tool](https://t.io)\n"
            "```bash\n"
            "pip install x\n"
            "```\n"
            "- done\n"
        )
        nodes = structure(text)
        assert [type(n) for n in nodes] == [
            Heading, Paragraph, ListItem, ListItem, CodeBlock, ListItem,
        ]
        assert nodes[3].inline[1] == Link(label="the tool", href="https://t.io")
        assert nodes[4].raw == "pip install x"
        assert nodes[5].ordinal is None

    def test_fence_content_not_classified(self):
        nodes = structure("```\n# not a heading\n- not a list\n```")
        assert nodes == [CodeBlock(raw="# not a heading\n- not a list")]

    def test_deterministic(self):
        text = "## T\n- **a** [b](c)\n```\ncode"
        assert structure(text) == structure(text)


class TestStreamingStability:
    """Structuring growing prefixes of a reply must not flicker."""

    def test_code_block_stable_while_fence_closes(self):
        full = "```py\nprint(1)\n```"
        cut = full.index("print(1)") + len("print(1)")
        for end in range(cut, len(full) + 1):
            nodes = structure(full[:end])
            assert len(nodes) == 1, full[:end]
            assert nodes[0].raw == "print(1)", full[:end]

    def test_code_block_grows_monotonically(self):
        full = "```\nline1\nline2\nline3\n```"
        previous = ""
        for end in range(4, len(full) + 1):
            nodes = structure(full[:end])
            raw = nodes[0].raw
            assert raw.startswith(previous)
            previous = raw

    def test_every_prefix_structures(self):
        full = "# T\nSome **bold** and [link](u).\n1. one\n```js\nx\n```\nend"
        for end in range(len(full) + 1):
            structure(full[:end])

    def test_partial_bold_renders_literal_then_bold(self):
        assert structure("a **b") == [Paragraph(inline=[PlainText(value="a **b")])]
        assert structure("a **b**") == [
            Paragraph(inline=[PlainText(value="a "), Bold(value="b")]),
        ]
