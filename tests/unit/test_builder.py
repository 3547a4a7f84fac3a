"""Tests for DecorationBuilder: token building and decoration computing."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mdattrs.config import LiveConfig
from mdattrs.live import (
    DecorationBuilder,
    MarkDecoration,
    MarkToken,
    ReplaceDecoration,
    ReplaceToken,
    StaticBuffer,
    SyntaxToken,
    TextBuffer,
    VisibleRange,
    mark_attributes,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    import pytest

TEXT = "Hello {.note}\nnext line"


def _buffer(text: str = TEXT) -> StaticBuffer:
    """One token per line, like a line-oriented host tokenizer."""
    tokens = []
    offset = 0
    for line in text.split("\n"):
        tokens.append(SyntaxToken.of(offset, offset + len(line), "line"))
        offset += len(line) + 1
    return StaticBuffer(text, tokens)


class _BrokenBuffer:
    def slice(self, from_: int, to: int) -> str:
        return ""

    def tokens(self, from_: int, to: int) -> Iterator[SyntaxToken]:
        raise RuntimeError("tokenizer crashed")


class TestStaticBuffer:
    """The shipped buffer."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(_buffer(), TextBuffer)

    def test_tokens_in_range(self) -> None:
        buffer = _buffer()
        assert [(t.from_, t.to) for t in buffer.tokens(0, 5)] == [(0, 13)]
        assert [(t.from_, t.to) for t in buffer.tokens(0, 23)] == [(0, 13), (14, 23)]
        assert [(t.from_, t.to) for t in buffer.tokens(14, 23)] == [(14, 23)]


class TestBuild:
    """Scanning visible ranges into tokens."""

    def test_mark_and_replace_per_match(self, live_config: LiveConfig) -> None:
        tokens = DecorationBuilder(live_config).build([VisibleRange(0, 23)], _buffer())
        assert tokens == [
            MarkToken(0, 13, (("class", "note"),), "{.note}"),
            ReplaceToken(6, 13, (0, 13), "{.note}"),
        ]

    def test_replace_covers_exactly_the_braces(self, live_config: LiveConfig) -> None:
        buffer = _buffer()
        tokens = DecorationBuilder(live_config).build([VisibleRange(0, 23)], buffer)
        replace = tokens[1]
        assert buffer.slice(replace.from_, replace.to) == "{.note}"

    def test_code_block_tokens_skipped(self, live_config: LiveConfig) -> None:
        text = "x = {.a}"
        buffer = StaticBuffer(text, [SyntaxToken.of(0, 8, "hmd-codeblock line")])
        assert DecorationBuilder(live_config).build([VisibleRange(0, 8)], buffer) == []

    def test_code_block_marker_configurable(self) -> None:
        config = LiveConfig(code_block_marker="fenced")
        buffer = StaticBuffer("x {.a}", [SyntaxToken.of(0, 6, "fenced")])
        assert DecorationBuilder(config).build([VisibleRange(0, 6)], buffer) == []

    def test_only_line_final_annotations(self, live_config: LiveConfig) -> None:
        buffer = _buffer("mid {.a} text")
        tokens = DecorationBuilder(live_config).build([VisibleRange(0, 13)], buffer)
        assert tokens == []

    def test_outside_visible_range_skipped(self, live_config: LiveConfig) -> None:
        buffer = _buffer("plain\nlast {.z}")
        tokens = DecorationBuilder(live_config).build([VisibleRange(0, 5)], buffer)
        assert tokens == []

    def test_several_ranges_in_order(self, live_config: LiveConfig) -> None:
        buffer = _buffer("a {.x}\nb\nc {.y}")
        tokens = DecorationBuilder(live_config).build(
            [VisibleRange(0, 6), VisibleRange(9, 15)], buffer
        )
        assert [t.value for t in tokens] == ["{.x}", "{.x}", "{.y}", "{.y}"]
        assert [type(t) for t in tokens] == [
            MarkToken,
            ReplaceToken,
            MarkToken,
            ReplaceToken,
        ]

    def test_failure_yields_empty_pass(
        self, live_config: LiveConfig, caplog: pytest.LogCaptureFixture
    ) -> None:
        builder = DecorationBuilder(live_config)
        with caplog.at_level(logging.ERROR, logger="mdattrs.live.builder"):
            tokens = builder.build([VisibleRange(0, 10)], _BrokenBuffer())

        assert tokens == []
        assert "Decoration build failed" in caplog.text
        assert caplog.records[0].exc_info is not None


class TestCompute:
    """Tokens to decoration sets."""

    def test_sets(self, live_config: LiveConfig) -> None:
        builder = DecorationBuilder(live_config)
        mark, replace = builder.compute(
            builder.build([VisibleRange(0, 23)], _buffer())
        )

        (m,) = mark
        assert isinstance(m.decoration, MarkDecoration)
        assert m.decoration.attributes == {"class": "note"}
        (r,) = replace
        assert isinstance(r.decoration, ReplaceDecoration)
        assert (r.from_, r.to, r.anchor) == (6, 13, (0, 13))

    def test_identity_stable_across_rebuilds(self, live_config: LiveConfig) -> None:
        builder = DecorationBuilder(live_config)
        first = builder.compute(builder.build([VisibleRange(0, 23)], _buffer()))
        second = builder.compute(builder.build([VisibleRange(0, 23)], _buffer()))

        assert first[0].ranges[0].decoration is second[0].ranges[0].decoration
        assert first[1].ranges[0].decoration is second[1].ranges[0].decoration

    def test_clear_on_rebuild_allocates_fresh(self) -> None:
        builder = DecorationBuilder(LiveConfig(clear_cache_on_rebuild=True))
        first = builder.compute(builder.build([VisibleRange(0, 23)], _buffer()))
        second = builder.compute(builder.build([VisibleRange(0, 23)], _buffer()))

        assert first[0].ranges[0].decoration is not second[0].ranges[0].decoration

    def test_cache_bound_from_config(self) -> None:
        builder = DecorationBuilder(LiveConfig(cache_max_entries=7))
        assert builder.cache.max_entries == 7


class TestMarkAttributes:
    """Folding attribute pairs for a mark."""

    def test_classes_joined_and_quotes_stripped(self) -> None:
        attrs = (
            ("class", "a"),
            ("class", "b"),
            ("class", "a"),
            ("data-x", '"1 2"'),
            ("checked", None),
        )
        assert mark_attributes(attrs) == {
            "class": "a b",
            "data-x": "1 2",
            "checked": "",
        }

    def test_last_write_wins(self) -> None:
        assert mark_attributes((("k", "1"), ("k", "2"))) == {"k": "2"}

    def test_flag_value(self) -> None:
        assert mark_attributes((("f", None),), flag_value="yes") == {"f": "yes"}
