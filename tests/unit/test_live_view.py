"""Tests for LiveAnnotations: host updates driving rebuilds.

The caret property: while the caret sits on an annotated token, that
token's replace decoration (the one hiding ``{...}``) is absent; moving
the caret away restores it on the next rebuild.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from mdattrs.config import LiveConfig
from mdattrs.live import (
    ChangeSet,
    ChangeSpec,
    DecorationBuilder,
    LiveAnnotations,
    MarkDecoration,
    ReplaceDecoration,
    Selection,
    StaticBuffer,
    SyntaxToken,
    ViewUpdate,
    VisibleRange,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mdattrs.live import DecorationToken, TextBuffer

TEXT = "Hello {.note}\nnext line"
VIEWPORT = (VisibleRange(0, len(TEXT)),)


def _buffer(text: str = TEXT) -> StaticBuffer:
    tokens = []
    offset = 0
    for line in text.split("\n"):
        tokens.append(SyntaxToken.of(offset, offset + len(line), "line"))
        offset += len(line) + 1
    return StaticBuffer(text, tokens)


class _CountingBuilder(DecorationBuilder):
    def __init__(self, config: LiveConfig) -> None:
        super().__init__(config)
        self.builds = 0

    def build(
        self, visible_ranges: Sequence[VisibleRange], buffer: TextBuffer
    ) -> list[DecorationToken]:
        self.builds += 1
        return super().build(visible_ranges, buffer)


def _replace_spans(view: LiveAnnotations) -> list[tuple[int, int]]:
    return [(r.from_, r.to) for r in view.state.replace]


class TestViewUpdate:
    """Update flags."""

    def test_flags(self) -> None:
        assert ViewUpdate().needs_rebuild is False
        assert ViewUpdate(selection=Selection.cursor(1)).selection_set
        assert ViewUpdate(viewport=VIEWPORT).viewport_changed
        assert ViewUpdate(changes=ChangeSet.of(ChangeSpec(0, 0, "x"))).doc_changed


class TestLiveAnnotationsSync:
    """Inline rebuilds."""

    def _view(self, caret: int = 20) -> LiveAnnotations:
        return LiveAnnotations(
            _buffer(), VIEWPORT, Selection.cursor(caret), config=LiveConfig()
        )

    def test_initial_build(self) -> None:
        view = self._view()
        assert view.state.mark.size == 1
        assert _replace_spans(view) == [(6, 13)]
        assert view.decorations.size == 2

    def test_caret_inside_unhides_then_restores(self) -> None:
        view = self._view()

        view.update(ViewUpdate(selection=Selection.cursor(8)))
        assert _replace_spans(view) == []
        assert view.state.mark.size == 1

        view.update(ViewUpdate(selection=Selection.cursor(20)))
        assert _replace_spans(view) == [(6, 13)]

    def test_caret_at_annotation_edge_counts_as_inside(self) -> None:
        view = self._view()
        view.update(ViewUpdate(selection=Selection.cursor(13)))
        assert _replace_spans(view) == []

    def test_initial_caret_inside(self) -> None:
        view = self._view(caret=10)
        assert _replace_spans(view) == []

    def test_identity_stable_across_rebuilds(self) -> None:
        view = self._view()
        before = next(iter(view.state.replace)).decoration
        view.update(ViewUpdate(viewport=VIEWPORT))
        after = next(iter(view.state.replace)).decoration
        assert isinstance(after, ReplaceDecoration)
        assert before is after

    def test_edit_remaps_and_rebuilds(self) -> None:
        view = self._view()
        changes = ChangeSet.of(ChangeSpec(0, 0, "ab"))
        buffer = _buffer().with_changes(changes)
        view.update(ViewUpdate(changes=changes, buffer=buffer))

        assert view.selection == Selection.cursor(22)
        assert [(r.from_, r.to) for r in view.state.mark] == [(0, 15)]
        assert _replace_spans(view) == [(8, 15)]

    def test_deleting_the_annotation_clears_decorations(self) -> None:
        view = self._view()
        changes = ChangeSet.of(ChangeSpec(5, 13))
        view.update(
            ViewUpdate(
                changes=changes,
                buffer=_buffer().with_changes(changes),
                selection=Selection.cursor(5),
            )
        )
        assert view.decorations.size == 0

    def test_no_flags_means_no_rebuild(self) -> None:
        builder = _CountingBuilder(LiveConfig())
        view = LiveAnnotations(
            _buffer(), VIEWPORT, Selection.cursor(20), builder=builder
        )
        view.update(ViewUpdate())
        assert builder.builds == 1

    def test_flags_use_tree_flag_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TREE__FLAG_VALUE", "true")
        view = LiveAnnotations(
            _buffer("Hidden {hidden}"),
            (VisibleRange(0, 15),),
            Selection.cursor(0),
            config=LiveConfig(),
        )
        mark = next(iter(view.state.mark)).decoration
        assert isinstance(mark, MarkDecoration)
        assert mark.attributes == {"hidden": "true"}

    def test_deferred_without_loop_rebuilds_inline(self) -> None:
        view = LiveAnnotations(
            _buffer(),
            VIEWPORT,
            Selection.cursor(20),
            config=LiveConfig(defer_rebuilds=True),
        )
        view.update(ViewUpdate(selection=Selection.cursor(8)))
        assert view.pending is False
        assert _replace_spans(view) == []


class TestLiveAnnotationsDeferred:
    """Rebuilds on the next event-loop turn."""

    @pytest.fixture
    def config(self) -> LiveConfig:
        return LiveConfig(defer_rebuilds=True)

    @pytest.mark.asyncio
    async def test_remap_now_rebuild_later(self, config: LiveConfig) -> None:
        builder = _CountingBuilder(config)
        view = LiveAnnotations(
            _buffer(), VIEWPORT, Selection.cursor(20), builder=builder, config=config
        )
        assert builder.builds == 1

        view.update(ViewUpdate(selection=Selection.cursor(8)))
        # Selection filtering is applied immediately.
        assert _replace_spans(view) == []
        assert view.pending is True
        assert builder.builds == 1

        await asyncio.sleep(0)
        assert view.pending is False
        assert builder.builds == 2

        view.update(ViewUpdate(selection=Selection.cursor(20)))
        assert _replace_spans(view) == []
        await asyncio.sleep(0)
        assert _replace_spans(view) == [(6, 13)]

    @pytest.mark.asyncio
    async def test_superseded_rebuild_dropped(self, config: LiveConfig) -> None:
        builder = _CountingBuilder(config)
        view = LiveAnnotations(
            _buffer(), VIEWPORT, Selection.cursor(20), builder=builder, config=config
        )

        view.update(ViewUpdate(selection=Selection.cursor(8)))
        view.update(ViewUpdate(selection=Selection.cursor(21)))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert builder.builds == 2
        assert _replace_spans(view) == [(6, 13)]

    @pytest.mark.asyncio
    async def test_flush_runs_pending(self, config: LiveConfig) -> None:
        builder = _CountingBuilder(config)
        view = LiveAnnotations(
            _buffer(), VIEWPORT, Selection.cursor(8), builder=builder, config=config
        )
        view.update(ViewUpdate(selection=Selection.cursor(20)))
        view.flush()

        assert view.pending is False
        assert _replace_spans(view) == [(6, 13)]
        await asyncio.sleep(0)
        assert builder.builds == 2
