"""Incremental decorations for a live-edited Markdown buffer."""

from mdattrs.live.buffer import StaticBuffer, SyntaxToken, TextBuffer, VisibleRange
from mdattrs.live.builder import (
    DecorationBuilder,
    DecorationToken,
    MarkToken,
    ReplaceToken,
    mark_attributes,
)
from mdattrs.live.changes import (
    ChangeSet,
    ChangeSpec,
    Selection,
    SelectionRange,
    ranges_include,
)
from mdattrs.live.decorations import (
    DecorationCache,
    DecorationRange,
    DecorationSet,
    MarkDecoration,
    ReplaceDecoration,
)
from mdattrs.live.state import (
    DecorationState,
    RebuildResult,
    Transaction,
    filter_by_selection,
    replace_all,
)
from mdattrs.live.view import LiveAnnotations, ViewUpdate

__all__ = [
    "ChangeSet",
    "ChangeSpec",
    "DecorationBuilder",
    "DecorationCache",
    "DecorationRange",
    "DecorationSet",
    "DecorationState",
    "DecorationToken",
    "LiveAnnotations",
    "MarkDecoration",
    "MarkToken",
    "RebuildResult",
    "ReplaceDecoration",
    "ReplaceToken",
    "Selection",
    "SelectionRange",
    "StaticBuffer",
    "SyntaxToken",
    "TextBuffer",
    "Transaction",
    "ViewUpdate",
    "VisibleRange",
    "filter_by_selection",
    "mark_attributes",
    "ranges_include",
    "replace_all",
]
