"""Two-slot decoration state and its per-transaction transitions.

Each transaction first maps both slots through the document changes, then:

1. ``replace_all``: a rebuild replaces the mark slot outright.
2. ``filter_by_selection``: replace entries whose anchor touches the
   selection are dropped so the raw ``{...}`` text shows while the caret is
   on it; rebuilt replace entries are merged in, also minus those touching
   the selection.
"""

# Pattern: Functional Core

from __future__ import annotations

from dataclasses import dataclass, field

from mdattrs.live.buffer import VisibleRange
from mdattrs.live.changes import ChangeSet, Selection, ranges_include
from mdattrs.live.decorations import DecorationRange, DecorationSet


@dataclass(frozen=True)
class RebuildResult:
    """Freshly built decorations, in post-change coordinates.

    Attributes:
        ranges: Visible ranges the rebuild scanned.
        mark: New mark set.
        replace: New replace entries for ``ranges``.
    """

    ranges: tuple[VisibleRange, ...]
    mark: DecorationSet
    replace: DecorationSet


@dataclass(frozen=True)
class Transaction:
    """One host update: edits, the resulting selection, maybe a rebuild."""

    changes: ChangeSet = field(default_factory=ChangeSet.empty)
    selection: Selection = field(default_factory=Selection)
    rebuild: RebuildResult | None = None


def replace_all(mark: DecorationSet, rebuild: RebuildResult | None) -> DecorationSet:
    if rebuild is None:
        return mark
    return rebuild.mark


def _touches_selection(selection: Selection, entry: DecorationRange) -> bool:
    return ranges_include(selection.ranges, entry.anchor[0], entry.anchor[1])


def _inside(ranges: tuple[VisibleRange, ...], entry: DecorationRange) -> bool:
    return any(v.contains(entry.from_, entry.to) for v in ranges)


def filter_by_selection(
    replace: DecorationSet,
    selection: Selection,
    rebuild: RebuildResult | None = None,
) -> DecorationSet:
    """Drop replace entries under the selection and merge rebuilt ones.

    Remapped entries inside a rebuilt visible range are superseded by the
    rebuild's entries for that range.
    """
    kept = replace.filter(lambda entry: not _touches_selection(selection, entry))
    if rebuild is None:
        return kept

    kept = kept.filter(lambda entry: not _inside(rebuild.ranges, entry))
    fresh = [
        entry for entry in rebuild.replace if not _touches_selection(selection, entry)
    ]
    return kept.union(fresh)


@dataclass(frozen=True)
class DecorationState:
    """Committed mark and replace sets."""

    mark: DecorationSet = field(default_factory=DecorationSet.empty)
    replace: DecorationSet = field(default_factory=DecorationSet.empty)

    def apply(self, transaction: Transaction) -> DecorationState:
        """Return the state after *transaction*."""
        mark = self.mark.map(transaction.changes)
        replace = self.replace.map(transaction.changes)
        return DecorationState(
            mark=replace_all(mark, transaction.rebuild),
            replace=filter_by_selection(
                replace, transaction.selection, transaction.rebuild
            ),
        )

    @property
    def decorations(self) -> DecorationSet:
        """Both slots merged into one position-sorted set."""
        return DecorationSet.of([*self.mark, *self.replace])
