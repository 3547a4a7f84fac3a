"""Decoration objects, positioned ranges and the immutable decoration set.

Decorations are compared by identity.  ``DecorationCache`` hands out the
same object for the same annotation text so hosts can diff consecutive
sets cheaply.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from mdattrs.live.changes import ChangeSet

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Decoration values
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class MarkDecoration:
    """Attach attributes to a span without touching its text."""

    attributes: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, eq=False)
class ReplaceDecoration:
    """Hide a span's text.  Inclusive ranges grow with edits at their edges."""

    inclusive: bool = True


Decoration: TypeAlias = MarkDecoration | ReplaceDecoration


# ---------------------------------------------------------------------------
# Positioned ranges
# ---------------------------------------------------------------------------


class DecorationRange:
    """A decoration placed on ``[from_, to)``.

    Attributes:
        from_: Start offset (inclusive).
        to: End offset (exclusive).
        decoration: The shared decoration object.
        anchor: Span of the whole annotated token.  Selection filtering of
            replace entries tests this span, not ``[from_, to)``.
    """

    __slots__ = ("anchor", "decoration", "from_", "to")

    def __init__(
        self,
        from_: int,
        to: int,
        decoration: Decoration,
        anchor: tuple[int, int] | None = None,
    ) -> None:
        self.from_ = from_
        self.to = to
        self.decoration = decoration
        self.anchor = anchor if anchor is not None else (from_, to)

    def __repr__(self) -> str:
        kind = type(self.decoration).__name__
        return (
            f"DecorationRange({self.from_}, {self.to}, {kind}, "
            f"anchor={self.anchor})"
        )

    def _assoc(self) -> tuple[int, int]:
        if isinstance(self.decoration, ReplaceDecoration) and self.decoration.inclusive:
            return -1, 1
        return 1, -1

    def map(self, changes: ChangeSet) -> DecorationRange | None:
        """Map through *changes*; None when the range was deleted or emptied."""
        if changes.is_empty:
            return self
        if changes.deletes(self.from_, self.to):
            return None
        start_assoc, end_assoc = self._assoc()
        from_ = changes.map_pos(self.from_, start_assoc)
        to = changes.map_pos(self.to, end_assoc)
        if to <= from_:
            return None
        anchor = (
            changes.map_pos(self.anchor[0], -1),
            changes.map_pos(self.anchor[1], 1),
        )
        return DecorationRange(from_, to, self.decoration, anchor)

    def same_as(self, other: DecorationRange) -> bool:
        return (
            self.from_ == other.from_
            and self.to == other.to
            and self.decoration is other.decoration
        )


def _sort_key(r: DecorationRange) -> tuple[int, int]:
    return r.from_, r.to


# ---------------------------------------------------------------------------
# Decoration set
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DecorationSet:
    """An immutable, position-sorted collection of decoration ranges."""

    ranges: tuple[DecorationRange, ...] = ()

    @classmethod
    def of(cls, ranges: Iterable[DecorationRange]) -> DecorationSet:
        return cls(tuple(sorted(ranges, key=_sort_key)))

    @classmethod
    def empty(cls) -> DecorationSet:
        return cls(())

    def __iter__(self) -> Iterator[DecorationRange]:
        return iter(self.ranges)

    def __len__(self) -> int:
        return len(self.ranges)

    @property
    def size(self) -> int:
        return len(self.ranges)

    def map(self, changes: ChangeSet) -> DecorationSet:
        if changes.is_empty:
            return self
        mapped = (r.map(changes) for r in self.ranges)
        return DecorationSet.of(r for r in mapped if r is not None)

    def filter(self, keep: Callable[[DecorationRange], bool]) -> DecorationSet:
        kept = tuple(r for r in self.ranges if keep(r))
        if len(kept) == len(self.ranges):
            return self
        return DecorationSet(kept)

    def union(self, ranges: Iterable[DecorationRange]) -> DecorationSet:
        """Add *ranges*, skipping any already present (same span and object)."""
        merged = list(self.ranges)
        for r in ranges:
            if not any(existing.same_as(r) for existing in merged):
                merged.append(r)
        return DecorationSet.of(merged)


# ---------------------------------------------------------------------------
# Decoration cache
# ---------------------------------------------------------------------------


class DecorationCache:
    """Bounded LRU map from ``(kind, raw text)`` to a decoration object.

    ``max_entries=0`` disables eviction.
    """

    def __init__(self, max_entries: int = 1024) -> None:
        self.max_entries = max_entries
        self._entries: OrderedDict[tuple[str, str], Decoration] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._entries

    def get_or_create(
        self, key: tuple[str, str], factory: Callable[[], Decoration]
    ) -> Decoration:
        decoration = self._entries.get(key)
        if decoration is not None:
            self._entries.move_to_end(key)
            self.hits += 1
            return decoration

        self.misses += 1
        decoration = factory()
        self._entries[key] = decoration
        if self.max_entries and len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Decoration cache full; evicted %r", evicted)
        return decoration

    def clear(self) -> None:
        self._entries.clear()
