"""Document edits, position mapping and selections for the live buffer.

A ``ChangeSet`` is a list of non-overlapping replacements expressed in the
coordinates of the document *before* the edit.  ``map_pos`` carries an
offset from the old document into the new one; ``assoc`` decides which side
of an insertion a position sticks to (``-1`` before, ``1`` after).
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ChangeSpec:
    """Replace ``[from_, to)`` of the old document with ``insert``."""

    from_: int
    to: int
    insert: str = ""

    @property
    def deleted(self) -> int:
        return self.to - self.from_

    @property
    def delta(self) -> int:
        return len(self.insert) - self.deleted


@dataclass(frozen=True)
class ChangeSet:
    """An ordered set of non-overlapping changes."""

    changes: tuple[ChangeSpec, ...] = field(default=())

    def __post_init__(self) -> None:
        previous_end = -1
        for change in self.changes:
            if change.from_ < 0 or change.to < change.from_:
                msg = f"Invalid change range [{change.from_}, {change.to})"
                raise ValueError(msg)
            if change.from_ < previous_end:
                msg = "Changes must be sorted and must not overlap"
                raise ValueError(msg)
            previous_end = change.to

    @classmethod
    def of(cls, *changes: ChangeSpec) -> ChangeSet:
        return cls(tuple(changes))

    @classmethod
    def empty(cls) -> ChangeSet:
        return cls(())

    @property
    def is_empty(self) -> bool:
        return not self.changes

    def map_pos(self, pos: int, assoc: int = -1) -> int:
        """Map *pos* from the old document into the new one."""
        offset = 0
        for change in self.changes:
            if pos < change.from_:
                break
            if pos > change.to:
                offset += change.delta
                continue
            # Touching or inside the replaced range: collapse onto the start
            # or the end of the inserted text.
            if assoc < 0:
                return change.from_ + offset
            return change.from_ + offset + len(change.insert)
        return pos + offset

    def deletes(self, from_: int, to: int) -> bool:
        """True when a single change removes all of ``[from_, to)``."""
        if from_ >= to:
            return False
        return any(
            change.deleted and change.from_ <= from_ and to <= change.to
            for change in self.changes
        )

    def apply(self, text: str) -> str:
        """Apply the changes to *text* and return the new document."""
        parts: list[str] = []
        cursor = 0
        for change in self.changes:
            if change.to > len(text):
                msg = f"Change [{change.from_}, {change.to}) exceeds document length"
                raise ValueError(msg)
            parts.append(text[cursor : change.from_])
            parts.append(change.insert)
            cursor = change.to
        parts.append(text[cursor:])
        return "".join(parts)


@dataclass(frozen=True)
class SelectionRange:
    """One selection range; ``from_ == to`` is a caret."""

    from_: int
    to: int

    def __post_init__(self) -> None:
        if self.to < self.from_:
            # Normalise backwards selections.
            start, end = self.to, self.from_
            object.__setattr__(self, "from_", start)
            object.__setattr__(self, "to", end)

    @classmethod
    def cursor(cls, pos: int) -> SelectionRange:
        return cls(pos, pos)

    def map(self, changes: ChangeSet) -> SelectionRange:
        return SelectionRange(
            changes.map_pos(self.from_, 1), changes.map_pos(self.to, 1)
        )


@dataclass(frozen=True)
class Selection:
    """All selection ranges of the editor."""

    ranges: tuple[SelectionRange, ...] = field(default=())

    @classmethod
    def cursor(cls, pos: int) -> Selection:
        return cls((SelectionRange.cursor(pos),))

    @classmethod
    def single(cls, from_: int, to: int) -> Selection:
        return cls((SelectionRange(from_, to),))

    def map(self, changes: ChangeSet) -> Selection:
        return Selection(tuple(r.map(changes) for r in self.ranges))


def ranges_include(ranges: tuple[SelectionRange, ...], from_: int, to: int) -> bool:
    """True when any selection range touches ``[from_, to]``.

    Boundaries are inclusive: a caret exactly at ``from_`` or ``to`` counts
    as inside, so the raw annotation stays visible while the caret rests
    against it.
    """
    for r in ranges:
        if from_ <= r.from_ <= to:
            return True
        if from_ <= r.to <= to:
            return True
        if r.from_ < from_ and r.to > to:
            return True
    return False
