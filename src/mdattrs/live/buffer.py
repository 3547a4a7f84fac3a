"""Host buffer boundary for the live decoration engine.

The host owns the text and its syntax tokenization.  The engine only needs
to slice text by absolute offsets and to iterate the tokens overlapping a
visible range, in document order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from mdattrs.live.changes import ChangeSet


@dataclass(frozen=True)
class VisibleRange:
    """A rendered window ``[from_, to)`` of the buffer."""

    from_: int
    to: int

    def contains(self, from_: int, to: int) -> bool:
        return self.from_ <= from_ and to <= self.to


@dataclass(frozen=True)
class SyntaxToken:
    """One host token: a span plus its classification tags."""

    from_: int
    to: int
    classes: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, from_: int, to: int, classes: str = "") -> SyntaxToken:
        """Build a token from a space-separated class string."""
        return cls(from_, to, frozenset(classes.split()))


@runtime_checkable
class TextBuffer(Protocol):
    """What the decoration builder needs from the editable buffer."""

    def slice(self, from_: int, to: int) -> str:
        """Return the text between two absolute offsets."""
        ...

    def tokens(self, from_: int, to: int) -> Iterable[SyntaxToken]:
        """Yield tokens overlapping ``[from_, to)`` in document order."""
        ...


class StaticBuffer:
    """A text plus a token list computed by the host ahead of time."""

    def __init__(self, text: str, tokens: Iterable[SyntaxToken] = ()) -> None:
        self.text = text
        self._tokens = sorted(tokens, key=lambda t: (t.from_, t.to))

    def __len__(self) -> int:
        return len(self.text)

    def slice(self, from_: int, to: int) -> str:
        return self.text[from_:to]

    def tokens(self, from_: int, to: int) -> Iterator[SyntaxToken]:
        for token in self._tokens:
            if token.from_ >= to:
                break
            if token.to > from_ or token.from_ == from_:
                yield token

    def with_changes(
        self, changes: ChangeSet, tokens: Iterable[SyntaxToken] | None = None
    ) -> StaticBuffer:
        """Return the edited buffer.

        Tokens are remapped through *changes* unless the host passes a fresh
        tokenization.
        """
        if tokens is None:
            tokens = [
                SyntaxToken(
                    changes.map_pos(t.from_, -1), changes.map_pos(t.to, 1), t.classes
                )
                for t in self._tokens
                if not changes.deletes(t.from_, t.to)
            ]
        return StaticBuffer(changes.apply(self.text), tokens)
