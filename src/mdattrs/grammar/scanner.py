"""Hand-written scanner for the ``{...}`` annotation grammar.

One annotation is: ``{``, an optional ``:``, optional spaces, one or more
characters that are neither ``}`` nor a newline (the first of which is not a
space), optional trailing spaces, ``}``.

The same bracket syntax means different things depending on where it sits,
so the scanner exposes separate extractors that share the single-annotation
matcher ``_match_at``:

- ``scan_line``          every annotation whose ``}`` ends a line
- ``scan_block_trailer`` an annotation alone on the last line of a block
- ``scan_inline``        the first annotation anywhere in the text
- ``probe_contains`` / ``probe_whole`` / ``probe_line``  cheap yes/no gates
"""

# Pattern: Functional Core (pure functions over strings)

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mdattrs.grammar.tokens import AttributeToken, to_attributes, tokenize

if TYPE_CHECKING:
    from collections.abc import Iterator

OPEN = "{"
CLOSE = "}"
COLON = ":"
SPACE = " "
NEWLINE = "\n"


@dataclass(frozen=True)
class AnnotationMatch:
    """One annotation found in a text span.

    Attributes:
        raw: Exact matched text.  For block trailers this includes the
            leading newline and the spaces around the annotation.
        annotation: The brace-delimited part of ``raw``.
        inner: Text between the braces after the colon and leading spaces.
        start: Offset of ``raw`` in the scanned text.
        end: Offset just past ``raw`` in the scanned text.
        annotation_start: Offset of the opening brace in the scanned text.
        tokens: Tokenized ``inner`` (empty when nothing could be tokenized).
    """

    raw: str
    annotation: str
    inner: str
    start: int
    end: int
    annotation_start: int
    tokens: tuple[AttributeToken, ...] = field(default=())

    @property
    def annotation_end(self) -> int:
        return self.annotation_start + len(self.annotation)

    @property
    def attributes(self) -> tuple[tuple[str, str | None], ...]:
        """Ordered ``(key, value)`` pairs; ``None`` marks a flag."""
        return to_attributes(self.tokens)


@dataclass(frozen=True)
class _Span:
    start: int  # index of "{"
    end: int  # index just past "}"
    inner_start: int


def _first_char_ok(ch: str) -> bool:
    return ch not in (CLOSE, NEWLINE, SPACE)


def _match_body(text: str, pos: int) -> int | None:
    """Match ``[ ]*[^}\\n ][^}\\n]*[ ]*}`` at *pos*; return inner start or None.

    The closing brace is always the first ``}`` after the body starts, so the
    caller finds it separately.
    """
    n = len(text)
    i = pos
    while i < n and text[i] == SPACE:
        i += 1
    if i >= n or not _first_char_ok(text[i]):
        return None
    return i


def _match_at(text: str, start: int) -> _Span | None:
    """Match a single annotation whose opening brace is at *start*."""
    n = len(text)
    if start >= n or text[start] != OPEN:
        return None

    body = start + 1
    inner_start: int | None = None
    if body < n and text[body] == COLON:
        inner_start = _match_body(text, body + 1)
    if inner_start is None:
        # Without consuming the colon it becomes the first body character,
        # which is how "{:}" still matches.
        inner_start = _match_body(text, body)
    if inner_start is None:
        return None

    j = inner_start
    while j < n and text[j] not in (CLOSE, NEWLINE):
        j += 1
    if j >= n or text[j] != CLOSE:
        return None
    return _Span(start=start, end=j + 1, inner_start=inner_start)


def _ends_line(text: str, pos: int) -> bool:
    return pos == len(text) or text[pos] == NEWLINE


def _iter_spans(text: str, *, line_end: bool) -> Iterator[_Span]:
    """Yield non-overlapping annotation spans from left to right."""
    pos = text.find(OPEN)
    while pos != -1:
        span = _match_at(text, pos)
        if span is not None and (not line_end or _ends_line(text, span.end)):
            yield span
            pos = text.find(OPEN, span.end)
        else:
            pos = text.find(OPEN, pos + 1)


def _build(text: str, span: _Span, raw_start: int, raw_end: int) -> AnnotationMatch:
    inner = text[span.inner_start : span.end - 1]
    return AnnotationMatch(
        raw=text[raw_start:raw_end],
        annotation=text[span.start : span.end],
        inner=inner,
        start=raw_start,
        end=raw_end,
        annotation_start=span.start,
        tokens=tuple(tokenize(inner) or ()),
    )


def scan_line(text: str) -> list[AnnotationMatch]:
    """Find every annotation that terminates a line.

    A match must be followed by the end of the string or a newline.

    Args:
        text: Any text; may span several lines.

    Returns:
        Matches in document order (possibly empty).
    """
    if not text:
        return []
    return [
        _build(text, span, span.start, span.end)
        for span in _iter_spans(text, line_end=True)
    ]


def scan_block_trailer(text: str) -> AnnotationMatch | None:
    """Find an annotation standing alone on the final line of *text*.

    The annotation must be preceded by a newline (and optional spaces) and
    followed by nothing but spaces up to the end of the string.  The match's
    ``raw`` covers the newline, the spaces and the annotation.
    """
    if not text:
        return None

    n = len(text)
    nl = text.find(NEWLINE)
    while nl != -1:
        i = nl + 1
        while i < n and text[i] == SPACE:
            i += 1
        span = _match_at(text, i)
        if span is not None:
            tail = span.end
            while tail < n and text[tail] == SPACE:
                tail += 1
            if tail == n:
                return _build(text, span, nl, n)
        nl = text.find(NEWLINE, nl + 1)
    return None


def scan_inline(text: str) -> AnnotationMatch | None:
    """Return the first annotation anywhere in *text*, or None."""
    if not text:
        return None
    span = next(_iter_spans(text, line_end=False), None)
    if span is None:
        return None
    return _build(text, span, span.start, span.end)


def probe_contains(text: str) -> bool:
    """True when *text* contains at least one annotation."""
    if not text or OPEN not in text:
        return False
    return next(_iter_spans(text, line_end=False), None) is not None


def probe_whole(text: str) -> bool:
    """True when *text* is exactly one annotation and nothing else."""
    if not text or text[0] != OPEN:
        return False
    span = _match_at(text, 0)
    return span is not None and span.end == len(text)


def probe_line(text: str) -> bool:
    """True when some line of *text* ends with an annotation."""
    if not text or CLOSE not in text:
        return False
    return next(_iter_spans(text, line_end=True), None) is not None
