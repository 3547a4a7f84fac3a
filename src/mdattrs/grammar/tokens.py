"""Attribute tokenization for annotation bodies.

Turns the text between the braces of an annotation (``.warning data-x="a b"
checked``) into typed tokens.  The split is quote-aware: whitespace inside a
matching pair of ``'``, ``"`` or backtick quotes does not separate tokens.

Token kinds:
    - ``.name``       -> ClassToken
    - ``#name``       -> KeyValueToken for ``id``
    - ``key=value``   -> KeyValueToken (split on the first ``=``)
    - anything else   -> FlagToken
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

QUOTE_CHARS = frozenset(("'", '"', "`"))

KEY_SEPARATOR = "="
CLASS_PREFIX = "."
ID_PREFIX = "#"

# Characters that may not appear in an attribute key.  A key made only of
# these is not a key at all, so the fragment is treated as a flag instead.
_DISALLOWED_KEY_CHARS = frozenset(("\t", "\n", "\f", " ", "/", ">", '"', "'", "="))


@dataclass(frozen=True)
class ClassToken:
    """A ``.name`` fragment: adds ``name`` to the target's class set."""

    name: str


@dataclass(frozen=True)
class KeyValueToken:
    """A ``key=value`` fragment; ``value`` still carries its quotes."""

    key: str
    value: str


@dataclass(frozen=True)
class FlagToken:
    """A bare fragment: sets a presence attribute."""

    name: str


AttributeToken: TypeAlias = ClassToken | KeyValueToken | FlagToken


def strip_quotes(value: str) -> str:
    """Remove surrounding quote characters from an attribute value."""
    return value.strip("".join(QUOTE_CHARS))


def split_fragments(text: str) -> list[str]:
    """Split *text* on whitespace that is not inside a quoted run.

    An opening quote is closed only by the same character.  An unterminated
    quote extends to the end of the text.
    """
    fragments: list[str] = []
    current: list[str] = []
    open_quote: str | None = None

    for ch in text:
        if open_quote is not None:
            current.append(ch)
            if ch == open_quote:
                open_quote = None
            continue
        if ch in QUOTE_CHARS:
            open_quote = ch
            current.append(ch)
        elif ch.isspace():
            if current:
                fragments.append("".join(current))
                current = []
        else:
            current.append(ch)

    if current:
        fragments.append("".join(current))
    return fragments


def _is_valid_key(key: str) -> bool:
    return any(ch not in _DISALLOWED_KEY_CHARS for ch in key)


def classify(fragment: str) -> AttributeToken:
    """Classify a single non-empty fragment."""
    if fragment.startswith(CLASS_PREFIX):
        return ClassToken(fragment[1:])

    if fragment.startswith(ID_PREFIX) and len(fragment) > 1:
        return KeyValueToken("id", fragment[1:])

    key, sep, value = fragment.partition(KEY_SEPARATOR)
    if sep and _is_valid_key(key):
        return KeyValueToken(key, value)

    return FlagToken(fragment)


def tokenize(inner: str | None) -> list[AttributeToken] | None:
    """Tokenize the body of an annotation.

    Args:
        inner: Text between the braces (without the optional colon).

    Returns:
        Tokens in source order, or None when the input is empty or holds
        nothing but whitespace and quote characters.
    """
    if not inner:
        return None

    tokens = [
        classify(fragment)
        for fragment in (f.strip() for f in split_fragments(inner))
        if fragment and not all(ch in QUOTE_CHARS for ch in fragment)
    ]
    return tokens or None


def to_attributes(
    tokens: list[AttributeToken] | tuple[AttributeToken, ...] | None,
) -> tuple[tuple[str, str | None], ...]:
    """Flatten tokens into ordered ``(key, value)`` pairs.

    Classes become ``("class", name)``; flags carry a ``None`` value.
    Duplicate keys are kept so that the last write wins when applied.
    """
    if not tokens:
        return ()

    pairs: list[tuple[str, str | None]] = []
    for token in tokens:
        match token:
            case ClassToken(name=name):
                pairs.append(("class", name))
            case KeyValueToken(key=key, value=value):
                pairs.append((key, value))
            case FlagToken(name=name):
                pairs.append((name, None))
    return tuple(pairs)
