"""Build decoration tokens for the visible part of a live buffer.

For each host token that ends in an annotation two decorations are emitted:
a mark over the whole token carrying the annotation's attributes, and a
replace over exactly the ``{...}`` text so the raw syntax can be hidden.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias

from mdattrs.grammar import probe_line, scan_line, strip_quotes
from mdattrs.live.decorations import (
    DecorationCache,
    DecorationRange,
    DecorationSet,
    MarkDecoration,
    ReplaceDecoration,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from mdattrs.config import LiveConfig
    from mdattrs.live.buffer import TextBuffer, VisibleRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkToken:
    """Attributes to attach over ``[from_, to)``; ``value`` is the annotation."""

    from_: int
    to: int
    attributes: tuple[tuple[str, str | None], ...]
    value: str


@dataclass(frozen=True)
class ReplaceToken:
    """Hide ``[from_, to)``; ``anchor`` is the span of the annotated token."""

    from_: int
    to: int
    anchor: tuple[int, int]
    value: str


DecorationToken: TypeAlias = MarkToken | ReplaceToken


def mark_attributes(
    attributes: Iterable[tuple[str, str | None]], flag_value: str = ""
) -> dict[str, str]:
    """Fold ordered attribute pairs into a mark's attribute mapping.

    Class names are unioned into one space-separated ``class`` value; for
    other keys the last write wins.
    """
    classes: list[str] = []
    result: dict[str, str] = {}
    for key, value in attributes:
        if value is None:
            result[key] = flag_value
        elif key == "class":
            for name in strip_quotes(value).split():
                if name not in classes:
                    classes.append(name)
        else:
            result[key] = strip_quotes(value)
    if classes:
        result["class"] = " ".join(classes)
    return result


class DecorationBuilder:
    """Scan visible ranges and turn annotations into decorations.

    One builder is owned by one live buffer; its cache is not shared.
    """

    def __init__(
        self,
        config: LiveConfig | None = None,
        cache: DecorationCache | None = None,
        flag_value: str | None = None,
    ) -> None:
        if config is None or flag_value is None:
            from mdattrs.config import get_settings  # noqa: PLC0415

            settings = get_settings()
            config = config if config is not None else settings.live
            # Flags render the same value as in the static tree.
            if flag_value is None:
                flag_value = settings.tree.flag_value
        self.config = config
        self.cache = (
            cache if cache is not None else DecorationCache(config.cache_max_entries)
        )
        self.flag_value = flag_value

    def build(
        self, visible_ranges: Sequence[VisibleRange], buffer: TextBuffer
    ) -> list[DecorationToken]:
        """Return decoration tokens for *visible_ranges* in document order.

        Any failure is logged and yields an empty list for this pass.
        """
        try:
            return self._build(visible_ranges, buffer)
        except Exception:
            logger.exception("Decoration build failed; no decorations this pass")
            return []

    def _build(
        self, visible_ranges: Sequence[VisibleRange], buffer: TextBuffer
    ) -> list[DecorationToken]:
        marker = self.config.code_block_marker
        tokens: list[DecorationToken] = []
        for visible in visible_ranges:
            for syntax in buffer.tokens(visible.from_, visible.to):
                if marker in syntax.classes:
                    continue
                text = buffer.slice(syntax.from_, syntax.to)
                if not probe_line(text):
                    continue
                anchor = (syntax.from_, syntax.to)
                for match in scan_line(text):
                    tokens.append(
                        MarkToken(
                            syntax.from_, syntax.to, match.attributes, match.annotation
                        )
                    )
                    start = syntax.from_ + match.annotation_start
                    tokens.append(
                        ReplaceToken(
                            start,
                            start + len(match.annotation),
                            anchor,
                            match.annotation,
                        )
                    )
        return tokens

    def compute(
        self, tokens: Iterable[DecorationToken]
    ) -> tuple[DecorationSet, DecorationSet]:
        """Turn tokens into ``(mark_set, replace_set)`` using cached objects."""
        if self.config.clear_cache_on_rebuild:
            self.cache.clear()

        mark: list[DecorationRange] = []
        replace: list[DecorationRange] = []
        for token in tokens:
            match token:
                case MarkToken(from_=from_, to=to, attributes=attrs, value=value):
                    decoration = self.cache.get_or_create(
                        ("mark", value),
                        lambda attrs=attrs: MarkDecoration(
                            mark_attributes(attrs, self.flag_value)
                        ),
                    )
                    mark.append(DecorationRange(from_, to, decoration))
                case ReplaceToken(from_=from_, to=to, anchor=anchor, value=value):
                    decoration = self.cache.get_or_create(
                        ("replace", value), ReplaceDecoration
                    )
                    replace.append(DecorationRange(from_, to, decoration, anchor))
        return DecorationSet.of(mark), DecorationSet.of(replace)
