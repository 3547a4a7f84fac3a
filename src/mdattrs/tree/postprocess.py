"""Per-section post-processing of rendered Markdown blocks.

Some annotations never reach the rendered tree:

- Code fences: the renderer keeps only the language from the opening line,
  so `````python {.numbered}`` loses its annotation.
- Tables and math blocks: a trailing ``{...}`` line renders as a separate
  paragraph instead of belonging to the block.
- Callouts: the last source line of the section holds the block annotation.

For those blocks the annotation text is recovered from the section's source
and prepended to the block as text, so the applier then finds it like any
other inline annotation.  A paragraph that consists of nothing but the
annotation recovered by the block before it was such a trailer and is
removed.

``render_html`` runs the whole pipeline over an HTML fragment whose
top-level elements are the rendered sections.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from lxml import html as lxml_html

from mdattrs.grammar import probe_contains, probe_whole, scan_inline
from mdattrs.tree.adapter import ElementKind
from mdattrs.tree.applier import TreeApplier

if TYPE_CHECKING:
    from mdattrs.config import TreeConfig
    from mdattrs.tree.applier import TargetBinding

logger = logging.getLogger(__name__)

_FENCE_MARKERS = ("```", "~~~")
_MATH_FENCE = "$$"
_TABLE_ROW = "|"

_TRAILING_LINE_KINDS = frozenset((ElementKind.TABLE, ElementKind.MATH_BLOCK))


@dataclass(frozen=True)
class SectionInfo:
    """Where a rendered block came from.

    Attributes:
        text: Full source text of the document.
        line_start: First source line of the section (0-based).
        line_end: Last source line of the section (inclusive).
    """

    text: str
    line_start: int
    line_end: int

    def line(self, index: int) -> str | None:
        lines = self.text.split("\n")
        if 0 <= index < len(lines):
            return lines[index]
        return None


class SectionLookup(Protocol):
    """Host lookup from a rendered block to its source section."""

    def section_info(self, block: Any) -> SectionInfo | None: ...


class SectionPostProcessor:
    """Recover hidden annotations for one rendered section, then apply.

    Blocks must be passed to ``process`` in document order: an
    annotation-only paragraph is dropped only when the block before it
    recovered that same annotation.
    """

    def __init__(
        self,
        lookup: SectionLookup | None = None,
        applier: TreeApplier | None = None,
        config: TreeConfig | None = None,
    ) -> None:
        self.lookup = lookup
        self.applier = applier if applier is not None else TreeApplier(config=config)
        self.adapter = self.applier.adapter
        self._recovered_trailer: str | None = None

    def _section(self, block: Any) -> SectionInfo | None:
        if self.lookup is None:
            return None
        return self.lookup.section_info(block)

    def _recover_fence_annotation(self, block: Any, section: SectionInfo) -> bool:
        first = section.line(section.line_start)
        if not first:
            return False
        match = scan_inline(first)
        if match is None:
            return False
        self.adapter.prepend_text(block, match.annotation)
        return True

    def _recover_trailing_annotation(
        self, block: Any, section: SectionInfo, kind: ElementKind
    ) -> str | None:
        # Callouts keep the annotation inside the section; tables and math
        # blocks leave it on the following line.
        adjustment = 0 if kind is ElementKind.CALLOUT else 1
        line = section.line(section.line_end + adjustment)
        if not line:
            return None
        candidate = line.strip()
        if not probe_whole(candidate):
            return None
        self.adapter.prepend_text(block, candidate)
        return candidate

    def process(self, block: Any) -> list[TargetBinding]:
        """Post-process the rendered top-level *block* in place.

        Returns:
            Bindings produced by the applier (empty when nothing applied or
            the block was removed).
        """
        trailer, self._recovered_trailer = self._recovered_trailer, None
        kind = self.adapter.kind(block)

        if kind is ElementKind.PREFORMATTED:
            section = self._section(block)
            if section is None:
                return []
            if not self._recover_fence_annotation(block, section):
                return []
        elif kind in _TRAILING_LINE_KINDS or kind is ElementKind.CALLOUT:
            section = self._section(block)
            if section is None:
                return []
            recovered = self._recover_trailing_annotation(block, section, kind)
            if kind is not ElementKind.CALLOUT:
                self._recovered_trailer = recovered

        if kind is ElementKind.PARAGRAPH and not self.adapter.child_elements(block):
            text = self.adapter.text_content(block).strip()
            if probe_whole(text):
                if text == trailer:
                    logger.debug("Removing recovered trailer paragraph %r", text)
                    self.adapter.remove(block)
                else:
                    logger.debug("Annotation-only paragraph %r left in place", text)
                return []

        if not probe_contains(self.adapter.text_content(block)):
            return []

        return self.applier.apply(block)


# ---------------------------------------------------------------------------
# Source section mapping
# ---------------------------------------------------------------------------


def _is_fence(line: str) -> bool:
    return line.lstrip().startswith(_FENCE_MARKERS)


def _is_heading(line: str) -> bool:
    stripped = line.lstrip(" ")
    if len(line) - len(stripped) > 3:
        return False
    rest = stripped.lstrip("#")
    level = len(stripped) - len(rest)
    return 1 <= level <= 6 and (not rest or rest[0] in " \t")


def _opens_block(line: str) -> bool:
    """Lines that start a new block even without a blank line before them."""
    return (
        _is_fence(line)
        or _is_heading(line)
        or line.strip().startswith(_MATH_FENCE)
    )


def split_sections(source: str) -> list[tuple[int, int]]:
    """Split Markdown *source* into top-level sections as line ranges.

    Sections are runs of non-blank lines.  ATX headings are sections of
    their own, and a code fence or ``$$`` line opens a new section even
    directly after another line.  Fenced code keeps blank lines inside the
    fence.  An annotation-only line directly after a table or a math block
    starts its own section, as renderers emit it as a paragraph.

    Returns:
        ``(line_start, line_end)`` pairs, inclusive, in document order.
    """
    lines = source.split("\n")
    sections: list[tuple[int, int]] = []
    start: int | None = None
    in_fence = False
    in_math = False
    kind: str | None = None

    for i, line in enumerate(lines):
        stripped = line.strip()

        if in_fence:
            if _is_fence(line):
                in_fence = False
                sections.append((start, i))
                start = None
            continue

        if in_math:
            if stripped.endswith(_MATH_FENCE):
                in_math = False
            continue

        if not stripped:
            if start is not None:
                sections.append((start, i - 1))
                start = None
            continue

        if start is not None and _opens_block(line):
            sections.append((start, i - 1))
            start = None

        if start is None:
            start = i
            kind = None
            if _is_fence(line):
                in_fence = True
            elif _is_heading(line):
                sections.append((i, i))
                start = None
            elif stripped.startswith(_MATH_FENCE):
                kind = "math"
                in_math = stripped == _MATH_FENCE or not stripped.endswith(_MATH_FENCE)
            elif stripped.startswith(_TABLE_ROW):
                kind = "table"
            continue

        if kind in ("math", "table") and probe_whole(stripped):
            sections.append((start, i - 1))
            start = i
            kind = None

    if start is not None:
        sections.append((start, len(lines) - 1))
    return sections


class SourceSectionLookup:
    """Map top-level rendered blocks to source sections in document order.

    When the number of blocks and source sections disagree no block is
    mapped, so no annotation is recovered from the wrong lines.
    """

    def __init__(self, source: str, blocks: list[Any]) -> None:
        self.source = source
        ranges = split_sections(source)
        self._sections: dict[Any, SectionInfo] = {}
        if len(ranges) != len(blocks):
            logger.warning(
                "Section count mismatch: %d rendered blocks, %d source sections; "
                "skipping source recovery",
                len(blocks),
                len(ranges),
            )
            return
        self._sections = {
            block: SectionInfo(source, start, end)
            for block, (start, end) in zip(blocks, ranges, strict=True)
        }

    def section_info(self, block: Any) -> SectionInfo | None:
        return self._sections.get(block)


def render_html(
    html: str,
    source: str | None = None,
    config: TreeConfig | None = None,
) -> tuple[str, list[TargetBinding]]:
    """Apply annotations to a rendered HTML fragment.

    Args:
        html: Rendered HTML whose top-level elements are document sections.
        source: Markdown source the HTML was rendered from.  Enables
            recovery of code-fence, table, math and callout annotations.
        config: Tree settings (defaults to ``get_settings().tree``).

    Returns:
        ``(html, bindings)`` - the decorated HTML and every applied binding.
    """
    if not html or not html.strip():
        return html, []

    root = lxml_html.fragment_fromstring(html, create_parent="div")
    blocks = [child for child in root if isinstance(child.tag, str)]

    lookup = SourceSectionLookup(source, blocks) if source is not None else None
    processor = SectionPostProcessor(lookup=lookup, config=config)

    bindings: list[TargetBinding] = []
    for block in blocks:
        bindings.extend(processor.process(block))

    logger.info(
        "Rendered %d block(s): %d annotation(s) applied, %d left in place",
        len(blocks),
        sum(1 for b in bindings if b.stripped),
        sum(1 for b in bindings if not b.stripped),
    )

    rendered = (root.text or "") + "".join(
        lxml_html.tostring(child, encoding="unicode") for child in root
    )
    return rendered, bindings
