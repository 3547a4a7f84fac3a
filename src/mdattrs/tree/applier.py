"""Apply ``{...}`` annotations found in a rendered element tree.

Walks the tree depth-first, pre-order.  At each element only the text the
element owns directly is scanned; nested elements are scanned when visited.

Two cases are distinguished:

- Block trailer: the own text ends with a line holding only an annotation.
  The attributes go to the element, or to its container for list items,
  blockquote children and callouts.
- Inline: an annotation anywhere in a text node.  The attributes go to the
  element sibling immediately before that text node, or to the current
  element when there is none.

``pre`` and ``code`` children are never entered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from mdattrs.grammar import (
    ClassToken,
    FlagToken,
    KeyValueToken,
    probe_contains,
    scan_block_trailer,
    scan_inline,
    strip_quotes,
)
from mdattrs.tree.adapter import (
    OPAQUE_KINDS,
    AttributeRejectedError,
    ElementKind,
    LxmlTreeAdapter,
)

if TYPE_CHECKING:
    from mdattrs.config import TreeConfig
    from mdattrs.grammar import AnnotationMatch
    from mdattrs.tree.adapter import TextNode, TreeAdapter

logger = logging.getLogger(__name__)

_RETARGET_KINDS = frozenset((ElementKind.LIST_ITEM, ElementKind.CALLOUT))
_CLIMB_KINDS = frozenset((ElementKind.COLLAPSE_INDICATOR, ElementKind.LINE_BREAK))


@dataclass
class TargetBinding:
    """An annotation paired with the element it decorates.

    Attributes:
        match: The annotation that was found.
        target: Element that received the attributes.
        owner: Element whose own text held the annotation.
        text_node: Text node the annotation was stripped from (None when the
            text could not be located or application failed).
        level: ``"block"`` for trailers, ``"inline"`` otherwise.
        stripped: Whether the annotation text was removed.
    """

    match: AnnotationMatch
    target: Any
    owner: Any
    text_node: TextNode | None
    level: Literal["block", "inline"]
    stripped: bool = False


class TreeApplier:
    """Decorate a static element tree from the annotations it contains."""

    def __init__(
        self,
        adapter: TreeAdapter | None = None,
        config: TreeConfig | None = None,
    ) -> None:
        if config is None:
            from mdattrs.config import get_settings  # noqa: PLC0415

            config = get_settings().tree
        self.config = config
        self.adapter = adapter if adapter is not None else LxmlTreeAdapter(config)
        self._kinds: dict[Any, ElementKind] = {}

    def apply(self, root: Any) -> list[TargetBinding]:
        """Apply every annotation under *root* in place.

        Returns:
            Bindings in the order they were applied, including failed ones
            (``stripped=False``).
        """
        self._kinds = {}
        try:
            return self._visit(root)
        finally:
            self._kinds = {}

    # ------------------------------------------------------------------
    # Walk
    # ------------------------------------------------------------------

    def _kind(self, element: Any) -> ElementKind:
        kind = self._kinds.get(element)
        if kind is None:
            kind = self.adapter.kind(element)
            self._kinds[element] = kind
        return kind

    def own_text(self, element: Any) -> str:
        """Concatenate the text nodes *element* owns directly."""
        return "".join(node.content for node in self.adapter.text_nodes(element))

    def _visit(self, element: Any) -> list[TargetBinding]:
        bindings: list[TargetBinding] = []
        text = self.own_text(element)

        block = scan_block_trailer(text)
        if block is not None:
            binding = self._apply_block(element, block)
            bindings.append(binding)
            if binding.stripped and self._kind(element) is ElementKind.LIST_ITEM:
                # Removing the trailer can expose inline annotations; the
                # re-run also covers this item's children.
                bindings.extend(self._visit(element))
                return bindings
        elif probe_contains(text):
            binding = self._apply_inline(element)
            if binding is not None:
                bindings.append(binding)

        for child in self.adapter.child_elements(element):
            if self._kind(child) in OPAQUE_KINDS:
                continue
            bindings.extend(self._visit(child))

        return bindings

    # ------------------------------------------------------------------
    # Block trailers
    # ------------------------------------------------------------------

    def _block_target(self, element: Any) -> Any:
        parent = self.adapter.parent(element)
        if parent is None:
            return element
        if self._kind(element) in _RETARGET_KINDS:
            return parent
        if self._kind(parent) is ElementKind.BLOCKQUOTE:
            return parent
        return element

    def _apply_block(self, element: Any, match: AnnotationMatch) -> TargetBinding:
        target = self._block_target(element)
        binding = TargetBinding(
            match=match,
            target=target,
            owner=element,
            text_node=None,
            level="block",
        )
        if not self._apply_attributes(target, match):
            return binding

        nodes = self.adapter.text_nodes(element)
        for node in reversed(nodes):
            content = node.content
            idx = content.rfind(match.raw)
            if idx != -1:
                node.content = content[:idx] + content[idx + len(match.raw) :]
                binding.text_node = node
                binding.stripped = True
                return binding

        # The trailer straddles text nodes (e.g. the newline sits before an
        # inline element); remove just the braces part.
        for node in reversed(nodes):
            content = node.content
            idx = content.rfind(match.annotation)
            if idx != -1:
                node.content = (
                    content[:idx] + content[idx + len(match.annotation) :].rstrip(" ")
                )
                binding.text_node = node
                binding.stripped = True
                return binding

        logger.debug("Block annotation %r not found in any text node", match.raw)
        return binding

    # ------------------------------------------------------------------
    # Inline annotations
    # ------------------------------------------------------------------

    def _inline_target(self, element: Any, node: TextNode) -> Any:
        sibling = self.adapter.previous_element(element, node)
        if sibling is None:
            return element
        if self._kind(sibling) in _CLIMB_KINDS:
            parent = self.adapter.parent(sibling)
            return parent if parent is not None else element
        return sibling

    def _apply_inline(self, element: Any) -> TargetBinding | None:
        for node in self.adapter.text_nodes(element):
            match = scan_inline(node.content)
            if match is None:
                continue

            target = self._inline_target(element, node)
            binding = TargetBinding(
                match=match,
                target=target,
                owner=element,
                text_node=node,
                level="inline",
            )
            if self._apply_attributes(target, match):
                content = node.content
                node.content = content[: match.start] + content[match.end :]
                binding.stripped = True
            return binding

        # The annotation only exists across several text nodes.
        logger.debug("Inline annotation spans several text nodes; skipped")
        return None

    # ------------------------------------------------------------------
    # Attribute application
    # ------------------------------------------------------------------

    def _apply_attributes(self, target: Any, match: AnnotationMatch) -> bool:
        """Apply *match* to *target*; False means leave the text in place.

        Stops at the first rejected attribute.  Attributes set before the
        rejection stay set.
        """
        if not match.tokens:
            return False

        for token in match.tokens:
            try:
                match token:
                    case ClassToken(name=name):
                        self.adapter.add_classes(target, strip_quotes(name).split())
                    case KeyValueToken(key=key, value=value):
                        self.adapter.set_attribute(target, key, strip_quotes(value))
                    case FlagToken(name=name):
                        self.adapter.set_attribute(
                            target, name, self.config.flag_value
                        )
            except AttributeRejectedError as exc:
                logger.warning(
                    "Annotation %r left in place: %s", match.annotation, exc
                )
                return False
        return True


def apply_annotations(
    root: Any, config: TreeConfig | None = None
) -> list[TargetBinding]:
    """Apply annotations under an lxml *root* with the default adapter."""
    return TreeApplier(config=config).apply(root)
