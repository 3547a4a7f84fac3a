"""Host element-tree boundary.

The applier never touches a concrete DOM API directly; it goes through a
``TreeAdapter``.  ``LxmlTreeAdapter`` is the shipped implementation over
``lxml.html`` trees, where an element's directly-owned text lives in its
``text`` and in the ``tail`` of each child.  Those slots are exposed as
``LxmlTextNode`` objects so that "the element immediately before this text
node" is simply the child owning the tail.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

from lxml.html import HtmlElement

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mdattrs.config import TreeConfig


class AttributeRejectedError(Exception):
    """The host tree refused an attribute name or value."""

    def __init__(self, key: str, value: str | None, reason: str = "") -> None:
        self.key = key
        self.value = value
        message = f"{key!r} is not a valid attribute"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ElementKind(StrEnum):
    """Closed classification of host elements, computed once per element."""

    LIST_ITEM = "list_item"
    BLOCKQUOTE = "blockquote"
    CALLOUT = "callout"
    TABLE = "table"
    MATH_BLOCK = "math_block"
    PREFORMATTED = "preformatted"
    CODE = "code"
    PARAGRAPH = "paragraph"
    LINE_BREAK = "line_break"
    COLLAPSE_INDICATOR = "collapse_indicator"
    OTHER = "other"


# Kinds whose content is never scanned for annotations.
OPAQUE_KINDS = frozenset((ElementKind.PREFORMATTED, ElementKind.CODE))

_TAG_KINDS: dict[str, ElementKind] = {
    "li": ElementKind.LIST_ITEM,
    "blockquote": ElementKind.BLOCKQUOTE,
    "table": ElementKind.TABLE,
    "pre": ElementKind.PREFORMATTED,
    "code": ElementKind.CODE,
    "p": ElementKind.PARAGRAPH,
    "br": ElementKind.LINE_BREAK,
}

# XML Name production, which DOM setAttribute enforces.
_NAME_START = (
    "A-Za-z_:\u00c0-\u00d6\u00d8-\u00f6\u00f8-\u02ff\u0370-\u037d"
    "\u037f-\u1fff\u200c-\u200d\u2070-\u218f\u2c00-\u2fef\u3001-\ud7ff"
    "\uf900-\ufdcf\ufdf0-\ufffd\U00010000-\U000effff"
)
_NAME_CHAR = _NAME_START + "\\-.0-9\u00b7\u0300-\u036f\u203f-\u2040"
_ATTRIBUTE_NAME = re.compile(f"[{_NAME_START}][{_NAME_CHAR}]*")


def is_valid_attribute_name(name: str) -> bool:
    """True when *name* is accepted as an attribute name by a DOM."""
    return _ATTRIBUTE_NAME.fullmatch(name) is not None


class TextNode(Protocol):
    """A text node directly owned by an element."""

    @property
    def content(self) -> str: ...

    @content.setter
    def content(self, value: str) -> None: ...


@runtime_checkable
class TreeAdapter(Protocol):
    """Capabilities the applier needs from a host element tree."""

    def kind(self, element: Any) -> ElementKind:
        """Classify *element*."""
        ...

    def parent(self, element: Any) -> Any | None:
        """Return the parent element, or None at the root."""
        ...

    def child_elements(self, element: Any) -> list[Any]:
        """Return child elements (not text, not comments) in order."""
        ...

    def text_nodes(self, element: Any) -> list[TextNode]:
        """Return the non-empty text nodes *element* owns directly."""
        ...

    def previous_element(self, element: Any, node: TextNode) -> Any | None:
        """Return the element sibling immediately preceding *node*, if any."""
        ...

    def add_classes(self, element: Any, names: Iterable[str]) -> None:
        """Union *names* into the class set; raise AttributeRejectedError."""
        ...

    def set_attribute(self, element: Any, key: str, value: str) -> None:
        """Set an attribute; raise AttributeRejectedError when refused."""
        ...

    def text_content(self, element: Any) -> str: ...

    def prepend_text(self, element: Any, text: str) -> None: ...

    def remove(self, element: Any) -> None: ...


def _is_element(node: Any) -> bool:
    # lxml comments and processing instructions have a callable tag.
    return isinstance(node.tag, str)


@dataclass(eq=False)
class LxmlTextNode:
    """An lxml text slot: ``holder.text`` or ``holder.tail``."""

    holder: HtmlElement
    slot: Literal["text", "tail"]

    @property
    def content(self) -> str:
        return getattr(self.holder, self.slot) or ""

    @content.setter
    def content(self, value: str) -> None:
        setattr(self.holder, self.slot, value or None)


class LxmlTreeAdapter:
    """``TreeAdapter`` over ``lxml.html`` elements."""

    def __init__(self, config: TreeConfig | None = None) -> None:
        if config is None:
            from mdattrs.config import get_settings  # noqa: PLC0415

            config = get_settings().tree
        self.config = config

    def kind(self, element: HtmlElement) -> ElementKind:
        if not _is_element(element):
            return ElementKind.OTHER
        classes = set((element.get("class") or "").split())
        if self.config.collapse_indicator_class in classes:
            return ElementKind.COLLAPSE_INDICATOR
        if self.config.callout_class in classes:
            return ElementKind.CALLOUT
        if {"math", "math-block"} <= classes:
            return ElementKind.MATH_BLOCK
        return _TAG_KINDS.get(element.tag.lower(), ElementKind.OTHER)

    def parent(self, element: HtmlElement) -> HtmlElement | None:
        return element.getparent()

    def child_elements(self, element: HtmlElement) -> list[HtmlElement]:
        return [child for child in element if _is_element(child)]

    def text_nodes(self, element: HtmlElement) -> list[LxmlTextNode]:
        nodes: list[LxmlTextNode] = []
        if element.text:
            nodes.append(LxmlTextNode(element, "text"))
        for child in element:
            if child.tail:
                nodes.append(LxmlTextNode(child, "tail"))
        return nodes

    def previous_element(
        self, element: HtmlElement, node: LxmlTextNode
    ) -> HtmlElement | None:
        if node.slot == "tail" and _is_element(node.holder):
            return node.holder
        return None

    def add_classes(self, element: HtmlElement, names: Iterable[str]) -> None:
        names = list(names)
        if not names:
            raise AttributeRejectedError("class", "", "empty class name")
        current = (element.get("class") or "").split()
        for name in names:
            if name not in current:
                current.append(name)
        self.set_attribute(element, "class", " ".join(current))

    def set_attribute(self, element: HtmlElement, key: str, value: str) -> None:
        # lxml.html accepts names a browser DOM would refuse and serialises them
        # into broken markup.
        if not is_valid_attribute_name(key):
            raise AttributeRejectedError(key, value, "invalid attribute name")
        try:
            element.set(key, value)
        except (ValueError, TypeError) as exc:
            raise AttributeRejectedError(key, value, str(exc)) from exc

    def text_content(self, element: HtmlElement) -> str:
        return element.text_content()

    def prepend_text(self, element: HtmlElement, text: str) -> None:
        element.text = text + (element.text or "")

    def remove(self, element: HtmlElement) -> None:
        # drop_tree keeps the element's tail text in the document.
        element.drop_tree()
