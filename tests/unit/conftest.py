"""Shared fixtures for unit tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from lxml import html as lxml_html

from mdattrs.config import LiveConfig, TreeConfig
from mdattrs.tree import LxmlTreeAdapter, TreeApplier

if TYPE_CHECKING:
    from collections.abc import Callable

    from lxml.html import HtmlElement


@pytest.fixture
def tree_config() -> TreeConfig:
    return TreeConfig()


@pytest.fixture
def live_config() -> LiveConfig:
    return LiveConfig()


@pytest.fixture
def applier(tree_config: TreeConfig) -> TreeApplier:
    return TreeApplier(LxmlTreeAdapter(tree_config), tree_config)


@pytest.fixture
def parse() -> Callable[[str], HtmlElement]:
    """Parse an HTML fragment under a wrapping ``<div>``."""

    def _parse(fragment: str) -> HtmlElement:
        return lxml_html.fragment_fromstring(fragment, create_parent="div")

    return _parse
