"""Shared pytest fixtures for mdattrs tests."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from mdattrs.config import get_settings

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep developer env vars out of cached settings."""
    for key in list(os.environ):
        if key.startswith(("TREE__", "LIVE__", "LOGGING__")):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
