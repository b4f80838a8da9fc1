"""Shared pytest fixtures for pagemarks tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from pagemarks.anchoring import parse_document
from pagemarks.config import Settings
from pagemarks.storage import InMemoryAnchorStore, clear_store_cache

if TYPE_CHECKING:
    from collections.abc import Iterator

    from bs4 import BeautifulSoup

# =============================================================================
# HTML fixtures
# =============================================================================

FOX_SENTENCE = "The quick brown fox jumps over the lazy dog"

ARTICLE_HTML = """<!DOCTYPE html>
<html>
<head><title>Fox</title></head>
<body>
<div class="article">
<p>The quick brown fox jumps over the lazy dog</p>
<p>Hello <b>bold text</b> and <i>italic text</i> end.</p>
<p id="note">A note with <img src="x.png" alt="x"> an image inside.</p>
</div>
</body>
</html>"""


@pytest.fixture
def article() -> BeautifulSoup:
    """The multi-paragraph article page."""
    return parse_document(ARTICLE_HTML)


@pytest.fixture
def fox_document() -> BeautifulSoup:
    """A page whose only paragraph holds the fox sentence."""
    return parse_document(f"<html><body><p>{FOX_SENTENCE}</p></body></html>")


# =============================================================================
# Settings and storage
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings built from defaults only, never from a real .env."""
    return Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def store() -> InMemoryAnchorStore:
    return InMemoryAnchorStore()


@pytest.fixture(autouse=True)
def _reset_store_cache() -> Iterator[None]:
    """Every test starts with fresh settings and no cached store."""
    clear_store_cache()
    yield
    clear_store_cache()
