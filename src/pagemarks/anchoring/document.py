"""Loading, serializing and inspecting HTML documents.

The mutable working tree is a BeautifulSoup tree built by lxml, which always
produces ``html``/``body`` elements so structural paths have a stable root.
Serialized output is inspected with selectolax, independently of the tree
that produced it.
"""

from __future__ import annotations

from bs4 import BeautifulSoup
from selectolax.lexbor import LexborHTMLParser

from pagemarks.anchoring.marker_constants import MARKER_ID_ATTR, MARKER_SELECTOR


def parse_document(html: str | bytes) -> BeautifulSoup:
    """Parse *html* into a mutable document."""
    return BeautifulSoup(html, "lxml")


def serialize_document(document: BeautifulSoup) -> str:
    """Serialize *document* back to HTML."""
    return str(document)


def marker_texts(html: str) -> dict[str, str]:
    """Text covered by each marker in serialized *html*, keyed by marker id.

    A span split across several marker elements with the same id is joined
    in document order.
    """
    if not html:
        return {}
    tree = LexborHTMLParser(html)
    found: dict[str, str] = {}
    for node in tree.css(MARKER_SELECTOR):
        marker_id = node.attributes.get(MARKER_ID_ATTR)
        if marker_id is None:
            continue
        found[marker_id] = found.get(marker_id, "") + (node.text(deep=True) or "")
    return found
