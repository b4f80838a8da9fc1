"""Text ranges over a BeautifulSoup tree.

``TextRange`` follows the DOM Range model: each boundary is a node plus an
offset (characters for text nodes, child index for elements). It serves as
both the live selection handed to capture and the resolved range produced by
resolution; resolved ranges always have text-node boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from bs4 import NavigableString

from pagemarks.anchoring.text_nodes import (
    InvalidRangeError,
    iter_text_nodes,
    text_content,
    text_offset,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from bs4 import PageElement, Tag

__all__ = [
    "InvalidRangeError",
    "TextRange",
    "common_ancestor",
    "find_text_range",
    "map_offsets",
    "range_offsets",
    "range_text",
]


@dataclass(frozen=True, eq=False)
class TextRange:
    """A span between two boundary points.

    Compared by identity: two ranges over equal strings in different nodes
    are different ranges.
    """

    start_container: PageElement
    start_offset: int
    end_container: PageElement
    end_offset: int

    @property
    def collapsed(self) -> bool:
        return (
            self.start_container is self.end_container
            and self.start_offset == self.end_offset
        )


def _ancestors_inclusive(node: PageElement | None) -> Iterator[PageElement]:
    while node is not None:
        yield node
        node = node.parent


def common_ancestor(rng: TextRange) -> PageElement:
    """Deepest node containing both boundaries (may be a text node)."""
    start_chain = {id(n) for n in _ancestors_inclusive(rng.start_container)}
    for node in _ancestors_inclusive(rng.end_container):
        if id(node) in start_chain:
            return node
    msg = "range boundaries do not share a document"
    raise InvalidRangeError(msg)


def range_offsets(root: Tag, rng: TextRange) -> tuple[int, int]:
    """Start and end of *rng* as offsets into *root*'s text."""
    start = text_offset(root, rng.start_container, rng.start_offset)
    end = text_offset(root, rng.end_container, rng.end_offset)
    if end < start:
        msg = "range end precedes its start"
        raise InvalidRangeError(msg)
    return start, end


def range_text(rng: TextRange) -> str:
    """Plain text covered by *rng*."""
    root = common_ancestor(rng)
    if isinstance(root, NavigableString):
        if not 0 <= rng.start_offset <= rng.end_offset <= len(root):
            msg = "offsets outside the text node"
            raise InvalidRangeError(msg)
        return str(root)[rng.start_offset : rng.end_offset]
    start, end = range_offsets(root, rng)  # type: ignore[arg-type]
    return text_content(root)[start:end]  # type: ignore[arg-type]


def map_offsets(root: Tag, start: int, end: int) -> TextRange | None:
    """Map container offsets onto (leaf, intra-leaf offset) boundaries.

    The start leaf is the first whose cumulative end passes *start*; the end
    leaf is the first whose cumulative end reaches *end*. Returns None when
    the span does not fit inside the container's current text.
    """
    if start < 0 or end <= start:
        return None

    pos = 0
    start_node: NavigableString | None = None
    start_in_node = 0
    for leaf in iter_text_nodes(root):
        length = len(leaf)
        if start_node is None and pos + length > start:
            start_node, start_in_node = leaf, start - pos
        if start_node is not None and pos + length >= end:
            return TextRange(start_node, start_in_node, leaf, end - pos)
        pos += length
    return None


def find_text_range(root: Tag, text: str, occurrence: int = 0) -> TextRange | None:
    """Range over the *occurrence*-th (0-based) literal match of *text*.

    Simulates a user selection for tooling and tests.
    """
    if not text or occurrence < 0:
        return None
    content = text_content(root)
    index = content.find(text)
    for _ in range(occurrence):
        if index == -1:
            break
        index = content.find(text, index + 1)
    if index == -1:
        return None
    return map_offsets(root, index, index + len(text))
