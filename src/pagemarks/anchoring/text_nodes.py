"""Document-order walk over the text-bearing leaves of a tree.

Every offset in the package counts characters of the concatenated text
leaves of a container, in document order, without whitespace collapsing.
Comments, CDATA and other preformatted strings carry no text, and the
subtrees of ``SKIP_TAGS`` are never entered, so an injected stylesheet never
shifts an offset.
"""

# Pattern: Functional Core (pure tree reads, no mutation)

from __future__ import annotations

from typing import TYPE_CHECKING

from bs4 import NavigableString, Tag
from bs4.element import PreformattedString

from pagemarks.anchoring.marker_constants import SKIP_TAGS

if TYPE_CHECKING:
    from collections.abc import Iterator

    from bs4 import PageElement


class InvalidRangeError(ValueError):
    """A boundary point or range that cannot be located or split."""


def is_text_leaf(node: object) -> bool:
    """Return True for strings that contribute to a container's text."""
    return isinstance(node, NavigableString) and not isinstance(
        node, PreformattedString
    )


def _walk(root: Tag) -> Iterator[PageElement]:
    """Yield every node below *root* in document order.

    Skipped tags are yielded themselves but their children are not.
    """
    stack = list(reversed(root.contents))
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, Tag) and node.name not in SKIP_TAGS:
            stack.extend(reversed(node.contents))


def iter_text_nodes(root: Tag) -> Iterator[NavigableString]:
    """Yield the text leaves of *root* in document order."""
    for node in _walk(root):
        if is_text_leaf(node):
            yield node  # type: ignore[misc]


def text_content(root: Tag) -> str:
    """Concatenated text of *root*'s leaves."""
    return "".join(iter_text_nodes(root))


def _offset_before(root: Tag, target: PageElement) -> int:
    """Length of the text that precedes *target* inside *root*."""
    if target is root:
        return 0
    total = 0
    for node in _walk(root):
        if node is target:
            return total
        if is_text_leaf(node):
            total += len(node)
    msg = "boundary node is not inside the container or lies in skipped content"
    raise InvalidRangeError(msg)


def text_offset(root: Tag, node: PageElement, offset: int) -> int:
    """Map a DOM-style boundary point to an offset in *root*'s text.

    A boundary point is either ``(text node, character offset)`` or
    ``(element, child index)``.

    Raises:
        InvalidRangeError: If the point is outside *root*, out of bounds, or
            inside a subtree that is never walked.
    """
    if isinstance(node, NavigableString):
        if not 0 <= offset <= len(node):
            msg = f"offset {offset} outside text node of length {len(node)}"
            raise InvalidRangeError(msg)
        before = _offset_before(root, node)
        return before + offset if is_text_leaf(node) else before

    if not isinstance(node, Tag):
        msg = f"unsupported boundary node type: {type(node).__name__}"
        raise InvalidRangeError(msg)
    if not 0 <= offset <= len(node.contents):
        msg = f"child index {offset} outside <{node.name}>"
        raise InvalidRangeError(msg)
    if node.name in SKIP_TAGS and node is not root:
        msg = f"boundary inside non-splittable <{node.name}>"
        raise InvalidRangeError(msg)

    if offset < len(node.contents):
        return _offset_before(root, node.contents[offset])
    return _offset_before(root, node) + len(text_content(node))
