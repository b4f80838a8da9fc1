"""Span materialization: enclose a range in a marker element, or dissolve it.

Wrapping splits the boundary text nodes and then either encloses the run of
siblings between the two boundaries directly, or, when the boundaries sit
under different parents, splits the partially selected ancestors by shallow
cloning and moves the selected pieces into the marker. Every node inside
the range ends up below the marker and no text outside it changes. A marker
split this way (overlapping highlights) leaves fragments sharing its id, and
unwrapping dissolves all of them.

The range is validated before the tree is touched, so a failed wrap leaves
the document exactly as it was.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeAlias

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString, Stylesheet

from pagemarks.anchoring.marker_constants import (
    MARKER_CLASS,
    MARKER_ID_ATTR,
    MARKER_TAG,
    SKIP_TAGS,
    STYLE_ELEMENT_ID,
    render_stylesheet,
)
from pagemarks.anchoring.paths import is_marker
from pagemarks.anchoring.text_nodes import InvalidRangeError, is_text_leaf

if TYPE_CHECKING:
    from bs4 import PageElement

    from pagemarks.anchoring.ranges import TextRange

logger = logging.getLogger(__name__)

# A point sits immediately before ``ref`` inside ``parent`` (None = at the end)
_Point: TypeAlias = "tuple[Tag, PageElement | None]"


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------


def _index(parent: Tag, child: PageElement | None) -> int:
    """Identity-based child index (bs4 compares strings by value)."""
    if child is None:
        return len(parent.contents)
    for i, candidate in enumerate(parent.contents):
        if candidate is child:
            return i
    msg = "node is not a child of the expected parent"
    raise InvalidRangeError(msg)


def _document_of(node: PageElement) -> BeautifulSoup:
    top = node
    while top.parent is not None:
        top = top.parent
    if not isinstance(top, BeautifulSoup):
        msg = "range is not attached to a document"
        raise InvalidRangeError(msg)
    return top


def _position_key(node: PageElement, offset: int) -> tuple[int, ...]:
    """Sortable key of a boundary point in document order.

    Descending into child ``i`` contributes ``2i + 1``; an element point
    before child ``k`` ends in ``2k``; a text point ends in its character
    offset below its own node's step.
    """
    steps: list[int] = []
    current = node
    while current.parent is not None:
        steps.append(2 * _index(current.parent, current) + 1)
        current = current.parent
    steps.reverse()
    if isinstance(node, NavigableString):
        return (*steps, offset)
    return (*steps, 2 * offset)


def _validate_point(node: PageElement, offset: int) -> None:
    if isinstance(node, NavigableString):
        if isinstance(node, PreformattedString):
            msg = "boundary inside a comment or other non-text string"
            raise InvalidRangeError(msg)
        if not 0 <= offset <= len(node):
            msg = f"offset {offset} outside text node of length {len(node)}"
            raise InvalidRangeError(msg)
        element = node.parent
    elif isinstance(node, Tag):
        if not 0 <= offset <= len(node.contents):
            msg = f"child index {offset} outside <{node.name}>"
            raise InvalidRangeError(msg)
        element = node
    else:
        msg = f"unsupported boundary node type: {type(node).__name__}"
        raise InvalidRangeError(msg)

    while element is not None:
        if isinstance(element, Tag) and element.name in SKIP_TAGS:
            msg = f"boundary inside non-splittable <{element.name}>"
            raise InvalidRangeError(msg)
        element = element.parent


def _validate(rng: TextRange) -> BeautifulSoup:
    """Check every precondition of a wrap; returns the owning document."""
    _validate_point(rng.start_container, rng.start_offset)
    _validate_point(rng.end_container, rng.end_offset)
    document = _document_of(rng.start_container)
    if _document_of(rng.end_container) is not document:
        msg = "range boundaries belong to different documents"
        raise InvalidRangeError(msg)
    start = _position_key(rng.start_container, rng.start_offset)
    end = _position_key(rng.end_container, rng.end_offset)
    if start >= end:
        msg = "range is empty or reversed"
        raise InvalidRangeError(msg)
    return document


def _split_text(node: NavigableString, offset: int) -> tuple[NavigableString, ...]:
    """Replace *node* with two strings split at *offset*; returns (head, tail)."""
    head = NavigableString(str(node)[:offset])
    tail = NavigableString(str(node)[offset:])
    node.replace_with(head)
    head.insert_after(tail)
    return head, tail


def _shallow_clone(document: BeautifulSoup, tag: Tag) -> Tag:
    """Copy of *tag* without children or id (ids must stay unique)."""
    attrs = {
        key: list(value) if isinstance(value, list) else value
        for key, value in tag.attrs.items()
        if key != "id"
    }
    return document.new_tag(tag.name, attrs=attrs)


def _new_marker(document: BeautifulSoup, marker_id: str) -> Tag:
    return document.new_tag(
        MARKER_TAG, attrs={"class": MARKER_CLASS, MARKER_ID_ATTR: marker_id}
    )


def _child_of(ancestor: Tag, node: Tag) -> Tag:
    while node.parent is not ancestor:
        node = node.parent  # type: ignore[assignment]
    return node


def _common_tag(a: Tag, b: Tag) -> Tag:
    chain = set()
    node: Tag | None = a
    while node is not None:
        chain.add(id(node))
        node = node.parent
    node = b
    while id(node) not in chain:
        node = node.parent  # type: ignore[assignment]
    return node  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Boundary preparation
# ---------------------------------------------------------------------------


def _split_boundaries(rng: TextRange) -> tuple[_Point, _Point]:
    """Split boundary text nodes and express both boundaries as element points."""
    start_node, start_offset = rng.start_container, rng.start_offset
    end_node, end_offset = rng.end_container, rng.end_offset

    # End first: splitting it never disturbs an earlier start point
    end_point: _Point
    if isinstance(end_node, NavigableString):
        parent = end_node.parent
        if end_offset == 0:
            end_point = (parent, end_node)
        elif end_offset == len(end_node):
            end_point = (parent, end_node.next_sibling)
        else:
            head, tail = _split_text(end_node, end_offset)
            end_point = (parent, tail)
            if start_node is end_node:
                start_node = head
    else:
        contents = end_node.contents
        ref = contents[end_offset] if end_offset < len(contents) else None
        end_point = (end_node, ref)

    start_point: _Point
    if isinstance(start_node, NavigableString):
        parent = start_node.parent
        if start_offset == 0:
            start_point = (parent, start_node)
        elif start_offset == len(start_node):
            start_point = (parent, start_node.next_sibling)
        else:
            _, tail = _split_text(start_node, start_offset)
            start_point = (parent, tail)
    else:
        contents = start_node.contents
        ref = contents[start_offset] if start_offset < len(contents) else None
        start_point = (start_node, ref)

    return start_point, end_point


def _hoist(parent: Tag, index: int, stop: Tag) -> tuple[Tag, int]:
    """Move a point at the very start or end of an element up to its parent."""
    while parent is not stop and index in (0, len(parent.contents)):
        grandparent = parent.parent
        position = _index(grandparent, parent)  # type: ignore[arg-type]
        index = position if index == 0 else position + 1
        parent = grandparent  # type: ignore[assignment]
    return parent, index


def _split_off_tail(document: BeautifulSoup, node: Tag, index: int, stop: Tag) -> Tag:
    """Move everything after (node, index) up to *stop* into cloned ancestors."""
    clone = _shallow_clone(document, node)
    for child in list(node.contents[index:]):
        clone.append(child.extract())
    while node is not stop:
        parent: Tag = node.parent  # type: ignore[assignment]
        position = _index(parent, node) + 1
        parent_clone = _shallow_clone(document, parent)
        parent_clone.append(clone)
        for child in list(parent.contents[position:]):
            parent_clone.append(child.extract())
        clone, node = parent_clone, parent
    return clone


def _split_off_head(document: BeautifulSoup, node: Tag, index: int, stop: Tag) -> Tag:
    """Move everything before (node, index) up to *stop* into cloned ancestors."""
    clone = _shallow_clone(document, node)
    for child in list(node.contents[:index]):
        clone.append(child.extract())
    while node is not stop:
        parent: Tag = node.parent  # type: ignore[assignment]
        position = _index(parent, node)
        parent_clone = _shallow_clone(document, parent)
        for child in list(parent.contents[:position]):
            parent_clone.append(child.extract())
        parent_clone.append(clone)
        clone, node = parent_clone, parent
    return clone


# ---------------------------------------------------------------------------
# Wrap / unwrap
# ---------------------------------------------------------------------------


def _enclose(parent: Tag, lo: int, hi: int, marker: Tag) -> None:
    for child in list(parent.contents[lo:hi]):
        marker.append(child.extract())
    parent.insert(lo, marker)


def _extract_and_insert(
    document: BeautifulSoup,
    start: tuple[Tag, int],
    end: tuple[Tag, int],
    marker: Tag,
) -> None:
    """Fallback for boundaries under different parents."""
    start_parent, start_index = start
    end_parent, end_index = end
    ancestor = _common_tag(start_parent, end_parent)

    start_top = None if start_parent is ancestor else _child_of(ancestor, start_parent)
    end_top = None if end_parent is ancestor else _child_of(ancestor, end_parent)
    lo = start_index if start_top is None else _index(ancestor, start_top) + 1
    hi = end_index if end_top is None else _index(ancestor, end_top)

    head_part = None
    if start_top is not None:
        head_part = _split_off_tail(document, start_parent, start_index, start_top)
    tail_part = None
    if end_top is not None:
        tail_part = _split_off_head(document, end_parent, end_index, end_top)

    middle = [child.extract() for child in list(ancestor.contents[lo:hi])]
    if head_part is not None:
        marker.append(head_part)
    for child in middle:
        marker.append(child)
    if tail_part is not None:
        marker.append(tail_part)
    ancestor.insert(lo, marker)


def wrap_range(rng: TextRange, marker_id: str) -> bool:
    """Enclose *rng* in a marker element carrying *marker_id*.

    Returns:
        True on success. False when the range cannot be enclosed (detached,
        empty, reversed, or a boundary inside non-splittable content); the
        document is then unchanged.
    """
    try:
        document = _validate(rng)
    except InvalidRangeError as exc:
        logger.info("Cannot materialize %s: %s", marker_id, exc)
        return False

    (start_parent, start_ref), (end_parent, end_ref) = _split_boundaries(rng)
    start_index = _index(start_parent, start_ref)
    end_index = _index(end_parent, end_ref)
    if start_parent is not end_parent:
        ancestor = _common_tag(start_parent, end_parent)
        start_parent, start_index = _hoist(start_parent, start_index, ancestor)
        end_parent, end_index = _hoist(end_parent, end_index, ancestor)

    # Only splits strictly inside a text node mutate, and those imply content
    if start_parent is end_parent and start_index >= end_index:
        logger.info("Cannot materialize %s: range covers no content", marker_id)
        return False

    marker = _new_marker(document, marker_id)
    if start_parent is end_parent:
        _enclose(start_parent, start_index, end_index, marker)
    else:
        _extract_and_insert(
            document, (start_parent, start_index), (end_parent, end_index), marker
        )
    logger.debug("Wrapped %s", marker_id)
    return True


def find_marker(document: BeautifulSoup, marker_id: str) -> Tag | None:
    """The marker element for *marker_id*, if present."""
    found = document.find(MARKER_TAG, attrs={MARKER_ID_ATTR: marker_id})
    return found if isinstance(found, Tag) else None


def list_marker_ids(document: BeautifulSoup) -> list[str]:
    """Ids of all markers in document order, without duplicates."""
    ids: dict[str, None] = {}
    for tag in document.find_all(MARKER_TAG, attrs={MARKER_ID_ATTR: True}):
        ids[str(tag[MARKER_ID_ATTR])] = None
    return list(ids)


def marker_id_for(node: PageElement | None) -> str | None:
    """Id of the innermost marker containing *node* (pointer-action lookup)."""
    while node is not None:
        if is_marker(node):
            return str(node[MARKER_ID_ATTR])  # type: ignore[index]
        node = node.parent
    return None


def _normalize(root: Tag) -> None:
    """Merge adjacent text nodes and drop empty ones (DOM ``normalize``)."""
    root.smooth()
    empties = [
        node
        for node in root.descendants
        if is_text_leaf(node) and len(node) == 0  # type: ignore[arg-type]
    ]
    for node in empties:
        node.extract()


def unwrap_marker(document: BeautifulSoup, marker_id: str) -> bool:
    """Dissolve every marker element for *marker_id*, keeping children in place.

    Returns:
        True if a marker was removed, False if none existed (a no-op, so
        repeated removal requests are harmless).
    """
    markers = document.find_all(MARKER_TAG, attrs={MARKER_ID_ATTR: marker_id})
    if not markers:
        return False
    # A later overlapping wrap may have split the marker into several fragments
    parents: dict[int, Tag] = {}
    for marker in markers:
        parent = marker.parent
        marker.unwrap()
        if parent is not None:
            parents[id(parent)] = parent
    for parent in parents.values():
        _normalize(parent)
    logger.debug("Unwrapped %s (%d element(s))", marker_id, len(markers))
    return True


def ensure_marker_styles(document: BeautifulSoup, css: str | None = None) -> bool:
    """Insert the marker stylesheet once per document.

    Returns:
        True if the stylesheet was added, False if it was already present.
    """
    if document.find(id=STYLE_ELEMENT_ID) is not None:
        return False

    head = document.head
    if head is None:
        head = document.new_tag("head")
        html = document.html
        (html if html is not None else document).insert(0, head)

    style = document.new_tag("style", attrs={"id": STYLE_ELEMENT_ID})
    style.string = Stylesheet(css if css is not None else render_stylesheet())
    head.append(style)
    return True
