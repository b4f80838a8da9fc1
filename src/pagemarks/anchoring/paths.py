"""Structural paths: node -> path string and back.

A path is either a direct reference to a document-unique id,
``//*[@id="intro"]``, or a root-to-node sequence of ``tag[index]`` segments
where the 1-based index counts only preceding siblings with the same tag
name, ``/html[1]/body[1]/div[2]/p[1]``. Inserting a sibling with a
different tag never changes a path; inserting a same-tag sibling before the
target does.

Highlight markers are transparent to paths. A marker never appears as a
segment and its children count as children of the marker's parent, so a
path captured while highlights are shown still resolves on a page that has
not been highlighted yet.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup, NavigableString, Tag

from pagemarks.anchoring.marker_constants import MARKER_ID_ATTR, MARKER_TAG

if TYPE_CHECKING:
    from collections.abc import Iterator

    from bs4 import PageElement

ROOT_PATH = "/"

_ID_PATH = re.compile(r"""^//\*\[@id=(?:"([^"]*)"|'([^']*)')\]$""")
_SEGMENT = re.compile(r"^([A-Za-z][A-Za-z0-9_:.\-]*)(?:\[(\d+)\])?$")


class PathSyntaxError(ValueError):
    """A stored path that is not in either supported form."""


def is_marker(node: object) -> bool:
    """Return True if *node* is a highlight marker element."""
    return (
        isinstance(node, Tag)
        and node.name == MARKER_TAG
        and node.has_attr(MARKER_ID_ATTR)
    )


def addressable_element(node: PageElement | None) -> Tag | None:
    """Nearest element a path can denote.

    Text nodes defer to their parent element and markers to their nearest
    non-marker ancestor.
    """
    if isinstance(node, NavigableString):
        node = node.parent
    while node is not None and is_marker(node):
        node = node.parent
    return node  # type: ignore[return-value]


def _logical_parent(tag: Tag) -> Tag | None:
    parent = tag.parent
    while parent is not None and is_marker(parent):
        parent = parent.parent
    return parent


def _logical_children(tag: Tag) -> Iterator[Tag]:
    for child in tag.children:
        if not isinstance(child, Tag):
            continue
        if is_marker(child):
            yield from _logical_children(child)
        else:
            yield child


def _document_root(node: Tag) -> Tag:
    while node.parent is not None:
        node = node.parent
    return node


def _unique_id_path(tag: Tag) -> str | None:
    value = tag.get("id")
    if not value or not isinstance(value, str):
        return None
    matches = _document_root(tag).find_all(attrs={"id": value}, limit=2)
    if len(matches) != 1:
        return None
    if '"' not in value:
        return f'//*[@id="{value}"]'
    if "'" not in value:
        return f"//*[@id='{value}']"
    return None


def to_path(node: PageElement) -> str:
    """Return the structural path of *node* (or of its addressable element).

    Raises:
        ValueError: If *node* is a detached text node with no element parent.
    """
    element = addressable_element(node)
    if element is None:
        msg = "node has no element to address"
        raise ValueError(msg)
    if isinstance(element, BeautifulSoup):
        return ROOT_PATH

    id_path = _unique_id_path(element)
    if id_path is not None:
        return id_path

    parts: list[str] = []
    current: Tag = element
    while not isinstance(current, BeautifulSoup):
        parent = _logical_parent(current)
        index = 1
        if parent is not None:
            for sibling in _logical_children(parent):
                if sibling is current:
                    break
                if sibling.name == current.name:
                    index += 1
        parts.append(f"{current.name}[{index}]")
        if parent is None:
            break
        current = parent

    return "/" + "/".join(reversed(parts))


def _parse_segments(path: str) -> list[tuple[str, int]]:
    if not path.startswith("/") or path.startswith("//"):
        msg = f"unsupported path: {path!r}"
        raise PathSyntaxError(msg)
    segments: list[tuple[str, int]] = []
    for raw in path[1:].split("/"):
        match = _SEGMENT.match(raw)
        if match is None:
            msg = f"malformed path segment {raw!r} in {path!r}"
            raise PathSyntaxError(msg)
        index = int(match.group(2) or 1)
        if index < 1:
            msg = f"path indices are 1-based, got {raw!r}"
            raise PathSyntaxError(msg)
        segments.append((match.group(1).lower(), index))
    return segments


def from_path(document: BeautifulSoup, path: str) -> Tag | None:
    """Evaluate *path* against *document*.

    Returns None when no node matches, which is the normal outcome after the
    addressed element was removed or re-parented.

    Raises:
        PathSyntaxError: If *path* is not a supported path expression.
    """
    if not path:
        msg = "empty path"
        raise PathSyntaxError(msg)
    if path == ROOT_PATH:
        return document

    id_match = _ID_PATH.match(path)
    if id_match is not None:
        value = id_match.group(1)
        if value is None:
            value = id_match.group(2)
        found = document.find(attrs={"id": value})
        return found if isinstance(found, Tag) else None

    current: Tag = document
    for name, index in _parse_segments(path):
        seen = 0
        matched: Tag | None = None
        for child in _logical_children(current):
            if child.name == name:
                seen += 1
                if seen == index:
                    matched = child
                    break
        if matched is None:
            return None
        current = matched
    return current
