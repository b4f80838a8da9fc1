"""Anchor resolution: stored Anchor + live document -> text range.

Resolution is a cascade; each tier runs only when the previous one failed:

1. EXACT: the stored offsets, accepted only if they still cover exactly the
   stored text.
2. CONTEXT: the literal ``before + text + after`` in the container text.
3. PARTIAL_CONTEXT: the same with context shortened to
   ``partial_context_chars`` on each side.
4. NEAREST: among every occurrence of the text alone, the one whose start
   is closest to the stored start offset.

The live tree is walked fresh on every call and never modified. Failure is a
return value (None), never an exception, so a batch can skip an anchor and
carry on.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pagemarks.anchoring.paths import PathSyntaxError, from_path
from pagemarks.anchoring.ranges import map_offsets, range_text
from pagemarks.anchoring.text_nodes import text_content

if TYPE_CHECKING:
    from bs4 import BeautifulSoup, Tag

    from pagemarks.anchoring.ranges import TextRange
    from pagemarks.models import Anchor

logger = logging.getLogger(__name__)

DEFAULT_PARTIAL_CONTEXT_CHARS = 20


class ResolutionTier(enum.Enum):
    """Which strategy located the span."""

    EXACT = "exact"
    CONTEXT = "context"
    PARTIAL_CONTEXT = "partial_context"
    NEAREST = "nearest"


@dataclass(frozen=True, eq=False)
class Resolution:
    """A successfully resolved anchor.

    Attributes:
        range: Text-node boundaries of the span.
        tier: Strategy that found it.
        start: Offset of the span in the container's current text.
        container: Element the offsets are relative to.
    """

    range: TextRange
    tier: ResolutionTier
    start: int
    container: Tag


def locate_container(anchor: Anchor, document: BeautifulSoup) -> Tag | None:
    """Element addressed by the anchor's path, or None if it is gone."""
    try:
        return from_path(document, anchor.container_path)
    except PathSyntaxError:
        logger.warning(
            "Anchor %s has a malformed path %r", anchor.id, anchor.container_path
        )
        return None


def _search_root(document: BeautifulSoup) -> Tag:
    return document.body or document


def _all_occurrences(haystack: str, needle: str) -> list[int]:
    """Start index of every occurrence of *needle*, overlapping ones included."""
    found: list[int] = []
    index = haystack.find(needle)
    while index != -1:
        found.append(index)
        index = haystack.find(needle, index + 1)
    return found


def _context_search(content: str, before: str, text: str, after: str) -> int | None:
    """Start of *text* framed by *before*/*after* in *content*, or None.

    The literal concatenation is tried first. Context is only a hint, so a
    second pass lets the context differ in letter case while *text* itself
    must still match exactly.
    """
    index = content.find(before + text + after)
    if index != -1:
        return index + len(before)
    pattern = re.compile(
        f"(?i:{re.escape(before)}){re.escape(text)}(?i:{re.escape(after)})"
    )
    match = pattern.search(content)
    if match is None:
        return None
    return match.start() + len(before)


def _exact(anchor: Anchor, container: Tag) -> TextRange | None:
    rng = map_offsets(container, anchor.start_offset, anchor.end_offset)
    if rng is None or range_text(rng) != anchor.text:
        return None
    return rng


def _find_start(
    anchor: Anchor, content: str, partial_context_chars: int
) -> tuple[int, ResolutionTier] | None:
    """Offset of the span in *content* using the context and nearest tiers."""
    before, text, after = anchor.before_context, anchor.text, anchor.after_context

    # With no context the context tiers reduce to "first occurrence", which
    # is never better than the nearest one
    if before or after:
        start = _context_search(content, before, text, after)
        if start is not None:
            return start, ResolutionTier.CONTEXT

        short_before = before[-partial_context_chars:] if partial_context_chars else ""
        short_after = after[:partial_context_chars]
        if (short_before, short_after) != (before, after):
            start = _context_search(content, short_before, text, short_after)
            if start is not None:
                return start, ResolutionTier.PARTIAL_CONTEXT

    occurrences = _all_occurrences(content, text)
    if not occurrences:
        return None
    # min() keeps the first of equally distant candidates
    nearest = min(occurrences, key=lambda i: abs(i - anchor.start_offset))
    return nearest, ResolutionTier.NEAREST


def resolve_anchor(
    anchor: Anchor,
    document: BeautifulSoup,
    *,
    container: Tag | None = None,
    partial_context_chars: int = DEFAULT_PARTIAL_CONTEXT_CHARS,
) -> Resolution | None:
    """Re-locate *anchor* in *document*.

    Args:
        anchor: The stored anchor.
        document: The live document.
        container: Pre-located container; skips path evaluation. Used by
            batch restoration, which locates every container before the
            first marker changes the tree.
        partial_context_chars: Context kept on each side by the
            partial-context tier.

    Returns:
        The resolution, or None when the text no longer occurs in the
        search root.
    """
    if container is None:
        container = locate_container(anchor, document)

    if container is None:
        # Path no longer resolves: context and nearest tiers over the page
        logger.debug(
            "Anchor %s: path %s not found, searching whole document",
            anchor.id,
            anchor.container_path,
        )
        container = _search_root(document)
    else:
        rng = _exact(anchor, container)
        if rng is not None:
            return Resolution(
                rng, ResolutionTier.EXACT, anchor.start_offset, container
            )
        logger.debug("Anchor %s: exact offsets no longer match", anchor.id)

    content = text_content(container)
    found = _find_start(anchor, content, partial_context_chars)
    if found is None:
        logger.info(
            "Anchor %s unresolved: %r not found in %s",
            anchor.id,
            anchor.text[:40],
            anchor.container_path,
        )
        return None

    start, tier = found
    rng = map_offsets(container, start, start + len(anchor.text))
    if rng is None:
        return None
    logger.debug("Anchor %s resolved via %s at %d", anchor.id, tier.value, start)
    return Resolution(rng, tier, start, container)
