"""Read-modify-write helpers over an anchor store.

Each helper accepts a raw URL and normalises it into a page identity, so
callers never have to remember to. Every change goes through the store's
``update_anchors``, so helpers running concurrently on one page never
overwrite each other.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pagemarks.models import normalize_page_id

if TYPE_CHECKING:
    from pagemarks.models import Anchor
    from pagemarks.storage.protocol import AnchorStoreProtocol

logger = logging.getLogger(__name__)


async def add_anchor(store: AnchorStoreProtocol, url: str, anchor: Anchor) -> None:
    """Append *anchor* to the page's anchors."""
    page_id = normalize_page_id(url)
    await store.update_anchors(page_id, lambda anchors: [*anchors, anchor])
    logger.info("Stored anchor %s for %s", anchor.id, page_id)


async def get_anchor(
    store: AnchorStoreProtocol, url: str, anchor_id: str
) -> Anchor | None:
    """Look up one anchor by id."""
    for anchor in await store.load_anchors(normalize_page_id(url)):
        if anchor.id == anchor_id:
            return anchor
    return None


async def remove_anchor(store: AnchorStoreProtocol, url: str, anchor_id: str) -> bool:
    """Delete the anchor with *anchor_id*.

    Returns:
        True if an anchor was removed, False if the id was not stored.
    """
    page_id = normalize_page_id(url)

    def drop(anchors: list[Anchor]) -> list[Anchor] | None:
        remaining = [a for a in anchors if a.id != anchor_id]
        return remaining if len(remaining) != len(anchors) else None

    removed = await store.update_anchors(page_id, drop)
    if removed:
        logger.info("Removed anchor %s from %s", anchor_id, page_id)
    return removed


async def update_anchor_metadata(
    store: AnchorStoreProtocol,
    url: str,
    anchor_id: str,
    *,
    comment: str | None = None,
    tags: list[str] | None = None,
) -> Anchor | None:
    """Change the comment and/or tags of a stored anchor.

    Returns:
        The updated anchor, or None if the id was not stored.
    """
    updated: Anchor | None = None

    def apply(anchors: list[Anchor]) -> list[Anchor] | None:
        nonlocal updated
        for i, anchor in enumerate(anchors):
            if anchor.id == anchor_id:
                updated = anchor.with_metadata(comment=comment, tags=tags)
                anchors[i] = updated
                return anchors
        return None

    await store.update_anchors(normalize_page_id(url), apply)
    return updated


async def clear_page(store: AnchorStoreProtocol, url: str) -> int:
    """Delete every anchor of a page; returns how many were removed."""
    page_id = normalize_page_id(url)
    count = 0

    def empty(anchors: list[Anchor]) -> list[Anchor] | None:
        nonlocal count
        count = len(anchors)
        return [] if anchors else None

    if await store.update_anchors(page_id, empty):
        logger.info("Cleared %d anchors from %s", count, page_id)
    return count
