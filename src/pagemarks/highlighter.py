"""Per-page orchestration of capture, persistence and materialization.

A PageHighlighter owns one loaded document and the page identity it was
loaded from. It keeps the document and the store consistent in the order
that makes a crash or a storage failure harmless:

- saving persists before the marker is inserted, so a failed save never
  shows a highlight that will vanish on reload;
- removing deletes from storage before the marker is dissolved, so a failed
  delete never hides a highlight that will come back on reload.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pagemarks.anchoring import (
    capture_anchor,
    ensure_marker_styles,
    find_marker,
    list_marker_ids,
    marker_id_for,
    resolve_anchor,
    unwrap_marker,
    wrap_range,
)
from pagemarks.anchoring.resolve import locate_container
from pagemarks.config import get_settings
from pagemarks.messaging import ACTION_REFRESH, ACTION_REMOVED, ACTION_SAVED
from pagemarks.models import normalize_page_id
from pagemarks.storage import operations

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from bs4 import BeautifulSoup, PageElement

    from pagemarks.anchoring import ResolutionTier, TextRange
    from pagemarks.config import Settings
    from pagemarks.messaging import MessageChannelProtocol
    from pagemarks.models import Anchor
    from pagemarks.storage import AnchorStoreProtocol

logger = logging.getLogger(__name__)


@dataclass
class RestoreReport:
    """Outcome of one restoration pass.

    Attributes:
        materialized: Anchor id -> tier that located it, in stored order.
        unresolved: Anchors whose text no longer occurs on the page.
        failed: Anchors that resolved but could not be wrapped.
        skipped: Anchors already shown on the page.
    """

    materialized: dict[str, ResolutionTier] = field(default_factory=dict)
    unresolved: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return (
            len(self.materialized)
            + len(self.unresolved)
            + len(self.failed)
            + len(self.skipped)
        )


class PageHighlighter:
    """Highlights of one page, kept in sync with an anchor store."""

    def __init__(
        self,
        document: BeautifulSoup,
        url: str,
        store: AnchorStoreProtocol,
        *,
        channel: MessageChannelProtocol | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.document = document
        self.url = url
        self.page_id = normalize_page_id(url)
        self.store = store
        self.channel = channel
        self.context_chars = settings.anchor.context_chars
        self.partial_context_chars = settings.anchor.partial_context_chars
        self.context_strategy = settings.anchor.context_strategy
        self.stylesheet = settings.marker.stylesheet()
        self._unsubscribers: list[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Restoration
    # ------------------------------------------------------------------
    async def restore(self) -> RestoreReport:
        """Materialize every stored anchor not already shown.

        Containers are located on the tree as loaded, before the first
        marker is inserted. Failures are recorded and never stop the batch.

        Raises:
            StorageUnavailableError: If the anchors cannot be loaded.
        """
        ensure_marker_styles(self.document, self.stylesheet)
        anchors = await self.store.load_anchors(self.page_id)
        report = RestoreReport()

        pending = []
        for anchor in anchors:
            if find_marker(self.document, anchor.id) is not None:
                report.skipped.append(anchor.id)
            else:
                pending.append((anchor, locate_container(anchor, self.document)))

        for anchor, container in pending:
            resolution = resolve_anchor(
                anchor,
                self.document,
                container=container,
                partial_context_chars=self.partial_context_chars,
            )
            if resolution is None:
                report.unresolved.append(anchor.id)
            elif wrap_range(resolution.range, anchor.id):
                report.materialized[anchor.id] = resolution.tier
            else:
                report.failed.append(anchor.id)

        logger.info(
            "Restored %d/%d anchors on %s (%d unresolved, %d failed)",
            len(report.materialized) + len(report.skipped),
            report.total,
            self.page_id,
            len(report.unresolved),
            len(report.failed),
        )
        return report

    async def refresh(self) -> RestoreReport:
        """Drop markers whose anchors are gone, then restore the rest."""
        stored = {anchor.id for anchor in await self.store.load_anchors(self.page_id)}
        for marker_id in list_marker_ids(self.document):
            if marker_id not in stored:
                unwrap_marker(self.document, marker_id)
                logger.debug("Dropped stale marker %s", marker_id)
        return await self.restore()

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------
    async def save_selection(
        self,
        selection: TextRange,
        *,
        comment: str | None = None,
        tags: Iterable[str] = (),
    ) -> Anchor | None:
        """Capture, persist and show the current selection.

        Returns:
            The stored anchor, or None for an empty selection.

        Raises:
            StorageUnavailableError: If the anchor cannot be stored; the
                document is left untouched.
        """
        anchor = capture_anchor(
            selection,
            context_chars=self.context_chars,
            strategy=self.context_strategy,
        )
        if anchor is None:
            logger.debug("Ignoring empty selection on %s", self.page_id)
            return None
        if comment or tags:
            anchor = anchor.with_metadata(comment=comment, tags=list(tags))

        await operations.add_anchor(self.store, self.url, anchor)

        ensure_marker_styles(self.document, self.stylesheet)
        # Offsets are fresh, so this is the exact tier on the trimmed span
        resolution = resolve_anchor(
            anchor, self.document, partial_context_chars=self.partial_context_chars
        )
        if resolution is None or not wrap_range(resolution.range, anchor.id):
            logger.warning("Stored %s but could not show it", anchor.id)

        self._publish(ACTION_SAVED, anchor.id)
        return anchor

    async def remove(self, anchor_id: str) -> bool:
        """Delete an anchor, then dissolve its marker.

        Returns:
            True if the anchor was stored. A marker without a stored anchor
            is still dissolved.

        Raises:
            StorageUnavailableError: If the deletion is not confirmed; the
                marker then stays in place.
        """
        removed = await operations.remove_anchor(self.store, self.url, anchor_id)
        unwrap_marker(self.document, anchor_id)
        if removed:
            self._publish(ACTION_REMOVED, anchor_id)
        return removed

    async def remove_at(self, node: PageElement) -> str | None:
        """Remove the highlight under a pointer action on *node*.

        Returns:
            The removed anchor id, or None when *node* is not highlighted.
        """
        anchor_id = marker_id_for(node)
        if anchor_id is None:
            return None
        await self.remove(anchor_id)
        return anchor_id

    async def update_metadata(
        self,
        anchor_id: str,
        *,
        comment: str | None = None,
        tags: list[str] | None = None,
    ) -> Anchor | None:
        """Change the comment and/or tags of a stored anchor."""
        return await operations.update_anchor_metadata(
            self.store, self.url, anchor_id, comment=comment, tags=tags
        )

    async def anchors(self) -> list[Anchor]:
        """Stored anchors of this page, in stored order."""
        return await self.store.load_anchors(self.page_id)

    # ------------------------------------------------------------------
    # Cross-surface notifications
    # ------------------------------------------------------------------
    def attach(self, channel: MessageChannelProtocol) -> None:
        """Follow refresh and removal notifications for this page."""
        self.detach()
        self.channel = channel
        self._unsubscribers = [
            channel.subscribe(ACTION_REFRESH, self._on_refresh),
            channel.subscribe(ACTION_REMOVED, self._on_removed),
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _publish(self, action: str, anchor_id: str) -> None:
        if self.channel is None:
            return
        self.channel.publish(
            action,
            {"pageId": self.page_id, "anchorId": anchor_id, "origin": id(self)},
        )

    def _from_peer(self, payload: dict[str, Any]) -> bool:
        return payload.get("pageId") == self.page_id and payload.get(
            "origin"
        ) != id(self)

    async def _on_refresh(self, payload: dict[str, Any]) -> None:
        if payload.get("pageId") == self.page_id:
            await self.refresh()

    async def _on_removed(self, payload: dict[str, Any]) -> None:
        # Storage already reflects the removal; only the marker is left
        if self._from_peer(payload):
            unwrap_marker(self.document, str(payload.get("anchorId", "")))
