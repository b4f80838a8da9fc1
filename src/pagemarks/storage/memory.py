"""In-memory anchor store for tests and ephemeral sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pagemarks.models import PageRecord
from pagemarks.storage.protocol import StorageUnavailableError

if TYPE_CHECKING:
    from pagemarks.models import Anchor
    from pagemarks.storage.protocol import AnchorUpdate


class InMemoryAnchorStore:
    """Dictionary-backed implementation of AnchorStoreProtocol.

    Set ``fail_with`` to an exception message to make every call raise
    StorageUnavailableError, simulating an unreachable backend.
    """

    def __init__(self) -> None:
        self._pages: dict[str, list[Anchor]] = {}
        self.fail_with: str | None = None
        self.save_calls = 0

    def _check(self) -> None:
        if self.fail_with is not None:
            raise StorageUnavailableError(self.fail_with)

    async def load_anchors(self, page_id: str) -> list[Anchor]:
        self._check()
        return list(self._pages.get(page_id, []))

    async def save_anchors(self, page_id: str, anchors: list[Anchor]) -> None:
        self._check()
        self.save_calls += 1
        if anchors:
            self._pages[page_id] = list(anchors)
        else:
            self._pages.pop(page_id, None)

    async def update_anchors(self, page_id: str, update: AnchorUpdate) -> bool:
        self._check()
        anchors = update(list(self._pages.get(page_id, [])))
        if anchors is None:
            return False
        await self.save_anchors(page_id, anchors)
        return True

    async def list_all_pages(self) -> list[PageRecord]:
        self._check()
        return [
            PageRecord(page_id=page_id, anchors=list(anchors))
            for page_id, anchors in self._pages.items()
        ]
