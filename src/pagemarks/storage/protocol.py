"""Protocol defining the anchor store interface.

Both InMemoryAnchorStore and JsonFileAnchorStore implement this protocol,
allowing them to be used interchangeably.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, TypeAlias

if TYPE_CHECKING:
    from collections.abc import Callable

    from pagemarks.models import Anchor, PageRecord

# Receives the current anchors; returns the replacement list, or None to
# leave the page untouched
AnchorUpdate: TypeAlias = "Callable[[list[Anchor]], list[Anchor] | None]"


class StorageUnavailableError(RuntimeError):
    """The backing store failed or rejected a request.

    Propagated to the caller unchanged; stores never retry internally.
    """


class AnchorStoreProtocol(Protocol):
    """Key-value persistence of anchors by normalised page identity.

    ``save_anchors`` is last-write-wins for the whole page record.
    """

    async def load_anchors(self, page_id: str) -> list[Anchor]:
        """Load the anchors of one page in insertion order.

        Args:
            page_id: Normalised page identity.

        Returns:
            The stored anchors, or an empty list for an unknown page.

        Raises:
            StorageUnavailableError: If the backend cannot be read.
        """
        ...

    async def save_anchors(self, page_id: str, anchors: list[Anchor]) -> None:
        """Replace the anchors of one page.

        Saving an empty list removes the page record.

        Args:
            page_id: Normalised page identity.
            anchors: The complete, ordered anchor list.

        Raises:
            StorageUnavailableError: If the backend cannot be written.
        """
        ...

    async def update_anchors(self, page_id: str, update: AnchorUpdate) -> bool:
        """Atomically read, transform and write the anchors of one page.

        No other update or save of the same store interleaves between the
        read and the write, so concurrent read-modify-write callers never
        lose each other's changes.

        Args:
            page_id: Normalised page identity.
            update: Called with a copy of the stored anchors.

        Returns:
            True if the page was written, False if *update* returned None.

        Raises:
            StorageUnavailableError: If the backend cannot be read or written.
        """
        ...

    async def list_all_pages(self) -> list[PageRecord]:
        """Every stored page with its anchors.

        Raises:
            StorageUnavailableError: If the backend cannot be read.
        """
        ...
