"""JSON file anchor store.

A single JSON object maps ``"<key_prefix><page_id>"`` to a serialized page
record. The key prefix follows the browser extension's local storage keys;
the records themselves are this package's ``PageRecord`` shape. Keys without
the prefix belong to other tools and are preserved.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from pagemarks.models import PageRecord
from pagemarks.storage.protocol import StorageUnavailableError

if TYPE_CHECKING:
    from pagemarks.models import Anchor
    from pagemarks.storage.protocol import AnchorUpdate

logger = logging.getLogger(__name__)


class JsonFileAnchorStore:
    """File-backed implementation of AnchorStoreProtocol.

    File I/O runs in a worker thread. Every write, and the read that an
    update bases its write on, happens under one asyncio lock, and each write
    replaces the file atomically, so a crash never leaves a truncated store.
    """

    def __init__(self, path: Path, key_prefix: str = "highlights_") -> None:
        self.path = path
        self.key_prefix = key_prefix
        self._lock = asyncio.Lock()

    def _key(self, page_id: str) -> str:
        return self.key_prefix + page_id

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            msg = f"cannot read anchor store {self.path}: {exc}"
            raise StorageUnavailableError(msg) from exc
        if not isinstance(data, dict):
            msg = f"anchor store {self.path} is not a JSON object"
            raise StorageUnavailableError(msg)
        return data

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            msg = f"cannot write anchor store {self.path}: {exc}"
            raise StorageUnavailableError(msg) from exc

    def _record(self, key: str, value: Any) -> PageRecord:
        try:
            return PageRecord.model_validate(value)
        except ValidationError as exc:
            msg = f"corrupt page record {key!r} in {self.path}"
            raise StorageUnavailableError(msg) from exc

    def _anchors_in(self, data: dict[str, Any], page_id: str) -> list[Anchor]:
        key = self._key(page_id)
        if key not in data:
            return []
        return list(self._record(key, data[key]).anchors)

    def _put(self, data: dict[str, Any], page_id: str, anchors: list[Anchor]) -> None:
        key = self._key(page_id)
        if anchors:
            record = PageRecord(page_id=page_id, anchors=list(anchors))
            data[key] = record.model_dump(mode="json", by_alias=True)
        else:
            data.pop(key, None)

    async def load_anchors(self, page_id: str) -> list[Anchor]:
        data = await asyncio.to_thread(self._read)
        return self._anchors_in(data, page_id)

    async def save_anchors(self, page_id: str, anchors: list[Anchor]) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            self._put(data, page_id, anchors)
            await asyncio.to_thread(self._write, data)
        logger.debug("Saved %d anchors for %s", len(anchors), page_id)

    async def update_anchors(self, page_id: str, update: AnchorUpdate) -> bool:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            anchors = update(self._anchors_in(data, page_id))
            if anchors is None:
                return False
            self._put(data, page_id, anchors)
            await asyncio.to_thread(self._write, data)
        logger.debug("Updated %s, now %d anchors", page_id, len(anchors))
        return True

    async def list_all_pages(self) -> list[PageRecord]:
        data = await asyncio.to_thread(self._read)
        return [
            self._record(key, value)
            for key, value in data.items()
            if key.startswith(self.key_prefix)
        ]
