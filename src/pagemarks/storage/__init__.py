"""Anchor persistence collaborators."""

from pagemarks.storage.factory import clear_store_cache, get_anchor_store
from pagemarks.storage.json_file import JsonFileAnchorStore
from pagemarks.storage.memory import InMemoryAnchorStore
from pagemarks.storage.operations import (
    add_anchor,
    clear_page,
    get_anchor,
    remove_anchor,
    update_anchor_metadata,
)
from pagemarks.storage.protocol import AnchorStoreProtocol, StorageUnavailableError

__all__ = [
    "AnchorStoreProtocol",
    "InMemoryAnchorStore",
    "JsonFileAnchorStore",
    "StorageUnavailableError",
    "add_anchor",
    "clear_page",
    "clear_store_cache",
    "get_anchor",
    "get_anchor_store",
    "remove_anchor",
    "update_anchor_metadata",
]
