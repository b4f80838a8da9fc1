"""Anchor store factory.

Provides a factory function to get the store selected by configuration
(JSON file by default, in-memory for tests and throwaway sessions).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pagemarks.config import get_settings

if TYPE_CHECKING:
    from pagemarks.storage.protocol import AnchorStoreProtocol


# Cached instance so every caller in a process shares one store (and one lock)
_store_instance: AnchorStoreProtocol | None = None


def get_anchor_store() -> AnchorStoreProtocol:
    """Get the anchor store selected by STORAGE__BACKEND.

    Returns:
        A store implementing AnchorStoreProtocol.
    """
    global _store_instance  # noqa: PLW0603
    if _store_instance is not None:
        return _store_instance

    storage = get_settings().storage
    if storage.backend == "memory":
        from pagemarks.storage.memory import InMemoryAnchorStore

        _store_instance = InMemoryAnchorStore()
    else:
        from pagemarks.storage.json_file import JsonFileAnchorStore

        _store_instance = JsonFileAnchorStore(storage.path, storage.key_prefix)
    return _store_instance


def clear_store_cache() -> None:
    """Clear the configuration and store caches.

    Useful for testing when you need to reload configuration
    or start from an empty in-memory store.
    """
    global _store_instance  # noqa: PLW0603
    get_settings.cache_clear()
    _store_instance = None
