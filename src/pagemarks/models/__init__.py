"""Data models for pagemarks."""

from pagemarks.models.anchor import (
    Anchor,
    PageRecord,
    generate_anchor_id,
    normalize_page_id,
)

__all__ = [
    "Anchor",
    "PageRecord",
    "generate_anchor_id",
    "normalize_page_id",
]
