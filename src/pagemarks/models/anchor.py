"""Anchor and page records persisted by the storage collaborator.

An anchor is immutable apart from its ``comment`` and ``tags``; resolution
never writes back to it. Serialized field names are camelCase
(``containerPath``, ``startOffset``), the JSON naming used across the store
file; only the store's key prefix follows the browser extension.
"""

from __future__ import annotations

from datetime import UTC, datetime
from urllib.parse import urlsplit, urlunsplit
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def generate_anchor_id() -> str:
    """Opaque, unique anchor id (also the marker's durable key)."""
    return f"hl_{uuid4().hex}"


def normalize_page_id(url: str) -> str:
    """Normalise a URL into a page identity.

    Drops the fragment and a trailing slash on the path, lowercases the
    scheme and host, keeps the query string. Strings that are not absolute
    URLs are returned unchanged.

    Examples:
        "https://Example.com/a/#top" -> "https://example.com/a"
        "https://example.com/?q=1"   -> "https://example.com?q=1"
    """
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return url
    path = parts.path.rstrip("/")
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), path, parts.query, "")
    )


class Anchor(BaseModel):
    """Serializable description of a highlighted span.

    Attributes:
        id: Opaque unique id, also written on the marker element.
        text: Exact text of the span at capture time.
        container_path: Structural path of the search-root element.
        start_offset: Start of the span in the container's text.
        end_offset: End (exclusive) of the span in the container's text.
        before_context: Text just before the span, a resolution hint.
        after_context: Text just after the span, a resolution hint.
        created_at: Capture time, used for display ordering only.
        comment: Optional user note.
        tags: Optional user labels.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(default_factory=generate_anchor_id)
    text: str
    container_path: str
    start_offset: int
    end_offset: int
    before_context: str = ""
    after_context: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    comment: str | None = None
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def offsets_match_text(self) -> Anchor:
        if not 0 <= self.start_offset < self.end_offset:
            msg = (
                f"anchor offsets must satisfy 0 <= start < end, "
                f"got {self.start_offset}..{self.end_offset}"
            )
            raise ValueError(msg)
        if self.end_offset - self.start_offset != len(self.text):
            msg = (
                f"anchor span {self.start_offset}..{self.end_offset} does not "
                f"match text length {len(self.text)}"
            )
            raise ValueError(msg)
        return self

    def with_metadata(
        self, *, comment: str | None = None, tags: list[str] | None = None
    ) -> Anchor:
        """Return a copy with updated user metadata; other fields are fixed."""
        update: dict[str, object] = {}
        if comment is not None:
            update["comment"] = comment or None
        if tags is not None:
            update["tags"] = list(tags)
        return self.model_copy(update=update)


class PageRecord(BaseModel):
    """All anchors stored for one normalised page identity, in insertion order."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page_id: str
    anchors: list[Anchor] = Field(default_factory=list)
