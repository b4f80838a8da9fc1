"""Text anchoring: capture, re-resolve and materialize highlighted spans."""

from pagemarks.anchoring.capture import ContextStrategy, capture_anchor
from pagemarks.anchoring.document import (
    marker_texts,
    parse_document,
    serialize_document,
)
from pagemarks.anchoring.materialize import (
    ensure_marker_styles,
    find_marker,
    list_marker_ids,
    marker_id_for,
    unwrap_marker,
    wrap_range,
)
from pagemarks.anchoring.paths import PathSyntaxError, from_path, to_path
from pagemarks.anchoring.ranges import (
    InvalidRangeError,
    TextRange,
    find_text_range,
    range_text,
)
from pagemarks.anchoring.resolve import Resolution, ResolutionTier, resolve_anchor
from pagemarks.anchoring.text_nodes import text_content

__all__ = [
    "ContextStrategy",
    "InvalidRangeError",
    "PathSyntaxError",
    "Resolution",
    "ResolutionTier",
    "TextRange",
    "capture_anchor",
    "ensure_marker_styles",
    "find_marker",
    "find_text_range",
    "from_path",
    "list_marker_ids",
    "marker_id_for",
    "marker_texts",
    "parse_document",
    "range_text",
    "resolve_anchor",
    "serialize_document",
    "text_content",
    "to_path",
    "unwrap_marker",
    "wrap_range",
]
