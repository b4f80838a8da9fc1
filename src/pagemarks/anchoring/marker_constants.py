"""Marker element constants shared by paths, materialization and inspection.

The marker exposes the owning anchor id through ``MARKER_ID_ATTR`` so that a
pointer action on a highlight can be mapped back to its anchor.
"""

from __future__ import annotations

MARKER_TAG = "mark"
MARKER_CLASS = "text-highlighter-extension-mark"
MARKER_ID_ATTR = "data-highlight-id"
MARKER_SELECTOR = f"{MARKER_TAG}.{MARKER_CLASS}[{MARKER_ID_ATTR}]"

# One stylesheet per document, keyed by this element id
STYLE_ELEMENT_ID = "text-highlighter-styles"

# Subtrees whose text never counts towards container offsets
SKIP_TAGS = frozenset(("script", "style", "noscript", "template"))

DEFAULT_BACKGROUND = "#ffeb3b"
DEFAULT_HOVER_BACKGROUND = "#ffc107"


def render_stylesheet(
    background: str = DEFAULT_BACKGROUND,
    hover_background: str = DEFAULT_HOVER_BACKGROUND,
) -> str:
    """CSS rules for the marker class."""
    return (
        f".{MARKER_CLASS} {{\n"
        f"  background-color: {background} !important;\n"
        "  border-radius: 2px;\n"
        "  padding: 0 2px;\n"
        "  cursor: pointer;\n"
        "  transition: background-color 0.2s;\n"
        "}\n"
        f".{MARKER_CLASS}:hover {{\n"
        f"  background-color: {hover_background} !important;\n"
        "}\n"
    )
