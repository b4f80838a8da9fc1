"""Anchor capture: live selection -> serializable Anchor."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from pagemarks.anchoring.paths import addressable_element, to_path
from pagemarks.anchoring.ranges import common_ancestor, range_offsets
from pagemarks.anchoring.text_nodes import text_content
from pagemarks.models import Anchor

if TYPE_CHECKING:
    from datetime import datetime

    from pagemarks.anchoring.ranges import TextRange

logger = logging.getLogger(__name__)

ContextStrategy = Literal["selection", "first_occurrence"]

DEFAULT_CONTEXT_CHARS = 30


def capture_anchor(
    selection: TextRange,
    *,
    context_chars: int = DEFAULT_CONTEXT_CHARS,
    strategy: ContextStrategy = "selection",
    anchor_id: str | None = None,
    created_at: datetime | None = None,
) -> Anchor | None:
    """Describe *selection* as an Anchor.

    Args:
        selection: The live selection. Boundaries may be text or element
            points.
        context_chars: Size of the before/after context snippets.
        strategy: ``"selection"`` takes context around the selection itself;
            ``"first_occurrence"`` takes it around the first occurrence of
            the selected text in the container, which describes the wrong
            span when that text repeats earlier in the container.
        anchor_id: Explicit id, generated when omitted.
        created_at: Explicit capture time, now when omitted.

    Returns:
        The anchor, or None when the selection is collapsed or contains only
        whitespace.

    Raises:
        InvalidRangeError: If the selection boundaries are not inside one
            document.
    """
    if selection.collapsed:
        return None

    container = addressable_element(common_ancestor(selection))
    if container is None:
        return None

    raw_start, raw_end = range_offsets(container, selection)
    container_text = text_content(container)
    raw = container_text[raw_start:raw_end]
    text = raw.strip()
    if not text:
        return None

    # Offsets point at the trimmed text, not at the surrounding whitespace
    start = raw_start + (len(raw) - len(raw.lstrip()))
    end = start + len(text)

    if strategy == "first_occurrence":
        context_start = container_text.find(text)
    else:
        context_start = start
    context_end = context_start + len(text)
    before = container_text[max(0, context_start - context_chars) : context_start]
    after = container_text[context_end : context_end + context_chars]

    fields: dict[str, object] = {
        "text": text,
        "container_path": to_path(container),
        "start_offset": start,
        "end_offset": end,
        "before_context": before,
        "after_context": after,
    }
    if anchor_id is not None:
        fields["id"] = anchor_id
    if created_at is not None:
        fields["created_at"] = created_at
    anchor = Anchor(**fields)  # type: ignore[arg-type]

    logger.debug(
        "Captured anchor %s at %s [%d:%d] %r",
        anchor.id,
        anchor.container_path,
        start,
        end,
        text[:40],
    )
    return anchor
