"""Tests for document parsing, serialization and marker inspection."""

from __future__ import annotations

from pagemarks.anchoring import (
    find_text_range,
    marker_texts,
    parse_document,
    serialize_document,
    wrap_range,
)


class TestParseDocument:
    """Parsed pages always have a stable html/body skeleton."""

    def test_fragment_gets_body(self) -> None:
        doc = parse_document("<p>loose fragment</p>")
        assert doc.body is not None
        assert doc.body.find("p").get_text() == "loose fragment"

    def test_bytes_input(self) -> None:
        doc = parse_document("<p>café</p>".encode())
        assert doc.find("p").get_text() == "café"

    def test_serialize_round_trip(self) -> None:
        html = "<html><body><p>a <b>b</b></p></body></html>"
        doc = parse_document(html)
        assert parse_document(serialize_document(doc)).find("b").get_text() == "b"


class TestMarkerTexts:
    """marker_texts inspects serialized output independently of bs4."""

    def test_empty_input(self) -> None:
        assert marker_texts("") == {}

    def test_no_markers(self) -> None:
        assert marker_texts("<p><mark>plain mark</mark></p>") == {}

    def test_reads_markers_written_by_wrap(self) -> None:
        doc = parse_document("<html><body><p>one two three</p></body></html>")
        wrap_range(find_text_range(doc.body, "one"), "hl_a")
        wrap_range(find_text_range(doc.body, "three"), "hl_b")

        assert marker_texts(serialize_document(doc)) == {
            "hl_a": "one",
            "hl_b": "three",
        }

    def test_same_id_split_markers_are_joined(self) -> None:
        html = (
            '<p><mark class="text-highlighter-extension-mark" '
            'data-highlight-id="hl_1">first </mark>gap'
            '<mark class="text-highlighter-extension-mark" '
            'data-highlight-id="hl_1">second</mark></p>'
        )
        assert marker_texts(html) == {"hl_1": "first second"}
