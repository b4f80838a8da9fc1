"""Tests for wrapping ranges in markers and dissolving them again."""

from __future__ import annotations

import logging

import pytest

from pagemarks.anchoring import (
    TextRange,
    ensure_marker_styles,
    find_marker,
    find_text_range,
    list_marker_ids,
    marker_id_for,
    marker_texts,
    parse_document,
    serialize_document,
    text_content,
    unwrap_marker,
    wrap_range,
)
from pagemarks.anchoring.marker_constants import (
    MARKER_CLASS,
    MARKER_ID_ATTR,
    STYLE_ELEMENT_ID,
)


def _page(body: str):
    return parse_document(f"<html><head></head><body>{body}</body></html>")


def _wrap(doc, text: str, marker_id: str = "hl_1", occurrence: int = 0) -> bool:
    rng = find_text_range(doc.body, text, occurrence)
    assert rng is not None
    return wrap_range(rng, marker_id)


class TestWrapWithinOneNode:
    """Spans inside a single text node are enclosed directly."""

    def test_middle_of_text(self) -> None:
        doc = _page("<p>The quick brown fox</p>")
        assert _wrap(doc, "quick") is True

        marker = find_marker(doc, "hl_1")
        assert marker is not None
        assert marker.get_text() == "quick"
        assert marker[MARKER_ID_ATTR] == "hl_1"
        assert MARKER_CLASS in marker["class"]
        assert text_content(doc.find("p")) == "The quick brown fox"

    def test_marker_markup(self) -> None:
        doc = _page("<p>ab</p>")
        _wrap(doc, "a", "hl_x")
        assert str(doc.find("p")) == (
            '<p><mark class="text-highlighter-extension-mark" '
            'data-highlight-id="hl_x">a</mark>b</p>'
        )

    def test_whole_text_node(self) -> None:
        doc = _page("<p>all of it</p>")
        _wrap(doc, "all of it")
        p = doc.find("p")
        assert len(p.contents) == 1
        assert p.contents[0] is find_marker(doc, "hl_1")


class TestWrapAcrossElements:
    """Spans crossing element boundaries move every selected node inside."""

    def test_across_inline_elements(self) -> None:
        doc = _page("<p>Hello <b>bold text</b> and <i>italic text</i> end.</p>")
        p = doc.find("p")

        assert _wrap(doc, "text and italic")

        assert text_content(p) == "Hello bold text and italic text end."
        assert marker_texts(serialize_document(doc)) == {"hl_1": "text and italic"}

    def test_partially_selected_elements_are_split(self) -> None:
        doc = _page("<p>Hello <b>bold text</b> world</p>")
        _wrap(doc, "lo bo")

        p = doc.find("p")
        marker = find_marker(doc, "hl_1")
        assert marker.parent is p
        assert [b.get_text() for b in p.find_all("b")] == ["bo", "ld text"]
        assert marker.find("b").get_text() == "bo"
        assert text_content(p) == "Hello bold text world"

    def test_clones_do_not_duplicate_ids(self) -> None:
        doc = _page('<p>Hello <b id="key">bold text</b> world</p>')
        _wrap(doc, "lo bo")
        assert len(doc.find_all(id="key")) == 1

    def test_across_paragraphs(self) -> None:
        doc = _page("<div><p>first para</p><p>second para</p></div>")
        _wrap(doc, "parasecond")

        assert marker_texts(serialize_document(doc)) == {"hl_1": "parasecond"}
        assert text_content(doc.find("div")) == "first parasecond para"

    def test_fully_covered_element_moves_whole(self) -> None:
        """An element covered end to end is moved, not split into an empty clone."""
        doc = _page("<p><b>bold</b> z</p>")
        _wrap(doc, "bold z")
        bolds = doc.find_all("b")
        assert len(bolds) == 1
        assert bolds[0].parent is find_marker(doc, "hl_1")

    def test_images_inside_range_are_kept(self) -> None:
        doc = _page('<p>before <img src="x.png"> after</p>')
        _wrap(doc, "before  after")
        marker = find_marker(doc, "hl_1")
        assert marker.find("img") is not None
        assert doc.find_all("img") == [marker.find("img")]


class TestWrapRejections:
    """Invalid ranges leave the document unchanged."""

    def test_collapsed_range(self, caplog) -> None:
        doc = _page("<p>abc</p>")
        node = doc.find("p").contents[0]
        before = serialize_document(doc)

        with caplog.at_level(logging.INFO, logger="pagemarks.anchoring.materialize"):
            assert wrap_range(TextRange(node, 1, node, 1), "hl_1") is False

        assert serialize_document(doc) == before
        assert "Cannot materialize hl_1" in caplog.text

    def test_reversed_range(self) -> None:
        doc = _page("<p>abc</p>")
        node = doc.find("p").contents[0]
        assert wrap_range(TextRange(node, 2, node, 1), "hl_1") is False

    def test_offset_out_of_bounds(self) -> None:
        doc = _page("<p>abc</p>")
        node = doc.find("p").contents[0]
        before = serialize_document(doc)
        assert wrap_range(TextRange(node, 1, node, 10), "hl_1") is False
        assert serialize_document(doc) == before

    def test_boundary_inside_script(self) -> None:
        doc = _page("<p>abc</p><script>var x;</script>")
        start = doc.find("p").contents[0]
        end = doc.find("script").contents[0]
        before = serialize_document(doc)
        assert wrap_range(TextRange(start, 1, end, 2), "hl_1") is False
        assert serialize_document(doc) == before

    def test_detached_nodes(self) -> None:
        from bs4 import NavigableString

        node = NavigableString("loose")
        assert wrap_range(TextRange(node, 0, node, 3), "hl_1") is False

    def test_different_documents(self) -> None:
        a = _page("<p>abc</p>").find("p").contents[0]
        b = _page("<p>abc</p>").find("p").contents[0]
        assert wrap_range(TextRange(a, 0, b, 2), "hl_1") is False

    def test_text_end_to_element_point_covers_nothing(self) -> None:
        doc = _page("<p>abc</p>")
        p = doc.find("p")
        node = p.contents[0]
        before = serialize_document(doc)

        assert wrap_range(TextRange(node, 3, p, 1), "hl_e") is False

        assert serialize_document(doc) == before
        assert find_marker(doc, "hl_e") is None

    def test_boundaries_meeting_after_an_element_cover_nothing(self) -> None:
        doc = _page("<p><b>ab</b>cd</p>")
        p = doc.find("p")
        inner = doc.find("b").contents[0]
        before = serialize_document(doc)

        assert wrap_range(TextRange(inner, 2, p, 1), "hl_e") is False

        assert serialize_document(doc) == before

    def test_element_between_boundaries_is_content(self) -> None:
        doc = _page("<p>a<br>b</p>")
        p = doc.find("p")
        assert wrap_range(TextRange(p.contents[0], 1, p.contents[2], 0), "hl_br")
        assert find_marker(doc, "hl_br").find("br") is not None


class TestUnwrap:
    """unwrap_marker restores the text structure."""

    @pytest.mark.parametrize(
        ("body", "text"),
        [
            ("<p>The quick brown fox</p>", "quick"),
            ("<p>Hello <b>bold text</b> world</p>", "lo bo"),
            ("<div><p>first para</p><p>second para</p></div>", "parasecond"),
            ('<p>before <img src="x.png"> after</p>', "before  after"),
        ],
    )
    def test_wrap_then_unwrap_restores_text(self, body: str, text: str) -> None:
        doc = _page(body)
        original = text_content(doc.body)
        assert _wrap(doc, text)

        assert unwrap_marker(doc, "hl_1") is True

        assert text_content(doc.body) == original
        assert find_marker(doc, "hl_1") is None

    def test_single_node_wrap_restores_exact_markup(self) -> None:
        doc = _page("<p>The quick brown fox</p>")
        before = serialize_document(doc)
        _wrap(doc, "quick")
        unwrap_marker(doc, "hl_1")
        assert serialize_document(doc) == before
        assert len(doc.find("p").contents) == 1

    def test_unwrap_unknown_id_is_noop(self) -> None:
        doc = _page("<p>abc</p>")
        before = serialize_document(doc)
        assert unwrap_marker(doc, "hl_missing") is False
        assert serialize_document(doc) == before

    def test_unwrap_twice(self) -> None:
        doc = _page("<p>abc</p>")
        _wrap(doc, "b")
        assert unwrap_marker(doc, "hl_1") is True
        assert unwrap_marker(doc, "hl_1") is False

    def test_unwrap_leaves_other_markers(self) -> None:
        doc = _page("<p>one two three</p>")
        _wrap(doc, "one", "hl_a")
        _wrap(doc, "three", "hl_b")
        unwrap_marker(doc, "hl_a")
        assert list_marker_ids(doc) == ["hl_b"]
        assert text_content(doc.find("p")) == "one two three"

    def test_overlapping_wrap_then_unwrap_dissolves_every_fragment(self) -> None:
        doc = _page("<p>The quick brown fox jumps</p>")
        original = text_content(doc.body)
        _wrap(doc, "quick brown", "hl_a")
        _wrap(doc, "brown fox", "hl_b")
        assert len(doc.find_all(attrs={MARKER_ID_ATTR: "hl_a"})) == 2

        assert unwrap_marker(doc, "hl_a") is True

        assert doc.find_all(attrs={MARKER_ID_ATTR: "hl_a"}) == []
        assert marker_texts(serialize_document(doc)) == {"hl_b": "brown fox"}
        assert text_content(doc.body) == original
        brown = find_marker(doc, "hl_b").contents[0]
        assert str(brown) == "brown fox"
        assert marker_id_for(brown) == "hl_b"


class TestMarkerLookup:
    """Pointer actions map back to marker ids."""

    def test_marker_id_for_inner_node(self) -> None:
        doc = _page("<p>Hello <b>bold text</b> world</p>")
        _wrap(doc, "Hello bold")
        inner_text = find_marker(doc, "hl_1").find("b").contents[0]
        assert marker_id_for(inner_text) == "hl_1"

    def test_marker_id_for_unmarked_node(self) -> None:
        doc = _page("<p>abc</p>")
        assert marker_id_for(doc.find("p").contents[0]) is None
        assert marker_id_for(None) is None

    def test_list_marker_ids_in_document_order(self) -> None:
        doc = _page("<p>one two three</p>")
        _wrap(doc, "three", "hl_late")
        _wrap(doc, "one", "hl_early")
        assert list_marker_ids(doc) == ["hl_early", "hl_late"]


class TestMarkerStyles:
    """The stylesheet is injected exactly once."""

    def test_inserted_once(self) -> None:
        doc = _page("<p>abc</p>")
        assert ensure_marker_styles(doc) is True
        assert ensure_marker_styles(doc) is False
        styles = doc.find_all("style", id=STYLE_ELEMENT_ID)
        assert len(styles) == 1
        assert MARKER_CLASS in styles[0].string

    def test_custom_css(self) -> None:
        doc = _page("<p>abc</p>")
        ensure_marker_styles(doc, ".x { color: red; }")
        assert doc.find(id=STYLE_ELEMENT_ID).string == ".x { color: red; }"

    def test_head_created_when_missing(self) -> None:
        doc = parse_document("<p>abc</p>")
        if doc.head is not None:
            doc.head.decompose()
        assert ensure_marker_styles(doc) is True
        assert doc.head is not None
        assert doc.head.find("style") is not None

    def test_stylesheet_does_not_shift_offsets(self) -> None:
        doc = _page("<p>abc</p>")
        before = text_content(doc)
        ensure_marker_styles(doc)
        assert text_content(doc) == before
