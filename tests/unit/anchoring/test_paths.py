"""Tests for structural path addressing."""

from __future__ import annotations

import pytest

from pagemarks.anchoring import PathSyntaxError, from_path, parse_document, to_path
from pagemarks.anchoring.marker_constants import (
    MARKER_CLASS,
    MARKER_ID_ATTR,
    MARKER_TAG,
)
from pagemarks.anchoring.paths import ROOT_PATH, addressable_element, is_marker


def _marker(doc, marker_id: str):
    return doc.new_tag(
        MARKER_TAG, attrs={"class": MARKER_CLASS, MARKER_ID_ATTR: marker_id}
    )


class TestToPath:
    """to_path builds same-tag-indexed or unique-id paths."""

    def test_structural_path_counts_same_tag_siblings(self) -> None:
        doc = parse_document(
            "<html><body><div><p>one</p><p>two</p></div></body></html>"
        )
        second = doc.find_all("p")[1]
        assert to_path(second) == "/html[1]/body[1]/div[1]/p[2]"

    def test_text_node_uses_parent_element(self) -> None:
        doc = parse_document("<html><body><p>one</p><p>two</p></body></html>")
        text = doc.find_all("p")[1].contents[0]
        assert to_path(text) == "/html[1]/body[1]/p[2]"

    def test_unique_id_path(self) -> None:
        doc = parse_document('<html><body><p id="intro">hi</p></body></html>')
        assert to_path(doc.find("p")) == '//*[@id="intro"]'

    def test_duplicate_id_falls_back_to_structure(self) -> None:
        doc = parse_document(
            '<html><body><p id="x">a</p><p id="x">b</p></body></html>'
        )
        assert to_path(doc.find_all("p")[1]) == "/html[1]/body[1]/p[2]"

    def test_id_with_double_quote_uses_single_quotes(self) -> None:
        doc = parse_document("<html><body><p id='say\"hi'>a</p></body></html>")
        assert to_path(doc.find("p")) == "//*[@id='say\"hi']"

    def test_document_is_root_path(self) -> None:
        doc = parse_document("<p>x</p>")
        assert to_path(doc) == ROOT_PATH

    def test_different_tag_sibling_does_not_change_path(self) -> None:
        """Inserting a sibling of another tag before the node keeps its path."""
        doc = parse_document("<html><body><p>a</p><p>b</p></body></html>")
        target = doc.find_all("p")[1]
        before = to_path(target)

        doc.body.insert(0, doc.new_tag("section"))

        assert to_path(target) == before
        assert from_path(doc, before) is target

    def test_same_tag_sibling_shifts_index(self) -> None:
        doc = parse_document("<html><body><p>a</p></body></html>")
        target = doc.find("p")
        doc.body.insert(0, doc.new_tag("p"))
        assert to_path(target) == "/html[1]/body[1]/p[2]"

    def test_marker_is_transparent(self) -> None:
        """Paths ignore highlight markers and count their children in place."""
        doc = parse_document("<html><body><p>a</p><p>b</p></body></html>")
        paragraphs = doc.find_all("p")
        paragraphs[0].wrap(_marker(doc, "h1"))

        assert to_path(paragraphs[0]) == "/html[1]/body[1]/p[1]"
        assert to_path(paragraphs[1]) == "/html[1]/body[1]/p[2]"

    def test_text_inside_marker_addresses_enclosing_element(self) -> None:
        doc = parse_document("<html><body><p>a <b>b</b> c</p></body></html>")
        doc.find("p").contents[-1].wrap(_marker(doc, "h1"))
        marked_text = doc.find(MARKER_TAG).contents[0]
        assert to_path(marked_text) == "/html[1]/body[1]/p[1]"

    def test_detached_text_raises(self) -> None:
        from bs4 import NavigableString

        with pytest.raises(ValueError, match="no element"):
            to_path(NavigableString("loose"))


class TestFromPath:
    """from_path evaluates paths, returning None for vanished nodes."""

    def test_round_trip(self, article) -> None:
        for tag in article.body.find_all(True):
            assert from_path(article, to_path(tag)) is tag

    def test_missing_node_returns_none(self) -> None:
        doc = parse_document("<html><body><p>a</p></body></html>")
        assert from_path(doc, "/html[1]/body[1]/p[3]") is None

    def test_missing_id_returns_none(self) -> None:
        doc = parse_document("<html><body><p>a</p></body></html>")
        assert from_path(doc, '//*[@id="gone"]') is None

    def test_segment_without_index_means_first(self) -> None:
        doc = parse_document("<html><body><p>a</p><p>b</p></body></html>")
        assert from_path(doc, "/html/body/p") is doc.find("p")

    def test_root_path_returns_document(self) -> None:
        doc = parse_document("<p>a</p>")
        assert from_path(doc, ROOT_PATH) is doc

    @pytest.mark.parametrize(
        "path",
        ["", "html[1]", "/html[1]/[2]", "/html[0]", "/html[x]", "//div", "/a b"],
    )
    def test_malformed_path_raises(self, path: str) -> None:
        doc = parse_document("<p>a</p>")
        with pytest.raises(PathSyntaxError):
            from_path(doc, path)


class TestMarkerHelpers:
    """Marker recognition and addressable element lookup."""

    def test_plain_mark_is_not_a_marker(self) -> None:
        doc = parse_document("<p><mark>x</mark></p>")
        assert is_marker(doc.find("mark")) is False

    def test_addressable_element_skips_nested_markers(self) -> None:
        doc = parse_document("<html><body><p><b>x</b></p></body></html>")
        inner = doc.find("b").wrap(_marker(doc, "b"))
        inner.wrap(_marker(doc, "a"))
        assert addressable_element(inner) is doc.find("p")
