"""Tests for page and section payload normalization."""

from datetime import date

import pytest

from epaper_archive.editions.normalization import (
    UNTITLED,
    normalize_pages,
    normalize_section,
    parse_date,
    parse_float,
    parse_int,
    parse_status,
)
from schemas.edition import EditionStatus

NOW_MS = 1705300000000


def page(**overrides) -> dict:
    data = {"pageNo": 1, "image": "https://res.example.com/p1.jpg", "width": 2083, "height": 2947}
    data.update(overrides)
    return data


class TestParsers:
    """Tests for lenient scalar parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [(3, 3), ("12", 12), ("12px", 12), (" 7 ", 7), (4.9, 4), ("abc", -1), (None, -1), (True, -1), ("", -1), ("२", -1)],
    )
    def test_parse_int(self, value, expected):
        """Leading integers are parsed; anything else falls back."""
        assert parse_int(value, -1) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [(1.5, 1.5), ("10.25", 10.25), ("3.5em", 3.5), (".5", 0.5), ("1e2", 100.0), ("x", 0.0), (float("nan"), 0.0), ("२.५", 0.0)],
    )
    def test_parse_float(self, value, expected):
        """Leading decimals are parsed; non-finite values fall back."""
        assert parse_float(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2024-01-15", date(2024, 1, 15)),
            ("2024-01-15T00:00:00.000Z", date(2024, 1, 15)),
            ("2024-01-15T18:30:00+05:30", date(2024, 1, 15)),
            (date(2024, 1, 15), date(2024, 1, 15)),
            ("15/01/2024", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse_date(self, value, expected):
        """ISO dates and timestamps are accepted."""
        assert parse_date(value) == expected

    def test_parse_status(self):
        """Statuses are matched case-insensitively."""
        assert parse_status("Archived") == EditionStatus.ARCHIVED
        assert parse_status("deleted") is None


class TestNormalizeSection:
    """Tests for section coercion."""

    def test_numbers_coerced(self):
        """String coordinates become floats and string ids ints."""
        section = normalize_section(
            {"id": "42", "x": "10.5", "y": 20, "width": "300", "height": "150.25", "title": "बातमी"},
            0,
            NOW_MS,
        )

        assert section.id == 42
        assert (section.x, section.y, section.width, section.height) == (10.5, 20, 300, 150.25)

    def test_missing_id_synthesized(self):
        """Sections without an id get the clock plus their index."""
        assert normalize_section({"title": "a"}, 3, NOW_MS).id == NOW_MS + 3
        assert normalize_section({"id": "abc", "title": "a"}, 4, NOW_MS).id == NOW_MS + 4

    @pytest.mark.parametrize("title", [None, "", "   "])
    def test_blank_title_becomes_sentinel(self, title):
        """Blank titles are replaced by the sentinel."""
        assert normalize_section({"id": 1, "title": title}, 0, NOW_MS).title == UNTITLED

    def test_bad_coordinates_default_to_zero(self):
        """Unparseable coordinates become 0."""
        section = normalize_section({"id": 1, "x": "left", "y": None, "width": {}, "height": []}, 0, NOW_MS)

        assert (section.x, section.y, section.width, section.height) == (0, 0, 0, 0)

    def test_slug_from_title_or_content(self):
        """Missing slugs derive from the title, else the content."""
        titled = normalize_section({"id": 1, "title": "पाऊस आला"}, 0, NOW_MS)
        untitled = normalize_section({"id": 2, "content": "Rain across the state today"}, 0, NOW_MS)
        empty = normalize_section({"id": 3}, 0, NOW_MS)

        assert titled.slug == "पाऊस-आला"
        assert untitled.slug == "Rain-across-the-state-today"
        assert empty.slug is None

    def test_existing_slug_kept(self):
        """A supplied slug is kept as-is."""
        assert normalize_section({"id": 1, "slug": "keep-me", "title": "Other"}, 0, NOW_MS).slug == "keep-me"

    def test_article_reference(self):
        """Article references are accepted under either key."""
        assert normalize_section({"id": 1, "articleId": "65a1"}, 0, NOW_MS).article_id == "65a1"
        assert normalize_section({"id": 1, "article_id": 99}, 0, NOW_MS).article_id == "99"
        assert normalize_section({"id": 1, "articleId": ""}, 0, NOW_MS).article_id is None

    def test_non_mapping_rejected(self):
        """Entries that are not objects are not sections."""
        assert normalize_section("oops", 0, NOW_MS) is None


class TestNormalizePages:
    """Tests for page list coercion."""

    def test_valid_pages_kept_with_aliases(self):
        """camelCase keys and string numbers are accepted."""
        pages, warnings = normalize_pages(
            [page(pageNo="2", imageUrl="https://res.example.com/p2.jpg", image=None, width="2083", assetId="a/p2")],
            NOW_MS,
        )

        assert warnings == []
        assert pages[0].page_no == 2
        assert pages[0].image == "https://res.example.com/p2.jpg"
        assert pages[0].asset_id == "a/p2"
        assert pages[0].width == 2083

    def test_invalid_pages_dropped_with_warnings(self, caplog):
        """Pages without an image or positive size are dropped and reported."""
        pages, warnings = normalize_pages(
            [
                page(),
                page(pageNo=2, image=""),
                page(pageNo=3, width=0),
                page(pageNo=4, height="-5"),
                "not a page",
            ],
            NOW_MS,
        )

        assert [p.page_no for p in pages] == [1]
        assert len(warnings) == 4
        assert "dropped" in caplog.text

    def test_page_number_defaults_to_one(self):
        """A missing or unparseable page number becomes 1."""
        pages, _ = normalize_pages([page(pageNo="x")], NOW_MS)

        assert pages[0].page_no == 1

    def test_ordering_by_sort_order_then_page_no(self):
        """Pages sort by sortOrder, falling back to page number."""
        pages, _ = normalize_pages(
            [page(pageNo=1, sortOrder=3), page(pageNo=2), page(pageNo=3, sortOrder="1")],
            NOW_MS,
        )

        assert [p.page_no for p in pages] == [3, 2, 1]

    def test_sections_keep_payload_order(self):
        """Sections are not reordered."""
        pages, _ = normalize_pages(
            [page(news=[{"id": 3, "title": "c"}, {"id": 1, "title": "a"}, {"id": 2, "title": "b"}])],
            NOW_MS,
        )

        assert [s.id for s in pages[0].sections] == [3, 1, 2]

    def test_sections_key_accepted(self):
        """Sections may arrive under "sections" as well as "news"."""
        pages, _ = normalize_pages([page(sections=[{"id": 5, "title": "x"}])], NOW_MS)

        assert pages[0].sections[0].id == 5

    def test_non_object_sections_dropped(self):
        """Non-object section entries are dropped with a warning."""
        pages, warnings = normalize_pages([page(news=[{"id": 1, "title": "ok"}, 7])], NOW_MS)

        assert len(pages[0].sections) == 1
        assert warnings == ["page 1: section 1 is not an object; dropped"]

    def test_non_list_payload(self):
        """A payload that is not a list yields no pages."""
        pages, warnings = normalize_pages({"pageNo": 1}, NOW_MS)

        assert pages == []
        assert warnings == ["pages is not a list"]
