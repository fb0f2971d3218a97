"""Tests for id normalization, query building, and Atom feed parsing."""

from __future__ import annotations

from datetime import UTC, datetime
from urllib.parse import parse_qs, urlsplit

import pytest

from paper_scout.models import SearchOptions
from paper_scout.parsing import (
    ARXIV_API_URL,
    build_id_list_url,
    build_search_params,
    build_search_query,
    build_search_url,
    is_valid_arxiv_id,
    normalize_arxiv_id,
    parse_arxiv_feed,
    parse_arxiv_feed_result,
    parse_atom_timestamp,
)

# ============================================================================
# Identifier normalization
# ============================================================================


class TestNormalizeArxivId:
    """Tests for normalize_arxiv_id."""

    def test_plain_new_style(self):
        normalized = normalize_arxiv_id("2301.01234")
        assert normalized.canonical == "2301.01234"
        assert normalized.version is None
        assert normalized.versioned is None

    def test_versioned_new_style(self):
        normalized = normalize_arxiv_id("2301.01234v2")
        assert normalized.canonical == "2301.01234"
        assert normalized.version == 2
        assert normalized.versioned == "2301.01234v2"

    def test_uppercase_version_marker(self):
        normalized = normalize_arxiv_id("2301.01234V3")
        assert normalized.canonical == "2301.01234"
        assert normalized.versioned == "2301.01234v3"

    def test_abs_url(self):
        normalized = normalize_arxiv_id("https://arxiv.org/abs/2301.01234v2")
        assert normalized.canonical == "2301.01234"
        assert normalized.version == 2

    def test_pdf_url_with_extension(self):
        normalized = normalize_arxiv_id("https://arxiv.org/pdf/2301.01234v2.pdf")
        assert normalized.canonical == "2301.01234"
        assert normalized.version == 2

    def test_url_with_query_and_fragment(self):
        normalized = normalize_arxiv_id("http://arxiv.org/abs/2301.01234?context=cs#section")
        assert normalized.canonical == "2301.01234"

    def test_export_mirror_url(self):
        assert normalize_arxiv_id("http://export.arxiv.org/abs/2401.00001v1").canonical == (
            "2401.00001"
        )

    def test_old_style_with_version(self):
        normalized = normalize_arxiv_id("hep-th/9901001v1")
        assert normalized.canonical == "hep-th/9901001"
        assert normalized.version == 1

    def test_old_style_abs_url(self):
        assert normalize_arxiv_id("https://arxiv.org/abs/math.GT/0309136").canonical == (
            "math.GT/0309136"
        )

    def test_surrounding_whitespace_stripped(self):
        assert normalize_arxiv_id("  2301.01234v1 \n").canonical == "2301.01234"

    def test_garbage_passes_through_as_canonical(self):
        normalized = normalize_arxiv_id("not an id")
        assert normalized.canonical == "not an id"
        assert not is_valid_arxiv_id(normalized.canonical)

    def test_canonical_is_fixed_point(self):
        canonical = normalize_arxiv_id("https://arxiv.org/pdf/2301.01234v7.pdf").canonical
        assert normalize_arxiv_id(canonical).canonical == canonical


class TestIsValidArxivId:
    """Tests for is_valid_arxiv_id."""

    @pytest.mark.parametrize(
        "candidate",
        ["0704.0001", "2301.01234", "hep-th/9901001", "math.GT/0309136", "cond-mat/0102536"],
    )
    def test_accepts_real_ids(self, candidate):
        assert is_valid_arxiv_id(candidate)

    @pytest.mark.parametrize(
        "candidate",
        ["", "2301.123", "2301.01234v2", "hello", "HEP-TH/9901001", "2301-01234"],
    )
    def test_rejects_non_ids(self, candidate):
        assert not is_valid_arxiv_id(candidate)


# ============================================================================
# Query building
# ============================================================================


class TestBuildSearchQuery:
    """Tests for build_search_query."""

    def test_plain_query(self):
        assert build_search_query("diffusion models") == "all:diffusion models"

    def test_whitespace_collapsed(self):
        assert build_search_query("  diffusion \n models ") == "all:diffusion models"

    def test_with_categories(self):
        assert build_search_query("diffusion", ["cs.LG", "cs.CV"]) == (
            "all:(diffusion) AND (cat:cs.LG OR cat:cs.CV)"
        )

    def test_blank_categories_ignored(self):
        assert build_search_query("diffusion", ["", "  "]) == "all:diffusion"

    def test_empty_query_raises(self):
        with pytest.raises(ValueError, match="must be provided"):
            build_search_query("   ")


class TestBuildSearchParams:
    """Tests for build_search_params and build_search_url."""

    def test_defaults(self):
        params = build_search_params("transformers")
        assert params == {
            "search_query": "all:transformers",
            "start": "0",
            "max_results": "10",
            "sortBy": "relevance",
            "sortOrder": "descending",
        }

    def test_max_results_clamped_to_api_limit(self):
        params = build_search_params("x", SearchOptions(max_results=5000))
        assert params["max_results"] == "200"

    def test_max_results_floor(self):
        params = build_search_params("x", SearchOptions(max_results=0))
        assert params["max_results"] == "1"

    def test_invalid_sort_by(self):
        with pytest.raises(ValueError, match="Unsupported sortBy"):
            build_search_params("x", SearchOptions(sort_by="citations"))

    def test_invalid_sort_order(self):
        with pytest.raises(ValueError, match="Unsupported sortOrder"):
            build_search_params("x", SearchOptions(sort_order="sideways"))

    def test_url_escapes_free_text(self):
        url = build_search_url('graph "neural" nets & more', SearchOptions(categories=["cs.LG"]))
        assert url.startswith(f"{ARXIV_API_URL}?")
        assert " " not in url
        assert '"' not in url
        assert "&more" not in url
        query = parse_qs(urlsplit(url).query)
        assert query["search_query"] == ['all:(graph "neural" nets & more) AND (cat:cs.LG)']

    def test_id_list_url(self):
        query = parse_qs(urlsplit(build_id_list_url("hep-th/9901001")).query)
        assert query == {"id_list": ["hep-th/9901001"]}


# ============================================================================
# Feed parsing
# ============================================================================


class TestParseAtomTimestamp:
    """Tests for parse_atom_timestamp."""

    def test_zulu(self):
        assert parse_atom_timestamp("2024-01-15T18:00:00Z") == datetime(
            2024, 1, 15, 18, 0, tzinfo=UTC
        )

    def test_naive_assumed_utc(self):
        assert parse_atom_timestamp("2024-01-15T18:00:00").tzinfo is not None

    @pytest.mark.parametrize("raw", ["", "   ", "yesterday", "2024-13-45T00:00:00Z"])
    def test_invalid(self, raw):
        assert parse_atom_timestamp(raw) is None


class TestParseArxivFeed:
    """Tests for parse_arxiv_feed_result / parse_arxiv_feed."""

    def test_single_entry_fields(self, make_feed, make_entry):
        xml = make_feed(
            make_entry(
                "2401.12345",
                version=2,
                title="Attention  Is\n  All You Need",
                summary="  We propose\n a model. ",
                updated="2024-02-01T00:00:00Z",
                authors=("Alice", "Bob"),
                categories=("cs.LG", "cs.CL", "cs.LG"),
            )
        )
        (paper,) = parse_arxiv_feed(xml)
        assert paper.arxiv_id == "2401.12345"
        assert paper.versioned_id == "2401.12345v2"
        assert paper.version == 2
        assert paper.title == "Attention Is All You Need"
        assert paper.abstract == "We propose a model."
        assert paper.authors == ["Alice", "Bob"]
        assert paper.published == datetime(2024, 1, 15, 18, 0, tzinfo=UTC)
        assert paper.updated == datetime(2024, 2, 1, tzinfo=UTC)
        assert paper.url == "http://arxiv.org/abs/2401.12345v2"
        assert paper.pdf_url == "http://arxiv.org/pdf/2401.12345v2"
        assert paper.categories == ["cs.LG", "cs.CL"]

    def test_url_falls_back_to_entry_id(self, make_feed, make_entry):
        (paper,) = parse_arxiv_feed(make_feed(make_entry(with_links=False)))
        assert paper.url == "http://arxiv.org/abs/2401.12345v1"
        assert paper.pdf_url is None

    def test_malformed_entries_are_skipped(self, make_feed, make_entry):
        xml = make_feed(
            make_entry("2401.00001"),
            make_entry("2401.00002", published=None),
            make_entry("2401.00003"),
            make_entry("2401.00004", title=None),
            make_entry("2401.00005", include_id=False),
            make_entry("2401.00006", published="not a date"),
            make_entry("2401.00007"),
        )
        result = parse_arxiv_feed_result(xml)
        assert result.feed_ok
        assert [p.arxiv_id for p in result.papers] == ["2401.00001", "2401.00003", "2401.00007"]
        assert result.skipped == 4

    def test_skipped_entries_logged(self, make_feed, make_entry, caplog):
        with caplog.at_level("WARNING", logger="paper_scout.parsing"):
            parse_arxiv_feed(make_feed(make_entry(published=None)))
        assert "skipped 1 malformed entry" in caplog.text

    def test_empty_feed_is_valid(self, make_feed):
        result = parse_arxiv_feed_result(make_feed())
        assert result.feed_ok
        assert result.papers == []
        assert result.skipped == 0

    def test_invalid_xml(self):
        result = parse_arxiv_feed_result("<feed><entry>")
        assert not result.feed_ok
        assert result.papers == []
        assert "invalid XML" in result.error

    def test_empty_body(self):
        result = parse_arxiv_feed_result("   ")
        assert not result.feed_ok

    def test_non_feed_root(self):
        result = parse_arxiv_feed_result("<html><body>Rate limited</body></html>")
        assert not result.feed_ok
        assert "feed" in result.error

    def test_parse_arxiv_feed_never_raises(self):
        assert parse_arxiv_feed("\x00garbage") == []

    def test_feed_without_namespace(self):
        xml = (
            "<feed><entry><id>http://arxiv.org/abs/2401.00001v1</id>"
            "<title>T</title><published>2024-01-01T00:00:00Z</published></entry></feed>"
        )
        (paper,) = parse_arxiv_feed(xml)
        assert paper.arxiv_id == "2401.00001"
        assert paper.authors == []
        assert paper.abstract == ""
