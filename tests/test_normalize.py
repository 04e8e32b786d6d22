"""
Tests for remme/normalize.py

Covers URL normalization, tag parsing, building new and edited links,
and normalization of imported records.
"""
import math
import uuid

import pytest

from remme.models import Link
from remme.normalize import (
    FormValues,
    build_new_link,
    build_updated_link,
    format_domain,
    normalize_imported_records,
    normalize_url,
    parse_tags,
)


class TestNormalizeUrl:
    """Test normalize_url()."""

    @pytest.mark.parametrize("raw", ["example.com", "www.example.com/path?q=1", "localhost:8000"])
    def test_adds_https_when_scheme_missing(self, raw):
        assert normalize_url(raw) == f"https://{raw}"

    @pytest.mark.parametrize("raw", [
        "http://example.com",
        "https://example.com",
        "HTTP://Example.com",
        "HttpS://example.com/Path",
    ])
    def test_keeps_existing_scheme_unchanged(self, raw):
        assert normalize_url(raw) == raw

    def test_trims_whitespace(self):
        assert normalize_url("  https://example.com \n") == "https://example.com"
        assert normalize_url("  example.com  ") == "https://example.com"

    def test_empty_input_gives_empty_output(self):
        assert normalize_url("") == ""
        assert normalize_url(None) == ""
        assert normalize_url("   ") == ""

    def test_other_schemes_get_prefixed(self):
        """Only http and https are recognized."""
        assert normalize_url("ftp://example.com") == "https://ftp://example.com"


class TestParseTags:
    """Test parse_tags()."""

    def test_drops_empty_and_collapses_duplicates(self):
        assert set(parse_tags("Design, , Marketing ,design")) == {"design", "marketing"}

    def test_keeps_first_occurrence_order(self):
        assert parse_tags("b, A, a, c") == ["b", "a", "c"]

    def test_empty_string(self):
        assert parse_tags("") == []
        assert parse_tags(" , ,") == []

    def test_none(self):
        assert parse_tags(None) == []

    def test_accepts_list(self):
        assert parse_tags([" Python", "WEB ", "", "python"]) == ["python", "web"]

    def test_non_string_items_are_stringified(self):
        assert parse_tags([2024, None, "x"]) == ["2024", "x"]

    def test_unsupported_type_gives_no_tags(self):
        assert parse_tags(42) == []
        assert parse_tags({"a": 1}) == []


class TestBuildNewLink:
    """Test build_new_link()."""

    def test_derives_all_fields(self):
        form = FormValues(url=" example.com ", title="  Example ", note="  a note ", tags="Web, Demo")
        link = build_new_link(form, now=1234)

        assert link.url == "https://example.com"
        assert link.title == "Example"
        assert link.note == "a note"
        assert link.tags == ["web", "demo"]
        assert link.created_at == 1234
        assert link.updated_at == 1234

    def test_title_defaults_to_normalized_url(self):
        link = build_new_link(FormValues(url="example.com", title="   "), now=1)
        assert link.title == "https://example.com"

    def test_id_is_a_uuid(self):
        link = build_new_link(FormValues(url="example.com"), now=1)
        assert str(uuid.UUID(link.id)) == link.id

    def test_identical_input_gives_distinct_ids(self):
        form = FormValues(url="example.com", title="Same", tags="a")
        first = build_new_link(form)
        second = build_new_link(form)

        assert first.id != second.id
        assert first.created_at == first.updated_at
        assert second.created_at == second.updated_at

    def test_accepts_mapping(self):
        link = build_new_link({"url": "http://example.com", "tags": "x"}, now=5)
        assert link.url == "http://example.com"
        assert link.note == ""
        assert link.tags == ["x"]

    def test_blank_url_rejected(self):
        with pytest.raises(ValueError, match="URL is required"):
            build_new_link(FormValues(url="   "))

    def test_defaults_now_to_current_time(self):
        link = build_new_link(FormValues(url="example.com"))
        assert link.created_at > 1_600_000_000_000


class TestBuildUpdatedLink:
    """Test build_updated_link()."""

    @pytest.fixture
    def existing(self):
        return Link(
            id="fixed-id",
            url="https://old.example.com",
            title="Old",
            note="old note",
            tags=["old"],
            created_at=100,
            updated_at=100,
        )

    def test_keeps_id_and_created_at(self, existing):
        updated = build_updated_link(existing, FormValues(url="new.example.com", title="New"), now=500)

        assert updated.id == "fixed-id"
        assert updated.created_at == 100
        assert updated.updated_at == 500

    def test_replaces_all_mutable_fields(self, existing):
        updated = build_updated_link(existing, FormValues(url="new.example.com"), now=500)

        assert updated.url == "https://new.example.com"
        assert updated.title == "https://new.example.com"
        assert updated.note == ""
        assert updated.tags == []

    def test_does_not_modify_existing(self, existing):
        build_updated_link(existing, FormValues(url="new.example.com", tags="x"), now=500)
        assert existing.url == "https://old.example.com"
        assert existing.tags == ["old"]


class TestNormalizeImportedRecords:
    """Test normalize_imported_records()."""

    def test_accepts_bare_list(self):
        links = normalize_imported_records([{"url": "example.com"}], now=10)
        assert len(links) == 1
        assert links[0].url == "https://example.com"

    def test_accepts_links_envelope(self):
        links = normalize_imported_records({"version": 1, "links": [{"url": "https://a.com"}]}, now=10)
        assert [link.url for link in links] == ["https://a.com"]

    @pytest.mark.parametrize("data", [None, 42, "links", {"links": "nope"}, {"other": []}, {}])
    def test_unrecognized_shapes_give_nothing(self, data):
        assert normalize_imported_records(data) == []

    def test_drops_elements_without_string_url(self):
        data = [
            {"url": "https://ok.com"},
            {"url": 42},
            {"title": "no url"},
            "https://plain-string.com",
            None,
            {"url": "   "},
        ]
        links = normalize_imported_records(data, now=10)
        assert [link.url for link in links] == ["https://ok.com"]

    def test_preserves_well_formed_id_and_timestamps(self):
        data = [{"id": "abc", "url": "https://a.com", "createdAt": 111, "updatedAt": 222}]
        link = normalize_imported_records(data, now=999)[0]

        assert link.id == "abc"
        assert link.created_at == 111
        assert link.updated_at == 222

    def test_largest_64_bit_timestamp_accepted(self):
        data = [{"url": "https://a.com", "createdAt": 2 ** 63 - 1, "updatedAt": 0}]
        link = normalize_imported_records(data, now=999)[0]
        assert link.created_at == 2 ** 63 - 1
        assert link.updated_at == 0

    def test_float_timestamps_accepted(self):
        data = [{"url": "https://a.com", "createdAt": 111.0, "updatedAt": 222.5}]
        link = normalize_imported_records(data, now=999)[0]
        assert link.created_at == 111
        assert link.updated_at == 222

    @pytest.mark.parametrize("bad_id", ["", None, 17, ["x"]])
    def test_malformed_id_regenerated(self, bad_id):
        link = normalize_imported_records([{"id": bad_id, "url": "https://a.com"}], now=1)[0]
        assert isinstance(link.id, str) and link.id
        assert link.id != bad_id

    @pytest.mark.parametrize("bad_ts", ["111", None, True, math.inf, math.nan, [1], 1e20, -1e20, 2 ** 63])
    def test_malformed_timestamps_regenerated(self, bad_ts):
        data = [{"url": "https://a.com", "createdAt": bad_ts, "updatedAt": bad_ts}]
        link = normalize_imported_records(data, now=999)[0]
        assert link.created_at == 999
        assert link.updated_at == 999

    def test_field_derivation_matches_new_links(self):
        data = [{
            "url": " example.com ",
            "title": "",
            "note": "  spaced  ",
            "tags": ["Design", " ", "design", "Marketing"],
        }]
        link = normalize_imported_records(data, now=1)[0]

        assert link.url == "https://example.com"
        assert link.title == "https://example.com"
        assert link.note == "spaced"
        assert link.tags == ["design", "marketing"]

    def test_comma_separated_tags_accepted(self):
        link = normalize_imported_records([{"url": "a.com", "tags": "One, two"}], now=1)[0]
        assert link.tags == ["one", "two"]

    def test_missing_ids_are_distinct(self):
        links = normalize_imported_records([{"url": "a.com"}, {"url": "b.com"}], now=1)
        assert links[0].id != links[1].id


class TestFormatDomain:
    """Test format_domain()."""

    def test_strips_www(self):
        assert format_domain("https://www.example.com/page") == "example.com"

    def test_keeps_other_subdomains(self):
        assert format_domain("https://docs.python.org") == "docs.python.org"

    def test_unparseable(self):
        assert format_domain("not a url") == ""
