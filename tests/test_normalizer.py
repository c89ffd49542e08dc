"""Tests for annotation normalization: filtering, field precedence and dates."""
import pytest

from pdf_comments.core.normalizer import (
    normalize_annotation,
    normalize_pages,
    parse_pdf_date,
    resolve_author,
    resolve_modified,
    resolve_text,
)
from pdf_comments.core.types import CommentRecord


class TestFiltering:
    @pytest.mark.parametrize("subtype", ["Highlight", "Link", "Square", "FreeText", "Popup", ""])
    def test_non_text_annotations_are_dropped(self, subtype):
        raw = {"subtype": subtype, "contents": "something"}
        assert normalize_annotation(raw, 1) is None

    def test_missing_subtype_is_dropped(self):
        assert normalize_annotation({"contents": "orphan"}, 1) is None

    def test_pdf_dictionary_spelling_is_recognised(self):
        raw = {"Subtype": "Text", "Contents": "From PyPDF2", "T": "Ann"}
        assert normalize_annotation(raw, 4) == CommentRecord(page=4, author="Ann", text="From PyPDF2", modified="")

    def test_non_mapping_is_dropped(self):
        assert normalize_annotation(None, 1) is None
        assert normalize_annotation(["Text"], 1) is None


class TestTextResolution:
    def test_direct_string_is_trimmed(self):
        assert resolve_text({"contents": "  Fix typo \n"}) == "Fix typo"

    def test_nested_str_before_text(self):
        assert resolve_text({"contents": {"str": "from str", "text": "from text"}}) == "from str"

    def test_nested_text_when_str_empty(self):
        assert resolve_text({"contents": {"str": "  ", "text": "from text"}}) == "from text"

    def test_array_is_space_joined(self):
        assert resolve_text({"contents": ["one", "two", "three"]}) == "one two three"

    def test_other_objects_are_serialized(self):
        assert resolve_text({"contents": {"dir": "ltr", "n": [1, 2]}}) == '{"dir":"ltr","n":[1,2]}'

    def test_empty_contents_falls_back_to_secondary(self):
        assert resolve_text({"contents": "   ", "contentsObj": {"str": "fallback"}}) == "fallback"

    def test_secondary_plain_string(self):
        assert resolve_text({"contentsObj": "plain fallback"}) == "plain fallback"

    def test_rich_text_is_last_resort(self):
        assert resolve_text({"Contents": "", "RC": "<p>rich</p>"}) == "<p>rich</p>"

    def test_bytes_are_decoded(self):
        assert resolve_text({"Contents": "café".encode("utf-16")}) == "café"

    def test_whitespace_everywhere_drops_record(self):
        raw = {"subtype": "Text", "contents": "  ", "contentsObj": {"str": "\n\t"}}
        assert normalize_annotation(raw, 1) is None

    def test_non_string_contents_is_ignored(self):
        assert resolve_text({"contents": 42}) == ""

    def test_truncated_utf16_is_decoded_with_replacement(self):
        assert resolve_text({"Contents": b"\xfe\xff\x00H\x00i\x00"}) == "Hi\ufffd"


class TestAuthorResolution:
    def test_precedence_order(self):
        raw = {
            "titleObj": {"str": "from titleObj"},
            "title": "from title",
            "T": "from T",
            "user": "from user",
            "author": "from author",
            "userName": "from userName",
        }
        assert resolve_author(raw) == "from titleObj"
        del raw["titleObj"]
        assert resolve_author(raw) == "from title"
        del raw["title"]
        assert resolve_author(raw) == "from T"
        del raw["T"]
        assert resolve_author(raw) == "from user"
        del raw["user"]
        assert resolve_author(raw) == "from author"
        del raw["author"]
        assert resolve_author(raw) == "from userName"
        del raw["userName"]
        assert resolve_author(raw) == ""

    def test_t_may_be_an_object(self):
        assert resolve_author({"T": {"str": "Nested"}}) == "Nested"

    def test_empty_title_falls_through(self):
        assert resolve_author({"titleObj": {"str": ""}, "title": "", "user": "u1"}) == "u1"

    def test_mistyped_fields_are_skipped(self):
        assert resolve_author({"title": 7, "titleObj": "not an object", "author": "Real"}) == "Real"


class TestDates:
    def test_pdf_date(self):
        assert parse_pdf_date("D:20230615143000") == "2023-06-15 14:30:00Z"

    def test_pdf_date_with_suffix(self):
        assert parse_pdf_date("D:20230615143000+02'00'") == "2023-06-15 14:30:00Z"

    def test_iso_fallback_is_normalized_to_utc(self):
        assert parse_pdf_date("2023-06-15T16:30:00+02:00") == "2023-06-15 14:30:00Z"

    def test_iso_fallback_drops_fractional_seconds(self):
        assert parse_pdf_date("2023-06-15T14:30:00.250Z") == "2023-06-15 14:30:00Z"

    def test_rfc2822_fallback(self):
        assert parse_pdf_date("Thu, 15 Jun 2023 14:30:00 +0000") == "2023-06-15 14:30:00Z"

    def test_unparsable_raises(self):
        with pytest.raises(ValueError):
            parse_pdf_date("last tuesday")

    def test_invalid_calendar_date_raises(self):
        with pytest.raises(ValueError):
            parse_pdf_date("D:20231345000000")

    def test_resolve_uses_first_present_field(self):
        raw = {"modDate": "D:20200101000000", "modified": "D:20210101000000", "M": "D:20220101000000"}
        assert resolve_modified(raw) == "2020-01-01 00:00:00Z"

    def test_resolve_degrades_to_empty(self):
        assert resolve_modified({"modificationDate": "not a date"}) == ""
        assert resolve_modified({}) == ""

    def test_bad_date_does_not_drop_record(self):
        raw = {"subtype": "Text", "contents": "Keep me", "M": "D:2023"}
        record = normalize_annotation(raw, 2)
        assert record == CommentRecord(page=2, author="", text="Keep me", modified="")


class TestNormalizePages:
    def test_order_is_page_then_backend_order(self):
        pages = [
            (2, [{"subtype": "Text", "contents": "b1"}, {"subtype": "Text", "contents": "b2"}]),
            (1, [{"subtype": "Text", "contents": "a1"}]),
            (3, []),
        ]
        assert [r.text for r in normalize_pages(pages)] == ["a1", "b1", "b2"]

    def test_one_bad_annotation_does_not_stop_the_page(self):
        pages = [
            (1, [
                {"subtype": "Text", "contents": "first", "modDate": "garbage"},
                {"subtype": "Highlight", "contents": "skip"},
                {"subtype": "Text", "contents": "second", "user": "Dee"},
            ]),
        ]
        records = normalize_pages(pages)
        assert [(r.text, r.author, r.modified) for r in records] == [("first", "", ""), ("second", "Dee", "")]


class TestMalformedBytes:
    def test_odd_length_utf16_author_keeps_record(self):
        raw = {"Subtype": "Text", "Contents": "keep me", "T": b"\xfe\xff\x00A\x00"}
        record = normalize_annotation(raw, 1)
        assert record is not None
        assert record.text == "keep me"
        assert record.author == "A\ufffd"

    def test_odd_length_utf16_contents_does_not_stop_page(self):
        pages = [
            (1, [
                {"Subtype": "Text", "Contents": b"\xff\xfeA"},
                {"Subtype": "Text", "Contents": "after"},
            ]),
        ]
        assert [r.text for r in normalize_pages(pages)] == ["\ufffd", "after"]

    def test_unreadable_annotation_is_skipped(self):
        class Exploding(dict):
            def get(self, key, default=None):
                raise TypeError("unhashable field")

        records = normalize_pages([(1, [Exploding(), {"subtype": "Text", "contents": "fine"}])])
        assert [r.text for r in records] == ["fine"]
