"""Tests for import row normalization."""

import pytest

from modules.imports.dedup import deduplicate, keys_from_rows
from modules.imports.models import DedupKeys, FieldMapping
from modules.imports.normalization import (
    NO_IDENTITY_REASON,
    normalize,
    normalize_email,
    normalize_phone,
    suggest_mapping,
)

MAPPING = FieldMapping(name="Name", email="Email", phone="Phone", company="Company")


class TestNormalizePhone:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("012-345 6789", "+60123456789"),
            ("60123456789", "+60123456789"),
            ("+60 12-345 6789", "+60123456789"),
            ("123456789", "+60123456789"),
            ("(03) 2145 6789", "+60321456789"),
            ("+6591234567", "+6591234567"),
        ],
    )
    def test_coerced_to_international(self, raw, expected):
        assert normalize_phone(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "12345", "n/a"])
    def test_unusable_numbers_are_dropped(self, raw):
        assert normalize_phone(raw) is None


class TestNormalizeEmail:
    def test_lowercases(self):
        assert normalize_email("  Aisha@Example.COM ") == "aisha@example.com"

    def test_invalid_is_dropped(self):
        assert normalize_email("not-an-email") is None
        assert normalize_email(None) is None


class TestNormalize:
    def test_maps_and_cleans(self):
        result = normalize(
            [{"Name": " Aisha ", "Email": "AISHA@x.com", "Phone": "0123456789", "Company": "Acme"}],
            MAPPING,
        )
        contact = result.contacts[0]
        assert contact["name"] == "Aisha"
        assert contact["email"] == "aisha@x.com"
        assert contact["phone"] == "+60123456789"
        assert contact["category"] == "Lead"
        assert contact["_row"] == 2

    def test_bad_fields_are_nulled_not_rejected(self):
        result = normalize([{"Name": "Ben", "Email": "nope", "Phone": "123"}], MAPPING)
        assert result.errors == []
        assert result.contacts[0]["email"] is None
        assert result.contacts[0]["phone"] is None

    def test_row_without_identity_is_an_error(self):
        result = normalize(
            [{"Name": "Ben"}, {"Name": "", "Email": "bad", "Company": "Acme"}],
            MAPPING,
        )
        assert len(result.contacts) == 1
        assert result.errors[0].row == 3
        assert result.errors[0].reason == NO_IDENTITY_REASON

    def test_nameless_row_with_email_gets_placeholder(self):
        result = normalize([{"Email": "x@y.com"}], MAPPING)
        assert result.contacts[0]["name"] == "Unknown"

    def test_default_category(self):
        result = normalize([{"Name": "Ben"}], MAPPING, default_category="Customer")
        assert result.contacts[0]["category"] == "Customer"


class TestSuggestMapping:
    def test_common_headers(self):
        mapping = suggest_mapping(
            ["Full Name", "Email Address", "Mobile", "Company Name", "Job Title", "Remarks"]
        )
        assert mapping.name == "Full Name"
        assert mapping.email == "Email Address"
        assert mapping.phone == "Mobile"
        assert mapping.company == "Company Name"
        assert mapping.position == "Job Title"
        assert mapping.notes == "Remarks"

    def test_malay_headers(self):
        mapping = suggest_mapping(["Nama", "Syarikat", "Jawatan"])
        assert mapping.name == "Nama"
        assert mapping.company == "Syarikat"
        assert mapping.position == "Jawatan"

    def test_nothing_recognised(self):
        assert suggest_mapping(["Col1", "Col2"]).is_empty()


class TestDeduplicate:
    def test_against_existing_and_within_batch(self):
        existing = keys_from_rows([{"email": "Old@x.com", "phone": None}])
        contacts = [
            {"name": "A", "email": "old@x.com", "phone": None},
            {"name": "B", "email": None, "phone": "+60123456789"},
            {"name": "C", "email": None, "phone": "012-345 6789"},
            {"name": "D", "email": "d@x.com", "phone": None},
        ]

        result = deduplicate(contacts, existing)

        assert [c["name"] for c in result.unique] == ["B", "D"]
        assert [c["name"] for c in result.duplicates] == ["A", "C"]

    def test_disabled(self):
        contacts = [{"email": "a@x.com"}, {"email": "a@x.com"}]
        result = deduplicate(contacts, DedupKeys(emails={"a@x.com"}), skip_duplicates=False)
        assert len(result.unique) == 2
        assert result.duplicates == []
