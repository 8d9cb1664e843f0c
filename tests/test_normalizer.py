"""
Tests for color_oracle/ingest/normalizer.py - feed payload normalization.
"""

import pytest

from color_oracle.ingest.normalizer import (
    ResultEntry,
    locate_any_top_level_key,
    locate_conventional,
    locate_top_level_list,
    normalize_feed,
    parse_outcome,
    to_result_entry,
)


@pytest.fixture
def wingo_payload():
    """Nested data.list shape used by WinGo-style history endpoints."""
    return {
        "code": 0,
        "msg": "Succeed",
        "data": {
            "pageNo": 1,
            "totalPage": 50,
            "list": [
                {"issueNumber": "20260118100010", "number": "7", "color": "green"},
                {"issueNumber": "20260118100009", "number": "0", "color": "red,violet"},
                {"issueNumber": "20260118100008", "number": "4", "color": "red"},
            ],
        },
    }


class TestLocateStrategies:
    def test_top_level_list(self):
        payload = [{"period": "1", "result": 3}]
        assert locate_top_level_list(payload) is payload
        assert locate_top_level_list({"data": []}) is None

    def test_conventional_nested(self, wingo_payload):
        found = locate_conventional(wingo_payload)
        assert found is wingo_payload["data"]["list"]

    def test_conventional_prefers_nested_over_flat(self):
        payload = {"data": {"list": [1]}, "results": [2]}
        assert locate_conventional(payload) == [1]

    def test_conventional_flat_key(self):
        payload = {"status": "ok", "results": [{"id": 1}]}
        assert locate_conventional(payload) == [{"id": 1}]

    def test_conventional_none(self):
        assert locate_conventional({"draws": [1]}) is None
        assert locate_conventional([1, 2]) is None

    def test_top_level_scan_fallback(self):
        payload = {"meta": {"page": 1}, "draws": [{"id": "a"}]}
        assert locate_any_top_level_key(payload) == [{"id": "a"}]
        assert locate_any_top_level_key({"meta": {}}) is None


class TestParseOutcome:
    @pytest.mark.parametrize("raw,expected", [
        (7, 7),
        ("7", 7),
        (" 3 ", 3),
        (4.0, 4),
        ("5.0", 5),
        (0, 0),
    ])
    def test_valid(self, raw, expected):
        assert parse_outcome(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "x", 10, -1, 2.5, "2.5", True, [1]])
    def test_invalid(self, raw):
        assert parse_outcome(raw) is None


class TestToResultEntry:
    def test_maps_alternative_field_names(self):
        entry = to_result_entry({"period": 123, "result": "8"})
        assert entry == ResultEntry(period_id="123", outcome_number=8, color=None)

    def test_keeps_color_string(self):
        entry = to_result_entry({"issue": "A1", "digit": 9, "color": "violet"})
        assert entry.color == "violet"

    def test_skips_unparseable_outcome_field_for_next(self):
        entry = to_result_entry({"id": "p", "number": "n/a", "value": 2})
        assert entry.outcome_number == 2

    def test_missing_period_rejected(self):
        assert to_result_entry({"number": 3}) is None

    def test_non_dict_rejected(self):
        assert to_result_entry("7") is None


class TestNormalizeFeed:
    def test_wingo_payload(self, wingo_payload):
        entries = normalize_feed(wingo_payload)
        assert [e.period_id for e in entries] == [
            "20260118100010", "20260118100009", "20260118100008"
        ]
        assert entries[0].outcome_number == 7

    def test_truncates_to_limit_preserving_order(self):
        payload = [{"period": str(100 - i), "number": i % 10} for i in range(25)]
        entries = normalize_feed(payload, limit=10)
        assert len(entries) == 10
        assert entries[0].period_id == "100"
        assert entries[-1].period_id == "91"

    def test_discards_bad_entries(self):
        payload = {"items": [
            {"period": "3", "number": "x"},
            {"period": "2", "number": 5},
            "garbage",
            {"period": "1", "number": 12},
        ]}
        entries = normalize_feed(payload)
        assert entries == [ResultEntry("2", 5, None)]

    def test_no_array_is_empty(self):
        assert normalize_feed({"error": "maintenance"}) == []
        assert normalize_feed(None) == []
        assert normalize_feed("<html>") == []

    def test_all_unparseable_is_empty(self):
        assert normalize_feed({"list": [{"foo": 1}, {"bar": 2}]}) == []
