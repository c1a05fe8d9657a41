from datetime import datetime, timezone

import pytest

from services.scraping.extract import (
    absolutize_url,
    compute_engagement_rate,
    extract,
    extract_first_list_item,
    extract_parsed,
    parse_duration,
    parse_timestamp,
    resolve_path,
    to_count,
)


def test_extract_returns_first_non_null_candidate():
    item = {"playCount": None, "stats": {"playCount": 42}, "views": 7}
    assert extract(item, ["playCount", "stats.playCount", "views"]) == 42


def test_extract_missing_paths_return_none():
    item = {"videoMeta": "not-a-dict"}
    assert resolve_path(item, "videoMeta.coverUrl") is None
    assert extract(item, ["a.b.c", "missing"]) is None
    assert extract(None, ["anything"]) is None


def test_extract_keeps_falsy_but_present_values():
    assert extract({"shareCount": 0, "shares": 9}, ["shareCount", "shares"]) == 0


def test_extract_parsed_skips_values_the_parser_rejects():
    item = {"comments": [{"text": "nice"}], "commentsCount": 12}
    assert extract_parsed(item, ["comments", "commentsCount"], to_count) == 12


def test_extract_first_list_item_skips_empty_lists():
    item = {"images": [], "imageUrls": [None, "https://cdn.example/a.jpg"]}
    assert extract_first_list_item(item, ["images", "imageUrls"]) == "https://cdn.example/a.jpg"


@pytest.mark.parametrize(
    "value,expected",
    [
        (12, 12),
        (-3, 0),
        (12.6, 13),
        ("1,234", 1234),
        ("12.5K", 12500),
        ("3m", 3_000_000),
        ("", None),
        ("lots", None),
        (True, None),
        (float("nan"), None),
        ([1, 2], None),
    ],
)
def test_to_count_coercion(value, expected):
    assert to_count(value) == expected


def test_parse_timestamp_formats():
    expected = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp("2024-01-01T00:00:00Z") == expected
    assert parse_timestamp(1704067200) == expected
    assert parse_timestamp(1704067200000) == expected
    assert parse_timestamp("1704067200") == expected
    assert parse_timestamp(datetime(2024, 1, 1)) == expected


def test_parse_timestamp_rejects_garbage():
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(0) is None
    assert parse_timestamp({"date": "2024"}) is None


def test_parse_duration_formats():
    assert parse_duration(59) == 59
    assert parse_duration("45") == 45
    assert parse_duration("1:05") == 65
    assert parse_duration("01:02:03") == 3723
    assert parse_duration("abc") is None
    assert parse_duration("1:2:3:4") is None
    assert parse_duration(0) is None


def test_absolutize_url():
    origin = "https://www.instagram.com"
    assert absolutize_url("https://cdn.example/a.jpg", origin) == "https://cdn.example/a.jpg"
    assert absolutize_url("//cdn.example/a.jpg", origin) == "https://cdn.example/a.jpg"
    assert absolutize_url("/reel/abc/", origin) == "https://www.instagram.com/reel/abc/"
    assert absolutize_url("  ", origin) is None


def test_engagement_rate_uses_views_as_base():
    assert compute_engagement_rate(views=100, likes=10, comments=2, shares=1) == 13.0


def test_engagement_rate_without_views_falls_back_to_interactions():
    assert compute_engagement_rate(views=0, likes=30, comments=10, shares=0) == 100.0
    assert compute_engagement_rate(views=0, likes=30, comments=10, shares=4) == 110.0


def test_engagement_rate_never_divides_by_zero():
    assert compute_engagement_rate(views=0, likes=0, comments=0, shares=0) == 0.0
    assert compute_engagement_rate(views=0, likes=0, comments=0, shares=3) == 300.0


def test_engagement_rate_rounds_to_two_places():
    assert compute_engagement_rate(views=3, likes=1, comments=0, shares=0) == 33.33
