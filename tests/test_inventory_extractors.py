import pytest

from services.inventory_extractors import (
    compute_age_90_plus,
    format_eta,
    parse_number,
    parse_percent,
    pick_number,
    pick_text,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1,234", 1234.0),
        ("abc", 0.0),
        ("", 0.0),
        (None, 0.0),
        ("$12.50", 12.5),
        ("-3", -3.0),
        (7, 7.0),
        ("1-2", 0.0),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("12.5%", 0.125),
        ("0.125", 0.125),
        (0.125, 0.125),
        ("12.5", 0.125),
        (12.5, 0.125),
        ("", 0.0),
        (None, 0.0),
        ("1", 1.0),
    ],
)
def test_parse_percent(raw, expected):
    assert parse_percent(raw) == pytest.approx(expected)


def test_age_90_plus_only_counts_buckets_past_90_days():
    row = {
        "sku": "SKU-1",
        "inv-age-0-to-90-days": "5",
        "inv-age-91-to-180-days": "7",
        "inv-age-181-to-365-days": "3",
    }
    assert compute_age_90_plus(row) == 10


def test_age_90_plus_skips_fine_grained_young_buckets():
    row = {
        "inv-age-0-to-30-days": "4",
        "inv-age-31-to-60-days": "4",
        "inv-age-61-to-90-days": "4",
        "inv-age-365-plus-days": "2",
        "available": "99",
    }
    assert compute_age_90_plus(row) == 2


def test_pick_number_returns_first_finite_candidate():
    assert pick_number(None, "", "n/a", "12", 4) == 12.0
    assert pick_number(0, 5) == 0.0
    assert pick_number(float("nan"), None) is None
    assert pick_number() is None


def test_pick_text_skips_blank_values():
    assert pick_text(None, "  ", "Widget") == "Widget"
    assert pick_text(None) is None


def test_format_eta():
    assert format_eta("2025-03-07T00:00:00Z") == "Mar 7"
    assert format_eta("2025-12-25") == "Dec 25"
    assert format_eta("not a date") == "TBD"
    assert format_eta(None) == "TBD"
