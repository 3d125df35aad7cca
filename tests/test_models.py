import re
from datetime import date, timedelta

import pytest
from pydantic import ValidationError

from saas_reviews.models import ReviewRecord
from saas_reviews.utils import (
    clean_text,
    normalize_rating,
    parse_date_fuzzy,
    sanitize_company_name,
    slugify,
)


def test_text_fields_are_whitespace_normalized():
    r = ReviewRecord(
        id="g2_1",
        source="G2",
        title="  Solid\n tool ",
        content="Line one\n\nline   two\t end",
        pros="   ",
        author="\nJane  Doe\n",
    )
    assert r.title == "Solid tool"
    assert r.content == "Line one line two end"
    assert r.pros is None
    assert r.author == "Jane Doe"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("4.56 out of 5", 4.6),
        (7, 5.0),
        (-2, 0.0),
        ("0", 0.0),
        ("no stars", None),
        (None, None),
    ],
)
def test_rating_is_clamped_and_rounded(raw, expected):
    assert ReviewRecord(id="x", source="G2", rating=raw).rating == expected


def test_dates_are_parsed_or_nulled():
    assert ReviewRecord(id="x", source="G2", date="January 5, 2024").date == date(2024, 1, 5)
    assert ReviewRecord(id="x", source="G2", date="2024-02-29T10:00:00Z").date == date(2024, 2, 29)
    assert ReviewRecord(id="x", source="G2", date="unknown").date is None


def test_normalization_is_idempotent():
    first = ReviewRecord(
        id="capterra_1",
        source="Capterra",
        title=" A\n title ",
        content="some   content",
        rating="3.33",
        date="03/15/2024",
    )
    again = ReviewRecord.model_validate(first.model_dump())
    assert again == first
    again_json = ReviewRecord.model_validate(first.model_dump(mode="json"))
    assert again_json == first


def test_source_is_required():
    with pytest.raises(ValidationError):
        ReviewRecord(id="x")


def test_to_output_keeps_core_fields_and_drops_empty_extensions():
    r = ReviewRecord(id="tr_1", source="TrustRadius", content="ok", date="2024-01-02", industry="Retail")
    out = r.to_output()
    assert out["date"] == "2024-01-02"
    assert out["title"] is None
    assert out["industry"] == "Retail"
    assert "job_title" not in out
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", out["scraped_at"])


@pytest.mark.parametrize(
    "text, expected",
    [
        ("2024-01-31", date(2024, 1, 31)),
        ("Jan 31, 2024", date(2024, 1, 31)),
        ("31 Jan 2024", date(2024, 1, 31)),
        ("12-25-2023", date(2023, 12, 25)),
        ("2024-01-31 08:15:00", date(2024, 1, 31)),
        ("", None),
        (None, None),
    ],
)
def test_parse_date_formats(text, expected):
    assert parse_date_fuzzy(text) == expected


def test_parse_relative_dates():
    today = date(2024, 3, 10)
    assert parse_date_fuzzy("today", today=today) == today
    assert parse_date_fuzzy("Yesterday", today=today) == date(2024, 3, 9)
    assert parse_date_fuzzy("3 days ago", today=today) == date(2024, 3, 7)
    assert parse_date_fuzzy("2 weeks ago", today=today) == today - timedelta(days=14)
    assert parse_date_fuzzy("a month ago", today=today) == today - timedelta(days=30)


def test_parse_hours_and_minutes_ago_use_given_today():
    today = date(2024, 1, 20)
    assert parse_date_fuzzy("3 hours ago", today=today) == today
    assert parse_date_fuzzy("an hour ago", today=today) == today
    assert parse_date_fuzzy("45 minutes ago", today=today) == today
    assert parse_date_fuzzy("30 hours ago", today=today) == date(2024, 1, 19)


def test_fuzzy_fallback_anchors_on_today_and_rejects_future():
    today = date(2024, 1, 20)
    assert parse_date_fuzzy("Helpful 25", today=today) is None
    assert parse_date_fuzzy("Updated January 5", today=today) == date(2024, 1, 5)
    assert parse_date_fuzzy("Reviewed March 3, 2023", today=today) == date(2023, 3, 3)


def test_text_helpers():
    assert clean_text(" a \n b ") == "a b"
    assert clean_text("") is None
    assert normalize_rating("5.0 out of 5") == 5.0
    assert slugify("Microsoft Teams!") == "microsoft-teams"
    assert sanitize_company_name("Microsoft Teams, Inc.") == "microsoft_teams_inc"
