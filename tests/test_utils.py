from datetime import date

import pytest
from pydantic import ValidationError as PydanticValidationError

from review_scraper.models import NO_TITLE, Review
from review_scraper.utils import (
    display_name,
    jittered_delay,
    normalize_date,
    parse_date,
    safe_filename,
    slugify,
    strip_tags,
)


@pytest.mark.parametrize("text,expected", [
    ("2024-06-01", date(2024, 6, 1)),
    ("2024-06-01T10:15:00Z", date(2024, 6, 1)),
    ("Reviewed on March 5, 2024", date(2024, 3, 5)),
    ("Mar 5th, 2024", date(2024, 3, 5)),
    ("Sept 9, 2023", date(2023, 9, 9)),
    ("June 2023", date(2023, 6, 1)),
    ("3/15/2024", date(2024, 3, 15)),
])
def test_parse_date_formats(text, expected):
    assert parse_date(text) == expected


@pytest.mark.parametrize("text", [None, "", "   ", "yesterday", "2024-13-45", "13/45/2024"])
def test_parse_date_rejects_garbage(text):
    assert parse_date(text) is None


def test_parse_date_passes_dates_through():
    assert parse_date(date(2024, 2, 29)) == date(2024, 2, 29)


@pytest.mark.parametrize("d", [date(2024, 1, 1), date(2024, 2, 29), date(2023, 9, 30), date(2022, 12, 31)])
def test_month_day_year_round_trip(d):
    text = f"{d:%B} {d.day}, {d.year}"
    assert parse_date(text) == d
    assert normalize_date(text) == d.isoformat()


def test_normalize_date_empty_when_unparseable():
    assert normalize_date("sometime last year") == ""


def test_slug_and_display_name():
    assert slugify("Microsoft Teams") == "microsoft-teams"
    assert slugify("  monday.com ") == "monday-com"
    assert display_name("monday.com") == "Monday Com"
    assert safe_filename("Notion / G2") == "Notion_G2"


def test_strip_tags_unescapes_and_collapses():
    assert strip_tags("<p>Fast &amp; <b>simple</b>\n\n tool</p>") == "Fast & simple tool"


def test_jittered_delay_stays_in_band():
    slept = []
    for _ in range(20):
        d = jittered_delay(0.8, 0.3, sleep=slept.append)
        assert 0.5 <= d <= 1.1
    assert len(slept) == 20


def test_review_defaults_and_placeholder_title():
    r = Review(source="g2", title="", description=None)
    assert r.title == NO_TITLE
    assert r.description == ""
    assert r.date == ""
    assert r.rating is None
    assert r.extra == {}


def test_review_rejects_non_canonical_date():
    with pytest.raises(PydanticValidationError):
        Review(source="g2", date="June 1, 2024")


def test_review_rejects_out_of_range_rating():
    with pytest.raises(PydanticValidationError):
        Review(source="capterra", rating=7)


def test_review_accepts_date_objects():
    assert Review(source="mock", date=date(2024, 6, 1)).date == "2024-06-01"
