from datetime import date

import pytest

from review_scraper.errors import UnsupportedSourceError, ValidationError
from review_scraper.models import Review
from review_scraper.orchestrator import filter_by_date_range, parse_iso_day, scrape_result, scrape_reviews

CAPTERRA_STATE = (
    "<html><body><h1>Notion Reviews</h1><script>window.__STATE__ = {\"reviews\":["
    "{\"reviewId\":\"r-1\",\"title\":\"Solid\",\"writtenOn\":\"2024-06-01\","
    "\"generalComments\":\"Great tool\",\"overallRating\":5}"
    "]};</script></body></html>"
)


def test_unknown_source_rejected_before_any_fetch(fake_fetcher):
    fetcher = fake_fetcher(default="<html>review</html>")
    with pytest.raises(UnsupportedSourceError):
        scrape_reviews("Notion", "2024-01-01", "2024-12-31", "getapp", fetcher=fetcher)
    assert fetcher.calls == []


@pytest.mark.parametrize("company,start,end", [
    ("", "2024-01-01", "2024-12-31"),
    ("Notion", "2024/01/01", "2024-12-31"),
    ("Notion", "2024-02-30", "2024-12-31"),
    ("Notion", "2024-12-31", "2024-01-01"),
])
def test_invalid_requests(fake_fetcher, company, start, end):
    fetcher = fake_fetcher(default="<html>review</html>")
    with pytest.raises(ValidationError):
        scrape_reviews(company, start, end, "g2", fetcher=fetcher)
    assert fetcher.calls == []


def test_parse_iso_day_is_strict():
    assert parse_iso_day("2024-06-01") == date(2024, 6, 1)
    with pytest.raises(ValidationError):
        parse_iso_day("June 1, 2024")


def test_filter_by_date_range_is_inclusive_and_drops_undated():
    reviews = [
        Review(source="mock", title="start", date="2024-01-01"),
        Review(source="mock", title="end", date="2024-01-31"),
        Review(source="mock", title="before", date="2023-12-31"),
        Review(source="mock", title="after", date="2024-02-01"),
        Review(source="mock", title="undated"),
    ]
    kept = filter_by_date_range(reviews, date(2024, 1, 1), date(2024, 1, 31))
    assert [r.title for r in kept] == ["start", "end"]


def test_capterra_embedded_json_end_to_end(fake_fetcher):
    page2 = "https://www.capterra.com/p/186596/notion/reviews/?page=2"
    fetcher = fake_fetcher(pages={page2: "<html>no more</html>"}, default=CAPTERRA_STATE)

    reviews = scrape_reviews("Notion", "2024-01-01", "2024-12-31", "capterra", fetcher=fetcher)

    assert len(reviews) == 1
    r = reviews[0]
    assert r.date == "2024-06-01"
    assert r.description == "Great tool"
    assert r.title == "Solid"
    assert r.rating == 5.0
    assert r.source == "capterra"
    assert r.product == "Notion"
    assert r.extra["strategy"] == "embedded_json"
    assert fetcher.urls == [
        "https://www.capterra.com/p/186596/notion/reviews/",
        "https://www.capterra.com/p/186596/notion/reviews/?page=1",
        page2,
    ]


def test_out_of_range_reviews_are_filtered(fake_fetcher):
    fetcher = fake_fetcher(default=CAPTERRA_STATE)
    assert scrape_reviews("Notion", "2024-07-01", "2024-12-31", "capterra", max_pages=1, fetcher=fetcher) == []


def test_mock_source_end_to_end(fake_fetcher):
    fetcher = fake_fetcher()
    reviews = scrape_reviews("Acme", "2024-01-01", "2024-03-31", "mock", fetcher=fetcher)
    assert 20 <= len(reviews) <= 150
    assert all("2024-01-01" <= r.date <= "2024-03-31" for r in reviews)
    assert all(r.source == "mock" and r.product == "Acme" for r in reviews)
    assert fetcher.calls == []


def test_scrape_result_envelope(fake_fetcher):
    result = scrape_result(" Acme ", "2024-01-01", "2024-03-31", "MOCK", max_pages=2, fetcher=fake_fetcher())
    assert result.company == "Acme"
    assert result.source == "mock"
    assert (result.start_date, result.end_date) == (date(2024, 1, 1), date(2024, 3, 31))
    assert len(result.reviews) == 20
    assert result.meta == {"reviews_found": 20, "raw_reviews_count": 20, "max_pages": 2}
    meta = result.api_metadata()
    assert meta["dateRange"] == "2024-01-01 to 2024-03-31"
    assert meta["totalFound"] == 20
    assert meta["scrapedAt"] == result.scraped_at
