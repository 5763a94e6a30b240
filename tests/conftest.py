"""Shared fixtures: an offline fetcher double and the saved HTML pages."""
from pathlib import Path

import pytest

from review_scraper.config import ScraperConfig
from review_scraper.fetcher import with_params

FIXTURES = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


class FakeFetcher:
    """Stands in for ``Fetcher``: serves canned HTML per URL and records calls."""

    def __init__(self, pages=None, default="", config=None):
        self.config = config or ScraperConfig()
        self.pages = dict(pages or {})
        self.default = default
        self.calls = []
        self.sleeps = []

    def sleep(self, seconds):
        self.sleeps.append(seconds)

    def fetch(self, url, params=None, headers=None, relay=None, relay_params=None, timeout=None):
        target = with_params(url, params)
        self.calls.append({"url": target, "headers": headers, "relay_params": relay_params})
        page = self.pages.get(target, self.default)
        if isinstance(page, Exception):
            raise page
        return page

    @property
    def urls(self):
        return [c["url"] for c in self.calls]


@pytest.fixture
def fake_fetcher():
    return FakeFetcher


@pytest.fixture
def g2_html():
    return load_fixture("g2_reviews.html")


@pytest.fixture
def capterra_html():
    return load_fixture("capterra_reviews.html")


@pytest.fixture
def trustradius_html():
    return load_fixture("trustradius_reviews.html")
