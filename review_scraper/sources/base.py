# review_scraper/sources/base.py
import logging
from datetime import date
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from review_scraper.config import ScraperConfig
from review_scraper.errors import FetchError, SourceError
from review_scraper.extraction import Strategy, embedded_json_strategy, run_strategies
from review_scraper.fetcher import Fetcher, with_params
from review_scraper.models import ProductResolution, Review
from review_scraper.output import write_artifact
from review_scraper.utils import jittered_delay

log = logging.getLogger("scraper")

VERIFY_TOKENS = ("review", "rating")


class BaseSource:
    """One review site.

    Subclasses provide ``resolve(company)`` (product name + reviews URL) and
    the structural/regex strategies; pagination, verification, artifacts and
    validation into ``Review`` live here.
    """

    name = "base"
    label = "Base"
    rating_scale = 5.0
    headers: Dict[str, str] = {}
    relay_params: Dict[str, str] = {}

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        config: Optional[ScraperConfig] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        if config is None:
            config = fetcher.config if fetcher is not None else ScraperConfig()
        self.config = config
        self.fetcher = fetcher or Fetcher(config)
        self.sleep = sleep or self.fetcher.sleep

    # --- product resolution ---

    def resolve(self, company: str) -> Tuple[str, str]:
        '''Implement in subclass: (product_name, reviews_url) without network.'''
        raise NotImplementedError

    def find_product(self, company: str) -> ProductResolution:
        product_name, reviews_url = self.resolve(company)
        log.info("%s: checking %s", self.label, reviews_url)
        try:
            html = self.fetch_page(reviews_url)
        except FetchError as e:
            raise SourceError(self.label, company, reviews_url, str(e)) from e
        lowered = html.lower()
        if not any(token in lowered for token in VERIFY_TOKENS):
            raise SourceError(self.label, company, reviews_url, "Page does not look like a reviews page.")
        self.save_artifact("main.html", html)
        return ProductResolution(product_name=product_name, reviews_url=reviews_url)

    # --- fetching & parsing ---

    def fetch_page(self, url: str, params: Optional[Dict] = None) -> str:
        return self.fetcher.fetch(
            url,
            params=params,
            headers=self.headers or None,
            relay_params=self.relay_params or None,
        )

    def strategies(self) -> Sequence[Tuple[str, Strategy]]:
        return [
            ("embedded_json", embedded_json_strategy(self.name, self.rating_scale)),
            ("structural", self.extract_structural),
            ("regex_blocks", self.extract_regex),
        ]

    def extract_structural(self, html: str, page_url: str):
        raise NotImplementedError

    def extract_regex(self, html: str, page_url: str):
        raise NotImplementedError

    def parse_page(self, html: str, page_url: str) -> List[Dict[str, Any]]:
        return run_strategies(self.strategies(), html, page_url)

    def dedupe_key(self, record: Dict[str, Any]) -> Optional[str]:
        '''Key for cross-page dedup; None disables it for the record.'''
        return None

    def page_limit(self, max_pages: int) -> int:
        return max_pages

    def page_url(self, reviews_url: str, page: int) -> str:
        return with_params(reviews_url, {"page": page})

    def iter_reviews(
        self,
        reviews_url: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        max_pages: int = 25,
    ) -> Iterator[Dict[str, Any]]:
        """Walk ``?page=N`` until a page yields nothing new or the page cap.

        Date bounds are accepted for interface parity; filtering is the
        orchestrator's job.
        """
        limit = self.page_limit(max_pages)
        seen = set()
        for page in range(1, limit + 1):
            url = self.page_url(reviews_url, page)
            log.info("[%s page %d] extracting reviews...", self.name, page)
            html = self.fetch_page(url)
            fresh = 0
            for record in self.parse_page(html, url):
                key = self.dedupe_key(record)
                if key is not None:
                    if key in seen:
                        continue
                    seen.add(key)
                fresh += 1
                yield record
            if fresh == 0:
                log.info("No new reviews on page %d. Stopping.", page)
                break
            if page < limit:
                jittered_delay(self.config.page_delay_s, self.config.page_jitter_s, sleep=self.sleep)

    # --- entrypoint ---

    def scrape(self, company: str, start: date, end: date, max_pages: int = 25) -> List[Review]:
        resolution = self.find_product(company)
        reviews: List[Review] = []
        for raw in self.iter_reviews(resolution.reviews_url, start, end, max_pages):
            data = dict(raw)
            data["product"] = resolution.product_name
            data["source"] = self.name
            try:
                reviews.append(Review(**data))
            except PydanticValidationError as e:
                log.warning("Skipping invalid review: %s", e)
        log.info("%s: %d review(s) for %s", self.label, len(reviews), resolution.product_name)
        self.save_artifact("reviews.json", reviews)
        return reviews

    def save_artifact(self, suffix: str, content) -> Optional[str]:
        return write_artifact(self.config.artifacts_dir, f"{self.name}-{suffix}", content)
