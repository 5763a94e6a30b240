# review_scraper/orchestrator.py
import logging
import re
from datetime import date
from typing import Iterable, List, Optional

from review_scraper.config import ScraperConfig, load_config
from review_scraper.errors import ValidationError
from review_scraper.fetcher import Fetcher
from review_scraper.models import Review, ScrapeResult
from review_scraper.sources import get_source_class
from review_scraper.utils import iso_now, parse_date

log = logging.getLogger("orchestrator")

_ISO_DAY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def parse_iso_day(value, field: str = "date") -> date:
    """Strict ``YYYY-MM-DD``; anything else is a ValidationError."""
    if isinstance(value, date):
        return value
    m = _ISO_DAY_RE.match(str(value or "").strip())
    if not m:
        raise ValidationError(f"Invalid {field} '{value}'. Use format YYYY-MM-DD.")
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError as e:
        raise ValidationError(f"Invalid {field} '{value}': {e}") from e


def filter_by_date_range(reviews: Iterable[Review], start: date, end: date) -> List[Review]:
    """Keep reviews dated inside ``[start, end]``; undated ones are dropped."""
    kept = []
    for r in reviews:
        d = parse_date(r.date)
        if d is not None and start <= d <= end:
            kept.append(r)
    return kept


def scrape_reviews(
    company: str,
    start_date,
    end_date,
    source_key: str,
    max_pages: int = 25,
    config: Optional[ScraperConfig] = None,
    fetcher: Optional[Fetcher] = None,
) -> List[Review]:
    return scrape_result(company, start_date, end_date, source_key, max_pages, config, fetcher).reviews


def scrape_result(
    company: str,
    start_date,
    end_date,
    source_key: str,
    max_pages: int = 25,
    config: Optional[ScraperConfig] = None,
    fetcher: Optional[Fetcher] = None,
) -> ScrapeResult:
    """Validate, scrape and filter; the reviews come wrapped with their run metadata."""
    if not company or not str(company).strip():
        raise ValidationError("Company name is required.")
    source_cls = get_source_class(source_key)
    start = parse_iso_day(start_date, "start date")
    end = parse_iso_day(end_date, "end date")
    if end < start:
        raise ValidationError("End date must be on or after start date.")
    if max_pages < 1:
        raise ValidationError("max_pages must be at least 1.")

    config = config or (fetcher.config if fetcher is not None else load_config())
    source = source_cls(fetcher=fetcher or Fetcher(config), config=config)
    log.info("Starting scrape: source=%s company='%s' range=%s..%s", source.name, company, start, end)

    reviews = source.scrape(company.strip(), start, end, max_pages)
    filtered = filter_by_date_range(reviews, start, end)
    log.info("Scraped %d reviews; %d within date range.", len(reviews), len(filtered))
    return ScrapeResult(
        company=company.strip(),
        source=source.name,
        start_date=start,
        end_date=end,
        scraped_at=iso_now(),
        reviews=filtered,
        meta={
            "reviews_found": len(filtered),
            "raw_reviews_count": len(reviews),
            "max_pages": max_pages,
        },
    )
