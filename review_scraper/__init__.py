from review_scraper.models import Review, ProductResolution, ScrapeResult
from review_scraper.orchestrator import scrape_reviews, scrape_result, filter_by_date_range

__version__ = "0.2.0"

__all__ = ["Review", "ProductResolution", "ScrapeResult", "scrape_reviews", "scrape_result", "filter_by_date_range"]
