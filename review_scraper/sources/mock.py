# review_scraper/sources/mock.py
import logging
import random
from datetime import date, timedelta
from typing import Any, Dict, Iterator, List, Optional, Tuple

from review_scraper.models import ProductResolution
from review_scraper.sources.base import BaseSource
from review_scraper.utils import slugify

log = logging.getLogger("mockscraper")

MOCK_BASE = "https://mock.example.com"
REVIEWS_PER_PAGE = 10
MIN_REVIEWS = 20
MAX_REVIEWS = 150

# one tier per sentiment band; each review draws all fields from a single tier
TEMPLATES = (
    {
        "titles": (
            "Excellent product for productivity",
            "Outstanding tool for team collaboration",
            "Game-changer for our workflow",
            "Highly recommended for businesses",
        ),
        "descriptions": (
            "This tool has significantly improved our team's workflow. The interface is intuitive and the features are well-designed.",
            "We've seen a 40% increase in productivity since implementing this solution. The learning curve was minimal.",
            "The customer support team is exceptional. They respond quickly and provide detailed solutions.",
            "Integration with our existing tools was seamless. Setup took less than an hour.",
        ),
        "ratings": (4.5, 5.0, 4.8, 4.7, 4.9),
        "reviewers": ("Sarah M., Product Manager", "David L., CTO", "Jennifer R., Operations Director"),
    },
    {
        "titles": (
            "Good value for money",
            "Solid platform with room for improvement",
            "Reliable tool for daily use",
            "Good option for small teams",
        ),
        "descriptions": (
            "We've been using this for 6 months. It does what it promises and the customer support is responsive.",
            "The core functionality works well, but some advanced features feel incomplete.",
            "Stable platform with occasional minor bugs. Overall satisfied with the purchase.",
            "Works well for our team size. Might need better scalability for larger organizations.",
        ),
        "ratings": (4.0, 3.8, 4.1, 3.9, 4.2),
        "reviewers": ("James T., IT Director", "Amanda C., Business Analyst", "Robert H., Software Engineer"),
    },
    {
        "titles": (
            "Feature-rich platform",
            "Powerful but complex solution",
            "Advanced features for power users",
            "Enterprise-level features",
        ),
        "descriptions": (
            "Lots of capabilities but can be overwhelming at first. Good documentation helps with onboarding.",
            "The learning curve is steep but worth it. Once mastered, it's incredibly powerful.",
            "Advanced users will love the flexibility. Beginners might find it challenging initially.",
            "The analytics and reporting capabilities are particularly strong.",
        ),
        "ratings": (3.5, 3.7, 4.3, 3.8, 4.0),
        "reviewers": ("Thomas K., Senior Developer", "Maria G., Process Manager", "Rachel P., Data Analyst"),
    },
    {
        "titles": (
            "Not quite what we expected",
            "Has potential but needs work",
            "Mixed experience overall",
            "Functional with some issues",
        ),
        "descriptions": (
            "The product works but doesn't quite meet our specific industry requirements.",
            "Customer service response time could be faster. Some features feel unfinished.",
            "Integration was more complex than advertised. Required additional technical support.",
            "Frequent updates are good but sometimes break existing functionality.",
        ),
        "ratings": (3.0, 2.8, 3.2, 3.1, 2.9),
        "reviewers": ("Steven R., IT Manager", "Karen L., Business Owner", "Mark W., System Administrator"),
    },
)

COMPANY_SIZES = ("1-10 employees", "11-50 employees", "51-200 employees", "201-1000 employees", "1000+ employees")
INDUSTRIES = (
    "Technology", "Healthcare", "Finance", "Education", "Retail",
    "Manufacturing", "Consulting", "Marketing", "Real Estate", "Non-profit",
)


def review_count(start: date, end: date) -> int:
    days = max(0, (end - start).days)
    return min(MAX_REVIEWS, max(MIN_REVIEWS, days // 3))


class MockSource(BaseSource):
    """Synthetic reviews for demos and offline runs; never touches the network."""

    name = "mock"
    label = "Mock"

    def __init__(self, fetcher=None, config=None, sleep=None, seed: Optional[int] = None):
        super().__init__(fetcher=fetcher, config=config, sleep=sleep)
        self.rng = random.Random(seed)

    def resolve(self, company: str) -> Tuple[str, str]:
        name = (company or "").strip()
        return name, f"{MOCK_BASE}/products/{slugify(name)}/reviews"

    def find_product(self, company: str) -> ProductResolution:
        product_name, reviews_url = self.resolve(company)
        return ProductResolution(product_name=product_name, reviews_url=reviews_url)

    def generate(self, company: str, reviews_url: str, start: date, end: date) -> List[Dict[str, Any]]:
        rng = self.rng
        span = max(0, (end - start).days)
        reviews = []
        for i in range(review_count(start, end)):
            tier = rng.choice(TEMPLATES)
            reviews.append({
                "title": rng.choice(tier["titles"]),
                "description": rng.choice(tier["descriptions"]),
                "date": (start + timedelta(days=rng.randint(0, span))).isoformat(),
                "rating": rng.choice(tier["ratings"]),
                "reviewer": rng.choice(tier["reviewers"]),
                "url": reviews_url,
                "source": self.name,
                "product": company,
                "extra": {
                    "review_id": f"mock-{i + 1}",
                    "helpful_votes": rng.randint(0, 49),
                    "verified": rng.random() > 0.3,
                    "company_size": rng.choice(COMPANY_SIZES),
                    "industry": rng.choice(INDUSTRIES),
                },
            })
        reviews.sort(key=lambda r: r["date"], reverse=True)
        return reviews

    def iter_reviews(
        self,
        reviews_url: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        max_pages: int = 25,
    ) -> Iterator[Dict[str, Any]]:
        end = end or date.today()
        start = start or end
        company = reviews_url.split("/products/", 1)[-1].split("/", 1)[0] or "unknown"
        reviews = self.generate(company, reviews_url, start, end)
        total_pages = -(-len(reviews) // REVIEWS_PER_PAGE)
        pages = min(max_pages, total_pages)
        log.info("Generated %d mock review(s); serving %d page(s)", len(reviews), pages)
        for page in range(pages):
            yield from reviews[page * REVIEWS_PER_PAGE:(page + 1) * REVIEWS_PER_PAGE]
