# review_scraper/sources/trustradius.py
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from bs4 import Tag

from review_scraper.extraction import (
    StrategyResult,
    block_body,
    block_date,
    block_rating,
    block_title,
    first_date_text,
    first_text,
    make_record,
    normalize_rating,
    parse_html,
    split_blocks,
    truncate,
)
from review_scraper.sources.base import BaseSource
from review_scraper.utils import slugify, strip_text

log = logging.getLogger("trustradiusscraper")

TRUSTRADIUS_BASE = "https://www.trustradius.com"

KNOWN_SLUGS = {
    "slack": "slack",
    "notion": "notion",
    "asana": "asana",
    "trello": "trello",
    "microsoft-teams": "microsoft-teams",
    "monday": "monday-com",
    "clickup": "clickup",
    "confluence": "confluence",
    "zoom": "zoom",
}

ALTERNATIVE_NAMES = {
    "microsoft teams": "microsoft-teams",
    "teams": "microsoft-teams",
    "monday.com": "monday",
    "click up": "clickup",
    "atlassian confluence": "confluence",
}

ARTICLE_SELECTOR = "article.ReviewNew_article__IlReR, article[class*='ReviewNew']"
TITLE_SELECTORS = ("header h4 a", "h1", "h2", "h3", "h4", "h5", "h6")
DATE_SELECTORS = (".Header_date__bW46N", "[class*='Header_date']", "time[datetime]", "time")
AUTHOR_SELECTOR = "article.Author_author__LLjip, article[class*='Author']"
BYLINE_SELECTOR = ".Byline_byline__Wr1dg, [class*='Byline']"
BODY_SELECTOR = ".ReviewNew_body__Ul6dc, [class*='ReviewNew_body']"
ANSWER_SELECTOR = "section.ReviewAnswer_review-answer__VDFSC, section[class*='ReviewAnswer']"

SKIP_SECTIONS = ("Likelihood to Recommend",)
NOISE_MARKERS = ("Use Cases", "Deployment", "Scope")
AUTHOR_NOISE = ("employees", "experience", "Review", "Vetted", "View profile")

MIN_BODY = 30
MAX_BODY = 2000

_RATING_TEXT_RE = re.compile(r"Rating:\s*(\d+(?:\.\d+)?)\s*out\s*of\s*(\d+)", re.I)

BLOCK_BOUNDARY = r"(?=<article[^>]+class=\"[^\"]*ReviewNew)"
BLOCK_RATING_PATTERNS = (
    re.compile(r'data-rating="(\d+(?:\.\d+)?)"', re.I),
    re.compile(r"Rating:\s*(\d+(?:\.\d+)?)\s*out\s*of\s*10", re.I),
)


def _lines(el: Tag, min_len: int = 1) -> List[str]:
    return [t for t in (strip_text(s) for s in el.get_text("\n").split("\n")) if len(t) >= min_len]


def article_rating(el: Tag) -> Optional[float]:
    node = el.select_one("[data-rating]")
    if node is not None:
        rating = normalize_rating(node.get("data-rating"), scale=10.0)
        if rating is not None:
            return rating
    m = _RATING_TEXT_RE.search(el.get_text(" "))
    if m:
        return normalize_rating(m.group(1), scale=float(m.group(2)))
    return None


def article_author(el: Tag) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """(reviewer, job_title, company) from the embedded author card."""
    author = el.select_one(AUTHOR_SELECTOR)
    if author is None:
        return None, None, None
    reviewer = None
    name_lines: List[str] = []
    byline = author.select_one(BYLINE_SELECTOR)
    if byline is not None:
        name_lines = _lines(byline)[:2]
        reviewer = " ".join(name_lines) or None

    job_title = company = None
    for line in _lines(author, min_len=3):
        if line in name_lines or line == reviewer:
            continue
        if "employees" in line:
            company = company or line
        elif not job_title and len(line) < 50 and not any(m in line for m in AUTHOR_NOISE):
            job_title = line
    return reviewer, job_title, company


def _answer_text(section: Tag, heading: Optional[Tag]) -> str:
    nodes = section.find_all(["p", "li"])
    if nodes:
        parts = [strip_text(n.get_text(" ")) for n in nodes]
    else:
        parts = _lines(section, min_len=11)
        if heading is not None:
            title = strip_text(heading.get_text(" "))
            parts = [p for p in parts if p != title]
    return " ".join(p for p in parts if len(p) > 10 and not any(m in p for m in NOISE_MARKERS))


def article_body(el: Tag) -> str:
    body = el.select_one(BODY_SELECTOR)
    if body is None:
        return ""
    chunks = []
    for section in body.select(ANSWER_SELECTOR):
        heading = section.find(["h1", "h2", "h3", "h4", "h5", "h6"])
        title = strip_text(heading.get_text(" ")) if heading is not None else ""
        if any(s in title for s in SKIP_SECTIONS):
            continue
        text = _answer_text(section, heading)
        if not text:
            continue
        if title in ("Pros", "Cons"):
            chunks.append(f"{title}: {text}")
        elif len(text) > 50:
            chunks.append(text)
    content = " | ".join(chunks)
    if len(content) < 50:
        lines = [
            line for line in _lines(body, min_len=51)
            if not any(m in line for m in NOISE_MARKERS + SKIP_SECTIONS + ("Pros", "Cons"))
        ]
        if lines:
            content = " | ".join(lines[:3])
    return content


def record_from_article(el: Tag, page_url: str) -> Optional[Dict[str, Any]]:
    content = strip_text(article_body(el))
    if len(content) < MIN_BODY:
        return None
    reviewer, job_title, company = article_author(el)
    return make_record(
        "trustradius",
        page_url,
        title=first_text(el, TITLE_SELECTORS),
        description=truncate(content, MAX_BODY),
        date=first_date_text(el, DATE_SELECTORS),
        rating=article_rating(el),
        reviewer=reviewer,
        extra={"verified": True, "job_title": job_title, "company": company},
    )


class TrustRadiusSource(BaseSource):
    name = "trustradius"
    label = "TrustRadius"
    rating_scale = 10.0
    headers = {"Referer": "https://www.trustradius.com/"}
    relay_params = {"wait": "3000"}

    def resolve(self, company: str) -> Tuple[str, str]:
        q = (company or "").strip().lower()
        key = re.sub(r"\s+", "-", q)
        slug = KNOWN_SLUGS.get(key) or KNOWN_SLUGS.get(ALTERNATIVE_NAMES.get(q, "")) or slugify(q)
        return (company or "").strip(), f"{TRUSTRADIUS_BASE}/products/{slug}/reviews"

    def page_limit(self, max_pages: int) -> int:
        return max(1, min(max_pages, self.config.trustradius_max_pages))

    def page_url(self, reviews_url: str, page: int) -> str:
        if page == 1:
            return reviews_url
        return super().page_url(reviews_url, page)

    def extract_structural(self, html: str, page_url: str) -> StrategyResult:
        soup = parse_html(html)
        records: List[Dict[str, Any]] = []
        articles = soup.select(ARTICLE_SELECTOR)
        log.info("Found %d review article(s) on %s", len(articles), page_url)
        for el in articles:
            try:
                record = record_from_article(el, page_url)
            except (AttributeError, TypeError, ValueError) as e:
                log.debug("Skipping review article: %s", e)
                continue
            if record:
                records.append(record)
        return StrategyResult(records, bool(records))

    def extract_regex(self, html: str, page_url: str) -> StrategyResult:
        records = []
        for block in split_blocks(html, BLOCK_BOUNDARY, "ReviewNew"):
            body = block_body(block, limit=MAX_BODY, paragraph_limit=MAX_BODY)
            if len(body) < MIN_BODY:
                continue
            record = make_record(
                self.name,
                page_url,
                title=block_title(block),
                description=body,
                date=block_date(block),
                rating=block_rating(block, BLOCK_RATING_PATTERNS, scale=10.0),
                extra={"verified": True},
            )
            if record:
                records.append(record)
        return StrategyResult(records, bool(records))
