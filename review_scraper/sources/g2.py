# review_scraper/sources/g2.py
import hashlib
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from review_scraper.extraction import (
    DATE_PATTERNS,
    SelectorSet,
    StrategyResult,
    block_body,
    block_date,
    block_match,
    block_paragraphs,
    block_rating,
    block_title,
    extract_structured,
    make_record,
    parse_html,
    split_blocks,
    truncate,
)
from review_scraper.sources.base import BaseSource
from review_scraper.utils import display_name, slugify, strip_text

log = logging.getLogger("g2scraper")

G2_BASE = "https://www.g2.com"

KNOWN_SLUGS = {
    "notion": "notion",
    "slack": "slack",
    "zoom": "zoom",
    "monday.com": "monday-com",
    "monday": "monday-com",
    "asana": "asana",
    "trello": "trello",
    "jira": "jira-software",
    "salesforce": "salesforce-sales-cloud",
}

PROMO_PHRASES = (
    "Thousands of people",
    "come to G2 to find out",
    "Share your real experiences",
    "Product Details",
    "CancelDone",
    "LinkedIn®",
    "Visit Website",
    "Product Website",
)

_FIRST_PERSON_RE = re.compile(r"\b(?:i|we|my|our)\b", re.I)
_USAGE_RE = re.compile(r"\b(?:use|used|using|find|found)\b", re.I)
_QUESTION_RE = re.compile(r"(What do you [^?]+\?|How [^?]+\?|Why [^?]+\?)", re.I)
_HOSTED_RE = re.compile(r"\s*Review collected by and hosted on G2\.com\.?\s*$", re.I)

SELECTORS = SelectorSet(
    containers=(
        "turbo-frame#reviews-and-filters article",
        "turbo-frame#reviews-and-filters [data-review-id]",
        "[data-testid='review-card']",
        "section#reviews article",
        "article[itemtype*='Review']",
        ".review-card",
        ".review-item",
    ),
    title=("[data-testid='review-title']", ".review-title", ".review-headline", "h3", "h2"),
    author=(
        "[data-testid='reviewer-name']",
        "[data-testid='review-author']",
        ".reviewer-name",
        ".review-author",
        "a[href*='/users/']",
        "span[class*='user']",
    ),
    date=("[data-testid='review-date']", "time[datetime]", "time", ".review-date", ".date"),
    rating=("[data-testid='review-rating']", "[aria-label*='out of 5']", ".rating", ".stars", ".star-rating"),
    body=(
        "[data-testid='review-body']",
        "[data-testid='review-content']",
        "div.review-body",
        ".review-content",
        ".review-text",
        "section[aria-label*='review']",
        "p",
    ),
)

TITLE_PATTERNS = (
    re.compile(r'<h[1-6][^>]*class="[^"]*(?:review|title|heading)[^"]*"[^>]*>(.*?)</h[1-6]>', re.S | re.I),
    re.compile(r'<div[^>]*class="[^"]*(?:review[^"]*title|title[^"]*review)[^"]*"[^>]*>(.*?)</div>', re.S | re.I),
    re.compile(r'<span[^>]*class="[^"]*(?:review[^"]*title|title[^"]*review)[^"]*"[^>]*>(.*?)</span>', re.S | re.I),
    re.compile(r"<h[1-6][^>]*>(.*?)</h[1-6]>", re.S | re.I),
)

RATING_PATTERNS = (
    re.compile(r'aria-label="([\d.]+)\s*(?:out of\s*5|stars?|/5)"', re.I),
    re.compile(r'(?:rating|score)[\s:"]*([\d.]+)(?:\s*/\s*5)?', re.I),
    re.compile(r"([\d.]+)\s*/\s*5", re.I),
    re.compile(r'<span[^>]*class="[^"]*(?:rating|stars?)[^"]*"[^>]*>([\d.]+)', re.I),
)

REVIEWER_PATTERNS = (
    re.compile(r'<span[^>]*class="[^"]*(?:reviewer|author|user)[^"]*"[^>]*>([^<]{2,50})</span>', re.I),
    re.compile(r'<div[^>]*class="[^"]*(?:reviewer|author|user)[^"]*"[^>]*>([^<]{2,50})</div>', re.I),
)

BODY_PATTERNS = (
    re.compile(r'<div[^>]*class="[^"]*(?:review[^"]*(?:content|text)|(?:content|text)[^"]*review)[^"]*"[^>]*>(.*?)</div>', re.S | re.I),
    re.compile(r'<p[^>]*class="[^"]*(?:review|content)[^"]*"[^>]*>(.*?)</p>', re.S | re.I),
)

BLOCK_BOUNDARY = r"(?=data-review-id=)"


def is_promo(text: str) -> bool:
    return any(phrase in text for phrase in PROMO_PHRASES)


def looks_genuine(text: str) -> bool:
    """Cheap check that ``text`` reads like someone describing their own usage."""
    t = text.lower()
    if "experience" in t and "using" in t:
        return True
    if "pros" in t and "cons" in t:
        return True
    if "like best" in t or "dislike" in t:
        return True
    return bool(_FIRST_PERSON_RE.search(t) and _USAGE_RE.search(t))


def keep_record(record: Dict[str, Any]) -> bool:
    text = " ".join(filter(None, (record.get("title"), record.get("description"))))
    return bool(text) and not is_promo(text) and looks_genuine(text)


def body_hash(record: Dict[str, Any]) -> Optional[str]:
    text = record.get("description") or record.get("title") or ""
    if not text:
        return None
    return hashlib.md5(text[:100].encode("utf-8")).hexdigest()


def dedupe(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    seen = set()
    out = []
    for r in records:
        key = body_hash(r)
        if key is not None:
            if key in seen:
                continue
            seen.add(key)
        out.append(r)
    return out


def extract_paragraph_reviews(html: str, page_url: str) -> List[Dict[str, Any]]:
    """Standalone answer paragraphs, titled from the nearest question heading."""
    soup = parse_html(html)
    records = []
    for p in soup.select("p.elv-tracking-normal.elv-text-default"):
        text = strip_text(p.get_text(" "))
        if not 50 < len(text) < 800 or is_promo(text) or not looks_genuine(text):
            continue
        title = None
        section = p.find_parent("section")
        if section is not None:
            m = _QUESTION_RE.search(strip_text(section.get_text(" ")))
            if m:
                title = m.group(1).strip()
        content = _HOSTED_RE.sub("", text).strip()
        if len(content) <= 30:
            continue
        record = make_record("g2", page_url, title=title, description=content)
        if record:
            records.append(record)
    return records


class G2Source(BaseSource):
    name = "g2"
    label = "G2"
    headers = {"Referer": "https://www.g2.com/"}

    def resolve(self, company: str) -> Tuple[str, str]:
        q = (company or "").strip().lower()
        slug = KNOWN_SLUGS.get(q) or slugify(q)
        return display_name(q), f"{G2_BASE}/products/{slug}/reviews"

    def dedupe_key(self, record):
        return body_hash(record)

    def extract_structural(self, html: str, page_url: str) -> StrategyResult:
        records = [r for r in extract_structured(html, page_url, self.name, SELECTORS) if keep_record(r)]
        if not records:
            records = extract_paragraph_reviews(html, page_url)
        records = dedupe(records)
        return StrategyResult(records, bool(records))

    def extract_regex(self, html: str, page_url: str) -> StrategyResult:
        records = []
        for block in split_blocks(html, BLOCK_BOUNDARY, "data-review-id="):
            if "review" not in block.lower():
                continue
            title = block_title(block, TITLE_PATTERNS, min_len=6)
            body = self._block_body(block)
            if not ((title and len(title) > 5) or len(body) > 20):
                continue
            record = make_record(
                self.name,
                page_url,
                title=title,
                description=body,
                date=block_date(block, DATE_PATTERNS),
                rating=block_rating(block, RATING_PATTERNS),
                reviewer=block_match(block, REVIEWER_PATTERNS),
            )
            if record and keep_record(record):
                records.append(record)
        records = dedupe(records)
        log.info("Extracted %d review block(s) from %s", len(records), page_url)
        return StrategyResult(records, bool(records))

    @staticmethod
    def _block_body(block: str) -> str:
        paragraphs = block_paragraphs(block)
        if paragraphs:
            return truncate(" ".join(paragraphs), 1000)
        for pattern in BODY_PATTERNS:
            text = block_match(block, (pattern,))
            if text and len(text) > 20:
                return truncate(text, 1000)
        return block_body(block, limit=800, min_fallback=50)
