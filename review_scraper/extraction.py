# review_scraper/extraction.py
"""Shared HTML-block utilities for the per-site extractors.

Three layered strategies turn a raw reviews page into review records:

1. embedded JSON objects inlined in script tags,
2. structural (CSS selector) extraction over the parsed DOM,
3. regex block splitting over the raw HTML.

Each strategy is a plain function ``(html, page_url) -> StrategyResult`` and
``run_strategies`` stops at the first one that produces usable records.
Records are dicts carrying the ``Review`` field names.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Tag

from review_scraper.errors import ExtractionError
from review_scraper.utils import MONTH_PATTERN, normalize_date, parse_date, strip_tags, strip_text

log = logging.getLogger("extraction")

HTML_PARSER = "html.parser"

# --- record helpers --------------------------------------------------------

CONTENT_FIELDS = ("title", "description", "date", "rating", "reviewer")


class StrategyResult(NamedTuple):
    records: List[Dict[str, Any]]
    usable: bool


Strategy = Callable[[str, str], StrategyResult]


def has_content(record: Dict[str, Any]) -> bool:
    for field in CONTENT_FIELDS:
        value = record.get(field)
        if field == "rating":
            if value is not None:
                return True
        elif value:
            return True
    return False


def parse_number(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    m = re.search(r"(\d+(?:\.\d+)?)", str(value))
    return float(m.group(1)) if m else None


def normalize_rating(value, scale: float = 5.0) -> Optional[float]:
    """Convert a raw rating to the 5-point scale; None when absent or out of range."""
    n = parse_number(value)
    if n is None or scale <= 0:
        return None
    if scale != 5.0:
        n = n * 5.0 / scale
    n = round(n, 2)
    if not 0 <= n <= 5:
        return None
    return n


def truncate(text: str, limit: Optional[int]) -> str:
    if limit is None or len(text) <= limit:
        return text
    return text[:limit].rstrip()


def make_record(
    source: str,
    url: str,
    title=None,
    description=None,
    date=None,
    rating: Optional[float] = None,
    reviewer=None,
    extra: Optional[Dict[str, Any]] = None,
) -> Optional[Dict[str, Any]]:
    """Clean the fields and build a record; None for an empty shell."""
    record = {
        "title": strip_text(title) or None,
        "description": strip_text(description),
        "date": normalize_date(date) if date else "",
        "rating": rating,
        "reviewer": strip_text(reviewer) or None,
        "url": url,
        "source": source,
        "extra": {k: v for k, v in (extra or {}).items() if v not in (None, "")},
    }
    if not has_content(record):
        return None
    return record


def run_strategies(strategies: Sequence[Tuple[str, Strategy]], html: str, page_url: str) -> List[Dict[str, Any]]:
    for name, strategy in strategies:
        try:
            result = strategy(html, page_url)
        except Exception as e:
            log.warning("Strategy %s failed on %s: %s", name, page_url, e)
            continue
        if result.usable:
            log.info("Strategy %s produced %d record(s) from %s", name, len(result.records), page_url)
            for r in result.records:
                r.setdefault("extra", {})["strategy"] = name
            return result.records
        log.debug("Strategy %s found nothing usable on %s", name, page_url)
    return []


# --- embedded JSON ---------------------------------------------------------

REVIEW_KEY_PATTERNS = (
    "reviewId",
    "review_id",
    r"id[^{}]{0,200}?review",
    r"review[^{}]{0,200}?content",
    r"user[^{}]{0,200}?review",
)
ID_FIELDS = ("reviewId", "review_id", "id")
JSON_CONTENT_FIELDS = (
    "title", "headline", "review_title", "reviewTitle",
    "content", "body", "review_content", "reviewBody", "description",
    "generalComments", "prosText", "consText",
)
MAX_JSON_SPAN = 20000
MAX_CANDIDATES = 2000
MAX_START_TRIES = 32


def object_starts(html: str, pos: int, window: int = MAX_JSON_SPAN):
    """Yield ``{`` positions before ``pos``, nearest first."""
    stop = max(0, pos - window)
    i = html.rfind("{", stop, pos + 1)
    while i >= 0:
        yield i
        i = html.rfind("{", stop, i)


def find_object_end(html: str, start: int, window: int = MAX_JSON_SPAN) -> int:
    """Index one past the ``}`` closing the object opened at ``start``, or -1.

    Braces inside quoted strings are ignored; backslash escapes are honored.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, min(len(html), start + window)):
        ch = html[i]
        if escaped:
            escaped = False
            continue
        if ch == "\\":
            escaped = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return -1


def _loads_candidate(raw: str):
    try:
        return json.loads(raw)
    except ValueError:
        if '\\"' not in raw:
            raise
    return json.loads(raw.replace('\\"', '"').replace("\\\\", "\\"))


def looks_like_review(obj) -> bool:
    if not isinstance(obj, dict):
        return False
    has_id = any(obj.get(k) not in (None, "", 0) for k in ID_FIELDS)
    has_content_field = any(obj.get(k) for k in JSON_CONTENT_FIELDS)
    return has_id and has_content_field


def enclosing_object(html: str, pos: int) -> Optional[Tuple[int, int, Any]]:
    """Innermost parseable JSON object spanning ``pos`` as ``(start, end, obj)``.

    Preceding braces are tried nearest first; a brace that sits inside a
    string either fails to close past ``pos`` or fails to parse, so the walk
    moves on to the next one.
    """
    for n, start in enumerate(object_starts(html, pos)):
        if n >= MAX_START_TRIES:
            break
        end = find_object_end(html, start)
        if end <= pos:
            continue
        try:
            return start, end, _loads_candidate(html[start:end])
        except ValueError as e:
            log.debug("Skipping unparseable JSON candidate at %d: %s", start, e)
    return None


def find_embedded_reviews(html: str) -> List[Dict[str, Any]]:
    """Recover inline JSON review objects from raw page text.

    Patterns are tried in order; the first pattern that yields at least one
    review-shaped object wins.
    """
    for pattern in REVIEW_KEY_PATTERNS:
        found: List[Dict[str, Any]] = []
        spans: List[Tuple[int, int]] = []
        seen_starts = set()
        for n, m in enumerate(re.finditer(pattern, html, re.I)):
            if n >= MAX_CANDIDATES:
                break
            if any(s <= m.start() < e for s, e in spans):
                continue
            hit = enclosing_object(html, m.start())
            if hit is None:
                continue
            start, end, obj = hit
            if start in seen_starts:
                continue
            seen_starts.add(start)
            if looks_like_review(obj):
                found.append(obj)
                spans.append((start, end))
        if found:
            log.info("Embedded JSON: %d review object(s) via pattern %r", len(found), pattern)
            return found
    return []


def _text_value(value) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return strip_tags(value) or None
    if isinstance(value, dict):
        for key in ("fullName", "name", "displayName", "text", "value"):
            if key in value:
                return _text_value(value[key])
        return None
    if isinstance(value, list):
        parts = [p for p in (_text_value(v) for v in value) if p]
        return " ".join(parts) or None
    return None


def first_value(obj: Dict[str, Any], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        text = _text_value(obj.get(key))
        if text:
            return text
    return None


def record_from_json(obj: Dict[str, Any], source: str, page_url: str, rating_scale: float = 5.0) -> Optional[Dict[str, Any]]:
    if not isinstance(obj, dict):
        raise ExtractionError(f"expected a JSON object, got {type(obj).__name__}")
    title = first_value(obj, ("title", "headline", "review_title", "reviewTitle"))
    body = first_value(obj, ("generalComments", "content", "body", "review_content", "reviewBody", "description", "text", "comments"))
    pros = first_value(obj, ("prosText", "pros"))
    cons = first_value(obj, ("consText", "cons"))
    parts = [body] if body else []
    if pros:
        parts.append(f"Pros: {pros}")
    if cons:
        parts.append(f"Cons: {cons}")

    date_text = first_value(obj, ("writtenOn", "datePublished", "date", "submittedAt", "publishedAt", "publishedDate", "reviewDate", "createdAt", "created_at"))

    raw_rating = None
    for key in ("overallRating", "rating", "ratingValue", "starRating", "score", "stars", "reviewRating"):
        value = obj.get(key)
        if isinstance(value, dict):
            value = value.get("ratingValue", value.get("value"))
        if value is not None:
            raw_rating = value
            break

    reviewer_obj = obj.get("reviewer") or obj.get("author") or obj.get("user")
    reviewer = _text_value(reviewer_obj) if reviewer_obj else None
    reviewer = reviewer or first_value(obj, ("reviewerName", "userName", "fullName"))

    extra = {
        "review_id": first_value(obj, ID_FIELDS),
        "pros": pros,
        "cons": cons,
    }
    for key in ("isVerified", "verified", "isValidated"):
        if isinstance(obj.get(key), bool):
            extra["verified"] = obj[key]
            break
    if isinstance(obj.get("incentivized"), bool):
        extra["incentivized"] = obj["incentivized"]
    if isinstance(reviewer_obj, dict):
        extra["job_title"] = _text_value(reviewer_obj.get("jobTitle"))
        extra["company_size"] = _text_value(reviewer_obj.get("companySize"))
        extra["industry"] = _text_value(reviewer_obj.get("industry"))

    return make_record(
        source,
        page_url,
        title=title,
        description=" ".join(parts),
        date=date_text,
        rating=normalize_rating(raw_rating, rating_scale),
        reviewer=reviewer,
        extra=extra,
    )


def embedded_json_strategy(source: str, rating_scale: float = 5.0) -> Strategy:
    def strategy(html: str, page_url: str) -> StrategyResult:
        records = []
        for obj in find_embedded_reviews(html):
            try:
                record = record_from_json(obj, source, page_url, rating_scale)
            except (ExtractionError, TypeError, ValueError, AttributeError) as e:
                log.debug("Skipping malformed review object: %s", e)
                continue
            if record:
                records.append(record)
        return StrategyResult(records, bool(records))
    return strategy


# --- structural (selector) extraction -------------------------------------

BOILERPLATE_MARKERS = ("Show more", "Show less", "Review Source", "Used the software for")


@dataclass(frozen=True)
class SelectorSet:
    containers: Sequence[str]
    title: Sequence[str] = ("h3", "h2", "h4")
    author: Sequence[str] = ()
    date: Sequence[str] = ("time[datetime]", "time")
    rating: Sequence[str] = ("[aria-label*='out of 5']",)
    body: Sequence[str] = ("p",)
    pros: Sequence[str] = ()
    cons: Sequence[str] = ()


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, HTML_PARSER)


def select_containers(soup, selectors: Sequence[str]) -> List[Tag]:
    for sel in selectors:
        found = soup.select(sel)
        if found:
            log.debug("Container selector %r matched %d element(s)", sel, len(found))
            return found
    return []


def first_text(el: Tag, selectors: Sequence[str]) -> Optional[str]:
    for sel in selectors:
        node = el.select_one(sel)
        if node:
            t = strip_text(node.get_text(" "))
            if t:
                return t
    return None


def first_date_text(el: Tag, selectors: Sequence[str]) -> Optional[str]:
    """First matching node whose datetime attribute or text parses as a date."""
    for sel in selectors:
        for node in el.select(sel):
            t = node.get("datetime") or strip_text(node.get_text(" "))
            if t and parse_date(t):
                return t
    return None


def first_rating(el: Tag, selectors: Sequence[str], scale: float = 5.0) -> Optional[float]:
    for sel in selectors:
        node = el.select_one(sel)
        if not node:
            continue
        raw = node.get("data-rating") or node.get("aria-label") or node.get_text(" ")
        rating = normalize_rating(raw, scale)
        if rating is not None:
            return rating
    return None


def joined_text(el: Tag, selectors: Sequence[str], skip: Sequence[str] = BOILERPLATE_MARKERS) -> str:
    """Text of every node matching the first selector that yields anything."""
    for sel in selectors:
        parts = []
        for node in el.select(sel):
            t = strip_text(node.get_text(" "))
            if t and not any(marker in t for marker in skip):
                parts.append(t)
        if parts:
            return " ".join(parts)
    return ""


def record_from_container(
    el: Tag,
    selectors: SelectorSet,
    source: str,
    page_url: str,
    rating_scale: float = 5.0,
    body_limit: Optional[int] = None,
) -> Optional[Dict[str, Any]]:
    pros = joined_text(el, selectors.pros) if selectors.pros else ""
    cons = joined_text(el, selectors.cons) if selectors.cons else ""
    body = joined_text(el, selectors.body)
    if not body:
        body = " ".join(p for p in (pros and f"Pros: {pros}", cons and f"Cons: {cons}") if p)
    return make_record(
        source,
        page_url,
        title=(first_text(el, selectors.title) or "").strip('"'),
        description=truncate(strip_text(body), body_limit),
        date=first_date_text(el, selectors.date),
        rating=first_rating(el, selectors.rating, rating_scale),
        reviewer=first_text(el, selectors.author) if selectors.author else None,
        extra={"pros": pros, "cons": cons},
    )


def extract_structured(
    html: str,
    page_url: str,
    source: str,
    selectors: SelectorSet,
    rating_scale: float = 5.0,
    body_limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    soup = parse_html(html)
    records = []
    for el in select_containers(soup, selectors.containers):
        try:
            record = record_from_container(el, selectors, source, page_url, rating_scale, body_limit)
        except (AttributeError, TypeError, ValueError) as e:
            log.debug("Skipping container on %s: %s", page_url, e)
            continue
        if record:
            records.append(record)
    return records


# --- regex block splitting -------------------------------------------------

ARTICLE_BOUNDARY = r"(?=<article[\s>])"
_SCRIPT_RE = re.compile(r"<(script|style)[^>]*>.*?</\1>", re.S | re.I)
_PARAGRAPH_RE = re.compile(r"<p[^>]*>(.*?)</p>", re.S | re.I)
_HEADING_RE = re.compile(r"<h[1-6][^>]*>(.*?)</h[1-6]>", re.S | re.I)

DATE_PATTERNS = (
    re.compile(r'<time[^>]*datetime="([^"]+)"', re.I),
    re.compile(r"<time[^>]*>([^<]+)</time>", re.I),
    re.compile(r"(?:Reviewed|Published|Posted|Date)\s*[:-]?\s*(?:</?\w+[^>]*>\s*)*([^<]{3,40})", re.I),
    re.compile(r"(" + MONTH_PATTERN + r"\.?\s+\d{1,2},?\s+\d{4})", re.I),
    re.compile(r"\b(\d{1,2}/\d{1,2}/\d{4})\b"),
)

RATING_PATTERNS = (
    re.compile(r'aria-label="([\d.]+)\s*(?:out of\s*5|stars?|/\s*5)"', re.I),
    re.compile(r"\b([0-5](?:\.\d)?)\s*/\s*5\b"),
)

REVIEWER_PATTERNS = (
    re.compile(r'class="[^"]*(?:reviewer|author|user)[^"]*"[^>]*>([^<]{2,80})<', re.I),
)


def split_blocks(html: str, boundary: Optional[str] = None, marker: Optional[str] = None) -> List[str]:
    """Split raw HTML into candidate review blocks.

    ``boundary`` is a lookahead regex used when ``marker`` occurs in the page
    (or always, when no marker is given); otherwise pages are split on
    ``<article`` openings. Text before the first boundary is dropped.
    """
    pattern = ARTICLE_BOUNDARY
    if boundary and (marker is None or marker in html):
        pattern = boundary
    blocks = re.split(pattern, html, flags=re.I)
    return blocks[1:] if len(blocks) > 1 else []


def block_match(block: str, patterns: Sequence[re.Pattern]) -> Optional[str]:
    for pattern in patterns:
        m = pattern.search(block)
        if m:
            t = strip_tags(m.group(1))
            if t:
                return t
    return None


def block_date(block: str, patterns: Sequence[re.Pattern] = DATE_PATTERNS) -> Optional[str]:
    """First date-looking snippet in ``block`` that actually parses."""
    for pattern in patterns:
        for m in pattern.finditer(block):
            t = strip_tags(m.group(1))
            if t and parse_date(t):
                return t
    return None


def block_title(block: str, patterns: Sequence[re.Pattern] = (_HEADING_RE,), min_len: int = 1) -> Optional[str]:
    for pattern in patterns:
        m = pattern.search(block)
        if m:
            t = strip_tags(m.group(1))
            if len(t) >= min_len:
                return t
    return None


def block_rating(block: str, patterns: Sequence[re.Pattern] = RATING_PATTERNS, scale: float = 5.0) -> Optional[float]:
    for pattern in patterns:
        m = pattern.search(block)
        if m:
            rating = normalize_rating(m.group(1), scale)
            if rating is not None:
                return rating
    return None


def block_paragraphs(block: str) -> List[str]:
    return [t for t in (strip_tags(m) for m in _PARAGRAPH_RE.findall(block)) if t]


def block_body(block: str, limit: int = 1200, paragraph_limit: Optional[int] = None, min_fallback: int = 0) -> str:
    paragraphs = block_paragraphs(block)
    if paragraphs:
        return truncate(" ".join(paragraphs), paragraph_limit)
    text = strip_tags(_SCRIPT_RE.sub(" ", block))
    if len(text) <= min_fallback:
        return ""
    return truncate(text, limit)


def extract_blocks(
    html: str,
    page_url: str,
    source: str,
    boundary: Optional[str] = None,
    marker: Optional[str] = None,
    body_limit: int = 1200,
    title_patterns: Sequence[re.Pattern] = (_HEADING_RE,),
    date_patterns: Sequence[re.Pattern] = DATE_PATTERNS,
    rating_patterns: Sequence[re.Pattern] = RATING_PATTERNS,
    reviewer_patterns: Sequence[re.Pattern] = REVIEWER_PATTERNS,
) -> List[Dict[str, Any]]:
    records = []
    for block in split_blocks(html, boundary, marker):
        try:
            record = make_record(
                source,
                page_url,
                title=block_title(block, title_patterns),
                description=block_body(block, body_limit),
                date=block_date(block, date_patterns),
                rating=block_rating(block, rating_patterns),
                reviewer=block_match(block, reviewer_patterns),
            )
        except (TypeError, ValueError) as e:
            log.debug("Skipping block on %s: %s", page_url, e)
            continue
        if record:
            records.append(record)
    return records
