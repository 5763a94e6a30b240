# review_scraper/sources/capterra.py
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from bs4 import Tag

from review_scraper.extraction import (
    SelectorSet,
    StrategyResult,
    extract_blocks,
    first_date_text,
    first_rating,
    first_text,
    joined_text,
    make_record,
    parse_html,
    select_containers,
)
from review_scraper.sources.base import BaseSource
from review_scraper.utils import display_name, slugify, strip_text

log = logging.getLogger("capterrascraper")

CAPTERRA_BASE = "https://www.capterra.com"

KNOWN_PRODUCT_IDS = {
    "notion": "186596",
    "slack": "158654",
    "zoom": "162994",
    "monday.com": "157846",
    "monday": "157846",
    "asana": "136067",
    "trello": "123024",
    "jira": "132322",
    "salesforce": "132495",
}

SELECTORS = SelectorSet(
    containers=(
        "div.space-y-4.lg\\:space-y-8",
        "#reviews .review-card[data-entity='review']",
        "#reviews [data-container-view='ca-review']",
        "[data-testid='review-card']",
        ".review-card",
    ),
    title=("h3.typo-20.font-semibold", "h3.fs-3.fw-bold", "h3"),
    author=("span.typo-20.text-neutral-99.font-semibold", ".fw-600.mb-1", "[data-testid='reviewer-name']"),
    date=(
        "div.typo-0.text-neutral-90",
        "h3.fs-3.fw-bold + .fs-5.text-neutral-90",
        ".fs-5.text-neutral-90",
        "time[datetime]",
        "time",
    ),
    rating=("div[data-testid='rating'] span.sr2r3oj", "span.sr2r3oj", ".star-rating-component .ms-1"),
    body=("p", ".fs-4.lh-2.text-neutral-99"),
)

REVIEWER_INFO_SELECTORS = (".typo-10.text-neutral-90",)

TITLE_PATTERNS = (
    re.compile(r'<h[23][^>]*class="[^"]*(?:title|heading)[^"]*"[^>]*>(.*?)</h[23]>', re.S | re.I),
    re.compile(r"<h[23][^>]*>(.*?)</h[23]>", re.S | re.I),
)

BLOCK_BOUNDARY = r'(?=<div[^>]+class="[^"]*review-card)'


def labelled_text(el: Tag, label: str) -> str:
    """Paragraph text next to a ``<span>label</span>`` heading, e.g. Pros/Cons."""
    for span in el.find_all("span"):
        if strip_text(span.get_text(" ")) != label:
            continue
        holder = span.parent.parent if span.parent is not None else None
        if holder is None:
            continue
        text = strip_text(" ".join(p.get_text(" ") for p in holder.find_all("p")))
        if text:
            return text
    return ""


def record_from_card(el: Tag, page_url: str) -> Optional[Dict[str, Any]]:
    title = first_text(el, SELECTORS.title)
    if not title:
        return None
    return make_record(
        "capterra",
        page_url,
        title=title.strip('"'),
        description=joined_text(el, SELECTORS.body),
        date=first_date_text(el, SELECTORS.date),
        rating=first_rating(el, SELECTORS.rating),
        reviewer=first_text(el, SELECTORS.author),
        extra={
            "pros": labelled_text(el, "Pros"),
            "cons": labelled_text(el, "Cons"),
            "reviewer_info": first_text(el, REVIEWER_INFO_SELECTORS),
        },
    )


class CapterraSource(BaseSource):
    name = "capterra"
    label = "Capterra"

    def resolve(self, company: str) -> Tuple[str, str]:
        q = (company or "").strip().lower()
        product_id = KNOWN_PRODUCT_IDS.get(q)
        if product_id:
            url = f"{CAPTERRA_BASE}/p/{product_id}/{slugify(q) or 'product'}/reviews/"
        else:
            url = f"{CAPTERRA_BASE}/software/{slugify(q)}/reviews/"
        return display_name(q), url

    def extract_structural(self, html: str, page_url: str) -> StrategyResult:
        soup = parse_html(html)
        records: List[Dict[str, Any]] = []
        for el in select_containers(soup, SELECTORS.containers):
            try:
                record = record_from_card(el, page_url)
            except (AttributeError, TypeError, ValueError) as e:
                log.debug("Skipping review card: %s", e)
                continue
            if record:
                records.append(record)
        return StrategyResult(records, bool(records))

    def extract_regex(self, html: str, page_url: str) -> StrategyResult:
        records = extract_blocks(
            html,
            page_url,
            self.name,
            boundary=BLOCK_BOUNDARY,
            marker="review-card",
            body_limit=1200,
            title_patterns=TITLE_PATTERNS,
        )
        log.info("Extracted %d review block(s) from %s", len(records), page_url)
        return StrategyResult(records, bool(records))
