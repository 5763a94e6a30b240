# review_scraper/utils.py
import html as htmllib
import random
import re
import time
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from dateutil import parser as dateparser

MONTH_PATTERN = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|Jun(?:e)?|Jul(?:y)?|Aug(?:ust)?"
    r"|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
)

_ORDINAL_RE = re.compile(r"(\d+)(?:st|nd|rd|th)\b", re.I)
_ISO_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_MONTH_DAY_YEAR_RE = re.compile(r"\b" + MONTH_PATTERN + r"\.?\s+\d{1,2},?\s+\d{4}", re.I)
_MONTH_YEAR_RE = re.compile(r"\b" + MONTH_PATTERN + r"\.?\s+\d{4}", re.I)
_NUMERIC_MDY_RE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b")
_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")

# dateutil fills missing fields from this; "Month Year" lands on the 1st.
_DEFAULT_DT = datetime(2000, 1, 1)


def _parse_month_text(s: str) -> Optional[date]:
    try:
        return dateparser.parse(s, default=_DEFAULT_DT).date()
    except (ValueError, OverflowError):
        return None


def parse_date(text) -> Optional[date]:
    """Best-effort date parsing for the formats review sites actually use.

    Tries, in order: embedded ISO ``YYYY-MM-DD``, ``Month Day, Year``,
    ``Month Year`` and numeric ``M/D/Y``. Returns None instead of raising.
    """
    if text is None:
        return None
    if isinstance(text, datetime):
        return text.date()
    if isinstance(text, date):
        return text
    t = str(text).strip()
    if not t:
        return None
    t = _ORDINAL_RE.sub(r"\1", t)

    m = _ISO_RE.search(t)
    if m:
        try:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        except ValueError:
            pass

    m = _MONTH_DAY_YEAR_RE.search(t)
    if m:
        d = _parse_month_text(m.group(0))
        if d:
            return d

    m = _MONTH_YEAR_RE.search(t)
    if m:
        d = _parse_month_text(m.group(0))
        if d:
            return d

    m = _NUMERIC_MDY_RE.search(t)
    if m:
        try:
            return date(int(m.group(3)), int(m.group(1)), int(m.group(2)))
        except ValueError:
            pass
    return None


def format_date(d: date) -> str:
    return d.isoformat()


def normalize_date(text) -> str:
    """Canonical ``YYYY-MM-DD`` for ``text`` or an empty string."""
    d = parse_date(text)
    return format_date(d) if d else ""


def strip_text(s) -> str:
    if not s:
        return ""
    return _WS_RE.sub(" ", str(s)).strip()


def strip_tags(fragment: str) -> str:
    """De-tag an HTML fragment into cleaned plain text."""
    if not fragment:
        return ""
    return strip_text(htmllib.unescape(_TAG_RE.sub(" ", fragment)))


def slugify(name: str) -> str:
    s = (name or "").lower().strip()
    s = re.sub(r"[^a-z0-9]+", "-", s)
    s = re.sub(r"-+", "-", s).strip("-")
    return s


def display_name(company: str) -> str:
    """'monday.com' -> 'Monday Com'."""
    s = re.sub(r"[^a-z0-9\s]", " ", (company or "").strip().lower())
    return strip_text(re.sub(r"\b\w", lambda m: m.group(0).upper(), s))


def jittered_delay(base_s: float = 0.8, jitter_s: float = 0.3, sleep: Callable[[float], None] = time.sleep) -> float:
    delay = max(0.0, base_s + random.uniform(-jitter_s, jitter_s))
    sleep(delay)
    return delay


def safe_filename(s: str) -> str:
    return re.sub(r'[^A-Za-z0-9\-_\.]+', '_', s).strip('_')


def iso_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S") + "Z"


def ensure_dir(p) -> Path:
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p
