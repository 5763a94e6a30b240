# review_scraper/models.py
import re
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Dict, Any
from datetime import date as Date

NO_TITLE = "(no title)"
_ISO_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class Review(BaseModel):
    model_config = ConfigDict(extra="ignore")
    title: str = NO_TITLE
    description: str = ""
    date: str = ""  # canonical YYYY-MM-DD or empty
    rating: Optional[float] = Field(None, ge=0, le=5)  # always on a 5-point scale
    reviewer: Optional[str] = None
    url: str = ""
    source: str
    product: str = ""
    extra: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("title", mode="before")
    @classmethod
    def _placeholder_title(cls, v):
        return v or NO_TITLE

    @field_validator("description", "url", "product", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return v or ""

    @field_validator("date", mode="before")
    @classmethod
    def _canonical_date(cls, v):
        if not v:
            return ""
        if isinstance(v, Date):
            return v.isoformat()
        s = str(v)
        if not _ISO_DAY_RE.match(s):
            raise ValueError(f"date must be YYYY-MM-DD, got {s!r}")
        Date.fromisoformat(s)
        return s


class ProductResolution(BaseModel):
    product_name: str
    reviews_url: str


class ScrapeResult(BaseModel):
    model_config = ConfigDict(extra="ignore")
    company: str
    source: str
    start_date: Date
    end_date: Date
    scraped_at: str
    reviews: List[Review] = Field(default_factory=list)
    meta: Dict[str, Any] = Field(default_factory=dict)

    def api_metadata(self) -> Dict[str, Any]:
        return {
            "company": self.company,
            "source": self.source,
            "dateRange": f"{self.start_date.isoformat()} to {self.end_date.isoformat()}",
            "totalFound": len(self.reviews),
            "scrapedAt": self.scraped_at,
        }
