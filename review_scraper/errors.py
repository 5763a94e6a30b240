# review_scraper/errors.py
from typing import Optional


class ScraperError(Exception):
    pass


class ValidationError(ScraperError):
    """Missing or malformed request input (company, dates, source)."""


class UnsupportedSourceError(ValidationError):
    def __init__(self, source: str, supported=()):
        self.source = source
        self.supported = list(supported)
        msg = f"Unsupported source '{source}'"
        if self.supported:
            msg += f". Options: {', '.join(self.supported)}"
        super().__init__(msg)


class FetchError(ScraperError):
    def __init__(self, url: str, message: str, status: Optional[int] = None, body: Optional[str] = None):
        self.url = url
        self.status = status
        self.body = body
        super().__init__(f"{message} on {url}")


class SourceError(ScraperError):
    """Product resolution failed: no reachable reviews page for the company."""

    def __init__(self, source: str, company: str, url: str, cause: str):
        self.source = source
        self.company = company
        self.url = url
        self.cause = cause
        super().__init__(f"{source}: Unable to access reviews for '{company}' at {url}. {cause}")


class ExtractionError(ScraperError):
    """A single record could not be parsed; callers skip the record."""
