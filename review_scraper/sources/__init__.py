from review_scraper.errors import UnsupportedSourceError
from review_scraper.sources.base import BaseSource
from review_scraper.sources.capterra import CapterraSource
from review_scraper.sources.g2 import G2Source
from review_scraper.sources.mock import MockSource
from review_scraper.sources.trustradius import TrustRadiusSource

SOURCES = {
    "g2": G2Source,
    "capterra": CapterraSource,
    "trustradius": TrustRadiusSource,
    "mock": MockSource,
}


def get_source_class(key: str):
    cls = SOURCES.get((key or "").strip().lower())
    if cls is None:
        raise UnsupportedSourceError(key, SOURCES.keys())
    return cls


__all__ = [
    "SOURCES",
    "get_source_class",
    "BaseSource",
    "G2Source",
    "CapterraSource",
    "TrustRadiusSource",
    "MockSource",
]
