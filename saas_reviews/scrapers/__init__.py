from saas_reviews.scrapers.base import (
    CancelToken,
    PaginationCursor,
    SourceContext,
    SourceDriver,
    harvest,
)
from saas_reviews.scrapers.capterra import CapterraSource
from saas_reviews.scrapers.g2 import G2Source
from saas_reviews.scrapers.trustradius import TrustRadiusSource

SCRAPER_MAP = {
    "g2": G2Source,
    "capterra": CapterraSource,
    "trustradius": TrustRadiusSource,
}

__all__ = [
    "SCRAPER_MAP",
    "CancelToken",
    "CapterraSource",
    "G2Source",
    "PaginationCursor",
    "SourceContext",
    "SourceDriver",
    "TrustRadiusSource",
    "harvest",
]
