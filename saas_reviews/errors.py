# saas_reviews/errors.py


class ScraperError(Exception):
    """Base class for harvest failures."""


class SourceUnavailable(ScraperError):
    """No product page for the identifier on this source."""


class NavigationFailure(ScraperError):
    pass


class BlockingDetected(ScraperError):
    pass


class ExtractionError(ScraperError):
    pass


class HarvestCancelled(ScraperError):
    pass


class NoDataCollected(ScraperError):
    pass


class PersistenceFailure(ScraperError):
    pass
