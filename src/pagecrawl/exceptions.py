"""Error hierarchy for page crawls."""


class CrawlerError(Exception):
    """Base class for all crawl failures."""


class ConfigurationError(CrawlerError):
    """Crawl options are malformed or reference unknown presets."""


class PreparationError(CrawlerError):
    """One of the page setup operations failed before navigation."""


class NavigationError(CrawlerError):
    """Navigation timed out, failed at network level, or produced no response."""

    def __init__(self, message: str, url: str = ""):
        super().__init__(message)
        self.url = url


class ExtractionError(CrawlerError):
    """The wait gate or a post-load extraction operation failed."""
