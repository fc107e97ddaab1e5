"""Single-page browser crawler producing normalized crawl records."""

__version__ = "0.1.0"

from pagecrawl.crawler import PageCrawler, CrawlState, crawl_url, crawl_sync
from pagecrawl.crawl_config import (
    CrawlConfiguration,
    WaitFor,
    continue_request,
    load_configuration,
)
from pagecrawl.driver import PageDriver
from pagecrawl.exceptions import (
    CrawlerError,
    ConfigurationError,
    PreparationError,
    NavigationError,
    ExtractionError,
)
from pagecrawl.link_collector import collect_links
from pagecrawl.models import CrawlResult, RedirectResult, RedirectHop, Timing
from pagecrawl.projector import (
    reduce_by_keys,
    reduce_response,
    reduce_request,
    reduce_redirect_chain,
)
from pagecrawl.urls import resolve_url
from pagecrawl.config import settings

__all__ = [
    # Core
    "PageCrawler",
    "CrawlState",
    "crawl_url",
    "crawl_sync",
    "PageDriver",
    "collect_links",
    "resolve_url",
    # Configuration
    "CrawlConfiguration",
    "WaitFor",
    "continue_request",
    "load_configuration",
    "settings",
    # Models
    "CrawlResult",
    "RedirectResult",
    "RedirectHop",
    "Timing",
    # Projection
    "reduce_by_keys",
    "reduce_response",
    "reduce_request",
    "reduce_redirect_chain",
    # Errors
    "CrawlerError",
    "ConfigurationError",
    "PreparationError",
    "NavigationError",
    "ExtractionError",
]
