"""
Single-page crawl orchestration.

PageCrawler drives one PageDriver through the crawl phases:

    INIT -> PREPARED -> NAVIGATED -> REDIRECTED | EXTRACTED

Preparation and extraction each fan out into independent operations run
concurrently; the first failure cancels the rest of its phase. Navigation and
the wait gate run alone.
A 3xx navigation response ends the crawl with a RedirectResult.
"""
import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

from pagecrawl.constants import (
    NOOP_EVALUATION,
    PREVENT_NEW_TABS_SCRIPT,
    REDIRECT_STATUS_MAX,
    REDIRECT_STATUS_MIN,
)
from pagecrawl.config import settings
from pagecrawl.crawl_config import CrawlConfiguration, load_configuration
from pagecrawl.driver import PageDriver
from pagecrawl.exceptions import CrawlerError, ExtractionError, NavigationError, PreparationError
from pagecrawl.link_collector import collect_links
from pagecrawl.models import CrawlResult, RedirectResult, Timing, now_ms
from pagecrawl.projector import reduce_redirect_chain, reduce_request, reduce_response
from pagecrawl.urls import same_document

logger = logging.getLogger(__name__)
console_logger = logging.getLogger("pagecrawl.console")
dialog_logger = logging.getLogger("pagecrawl.dialog")


class CrawlState(Enum):
    """Crawl phase reached by a PageCrawler."""
    INIT = "init"
    PREPARED = "prepared"
    NAVIGATED = "navigated"
    REDIRECTED = "redirected"
    EXTRACTED = "extracted"


def is_redirect_status(status: int) -> bool:
    return REDIRECT_STATUS_MIN <= status <= REDIRECT_STATUS_MAX


async def gather_or_cancel(*aws) -> List[Any]:
    """
    Run awaitables concurrently and return their results in order.

    On the first failure the remaining tasks are cancelled and awaited
    before the exception propagates.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class PageCrawler:
    """
    Crawls one page through a PageDriver.

    The driver is owned by this crawler for the lifetime of the crawl and
    must not be shared with concurrent crawls. Page observers (request
    interception, console, page errors, dialogs) are registered at
    construction and stay active for as long as the page lives.

        async with PageCrawler(driver, {"url": "https://example.com"}) as crawler:
            result = await crawler.crawl()
    """

    def __init__(self, driver: PageDriver, options: Union[CrawlConfiguration, Mapping[str, Any]]):
        """
        Initialize the crawler and register page observers.

        Args:
            driver: Page to crawl with
            options: CrawlConfiguration or an options mapping

        Raises:
            ConfigurationError: If options fail validation
        """
        self._driver = driver
        self._config = load_configuration(options)
        self._pre_browser_request = self._config.pre_browser_request
        self._state = CrawlState.INIT

        self._driver.on("request", self._handle_page_request)
        self._driver.on("pageerror", self._handle_page_error)
        self._driver.on("console", self._handle_console)
        self._driver.on("dialog", self._handle_dialog)

    async def __aenter__(self) -> "PageCrawler":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def page(self) -> PageDriver:
        return self._driver

    @property
    def config(self) -> CrawlConfiguration:
        return self._config

    @property
    def state(self) -> CrawlState:
        return self._state

    async def crawl(self) -> Union[CrawlResult, RedirectResult]:
        """
        Run the crawl.

        Returns:
            RedirectResult when the navigation response status is 3xx,
            CrawlResult otherwise

        Raises:
            PreparationError: If any setup operation fails
            NavigationError: If navigation fails
            ExtractionError: If the wait gate or any extraction fails
        """
        crawl_start = now_ms()
        url = self._config.url
        logger.info(f"Crawling: {url}")

        await self._prepare()
        self._state = CrawlState.PREPARED

        response = await self._request()
        self._state = CrawlState.NAVIGATED
        status = response.status()

        if is_redirect_status(status):
            self._state = CrawlState.REDIRECTED
            logger.info(f"Crawl stopped at redirect: {url} (status={status})")
            return RedirectResult(
                timing=Timing.since(crawl_start),
                response=reduce_response(response),
                request=reduce_request(response.request()),
            )

        await self._wait_for()
        result, screenshot, links, text = await self._extract(response)
        self._state = CrawlState.EXTRACTED

        timing = Timing.since(crawl_start)
        logger.info(
            f"Crawl complete: {url} (status={status}, links={len(links)}, "
            f"time={timing.end - timing.start}ms)"
        )
        return CrawlResult(
            timing=timing,
            response=reduce_response(response),
            request=reduce_request(response.request()),
            redirect_chain=reduce_redirect_chain(response.request()),
            result=result,
            screenshot=screenshot,
            links=links,
            text=text,
        )

    async def close(self) -> None:
        await self._driver.close()

    # --- Preparation ---

    async def _prepare(self) -> None:
        try:
            await gather_or_cancel(
                self._prevent_new_tabs(),
                self._authenticate(),
                self._emulate(),
                self._set_follow_redirects(),
                self._set_cache_enabled(),
                self._set_user_agent(),
                self._set_extra_headers(),
                self._set_javascript_enabled(),
            )
        except Exception as e:
            logger.error(f"Page preparation failed for {self._config.url}: {e}")
            raise PreparationError(f"Page preparation failed: {e}") from e

    async def _prevent_new_tabs(self) -> None:
        await self._driver.evaluate_on_new_document(PREVENT_NEW_TABS_SCRIPT)

    async def _authenticate(self) -> None:
        if not self._config.has_credentials:
            return
        await self._driver.authenticate(self._config.username, self._config.password)

    async def _emulate(self) -> None:
        if not self._config.device:
            return
        await self._driver.emulate(self._config.device)

    async def _set_follow_redirects(self) -> None:
        # Interception is how redirects are held back
        await self._driver.set_request_interception(not self._config.follow_redirects)

    async def _set_cache_enabled(self) -> None:
        if self._config.browser_cache:
            return
        await self._driver.set_cache_enabled(False)

    async def _set_user_agent(self) -> None:
        if not self._config.user_agent:
            return
        await self._driver.set_user_agent(self._config.user_agent)

    async def _set_extra_headers(self) -> None:
        if not self._config.extra_headers:
            return
        await self._driver.set_extra_headers(self._config.extra_headers)

    async def _set_javascript_enabled(self) -> None:
        if self._config.javascript_enabled:
            return
        await self._driver.set_javascript_enabled(False)

    # --- Navigation ---

    async def _request(self):
        url = self._config.url
        try:
            response = await self._driver.navigate(url, **self._config.goto_options())
        except NavigationError as e:
            logger.error(f"Navigation failed for {url}: {e}")
            raise
        except Exception as e:
            logger.error(f"Navigation failed for {url}: {e}")
            raise NavigationError(f"Navigation to {url} failed: {e}", url=url) from e
        if response is None:
            raise NavigationError(f"Navigation to {url} produced no response", url=url)
        return response

    # --- Extraction ---

    async def _wait_for(self) -> None:
        wait_for = self._config.wait_for
        if wait_for is None:
            return
        try:
            await self._driver.wait_for(
                wait_for.selector_or_function_or_timeout,
                wait_for.options,
                *wait_for.args,
            )
        except Exception as e:
            logger.error(f"Wait gate failed for {self._config.url}: {e}")
            raise ExtractionError(f"Wait gate failed: {e}") from e

    async def _extract(self, response):
        try:
            return await gather_or_cancel(
                self._scrape(),
                self._screenshot(),
                collect_links(self._driver, response.url(), max_depth=self._config.max_frame_depth),
                response.text(),
            )
        except Exception as e:
            logger.error(f"Extraction failed for {self._config.url}: {e}")
            raise ExtractionError(f"Extraction failed: {e}") from e

    async def _scrape(self) -> Any:
        await self._add_jquery()
        return await self._driver.evaluate(self._config.evaluate_page or NOOP_EVALUATION)

    async def _add_jquery(self) -> None:
        if not self._config.jquery:
            return
        if settings.JQUERY_PATH:
            await self._driver.add_script_tag({"path": settings.JQUERY_PATH})
        else:
            await self._driver.add_script_tag({"url": settings.JQUERY_URL})

    async def _screenshot(self) -> Optional[bytes]:
        if self._config.screenshot is None:
            return None
        return await self._driver.screenshot(self._config.screenshot)

    # --- Page observers ---

    async def _handle_page_request(self, request) -> Any:
        """Answer an intercepted request.

        Off-target document requests get an empty body so the top frame
        stays on the crawl target; everything else goes to the hook.
        """
        if request.resource_type() == "document" and not same_document(request.url(), self._config.url):
            logger.debug(f"Blanking document request {request.url()} (crawl target {self._config.url})")
            return await request.respond("")
        decision = self._pre_browser_request(self._config, request)
        if inspect.isawaitable(decision):
            decision = await decision
        return decision

    def _handle_page_error(self, error) -> None:
        console_logger.debug(f"{error}")

    def _handle_console(self, message) -> None:
        console_logger.debug(f"{message.type()} {message.text()} at {self._config.url}")

    async def _handle_dialog(self, dialog) -> None:
        dialog_logger.debug(f"{dialog.type()} {dialog.message()} at {self._config.url}")
        try:
            await dialog.dismiss()
        except Exception as e:
            dialog_logger.warning(f"Failed to dismiss {dialog.type()} dialog at {self._config.url}: {e}")


async def crawl_url(
    options: Union[CrawlConfiguration, Mapping[str, Any]],
    headless: Optional[bool] = None,
) -> Union[CrawlResult, RedirectResult]:
    """
    Launch a browser, crawl one page and close everything again.

    Args:
        options: CrawlConfiguration or an options mapping
        headless: Override the PAGECRAWL_HEADLESS setting

    Returns:
        CrawlResult or RedirectResult
    """
    from pagecrawl.infrastructure.playwright_driver import launch_page

    config = load_configuration(options)
    async with launch_page(headless=headless) as driver:
        async with PageCrawler(driver, config) as crawler:
            return await crawler.crawl()


def crawl_sync(
    options: Union[CrawlConfiguration, Mapping[str, Any]],
    headless: Optional[bool] = None,
) -> Union[CrawlResult, RedirectResult]:
    """
    Synchronous wrapper for crawling a single page.

    Convenience function for non-async contexts.
    """
    return asyncio.run(crawl_url(options, headless=headless))
