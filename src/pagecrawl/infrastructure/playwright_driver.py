"""
Playwright implementation of the PageDriver interface.

Wraps a Chromium ``playwright.async_api.Page``. Settings Playwright only
exposes per browser context (cache, user agent, JavaScript, device metrics)
are applied to the page through a Chrome DevTools Protocol session, so a
single page can be reconfigured without recreating its context.

    async with launch_page() as driver:
        async with PageCrawler(driver, {"url": "https://example.com"}) as crawler:
            result = await crawler.crawl()
"""

import base64
import inspect
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Mapping, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from pagecrawl.config import settings
from pagecrawl.constants import PAGE_EVENTS
from pagecrawl.crawl_config import wait_target_kind
from pagecrawl.driver import PageDriver
from pagecrawl.exceptions import ConfigurationError, NavigationError

logger = logging.getLogger(__name__)


def spread_arguments(expression: str) -> str:
    """Wrap a JS function expression so a single array argument is spread into it."""
    return f"(args) => ({expression})(...args)"


class PlaywrightResponse:
    """Response accessors over a Playwright response."""

    def __init__(self, response, request: "PlaywrightRequest"):
        self._response = response
        self._request = request

    def ok(self) -> bool:
        return self._response.ok

    def url(self) -> str:
        return self._response.url

    def status(self) -> int:
        return self._response.status

    def headers(self) -> Dict[str, str]:
        return dict(self._response.headers)

    def request(self) -> "PlaywrightRequest":
        return self._request

    async def text(self) -> str:
        return await self._response.text()


class PlaywrightRequest:
    """
    Request accessors over a Playwright request.

    When created from an interception route it can also be continued,
    answered or aborted; ``handled`` tells whether one of those happened.
    """

    def __init__(self, request, route=None):
        self._request = request
        self._route = route
        self._response: Optional[PlaywrightResponse] = None
        self._redirect_chain: List["PlaywrightRequest"] = []
        self.handled = False

    def url(self) -> str:
        return self._request.url

    def headers(self) -> Dict[str, str]:
        return dict(self._request.headers)

    def resource_type(self) -> str:
        return self._request.resource_type

    def redirect_chain(self) -> List["PlaywrightRequest"]:
        return list(self._redirect_chain)

    def response(self) -> Optional[PlaywrightResponse]:
        return self._response

    def _require_route(self):
        if self._route is None:
            raise RuntimeError("Request interception is not enabled for this request")
        if self.handled:
            raise RuntimeError(f"Request is already handled: {self.url()}")
        self.handled = True
        return self._route

    async def continue_(self) -> None:
        route = self._require_route()
        if self.resource_type() == "document":
            # 3xx goes back to the browser; the redirect target is intercepted again
            fetched = await route.fetch(max_redirects=0)
            await route.fulfill(response=fetched)
        else:
            await route.continue_()

    async def respond(self, body: str = "", status: int = 200) -> None:
        route = self._require_route()
        await route.fulfill(status=status, body=body)

    async def abort(self) -> None:
        route = self._require_route()
        await route.abort()


class PlaywrightDialog:
    def __init__(self, dialog):
        self._dialog = dialog

    def type(self) -> str:
        return self._dialog.type

    def message(self) -> str:
        return self._dialog.message

    async def dismiss(self) -> None:
        await self._dialog.dismiss()


class PlaywrightConsoleMessage:
    def __init__(self, message):
        self._message = message

    def type(self) -> str:
        return self._message.type

    def text(self) -> str:
        return self._message.text


class PlaywrightPageDriver(PageDriver):
    """
    PageDriver over a Chromium Playwright page.

    Use ``await PlaywrightPageDriver.create(page, devices)`` so the DevTools
    session is attached before the driver is used.
    """

    def __init__(self, page, devices: Optional[Mapping[str, Dict[str, Any]]] = None, cdp_session=None):
        """
        Initialize the driver.

        Args:
            page: Playwright page (Chromium)
            devices: Device descriptor table, usually ``playwright.devices``
            cdp_session: DevTools session attached to ``page``
        """
        self._page = page
        self._devices = devices or {}
        self._cdp = cdp_session
        self._request_handlers: List[Callable[..., Any]] = []
        self._intercepting = False
        self._extra_headers: Dict[str, str] = {}
        self._auth_headers: Dict[str, str] = {}

    @classmethod
    async def create(cls, page, devices: Optional[Mapping[str, Dict[str, Any]]] = None) -> "PlaywrightPageDriver":
        cdp_session = await page.context.new_cdp_session(page)
        await cdp_session.send("Network.enable")
        return cls(page, devices=devices, cdp_session=cdp_session)

    @property
    def page(self):
        return self._page

    async def _send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        if self._cdp is None:
            raise RuntimeError(f"No DevTools session attached; cannot call {method}")
        return await self._cdp.send(method, params or {})

    # --- Navigation ---

    async def navigate(self, url: str, timeout: Optional[int] = None, wait_until: Optional[str] = None):
        try:
            response = await self._page.goto(url, timeout=timeout, wait_until=wait_until)
        except PlaywrightTimeoutError as e:
            raise NavigationError(f"Navigation to {url} timed out: {e}", url=url) from e
        except PlaywrightError as e:
            raise NavigationError(f"Navigation to {url} failed: {e}", url=url) from e

        if response is None:
            raise NavigationError(f"Navigation to {url} produced no response", url=url)

        request = await self._wrap_request(response.request)
        wrapped = PlaywrightResponse(response, request)
        request._response = wrapped
        return wrapped

    async def _wrap_request(self, request) -> PlaywrightRequest:
        """Wrap a request together with its redirect history, oldest first."""
        history = []
        previous = request.redirected_from
        while previous is not None:
            history.append(previous)
            previous = previous.redirected_from
        history.reverse()

        chain = []
        for hop in history:
            hop_request = PlaywrightRequest(hop)
            hop_response = await hop.response()
            if hop_response is not None:
                hop_request._response = PlaywrightResponse(hop_response, hop_request)
            chain.append(hop_request)

        wrapped = PlaywrightRequest(request)
        wrapped._redirect_chain = chain
        return wrapped

    # --- Evaluation ---

    async def evaluate(self, expression: str, *args) -> Any:
        if args:
            return await self._page.evaluate(spread_arguments(expression), list(args))
        return await self._page.evaluate(expression)

    async def evaluate_on_new_document(self, script: str) -> None:
        await self._page.add_init_script(script=script)

    async def expose_function(self, name: str, fn: Callable[..., Any]) -> None:
        await self._page.expose_function(name, fn)

    async def add_script_tag(self, options: Dict[str, Any]) -> None:
        await self._page.add_script_tag(**options)

    async def wait_for(self, target, options: Optional[Dict[str, Any]] = None, *args) -> None:
        options = dict(options or {})
        kind = wait_target_kind(target)
        logger.debug(f"Waiting for {kind}: {target}")

        if kind == "timeout":
            await self._page.wait_for_timeout(target)
        elif kind == "xpath":
            await self._page.wait_for_selector(f"xpath={target}", **options)
        elif kind == "function":
            if args:
                await self._page.wait_for_function(spread_arguments(target), arg=list(args), **options)
            else:
                await self._page.wait_for_function(target, **options)
        else:
            await self._page.wait_for_selector(target, **options)

    async def screenshot(self, options: Optional[Dict[str, Any]] = None) -> bytes:
        return await self._page.screenshot(**(options or {}))

    # --- Page settings ---

    async def authenticate(self, username: Optional[str], password: Optional[str]) -> None:
        token = base64.b64encode(f"{username or ''}:{password or ''}".encode("utf-8")).decode("ascii")
        self._auth_headers = {"Authorization": f"Basic {token}"}
        await self._apply_headers()

    async def set_extra_headers(self, headers: Mapping[str, str]) -> None:
        self._extra_headers = {str(k): str(v) for k, v in headers.items()}
        await self._apply_headers()

    async def _apply_headers(self) -> None:
        # Playwright replaces the whole header set on each call
        await self._page.set_extra_http_headers({**self._extra_headers, **self._auth_headers})

    async def emulate(self, device: str) -> None:
        descriptor = self._devices.get(device)
        if descriptor is None:
            raise ConfigurationError(f"Unknown device profile: {device!r}")

        viewport = descriptor["viewport"]
        await self._page.set_viewport_size(viewport)
        await self._send("Emulation.setDeviceMetricsOverride", {
            "width": viewport["width"],
            "height": viewport["height"],
            "deviceScaleFactor": descriptor.get("device_scale_factor", 1),
            "mobile": descriptor.get("is_mobile", False),
        })
        await self._send("Emulation.setTouchEmulationEnabled", {
            "enabled": descriptor.get("has_touch", False),
        })
        if descriptor.get("user_agent"):
            await self.set_user_agent(descriptor["user_agent"])
        logger.debug(f"Emulating device: {device}")

    async def set_cache_enabled(self, enabled: bool) -> None:
        await self._send("Network.setCacheDisabled", {"cacheDisabled": not enabled})

    async def set_user_agent(self, user_agent: str) -> None:
        await self._send("Network.setUserAgentOverride", {"userAgent": user_agent})

    async def set_javascript_enabled(self, enabled: bool) -> None:
        await self._send("Emulation.setScriptExecutionDisabled", {"value": not enabled})

    # --- Interception and events ---

    async def set_request_interception(self, enabled: bool) -> None:
        if enabled == self._intercepting:
            return
        self._intercepting = enabled
        if enabled:
            await self._page.route("**/*", self._on_route)
        else:
            await self._page.unroute("**/*", self._on_route)

    async def _on_route(self, route) -> None:
        request = PlaywrightRequest(route.request, route=route)
        try:
            for handler in self._request_handlers:
                outcome = handler(request)
                if inspect.isawaitable(outcome):
                    await outcome
        except Exception as e:
            logger.warning(f"Request handler failed for {request.url()}: {e}")
        finally:
            if not request.handled:
                # Intercepted requests must always be answered
                logger.warning(f"Intercepted request left unhandled, continuing: {request.url()}")
                await request.continue_()

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        if event not in PAGE_EVENTS:
            raise ValueError(f"Unsupported page event: {event!r}")

        if event == "request":
            self._request_handlers.append(handler)
        elif event == "console":
            self._page.on("console", lambda message: handler(PlaywrightConsoleMessage(message)))
        elif event == "dialog":
            self._page.on("dialog", lambda dialog: handler(PlaywrightDialog(dialog)))
        else:
            self._page.on("pageerror", handler)

    async def close(self) -> None:
        if self._cdp is not None:
            try:
                await self._cdp.detach()
            except PlaywrightError as e:
                logger.debug(f"DevTools session already detached: {e}")
            self._cdp = None
        if not self._page.is_closed():
            await self._page.close()


@asynccontextmanager
async def launch_page(
    headless: Optional[bool] = None,
    launch_args: Optional[List[str]] = None,
) -> AsyncIterator[PlaywrightPageDriver]:
    """
    Launch Chromium and yield a driver for a fresh page.

    Args:
        headless: Run without a visible window; defaults to PAGECRAWL_HEADLESS
        launch_args: Extra browser command line arguments

    Yields:
        PlaywrightPageDriver bound to a new page in an isolated context
    """
    headless = settings.HEADLESS if headless is None else headless
    logger.info(f"Launching chromium browser (headless={headless})")

    playwright = await async_playwright().start()
    browser = None
    try:
        launch_options: Dict[str, Any] = {"headless": headless}
        if launch_args:
            launch_options["args"] = launch_args
        browser = await playwright.chromium.launch(**launch_options)
        context = await browser.new_context()
        page = await context.new_page()
        driver = await PlaywrightPageDriver.create(page, devices=playwright.devices)
        yield driver
    finally:
        if browser is not None:
            logger.info("Closing browser")
            await browser.close()
        await playwright.stop()
