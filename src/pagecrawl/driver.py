"""
Page driver interface.

A PageDriver is one controllable browser page. The crawler only talks to the
page through this interface; pagecrawl.infrastructure.playwright_driver
implements it over Playwright.

Objects handed out by a driver follow these shapes:

Response: ok(), url(), status(), headers(), request(), async text()
Request: url(), headers(), resource_type(), redirect_chain(), response(),
    async continue_(), async respond(body), async abort()
Dialog: type(), message(), async dismiss()
ConsoleMessage: type(), text()
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional


class PageDriver(ABC):
    """Abstract browser page."""

    @abstractmethod
    async def navigate(self, url: str, timeout: Optional[int] = None, wait_until: Optional[str] = None):
        """Navigate the page and return the main document response.

        Raises:
            NavigationError: On timeout, network failure or missing response
        """

    @abstractmethod
    async def evaluate(self, expression: str, *args) -> Any:
        """Evaluate a JS function expression in the page with ``args`` spread into it."""

    @abstractmethod
    async def evaluate_on_new_document(self, script: str) -> None:
        """Register a script run before every future document in this page."""

    @abstractmethod
    async def authenticate(self, username: Optional[str], password: Optional[str]) -> None:
        """Send HTTP credentials with subsequent requests."""

    @abstractmethod
    async def emulate(self, device: str) -> None:
        """Apply a named device profile (viewport, user agent, touch).

        Raises:
            ConfigurationError: If the device name is unknown
        """

    @abstractmethod
    async def set_cache_enabled(self, enabled: bool) -> None:
        """Toggle the browser cache."""

    @abstractmethod
    async def set_user_agent(self, user_agent: str) -> None:
        """Override the user agent."""

    @abstractmethod
    async def set_extra_headers(self, headers: Mapping[str, str]) -> None:
        """Send extra headers with every request."""

    @abstractmethod
    async def set_javascript_enabled(self, enabled: bool) -> None:
        """Toggle script execution in the page."""

    @abstractmethod
    async def set_request_interception(self, enabled: bool) -> None:
        """Toggle interception.

        While enabled every request is delivered to the ``request`` handlers
        and must be continued, responded to, or aborted by one of them.
        """

    @abstractmethod
    async def expose_function(self, name: str, fn: Callable[..., Any]) -> None:
        """Make ``fn`` callable from the page as ``window[name]``."""

    @abstractmethod
    def on(self, event: str, handler: Callable[..., Any]) -> None:
        """Subscribe to ``request``, ``console``, ``pageerror`` or ``dialog``."""

    @abstractmethod
    async def wait_for(self, target, options: Optional[Dict[str, Any]] = None, *args) -> None:
        """Wait for a selector, an XPath, a predicate function, or a delay in ms."""

    @abstractmethod
    async def screenshot(self, options: Optional[Dict[str, Any]] = None) -> bytes:
        """Capture the page."""

    @abstractmethod
    async def add_script_tag(self, options: Dict[str, Any]) -> None:
        """Inject a script by ``url``, ``path`` or ``content``."""

    @abstractmethod
    async def close(self) -> None:
        """Close the page."""
