"""
Crawl configuration for a single page crawl.

This module provides the validated Pydantic models describing what one crawl
does: where it navigates, how the page is prepared, what is waited for and
what is extracted. The camelCase option names of the JSON options format
are accepted as aliases.
"""
import re
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from pagecrawl.config import settings
from pagecrawl.constants import GOTO_OPTIONS
from pagecrawl.exceptions import ConfigurationError


# Matches "function (...) {", "async function", "(a, b) => ..." and "x => ..."
_FUNCTION_SOURCE = re.compile(r"^\s*(async\s+)?(function\b|\([^)]*\)\s*=>|[A-Za-z_$][\w$]*\s*=>)")

WaitKind = Literal["timeout", "xpath", "function", "selector"]


def wait_target_kind(target: Union[int, float, str]) -> WaitKind:
    """Classify a wait gate target."""
    if isinstance(target, (int, float)):
        return "timeout"
    if target.startswith("//"):
        return "xpath"
    if _FUNCTION_SOURCE.match(target):
        return "function"
    return "selector"


def continue_request(config: "CrawlConfiguration", request) -> Any:
    """Default interception hook: let the request through unmodified."""
    return request.continue_()


class WaitFor(BaseModel):
    """
    Wait gate run after navigation and before extraction.

    ``selector_or_function_or_timeout`` is interpreted as:
    - a number: milliseconds to sleep
    - a string starting with ``//``: an XPath expression
    - a JS function expression: a predicate polled until truthy
    - any other string: a CSS selector
    """

    selector_or_function_or_timeout: Union[int, float, str] = Field(
        alias="selectorOrFunctionOrTimeout",
        description="Selector, predicate function source, or delay in milliseconds"
    )

    options: Dict[str, Any] = Field(
        default_factory=dict,
        description="Driver options for the wait (e.g. timeout, state, polling)"
    )

    args: List[Any] = Field(
        default_factory=list,
        description="Extra arguments spread into the predicate function"
    )

    class Config:
        """Pydantic model configuration."""
        populate_by_name = True

    @property
    def kind(self) -> WaitKind:
        return wait_target_kind(self.selector_or_function_or_timeout)


class CrawlConfiguration(BaseModel):
    """
    Options for one PageCrawler run.

    Only ``url`` is required. Everything else has a default matching a plain
    page fetch: redirects followed, cache and JavaScript on, no screenshot.
    """

    url: str = Field(
        min_length=1,
        description="Crawl target; the only document URL the top frame may load"
    )

    # Navigation options
    timeout: int = Field(
        default_factory=lambda: settings.TIMEOUT,
        description="Navigation timeout in milliseconds (0 disables it)",
        ge=0,
        le=600000
    )

    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = Field(
        default="load",
        alias="waitUntil",
        description="When to consider navigation complete"
    )

    # Page preparation
    username: Optional[str] = Field(default=None, description="HTTP authentication user")
    password: Optional[str] = Field(default=None, description="HTTP authentication password")

    device: Optional[str] = Field(
        default=None,
        description="Named device profile to emulate (e.g. 'iPhone 13')"
    )

    follow_redirects: bool = Field(
        default=True,
        alias="followRedirects",
        description="When False, request interception is enabled and off-target documents are blanked"
    )

    browser_cache: bool = Field(
        default=True,
        alias="browserCache",
        description="Keep the browser cache enabled"
    )

    user_agent: Optional[str] = Field(default=None, alias="userAgent")

    extra_headers: Optional[Dict[str, str]] = Field(
        default=None,
        alias="extraHeaders",
        description="Extra HTTP headers sent with every request"
    )

    javascript_enabled: bool = Field(
        default=True,
        alias="javaScriptEnabled",
        description="Allow scripts to run in the page"
    )

    # Extraction
    wait_for: Optional[WaitFor] = Field(default=None, alias="waitFor")

    evaluate_page: Optional[str] = Field(
        default=None,
        alias="evaluatePage",
        description="JS function source evaluated in the page; its return value becomes 'result'"
    )

    jquery: bool = Field(
        default=False,
        alias="jQuery",
        description="Inject jQuery before evaluate_page runs"
    )

    screenshot: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Screenshot options (e.g. {'full_page': True}); None skips the screenshot"
    )

    pre_browser_request: Callable[..., Any] = Field(
        default=continue_request,
        alias="preBrowserRequest",
        description="Hook (config, request) deciding what to do with intercepted requests"
    )

    max_frame_depth: int = Field(
        default_factory=lambda: settings.MAX_FRAME_DEPTH,
        alias="maxFrameDepth",
        description="How deep the link collector descends into nested frames",
        ge=1
    )

    class Config:
        """Pydantic model configuration."""
        frozen = False
        validate_assignment = True
        populate_by_name = True
        arbitrary_types_allowed = True

    @field_validator("pre_browser_request", mode="before")
    @classmethod
    def _default_hook(cls, value):
        return continue_request if value is None else value

    @property
    def has_credentials(self) -> bool:
        return bool(self.username or self.password)

    def goto_options(self) -> Dict[str, Any]:
        """Options forwarded to the driver's navigate()."""
        return {name: getattr(self, name) for name in GOTO_OPTIONS}


def load_configuration(options: Union[Mapping[str, Any], CrawlConfiguration]) -> CrawlConfiguration:
    """Build a CrawlConfiguration from a plain options mapping.

    Args:
        options: Option mapping using snake_case names or their camelCase aliases

    Returns:
        Validated CrawlConfiguration

    Raises:
        ConfigurationError: If the options fail validation
    """
    if isinstance(options, CrawlConfiguration):
        return options
    try:
        return CrawlConfiguration.model_validate(dict(options))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid crawl options: {e}") from e
