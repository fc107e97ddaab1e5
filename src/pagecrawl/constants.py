# src/pagecrawl/constants.py
"""Centralized constants for the page crawler.

Values shared by the orchestrator, projector and link collector. For
per-crawl options see crawl_config.py; for process settings see config.py.
"""

# =============================================================================
# Navigation
# =============================================================================

# Options forwarded to the driver's navigate() call
GOTO_OPTIONS = ("timeout", "wait_until")

# Navigation timeout (milliseconds) used when none is configured
DEFAULT_NAVIGATION_TIMEOUT_MS = 30000

# Status codes treated as "target redirected, not fetched"
REDIRECT_STATUS_MIN = 300
REDIRECT_STATUS_MAX = 399


# =============================================================================
# Projection
# =============================================================================

RESPONSE_FIELDS = ("ok", "url", "status", "headers")

REQUEST_FIELDS = ("headers",)


# =============================================================================
# Link collection
# =============================================================================

# Name of the host function exposed to the page for link callbacks
LINK_CALLBACK_NAME = "__pagecrawlPushLink"

# Maximum nesting of frames the link collector descends into
DEFAULT_MAX_FRAME_DEPTH = 16

# Schemes kept as absolute links
LINK_SCHEMES = ("http", "https")


# =============================================================================
# Page scripts
# =============================================================================

# Default page evaluation: returns null
NOOP_EVALUATION = "() => null"

JQUERY_URL = "https://code.jquery.com/jquery-3.7.1.min.js"

# Replaces window.open so that new tabs navigate the current one instead
PREVENT_NEW_TABS_SCRIPT = """
window.open = (url) => {
    window.location.href = url;
    return window;
};
"""

# Interception events and observers registered on the driver
PAGE_EVENTS = ("request", "console", "pageerror", "dialog")
