"""
Infrastructure Package.

Browser-backed implementations of the PageDriver interface.
"""

from .playwright_driver import (
    PlaywrightPageDriver,
    PlaywrightRequest,
    PlaywrightResponse,
    PlaywrightDialog,
    PlaywrightConsoleMessage,
    launch_page,
    spread_arguments,
)

__all__ = [
    "PlaywrightPageDriver",
    "PlaywrightRequest",
    "PlaywrightResponse",
    "PlaywrightDialog",
    "PlaywrightConsoleMessage",
    "launch_page",
    "spread_arguments",
]
