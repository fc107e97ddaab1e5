"""Logging configuration for the page crawler."""

import logging
import sys
from pathlib import Path
from typing import Optional

# Loggers that relay what happens inside the crawled page
PAGE_LOGGERS = ("pagecrawl.console", "pagecrawl.dialog")


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    page_level: Optional[str] = None,
) -> None:
    """Configure logging for the crawler.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        format_string: Optional custom format string
        page_level: Level for page console/dialog relays; defaults to ``level``
    """
    if format_string is None:
        format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stderr)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        handlers.append(file_handler)

    logging.basicConfig(
        level=numeric_level,
        format=format_string,
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    set_page_level(page_level)

    # Set levels for noisy third-party libraries
    logging.getLogger('asyncio').setLevel(logging.WARNING)


def set_page_level(level: Optional[str]) -> None:
    """Set the level of the page console/dialog relays.

    Page messages are relayed at DEBUG, so ``"DEBUG"`` shows them even when
    the crawler itself logs at INFO. None makes the relays follow the root
    level again.
    """
    numeric_level = logging.NOTSET if level is None else getattr(logging, level.upper(), logging.NOTSET)
    for name in PAGE_LOGGERS:
        logging.getLogger(name).setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
