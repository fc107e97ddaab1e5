from dotenv import load_dotenv
import os

from pagecrawl.constants import DEFAULT_MAX_FRAME_DEPTH, DEFAULT_NAVIGATION_TIMEOUT_MS, JQUERY_URL

load_dotenv()  # Loads variables from .env file


def _bool_env(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or str(default)).strip().lower()
    return raw in ("true", "1", "yes")


class Settings:
    """
    Manages process settings loaded from environment variables.
    """
    HEADLESS = _bool_env("PAGECRAWL_HEADLESS", True)
    TIMEOUT = int(os.getenv("PAGECRAWL_TIMEOUT", str(DEFAULT_NAVIGATION_TIMEOUT_MS)))

    # Where the jQuery helper is injected from when a crawl asks for it
    JQUERY_URL = os.getenv("PAGECRAWL_JQUERY_URL", JQUERY_URL)
    JQUERY_PATH = os.getenv("PAGECRAWL_JQUERY_PATH")  # local file wins over URL

    MAX_FRAME_DEPTH = int(os.getenv("PAGECRAWL_MAX_FRAME_DEPTH", str(DEFAULT_MAX_FRAME_DEPTH)))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE")
    # Level for relayed page console messages and dialogs; unset follows LOG_LEVEL
    PAGE_LOG_LEVEL = os.getenv("PAGECRAWL_PAGE_LOG_LEVEL")


settings = Settings()
