"""Command-line interface for the page crawler."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pagecrawl.config import settings
from pagecrawl.crawl_config import load_configuration
from pagecrawl.crawler import crawl_url
from pagecrawl.exceptions import CrawlerError
from pagecrawl.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def parse_header(value: str):
    """Split a NAME:VALUE header argument."""
    name, sep, header_value = value.partition(":")
    if not sep or not name.strip():
        raise ValueError(f"Header must look like NAME:VALUE, got {value!r}")
    return name.strip(), header_value.strip()


def parse_wait_for(value: str):
    """Numbers are delays in milliseconds; anything else is a selector or predicate."""
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return value


def build_options(args) -> Dict[str, Any]:
    """Turn parsed arguments into crawl options.

    Options from ``--options FILE`` are loaded first; explicit flags win.

    Args:
        args: argparse namespace

    Returns:
        Option mapping accepted by load_configuration()
    """
    options: Dict[str, Any] = {}
    if args.options:
        options.update(json.loads(Path(args.options).read_text(encoding="utf-8")))

    options["url"] = args.url
    if args.timeout is not None:
        options["timeout"] = args.timeout
    if args.wait_until:
        options["wait_until"] = args.wait_until
    if args.device:
        options["device"] = args.device
    if args.user_agent:
        options["user_agent"] = args.user_agent
    if args.username:
        options["username"] = args.username
    if args.password:
        options["password"] = args.password
    if args.header:
        options["extra_headers"] = dict(parse_header(h) for h in args.header)
    if args.no_follow_redirects:
        options["follow_redirects"] = False
    if args.no_cache:
        options["browser_cache"] = False
    if args.no_javascript:
        options["javascript_enabled"] = False
    if args.jquery:
        options["jquery"] = True
    if args.evaluate:
        options["evaluate_page"] = args.evaluate
    if args.wait_for:
        options["wait_for"] = {"selector_or_function_or_timeout": parse_wait_for(args.wait_for)}
    if args.screenshot:
        options["screenshot"] = {"full_page": args.full_page}
    return options


def render_result(record: Dict[str, Any], screenshot_path: Optional[str] = None) -> str:
    """Serialize a crawl record to JSON, writing screenshot bytes to a file."""
    record = dict(record)
    screenshot = record.get("screenshot")
    if screenshot is not None:
        if screenshot_path:
            Path(screenshot_path).write_bytes(screenshot)
            record["screenshot"] = screenshot_path
        else:
            record["screenshot"] = None
    return json.dumps(record, indent=2, default=str)


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        description="Crawl one page with a headless browser and print the crawl record as JSON"
    )
    parser.add_argument("url", help="URL to crawl")
    parser.add_argument(
        "--options",
        help="JSON file with crawl options (camelCase or snake_case names)",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        help=f"Navigation timeout in milliseconds (default: {settings.TIMEOUT})",
    )
    parser.add_argument(
        "--wait-until",
        choices=["load", "domcontentloaded", "networkidle", "commit"],
        help="When to consider navigation complete (default: load)",
    )
    parser.add_argument("--device", help="Device profile to emulate (e.g. 'iPhone 13')")
    parser.add_argument("--user-agent", help="User agent override")
    parser.add_argument("--username", help="HTTP authentication user")
    parser.add_argument("--password", help="HTTP authentication password")
    parser.add_argument(
        "--header",
        action="append",
        help="Extra request header as NAME:VALUE (repeatable)",
    )
    parser.add_argument(
        "--no-follow-redirects",
        action="store_true",
        help="Intercept requests and keep the page on the target URL",
    )
    parser.add_argument("--no-cache", action="store_true", help="Disable the browser cache")
    parser.add_argument("--no-javascript", action="store_true", help="Disable JavaScript")
    parser.add_argument("--jquery", action="store_true", help="Inject jQuery before --evaluate runs")
    parser.add_argument("--evaluate", help="JS function source evaluated in the page")
    parser.add_argument("--wait-for", help="Selector, XPath, JS predicate, or delay in ms to wait for")
    parser.add_argument("--screenshot", help="Write a PNG screenshot to this path")
    parser.add_argument("--full-page", action="store_true", help="Capture the full scrollable page")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL.upper(),
        help="Set logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--page-log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.PAGE_LOG_LEVEL.upper() if settings.PAGE_LOG_LEVEL else None,
        help="Verbosity of relayed page console messages and dialogs (default: --log-level)",
    )
    parser.add_argument(
        "--log-file",
        default=settings.LOG_FILE,
        help="Write logs to file in addition to console",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, log_file=args.log_file, page_level=args.page_log_level)

    try:
        config = load_configuration(build_options(args))
        result = asyncio.run(crawl_url(config, headless=False if args.headed else None))
    except (CrawlerError, ValueError, OSError) as e:
        logger.error(f"Crawl failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(render_result(result.to_dict(), screenshot_path=args.screenshot))
    return 0


if __name__ == "__main__":
    sys.exit(main())
