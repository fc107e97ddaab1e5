"""URL helpers for link resolution."""

from typing import Optional
from urllib.parse import urldefrag, urljoin, urlparse

from pagecrawl.constants import LINK_SCHEMES


def resolve_url(url: Optional[str], base_url: str) -> Optional[str]:
    """Resolve an href against a base URL.

    Args:
        url: Raw href as found in the document
        base_url: URL of the document the href was found in

    Returns:
        Absolute http(s) URL without fragment, or None when the href is
        empty, fragment-only, malformed, or uses another scheme
        (javascript:, mailto:, data:, ...)
    """
    if url is None:
        return None
    url = url.strip()
    if not url or url.startswith("#"):
        return None

    try:
        scheme = urlparse(url).scheme.lower()
        if scheme in LINK_SCHEMES:
            return urldefrag(url).url
        if scheme:
            return None
        resolved = urljoin(base_url, url)
        if urlparse(resolved).scheme.lower() not in LINK_SCHEMES:
            return None
        return urldefrag(resolved).url
    except ValueError:
        # urlparse rejects things like unbalanced IPv6 brackets
        return None


def dedupe(links):
    """Drop repeated entries, keeping first-seen order."""
    return list(dict.fromkeys(links))


def same_document(url: str, other: str) -> bool:
    """Whether two URLs address the same document.

    Fragments are ignored and an empty path equals "/", matching how
    browsers report the URL of a navigation request.
    """
    def _normalize(value: str) -> str:
        value = urldefrag(value.strip()).url
        parsed = urlparse(value)
        if parsed.netloc and not parsed.path:
            parsed = parsed._replace(path="/")
        return parsed._replace(scheme=parsed.scheme.lower(), netloc=parsed.netloc.lower()).geturl()

    try:
        return _normalize(url) == _normalize(other)
    except ValueError:
        return url == other
