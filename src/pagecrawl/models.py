"""Data models for crawl records."""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class Timing:
    """Start and end of a crawl, in epoch milliseconds."""

    start: int
    end: int

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"Timing end {self.end} precedes start {self.start}")

    @classmethod
    def since(cls, start: int) -> "Timing":
        """Close a timing window opened at ``start``."""
        return cls(start=start, end=max(start, now_ms()))

    def to_dict(self) -> Dict[str, int]:
        return {"start": self.start, "end": self.end}


@dataclass
class RedirectHop:
    """One request of a redirect chain with its projected request/response."""

    url: str
    request: Dict[str, Any]
    response: Optional[Dict[str, Any]] = None  # None when the hop has no response

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "request": self.request,
            "response": self.response,
        }


@dataclass
class RedirectResult:
    """Crawl record for a navigation answered with a 3xx status."""

    timing: Timing
    response: Dict[str, Any]
    request: Dict[str, Any]

    @property
    def redirected(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timing": self.timing.to_dict(),
            "response": self.response,
            "request": self.request,
        }


@dataclass
class CrawlResult:
    """Crawl record for a fetched (non-redirect) page."""

    timing: Timing
    response: Dict[str, Any]
    request: Dict[str, Any]
    redirect_chain: List[RedirectHop] = field(default_factory=list)
    result: Any = None
    screenshot: Optional[bytes] = None
    links: List[str] = field(default_factory=list)
    text: str = ""

    @property
    def redirected(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timing": self.timing.to_dict(),
            "response": self.response,
            "request": self.request,
            "redirectChain": [hop.to_dict() for hop in self.redirect_chain],
            "result": self.result,
            "screenshot": self.screenshot,
            "links": list(self.links),
            "text": self.text,
        }
