"""
Hyperlink collection across a page and its nested frames.

The traversal runs inside the page: it walks the document, every anchor with
an href is reported back to the host through an exposed function, and
same-origin frames are entered recursively. Anchors are reported as the
browser resolved them, so hrefs inside a frame are relative to that frame's
document. A frame whose document cannot be accessed (cross-origin) is
reported by its raw ``src`` instead.
"""

import logging
from typing import List

from pagecrawl.constants import DEFAULT_MAX_FRAME_DEPTH, LINK_CALLBACK_NAME
from pagecrawl.driver import PageDriver
from pagecrawl.urls import dedupe, resolve_url

logger = logging.getLogger(__name__)


# Reports (href, resolve) pairs through window[callbackName]. The visited set
# and depth bound cap the frame walk.
FIND_LINKS_SCRIPT = """
async (callbackName, maxDepth) => {
    const push = window[callbackName];
    const pending = [];
    const visited = new Set();

    function pushFrameSource(frame) {
        if (frame.src) pending.push(push(frame.src, false));
    }

    function findLinks(doc, depth) {
        if (visited.has(doc)) return;
        visited.add(doc);

        doc.querySelectorAll('a[href]').forEach((link) => {
            // link.href is already resolved against the owning document and its <base>
            const raw = link.getAttribute('href').trim();
            if (!raw || raw.startsWith('#')) return;
            pending.push(push(link.href, true));
        });

        doc.querySelectorAll('iframe,frame').forEach((frame) => {
            if (depth + 1 > maxDepth) {
                pushFrameSource(frame);
                return;
            }
            try {
                const child = frame.contentDocument;
                if (!child) throw new Error(`Blocked access to frame ${frame.src}`);
                findLinks(child, depth + 1);
            } catch (e) {
                console.warn(e.message);
                pushFrameSource(frame);
            }
        });
    }

    findLinks(window.document, 0);
    await Promise.all(pending);
}
"""


async def collect_links(
    driver: PageDriver,
    base_url: str,
    max_depth: int = DEFAULT_MAX_FRAME_DEPTH,
    callback_name: str = LINK_CALLBACK_NAME,
) -> List[str]:
    """Collect absolute, deduplicated links from the page and its frames.

    Args:
        driver: Page to collect from, already navigated
        base_url: Response URL; only used for hrefs the page reports as relative
        max_depth: Deepest frame nesting level to descend into
        callback_name: Name of the host function exposed to the page

    Returns:
        Links in first-seen order without duplicates
    """
    links: List[str] = []

    def push_link(link, resolve=True):
        if not resolve:
            # Frame sources are reported verbatim
            if link:
                links.append(link)
            return
        resolved = resolve_url(link, base_url)
        if resolved:
            links.append(resolved)

    await driver.expose_function(callback_name, push_link)
    await driver.evaluate(FIND_LINKS_SCRIPT, callback_name, max_depth)

    unique = dedupe(links)
    logger.debug(f"Collected {len(unique)} links ({len(links)} raw) from {base_url}")
    return unique
