"""Projection of driver response/request objects into plain records."""

import logging
from typing import Any, Dict, Iterable, List, Optional

from pagecrawl.constants import REQUEST_FIELDS, RESPONSE_FIELDS
from pagecrawl.models import RedirectHop

logger = logging.getLogger(__name__)


def reduce_by_keys(keys: Iterable[str], obj: Any) -> Dict[str, Any]:
    """Copy the named accessors of ``obj`` into a dict.

    Accessors are called when callable (driver methods such as ``status()``)
    and read as-is otherwise (plain attributes or properties).

    Args:
        keys: Accessor names to project
        obj: Response- or request-like object

    Returns:
        Dict mapping each key to its accessor's value
    """
    projected = {}
    for key in keys:
        value = getattr(obj, key)
        projected[key] = value() if callable(value) else value
    return projected


def reduce_response(response: Any) -> Optional[Dict[str, Any]]:
    """Project a response into {ok, url, status, headers}; None stays None."""
    if response is None:
        return None
    return reduce_by_keys(RESPONSE_FIELDS, response)


def reduce_request(request: Any) -> Dict[str, Any]:
    """Project a request into {headers}."""
    return reduce_by_keys(REQUEST_FIELDS, request)


def reduce_redirect_chain(request: Any) -> List[RedirectHop]:
    """Build redirect hops for every request that preceded ``request``.

    The chain is ordered oldest first and does not include ``request``
    itself. A hop whose response is unavailable gets ``response=None``.
    """
    hops = []
    for redirect_request in request.redirect_chain():
        response = redirect_request.response()
        if response is None:
            logger.debug(f"Redirect hop without response: {redirect_request.url()}")
        hops.append(RedirectHop(
            url=redirect_request.url(),
            request=reduce_request(redirect_request),
            response=reduce_response(response),
        ))
    return hops
