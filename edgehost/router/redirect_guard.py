"""
Redirect handling for section origins.

A section origin that redirects is either normalizing the same resource
(e.g. adding a slash) or sending the client somewhere else. The first case
is fetched once more and served under the current path; the second is
handed back to the client as a 301 so its next request re-enters the router
with a clean URL instead of serving content whose links assume another path.
"""

import logging
from typing import Awaitable, Callable, Sequence

import httpx

from edgehost.router.resolver import ProxyOrigin, Redirect
from edgehost.router.utils import url_path_segments

logger = logging.getLogger("edgehost.router.guard")

TAIL_SIZE = 2

Fetcher = Callable[[str], Awaitable[httpx.Response]]


def path_tail(segments: Sequence[str], size: int = TAIL_SIZE) -> tuple[str, ...]:
    if size <= 0:
        return ()
    return tuple(segments[-size:])


def url_tail(url: str, size: int = TAIL_SIZE) -> tuple[str, ...]:
    return path_tail(url_path_segments(url), size)


def is_same_resource(wildcard_paths: Sequence[str], final_url: str) -> bool:
    """Compare the last two requested segments with the last two of final_url."""
    return path_tail(wildcard_paths) == url_tail(final_url)


def was_redirected(response: httpx.Response, requested_url: str) -> bool:
    """True when the fetch followed at least one redirect to a different URL."""
    if not response.history:
        return False
    return response.url != httpx.URL(requested_url)


async def guard_redirect(
    fetch: Fetcher,
    decision: ProxyOrigin,
    response: httpx.Response,
) -> httpx.Response | Redirect:
    """
    Resolve an origin response that may have been reached through redirects.

    Args:
        fetch: Upstream fetch primitive
        decision: The ProxyOrigin decision that produced response
        response: Upstream response for decision.target_url

    Returns:
        The response to serve, or a Redirect to hand to the client
    """
    if not was_redirected(response, decision.target_url):
        return response

    final_url = str(response.url)
    if is_same_resource(decision.wildcard_paths, final_url):
        logger.debug("Origin %s normalized %s -> %s; refetching", decision.subdomain, decision.target_url, final_url)
        return await fetch(final_url)

    logger.info("Origin %s redirected %s -> %s; redirecting client", decision.subdomain, decision.target_url, final_url)
    return Redirect(final_url)
