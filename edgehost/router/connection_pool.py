"""
Shared HTTP client for upstream fetches.

One httpx.AsyncClient per process, with pooled keep-alive connections to
the section origins, buckets and the marketing platform. Redirects are
followed by the client (httpx's default hop limit); callers inspect
``response.history`` to see whether that happened. Failed fetches are not
retried.
"""

import logging

import httpx

from edgehost.config import RouterConfig

logger = logging.getLogger("edgehost.router.pool")

KEEPALIVE_EXPIRY = 5.0
WRITE_TIMEOUT = 30.0
POOL_TIMEOUT = 5.0


class ConnectionPoolMetrics:
    """Track upstream fetch outcomes."""

    def __init__(self):
        self.requests_sent = 0
        self.requests_failed = 0
        self.redirects_followed = 0
        self.timeouts = 0

    def record_request(self, response: httpx.Response) -> None:
        self.requests_sent += 1
        self.redirects_followed += len(response.history)

    def record_failure(self) -> None:
        self.requests_failed += 1

    def record_timeout(self) -> None:
        self.timeouts += 1

    def snapshot(self) -> dict:
        total = self.requests_sent + self.requests_failed
        return {
            "requests_sent": self.requests_sent,
            "requests_failed": self.requests_failed,
            "redirects_followed": self.redirects_followed,
            "timeouts": self.timeouts,
            "success_rate": self.requests_sent / total if total > 0 else 1.0,
        }


_metrics = ConnectionPoolMetrics()


def get_pool_metrics() -> dict:
    return _metrics.snapshot()


def create_http_client(config: RouterConfig | None = None, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """
    Create the upstream httpx AsyncClient.

    Args:
        config: Router configuration supplying timeouts and pool limits
        transport: Optional transport (e.g. httpx.MockTransport in tests)

    Returns:
        Configured httpx.AsyncClient that follows redirects
    """
    config = config or RouterConfig()
    limits = httpx.Limits(
        max_connections=config.max_connections,
        max_keepalive_connections=config.max_keepalive,
        keepalive_expiry=KEEPALIVE_EXPIRY,
    )
    timeout = httpx.Timeout(
        connect=config.connect_timeout,
        read=config.read_timeout,
        write=WRITE_TIMEOUT,
        pool=POOL_TIMEOUT,
    )

    logger.debug(
        "Creating HTTP client: max_conn=%d, keepalive=%d, connect_timeout=%.1fs, read_timeout=%.1fs",
        config.max_connections,
        config.max_keepalive,
        config.connect_timeout,
        config.read_timeout,
    )

    return httpx.AsyncClient(
        limits=limits,
        timeout=timeout,
        follow_redirects=True,
        transport=transport,
    )


async def fetch_upstream(client: httpx.AsyncClient, url: str) -> httpx.Response:
    """
    GET url and return the final response after any redirects.

    Raises:
        httpx.RequestError: On connection failures and timeouts
    """
    try:
        response = await client.get(url)
    except httpx.TimeoutException:
        _metrics.record_timeout()
        _metrics.record_failure()
        raise
    except httpx.RequestError:
        _metrics.record_failure()
        raise

    _metrics.record_request(response)
    return response
