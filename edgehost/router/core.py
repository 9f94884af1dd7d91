"""
FastAPI application core: one wildcard GET route that resolves and executes routing decisions.
"""

import logging
import os
import time
import uuid
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from edgehost import __version__
from edgehost.config import RouterConfig, load_config, validate_config
from edgehost.router.connection_pool import create_http_client, fetch_upstream, get_pool_metrics
from edgehost.router.metrics import Metrics
from edgehost.router.object_store import ObjectStore, open_object_store
from edgehost.router.redirect_guard import guard_redirect, was_redirected
from edgehost.router.resolver import (
    ProxyBucket,
    ProxyFallback,
    ProxyOrigin,
    Redirect,
    RequestInfo,
    RouteDecision,
    ServeObject,
    resolve_route,
)
from edgehost.router.rewriter import is_html, rewrite_response_body
from edgehost.router.utils import format_search
from edgehost.structured_logging import RequestLogger

logger = logging.getLogger("edgehost.router")

LOG_REQUESTS = os.getenv("EDGEHOST_LOG_REQUESTS", "").lower() in {"1", "true", "yes", "on"}

# Hop-by-hop headers plus headers invalidated by httpx decoding or body rewriting
EXCLUDED_RESPONSE_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "content-encoding",
    "content-length",
}


def request_info(request: Request) -> RequestInfo:
    """Build routing input from a request, keeping the path percent-encoded."""
    raw_path = request.scope.get("raw_path")
    path = raw_path.split(b"?", 1)[0].decode("latin-1") if raw_path else request.url.path
    return RequestInfo(
        scheme=request.url.scheme,
        netloc=request.url.netloc,
        hostname=(request.url.hostname or "").lower(),
        path=path,
        search=format_search(request.url.query),
    )


def redirect_response(decision: Redirect) -> RedirectResponse:
    return RedirectResponse(decision.target_url, status_code=decision.status)


def proxy_response(upstream: httpx.Response, content: bytes | None = None) -> Response:
    """Relay an upstream response, recomputing its length. Repeated headers stay separate."""
    response = Response(
        content=upstream.content if content is None else content,
        status_code=upstream.status_code,
    )
    for key, value in upstream.headers.multi_items():
        if key.lower() not in EXCLUDED_RESPONSE_HEADERS:
            response.headers.append(key, value)
    return response


async def execute_decision(
    decision: RouteDecision,
    client: httpx.AsyncClient,
    object_store: ObjectStore,
    metrics: Metrics,
    log: logging.LoggerAdapter | logging.Logger = logger,
) -> Response:
    """
    Perform the I/O a routing decision calls for and build the client response.

    Raises:
        httpx.RequestError: If an upstream fetch fails at the transport level
    """

    async def fetch(url: str) -> httpx.Response:
        log.debug("Fetching %s", url)
        return await fetch_upstream(client, url)

    if isinstance(decision, Redirect):
        return redirect_response(decision)

    if isinstance(decision, ProxyBucket):
        return proxy_response(await fetch(decision.target_url))

    if isinstance(decision, ProxyOrigin):
        upstream = await fetch(decision.target_url)
        outcome = await guard_redirect(fetch, decision, upstream)
        if isinstance(outcome, Redirect):
            metrics.record_upstream_redirect()
            return redirect_response(outcome)
        if is_html(outcome.headers.get("content-type")):
            metrics.record_html_rewrite()
            content = rewrite_response_body(outcome.content, outcome.encoding, decision.subdomain)
            return proxy_response(outcome, content)
        return proxy_response(outcome)

    if isinstance(decision, ServeObject):
        stored = await object_store.get(decision.key)
        metrics.record_object_lookup(stored is not None)
        if stored is not None:
            log.debug("Serving object %s", decision.key)
            return Response(content=stored.body, status_code=200, headers=stored.http_headers())
        decision = decision.fallback

    if isinstance(decision, ProxyFallback):
        upstream = await fetch(decision.target_url)
        if was_redirected(upstream, decision.target_url):
            metrics.record_upstream_redirect()
            return redirect_response(Redirect(str(upstream.url)))
        return proxy_response(upstream)

    raise AssertionError(f"Unhandled routing decision: {decision!r}")


def create_app(
    config: RouterConfig | None = None,
    http_client: httpx.AsyncClient | None = None,
    object_store: ObjectStore | None = None,
) -> FastAPI:
    """
    Create and configure the edgehost FastAPI application.

    Args:
        config: Router configuration (defaults to load_config())
        http_client: Upstream client (defaults to create_http_client(config))
        object_store: Static object store (defaults to config.object_store)

    Returns:
        Configured FastAPI app instance
    """
    config = config or load_config()
    is_valid, errors = validate_config(config)
    if not is_valid:
        logger.error("Config validation failed on startup:")
        for error in errors:
            logger.error("  - %s", error)
        logger.warning("Router will continue but some routes may not work correctly")

    matcher = config.matcher()
    metrics = Metrics()
    owns_client = http_client is None
    client = http_client or create_http_client(config)
    store = object_store or open_object_store(config.object_store, config.object_store_endpoint or None)
    logger.info(
        "Routing %s: %d sections, marketing=%s, objects=%r",
        config.domain,
        len(matcher),
        config.marketing_subdomain or "-",
        store,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_client:
            await client.aclose()
            logger.info("HTTP client closed")

    app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.config = config
    app.state.metrics = metrics

    @app.middleware("http")
    async def request_metrics(request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start = time.time()
        response = await call_next(request)
        latency_ms = (time.time() - start) * 1000
        decision = getattr(request.state, "decision", None)
        metrics.record(
            decision.name if decision is not None else None,
            response.status_code,
            section=getattr(decision, "subdomain", None) or _bucket_section(decision),
            latency_ms=latency_ms,
        )
        response.headers["X-Request-ID"] = request_id

        if LOG_REQUESTS:
            logger.info(
                "[%s] %s %s -> %d (%dms) %s",
                request_id,
                request.method,
                request.url.path or "/",
                response.status_code,
                int(latency_ms),
                decision.name if decision is not None else "-",
            )
        return response

    @app.get(f"{config.internal_prefix}/health")
    async def health():
        """Lightweight health endpoint for liveness checks."""
        return JSONResponse(
            {
                "status": "ok",
                "version": __version__,
                "domain": config.domain,
                "sections": sorted(matcher.subdomains),
                "sections_count": len(matcher),
                "uptime_seconds": int(time.time() - metrics.start_time),
            }
        )

    @app.get(f"{config.internal_prefix}/metrics")
    async def metrics_endpoint():
        """Request metrics with upstream fetch stats."""
        data = metrics.snapshot()
        data["upstream"] = get_pool_metrics()
        return JSONResponse(data)

    @app.get("/{full_path:path}")
    async def edge_route(request: Request, full_path: str):
        request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())[:8]
        log = RequestLogger(logger, request_id)

        decision = resolve_route(request_info(request), config, matcher)
        request.state.decision = decision
        log.debug("Resolved %s%s -> %r", request.url.hostname, request.url.path, decision)

        try:
            return await execute_decision(decision, client, store, metrics, log)
        except httpx.RequestError as exc:
            log.warning("Upstream request failed for %r: %s", decision, exc)
            return JSONResponse(
                {"error": f"Upstream request failed: {type(exc).__name__}", "request_id": request_id},
                status_code=502,
            )

    return app


def _bucket_section(decision) -> str | None:
    if isinstance(decision, ProxyBucket):
        return decision.kind.value
    return None
