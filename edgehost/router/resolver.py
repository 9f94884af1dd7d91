"""
Ordered routing rules that turn one request into one RouteDecision.

Rules, first match wins:

1. www.<domain>            -> 301 to https://<domain><path><search>
2. any other foreign host:
   a. known section label  -> 301 to https://<domain>/<section><path><search>
   b. marketing prefix     -> 301 to https://<domain><path><search>
   c. anything else falls through to path routing
3. trailing slash          -> 301 to the same origin without the slash
4. /<section>/...          -> bucket proxy for reserved sections, otherwise
                              proxy to https://<section>.<domain>/...
5. last segment as a key   -> object store lookup
6. marketing platform      -> proxy to https://<marketing>.<domain><path>

Resolution is pure; all network and storage I/O happens when the decision
is executed by the router core.
"""

import enum
import logging
from dataclasses import dataclass
from typing import ClassVar, Union
from urllib.parse import urlsplit

from edgehost.config import RouterConfig
from edgehost.router.matcher import SubdomainPathMatcher
from edgehost.router.utils import build_url, create_origin, format_search, has_trailing_slash, split_path

logger = logging.getLogger("edgehost.router.resolver")


@dataclass(frozen=True)
class RequestInfo:
    """The parts of an incoming request that routing depends on."""

    scheme: str
    netloc: str
    hostname: str
    path: str
    search: str = ""

    @property
    def origin(self) -> str:
        return f"{self.scheme}://{self.netloc}"

    @property
    def segments(self) -> tuple[str, ...]:
        return split_path(self.path)

    @classmethod
    def from_url(cls, url: str) -> "RequestInfo":
        parts = urlsplit(url)
        return cls(
            scheme=parts.scheme or "https",
            netloc=parts.netloc,
            hostname=(parts.hostname or "").lower(),
            path=parts.path or "/",
            search=format_search(parts.query),
        )


class BucketKind(enum.Enum):
    """Reserved sections served from object storage or the compute platform."""

    STATIC_MAPS = "static-maps"
    ESTABLISHMENTS = "establishments"
    RESOURCES = "resources"
    SEO = "seo"

    @classmethod
    def lookup(cls, subdomain: str) -> "BucketKind | None":
        try:
            return cls(subdomain)
        except ValueError:
            return None


@dataclass(frozen=True)
class Redirect:
    target_url: str
    status: int = 301
    name: ClassVar[str] = "redirect"


@dataclass(frozen=True)
class ProxyBucket:
    target_url: str
    kind: BucketKind
    name: ClassVar[str] = "bucket"


@dataclass(frozen=True)
class ProxyOrigin:
    target_url: str
    subdomain: str
    wildcard_paths: tuple[str, ...] = ()
    name: ClassVar[str] = "origin"


@dataclass(frozen=True)
class ProxyFallback:
    target_url: str
    name: ClassVar[str] = "fallback"


@dataclass(frozen=True)
class ServeObject:
    key: str
    fallback: ProxyFallback
    name: ClassVar[str] = "object"


RouteDecision = Union[Redirect, ProxyBucket, ProxyOrigin, ServeObject, ProxyFallback]


def bucket_target(kind: BucketKind, config: RouterConfig, wildcard_paths, search: str = "") -> str:
    """Build the upstream URL for a reserved bucket section."""
    if kind is BucketKind.STATIC_MAPS or kind is BucketKind.ESTABLISHMENTS:
        origin = create_origin(config.bucket_name)
        return build_url(origin, config.bucket_app_root, kind.value, wildcard_paths, search=search)
    if kind is BucketKind.RESOURCES:
        return build_url(create_origin(config.bucket_name), kind.value, wildcard_paths, search=search)
    if kind is BucketKind.SEO:
        return build_url(create_origin(config.compute_url, scheme="http"), kind.value, wildcard_paths, search=search)
    raise AssertionError(f"Unhandled bucket kind: {kind!r}")


def resolve_route(request: RequestInfo, config: RouterConfig, matcher: SubdomainPathMatcher) -> RouteDecision:
    """
    Decide what to do with a request.

    Args:
        request: Parsed request hostname, path and search string
        config: Router configuration
        matcher: Matcher built from config.subdomains

    Returns:
        Exactly one RouteDecision
    """
    hostname = request.hostname
    paths = request.segments
    search = request.search
    main_origin = config.main_origin

    if hostname == f"www.{config.domain}":
        return Redirect(build_url(main_origin, paths, search=search))

    if hostname != config.domain:
        section = matcher.subdomain_to_path(hostname)
        if section is not None:
            return Redirect(build_url(main_origin, section, paths, search=search))
        if config.marketing_subdomain and hostname.startswith(config.marketing_subdomain):
            return Redirect(build_url(main_origin, paths, search=search))
        # Unrecognized hosts are routed by path as if they were the main domain
        logger.debug("Unrecognized host %s; routing by path", hostname)

    if paths and has_trailing_slash(request.path):
        return Redirect(build_url(request.origin, paths, search=search))

    match = matcher.path_to_subdomain(paths)
    if match is not None:
        kind = BucketKind.lookup(match.subdomain)
        if kind is not None:
            return ProxyBucket(bucket_target(kind, config, match.wildcard_paths, search), kind)
        origin = create_origin(f"{match.subdomain}.{config.domain}")
        return ProxyOrigin(
            target_url=build_url(origin, match.wildcard_paths, search=search),
            subdomain=match.subdomain,
            wildcard_paths=match.wildcard_paths,
        )

    fallback = ProxyFallback(build_url(config.marketing_origin, paths, search=search))
    if not paths:
        return fallback
    return ServeObject(key=paths[-1], fallback=fallback)
