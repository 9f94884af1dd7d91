"""
Helpers for splitting request paths and building upstream/redirect URLs.
"""

from typing import Iterable, Union
from urllib.parse import urlsplit

Segment = Union[str, Iterable[str]]


def split_path(path: str | None) -> tuple[str, ...]:
    """Split a URL path on '/' and drop empty components."""
    if not path:
        return ()
    return tuple(part for part in path.split("/") if part)


def has_trailing_slash(path: str | None) -> bool:
    return bool(path) and path.endswith("/")


def create_origin(host: str, scheme: str = "https") -> str:
    """Create an origin string such as https://example.com"""
    return f"{scheme}://{host}"


def build_url(origin: str, *segments: Segment, search: str = "") -> str:
    """
    Join an origin and path segments with '/', then append the query string.

    Each segment may be a single string or an iterable of strings. Empty
    segments are discarded and the search string (including its leading '?')
    is appended verbatim.

    Example:
        >>> build_url("https://example.com", "blog", ("posts", "1"), search="?x=1")
        'https://example.com/blog/posts/1?x=1'
    """
    parts: list[str] = []
    for segment in segments:
        if isinstance(segment, str):
            if segment:
                parts.append(segment)
        else:
            parts.extend(part for part in segment if part)

    url = origin.rstrip("/")
    if parts:
        url = f"{url}/{'/'.join(parts)}"
    return f"{url}{search or ''}"


def leftmost_label(hostname: str | None) -> str:
    """Return the part of a hostname before the first '.'"""
    if not hostname:
        return ""
    return hostname.split(".", 1)[0]


def url_path_segments(url: str) -> tuple[str, ...]:
    """Path segments of an absolute URL, ignoring query and fragment."""
    return split_path(urlsplit(url).path)


def format_search(query: str | None) -> str:
    """Turn a raw query string into a search string ('?a=1' or '')."""
    if not query:
        return ""
    return query if query.startswith("?") else f"?{query}"
