"""
Rewrite root-relative links in HTML served by section origins.

A section origin renders its pages as if it were mounted at "/", so a link
to "/about" must become "/<section>/about" once the page is served from
"https://<domain>/<section>/...". The rewrite is a single regex pass over
href attributes and is idempotent: already-prefixed links are left alone.
"""

import re

HREF_PATTERN = re.compile(
    r"""(?<![\w-])(?P<attr>href\s*=\s*)(?:"/(?P<dq>[^"]*)"|'/(?P<sq>[^']*)')""",
    re.IGNORECASE,
)


def is_html(content_type: str | None) -> bool:
    return bool(content_type) and "text/html" in content_type


def prefix_link(value: str, subdomain: str) -> str | None:
    """
    Prefix the part of a root-relative link after its leading slash.

    Returns None when the link must be left unchanged: network-path
    references ("//cdn.example/x") and links that already point into the
    section ("<section>/..." or "<section>#...").
    """
    if value.startswith("/"):
        return None
    if value.startswith(f"{subdomain}/") or value.startswith(f"{subdomain}#"):
        return None
    if value.startswith("#"):
        return f"{subdomain}{value}"
    return f"{subdomain}/{value}"


def rewrite_html_links(html: str, subdomain: str) -> str:
    """
    Insert the section prefix into every root-relative href.

    - href="/"          -> href="/<section>/"
    - href="/about"     -> href="/<section>/about"
    - href="/#top"      -> href="/<section>#top"
    - href="/<section>/x" is unchanged
    """

    def _replace(match: re.Match) -> str:
        quote = '"' if match.group("dq") is not None else "'"
        value = match.group("dq") if quote == '"' else match.group("sq")
        rewritten = prefix_link(value, subdomain)
        if rewritten is None:
            return match.group(0)
        return f"{match.group('attr')}{quote}/{rewritten}{quote}"

    return HREF_PATTERN.sub(_replace, html)


def rewrite_response_body(content: bytes, encoding: str | None, subdomain: str) -> bytes:
    """
    Decode an HTML body, rewrite its links and encode it back.

    Bytes that are invalid in the charset round-trip unchanged.
    """
    encoding = encoding or "utf-8"
    html = content.decode(encoding, errors="surrogateescape")
    return rewrite_html_links(html, subdomain).encode(encoding, errors="surrogateescape")
