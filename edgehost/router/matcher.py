"""
Bidirectional mapping between section subdomains and URL path prefixes.
"""

from dataclasses import dataclass
from typing import Iterable, Sequence

from edgehost.router.utils import leftmost_label


@dataclass(frozen=True)
class MatchResult:
    """A path whose first segment names a known section."""

    subdomain: str
    wildcard_paths: tuple[str, ...]


class SubdomainPathMatcher:
    """
    Translate between "blog.example.com/x" and "example.com/blog/x".

    The set of known subdomains is fixed at construction. Lookups are exact,
    case-sensitive set membership tests.
    """

    __slots__ = ("_subdomains",)

    def __init__(self, subdomains: Iterable[str]):
        self._subdomains = frozenset(subdomains)

    @property
    def subdomains(self) -> frozenset[str]:
        return self._subdomains

    def __len__(self) -> int:
        return len(self._subdomains)

    def subdomain_to_path(self, hostname: str | None) -> str | None:
        """
        Return the left-most label of hostname when it is a known subdomain.

        Only the first label is consulted; "blog.anything.net" matches "blog".
        """
        label = leftmost_label(hostname)
        if label and label in self._subdomains:
            return label
        return None

    def path_to_subdomain(self, segments: Sequence[str]) -> MatchResult | None:
        if not segments or segments[0] not in self._subdomains:
            return None
        return MatchResult(subdomain=segments[0], wildcard_paths=tuple(segments[1:]))

    def __repr__(self) -> str:
        return f"SubdomainPathMatcher({sorted(self._subdomains)!r})"
