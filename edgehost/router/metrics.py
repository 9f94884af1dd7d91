"""
Request metrics for the edge router.

Counts requests by status, by routing decision and by section, keeps a
bounded window of latency samples for percentiles, and tracks object-store
hits and misses.
"""

import time
from collections import deque


def calculate_percentile(values: list[float], percentile: float) -> float:
    """
    Calculate percentile from a list of values.

    Args:
        values: List of numeric values
        percentile: Percentile to calculate (0-100)

    Returns:
        Percentile value or 0.0 if no values
    """
    if not values:
        return 0.0
    sorted_values = sorted(values)
    index = int((percentile / 100.0) * len(sorted_values))
    if index >= len(sorted_values):
        index = len(sorted_values) - 1
    return sorted_values[index]


class Metrics:
    def __init__(self, max_latency_samples: int = 1000) -> None:
        self.start_time = time.time()
        self.requests_total = 0
        self.requests_by_status: dict[int, int] = {}
        self.requests_by_decision: dict[str, int] = {}
        self.requests_by_section: dict[str, dict[str, int]] = {}
        self.latency_samples: deque = deque(maxlen=max_latency_samples)
        self.object_hits = 0
        self.object_misses = 0
        self.upstream_redirects_surfaced = 0
        self.html_rewrites = 0

    def record(
        self,
        decision: str | None,
        status_code: int,
        section: str | None = None,
        latency_ms: float | None = None,
    ) -> None:
        """
        Record one handled request.

        Args:
            decision: Name of the routing decision ("redirect", "origin", ...)
            status_code: Status returned to the client
            section: Section subdomain for origin/bucket proxies
            latency_ms: Request latency in milliseconds
        """
        self.requests_total += 1
        self.requests_by_status[status_code] = self.requests_by_status.get(status_code, 0) + 1
        if decision:
            self.requests_by_decision[decision] = self.requests_by_decision.get(decision, 0) + 1
        if latency_ms is not None:
            self.latency_samples.append(latency_ms)

        if not section:
            return
        bucket = self.requests_by_section.setdefault(section, {"count": 0, "errors": 0})
        bucket["count"] += 1
        if status_code >= 400:
            bucket["errors"] += 1

    def record_object_lookup(self, hit: bool) -> None:
        if hit:
            self.object_hits += 1
        else:
            self.object_misses += 1

    def record_upstream_redirect(self) -> None:
        self.upstream_redirects_surfaced += 1

    def record_html_rewrite(self) -> None:
        self.html_rewrites += 1

    def get_latency_percentiles(self) -> dict[str, float]:
        if not self.latency_samples:
            return {"p50": 0.0, "p95": 0.0, "p99": 0.0}
        samples = list(self.latency_samples)
        return {
            "p50": round(calculate_percentile(samples, 50), 2),
            "p95": round(calculate_percentile(samples, 95), 2),
            "p99": round(calculate_percentile(samples, 99), 2),
        }

    def get_error_rate(self) -> float:
        """Error rate as a percentage (0-100)"""
        if self.requests_total == 0:
            return 0.0
        error_count = sum(count for status, count in self.requests_by_status.items() if status >= 400)
        return round((error_count / self.requests_total) * 100, 2)

    def snapshot(self) -> dict[str, object]:
        return {
            "uptime_seconds": int(time.time() - self.start_time),
            "requests_total": self.requests_total,
            "requests_by_status": self.requests_by_status,
            "requests_by_decision": self.requests_by_decision,
            "requests_by_section": self.requests_by_section,
            "latency": self.get_latency_percentiles(),
            "error_rate": self.get_error_rate(),
            "objects": {"hits": self.object_hits, "misses": self.object_misses},
            "upstream_redirects_surfaced": self.upstream_redirects_surfaced,
            "html_rewrites": self.html_rewrites,
        }
