from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from app.shopgate.core.config import settings

LATENCY_BUCKETS_MS = (5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000)

# name -> (help, labels)
COUNTERS: dict[str, tuple[str, tuple[str, ...]]] = {
    "http_requests_total": ("HTTP requests by route, method and status.", ("route", "method", "status")),
    "lock_wait_timeout_total": ("Transactions aborted by lock or statement timeouts.", ()),
    "permission_denied_total": ("Direct-action checks that returned false.", ("module", "action")),
    "approval_transitions_total": ("Approval request transitions by resulting status.", ("status",)),
    "cascade_changes_total": ("Entities touched by status changes, by entity type.", ("entity_type",)),
}


@dataclass
class MetricsSnapshot:
    content: bytes
    content_type: str


class Metrics:
    """Process-local Prometheus registry; every recorder is a no-op when METRICS_ENABLED is off."""

    def __init__(self, enabled: bool | None = None) -> None:
        self.enabled = settings.METRICS_ENABLED if enabled is None else enabled
        self._registry: CollectorRegistry | None = None
        self._counters: dict[str, Counter] = {}
        self._latency: Histogram | None = None
        if self.enabled:
            self._build()

    def _build(self) -> None:
        self._registry = CollectorRegistry()
        self._counters = {
            name: Counter(name, help_text, list(labels), registry=self._registry)
            for name, (help_text, labels) in COUNTERS.items()
        }
        self._latency = Histogram(
            "http_request_duration_ms",
            "HTTP request latency in milliseconds.",
            ["route", "method", "status"],
            buckets=LATENCY_BUCKETS_MS,
            registry=self._registry,
        )

    def reset(self) -> None:
        if self.enabled:
            self._build()

    def _inc(self, name: str, amount: float = 1, **labels: str) -> None:
        if not self.enabled:
            return
        counter = self._counters[name]
        (counter.labels(**labels) if labels else counter).inc(amount)

    def record_http_request(self, *, route: str, method: str, status_code: int, latency_ms: float) -> None:
        if not self.enabled:
            return
        labels = {"route": route, "method": method, "status": str(status_code)}
        self._inc("http_requests_total", **labels)
        self._latency.labels(**labels).observe(latency_ms)

    def increment_lock_wait_timeout(self) -> None:
        self._inc("lock_wait_timeout_total")

    def increment_permission_denied(self, module: str, action: str) -> None:
        self._inc("permission_denied_total", module=module, action=action)

    def increment_approval_transition(self, status: str) -> None:
        self._inc("approval_transitions_total", status=status)

    def increment_cascade_change(self, entity_type: str, count: int = 1) -> None:
        if count:
            self._inc("cascade_changes_total", count, entity_type=entity_type)

    def render(self) -> MetricsSnapshot:
        if not self.enabled:
            return MetricsSnapshot(content=b"metrics_disabled\n", content_type="text/plain")
        return MetricsSnapshot(content=generate_latest(self._registry), content_type=CONTENT_TYPE_LATEST)


metrics = Metrics()
