"""Prometheus metrics produced as a side effect of bandwidth ingestion.

Every write goes through ``safe_emit`` at the call site: a failing metric
must never fail or retry the ingestion transaction.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

logger = logging.getLogger(__name__)


class SiteTelemetry:
    """Site-level counters and batch timing.

    Metrics are bound to ``registry`` so tests can use a private
    CollectorRegistry instead of the process-wide default.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry

        self.site_bandwidth_bytes = Counter(
            "site_bandwidth_bytes_total",
            "Total site bandwidth bytes",
            ["site_id", "direction", "protocol"],
            registry=registry,
        )
        self.tunnel_bytes = Counter(
            "tunnel_bytes_total",
            "Tunnel bytes by direction",
            ["site_id", "transport", "direction"],
            registry=registry,
        )
        self.site_uptime_seconds = Counter(
            "site_uptime_seconds_total",
            "Accumulated site uptime in seconds",
            ["site_id"],
            registry=registry,
        )
        self.batches = Counter(
            "bandwidth_batches_total",
            "Bandwidth report batches received",
            ["status"],  # success, invalid, failed
            registry=registry,
        )
        self.batch_duration_seconds = Histogram(
            "bandwidth_batch_duration_seconds",
            "Time spent applying one bandwidth batch",
            registry=registry,
        )

    def add_site_bandwidth(
        self, site_id: int, direction: str, transport: str, num_bytes: int
    ) -> None:
        self.site_bandwidth_bytes.labels(
            site_id=str(site_id), direction=direction, protocol=transport
        ).inc(num_bytes)
        self.tunnel_bytes.labels(
            site_id=str(site_id), transport=transport, direction=direction
        ).inc(num_bytes)

    def add_site_uptime(self, site_id: int, seconds: float) -> None:
        self.site_uptime_seconds.labels(site_id=str(site_id)).inc(seconds)

    def record_batch(self, status: str, duration_seconds: Optional[float] = None) -> None:
        self.batches.labels(status=status).inc()
        if duration_seconds is not None:
            self.batch_duration_seconds.observe(duration_seconds)


def safe_emit(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
    """Call a telemetry function, discarding any error. Returns True on success."""
    try:
        fn(*args, **kwargs)
        return True
    except Exception:
        logger.debug("Telemetry emission failed fn=%s", getattr(fn, "__name__", fn), exc_info=True)
        return False


_telemetry: Optional[SiteTelemetry] = None
_telemetry_lock = threading.Lock()


def get_site_telemetry() -> SiteTelemetry:
    """Process-wide telemetry bound to the default registry."""
    global _telemetry
    if _telemetry is None:
        with _telemetry_lock:
            if _telemetry is None:
                _telemetry = SiteTelemetry()
    return _telemetry
