"""Telemetry sink for site bandwidth ingestion."""

from .metrics import SiteTelemetry, get_site_telemetry, safe_emit

__all__ = [
    "SiteTelemetry",
    "get_site_telemetry",
    "safe_emit",
]
