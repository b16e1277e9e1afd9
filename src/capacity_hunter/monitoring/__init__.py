"""Monitoring and metrics instrumentation for capacity hunter.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from capacity_hunter.monitoring.metrics import (
    backoff_delay_seconds,
    capacity_detected_total,
    cleanup_failures_total,
    probe_checks_total,
    provision_attempts_total,
    retry_rounds_total,
)

__all__ = [
    "provision_attempts_total",
    "retry_rounds_total",
    "backoff_delay_seconds",
    "probe_checks_total",
    "capacity_detected_total",
    "cleanup_failures_total",
]
