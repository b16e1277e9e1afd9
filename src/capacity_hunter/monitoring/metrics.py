"""Custom Prometheus metrics for capacity hunter.

Exposed via prometheus_client.start_http_server when PROMETHEUS_ENABLED is
set (long-running monitor/deploy loops on a server). Useful alerts:
- capacity_detected_total (any increase: capacity appeared)
- cleanup_failures_total (any increase: possible orphaned billable resource)
- provision_attempts_total{outcome="unexpected_error"} (provider anomalies)
"""

from prometheus_client import Counter, Histogram

# === Provisioning Metrics ===

provision_attempts_total = Counter(
    "provision_attempts_total",
    "Total provisioning attempts by classified outcome",
    ["outcome"],
)
"""
Provisioning attempts counter.

Labels:
- outcome: success, capacity_exhausted, quota_exceeded, unexpected_error
"""

retry_rounds_total = Counter(
    "retry_rounds_total",
    "Completed orchestrator rounds without success",
)

backoff_delay_seconds = Histogram(
    "backoff_delay_seconds",
    "Delay drawn between orchestrator rounds",
    buckets=[5, 10, 20, 30, 45, 60, 90, 120, 300],
)
"""
Backoff delay histogram.

Should look flat across the configured [MIN_RETRY_DELAY, MAX_RETRY_DELAY]
interval (uniform jitter).
"""

# === Probe Metrics ===

probe_checks_total = Counter(
    "probe_checks_total",
    "Capacity probe checks by tier and verdict",
    ["tier", "available"],
)

capacity_detected_total = Counter(
    "capacity_detected_total",
    "Positive capacity signals raised by the monitor",
    ["tier"],
)

# === Cleanup Metrics ===

cleanup_failures_total = Counter(
    "cleanup_failures_total",
    "Cleanup steps that failed and need manual attention",
    ["kind"],
)
"""
Cleanup failure counter.

Labels:
- kind: workspace (scratch dir), artifact (plan file/log), destroy (test or
  partial instance left behind)

Alert thresholds:
- CRITICAL: any destroy failure (billable resource may be orphaned)
"""
