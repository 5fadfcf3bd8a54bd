"""
Prometheus metrics for the LightGuard data layer.

Tracks remote store operations and hook run outcomes.
"""

from prometheus_client import Counter, Histogram

record_operations_total = Counter(
    "lightguard_record_operations_total",
    "Total record service operations",
    ["operation", "table", "status"],
)

record_operation_duration_seconds = Histogram(
    "lightguard_record_operation_duration_seconds",
    "Record service operation duration in seconds",
    ["operation"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

hook_runs_total = Counter(
    "lightguard_hook_runs_total",
    "Total hook fetch runs by outcome",
    ["hook", "outcome"],
)


def track_record_operation(operation: str, table: str, status: str, duration: float):
    """Track a single record service call."""
    record_operations_total.labels(operation=operation, table=table, status=status).inc()
    record_operation_duration_seconds.labels(operation=operation).observe(duration)


def track_hook_run(hook: str, outcome: str):
    """Track how a hook run settled (success, error or discarded)."""
    hook_runs_total.labels(hook=hook, outcome=outcome).inc()
