"""Prometheus metrics for friendship operations."""

from prometheus_client import Counter, Histogram

OPERATION_COUNT = Counter(
    "rapport_friendship_operations_total",
    "Friendship operations by outcome",
    labelnames=["operation", "outcome"],
)

OPERATION_LATENCY = Histogram(
    "rapport_friendship_operation_latency_seconds",
    "Friendship operation latency in seconds",
    labelnames=["operation"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

RELATIONSHIP_WRITES = Counter(
    "rapport_relationship_writes_total",
    "Relationship record writes issued by the request orchestrator",
    labelnames=["side", "action"],
)

PARTIAL_WRITE_FAILURES = Counter(
    "rapport_partial_write_failures_total",
    "Fan-out writes where one side succeeded and the other failed",
    labelnames=["operation", "failed_side"],
)
