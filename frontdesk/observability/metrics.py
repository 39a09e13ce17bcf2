"""Prometheus metrics for Frontdesk.

Provides metrics for turn processing, cascade outcomes, source latency,
cache efficiency and governance events.
"""

from prometheus_client import Counter, Histogram, start_http_server

# Turn metrics
TURN_COUNT = Counter(
    "frontdesk_turns_total",
    "Total number of turns processed",
    labelnames=["tenant_id", "handler", "status"],
)

TURN_LATENCY = Histogram(
    "frontdesk_turn_latency_seconds",
    "Turn processing latency in seconds",
    labelnames=["tenant_id"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

# Cascade metrics
CASCADE_OUTCOMES = Counter(
    "frontdesk_cascade_outcomes_total",
    "Knowledge cascade terminal states",
    labelnames=["tenant_id", "outcome"],
)

SOURCE_QUERY_LATENCY = Histogram(
    "frontdesk_source_query_latency_seconds",
    "Latency of individual knowledge source queries",
    labelnames=["source_id", "outcome"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

SOURCE_ERRORS = Counter(
    "frontdesk_source_errors_total",
    "Knowledge source query errors and timeouts",
    labelnames=["source_id", "error_type"],
)

# Cache metrics
CACHE_HITS = Counter(
    "frontdesk_cache_hits_total",
    "Total number of cache hits",
    labelnames=["cache"],
)

CACHE_MISSES = Counter(
    "frontdesk_cache_misses_total",
    "Total number of cache misses",
    labelnames=["cache"],
)

# Governance metrics
GOVERNANCE_VIOLATIONS = Counter(
    "frontdesk_governance_violations_total",
    "Rejected fact writes and disallowed handlers",
    labelnames=["tenant_id", "violation"],
)

LOOPS_DETECTED = Counter(
    "frontdesk_loops_detected_total",
    "Response loops detected",
    labelnames=["tenant_id"],
)

ESCALATIONS = Counter(
    "frontdesk_escalations_total",
    "Escalations approved by governance",
    labelnames=["tenant_id", "trigger"],
)

# Persistence metrics
PERSISTENCE_ERRORS = Counter(
    "frontdesk_persistence_errors_total",
    "Session store failures (non-fatal)",
    labelnames=["operation"],
)


def setup_metrics(enabled: bool = True, port: int = 9090) -> None:
    """Expose the default registry over HTTP when metrics are enabled."""
    if enabled:
        start_http_server(port)
