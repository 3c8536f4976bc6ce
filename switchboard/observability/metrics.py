"""Prometheus metrics for Switchboard."""

from prometheus_client import Counter, Gauge, Histogram

# Inference metrics
INFERENCE_REQUESTS = Counter(
    "switchboard_inference_requests_total",
    "Total number of inference invocations",
    labelnames=["event", "outcome"],
)

INFERENCE_LATENCY = Histogram(
    "switchboard_inference_latency_seconds",
    "Inference latency in seconds",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

RULES_EVALUATED = Counter(
    "switchboard_rules_evaluated_total",
    "Rules selected by the evaluator",
    labelnames=["rule_type", "dispatch"],
)

RULE_METRIC = Counter(
    "switchboard_rule_metric_total",
    "Values recorded by Metric rules",
    labelnames=["namespace", "metric"],
)

# Cache metrics
RULE_CACHE_RELOADS = Counter(
    "switchboard_rule_cache_reloads_total",
    "Number of times the rule set cache was reloaded",
)

# Platform metrics
PLATFORM_RETRIES = Counter(
    "switchboard_platform_retries_total",
    "Retried telephony platform calls",
    labelnames=["operation"],
)

# Batch metrics
BATCH_TESTS = Counter(
    "switchboard_batch_tests_total",
    "Batch tests executed",
    labelnames=["outcome"],
)

ACTIVE_BATCHES = Gauge(
    "switchboard_active_batches",
    "Number of batches currently running",
)
