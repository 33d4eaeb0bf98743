"""Prometheus metrics for the Certificate Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "certificate_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "certificate_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

error_total = Counter(
    "certificate_operator_error_total",
    "Total number of reconciliation errors",
    ["kind", "error_type"],
)

# Cloud provider metrics
provider_operations_total = Counter(
    "certificate_operator_provider_operations_total",
    "Total number of cloud provider operations",
    ["provider", "operation", "result"],
)

certificate_uploads_total = Counter(
    "certificate_operator_certificate_uploads_total",
    "Certificate distributions triggered by a content hash change",
    ["reason"],
)

# API call metrics
api_call_total = Counter(
    "certificate_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "certificate_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

rate_limit_hits_total = Counter(
    "certificate_operator_rate_limit_hits_total",
    "Total number of rate limit hits",
    ["api_type"],
)
