"""Prometheus metrics for monitoring submission outcomes, validation friction, and account service health"""

from prometheus_client import Counter, Histogram

# Submission metrics
submission_counter = Counter(
    "onboarding_submissions_total",
    "Onboarding submissions by outcome",
    ["account_type", "outcome"],  # succeeded | partial | failed
)

submission_step_failure_counter = Counter(
    "onboarding_submission_step_failures_total",
    "Submission steps that failed",
    ["step"],
)

# Wizard metrics
validation_failure_counter = Counter(
    "onboarding_validation_failures_total",
    "Stage advances blocked by validation",
    ["stage"],
)

encoding_failure_counter = Counter(
    "onboarding_attachment_encoding_failures_total",
    "Attachments that could not be encoded",
    ["slot"],
)

# Account service metrics
account_service_latency_histogram = Histogram(
    "account_service_latency_seconds",
    "Account service response time",
    ["operation"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

account_service_failure_counter = Counter(
    "account_service_failures_total",
    "Failed account service calls",
    ["operation"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_submission(account_type: str, succeeded: bool, partial: bool) -> None:
    """Record a finished submission run"""
    if succeeded:
        outcome = "succeeded"
    elif partial:
        outcome = "partial"
    else:
        outcome = "failed"
    submission_counter.labels(account_type=account_type, outcome=outcome).inc()
