"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
        30.0,
        120.0,
        360.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

WORKFLOW_RUNS = Counter(
    "autobrief_workflow_runs_total",
    "Workflow runs that finished, by outcome",
    ("outcome",),
)

WORKFLOW_STEP_FAILURES = Counter(
    "autobrief_workflow_step_failures_total",
    "Transitions of a workflow step into the error state",
    ("step",),
)

FUNCTION_FAILURES = Counter(
    "autobrief_function_failures_total",
    "Failure bodies returned by the transcription and brief endpoints",
    ("function", "reason"),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def record_workflow_outcome(outcome: str) -> None:
    WORKFLOW_RUNS.labels(outcome=outcome).inc()


def record_step_failure(step_id: str) -> None:
    WORKFLOW_STEP_FAILURES.labels(step=step_id).inc()


def record_function_failure(function: str, reason: str) -> None:
    FUNCTION_FAILURES.labels(function=function, reason=reason or "unknown").inc()
