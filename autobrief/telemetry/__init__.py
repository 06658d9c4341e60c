"""Telemetry helpers and metrics."""

from .metrics import (
    ERROR_COUNTER,
    FUNCTION_FAILURES,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    WORKFLOW_RUNS,
    WORKFLOW_STEP_FAILURES,
    observe_request,
    record_function_failure,
    record_step_failure,
    record_workflow_outcome,
)

__all__ = [
    "ERROR_COUNTER",
    "FUNCTION_FAILURES",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "WORKFLOW_RUNS",
    "WORKFLOW_STEP_FAILURES",
    "observe_request",
    "record_function_failure",
    "record_step_failure",
    "record_workflow_outcome",
]
