"""Failure sink context."""

from diagassert.context.context import (
    FAILURE_SINK,
    FailureSink,
    failure_sink_scope,
    failures_collector,
    get_failure_sink,
    raise_failure,
)

__all__ = [
    "FAILURE_SINK",
    "FailureSink",
    "failure_sink_scope",
    "failures_collector",
    "get_failure_sink",
    "raise_failure",
]
