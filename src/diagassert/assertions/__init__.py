"""Failure reports and the run-time helpers of rewritten assertions."""

from diagassert.assertions._base import (
    AssertionFailedError,
    FailureReport,
    ReportLine,
    ValueFormattingError,
)
from diagassert.assertions.report import fail, format_message, format_value, snapshot

__all__ = [
    "AssertionFailedError",
    "FailureReport",
    "ReportLine",
    "ValueFormattingError",
    "fail",
    "format_message",
    "format_value",
    "snapshot",
]
