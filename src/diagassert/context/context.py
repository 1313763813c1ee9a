from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, NoReturn

from diagassert.config import get_settings


if TYPE_CHECKING:
    from diagassert.assertions._base import FailureReport


FailureSink = Callable[["FailureReport"], None]

FAILURE_SINK: ContextVar[FailureSink | None] = ContextVar("failure_sink", default=None)


def raise_failure(report: FailureReport) -> NoReturn:
    """Default sink: raise the report as an `AssertionFailedError`."""
    from diagassert.assertions._base import AssertionFailedError  # noqa: PLC0415

    raise AssertionFailedError(report, report.render(indent=get_settings().label_indent))


def get_failure_sink() -> FailureSink:
    """Get the sink for the current context, falling back to `raise_failure`."""
    return FAILURE_SINK.get() or raise_failure


@contextmanager
def failure_sink_scope(sink: FailureSink) -> Iterator[None]:
    """Temporarily route failure reports to `sink` for the duration of the ``with`` block.

    Parameters
    ----------
    sink : Callable[[FailureReport], None]
        Called with each report. Returning normally lets execution continue
        after the failed assertion.
    """
    token = FAILURE_SINK.set(sink)
    try:
        yield
    finally:
        FAILURE_SINK.reset(token)


@contextmanager
def failures_collector(reports: list[FailureReport]) -> Iterator[None]:
    with failure_sink_scope(reports.append):
        yield
