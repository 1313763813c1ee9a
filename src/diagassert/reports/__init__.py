"""Console reporting."""

from diagassert.reports.console import ConsoleReporter, RunStatus

__all__ = ["ConsoleReporter", "RunStatus"]
