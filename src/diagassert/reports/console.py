"""Console output for the diagassert CLI using Rich."""

from __future__ import annotations

import sys
from enum import Enum
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table


if TYPE_CHECKING:
    from diagassert.assertions import FailureReport
    from diagassert.core.classifier import DiagnosticPlan


class RunStatus(Enum):
    """Outcome of one test function run by the CLI."""

    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


_STATUS_CONFIG: dict[RunStatus, tuple[str, str, str]] = {
    RunStatus.PASSED: ("✓", "green", "PASSED"),
    RunStatus.FAILED: ("✗", "red", "FAILED"),
    RunStatus.ERROR: ("!", "yellow", "ERROR"),
}


class ConsoleReporter:
    """Prints plans, generated code and test outcomes."""

    def __init__(self, console: Console | None = None, indent: int = 1) -> None:
        self.console = console or Console(file=sys.__stdout__)
        self.indent = indent
        self.counts: dict[RunStatus, int] = dict.fromkeys(RunStatus, 0)

    def print_plan(self, plan: DiagnosticPlan, expression: str) -> None:
        table = Table(title=f"[bold]{escape(expression)}[/bold]", show_lines=False)
        table.add_column("label", justify="right", style="cyan")
        table.add_column("source")
        table.add_column("shown", justify="center")
        for slot in plan.slots:
            table.add_row(escape(slot.label), escape(slot.source_text), "yes" if slot.shown else "no")

        operator = f" [dim]operator[/dim] {escape(plan.operator_text)}" if plan.operator_text else ""
        self.console.print(f"[bold]variant[/bold] {plan.variant.value}{operator}")
        self.console.print(table)

    def print_code(self, code: str, title: str = "generated code") -> None:
        self.console.print(Panel(Syntax(code, "python", word_wrap=True), title=title, expand=False))

    def print_failure(self, report: FailureReport) -> None:
        self.console.print(escape(report.render(indent=self.indent)), style="red", highlight=False)

    def test_finished(self, name: str, status: RunStatus, detail: str | None = None) -> None:
        symbol, color, label = _STATUS_CONFIG[status]
        self.counts[status] += 1
        self.console.print(f"[{color}]{symbol}[/{color}] {escape(name)} [{color}]{label}[/{color}]")
        if detail:
            self.console.print(escape(detail), style="dim", highlight=False)

    def print_summary(self) -> None:
        parts = []
        for status, count in self.counts.items():
            if count:
                _, color, _ = _STATUS_CONFIG[status]
                parts.append(f"[{color}]{count} {status.value}[/{color}]")
        self.console.print(", ".join(parts) if parts else "[yellow]no tests found[/yellow]")
