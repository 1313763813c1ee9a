from __future__ import annotations

import argparse
import ast
import asyncio
import inspect
import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from rich.console import Console

from diagassert.assertions import AssertionFailedError
from diagassert.config import get_settings, reset_settings
from diagassert.core import classify, load_module, parse_assertion, rewrite_source
from diagassert.core.frontend import assertion_module
from diagassert.reports import ConsoleReporter, RunStatus


logger = logging.getLogger(__name__)


class CLIApplication:
    """Top-level command router."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self.parser = argparse.ArgumentParser(
            prog="diagassert",
            description="Rewrite assert statements to report the values behind a failure.",
        )
        self.parser.add_argument("-v", "--verbose", action="store_true", help="Log rewriting decisions.")
        subparsers = self.parser.add_subparsers(dest="command", required=True)

        explain = subparsers.add_parser(
            "explain",
            help="Show how an assertion is classified and the code generated for it.",
        )
        explain.add_argument(
            "assertion",
            help='Assertion text, e.g. "x == 2" or "x != 1, \'x ({}) should not be 1\', x".',
        )

        rewrite = subparsers.add_parser("rewrite", help="Print a module with its assertions rewritten.")
        rewrite.add_argument("path", help="Python source file.")

        run = subparsers.add_parser("run", help="Run the test_* functions of files with rewritten assertions.")
        run.add_argument("paths", nargs="+", help="Python source files.")

    def run(self, argv: Sequence[str] | None = None) -> int:
        load_dotenv(Path.cwd() / ".env")
        reset_settings()
        args = self.parser.parse_args(argv)
        if args.verbose:
            logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

        commands = {
            "explain": ExplainCommand,
            "rewrite": RewriteCommand,
            "run": RunCommand,
        }
        return commands[args.command](self.console, args).run()


class ExplainCommand:
    """`diagassert explain`: plan and generated code for assertion text."""

    def __init__(self, console: Console, args: argparse.Namespace) -> None:
        self.reporter = ConsoleReporter(console)
        self.text = args.assertion

    def run(self) -> int:
        try:
            parsed = parse_assertion(self.text)
        except SyntaxError as exc:
            self.reporter.console.print(f"[red]error:[/red] {exc.msg} (column {exc.offset})")
            return 2

        plan = classify(parsed.expression, parsed.source_text)
        self.reporter.print_plan(plan, parsed.source_text)
        self.reporter.print_code(ast.unparse(assertion_module(parsed)))
        return 0


class RewriteCommand:
    """`diagassert rewrite`: the rewritten module source."""

    def __init__(self, console: Console, args: argparse.Namespace) -> None:
        self.reporter = ConsoleReporter(console)
        self.path = Path(args.path).expanduser()

    def run(self) -> int:
        source = self.path.read_text(encoding="utf-8")
        tree = rewrite_source(source, filename=str(self.path))
        self.reporter.print_code(ast.unparse(tree), title=str(self.path))
        return 0


class RunCommand:
    """`diagassert run`: execute test functions and print failure reports."""

    def __init__(self, console: Console, args: argparse.Namespace) -> None:
        self.reporter = ConsoleReporter(console, indent=get_settings().label_indent)
        self.paths = [Path(path).expanduser() for path in args.paths]

    def run(self) -> int:
        for path in self.paths:
            module = load_module(path)
            for name, fn in inspect.getmembers(module, inspect.isfunction):
                if name.startswith("test_") and fn.__module__ == module.__name__:
                    self._run_test(f"{path.stem}::{name}", fn)

        self.reporter.print_summary()
        failed = self.reporter.counts[RunStatus.FAILED] + self.reporter.counts[RunStatus.ERROR]
        return 1 if failed else 0

    def _run_test(self, name: str, fn: Callable[[], Any]) -> None:
        try:
            if inspect.iscoroutinefunction(fn):
                asyncio.run(fn())
            else:
                fn()
        except AssertionFailedError as exc:
            self.reporter.test_finished(name, RunStatus.FAILED)
            self.reporter.print_failure(exc.report)
        except AssertionError as exc:
            self.reporter.test_finished(name, RunStatus.FAILED, str(exc) or None)
        except Exception as exc:
            logger.debug("test %s raised", name, exc_info=True)
            self.reporter.test_finished(name, RunStatus.ERROR, f"{type(exc).__name__}: {exc}")
        else:
            self.reporter.test_finished(name, RunStatus.PASSED)


def main(argv: Sequence[str] | None = None) -> int:
    return CLIApplication().run(argv)


if __name__ == "__main__":
    raise SystemExit(main())
