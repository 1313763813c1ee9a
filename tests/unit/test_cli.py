import io
import sys
import textwrap

import pytest
from rich.console import Console

from diagassert.cli import CLIApplication
from diagassert.core.frontend import MISSING_COMMA


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=200, color_system=None)


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


def output(console: Console) -> str:
    return console.file.getvalue()


def test_cli_routes_to_explain(monkeypatch, console):
    captured = {}

    class FakeExplain:
        def __init__(self, console, args):
            captured["console"] = console
            captured["args"] = args

        def run(self):
            captured["ran"] = True
            return 0

    from diagassert import cli

    monkeypatch.setattr(cli, "ExplainCommand", FakeExplain)

    exit_code = CLIApplication(console).run(["explain", "x == 2"])

    assert exit_code == 0
    assert captured["ran"] is True
    assert captured["console"] is console
    assert captured["args"].assertion == "x == 2"


def test_explain_prints_plan_and_code(console):
    exit_code = CLIApplication(console).run(["explain", 's.startswith("hello")'])

    text = output(console)
    assert exit_code == 0
    assert "variant method_call operator startswith" in text
    assert "arg 0" in text
    assert "@diag_fail" in text


def test_explain_reports_missing_comma(console):
    exit_code = CLIApplication(console).run(["explain", "x == 1 'message'"])

    assert exit_code == 2
    assert MISSING_COMMA in output(console)


def test_explain_reports_python_syntax_errors(console):
    assert CLIApplication(console).run(["explain", "x +* 2"]) == 2


def test_rewrite_prints_module(tmp_path, console):
    path = tmp_path / "checks.py"
    path.write_text("x = 1\nassert x == 1\n")

    exit_code = CLIApplication(console).run(["rewrite", str(path)])

    assert exit_code == 0
    assert "@diag_var0 = x" in output(console)


def test_run_reports_outcomes(tmp_path, console):
    path = tmp_path / "cli_outcomes.py"
    path.write_text(
        textwrap.dedent(
            """
            import asyncio


            def test_passes():
                assert 1 + 1 == 2


            def test_fails():
                value = 1
                assert value == 2


            async def test_async_fails():
                await asyncio.sleep(0)
                assert [] or None


            def test_errors():
                raise KeyError("missing")


            def helper():
                raise AssertionError("not collected")
            """
        )
    )

    try:
        exit_code = CLIApplication(console).run(["run", str(path)])
    finally:
        sys.modules.pop("cli_outcomes", None)

    text = output(console)
    assert exit_code == 1
    assert "cli_outcomes::test_passes PASSED" in text
    assert "cli_outcomes::test_fails FAILED" in text
    assert "assertion `value == 2` failed\n  left: 1\n right: 2" in text
    assert "assertion `[] or None` failed\n   []: []\n None: None" in text
    assert "KeyError: 'missing'" in text
    assert "helper" not in text
    assert "1 passed, 2 failed, 1 error" in text


def test_run_passing_module_exits_zero(tmp_path, console):
    path = tmp_path / "cli_passing.py"
    path.write_text("def test_ok():\n    assert 'a' in 'abc'\n")

    try:
        exit_code = CLIApplication(console).run(["run", str(path)])
    finally:
        sys.modules.pop("cli_passing", None)

    assert exit_code == 0
    assert "1 passed" in output(console)


def test_run_reads_dotenv(tmp_path, console):
    (tmp_path / ".env").write_text("DIAGASSERT_LABEL_INDENT=3\n")
    path = tmp_path / "cli_dotenv.py"
    path.write_text("def test_fails():\n    assert 1 == 2\n")

    try:
        CLIApplication(console).run(["run", str(path)])
    finally:
        sys.modules.pop("cli_dotenv", None)

    assert "    left: 1\n   right: 2" in output(console)
