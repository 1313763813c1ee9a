"""diagassert - assertion rewriting with structured failure reports."""

from .assertions import AssertionFailedError, FailureReport, ReportLine, ValueFormattingError
from .config import DiagnosticSettings, get_settings
from .context import failure_sink_scope, failures_collector
from .core import (
    DiagnosticPlan,
    Slot,
    Variant,
    classify,
    compile_source,
    evaluate,
    exec_source,
    install_import_hook,
    load_module,
    parse_assertion,
    rewrite_source,
    rewriting_imports,
)
from .version import __version__


__all__ = [
    # Classification and rewriting
    "classify",
    "DiagnosticPlan",
    "Slot",
    "Variant",
    "rewrite_source",
    "compile_source",
    "exec_source",
    "load_module",
    "install_import_hook",
    "rewriting_imports",
    # Textual assertions
    "parse_assertion",
    "evaluate",
    # Reports
    "FailureReport",
    "ReportLine",
    "AssertionFailedError",
    "ValueFormattingError",
    "failure_sink_scope",
    "failures_collector",
    # Configuration
    "DiagnosticSettings",
    "get_settings",
]
