from .assert_transformer import AssertRewriteTransformer, EvaluationGenerator, build_injected_globals
from .classifier import DiagnosticPlan, Slot, Variant, classify
from .frontend import AssertionArgs, AssertionSyntaxError, evaluate, parse_assertion
from .module_loader import (
    DiagnosticFinder,
    DiagnosticModuleLoader,
    compile_source,
    exec_source,
    install_import_hook,
    load_module,
    rewrite_source,
    rewriting_imports,
    uninstall_import_hook,
)

__all__ = [
    "AssertRewriteTransformer",
    "AssertionArgs",
    "AssertionSyntaxError",
    "DiagnosticFinder",
    "DiagnosticModuleLoader",
    "DiagnosticPlan",
    "EvaluationGenerator",
    "Slot",
    "Variant",
    "build_injected_globals",
    "classify",
    "compile_source",
    "evaluate",
    "exec_source",
    "install_import_hook",
    "load_module",
    "parse_assertion",
    "rewrite_source",
    "rewriting_imports",
    "uninstall_import_hook",
]
