"""Tests for loading modules with rewritten assertions."""

import importlib
import sys

import pytest

from diagassert.assertions import AssertionFailedError
from diagassert.config import reset_settings
from diagassert.core import (
    DiagnosticFinder,
    DiagnosticModuleLoader,
    compile_source,
    install_import_hook,
    load_module,
    rewriting_imports,
    uninstall_import_hook,
)


FAILING_MODULE = """
def test_value():
    value = 1
    assert value == 2
"""


@pytest.fixture
def on_path(tmp_path, monkeypatch):
    monkeypatch.syspath_prepend(str(tmp_path))
    yield tmp_path
    for name in [name for name, module in sys.modules.items() if getattr(module, "__file__", "") and str(tmp_path) in module.__file__]:
        del sys.modules[name]
    importlib.invalidate_caches()


class TestLoadModule:
    def test_asserts_are_rewritten(self, tmp_path):
        path = tmp_path / "sample_checks.py"
        path.write_text(FAILING_MODULE)

        module = load_module(path)

        with pytest.raises(AssertionFailedError) as exc_info:
            module.test_value()
        assert str(exc_info.value) == "assertion `value == 2` failed\n  left: 1\n right: 2"
        assert sys.modules["sample_checks"] is module
        del sys.modules["sample_checks"]

    def test_custom_name(self, tmp_path):
        path = tmp_path / "checks.py"
        path.write_text("VALUE = 3\n")

        module = load_module(path, name="renamed_checks")

        assert module.__name__ == "renamed_checks"
        assert module.VALUE == 3
        del sys.modules["renamed_checks"]

    def test_loader_reports_filename(self, tmp_path):
        path = tmp_path / "checks.py"
        loader = DiagnosticModuleLoader("checks", path)

        assert loader.get_filename("checks") == str(path)

    def test_compile_source_keeps_filename(self):
        code = compile_source("assert True\n", filename="inline.py")

        assert code.co_filename == "inline.py"


class TestImportHook:
    def test_matching_modules_are_rewritten(self, on_path):
        (on_path / "test_hooked.py").write_text(FAILING_MODULE)

        with rewriting_imports():
            module = importlib.import_module("test_hooked")

        assert isinstance(module.__loader__, DiagnosticModuleLoader)
        with pytest.raises(AssertionFailedError):
            module.test_value()

    def test_other_modules_use_default_import(self, on_path):
        (on_path / "plain_helpers.py").write_text(FAILING_MODULE)

        with rewriting_imports():
            module = importlib.import_module("plain_helpers")

        assert not isinstance(module.__loader__, DiagnosticModuleLoader)
        with pytest.raises(AssertionError) as exc_info:
            module.test_value()
        assert not isinstance(exc_info.value, AssertionFailedError)

    def test_custom_patterns(self, on_path):
        (on_path / "check_numbers.py").write_text(FAILING_MODULE)

        with rewriting_imports(["check_*.py"]):
            module = importlib.import_module("check_numbers")

        assert isinstance(module.__loader__, DiagnosticModuleLoader)

    def test_patterns_default_to_settings(self, monkeypatch):
        monkeypatch.setenv("DIAGASSERT_FILE_PATTERNS", '["verify_*.py"]')
        reset_settings()

        assert DiagnosticFinder().patterns == ["verify_*.py"]

    def test_install_and_uninstall(self):
        finder = install_import_hook(["x_*.py"])
        try:
            assert sys.meta_path[0] is finder
        finally:
            uninstall_import_hook(finder)

        assert finder not in sys.meta_path
        uninstall_import_hook(finder)

    def test_matches(self, tmp_path):
        finder = DiagnosticFinder(["test_*.py", "*_test.py"])

        assert finder.matches(tmp_path / "test_a.py")
        assert finder.matches(tmp_path / "a_test.py")
        assert not finder.matches(tmp_path / "a.py")
