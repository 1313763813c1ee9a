import ast
import fnmatch
import importlib.abc
import importlib.machinery
import importlib.util
import logging
import os
import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from types import CodeType, ModuleType
from typing import Any

from diagassert.config import get_settings
from diagassert.core.assert_transformer import AssertRewriteTransformer, build_injected_globals


logger = logging.getLogger(__name__)


def rewrite_source(source: str, filename: str = "<unknown>") -> ast.Module:
    """Parse `source` and rewrite its `assert` statements."""
    tree = ast.parse(source, filename=filename)
    transformer = AssertRewriteTransformer(source, filename=filename)
    return ast.fix_missing_locations(transformer.visit(tree))


def compile_source(source: str, filename: str = "<unknown>") -> CodeType:
    """Compile `source` with rewritten assertions."""
    return compile(rewrite_source(source, filename), filename=filename, mode="exec")


def exec_source(source: str, namespace: dict[str, Any] | None = None, filename: str = "<string>") -> dict[str, Any]:
    """Execute `source` with rewritten assertions in `namespace` and return it."""
    if namespace is None:
        namespace = {}
    namespace.update(build_injected_globals())
    exec(compile_source(source, filename), namespace)
    return namespace


class DiagnosticModuleLoader(importlib.abc.SourceLoader):
    """Source loader whose modules run with diagnostic `assert` statements.

    The source is compiled through `compile_source`, and the module namespace
    receives the `@diag_*` helpers before the code runs. A module whose
    source cannot be read raises `ImportError`.
    """

    def __init__(self, fullname: str, path: Path) -> None:
        self.fullname = fullname
        self.path = Path(path)

    def get_filename(self, fullname: str) -> str:
        return os.fspath(self.path)

    def get_data(self, path: str) -> bytes:
        with open(path, "rb") as fh:
            return fh.read()

    def exec_module(self, module: ModuleType) -> None:
        source = self.get_source(module.__name__)
        if source is None:
            raise ImportError(f"no source available for {module.__name__}", name=module.__name__)

        filename = self.get_filename(module.__name__)
        logger.debug("loading %s from %s with assertion rewriting", module.__name__, filename)
        module.__dict__.update(build_injected_globals())
        exec(compile_source(source, filename=filename), module.__dict__)


def load_module(path: Path, name: str | None = None) -> ModuleType:
    """Load a Python file as a module with rewritten assertions."""
    path = Path(path)
    name = name or path.stem
    loader = DiagnosticModuleLoader(name, path)
    spec = importlib.util.spec_from_file_location(name, path, loader=loader)
    if spec is None:
        msg = f"Cannot load module from {path}"
        raise ImportError(msg)

    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    loader.exec_module(module)
    return module


class DiagnosticFinder(importlib.abc.MetaPathFinder):
    """Meta path import hook routing matching source files through `DiagnosticModuleLoader`."""

    def __init__(self, patterns: Sequence[str] | None = None) -> None:
        self.patterns = list(patterns) if patterns is not None else list(get_settings().file_patterns)

    def matches(self, path: Path) -> bool:
        return any(fnmatch.fnmatch(path.name, pattern) for pattern in self.patterns)

    def find_spec(
        self,
        fullname: str,
        path: Sequence[str] | None = None,
        target: ModuleType | None = None,
    ) -> importlib.machinery.ModuleSpec | None:
        spec = importlib.machinery.PathFinder.find_spec(fullname, path)
        if (
            spec is None
            # namespace packages have nothing to rewrite
            or spec.origin in {None, "namespace"}
            # only plain source files can be rewritten
            or not isinstance(spec.loader, importlib.machinery.SourceFileLoader)
        ):
            return None

        origin = Path(spec.origin)
        if not self.matches(origin):
            return None

        logger.debug("routing %s through assertion rewriting", fullname)
        return importlib.util.spec_from_file_location(
            fullname,
            origin,
            loader=DiagnosticModuleLoader(fullname, origin),
            submodule_search_locations=spec.submodule_search_locations,
        )


def install_import_hook(patterns: Sequence[str] | None = None) -> DiagnosticFinder:
    """Put a `DiagnosticFinder` at the front of `sys.meta_path` and return it."""
    finder = DiagnosticFinder(patterns)
    sys.meta_path.insert(0, finder)
    return finder


def uninstall_import_hook(finder: DiagnosticFinder) -> None:
    if finder in sys.meta_path:
        sys.meta_path.remove(finder)


@contextmanager
def rewriting_imports(patterns: Sequence[str] | None = None) -> Iterator[DiagnosticFinder]:
    """Rewrite assertions of modules imported inside the ``with`` block."""
    finder = install_import_hook(patterns)
    try:
        yield finder
    finally:
        uninstall_import_hook(finder)
