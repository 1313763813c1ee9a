"""AST rewriting of `assert` statements into diagnostic evaluation code.

Each ``assert <test>[, <msg>]`` is classified (see
:mod:`diagassert.core.classifier`) and replaced by a block that:

- binds every slot of the plan to a temporary, exactly once and in source
  evaluation order,
- derives the outcome from those temporaries instead of re-evaluating `test`,
- on a false outcome formats the captured values and calls the failure sink
  through :func:`diagassert.assertions.report.fail`,
- deletes the temporaries in a ``finally`` so no captured value outlives the
  statement, even when the sink or an operand raises.

Temporaries and helpers use names starting with ``@``, which cannot appear in
Python source, so they never clash with user identifiers.
"""

from __future__ import annotations

import ast
import itertools
import logging
from collections.abc import Iterator
from typing import Any

from diagassert.assertions.report import fail, snapshot
from diagassert.config import get_settings
from diagassert.core.classifier import DiagnosticPlan, Slot, Variant, classify, source_text


logger = logging.getLogger(__name__)

TEMP_PREFIX = "@diag_var"
SNAPSHOT_HELPER = "@diag_snapshot"
FAIL_HELPER = "@diag_fail"
DONT_REWRITE_MARKER = "DIAGASSERT_DONT_REWRITE"


def build_injected_globals() -> dict[str, Any]:
    """Build the globals mapping injected into rewritten modules.

    Transformed code references these names directly, so they must exist in
    the module's globals before it executes.
    """
    return {
        SNAPSHOT_HELPER: snapshot,
        FAIL_HELPER: fail,
    }


def _load(name: str) -> ast.Name:
    return ast.Name(id=name, ctx=ast.Load())


def _assign(name: str, value: ast.expr, location: ast.AST) -> ast.Assign:
    stmt = ast.Assign(targets=[ast.Name(id=name, ctx=ast.Store())], value=value)
    return ast.fix_missing_locations(ast.copy_location(stmt, location))


def _helper_call(helper: str, *args: ast.expr) -> ast.Call:
    return ast.Call(func=_load(helper), args=list(args), keywords=[])


def _entry(slot: Slot, value_name: str) -> ast.Tuple:
    return ast.Tuple(
        elts=[ast.Constant(slot.label), ast.Constant(slot.source_text), _load(value_name)],
        ctx=ast.Load(),
    )


def message_parts(msg: ast.expr | None) -> list[ast.expr]:
    """Split an assert message into the arguments passed to `fail`.

    ``("x ({}) should not be 1", x)`` is passed as its elements; any other
    message is passed whole. Whether the elements really are a format string
    plus its arguments is decided at run time by `format_message`.
    """
    if msg is None:
        return []
    match msg:
        case ast.Tuple(elts=[ast.Constant(value=str()), _, *_]):
            return list(msg.elts)
        case _:
            return [msg]


class EvaluationGenerator:
    """Generate the statements that replace one `assert` for a given plan."""

    def __init__(self, counter: Iterator[int] | None = None) -> None:
        self._counter = counter if counter is not None else itertools.count()
        self.variables: list[str] = []
        self.captured: list[tuple[Slot, str]] = []

    def variable(self) -> str:
        """Get a new temporary name."""
        name = f"{TEMP_PREFIX}{next(self._counter)}"
        self.variables.append(name)
        return name

    def capture(self, slot: Slot, statements: list[ast.stmt]) -> str:
        """Bind `slot` to a new temporary, located at the slot's expression."""
        name = self.variable()
        statements.append(_assign(name, slot.expression, slot.expression))
        self.captured.append((slot, name))
        return name

    def generate(self, plan: DiagnosticPlan, assert_node: ast.Assert, expression_text: str) -> list[ast.stmt]:
        """Return the statements evaluating `assert_node` according to `plan`."""
        self.variables = []
        self.captured = []
        statements: list[ast.stmt] = []

        match plan.variant:
            case Variant.COMPARISON:
                failed, lines = self._comparison(plan, assert_node.test, statements)
            case Variant.LOGICAL_COMBINATION:
                failed, lines = self._logical(plan, statements)
            case Variant.CALL | Variant.METHOD_CALL:
                failed, lines = self._call(plan, assert_node.test, statements)
            case Variant.INDEX:
                failed, lines = self._index(plan, assert_node.test, statements)
            case Variant.FALLBACK:
                failed, lines = self._fallback(plan, statements)

        report = ast.Expr(
            value=_helper_call(
                FAIL_HELPER,
                ast.Constant(expression_text),
                lines,
                *message_parts(assert_node.msg),
            )
        )
        check = ast.If(test=failed, body=[report], orelse=[])
        statements.append(ast.fix_missing_locations(ast.copy_location(check, assert_node)))

        # bound up front; the `finally` deletes every one of them
        bind = ast.Assign(
            targets=[ast.Name(id=name, ctx=ast.Store()) for name in self.variables],
            value=ast.Constant(None),
        )
        release = ast.Delete(targets=[ast.Name(id=name, ctx=ast.Del()) for name in self.variables])
        guarded = ast.Try(body=statements, handlers=[], orelse=[], finalbody=[release])
        return [
            ast.fix_missing_locations(ast.copy_location(bind, assert_node)),
            ast.fix_missing_locations(ast.copy_location(guarded, assert_node)),
        ]

    def _comparison(
        self, plan: DiagnosticPlan, test: ast.Compare, statements: list[ast.stmt]
    ) -> tuple[ast.expr, ast.expr]:
        left, right = plan.slots
        left_name = self.capture(left, statements)
        right_name = self.capture(right, statements)

        outcome = ast.copy_location(
            ast.Compare(left=_load(left_name), ops=test.ops, comparators=[_load(right_name)]),
            test,
        )
        lines = _helper_call(
            SNAPSHOT_HELPER,
            ast.List(elts=[_entry(left, left_name), _entry(right, right_name)], ctx=ast.Load()),
        )
        return ast.UnaryOp(op=ast.Not(), operand=outcome), lines

    def _logical(self, plan: DiagnosticPlan, statements: list[ast.stmt]) -> tuple[ast.expr, ast.expr]:
        record = self.variable()
        value = self.variable()
        falsy = self.variable()
        is_or = plan.operator_text == "or"

        statements.append(_assign(record, ast.List(elts=[], ctx=ast.Load()), plan.slots[0].expression))

        # evaluate, record, test early exit; later operands nest inside the `if`
        body = statements
        last = len(plan.slots) - 1
        for i, slot in enumerate(plan.slots):
            body.append(_assign(value, slot.expression, slot.expression))
            append = ast.Expr(
                value=ast.Call(
                    func=ast.Attribute(value=_load(record), attr="append", ctx=ast.Load()),
                    args=[_entry(slot, value)],
                    keywords=[],
                )
            )
            body.append(ast.fix_missing_locations(ast.copy_location(append, slot.expression)))
            body.append(_assign(falsy, ast.UnaryOp(op=ast.Not(), operand=_load(value)), slot.expression))
            if i < last:
                cond: ast.expr = _load(falsy) if is_or else ast.UnaryOp(op=ast.Not(), operand=_load(falsy))
                inner: list[ast.stmt] = []
                early_exit = ast.If(test=cond, body=inner, orelse=[])
                body.append(ast.fix_missing_locations(ast.copy_location(early_exit, slot.expression)))
                body = inner

        return _load(falsy), _helper_call(SNAPSHOT_HELPER, _load(record))

    def _call(self, plan: DiagnosticPlan, test: ast.Call, statements: list[ast.stmt]) -> tuple[ast.expr, ast.expr]:
        first, *arg_slots = plan.slots
        target = self.capture(first, statements)
        if plan.variant is Variant.METHOD_CALL:
            method = self.variable()
            lookup = ast.Attribute(value=_load(target), attr=plan.operator_text, ctx=ast.Load())
            statements.append(_assign(method, lookup, test.func))
            callee = method
        else:
            callee = target

        args: list[ast.expr] = []
        for arg, slot in zip(test.args, arg_slots):
            name = self.capture(slot, statements)
            args.append(ast.Starred(value=_load(name), ctx=ast.Load()) if isinstance(arg, ast.Starred) else _load(name))

        keywords = []
        for keyword, slot in zip(test.keywords, arg_slots[len(test.args):]):
            name = self.capture(slot, statements)
            keywords.append(ast.keyword(arg=keyword.arg, value=_load(name)))

        lines = self._eager_snapshot(statements, test)
        result = self.variable()
        statements.append(_assign(result, ast.Call(func=_load(callee), args=args, keywords=keywords), test))
        return ast.UnaryOp(op=ast.Not(), operand=_load(result)), _load(lines)

    def _index(self, plan: DiagnosticPlan, test: ast.Subscript, statements: list[ast.stmt]) -> tuple[ast.expr, ast.expr]:
        base, index = plan.slots
        base_name = self.capture(base, statements)
        index_name = self.capture(index, statements)

        lines = self._eager_snapshot(statements, test)
        result = self.variable()
        subscript = ast.Subscript(value=_load(base_name), slice=_load(index_name), ctx=ast.Load())
        statements.append(_assign(result, subscript, test))
        return ast.UnaryOp(op=ast.Not(), operand=_load(result)), _load(lines)

    def _fallback(self, plan: DiagnosticPlan, statements: list[ast.stmt]) -> tuple[ast.expr, ast.expr]:
        (slot,) = plan.slots
        value = self.capture(slot, statements)
        lines = self._eager_snapshot(statements, slot.expression)
        return ast.UnaryOp(op=ast.Not(), operand=_load(value)), _load(lines)

    def _eager_snapshot(self, statements: list[ast.stmt], location: ast.AST) -> str:
        # Formats before the call or subscript runs; the result is unused when the outcome is true.
        entries = ast.List(
            elts=[_entry(slot, name) for slot, name in self.captured if slot.shown],
            ctx=ast.Load(),
        )
        lines = self.variable()
        statements.append(_assign(lines, _helper_call(SNAPSHOT_HELPER, entries), location))
        return lines


def rewrite_disabled(module: ast.Module) -> bool:
    """Whether the module docstring opts out of assertion rewriting."""
    docstring = ast.get_docstring(module, clean=False)
    return docstring is not None and DONT_REWRITE_MARKER in docstring


class AssertRewriteTransformer(ast.NodeTransformer):
    """Rewrite `assert` statements to report their captured sub-values on failure."""

    def __init__(self, source: str, *, filename: str) -> None:
        self._source = source
        self._filename = filename
        self._generator = EvaluationGenerator()

    def visit_Module(self, node: ast.Module) -> ast.Module:  # noqa: N802 - ast API
        if not get_settings().rewrite_enabled or rewrite_disabled(node):
            logger.debug("assertion rewriting disabled for %s", self._filename)
            return node
        return self.generic_visit(node)

    def visit_Assert(self, node: ast.Assert) -> ast.stmt | list[ast.stmt]:  # noqa: N802 - ast API
        if not __debug__:
            # Leave the assert in place so `python -O` strips it as usual.
            return node

        expression_text = source_text(node.test, self._source)
        plan = classify(node.test, self._source)
        logger.debug(
            "rewriting assertion `%s` at %s:%d as %s",
            expression_text,
            self._filename,
            node.lineno,
            plan.variant.value,
        )
        return self._generator.generate(plan, node, expression_text)
