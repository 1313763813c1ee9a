"""Textual front-end: assertions written as ``"<condition>[, <message>...]"``.

Used by the CLI and by callers holding assertion text instead of a module.
Malformed text is rejected with engine-authored errors that separate a
missing comma before the message from a condition that is cut short; any
other problem is Python's own `SyntaxError`, re-raised unchanged.
"""

from __future__ import annotations

import ast
import io
import tokenize
from dataclasses import dataclass
from typing import Any

from diagassert.core.assert_transformer import AssertRewriteTransformer, build_injected_globals


MISSING_CONDITION = "missing condition to check"
INCOMPLETE_EXPRESSION = "incomplete expression"
MISSING_COMMA = "condition has to be followed by a comma, if a message is provided"

_OPENING = "([{"
_CLOSING = ")]}"


class AssertionSyntaxError(SyntaxError):
    """Malformed assertion text, diagnosed by the engine."""


@dataclass(frozen=True, slots=True)
class AssertionArgs:
    """Parsed assertion text.

    Attributes:
    ----------
    expression : ast.expr
        The condition.
    message : tuple[ast.expr, ...]
        Message parts following the condition: one message, or a format string
        followed by its arguments.
    source_text : str
        The condition's source text, which `expression` positions refer to.
    """

    expression: ast.expr
    message: tuple[ast.expr, ...]
    source_text: str

    def to_assert(self) -> ast.Assert:
        """Build the equivalent `assert` statement."""
        match self.message:
            case ():
                msg = None
            case (single,):
                msg = single
            case parts:
                msg = ast.Tuple(elts=list(parts), ctx=ast.Load())
        node = ast.Assert(test=self.expression, msg=msg)
        return ast.fix_missing_locations(ast.copy_location(node, self.expression))


def parse_assertion(text: str, filename: str = "<assertion>") -> AssertionArgs:
    """Parse assertion text into its condition and message parts.

    Raises:
        AssertionSyntaxError: empty text, a cut-short condition, or a message
            not separated from the condition by a comma.
        SyntaxError: any other syntax error in the condition or message.
    """
    source = text.strip()
    if not source:
        raise AssertionSyntaxError(MISSING_CONDITION, (filename, 1, 1, text))

    try:
        tokens = _top_level_tokens(source)
    except tokenize.TokenError:
        # unclosed bracket
        raise AssertionSyntaxError(INCOMPLETE_EXPRESSION, _location(filename, source, len(source))) from None

    comma = next((token for token in tokens if token.string == "," and token.type == tokenize.OP), None)
    condition = source[: comma.start].rstrip() if comma is not None else source
    rest = source[comma.end :].strip() if comma is not None else ""

    if not condition:
        raise AssertionSyntaxError(MISSING_CONDITION, _location(filename, source, 0))

    try:
        expression = ast.parse(condition, filename=filename, mode="eval").body
    except SyntaxError as exc:
        diagnosis = _diagnose(condition, [token for token in tokens if token.end <= len(condition)], filename)
        if diagnosis is None:
            raise
        raise diagnosis from exc

    message: tuple[ast.expr, ...] = ()
    if rest:
        call = ast.parse(f"_({rest})", filename=filename, mode="eval").body
        message = (*call.args, *(keyword.value for keyword in call.keywords))
    return AssertionArgs(expression=expression, message=message, source_text=condition)


def assertion_module(args: AssertionArgs) -> ast.Module:
    """Rewrite parsed assertion text into a module holding the generated statements."""
    module = ast.Module(body=[args.to_assert()], type_ignores=[])
    transformer = AssertRewriteTransformer(args.source_text, filename="<assertion>")
    return ast.fix_missing_locations(transformer.visit(module))


def evaluate(text: str, namespace: dict[str, Any] | None = None) -> None:
    """Evaluate assertion text against `namespace` with full diagnostics.

    The namespace is not modified; names are resolved in a copy.
    """
    module = assertion_module(parse_assertion(text))
    scope = {**(namespace or {}), **build_injected_globals()}
    exec(compile(module, filename="<assertion>", mode="exec"), scope)


@dataclass(frozen=True, slots=True)
class _Token:
    type: int
    string: str
    start: int
    end: int


def _top_level_tokens(source: str) -> list[_Token]:
    """Tokens outside any bracket, with absolute offsets; closing brackets end a unit."""
    line_starts = [0]
    for line in source.splitlines(keepends=True):
        line_starts.append(line_starts[-1] + len(line))

    depth = 0
    result = []
    for token in tokenize.generate_tokens(io.StringIO(source).readline):
        if token.type in (tokenize.NEWLINE, tokenize.NL, tokenize.ENDMARKER, tokenize.COMMENT):
            continue
        if token.type == tokenize.OP and token.string in _OPENING:
            depth += 1
        elif token.type == tokenize.OP and token.string in _CLOSING:
            depth -= 1
        if depth == 0:
            start = line_starts[token.start[0] - 1] + token.start[1]
            end = line_starts[token.end[0] - 1] + token.end[1]
            result.append(_Token(token.type, token.string, start, end))
    return result


def _parses(source: str) -> bool:
    try:
        ast.parse(source, mode="eval")
    except SyntaxError:
        return False
    return True


def _diagnose(condition: str, tokens: list[_Token], filename: str) -> AssertionSyntaxError | None:
    # A complete condition directly followed by another expression: the comma is missing.
    for token in reversed(tokens[:-1]):
        head = condition[: token.end]
        tail = condition[token.end :].strip()
        if _parses(head) and _parses(tail):
            return AssertionSyntaxError(MISSING_COMMA, _location(filename, condition, token.end))

    # One more operand would complete it: the condition is cut short.
    if _parses(f"{condition} _"):
        return AssertionSyntaxError(INCOMPLETE_EXPRESSION, _location(filename, condition, len(condition)))
    return None


def _location(filename: str, source: str, offset: int) -> tuple[str, int, int, str]:
    """`SyntaxError` details for an absolute offset into `source`."""
    before = source[:offset]
    lineno = before.count("\n") + 1
    line_start = before.rfind("\n") + 1
    line_end = source.find("\n", line_start)
    line = source[line_start:] if line_end == -1 else source[line_start:line_end]
    return (filename, lineno, offset - line_start + 1, line)
