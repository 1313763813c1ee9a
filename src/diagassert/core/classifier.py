"""Shape classification of asserted expressions.

`classify` looks at the outermost syntactic form of an `assert` test once and
decides which sub-expressions are worth showing when the assertion fails.
Operands are opaque: ``f(a + b) == g(c)`` captures ``f(a + b)`` and ``g(c)``
as a whole. The only recursion is the flattening of same-operator
``and``/``or`` chains.
"""

from __future__ import annotations

import ast
from collections import Counter
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import Enum


class Variant(Enum):
    """Syntactic category of an asserted expression."""

    COMPARISON = "comparison"
    LOGICAL_COMBINATION = "logical_combination"
    CALL = "call"
    METHOD_CALL = "method_call"
    INDEX = "index"
    FALLBACK = "fallback"


COMPARISON_OPERATORS: dict[type[ast.cmpop], str] = {
    ast.Eq: "==",
    ast.NotEq: "!=",
    ast.Lt: "<",
    ast.Gt: ">",
    ast.LtE: "<=",
    ast.GtE: ">=",
    ast.Is: "is",
    ast.IsNot: "is not",
    ast.In: "in",
    ast.NotIn: "not in",
}

LOGICAL_OPERATORS: dict[type[ast.boolop], str] = {
    ast.And: "and",
    ast.Or: "or",
}


@dataclass(frozen=True, slots=True)
class Slot:
    """One named sub-expression captured for the failure report.

    Attributes:
    ----------
    label : str
        Short semantic tag shown in the report.
    source_text : str
        Exact source of the sub-expression.
    expression : ast.expr
        The sub-tree to evaluate.
    shown : bool
        Whether the value appears in the report (callees are evaluated but hidden).
    """

    label: str
    source_text: str
    expression: ast.expr
    shown: bool = True


@dataclass(frozen=True, slots=True)
class DiagnosticPlan:
    """Classifier decision for one assertion: variant plus ordered slots."""

    variant: Variant
    slots: tuple[Slot, ...]
    operator_text: str | None = None

    @property
    def shown_slots(self) -> tuple[Slot, ...]:
        return tuple(slot for slot in self.slots if slot.shown)

    def slot(self, label: str) -> Slot:
        for slot in self.slots:
            if slot.label == label:
                return slot
        raise KeyError(label)


def source_text(node: ast.AST, source: str | None) -> str:
    """Source text of `node`, collapsed to a single line."""
    text = ast.get_source_segment(source, node) if source is not None else None
    if text is None:
        text = ast.unparse(node)
    if "\n" in text:
        text = " ".join(part.strip() for part in text.splitlines() if part.strip())
    return text


def classify(node: ast.expr, source: str | None = None) -> DiagnosticPlan:
    """Classify an asserted expression into a diagnostic plan.

    Never fails: shapes without a dedicated variant become `Variant.FALLBACK`.

    Args:
        node: The asserted expression.
        source: Source the node was parsed from, used for exact source text.
    """
    match node:
        case ast.Compare(left=left, ops=[op], comparators=[right]) if type(op) in COMPARISON_OPERATORS:
            return DiagnosticPlan(
                variant=Variant.COMPARISON,
                slots=(
                    Slot("left", source_text(left, source), left),
                    Slot("right", source_text(right, source), right),
                ),
                operator_text=COMPARISON_OPERATORS[type(op)],
            )

        case ast.BoolOp(op=op):
            operands = _flatten_logical(node, type(op))
            return DiagnosticPlan(
                variant=Variant.LOGICAL_COMBINATION,
                slots=_deduplicated(
                    [Slot(source_text(operand, source), source_text(operand, source), operand) for operand in operands]
                ),
                operator_text=LOGICAL_OPERATORS[type(op)],
            )

        case ast.Call(func=ast.Attribute(value=receiver, attr=method, ctx=ast.Load()), args=args, keywords=keywords):
            return DiagnosticPlan(
                variant=Variant.METHOD_CALL,
                slots=_deduplicated(
                    [
                        Slot("self", source_text(receiver, source), receiver),
                        *_argument_slots(args, keywords, source),
                    ]
                ),
                operator_text=method,
            )

        case ast.Call(func=func, args=args, keywords=keywords):
            callee = source_text(func, source)
            return DiagnosticPlan(
                variant=Variant.CALL,
                slots=_deduplicated(
                    [
                        Slot(f"callee `{callee}`", callee, func, shown=False),
                        *_argument_slots(args, keywords, source),
                    ]
                ),
                operator_text=callee,
            )

        case ast.Subscript(value=base, slice=index, ctx=ast.Load()) if not _is_slicing(index):
            return DiagnosticPlan(
                variant=Variant.INDEX,
                slots=(
                    Slot("base", source_text(base, source), base),
                    Slot("index", source_text(index, source), index),
                ),
            )

        case _:
            text = source_text(node, source)
            return DiagnosticPlan(variant=Variant.FALLBACK, slots=(Slot(text, text, node),))


def _flatten_logical(node: ast.expr, op: type[ast.boolop]) -> Iterator[ast.expr]:
    # Only runs of the same operator are merged; `a and (b or c)` keeps `b or c` whole.
    if isinstance(node, ast.BoolOp) and isinstance(node.op, op):
        for value in node.values:
            yield from _flatten_logical(value, op)
    else:
        yield node


def _unique_labels(labels: Sequence[str]) -> list[str]:
    # suffixes skip every label already present; `x [2]` can be real source text
    taken = set(labels)
    seen: Counter[str] = Counter()
    unique = []
    for label in labels:
        seen[label] += 1
        if seen[label] == 1:
            unique.append(label)
            continue
        candidate = f"{label} [{seen[label]}]"
        while candidate in taken:
            seen[label] += 1
            candidate = f"{label} [{seen[label]}]"
        taken.add(candidate)
        unique.append(candidate)
    return unique


def _deduplicated(slots: list[Slot]) -> tuple[Slot, ...]:
    labels = _unique_labels([slot.label for slot in slots])
    return tuple(
        slot if slot.label == label else Slot(label, slot.source_text, slot.expression, slot.shown)
        for slot, label in zip(slots, labels)
    )


def _argument_slots(args: list[ast.expr], keywords: list[ast.keyword], source: str | None) -> list[Slot]:
    positional = [arg for arg in args if not isinstance(arg, ast.Starred)]
    width = len(str(len(positional) - 1)) if positional else 1

    slots = []
    index = 0
    for arg in args:
        if isinstance(arg, ast.Starred):
            text = source_text(arg.value, source)
            slots.append(Slot(f"*{text}", text, arg.value))
        else:
            slots.append(Slot(f"arg {index:>{width}}", source_text(arg, source), arg))
            index += 1

    for keyword in keywords:
        text = source_text(keyword.value, source)
        label = keyword.arg if keyword.arg is not None else f"**{text}"
        slots.append(Slot(label, text, keyword.value))
    return slots


def _is_slicing(index: ast.expr) -> bool:
    if isinstance(index, ast.Slice):
        return True
    return isinstance(index, ast.Tuple) and any(isinstance(elt, ast.Slice) for elt in index.elts)
