"""Run-time helpers referenced by rewritten `assert` statements.

Rewritten assertions never format anything themselves. They hand captured
values to :func:`snapshot`, which turns them into :class:`ReportLine` objects,
and on a false outcome call :func:`fail`, which builds the
:class:`FailureReport` and passes it to the active failure sink.
"""

from __future__ import annotations

import logging
import string
from collections.abc import Iterable
from typing import Any

from diagassert.assertions._base import FailureReport, ReportLine, ValueFormattingError
from diagassert.config import get_settings
from diagassert.context import get_failure_sink


logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "..."


def format_value(value: Any, *, label: str, source_text: str) -> str:
    """Format one captured value with `repr`, truncated per settings."""
    try:
        text = repr(value)
    except Exception as exc:
        raise ValueFormattingError(label, source_text, type(value)) from exc

    limit = get_settings().max_value_length
    if limit is not None and len(text) > limit:
        text = text[: limit - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER
    return text


def snapshot(entries: Iterable[tuple[str, str, Any]]) -> tuple[ReportLine, ...]:
    """Format ``(label, source_text, value)`` entries into report lines, in order."""
    return tuple(
        ReportLine(label=label, text=format_value(value, label=label, source_text=source_text))
        for label, source_text, value in entries
    )


def positional_fields(template: str) -> int | None:
    """Count the positional arguments `template` consumes.

    Returns None for named fields, for ``{}`` mixed with ``{0}``, and for
    malformed braces.
    """
    auto = 0
    indices: set[int] = set()
    try:
        fields = [field for _, field, _, _ in string.Formatter().parse(template) if field is not None]
    except ValueError:
        return None

    for field in fields:
        head = field.split(".", 1)[0].split("[", 1)[0]
        if head == "":
            auto += 1
        elif head.isdigit():
            indices.add(int(head))
        else:
            return None

    if auto and indices:
        return None
    return auto or (max(indices) + 1 if indices else 0)


def format_message(*parts: Any) -> str | None:
    """Build the user message from an assert's message parts.

    No parts means no message. A single part is rendered with `str`. More
    parts are a format string followed by exactly the positional arguments it
    consumes; when they do not line up, or formatting raises, the parts are
    rendered as the tuple a plain assert would show.
    """
    if not parts:
        return None
    template, *args = parts
    if not args:
        return str(template)

    if isinstance(template, str) and positional_fields(template) == len(args):
        try:
            return template.format(*args)
        except Exception:
            logger.debug("message template %r could not be formatted", template, exc_info=True)
    return str(parts)


def fail(expression: str, lines: tuple[ReportLine, ...], *message: Any) -> None:
    """Report a failed assertion to the current failure sink."""
    report = FailureReport(expression=expression, message=format_message(*message), lines=lines)
    logger.debug("assertion `%s` failed with %d captured value(s)", expression, len(lines))
    get_failure_sink()(report)
