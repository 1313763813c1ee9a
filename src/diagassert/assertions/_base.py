"""Failure report types and assertion errors."""

from pydantic import BaseModel, ConfigDict
from rich.cells import cell_len


class ReportLine(BaseModel):
    """One formatted slot value of a failure report.

    Attributes
    ----------
    label : str
        Semantic tag of the slot (``left``, ``self``, ``arg 0``, source text, ...).
    text : str
        The value, already formatted for display.
    """

    model_config = ConfigDict(frozen=True)

    label: str
    text: str


class FailureReport(BaseModel):
    """Structured diagnostic for a failed assertion.

    Attributes
    ----------
    expression : str
        Source text of the whole asserted expression.
    message : str | None
        Caller-supplied message, if the assertion carried one.
    lines : tuple[ReportLine, ...]
        Captured slot values in evaluation order.
    """

    model_config = ConfigDict(frozen=True)

    expression: str
    message: str | None = None
    lines: tuple[ReportLine, ...] = ()

    @property
    def header(self) -> str:
        header = f"assertion `{self.expression}` failed"
        if self.message is not None:
            header += f": {self.message}"
        return header

    def render(self, indent: int = 1) -> str:
        """Render the report text with labels right-aligned on the colon."""
        if not self.lines:
            return self.header

        width = max(cell_len(line.label) for line in self.lines)
        prefix = " " * indent
        body = [
            f"{prefix}{' ' * (width - cell_len(line.label))}{line.label}: {line.text}"
            for line in self.lines
        ]
        return "\n".join([self.header, *body])


class AssertionFailedError(AssertionError):
    """AssertionError with attached FailureReport."""

    def __init__(self, report: FailureReport, rendered: str | None = None):
        self.report = report
        super().__init__(rendered if rendered is not None else report.render())


class ValueFormattingError(TypeError):
    """A captured value could not be formatted for a failure report."""

    def __init__(self, label: str, source_text: str, value_type: type):
        self.label = label
        self.source_text = source_text
        self.value_type = value_type
        super().__init__(
            f"cannot format value of `{source_text}` ({label}) of type "
            f"{value_type.__qualname__} for the failure report"
        )
