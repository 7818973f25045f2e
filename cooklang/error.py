"""Diagnostics, diagnostic reports and the results of parsing passes."""

from __future__ import annotations

import enum
import logging
import sys
from bisect import bisect_right
from dataclasses import dataclass, field
from itertools import cycle
from typing import IO, Any, Callable, Generic, Iterable, Iterator, TypeVar

from wcwidth import wcswidth

_log = logging.getLogger(__name__)

T = TypeVar("T")
O = TypeVar("O")

#: A label is a pair of a code location and an optional hint at that location.
Label = tuple[Any, "str | None"]


class Severity(enum.Enum):
    """Diagnostic severity."""

    ERROR = "error"
    WARNING = "warning"


class Stage(enum.Enum):
    """Parsing stage where a diagnostic originated."""

    PARSE = "parse"
    ANALYSIS = "analysis"


class SourceDiag:
    """A diagnostic of source code.

    Two diagnostics are equal when their severity and message are equal.
    """

    def __init__(
        self,
        severity: Severity,
        stage: Stage,
        message: str,
        labels: Iterable[Label] = (),
        hints: Iterable[str] = (),
        source: BaseException | None = None,
    ) -> None:
        self.severity = severity
        self.stage = stage
        self.message = str(message)
        self.labels: list[Label] = list(labels)
        self.hints: list[str] = list(hints)
        self.source = source

    @classmethod
    def error(cls, message: str, label: Label, stage: Stage) -> SourceDiag:
        """Create an error with a main label."""
        return cls(Severity.ERROR, stage, message, [label])

    @classmethod
    def warning(cls, message: str, label: Label, stage: Stage) -> SourceDiag:
        """Create a warning with a main label."""
        return cls(Severity.WARNING, stage, message, [label])

    @classmethod
    def unlabeled(cls, message: str, severity: Severity, stage: Stage) -> SourceDiag:
        """Create a diagnostic without a location."""
        return cls(severity, stage, message)

    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def is_warning(self) -> bool:
        return self.severity is Severity.WARNING

    def add_label(self, label: Label) -> SourceDiag:
        """Append a label and return the diagnostic."""
        span, text = label
        self.labels.append((span, None if text is None else str(text)))
        return self

    def add_hint(self, hint: str) -> SourceDiag:
        """Append a hint and return the diagnostic."""
        self.hints.append(str(hint))
        return self

    def set_source(self, source: BaseException) -> SourceDiag:
        """Set the lower level error that produced this diagnostic."""
        self.source = source
        return self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SourceDiag):
            return NotImplemented
        return self.severity == other.severity and self.message == other.message

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"SourceDiag(severity={self.severity}, stage={self.stage}, "
            f"message={self.message!r}, labels={self.labels!r}, hints={self.hints!r})"
        )


class SourceReport:
    """Container of errors and warnings with report formatting.

    ``severity`` is ``None`` when the report may hold any severity, or the
    severity every diagnostic in it has.
    """

    def __init__(
        self,
        diagnostics: Iterable[SourceDiag] = (),
        severity: Severity | None = None,
    ) -> None:
        self._buf: list[SourceDiag] = list(diagnostics)
        self._severity: Severity | None = None
        self.set_severity(severity)

    @property
    def severity(self) -> Severity | None:
        return self._severity

    def push(self, diag: SourceDiag) -> None:
        if self._severity is not None and diag.severity is not self._severity:
            raise ValueError(
                f"cannot add a {diag.severity.value} to a report of {self._severity.value}s"
            )
        self._buf.append(diag)

    def error(self, diag: SourceDiag) -> None:
        if not diag.is_error():
            raise ValueError("diagnostic is not an error")
        self.push(diag)

    def warn(self, diag: SourceDiag) -> None:
        if not diag.is_warning():
            raise ValueError("diagnostic is not a warning")
        self.push(diag)

    def retain(self, predicate: Callable[[SourceDiag], bool]) -> None:
        """Keep only the diagnostics for which ``predicate`` is true."""
        self._buf = [d for d in self._buf if predicate(d)]

    def set_severity(self, severity: Severity | None) -> None:
        if severity is not None and any(d.severity is not severity for d in self._buf):
            raise ValueError(f"report holds diagnostics that are not {severity.value}s")
        self._severity = severity

    def __iter__(self) -> Iterator[SourceDiag]:
        return iter(self._buf)

    def __len__(self) -> int:
        return len(self._buf)

    def errors(self) -> Iterator[SourceDiag]:
        return (d for d in self._buf if d.is_error())

    def warnings(self) -> Iterator[SourceDiag]:
        return (d for d in self._buf if d.is_warning())

    def has_errors(self) -> bool:
        if self._severity is Severity.WARNING:
            return False
        if self._severity is Severity.ERROR:
            return bool(self._buf)
        return next(self.errors(), None) is not None

    def has_warnings(self) -> bool:
        if self._severity is Severity.ERROR:
            return False
        if self._severity is Severity.WARNING:
            return bool(self._buf)
        return next(self.warnings(), None) is not None

    def is_empty(self) -> bool:
        return not self._buf

    def unzip(self) -> tuple[SourceReport, SourceReport]:
        """Split into a report of errors and a report of warnings."""
        return (
            SourceReport(self.errors(), Severity.ERROR),
            SourceReport(self.warnings(), Severity.WARNING),
        )

    def remove_warnings(self) -> None:
        self.retain(SourceDiag.is_error)

    def write(self, file_name: str, source_code: str, color: bool, stream: IO[str]) -> None:
        """Write a formatted report, warnings first and then errors."""
        index = _LineIndex(source_code)
        for diag in self.warnings():
            _write_report(stream, diag, index, file_name, color)
        for diag in self.errors():
            _write_report(stream, diag, index, file_name, color)

    def print(self, file_name: str, source_code: str, color: bool) -> None:
        """Write a formatted report to standard output."""
        self.write(file_name, source_code, color, sys.stdout)

    def eprint(self, file_name: str, source_code: str, color: bool) -> None:
        """Write a formatted report to standard error."""
        self.write(file_name, source_code, color, sys.stderr)

    def __str__(self) -> str:
        return "".join(str(d) for d in self._buf)

    def __repr__(self) -> str:
        return f"SourceReport({self._buf!r}, severity={self._severity})"


class SourceReportError(Exception):
    """Raised when a pass result is not valid; carries the report."""

    def __init__(self, report: SourceReport) -> None:
        super().__init__(str(report))
        self.report = report


@dataclass
class PassResult(Generic[T]):
    """Output of a parsing pass together with its diagnostics."""

    output: T | None
    report: SourceReport = field(default_factory=SourceReport)

    def has_output(self) -> bool:
        return self.output is not None

    def is_valid(self) -> bool:
        """True when there is output and the report has no errors."""
        return self.has_output() and not self.report.has_errors()

    def valid_output(self) -> T | None:
        return self.output if self.is_valid() else None

    def into_result(self) -> tuple[T, SourceReport]:
        """Return the output and a warnings-only report, or raise the errors."""
        if not self.is_valid():
            raise SourceReportError(self.report)
        self.report.set_severity(Severity.WARNING)
        return self.output, self.report  # type: ignore[return-value]

    def unwrap_output(self) -> T:
        if self.output is None:
            raise ValueError("the pass produced no output")
        return self.output

    def map(self, func: Callable[[T], O]) -> PassResult[O]:
        output = None if self.output is None else func(self.output)
        return PassResult(output, self.report)


def write_rich_error(
    error: Any, file_name: str, source_code: str, color: bool, stream: IO[str]
) -> None:
    """Write a report for one error.

    ``error`` may be a :class:`SourceDiag` or any object with optional
    ``labels``, ``hints`` and ``severity`` attributes.
    """
    _write_report(stream, error, _LineIndex(source_code), file_name, color)


_LABEL_COLORS = (95, 92, 96, 94, 92, 93, 91)
_RED = 31
_YELLOW = 33
_GREEN = 32
_DIM = 2


def _paint(text: str, code: int, color: bool) -> str:
    return f"\x1b[{code}m{text}\x1b[0m" if color else text


def _expand_tabs(text: str) -> str:
    return text.replace("\t", "    ")


def _width(text: str) -> int:
    text = _expand_tabs(text)
    width = wcswidth(text)
    return width if width >= 0 else len(text)


def _span_bounds(span: Any) -> tuple[int, int]:
    if isinstance(span, int):
        return span, span
    if isinstance(span, range):
        return span.start, span.stop
    if isinstance(span, (tuple, list)):
        start, end = span
        return int(start), int(end)
    start = span.start
    end = span.end
    if callable(start):
        start = start()
    if callable(end):
        end = end()
    return int(start), int(end)


class _LineIndex:
    def __init__(self, source: str) -> None:
        self._length = len(source)
        self._lines: list[tuple[int, str]] = []
        offset = 0
        for line in source.splitlines(keepends=True):
            self._lines.append((offset, line.rstrip("\r\n")))
            offset += len(line)
        if not self._lines or source.endswith(("\n", "\r")):
            self._lines.append((offset, ""))
        self._starts = [start for start, _ in self._lines]

    def clamp(self, pos: int) -> int:
        return max(0, min(pos, self._length))

    def line_of(self, pos: int) -> int:
        return bisect_right(self._starts, self.clamp(pos)) - 1

    def line(self, number: int) -> tuple[int, str]:
        return self._lines[number]


def _write_report(stream: IO[str], err: Any, index: _LineIndex, file_name: str, color: bool) -> None:
    severity = getattr(err, "severity", Severity.ERROR)
    if severity is Severity.ERROR:
        sev_color, title = _RED, "Error:"
    else:
        sev_color, title = _YELLOW, "Warning:"
    stream.write(f"{_paint(title, sev_color, color)} {err}\n")

    if isinstance(err, SourceDiag):
        source = err.source
    else:
        source = getattr(err, "__cause__", None)
    if source is not None:
        stream.write(f"  {_paint('╰▶ ', sev_color, color)} {source}\n")

    labels = sorted(getattr(err, "labels", ()), key=lambda lbl: _span_bounds(lbl[0]))
    if labels:
        _write_block(stream, labels, index, file_name, color)

    hints = list(getattr(err, "hints", ()))
    if hints:
        stream.write(f"{_paint('Help:', _GREEN, color)} {hints[0]}\n")
    if len(hints) > 1:
        stream.write(f"{_paint('Note:', _GREEN, color)} {hints[1]}\n")
    if len(hints) > 2:
        _log.debug("only 2 hints are reported, %d ignored", len(hints) - 2)


def _write_block(
    stream: IO[str], labels: list[Label], index: _LineIndex, file_name: str, color: bool
) -> None:
    marks: list[tuple[int, int, int, str | None, int]] = []
    colors = cycle(_LABEL_COLORS)
    for span, text in labels:
        code = next(colors)
        start, end = _span_bounds(span)
        start = index.clamp(start)
        end = max(start, index.clamp(end))
        first = index.line_of(start)
        last = index.line_of(end - 1) if end > start else first
        for number in range(first, last + 1):
            line_start, line_text = index.line(number)
            a = start - line_start if number == first else 0
            b = end - line_start if number == last else len(line_text)
            b = max(0, min(b, len(line_text)))
            a = max(0, min(a, b))
            marks.append(
                (
                    number,
                    _width(line_text[:a]),
                    max(_width(line_text[a:b]), 1),
                    text if number == last else None,
                    code,
                )
            )

    numbers = sorted({mark[0] for mark in marks})
    gutter = len(str(numbers[-1] + 1))
    stream.write(
        " " * (gutter + 1)
        + "╭─"
        + _paint("[", _DIM, color)
        + file_name
        + _paint("]", _DIM, color)
        + "\n"
    )
    for number in numbers:
        code_line = _expand_tabs(index.line(number)[1])
        stream.write(f"{number + 1:>{gutter}} │ {code_line}\n")
        for mark_line, offset, width, text, code in marks:
            if mark_line != number:
                continue
            underline = "^" * width
            if text:
                underline += f" {text}"
            stream.write(" " * gutter + " ┆ " + " " * offset + _paint(underline, code, color) + "\n")
    stream.write("─" * (gutter + 1) + "╯\n")