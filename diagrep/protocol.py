"""Core diagnostic protocol: severities, spans, source code and diagnostics."""

from __future__ import annotations

import enum
import functools
import inspect
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Optional


class MietteError(Exception):
    """Base error raised by the diagnostic machinery."""


class SpanOutOfBounds(MietteError):
    """Raised when a span lies outside the source it is read from."""

    def __init__(self, message: str = "The given offset is outside the bounds of its Source") -> None:
        super().__init__(message)


_SEVERITY_RANK = {"Advice": 0, "Warning": 1, "Error": 2}


@functools.total_ordering
class Severity(enum.Enum):
    """How serious a diagnostic is; ``None`` on a diagnostic means ``ERROR``."""

    ADVICE = "Advice"
    WARNING = "Warning"
    ERROR = "Error"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return _SEVERITY_RANK[self.value] < _SEVERITY_RANK[other.value]


def _check_count(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{what} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{what} must not be negative, got {value}")
    return value


@dataclass(frozen=True)
class SourceOffset:
    """A byte offset from the beginning of some source code."""

    offset: int

    def __post_init__(self) -> None:
        _check_count(self.offset, "offset")

    @classmethod
    def from_location(cls, source: str, loc_line: int, loc_col: int) -> "SourceOffset":
        """Convert a 1-based line/column pair into a byte offset.

        Out-of-range locations give the offset of the end of the source.
        """
        line = 0
        col = 0
        offset = 0
        for char in source:
            if line + 1 >= loc_line and col + 1 >= loc_col:
                break
            if char == "\n":
                col = 0
                line += 1
            else:
                col += 1
            offset += len(char.encode("utf-8"))
        return cls(offset)

    @classmethod
    def from_current_location(cls) -> tuple[str, "SourceOffset"]:
        """Return the caller's file name and the offset of the call in that file."""
        frame = inspect.currentframe()
        caller = frame.f_back if frame is not None else None
        if caller is None:
            raise MietteError("no calling frame is available")
        try:
            info = inspect.getframeinfo(caller, context=0)
        finally:
            del frame, caller
        positions = getattr(info, "positions", None)
        column = 1
        if positions is not None and positions.col_offset is not None:
            column = positions.col_offset + 1
        try:
            with open(info.filename, encoding="utf-8") as handle:
                text = handle.read()
        except OSError as exc:
            raise MietteError(str(exc)) from exc
        return info.filename, cls.from_location(text, info.lineno, column)

    def to_json(self) -> int:
        """Serialise as a bare number."""
        return self.offset

    @classmethod
    def from_json(cls, value: Any) -> "SourceOffset":
        """Build from a bare number."""
        try:
            return cls(value)
        except TypeError as exc:
            raise ValueError(str(exc)) from exc


@dataclass(frozen=True)
class SourceSpan:
    """A byte range (offset and length) within some source code."""

    offset: int
    length: int = 0

    def __post_init__(self) -> None:
        _check_count(self.offset, "offset")
        _check_count(self.length, "length")

    @classmethod
    def coerce(cls, value: Any) -> "SourceSpan":
        """Turn an int, range, SourceOffset or (start, length) pair into a span."""
        if isinstance(value, SourceSpan):
            return value
        if isinstance(value, SourceOffset):
            return cls(value.offset, 0)
        if isinstance(value, range):
            if value.step != 1:
                raise ValueError("span ranges must have a step of 1")
            return cls(value.start, len(value))
        if isinstance(value, tuple) and len(value) == 2:
            start, length = value
            if isinstance(start, SourceOffset):
                start = start.offset
            if isinstance(length, SourceOffset):
                length = length.offset
            return cls(start, length)
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value, 0)
        raise TypeError(f"cannot make a SourceSpan from {value!r}")

    def is_empty(self) -> bool:
        """True if the span has zero length."""
        return self.length == 0

    def to_dict(self) -> dict[str, int]:
        return {"offset": self.offset, "length": self.length}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SourceSpan":
        try:
            return cls(data["offset"], data["length"])
        except KeyError as exc:
            raise ValueError(f"missing field {exc.args[0]!r} in span") from exc
        except TypeError as exc:
            raise ValueError(str(exc)) from exc


@dataclass(frozen=True)
class LabeledSpan:
    """A span with an optional label, possibly marked as the primary one."""

    label: Optional[str]
    span: SourceSpan
    primary: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "span", SourceSpan.coerce(self.span))

    @classmethod
    def with_span(cls, label: Optional[str], span: Any) -> "LabeledSpan":
        return cls(label, span)

    @classmethod
    def primary_with_span(cls, label: Optional[str], span: Any) -> "LabeledSpan":
        return cls(label, span, primary=True)

    @classmethod
    def at(cls, span: Any, label: str) -> "LabeledSpan":
        """A labelled span over ``span``."""
        return cls(str(label), span)

    @classmethod
    def at_offset(cls, offset: int, label: str) -> "LabeledSpan":
        """A labelled, zero-length span pointing at ``offset``."""
        return cls(str(label), (offset, 0))

    @classmethod
    def underline(cls, span: Any) -> "LabeledSpan":
        """An unlabelled span that just underlines ``span``."""
        return cls(None, span)

    @property
    def offset(self) -> int:
        return self.span.offset

    @property
    def length(self) -> int:
        return self.span.length

    def is_empty(self) -> bool:
        return self.span.is_empty()

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.label is not None:
            result["label"] = self.label
        result["span"] = self.span.to_dict()
        result["primary"] = self.primary
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LabeledSpan":
        if "span" not in data:
            raise ValueError("missing field 'span' in labeled span")
        if "primary" not in data:
            raise ValueError("missing field 'primary' in labeled span")
        primary = data["primary"]
        if not isinstance(primary, bool):
            raise ValueError("field 'primary' must be a boolean")
        label = data.get("label")
        if label is not None and not isinstance(label, str):
            raise ValueError("field 'label' must be a string or null")
        return cls(label, SourceSpan.from_dict(data["span"]), primary)


@dataclass(frozen=True)
class SpanContents:
    """Bytes read from a source for a span, with their position in the source."""

    data: bytes
    span: SourceSpan
    line: int
    column: int
    line_count: int
    name: Optional[str] = None


class SourceCode(ABC):
    """Something spans can be read from."""

    @abstractmethod
    def read_span(
        self, span: SourceSpan, context_lines_before: int, context_lines_after: int
    ) -> SpanContents:
        """Read ``span`` plus surrounding context lines."""


class Diagnostic(Exception):
    """An exception carrying rich metadata for reports.

    Subclasses set any of the attributes below, as plain values or properties.
    The exception's ``__cause__`` serves as its ordinary error source.
    """

    code: Optional[str] = None
    severity: Optional[Severity] = None
    help: Optional[str] = None
    url: Optional[str] = None
    source_code: Any = None
    labels: Optional[list[LabeledSpan]] = None
    related: Optional[list["Diagnostic"]] = None
    diagnostic_source: Optional["Diagnostic"] = None


class _StringDiagnostic(Diagnostic):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self._message = message

    def __str__(self) -> str:
        return self._message

    def __repr__(self) -> str:
        return repr(self._message)


class _ErrorDiagnostic(Diagnostic):
    def __init__(self, error: BaseException) -> None:
        super().__init__(str(error))
        self._error = error
        self.__cause__ = error.__cause__

    def __str__(self) -> str:
        return str(self._error)

    def __repr__(self) -> str:
        return repr(self._error)


def as_diagnostic(value: Any) -> Diagnostic:
    """Return ``value`` as a Diagnostic, wrapping plain strings and exceptions."""
    if isinstance(value, Diagnostic):
        return value
    if isinstance(value, str):
        return _StringDiagnostic(value)
    if isinstance(value, BaseException):
        return _ErrorDiagnostic(value)
    raise TypeError(f"cannot make a Diagnostic from {type(value).__name__}")


def _next_cause(error: BaseException) -> Optional[BaseException]:
    if isinstance(error, Diagnostic) and error.diagnostic_source is not None:
        return error.diagnostic_source
    return error.__cause__


def diagnostic_causes(diagnostic: BaseException) -> Iterator[BaseException]:
    """Yield the chain of causes below ``diagnostic``, nearest first."""
    seen: set[int] = set()
    current = _next_cause(diagnostic)
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = _next_cause(current)