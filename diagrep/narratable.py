"""A plain-text handler for screen readers and non-graphical output."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Optional, Union

from wcwidth import wcwidth

from diagrep.protocol import (
    Diagnostic,
    LabeledSpan,
    Severity,
    SourceSpan,
    SpanContents,
    as_diagnostic,
    diagnostic_causes,
)
from diagrep.source_impls import read_span

_SEVERITY_NAMES = {
    None: "error",
    Severity.ERROR: "error",
    Severity.WARNING: "warning",
    Severity.ADVICE: "advice",
}

_RELATED_PREFIXES = {
    None: "Error: ",
    Severity.ERROR: "Error: ",
    Severity.WARNING: "Warning: ",
    Severity.ADVICE: "Advice: ",
}


def _char_width(char: str) -> int:
    return max(wcwidth(char), 0)


def _utf8_len(char: str) -> int:
    return len(char.encode("utf-8"))


def _column_at(text: str, offset: int, start: bool) -> int:
    """Display column at byte ``offset`` of ``text``, snapping inside characters.

    Start columns are 1-based; end columns name the last covered column.
    """
    column = 0
    index = 0
    for char in text:
        if offset <= index:
            break
        column += _char_width(char)
        index += _utf8_len(char)
    return column + 1 if start else column


@dataclass(frozen=True)
class _Contained:
    col_start: int
    col_end: int


@dataclass(frozen=True)
class _Starts:
    col_start: int


@dataclass(frozen=True)
class _Ends:
    col_end: int


_Attach = Union[_Contained, _Starts, _Ends]


@dataclass(frozen=True)
class _Line:
    line_number: int
    offset: int
    text: str
    at_end_of_file: bool

    def span_attach(self, span: SourceSpan) -> Optional[_Attach]:
        span_end = span.offset + span.length
        line_end = self.offset + len(self.text.encode("utf-8"))
        start_after = span.offset >= self.offset
        end_before = self.at_end_of_file or span_end <= line_end

        if start_after and end_before:
            col_start = _column_at(self.text, span.offset - self.offset, True)
            if span.is_empty():
                col_end = col_start
            else:
                col_end = _column_at(self.text, span_end - self.offset, False)
            return _Contained(col_start, col_end)
        if start_after and span.offset <= line_end:
            return _Starts(_column_at(self.text, span.offset - self.offset, True))
        if end_before and span_end >= self.offset:
            return _Ends(_column_at(self.text, span_end - self.offset, False))
        return None


def _describe(attach: _Attach, line_number: int) -> str:
    if isinstance(attach, _Contained):
        if attach.col_start == attach.col_end:
            return f"    label at line {line_number}, column {attach.col_start}"
        return (
            f"    label at line {line_number}, "
            f"columns {attach.col_start} to {attach.col_end}"
        )
    if isinstance(attach, _Starts):
        return f"    label starting at line {line_number}, column {attach.col_start}"
    return f"    label ending at line {line_number}, column {attach.col_end}"


@dataclass(frozen=True)
class NarratableReportHandler:
    """Renders diagnostics as plain narrated text, without graphics."""

    context_lines: int = 1
    cause_chain: bool = True
    footer: Optional[str] = None

    def with_cause_chain(self) -> "NarratableReportHandler":
        """Include the cause chain of the top-level diagnostic."""
        return dataclasses.replace(self, cause_chain=True)

    def without_cause_chain(self) -> "NarratableReportHandler":
        """Leave out the cause chain of the top-level diagnostic."""
        return dataclasses.replace(self, cause_chain=False)

    def with_footer(self, footer: str) -> "NarratableReportHandler":
        """Set a footer written at the end of the report."""
        return dataclasses.replace(self, footer=str(footer))

    def with_context_lines(self, lines: int) -> "NarratableReportHandler":
        """Set how many lines of context surround each snippet."""
        if isinstance(lines, bool) or not isinstance(lines, int) or lines < 0:
            raise ValueError(f"context lines must be a non-negative int, got {lines!r}")
        return dataclasses.replace(self, context_lines=lines)

    def render_report(self, diagnostic: Any) -> str:
        """Return the narrated report for ``diagnostic``."""
        diagnostic = as_diagnostic(diagnostic)
        out: list[str] = []
        self._render_header(out, diagnostic)
        if self.cause_chain:
            self._render_causes(out, diagnostic)
        src = diagnostic.source_code
        self._render_snippets(out, diagnostic, src)
        self._render_footer(out, diagnostic)
        self._render_related(out, diagnostic, src)
        if self.footer is not None:
            out.append(f"{self.footer}\n")
        return "".join(out)

    @staticmethod
    def _render_header(out: list[str], diagnostic: Diagnostic) -> None:
        out.append(f"{diagnostic}\n")
        out.append(f"    Diagnostic severity: {_SEVERITY_NAMES[diagnostic.severity]}\n")

    @staticmethod
    def _render_causes(out: list[str], diagnostic: Diagnostic) -> None:
        for cause in diagnostic_causes(diagnostic):
            out.append(f"    Caused by: {cause}\n")

    @staticmethod
    def _render_footer(out: list[str], diagnostic: Diagnostic) -> None:
        if diagnostic.help is not None:
            out.append(f"diagnostic help: {diagnostic.help}\n")
        if diagnostic.code is not None:
            out.append(f"diagnostic code: {diagnostic.code}\n")
        if diagnostic.url is not None:
            out.append(f"For more details, see:\n{diagnostic.url}\n")

    def _render_related(self, out: list[str], diagnostic: Diagnostic, parent_src: Any) -> None:
        if diagnostic.related is None:
            return
        out.append("\n")
        for item in diagnostic.related:
            rel = as_diagnostic(item)
            out.append(_RELATED_PREFIXES[rel.severity])
            self._render_header(out, rel)
            out.append("\n")
            self._render_causes(out, rel)
            src = rel.source_code if rel.source_code is not None else parent_src
            self._render_snippets(out, rel, src)
            self._render_footer(out, rel)
            self._render_related(out, rel, src)

    def _render_snippets(self, out: list[str], diagnostic: Diagnostic, source: Any) -> None:
        if source is None or diagnostic.labels is None:
            return
        labels = sorted(diagnostic.labels, key=lambda label: label.offset)
        if not labels:
            return
        contents = [
            read_span(source, label.span, self.context_lines, self.context_lines)
            for label in labels
        ]
        contexts: list[tuple[LabeledSpan, SpanContents]] = []
        for right, right_conts in zip(labels, contents):
            if not contexts:
                contexts.append((right, right_conts))
                continue
            left, left_conts = contexts[-1]
            if left_conts.line + left_conts.line_count < right_conts.line:
                contexts.append((right, right_conts))
                continue
            left_end = left.offset + left.length
            right_end = right.offset + right.length
            length = right_end - left.offset if right_end >= left_end else left.length
            merged = LabeledSpan(left.label, (left.offset, length))
            try:
                read_span(source, merged.span, self.context_lines, self.context_lines)
            except (ValueError, LookupError, Exception):  # noqa: BLE001
                contexts.append((right, right_conts))
            else:
                contexts[-1] = (merged, left_conts)
        for context, _ in contexts:
            self._render_context(out, source, context, labels)

    def _render_context(
        self,
        out: list[str],
        source: Any,
        context: LabeledSpan,
        labels: list[LabeledSpan],
    ) -> None:
        contents, lines = self._get_lines(source, context.span)
        header = "Begin snippet"
        if contents.name is not None:
            header += f" for {contents.name}"
        out.append(
            f"{header} starting at line {contents.line + 1}, column {contents.column + 1}\n"
        )
        out.append("\n")
        for line in lines:
            out.append(f"snippet line {line.line_number}: {line.text}\n")
            for label in labels:
                attach = line.span_attach(label.span)
                if attach is None:
                    continue
                text = _describe(attach, line.line_number)
                if label.label is not None:
                    text += f": {label.label}"
                out.append(f"{text}\n")

    def _get_lines(self, source: Any, span: SourceSpan) -> tuple[SpanContents, list[_Line]]:
        contents = read_span(source, span, self.context_lines, self.context_lines)
        text = contents.data.decode("utf-8")
        line = contents.line
        column = contents.column
        offset = contents.span.offset
        line_offset = offset
        line_chars: list[str] = []
        lines: list[_Line] = []
        size = len(text)
        index = 0
        while index < size:
            char = text[index]
            index += 1
            offset += _utf8_len(char)
            at_end_of_file = False
            if char == "\r":
                if index < size and text[index] == "\n":
                    index += 1
                    offset += 1
                    line += 1
                    column = 0
                else:
                    line_chars.append(char)
                    column += 1
                at_end_of_file = index >= size
            elif char == "\n":
                at_end_of_file = index >= size
                line += 1
                column = 0
            else:
                line_chars.append(char)
                column += 1

            finished = index >= size
            if finished and not at_end_of_file:
                line += 1

            if column == 0 or finished:
                lines.append(_Line(line, line_offset, "".join(line_chars), at_end_of_file))
                line_chars.clear()
                line_offset = offset
        return contents, lines