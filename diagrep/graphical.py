"""A graphical report handler drawing snippets, gutters and underlines."""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Optional

from diagrep.graphical_lines import (
    FancySpan,
    LabelRenderMode,
    Line,
    char_widths,
    split_lines,
    wrap_text,
)
from diagrep.protocol import (
    Diagnostic,
    LabeledSpan,
    Severity,
    SourceSpan,
    SpanContents,
    as_diagnostic,
)
from diagrep.source_impls import read_span
from diagrep.theme import GraphicalTheme, Style

_RELATED_PREFIXES = {
    None: "Error: ",
    Severity.ERROR: "Error: ",
    Severity.WARNING: "Warning: ",
    Severity.ADVICE: "Advice: ",
}


class LinkStyle(enum.Enum):
    """How diagnostic URLs are shown."""

    NONE = "none"
    LINK = "link"
    TEXT = "text"


def _non_negative(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{what} must be a non-negative int, got {value!r}")
    return value


def _is_char_boundary(data: bytes, index: int) -> bool:
    if index == 0 or index == len(data):
        return True
    if index > len(data):
        return False
    return (data[index] & 0xC0) != 0x80


def _cause_chain(diagnostic: Diagnostic) -> Iterator[tuple[BaseException, bool]]:
    """Yield each cause and whether it was reached as a diagnostic source."""
    seen: set[int] = set()
    if diagnostic.diagnostic_source is not None:
        current: Optional[BaseException] = diagnostic.diagnostic_source
        is_diag = True
    else:
        current = diagnostic.__cause__
        is_diag = False
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current, is_diag
        if (
            is_diag
            and isinstance(current, Diagnostic)
            and current.diagnostic_source is not None
        ):
            current = current.diagnostic_source
        else:
            current = current.__cause__
            is_diag = False


@dataclass(frozen=True)
class GraphicalReportHandler:
    """Renders diagnostics with drawing characters, colours and snippets."""

    theme: GraphicalTheme = field(default_factory=GraphicalTheme.default)
    links: LinkStyle = LinkStyle.LINK
    termwidth: int = 200
    footer: Optional[str] = None
    context_lines: int = 1
    tab_width: int = 4
    cause_chain: bool = True
    wrap_lines: bool = True
    break_words: bool = True

    # ----- builders -------------------------------------------------------

    def with_tab_width(self, width: int) -> "GraphicalReportHandler":
        """Set the displayed tab width in spaces."""
        return dataclasses.replace(self, tab_width=_non_negative(width, "tab width"))

    def with_links(self, links: bool) -> "GraphicalReportHandler":
        """Show URLs as terminal hyperlinks, or as plain text."""
        return dataclasses.replace(
            self, links=LinkStyle.LINK if links else LinkStyle.TEXT
        )

    def with_cause_chain(self) -> "GraphicalReportHandler":
        """Include the cause chain of the top-level diagnostic."""
        return dataclasses.replace(self, cause_chain=True)

    def without_cause_chain(self) -> "GraphicalReportHandler":
        """Leave out the cause chain of the top-level diagnostic."""
        return dataclasses.replace(self, cause_chain=False)

    def with_urls(self, urls: bool) -> "GraphicalReportHandler":
        """Whether diagnostic URLs appear in the output at all."""
        if not urls:
            links = LinkStyle.NONE
        elif self.links is LinkStyle.NONE:
            links = LinkStyle.LINK
        else:
            links = self.links
        return dataclasses.replace(self, links=links)

    def with_theme(self, theme: GraphicalTheme) -> "GraphicalReportHandler":
        """Use ``theme`` for drawing."""
        return dataclasses.replace(self, theme=theme)

    def with_width(self, width: int) -> "GraphicalReportHandler":
        """Set the width the report is wrapped at."""
        return dataclasses.replace(self, termwidth=_non_negative(width, "width"))

    def with_wrap_lines(self, wrap_lines: bool) -> "GraphicalReportHandler":
        """Enable or disable wrapping of text to the width."""
        return dataclasses.replace(self, wrap_lines=bool(wrap_lines))

    def with_break_words(self, break_words: bool) -> "GraphicalReportHandler":
        """Enable or disable breaking long words when wrapping."""
        return dataclasses.replace(self, break_words=bool(break_words))

    def with_footer(self, footer: str) -> "GraphicalReportHandler":
        """Set a footer written at the end of every report."""
        return dataclasses.replace(self, footer=str(footer))

    def with_context_lines(self, lines: int) -> "GraphicalReportHandler":
        """Set how many lines of context surround each snippet."""
        return dataclasses.replace(
            self, context_lines=_non_negative(lines, "context lines")
        )

    # ----- rendering ------------------------------------------------------

    def render_report(self, diagnostic: Any) -> str:
        """Return the graphical report for ``diagnostic``."""
        diagnostic = as_diagnostic(diagnostic)
        out: list[str] = []
        self._render_header(out, diagnostic)
        self._render_causes(out, diagnostic)
        src = diagnostic.source_code
        self._render_snippets(out, diagnostic, src)
        self._render_footer(out, diagnostic)
        self._render_related(out, diagnostic, src)
        if self.footer is not None:
            out.append("\n")
            width = max(self.termwidth - 4, 0)
            out.append(self._wrap(self.footer, width, "  ", "  ") + "\n")
        return "".join(out)

    def _wrap(self, text: str, width: int, initial: str, subsequent: str) -> str:
        return wrap_text(
            text, width, initial, subsequent, self.break_words, self.wrap_lines
        )

    def _severity_style(self, severity: Optional[Severity]) -> tuple[Style, str]:
        styles = self.theme.styles
        chars = self.theme.characters
        if severity is Severity.WARNING:
            return styles.warning, chars.warning
        if severity is Severity.ADVICE:
            return styles.advice, chars.advice
        return styles.error, chars.error

    def _render_header(self, out: list[str], diagnostic: Diagnostic) -> None:
        style, _ = self._severity_style(diagnostic.severity)
        link_style = self.theme.styles.link
        url = diagnostic.url
        code = diagnostic.code
        if self.links is LinkStyle.LINK and url is not None:
            code_text = f"{code} " if code is not None else ""
            out.append(
                f"\x1b]8;;{url}\x1b\\{style.paint(code_text)}"
                f"{link_style.paint('(link)')}\x1b]8;;\x1b\\\n\n"
            )
        elif code is not None:
            header = style.paint(code)
            if self.links is LinkStyle.TEXT and url is not None:
                header += f" ({link_style.paint(url)})"
            out.append(f"{header}\n\n")

    def _render_causes(self, out: list[str], diagnostic: Diagnostic) -> None:
        style, icon = self._severity_style(diagnostic.severity)
        chars = self.theme.characters
        width = max(self.termwidth - 2, 0)
        initial = f"  {style.paint(icon)} "
        rest = f"  {style.paint(chars.vbar)} "
        out.append(self._wrap(str(diagnostic), width, initial, rest) + "\n")

        if not self.cause_chain:
            return

        causes = list(_cause_chain(diagnostic))
        inner_renderer = dataclasses.replace(self, footer=None, cause_chain=False)
        for index, (error, is_diag) in enumerate(causes):
            is_last = index == len(causes) - 1
            corner = chars.lbot if is_last else chars.lcross
            initial = style.paint(f"  {corner}{chars.hbar}{chars.rarrow} ")
            rest = style.paint(f"  {' ' if is_last else chars.vbar}   ")
            if is_diag and isinstance(error, Diagnostic):
                text = inner_renderer.render_report(error)
            else:
                text = str(error)
            out.append(self._wrap(text, width, initial, rest) + "\n")

    def _render_footer(self, out: list[str], diagnostic: Diagnostic) -> None:
        if diagnostic.help is None:
            return
        width = max(self.termwidth - 4, 0)
        initial = self.theme.styles.help.paint("  help: ")
        out.append(self._wrap(str(diagnostic.help), width, initial, "        ") + "\n")

    def _render_related(self, out: list[str], diagnostic: Diagnostic, parent_src: Any) -> None:
        if diagnostic.related is None:
            return
        out.append("\n")
        for item in diagnostic.related:
            rel = as_diagnostic(item)
            out.append(_RELATED_PREFIXES[rel.severity])
            self._render_header(out, rel)
            self._render_causes(out, rel)
            src = rel.source_code if rel.source_code is not None else parent_src
            self._render_snippets(out, rel, src)
            self._render_footer(out, rel)
            self._render_related(out, rel, src)

    def _render_snippets(self, out: list[str], diagnostic: Diagnostic, source: Any) -> None:
        if source is None or diagnostic.labels is None:
            return
        labels = sorted(diagnostic.labels, key=lambda label: label.offset)
        contexts: list[tuple[LabeledSpan, SpanContents]] = []
        for right in labels:
            right_conts = read_span(
                source, right.span, self.context_lines, self.context_lines
            )
            if not contexts:
                contexts.append((right, right_conts))
                continue
            left, left_conts = contexts[-1]
            if left_conts.line + left_conts.line_count >= right_conts.line:
                new_end = max(left.offset + left.length, right.offset + right.length)
                merged = LabeledSpan(left.label, (left.offset, new_end - left.offset))
                try:
                    merged_conts = read_span(
                        source, merged.span, self.context_lines, self.context_lines
                    )
                except Exception:  # noqa: BLE001 - any failure means "don't merge"
                    pass
                else:
                    contexts[-1] = (merged, merged_conts)
                    continue
            contexts.append((right, right_conts))
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
        chars = self.theme.characters
        styles = self.theme.styles

        ctx_end = context.offset + context.length
        ctx_labels = [
            label
            for label in labels
            if context.offset <= label.offset and label.offset + label.length <= ctx_end
        ]
        primary_label = next(
            (label for label in ctx_labels if label.primary),
            ctx_labels[0] if ctx_labels else None,
        )

        highlights = styles.highlights
        fancy = [
            FancySpan(label.label, label.span, highlights[index % len(highlights)])
            for index, label in enumerate(labels)
        ]

        max_gutter = max(
            (
                sum(
                    1
                    for hl in fancy
                    if not line.span_line_only(hl) and line.span_applies_gutter(hl)
                )
                for line in lines
            ),
            default=0,
        )
        linum_width = len(str(lines[-1].line_number if lines else 0))

        out.append(f"{' ' * (linum_width + 2)}{chars.ltop}{chars.hbar}")

        if primary_label is not None:
            primary_contents = read_span(source, primary_label.span, 0, 0)
        else:
            primary_contents = contents

        if primary_contents.name is not None:
            name = styles.link.paint(primary_contents.name)
            out.append(
                f"[{name}:{primary_contents.line + 1}:{primary_contents.column + 1}]\n"
            )
        elif len(lines) <= 1:
            out.append(chars.hbar * 3 + "\n")
        else:
            out.append(f"[{primary_contents.line + 1}:{primary_contents.column + 1}]\n")

        for line in lines:
            self._write_linum(out, linum_width, line.line_number)
            self._render_line_gutter(out, max_gutter, line, fancy)
            self._render_line_text(out, line.text)

            applicable = [hl for hl in fancy if line.span_applies(hl)]
            single_line = [hl for hl in applicable if line.span_line_only(hl)]
            multi_line = [hl for hl in applicable if not line.span_line_only(hl)]
            if single_line:
                self._write_no_linum(out, linum_width)
                self._render_highlight_gutter(
                    out, max_gutter, line, fancy, LabelRenderMode.SINGLE_LINE
                )
                self._render_single_line_highlights(
                    out, line, linum_width, max_gutter, single_line, fancy
                )
            for hl in multi_line:
                if hl.label is not None and line.span_ends(hl) and not line.span_starts(hl):
                    self._render_multi_line_end(
                        out, fancy, max_gutter, linum_width, line, hl
                    )

        out.append(f"{' ' * (linum_width + 2)}{chars.lbot}{chars.hbar * 4}\n")

    def _render_multi_line_end(
        self,
        out: list[str],
        labels: list[FancySpan],
        max_gutter: int,
        linum_width: int,
        line: Line,
        label: FancySpan,
    ) -> None:
        self._write_no_linum(out, linum_width)
        parts = label.label_parts()
        if parts is None:
            self._render_highlight_gutter(
                out, max_gutter, line, labels, LabelRenderMode.SINGLE_LINE
            )
            out.append(label.style.paint(self.theme.characters.hbar) + "\n")
            return
        first, rest = parts[0], parts[1:]
        if not rest:
            self._render_highlight_gutter(
                out, max_gutter, line, labels, LabelRenderMode.SINGLE_LINE
            )
            self._render_multi_line_end_single(
                out, first, label.style, LabelRenderMode.SINGLE_LINE
            )
            return
        self._render_highlight_gutter(
            out, max_gutter, line, labels, LabelRenderMode.MULTI_LINE_FIRST
        )
        self._render_multi_line_end_single(
            out, first, label.style, LabelRenderMode.MULTI_LINE_FIRST
        )
        for part in rest:
            self._write_no_linum(out, linum_width)
            self._render_highlight_gutter(
                out, max_gutter, line, labels, LabelRenderMode.MULTI_LINE_REST
            )
            self._render_multi_line_end_single(
                out, part, label.style, LabelRenderMode.MULTI_LINE_REST
            )

    def _render_line_gutter(
        self, out: list[str], max_gutter: int, line: Line, highlights: list[FancySpan]
    ) -> None:
        if max_gutter == 0:
            return
        chars = self.theme.characters
        gutter = ""
        arrow = False
        applicable = [hl for hl in highlights if line.span_applies_gutter(hl)]
        for index, hl in enumerate(applicable):
            paint = hl.style.paint
            bar = paint(chars.hbar * max(max_gutter - index, 0))
            if line.span_starts(hl):
                gutter += paint(chars.ltop) + bar + paint(chars.rarrow)
                arrow = True
                break
            if line.span_ends(hl):
                corner = chars.lcross if hl.label is not None else chars.lbot
                gutter += paint(corner) + bar + paint(chars.rarrow)
                arrow = True
                break
            if line.span_flyby(hl):
                gutter += paint(chars.vbar)
            else:
                gutter += " "
        padding = (1 if arrow else 3) + max(max_gutter - len(gutter), 0)
        out.append(gutter + " " * padding)

    def _render_highlight_gutter(
        self,
        out: list[str],
        max_gutter: int,
        line: Line,
        highlights: list[FancySpan],
        render_mode: LabelRenderMode,
    ) -> None:
        if max_gutter == 0:
            return
        chars = self.theme.characters
        gutter = ""
        gutter_cols = 0
        applicable = [hl for hl in highlights if line.span_applies_gutter(hl)]
        for index, hl in enumerate(applicable):
            if not line.span_line_only(hl) and line.span_ends(hl):
                if render_mode is LabelRenderMode.MULTI_LINE_REST:
                    space = max(max_gutter - index, 0) + 2
                    gutter += " " * space
                    gutter_cols += space + 1
                else:
                    num_repeat = max(max_gutter - index, 0) + 2
                    shrink = 1 if render_mode is LabelRenderMode.MULTI_LINE_FIRST else 0
                    gutter += hl.style.paint(chars.lbot)
                    gutter += hl.style.paint(chars.hbar * (num_repeat - shrink))
                    gutter_cols += num_repeat + 1
                break
            gutter += hl.style.paint(chars.vbar)
            gutter_cols += 1
        out.append(gutter + " " * max(max_gutter + 3 - gutter_cols, 0))

    def _write_linum(self, out: list[str], width: int, linum: int) -> None:
        number = self.theme.styles.linum.paint(str(linum).rjust(width))
        out.append(f" {number} {self.theme.characters.vbar} ")

    def _write_no_linum(self, out: list[str], width: int) -> None:
        out.append(f" {' ' * width} {self.theme.characters.vbar_break} ")

    def _visual_offset(self, line: Line, offset: int, start: bool) -> int:
        """Display column of byte ``offset`` on ``line``, snapping inside characters."""
        if not line.offset <= offset <= line.offset + line.length:
            raise ValueError(f"offset {offset} is outside the line")
        text_bytes = line.text.encode("utf-8")
        text_index = offset - line.offset
        while text_index <= len(text_bytes) and not _is_char_boundary(text_bytes, text_index):
            text_index += -1 if start else 1
        text = text_bytes[: min(text_index, len(text_bytes))].decode("utf-8")
        text_width = sum(char_widths(text, self.tab_width))
        if text_index > len(text_bytes):
            return text_width + 1
        return text_width

    def _render_line_text(self, out: list[str], text: str) -> None:
        for char, width in zip(text, char_widths(text, self.tab_width)):
            out.append(" " * width if char == "\t" else char)
        out.append("\n")

    def _render_single_line_highlights(
        self,
        out: list[str],
        line: Line,
        linum_width: int,
        max_gutter: int,
        single_liners: list[FancySpan],
        all_highlights: list[FancySpan],
    ) -> None:
        chars = self.theme.characters
        underlines: list[str] = []
        highest = 0
        vbar_offsets: list[tuple[FancySpan, int]] = []
        for hl in single_liners:
            start = max(self._visual_offset(line, hl.offset, True), highest)
            if hl.length == 0:
                end = start + 1
            else:
                end = max(
                    self._visual_offset(line, hl.offset + hl.length, False), start + 1
                )
            vbar_offset = (start + end) // 2
            num_left = vbar_offset - start
            num_right = end - vbar_offset - 1
            if hl.length == 0:
                middle = chars.uarrow
            elif hl.label is not None:
                middle = chars.underbar
            else:
                middle = chars.underline
            underlines.append(
                hl.style.paint(
                    " " * max(start - highest, 0)
                    + chars.underline * num_left
                    + middle
                    + chars.underline * num_right
                )
            )
            highest = max(highest, end)
            vbar_offsets.append((hl, vbar_offset))
        out.append("".join(underlines) + "\n")

        for hl in reversed(single_liners):
            parts = hl.label_parts()
            if parts is None:
                continue
            if len(parts) == 1:
                modes = [LabelRenderMode.SINGLE_LINE]
            else:
                modes = [LabelRenderMode.MULTI_LINE_FIRST] + [
                    LabelRenderMode.MULTI_LINE_REST
                ] * (len(parts) - 1)
            for part, mode in zip(parts, modes):
                self._write_label_text(
                    out, line, linum_width, max_gutter, all_highlights,
                    vbar_offsets, hl, part, mode,
                )

    def _write_label_text(
        self,
        out: list[str],
        line: Line,
        linum_width: int,
        max_gutter: int,
        all_highlights: list[FancySpan],
        vbar_offsets: list[tuple[FancySpan, int]],
        hl: FancySpan,
        label: str,
        render_mode: LabelRenderMode,
    ) -> None:
        chars = self.theme.characters
        self._write_no_linum(out, linum_width)
        self._render_highlight_gutter(
            out, max_gutter, line, all_highlights, LabelRenderMode.SINGLE_LINE
        )
        curr_offset = 1
        for offset_hl, vbar_offset in vbar_offsets:
            if curr_offset < vbar_offset + 1:
                out.append(" " * (vbar_offset + 1 - curr_offset))
                curr_offset = vbar_offset + 1
            if offset_hl != hl:
                out.append(offset_hl.style.paint(chars.vbar))
                curr_offset += 1
                continue
            if render_mode is LabelRenderMode.SINGLE_LINE:
                text = f"{chars.lbot}{chars.hbar * 2} {label}"
            elif render_mode is LabelRenderMode.MULTI_LINE_FIRST:
                text = f"{chars.lbot}{chars.hbar}{chars.rcross} {label}"
            else:
                text = f"  {chars.vbar} {label}"
            out.append(hl.style.paint(text) + "\n")
            break

    def _render_multi_line_end_single(
        self, out: list[str], label: str, style: Style, render_mode: LabelRenderMode
    ) -> None:
        chars = self.theme.characters
        if render_mode is LabelRenderMode.SINGLE_LINE:
            mark = chars.hbar
        elif render_mode is LabelRenderMode.MULTI_LINE_FIRST:
            mark = chars.rcross
        else:
            mark = chars.vbar
        out.append(f"{style.paint(mark)} {label}\n")

    def _get_lines(self, source: Any, span: SourceSpan) -> tuple[SpanContents, list[Line]]:
        contents = read_span(source, span, self.context_lines, self.context_lines)
        return contents, split_lines(contents)