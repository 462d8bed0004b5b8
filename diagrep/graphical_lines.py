"""Line, span and text-wrapping helpers for the graphical report handler."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any, NamedTuple, Optional, Protocol

from wcwidth import wcwidth

from diagrep.protocol import SourceSpan, SpanContents
from diagrep.theme import Style

_ESC = "\x1b"
_NLINE_PENALTY = 1000.0
_OVERFLOW_PENALTY = 50.0 * 50.0
_SHORT_LAST_LINE_FRACTION = 4.0
_SHORT_LAST_LINE_PENALTY = 25.0
_WORD_PATTERN = re.compile(r"[^ ]+ *| +")


class LabelRenderMode(enum.Enum):
    """How a label is being drawn."""

    SINGLE_LINE = "single_line"
    MULTI_LINE_FIRST = "multi_line_first"
    MULTI_LINE_REST = "multi_line_rest"


class _Spanning(Protocol):
    @property
    def offset(self) -> int: ...

    @property
    def length(self) -> int: ...


@dataclass(frozen=True)
class Line:
    """One line of a snippet: its number, byte position and text."""

    line_number: int
    offset: int
    length: int
    text: str

    @property
    def end(self) -> int:
        return self.offset + self.length

    def span_line_only(self, span: _Spanning) -> bool:
        """True if ``span`` lies entirely within this line."""
        return span.offset >= self.offset and span.offset + span.length <= self.end

    def span_applies(self, span: _Spanning) -> bool:
        """True if ``span`` is visible on this line, in the gutter or under the text."""
        spanlen = span.length or 1
        starts_here = self.offset <= span.offset < self.end
        passes_through = span.offset < self.offset and span.offset + spanlen > self.end
        ends_here = self.offset < span.offset + spanlen <= self.end
        return starts_here or passes_through or ends_here

    def span_applies_gutter(self, span: _Spanning) -> bool:
        """True if ``span`` shows in the gutter, i.e. it covers more than this line."""
        spanlen = span.length or 1
        starts_here = self.offset <= span.offset < self.end
        ends_here = self.offset < span.offset + spanlen <= self.end
        return self.span_applies(span) and not (starts_here and ends_here)

    def span_flyby(self, span: _Spanning) -> bool:
        """True if ``span`` covers this line without starting or ending on it."""
        return span.offset < self.offset and span.offset + span.length > self.end

    def span_starts(self, span: _Spanning) -> bool:
        """True if this line holds the start of ``span`` (given that it applies)."""
        return span.offset >= self.offset

    def span_ends(self, span: _Spanning) -> bool:
        """True if this line holds the end of ``span`` (given that it applies)."""
        end = span.offset + span.length
        return self.offset <= end <= self.end


def split_label(value: str) -> list[str]:
    """Split a label into its lines."""
    return value.split("\n")


@dataclass(frozen=True)
class FancySpan:
    """A span to highlight, with its label and drawing style.

    Equality ignores the style.
    """

    label: Optional[str]
    span: SourceSpan
    style: Style = field(default=Style(), compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "span", SourceSpan.coerce(self.span))

    @property
    def offset(self) -> int:
        return self.span.offset

    @property
    def length(self) -> int:
        return self.span.length

    def label_parts(self) -> Optional[list[str]]:
        """The label's lines, each painted in this span's style, or None."""
        if self.label is None:
            return None
        return [self.style.paint(part) for part in split_label(self.label)]


def _char_width(char: str) -> int:
    return max(wcwidth(char), 0)


def _escape_end(text: str, index: int) -> int:
    """Index just past the escape sequence starting at ``text[index]``."""
    size = len(text)
    pos = index + 1
    if pos >= size:
        return pos
    kind = text[pos]
    pos += 1
    if kind == "[":
        while pos < size:
            if "\x40" <= text[pos] <= "\x7e":
                return pos + 1
            pos += 1
        return pos
    if kind == "]":
        while pos < size:
            if text[pos] == "\x07":
                return pos + 1
            if text[pos] == _ESC and pos + 1 < size and text[pos + 1] == "\\":
                return pos + 2
            pos += 1
        return pos
    return pos


def _visible_chars(text: str):
    """Yield (index, char, width) for characters outside escape sequences."""
    index = 0
    size = len(text)
    while index < size:
        char = text[index]
        if char == _ESC:
            index = _escape_end(text, index)
            continue
        yield index, char, _char_width(char)
        index += 1


def visible_width(text: str) -> int:
    """Display width of ``text``, ignoring terminal escape sequences."""
    return sum(width for _, _, width in _visible_chars(text))


def char_widths(text: str, tab_width: int) -> list[int]:
    """Display width of each character, expanding tabs to the next tab stop."""
    widths: list[int] = []
    column = 0
    for char in text:
        if char == "\t":
            width = tab_width - column % tab_width if tab_width else 0
        else:
            width = _char_width(char)
        column += width
        widths.append(width)
    return widths


class _Fragment(NamedTuple):
    word: str
    whitespace: str
    width: int


def _make_fragment(word: str, whitespace: str) -> _Fragment:
    return _Fragment(word, whitespace, visible_width(word))


def _find_words(line: str) -> list[_Fragment]:
    fragments = []
    for match in _WORD_PATTERN.finditer(line):
        chunk = match.group()
        word = chunk.rstrip(" ")
        fragments.append(_make_fragment(word, chunk[len(word):]))
    return fragments


def _hyphen_split(fragment: _Fragment) -> list[_Fragment]:
    word = fragment.word
    points = [
        index + 1
        for index, char in enumerate(word)
        if char == "-"
        and index > 0
        and word[index - 1].isalnum()
        and index + 1 < len(word)
        and word[index + 1].isalnum()
    ]
    if not points:
        return [fragment]
    pieces = []
    start = 0
    for point in points:
        pieces.append(_make_fragment(word[start:point], ""))
        start = point
    pieces.append(_make_fragment(word[start:], fragment.whitespace))
    return pieces


def _break_apart(fragment: _Fragment, line_width: int) -> list[_Fragment]:
    pieces = []
    word = fragment.word
    start = 0
    width = 0
    for index, _, char_width in _visible_chars(word):
        if width > 0 and width + char_width > line_width:
            pieces.append(_Fragment(word[start:index], "", width))
            start = index
            width = char_width
        else:
            width += char_width
    if start < len(word):
        pieces.append(_Fragment(word[start:], fragment.whitespace, width))
    return pieces


def _optimal_fit(
    fragments: list[_Fragment], line_widths: tuple[int, int]
) -> list[list[_Fragment]]:
    count = len(fragments)
    prefix = [0.0]
    for fragment in fragments:
        prefix.append(prefix[-1] + fragment.width + len(fragment.whitespace))

    minima: list[tuple[int, float]] = [(0, 0.0)]
    line_numbers = [0]
    for j in range(1, count + 1):
        best_index = 0
        best_cost = float("inf")
        last = fragments[j - 1]
        for i in range(j):
            line_width = prefix[j] - prefix[i] - len(last.whitespace)
            number = line_numbers[i]
            target = float(max(1, line_widths[min(number, len(line_widths) - 1)]))
            cost = minima[i][1] + _NLINE_PENALTY
            if line_width > target:
                cost += (line_width - target) * _OVERFLOW_PENALTY
            elif j < count:
                gap = target - line_width
                cost += gap * gap
            elif i + 1 == j and line_width < target / _SHORT_LAST_LINE_FRACTION:
                cost += _SHORT_LAST_LINE_PENALTY
            if cost < best_cost:
                best_cost = cost
                best_index = i
        minima.append((best_index, best_cost))
        line_numbers.append(line_numbers[best_index] + 1)

    lines: list[list[_Fragment]] = []
    pos = count
    while True:
        prev = minima[pos][0]
        lines.append(fragments[prev:pos])
        pos = prev
        if pos == 0:
            break
    lines.reverse()
    return lines


def _wrap_line(
    line: str,
    width: int,
    initial_indent: str,
    subsequent_indent: str,
    break_words: bool,
    out: list[str],
) -> None:
    indent = subsequent_indent if out else initial_indent
    if len(line.encode("utf-8")) < width and not indent:
        out.append(line.rstrip(" "))
        return

    line_widths = (
        max(width - visible_width(initial_indent), 0),
        max(width - visible_width(subsequent_indent), 0),
    )
    fragments = [piece for word in _find_words(line) for piece in _hyphen_split(word)]
    if break_words:
        broken: list[_Fragment] = []
        for fragment in fragments:
            if fragment.width > line_widths[1]:
                broken.extend(_break_apart(fragment, line_widths[1]))
            else:
                broken.append(fragment)
        if initial_indent:
            broken.insert(0, _Fragment("", "", 0))
        fragments = broken

    for words in _optimal_fit(fragments, line_widths):
        if not words:
            out.append("")
            continue
        body = "".join(f.word + f.whitespace for f in words[:-1]) + words[-1].word
        if not out and initial_indent:
            prefix = initial_indent
        elif out and subsequent_indent:
            prefix = subsequent_indent
        else:
            prefix = ""
        out.append(prefix + body)


def _indent_only(text: str, initial_indent: str, subsequent_indent: str) -> str:
    parts = text.split("\n") if text else []
    if text.endswith("\n"):
        parts.pop()
    trimmed_indent = subsequent_indent.rstrip()
    result = []
    for index, line in enumerate(parts):
        blank = not line.strip()
        if index == 0:
            prefix = initial_indent.rstrip() if blank else initial_indent
        else:
            prefix = trimmed_indent if blank else subsequent_indent
        result.append(prefix + line)
    joined = "\n".join(result)
    if text.endswith("\n"):
        joined += "\n"
    return joined


def wrap_text(
    text: str,
    width: int,
    initial_indent: str = "",
    subsequent_indent: str = "",
    break_words: bool = True,
    wrap_lines: bool = True,
) -> str:
    """Fill ``text`` to ``width`` columns with the given indents.

    With ``wrap_lines`` false the text keeps its lines and only gets indented.
    """
    if not wrap_lines:
        return _indent_only(text, initial_indent, subsequent_indent)
    if len(text.encode("utf-8")) < width and "\n" not in text and not initial_indent:
        return text.rstrip(" ")
    out: list[str] = []
    for line in text.split("\n"):
        _wrap_line(line, width, initial_indent, subsequent_indent, break_words, out)
    return "\n".join(out)


def split_lines(contents: SpanContents) -> list[Line]:
    """Split the text of ``contents`` into numbered lines with byte positions."""
    text = contents.data.decode("utf-8")
    line = contents.line
    column = contents.column
    offset = contents.span.offset
    line_offset = offset
    line_chars: list[str] = []
    lines: list[Line] = []
    size = len(text)
    index = 0
    while index < size:
        char = text[index]
        index += 1
        offset += len(char.encode("utf-8"))
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
            lines.append(Line(line, line_offset, offset - line_offset, "".join(line_chars)))
            line_chars.clear()
            line_offset = offset
    return lines