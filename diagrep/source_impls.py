"""Reading spans, with context lines, out of plain text and byte strings."""

from __future__ import annotations

from collections import deque
from typing import Any, Union

from diagrep.protocol import SourceCode, SourceSpan, SpanContents, SpanOutOfBounds

_CR = 0x0D
_LF = 0x0A

Source = Union[str, bytes, bytearray, memoryview, SourceCode]


def context_info(
    data: Union[bytes, bytearray, memoryview],
    span: Any,
    context_lines_before: int,
    context_lines_after: int,
) -> SpanContents:
    """Locate ``span`` in ``data`` and widen it by whole context lines.

    Raises SpanOutOfBounds if the span does not fit inside ``data``.
    """
    span = SourceSpan.coerce(span)
    data = bytes(data)
    span_last = max(span.offset + span.length - 1, 0)
    span_last_nonempty = span.offset + max(span.length - 1, 0)

    offset = 0
    line_count = 0
    start_line = 0
    start_column = 0
    before_lines_starts: deque[int] = deque()
    current_line_start = 0
    end_lines = 0
    post_span = False
    post_span_got_newline = False

    size = len(data)
    index = 0
    while index < size:
        byte = data[index]
        index += 1
        if byte in (_CR, _LF):
            line_count += 1
            if byte == _CR and index < size and data[index] == _LF:
                index += 1
                offset += 1
            if offset < span.offset:
                # Still before the span: remember where this line started.
                start_column = 0
                before_lines_starts.append(current_line_start)
                if len(before_lines_starts) > context_lines_before:
                    start_line += 1
                    before_lines_starts.popleft()
            elif offset >= span_last_nonempty and post_span:
                start_column = 0
                if post_span_got_newline:
                    end_lines += 1
                else:
                    post_span_got_newline = True
                if end_lines >= context_lines_after:
                    offset += 1
                    break
            current_line_start = offset + 1
        elif offset < span.offset:
            start_column += 1

        if offset >= span_last:
            post_span = True
            if end_lines >= context_lines_after:
                offset += 1
                break

        offset += 1

    if offset < span_last:
        raise SpanOutOfBounds()

    if before_lines_starts:
        starting_offset = before_lines_starts[0]
    elif context_lines_before == 0:
        starting_offset = span.offset
    else:
        starting_offset = 0
    if starting_offset > offset:
        raise SpanOutOfBounds()

    return SpanContents(
        data=data[starting_offset:offset],
        span=SourceSpan(starting_offset, offset - starting_offset),
        line=start_line,
        column=start_column if context_lines_before == 0 else 0,
        line_count=line_count,
    )


def read_span(
    source: Source,
    span: Any,
    context_lines_before: int,
    context_lines_after: int,
) -> SpanContents:
    """Read ``span`` from text, bytes or any SourceCode object."""
    if isinstance(source, SourceCode):
        return source.read_span(
            SourceSpan.coerce(span), context_lines_before, context_lines_after
        )
    if isinstance(source, str):
        return context_info(
            source.encode("utf-8"), span, context_lines_before, context_lines_after
        )
    if isinstance(source, (bytes, bytearray, memoryview)):
        return context_info(source, span, context_lines_before, context_lines_after)
    raise TypeError(f"cannot read spans from {type(source).__name__}")