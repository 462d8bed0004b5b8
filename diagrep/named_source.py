"""Source code with a name attached, such as a file name."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from diagrep.protocol import SourceCode, SpanContents
from diagrep.source_impls import Source, read_span


@dataclass(frozen=True, repr=False)
class NamedSource(SourceCode):
    """Wraps text, bytes or another SourceCode, giving its contents a name."""

    name: str
    inner: Source

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", str(self.name))
        if not isinstance(self.inner, (str, bytes, bytearray, memoryview, SourceCode)):
            raise TypeError(f"cannot read spans from {type(self.inner).__name__}")

    def __repr__(self) -> str:
        return f"NamedSource(name={self.name!r}, source='<redacted>')"

    def read_span(
        self, span: Any, context_lines_before: int, context_lines_after: int
    ) -> SpanContents:
        """Read from the wrapped source and label the result with this name."""
        contents = read_span(self.inner, span, context_lines_before, context_lines_after)
        return dataclasses.replace(contents, name=self.name)