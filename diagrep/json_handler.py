"""A handler that renders diagnostics as machine-readable JSON."""

from __future__ import annotations

from typing import Any, Optional

from diagrep.protocol import (
    Diagnostic,
    MietteError,
    Severity,
    as_diagnostic,
    diagnostic_causes,
)
from diagrep.source_impls import read_span

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\r": "\\r",
    "\n": "\\n",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
}

_SEVERITY_NAMES = {
    None: "error",
    Severity.ERROR: "error",
    Severity.WARNING: "warning",
    Severity.ADVICE: "advice",
}


def escape(text: str) -> str:
    """Escape ``text`` for use inside a JSON string literal."""
    return "".join(_ESCAPES.get(char, char) for char in text)


class JSONReportHandler:
    """Renders a diagnostic, its causes, labels and related diagnostics as JSON."""

    def __repr__(self) -> str:
        return "JSONReportHandler()"

    def render_report(self, diagnostic: Any) -> str:
        """Return the JSON text for ``diagnostic``."""
        parts: list[str] = []
        self._render(parts, as_diagnostic(diagnostic), None)
        return "".join(parts)

    def _render(self, out: list[str], diagnostic: Diagnostic, parent_src: Any) -> None:
        out.append(f'{{"message": "{escape(str(diagnostic))}",')
        if diagnostic.code is not None:
            out.append(f'"code": "{escape(str(diagnostic.code))}",')
        out.append(f'"severity": "{_SEVERITY_NAMES[diagnostic.severity]}",')
        causes = ",".join(f'"{escape(str(cause))}"' for cause in diagnostic_causes(diagnostic))
        out.append(f'"causes": [{causes}],')
        if diagnostic.url is not None:
            out.append(f'"url": "{diagnostic.url}",')
        if diagnostic.help is not None:
            out.append(f'"help": "{escape(str(diagnostic.help))}",')

        src = diagnostic.source_code if diagnostic.source_code is not None else parent_src
        labels = list(diagnostic.labels) if diagnostic.labels is not None else []
        if src is not None:
            out.append(f'"filename": "{escape(self._filename(src, labels))}",')

        rendered = []
        for label in labels:
            text = f'"label": "{escape(label.label)}",' if label.label is not None else ""
            rendered.append(
                f'{{{text}"span": {{"offset": {label.offset},"length": {label.length}}}}}'
            )
        out.append(f'"labels": [{",".join(rendered)}],')

        out.append('"related": [')
        for index, related in enumerate(diagnostic.related or []):
            if index:
                out.append(",")
            self._render(out, as_diagnostic(related), src)
        out.append("]}")

    @staticmethod
    def _filename(source: Any, labels: list) -> str:
        if not labels:
            return ""
        try:
            contents = read_span(source, labels[0].span, 0, 0)
        except MietteError:
            return ""
        name: Optional[str] = contents.name
        return name or ""