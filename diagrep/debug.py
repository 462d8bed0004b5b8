"""A plain handler that renders a diagnostic's fields in a debug layout."""

from __future__ import annotations

from typing import Any

from diagrep.protocol import LabeledSpan, as_diagnostic

FOOTER_NOTE = (
    "NOTE: If you're looking for the fancy error reports, use the graphical "
    "report handler, or write your own handler."
)

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\0": "\\0",
}


def _debug_str(text: str) -> str:
    parts = []
    for char in text:
        if char in _ESCAPES:
            parts.append(_ESCAPES[char])
        elif char.isprintable():
            parts.append(char)
        else:
            parts.append(f"\\u{{{ord(char):x}}}")
    return '"' + "".join(parts) + '"'


def _debug_label(label: LabeledSpan) -> str:
    text = "None" if label.label is None else f"Some({_debug_str(label.label)})"
    primary = "true" if label.primary else "false"
    return (
        f"LabeledSpan {{ label: {text}, span: SourceSpan {{ offset: "
        f"SourceOffset({label.offset}), length: {label.length} }}, primary: {primary} }}"
    )


class DebugReportHandler:
    """Renders every field of a diagnostic, with no graphics."""

    def __repr__(self) -> str:
        return "DebugReportHandler()"

    def render_report(self, diagnostic: Any) -> str:
        """Return the report text for ``diagnostic``."""
        diagnostic = as_diagnostic(diagnostic)
        fields = [("message", str(diagnostic))]
        if diagnostic.code is not None:
            fields.append(("code", str(diagnostic.code)))
        if diagnostic.severity is not None:
            fields.append(("severity", diagnostic.severity.value))
        if diagnostic.url is not None:
            fields.append(("url", str(diagnostic.url)))
        if diagnostic.help is not None:
            fields.append(("help", str(diagnostic.help)))
        if diagnostic.labels is not None:
            labels = ", ".join(_debug_label(label) for label in diagnostic.labels)
            fields.append(("labels", f"[{labels}]"))
        if diagnostic.diagnostic_source is not None:
            fields.append(("caused by", repr(diagnostic.diagnostic_source)))
        body = ", ".join(f"{name}: {_debug_str(value)}" for name, value in fields)
        return f"Diagnostic {{ {body} }}\n{FOOTER_NOTE}\n"