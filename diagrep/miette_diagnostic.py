"""A diagnostic whose metadata is built at runtime."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Optional

from diagrep.protocol import Diagnostic, LabeledSpan, Severity

_FIELDS = ("message", "code", "severity", "help", "url", "labels")


class MietteDiagnostic(Diagnostic):
    """Diagnostic built from plain values; the ``with_*`` methods return copies."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        severity: Optional[Severity] = None,
        help: Optional[str] = None,
        url: Optional[str] = None,
        labels: Optional[Iterable[LabeledSpan]] = None,
    ) -> None:
        message = str(message)
        super().__init__(message)
        self.message = message
        self.code = code
        self.severity = severity
        self.help = help
        self.url = url
        self.labels = list(labels) if labels is not None else None

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        parts = ", ".join(f"{name}={getattr(self, name)!r}" for name in _FIELDS)
        return f"MietteDiagnostic({parts})"

    def _key(self) -> tuple:
        labels = tuple(self.labels) if self.labels is not None else None
        return (self.message, self.code, self.severity, self.help, self.url, labels)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MietteDiagnostic):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def _replace(self, **changes: Any) -> "MietteDiagnostic":
        values = {name: getattr(self, name) for name in _FIELDS}
        values.update(changes)
        message = values.pop("message")
        return MietteDiagnostic(message, **values)

    def with_code(self, code: str) -> "MietteDiagnostic":
        return self._replace(code=str(code))

    def with_severity(self, severity: Severity) -> "MietteDiagnostic":
        return self._replace(severity=severity)

    def with_help(self, help: str) -> "MietteDiagnostic":
        return self._replace(help=str(help))

    def with_url(self, url: str) -> "MietteDiagnostic":
        return self._replace(url=str(url))

    def with_label(self, label: LabeledSpan) -> "MietteDiagnostic":
        """Replace all labels with ``label``."""
        return self._replace(labels=[label])

    def with_labels(self, labels: Iterable[LabeledSpan]) -> "MietteDiagnostic":
        """Replace all labels with ``labels``."""
        return self._replace(labels=list(labels))

    def and_label(self, label: LabeledSpan) -> "MietteDiagnostic":
        """Append ``label`` to the existing labels."""
        return self._replace(labels=[*(self.labels or []), label])

    def and_labels(self, labels: Iterable[LabeledSpan]) -> "MietteDiagnostic":
        """Append ``labels`` to the existing labels."""
        return self._replace(labels=[*(self.labels or []), *labels])

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-compatible dict, leaving out unset fields."""
        result: dict[str, Any] = {"message": self.message}
        if self.code is not None:
            result["code"] = self.code
        if self.severity is not None:
            result["severity"] = self.severity.value
        if self.help is not None:
            result["help"] = self.help
        if self.url is not None:
            result["url"] = self.url
        if self.labels is not None:
            result["labels"] = [label.to_dict() for label in self.labels]
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MietteDiagnostic":
        """Build from a dict as produced by ``to_dict``; nulls mean unset."""
        if "message" not in data:
            raise ValueError("missing field 'message' in diagnostic")
        message = data["message"]
        if not isinstance(message, str):
            raise ValueError("field 'message' must be a string")
        text_fields: dict[str, Optional[str]] = {}
        for name in ("code", "help", "url"):
            value = data.get(name)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"field {name!r} must be a string or null")
            text_fields[name] = value
        severity = data.get("severity")
        if severity is not None:
            try:
                severity = Severity(severity)
            except ValueError as exc:
                raise ValueError(f"unknown severity {severity!r}") from exc
        labels = data.get("labels")
        if labels is not None:
            if not isinstance(labels, list):
                raise ValueError("field 'labels' must be a list or null")
            labels = [LabeledSpan.from_dict(item) for item in labels]
        return cls(message, severity=severity, labels=labels, **text_fields)