import inspect

import pytest

from diagrep.protocol import (
    Diagnostic,
    LabeledSpan,
    MietteError,
    Severity,
    SourceCode,
    SourceOffset,
    SourceSpan,
    SpanContents,
    SpanOutOfBounds,
    as_diagnostic,
    diagnostic_causes,
)

SOURCE = "f\n\noo\r\nbar"


@pytest.mark.parametrize(
    "line, col, expected",
    [
        (1, 1, 0),
        (1, 2, 1),
        (2, 1, 2),
        (3, 1, 3),
        (3, 2, 4),
        (3, 3, 5),
        (3, 4, 6),
        (4, 1, 7),
        (4, 2, 8),
        (4, 3, 9),
        (4, 4, 10),
    ],
)
def test_source_offset_from_location(line, col, expected):
    assert SourceOffset.from_location(SOURCE, line, col).offset == expected


def test_source_offset_from_location_out_of_range():
    assert SourceOffset.from_location(SOURCE, 5, 1).offset == len(SOURCE)


def test_source_offset_from_location_counts_utf8_bytes():
    assert SourceOffset.from_location("é\nx", 2, 1).offset == 3


def test_source_offset_from_current_location():
    filename, offset = SourceOffset.from_current_location(); lineno = inspect.currentframe().f_lineno
    assert filename == __file__
    with open(filename, "rb") as handle:
        data = handle.read()
    assert data[: offset.offset].count(b"\n") == lineno - 1


def test_source_offset_json_round_trip():
    assert SourceOffset(0).to_json() == 0
    assert SourceOffset.from_json(0) == SourceOffset(0)
    assert SourceOffset.from_json(SourceOffset(17).to_json()) == SourceOffset(17)


def test_source_offset_rejects_bad_values():
    with pytest.raises(ValueError):
        SourceOffset(-1)
    with pytest.raises(ValueError):
        SourceOffset.from_json("zero")


def test_severity_values_and_ordering():
    assert Severity.ADVICE.value == "Advice"
    assert Severity.WARNING.value == "Warning"
    assert Severity.ERROR.value == "Error"
    assert Severity("Warning") is Severity.WARNING
    assert Severity.ADVICE < Severity.WARNING < Severity.ERROR
    assert max(Severity) is Severity.ERROR


def test_source_span_coerce_forms():
    assert SourceSpan.coerce(0) == SourceSpan(0, 0)
    assert SourceSpan.coerce((9, 4)) == SourceSpan(9, 4)
    assert SourceSpan.coerce(range(12, 16)) == SourceSpan(12, 4)
    assert SourceSpan.coerce(SourceOffset(3)) == SourceSpan(3, 0)
    assert SourceSpan.coerce((SourceOffset(1), SourceOffset(2))) == SourceSpan(1, 2)
    span = SourceSpan(5, 5)
    assert SourceSpan.coerce(span) is span


def test_source_span_coerce_rejects_junk():
    with pytest.raises(TypeError):
        SourceSpan.coerce("abc")
    with pytest.raises(ValueError):
        SourceSpan.coerce(range(0, 10, 2))


def test_source_span_is_empty():
    assert SourceSpan(4, 0).is_empty()
    assert not SourceSpan(4, 1).is_empty()


def test_source_span_serialize():
    assert SourceSpan.coerce(0).to_dict() == {"offset": 0, "length": 0}


def test_source_span_deserialize():
    assert SourceSpan.from_dict({"offset": 0, "length": 0}) == SourceSpan.coerce(0)
    with pytest.raises(ValueError):
        SourceSpan.from_dict({"offset": 0})


def test_labeled_span_constructors():
    assert LabeledSpan.at(range(0, 3), "should be Rust") == LabeledSpan("should be Rust", (0, 3))
    assert LabeledSpan.at_offset(4, "expected a closing parenthesis") == LabeledSpan(
        "expected a closing parenthesis", (4, 0)
    )
    assert LabeledSpan.underline(range(12, 16)) == LabeledSpan(None, (12, 4))
    primary = LabeledSpan.primary_with_span("here", (1, 2))
    assert primary.primary is True
    assert LabeledSpan.with_span("here", (1, 2)).primary is False


def test_labeled_span_accessors():
    label = LabeledSpan.at((3, 5), "x")
    assert label.offset == 3
    assert label.length == 5
    assert label.span == SourceSpan(3, 5)
    assert not label.is_empty()
    assert LabeledSpan.at_offset(3, "y").is_empty()


def test_serialize_labeled_span():
    assert LabeledSpan(None, (0, 0)).to_dict() == {
        "span": {"offset": 0, "length": 0},
        "primary": False,
    }
    assert LabeledSpan("label", (0, 0)).to_dict() == {
        "label": "label",
        "span": {"offset": 0, "length": 0},
        "primary": False,
    }


def test_deserialize_labeled_span():
    data = {"label": None, "span": {"offset": 0, "length": 0}, "primary": False}
    assert LabeledSpan.from_dict(data) == LabeledSpan(None, (0, 0))
    data = {"span": {"offset": 0, "length": 0}, "primary": False}
    assert LabeledSpan.from_dict(data) == LabeledSpan(None, (0, 0))
    data = {"label": "label", "span": {"offset": 0, "length": 0}, "primary": False}
    assert LabeledSpan.from_dict(data) == LabeledSpan("label", (0, 0))


def test_deserialize_labeled_span_requires_primary():
    with pytest.raises(ValueError):
        LabeledSpan.from_dict({"span": {"offset": 0, "length": 0}})


class _Fixed(SourceCode):
    def read_span(self, span, context_lines_before, context_lines_after):
        if span.offset > 3:
            raise SpanOutOfBounds()
        return SpanContents(b"abc", span, 0, span.offset, 1, name="fixed")


def test_source_code_subclass_read_span():
    contents = _Fixed().read_span(SourceSpan(1, 1), 0, 0)
    assert contents.data == b"abc"
    assert contents.column == 1
    assert contents.name == "fixed"
    with pytest.raises(MietteError):
        _Fixed().read_span(SourceSpan(9, 1), 0, 0)


def test_source_code_is_abstract():
    with pytest.raises(TypeError):
        SourceCode()


def test_diagnostic_defaults():
    diag = Diagnostic("boom")
    assert str(diag) == "boom"
    assert (diag.code, diag.severity, diag.help, diag.url) == (None, None, None, None)
    assert diag.labels is None and diag.related is None


def test_as_diagnostic_from_string():
    diag = as_diagnostic("plain message")
    assert isinstance(diag, Diagnostic)
    assert str(diag) == "plain message"
    assert repr(diag) == "'plain message'"


def test_as_diagnostic_wraps_exception_transparently():
    try:
        try:
            raise KeyError("inner")
        except KeyError as inner:
            raise ValueError("outer") from inner
    except ValueError as err:
        diag = as_diagnostic(err)
    assert str(diag) == "outer"
    assert repr(diag) == "ValueError('outer')"
    assert [str(c) for c in diagnostic_causes(diag)] == ["'inner'"]


def test_as_diagnostic_keeps_diagnostics():
    diag = Diagnostic("x")
    assert as_diagnostic(diag) is diag
    with pytest.raises(TypeError):
        as_diagnostic(42)


class _Chained(Diagnostic):
    def __init__(self, message, source=None):
        super().__init__(message)
        self.diagnostic_source = source


def test_diagnostic_causes_prefers_diagnostic_source():
    leaf = ValueError("leaf")
    middle = _Chained("middle")
    middle.__cause__ = leaf
    top = _Chained("top", middle)
    top.__cause__ = RuntimeError("ignored")
    assert [str(c) for c in diagnostic_causes(top)] == ["middle", "leaf"]


def test_diagnostic_causes_empty_and_cyclic():
    assert list(diagnostic_causes(Diagnostic("alone"))) == []
    a = _Chained("a")
    b = _Chained("b", a)
    a.diagnostic_source = b
    assert [str(c) for c in diagnostic_causes(a)] == ["b", "a"]