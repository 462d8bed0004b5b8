import pytest

from diagrep.miette_diagnostic import MietteDiagnostic
from diagrep.named_source import NamedSource
from diagrep.narratable import NarratableReportHandler
from diagrep.protocol import Diagnostic, LabeledSpan, Severity, SpanOutOfBounds

SOURCE = "source\n  text\n    here"


class _WithSource(Diagnostic):
    def __init__(self, message, source_code=None, labels=None, related=None):
        super().__init__(message)
        self.source_code = source_code
        self.labels = labels
        self.related = related


def test_plain_message_and_severity():
    out = NarratableReportHandler().render_report(MietteDiagnostic("oops"))
    assert out == "oops\n    Diagnostic severity: error\n"


def test_plain_string_is_accepted():
    out = NarratableReportHandler().render_report("oops")
    assert out == "oops\n    Diagnostic severity: error\n"


def test_severity_names():
    handler = NarratableReportHandler()
    warn = handler.render_report(MietteDiagnostic("x").with_severity(Severity.WARNING))
    advice = handler.render_report(MietteDiagnostic("x").with_severity(Severity.ADVICE))
    assert "    Diagnostic severity: warning\n" in warn
    assert "    Diagnostic severity: advice\n" in advice


def test_footer_fields_in_order():
    diag = MietteDiagnostic("oops").with_help("h").with_code("c").with_url("u")
    out = NarratableReportHandler().render_report(diag)
    assert out.endswith("diagnostic help: h\ndiagnostic code: c\nFor more details, see:\nu\n")


def test_single_line_highlight():
    diag = _WithSource(
        "oops!",
        source_code=NamedSource("bad_file.rs", SOURCE),
        labels=[LabeledSpan.at((9, 4), "this bit here")],
    )
    out = NarratableReportHandler().render_report(diag)
    expected = (
        "oops!\n"
        "    Diagnostic severity: error\n"
        "Begin snippet for bad_file.rs starting at line 1, column 1\n"
        "\n"
        "snippet line 1: source\n"
        "snippet line 2:   text\n"
        "    label at line 2, columns 3 to 6: this bit here\n"
        "snippet line 3:     here\n"
    )
    assert out == expected


def test_unnamed_source_has_no_for_clause():
    diag = _WithSource("oops", source_code=SOURCE, labels=[LabeledSpan.underline((9, 4))])
    out = NarratableReportHandler().render_report(diag)
    assert "Begin snippet starting at line 1, column 1\n" in out
    assert "    label at line 2, columns 3 to 6\n" in out


def test_zero_length_label_names_one_column():
    diag = _WithSource("oops", source_code=SOURCE, labels=[LabeledSpan.at_offset(9, "here")])
    out = NarratableReportHandler().render_report(diag)
    assert "    label at line 2, column 3: here\n" in out


def test_multiline_label_starts_and_ends():
    diag = _WithSource("oops", source_code=SOURCE, labels=[LabeledSpan.at((2, 10), "x")])
    out = NarratableReportHandler().render_report(diag)
    assert "    label starting at line 1, column 3: x\n" in out
    assert "    label ending at line 2, column 5: x\n" in out


def test_context_lines_limit_snippet():
    src = "a\nb\nc\n"
    diag = _WithSource("oops", source_code=src, labels=[LabeledSpan.at((2, 1), "b")])
    narrow = NarratableReportHandler().with_context_lines(0).render_report(diag)
    wide = NarratableReportHandler().render_report(diag)
    assert "snippet line 2: b\n" in narrow
    assert "snippet line 1" not in narrow
    assert "snippet line 1: a\n" in wide
    assert "snippet line 2: b\n" in wide


def test_labels_on_same_line_share_snippet():
    diag = _WithSource(
        "oops",
        source_code="hello world",
        labels=[LabeledSpan.at((6, 5), "second"), LabeledSpan.at((0, 5), "first")],
    )
    out = NarratableReportHandler().render_report(diag)
    assert out.count("Begin snippet") == 1
    assert out.index(": first") < out.index(": second")


def test_distant_labels_get_separate_snippets():
    diag = _WithSource(
        "oops",
        source_code="a\nb\nc\nd\ne\n",
        labels=[LabeledSpan.at_offset(0, "one"), LabeledSpan.at_offset(8, "two")],
    )
    out = NarratableReportHandler().with_context_lines(0).render_report(diag)
    assert out.count("Begin snippet") == 2


def test_label_out_of_bounds_raises():
    diag = _WithSource("oops", source_code="short", labels=[LabeledSpan.at((100, 1), "x")])
    with pytest.raises(SpanOutOfBounds):
        NarratableReportHandler().render_report(diag)


def test_no_source_means_no_snippet():
    diag = MietteDiagnostic("oops").with_label(LabeledSpan.at((0, 1), "x"))
    out = NarratableReportHandler().render_report(diag)
    assert "Begin snippet" not in out


def test_cause_chain_toggle():
    diag = MietteDiagnostic("outer")
    diag.__cause__ = ValueError("inner")
    handler = NarratableReportHandler()
    assert "    Caused by: inner\n" in handler.render_report(diag)
    assert "Caused by" not in handler.without_cause_chain().render_report(diag)
    assert "    Caused by: inner\n" in (
        handler.without_cause_chain().with_cause_chain().render_report(diag)
    )


def test_related_rendering():
    diag = _WithSource(
        "parent", related=[MietteDiagnostic("child").with_severity(Severity.WARNING)]
    )
    out = NarratableReportHandler().render_report(diag)
    assert out == (
        "parent\n    Diagnostic severity: error\n"
        "\nWarning: child\n    Diagnostic severity: warning\n\n"
    )


def test_related_uses_parent_source():
    child = _WithSource("child", labels=[LabeledSpan.at((9, 4), "here")])
    parent = _WithSource("parent", source_code=SOURCE, related=[child])
    out = NarratableReportHandler().render_report(parent)
    assert out.count("Begin snippet") == 1
    assert out.index("Error: child") < out.index("Begin snippet")


def test_footer_is_last():
    out = NarratableReportHandler().with_footer("bye").render_report(MietteDiagnostic("x"))
    assert out.endswith("bye\n")


def test_builders_return_copies():
    handler = NarratableReportHandler()
    changed = handler.with_context_lines(3).without_cause_chain()
    assert handler.context_lines == 1
    assert handler.cause_chain is True
    assert changed.context_lines == 3
    assert changed.cause_chain is False


def test_negative_context_lines_rejected():
    with pytest.raises(ValueError):
        NarratableReportHandler().with_context_lines(-1)