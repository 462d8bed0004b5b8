# diagrep

`diagrep` lets you attach rich metadata to errors (codes, severity, help text,
URLs, labelled spans over source text, related diagnostics and causes) and
render them in several styles:

- `GraphicalReportHandler` (`diagrep.graphical`): quasi-graphical output with
  Unicode or ASCII drawing characters and optional ANSI colours.
- `NarratableReportHandler` (`diagrep.narratable`): plain text that is easy to
  follow with a screen reader.
- `JSONReportHandler` (`diagrep.json_handler`): machine-readable JSON.
- `DebugReportHandler` (`diagrep.debug`): a compact structural dump.

## Installing

```sh
pip install diagrep
```

## Building a diagnostic

`MietteDiagnostic` builds a diagnostic from plain values. Its `with_*` and
`and_*` methods return new copies:

```python
from diagrep.miette_diagnostic import MietteDiagnostic
from diagrep.protocol import LabeledSpan, Severity

diag = (
    MietteDiagnostic("Wrong answer")
    .with_code("math::precedence")
    .with_severity(Severity.WARNING)
    .with_help("'*' has greater precedence than '+'")
    .with_label(LabeledSpan.at((12, 1), "this should be 6"))
)
```

Labels point at byte ranges of the source. A span can be given as an
`(offset, length)` tuple, a `range`, a plain offset, a `SourceOffset` or a
`SourceSpan`; `SourceSpan.coerce` does the conversion.
`LabeledSpan.at_offset` makes a zero-length label and `LabeledSpan.underline`
an unlabelled one. `SourceOffset.from_location(source, line, column)` turns a
1-based line and column into a byte offset.

For your own error types, subclass `Diagnostic` from `diagrep.protocol` (it is
an `Exception`) and set any of its attributes: `code`, `severity`, `help`,
`url`, `source_code`, `labels`, `related` and `diagnostic_source`. An
exception's `__cause__` is followed as its ordinary cause.

## Source code

Plain `str` and `bytes` serve as source code, as does any subclass of
`SourceCode`. Wrap them in `NamedSource` to give the snippet a file name:

```python
from diagrep.named_source import NamedSource

diag.source_code = NamedSource("answer.txt", "2 + 2 * 2 = 8")
```

`diagrep.source_impls.read_span(source, span, before, after)` reads a span plus
the given number of context lines and returns a `SpanContents`. Reading a span
outside the source raises `SpanOutOfBounds`, a subclass of `MietteError`; the
graphical and narratable handlers let this error propagate.

## Rendering

```python
from diagrep.graphical import GraphicalReportHandler
from diagrep.narratable import NarratableReportHandler
from diagrep.json_handler import JSONReportHandler
from diagrep.theme import GraphicalTheme

graphical = (
    GraphicalReportHandler(theme=GraphicalTheme.unicode_nocolor())
    .with_width(80)
    .with_context_lines(2)
)
print(graphical.render_report(diag))

print(NarratableReportHandler().with_footer("see the docs").render_report(diag))
print(JSONReportHandler().render_report(diag))
```

Each handler's `render_report` returns the report as a string. Besides
diagnostics it accepts plain strings and ordinary exceptions, which are
wrapped with `as_diagnostic`.

`GraphicalReportHandler` also offers `with_tab_width`, `with_links`,
`with_urls`, `with_theme`, `with_wrap_lines`, `with_break_words`,
`with_footer`, `with_cause_chain` and `without_cause_chain`.
`GraphicalTheme.default()` (the handler's default theme) picks ASCII output
when stdout or stderr is not a terminal, monochrome Unicode when `NO_COLOR` is
set to something other than `0`, and coloured Unicode otherwise. Themes combine
`ThemeCharacters` with `ThemeStyles` (`rgb`, `ansi` or `none`).

## Serialising

`MietteDiagnostic.to_dict()` and `MietteDiagnostic.from_dict()` convert a
diagnostic to and from plain JSON-compatible data. `LabeledSpan`, `SourceSpan`
and `SourceOffset` have matching helpers.

## What it does not do

`diagrep` only builds and renders reports. It installs no global error or
exception hook and has no command-line program: call a handler's
`render_report` yourself and print or store the result.

## Running the tests

```sh
pip install -e ".[test]"
pytest
```