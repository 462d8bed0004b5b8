"""Rich diagnostics with labelled source spans and graphical, narrated, JSON and debug renderers."""

__version__ = "0.1.0"