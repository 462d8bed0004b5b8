"""Characters and styles used to draw graphical reports."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Any, Optional, Union

_ANSI_FG = {
    "black": 30,
    "red": 31,
    "green": 32,
    "yellow": 33,
    "blue": 34,
    "magenta": 35,
    "cyan": 36,
    "white": 37,
}

_RESET = "\x1b[0m"

Colour = Union[str, tuple[int, int, int]]


@dataclass(frozen=True)
class Style:
    """A terminal text style: an optional foreground colour plus effects.

    ``fg`` is an ANSI colour name such as ``"red"`` or an ``(r, g, b)`` triple.
    """

    fg: Optional[Colour] = None
    bold: bool = False
    dimmed: bool = False
    underline: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.fg, str) and self.fg not in _ANSI_FG:
            raise ValueError(f"unknown colour name {self.fg!r}")
        if isinstance(self.fg, tuple):
            if len(self.fg) != 3 or not all(
                isinstance(part, int) and 0 <= part <= 255 for part in self.fg
            ):
                raise ValueError(f"invalid RGB colour {self.fg!r}")

    @property
    def is_plain(self) -> bool:
        """True if painting with this style leaves text unchanged."""
        return self.fg is None and not (self.bold or self.dimmed or self.underline)

    def _codes(self) -> list[str]:
        codes: list[str] = []
        if isinstance(self.fg, str):
            codes.append(str(_ANSI_FG[self.fg]))
        elif self.fg is not None:
            red, green, blue = self.fg
            codes.append(f"38;2;{red};{green};{blue}")
        if self.bold:
            codes.append("1")
        if self.dimmed:
            codes.append("2")
        if self.underline:
            codes.append("4")
        return codes

    def paint(self, text: Any) -> str:
        """Return ``text`` wrapped in this style's escape sequences."""
        text = str(text)
        if self.is_plain:
            return text
        return f"\x1b[{';'.join(self._codes())}m{text}{_RESET}"


@dataclass(frozen=True)
class ThemeStyles:
    """Styles for the parts of a graphical report."""

    error: Style
    warning: Style
    advice: Style
    help: Style
    link: Style
    linum: Style
    highlights: tuple[Style, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "highlights", tuple(self.highlights))
        if not self.highlights:
            raise ValueError("at least one highlight style is required")

    @classmethod
    def rgb(cls) -> "ThemeStyles":
        """Styles using full RGB colours."""
        return cls(
            error=Style(fg=(255, 30, 30)),
            warning=Style(fg=(244, 191, 117)),
            advice=Style(fg=(106, 159, 181)),
            help=Style(fg=(106, 159, 181)),
            link=Style(fg=(92, 157, 255), underline=True, bold=True),
            linum=Style(dimmed=True),
            highlights=(
                Style(fg=(246, 87, 248)),
                Style(fg=(30, 201, 212)),
                Style(fg=(145, 246, 111)),
            ),
        )

    @classmethod
    def ansi(cls) -> "ThemeStyles":
        """Styles using the basic ANSI colours."""
        return cls(
            error=Style(fg="red"),
            warning=Style(fg="yellow"),
            advice=Style(fg="cyan"),
            help=Style(fg="cyan"),
            link=Style(fg="cyan", underline=True, bold=True),
            linum=Style(dimmed=True),
            highlights=(
                Style(fg="magenta", bold=True),
                Style(fg="yellow", bold=True),
                Style(fg="green", bold=True),
            ),
        )

    @classmethod
    def none(cls) -> "ThemeStyles":
        """No styling at all."""
        plain = Style()
        return cls(
            error=plain,
            warning=plain,
            advice=plain,
            help=plain,
            link=plain,
            linum=plain,
            highlights=(plain,),
        )


@dataclass(frozen=True)
class ThemeCharacters:
    """Characters used to draw boxes, gutters and underlines."""

    hbar: str
    vbar: str
    xbar: str
    vbar_break: str
    uarrow: str
    rarrow: str
    ltop: str
    mtop: str
    rtop: str
    lbot: str
    rbot: str
    mbot: str
    lbox: str
    rbox: str
    lcross: str
    rcross: str
    underbar: str
    underline: str
    error: str
    warning: str
    advice: str

    @classmethod
    def unicode(cls) -> "ThemeCharacters":
        """Box-drawing unicode characters."""
        return cls(
            hbar="─",
            vbar="│",
            xbar="┼",
            vbar_break="·",
            uarrow="▲",
            rarrow="▶",
            ltop="╭",
            mtop="┬",
            rtop="╮",
            lbot="╰",
            mbot="┴",
            rbot="╯",
            lbox="[",
            rbox="]",
            lcross="├",
            rcross="┤",
            underbar="┬",
            underline="─",
            error="",
            warning="",
            advice="",
        )

    @classmethod
    def emoji(cls) -> "ThemeCharacters":
        """Unicode characters with emoji severity icons."""
        return cls.unicode()

    @classmethod
    def ascii(cls) -> "ThemeCharacters":
        """Plain ASCII characters, for older terminals."""
        return cls(
            hbar="-",
            vbar="|",
            xbar="+",
            vbar_break=":",
            uarrow="^",
            rarrow=">",
            ltop=",",
            mtop="v",
            rtop=".",
            lbot="`",
            mbot="^",
            rbot="'",
            lbox="[",
            rbox="]",
            lcross="|",
            rcross="|",
            underbar="|",
            underline="^",
            error="",
            warning="",
            advice="",
        )


def _is_terminal(stream: Any) -> bool:
    isatty = getattr(stream, "isatty", None)
    if isatty is None:
        return False
    try:
        return bool(isatty())
    except (OSError, ValueError):
        return False


@dataclass(frozen=True)
class GraphicalTheme:
    """A full theme: drawing characters plus styles."""

    characters: ThemeCharacters
    styles: ThemeStyles

    @classmethod
    def ascii(cls) -> "GraphicalTheme":
        """ASCII drawing with ANSI colours."""
        return cls(ThemeCharacters.ascii(), ThemeStyles.ansi())

    @classmethod
    def unicode(cls) -> "GraphicalTheme":
        """Unicode drawing with ANSI colours."""
        return cls(ThemeCharacters.unicode(), ThemeStyles.ansi())

    @classmethod
    def unicode_nocolor(cls) -> "GraphicalTheme":
        """Unicode drawing without colours."""
        return cls(ThemeCharacters.unicode(), ThemeStyles.none())

    @classmethod
    def none(cls) -> "GraphicalTheme":
        """Monochrome ASCII drawing."""
        return cls(ThemeCharacters.ascii(), ThemeStyles.none())

    @classmethod
    def default(cls) -> "GraphicalTheme":
        """Pick a theme from the terminal and the NO_COLOR variable."""
        if not (_is_terminal(sys.stdout) and _is_terminal(sys.stderr)):
            return cls.ascii()
        no_color = os.environ.get("NO_COLOR")
        if no_color is not None and no_color != "0":
            return cls.unicode_nocolor()
        return cls.unicode()