"""Boxes and arrows drawn with terminal line characters."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import IntEnum
from typing import TextIO

__all__ = ["Style", "Pen", "Drawing"]


class Style(IntEnum):
    """Line style for boxes."""

    DOUBLE_LINE = 0
    SINGLE_LINE = 1
    DASHED_LINE = 2
    NO_LINE = 3


@dataclass(frozen=True)
class _StyleDef:
    corner_tl: str
    corner_tr: str
    corner_bl: str
    corner_br: str
    line_h: str
    line_v: str


_STYLE_DEFS = {
    Style.DOUBLE_LINE: _StyleDef("\u2554", "\u2557", "\u255a", "\u255d", "\u2550", "\u2551"),
    Style.SINGLE_LINE: _StyleDef("\u256d", "\u256e", "\u2570", "\u256f", "\u2500", "\u2502"),
    Style.DASHED_LINE: _StyleDef("\u250c", "\u2510", "\u2514", "\u2518", "\u254c", "\u254e"),
    Style.NO_LINE: _StyleDef(" ", " ", " ", " ", " ", " "),
}


@dataclass
class Drawing:
    """Rendered text together with its nominal width."""

    text: str
    width: int

    def draw(self, writer: TextIO, center_on_width: int) -> None:
        """Write the non-empty lines, centred on ``center_on_width`` columns."""
        padding = " " * max(0, (center_on_width - self.width) // 2)
        for line in self.text.split("\n"):
            if line:
                writer.write(f"{padding}{line}\n")


class Pen:
    """Draws boxes and arrows in one style and colour.

    Colours are turned off when the CLICOLOR environment variable is "0".
    """

    def __init__(self, style: Style, color: int) -> None:
        self.style = Style(style)
        bgcolor = 49
        if os.environ.get("CLICOLOR") == "0":
            color = 0
            bgcolor = 0
        self.color = color
        self.bgcolor = bgcolor

    def _row(self, labels: tuple[str, ...], render) -> str:
        cells = (
            f" \x1b[{self.color};{self.bgcolor}m{render(label)}\x1b[0m" for label in labels
        )
        return "".join(cells) + "\n"

    def draw_arrow(self) -> Drawing:
        """Draw a downward arrow between rows of boxes."""
        return Drawing(f"\x1b[{self.color}m\u2b07\x1b[0m", 1)

    def draw_boxes(self, *args: str) -> Drawing:
        """Draw one row of boxes, one per label."""
        s = _STYLE_DEFS[self.style]
        width = sum(len(label) + 2 + 2 + 1 for label in args)
        top = self._row(
            args, lambda label: f"{s.corner_tl}{s.line_h * (len(label) + 2)}{s.corner_tr}"
        )
        middle = self._row(args, lambda label: f"{s.line_v} {label} {s.line_v}")
        bottom = self._row(
            args, lambda label: f"{s.corner_bl}{s.line_h * (len(label) + 2)}{s.corner_br}"
        )
        return Drawing(top + middle + bottom, width)