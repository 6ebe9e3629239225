from __future__ import annotations

import curses
from dataclasses import dataclass


@dataclass(frozen=True)
class ThemeAttrs:
    panel: int
    heading: int
    muted: int
    selected: int
    editing: int
    filled: int
    required: int
    success: int
    error: int
    warning: int
    info: int


class Theme:
    def __init__(self, has_color: bool) -> None:
        self.has_color = has_color
        self.attrs = ThemeAttrs(
            panel=0,
            heading=curses.A_BOLD,
            muted=curses.A_DIM,
            selected=curses.A_REVERSE | curses.A_BOLD,
            editing=curses.A_REVERSE,
            filled=0,
            required=curses.A_BOLD,
            success=curses.A_BOLD,
            error=curses.A_BOLD,
            warning=curses.A_BOLD,
            info=0,
        )

    @classmethod
    def init(cls) -> "Theme":
        has_color = curses.has_colors()
        theme = cls(has_color=has_color)
        if not has_color:
            return theme

        curses.start_color()
        curses.use_default_colors()

        curses.init_pair(1, curses.COLOR_WHITE, -1)
        curses.init_pair(2, curses.COLOR_CYAN, -1)
        curses.init_pair(3, curses.COLOR_GREEN, -1)
        curses.init_pair(4, curses.COLOR_RED, -1)
        curses.init_pair(5, curses.COLOR_YELLOW, -1)
        curses.init_pair(6, curses.COLOR_BLACK, curses.COLOR_CYAN)    # selected template
        curses.init_pair(7, curses.COLOR_BLACK, curses.COLOR_YELLOW)  # field being edited
        curses.init_pair(8, curses.COLOR_BLUE, -1)

        theme.attrs = ThemeAttrs(
            panel=curses.color_pair(1),
            heading=curses.color_pair(2) | curses.A_BOLD,
            muted=curses.A_DIM,
            selected=curses.color_pair(6) | curses.A_BOLD,
            editing=curses.color_pair(7) | curses.A_BOLD,
            filled=curses.color_pair(2),
            required=curses.color_pair(4),
            success=curses.color_pair(3) | curses.A_BOLD,
            error=curses.color_pair(4) | curses.A_BOLD,
            warning=curses.color_pair(5) | curses.A_BOLD,
            info=curses.color_pair(8),
        )
        return theme
