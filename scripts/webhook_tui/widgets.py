from __future__ import annotations

import curses

from .models import FieldDefinition
from .theme import Theme
from .views import safe_addstr


def draw_badge(stdscr: curses.window, theme: Theme, y: int, x: int, text: str, kind: str = "info") -> None:
    attr = theme.attrs.info
    if kind == "warning":
        attr = theme.attrs.warning
    elif kind == "error":
        attr = theme.attrs.error
    elif kind == "success":
        attr = theme.attrs.success
    elif kind == "heading":
        attr = theme.attrs.heading
    safe_addstr(stdscr, y, x, f"[{text}]", attr)


def draw_key_hints(stdscr: curses.window, theme: Theme, y: int, x: int, hints: list[tuple[str, str]]) -> None:
    col = x
    for key, label in hints:
        safe_addstr(stdscr, y, col, key, theme.attrs.heading)
        col += len(key)
        text = f": {label}  "
        safe_addstr(stdscr, y, col, text, theme.attrs.muted)
        col += len(text)


def field_marker(fdef: FieldDefinition, value: str, current: bool) -> str:
    if current:
        return ">"
    if value:
        return "+"
    if fdef.required:
        return "!"
    return " "


def draw_field_row(
    stdscr: curses.window,
    theme: Theme,
    y: int,
    x: int,
    width: int,
    fdef: FieldDefinition,
    value: str,
    *,
    current: bool,
) -> None:
    marker = field_marker(fdef, value, current)
    label = f"{marker} {fdef.label}{' *' if fdef.required else ''}: "
    label_attr = theme.attrs.editing if current else theme.attrs.heading
    safe_addstr(stdscr, y, x, label, label_attr)

    col = x + len(label)
    room = max(4, width - len(label) - 1)
    if value:
        shown = value if len(value) <= room else "..." + value[-(room - 3):]
        attr = theme.attrs.editing if current else theme.attrs.filled
    else:
        shown = fdef.placeholder or "(empty)"
        attr = theme.attrs.required if fdef.required and not current else theme.attrs.muted
    safe_addstr(stdscr, y, col, shown[:room], attr)
    if current and fdef.options:
        safe_addstr(stdscr, y + 1, x + 4, "options: " + " | ".join(fdef.options), theme.attrs.muted)
