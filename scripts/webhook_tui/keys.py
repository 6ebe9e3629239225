from __future__ import annotations

import curses

from .state import Action, Completed, Dispatching, Editing, Previewing, Screen, Selecting

KEY_ENTER = {10, 13, curses.KEY_ENTER}
KEY_BACK = {curses.KEY_BACKSPACE, 127, 8}
KEY_ESCAPE = {27, curses.KEY_EXIT}
CTRL_U = "\x15"
CTRL_X = "\x18"


def is_enter(key: object) -> bool:
    return isinstance(key, int) and key in KEY_ENTER or key in ("\n", "\r")


def is_backspace(key: object) -> bool:
    return isinstance(key, int) and key in KEY_BACK or key in ("\x7f", "\b")


def is_escape(key: object) -> bool:
    return isinstance(key, int) and key in KEY_ESCAPE or key == "\x1b"


def translate_key(screen: Screen, key: object) -> Action | None:
    """Map a ``get_wch`` result to a wizard action for the current screen."""
    if key == CTRL_X:
        return Action("quit")

    if isinstance(screen, Editing):
        if is_escape(key):
            return Action("cancel")
        if is_enter(key):
            return Action("confirm")
        if key in (curses.KEY_DOWN, "\t"):
            return Action("next")
        if key in (curses.KEY_UP, curses.KEY_BTAB):
            return Action("prev")
        if key == curses.KEY_RIGHT:
            return Action("option_next")
        if key == curses.KEY_LEFT:
            return Action("option_prev")
        if is_backspace(key):
            return Action("backspace")
        if key == CTRL_U:
            return Action("clear")
        if isinstance(key, str) and key.isprintable():
            return Action("char", char=key)
        return None

    if key in ("q", "Q"):
        return Action("quit")

    if isinstance(screen, Selecting):
        if is_escape(key):
            return Action("quit")
        if key in (curses.KEY_DOWN, "j"):
            return Action("next")
        if key in (curses.KEY_UP, "k"):
            return Action("prev")
        if is_enter(key) or key == " ":
            return Action("confirm")
        return None
    if isinstance(screen, Previewing):
        if is_escape(key):
            return Action("cancel")
        if is_enter(key) or key == " ":
            return Action("confirm")
        return None
    if isinstance(screen, Dispatching):
        if is_escape(key):
            return Action("cancel")
        return None
    if isinstance(screen, Completed):
        if is_escape(key):
            return Action("cancel")
        if is_enter(key) or key == " ":
            return Action("confirm")
        return None
    raise TypeError(f"unhandled wizard screen: {screen!r}")
