from __future__ import annotations

import curses

from .logstore import LogStore
from .models import FormSession, HttpError, NetworkError, Success
from .payload import build_message, preview_lines
from .state import Completed, Dispatching, Editing, Previewing, WizardState
from .templates import TemplateStore
from .theme import Theme
from .views import centered, clear_rect, draw_box, safe_addstr, spinner, wrap_text
from .widgets import draw_badge, draw_field_row, draw_key_hints


def draw_selection(
    stdscr: curses.window,
    theme: Theme,
    y: int,
    h: int,
    w: int,
    state: WizardState,
    store: TemplateStore,
    logstore: LogStore,
) -> None:
    draw_box(stdscr, y, 0, h, w, f"TEMPLATES ({len(store)})", theme.attrs.panel)
    if not store:
        where = store.directory or "templates"
        safe_addstr(stdscr, y + 2, 2, f"No templates found in {where}.", theme.attrs.warning)
        safe_addstr(stdscr, y + 3, 2, "Add *.toml files there and restart.", theme.attrs.muted)
    else:
        rows = max(1, h - 7)
        offset = max(0, state.selected - rows + 1)
        for idx, (tid, template) in enumerate(store.entries[offset : offset + rows]):
            absolute = idx + offset
            row = y + 1 + idx
            selected = absolute == state.selected
            marker = ">" if selected else " "
            line = f" {marker} {template.name[:28]:<28}  {template.description}"
            safe_addstr(stdscr, row, 2, line[: w - len(tid) - 8].ljust(w - len(tid) - 8), theme.attrs.selected if selected else theme.attrs.panel)
            draw_badge(stdscr, theme, row, max(2, w - len(tid) - 5), tid, "heading" if selected else "info")

    # Recent load diagnostics stay visible under the list.
    problems = logstore.filtered({"warn", "error"}, "", {"templates"})[-3:]
    for idx, entry in enumerate(problems):
        safe_addstr(stdscr, y + h - 2 - len(problems) + idx, 2, entry.message, theme.attrs.warning)


def draw_editing(stdscr: curses.window, theme: Theme, y: int, h: int, w: int, session: FormSession) -> None:
    template = session.template
    draw_box(stdscr, y, 0, h, w, f"FORM :: {template.name}", theme.attrs.panel)
    safe_addstr(stdscr, y + 1, 2, template.description, theme.attrs.muted)
    if template.field_count == 0:
        safe_addstr(stdscr, y + 3, 2, "This template has no fields.", theme.attrs.muted)
        return
    row = y + 3
    for idx, (key, fdef) in enumerate(template.fields):
        if row >= y + h - 1:
            break
        current = idx == session.cursor
        draw_field_row(stdscr, theme, row, 2, w - 4, fdef, session.value(key), current=current)
        row += 2 if current and fdef.options else 1


def draw_preview(stdscr: curses.window, theme: Theme, y: int, h: int, w: int, session: FormSession) -> None:
    message = build_message(session.template, session)
    draw_box(stdscr, y, 0, h, w, "PREVIEW", theme.attrs.panel)
    row = y + 1
    for line in preview_lines(message, session.missing_required()):
        for chunk in wrap_text(line, w - 4):
            if row >= y + h - 1:
                return
            attr = theme.attrs.panel
            if chunk.startswith("Missing required"):
                attr = theme.attrs.warning
            elif chunk.startswith("Embed Title"):
                attr = theme.attrs.heading
            safe_addstr(stdscr, row, 2, chunk, attr)
            row += 1


def draw_dispatching(stdscr: curses.window, theme: Theme, h: int, w: int, tick: int, elapsed: float) -> None:
    py, px, ph, pw = centered(h, w, 30, 60)
    clear_rect(stdscr, py, px, ph, pw)
    draw_box(stdscr, py, px, ph, pw, "SENDING", theme.attrs.warning)
    safe_addstr(stdscr, py + 2, px + 4, f"[{spinner(tick)}] Sending message... {elapsed:4.1f}s", theme.attrs.warning)
    safe_addstr(stdscr, py + 3, px + 4, "Esc cancels and returns to the preview.", theme.attrs.muted)


def draw_result(stdscr: curses.window, theme: Theme, h: int, w: int, screen: Completed) -> None:
    outcome = screen.outcome
    py, px, ph, pw = centered(h, w, 40, 70)
    clear_rect(stdscr, py, px, ph, pw)
    if isinstance(outcome, Success):
        title, attr, headline = "SUCCESS", theme.attrs.success, "Operation completed successfully!"
    elif isinstance(outcome, HttpError):
        title, attr, headline = "HTTP ERROR", theme.attrs.error, f"Server rejected the message (HTTP {outcome.status})."
    elif isinstance(outcome, NetworkError):
        title, attr, headline = "NETWORK ERROR", theme.attrs.error, f"Request failed ({outcome.kind})."
    else:
        raise TypeError(f"unhandled dispatch outcome: {outcome!r}")
    draw_box(stdscr, py, px, ph, pw, title, attr)
    safe_addstr(stdscr, py + 2, px + 3, headline, attr)
    row = py + 4
    for chunk in wrap_text(outcome.describe(), pw - 6):
        if row >= py + ph - 2:
            break
        safe_addstr(stdscr, row, px + 3, chunk, attr)
        row += 1
    draw_key_hints(stdscr, theme, py + ph - 2, px + 3, [("Enter/Esc", "back to templates"), ("q", "quit")])


def footer_hints(state: WizardState) -> list[tuple[str, str]]:
    screen = state.screen
    if isinstance(screen, Dispatching):
        return [("Esc", "cancel"), ("Ctrl+X", "quit")]
    if isinstance(screen, Completed):
        return [("Enter/Esc", "back"), ("q", "quit")]
    if isinstance(screen, Editing):
        return [
            ("Up/Down/Tab", "field"),
            ("Type", "edit"),
            ("Left/Right", "option"),
            ("Ctrl+U", "clear"),
            ("Enter", "preview"),
            ("Esc", "back"),
            ("Ctrl+X", "quit"),
        ]
    if isinstance(screen, Previewing):
        return [("Enter/Space", "send"), ("Esc", "edit"), ("q", "quit")]
    return [("Up/Down/jk", "navigate"), ("Enter/Space", "select"), ("q/Esc", "quit")]
