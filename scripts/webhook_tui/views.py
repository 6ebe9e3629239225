from __future__ import annotations

import curses


def safe_addstr(stdscr: curses.window, y: int, x: int, text: str, attr: int = 0) -> None:
    h, w = stdscr.getmaxyx()
    if y < 0 or y >= h or x >= w:
        return
    if x < 0:
        text = text[-x:]
        x = 0
    if not text:
        return
    max_len = max(0, w - x - 1)
    if max_len <= 0:
        return
    try:
        stdscr.addnstr(y, x, text, max_len, attr)
    except curses.error:
        pass


def safe_addch(stdscr: curses.window, y: int, x: int, ch: int, attr: int = 0) -> None:
    h, w = stdscr.getmaxyx()
    if 0 <= y < h and 0 <= x < w:
        try:
            stdscr.addch(y, x, ch, attr)
        except curses.error:
            pass


def draw_box(stdscr: curses.window, y: int, x: int, h: int, w: int, title: str = "", attr: int = 0) -> None:
    if h < 2 or w < 2:
        return
    safe_addch(stdscr, y, x, curses.ACS_ULCORNER, attr)
    safe_addch(stdscr, y, x + w - 1, curses.ACS_URCORNER, attr)
    safe_addch(stdscr, y + h - 1, x, curses.ACS_LLCORNER, attr)
    safe_addch(stdscr, y + h - 1, x + w - 1, curses.ACS_LRCORNER, attr)
    for xx in range(x + 1, x + w - 1):
        safe_addch(stdscr, y, xx, curses.ACS_HLINE, attr)
        safe_addch(stdscr, y + h - 1, xx, curses.ACS_HLINE, attr)
    for yy in range(y + 1, y + h - 1):
        safe_addch(stdscr, yy, x, curses.ACS_VLINE, attr)
        safe_addch(stdscr, yy, x + w - 1, curses.ACS_VLINE, attr)
    if title:
        safe_addstr(stdscr, y, x + 2, f" {title} ", attr)


def clear_rect(stdscr: curses.window, y: int, x: int, h: int, w: int) -> None:
    for yy in range(y, y + h):
        safe_addstr(stdscr, yy, x, " " * w)


def centered(h: int, w: int, pct_h: int, pct_w: int) -> tuple[int, int, int, int]:
    ph = max(5, h * pct_h // 100)
    pw = max(20, w * pct_w // 100)
    return (max(0, (h - ph) // 2), max(0, (w - pw) // 2), min(ph, h), min(pw, w))


def wrap_text(text: str, width: int) -> list[str]:
    if width <= 1:
        return [text]
    out: list[str] = []
    for raw in text.splitlines() or [""]:
        wrapped = []
        start = 0
        while start < len(raw):
            wrapped.append(raw[start : start + width])
            start += width
        if not wrapped:
            wrapped = [""]
        out.extend(wrapped)
    return out


def spinner(tick: int) -> str:
    frames = ["|", "/", "-", "\\"]
    return frames[tick % len(frames)]
