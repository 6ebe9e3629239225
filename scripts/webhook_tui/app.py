"""Webhook wizard: pick a template, fill it in, preview, send."""

from __future__ import annotations

import curses
import os
import sys
from typing import Sequence

from .controller import WizardController
from .dispatcher import Dispatcher
from .keys import translate_key
from .logstore import LogStore
from .models import AppConfig, FormSession, Success
from .payload import build_message, preview_lines
from .screens import (
    draw_dispatching,
    draw_editing,
    draw_preview,
    draw_result,
    draw_selection,
    footer_hints,
)
from .state import Action, Completed, Dispatching, Editing, Previewing, Selecting
from .system_ops import ConfigError, EndpointError, build_config, redact_url, webhook_token
from .templates import TemplateDirError, TemplateStore
from .theme import Theme
from .views import draw_box, safe_addstr
from .widgets import draw_badge, draw_key_hints

MIN_H = 16
MIN_W = 60

SCREEN_BADGES = {
    Selecting: "SELECT",
    Editing: "EDIT",
    Previewing: "PREVIEW",
    Dispatching: "SENDING",
    Completed: "RESULT",
}


class WebhookTUI:
    def __init__(self, stdscr: curses.window, controller: WizardController) -> None:
        self.stdscr = stdscr
        self.controller = controller
        self.theme = Theme(has_color=False)
        self.tick = 0
        self.endpoint = redact_url(controller.dispatcher.url)

    def run(self) -> None:
        curses.curs_set(0)
        self.stdscr.nodelay(False)
        # Short timeout keeps the spinner moving while a dispatch is outstanding.
        self.stdscr.timeout(120)
        self.stdscr.keypad(True)
        self.theme = Theme.init()

        while self.controller.running:
            self.controller.poll()
            self._draw()
            self.tick += 1
            try:
                key = self.stdscr.get_wch()
            except curses.error:
                continue
            action = translate_key(self.controller.state.screen, key)
            if action is not None:
                self.controller.handle(action)

    def _draw(self) -> None:
        self.stdscr.erase()
        h, w = self.stdscr.getmaxyx()
        if h < MIN_H or w < MIN_W:
            safe_addstr(self.stdscr, 0, 0, f"Terminal too small. Resize to at least {MIN_W}x{MIN_H}.", self.theme.attrs.error)
            self.stdscr.refresh()
            return

        state = self.controller.state
        screen = state.screen
        store = self.controller.store
        body_y = 3
        body_h = h - 6

        safe_addstr(self.stdscr, 0, 2, "PTWEBHOOK :: TEMPLATE SENDER", self.theme.attrs.heading)
        safe_addstr(self.stdscr, 1, 2, f"endpoint: {self.endpoint}", self.theme.attrs.muted)
        draw_badge(self.stdscr, self.theme, 1, max(2, w - 12), SCREEN_BADGES[type(screen)], "heading")

        session = state.session
        if isinstance(screen, Selecting):
            draw_selection(self.stdscr, self.theme, body_y, body_h, w, state, store, self.controller.logstore)
        elif isinstance(screen, Editing) and session is not None:
            draw_editing(self.stdscr, self.theme, body_y, body_h, w, session)
        elif isinstance(screen, (Previewing, Dispatching)) and session is not None:
            draw_preview(self.stdscr, self.theme, body_y, body_h, w, session)
            if isinstance(screen, Dispatching):
                draw_dispatching(self.stdscr, self.theme, h, w, self.tick, self.controller.dispatch_elapsed)
        elif isinstance(screen, Completed):
            if session is not None:
                draw_preview(self.stdscr, self.theme, body_y, body_h, w, session)
            draw_result(self.stdscr, self.theme, h, w, screen)

        draw_box(self.stdscr, h - 3, 0, 3, w, "KEYS", self.theme.attrs.panel)
        draw_key_hints(self.stdscr, self.theme, h - 2, 2, footer_hints(state))
        safe_addstr(self.stdscr, 2, 2, state.status_line[: max(0, w - 6)], self.theme.attrs.info)
        self.stdscr.refresh()


def _curses_main(stdscr: curses.window, controller: WizardController) -> None:
    WebhookTUI(stdscr, controller).run()


def _prompt(label: str) -> str | None:
    try:
        return input(label)
    except EOFError:
        return None


def _plain_select(controller: WizardController) -> None:
    store = controller.store
    print("\nTemplates")
    print("=========")
    if not store:
        print("No templates found.")
        _prompt("Press Enter to quit: ")
        controller.handle(Action("quit"))
        return
    for idx, (tid, template) in enumerate(store.entries, start=1):
        marker = "*" if idx - 1 == controller.state.selected else " "
        print(f"{marker}{idx:2d}) {template.name:<28} {template.description} [{tid}]")
    raw = _prompt(f"Select [1-{len(store)}] or q: ")
    if raw is None or raw.strip().lower() == "q":
        controller.handle(Action("quit"))
        return
    raw = raw.strip()
    if raw == "":
        controller.handle(Action("confirm"))
        return
    if not raw.isdigit() or not 1 <= int(raw) <= len(store):
        print("Invalid selection.")
        return
    target = int(raw) - 1
    while controller.state.selected != target:
        controller.handle(Action("next"))
    controller.handle(Action("confirm"))


def _focus_field(controller: WizardController, idx: int) -> None:
    """Walk the form cursor to ``idx`` in whichever direction it lies."""
    while True:
        session = controller.state.session
        if session is None or not isinstance(controller.state.screen, Editing) or session.cursor == idx:
            return
        controller.handle(Action("next" if session.cursor < idx else "prev"))


def _plain_edit(controller: WizardController, session: FormSession) -> None:
    template = session.template
    print(f"\n=== {template.name} ===")
    print(template.description)
    print("Blank keeps the current value, '-' clears it.")
    for idx, (key, fdef) in enumerate(template.fields):
        _focus_field(controller, idx)
        current = controller.state.session.value(key) if controller.state.session else ""
        hint = f" options: {', '.join(fdef.options)}" if fdef.options else ""
        required = " *" if fdef.required else ""
        raw = _prompt(f"{fdef.label}{required} [{current or fdef.placeholder or ''}]{hint}: ")
        if raw is None:
            controller.handle(Action("quit"))
            return
        if raw == "":
            continue
        controller.handle(Action("clear"))
        if raw == "-":
            continue
        for ch in raw:
            controller.handle(Action("char", char=ch))
    controller.handle(Action("confirm"))


def _plain_preview(controller: WizardController, session: FormSession) -> None:
    message = build_message(session.template, session)
    print("\n--- Preview ---")
    for line in preview_lines(message, session.missing_required()):
        print(line)
    raw = _prompt("S) Send  E) Edit  B) Back to templates  Q) Quit: ")
    choice = (raw or "q").strip().lower()
    if choice == "s":
        controller.handle(Action("confirm"))
        print("Sending message...")
        controller.wait()
    elif choice == "e":
        controller.handle(Action("cancel"))
    elif choice == "b":
        controller.handle(Action("cancel"))
        controller.handle(Action("cancel"))
    elif choice == "q":
        controller.handle(Action("quit"))
    else:
        print("Unknown option.")


def run_plain_console(controller: WizardController) -> int:
    while controller.running:
        state = controller.state
        screen = state.screen
        if isinstance(screen, Selecting):
            _plain_select(controller)
        elif isinstance(screen, Editing):
            if state.session is None:
                controller.handle(Action("cancel"))
                continue
            _plain_edit(controller, state.session)
        elif isinstance(screen, Previewing):
            if state.session is None:
                controller.handle(Action("cancel"))
                continue
            _plain_preview(controller, state.session)
        elif isinstance(screen, Dispatching):
            controller.wait()
        elif isinstance(screen, Completed):
            print(f"\nResult: {screen.outcome.describe()}")
            raw = _prompt("Enter to continue, q to quit: ")
            if raw is None or raw.strip().lower() == "q":
                controller.handle(Action("quit"))
            else:
                controller.handle(Action("confirm"))
        else:
            raise TypeError(f"unhandled wizard screen: {screen!r}")
    print(f"Log file: {controller.logstore.log_path}")
    return 0


def run_push(config: AppConfig, store: TemplateStore, dispatcher: Dispatcher, logstore: LogStore) -> int:
    template = store.get(config.template)
    if template is None:
        print(f"Error: can't find template \"{config.template}\".", file=sys.stderr)
        return 1
    session = FormSession.start(template)
    for key, value in config.overrides.items():
        if template.get_field(key) is None:
            print(f"Error: template \"{template.template_id}\" has no field \"{key}\".", file=sys.stderr)
            return 1
        session = session.with_value(key, value)

    missing = session.missing_required()
    if missing:
        print(f"warning: missing required fields: {', '.join(missing)}", file=sys.stderr)

    message = build_message(template, session)
    logstore.append("info", "dispatch", f"push '{template.name}' to {redact_url(dispatcher.url)}", ref=template.template_id)
    outcome = dispatcher.send(message)
    level = "info" if isinstance(outcome, Success) else "error"
    logstore.append(level, "dispatch", outcome.describe(), ref=template.template_id)
    print(outcome.describe())
    return 0 if isinstance(outcome, Success) else 1


def main(argv: Sequence[str] | None = None) -> int:
    try:
        config = build_config(argv)
    except (EndpointError, ConfigError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    logstore = LogStore(log_dir=config.log_dir)
    logstore.add_secret(webhook_token(config.webhook_url))
    try:
        store = TemplateStore.load(config.templates_dir, logstore)
    except TemplateDirError as exc:
        logstore.append("error", "templates", str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if config.template and store.get(config.template) is None:
        print(f"Error: can't find template \"{config.template}\".", file=sys.stderr)
        return 1

    dispatcher = Dispatcher(config.webhook_url, timeout=config.timeout)
    if config.push:
        return run_push(config, store, dispatcher, logstore)

    for diag in store.diagnostics:
        print(f"warning: skipped {diag.format_line()}", file=sys.stderr)

    controller = WizardController(
        store,
        dispatcher,
        logstore,
        timeout=config.timeout,
        preselect=config.template,
    )
    if config.plain:
        return run_plain_console(controller)

    print("Starting webhook wizard...")
    print(f"Webhook URL: {redact_url(config.webhook_url)}")
    print(f"Templates: {len(store)} loaded from {config.templates_dir}")
    os.environ.setdefault("ESCDELAY", "25")
    try:
        curses.wrapper(_curses_main, controller)
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
