from __future__ import annotations

import unicodedata
from dataclasses import dataclass, replace
from typing import Literal, Union

from .models import DispatchOutcome, FormSession
from .templates import TemplateStore

ActionType = Literal[
    "next",
    "prev",
    "confirm",
    "cancel",
    "char",
    "backspace",
    "clear",
    "option_next",
    "option_prev",
    "dispatch_done",
    "quit",
]


@dataclass(frozen=True)
class Selecting:
    pass


@dataclass(frozen=True)
class Editing:
    cursor: int = 0


@dataclass(frozen=True)
class Previewing:
    cursor: int = 0


@dataclass(frozen=True)
class Dispatching:
    cursor: int = 0
    dispatch_id: int = 0


@dataclass(frozen=True)
class Completed:
    outcome: DispatchOutcome


Screen = Union[Selecting, Editing, Previewing, Dispatching, Completed]


@dataclass(frozen=True)
class Action:
    type: ActionType
    char: str = ""
    outcome: DispatchOutcome | None = None
    dispatch_id: int = 0


@dataclass(frozen=True)
class WizardState:
    screen: Screen = Selecting()
    selected: int = 0
    session: FormSession | None = None
    next_dispatch_id: int = 1
    status_line: str = "Ready."
    running: bool = True


def clamp(n: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, n))


def _is_extender(ch: str) -> bool:
    if unicodedata.combining(ch):
        return True
    code = ord(ch)
    # Variation selectors and emoji skin-tone modifiers.
    return 0xFE00 <= code <= 0xFE0F or 0x1F3FB <= code <= 0x1F3FF or unicodedata.category(ch) == "Me"


def _is_regional(ch: str) -> bool:
    return 0x1F1E6 <= ord(ch) <= 0x1F1FF


def drop_last_char(value: str) -> str:
    """Remove the last user-visible character, including its combining marks."""
    end = len(value)
    while True:
        while end > 0 and _is_extender(value[end - 1]):
            end -= 1
        if end == 0:
            return ""
        end -= 1
        if _is_regional(value[end]):
            # Flags are regional-indicator pairs counted from the start of the run.
            run = end
            while run > 0 and _is_regional(value[run - 1]):
                run -= 1
            if (end - run) % 2 == 1:
                end -= 1
            return value[:end]
        if end > 0 and value[end - 1] == "\u200d":
            end -= 1
            continue
        return value[:end]


def initial_state(store: TemplateStore, preselect: str = "") -> WizardState:
    idx = store.index_of(preselect) if preselect else 0
    status = "Ready." if store else "No templates found."
    return WizardState(selected=max(0, idx), status_line=status)


def reduce(state: WizardState, action: Action, store: TemplateStore) -> WizardState:
    if action.type == "quit":
        return replace(state, running=False, status_line="Bye.")

    screen = state.screen
    if isinstance(screen, Selecting):
        return _reduce_selecting(state, action, store)
    if isinstance(screen, Editing):
        return _reduce_editing(state, screen, action)
    if isinstance(screen, Previewing):
        return _reduce_previewing(state, screen, action)
    if isinstance(screen, Dispatching):
        return _reduce_dispatching(state, screen, action)
    if isinstance(screen, Completed):
        return _reduce_completed(state, action)
    raise TypeError(f"unhandled wizard screen: {screen!r}")


def _reduce_selecting(state: WizardState, action: Action, store: TemplateStore) -> WizardState:
    count = len(store)
    if action.type in {"next", "prev"}:
        if count == 0:
            return state
        delta = 1 if action.type == "next" else -1
        return replace(state, selected=(state.selected + delta) % count)
    if action.type == "confirm":
        if count == 0:
            return replace(state, status_line="No templates to select.")
        idx = clamp(state.selected, 0, count - 1)
        template = store.at(idx)
        session = FormSession.start(template)
        return replace(
            state,
            screen=Editing(cursor=0),
            selected=idx,
            session=session,
            status_line=f"Editing '{template.name}'.",
        )
    return state


def _reduce_editing(state: WizardState, screen: Editing, action: Action) -> WizardState:
    session = state.session
    if session is None:
        return replace(state, screen=Selecting())

    if action.type == "cancel":
        return replace(state, screen=Selecting(), status_line="Back to templates.")
    if action.type == "confirm":
        missing = session.missing_required()
        status = f"Missing required: {', '.join(missing)}" if missing else "Review the message."
        return replace(state, screen=Previewing(cursor=screen.cursor), status_line=status)

    if action.type in {"next", "prev"}:
        if session.template.field_count == 0:
            return state
        delta = 1 if action.type == "next" else -1
        cursor = clamp(screen.cursor + delta, 0, session.template.field_count - 1)
        return replace(state, screen=Editing(cursor=cursor), session=session.with_cursor(cursor))

    key = session.current_key
    if not key:
        return state
    value = session.current_value

    if action.type == "char":
        if not action.char or not action.char.isprintable():
            return state
        return replace(state, session=session.with_value(key, value + action.char))
    if action.type == "backspace":
        if not value:
            return state
        return replace(state, session=session.with_value(key, drop_last_char(value)))
    if action.type == "clear":
        return replace(state, session=session.with_value(key, ""))
    if action.type in {"option_next", "option_prev"}:
        fdef = session.template.get_field(key)
        if fdef is None or not fdef.options:
            return state
        options = list(fdef.options)
        if value in options:
            idx = options.index(value) + (1 if action.type == "option_next" else -1)
        else:
            idx = 0 if action.type == "option_next" else len(options) - 1
        idx = clamp(idx, 0, len(options) - 1)
        return replace(
            state,
            session=session.with_value(key, options[idx]),
            status_line=f"{fdef.label} set to {options[idx]}",
        )
    return state


def _reduce_previewing(state: WizardState, screen: Previewing, action: Action) -> WizardState:
    if action.type == "cancel":
        return replace(state, screen=Editing(cursor=screen.cursor), status_line="Back to editing.")
    if action.type == "confirm":
        if state.session is None:
            return replace(state, screen=Selecting())
        dispatch_id = state.next_dispatch_id
        return replace(
            state,
            screen=Dispatching(cursor=screen.cursor, dispatch_id=dispatch_id),
            next_dispatch_id=dispatch_id + 1,
            status_line="Sending message...",
        )
    return state


def _reduce_dispatching(state: WizardState, screen: Dispatching, action: Action) -> WizardState:
    if action.type == "dispatch_done":
        if action.dispatch_id != screen.dispatch_id or action.outcome is None:
            return state
        return replace(state, screen=Completed(outcome=action.outcome), status_line=action.outcome.describe())
    if action.type == "cancel":
        return replace(state, screen=Previewing(cursor=screen.cursor), status_line="Send cancelled.")
    return state


def _reduce_completed(state: WizardState, action: Action) -> WizardState:
    if action.type in {"confirm", "cancel"}:
        return replace(state, screen=Selecting(), session=None, status_line="Ready.")
    return state
