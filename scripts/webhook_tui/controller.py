from __future__ import annotations

import queue
import threading
from typing import Callable, Protocol

from .logstore import LogStore
from .models import DispatchOutcome, HttpError, Message, NetworkError, Success
from .payload import build_message
from .state import Action, Completed, Dispatching, WizardState, initial_state, reduce
from .system_ops import CancelToken, now, redact_url
from .templates import TemplateStore

DISPATCH_TIMEOUT = 30.0


class Sender(Protocol):
    url: str

    def send(self, message: Message) -> DispatchOutcome: ...


class WizardController:
    """Owns the wizard state and the single outstanding dispatch.

    Transitions go through the pure ``reduce``; the controller only adds the side
    effects: starting the worker when the wizard enters ``Dispatching``, cancelling
    it when the wizard leaves, and enforcing the overall deadline.
    """

    def __init__(
        self,
        store: TemplateStore,
        dispatcher: Sender,
        logstore: LogStore,
        *,
        timeout: float = DISPATCH_TIMEOUT,
        preselect: str = "",
        clock: Callable[[], float] = now,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.logstore = logstore
        self.timeout = timeout
        self.clock = clock
        self.state: WizardState = initial_state(store, preselect)
        self.results: queue.Queue[tuple[int, DispatchOutcome]] = queue.Queue()
        self.worker: threading.Thread | None = None
        self.cancel_token: CancelToken | None = None
        self.dispatch_started = 0.0

    @property
    def running(self) -> bool:
        return self.state.running

    @property
    def dispatch_elapsed(self) -> float:
        if not isinstance(self.state.screen, Dispatching):
            return 0.0
        return max(0.0, self.clock() - self.dispatch_started)

    def handle(self, action: Action) -> WizardState:
        before = self.state
        after = reduce(before, action, self.store)
        self.state = after

        was_dispatching = isinstance(before.screen, Dispatching)
        is_dispatching = isinstance(after.screen, Dispatching)
        if is_dispatching and not was_dispatching:
            self._start_dispatch(after)
        elif was_dispatching and not is_dispatching:
            if isinstance(after.screen, Completed):
                self._log_outcome(after.screen.outcome)
            else:
                self._cancel_dispatch("cancelled by operator")
        if not after.running and self.cancel_token is not None:
            self._cancel_dispatch("aborted on quit")
        return self.state

    def poll(self) -> WizardState:
        """Drain finished dispatches and apply the deadline; call once per tick."""
        while True:
            try:
                dispatch_id, outcome = self.results.get_nowait()
            except queue.Empty:
                break
            self.handle(Action("dispatch_done", outcome=outcome, dispatch_id=dispatch_id))

        screen = self.state.screen
        if isinstance(screen, Dispatching) and self.dispatch_elapsed >= self.timeout:
            outcome = NetworkError("timeout", f"no response within {self.timeout:g}s")
            if self.cancel_token is not None:
                self.cancel_token.cancel()
            self.handle(Action("dispatch_done", outcome=outcome, dispatch_id=screen.dispatch_id))
        return self.state

    def wait(self, interval: float = 0.05) -> WizardState:
        """Block until the outstanding dispatch (if any) has completed."""
        while isinstance(self.state.screen, Dispatching):
            worker = self.worker
            if worker is not None:
                worker.join(interval)
            self.poll()
        return self.state

    def _start_dispatch(self, state: WizardState) -> None:
        screen = state.screen
        assert isinstance(screen, Dispatching)
        session = state.session
        if session is None:
            return
        message = build_message(session.template, session)
        dispatch_id = screen.dispatch_id
        token = CancelToken()
        self.cancel_token = token
        self.dispatch_started = self.clock()
        self.logstore.append(
            "info",
            "dispatch",
            f"sending '{session.template.name}' with {len(message.fields)} fields to {redact_url(self.dispatcher.url)}",
            ref=session.template.template_id,
        )

        def worker() -> None:
            outcome = self.dispatcher.send(message)
            if token.cancelled:
                return
            self.results.put((dispatch_id, outcome))

        self.worker = threading.Thread(target=worker, name=f"dispatch-{dispatch_id}", daemon=True)
        self.worker.start()

    def _cancel_dispatch(self, reason: str) -> None:
        if self.cancel_token is not None:
            self.cancel_token.cancel()
        self.cancel_token = None
        self.logstore.append("warn", "dispatch", f"dispatch {reason}")

    def _log_outcome(self, outcome: DispatchOutcome) -> None:
        self.cancel_token = None
        ref = self.state.session.template.template_id if self.state.session else ""
        if isinstance(outcome, Success):
            self.logstore.append("info", "dispatch", f"delivered (HTTP {outcome.status})", ref=ref)
        elif isinstance(outcome, HttpError):
            self.logstore.append("error", "dispatch", outcome.describe(), ref=ref)
        elif isinstance(outcome, NetworkError):
            self.logstore.append("error", "dispatch", f"{outcome.kind}: {outcome.describe()}", ref=ref)
        else:
            raise TypeError(f"unhandled dispatch outcome: {outcome!r}")
