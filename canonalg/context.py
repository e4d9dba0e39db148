#
# The active session and the cooperative time budget
#
# A top-level parse publishes its session and arms a deadline here. The
# engine reads settings through current_settings() and polls
# check_deadline() at every recursive entry point; nested parses (user
# function bodies, substitutions) share the outer deadline.
#
from __future__ import annotations

import time

from collections.abc   import Iterator
from contextlib        import contextmanager
from contextvars       import ContextVar
from dataclasses       import dataclass, field
from typing_extensions import Any

from canonalg.env        import Settings
from canonalg.exceptions import CancellationError


@dataclass
class Deadline:
    "A wall-clock budget in milliseconds; None or a negative budget never expires."
    budget_ms: int | None
    started: float = field(default_factory=time.monotonic)

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.started) * 1000.0

    def expired(self) -> bool:
        if self.budget_ms is None or self.budget_ms < 0:
            return False
        return self.elapsed_ms >= self.budget_ms

    def check(self) -> None:
        if self.expired():
            raise CancellationError(f'Evaluation exceeded the time budget of {self.budget_ms} ms')


_active_session: ContextVar[Any] = ContextVar('canonalg_active_session', default=None)
_active_deadline: ContextVar[Deadline | None] = ContextVar('canonalg_active_deadline', default=None)
_default_session: list[Any] = []

def set_default_session(session) -> None:
    "Registers the session used when no parse is active."
    _default_session[:] = [session]

def current_session():
    session = _active_session.get()
    if session is None and _default_session:
        return _default_session[0]
    return session

_fallback_settings = Settings()

def current_settings() -> Settings:
    session = current_session()
    if session is None:
        return _fallback_settings
    return session.settings

def check_deadline() -> None:
    "Raises CancellationError if the active time budget is spent."
    deadline = _active_deadline.get()
    if deadline is not None:
        deadline.check()

@contextmanager
def activate(session) -> Iterator[Deadline]:
    """Makes `session` the active session for the duration of the block.

    A deadline is armed from the session's timeout unless one is already
    running, in which case the outer budget applies.

    """
    deadline = _active_deadline.get()
    deadline_token = None
    if deadline is None:
        deadline = Deadline(session.settings.timeout)
        deadline_token = _active_deadline.set(deadline)
    session_token = _active_session.set(session)
    try:
        yield deadline
    finally:
        _active_session.reset(session_token)
        if deadline_token is not None:
            _active_deadline.reset(deadline_token)
