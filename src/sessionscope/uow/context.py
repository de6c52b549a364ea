"""Session context: the sessions bound for the unit of work currently running.

Code inside a wrapped operation either receives a ``SessionContext`` explicitly
or resolves the active one with ``SessionContext.current()``. The active
context lives in a ``ContextVar``. Nested units of work on the same task (or
thread) share the outer context, which is what lets a conflicting nested bind
be detected. A task or thread that inherits the variable from its parent gets a
child context instead: it sees the parent's sessions but keeps its own
bindings, so sibling tasks never collide.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from sessionscope.domain.exceptions import SessionAlreadyBoundError, SessionNotBoundError
from sessionscope.uow.registry import Session

logger = logging.getLogger(__name__)

_active: ContextVar[SessionContext | None] = ContextVar("sessionscope_session_context", default=None)


def _current_owner() -> Any:
    """The running asyncio task, or the current thread's ident outside a loop."""
    try:
        task = asyncio.current_task()
    except RuntimeError:
        task = None
    return task if task is not None else threading.get_ident()


class SessionContext:
    def __init__(self, parent: SessionContext | None = None) -> None:
        self._sessions: dict[str, Session] = {}
        self._parent = parent
        self._owner = _current_owner()

    @property
    def parent(self) -> SessionContext | None:
        return self._parent

    def bind(self, backend: str, session: Session) -> None:
        if self.is_bound(backend):
            raise SessionAlreadyBoundError(backend)
        self._sessions[backend] = session
        logger.debug("Bound session for backend %r", backend)

    def unbind(self, backend: str, session: Session | None = None) -> Session | None:
        """Remove this context's binding for *backend*.

        When *session* is given, only that exact session is unbound; a
        different session bound under the same name is left alone. Bindings
        inherited from a parent context are never removed.
        """
        bound = self._sessions.get(backend)
        if bound is None or (session is not None and bound is not session):
            return None
        del self._sessions[backend]
        logger.debug("Unbound session for backend %r", backend)
        return bound

    def get(self, backend: str) -> Session | None:
        session = self._sessions.get(backend)
        if session is None and self._parent is not None:
            return self._parent.get(backend)
        return session

    def require(self, backend: str) -> Session:
        session = self.get(backend)
        if session is None:
            raise SessionNotBoundError(backend)
        return session

    def is_bound(self, backend: str) -> bool:
        return self.get(backend) is not None

    @property
    def backends(self) -> tuple[str, ...]:
        inherited = self._parent.backends if self._parent is not None else ()
        return tuple(dict.fromkeys((*inherited, *self._sessions)))

    def __contains__(self, backend: object) -> bool:
        return isinstance(backend, str) and self.is_bound(backend)

    def __len__(self) -> int:
        return len(self.backends)

    @staticmethod
    def current() -> SessionContext | None:
        return _active.get()

    @staticmethod
    @contextmanager
    def scope() -> Iterator[SessionContext]:
        """Yield the active context, activating a new one when needed.

        The active context is reused only by the task or thread that owns it;
        anyone else gets a child of it for the duration of the scope.
        """
        existing = _active.get()
        if existing is not None and existing._owner == _current_owner():
            yield existing
            return
        context = SessionContext(parent=existing)
        token = _active.set(context)
        try:
            yield context
        finally:
            _active.reset(token)


def current_session(backend: str) -> Session:
    """The session bound for *backend* in the running unit of work."""
    context = _active.get()
    if context is None:
        raise SessionNotBoundError(backend)
    return context.require(backend)
