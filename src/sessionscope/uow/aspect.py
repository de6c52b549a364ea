"""Per-invocation lifecycle of one unit-of-work descriptor.

    IDLE -> SESSION_OPEN -> TX_ACTIVE -> COMMITTED | ROLLED_BACK -> CLOSED

``before_start`` opens and binds a session and begins a transaction,
``after_end`` commits, ``on_error`` rolls back and ``on_finish`` unbinds and
closes. The caller decides between ``after_end`` and ``on_error`` from the
outcome of the wrapped call and must call ``on_finish`` exactly once.
"""
from __future__ import annotations

import logging
from enum import Enum

from sessionscope.domain.exceptions import (
    SessionAlreadyBoundError,
    TransactionFailure,
    UnitOfWorkStateError,
)
from sessionscope.uow.context import SessionContext
from sessionscope.uow.descriptor import UnitOfWorkDescriptor
from sessionscope.uow.registry import BackendRegistry, Session

logger = logging.getLogger(__name__)


class AspectState(str, Enum):
    IDLE = "IDLE"
    SESSION_OPEN = "SESSION_OPEN"
    TX_ACTIVE = "TX_ACTIVE"
    COMMITTED = "COMMITTED"
    ROLLED_BACK = "ROLLED_BACK"
    CLOSED = "CLOSED"


class UnitOfWorkAspect:
    def __init__(
        self,
        registry: BackendRegistry,
        descriptor: UnitOfWorkDescriptor,
        context: SessionContext,
    ) -> None:
        self._registry = registry
        self._descriptor = descriptor
        self._context = context
        self._session: Session | None = None
        self._bound = False
        self._state = AspectState.IDLE

    @property
    def descriptor(self) -> UnitOfWorkDescriptor:
        return self._descriptor

    @property
    def state(self) -> AspectState:
        return self._state

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def backend(self) -> str:
        return self._descriptor.backend

    def before_start(self) -> None:
        if self._state is not AspectState.IDLE:
            raise UnitOfWorkStateError(
                f"before_start called on {self.backend!r} aspect in state {self._state.value}"
            )
        descriptor = self._descriptor
        backend = self._registry.resolve(descriptor.backend)
        if self._context.is_bound(descriptor.backend):
            raise SessionAlreadyBoundError(descriptor.backend)

        self._session = backend.open_session()
        self._state = AspectState.SESSION_OPEN
        logger.debug("Opened session on %r", descriptor.backend)

        self._session.set_cache_mode(descriptor.cache_mode)
        self._session.set_flush_mode(descriptor.effective_flush_mode)
        self._context.bind(descriptor.backend, self._session)
        self._bound = True

        if not descriptor.begins_transaction:
            return
        try:
            self._session.begin_transaction()
        except Exception as exc:
            raise TransactionFailure(descriptor.backend, "begin", exc) from exc
        self._state = AspectState.TX_ACTIVE
        logger.debug("Began transaction on %r", descriptor.backend)

    def after_end(self) -> None:
        """Commit; raises ``TransactionFailure`` if the backend refuses."""
        if self._state is AspectState.SESSION_OPEN:
            self._state = AspectState.COMMITTED
            return
        if self._state is not AspectState.TX_ACTIVE:
            return
        try:
            self._session.commit()
        except Exception as exc:
            raise TransactionFailure(self.backend, "commit", exc) from exc
        self._state = AspectState.COMMITTED
        logger.debug("Committed transaction on %r", self.backend)

    def on_error(self) -> TransactionFailure | None:
        """Roll back if a transaction is active.

        A failed rollback is logged and handed back instead of raised so it
        never replaces the error that sent us here.
        """
        if self._state is AspectState.SESSION_OPEN:
            self._state = AspectState.ROLLED_BACK
            return None
        if self._state is not AspectState.TX_ACTIVE:
            return None
        self._state = AspectState.ROLLED_BACK
        try:
            self._session.rollback()
        except Exception as exc:
            logger.warning("Rollback failed on %r", self.backend, exc_info=True)
            failure = TransactionFailure(self.backend, "rollback", exc)
            failure.__cause__ = exc
            return failure
        logger.debug("Rolled back transaction on %r", self.backend)
        return None

    def on_finish(self) -> None:
        if self._state is AspectState.CLOSED:
            return
        session, self._session = self._session, None
        self._state = AspectState.CLOSED
        if self._bound:
            self._context.unbind(self.backend, session)
            self._bound = False
        if session is None:
            return
        try:
            session.close()
        except Exception:
            logger.error("Closing session on %r failed", self.backend, exc_info=True)
            return
        logger.debug("Closed session on %r", self.backend)

    def __repr__(self) -> str:
        return f"UnitOfWorkAspect(backend={self.backend!r}, state={self._state.value})"
