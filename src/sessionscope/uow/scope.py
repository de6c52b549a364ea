"""Unit of Work: one session per descriptor per logical operation.

Commits on clean exit, rolls back on exception, always closes.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from contextlib import ExitStack
from types import TracebackType

from sessionscope.domain.exceptions import UnitOfWorkStateError
from sessionscope.uow.aspect import UnitOfWorkAspect
from sessionscope.uow.context import SessionContext
from sessionscope.uow.descriptor import UnitOfWorkDescriptor, collapse
from sessionscope.uow.registry import BackendRegistry, Session

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Context manager driving one ``UnitOfWorkAspect`` per descriptor.

    ``before_start`` runs for every descriptor in declaration order on enter.
    On exit every aspect gets ``after_end`` (or ``on_error``) in declaration
    order, then ``on_finish`` in reverse order. The first failure wins; any
    later ones are attached to it as notes and kept in ``suppressed``.
    """

    def __init__(
        self,
        registry: BackendRegistry,
        descriptors: Iterable[UnitOfWorkDescriptor],
        context: SessionContext | None = None,
    ) -> None:
        self._registry = registry
        self._descriptors = collapse(descriptors)
        self._context = context
        self._aspects: list[UnitOfWorkAspect] = []
        self._stack: ExitStack | None = None
        self.suppressed: list[BaseException] = []

    def __enter__(self) -> UnitOfWork:
        if self._stack is not None or self._aspects:
            raise UnitOfWorkStateError("UnitOfWork instances are single use")
        self._stack = ExitStack()
        if self._context is None:
            context = self._stack.enter_context(SessionContext.scope())
        else:
            context = self._context
        try:
            for descriptor in self._descriptors:
                aspect = UnitOfWorkAspect(self._registry, descriptor, context)
                self._aspects.append(aspect)
                aspect.before_start()
        except BaseException as exc:
            # __exit__ is not called when __enter__ raises.
            self._fail_all(exc)
            self._finish_all(exc)
            self._close_stack()
            raise
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        try:
            if exc_val is None:
                self._complete()
            else:
                self._fail_all(exc_val)
                self._finish_all(exc_val)
        finally:
            self._close_stack()
        return False

    @property
    def aspects(self) -> tuple[UnitOfWorkAspect, ...]:
        return tuple(self._aspects)

    @property
    def session(self) -> Session:
        """The session of the first descriptor; the common single-backend case."""
        if not self._aspects or self._aspects[0].session is None:
            raise UnitOfWorkStateError("UnitOfWork is not active, use it as a context manager.")
        return self._aspects[0].session

    def session_for(self, backend: str) -> Session:
        for aspect in self._aspects:
            if aspect.backend == backend and aspect.session is not None:
                return aspect.session
        raise UnitOfWorkStateError(f"UnitOfWork holds no open session for {backend!r}")

    def _complete(self) -> None:
        primary: BaseException | None = None
        for aspect in self._aspects:
            if primary is not None:
                # Something already failed to commit; do not commit the rest.
                self._record(primary, aspect.on_error())
                continue
            try:
                aspect.after_end()
            except BaseException as exc:
                primary = exc
                self._record(primary, aspect.on_error())
        self._finish_all(primary)
        if primary is not None:
            raise primary

    def _fail_all(self, primary: BaseException) -> None:
        for aspect in self._aspects:
            try:
                self._record(primary, aspect.on_error())
            except Exception as exc:
                self._record(primary, exc)

    def _finish_all(self, primary: BaseException | None) -> None:
        for aspect in reversed(self._aspects):
            try:
                aspect.on_finish()
            except Exception as exc:
                logger.error("on_finish failed for %r", aspect, exc_info=True)
                if primary is not None:
                    self._record(primary, exc)

    def _record(self, primary: BaseException, failure: BaseException | None) -> None:
        if failure is None or failure is primary:
            return
        self.suppressed.append(failure)
        primary.add_note(f"Suppressed during unit-of-work cleanup: {failure!r}")
        logger.warning("Suppressed %r while handling %r", failure, primary)

    def _close_stack(self) -> None:
        stack, self._stack = self._stack, None
        if stack is not None:
            stack.close()
