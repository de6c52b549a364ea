"""State-machine tests for a single UnitOfWorkAspect."""
import logging

import pytest

from conftest import BackendError
from sessionscope.domain.exceptions import (
    SessionAlreadyBoundError,
    TransactionFailure,
    UnknownBackendError,
    UnitOfWorkStateError,
)
from sessionscope.uow import (
    AspectState,
    BackendRegistry,
    CacheMode,
    FlushMode,
    SessionContext,
    UnitOfWorkAspect,
    UnitOfWorkDescriptor,
)


def _aspect(registry, context=None, **descriptor):
    descriptor.setdefault("backend", "A")
    if context is None:
        context = SessionContext()
    return UnitOfWorkAspect(registry, UnitOfWorkDescriptor(**descriptor), context)


def test_successful_lifecycle(registry, events):
    ctx = SessionContext()
    aspect = _aspect(registry, ctx, cache_mode=CacheMode.REFRESH, flush_mode=FlushMode.COMMIT)

    aspect.before_start()
    assert aspect.state is AspectState.TX_ACTIVE
    assert ctx.get("A") is aspect.session
    assert aspect.session.cache_mode is CacheMode.REFRESH
    assert aspect.session.flush_mode is FlushMode.COMMIT

    aspect.after_end()
    assert aspect.state is AspectState.COMMITTED
    aspect.on_finish()

    assert aspect.state is AspectState.CLOSED
    assert ctx.get("A") is None
    assert events == [("open", "A"), ("begin", "A"), ("commit", "A"), ("close", "A")]


def test_error_path_rolls_back_then_closes(registry, events):
    aspect = _aspect(registry)
    aspect.before_start()
    assert aspect.on_error() is None
    assert aspect.state is AspectState.ROLLED_BACK
    aspect.on_finish()

    assert events == [("open", "A"), ("begin", "A"), ("rollback", "A"), ("close", "A")]


def test_read_only_only_opens_and_closes(registry, events):
    aspect = _aspect(registry, read_only=True)
    aspect.before_start()
    assert aspect.state is AspectState.SESSION_OPEN
    assert aspect.session.flush_mode is FlushMode.MANUAL
    aspect.on_error()
    aspect.on_finish()

    assert events == [("open", "A"), ("close", "A")]


def test_non_transactional_skips_begin_and_commit(registry, events):
    aspect = _aspect(registry, transactional=False)
    aspect.before_start()
    aspect.after_end()
    aspect.on_finish()

    assert events == [("open", "A"), ("close", "A")]


def test_unknown_backend_opens_nothing(registry, events):
    aspect = _aspect(registry, backend="C")
    with pytest.raises(UnknownBackendError):
        aspect.before_start()
    aspect.on_error()
    aspect.on_finish()

    assert events == []
    assert aspect.state is AspectState.CLOSED


def test_already_bound_backend_opens_no_second_session(registry, events):
    ctx = SessionContext()
    outer = object()
    ctx.bind("A", outer)
    aspect = _aspect(registry, ctx)

    with pytest.raises(SessionAlreadyBoundError):
        aspect.before_start()
    aspect.on_finish()

    assert events == []
    assert ctx.get("A") is outer


def test_begin_failure_is_wrapped_and_session_still_closed(make_backend, events):
    registry = BackendRegistry.single("A", make_backend("A", fail_on={"begin"}))
    ctx = SessionContext()
    aspect = _aspect(registry, ctx)

    with pytest.raises(TransactionFailure) as excinfo:
        aspect.before_start()
    assert excinfo.value.phase == "begin"
    assert isinstance(excinfo.value.cause, BackendError)

    aspect.on_error()
    aspect.on_finish()
    assert events == [("open", "A"), ("begin", "A"), ("close", "A")]
    assert "A" not in ctx


def test_commit_failure_is_wrapped_and_leaves_transaction_for_rollback(make_backend, events):
    registry = BackendRegistry.single("A", make_backend("A", fail_on={"commit"}))
    aspect = _aspect(registry)
    aspect.before_start()

    with pytest.raises(TransactionFailure) as excinfo:
        aspect.after_end()
    assert excinfo.value.phase == "commit"
    assert aspect.state is AspectState.TX_ACTIVE

    aspect.on_error()
    aspect.on_finish()
    assert events[-2:] == [("rollback", "A"), ("close", "A")]


def test_rollback_failure_is_returned_not_raised(make_backend):
    registry = BackendRegistry.single("A", make_backend("A", fail_on={"rollback"}))
    aspect = _aspect(registry)
    aspect.before_start()

    failure = aspect.on_error()

    assert isinstance(failure, TransactionFailure)
    assert failure.phase == "rollback"
    assert aspect.state is AspectState.ROLLED_BACK


def test_close_failure_is_logged_only(make_backend, caplog):
    registry = BackendRegistry.single("A", make_backend("A", fail_on={"close"}))
    aspect = _aspect(registry)
    aspect.before_start()
    aspect.after_end()

    with caplog.at_level(logging.ERROR, logger="sessionscope.uow.aspect"):
        aspect.on_finish()

    assert aspect.state is AspectState.CLOSED
    assert "Closing session on 'A' failed" in caplog.text


def test_on_finish_runs_once(registry, events):
    aspect = _aspect(registry)
    aspect.before_start()
    aspect.after_end()
    aspect.on_finish()
    aspect.on_finish()

    assert events.count(("close", "A")) == 1


def test_before_start_twice_is_rejected(registry):
    aspect = _aspect(registry)
    aspect.before_start()
    with pytest.raises(UnitOfWorkStateError):
        aspect.before_start()
    aspect.on_error()
    aspect.on_finish()
