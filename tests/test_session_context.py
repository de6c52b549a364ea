"""Unit tests for SessionContext and current_session()."""
import contextvars
import threading

import pytest

from sessionscope.domain.exceptions import SessionAlreadyBoundError, SessionNotBoundError
from sessionscope.uow import SessionContext, current_session


def test_bind_get_unbind():
    ctx = SessionContext()
    session = object()
    ctx.bind("A", session)

    assert ctx.get("A") is session
    assert ctx.require("A") is session
    assert "A" in ctx
    assert ctx.unbind("A") is session
    assert ctx.get("A") is None
    assert len(ctx) == 0


def test_second_bind_for_same_backend_is_rejected():
    ctx = SessionContext()
    first = object()
    ctx.bind("A", first)

    with pytest.raises(SessionAlreadyBoundError):
        ctx.bind("A", object())
    assert ctx.get("A") is first


def test_unbind_with_foreign_session_leaves_binding_alone():
    ctx = SessionContext()
    mine = object()
    ctx.bind("A", mine)

    assert ctx.unbind("A", object()) is None
    assert ctx.get("A") is mine


def test_current_session_outside_unit_of_work_raises():
    assert SessionContext.current() is None
    with pytest.raises(SessionNotBoundError):
        current_session("A")


def test_scope_activates_and_nested_scope_reuses_outer():
    with SessionContext.scope() as outer:
        assert SessionContext.current() is outer
        session = object()
        outer.bind("A", session)
        with SessionContext.scope() as inner:
            assert inner is outer
            assert current_session("A") is session
    assert SessionContext.current() is None


def test_each_thread_gets_its_own_context():
    seen = []

    def worker():
        seen.append(SessionContext.current())

    with SessionContext.scope() as ctx:
        ctx.bind("A", object())
        t = threading.Thread(target=worker)
        t.start()
        t.join()

    assert seen == [None]


def test_thread_inheriting_the_context_gets_a_child_scope():
    seen = {}

    def worker():
        with SessionContext.scope() as child:
            seen["child"] = child
            seen["inherited"] = current_session("A")
            child.bind("B", object())

    with SessionContext.scope() as parent:
        session = object()
        parent.bind("A", session)
        t = threading.Thread(target=contextvars.copy_context().run, args=(worker,))
        t.start()
        t.join()

        assert seen["child"].parent is parent
        assert seen["inherited"] is session
        assert parent.backends == ("A",)
        assert seen["child"].backends == ("A", "B")
        with pytest.raises(SessionAlreadyBoundError):
            seen["child"].bind("A", object())


def test_child_unbind_never_touches_parent_binding():
    parent = SessionContext()
    session = object()
    parent.bind("A", session)
    child = SessionContext(parent=parent)

    assert child.unbind("A") is None
    assert parent.get("A") is session
    assert child.get("A") is session
