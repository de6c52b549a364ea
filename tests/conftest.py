"""Shared test fixtures.

Two kinds of backend:
  recording backends: in-memory fakes that log every lifecycle call into one
                       shared ``events`` list, with per-call failure injection.
  sqlite_registry   : real SQLModel backends on temp-file SQLite databases.
  client            : FastAPI TestClient wired to ``sqlite_registry``.
"""
import pytest

from sessionscope.infra.db.backend import SqlAlchemyBackend, init_db
from sessionscope.infra.db.engine import build_engine
from sessionscope.uow import BackendRegistry, DEFAULT_BACKEND


class BackendError(Exception):
    """Stand-in for a driver-specific failure."""


class RecordingSession:
    def __init__(self, backend: "RecordingBackend") -> None:
        self.backend = backend
        self.cache_mode = None
        self.flush_mode = None
        self.closed = False

    def _call(self, event: str) -> None:
        self.backend.events.append((event, self.backend.name))
        if event in self.backend.fail_on:
            raise BackendError(f"{event} failed on {self.backend.name}")

    def begin_transaction(self) -> None:
        self._call("begin")

    def commit(self) -> None:
        self._call("commit")

    def rollback(self) -> None:
        self._call("rollback")

    def close(self) -> None:
        self.closed = True
        self._call("close")

    def set_cache_mode(self, mode) -> None:
        self.cache_mode = mode

    def set_flush_mode(self, mode) -> None:
        self.flush_mode = mode


class RecordingBackend:
    def __init__(self, name: str, events: list, fail_on=()) -> None:
        self.name = name
        self.events = events
        self.fail_on = set(fail_on)
        self.sessions: list[RecordingSession] = []

    def open_session(self) -> RecordingSession:
        self.events.append(("open", self.name))
        if "open" in self.fail_on:
            raise BackendError(f"open failed on {self.name}")
        session = RecordingSession(self)
        self.sessions.append(session)
        return session

    @property
    def opened(self) -> int:
        return len(self.sessions)

    @property
    def closed(self) -> int:
        return sum(1 for s in self.sessions if s.closed)


@pytest.fixture
def events() -> list:
    return []


@pytest.fixture
def make_backend(events):
    def _make(name: str, fail_on=()) -> RecordingBackend:
        return RecordingBackend(name, events, fail_on)
    return _make


@pytest.fixture
def registry(make_backend):
    """Backends "A" and "B", both well-behaved."""
    return BackendRegistry.from_pairs([("A", make_backend("A")), ("B", make_backend("B"))])


@pytest.fixture
def sqlite_registry(tmp_path):
    """Default backend on an isolated temp-file SQLite DB, tables created."""
    backend = SqlAlchemyBackend(build_engine(f"sqlite:///{tmp_path / 'test_people.db'}"))
    registry = BackendRegistry.single(DEFAULT_BACKEND, backend)
    init_db(registry)

    yield registry

    backend.dispose()


@pytest.fixture
def client(sqlite_registry):
    """FastAPI TestClient backed by the isolated SQLite registry."""
    from fastapi.testclient import TestClient
    from sessionscope.api.app import create_app

    app = create_app(registry=sqlite_registry)
    with TestClient(app) as c:
        yield c
