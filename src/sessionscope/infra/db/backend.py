"""SQLAlchemy/SQLModel implementation of the Backend and Session protocols."""
from __future__ import annotations

import logging
from functools import cached_property
from typing import Any

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel

from sessionscope.config import Settings, settings as default_settings
from sessionscope.infra.db.engine import build_engine
from sessionscope.uow import DEFAULT_BACKEND, BackendRegistry, CacheMode, FlushMode

logger = logging.getLogger(__name__)


class ManagedSession(Session):
    """A SQLModel session that speaks the unit-of-work Session protocol.

    SQLAlchemy has no second-level cache, so the cache mode is only recorded
    in ``session.info`` for code that wants to honour it.
    """

    def begin_transaction(self) -> None:
        self.begin()

    def set_cache_mode(self, mode: CacheMode) -> None:
        self.info["cache_mode"] = mode

    def set_flush_mode(self, mode: FlushMode) -> None:
        self.info["flush_mode"] = mode
        self.autoflush = mode in (FlushMode.ALWAYS, FlushMode.AUTO)

    @property
    def cache_mode(self) -> CacheMode:
        return self.info.get("cache_mode", CacheMode.NORMAL)

    @property
    def flush_mode(self) -> FlushMode:
        return self.info.get("flush_mode", FlushMode.AUTO)


class SqlAlchemyBackend:
    def __init__(self, engine: Engine, **session_options: Any) -> None:
        self.engine = engine
        self._session_options = {"expire_on_commit": False, **session_options}

    def open_session(self) -> ManagedSession:
        return ManagedSession(self.engine, **self._session_options)

    def create_all(self) -> None:
        import sessionscope.models  # noqa: F401  registers table mappers

        SQLModel.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    def __repr__(self) -> str:
        return f"SqlAlchemyBackend({self.engine.url!r})"


class DatabaseBundle:
    """One named database: a URL, turned into a backend on first use."""

    def __init__(self, name: str, url: str, echo: bool = False) -> None:
        self.name = name
        self.url = url
        self.echo = echo

    @cached_property
    def backend(self) -> SqlAlchemyBackend:
        return SqlAlchemyBackend(build_engine(self.url, echo=self.echo))


def bundles_from_settings(cfg: Settings | None = None) -> list[DatabaseBundle]:
    cfg = cfg or default_settings
    bundles = [DatabaseBundle(DEFAULT_BACKEND, cfg.DATABASE_URL, echo=cfg.SQL_ECHO)]
    bundles.extend(
        DatabaseBundle(name, url, echo=cfg.SQL_ECHO) for name, url in cfg.EXTRA_BACKENDS.items()
    )
    return bundles


def build_registry(cfg: Settings | None = None) -> BackendRegistry:
    return BackendRegistry.from_bundles(*bundles_from_settings(cfg))


def init_db(registry: BackendRegistry) -> None:
    """Create tables on every SQLAlchemy backend in *registry*."""
    for name, backend in registry.as_mapping().items():
        if isinstance(backend, SqlAlchemyBackend):
            backend.create_all()
            logger.info("Initialized tables on backend %r", name)


def dispose_all(registry: BackendRegistry) -> None:
    for backend in registry.as_mapping().values():
        if isinstance(backend, SqlAlchemyBackend):
            backend.dispose()
