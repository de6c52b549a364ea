"""Engine construction for SQLAlchemy backends; registers WAL pragmas on SQLite."""
from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import create_engine


def _set_wal_mode(dbapi_conn, _):
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA journal_mode=WAL")
    cur.execute("PRAGMA synchronous=NORMAL")
    cur.close()


def build_engine(url: str, echo: bool = False) -> Engine:
    connect_args: dict = {}
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        # Sessions are opened on whichever worker thread serves the call.
        connect_args["check_same_thread"] = False
    engine = create_engine(url, echo=echo, connect_args=connect_args)
    if is_sqlite and ":memory:" not in url:
        event.listen(engine, "connect", _set_wal_mode)
    return engine
