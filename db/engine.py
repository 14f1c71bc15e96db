"""SQLAlchemy engine utilities."""

import os
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass


def database_url() -> str:
    """Return the SQLite URL for ``VAPELOG_DB_PATH`` or ``vapelog.db`` in the cwd."""

    env_path = os.environ.get("VAPELOG_DB_PATH")
    if env_path:
        db_path = Path(env_path).expanduser().resolve()
    else:
        db_path = (Path.cwd() / "vapelog.db").resolve()
    return f"sqlite:///{db_path}"


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(url: str | None = None) -> Engine:
    """Return an engine for ``url``; ``sqlite://`` gives a private in-memory store."""

    url = url or database_url()
    kwargs = {"connect_args": {"check_same_thread": False}, "echo": False}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every checkout sees an empty database
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)
    event.listen(engine, "connect", _enable_foreign_keys)
    return engine


def init_db(engine: Engine) -> Engine:
    """Create any missing tables on ``engine``."""

    from db import models  # noqa: F401 – ensure model import for metadata

    Base.metadata.create_all(engine)
    return engine
