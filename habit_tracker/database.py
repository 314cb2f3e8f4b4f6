"""Database engine and helpers.

This module builds the SQLModel/SQLAlchemy engine for the configured
database URL and provides the session dependency used by the HTTP
layer. There is no module-level engine: each application instance owns
the engine created for it and stores it on `app.state`.
"""

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

# imported for its side effect of registering the tables on SQLModel.metadata
from . import models  # noqa: F401


def make_engine(db_url: str, echo: bool = False) -> Engine:
    """Create an engine for `db_url`.

    SQLite connections are shared across FastAPI's worker threads, so
    `check_same_thread` is disabled. In-memory SQLite uses a single
    static connection so every session sees the same database.
    """
    kwargs = {"echo": echo}
    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in db_url or db_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
    engine = create_engine(db_url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
    """SQLite ignores ON DELETE CASCADE unless this pragma is set per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_and_tables(engine: Engine) -> None:
    """Create the `habit` and `mark` tables if they do not exist yet.

    `create_all` is idempotent, so this is safe to call on every startup.
    Errors propagate to the caller; a database that cannot be reached or
    migrated stops the application from starting.
    """
    SQLModel.metadata.create_all(engine)


def ping(engine: Engine) -> bool:
    """Return True if the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        return False
    return True


def get_session(request: Request):
    """Yield a database `Session` for FastAPI dependency injection.

    The session is bound to the engine owned by the application serving
    the request and is closed when the request scope finishes.
    """
    with Session(request.app.state.engine) as session:
        yield session
