"""
Module: intake_kernel.db.engine
Responsibility: Process-wide SQLAlchemy engine for the SQL-backed stores,
    session factory and the transactional ``session_scope``.
Architecture position: Kernel > DB. May import from db/base.py; create_tables
    imports the pipeline models so Base.metadata knows every table.

Failure modes:
    - RuntimeError if get_engine/get_session_factory is called
      before init_engine_from_url().

SQLite URLs get a per-connection pragma for write-ahead journaling on file
databases; in-memory URLs share one connection (StaticPool) so that every
session sees the same database.
"""

import atexit
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from intake_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


def _sqlite_options(database: str | None) -> tuple[dict[str, Any], bool]:
    """Engine kwargs for a SQLite database, and whether it lives in memory."""
    in_memory = database in (None, "", ":memory:")
    if in_memory:
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}, True
    return {"connect_args": {"check_same_thread": False}}, False


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_pre_ping: bool = True,
) -> Engine:
    """
    Create the process-wide engine and session factory.

    A second call replaces the first; the old engine is disposed.
    """
    global _engine, _SessionFactory

    url = make_url(database_url)
    kwargs: dict[str, Any] = {"echo": echo, "pool_pre_ping": pool_pre_ping}
    in_memory = False
    if url.get_backend_name() == "sqlite":
        sqlite_kwargs, in_memory = _sqlite_options(url.database)
        kwargs.update(sqlite_kwargs)

    if _engine is not None:
        _engine.dispose()
    _engine = create_engine(url, **kwargs)
    if url.get_backend_name() == "sqlite" and not in_memory:
        event.listen(_engine, "connect", _enable_wal)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "in_memory": in_memory, "echo": echo},
    )
    return _engine


def _enable_wal(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
    finally:
        cursor.close()


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Session factory shared by the stores (one session per operation)."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    One unit of work: commit on normal exit, roll back and re-raise on error.

    Stores pass their own factory; without one the process-wide factory is used.
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _metadata():
    from intake_kernel.db.base import Base
    import intake_pipeline.models  # noqa: F401  registers the tables

    return Base.metadata


def create_tables(engine: Engine | None = None) -> None:
    """Create the intake tables (settings entries, committed rows) if missing."""
    metadata = _metadata()
    metadata.create_all(engine or get_engine())
    logger.debug("tables_created", extra={"tables": sorted(metadata.tables)})


def drop_tables(engine: Engine | None = None) -> None:
    """Drop the intake tables. Tests only."""
    _metadata().drop_all(engine or get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory (test cleanup)."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None
    _SessionFactory = None


@atexit.register
def _dispose_at_exit() -> None:
    if _engine is not None:
        _engine.dispose()
