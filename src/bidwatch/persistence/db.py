"""
Database engine and session management.

Everything runs on synchronous SQLAlchemy sessions: each reconciled
record and each stored document gets its own short transaction through
a SessionFactory (a zero-argument callable returning a commit-or-rollback
context manager).
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Callable, ContextManager, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from bidwatch.core.logging import get_logger

from .models import Base

logger = get_logger("persistence")


SessionFactory = Callable[[], ContextManager[Session]]

DEFAULT_DATABASE_URL = "sqlite:///data/bidwatch.db"


# =============================================================================
# Engines
# =============================================================================


def sqlite_file(url: str) -> Path | None:
    """Database file of a file-backed SQLite URL, else None."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite" or parsed.database in (None, "", ":memory:"):
        return None
    return Path(parsed.database)


def _configure_sqlite(engine: Engine) -> None:
    """Pragmas for every connection, and an explicit BEGIN per transaction.

    pysqlite's own transaction handling defers BEGIN and breaks
    SAVEPOINT, which find-or-create relies on; it is switched off and
    BEGIN is emitted by the engine instead.
    """

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        for pragma in (
            "PRAGMA foreign_keys=ON",
            "PRAGMA journal_mode=WAL",
            "PRAGMA synchronous=NORMAL",
            "PRAGMA busy_timeout=5000",
        ):
            cursor.execute(pragma)
        cursor.close()

    @event.listens_for(engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_db_engine(url: str, echo: bool = False, pool_size: int = 5) -> Engine:
    """New engine for a URL; SQLite files get their parent directory created.

    Args:
        url: SQLAlchemy database URL
        echo: Log SQL statements
        pool_size: Connection pool size (not used for SQLite)
    """
    db_file = sqlite_file(url)
    if db_file is not None:
        db_file.parent.mkdir(parents=True, exist_ok=True)

    if make_url(url).get_backend_name() == "sqlite":
        engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})
        _configure_sqlite(engine)
        return engine

    return create_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=10,
        pool_pre_ping=True,
    )


def make_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def session_scope(factory: sessionmaker[Session]) -> SessionFactory:
    """Wrap a sessionmaker in a commit-or-rollback context manager factory."""

    @contextmanager
    def scope() -> Generator[Session, None, None]:
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return scope


# =============================================================================
# Process-wide Engine
# =============================================================================

_engine: Engine | None = None
_engine_url: str | None = None
_sessionmaker: sessionmaker[Session] | None = None


def get_engine(url: str = DEFAULT_DATABASE_URL, echo: bool = False, pool_size: int = 5) -> Engine:
    """The process-wide engine, created on first use.

    Asking for a different URL replaces the engine.
    """
    global _engine, _engine_url, _sessionmaker

    if _engine is not None and _engine_url == url:
        return _engine

    if _engine is not None:
        logger.debug("Switching database from %s to %s", _engine_url, url)
        _engine.dispose()

    _engine = create_db_engine(url, echo=echo, pool_size=pool_size)
    _engine_url = url
    _sessionmaker = make_sessionmaker(_engine)
    return _engine


def _default_sessionmaker() -> sessionmaker[Session]:
    if _sessionmaker is None:
        get_engine()
    assert _sessionmaker is not None
    return _sessionmaker


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Session on the process-wide engine that commits on success.

    Usage:
        with get_session() as session:
            NoticeRepository(session).get_by_number("001/2024")
    """
    with session_scope(_default_sessionmaker())() as session:
        yield session


def dispose_engines() -> None:
    """Close the process-wide engine's connections."""
    global _engine, _engine_url, _sessionmaker

    if _engine is not None:
        _engine.dispose()
    _engine = _engine_url = _sessionmaker = None


# =============================================================================
# Schema
# =============================================================================


def init_db(url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> Engine:
    """Create any missing tables. Alembic migrations are the upgrade path."""
    engine = get_engine(url, echo=echo)
    Base.metadata.create_all(bind=engine)
    return engine


def drop_db(url: str = DEFAULT_DATABASE_URL) -> None:
    """Drop every BidWatch table, deleting all data."""
    Base.metadata.drop_all(bind=get_engine(url))
