"""SQLAlchemy engine, session factory and request/worker session helpers."""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from classquiz.config import settings

# Created on first use so importing models never opens a connection pool.
_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None  # type: ignore[type-arg]


def get_engine() -> Engine:
    """Get or create the SQLAlchemy engine for ``settings.DATABASE_URL``."""
    global _engine
    if _engine is None:
        connect_args = {}
        if settings.DATABASE_URL.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        _engine = create_engine(
            settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
    return _engine


def get_session_factory() -> sessionmaker:  # type: ignore[type-arg]
    """Get or create the session factory bound to :func:`get_engine`."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=get_engine(), autocommit=False, autoflush=False)
    return _SessionLocal


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


def get_db() -> Iterator[Session]:
    """FastAPI dependency — yields a DB session and closes it after the request."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def worker_session() -> Iterator[Session]:
    """Session for Celery workers: rolls back on error, always closes."""
    db = get_session_factory()()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
