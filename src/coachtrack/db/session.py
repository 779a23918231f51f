"""
Database session management for coachtrack.

Provides the SQLAlchemy engine, a session factory, and the ``store_step`` /
``commit_step`` helpers that report store failures by step name. Uses the
settings from config.py.

Usage:
    # As a context manager (recommended for scripts)
    from coachtrack.db import get_session

    with get_session() as session:
        coaches = session.query(Coach).all()
        # Commits automatically on exit, rolls back on exception

    # Reads whose failures surface as StoreError
    with store_step(session, "load"):
        coach = session.query(Coach).filter(Coach.id == 7).first()

    # One committed step of a merge
    with commit_step(session, "repoint_attendance"):
        session.query(Attendance).filter(...).update(...)
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from coachtrack.config import settings
from coachtrack.errors import ConstraintError, StoreError

logger = logging.getLogger(__name__)


def get_engine(url: str | None = None) -> Engine:
    """
    Create SQLAlchemy engine.

    The engine is configured with:
    - Connection pool for server databases (SQLite keeps its default pool)
    - Echo mode only when LOG_LEVEL=DEBUG
    - Pre-ping to verify connections before use (handles stale connections)
    """
    url = url or settings.database_url
    kwargs = {
        "pool_pre_ping": True,
        "echo": settings.log_level == "DEBUG",
    }
    if not url.startswith("sqlite"):
        kwargs["pool_size"] = settings.db_pool_size
        kwargs["max_overflow"] = settings.db_max_overflow
    return create_engine(url, **kwargs)


# Created on first use so importing models never needs a database driver
_engine = None


def _get_engine() -> Engine:
    """Get or create the singleton engine instance."""
    global _engine
    if _engine is None:
        _engine = get_engine()
    return _engine


# Session factory - bound to the engine when a session is opened
SessionLocal = sessionmaker(
    autocommit=False,  # We'll handle commits explicitly
    autoflush=False,  # Don't auto-flush before queries (more control)
)


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Automatically commits on successful exit, rolls back on exception.

    Raises:
        Any exception from the database operation (after rollback)
    """
    session = SessionLocal(bind=_get_engine())
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def store_step(session: Session, step: str) -> Generator[Session, None, None]:
    """
    Run reads against the store, reporting failures by step name.

    The read-side counterpart of ``commit_step``: nothing is committed,
    but a SQLAlchemyError is rolled back and raised as StoreError so
    callers only ever see the coachtrack error taxonomy.

    Args:
        session: Session the reads go through
        step: Step name reported on failure (e.g. 'load', 'scan')
    """
    try:
        yield session
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Step %s failed: %s", step, e)
        raise StoreError(str(e), step=step) from e


@contextmanager
def commit_step(session: Session, step: str) -> Generator[Session, None, None]:
    """
    Run one step of a multi-step mutation and commit it.

    Each merge step commits on its own so that a failure in a later step
    leaves earlier work in place and is reported by name. Store exceptions
    are rolled back and re-raised as ConstraintError / StoreError carrying
    the step name; any other exception is rolled back and propagated.

    Args:
        session: Session the step writes through
        step: Step name reported on failure (e.g. 'reconcile_fields')
    """
    try:
        yield session
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.error("Step %s violated a constraint: %s", step, e.orig)
        raise ConstraintError(str(e.orig), step=step) from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Step %s failed: %s", step, e)
        raise StoreError(str(e), step=step) from e
    except Exception:
        session.rollback()
        raise
