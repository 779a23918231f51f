"""
Database module for coachtrack.

Provides SQLAlchemy ORM models and session management.

Usage:
    from coachtrack.db import get_session, Coach, School

    with get_session() as session:
        coaches = session.query(Coach).all()
"""

from coachtrack.db.models import (
    Base,
    School,
    Coach,
    Attendance,
    UpdateLog,
)
from coachtrack.db.session import commit_step, get_session, get_engine, SessionLocal, store_step

__all__ = [
    # Base
    "Base",
    # Models
    "School",
    "Coach",
    "Attendance",
    "UpdateLog",
    # Session
    "commit_step",
    "get_session",
    "get_engine",
    "SessionLocal",
    "store_step",
]
