"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from coachtrack.db.models import Attendance, Base, Coach, School
from coachtrack.suppression import COACH_PAIRS_KEY, MemoryBackend, SuppressionStore


@pytest.fixture
def test_engine():
    """
    Create a test database engine.

    Uses SQLite in-memory for fast tests. A fresh database per test, since
    merges and imports commit as they go.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(test_engine):
    """Create a database session for a test."""
    Session = sessionmaker(bind=test_engine)
    session = Session()

    yield session

    session.close()


@pytest.fixture
def suppression():
    """In-memory suppression store for coach pairs."""
    return SuppressionStore(MemoryBackend(), key=COACH_PAIRS_KEY)


@pytest.fixture
def make_school(db_session):
    """Factory that adds and commits a school."""
    def _make(name, **fields):
        school = School(school=name, **fields)
        db_session.add(school)
        db_session.commit()
        return school
    return _make


@pytest.fixture
def make_coach(db_session):
    """Factory that adds and commits a coach."""
    def _make(school, first_name, last_name, **fields):
        coach = Coach(school_id=school.id, first_name=first_name, last_name=last_name, **fields)
        db_session.add(coach)
        db_session.commit()
        return coach
    return _make


@pytest.fixture
def attend(db_session):
    """Factory that logs a coach at one or more games."""
    def _attend(coach, *game_ids):
        for game_id in game_ids:
            db_session.add(Attendance(game_id=game_id, coach_id=coach.id))
        db_session.commit()
    return _attend
