"""
Shared fixtures for the analysis service test suite.

Store tests run against a private in-memory SQLite database per test;
nothing touches the application database.
"""

import os

os.environ.setdefault("ENVIRONMENT", "testing")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ideabox.storage.database import make_session_factory
from ideabox.storage.models import Base


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(sessionmaker(autocommit=False, autoflush=False, bind=db_engine))


@pytest.fixture
def seed(session_factory):
    """Insert rows into the test database and return their ids."""
    def _seed(*records):
        with session_factory() as session:
            session.add_all(records)
            session.flush()
            return [record.id for record in records]
    return _seed
