"""
Database Configuration and Connection Management

Provides database setup, connection pooling, and session management with
proper error handling and connection lifecycle management.

Design Considerations:
- Connection pooling for server deployments
- SQLAlchemy session management with commit/rollback semantics
- Support for SQLite (default) and server databases via DATABASE_URL
"""

import os
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, ContextManager, Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from ideabox.storage.models import Base

logger = logging.getLogger(__name__)

# Database configuration
DB_PATH = os.getenv("DATABASE_URL", "sqlite:///data/ideabox.db")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))

SessionFactory = Callable[[], ContextManager[Session]]

# Initialize engine with connection pooling
engine = create_engine(
    DB_PATH,
    poolclass=QueuePool,
    pool_size=DB_POOL_SIZE,
    max_overflow=DB_MAX_OVERFLOW,
    pool_timeout=DB_POOL_TIMEOUT,
    connect_args={"check_same_thread": False} if DB_PATH.startswith("sqlite") else {},
    echo=os.getenv("SQL_ECHO", "False").lower() == "true"
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """
    Create all tables that do not exist yet.

    Raises:
        RuntimeError: If schema creation fails
    """
    try:
        if DB_PATH.startswith("sqlite:///") and not DB_PATH.startswith("sqlite:///:memory:"):
            Path(DB_PATH[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
        logger.info("Initializing database schema")
        Base.metadata.create_all(bind=engine)
        logger.info("Database schema initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise RuntimeError(f"Failed to initialize database: {str(e)}")


def make_session_factory(session_maker: sessionmaker) -> SessionFactory:
    """
    Build a transactional session context manager around a sessionmaker.

    Each use commits on success, rolls back on any exception and always
    closes the session.
    """
    @contextmanager
    def session_scope() -> Generator[Session, None, None]:
        session = session_maker()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {str(e)}")
            raise
        finally:
            session.close()

    return session_scope


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Provide a database session bound to the application engine.

    Yields:
        SQLAlchemy session for database operations

    Raises:
        Exception: Re-raises any exceptions that occur during session use
    """
    with make_session_factory(SessionLocal)() as session:
        yield session
