"""
Database Configuration Module

This module sets up SQLAlchemy 2.0 for the Book Catalogue API.

We use SYNCHRONOUS SQLAlchemy sessions. FastAPI runs sync route handlers
in its thread pool, so a slow query or image encode suspends only the
request that issued it.

Session Management Pattern
==========================
We use the "session per request" pattern:
1. Request arrives → create a new session
2. Use session for all database operations in that request
3. Commit on success, rollback on failure
4. Close session when request ends

This is implemented using FastAPI's dependency injection.
"""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.config import get_settings

settings = get_settings()


# =============================================================================
# Database Engine
# =============================================================================
# SQLite does not accept pool sizing arguments, and needs
# check_same_thread=False because sync handlers run in a thread pool.

if settings.is_sqlite:
    engine = create_engine(
        settings.database_url,
        connect_args={"check_same_thread": False},
        echo=settings.debug,
    )
else:
    engine = create_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,  # Verify connections are alive before using
        echo=settings.debug,  # Log SQL in debug mode
    )


# =============================================================================
# Session Factory
# =============================================================================
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Alembic uses Base.metadata to discover tables for migrations.
    """
    pass


# =============================================================================
# Dependency Injection
# =============================================================================
def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency for FastAPI.

    Code before yield creates the session, the route uses it, and the
    finally block closes it even if the handler raised.

    Yields:
        SQLAlchemy Session instance
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """
    Create all database tables.

    WARNING: In production, use Alembic migrations instead!
    """
    Base.metadata.create_all(bind=engine)
