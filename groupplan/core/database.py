"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults
- Table definitions for users, providers, plans and plan entries
"""
from typing import Optional, Generator
from contextlib import contextmanager
from sqlalchemy import (
    create_engine,
    event,
    MetaData,
    Table,
    Column,
    Integer,
    BigInteger,
    String,
    Text,
    Date,
    DateTime,
    Index,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import func

from groupplan.core.config import settings


# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine: Optional[Engine] = None
_SessionLocal = None


def build_engine(url: str) -> Engine:
    """Create an engine suited to the backend behind `url`."""
    if url.startswith("sqlite"):
        if ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            engine = create_engine(
                url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            engine = create_engine(url, connect_args={"check_same_thread": False})

        # SQLite ignores foreign keys unless asked per connection
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        echo=False,
    )


def init_engine(database_url: Optional[str] = None) -> Engine:
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or settings.DATABASE_URL
    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    _engine = build_engine(url)
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )
    return _engine


def get_engine() -> Engine:
    """Get the current SQLAlchemy engine."""
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.execute(...)
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI-friendly DB dependency that yields a Session and closes it.

    Repositories commit their own writes; anything left open is rolled back
    when the session closes.
    """
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_all_tables(engine: Optional[Engine] = None):
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    metadata.create_all(bind=engine or get_engine())


# Users, keyed internally by id and de-duplicated by email
users = Table(
    'users',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('email', String(320), nullable=False),
    Column('display_name', Text, nullable=True),
    Column('avatar_url', Text, nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    UniqueConstraint('email', name='uq_users_email'),
)

# OAuth providers, seeded at startup
authentication_providers = Table(
    'authentication_providers',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('name', String(50), nullable=False),
    UniqueConstraint('name', name='uq_authentication_providers_name'),
)

# Which provider identities a user has logged in with
user_auth_points = Table(
    'user_auth_points',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
    Column('provider_id', Integer, ForeignKey('authentication_providers.id'), nullable=False),
    Column('identifier', String(255), nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    # At most one auth point per (user, provider)
    UniqueConstraint('user_id', 'provider_id', name='uq_user_auth_points_user_provider'),
)

plans = Table(
    'plans',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('owner_id', Integer, ForeignKey('users.id'), nullable=False),
    Column('identifier', String(64), nullable=False),
    Column('title', Text, nullable=False),
    Column('from_date', Date, nullable=False),
    Column('duration_days', Integer, nullable=False),
    Column('min_availability_seconds', Integer, nullable=False, server_default='0'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    UniqueConstraint('identifier', name='uq_plans_identifier'),
    # list-by-owner
    Index('idx_plans_owner_id', 'owner_id'),
)

plan_entries = Table(
    'plan_entries',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('plan_id', Integer, ForeignKey('plans.id', ondelete='CASCADE'), nullable=False),
    Column('user_id', Integer, ForeignKey('users.id'), nullable=False),
    Column('start_time_unix', BigInteger, nullable=False),
    Column('duration_seconds', BigInteger, nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    # Overlap checks filter on (plan_id, user_id) and range over start
    Index('idx_plan_entries_plan_user_start', 'plan_id', 'user_id', 'start_time_unix'),
)
