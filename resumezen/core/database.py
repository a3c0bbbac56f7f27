"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults (PostgreSQL) and SQLite support
- Test database support
- Table definitions for users, plans, the user plan ledger and analyses
"""
from typing import Optional
from contextlib import contextmanager
from sqlalchemy import (
    create_engine,
    MetaData,
    Table,
    Column,
    Integer,
    String,
    DateTime,
    Boolean,
    JSON,
    Text,
    Numeric,
    Index,
    ForeignKey,
    CheckConstraint,
)
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func
import os

from resumezen.core.config import settings


# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return os.getenv("DATABASE_URL") or settings.DATABASE_URL


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if url.startswith("sqlite"):
        # Connections are handed across request threads; the file lock
        # serializes writers, busy timeout makes them wait instead of failing.
        _engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=False,
        )
    else:
        _engine = create_engine(
            url,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            pool_pre_ping=True,
            echo=False,  # Set to True for SQL query logging
        )

    # Create session factory
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def dispose_engine() -> None:
    """Dispose the current engine so the next call re-reads the URL."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Commits on clean exit, rolls back on any exception.

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


def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)


# Users table
users = Table(
    'app_users',
    metadata,
    Column('user_id', String(100), primary_key=True),
    Column('display_name', Text, nullable=True),
    Column('status', String(50), nullable=False, server_default='active'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_users_created_at', 'created_at'),
)

# Idempotency keys table (credit settlements keyed by analysis attempt)
idempotency_keys = Table(
    'idempotency_keys',
    metadata,
    Column('key', String(255), primary_key=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('scope', String(100), nullable=True, index=True),
    # Composite index for scope + created_at lookups
    Index('idx_idempotency_keys_scope_created', 'scope', 'created_at'),
)

# Plan catalog (read-only reference data once seeded)
plans = Table(
    'plans',
    metadata,
    Column('plan_id', String(50), primary_key=True),
    Column('name', String(200), nullable=False),
    Column('price', Numeric(10, 2), nullable=False),
    Column('currency', String(10), nullable=False, server_default='INR'),
    Column('period', String(50), nullable=False, server_default='one-time'),
    Column('credits', Integer, nullable=False),
    Column('duration_days', Integer, nullable=True),  # NULL = no expiry
    Column('is_unlimited', Boolean, nullable=False, server_default='false'),
    Column('is_popular', Boolean, nullable=False, server_default='false'),
    Column('is_special', Boolean, nullable=False, server_default='false'),
    Column('features', JSON, nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    CheckConstraint('credits >= 0', name='ck_plans_credits_non_negative'),
    Index('idx_plans_price', 'price'),
)

# User plan ledger: one row per purchased plan instance
user_plans = Table(
    'user_plans',
    metadata,
    Column('user_plan_id', String(64), primary_key=True),
    Column('user_id', String(100), ForeignKey('app_users.user_id'), nullable=False),
    Column('plan_id', String(50), ForeignKey('plans.plan_id'), nullable=False),
    Column('credits_left', Integer, nullable=False),
    Column('original_credits', Integer, nullable=False),
    Column('is_unlimited', Boolean, nullable=False, server_default='false'),
    Column('is_active', Boolean, nullable=False, server_default='true'),
    Column('purchased_at', DateTime(timezone=True), nullable=False),
    Column('expires_at', DateTime(timezone=True), nullable=True),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    CheckConstraint('credits_left >= 0', name='ck_user_plans_credits_non_negative'),
    CheckConstraint('credits_left <= original_credits', name='ck_user_plans_credits_within_grant'),
    # Eligibility lookup: a user's plans, most recent purchase first
    Index('idx_user_plans_user_purchased', 'user_id', 'purchased_at'),
    Index('idx_user_plans_plan_id', 'plan_id'),
)

# Analysis history: append-only
resume_analyses = Table(
    'resume_analyses',
    metadata,
    Column('analysis_id', String(64), primary_key=True),
    Column('user_id', String(100), ForeignKey('app_users.user_id'), nullable=False),
    Column('user_plan_id', String(64), ForeignKey('user_plans.user_plan_id'), nullable=False),
    Column('resume_url', Text, nullable=False),
    Column('contact_information', JSON, nullable=False),
    Column('skills', JSON, nullable=False),
    Column('work_experience', JSON, nullable=False),
    Column('education', JSON, nullable=False),
    Column('certifications', JSON, nullable=False),
    Column('summary', Text, nullable=False),
    Column('ats_score', Integer, nullable=True),  # NULL = model omitted the score ("NA")
    Column('strengths', JSON, nullable=False),
    Column('areas_for_improvement', JSON, nullable=False),
    Column('keywords', JSON, nullable=False),
    Column('ai_model', String(200), nullable=True),
    Column('raw_response', Text, nullable=True),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Index('idx_resume_analyses_user_created', 'user_id', 'created_at'),
)
