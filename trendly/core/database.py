"""
Database configuration and connection management.

This module provides:
- SQLAlchemy table definitions (users, usage, trend_data)
- Engine construction with sane pooling defaults
- Session scoping for the stores
"""
import logging
from typing import Optional, Generator
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Date, Text, Index, ForeignKey, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.sql import func


# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

DEFAULT_DATABASE_URL = "sqlite:///./trendly.db"

REQUIRED_TABLES = ("users", "usage", "trend_data")


def build_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create a SQLAlchemy engine for the given URL.

    SQLite URLs (local development, tests) get a thread-shareable
    connection; everything else uses a bounded QueuePool.
    """
    url = database_url or DEFAULT_DATABASE_URL

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        pool_pre_ping=True,
        echo=False,  # Set to True for SQL query logging
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with session_scope(factory) as session:
            session.execute(...)
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables(engine: Engine) -> None:
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    metadata.create_all(bind=engine)


def drop_all_tables(engine: Engine) -> None:
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    metadata.drop_all(bind=engine)


def check_connection(engine: Engine) -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logging.getLogger("trendly").warning(f"Database connection check failed: {e}")
        return False


# Users table: one row per external (Clerk) identity
users = Table(
    'users',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('external_auth_id', String(100), nullable=False, unique=True),
    Column('email', Text, nullable=False, server_default=''),
    Column('subscription_tier', String(20), nullable=False, server_default='free'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_users_created_at', 'created_at'),
)

# Daily usage counters, one per user
usage = Table(
    'usage',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(36), ForeignKey('users.id'), nullable=False, unique=True),
    Column('daily_generations', Integer, nullable=False, server_default='0'),
    Column('last_reset_date', Date, nullable=False),
)

# Trend records (read-only from this service)
trend_data = Table(
    'trend_data',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('platform', String(50), nullable=False, server_default='tiktok'),
    Column('title', Text, nullable=False),
    Column('description', Text, nullable=False, server_default=''),
    Column('date_added', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_trend_data_date_added', 'date_added'),
)
