"""
Database Persistence Layer - Core Engine.

============================================================
PURPOSE
============================================================
SQLAlchemy engine and session management for the stores
that keep adapted factor weights, the feedback log and the
prediction history.

- Declarative base shared by all ORM models
- Engine configured from RISK_DATABASE_URL
- Explicit transaction management
- Hard failures on persistence errors

============================================================
"""

import os
import logging
from typing import Dict, Generator, List, Optional
from contextlib import contextmanager

from sqlalchemy import create_engine, inspect, text, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.exc import SQLAlchemyError, OperationalError
from sqlalchemy.pool import StaticPool

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# =============================================================
# DECLARATIVE BASE
# =============================================================

Base = declarative_base()

# =============================================================
# DATABASE ENGINE
# =============================================================

DEFAULT_DATABASE_URL = "sqlite:///risk_prediction.db"

REQUIRED_TABLES = [
    "factor_weights",
    "prediction_feedback",
    "prediction_history",
]

_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


def get_database_url() -> str:
    """Get database URL from environment."""
    url = os.getenv("RISK_DATABASE_URL")
    if not url:
        url = DEFAULT_DATABASE_URL
        logger.warning(f"RISK_DATABASE_URL not set, using default: {url}")
    return url


def create_database_engine(
    database_url: Optional[str] = None,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_recycle: int = 1800,
    echo: bool = False,
) -> Engine:
    """
    Create the SQLAlchemy engine and make it the module default.

    Args:
        database_url: Connection URL (defaults to RISK_DATABASE_URL)
        pool_size: Connections kept in pool (server databases only)
        max_overflow: Max connections beyond pool_size
        pool_recycle: Recycle connections after N seconds
        echo: Log SQL statements

    Returns:
        SQLAlchemy Engine
    """
    global _engine, _SessionFactory

    url = database_url or get_database_url()
    logger.info(f"Creating database engine for: {url.split('@')[-1]}")

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, future=True, **kwargs)
    else:
        engine = create_engine(
            url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_recycle=pool_recycle,
            pool_pre_ping=True,
            echo=echo,
            future=True,
        )

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        logger.debug("Database connection established")

    _engine = engine
    _SessionFactory = None
    return engine


def get_engine() -> Engine:
    """Get the database engine, creating if necessary."""
    global _engine
    if _engine is None:
        _engine = create_database_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    """Get session factory, creating if necessary."""
    global _SessionFactory

    if _SessionFactory is None:
        _SessionFactory = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    return _SessionFactory


def reset_engine() -> None:
    """Dispose the module engine; the next call creates a fresh one."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


# =============================================================
# SESSION MANAGEMENT
# =============================================================


def get_session() -> Session:
    """
    Get a new database session.

    Caller is responsible for committing/closing.
    Prefer transaction_scope() instead.
    """
    return get_session_factory()()


@contextmanager
def transaction_scope() -> Generator[Session, None, None]:
    """
    Context manager for explicit transaction boundaries.

    Commits only if no exception occurs.
    Rolls back on ANY exception.

    Usage:
        with transaction_scope() as session:
            repo = RiskPredictionRepository(session)
            repo.save_weights(user_id, weights)
    """
    session = get_session()
    try:
        yield session
        session.commit()
        logger.debug("Database transaction committed successfully")
    except SQLAlchemyError as e:
        logger.error(f"Database transaction failed, rolling back: {e}")
        session.rollback()
        raise DatabasePersistenceError(f"Transaction failed: {e}") from e
    except Exception as e:
        logger.error(f"Transaction failed with unexpected error: {e}")
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================
# DATABASE INITIALIZATION
# =============================================================


def verify_database_connection() -> bool:
    """
    Verify database connection is working.

    Raises:
        DatabaseConnectionError if connection fails
    """
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
            logger.info("Database connection verified successfully")
            return True
    except OperationalError as e:
        logger.error(f"Database connection failed: {e}")
        raise DatabaseConnectionError(f"Cannot connect to database: {e}") from e


def create_all_tables() -> None:
    """
    Create all tables defined in ORM models.

    Raises:
        DatabaseInitializationError if table creation fails
    """
    # Registers the prediction tables on Base.metadata
    import risk_prediction.models  # noqa: F401

    try:
        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=get_engine())
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create database tables: {e}")
        raise DatabaseInitializationError(f"Table creation failed: {e}") from e


def verify_required_tables() -> List[str]:
    """
    Check that all required tables exist.

    Returns:
        Names of missing tables (empty when all present)
    """
    existing = set(inspect(get_engine()).get_table_names())
    missing = [table for table in REQUIRED_TABLES if table not in existing]

    for table in REQUIRED_TABLES:
        if table in existing:
            logger.info(f"  [OK] Table verified: {table}")
        else:
            logger.warning(f"  [!!] Table missing: {table}")

    return missing


def initialize_database(database_url: Optional[str] = None) -> None:
    """
    Full database initialization sequence.

    1. Create engine (if a URL is given)
    2. Verify connection
    3. Create tables if not exist
    4. Abort if any required table is missing
    """
    if database_url is not None:
        create_database_engine(database_url)

    try:
        verify_database_connection()
        create_all_tables()
        missing = verify_required_tables()
        if missing:
            raise DatabaseInitializationError(f"Missing tables after initialization: {missing}")
        logger.info("Database initialization complete")
    except DatabasePersistenceError as e:
        logger.critical(f"DATABASE INITIALIZATION FAILED: {e}")
        raise


def get_table_row_counts() -> Dict[str, int]:
    """
    Get row counts for the prediction tables.

    Returns:
        Dict mapping table name to row count (-1 if missing)
    """
    counts: Dict[str, int] = {}

    with get_engine().connect() as conn:
        for table in REQUIRED_TABLES:
            try:
                counts[table] = conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar()
            except SQLAlchemyError:
                counts[table] = -1

    return counts


# =============================================================
# CUSTOM EXCEPTIONS
# =============================================================


class DatabasePersistenceError(Exception):
    """Raised when database persistence fails."""
    pass


class DatabaseConnectionError(DatabasePersistenceError):
    """Raised when database connection fails."""
    pass


class DatabaseInitializationError(DatabasePersistenceError):
    """Raised when database initialization fails."""
    pass


# =============================================================
# EXPORTS
# =============================================================

__all__ = [
    "Base",
    "create_database_engine",
    "get_engine",
    "get_session",
    "get_session_factory",
    "reset_engine",
    "transaction_scope",
    "initialize_database",
    "verify_database_connection",
    "verify_required_tables",
    "create_all_tables",
    "get_table_row_counts",
    "DEFAULT_DATABASE_URL",
    "REQUIRED_TABLES",
    "DatabasePersistenceError",
    "DatabaseConnectionError",
    "DatabaseInitializationError",
]
