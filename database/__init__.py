"""
Database Package Initialization.

SQLAlchemy engine, sessions and transaction scope for the
prediction stores. ORM models live with their domain in
risk_prediction.models and register on the shared Base.
"""

from .engine import (
    # Declarative base
    Base,

    # Engine creation
    create_database_engine,
    get_engine,
    reset_engine,

    # Session management
    get_session,
    get_session_factory,
    transaction_scope,

    # Database initialization
    initialize_database,
    verify_database_connection,
    verify_required_tables,
    create_all_tables,
    get_table_row_counts,

    # Constants
    DEFAULT_DATABASE_URL,
    REQUIRED_TABLES,

    # Exceptions
    DatabasePersistenceError,
    DatabaseConnectionError,
    DatabaseInitializationError,
)

__all__ = [
    "Base",
    "create_database_engine",
    "get_engine",
    "reset_engine",
    "get_session",
    "get_session_factory",
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
