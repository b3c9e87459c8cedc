"""
==========================
Utility Functions Package.
==========================

Reusable helpers for database connectivity shared by the query builder
and the CLI.

Modules:
    database_utils: SQLAlchemy engine creation and health checks
"""

__version__ = "1.0.0"
__all__ = [
    'DatabaseConnectionError',
    'check_database_available',
    'create_sqlalchemy_engine',
    'get_connection_string',
    'verify_connection'
]

from .database_utils import (
    DatabaseConnectionError,
    check_database_available,
    create_sqlalchemy_engine,
    get_connection_string,
    verify_connection,
)
