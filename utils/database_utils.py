"""
==================================================
Database connectivity utilities.
==================================================

Provides engine construction and health checks for the query builder and
the CLI, keeping SQLAlchemy connection setup out of the builder itself.

Key Features:
    - Engine creation from an explicit URL or from config
    - Connection availability checking
    - Human-readable connection verification

Example:
    >>> from utils.database_utils import create_sqlalchemy_engine, verify_connection
    >>>
    >>> engine = create_sqlalchemy_engine('sqlite:///app.db')
    >>> ok, message = verify_connection('sqlite:///app.db')
"""

import logging
from typing import Optional, Tuple

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from core.config import config

logger = logging.getLogger(__name__)


class DatabaseConnectionError(Exception):
    """Exception raised when a database URL is invalid or the engine cannot be created."""
    pass


def get_connection_string(url: Optional[str] = None) -> str:
    """
    Resolve the database URL to use.

    Args:
        url: Explicit URL (defaults to config.database_url)

    Returns:
        Database URL string
    """
    return url if url is not None else config.database_url


def create_sqlalchemy_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Create a SQLAlchemy engine.

    Args:
        url: Database URL (defaults to config.database_url)
        echo: Enable SQL statement logging (defaults to config.echo)

    Returns:
        Configured SQLAlchemy Engine

    Raises:
        DatabaseConnectionError: If the URL cannot be parsed or the dialect is unknown
    """
    conn_str = get_connection_string(url)
    echo = config.echo if echo is None else echo

    try:
        return create_engine(make_url(conn_str), echo=echo, pool_pre_ping=True)
    except (ArgumentError, SQLAlchemyError, ImportError) as e:
        raise DatabaseConnectionError(f"Cannot create engine for '{conn_str}': {e}") from e


def check_database_available(url: Optional[str] = None) -> bool:
    """
    Check whether the database accepts connections.

    Args:
        url: Database URL (defaults to config.database_url)

    Returns:
        True if a trivial query succeeds, False otherwise
    """
    try:
        engine = create_sqlalchemy_engine(url)
    except DatabaseConnectionError as e:
        logger.debug(f"Database not available: {e}")
        return False

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.debug(f"Database not available: {e}")
        return False
    finally:
        engine.dispose()


def verify_connection(url: Optional[str] = None) -> Tuple[bool, str]:
    """
    Verify database connection and return status with details.

    Returns:
        Tuple of (success, message)

    Example:
        >>> success, message = verify_connection('sqlite://')
        >>> success
        True
    """
    conn_str = get_connection_string(url)
    try:
        safe_url = make_url(conn_str).render_as_string(hide_password=True)
    except ArgumentError:
        return False, f"Invalid database URL: {conn_str}"

    if check_database_available(conn_str):
        return True, f"Connected to {safe_url}"
    return False, f"Database at {safe_url} is not available"
