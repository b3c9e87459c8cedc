"""
==========================================
Configuration management for the builder.
==========================================

Loads all configuration from environment variables (.env file) and provides
a centralized Config singleton for application-wide access.

The configuration system ensures:
- Single source of truth for connection and builder settings
- Type conversion of boolean and string flags
- Sensible defaults for local development (SQLite file database)

Example:
    >>> from core.config import config
    >>>
    >>> # Database connection
    >>> engine_url = config.get_connection_string()
    >>>
    >>> # Builder behaviour
    >>> print(f"Strict match: {config.strict_match}")
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

_TRUE_VALUES = ('1', 'true', 'yes', 'on')


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass
class DatabaseConfig:
    """Database configuration settings.

    Attributes:
        url: SQLAlchemy database URL
        echo: Log every statement emitted by the SQLAlchemy engine
    """

    url: str
    echo: bool = False

    def get_connection_string(self) -> str:
        """Get the SQLAlchemy connection string."""
        return self.url


@dataclass
class BuilderConfig:
    """Query builder behaviour settings.

    Attributes:
        strict_match: Raise NoActiveTableError when match() runs without a table
        raise_errors: Default for QueryBuilder.execute(throw=...)
        log_level: Default logging level for the CLI
    """

    strict_match: bool = False
    raise_errors: bool = True
    log_level: str = 'INFO'


class Config:
    """Centralized configuration manager.

    Attributes:
        db: DatabaseConfig instance with connection settings
        builder: BuilderConfig instance with builder behaviour flags

    Example:
        >>> config = Config()
        >>> conn_str = config.get_connection_string()
    """

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.db = DatabaseConfig(
            url=os.getenv('QB_DATABASE_URL', 'sqlite:///querybuilder.db'),
            echo=_env_flag('QB_ECHO', False)
        )

        self.builder = BuilderConfig(
            strict_match=_env_flag('QB_STRICT_MATCH', False),
            raise_errors=_env_flag('QB_RAISE_ERRORS', True),
            log_level=os.getenv('QB_LOG_LEVEL', 'INFO').upper()
        )

    @property
    def database_url(self) -> str:
        """Get database URL."""
        return self.db.url

    @property
    def echo(self) -> bool:
        """Get SQLAlchemy echo flag."""
        return self.db.echo

    @property
    def strict_match(self) -> bool:
        """Get strict match flag."""
        return self.builder.strict_match

    @property
    def raise_errors(self) -> bool:
        """Get default raise-on-driver-error flag."""
        return self.builder.raise_errors

    @property
    def log_level(self) -> str:
        """Get default log level."""
        return self.builder.log_level

    def get_connection_string(self) -> str:
        """Get database connection string.

        Returns:
            SQLAlchemy-compatible connection string
        """
        return self.db.get_connection_string()


# Global configuration instance
config = Config()
