"""
==========================================
SQLAlchemy-backed database driver.
==========================================

The query builder never talks to a database directly; it hands compiled
SQL and typed parameters to a Driver. This module provides the default
implementation on top of a SQLAlchemy Engine.

A Driver keeps a single Connection open. Statements executed outside an
explicit transaction are committed immediately (autocommit behaviour);
begin()/commit()/rollback() switch to explicit transaction control.
Rows returned by a statement are buffered so fetching is independent of
the commit that follows execution.

Example:
    >>> from sqlalchemy import create_engine
    >>> from querybuilder.driver import Driver
    >>> from querybuilder.types import ParamType
    >>>
    >>> driver = Driver(create_engine('sqlite://'))
    >>> stmt = driver.prepare('SELECT :_x AS x;', {':_x': (1, ParamType.INT)})
    >>> driver.execute(stmt)
    >>> driver.fetch_row()
    {'x': 1}
"""

import logging
import re
from collections import deque
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import Boolean, Integer, String, bindparam, text
from sqlalchemy.engine import Connection, Engine, Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import TextClause
from sqlalchemy.types import NullType

from querybuilder.types import ParamType

logger = logging.getLogger(__name__)

# Same placeholder pattern SQLAlchemy's text() construct recognizes
_BIND_PLACEHOLDER = re.compile(r'(?<![:\w\\]):(\w+)(?!:)')

_SQLALCHEMY_TYPES = {
    ParamType.NULL: NullType,
    ParamType.BOOL: Boolean,
    ParamType.INT: Integer,
    ParamType.STRING: String,
}


class DriverError(Exception):
    """Exception raised when the database rejects or fails a statement."""
    pass


class Driver:
    """
    Database driver collaborator wrapping a SQLAlchemy Engine.

    Attributes:
        engine: SQLAlchemy Engine the connection is taken from
        last_error: Last DriverError raised by execute(), or None
        row_count: Rows affected by the last executed statement
        last_insert_id: Row id generated by the last INSERT, when reported

    Example:
        >>> driver = Driver(create_engine('sqlite:///app.db'))
        >>> driver.describe_table('users')
        [{'cid': 0, 'name': 'id', 'type': 'INTEGER', ..., 'pk': 1}, ...]
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._connection: Optional[Connection] = None
        self._transaction = None
        self._rows: deque = deque()
        self._keys: List[str] = []
        self.last_error: Optional[DriverError] = None
        self.row_count = 0
        self.last_insert_id = None

    @property
    def connection(self) -> Connection:
        if self._connection is None or self._connection.closed:
            self._connection = self.engine.connect()
        return self._connection

    @property
    def name(self) -> str:
        """Dialect name, e.g. 'sqlite' or 'mysql'."""
        return self.engine.dialect.name

    @property
    def dbname(self) -> str:
        return self.engine.url.database or ''

    @property
    def host(self) -> str:
        return self.engine.url.host or ''

    @property
    def port(self) -> int:
        return self.engine.url.port or 0

    def connection_fingerprint(self) -> str:
        """Connection identity used to key schema cache entries."""
        return self.engine.url.render_as_string(hide_password=True)

    def prepare(self, sql: str, params: Optional[Mapping[str, Tuple[Any, Any]]] = None) -> TextClause:
        """
        Build an executable statement with typed bound parameters.

        Args:
            sql: SQL text with :name placeholders
            params: Mapping of parameter name (leading ':' optional) to (value, type)

        Returns:
            TextClause ready for execute()
        """
        stmt = text(sql)
        if not params:
            return stmt

        placeholders = set(_BIND_PLACEHOLDER.findall(sql))
        binds = []
        for name, (value, param_type) in params.items():
            key = name.lstrip(':')
            if key not in placeholders:
                logger.debug(f"Skipping parameter '{name}': no matching placeholder in statement")
                continue
            sa_type = _SQLALCHEMY_TYPES[ParamType.coerce(param_type)]
            binds.append(bindparam(key, value, type_=sa_type()))

        return stmt.bindparams(*binds) if binds else stmt

    def execute(self, stmt: TextClause) -> None:
        """
        Execute a prepared statement and buffer any returned rows.

        Raises:
            DriverError: If SQLAlchemy reports any failure
        """
        self._rows.clear()
        self._keys = []
        conn = self.connection

        try:
            result = conn.execute(stmt)
            self.row_count = result.rowcount
            if result.returns_rows:
                self._keys = list(result.keys())
                self._rows.extend(result.all())
            else:
                self.last_insert_id = result.lastrowid
            if self._transaction is None:
                conn.commit()
        except SQLAlchemyError as e:
            if self._transaction is None:
                conn.rollback()
            self.last_error = DriverError(str(e))
            raise self.last_error from e

        self.last_error = None

    def fetch_row(self) -> Optional[Row]:
        """Return the next buffered row, or None when the results are exhausted."""
        return self._rows.popleft() if self._rows else None

    def fetch_all_rows(self) -> List[Row]:
        """Return every remaining buffered row."""
        rows = list(self._rows)
        self._rows.clear()
        return rows

    @property
    def keys(self) -> List[str]:
        """Column names of the last result set."""
        return list(self._keys)

    def describe_table(self, table: str) -> List[Dict[str, Any]]:
        """
        Run the dialect's table description query.

        The buffered results of the current statement are left untouched.

        Returns:
            List of metadata rows as dictionaries (empty when the table is unknown)

        Raises:
            DriverError: If the dialect is unsupported or the query fails
        """
        if self.name == 'sqlite':
            sql = f"PRAGMA table_info({table})"
        elif self.name == 'mysql':
            sql = f"DESCRIBE {table}"
        else:
            raise DriverError(f"Table description is not supported for dialect '{self.name}'")

        conn = self.connection
        try:
            result = conn.execute(text(sql))
            rows = [dict(row) for row in result.mappings().all()]
            if self._transaction is None:
                conn.commit()
        except SQLAlchemyError as e:
            if self._transaction is None:
                conn.rollback()
            raise DriverError(f"Failed to describe table '{table}': {e}") from e

        return rows

    def begin(self) -> None:
        """
        Start an explicit transaction.

        Raises:
            DriverError: If an explicit transaction is already open
        """
        if self._transaction is not None:
            raise DriverError("A transaction is already active; commit or roll back first")

        conn = self.connection
        if conn.in_transaction():
            # Close the implicit transaction left by autobegin
            conn.commit()
        self._transaction = conn.begin()

    def commit(self) -> None:
        if self._transaction is not None:
            self._transaction.commit()
            self._transaction = None

    def rollback(self) -> None:
        if self._transaction is not None:
            self._transaction.rollback()
            self._transaction = None

    def in_transaction(self) -> bool:
        return self._transaction is not None

    def error_info(self) -> Dict[str, Any]:
        """Describe the last execution failure, empty when the last statement succeeded."""
        if self.last_error is None:
            return {}
        cause = self.last_error.__cause__
        return {
            'error': type(cause).__name__ if cause else 'DriverError',
            'message': str(self.last_error),
        }

    def close(self) -> None:
        if self._connection is not None:
            self.rollback()
            self._connection.close()
            self._connection = None
