"""
==========================================
Table schema resolution and caching.
==========================================

Fetches table structure from the driver, normalizes it into a TableSchema
(primary key plus column -> declared type / parameter type map) and caches
the result for the life of the process.

Two metadata row shapes are understood:

    sqlite: PRAGMA table_info(<table>)  -> {name, type, pk}
    mysql:  DESCRIBE <table>            -> {Field, Type, Key}

Any failure (unsupported dialect, missing table, empty metadata) resolves
to None. Callers fall back to STRING parameter types and have no primary
key shortcut; nothing is cached for a failed lookup.

The cache is an explicit SchemaCache object. Builders sharing a connection
should share one cache; DEFAULT_SCHEMA_CACHE is used when none is given.
Entries are never invalidated, so a schema change requires a new cache
(or a process restart).

Example:
    >>> resolver = SchemaResolver(driver)
    >>> schema = resolver.describe('users')
    >>> schema.primary_key.name
    'id'
    >>> schema.param_type('age')
    <ParamType.INT: 'int'>
"""

import hashlib
import logging
import re
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional

from querybuilder.driver import DriverError
from querybuilder.types import ParamType

logger = logging.getLogger(__name__)

_TYPE_PREFIX = re.compile(r'^[a-zA-Z]*')

_PARAM_TYPES = {
    'boolean': ParamType.BOOL,
    'int': ParamType.INT,
    'integer': ParamType.INT,
    'tinyint': ParamType.INT,
    'bigint': ParamType.INT,
    'smallint': ParamType.INT,
}

SUPPORTED_DIALECTS = ('sqlite', 'mysql')


class SchemaUnavailableError(Exception):
    """Exception raised when an operation needs table metadata that could not be resolved."""
    pass


@dataclass(frozen=True)
class ColumnInfo:
    """Normalized description of one table column."""

    name: str
    declared_type: str
    param_type: ParamType


@dataclass(frozen=True)
class TableSchema:
    """Normalized table structure.

    Attributes:
        primary_key: Primary key column (first column when none is declared)
        columns: Read-only mapping of column name to ColumnInfo, in declaration order
    """

    primary_key: Optional[ColumnInfo]
    columns: Mapping[str, ColumnInfo] = field(default_factory=dict)

    def column(self, name: str) -> Optional[ColumnInfo]:
        return self.columns.get(strip_quotes(name))

    def param_type(self, name: str) -> ParamType:
        """Parameter type for a column, STRING when the column is unknown."""
        info = self.column(name)
        return info.param_type if info else ParamType.STRING


def strip_quotes(name: str) -> str:
    """Remove identifier quoting characters from a column name."""
    return name.replace('`', '').replace('"', '')


def normalize_type(declared: Optional[str]) -> str:
    """Keep the leading alphabetic part of a declared type, lower-cased.

    'varchar(100)' -> 'varchar', 'INTEGER' -> 'integer', 'int(11) unsigned' -> 'int'
    """
    match = _TYPE_PREFIX.match(declared or '')
    return match.group(0).lower()


def param_type_for(declared_type: str) -> ParamType:
    """Map a normalized declared type to its binding type (STRING by default)."""
    return _PARAM_TYPES.get(declared_type, ParamType.STRING)


def _row_fields(dialect: str, row: Mapping[str, Any]):
    """Extract (name, type, is_primary_key) from a dialect-specific metadata row."""
    if dialect == 'sqlite':
        return row['name'], row['type'], row['pk'] == 1
    return row['Field'], row['Type'], row['Key'] == 'PRI'


def build_table_schema(dialect: str, rows: Iterable[Mapping[str, Any]]) -> Optional[TableSchema]:
    """
    Normalize raw metadata rows into a TableSchema.

    Args:
        dialect: Driver dialect name ('sqlite' or 'mysql')
        rows: Metadata rows as returned by the driver's describe_table()

    Returns:
        TableSchema, or None when there are no rows
    """
    columns: Dict[str, ColumnInfo] = {}
    primary_key = None

    for row in rows:
        raw_name, raw_type, is_pk = _row_fields(dialect, row)
        name = strip_quotes(raw_name)
        declared_type = normalize_type(raw_type)
        info = ColumnInfo(name, declared_type, param_type_for(declared_type))
        columns[name] = info
        if is_pk:
            primary_key = info

    if not columns:
        return None

    # Fall back to the first declared column
    if primary_key is None:
        primary_key = next(iter(columns.values()))

    return TableSchema(primary_key=primary_key, columns=MappingProxyType(columns))


class SchemaCache:
    """
    Thread-safe, process-lifetime store of TableSchema entries.

    Keys are fingerprints of (connection identity, table name). Entries are
    immutable and never evicted.
    """

    def __init__(self):
        self._entries: Dict[str, TableSchema] = {}
        self._lock = threading.Lock()

    @staticmethod
    def fingerprint(connection_fingerprint: str, table: str) -> str:
        return hashlib.md5(f"{connection_fingerprint},{table}".encode('utf-8')).hexdigest()

    def get(self, key: str) -> Optional[TableSchema]:
        with self._lock:
            return self._entries.get(key)

    def set_default(self, key: str, schema: TableSchema) -> TableSchema:
        """Store schema unless another caller stored one first; return the stored entry."""
        with self._lock:
            return self._entries.setdefault(key, schema)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


DEFAULT_SCHEMA_CACHE = SchemaCache()


class SchemaResolver:
    """
    Resolve table structures through a driver, consulting a SchemaCache first.

    Attributes:
        driver: Database driver exposing name, connection_fingerprint()
            and describe_table()
        cache: SchemaCache shared by every builder on the same connection
    """

    def __init__(self, driver, cache: Optional[SchemaCache] = None):
        self.driver = driver
        self.cache = cache if cache is not None else DEFAULT_SCHEMA_CACHE

    def describe(self, table: Optional[str]) -> Optional[TableSchema]:
        """
        Return the TableSchema for table, or None when it cannot be resolved.

        Args:
            table: Table name as used in the statement

        Returns:
            Cached or freshly built TableSchema, None on any failure
        """
        if not table:
            return None

        key = self.cache.fingerprint(self.driver.connection_fingerprint(), table)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Schema cache hit for table '{table}'")
            return cached

        dialect = self.driver.name
        if dialect not in SUPPORTED_DIALECTS:
            logger.warning(f"Schema description is not supported for dialect '{dialect}'")
            return None

        try:
            rows = self.driver.describe_table(table)
        except DriverError as e:
            logger.warning(f"Could not describe table '{table}': {e}")
            return None

        schema = build_table_schema(dialect, rows or [])
        if schema is None:
            logger.warning(f"No column metadata returned for table '{table}'")
            return None

        logger.debug(f"Cached schema for table '{table}' ({len(schema.columns)} columns)")
        return self.cache.set_default(key, schema)
