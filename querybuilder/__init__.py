"""
==============================================
Fluent SQL statement builder.
==============================================

Accumulates columns, tables, joins, conditions, grouping, ordering and
limits through chained calls, compiles them into one parameterized SQL
string with typed named parameters, and executes it through a
SQLAlchemy-backed driver.

The package is organized by layer (leaves first):
    - schema.py: table metadata resolution and the SchemaCache
    - binder.py: parameter naming, typing and binding
    - where.py: WHERE expression tree and the match() shorthand compiler
    - statement.py: the clause model of the statement being built
    - compiler.py: SQL text rendering per operation
    - driver.py: SQLAlchemy Driver collaborator
    - builder.py: the QueryBuilder fluent facade

Example:
    >>> from querybuilder import QueryBuilder, RawValue
    >>>
    >>> qb = QueryBuilder('sqlite:///app.db')
    >>> qb.insert('roles', {'id': 'admin', 'created': RawValue('CURRENT_TIMESTAMP')})
    >>> qb.get_sql()
    'INSERT INTO roles (id, created) VALUES (:_id, CURRENT_TIMESTAMP);'
"""

__version__ = "1.0.0"
__all__ = [
    'QueryBuilder',
    'Driver', 'DriverError',
    'SchemaCache', 'SchemaResolver', 'SchemaUnavailableError', 'TableSchema', 'ColumnInfo',
    'NoActiveTableError',
    'Operation', 'ParamType', 'RawValue', 'Typed',
]

from .builder import QueryBuilder
from .driver import Driver, DriverError
from .schema import (
    ColumnInfo,
    SchemaCache,
    SchemaResolver,
    SchemaUnavailableError,
    TableSchema,
)
from .types import Operation, ParamType, RawValue, Typed
from .where import NoActiveTableError
