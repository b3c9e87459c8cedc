"""
==========================================
Fluent query builder.
==========================================

QueryBuilder accumulates the clauses of one statement at a time and hands
the compiled SQL plus typed parameters to a Driver.

Method families:
    Statement starters (reset state, return self):
        select, select_distinct, insert, insert_ignore, replace, update,
        delete, query
    Clause appenders (return self):
        from_, add_from, where, and_where, or_where, xor_where, match,
        group_by, add_group_by, having, order_by, add_order_by, limit,
        bind_param, bind_params, add_column, add_columns
    Terminals:
        execute, fetch, fetch_all, fetch_object, fetch_dataframe,
        get_sql, get_columns, get_params, get, count, exists

A builder instance is a sequential accumulator: reset -> populate ->
compile -> execute -> reset. Use clone() to obtain an independent builder
on the same connection and schema cache.

Example:
    >>> qb = QueryBuilder('sqlite:///app.db')
    >>> qb.insert('roles', {'id': 'admin', 'name': 'Administrator'}).execute()
    >>> qb.select('*', 'users').match('age', '>=', 30).order_by('name').limit(10)
    >>> qb.get_sql()
    'SELECT * FROM users WHERE (age >= :__age1) ORDER BY name LIMIT 10;'
    >>> rows = qb.execute().fetch_all()
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd
from sqlalchemy.engine import Engine, Row

from core.config import config
from querybuilder.binder import params_as_dict
from querybuilder.compiler import compile_statement
from querybuilder.driver import Driver, DriverError
from querybuilder.schema import SchemaCache, SchemaResolver, TableSchema
from querybuilder.statement import JoinSpec, Statement, parse_select_columns
from querybuilder.types import Operation, ParamType, RawValue, as_typed
from querybuilder.where import MISSING, NoActiveTableError, Operator, compile_match
from utils.database_utils import create_sqlalchemy_engine

logger = logging.getLogger(__name__)

ColumnSpec = Union[str, Sequence[str], Mapping[Any, str]]


def _needs_schema(value: Any) -> bool:
    """Only plain, non-null values take their type from the table schema."""
    return not (value is None or isinstance(value, RawValue) or as_typed(value) is not None)


class QueryBuilder:
    """
    Build, compile and execute SQL statements through a fluent interface.

    Attributes:
        db_driver: Driver executing the compiled statements
        schemas: SchemaResolver used for parameter type inference
        strict_match: Raise NoActiveTableError when match() has no table
        raise_errors: Default for execute(throw=...)
        statement: Clause state of the statement being built

    Example:
        >>> qb = QueryBuilder(create_engine('sqlite://'))
        >>> qb.update('users', {'name': 'Ada'}).match(1).get_sql()
        'UPDATE users SET name = :_name WHERE (id = :__id1);'
    """

    def __init__(
        self,
        connection: Union[Driver, Engine, str, None] = None,
        schema_cache: Optional[SchemaCache] = None,
        strict_match: Optional[bool] = None,
        raise_errors: Optional[bool] = None
    ):
        """
        Initialize the builder.

        Args:
            connection: Driver (or an object with the same interface),
                SQLAlchemy Engine, database URL, or None to use
                QB_DATABASE_URL from the configuration
            schema_cache: Cache shared with other builders on the same
                connection (process-wide default when omitted)
            strict_match: Override config.strict_match
            raise_errors: Override config.raise_errors
        """
        if connection is None or isinstance(connection, str):
            self.db_driver = Driver(create_sqlalchemy_engine(connection))
        elif isinstance(connection, Engine):
            self.db_driver = Driver(connection)
        else:
            self.db_driver = connection

        self.schemas = SchemaResolver(self.db_driver, schema_cache)
        self.strict_match = config.strict_match if strict_match is None else strict_match
        self.raise_errors = config.raise_errors if raise_errors is None else raise_errors
        self.statement = Statement()

    def clone(self) -> 'QueryBuilder':
        """New builder on the same driver and schema cache, with empty clause state."""
        return QueryBuilder(
            self.db_driver,
            schema_cache=self.schemas.cache,
            strict_match=self.strict_match,
            raise_errors=self.raise_errors
        )

    def __copy__(self) -> 'QueryBuilder':
        return self.clone()

    def describe(self, table: Optional[str]) -> Optional[TableSchema]:
        """Table structure from the schema cache or the driver, None if unavailable."""
        return self.schemas.describe(table)

    # Driver information

    @property
    def dbname(self) -> str:
        return self.db_driver.dbname

    @property
    def driver(self) -> str:
        return self.db_driver.name

    @property
    def host(self) -> str:
        return self.db_driver.host

    @property
    def port(self) -> int:
        return self.db_driver.port

    # Transactions

    def begin_transaction(self) -> 'QueryBuilder':
        self.db_driver.begin()
        return self

    def commit(self) -> 'QueryBuilder':
        self.db_driver.commit()
        return self

    def roll_back(self) -> 'QueryBuilder':
        self.db_driver.rollback()
        return self

    def is_autocommit(self) -> bool:
        return not self.db_driver.in_transaction()

    # Statement starters

    def select(self, columns: ColumnSpec, table: Optional[str] = None) -> 'QueryBuilder':
        """
        Start a SELECT statement.

        Args:
            columns: 'a, b' string, list of expressions, or {alias: expression}
            table: Optional table; also becomes the first FROM entry
        """
        self.statement.start(Operation.SELECT, table)
        self.statement.select_columns = parse_select_columns(columns)
        if table is not None:
            self.statement.add_from(table)
        return self

    def select_distinct(self, columns: ColumnSpec, table: Optional[str] = None) -> 'QueryBuilder':
        self.select(columns, table)
        self.statement.operation = Operation.SELECT_DISTINCT
        return self

    def _start_write(
        self,
        operation: Operation,
        table: str,
        columns: Optional[Mapping[str, Any]]
    ) -> 'QueryBuilder':
        self.statement.start(operation, table)
        if columns:
            self.add_columns(columns)
        return self

    def insert(self, table: str, columns: Optional[Mapping[str, Any]] = None) -> 'QueryBuilder':
        return self._start_write(Operation.INSERT, table, columns)

    def insert_ignore(self, table: str, columns: Optional[Mapping[str, Any]] = None) -> 'QueryBuilder':
        return self._start_write(Operation.INSERT_IGNORE, table, columns)

    def replace(self, table: str, columns: Optional[Mapping[str, Any]] = None) -> 'QueryBuilder':
        return self._start_write(Operation.REPLACE, table, columns)

    def update(self, table: str, columns: Optional[Mapping[str, Any]] = None) -> 'QueryBuilder':
        return self._start_write(Operation.UPDATE, table, columns)

    def delete(self, table: str) -> 'QueryBuilder':
        self.statement.start(Operation.DELETE, table)
        return self

    def query(self, sql: str, params: Optional[Mapping[str, Tuple[Any, Any]]] = None) -> 'QueryBuilder':
        """
        Start a raw SQL statement.

        The text is emitted as given except for its end: trailing whitespace
        and semicolons are removed and a single ';' is appended, so
        'SELECT 1;;' compiles to 'SELECT 1;'.

        Args:
            sql: SQL text with :name placeholders
            params: Optional {name: (value, type)} bindings
        """
        self.statement.start(Operation.QUERY)
        self.statement.raw_query = sql
        if params:
            self.statement.bind_params(params)
        return self

    # FROM / JOIN

    def from_(self, table: str, join: JoinSpec = None) -> 'QueryBuilder':
        """
        Replace the FROM list with a single table and its joins.

        join may be a raw clause ('INNER JOIN b ON a.id = b.a_id') or a
        sequence of (join type, table, on condition) triples.
        """
        self.statement.set_from(table, join)
        return self

    def add_from(self, table: str, join: JoinSpec = None) -> 'QueryBuilder':
        """Append a FROM entry; entries are comma separated in the SQL."""
        self.statement.add_from(table, join)
        return self

    # Columns and parameters

    def add_column(self, name: str, value: Any) -> 'QueryBuilder':
        """
        Set a column value for INSERT / REPLACE / UPDATE.

        value may be a RawValue (spliced verbatim), a Typed pair (bound with
        that type), or a plain value (bound with the type of the column).
        """
        schema = self.describe(self.statement.table) if _needs_schema(value) else None
        self.statement.add_column(name, value, schema)
        return self

    def add_columns(self, columns: Mapping[str, Any]) -> 'QueryBuilder':
        for name, value in columns.items():
            self.add_column(name, value)
        return self

    def bind_param(self, name: str, value: Any, param_type: Union[ParamType, str]) -> 'QueryBuilder':
        self.statement.bind_param(name, value, param_type)
        return self

    def bind_params(self, params: Mapping[str, Tuple[Any, Any]]) -> 'QueryBuilder':
        self.statement.bind_params(params)
        return self

    # WHERE

    def where(self, condition: Any, params: Optional[Mapping[str, Tuple[Any, Any]]] = None) -> 'QueryBuilder':
        """
        Start the WHERE expression, discarding any previous conditions.

        Args:
            condition: Condition string, or a list of conditions, operator
                strings ('AND', 'OR', 'XOR') and nested lists
            params: Optional {name: (value, type)} bindings
        """
        self.statement.set_where(condition)
        if params:
            self.statement.bind_params(params)
        return self

    def _append_where(self, operator: str, condition: Any, params) -> 'QueryBuilder':
        self.statement.append_where(operator, condition)
        if params:
            self.statement.bind_params(params)
        return self

    def and_where(self, condition: Any, params: Optional[Mapping[str, Tuple[Any, Any]]] = None) -> 'QueryBuilder':
        return self._append_where('AND', condition, params)

    def or_where(self, condition: Any, params: Optional[Mapping[str, Tuple[Any, Any]]] = None) -> 'QueryBuilder':
        return self._append_where('OR', condition, params)

    def xor_where(self, condition: Any, params: Optional[Mapping[str, Tuple[Any, Any]]] = None) -> 'QueryBuilder':
        return self._append_where('XOR', condition, params)

    def match(self, arg1: Any, arg2: Any = MISSING, arg3: Any = MISSING) -> 'QueryBuilder':
        """
        Replace the WHERE expression with schema-typed conditions.

        Forms:
            match(5)                       primary key = 5
            match('age', 30)               age = 30
            match('age', '>=', 30)         age >= 30
            match('deleted_at', None)      deleted_at IS NULL
            match([('a', 1), 'AND', ('b', '<', 2)])

        List entries are rendered side by side; put 'AND'/'OR' strings
        between them to combine them.

        Without a table (no select/insert/update/delete yet) this is a no-op,
        or raises NoActiveTableError when strict_match is enabled.
        """
        table = self.statement.table
        if table is None:
            if self.strict_match:
                raise NoActiveTableError("match() called before a table was selected")
            logger.warning("match() ignored: no table selected for the current statement")
            return self

        group, params = compile_match(table, self.describe(table), arg1, arg2, arg3)
        if len(group) > 1 and not any(isinstance(node, Operator) for node in group.items):
            logger.debug("match() conditions are not joined by operators and render side by side")

        self.statement.replace_where(group)
        self.statement.params.update(params)
        return self

    # GROUP BY / HAVING / ORDER BY / LIMIT

    def group_by(self, expression: str) -> 'QueryBuilder':
        self.statement.set_group(expression)
        return self

    def add_group_by(self, expression: str) -> 'QueryBuilder':
        self.statement.add_group(expression)
        return self

    def having(self, clause: str) -> 'QueryBuilder':
        self.statement.set_having(clause)
        return self

    def order_by(self, keyword: str) -> 'QueryBuilder':
        self.statement.set_order(keyword)
        return self

    def add_order_by(self, keyword: str) -> 'QueryBuilder':
        self.statement.add_order(keyword)
        return self

    def limit(self, start: Union[int, str], end: Union[int, str, None] = None) -> 'QueryBuilder':
        """Set LIMIT start[, end]; start may also be a string such as '1 OFFSET 10'."""
        self.statement.set_limit(start, end)
        return self

    # Terminals

    def get_sql(self) -> str:
        return compile_statement(self.statement)

    def get_columns(self) -> Union[List[str], Dict[str, str]]:
        """SELECT column expressions, or the {column: expression} map for writes."""
        if self.statement.operation in (Operation.SELECT, Operation.SELECT_DISTINCT):
            return list(self.statement.select_columns)
        return dict(self.statement.columns)

    def get_params(self) -> Dict[str, Tuple[Any, ParamType]]:
        return params_as_dict(self.statement.params)

    def execute(self, throw: Optional[bool] = None) -> 'QueryBuilder':
        """
        Compile and execute the current statement.

        Args:
            throw: Raise DriverError on failure; when False the error is
                logged and kept for error_info(). Defaults to raise_errors.

        Raises:
            DriverError: If execution fails and throw is enabled
        """
        throw = self.raise_errors if throw is None else throw
        sql = self.get_sql()
        logger.debug(f"Executing: {sql}")

        try:
            prepared = self.db_driver.prepare(sql, self.get_params())
            self.db_driver.execute(prepared)
        except DriverError as e:
            if throw:
                raise
            logger.error(f"Statement failed and was suppressed: {e}")

        return self

    def fetch(self) -> Optional[Dict[str, Any]]:
        """Next row as a dictionary, or None when there are no more rows."""
        row = self.db_driver.fetch_row()
        return dict(row._mapping) if row is not None else None

    def fetch_object(self) -> Optional[Row]:
        """Next row with attribute access (row.name), or None."""
        return self.db_driver.fetch_row()

    def fetch_all(self) -> List[Dict[str, Any]]:
        return [dict(row._mapping) for row in self.db_driver.fetch_all_rows()]

    def fetch_dataframe(self) -> pd.DataFrame:
        """Remaining rows of the last result as a pandas DataFrame."""
        rows = self.db_driver.fetch_all_rows()
        return pd.DataFrame([tuple(row) for row in rows], columns=self.db_driver.keys)

    def get(self, table: str, pk: Any, columns: ColumnSpec = '*') -> Optional[Dict[str, Any]]:
        """Fetch one record by primary key value, None when not found."""
        return (
            self.select(columns, table)
            .match(pk)
            .limit(1)
            .execute()
            .fetch()
        )

    def count(self, expression: str, table: str, match: Any = None) -> int:
        """
        Count records with count(<expression>).

        Args:
            expression: count() argument, e.g. '*' or 'DISTINCT email'
            table: Table name
            match: Optional match() argument (value or list of conditions)
        """
        self.select([f"count({expression}) AS count"], table)
        if match is not None:
            self.match(match)

        result = self.execute().fetch()
        return int(result['count']) if result else 0

    def exists(self, table: str, pk: Any) -> bool:
        """Check whether a record with the given primary key exists."""
        return self.count('*', table, pk) > 0

    # Driver state

    def last_insert_id(self) -> Any:
        return self.db_driver.last_insert_id

    def row_count(self) -> int:
        return self.db_driver.row_count

    def error_info(self) -> Dict[str, Any]:
        return self.db_driver.error_info()

    def error_exists(self) -> bool:
        return self.db_driver.last_error is not None
