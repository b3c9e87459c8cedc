"""
==========================================
SQL compiler.
==========================================

Renders a Statement into SQL text. Each clause has its own _sql helper
returning either an empty string (clause not set) or the clause with a
leading space, so clauses concatenate directly:

    SELECT / SELECT DISTINCT
        <OP> <cols> FROM ... [WHERE ...] [GROUP BY ...] [HAVING ...]
        [ORDER BY ...] [LIMIT s[, e]];
    INSERT / INSERT IGNORE / REPLACE
        <OP> INTO <table> (<names>) VALUES (<expressions>);
    UPDATE
        UPDATE <table> SET <name> = <expression>, ... [WHERE ...];
    DELETE
        DELETE FROM <table> [WHERE ...];
    QUERY
        the raw query text, terminated by a single ';'

A Statement without an operation compiles to an empty string.
"""

import logging

from querybuilder.statement import FromEntry, Statement
from querybuilder.types import Operation
from querybuilder.where import render

logger = logging.getLogger(__name__)

_INSERT_KEYWORDS = {
    Operation.INSERT: 'INSERT INTO',
    Operation.INSERT_IGNORE: 'INSERT IGNORE INTO',
    Operation.REPLACE: 'REPLACE INTO',
}


def select_columns_sql(stmt: Statement) -> str:
    return ', '.join(stmt.select_columns)


def insert_columns_sql(stmt: Statement) -> str:
    # Names and expressions come from the same ordered mapping
    names = ', '.join(stmt.columns.keys())
    values = ', '.join(stmt.columns.values())
    return f"({names}) VALUES ({values})"


def update_columns_sql(stmt: Statement) -> str:
    return ', '.join(f"{name} = {expression}" for name, expression in stmt.columns.items())


def join_sql(entry: FromEntry) -> str:
    if entry.join is None:
        return ''
    if isinstance(entry.join, str):
        return f" {entry.join}"
    return ''.join(
        f" {join_type} {table} ON ({on})" for join_type, table, on in entry.join
    )


def from_sql(stmt: Statement) -> str:
    if not stmt.from_list:
        return ''
    entries = [f"{entry.table}{join_sql(entry)}" for entry in stmt.from_list]
    return ' FROM ' + ', '.join(entries)


def where_sql(stmt: Statement) -> str:
    if not stmt.where:
        return ''
    return ' WHERE ' + render(stmt.where)


def group_sql(stmt: Statement) -> str:
    if not stmt.group:
        return ''
    return ' GROUP BY ' + ', '.join(stmt.group)


def having_sql(stmt: Statement) -> str:
    if not stmt.having:
        return ''
    return ' HAVING ' + stmt.having


def order_sql(stmt: Statement) -> str:
    if not stmt.order:
        return ''
    return ' ORDER BY ' + ', '.join(stmt.order)


def limit_sql(stmt: Statement) -> str:
    if stmt.limit is None:
        return ''
    sql = f" LIMIT {stmt.limit.start}"
    if stmt.limit.end is not None:
        sql += f", {stmt.limit.end}"
    return sql


def compile_statement(stmt: Statement) -> str:
    """
    Build the SQL text for a statement.

    Args:
        stmt: Statement to render

    Returns:
        SQL text terminated by ';', or '' when no operation is set
    """
    operation = stmt.operation

    if operation in (Operation.SELECT, Operation.SELECT_DISTINCT):
        sql = (
            f"{operation.value} {select_columns_sql(stmt)}"
            + from_sql(stmt)
            + where_sql(stmt)
            + group_sql(stmt)
            + having_sql(stmt)
            + order_sql(stmt)
            + limit_sql(stmt)
        )
    elif operation in _INSERT_KEYWORDS:
        sql = f"{_INSERT_KEYWORDS[operation]} {stmt.table} {insert_columns_sql(stmt)}"
    elif operation is Operation.UPDATE:
        sql = f"UPDATE {stmt.table} SET {update_columns_sql(stmt)}" + where_sql(stmt)
    elif operation is Operation.DELETE:
        sql = f"DELETE FROM {stmt.table}" + where_sql(stmt)
    elif operation is Operation.QUERY:
        sql = stmt.raw_query.rstrip().rstrip(';').rstrip()
    else:
        logger.debug("No operation set; compiled to an empty statement")
        return ''

    return sql + ';'
