"""
======================================================
Pytest suite for querybuilder/compiler.py and statement.py
======================================================

Sections:
---------
1. Unit tests - clause model helpers and per-clause rendering
2. Integration tests - full statements compiled from a Statement
3. Edge case tests - empty statements, raw queries, joins

How to Execute:
---------------
All tests:          pytest tests/tests_querybuilder/test_compiler.py -v
"""

import pytest

from querybuilder.compiler import compile_statement, from_sql, join_sql, limit_sql
from querybuilder.statement import FromEntry, Statement, normalize_joins, parse_select_columns
from querybuilder.types import Operation, RawValue


def _select(columns='*', table='users'):
    stmt = Statement()
    stmt.start(Operation.SELECT, table)
    stmt.select_columns = parse_select_columns(columns)
    stmt.add_from(table)
    return stmt


# ===============
# 1. UNIT TESTS
# ===============


@pytest.mark.unit
@pytest.mark.parametrize("columns, expected", [
    ('*', ['*']),
    ('id, name , age', ['id', 'name', 'age']),
    (['id', 'count(*)'], ['id', 'count(*)']),
    ({'total': 'count(*)', 0: 'status'}, ['count(*) AS total', 'status']),
])
def test_parse_select_columns(columns, expected):
    assert parse_select_columns(columns) == expected


@pytest.mark.unit
def test_normalize_joins_mapping_becomes_triples():
    assert normalize_joins({'LEFT JOIN': ('roles', 'roles.id = users.role')}) == [
        ('LEFT JOIN', 'roles', 'roles.id = users.role')
    ]
    assert normalize_joins('JOIN roles USING (id)') == 'JOIN roles USING (id)'
    assert normalize_joins(None) is None


@pytest.mark.unit
def test_normalize_joins_accepts_a_single_triple():
    assert normalize_joins(('INNER JOIN', 'roles', 'roles.id = users.role')) == [
        ('INNER JOIN', 'roles', 'roles.id = users.role')
    ]
    assert normalize_joins([['LEFT JOIN', 'a', 'a.id = b.id'], ('JOIN', 'c', 'c.id = b.id')]) == [
        ('LEFT JOIN', 'a', 'a.id = b.id'),
        ('JOIN', 'c', 'c.id = b.id'),
    ]


@pytest.mark.unit
def test_statement_reset_clears_everything():
    stmt = _select()
    stmt.set_where('a = 1')
    stmt.set_order('name')
    stmt.set_limit(5)
    stmt.bind_param(':a', 1, 'int')

    stmt.reset()

    assert stmt == Statement()


@pytest.mark.unit
def test_join_sql_shapes():
    assert join_sql(FromEntry('users')) == ''
    assert join_sql(FromEntry('users', 'NATURAL JOIN roles')) == ' NATURAL JOIN roles'
    assert join_sql(FromEntry('users', [('INNER JOIN', 'roles r', 'r.id = users.role')])) == (
        ' INNER JOIN roles r ON (r.id = users.role)'
    )


@pytest.mark.unit
def test_limit_sql_with_and_without_end():
    stmt = Statement()
    assert limit_sql(stmt) == ''

    stmt.set_limit(10)
    assert limit_sql(stmt) == ' LIMIT 10'

    stmt.set_limit(20, 10)
    assert limit_sql(stmt) == ' LIMIT 20, 10'

    stmt.set_limit('10 OFFSET 20')
    assert limit_sql(stmt) == ' LIMIT 10 OFFSET 20'


# ======================
# 2. INTEGRATION TESTS
# ======================


@pytest.mark.integration
def test_compile_full_select():
    stmt = _select('status, count(*) AS n')
    stmt.set_where(['age > 18', 'AND', ['active = 1', 'OR', 'admin = 1']])
    stmt.set_group('status')
    stmt.set_having('count(*) > 1')
    stmt.set_order('n DESC')
    stmt.add_order('status')
    stmt.set_limit(0, 5)

    assert compile_statement(stmt) == (
        "SELECT status, count(*) AS n FROM users"
        " WHERE ((age > 18) AND ((active = 1) OR (admin = 1)))"
        " GROUP BY status HAVING count(*) > 1 ORDER BY n DESC, status LIMIT 0, 5;"
    )


@pytest.mark.integration
def test_compile_where_chain_appends_operators():
    stmt = _select()
    stmt.set_where('a = 1')
    stmt.append_where('OR', 'b = 2')
    stmt.append_where('AND', ['c = 3', 'XOR', 'd = 4'])

    assert compile_statement(stmt) == (
        "SELECT * FROM users WHERE (a = 1) OR (b = 2) AND ((c = 3) XOR (d = 4));"
    )


@pytest.mark.integration
def test_compile_select_distinct_with_several_from_entries():
    stmt = _select('u.name')
    stmt.operation = Operation.SELECT_DISTINCT
    stmt.add_from('roles', {'JOIN': ('perms', 'perms.role = roles.id')})

    assert compile_statement(stmt) == (
        "SELECT DISTINCT u.name FROM users, roles JOIN perms ON (perms.role = roles.id);"
    )


@pytest.mark.integration
@pytest.mark.parametrize("operation, keyword", [
    (Operation.INSERT, 'INSERT INTO'),
    (Operation.INSERT_IGNORE, 'INSERT IGNORE INTO'),
    (Operation.REPLACE, 'REPLACE INTO'),
])
def test_compile_insert_family(operation, keyword):
    stmt = Statement()
    stmt.start(operation, 'roles')
    stmt.add_column('id', 'admin')
    stmt.add_column('created', RawValue('CURRENT_TIMESTAMP'))

    assert compile_statement(stmt) == f"{keyword} roles (id, created) VALUES (:_id, CURRENT_TIMESTAMP);"


@pytest.mark.integration
def test_compile_update_and_delete():
    stmt = Statement()
    stmt.start(Operation.UPDATE, 'users')
    stmt.add_column('name', 'Ada')
    stmt.add_column('visits', RawValue('visits + 1'))
    stmt.set_where('id = 1')

    assert compile_statement(stmt) == "UPDATE users SET name = :_name, visits = visits + 1 WHERE (id = 1);"

    stmt.start(Operation.DELETE, 'users')
    assert compile_statement(stmt) == "DELETE FROM users;"


# ==================
# 3. EDGE CASE TESTS
# ==================


@pytest.mark.edge_case
def test_compile_without_operation_is_empty():
    assert compile_statement(Statement()) == ''


@pytest.mark.edge_case
@pytest.mark.parametrize("raw", ['SELECT 1', 'SELECT 1;', 'SELECT 1;;', 'SELECT 1 ;  \n'])
def test_compile_raw_query_has_single_terminator(raw):
    stmt = Statement()
    stmt.start(Operation.QUERY)
    stmt.raw_query = raw

    assert compile_statement(stmt) == 'SELECT 1;'


@pytest.mark.edge_case
def test_compile_select_without_table():
    stmt = Statement()
    stmt.start(Operation.SELECT)
    stmt.select_columns = parse_select_columns('1 + 1')

    assert from_sql(stmt) == ''
    assert compile_statement(stmt) == 'SELECT 1 + 1;'


@pytest.mark.edge_case
def test_add_from_single_join_triple_renders():
    stmt = _select(table='users u')
    stmt.set_from('users u', ('INNER JOIN', 'roles r', 'r.id = u.role'))

    assert compile_statement(stmt) == 'SELECT * FROM users u INNER JOIN roles r ON (r.id = u.role);'


@pytest.mark.edge_case
@pytest.mark.parametrize("join", [
    [('INNER JOIN', 'roles')],
    ['INNER JOIN roles ON (r.id = u.role)'],
    [('INNER JOIN', 'roles', 'r.id = u.role'), 42],
])
def test_add_from_rejects_malformed_joins(join):
    with pytest.raises(TypeError, match='triples'):
        Statement().add_from('users u', join)
