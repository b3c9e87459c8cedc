"""
===============================================
Comprehensive pytest suite for main.py
===============================================

Sections:
---------
1. Unit tests - describe_table and run_sql helpers
2. CLI tests - argument handling and exit codes

Available markers:
------------------
unit, integration, edge_case, smoke

Test Coverage:
--------------
- describe_table: printed structure, undescribable tables
- run_sql: row output and affected-row output
- main(): --check, --describe, --sql, no operation, error and interrupt exit codes

How to Execute:
---------------
All tests:          pytest tests/test_main.py -v
By category:        pytest tests/test_main.py -m unit
"""

from unittest.mock import patch

import pytest
from sqlalchemy import create_engine, text

from main import describe_table, main, run_sql
from querybuilder import DriverError, QueryBuilder
from querybuilder.schema import SchemaCache
from utils.database_utils import DatabaseConnectionError


@pytest.fixture(autouse=True)
def setup_logging_mock():
    """Keep main() from replacing the root logger handlers."""
    with patch('main.setup_logging') as mock:
        yield mock


@pytest.fixture
def db():
    """QueryBuilder on an in-memory database with users and roles tables."""
    engine = create_engine('sqlite://')
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE users (id INTEGER PRIMARY KEY, name VARCHAR(100), age INT)"))
        conn.execute(text("CREATE TABLE roles (id VARCHAR(20) PRIMARY KEY, name TEXT, status TINYINT)"))
        conn.execute(text("INSERT INTO users VALUES (1, 'Ada', 36), (2, 'Grace', 45), (3, 'Alan', 41)"))
    yield QueryBuilder(engine, schema_cache=SchemaCache())
    engine.dispose()


# ===============
# 1. UNIT TESTS
# ===============


@pytest.mark.unit
def test_describe_table_prints_columns(db, capsys):
    assert describe_table(db, 'roles') == 0

    out = capsys.readouterr().out
    assert 'Table: roles (primary key: id)' in out
    assert 'status' in out and 'tinyint' in out


@pytest.mark.unit
def test_describe_unknown_table_fails(db):
    assert describe_table(db, 'nope') == 1


@pytest.mark.unit
def test_run_sql_prints_rows(db, capsys):
    assert run_sql(db, 'SELECT name FROM users ORDER BY id') == 0

    out = capsys.readouterr().out
    assert 'Ada' in out and 'Grace' in out and 'Alan' in out


@pytest.mark.unit
def test_run_sql_prints_affected_rows(db, capsys):
    assert run_sql(db, 'UPDATE users SET age = age + 1') == 0

    assert 'OK (3 rows affected)' in capsys.readouterr().out


# ===============
# 2. CLI TESTS
# ===============


@pytest.mark.smoke
def test_main_without_operation_returns_error(capsys):
    assert main([]) == 1
    assert 'usage' in capsys.readouterr().out


@pytest.mark.integration
def test_main_check_success():
    with patch('main.verify_connection', return_value=(True, 'Connected to sqlite://')) as verify:
        assert main(['--check', '--url', 'sqlite://']) == 0

    verify.assert_called_once_with('sqlite://')


@pytest.mark.integration
def test_main_check_failure():
    with patch('main.verify_connection', return_value=(False, 'Database at x is not available')):
        assert main(['--check']) == 1


@pytest.mark.integration
def test_main_sql_against_memory_database(capsys):
    assert main(['--url', 'sqlite://', '--sql', 'SELECT 41 + 1 AS answer']) == 0

    assert '42' in capsys.readouterr().out


@pytest.mark.integration
def test_main_describe_uses_builder(db):
    with patch('main.QueryBuilder', return_value=db):
        assert main(['--describe', 'users']) == 0


@pytest.mark.edge_case
def test_main_driver_error_returns_one():
    assert main(['--url', 'sqlite://', '--sql', 'SELECT * FROM missing_table']) == 1


@pytest.mark.edge_case
def test_main_invalid_url_returns_one():
    with patch('main.QueryBuilder', side_effect=DatabaseConnectionError('bad url')):
        assert main(['--url', 'bad', '--sql', 'SELECT 1']) == 1


@pytest.mark.edge_case
def test_main_keyboard_interrupt_returns_130():
    with patch('main.run_sql', side_effect=KeyboardInterrupt):
        assert main(['--url', 'sqlite://', '--sql', 'SELECT 1']) == 130


@pytest.mark.edge_case
def test_main_driver_error_from_run_sql_returns_one():
    with patch('main.run_sql', side_effect=DriverError('locked')):
        assert main(['--url', 'sqlite://', '--sql', 'SELECT 1']) == 1


@pytest.mark.unit
def test_main_verbose_enables_debug_logging(setup_logging_mock):
    with patch('main.verify_connection', return_value=(True, 'ok')):
        main(['--check', '--verbose'])

    setup_logging_mock.assert_called_once_with(log_level='DEBUG')
