"""
Shared fixtures for querybuilder tests.

Key fixtures:
- fake_driver: in-memory stand-in for querybuilder.driver.Driver with
  canned table metadata (sqlite row shape)
- mysql_driver: same fake reporting the mysql dialect and row shape
- schema_cache: a fresh SchemaCache so tests never share cached schemas
- qb: QueryBuilder wired to fake_driver and schema_cache
- sqlite_engine: in-memory SQLite engine with a seeded users/roles schema
"""

import pytest
from sqlalchemy import create_engine, text

from fakes import MYSQL_ACCOUNTS, SQLITE_LOGS, SQLITE_ROLES, SQLITE_USERS, FakeDriver
from querybuilder.builder import QueryBuilder
from querybuilder.driver import DriverError
from querybuilder.schema import SchemaCache

# ====================
# Fixtures
# ====================

@pytest.fixture
def fake_driver():
    """Fake sqlite driver knowing the users, roles and logs tables."""
    return FakeDriver(tables={
        'users': SQLITE_USERS,
        'roles': SQLITE_ROLES,
        'logs': SQLITE_LOGS,
        'broken': DriverError("no such table: broken"),
    })


@pytest.fixture
def mysql_driver():
    """Fake mysql driver knowing the accounts table."""
    return FakeDriver(name='mysql', tables={'accounts': MYSQL_ACCOUNTS}, fingerprint='mysql://db/app')


@pytest.fixture
def schema_cache():
    """Fresh schema cache, isolated from the process-wide default."""
    return SchemaCache()


@pytest.fixture
def qb(fake_driver, schema_cache):
    """QueryBuilder on the fake sqlite driver."""
    return QueryBuilder(fake_driver, schema_cache=schema_cache, strict_match=False, raise_errors=True)


@pytest.fixture
def sqlite_engine():
    """In-memory SQLite engine with users and roles tables."""
    engine = create_engine('sqlite://')
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE users ("
            "id INTEGER PRIMARY KEY, name VARCHAR(100), age INT, "
            "active BOOLEAN, born DATE)"
        ))
        conn.execute(text(
            "CREATE TABLE roles (id VARCHAR(20) PRIMARY KEY, name TEXT, status TINYINT)"
        ))
        conn.execute(text(
            "INSERT INTO users (id, name, age, active, born) VALUES "
            "(1, 'Ada', 36, 1, '1815-12-10'), "
            "(2, 'Grace', 45, 1, '1906-12-09'), "
            "(3, 'Alan', 41, 0, NULL)"
        ))
    yield engine
    engine.dispose()
