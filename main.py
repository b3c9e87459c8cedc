"""
=========================================================
Command-line entry point for the query builder.
=========================================================

A thin CLI around QueryBuilder for quick inspection of a database:
    - Connectivity check
    - Table description as seen by the schema resolver
    - Raw SQL execution with tabular output

Usage:
    # Check the configured database (QB_DATABASE_URL)
    python main.py --check

    # Describe a table
    python main.py --url sqlite:///app.db --describe users

    # Run a statement
    python main.py --url sqlite:///app.db --sql "SELECT * FROM users LIMIT 5"
"""

import argparse
import sys
from typing import Optional, Sequence

from core.config import config
from core.logger import get_logger, setup_logging
from querybuilder import DriverError, QueryBuilder
from utils.database_utils import DatabaseConnectionError, verify_connection

logger = get_logger(__name__)


def describe_table(qb: QueryBuilder, table: str) -> int:
    """Print the resolved structure of a table; 1 when it cannot be described."""
    schema = qb.describe(table)
    if schema is None:
        logger.error(f"Could not describe table '{table}'")
        return 1

    print(f"Table: {table} (primary key: {schema.primary_key.name})")
    for column in schema.columns.values():
        print(f"  {column.name:<30} {column.declared_type:<12} {column.param_type.value}")
    return 0


def run_sql(qb: QueryBuilder, sql: str) -> int:
    """Execute raw SQL and print any returned rows as a table."""
    qb.query(sql).execute(throw=True)
    frame = qb.fetch_dataframe()

    if frame.empty and not len(frame.columns):
        print(f"OK ({qb.row_count()} rows affected)")
    else:
        print(frame.to_string(index=False))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point for command-line execution.

    Returns:
        Exit code: 0 success, 1 error, 130 interrupted
    """
    parser = argparse.ArgumentParser(
        description='Fluent SQL statement builder - inspection CLI',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --check
  python main.py --url sqlite:///app.db --describe users
  python main.py --url sqlite:///app.db --sql "SELECT count(*) FROM users"
        """
    )

    parser.add_argument(
        '--url',
        type=str,
        default=None,
        help='Database URL (defaults to QB_DATABASE_URL)'
    )
    parser.add_argument(
        '--check',
        action='store_true',
        help='Verify that the database accepts connections'
    )
    parser.add_argument(
        '--describe',
        metavar='TABLE',
        type=str,
        help='Print the column structure of a table'
    )
    parser.add_argument(
        '--sql',
        type=str,
        help='Execute a SQL statement and print the result'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging (DEBUG level)'
    )

    args = parser.parse_args(argv)

    setup_logging(log_level='DEBUG' if args.verbose else config.log_level)

    try:
        if args.check:
            success, message = verify_connection(args.url)
            if success:
                logger.info(message)
                return 0
            logger.error(message)
            return 1

        if args.describe or args.sql:
            qb = QueryBuilder(args.url)
            if args.describe:
                return describe_table(qb, args.describe)
            return run_sql(qb, args.sql)

        parser.print_help()
        logger.warning("No operation specified. Use --check, --describe or --sql.")
        return 1

    except (DatabaseConnectionError, DriverError) as e:
        logger.error(f"Operation failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Operation interrupted by user")
        return 130


if __name__ == '__main__':
    sys.exit(main())
