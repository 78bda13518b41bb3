#!/usr/bin/env python3
"""
Reset the Classroom Eco-Score database.

Deletes every row from the engine tables (schema preserved) in one
transaction, children before parents, then verifies the empty state.
Classrooms are kept unless --include-classrooms is given.

Usage:
    ecoscore-reset-db [--confirm] [--include-classrooms]

Options:
    --confirm               Skip confirmation prompt
    --include-classrooms    Also delete the classroom directory
"""

import argparse
import logging
import sys

from sqlalchemy.engine import Engine

from ecoscore.database.connection import get_engine, get_table_counts, init_db
from ecoscore.database.models import Base

logger = logging.getLogger(__name__)


def tables_to_clear(include_classrooms: bool = False) -> list:
    """Engine tables in delete order (dependents first)."""
    tables = list(reversed(Base.metadata.sorted_tables))
    if not include_classrooms:
        tables = [t for t in tables if t.name != "classrooms"]
    return tables


def clear_tables(engine: Engine, include_classrooms: bool = False) -> dict:
    """
    Delete all rows from the engine tables in a single transaction.

    Returns:
        Dictionary of table name: rows deleted
    """
    results = {}
    with engine.begin() as conn:
        for table in tables_to_clear(include_classrooms):
            results[table.name] = conn.execute(table.delete()).rowcount
            print(f"  ✓ {table.name}: {results[table.name]} rows deleted")
    return results


def verify_empty_state(engine: Engine, include_classrooms: bool = False) -> bool:
    """
    Verify the cleared tables are empty.

    Returns:
        True if all cleared tables have 0 rows
    """
    cleared = {t.name for t in tables_to_clear(include_classrooms)}
    counts = get_table_counts(engine)
    all_empty = True

    print("\nVerification:")
    for table, count in counts.items():
        if table not in cleared:
            continue
        if count == 0:
            print(f"  ✓ {table}: 0 rows")
        else:
            print(f"  ✗ {table}: {count} rows (should be 0)")
            all_empty = False

    return all_empty


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Reset the Classroom Eco-Score database"
    )
    parser.add_argument(
        "--confirm",
        action="store_true",
        help="Skip confirmation prompt"
    )
    parser.add_argument(
        "--include-classrooms",
        action="store_true",
        help="Also delete the classroom directory"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    print("=" * 60)
    print("DATABASE RESET SCRIPT")
    print("=" * 60)

    engine = get_engine()
    init_db(engine)

    print("\nCurrent database state:")
    counts = get_table_counts(engine)
    cleared = {t.name for t in tables_to_clear(args.include_classrooms)}
    total_rows = 0
    for table, count in counts.items():
        print(f"  {table}: {count:,} rows")
        if table in cleared:
            total_rows += count

    print(f"\nTotal rows to delete: {total_rows:,}")

    if total_rows == 0:
        print("\nDatabase is already empty. Nothing to do.")
        return 0

    if not args.confirm:
        print("\n" + "=" * 60)
        print("WARNING: This will DELETE the evaluations, archive and winners!")
        print("=" * 60)
        response = input("\nType 'yes' to confirm: ")
        if response.lower() != "yes":
            print("Aborted.")
            return 1

    print("\n--- Clearing tables ---")
    try:
        clear_tables(engine, args.include_classrooms)
    except Exception as e:
        logger.error(f"Reset failed: {e}", exc_info=True)
        return 1

    print("\n--- Verifying empty state ---")
    if verify_empty_state(engine, args.include_classrooms):
        print("\n" + "=" * 60)
        print("DATABASE RESET COMPLETE")
        print("=" * 60)
        return 0

    print("\nVerification FAILED - some tables not empty")
    return 1


if __name__ == "__main__":
    sys.exit(main())
