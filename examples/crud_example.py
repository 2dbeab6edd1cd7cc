#!/usr/bin/env python3
"""sqlusers CRUD Example.

This example demonstrates the basic usage of sqlusers:
- Connection settings (DatabaseSettings)
- Create / read / update / delete through DatabaseUserService
- Dynamic search and pagination
- Atomic multi-insert and batch insert
- Database and column metadata

Usage:
    uv run python examples/crud_example.py
"""

from __future__ import annotations

import logging
import sqlite3
import tempfile
from pathlib import Path

from sqlusers import (
    DatabaseSettings,
    DatabaseUserService,
    DuplicateEmailError,
    TransactionError,
    User,
)

# =============================================================================
# Database Setup
# =============================================================================


def setup_database(db_path: Path) -> DatabaseSettings:
    """Create the users table in a SQLite file."""
    conn = sqlite3.connect(db_path)
    conn.execute("""
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name VARCHAR(50) NOT NULL,
            email VARCHAR(100) NOT NULL UNIQUE,
            department VARCHAR(50) NOT NULL,
            role VARCHAR(50) NOT NULL,
            active BOOLEAN NOT NULL DEFAULT 1,
            created_at TIMESTAMP NOT NULL,
            updated_at TIMESTAMP
        )
    """)
    conn.commit()
    conn.close()
    return DatabaseSettings(f"sqlite:///{db_path}")


def section(title: str) -> None:
    print("=" * 60)
    print(title)
    print("=" * 60)


# =============================================================================
# CRUD Operations
# =============================================================================


def demo_crud(service: DatabaseUserService) -> None:
    """Demo: create, update and delete."""
    section("[CRUD]")

    ana = service.create_user(
        {"name": "Tanaka Taro", "email": "tanaka@example.com", "department": "Sales", "role": "Manager"}
    )
    print(f"Created: {ana}")

    try:
        service.create_user(
            {"name": "Tanaka Copy", "email": "tanaka@example.com", "department": "Sales", "role": "Rep"}
        )
    except DuplicateEmailError as exc:
        print(f"Duplicate rejected: {exc}")

    updated = service.update_user(ana.id, {"department": "Development"})
    print(f"Updated: {updated}")

    print(f"Deleted: {service.delete_user(ana.id)}")
    print(f"Deleted again: {service.delete_user(ana.id)}")
    print()


def demo_search(service: DatabaseUserService) -> None:
    """Demo: department queries, dynamic search and pagination."""
    section("[SEARCH]")

    for name, email, department, role in [
        ("Suzuki Hanako", "suzuki@example.com", "Development", "Developer"),
        ("Sato Ichiro", "sato@example.com", "Sales", "Rep"),
        ("Yamada Misaki", "yamada@example.com", "Development", "Lead"),
        ("Takahashi Ken", "takahashi@example.com", "Sales", "Rep"),
    ]:
        service.create_user({"name": name, "email": email, "department": department, "role": role})

    print("Development (by name):")
    for user in service.find_by_department("Development"):
        print(f"  {user.name}")
    print(f"Sales count: {service.count_by_department('Sales')}")

    print("Sales reps (newest first):")
    for user in service.search({"department": "Sales", "role": "Rep"}):
        print(f"  {user.name}")

    print("Page 2 (2 per page):")
    for user in service.paginate(2, 2):
        print(f"  {user.name}")
    print()


def demo_transactions(service: DatabaseUserService) -> None:
    """Demo: atomic insert and batch insert."""
    section("[TRANSACTIONS]")

    team = [
        User(name="Ito Jun", email="ito@example.com", department="Support", role="Agent"),
        User(name="Kato Rin", email="kato@example.com", department="Support", role="Agent"),
    ]
    print(f"Atomic insert: {service.transfer_atomic(team)} ids={[u.id for u in team]}")

    conflicting = [
        User(name="Mori Aoi", email="mori@example.com", department="Support", role="Agent"),
        User(name="Ito Copy", email="ito@example.com", department="Support", role="Agent"),
    ]
    try:
        service.transfer_atomic(conflicting)
    except TransactionError as exc:
        print(f"Rolled back: {exc}")
    print(f"Support count after rollback: {service.count_by_department('Support')}")

    batch = [
        User(name="Mori Aoi", email="mori@example.com", department="Support", role="Agent"),
        User(name="Kato Copy", email="kato@example.com", department="Support", role="Agent"),
        User(name="Ono Sho", email="ono@example.com", department="Support", role="Agent"),
    ]
    result = service.batch_insert_results(batch)
    print(f"Batch counts: {result.counts} succeeded={result.succeeded}")
    print()


def demo_metadata(service: DatabaseUserService) -> None:
    """Demo: connection check and metadata."""
    section("[METADATA]")

    print(service.test_connection())
    print(service.database_info())
    for column in service.table_columns("users"):
        print(f"  {column.name:<12} {column.type:<12} nullable={column.nullable}")
    print()


# =============================================================================
# Main
# =============================================================================


def main() -> None:
    """Run the examples."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    print("sqlusers CRUD Example")
    print()

    with tempfile.TemporaryDirectory() as tmp:
        service = DatabaseUserService(setup_database(Path(tmp) / "users.db"))
        demo_crud(service)
        demo_search(service)
        demo_transactions(service)
        demo_metadata(service)

    section("Example completed")


if __name__ == "__main__":
    main()
