"""Tests for seeding the migrations table."""

from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy import Connection, Table, insert, select

from ledger import BASE_MIGRATION, MigrationEntry, ledger_entries, seed_ledger
from ledger.seeder import insert_entries
from schema import SchemaBuilder, ValidationError, create_sqlite_engine
from schema.records import MigrationRecord

SCRIPTS = ("m140101_000000_first.py", "m140202_000000_second.py", "m140303_000000_third.py")


@pytest.fixture(name="connection")
def sqlite_connection(tmp_path: Path) -> Iterator[Connection]:
    """Open a connection to an empty SQLite database."""
    engine = create_sqlite_engine(tmp_path / "ledger.sqlite")
    with engine.connect() as connection:
        yield connection
    engine.dispose()


@pytest.fixture(name="migrations_table")
def create_migrations_table(connection: Connection) -> Table:
    """Create only the migrations table."""
    with connection.begin():
        (table,) = SchemaBuilder(connection).build_all(
            [MigrationRecord().define_table()],
        )
    return table


@pytest.fixture(name="migrations_dir")
def migration_scripts(tmp_path: Path) -> Path:
    """Create a folder with three migration scripts."""
    folder = tmp_path / "migrations"
    folder.mkdir()
    for name in SCRIPTS:
        (folder / name).write_text("# migration\n")
    return folder


def read_ledger(connection: Connection, table: Table) -> list[tuple[str, datetime]]:
    """Read every ledger row in insertion order."""
    with connection.begin():
        rows = connection.execute(
            select(table.c.version, table.c.applyTime).order_by(table.c.id),
        ).all()
    return [(row.version, row.applyTime) for row in rows]


def test_seed_ledger(
    connection: Connection,
    migrations_table: Table,
    migrations_dir: Path,
) -> None:
    """Test that the baseline and every script are recorded with one timestamp."""
    with connection.begin():
        entries = seed_ledger(
            connection,
            migrations_table,
            migration_source=migrations_dir,
        )

    rows = read_ledger(connection, migrations_table)
    assert [version for version, _ in rows] == [
        BASE_MIGRATION,
        "m140101_000000_first",
        "m140202_000000_second",
        "m140303_000000_third",
    ]
    assert len({apply_time for _, apply_time in rows}) == 1
    assert len(entries) == len(SCRIPTS) + 1


def test_baseline_without_scripts(
    connection: Connection,
    migrations_table: Table,
    tmp_path: Path,
) -> None:
    """Test that an empty folder still records the baseline."""
    empty = tmp_path / "empty"
    empty.mkdir()

    with connection.begin():
        seed_ledger(connection, migrations_table, migration_source=empty)

    assert [version for version, _ in read_ledger(connection, migrations_table)] == [
        BASE_MIGRATION,
    ]


def test_script_named_like_baseline(
    connection: Connection,
    migrations_table: Table,
    migrations_dir: Path,
) -> None:
    """Test that a duplicate version rejects the whole ledger."""
    (migrations_dir / f"{BASE_MIGRATION}.py").write_text("# migration\n")

    with pytest.raises(ValidationError, match="migrations table") as info:
        with connection.begin():
            seed_ledger(connection, migrations_table, migration_source=migrations_dir)

    assert info.value.errors == {"version": [f"Version {BASE_MIGRATION} is not unique."]}
    assert read_ledger(connection, migrations_table) == []


def test_failed_insert_rolls_back(
    connection: Connection,
    migrations_table: Table,
    migrations_dir: Path,
) -> None:
    """Test that a row that cannot be saved aborts the ledger."""
    with connection.begin():
        connection.execute(
            insert(migrations_table).values(
                version="m140303_000000_third",
                applyTime=datetime(2015, 1, 1),
            ),
        )

    with pytest.raises(ValidationError) as info:
        with connection.begin():
            seed_ledger(connection, migrations_table, migration_source=migrations_dir)

    assert "version" in info.value.errors
    assert [version for version, _ in read_ledger(connection, migrations_table)] == [
        "m140303_000000_third",
    ]


def test_invalid_entry(connection: Connection, migrations_table: Table) -> None:
    """Test that a malformed version is reported against the version field."""
    entries = [MigrationEntry("not a migration", datetime(2015, 1, 1))]

    with pytest.raises(ValidationError) as info, connection.begin():
        insert_entries(connection, migrations_table, entries)

    assert info.value.errors == {"version": ["Invalid migration name 'not a migration'"]}


def test_ledger_entries_order() -> None:
    """Test that the baseline comes first and all rows share the time."""
    stamp = datetime(2015, 1, 16)

    entries = ledger_entries("m000000_000000_base", ["m1", "m2"], stamp)

    assert [entry.version for entry in entries] == ["m000000_000000_base", "m1", "m2"]
    assert {entry.apply_time for entry in entries} == {stamp}
