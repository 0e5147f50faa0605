"""Tests for the transaction scopes."""

from collections.abc import Iterator
from pathlib import Path

import pytest
from sqlalchemy import Column, Connection, Integer, MetaData, String, Table, func, insert, select

from install.transaction import atomic, run_atomic, savepoint
from schema import create_sqlite_engine

METADATA = MetaData()
THINGS = Table(
    "things",
    METADATA,
    Column("id", Integer, primary_key=True),
    Column("name", String(20), unique=True),
)


class WorkError(Exception):
    """Failure raised from inside a unit of work."""


@pytest.fixture(name="connection")
def sqlite_connection(tmp_path: Path) -> Iterator[Connection]:
    """Open a connection to a database with a single table."""
    engine = create_sqlite_engine(tmp_path / "transaction.sqlite")
    METADATA.create_all(engine)
    with engine.connect() as connection:
        yield connection
    engine.dispose()


def count_things(connection: Connection) -> int:
    """Count rows without leaving a transaction open."""
    with savepoint(connection):
        return connection.execute(select(func.count()).select_from(THINGS)).scalar_one()


def add_thing(connection: Connection, name: str) -> None:
    """Insert one row."""
    connection.execute(insert(THINGS).values(name=name))


def test_owned_scope_commits(connection: Connection) -> None:
    """Test that a scope started here commits on success."""
    with atomic(connection) as owner:
        add_thing(connection, "a")

    assert owner
    assert not connection.in_transaction()
    assert count_things(connection) == 1


def test_owned_scope_rolls_back(connection: Connection) -> None:
    """Test that a scope started here rolls back when the work fails."""
    with pytest.raises(WorkError), atomic(connection):
        add_thing(connection, "a")
        raise WorkError

    assert not connection.in_transaction()
    assert count_things(connection) == 0


def test_joined_scope_defers_to_outer_transaction(connection: Connection) -> None:
    """Test that a nested scope neither commits nor rolls back."""
    outer = connection.begin()

    with atomic(connection) as owner:
        add_thing(connection, "a")

    assert not owner
    assert connection.in_transaction()

    outer.rollback()
    assert count_things(connection) == 0


def test_joined_scope_propagates_failures(connection: Connection) -> None:
    """Test that a failure in a nested scope leaves the outer transaction open."""
    outer = connection.begin()
    add_thing(connection, "a")

    with pytest.raises(WorkError), atomic(connection):
        add_thing(connection, "b")
        raise WorkError

    assert connection.in_transaction()
    outer.commit()
    assert count_things(connection) == 2


def test_run_atomic_returns_result(connection: Connection) -> None:
    """Test that the result of the work is returned after commit."""

    def work(conn: Connection) -> str:
        add_thing(conn, "a")
        return "done"

    assert run_atomic(connection, work) == "done"
    assert count_things(connection) == 1


def test_savepoint_undoes_only_itself(connection: Connection) -> None:
    """Test that a failed savepoint keeps earlier work in the transaction."""
    with atomic(connection):
        add_thing(connection, "a")
        with pytest.raises(WorkError), savepoint(connection):
            add_thing(connection, "b")
            raise WorkError
        add_thing(connection, "c")

    with savepoint(connection):
        names = connection.execute(select(THINGS.c.name).order_by(THINGS.c.id)).scalars()
        assert list(names) == ["a", "c"]
