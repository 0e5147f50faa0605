"""Tests for two-phase table creation."""

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import Connection, Engine, MetaData, create_mock_engine, inspect
from sqlalchemy.exc import OperationalError
from sqlalchemy.schema import AddConstraint, CreateIndex, CreateTable

from schema import (
    SchemaBuilder,
    SchemaError,
    create_sqlite_engine,
    existing_tables,
    schema_definitions,
)
from schema.builder import audit_columns, build_table, index_name
from schema.columns import integer, string
from schema.system_tables import search_index_table, template_cache_tables
from schema.types import ForeignKeySpec, IndexSpec, SchemaDefinition

PARENT = SchemaDefinition(
    "parents",
    (string("name", 50, nullable=False),),
    indexes=(IndexSpec(("name",), unique=True),),
)
CHILD = SchemaDefinition(
    "children",
    (integer("parentId", nullable=False), string("name", 50)),
    foreign_keys=(ForeignKeySpec("parentId", "parents", on_delete="CASCADE"),),
)


@pytest.fixture(name="engine")
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    """Create a file backed SQLite engine with transactional DDL."""
    engine = create_sqlite_engine(tmp_path / "schema.sqlite")
    yield engine
    engine.dispose()


@pytest.fixture(name="connection")
def sqlite_connection(engine: Engine) -> Iterator[Connection]:
    """Open a connection to the test database."""
    with engine.connect() as connection:
        yield connection


def test_build_all_creates_every_table(connection: Connection) -> None:
    """Test that the full installation schema can be created."""
    definitions = schema_definitions()

    with connection.begin():
        tables = SchemaBuilder(connection).build_all(definitions)

    assert len(tables) == len(definitions)
    with connection.begin():
        assert existing_tables(connection) == {definition.name for definition in definitions}


def test_order_does_not_matter(connection: Connection) -> None:
    """Test that a child table may be created before its parent."""
    with connection.begin():
        SchemaBuilder(connection).build_all([CHILD, PARENT])

    with connection.begin():
        foreign_keys = inspect(connection).get_foreign_keys("children")

    assert [fk["referred_table"] for fk in foreign_keys] == ["parents"]
    assert foreign_keys[0]["options"].get("ondelete") == "CASCADE"


def test_index_names(connection: Connection) -> None:
    """Test that indexes are named after their table and columns."""
    with connection.begin():
        SchemaBuilder(connection).build_all([PARENT])

    with connection.begin():
        indexes = {index["name"]: index for index in inspect(connection).get_indexes("parents")}

    assert indexes["parents_name_unq_idx"]["unique"]


def test_fulltext_index_is_logged(
    connection: Connection,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Test that the search index gets its own full-text index statement."""
    with caplog.at_level(logging.INFO, logger="schema.builder"), connection.begin():
        SchemaBuilder(connection).build_all([search_index_table()])

    assert "Adding the full-text index searchindex_keywords_idx." in caplog.text


def test_duplicate_definitions_are_rejected(connection: Connection) -> None:
    """Test that a table defined twice fails before any DDL is emitted."""
    with pytest.raises(SchemaError, match="defined more than once"), connection.begin():
        SchemaBuilder(connection).build_all([PARENT, CHILD, PARENT])

    with connection.begin():
        assert existing_tables(connection) == set()


def test_ddl_failure_is_wrapped(connection: Connection) -> None:
    """Test that a database error becomes a SchemaError with the original cause."""
    with connection.begin():
        SchemaBuilder(connection).build_all([PARENT])

    with pytest.raises(SchemaError, match="Could not create the parents table") as info:
        with connection.begin():
            SchemaBuilder(connection).build_all([PARENT])

    assert isinstance(info.value.__cause__, OperationalError)


def test_ddl_rolls_back(connection: Connection) -> None:
    """Test that created tables disappear when the transaction rolls back."""
    with pytest.raises(SchemaError), connection.begin():
        SchemaBuilder(connection).build_all([PARENT, CHILD])
        SchemaBuilder(connection).build_all([PARENT])

    with connection.begin():
        assert existing_tables(connection) == set()


def test_deferred_foreign_keys_on_mysql() -> None:
    """Test that MySQL gets every table before any foreign key."""
    statements: list[Any] = []
    mock = create_mock_engine("mysql://", lambda sql, *_, **__: statements.append(sql))

    builder = SchemaBuilder(mock)  # type: ignore[arg-type]
    assert builder.deferred_foreign_keys
    builder.build_all([CHILD, PARENT, search_index_table()])

    kinds = [type(statement) for statement in statements]
    last_table = max(i for i, kind in enumerate(kinds) if kind is CreateTable)
    first_constraint = kinds.index(AddConstraint)
    assert last_table < first_constraint

    rendered = [str(statement.compile(dialect=mock.dialect)) for statement in statements]
    child_ddl = next(sql for sql in rendered if "CREATE TABLE children" in sql)
    assert "FOREIGN KEY" not in child_ddl
    assert any("ENGINE=MyISAM" in sql for sql in rendered)
    assert any(sql.startswith("CREATE FULLTEXT INDEX") for sql in rendered)
    assert sum(kind is CreateIndex for kind in kinds) == 2


def test_template_cache_tables() -> None:
    """Test the shape of the template cache tables."""
    caches, elements, criteria = template_cache_tables()

    assert not caches.audit_columns
    assert caches.id_column
    assert not elements.id_column
    assert not elements.audit_columns
    assert {fk.on_delete for fk in elements.foreign_keys} == {"CASCADE"}
    assert not criteria.audit_columns


def test_build_table_columns() -> None:
    """Test that id and audit columns are added as requested."""
    table = build_table(PARENT, MetaData())

    assert table.c.id.primary_key
    assert [column.name for column in audit_columns()] == [
        "dateCreated",
        "dateUpdated",
        "uid",
    ]
    assert {"dateCreated", "dateUpdated", "uid"} <= set(table.c.keys())
    assert index_name("parents", IndexSpec(("name",))) == "parents_name_idx"
