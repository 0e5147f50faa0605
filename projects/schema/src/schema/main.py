"""Main module for assembling and inspecting the installation schema."""

from pathlib import Path
from sqlite3 import Connection as SQLiteConnection
from typing import Any

from sqlalchemy import Connection, Engine, create_engine, event, inspect

from schema.catalog import SchemaCatalog
from schema.records import CATALOG
from schema.system_tables import system_tables
from schema.types import SchemaDefinition


def _enable_sqlite_transactions(engine: Engine) -> None:
    """Let SQLAlchemy, not the sqlite3 driver, decide when transactions begin.

    The driver only opens transactions before DML, which would leave DDL outside of
    them. Emitting BEGIN ourselves makes created tables roll back like any row.
    """

    @event.listens_for(engine, "connect")
    def _connect(dbapi_connection: SQLiteConnection, _record: Any) -> None:  # noqa: ANN401
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin(connection: Connection) -> None:
        connection.exec_driver_sql("BEGIN")


def create_sqlite_engine(sqlite_location: Path | None = None) -> Engine:
    """Create a SQLAlchemy engine for a SQLite database with transactional DDL.

    Without a location the database lives in memory.
    """
    url = f"sqlite:///{sqlite_location}" if sqlite_location else "sqlite://"
    engine = create_engine(url)
    _enable_sqlite_transactions(engine)
    return engine


def create_database_engine(url: str) -> Engine:
    """Create an engine for a database URL."""
    if url.startswith("sqlite"):
        engine = create_engine(url)
        _enable_sqlite_transactions(engine)
        return engine
    return create_engine(url, pool_pre_ping=True)


def schema_definitions(catalog: SchemaCatalog = CATALOG) -> list[SchemaDefinition]:
    """Discover the catalog and append the fixed system tables."""
    return [*catalog.discover(), *system_tables()]


def existing_tables(connection: Connection) -> set[str]:
    """Table names present in the connected database."""
    return set(inspect(connection).get_table_names())
