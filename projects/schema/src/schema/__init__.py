"""Schema definition catalog and table builder."""

from schema.builder import SchemaBuilder, build_table
from schema.catalog import SchemaCatalog, TableDefining, discover
from schema.errors import SchemaError, ValidationError, flatten_errors
from schema.main import (
    create_database_engine,
    create_sqlite_engine,
    existing_tables,
    schema_definitions,
)
from schema.records import CATALOG, Record
from schema.system_tables import INFO_TABLE, system_tables
from schema.types import (
    ColumnSpec,
    ColumnType,
    ForeignKeySpec,
    IndexSpec,
    SchemaDefinition,
)

__all__ = [
    "CATALOG",
    "INFO_TABLE",
    "ColumnSpec",
    "ColumnType",
    "ForeignKeySpec",
    "IndexSpec",
    "Record",
    "SchemaBuilder",
    "SchemaCatalog",
    "SchemaDefinition",
    "SchemaError",
    "TableDefining",
    "ValidationError",
    "build_table",
    "create_database_engine",
    "create_sqlite_engine",
    "discover",
    "existing_tables",
    "flatten_errors",
    "schema_definitions",
    "system_tables",
]
