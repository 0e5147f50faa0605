"""Two-phase creation of tables, indexes and foreign keys."""

from collections.abc import Iterable
from logging import getLogger
from typing import Any

from sqlalchemy import (
    Column,
    Connection,
    DateTime,
    ForeignKeyConstraint,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    func,
)
from sqlalchemy.exc import ArgumentError, InvalidRequestError, SQLAlchemyError
from sqlalchemy.schema import AddConstraint, CreateIndex, CreateTable

from schema.errors import SchemaError
from schema.type_conversion import spec_to_column
from schema.types import ForeignKeySpec, IndexSpec, SchemaDefinition

logger = getLogger(__name__)


def index_name(table_name: str, index: IndexSpec) -> str:
    """Name an index after its table and columns."""
    suffix = "unq_idx" if index.unique else "idx"
    return f"{table_name}_{'_'.join(index.columns)}_{suffix}"


def foreign_key_name(table_name: str, foreign_key: ForeignKeySpec) -> str:
    """Name a foreign key after its table and column."""
    return f"{table_name}_{foreign_key.column}_fk"


def audit_columns() -> list[Column[Any]]:
    """Creation/update timestamps and a unique id for audited tables."""
    return [
        Column(
            "dateCreated",
            DateTime(),
            nullable=False,
            server_default=func.current_timestamp(),
        ),
        Column(
            "dateUpdated",
            DateTime(),
            nullable=False,
            server_default=func.current_timestamp(),
        ),
        Column("uid", String(36), nullable=False, server_default="0"),
    ]


def build_table(definition: SchemaDefinition, metadata: MetaData) -> Table:
    """Build the SQLAlchemy Table for a definition without emitting any DDL."""
    columns: list[Column[Any]] = []
    if definition.id_column:
        columns.append(Column("id", Integer(), primary_key=True, autoincrement=True))

    for spec in definition.columns:
        column = spec_to_column(spec)
        if spec.name in definition.primary_key:
            column.autoincrement = False
        columns.append(column)

    if definition.audit_columns:
        columns.extend(audit_columns())

    constraints: list[Any] = []
    if definition.primary_key and not definition.id_column:
        constraints.append(
            PrimaryKeyConstraint(
                *definition.primary_key,
                name=f"{definition.name}_pk",
            ),
        )

    constraints.extend(
        ForeignKeyConstraint(
            [foreign_key.column],
            [f"{foreign_key.target_table}.{foreign_key.target_column}"],
            name=foreign_key_name(definition.name, foreign_key),
            ondelete=foreign_key.on_delete,
            onupdate=foreign_key.on_update,
        )
        for foreign_key in definition.foreign_keys
    )

    constraints.extend(
        Index(
            index_name(definition.name, index),
            *index.columns,
            unique=index.unique,
            mysql_prefix="FULLTEXT" if index.fulltext else None,
        )
        for index in definition.indexes
    )

    kwargs = {"mysql_engine": definition.engine} if definition.engine else {}
    return Table(definition.name, metadata, *columns, *constraints, **kwargs)


class SchemaBuilder:
    """Creates every table of an installation on a single connection.

    All tables are created first, then every foreign key is added, so the order of
    the definitions does not matter. Dialects that cannot add constraints to an
    existing table (SQLite) get their foreign keys inline with the table instead;
    those dialects do not check referenced tables at creation time.
    """

    def __init__(self, connection: Connection, metadata: MetaData | None = None) -> None:
        """Initialize the builder on an open connection."""
        self._connection = connection
        self.metadata = metadata or MetaData()

    @property
    def deferred_foreign_keys(self) -> bool:
        """Whether foreign keys are added in a second pass."""
        return bool(self._connection.dialect.supports_alter)

    def define(self, definitions: Iterable[SchemaDefinition]) -> list[Table]:
        """Add the definitions to the metadata without emitting DDL."""
        tables: list[Table] = []
        for definition in definitions:
            if definition.name in self.metadata.tables:
                msg = f"Table {definition.name} is defined more than once"
                raise SchemaError(msg)
            try:
                tables.append(build_table(definition, self.metadata))
            except (ArgumentError, InvalidRequestError, KeyError, ValueError) as err:
                msg = f"Invalid definition for table {definition.name}: {err}"
                raise SchemaError(msg) from err
        return tables

    def create_table(self, table: Table) -> None:
        """Create a table with its primary key and non foreign key indexes."""
        logger.info("Creating table for record: %s", table.name)
        include = [] if self.deferred_foreign_keys else None
        self._execute(
            CreateTable(table, include_foreign_key_constraints=include),
            table.name,
        )

        for index in sorted(table.indexes, key=lambda index: str(index.name)):
            if index.kwargs.get("mysql_prefix") == "FULLTEXT":
                logger.info("Adding the full-text index %s.", index.name)
            self._execute(CreateIndex(index), table.name)

    def add_foreign_keys(self, table: Table) -> None:
        """Add the foreign keys of a table that already exists."""
        if not table.foreign_key_constraints:
            return

        if not self.deferred_foreign_keys:
            logger.debug("Foreign keys for %s were created inline.", table.name)
            return

        logger.info("Adding foreign keys for the %s table.", table.name)
        for constraint in sorted(
            table.foreign_key_constraints,
            key=lambda constraint: str(constraint.name),
        ):
            self._execute(AddConstraint(constraint), table.name)

    def build_all(self, definitions: Iterable[SchemaDefinition]) -> list[Table]:
        """Create all tables, then all foreign keys.

        Raises:
            SchemaError: On the first definition or DDL failure. Nothing is cleaned
                up here; the enclosing transaction is responsible for that.

        """
        tables = self.define(definitions)

        for table in tables:
            self.create_table(table)

        for table in tables:
            self.add_foreign_keys(table)

        return tables

    def _execute(self, statement: Any, table_name: str) -> None:  # noqa: ANN401
        try:
            self._connection.execute(statement)
        except SQLAlchemyError as err:
            logger.exception("Could not create the %s table.", table_name)
            msg = f"Could not create the {table_name} table: {err}"
            raise SchemaError(msg) from err
