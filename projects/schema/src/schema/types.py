"""Schema definition types: tables, columns, indexes and foreign keys."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum, auto
from typing import Literal

type Scalar = str | int | bool | None

type ReferentialAction = Literal["CASCADE", "SET NULL", "RESTRICT", "NO ACTION"]


class ColumnType(StrEnum):
    """Semantic column types understood by the builder."""

    INTEGER = auto()
    SMALL_INTEGER = auto()
    TINY_INTEGER = auto()
    BOOLEAN = auto()
    STRING = auto()
    TEXT = auto()
    MEDIUM_TEXT = auto()
    DATETIME = auto()
    LOCALE = auto()


@dataclass(frozen=True)
class ColumnSpec:
    """A single column of a table."""

    name: str
    type: ColumnType
    nullable: bool = True
    default: Scalar = None
    unsigned: bool = False
    length: int | None = None


@dataclass(frozen=True)
class IndexSpec:
    """A (possibly unique or full-text) index over an ordered list of columns."""

    columns: tuple[str, ...]
    unique: bool = False
    fulltext: bool = False


@dataclass(frozen=True)
class ForeignKeySpec:
    """A single-column foreign key.

    An action of ``None`` means the database default ("no action").
    """

    column: str
    target_table: str
    target_column: str = "id"
    on_delete: ReferentialAction | None = None
    on_update: ReferentialAction | None = None


@dataclass(frozen=True)
class SchemaDefinition:
    """Everything needed to create one table.

    ``id_column`` adds an auto-increment ``id`` primary key, ``audit_columns`` adds
    ``dateCreated``, ``dateUpdated`` and ``uid``. A composite ``primary_key`` is only
    meaningful for tables without an ``id`` column.
    """

    name: str
    columns: tuple[ColumnSpec, ...]
    indexes: tuple[IndexSpec, ...] = ()
    foreign_keys: tuple[ForeignKeySpec, ...] = ()
    primary_key: tuple[str, ...] = ()
    id_column: bool = True
    audit_columns: bool = True
    engine: str | None = None
    source: str = field(default="system", compare=False)

    @property
    def column_names(self) -> tuple[str, ...]:
        """Names of the declared (non id/audit) columns."""
        return tuple(column.name for column in self.columns)
