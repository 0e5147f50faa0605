"""Module for turning semantic column specs into SQLAlchemy columns."""

from typing import Any

from sqlalchemy import Column, false, true
from sqlalchemy.dialects import mysql
from sqlalchemy.types import (
    CHAR,
    Boolean,
    DateTime,
    Integer,
    SmallInteger,
    String,
    Text,
    TypeEngine,
)

from schema.types import ColumnSpec, ColumnType, Scalar

DEFAULT_STRING_LENGTH = 255
LOCALE_LENGTH = 12
INTEGER_TYPES = frozenset(
    (ColumnType.INTEGER, ColumnType.SMALL_INTEGER, ColumnType.TINY_INTEGER),
)


def locale_type() -> TypeEngine[Any]:
    """Type shared by every locale column so join keys always match."""
    return CHAR(LOCALE_LENGTH)


def data_type_to_sql(spec: ColumnSpec) -> TypeEngine[Any]:
    """Build the SQLAlchemy type for a column spec.

    Unsigned integers, tiny integers and medium text only exist on MySQL, so they
    are attached as dialect variants of a portable base type.

    Examples:
        STRING, length=25 -> VARCHAR(25)
        INTEGER, unsigned -> INTEGER (INTEGER UNSIGNED on MySQL)
        LOCALE -> CHAR(12)

    """
    sql_type: TypeEngine[Any]

    match spec.type:
        case ColumnType.INTEGER:
            sql_type = Integer().with_variant(
                mysql.INTEGER(unsigned=spec.unsigned),
                "mysql",
            )
        case ColumnType.SMALL_INTEGER:
            sql_type = SmallInteger().with_variant(
                mysql.SMALLINT(unsigned=spec.unsigned),
                "mysql",
            )
        case ColumnType.TINY_INTEGER:
            sql_type = SmallInteger().with_variant(
                mysql.TINYINT(unsigned=spec.unsigned),
                "mysql",
            )
        case ColumnType.BOOLEAN:
            sql_type = Boolean()
        case ColumnType.STRING:
            sql_type = String(spec.length or DEFAULT_STRING_LENGTH)
        case ColumnType.TEXT:
            sql_type = Text()
        case ColumnType.MEDIUM_TEXT:
            sql_type = Text().with_variant(mysql.MEDIUMTEXT(), "mysql")
        case ColumnType.DATETIME:
            sql_type = DateTime()
        case ColumnType.LOCALE:
            sql_type = locale_type()
        case _:
            msg = f"Unsupported column type: {spec.type}"
            raise ValueError(msg)

    return sql_type


def server_default(spec: ColumnSpec) -> Any:  # noqa: ANN401
    """Render a column default as a server-side default clause."""
    value: Scalar = spec.default
    if value is None:
        return None
    if isinstance(value, bool) or spec.type is ColumnType.BOOLEAN:
        return true() if value else false()
    if isinstance(value, int):
        return str(value)
    if spec.type in INTEGER_TYPES and not value.lstrip("-").isdigit():
        msg = f"Invalid default {value!r} for integer column {spec.name}"
        raise ValueError(msg)
    return value


def spec_to_column(spec: ColumnSpec) -> Column[Any]:
    """Create a SQLAlchemy Column from a column spec."""
    return Column(
        spec.name,
        data_type_to_sql(spec),
        nullable=spec.nullable,
        server_default=server_default(spec),
    )
