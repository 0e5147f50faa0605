"""Shorthand constructors for column specs used by table definitions."""

from schema.types import ColumnSpec, ColumnType, Scalar


def integer(
    name: str,
    *,
    nullable: bool = True,
    unsigned: bool = False,
    default: Scalar = None,
) -> ColumnSpec:
    """Integer column."""
    return ColumnSpec(
        name,
        ColumnType.INTEGER,
        nullable=nullable,
        unsigned=unsigned,
        default=default,
    )


def small_integer(
    name: str,
    *,
    nullable: bool = True,
    unsigned: bool = False,
) -> ColumnSpec:
    """Small integer column."""
    return ColumnSpec(name, ColumnType.SMALL_INTEGER, nullable=nullable, unsigned=unsigned)


def tiny_integer(
    name: str,
    *,
    nullable: bool = True,
    unsigned: bool = False,
    default: Scalar = None,
) -> ColumnSpec:
    """Tiny integer column (TINYINT on MySQL)."""
    return ColumnSpec(
        name,
        ColumnType.TINY_INTEGER,
        nullable=nullable,
        unsigned=unsigned,
        default=default,
    )


def boolean(name: str, *, default: bool | None = None) -> ColumnSpec:
    """Non-null boolean column when a default is given."""
    return ColumnSpec(
        name,
        ColumnType.BOOLEAN,
        nullable=default is None,
        default=default,
    )


def string(
    name: str,
    length: int | None = None,
    *,
    nullable: bool = True,
    default: Scalar = None,
) -> ColumnSpec:
    """Variable length string column."""
    return ColumnSpec(
        name,
        ColumnType.STRING,
        nullable=nullable,
        length=length,
        default=default,
    )


def text(name: str, *, nullable: bool = True) -> ColumnSpec:
    """Unbounded text column."""
    return ColumnSpec(name, ColumnType.TEXT, nullable=nullable)


def medium_text(name: str, *, nullable: bool = True) -> ColumnSpec:
    """Medium text column (MEDIUMTEXT on MySQL)."""
    return ColumnSpec(name, ColumnType.MEDIUM_TEXT, nullable=nullable)


def datetime(name: str, *, nullable: bool = True) -> ColumnSpec:
    """Timestamp column."""
    return ColumnSpec(name, ColumnType.DATETIME, nullable=nullable)


def locale(name: str = "locale", *, nullable: bool = True) -> ColumnSpec:
    """Locale code column, type-compatible with ``locales.locale``."""
    return ColumnSpec(name, ColumnType.LOCALE, nullable=nullable)
