"""Seeding of the migrations table for a fresh installation."""

from collections.abc import Iterable
from datetime import UTC, datetime
from logging import getLogger
from pathlib import Path
from typing import NamedTuple

from sqlalchemy import Connection, Table, insert
from sqlalchemy.exc import SQLAlchemyError

from ledger.manifest import (
    BASE_MIGRATION,
    discover_migrations,
    duplicate_versions,
    is_migration_name,
)
from schema.errors import ValidationError

logger = getLogger(__name__)

MAX_VERSION_LENGTH = 255


class MigrationEntry(NamedTuple):
    """A row of the migrations table."""

    version: str
    apply_time: datetime


def utc_now() -> datetime:
    """Current UTC time without tzinfo, as stored in DATETIME columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def validate_entry(entry: MigrationEntry, baseline_version: str) -> list[str]:
    """Field errors of a single ledger row."""
    errors: list[str] = []
    if not entry.version:
        errors.append("Version cannot be blank.")
    elif len(entry.version) > MAX_VERSION_LENGTH:
        errors.append(f"Version {entry.version} is too long.")
    elif entry.version != baseline_version and not is_migration_name(entry.version):
        errors.append(f"Invalid migration name '{entry.version}'")
    return errors


def ledger_entries(
    baseline_version: str,
    versions: Iterable[str],
    apply_time: datetime | None = None,
) -> list[MigrationEntry]:
    """Build the ledger rows, baseline first, all stamped with the same time."""
    apply_time = apply_time or utc_now()
    return [
        MigrationEntry(version, apply_time)
        for version in (baseline_version, *versions)
    ]


def insert_entries(
    connection: Connection,
    migrations_table: Table,
    entries: list[MigrationEntry],
    baseline_version: str = BASE_MIGRATION,
) -> None:
    """Validate and insert ledger rows.

    Raises:
        ValidationError: On a duplicate version or on the first row that is invalid
            or cannot be saved. Rows inserted before the failure are left to the
            enclosing transaction.

    """
    if duplicates := duplicate_versions(entry.version for entry in entries):
        msg = "There was a problem saving to the migrations table:"
        raise ValidationError(
            msg,
            {"version": [f"Version {version} is not unique." for version in duplicates]},
        )

    for entry in entries:
        if errors := validate_entry(entry, baseline_version):
            logger.error("Could not populate the migration table.")
            msg = "There was a problem saving to the migrations table:"
            raise ValidationError(msg, {"version": errors})

        try:
            connection.execute(
                insert(migrations_table).values(
                    version=entry.version,
                    applyTime=entry.apply_time,
                ),
            )
        except SQLAlchemyError as err:
            logger.error("Could not populate the migration table.")  # noqa: TRY400
            msg = "There was a problem saving to the migrations table:"
            raise ValidationError(msg, {"version": [str(err)]}) from err


def seed_ledger(
    connection: Connection,
    migrations_table: Table,
    baseline_version: str = BASE_MIGRATION,
    migration_source: Path | None = None,
) -> list[MigrationEntry]:
    """Record the baseline plus every known migration as already applied."""
    versions = discover_migrations(migration_source)
    entries = ledger_entries(baseline_version, versions)
    insert_entries(connection, migrations_table, entries, baseline_version)
    logger.info("Migration table populated successfully.")
    return entries
