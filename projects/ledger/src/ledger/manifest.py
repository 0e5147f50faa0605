"""Module for loading the migrations a fresh installation already contains."""

import re
from collections.abc import Iterable
from logging import getLogger
from pathlib import Path
from tomllib import TOMLDecodeError, load

from schema.errors import ValidationError

logger = getLogger(__name__)

BASE_MIGRATION = "m000000_000000_base"

MIGRATION_NAME = r"m(\d{6}_\d{6})_\w+"
MIGRATION_PATTERN = re.compile(MIGRATION_NAME)
MIGRATION_FILE_PATTERN = rf"{MIGRATION_NAME}\.py"

MANIFEST_FILE = Path(__file__).parent / "migrations.toml"


def is_migration_name(version: str) -> bool:
    """Check a version string against the migration naming scheme."""
    return MIGRATION_PATTERN.fullmatch(version) is not None


def list_files(location: Path, pattern: str) -> list[Path]:
    """List the files in a folder whose names fully match a pattern, sorted by name."""
    compiled = re.compile(pattern)
    return sorted(
        path
        for path in location.iterdir()
        if path.is_file() and compiled.fullmatch(path.name)
    )


def load_manifest(manifest_location: Path = MANIFEST_FILE) -> list[str]:
    """Load migration versions from a TOML manifest.

    Raises:
        ValidationError: If the manifest cannot be read or names an invalid version.

    """
    try:
        with manifest_location.open("rb") as f:
            entries = load(f).get("migrations", [])
    except (OSError, TOMLDecodeError) as err:
        msg = f"Could not read the migration manifest {manifest_location}"
        raise ValidationError(msg, {"manifest": [str(err)]}) from err

    versions = [str(entry.get("version", "")) for entry in entries]
    invalid = [version for version in versions if not is_migration_name(version)]
    if invalid:
        msg = f"The migration manifest {manifest_location} is invalid:"
        raise ValidationError(
            msg,
            {"version": [f"Invalid migration name '{name}'" for name in invalid]},
        )
    return versions


def discover_migrations(migration_source: Path | None = None) -> list[str]:
    """Find migration versions in a manifest file or a folder of migration scripts.

    Folder contents are sorted by name so the ledger order never depends on the
    file system.
    """
    if migration_source is None:
        return load_manifest()

    if migration_source.is_dir():
        files = list_files(migration_source, MIGRATION_FILE_PATTERN)
        logger.debug("Found %d migration scripts in %s", len(files), migration_source)
        return [path.stem for path in files]

    return load_manifest(migration_source)


def duplicate_versions(versions: Iterable[str]) -> list[str]:
    """Versions that occur more than once, in first-seen order."""
    seen: set[str] = set()
    duplicates: list[str] = []
    for version in versions:
        if version in seen and version not in duplicates:
            duplicates.append(version)
        seen.add(version)
    return duplicates
