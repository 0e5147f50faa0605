"""Tests for migration discovery."""

from pathlib import Path

import pytest

from ledger.manifest import (
    BASE_MIGRATION,
    MIGRATION_FILE_PATTERN,
    discover_migrations,
    duplicate_versions,
    is_migration_name,
    list_files,
    load_manifest,
)
from schema.errors import ValidationError

SCRIPTS = (
    "m140730_000001_add_filename_and_format_to_transformindex.py",
    "m140101_000000_first.py",
    "m141212_000001_third.py",
)


@pytest.fixture(name="migrations_dir")
def migration_scripts(tmp_path: Path) -> Path:
    """Create a folder of migration scripts mixed with unrelated files."""
    folder = tmp_path / "migrations"
    folder.mkdir()
    for name in (*SCRIPTS, "README.md", "helper.py", "m1_bad.py"):
        (folder / name).write_text("# migration\n")
    (folder / "m150101_000000_folder.py").mkdir()
    return folder


def test_default_manifest() -> None:
    """Test that the packaged manifest only names valid, unique migrations."""
    versions = load_manifest()

    assert versions
    assert all(is_migration_name(version) for version in versions)
    assert duplicate_versions(versions) == []
    assert BASE_MIGRATION not in versions


def test_list_files_is_sorted(migrations_dir: Path) -> None:
    """Test that only matching files are listed, sorted by name."""
    files = list_files(migrations_dir, MIGRATION_FILE_PATTERN)

    assert [path.name for path in files] == sorted(SCRIPTS)


def test_discover_from_folder(migrations_dir: Path) -> None:
    """Test that a folder yields the script names without extension."""
    assert discover_migrations(migrations_dir) == [
        "m140101_000000_first",
        "m140730_000001_add_filename_and_format_to_transformindex",
        "m141212_000001_third",
    ]


def test_discover_skips_unusable_names(tmp_path: Path) -> None:
    """Test that scripts the ledger would reject are not discovered."""
    (tmp_path / "m140101_000000_add-thing.py").write_text("# migration\n")
    (tmp_path / "m140202_000000_add_thing.py").write_text("# migration\n")

    versions = discover_migrations(tmp_path)

    assert versions == ["m140202_000000_add_thing"]
    assert all(is_migration_name(version) for version in versions)


def test_discover_from_manifest(tmp_path: Path) -> None:
    """Test that a manifest file is read in declared order."""
    manifest = tmp_path / "manifest.toml"
    manifest.write_text(
        '[[migrations]]\nversion = "m150101_000000_b"\n\n'
        '[[migrations]]\nversion = "m140101_000000_a"\n',
    )

    assert discover_migrations(manifest) == ["m150101_000000_b", "m140101_000000_a"]


def test_invalid_manifest_names(tmp_path: Path) -> None:
    """Test that a manifest naming an impossible migration is rejected."""
    manifest = tmp_path / "manifest.toml"
    manifest.write_text('[[migrations]]\nversion = "add_users"\n')

    with pytest.raises(ValidationError, match="is invalid") as info:
        load_manifest(manifest)

    assert info.value.errors == {"version": ["Invalid migration name 'add_users'"]}


def test_unreadable_manifest(tmp_path: Path) -> None:
    """Test that broken or missing manifests raise a ValidationError."""
    broken = tmp_path / "broken.toml"
    broken.write_text("[[migrations]\n")

    with pytest.raises(ValidationError, match="Could not read"):
        load_manifest(broken)

    with pytest.raises(ValidationError, match="Could not read"):
        load_manifest(tmp_path / "missing.toml")


def test_duplicate_versions() -> None:
    """Test that repeated versions are reported once, in order."""
    versions = ["m1", "m2", "m1", "m3", "m2", "m1"]

    assert duplicate_versions(versions) == ["m1", "m2"]
