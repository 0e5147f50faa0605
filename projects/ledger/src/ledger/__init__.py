"""Migration ledger seeding for fresh installations."""

from ledger.manifest import (
    BASE_MIGRATION,
    MANIFEST_FILE,
    discover_migrations,
    list_files,
    load_manifest,
)
from ledger.seeder import MigrationEntry, insert_entries, ledger_entries, seed_ledger

__all__ = [
    "BASE_MIGRATION",
    "MANIFEST_FILE",
    "MigrationEntry",
    "discover_migrations",
    "insert_entries",
    "ledger_entries",
    "list_files",
    "load_manifest",
    "seed_ledger",
]
