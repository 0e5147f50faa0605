"""Installation orchestrator for a fresh CMS deployment."""

from install.content import ContentSeeder
from install.errors import AlreadyInstalledError, SchemaError, ValidationError
from install.info import InfoRecord, write_info
from install.main import INSTALL_STATUS, Installer
from install.services import Collaborators, default_collaborators
from install.transaction import atomic, run_atomic, savepoint
from install.types import (
    BuildMetadata,
    InstallationInputs,
    InstallResult,
    InstallState,
    InstallStatus,
    load_build_metadata,
)

__all__ = [
    "INSTALL_STATUS",
    "AlreadyInstalledError",
    "BuildMetadata",
    "Collaborators",
    "ContentSeeder",
    "InfoRecord",
    "InstallResult",
    "InstallState",
    "InstallStatus",
    "InstallationInputs",
    "Installer",
    "SchemaError",
    "ValidationError",
    "atomic",
    "default_collaborators",
    "load_build_metadata",
    "run_atomic",
    "savepoint",
    "write_info",
]
