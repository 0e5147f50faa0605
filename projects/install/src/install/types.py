"""Type definitions for the install module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum, auto
from pathlib import Path
from tomllib import load

BUILD_FILE = Path(__file__).parent / "build.toml"


class InstallState(StrEnum):
    """Progress of an installation run."""

    NOT_INSTALLED = auto()
    SCHEMA_COMMITTED = auto()
    LOCALE_SET = auto()
    ADMIN_CREATED = auto()
    SESSION_ESTABLISHED = auto()
    SESSION_SKIPPED = auto()
    MAIL_SEEDED = auto()
    CONTENT_SEEDED = auto()
    INSTALLED = auto()


@dataclass(frozen=True)
class InstallationInputs:
    """What the person installing the site provides."""

    locale: str
    site_name: str
    site_url: str
    email: str
    username: str
    password: str = field(repr=False)
    track: str = "stable"


@dataclass(frozen=True)
class BuildMetadata:
    """Version information supplied by the hosting runtime."""

    version: str
    build: int
    schema_version: str
    release_date: datetime


def load_build_metadata(build_location: Path = BUILD_FILE) -> BuildMetadata:
    """Load build metadata from a TOML file."""
    with build_location.open("rb") as f:
        data = load(f)
    return BuildMetadata(
        version=str(data["version"]),
        build=int(data["build"]),
        schema_version=str(data["schemaVersion"]),
        release_date=data["releaseDate"],
    )


@dataclass
class InstallStatus:
    """Process-wide record of whether the installation finished."""

    installed: bool = False


@dataclass
class InstallResult:
    """Outcome of a successful installation run."""

    state: InstallState
    admin_id: int | None = None
    tables: list[str] = field(default_factory=list)
    migrations: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
