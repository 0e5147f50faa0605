"""The info table: one row of system metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from sqlalchemy import func, insert, select

from schema.errors import ValidationError

if TYPE_CHECKING:
    from sqlalchemy import Connection, Table

    from install.types import BuildMetadata, InstallationInputs

logger = getLogger(__name__)

# Column name -> maximum length
MAX_LENGTHS = {
    "version": 15,
    "schemaVersion": 15,
    "siteName": 100,
    "siteUrl": 255,
    "timezone": 30,
    "track": 40,
}

REQUIRED = ("version", "schemaVersion", "siteName", "siteUrl", "track")


@dataclass
class InfoRecord:
    """Contents of the info row."""

    version: str
    build: int
    schemaVersion: str  # noqa: N815
    releaseDate: datetime  # noqa: N815
    siteName: str  # noqa: N815
    siteUrl: str  # noqa: N815
    track: str
    edition: int = 0
    timezone: str | None = None
    on: bool = True
    maintenance: bool = False
    errors: dict[str, list[str]] = field(default_factory=dict, compare=False)

    @classmethod
    def from_inputs(cls, inputs: InstallationInputs, build: BuildMetadata) -> InfoRecord:
        """Combine what the installer was given with the build metadata."""
        return cls(
            version=build.version,
            build=build.build,
            schemaVersion=build.schema_version,
            releaseDate=build.release_date,
            siteName=inputs.site_name.strip(),
            siteUrl=inputs.site_url.strip(),
            track=inputs.track,
        )

    def add_error(self, attribute: str, message: str) -> None:
        """Record a validation message for an attribute."""
        self.errors.setdefault(attribute, []).append(message)

    def validate(self) -> bool:
        """Check required values, lengths and the site URL."""
        self.errors.clear()

        for attribute in REQUIRED:
            if not getattr(self, attribute):
                self.add_error(attribute, f"{attribute} cannot be blank.")

        for attribute, max_length in MAX_LENGTHS.items():
            value = getattr(self, attribute)
            if value and len(value) > max_length:
                self.add_error(
                    attribute,
                    f"{attribute} should contain at most {max_length} characters.",
                )

        if self.siteUrl:
            parts = urlsplit(self.siteUrl)
            if parts.scheme not in ("http", "https") or not parts.netloc:
                self.add_error("siteUrl", "siteUrl is not a valid URL.")

        if self.build < 0:
            self.add_error("build", "build must be a positive number.")

        return not self.errors

    def row(self) -> dict[str, object]:
        """Column values for the info table."""
        return {
            "version": self.version,
            "build": self.build,
            "schemaVersion": self.schemaVersion,
            "releaseDate": self.releaseDate,
            "edition": self.edition,
            "siteName": self.siteName,
            "siteUrl": self.siteUrl,
            "timezone": self.timezone,
            "on": self.on,
            "maintenance": self.maintenance,
            "track": self.track,
        }


def write_info(
    connection: Connection,
    info_table: Table,
    inputs: InstallationInputs,
    build: BuildMetadata,
) -> InfoRecord:
    """Populate the info table.

    Raises:
        ValidationError: If the record is invalid or the row already exists.

    """
    logger.info("Populating the info table.")
    info = InfoRecord.from_inputs(inputs, build)

    valid = info.validate()
    existing = connection.execute(select(func.count()).select_from(info_table))
    if existing.scalar_one():
        info.add_error("id", "The info table already has a row.")
        valid = False

    if not valid:
        logger.error("Could not populate the info table.")
        msg = "There was a problem saving to the info table:"
        raise ValidationError(msg, info.errors)

    connection.execute(insert(info_table).values(**info.row()))
    logger.info("Info table populated successfully.")
    return info
