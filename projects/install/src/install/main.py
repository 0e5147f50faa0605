"""Installation orchestrator.

Creates the schema, the info row and the migration ledger in one atomic region,
then seeds the locale, the administrator, a session, the mail settings and the
default content. Only the administrator is allowed to fail the run once the
schema is committed.
"""

from collections.abc import Callable
from logging import getLogger
from pathlib import Path

from sqlalchemy import Connection, MetaData, func, select, table
from sqlalchemy.exc import SQLAlchemyError

from install.content import ContentSeeder
from install.errors import AlreadyInstalledError
from install.info import write_info
from install.models import User
from install.services import Collaborators, default_collaborators
from install.transaction import atomic
from install.types import (
    BuildMetadata,
    InstallationInputs,
    InstallResult,
    InstallState,
    InstallStatus,
    load_build_metadata,
)
from ledger import BASE_MIGRATION, seed_ledger
from schema import (
    CATALOG,
    INFO_TABLE,
    SchemaBuilder,
    SchemaCatalog,
    SchemaError,
    ValidationError,
    existing_tables,
    schema_definitions,
)

logger = getLogger(__name__)

MIGRATIONS_TABLE = "migrations"

# Shared by every installer in the process unless one is given explicitly
INSTALL_STATUS = InstallStatus()

type CollaboratorFactory = Callable[[Connection, MetaData], Collaborators]


class Installer:
    """Installs the CMS on one database connection."""

    def __init__(  # noqa: PLR0913
        self,
        connection: Connection,
        *,
        catalog: SchemaCatalog = CATALOG,
        status: InstallStatus | None = None,
        build: BuildMetadata | None = None,
        migration_source: Path | None = None,
        baseline_version: str = BASE_MIGRATION,
        collaborators: CollaboratorFactory = default_collaborators,
    ) -> None:
        """Initialize the installer.

        Args:
            connection: Connection to the target database. When it is already in a
                transaction the schema work joins that transaction.
            catalog: Records whose tables are created.
            status: Installed flag, the process-wide one by default.
            build: Build metadata, the packaged build.toml by default.
            migration_source: Manifest file or folder of migration scripts.
            baseline_version: Ledger version that stands for every older migration.
            collaborators: Builds the services used after the schema is committed.

        """
        self._connection = connection
        self._catalog = catalog
        self.status = status if status is not None else INSTALL_STATUS
        self._build = build
        self._migration_source = migration_source
        self._baseline_version = baseline_version
        self._collaborators = collaborators
        self.metadata = MetaData()
        self.state = InstallState.NOT_INSTALLED

    def run(self, inputs: InstallationInputs, *, interactive: bool = False) -> InstallResult:
        """Install the CMS.

        Raises:
            AlreadyInstalledError: If the CMS is installed already. Nothing is changed.
            SchemaError: If a table, index or foreign key cannot be created. The schema
                work of this run is rolled back.
            ValidationError: If the info row or the ledger is invalid, in which case
                the schema work is rolled back, or if the administrator cannot be
                created, in which case the schema stays and the state remains
                ``schema_committed``.

        """
        if self.status.installed:
            msg = "The CMS is already installed."
            raise AlreadyInstalledError(msg)

        self.state = InstallState.NOT_INSTALLED
        logger.info("Starting the installation.")
        result = InstallResult(self.state)
        self._install_schema(inputs, result)
        self._advance(result, InstallState.SCHEMA_COMMITTED)

        services = self._collaborators(self._connection, self.metadata)

        self._add_locale(services, inputs, result)
        self._advance(result, InstallState.LOCALE_SET)

        result.admin_id = self._create_admin(services, inputs)
        self._advance(result, InstallState.ADMIN_CREATED)

        if interactive and self._log_in(services, inputs, result):
            self._advance(result, InstallState.SESSION_ESTABLISHED)
        else:
            self._advance(result, InstallState.SESSION_SKIPPED)

        self._save_email_settings(services, inputs, result)
        self._advance(result, InstallState.MAIL_SEEDED)

        seeder = ContentSeeder(services, inputs, result.admin_id)
        result.warnings.extend(seeder.seed())
        self._advance(result, InstallState.CONTENT_SEEDED)

        self._advance(result, InstallState.INSTALLED)
        self.status.installed = True
        logger.info("Finished installing the CMS.")
        return result

    def _advance(self, result: InstallResult, state: InstallState) -> None:
        logger.debug("Installation state: %s", state)
        self.state = result.state = state

    def _install_schema(self, inputs: InstallationInputs, result: InstallResult) -> None:
        definitions = schema_definitions(self._catalog)
        build = self._build or load_build_metadata()
        self.metadata = MetaData()

        with atomic(self._connection) as owner:
            try:
                self._ensure_not_installed()

                builder = SchemaBuilder(self._connection, self.metadata)
                tables = builder.build_all(definitions)

                write_info(self._connection, self.metadata.tables[INFO_TABLE], inputs, build)

                migrations_table = self.metadata.tables.get(MIGRATIONS_TABLE)
                if migrations_table is None:
                    msg = f"No record defines the {MIGRATIONS_TABLE} table."
                    raise SchemaError(msg)

                logger.info("Populating the migration table.")
                entries = seed_ledger(
                    self._connection,
                    migrations_table,
                    self._baseline_version,
                    self._migration_source,
                )
            except (AlreadyInstalledError, SchemaError, ValidationError, SQLAlchemyError):
                if owner:
                    logger.error("Rolling back the transaction.")  # noqa: TRY400
                raise

            if owner:
                logger.info("Committing the transaction.")

        result.tables = [created.name for created in tables]
        result.migrations = [entry.version for entry in entries]

    def _ensure_not_installed(self) -> None:
        if INFO_TABLE not in existing_tables(self._connection):
            return
        rows = self._connection.execute(
            select(func.count()).select_from(table(INFO_TABLE)),
        ).scalar_one()
        if rows:
            msg = "The CMS is already installed: the info table is populated."
            raise AlreadyInstalledError(msg)

    def _add_locale(
        self,
        services: Collaborators,
        inputs: InstallationInputs,
        result: InstallResult,
    ) -> None:
        logger.info("Adding locale %s.", inputs.locale)
        if not self._advise(result, lambda: services.locales.add(inputs.locale, 1)):
            self._warn(result, f"Could not add the locale {inputs.locale}.")

    def _create_admin(self, services: Collaborators, inputs: InstallationInputs) -> int | None:
        logger.info("Creating user.")
        user = User(
            username=inputs.username,
            email=inputs.email,
            new_password=inputs.password,
            admin=True,
        )
        if not services.users.save(user):
            logger.error("Could not create the user.")
            # Only the schema is guaranteed once the run stops here
            self.state = InstallState.SCHEMA_COMMITTED
            msg = "There was a problem creating the user:"
            raise ValidationError(msg, user.errors)

        logger.info("User created successfully.")
        return user.id

    def _log_in(
        self,
        services: Collaborators,
        inputs: InstallationInputs,
        result: InstallResult,
    ) -> bool:
        logger.info("Logging in user.")
        if self._advise(result, lambda: services.sessions.login(inputs.username, inputs.password)):
            logger.info("User logged in successfully.")
            return True
        self._warn(result, "Could not log the user in.")
        return False

    def _save_email_settings(
        self,
        services: Collaborators,
        inputs: InstallationInputs,
        result: InstallResult,
    ) -> None:
        logger.info("Saving default mail settings.")
        settings = {
            "protocol": "php",
            "emailAddress": inputs.email,
            "senderName": inputs.site_name,
        }
        if self._advise(result, lambda: services.settings.save_settings("email", settings)):
            logger.info("Default mail settings saved successfully.")
        else:
            self._warn(result, "Could not save default email settings.")

    def _advise(self, result: InstallResult, action: Callable[[], bool]) -> bool:
        """Run a step whose failure must not stop the installation."""
        try:
            return action()
        except SQLAlchemyError as err:
            self._warn(result, f"Database error: {err}")
            return False

    @staticmethod
    def _warn(result: InstallResult, message: str) -> None:
        logger.warning(message)
        result.warnings.append(message)

