"""Command line interface for CMS Toolkit."""

import logging
import sys
from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from install import (
    AlreadyInstalledError,
    InstallationInputs,
    Installer,
    InstallResult,
    SchemaError,
    ValidationError,
)
from ledger import BASE_MIGRATION, discover_migrations
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from schema import create_database_engine, schema_definitions
from sqlalchemy.exc import SQLAlchemyError

app = App(help="CMS Toolkit CLI tool")

console = Console()
err_console = Console(stderr=True)

DATABASE_ENV_VAR = "CMS_DATABASE_URL"


def print_error(message: str) -> None:
    """Print error message to stderr."""
    err_console.print(f"[bold red]Error:[/] {escape(message)}")


def print_success(message: str) -> None:
    """Print success message to stderr."""
    err_console.print(f"[bold green]✓[/] {message}")


def print_info(message: str) -> None:
    """Print info message to stderr."""
    err_console.print(f"[bold blue]i[/] {message}")


def configure_logging(*, verbose: bool = False) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def format_result_table(result: InstallResult) -> None:
    """Format the outcome of an installation as a rich table."""
    table = Table(title="Installation Summary", show_header=False)
    table.add_column("Key", style="bold blue")
    table.add_column("Value")
    table.add_row("State", str(result.state))
    table.add_row("Administrator id", str(result.admin_id))
    table.add_row("Tables", str(len(result.tables)))
    table.add_row("Migrations", str(len(result.migrations)))
    for warning in result.warnings:
        table.add_row("[yellow]Warning[/]", warning)
    console.print(table)


@app.command
def install(  # noqa: PLR0913
    database: Annotated[str | None, Parameter(env_var=DATABASE_ENV_VAR)] = None,
    *,
    locale: str,
    site_name: str,
    site_url: str,
    email: str,
    username: str,
    password: str,
    track: str = "stable",
    migrations: Path | None = None,
    interactive: bool = False,
    verbose: bool = False,
) -> None:
    """Install the CMS into an empty database."""
    configure_logging(verbose=verbose)

    if not database:
        print_error(f"No database URL given, pass one or set {DATABASE_ENV_VAR}")
        sys.exit(1)

    if migrations and not migrations.exists():
        print_error(f"Migration source does not exist: {migrations}")
        sys.exit(1)

    inputs = InstallationInputs(
        locale=locale,
        site_name=site_name,
        site_url=site_url,
        email=email,
        username=username,
        password=password,
        track=track,
    )
    print_info(f"Database: {database}")
    print_info(f"Site: {site_name} ({site_url})")

    engine = create_database_engine(database)
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=err_console,
        ) as progress:
            progress.add_task("Installing...", total=None)
            with engine.connect() as connection:
                installer = Installer(connection, migration_source=migrations)
                result = installer.run(inputs, interactive=interactive)
    except (AlreadyInstalledError, SchemaError, ValidationError, SQLAlchemyError) as e:
        print_error(str(e))
        sys.exit(1)
    finally:
        engine.dispose()

    format_result_table(result)
    if result.warnings:
        print_info(f"Installed with {len(result.warnings)} warning(s)")
    else:
        print_success("Installation completed successfully")


@app.command
def tables(*, verbose: bool = False) -> None:
    """List the tables an installation creates."""
    configure_logging(verbose=verbose)

    table = Table(title="Installation Tables")
    table.add_column("Table", style="bold cyan")
    table.add_column("Source")
    table.add_column("Columns", justify="right")
    table.add_column("Indexes", justify="right")
    table.add_column("Foreign Keys", justify="right")

    for definition in schema_definitions():
        table.add_row(
            definition.name,
            definition.source,
            str(len(definition.column_names)),
            str(len(definition.indexes)),
            str(len(definition.foreign_keys)),
        )

    console.print(table)


@app.command
def migrations(source: Path | None = None) -> None:
    """List the migrations a fresh installation is seeded with."""
    if source and not source.exists():
        print_error(f"Migration source does not exist: {source}")
        sys.exit(1)

    try:
        versions = discover_migrations(source)
    except ValidationError as e:
        print_error(str(e))
        sys.exit(1)

    table = Table(title="Migration Ledger")
    table.add_column("Version", style="bold cyan")
    table.add_row(f"{BASE_MIGRATION} [dim](baseline)[/]")
    for version in versions:
        table.add_row(version)
    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
