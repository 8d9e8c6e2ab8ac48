"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Command line interface of the importer.
"""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from testit_importer import __version__
from testit_importer.core.config import DEFAULT_CONFIG_FILE, AppConfig
from testit_importer.core.logging import correlation_id
from testit_importer.exceptions import ConfigurationError, ImporterError
from testit_importer.orchestrator import ImportOrchestrator, ImportResult
from testit_importer.source_reader import ExportReader
from testit_importer.tms_client import TmsClient

# Initialize console for rich output
console = Console()

# Initialize the CLI app
app = typer.Typer(help="TestIT Importer - import an exported project into Test IT")

logger = logging.getLogger("testit_importer")


@app.callback(invoke_without_command=True)
def callback(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show the application version and exit"),
):
    """
    TestIT Importer - replicate an exported test-management project into Test IT.
    """
    if version:
        console.print(f"TestIT Importer version: {__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()


async def run_import(config: AppConfig) -> ImportResult:
    """Open the Test IT client and run every import phase."""
    async with TmsClient.from_config(config.tms) as client:
        orchestrator = ImportOrchestrator(
            client,
            ExportReader(config.result_path),
            project_name=config.tms.project_name,
            import_to_existing_project=config.tms.import_to_existing_project,
        )
        return await orchestrator.import_project()


def print_result(result: ImportResult) -> None:
    console.print(f"Imported into project {result.project_id}", style="green")

    table = Table(title="Import Summary")
    table.add_column("Entity", style="cyan")
    table.add_column("Imported", style="green")
    table.add_row("Sections", str(len(result.section_map)))
    table.add_row("Attributes", str(len(result.attribute_map)))
    table.add_row("Shared steps", str(len(result.shared_step_map)))
    console.print(table)

    if not result.not_imported_test_cases:
        console.print("All test cases imported", style="green")
        return

    table = Table(title="Not Imported Test Cases")
    table.add_column("#", style="dim")
    table.add_column("Name", style="red")
    for index, name in enumerate(result.not_imported_test_cases, start=1):
        table.add_row(str(index), name)
    console.print(table)
    console.print("See import_error_logs in the export directory for details", style="yellow")


@app.command("import")
def import_command(
    config_file: Path = typer.Option(
        Path(DEFAULT_CONFIG_FILE), "--config", help="Path to the JSON configuration file"
    ),
    result_path: str | None = typer.Option(
        None, "--result-path", help="Directory holding the export (overrides the config file)"
    ),
    project_name: str | None = typer.Option(
        None, "--project-name", help="Import into a project with this name"
    ),
    existing_project: bool | None = typer.Option(
        None,
        "--existing-project/--no-existing-project",
        help="Allow importing into an existing project with the same name",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug mode with verbose logging"),
):
    """
    Import an exported project into Test IT.
    """
    tms_overrides = {}
    if project_name is not None:
        tms_overrides["project_name"] = project_name
    if existing_project is not None:
        tms_overrides["import_to_existing_project"] = existing_project

    try:
        config = AppConfig.from_file(
            config_file,
            result_path=result_path,
            debug=debug or None,
            tms=tms_overrides,
        )
    except ConfigurationError as e:
        console.print(f"Error: {e}", style="red")
        raise typer.Exit(code=2)

    config.configure_logging()

    with correlation_id() as run_id:
        logger.info(f"Starting import of {config.result_path} ({run_id})")
        try:
            result = asyncio.run(run_import(config))
        except ImporterError as e:
            logger.error(f"Import failed: {e}")
            console.print(f"Error: {e}", style="red")
            raise typer.Exit(code=1)
        except Exception as e:
            logger.exception(f"Import failed with unexpected error: {e}")
            console.print(f"Error: {e}", style="red")
            raise typer.Exit(code=1)

    print_result(result)


if __name__ == "__main__":
    app()
