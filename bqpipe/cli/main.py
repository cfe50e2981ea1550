"""bqpipe CLI.

Commands:
    run      Run the SQL files of a pipeline against BigQuery
    init     Write a default bqpipe.toml
    version  Show version information
"""

import os
import sys
from typing import Optional

import typer

from bqpipe.cli.display import (
    ConsoleReporter,
    console,
    display_generic_error,
    display_run_error,
    display_success,
    display_warning,
)
from bqpipe.core.defaults import write_default_settings
from bqpipe.core.runner import PipelineRunner
from bqpipe.core.settings import (
    DEFAULT_CONFIG_FILENAME,
    RunConfiguration,
    RunOverrides,
    load_settings,
)
from bqpipe.exceptions import BQPipeError, RunCancelledError
from bqpipe.logging import get_logger
from bqpipe.utils.env import ENV_PREFIX

logger = get_logger(__name__)

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130  # Standard exit code for SIGINT

app = typer.Typer(
    name="bqpipe",
    help="bqpipe - execute BigQuery SQL as part of a pipeline",
    add_completion=False,
)


def _show_version() -> None:
    from bqpipe import __version__

    console.print(f"bqpipe {__version__}")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose output"
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only show warnings and errors in logs"
    ),
) -> None:
    """Run ordered directories of BigQuery SQL files.

    Examples:
        bqpipe init
        bqpipe run --dry-run
        bqpipe run -c prod/bqpipe.toml --project my-project
    """
    if version:
        _show_version()
        raise typer.Exit()

    _setup_environment(verbose, quiet)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()


@app.command()
def run(
    config: str = typer.Option(
        DEFAULT_CONFIG_FILENAME,
        "--config",
        "-c",
        help="Path to the configuration file",
    ),
    directory: Optional[str] = typer.Option(
        None,
        "--directory",
        "-r",
        envvar=f"{ENV_PREFIX}DIRECTORY",
        help="Directory containing .sql files (relative to the config file)",
    ),
    project: Optional[str] = typer.Option(
        None,
        "--project",
        "-p",
        envvar=f"{ENV_PREFIX}PROJECT",
        help="Google Cloud project ID",
    ),
    dataset: Optional[str] = typer.Option(
        None, "--dataset", "-d", envvar=f"{ENV_PREFIX}DATASET", help="BigQuery dataset"
    ),
    location: Optional[str] = typer.Option(
        None,
        "--location",
        "-l",
        envvar=f"{ENV_PREFIX}LOCATION",
        help="BigQuery data processing location (e.g. australia-southeast1)",
    ),
    impersonate_service_account: Optional[str] = typer.Option(
        None,
        "--impersonate-service-account",
        envvar=f"{ENV_PREFIX}IMPERSONATE_SERVICE_ACCOUNT",
        help="Service account email to impersonate for Google Cloud API calls",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Validate queries without executing them",
    ),
) -> None:
    """Run a pipeline of BigQuery SQL queries.

    Every .sql file under the configured directory is rendered and executed
    in path order. The first failure stops the run.
    """
    overrides = RunOverrides(
        directory=directory,
        project_id=project,
        dataset=dataset,
        location=location,
        impersonate_service_account=impersonate_service_account,
        dry_run=dry_run,
    )

    try:
        settings = load_settings(config)
        run_config = RunConfiguration.from_sources(settings, overrides)
        runner = PipelineRunner(run_config, reporter=ConsoleReporter())
        runner.run()
    except RunCancelledError as e:
        display_warning(e.message)
        raise typer.Exit(EXIT_INTERRUPTED)
    except KeyboardInterrupt:
        display_warning("Operation cancelled by user")
        raise typer.Exit(EXIT_INTERRUPTED)
    except BQPipeError as e:
        display_run_error(e)
        logger.debug("Run failed", exc_info=True)
        raise typer.Exit(EXIT_FAILURE)
    except Exception as e:
        logger.debug("Unexpected error during run", exc_info=True)
        display_generic_error(e, "pipeline run")
        console.print("💡 [dim]Run with --verbose for more details[/dim]")
        raise typer.Exit(EXIT_FAILURE)


@app.command()
def init(
    config: str = typer.Option(
        DEFAULT_CONFIG_FILENAME,
        "--config",
        "-c",
        help="Path of the configuration file to create",
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing file without asking"
    ),
) -> None:
    """Initialize a bqpipe pipeline in the current project."""
    overwrite = force
    if os.path.exists(config) and not force:
        overwrite = typer.confirm(
            f"A {config} already exists in this directory. Overwrite?",
            default=False,
        )
        if not overwrite:
            console.print("Aborted. No files were changed.")
            raise typer.Exit()

    try:
        created = write_default_settings(config, overwrite=overwrite)
    except OSError as e:
        display_generic_error(e, f"writing {config}")
        raise typer.Exit(EXIT_FAILURE)

    display_success(f"Created {config}")
    logger.debug(f"Initialized settings at {created}")


@app.command()
def version() -> None:
    """Show bqpipe version information."""
    _show_version()
    console.print(f"Python: [cyan]{sys.version.split()[0]}[/cyan]")


def _setup_environment(verbose: bool = False, quiet: bool = False) -> None:
    """Load .env and configure logging before any command runs."""
    from bqpipe.logging import configure_logging, suppress_third_party_loggers
    from bqpipe.utils.env import setup_environment

    configure_logging(verbose=verbose, quiet=quiet)
    suppress_third_party_loggers()

    if setup_environment() and verbose:
        console.print("✓ [dim]Environment variables loaded from .env file[/dim]")


def cli() -> None:
    """Entry point for the bqpipe console script."""
    app()


if __name__ == "__main__":
    cli()
