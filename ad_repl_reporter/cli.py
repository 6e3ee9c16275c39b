#!/usr/bin/env python3
"""
Command-line interface for the AD Replication Reporter

Produces one of three CSV reports against Active Directory:

- ForestVersion: schema, forest-update and domain-update revisions
- ADReplMetaData: replication partner metadata of one domain
- DCReplication: replication failures and vector tables of every DC
"""

from typing import Optional

import click
import structlog
from rich.console import Console
from rich.table import Table

from ad_repl_reporter import __version__
from ad_repl_reporter.commands import (
    create_directory_client,
    exit_with_error,
    resolve_arguments,
    run_report,
)
from ad_repl_reporter.config_manager import create_config_from_env, setup_logging
from ad_repl_reporter.exceptions import ADReportError, DCReplicationError, UsageError
from ad_repl_reporter.logging_config import configure_logging
from ad_repl_reporter.models import ReportAction, ReportResult

console = Console()

logger = structlog.get_logger(__name__)


def render_summary(result: ReportResult) -> None:
    """Print the files written by a report as a table."""
    table = Table(title=f"{result.action.value} report")
    table.add_column("File", style="cyan")
    table.add_column("Status")
    for path in result.files_written:
        table.add_row(path, "[green]written[/green]")
    for host in result.failed_hosts:
        table.add_row(host, "[red]query failed[/red]")
    console.print(table)
    console.print(f"Data rows appended: {result.rows_written}")
    for note in result.notes:
        console.print(f"[blue]{note}[/blue]")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--log-file-path",
    "log_file_path",
    help="Directory the CSV reports are written to (created if missing)",
)
@click.option(
    "--action",
    help=f"Report to produce: {' | '.join(ReportAction.values())}",
)
@click.option(
    "--domain-name",
    "domain_name",
    help="Target domain FQDN (required for ADReplMetaData)",
)
@click.option(
    "--continue-on-error",
    is_flag=True,
    default=False,
    help="DCReplication: keep going when a domain controller cannot be queried",
)
@click.option(
    "--snapshot-vectors",
    is_flag=True,
    default=False,
    help="DCReplication: query the forest vector table once and reuse it for every DC",
)
@click.option(
    "--log-level",
    default=None,
    help="Logging level (DEBUG, INFO, WARNING, ERROR); defaults to LOG_LEVEL or INFO",
)
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.version_option(__version__, prog_name="ad-repl-report")
def cli(
    log_file_path: Optional[str],
    action: Optional[str],
    domain_name: Optional[str],
    continue_on_error: bool,
    snapshot_vectors: bool,
    log_level: Optional[str],
    debug: bool,
) -> None:
    """AD Replication Reporter - write AD version and replication reports to CSV."""
    try:
        log_file_path, report_action, domain_name = resolve_arguments(
            log_file_path, action, domain_name
        )
    except UsageError as e:
        raise click.UsageError(e.message) from e

    configure_logging()
    try:
        config = create_config_from_env(
            log_file_path,
            report_action,
            domain_name=domain_name,
            # Flags only override the environment when given
            continue_on_error=continue_on_error or None,
            snapshot_vectors=snapshot_vectors or None,
            log_level="DEBUG" if debug else log_level,
        )
    except ValueError as e:
        exit_with_error(f"Invalid configuration: {e}")
        return

    setup_logging(config.logging)
    if debug:
        config.log_configuration_summary()

    try:
        with create_directory_client(config.directory) as client:
            result = run_report(config.report, client)
    except ADReportError as e:
        logger.debug("Report failed", exc_info=True)
        exit_with_error(str(e))
        return

    render_summary(result)
    if not result.success:
        error = DCReplicationError(
            f"{len(result.failed_hosts)} domain controller(s) could not be queried",
            failed_hosts=result.failed_hosts,
        )
        exit_with_error(str(error))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
