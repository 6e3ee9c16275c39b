"""Shared command infrastructure.

This module provides the pieces every report shares:
- Argument resolution (validated invocation parameters before any I/O)
- Report file naming and timestamps
- Construction of the directory client from configuration
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Tuple

import click

from ad_repl_reporter.config_manager import DirectoryConfig, ReportConfig
from ad_repl_reporter.exceptions import UsageError
from ad_repl_reporter.models import ReportAction, ReportResult
from ad_repl_reporter.services.directory_client import DirectoryClient

FOREST_UPDATE_FILE = "ForestUpdateInfo.csv"
REPL_METADATA_FILE = "ADReplMetaData.csv"
REPL_FAILURES_SUFFIX = "_ForestReplFailures.csv"
VECTOR_TABLE_SUFFIX = "_ForestVectorTable.csv"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

Reporter = Callable[[ReportConfig, DirectoryClient], ReportResult]


def resolve_action(action: Optional[str]) -> ReportAction:
    """Map the --action string onto a ReportAction (exact, case-sensitive match)."""
    if not action:
        raise UsageError("Missing required option --action", parameter="action")
    try:
        return ReportAction(action)
    except ValueError:
        raise UsageError(
            f"Unknown action {action!r}; expected one of: "
            + ", ".join(ReportAction.values()),
            parameter="action",
        ) from None


def resolve_arguments(
    log_file_path: Optional[str],
    action: Optional[str],
    domain_name: Optional[str] = None,
) -> Tuple[str, ReportAction, Optional[str]]:
    """
    Validate the three invocation parameters before anything runs.

    The domain name format is not checked; an invalid name surfaces as a
    directory error when it is queried.

    Raises:
        UsageError: On a missing path or action, an unknown action, or a
            missing domain name for ADReplMetaData.
    """
    if not log_file_path or not log_file_path.strip():
        raise UsageError(
            "Missing required option --log-file-path", parameter="log_file_path"
        )
    resolved = resolve_action(action)
    if resolved is ReportAction.AD_REPL_METADATA and not domain_name:
        raise UsageError(
            "--domain-name is required for the ADReplMetaData action",
            parameter="domain_name",
        )
    if resolved is not ReportAction.AD_REPL_METADATA:
        domain_name = None
    return log_file_path, resolved, domain_name


def report_file(report: ReportConfig, name: str) -> Path:
    return Path(report.log_file_path) / name


def host_report_file(report: ReportConfig, host: str, suffix: str) -> Path:
    return Path(report.log_file_path) / f"{host}{suffix}"


def current_timestamp() -> str:
    return datetime.now().strftime(TIMESTAMP_FORMAT)


def create_directory_client(config: Optional[DirectoryConfig] = None) -> DirectoryClient:
    return DirectoryClient(config or DirectoryConfig())


def exit_with_error(message: str, code: int = 1) -> None:
    """Exit with error message."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(code)
