"""Report registry and dispatcher.

Every ``ReportAction`` maps to exactly one reporter. The mapping is checked
against the enum when the module is imported, so adding an action without a
reporter fails immediately.
"""

from typing import Dict

import structlog

from ad_repl_reporter.config_manager import ReportConfig
from ad_repl_reporter.models import ReportAction, ReportResult
from ad_repl_reporter.services.directory_client import DirectoryClient
from ad_repl_reporter.utils import ensure_path

from .base import (
    Reporter,
    create_directory_client,
    exit_with_error,
    resolve_action,
    resolve_arguments,
)
from .dc_replication import report_dc_replication_status
from .forest_version import report_forest_version
from .repl_metadata import report_repl_metadata

logger = structlog.get_logger(__name__)

REPORTERS: Dict[ReportAction, Reporter] = {
    ReportAction.FOREST_VERSION: report_forest_version,
    ReportAction.AD_REPL_METADATA: report_repl_metadata,
    ReportAction.DC_REPLICATION: report_dc_replication_status,
}

_missing = set(ReportAction) - set(REPORTERS)
if _missing:
    raise RuntimeError(f"No reporter registered for: {sorted(a.value for a in _missing)}")


def run_report(report: ReportConfig, client: DirectoryClient) -> ReportResult:
    """
    Ensure the report directory exists, then run the reporter for ``report.action``.

    Args:
        report: Validated invocation parameters
        client: Open directory client; the caller owns and closes it
    """
    ensure_path(report.log_file_path)
    reporter = REPORTERS[report.action]
    logger.debug("Dispatching report", action=report.action.value)
    return reporter(report, client)


__all__ = [
    "REPORTERS",
    "Reporter",
    "create_directory_client",
    "exit_with_error",
    "resolve_action",
    "resolve_arguments",
    "run_report",
]
