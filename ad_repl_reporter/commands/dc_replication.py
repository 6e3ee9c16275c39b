"""
DC Replication Status Report - per-controller failures and vector tables.

For every domain controller of the forest two files are appended to:

- ``<host>_ForestReplFailures.csv``: KCC connection/link failures seen by the
  controller. Created (header only) when there are none.
- ``<host>_ForestVectorTable.csv``: the forest-wide up-to-dateness vector table.

By default the forest-wide vector table is queried again for every controller
and the run stops at the first controller that cannot be queried. With
``snapshot_vectors`` the table is queried once and the same snapshot is
written for every controller.

With ``continue_on_error`` a failure is charged to the controller that
actually failed (the ``host`` in the error context), not to the controller
being reported on. The forest-wide vector query touches every controller, so
one unreachable DC makes it fail for all of them: each healthy controller then
keeps its failures file and only its vector file is skipped.
"""

from typing import List, Optional

import structlog

from ad_repl_reporter.commands.base import (
    REPL_FAILURES_SUFFIX,
    VECTOR_TABLE_SUFFIX,
    host_report_file,
)
from ad_repl_reporter.config_manager import ReportConfig
from ad_repl_reporter.exceptions import DirectoryServiceError
from ad_repl_reporter.models import (
    ReplicationFailureRecord,
    ReplicationVectorRecord,
    ReportAction,
    ReportResult,
)
from ad_repl_reporter.services.directory_client import DirectoryClient
from ad_repl_reporter.utils import append_records

logger = structlog.get_logger(__name__)


def _failing_host(error: DirectoryServiceError, default: str) -> str:
    return error.context.get("host") or default


def _record_failure(
    result: ReportResult, error: DirectoryServiceError, controller: str
) -> None:
    failed = _failing_host(error, controller)
    logger.error(
        "Replication query failed",
        host=failed,
        controller=controller,
        error=str(error),
    )
    if failed not in result.failed_hosts:
        result.failed_hosts.append(failed)


def _write_failures(
    host: str, report: ReportConfig, client: DirectoryClient, result: ReportResult
) -> None:
    failures = client.get_replication_failures(host, scope="Server")

    path = host_report_file(report, host, REPL_FAILURES_SUFFIX)
    rows = append_records(path, ReplicationFailureRecord.HEADER, failures)
    result.add_file(str(path), rows)
    if failures:
        logger.warning("Replication failures found", host=host, failures=len(failures))
    else:
        logger.info("No replication failures found", host=host)
        result.note("no replication failures", host=host)


def _write_vectors(
    host: str,
    report: ReportConfig,
    vectors: List[ReplicationVectorRecord],
    result: ReportResult,
) -> None:
    path = host_report_file(report, host, VECTOR_TABLE_SUFFIX)
    rows = append_records(path, ReplicationVectorRecord.HEADER, vectors)
    result.add_file(str(path), rows)
    logger.debug("Wrote vector table", host=host, rows=rows)


def _query_vectors(
    host: str, report: ReportConfig, client: DirectoryClient, result: ReportResult
) -> Optional[List[ReplicationVectorRecord]]:
    """Forest vector table for ``host``; None when it was skipped after a failure."""
    try:
        return client.get_up_to_dateness_vector_table(scope="Forest")
    except DirectoryServiceError as e:
        if not report.continue_on_error:
            raise
        _record_failure(result, e, host)
        return None


def report_dc_replication_status(
    report: ReportConfig, client: DirectoryClient
) -> ReportResult:
    """Write failure and vector-table files for every DC of the forest."""
    result = ReportResult(action=ReportAction.DC_REPLICATION)

    hosts = client.get_forest_domain_controllers()
    if not hosts:
        logger.warning("No domain controllers discovered in the forest")
        result.note("no domain controllers discovered")
        return result
    logger.info("Checking replication status", controllers=len(hosts))

    snapshot: Optional[List[ReplicationVectorRecord]] = None
    if report.snapshot_vectors:
        snapshot = _query_vectors(hosts[0], report, client, result)
        if snapshot is None:
            result.note("vector snapshot unavailable, no vector tables written")

    for host in hosts:
        try:
            _write_failures(host, report, client, result)
        except DirectoryServiceError as e:
            if not report.continue_on_error:
                raise
            _record_failure(result, e, host)
            continue

        if report.snapshot_vectors:
            vectors = snapshot
        else:
            vectors = _query_vectors(host, report, client, result)
            if vectors is None:
                result.note("vector table skipped", host=host)
        if vectors is not None:
            _write_vectors(host, report, vectors, result)

    return result
