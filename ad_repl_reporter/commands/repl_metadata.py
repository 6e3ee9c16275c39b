"""Replication partner metadata report for one domain (ADReplMetaData.csv)."""

import structlog

from ad_repl_reporter.commands.base import REPL_METADATA_FILE, report_file
from ad_repl_reporter.config_manager import ReportConfig
from ad_repl_reporter.models import (
    PartnerType,
    ReplicationPartnerRecord,
    ReportAction,
    ReportResult,
)
from ad_repl_reporter.services.directory_client import DirectoryClient
from ad_repl_reporter.utils import append_records

logger = structlog.get_logger(__name__)


def report_repl_metadata(report: ReportConfig, client: DirectoryClient) -> ReportResult:
    """
    Append inbound and outbound partner metadata of every partition of
    ``report.domain_name`` to ADReplMetaData.csv.

    An empty result still creates the file (header only).
    """
    records = client.get_replication_partner_metadata(
        report.domain_name, partition="*", partner_type=PartnerType.BOTH
    )

    path = report_file(report, REPL_METADATA_FILE)
    rows = append_records(path, ReplicationPartnerRecord.HEADER, records)
    logger.info(
        "Wrote replication partner metadata",
        domain=report.domain_name,
        rows=rows,
        path=str(path),
    )

    result = ReportResult(action=ReportAction.AD_REPL_METADATA)
    result.add_file(str(path), rows)
    if not records:
        result.note("no replication partners returned", host=report.domain_name)
    return result
