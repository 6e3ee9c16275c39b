"""
Forest Version Report - schema, forest-update and domain-update revisions.

Reads the root DSE, derives the three well-known containers from the root
domain naming context and appends one row to ForestUpdateInfo.csv:

- ``CN=Schema,CN=Configuration,<root>``: ``objectVersion``
- ``CN=ActiveDirectoryUpdate,CN=ForestUpdates,CN=Configuration,<root>``: ``revision``
- ``CN=ActiveDirectoryUpdate,CN=DomainUpdates,CN=System,<root>``: ``revision``

All three reads happen before anything is written, so a missing container
aborts the report without a partial row.
"""

from typing import Tuple

import structlog

from ad_repl_reporter.commands.base import (
    FOREST_UPDATE_FILE,
    current_timestamp,
    report_file,
)
from ad_repl_reporter.config_manager import ReportConfig
from ad_repl_reporter.models import ReportAction, ReportResult, VersionRecord
from ad_repl_reporter.services.directory_client import DirectoryClient
from ad_repl_reporter.utils import append_records

logger = structlog.get_logger(__name__)


def version_container_paths(root_naming_context: str) -> Tuple[str, str, str]:
    """Schema, forest-updates and domain-updates DNs for a root naming context."""
    return (
        f"CN=Schema,CN=Configuration,{root_naming_context}",
        f"CN=ActiveDirectoryUpdate,CN=ForestUpdates,CN=Configuration,{root_naming_context}",
        f"CN=ActiveDirectoryUpdate,CN=DomainUpdates,CN=System,{root_naming_context}",
    )


def collect_version_record(client: DirectoryClient) -> VersionRecord:
    root = client.get_root_dse()
    schema_path, forest_path, domain_path = version_container_paths(
        root.root_domain_naming_context
    )

    schema_version = int(client.read_attribute(schema_path, "objectVersion"))
    forest_version = int(client.read_attribute(forest_path, "revision"))
    domain_version = int(client.read_attribute(domain_path, "revision"))

    return VersionRecord(
        schema_path=schema_path,
        forest_path=forest_path,
        domain_path=domain_path,
        schema_version=schema_version,
        forest_version=forest_version,
        domain_version=domain_version,
        forest_function_level=root.forest_functionality,
        domain_function_level=root.domain_functionality,
        timestamp=current_timestamp(),
    )


def report_forest_version(report: ReportConfig, client: DirectoryClient) -> ReportResult:
    """Append the current schema/forest/domain versions to ForestUpdateInfo.csv."""
    record = collect_version_record(client)
    logger.info(
        "Read forest version information",
        schema_version=record.schema_version,
        forest_version=record.forest_version,
        domain_version=record.domain_version,
        forest_function=record.forest_function_level,
    )

    path = report_file(report, FOREST_UPDATE_FILE)
    rows = append_records(path, VersionRecord.HEADER, [record])

    result = ReportResult(action=ReportAction.FOREST_VERSION)
    result.add_file(str(path), rows)
    return result
