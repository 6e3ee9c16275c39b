"""
Data models for the AD replication reports.

Each reporter builds flat, immutable records from directory query results and
hands them to the CSV writer. The ``csv_row`` of every record follows the
column order of the file it belongs to.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


# =============================================================================
# ENUMS
# =============================================================================


class ReportAction(str, Enum):
    """The three reports the tool can produce."""

    FOREST_VERSION = "ForestVersion"
    AD_REPL_METADATA = "ADReplMetaData"
    DC_REPLICATION = "DCReplication"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class PartnerType(str, Enum):
    """Direction of a replication partnership, as seen from the queried server."""

    INBOUND = "Inbound"
    OUTBOUND = "Outbound"
    BOTH = "Both"


class FailureType(str, Enum):
    """KCC failure list a replication failure was read from."""

    CONNECTION = "Connection"
    LINK = "Link"


# =============================================================================
# DIRECTORY VIEWS
# =============================================================================


@dataclass(frozen=True)
class RootDSE:
    """Subset of the root DSE the reporters need."""

    root_domain_naming_context: str
    default_naming_context: str = ""
    configuration_naming_context: str = ""
    forest_functionality: str = ""
    domain_functionality: str = ""
    dns_host_name: str = ""
    naming_contexts: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.root_domain_naming_context:
            raise ValueError("Root domain naming context cannot be empty")


# =============================================================================
# REPORT RECORDS
# =============================================================================


@dataclass(frozen=True)
class VersionRecord:
    """One row of ForestUpdateInfo.csv."""

    schema_path: str
    forest_path: str
    domain_path: str
    schema_version: int
    forest_version: int
    domain_version: int
    forest_function_level: str
    domain_function_level: str
    timestamp: str

    HEADER = (
        "Schema PSPath",
        "Forest PSPath",
        "Domain PSPath",
        "Schema Version",
        "Forest Version",
        "Domain Version",
        "Forest Function",
        "Domain Function",
        "Date",
    )

    def csv_row(self) -> List[object]:
        return [
            self.schema_path,
            self.forest_path,
            self.domain_path,
            self.schema_version,
            self.forest_version,
            self.domain_version,
            self.forest_function_level,
            self.domain_function_level,
            self.timestamp,
        ]


@dataclass(frozen=True)
class ReplicationPartnerRecord:
    """One row of ADReplMetaData.csv: a (server, partner, partition) link."""

    server: str
    partner: str
    last_attempt: str
    last_result: int
    last_success: str
    partition: str
    partner_type: PartnerType
    consecutive_failures: int

    HEADER = (
        "Server",
        "Partner",
        "LastReplicationAttempt",
        "LastReplicationResult",
        "LastReplicationSuccess",
        "Partition",
        "PartnerType",
        "ConsecutiveReplicationFailures",
    )

    def csv_row(self) -> List[object]:
        return [
            self.server,
            self.partner,
            self.last_attempt,
            self.last_result,
            self.last_success,
            self.partition,
            self.partner_type.value,
            self.consecutive_failures,
        ]


@dataclass(frozen=True)
class ReplicationVectorRecord:
    """One row of <Host>_ForestVectorTable.csv."""

    last_success: str
    partition: str
    partner: str
    server: str
    usn_filter: int

    HEADER = (
        "LastReplicationSuccess",
        "Partition",
        "Partner",
        "Server",
        "UsnFilter",
    )

    def csv_row(self) -> List[object]:
        return [
            self.last_success,
            self.partition,
            self.partner,
            self.server,
            self.usn_filter,
        ]


@dataclass(frozen=True)
class ReplicationFailureRecord:
    """One row of <Host>_ForestReplFailures.csv."""

    failure_count: int
    failure_type: FailureType
    partner: str
    last_error: int

    HEADER = ("FailureCount", "FailureType", "Partner", "LastError")

    def csv_row(self) -> List[object]:
        return [
            self.failure_count,
            self.failure_type.value,
            self.partner,
            self.last_error,
        ]


# =============================================================================
# RESULTS
# =============================================================================


@dataclass
class ReportResult:
    """Outcome of one reporter run, rendered by the CLI as a summary."""

    action: ReportAction
    files_written: List[str] = field(default_factory=list)
    rows_written: int = 0
    failed_hosts: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed_hosts

    def add_file(self, path: str, rows: int) -> None:
        if path not in self.files_written:
            self.files_written.append(path)
        self.rows_written += rows

    def note(self, message: str, host: Optional[str] = None) -> None:
        self.notes.append(f"{host}: {message}" if host else message)
