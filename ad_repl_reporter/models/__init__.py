"""Models module for the AD replication reporter."""

from .report_models import (
    FailureType,
    PartnerType,
    ReplicationFailureRecord,
    ReplicationPartnerRecord,
    ReplicationVectorRecord,
    ReportAction,
    ReportResult,
    RootDSE,
    VersionRecord,
)

__all__ = [
    "FailureType",
    "PartnerType",
    "ReplicationFailureRecord",
    "ReplicationPartnerRecord",
    "ReplicationVectorRecord",
    "ReportAction",
    "ReportResult",
    "RootDSE",
    "VersionRecord",
]
