"""
Decoding of the XML-valued replication attributes.

Active Directory exposes replication state over LDAP through constructed
attributes whose values are small XML documents, one per value:

- ``msDS-ReplAllInboundNeighbors`` / ``msDS-ReplAllOutboundNeighbors``
  (``DS_REPL_NEIGHBOR``)
- ``msDS-NCReplCursors`` (``DS_REPL_CURSOR``)
- ``msDS-ReplConnectionFailures`` / ``msDS-ReplLinkFailures``
  (``DS_REPL_KCC_DSA_FAILURE``)
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, Union

from ad_repl_reporter.exceptions import ReplicationDataError

RawValue = Union[str, bytes]


@dataclass(frozen=True)
class Neighbor:
    naming_context: str
    source_dsa_dn: str
    source_dsa_address: str
    last_sync_success: str
    last_sync_attempt: str
    last_sync_result: int
    consecutive_failures: int


@dataclass(frozen=True)
class Cursor:
    source_dsa_dn: str
    invocation_id: str
    usn_filter: int
    last_sync_success: str


@dataclass(frozen=True)
class KccFailure:
    dsa_dn: str
    first_failure: str
    failure_count: int
    last_result: int


def _fields(raw: RawValue, attribute: str) -> Dict[str, str]:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    text = raw.strip().strip("\x00").strip()
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ReplicationDataError(
            f"Malformed replication value: {e}", attribute=attribute, cause=e
        ) from e
    return {child.tag: (child.text or "").strip() for child in root}


def _int(fields: Dict[str, str], name: str, attribute: str) -> int:
    value = fields.get(name, "")
    if value == "":
        return 0
    try:
        return int(value)
    except ValueError as e:
        raise ReplicationDataError(
            f"Field {name} is not an integer: {value!r}", attribute=attribute, cause=e
        ) from e


def parse_neighbor(raw: RawValue, attribute: str = "msDS-ReplAllInboundNeighbors") -> Neighbor:
    fields = _fields(raw, attribute)
    return Neighbor(
        naming_context=fields.get("pszNamingContext", ""),
        source_dsa_dn=fields.get("pszSourceDsaDN", ""),
        source_dsa_address=fields.get("pszSourceDsaAddress", ""),
        last_sync_success=fields.get("ftimeLastSyncSuccess", ""),
        last_sync_attempt=fields.get("ftimeLastSyncAttempt", ""),
        last_sync_result=_int(fields, "dwLastSyncResult", attribute),
        consecutive_failures=_int(fields, "cNumConsecutiveSyncFailures", attribute),
    )


def parse_cursor(raw: RawValue, attribute: str = "msDS-NCReplCursors") -> Cursor:
    fields = _fields(raw, attribute)
    return Cursor(
        source_dsa_dn=fields.get("pszSourceDsaDN", ""),
        invocation_id=fields.get("uuidSourceDsaInvocationID", ""),
        usn_filter=_int(fields, "usnAttributeFilter", attribute),
        last_sync_success=fields.get("ftimeLastSyncSuccess", ""),
    )


def parse_kcc_failure(raw: RawValue, attribute: str = "msDS-ReplLinkFailures") -> KccFailure:
    fields = _fields(raw, attribute)
    return KccFailure(
        dsa_dn=fields.get("pszDsaDN", ""),
        first_failure=fields.get("ftimeFirstFailure", ""),
        failure_count=_int(fields, "cNumFailures", attribute),
        last_result=_int(fields, "dwLastResult", attribute),
    )
