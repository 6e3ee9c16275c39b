import pytest

from ad_repl_reporter.exceptions import ReplicationDataError
from ad_repl_reporter.services.repl_xml import (
    parse_cursor,
    parse_kcc_failure,
    parse_neighbor,
)
from tests.ad_fixtures import (
    CONFIG_NC,
    cursor_xml,
    kcc_failure_xml,
    neighbor_xml,
    ntds_dn,
)


def test_parse_neighbor():
    neighbor = parse_neighbor(
        neighbor_xml(
            CONFIG_NC,
            ntds_dn("DC02"),
            result=8524,
            failures=3,
            success="2024-04-30T22:00:00Z",
            attempt="2024-05-01T10:00:00Z",
        )
    )
    assert neighbor.naming_context == CONFIG_NC
    assert neighbor.source_dsa_dn == ntds_dn("DC02")
    assert neighbor.last_sync_result == 8524
    assert neighbor.consecutive_failures == 3
    assert neighbor.last_sync_success == "2024-04-30T22:00:00Z"
    assert neighbor.last_sync_attempt == "2024-05-01T10:00:00Z"


def test_parse_neighbor_from_bytes_with_trailing_nul():
    raw = neighbor_xml(CONFIG_NC, ntds_dn("DC02")).encode("utf-8")
    assert raw.endswith(b"\x00")
    assert parse_neighbor(raw).naming_context == CONFIG_NC


def test_parse_cursor():
    cursor = parse_cursor(cursor_xml(ntds_dn("DC01"), 123456))
    assert cursor.source_dsa_dn == ntds_dn("DC01")
    assert cursor.usn_filter == 123456
    assert cursor.last_sync_success == "2024-05-01T10:05:00Z"
    assert cursor.invocation_id == "7a1c2e1f-0000-4000-8000-000000000001"


def test_parse_cursor_of_retired_partner_has_no_dn():
    raw = (
        "<DS_REPL_CURSOR>"
        "<uuidSourceDsaInvocationID>0b7e5d2c-0000-4000-8000-000000000009</uuidSourceDsaInvocationID>"
        "<usnAttributeFilter>77</usnAttributeFilter>"
        "<ftimeLastSyncSuccess>1601-01-01T00:00:00Z</ftimeLastSyncSuccess>"
        "<pszSourceDsaDN></pszSourceDsaDN>"
        "</DS_REPL_CURSOR>"
    )
    cursor = parse_cursor(raw)
    assert cursor.source_dsa_dn == ""
    assert cursor.invocation_id == "0b7e5d2c-0000-4000-8000-000000000009"


def test_parse_kcc_failure():
    failure = parse_kcc_failure(kcc_failure_xml(ntds_dn("DC01"), 4, 1722))
    assert failure.dsa_dn == ntds_dn("DC01")
    assert failure.failure_count == 4
    assert failure.last_result == 1722
    assert failure.first_failure == "2024-04-30T08:00:00Z"


def test_malformed_xml():
    with pytest.raises(ReplicationDataError) as exc_info:
        parse_neighbor("<DS_REPL_NEIGHBOR><pszNamingContext>")
    assert exc_info.value.error_code == "REPLICATION_DATA_INVALID"


def test_non_integer_field():
    raw = "<DS_REPL_KCC_DSA_FAILURE><cNumFailures>many</cNumFailures></DS_REPL_KCC_DSA_FAILURE>"
    with pytest.raises(ReplicationDataError, match="cNumFailures"):
        parse_kcc_failure(raw)


def test_missing_integer_fields_default_to_zero():
    failure = parse_kcc_failure("<DS_REPL_KCC_DSA_FAILURE></DS_REPL_KCC_DSA_FAILURE>")
    assert failure.failure_count == 0
    assert failure.last_result == 0
