"""Tests for the DCReplication report."""

import csv

import pytest
from ldap3.core.exceptions import LDAPSocketOpenError

from ad_repl_reporter.commands.dc_replication import report_dc_replication_status
from ad_repl_reporter.exceptions import DirectoryConnectionError
from ad_repl_reporter.models import (
    FailureType,
    ReplicationFailureRecord,
    ReplicationVectorRecord,
    ReportAction,
)
from ad_repl_reporter.services.directory_client import DirectoryClient
from tests.ad_fixtures import CONFIG_NC, ROOT_NC, ntds_dn

DC01 = "dc01.corp.example.com"
DC02 = "dc02.corp.example.com"


def vector_table():
    return [
        ReplicationVectorRecord(
            last_success="2024-05-01T10:05:00Z",
            partition=ROOT_NC,
            partner=ntds_dn("DC02"),
            server=DC01,
            usn_filter=41000,
        ),
        ReplicationVectorRecord(
            last_success="2024-05-01T10:05:00Z",
            partition=CONFIG_NC,
            partner=ntds_dn("DC01"),
            server=DC02,
            usn_filter=42000,
        ),
    ]


def read_rows(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


@pytest.fixture
def dc_client(mock_client):
    failures = {
        DC01: [],
        DC02: [
            ReplicationFailureRecord(
                failure_count=4,
                failure_type=FailureType.LINK,
                partner=ntds_dn("DC01"),
                last_error=1722,
            )
        ],
    }
    mock_client.get_forest_domain_controllers.return_value = [DC01, DC02]
    mock_client.get_up_to_dateness_vector_table.return_value = vector_table()
    mock_client.get_replication_failures.side_effect = lambda host, scope: failures[host]
    return mock_client


def test_two_files_per_controller(dc_client, make_report, report_dir):
    report = make_report(ReportAction.DC_REPLICATION)

    result = report_dc_replication_status(report, dc_client)

    assert sorted(p.name for p in report_dir.iterdir()) == [
        f"{DC01}_ForestReplFailures.csv",
        f"{DC01}_ForestVectorTable.csv",
        f"{DC02}_ForestReplFailures.csv",
        f"{DC02}_ForestVectorTable.csv",
    ]
    assert len(result.files_written) == 4
    assert result.success


def test_failures_file_contents(dc_client, make_report, report_dir):
    report_dc_replication_status(make_report(ReportAction.DC_REPLICATION), dc_client)

    rows = read_rows(report_dir / f"{DC02}_ForestReplFailures.csv")
    assert rows == [
        ["FailureCount", "FailureType", "Partner", "LastError"],
        ["4", "Link", ntds_dn("DC01"), "1722"],
    ]


def test_no_failures_still_creates_file(dc_client, make_report, report_dir):
    result = report_dc_replication_status(
        make_report(ReportAction.DC_REPLICATION), dc_client
    )

    rows = read_rows(report_dir / f"{DC01}_ForestReplFailures.csv")
    assert rows == [list(ReplicationFailureRecord.HEADER)]
    assert f"{DC01}: no replication failures" in result.notes
    assert result.success


def test_vector_table_written_for_every_controller(dc_client, make_report, report_dir):
    report_dc_replication_status(make_report(ReportAction.DC_REPLICATION), dc_client)

    for host in (DC01, DC02):
        rows = read_rows(report_dir / f"{host}_ForestVectorTable.csv")
        assert rows[0] == [
            "LastReplicationSuccess",
            "Partition",
            "Partner",
            "Server",
            "UsnFilter",
        ]
        assert len(rows) == 3
        assert rows[1][4] == "41000"


def test_vector_table_queried_per_controller_by_default(dc_client, make_report):
    report_dc_replication_status(make_report(ReportAction.DC_REPLICATION), dc_client)

    assert dc_client.get_up_to_dateness_vector_table.call_count == 2
    dc_client.get_up_to_dateness_vector_table.assert_called_with(scope="Forest")


def test_snapshot_queries_vector_table_once(dc_client, make_report, report_dir):
    report = make_report(ReportAction.DC_REPLICATION, snapshot_vectors=True)

    report_dc_replication_status(report, dc_client)

    assert dc_client.get_up_to_dateness_vector_table.call_count == 1
    assert read_rows(report_dir / f"{DC01}_ForestVectorTable.csv") == read_rows(
        report_dir / f"{DC02}_ForestVectorTable.csv"
    )


def test_first_unreachable_controller_aborts(dc_client, make_report, report_dir):
    dc_client.get_replication_failures.side_effect = DirectoryConnectionError(
        "Cannot reach domain controller", host=DC01
    )

    with pytest.raises(DirectoryConnectionError):
        report_dc_replication_status(make_report(ReportAction.DC_REPLICATION), dc_client)

    assert dc_client.get_replication_failures.call_count == 1
    assert not (report_dir / f"{DC02}_ForestReplFailures.csv").exists()


def test_continue_on_error_records_failed_hosts(dc_client, make_report, report_dir):
    def failures(host, scope):
        if host == DC01:
            raise DirectoryConnectionError("Cannot reach domain controller", host=host)
        return []

    dc_client.get_replication_failures.side_effect = failures
    report = make_report(ReportAction.DC_REPLICATION, continue_on_error=True)

    result = report_dc_replication_status(report, dc_client)

    assert result.failed_hosts == [DC01]
    assert not result.success
    assert (report_dir / f"{DC02}_ForestReplFailures.csv").exists()
    assert not (report_dir / f"{DC01}_ForestReplFailures.csv").exists()


def test_no_controllers_writes_nothing(mock_client, make_report, report_dir):
    mock_client.get_forest_domain_controllers.return_value = []

    result = report_dc_replication_status(
        make_report(ReportAction.DC_REPLICATION), mock_client
    )

    assert list(report_dir.iterdir()) == []
    assert result.files_written == []
    assert result.notes == ["no domain controllers discovered"]
    mock_client.get_up_to_dateness_vector_table.assert_not_called()


def test_end_to_end_with_fake_forest(directory_client, make_report, report_dir):
    result = report_dc_replication_status(
        make_report(ReportAction.DC_REPLICATION), directory_client
    )

    assert len(result.files_written) == 4
    failures = read_rows(report_dir / f"{DC02}_ForestReplFailures.csv")
    assert failures[1][:2] == ["4", "Link"]
    assert read_rows(report_dir / f"{DC01}_ForestReplFailures.csv") == [
        list(ReplicationFailureRecord.HEADER)
    ]


@pytest.fixture
def dc02_down_client(directory_config, forest_connections):
    """Real client over the fake forest in which dc02 refuses connections."""

    def connect(host):
        if host == DC02:
            raise LDAPSocketOpenError("socket connection error while opening: [Errno 111]")
        return forest_connections[host]

    return DirectoryClient(directory_config, connection_factory=connect)


def test_continue_on_error_blames_only_the_unreachable_controller(
    dc02_down_client, make_report, report_dir
):
    report = make_report(ReportAction.DC_REPLICATION, continue_on_error=True)

    result = report_dc_replication_status(report, dc02_down_client)

    assert result.failed_hosts == [DC02]
    assert (report_dir / f"{DC01}_ForestReplFailures.csv").exists()
    assert not (report_dir / f"{DC01}_ForestVectorTable.csv").exists()
    assert not (report_dir / f"{DC02}_ForestReplFailures.csv").exists()
    assert f"{DC01}: vector table skipped" in result.notes


def test_continue_on_error_with_snapshot_blames_only_the_unreachable_controller(
    dc02_down_client, make_report, report_dir
):
    report = make_report(
        ReportAction.DC_REPLICATION, continue_on_error=True, snapshot_vectors=True
    )

    result = report_dc_replication_status(report, dc02_down_client)

    assert result.failed_hosts == [DC02]
    assert sorted(p.name for p in report_dir.iterdir()) == [
        f"{DC01}_ForestReplFailures.csv"
    ]
    assert "vector snapshot unavailable, no vector tables written" in result.notes


def test_unreachable_controller_aborts_with_its_own_host(
    dc02_down_client, make_report, report_dir
):
    with pytest.raises(DirectoryConnectionError) as exc_info:
        report_dc_replication_status(
            make_report(ReportAction.DC_REPLICATION), dc02_down_client
        )

    assert exc_info.value.context["host"] == DC02
    assert not (report_dir / f"{DC01}_ForestVectorTable.csv").exists()
