import os
from typing import Any, Dict
from unittest.mock import Mock, patch

import pytest

from ad_repl_reporter.config_manager import DirectoryConfig, ReportConfig
from ad_repl_reporter.models import ReportAction, RootDSE
from ad_repl_reporter.services.directory_client import DirectoryClient
from tests.ad_fixtures import (
    CONFIG_NC,
    ROOT_NC,
    FakeConnection,
    dc_connection,
    kcc_failure_xml,
    ntds_dn,
)


@pytest.fixture
def forest_connections() -> Dict[str, FakeConnection]:
    """One fake connection per DC host; 'corp.example.com' resolves to DC01."""
    dc01 = dc_connection("dc01.corp.example.com", "DC02")
    dc02 = dc_connection(
        "dc02.corp.example.com",
        "DC01",
        link_failures=[kcc_failure_xml(ntds_dn("DC01"), 4, 1722)],
    )
    return {
        "dc01.corp.example.com": dc01,
        "dc02.corp.example.com": dc02,
        "corp.example.com": dc01,
    }


@pytest.fixture
def directory_config() -> DirectoryConfig:
    return DirectoryConfig(
        server="dc01.corp.example.com",
        port=389,
        use_ssl=False,
        username="",
        password="",
        auth_method="kerberos",
        connect_timeout=5,
    )


@pytest.fixture
def directory_client(directory_config, forest_connections) -> DirectoryClient:
    return DirectoryClient(
        directory_config, connection_factory=lambda host: forest_connections[host]
    )


# ============================================================================
# Reporter fixtures
# ============================================================================


@pytest.fixture
def mock_client() -> Mock:
    """A DirectoryClient double for reporter tests."""
    client = Mock(spec=DirectoryClient)
    client.get_root_dse.return_value = RootDSE(
        root_domain_naming_context=ROOT_NC,
        default_naming_context=ROOT_NC,
        configuration_naming_context=CONFIG_NC,
        forest_functionality="Windows2016Forest",
        domain_functionality="Windows2016Domain",
        dns_host_name="dc01.corp.example.com",
    )
    return client


@pytest.fixture
def report_dir(tmp_path):
    return tmp_path / "reports"


@pytest.fixture
def make_report(report_dir):
    def _make(action: ReportAction, **kwargs: Any) -> ReportConfig:
        kwargs.setdefault("continue_on_error", False)
        kwargs.setdefault("snapshot_vectors", False)
        if action is ReportAction.AD_REPL_METADATA:
            kwargs.setdefault("domain_name", "corp.example.com")
        report_dir.mkdir(parents=True, exist_ok=True)
        return ReportConfig(log_file_path=str(report_dir), action=action, **kwargs)

    return _make


@pytest.fixture
def clean_ad_env():
    """Environment with Kerberos auth and no credentials or log file."""
    with patch.dict(
        os.environ,
        {
            "AD_SERVER": "dc01.corp.example.com",
            "AD_USERNAME": "",
            "AD_PASSWORD": "",
            "AD_AUTH_METHOD": "kerberos",
            "AD_PORT": "",
            "AD_USE_SSL": "false",
            "AD_CONTINUE_ON_ERROR": "",
            "AD_SNAPSHOT_VECTORS": "",
            "LOG_LEVEL": "INFO",
            "LOG_FILE": "",
        },
    ):
        yield
