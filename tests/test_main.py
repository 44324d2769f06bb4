"""
Tests for the command-line interface.
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from rich.console import Console

from azreview.core.exceptions import CredentialsError, ScanAbortedError
from azreview.core.orchestrator import ScanReport
from azreview.main import cli

from conftest import SUBSCRIPTION_ID

SCAN_TIME = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def runner():
    """CliRunner with a wide console so tables are not truncated."""
    with patch("azreview.main.console", Console(width=200)):
        yield CliRunner()


@pytest.fixture
def patched_scan():
    """Patch the Azure client, the orchestrator and logging setup."""
    with patch("azreview.main.AzureClient") as client_cls, patch(
        "azreview.main.ScanOrchestrator"
    ) as orchestrator_cls, patch("azreview.main.setup_logging"):
        orchestrator_cls.return_value.scan.return_value = ScanReport(
            subscriptions=[{"subscription_id": SUBSCRIPTION_ID, "display_name": "Prod"}],
            resource_groups_scanned=[f"{SUBSCRIPTION_ID}/rg-test"],
            scan_time=SCAN_TIME,
        )
        yield client_cls, orchestrator_cls


class TestRulesCommand:
    """Tests for ``azreview rules``."""

    def test_lists_all_rules(self, runner):
        result = runner.invoke(cli, ["rules"])
        assert result.exit_code == 0
        assert "cr-001" in result.output
        assert "app-009" in result.output

    def test_service_filter(self, runner):
        result = runner.invoke(cli, ["rules", "--services", "aks"])
        assert result.exit_code == 0
        assert "aks-011" in result.output
        assert "cr-001" not in result.output

    def test_unknown_service(self, runner):
        result = runner.invoke(cli, ["rules", "--services", "cr,redis"])
        assert result.exit_code == 2
        assert "Unknown services: redis" in result.output


class TestScanCommand:
    """Tests for ``azreview scan``."""

    def test_resource_group_requires_subscription(self, runner):
        result = runner.invoke(cli, ["scan", "-g", "rg-test"])
        assert result.exit_code == 2
        assert "--resource-group requires --subscription-id" in result.output

    def test_scan_passes_options(self, runner, patched_scan):
        client_cls, orchestrator_cls = patched_scan

        result = runner.invoke(
            cli,
            [
                "scan", "-s", SUBSCRIPTION_ID, "-g", "rg-test", "-c", "2",
                "--services", "cr,kv", "--no-defender", "--detailed",
            ],
        )

        assert result.exit_code == 0, result.output
        _, kwargs = orchestrator_cls.call_args
        assert kwargs["concurrency"] == 2
        assert kwargs["enable_detailed_scan"] is True
        assert kwargs["defender_scanner"] is None
        assert kwargs["advisor_scanner"] is not None
        scanners = orchestrator_cls.call_args.args[1]
        assert [s.service_key for s in scanners] == ["cr", "kv"]
        orchestrator_cls.return_value.scan.assert_called_once_with(SUBSCRIPTION_ID, "rg-test")
        assert "Scan complete!" in result.output
        client_cls.return_value.close.assert_called_once()

    def test_json_output(self, runner, patched_scan, tmp_path):
        prefix = str(tmp_path / "scan")
        result = runner.invoke(cli, ["scan", "--format", "json", "-o", prefix])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "scan_2024_01_15_T103000.json").exists()

    def test_authentication_failure(self, runner, patched_scan):
        client_cls, orchestrator_cls = patched_scan
        client_cls.return_value.validate_credentials.side_effect = CredentialsError(
            "Invalid Azure credentials"
        )

        result = runner.invoke(cli, ["scan"])

        assert result.exit_code == 1
        assert "Authentication Error" in result.output
        orchestrator_cls.assert_not_called()

    def test_aborted_scan_writes_partial_results(self, runner, patched_scan, tmp_path):
        _, orchestrator_cls = patched_scan
        partial = orchestrator_cls.return_value.scan.return_value
        orchestrator_cls.return_value.scan.side_effect = ScanAbortedError(
            "Scan of rg-broken failed", resource_group="rg-broken", partial_report=partial
        )

        result = runner.invoke(cli, ["scan", "-f", "csv", "-o", str(tmp_path / "scan")])

        assert result.exit_code == 1
        assert "Scan of rg-broken failed" in result.output
        assert "partial results for 1 completed resource group" in result.output
        assert (tmp_path / "scan_2024_01_15_T103000.csv").exists()

    def test_aborted_scan_without_completed_groups(self, runner, patched_scan, tmp_path):
        _, orchestrator_cls = patched_scan
        orchestrator_cls.return_value.scan.side_effect = ScanAbortedError(
            "Scan of rg-test failed", partial_report=ScanReport(scan_time=SCAN_TIME)
        )

        result = runner.invoke(cli, ["scan", "-f", "csv", "-o", str(tmp_path / "scan")])

        assert result.exit_code == 1
        assert list(tmp_path.iterdir()) == []


class TestOtherCommands:
    """Tests for ``resource-groups`` and ``validate``."""

    def test_resource_groups(self, runner):
        with patch("azreview.main.AzureClient") as client_cls:
            client = client_cls.return_value.__enter__.return_value
            client.list_resource_groups.return_value = ["rg-a", "rg-b"]
            result = runner.invoke(cli, ["resource-groups", "-s", SUBSCRIPTION_ID])

        assert result.exit_code == 0
        assert "Resource Groups (2 total)" in result.output
        assert "rg-b" in result.output

    def test_validate_failure(self, runner):
        with patch("azreview.main.AzureClient") as client_cls:
            client = client_cls.return_value.__enter__.return_value
            client.validate_credentials.side_effect = CredentialsError("expired")
            result = runner.invoke(cli, ["validate"])

        assert result.exit_code == 1
        assert "Validation Failed" in result.output
