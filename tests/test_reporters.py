"""
Tests for the Reporter modules.
"""

import csv
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest
from rich.console import Console

from azreview.core.base_scanner import ServiceResult
from azreview.core.orchestrator import ScanReport
from azreview.core.recommendations import Category, RuleResult, Severity
from azreview.core.resources import ResourceRef
from azreview.reporters.cli_reporter import CLIReporter
from azreview.reporters.csv_reporter import CSVReporter
from azreview.reporters.json_reporter import JSONReporter
from azreview.reporters.output import (
    SubscriptionMasker,
    mask_subscription_id,
    timestamped_path,
)
from azreview.scanners import ContainerRegistryScanner
from azreview.scanners.advisor import AdvisorResult
from azreview.scanners.defender import DefenderResult

from conftest import SUBSCRIPTION_ID, resource_id

MASKED_ID = "xxxxxxxx-xxxx-xxxx-xxxx-xxxxxf123456"
SCAN_TIME = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)
CR_TYPE = "Microsoft.ContainerRegistry/registries"


def _rule(ref, rule_id, violated, detail="", evaluated=True, severity=Severity.HIGH):
    return RuleResult(
        recommendation_id=rule_id,
        resource=ref,
        violated=violated,
        detail=detail,
        evaluated=evaluated,
        category=Category.SECURITY,
        severity=severity,
        description=f"Rule {rule_id}",
        learn_more_url="https://learn.microsoft.com/",
    )


@pytest.fixture
def sample_service_result():
    """One registry with a violation, a pass and an unevaluated rule."""
    rid = resource_id("crprod", CR_TYPE)
    ref = ResourceRef(SUBSCRIPTION_ID, "rg-test", "crprod", CR_TYPE, "westeurope", rid)
    return ServiceResult(
        subscription_id=SUBSCRIPTION_ID,
        subscription_name="Test Subscription",
        resource_group="rg-test",
        service_name="crprod",
        type=CR_TYPE,
        location="westeurope",
        resource_id=rid,
        recommendations=(
            _rule(ref, "cr-001", True),
            _rule(ref, "cr-003", False, "99.95%", severity=Severity.LOW),
            _rule(ref, "cr-005", False, "Unable to evaluate: AttributeError", evaluated=False),
        ),
    )


@pytest.fixture
def sample_report(sample_service_result):
    """A ScanReport with Defender and Advisor results."""
    return ScanReport(
        service_results=[sample_service_result],
        defender_results=[
            DefenderResult(SUBSCRIPTION_ID, "Test Subscription", "VirtualMachines", "Standard"),
            DefenderResult(SUBSCRIPTION_ID, "Test Subscription", "Containers", "Free"),
        ],
        advisor_results=[
            AdvisorResult(
                subscription_id=SUBSCRIPTION_ID,
                subscription_name="Test Subscription",
                name="crprod",
                type=CR_TYPE,
                category="Security",
                impact="High",
                description="Disable the admin user",
                resource_id=resource_id("crprod", CR_TYPE).lower(),
            )
        ],
        subscriptions=[
            {"subscription_id": SUBSCRIPTION_ID, "display_name": "Test Subscription"}
        ],
        resource_groups_scanned=[f"{SUBSCRIPTION_ID}/rg-test"],
        scan_time=SCAN_TIME,
    )


def _read_csv(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


class TestMasking:
    """Tests for subscription id masking."""

    def test_mask_subscription_id(self):
        assert mask_subscription_id(SUBSCRIPTION_ID) == MASKED_ID

    def test_short_ids_unchanged(self):
        assert mask_subscription_id("abc1234") == "abc1234"

    def test_masks_embedded_ids_case_insensitively(self):
        masker = SubscriptionMasker([SUBSCRIPTION_ID])
        text = f"/subscriptions/{SUBSCRIPTION_ID.upper()}/resourceGroups/rg"
        assert SUBSCRIPTION_ID.upper() not in masker.mask(text)
        assert masker.mask(text).endswith("F123456/resourceGroups/rg")

    def test_mask_value_recurses(self):
        masker = SubscriptionMasker([SUBSCRIPTION_ID])
        value = {"ids": [SUBSCRIPTION_ID, ("x", SUBSCRIPTION_ID)], "count": 3}
        assert masker.mask_value(value) == {
            "ids": [MASKED_ID, ["x", MASKED_ID]],
            "count": 3,
        }

    def test_disabled_masker_is_identity(self):
        masker = SubscriptionMasker([SUBSCRIPTION_ID], enabled=False)
        assert masker.mask(SUBSCRIPTION_ID) == SUBSCRIPTION_ID

    def test_timestamped_path(self):
        assert timestamped_path("out/azreview", "csv", SCAN_TIME, "_defender") == Path(
            "out/azreview_2024_01_15_T103000_defender.csv"
        )


class TestCSVReporter:
    """Tests for CSVReporter."""

    def test_writes_main_defender_and_advisor_files(self, sample_report, tmp_path):
        reporter = CSVReporter(output_prefix=str(tmp_path / "reports" / "scan"))
        paths = reporter.report(sample_report)

        assert [Path(p).name for p in paths] == [
            "scan_2024_01_15_T103000.csv",
            "scan_2024_01_15_T103000_defender.csv",
            "scan_2024_01_15_T103000_advisor.csv",
        ]
        assert all(Path(p).exists() for p in paths)

    def test_main_file_layout(self, sample_report, tmp_path):
        paths = CSVReporter(output_prefix=str(tmp_path / "scan"), mask=False).report(
            sample_report
        )
        rows = _read_csv(paths[0])

        assert rows[0] == ["# Scan Metadata"]
        assert ["# Total Resources:", "1"] in rows
        assert ["# Violations:", "1"] in rows
        header = rows.index(CSVReporter.COLUMNS)
        data = rows[header + 1:]
        assert [r[6] for r in data] == ["cr-001", "cr-003", "cr-005"]
        assert [r[10] for r in data] == ["violated", "passed", "unevaluated"]
        assert data[0][0] == SUBSCRIPTION_ID

    def test_subscription_ids_are_masked(self, sample_report, tmp_path):
        paths = CSVReporter(output_prefix=str(tmp_path / "scan")).report(sample_report)

        for path in paths:
            content = Path(path).read_text(encoding="utf-8")
            assert SUBSCRIPTION_ID not in content.lower()
        assert MASKED_ID in Path(paths[0]).read_text(encoding="utf-8")

    def test_empty_report_writes_only_main_file(self, tmp_path):
        report = ScanReport(scan_time=SCAN_TIME)
        paths = CSVReporter(output_prefix=str(tmp_path / "scan")).report(report)
        assert len(paths) == 1
        assert _read_csv(paths[0])[-1] == CSVReporter.COLUMNS


class TestJSONReporter:
    """Tests for JSONReporter."""

    def test_to_dict(self, sample_report):
        data = JSONReporter(mask=False).to_dict(sample_report)

        assert data["summary"]["total_resources"] == 1
        assert data["summary"]["total_violations"] == 1
        assert data["summary"]["total_unevaluated"] == 1
        assert data["summary"]["violations_by_severity"] == {"high": 1}
        assert data["service_results"][0]["recommendations"][1]["detail"] == "99.95%"
        assert data["defender_results"][0]["tier"] == "Standard"

    def test_masked_string(self, sample_report):
        text = JSONReporter(indent=None).to_string(sample_report)
        assert SUBSCRIPTION_ID not in text.lower()
        assert json.loads(text)["subscriptions"][0]["subscription_id"] == MASKED_ID

    def test_report_writes_file(self, sample_report, tmp_path):
        path = JSONReporter(output_prefix=str(tmp_path / "scan")).report(sample_report)

        assert Path(path).name == "scan_2024_01_15_T103000.json"
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        assert data["scan_time"] == SCAN_TIME.isoformat()
        assert len(data["advisor_results"]) == 1


class TestCLIReporter:
    """Tests for CLIReporter."""

    @pytest.fixture
    def console(self):
        return Console(record=True, width=200, color_system=None)

    def test_report_shows_violations_and_collectors(self, sample_report, console):
        CLIReporter(console=console).report(sample_report)
        output = console.export_text()

        assert "Azure Review Scan Report" in output
        assert "Test Subscription" in output
        assert "cr-001" in output
        assert "cr-003" not in output
        assert "Defender for Cloud Plans" in output
        assert "VirtualMachines" in output
        assert "Azure Advisor" in output
        assert SUBSCRIPTION_ID not in output

    def test_show_passed(self, sample_report, console):
        CLIReporter(console=console, show_passed=True).report(sample_report)
        output = console.export_text()
        assert "cr-003" in output
        assert "99.95%" in output

    def test_empty_report(self, console):
        CLIReporter(console=console).report(ScanReport(scan_time=SCAN_TIME))
        assert "No resources found" in console.export_text()

    def test_report_rules(self, console):
        CLIReporter(console=console).report_rules(
            ContainerRegistryScanner().get_recommendations()
        )
        output = console.export_text()
        assert "cr-001" in output
        assert "cr-010" in output

    def test_messages(self, console):
        reporter = CLIReporter(console=console)
        reporter.print_completion_message(["scan.csv"])
        reporter.print_error("boom")
        reporter.print_warning("careful")
        output = console.export_text()

        assert "Scan complete!" in output
        assert "Results saved to: scan.csv" in output
        assert "Error: boom" in output
        assert "Warning: careful" in output
