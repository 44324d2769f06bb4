"""
CSV Reporter Module
===================

Exports a scan report to CSV files for spreadsheet analysis.

The main file holds one row per recommendation outcome. Defender plans and
Advisor recommendations, when collected, go to sibling files with the
``_defender`` and ``_advisor`` suffixes.

Classes
-------
CSVReporter
    Main reporter class for CSV export.

Example
-------
>>> reporter = CSVReporter(output_prefix="reports/azreview", mask=True)
>>> paths = reporter.report(scan_report)
>>> print(paths)
['reports/azreview_2024_01_15_T103000.csv']

Output Format
-------------
The main CSV file includes:
1. Metadata header rows (prefixed with #)
2. Empty separator row
3. Column headers
4. Data rows

Example output::

    # Scan Metadata
    # Subscriptions Scanned:,1
    # Resource Groups Scanned:,3
    # Total Resources:,12
    # Violations:,40
    # Scan Time:,2024-01-15T10:30:00+00:00

    Subscription ID,Subscription Name,Resource Group,Location,Type,...

See Also
--------
CLIReporter : For terminal display.
JSONReporter : For programmatic access.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, List, Optional

from azreview.core.orchestrator import ScanReport
from azreview.reporters.output import SubscriptionMasker, timestamped_path

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "azreview"


class CSVReporter:
    """
    Reporter for exporting scan reports to CSV format.

    Parameters
    ----------
    output_prefix : str, default="azreview"
        File name prefix, may include a directory.
    mask : bool, default=True
        Mask subscription ids in every written value.

    Examples
    --------
    >>> reporter = CSVReporter(output_prefix="prod", mask=False)
    >>> reporter.report(scan_report)
    ['prod_2024_01_15_T103000.csv', 'prod_2024_01_15_T103000_defender.csv']
    """

    COLUMNS = [
        "Subscription ID",
        "Subscription Name",
        "Resource Group",
        "Location",
        "Type",
        "Service Name",
        "Recommendation ID",
        "Category",
        "Severity",
        "Recommendation",
        "Status",
        "Result",
        "Learn More",
        "Resource ID",
    ]

    DEFENDER_COLUMNS = ["Subscription ID", "Subscription Name", "Name", "Tier", "Deprecated"]

    ADVISOR_COLUMNS = [
        "Subscription ID",
        "Subscription Name",
        "Name",
        "Type",
        "Category",
        "Impact",
        "Description",
        "Resource ID",
    ]

    def __init__(self, output_prefix: Optional[str] = None, mask: bool = True) -> None:
        """Initialize the CSV reporter."""
        self.output_prefix = output_prefix or DEFAULT_PREFIX
        self.mask = mask
        logger.debug(f"Initialized CSVReporter (output_prefix={self.output_prefix})")

    def report(self, report: ScanReport) -> List[str]:
        """
        Export a scan report to CSV.

        Parameters
        ----------
        report : ScanReport
            Report to export.

        Returns
        -------
        list of str
            Paths of the created files, main file first.
        """
        masker = SubscriptionMasker.for_report(report, enabled=self.mask)
        paths = [self._write_main(report, masker)]

        if report.defender_results:
            path = timestamped_path(self.output_prefix, "csv", report.scan_time, "_defender")
            rows = [
                [r.subscription_id, r.subscription_name, r.name, r.tier, r.deprecated]
                for r in report.defender_results
            ]
            paths.append(self._write_rows(path, self.DEFENDER_COLUMNS, rows, masker))

        if report.advisor_results:
            path = timestamped_path(self.output_prefix, "csv", report.scan_time, "_advisor")
            rows = [
                [
                    r.subscription_id,
                    r.subscription_name,
                    r.name,
                    r.type,
                    r.category,
                    r.impact,
                    r.description,
                    r.resource_id,
                ]
                for r in report.advisor_results
            ]
            paths.append(self._write_rows(path, self.ADVISOR_COLUMNS, rows, masker))

        return paths

    def _write_main(self, report: ScanReport, masker: SubscriptionMasker) -> str:
        output_path = timestamped_path(self.output_prefix, "csv", report.scan_time)
        self._ensure_parent(output_path)

        logger.info(
            f"Exporting {report.total_recommendations} recommendation results to {output_path}"
        )

        with open(output_path, "w", newline="", encoding="utf-8") as csvfile:
            writer = csv.writer(csvfile, quoting=csv.QUOTE_MINIMAL)

            self._write_metadata(writer, report)
            writer.writerow(self.COLUMNS)

            for result in report.service_results:
                for rule in result.recommendations:
                    writer.writerow(
                        masker.mask_value(
                            [
                                result.subscription_id,
                                result.subscription_name,
                                result.resource_group,
                                result.location,
                                result.type,
                                result.service_name,
                                rule.recommendation_id,
                                rule.category.value,
                                rule.severity.value,
                                rule.description,
                                rule.status,
                                rule.detail,
                                rule.learn_more_url,
                                result.resource_id,
                            ]
                        )
                    )

        logger.info(f"CSV export complete: {output_path}")
        return str(output_path)

    def _write_rows(
        self,
        output_path: Path,
        columns: List[str],
        rows: List[List[Any]],
        masker: SubscriptionMasker,
    ) -> str:
        self._ensure_parent(output_path)
        with open(output_path, "w", newline="", encoding="utf-8") as csvfile:
            writer = csv.writer(csvfile, quoting=csv.QUOTE_MINIMAL)
            writer.writerow(columns)
            for row in rows:
                writer.writerow(masker.mask_value(row))
        logger.info(f"CSV export complete: {output_path}")
        return str(output_path)

    @staticmethod
    def _write_metadata(writer: Any, report: ScanReport) -> None:
        """
        Write metadata header rows to CSV.

        Parameters
        ----------
        writer : csv.writer
            CSV writer object.
        report : ScanReport
            Report being exported.
        """
        writer.writerow(["# Scan Metadata"])
        writer.writerow(["# Subscriptions Scanned:", len(report.subscriptions)])
        writer.writerow(["# Resource Groups Scanned:", len(report.resource_groups_scanned)])
        writer.writerow(["# Total Resources:", report.total_resources])
        writer.writerow(["# Violations:", report.total_violations])
        writer.writerow(["# Scan Time:", report.scan_time.isoformat()])
        writer.writerow([])  # Empty row for separation

    @staticmethod
    def _ensure_parent(path: Path) -> None:
        if path.parent != Path("."):
            path.parent.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"CSVReporter(output_prefix={self.output_prefix!r}, mask={self.mask})"
