"""
JSON Reporter Module
====================

Exports a scan report as a single JSON document.

Classes
-------
JSONReporter
    Main reporter class for JSON export.

Example
-------
>>> reporter = JSONReporter(output_prefix="azreview")
>>> filepath = reporter.report(scan_report)
>>> json_str = reporter.to_string(scan_report)

Output Format
-------------
::

    {
      "scan_time": "2024-01-15T10:30:00+00:00",
      "subscriptions": [{"subscription_id": "...", "display_name": "..."}],
      "resource_groups_scanned": ["<subscription>/<group>", ...],
      "summary": {
        "total_resources": 12,
        "total_violations": 40,
        "violations_by_category": {"security": 18, ...},
        ...
      },
      "service_results": [...],
      "defender_results": [...],
      "advisor_results": [...]
    }

See Also
--------
CLIReporter : For terminal display.
CSVReporter : For spreadsheet export.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from azreview.core.orchestrator import ScanReport
from azreview.reporters.output import SubscriptionMasker, timestamped_path

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "azreview"


class JSONReporter:
    """
    Reporter for exporting scan reports to JSON format.

    Parameters
    ----------
    output_prefix : str, default="azreview"
        File name prefix, may include a directory.
    indent : int, default=2
        JSON indentation level for pretty printing.
        Set to None for compact output.
    mask : bool, default=True
        Mask subscription ids in the document.

    Examples
    --------
    Compact output for a pipeline:

    >>> reporter = JSONReporter(indent=None, mask=False)
    >>> data = json.loads(reporter.to_string(scan_report))
    """

    def __init__(
        self,
        output_prefix: Optional[str] = None,
        indent: Optional[int] = 2,
        mask: bool = True,
    ) -> None:
        """Initialize the JSON reporter."""
        self.output_prefix = output_prefix or DEFAULT_PREFIX
        self.indent = indent
        self.mask = mask
        logger.debug(f"Initialized JSONReporter (output_prefix={self.output_prefix})")

    def report(self, report: ScanReport) -> str:
        """
        Export a scan report to a JSON file.

        Parameters
        ----------
        report : ScanReport
            Report to export.

        Returns
        -------
        str
            Path to the created JSON file.
        """
        output_path = timestamped_path(self.output_prefix, "json", report.scan_time)
        if output_path.parent.name:
            output_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Exporting {report.total_resources} resources to {output_path}")

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(report), f, indent=self.indent, default=str)

        logger.info(f"JSON export complete: {output_path}")
        return str(output_path)

    def to_string(self, report: ScanReport) -> str:
        """Convert a scan report to a JSON string without writing a file."""
        return json.dumps(self.to_dict(report), indent=self.indent, default=str)

    def to_dict(self, report: ScanReport) -> Dict[str, Any]:
        """
        Convert a scan report to a (masked, when enabled) dictionary.

        Parameters
        ----------
        report : ScanReport
            Report to convert.

        Returns
        -------
        dict
            Dictionary representation of the report.
        """
        masker = SubscriptionMasker.for_report(report, enabled=self.mask)
        return masker.mask_value(report.to_dict())

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"JSONReporter(output_prefix={self.output_prefix!r}, "
            f"indent={self.indent}, mask={self.mask})"
        )
