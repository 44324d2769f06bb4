"""
Report Generators
=================

This module provides output formatters for scan reports.

Available Reporters
-------------------
CLIReporter
    Rich terminal output with formatted tables and progress indicators.
CSVReporter
    CSV export (main file plus Defender and Advisor files).
JSONReporter
    JSON export for API integration and programmatic access.

Example
-------
>>> from azreview.reporters import CLIReporter, CSVReporter, JSONReporter
>>>
>>> CLIReporter(mask=True).report(scan_report)
>>> paths = CSVReporter(output_prefix="./reports/azreview").report(scan_report)
>>> json_str = JSONReporter().to_string(scan_report)

Notes
-----
Every reporter masks subscription ids by default, keeping only the last
seven characters. Output files are named
``<prefix>_<YYYY_MM_DD_THHMMSS>.<ext>``.

See Also
--------
azreview.core.orchestrator.ScanReport : Input data structure.
"""

from azreview.reporters.cli_reporter import CLIReporter
from azreview.reporters.csv_reporter import CSVReporter
from azreview.reporters.json_reporter import JSONReporter
from azreview.reporters.output import (
    SubscriptionMasker,
    mask_subscription_id,
    timestamped_path,
)

__all__ = [
    "CLIReporter",
    "CSVReporter",
    "JSONReporter",
    "SubscriptionMasker",
    "mask_subscription_id",
    "timestamped_path",
]
