"""
CLI Reporter Module
===================

Provides rich terminal output for scan reports using the Rich library.

Classes
-------
CLIReporter
    Main reporter class for terminal output.

Example
-------
>>> reporter = CLIReporter()
>>> reporter.report(scan_report)

Features
--------
- **Tables**: violations, Defender plans and Advisor findings
- **Progress**: spinner while resource groups are scanned
- **Panels**: bordered header with the scan scope
- **Colors**: severity-based coloring

See Also
--------
rich : Python library for rich text and formatting.
CSVReporter : For data export.
JSONReporter : For programmatic access.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from azreview.core.orchestrator import ScanReport
from azreview.core.recommendations import Recommendation
from azreview.reporters.output import SubscriptionMasker

# Module logger
logger = logging.getLogger(__name__)

SEVERITY_STYLES = {"high": "red", "medium": "yellow", "low": "dim"}


class CLIReporter:
    """
    Reporter for displaying scan reports in the terminal.

    Parameters
    ----------
    console : Console, optional
        Rich Console instance. If not provided, creates a new one.
    mask : bool, default=True
        Mask subscription ids in the output.
    show_passed : bool, default=False
        Also list passed and informational outcomes, not only violations.

    Examples
    --------
    >>> from rich.console import Console
    >>> reporter = CLIReporter(console=Console(force_terminal=True), mask=False)
    >>> reporter.report(scan_report)
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        mask: bool = True,
        show_passed: bool = False,
    ) -> None:
        """Initialize the CLI reporter with a Rich Console."""
        self.console = console or Console()
        self.mask = mask
        self.show_passed = show_passed
        logger.debug("Initialized CLIReporter")

    def report(self, report: ScanReport) -> None:
        """
        Display a scan report.

        Parameters
        ----------
        report : ScanReport
            The report to display.
        """
        masker = SubscriptionMasker.for_report(report, enabled=self.mask)

        self._print_header(report, masker)
        self._print_summary(report)

        if report.total_violations or (self.show_passed and report.service_results):
            self._print_results_table(report, masker)
        elif report.service_results:
            self.console.print("\n[green]No recommendation violations found.[/green]")
        else:
            self.console.print("\n[dim]No resources found for the scanned services.[/dim]")

        if report.defender_results:
            self._print_defender_table(report, masker)
        if report.advisor_results:
            self._print_advisor_table(report, masker)

    def report_rules(self, registry: Dict[str, Recommendation]) -> None:
        """
        Display every known recommendation.

        Parameters
        ----------
        registry : dict
            Recommendation id to Recommendation.
        """
        table = Table(title="\nRecommendations", title_style="bold")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Resource Type", style="dim")
        table.add_column("Category")
        table.add_column("Severity")
        table.add_column("Description", style="white")

        for rec in registry.values():
            style = SEVERITY_STYLES.get(rec.severity.value, "white")
            table.add_row(
                rec.recommendation_id,
                rec.resource_type,
                rec.category.value,
                f"[{style}]{rec.severity.value}[/]",
                rec.description,
            )

        self.console.print(table)

    # =========================================================================
    # Private Methods: Output Formatting
    # =========================================================================

    def _print_header(self, report: ScanReport, masker: SubscriptionMasker) -> None:
        names = [
            s.get("display_name") or masker.mask(s.get("subscription_id", ""))
            for s in report.subscriptions
        ]
        scope = ", ".join(names) if len(names) <= 5 else f"{len(names)} subscriptions"

        header_text = Text()
        header_text.append("\nAzure Review Scan Report\n", style="bold blue")
        header_text.append(f"Subscriptions: {scope or 'none'}", style="dim")

        self.console.print(Panel(header_text, border_style="blue"))

    def _print_summary(self, report: ScanReport) -> None:
        summary = Table(show_header=False, box=None, padding=(0, 2))
        summary.add_column("Metric", style="cyan")
        summary.add_column("Value", style="white")

        summary.add_row("Resource Groups:", str(len(report.resource_groups_scanned)))
        summary.add_row("Resources:", str(report.total_resources))
        summary.add_row("Recommendations Evaluated:", str(report.total_recommendations))

        violation_style = "red" if report.total_violations > 0 else "green"
        summary.add_row("Violations:", f"[{violation_style}]{report.total_violations}[/]")

        if report.total_unevaluated:
            summary.add_row("Unevaluated:", f"[yellow]{report.total_unevaluated}[/]")

        for severity, count in report.violations_by_severity().items():
            style = SEVERITY_STYLES.get(severity, "white")
            summary.add_row(f"  {severity.title()}:", f"[{style}]{count}[/]")

        summary.add_row("Scan Time:", report.scan_time.strftime("%Y-%m-%d %H:%M:%S UTC"))

        self.console.print("\n")
        self.console.print(summary)

    def _print_results_table(self, report: ScanReport, masker: SubscriptionMasker) -> None:
        table = Table(
            title="\nRecommendation Violations" if not self.show_passed else "\nRecommendations",
            title_style="bold",
            show_lines=False,
        )

        table.add_column("Resource Group", style="yellow", no_wrap=True)
        table.add_column("Service Name", style="cyan")
        table.add_column("ID", style="white", no_wrap=True)
        table.add_column("Severity")
        table.add_column("Recommendation", style="white", max_width=60)
        table.add_column("Result", style="dim", max_width=30)

        rows = sorted(
            report.service_results, key=lambda r: (r.resource_group, r.service_name)
        )
        for result in rows:
            outcomes = result.recommendations if self.show_passed else result.violations
            for rule in outcomes:
                style = SEVERITY_STYLES.get(rule.severity.value, "white")
                table.add_row(
                    result.resource_group,
                    result.service_name,
                    rule.recommendation_id,
                    f"[{style}]{rule.severity.value}[/]",
                    rule.description,
                    masker.mask(self._truncate(rule.detail or rule.status, 30)),
                )

        self.console.print(table)

    def _print_defender_table(self, report: ScanReport, masker: SubscriptionMasker) -> None:
        table = Table(title="\nDefender for Cloud Plans", title_style="bold")
        table.add_column("Subscription", style="dim")
        table.add_column("Plan", style="cyan")
        table.add_column("Tier")

        for result in report.defender_results:
            tier_style = "green" if result.enabled else "red"
            table.add_row(
                result.subscription_name or masker.mask(result.subscription_id),
                result.name,
                f"[{tier_style}]{result.tier}[/]",
            )

        self.console.print(table)

    def _print_advisor_table(self, report: ScanReport, masker: SubscriptionMasker) -> None:
        table = Table(title="\nAzure Advisor", title_style="bold")
        table.add_column("Category", style="yellow")
        table.add_column("Impact")
        table.add_column("Resource", style="cyan")
        table.add_column("Description", style="white", max_width=60)

        for result in report.advisor_results:
            table.add_row(
                result.category,
                result.impact,
                masker.mask(result.name),
                self._truncate(result.description, 60),
            )

        self.console.print(table)

    @staticmethod
    def _truncate(text: str, max_length: int) -> str:
        """Truncate text to maximum length with ellipsis."""
        if len(text) <= max_length:
            return text
        return text[:max_length - 3] + "..."

    # =========================================================================
    # Public Methods: Progress and Messages
    # =========================================================================

    def create_progress(self) -> Progress:
        """
        Create a progress indicator for long-running operations.

        Returns
        -------
        Progress
            Rich Progress instance with spinner.
        """
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console,
        )

    def print_completion_message(self, output_files: Optional[List[str]] = None) -> None:
        """Print scan completion message and any written files."""
        self.console.print("\n[green bold]Scan complete![/green bold]")
        for path in output_files or []:
            self.console.print(f"[dim]Results saved to: {path}[/dim]")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"\n[red bold]Error:[/red bold] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"\n[yellow bold]Warning:[/yellow bold] {message}")

    def __repr__(self) -> str:
        """Return string representation."""
        return f"CLIReporter(mask={self.mask})"
