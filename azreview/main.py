"""
azreview CLI - Azure Resource Review

Main entry point for the command-line interface.
"""

import sys
from typing import List, Optional

import click
from rich.console import Console

from .core.azure_client import AzureClient
from .core.exceptions import AzReviewError, AzureClientError, ScanAbortedError
from .core.logging import setup_logging
from .core.orchestrator import DEFAULT_CONCURRENCY, ScanOrchestrator, ScanReport
from .reporters.cli_reporter import CLIReporter
from .reporters.csv_reporter import CSVReporter
from .reporters.json_reporter import JSONReporter
from .scanners import SERVICE_KEYS, AdvisorScanner, DefenderScanner, get_scanners


console = Console()


def validate_services(ctx, param, value: Optional[str]) -> Optional[List[str]]:
    """Validate and parse comma-separated service list."""
    if value is None:
        return None
    services = [s.strip().lower() for s in value.split(",") if s.strip()]
    if not services:
        raise click.BadParameter("No valid services specified")
    unknown = [s for s in services if s not in SERVICE_KEYS]
    if unknown:
        raise click.BadParameter(
            f"Unknown services: {', '.join(unknown)}. "
            f"Valid services: {', '.join(SERVICE_KEYS)}"
        )
    return services


def _client_from_options(
    tenant_id: Optional[str],
    client_id: Optional[str],
    client_secret: Optional[str],
) -> AzureClient:
    return AzureClient(tenant_id=tenant_id, client_id=client_id, client_secret=client_secret)


def credential_options(func):
    """Attach the optional service principal options to a command."""
    func = click.option(
        "--client-secret",
        envvar="AZURE_CLIENT_SECRET",
        default=None,
        help="Service principal secret (default: $AZURE_CLIENT_SECRET)",
    )(func)
    func = click.option(
        "--client-id",
        envvar="AZURE_CLIENT_ID",
        default=None,
        help="Service principal application id (default: $AZURE_CLIENT_ID)",
    )(func)
    func = click.option(
        "--tenant-id",
        envvar="AZURE_TENANT_ID",
        default=None,
        help="Azure AD tenant id (default: $AZURE_TENANT_ID)",
    )(func)
    return func


@click.group()
@click.version_option(version="0.1.0", prog_name="azreview")
def cli():
    """
    azreview: Azure Resource Review

    Scans Azure subscriptions and resource groups and checks every resource
    against reliability, security, monitoring and governance recommendations.
    """
    pass


@cli.command("scan")
@click.option(
    "--subscription-id",
    "-s",
    default=None,
    help="Subscription to scan (default: all visible subscriptions)",
)
@click.option(
    "--resource-group",
    "-g",
    default=None,
    help="Resource group to scan (requires --subscription-id)",
)
@click.option(
    "--output-prefix",
    "-o",
    default="azreview",
    help="Output file name prefix (default: azreview)",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["cli", "csv", "json"]),
    default="cli",
    help="Output format (default: cli)",
)
@click.option(
    "--concurrency",
    "-c",
    default=DEFAULT_CONCURRENCY,
    type=int,
    help=f"Scanners running at once per resource group, 0 for all (default: {DEFAULT_CONCURRENCY})",
)
@click.option(
    "--timeout",
    default=None,
    type=float,
    help="Overall scan deadline in seconds",
)
@click.option(
    "--services",
    callback=validate_services,
    help=f"Comma-separated services to scan ({','.join(SERVICE_KEYS)})",
)
@click.option(
    "--defender/--no-defender",
    default=True,
    help="Collect Defender for Cloud plans (default: on)",
)
@click.option(
    "--advisor/--no-advisor",
    default=True,
    help="Collect Azure Advisor recommendations (default: on)",
)
@click.option(
    "--mask/--no-mask",
    default=True,
    help="Mask subscription ids in the output (default: on)",
)
@click.option(
    "--detailed",
    is_flag=True,
    help="Enable extra per-resource calls (App Service site configuration)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Log level (default: WARNING)",
)
@click.option(
    "--log-file",
    default=None,
    help="Also write logs to this file",
)
@credential_options
def scan_command(
    subscription_id: Optional[str],
    resource_group: Optional[str],
    output_prefix: str,
    output_format: str,
    concurrency: int,
    timeout: Optional[float],
    services: Optional[List[str]],
    defender: bool,
    advisor: bool,
    mask: bool,
    detailed: bool,
    log_level: str,
    log_file: Optional[str],
    tenant_id: Optional[str],
    client_id: Optional[str],
    client_secret: Optional[str],
):
    """
    Scan Azure resources against the recommendation rules.

    Examples:

        # Scan every subscription the credential can see
        azreview scan

        # Scan one subscription
        azreview scan -s 00000000-0000-0000-0000-000000000000

        # Scan one resource group, two scanners at a time
        azreview scan -s <subscription> -g rg-prod -c 2

        # Only container registries and AKS, export to CSV
        azreview scan -s <subscription> --services cr,aks --format csv

        # Unmasked JSON with a 10 minute deadline
        azreview scan --format json --no-mask --timeout 600
    """
    if resource_group and not subscription_id:
        raise click.UsageError("--resource-group requires --subscription-id")

    setup_logging(level=log_level, log_file=log_file)
    cli_reporter = CLIReporter(console, mask=mask)
    azure_client = _client_from_options(tenant_id, client_id, client_secret)
    orchestrator = None

    try:
        try:
            azure_client.validate_credentials()
        except AzureClientError as e:
            console.print(f"\n[red bold]Authentication Error:[/red bold] {str(e)}")
            sys.exit(1)

        scanners = get_scanners(services)

        def progress_callback(group: str, status: str):
            if status == "complete":
                console.print(f"  [dim]Completed: {group}[/dim]")
            elif status == "error":
                console.print(f"  [yellow]Error scanning: {group}[/yellow]")

        orchestrator = ScanOrchestrator(
            azure_client,
            scanners,
            concurrency=concurrency,
            timeout=timeout,
            enable_detailed_scan=detailed,
            defender_scanner=DefenderScanner() if defender else None,
            advisor_scanner=AdvisorScanner() if advisor else None,
            progress_callback=progress_callback,
        )

        console.print(
            f"\n[bold]Scanning {len(scanners)} services "
            f"(concurrency: {concurrency if concurrency > 0 else 'all'})...[/bold]"
        )
        report = orchestrator.scan(subscription_id, resource_group)
        _output_report(report, cli_reporter, output_format, output_prefix, mask)

    except ScanAbortedError as e:
        cli_reporter.print_error(str(e))
        partial = e.partial_report
        if partial is not None and partial.resource_groups_scanned:
            cli_reporter.print_warning(
                f"Writing partial results for {len(partial.resource_groups_scanned)} "
                f"completed resource group(s)"
            )
            _output_report(partial, cli_reporter, output_format, output_prefix, mask)
        sys.exit(1)
    except AzReviewError as e:
        console.print(f"\n[red bold]Azure Error:[/red bold] {str(e)}")
        sys.exit(1)
    except KeyboardInterrupt:
        if orchestrator is not None:
            orchestrator.cancel_event.set()
        console.print("\n[yellow]Scan cancelled by user.[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"\n[red bold]Error:[/red bold] {str(e)}")
        sys.exit(1)
    finally:
        azure_client.close()


def _output_report(
    report: ScanReport,
    cli_reporter: CLIReporter,
    output_format: str,
    output_prefix: str,
    mask: bool,
) -> None:
    """Write the report in the requested format, always showing the CLI view."""
    output_files: List[str] = []

    if output_format == "csv":
        output_files = CSVReporter(output_prefix=output_prefix, mask=mask).report(report)
    elif output_format == "json":
        output_files = [JSONReporter(output_prefix=output_prefix, mask=mask).report(report)]

    cli_reporter.report(report)
    cli_reporter.print_completion_message(output_files)


@cli.command("rules")
@click.option(
    "--services",
    callback=validate_services,
    help="Comma-separated services to list",
)
def list_rules(services: Optional[List[str]]):
    """List every recommendation rule."""
    registry = {}
    for scanner in get_scanners(services):
        registry.update(scanner.get_recommendations())
    CLIReporter(console).report_rules(registry)


@cli.command("resource-groups")
@click.option(
    "--subscription-id",
    "-s",
    required=True,
    help="Subscription to list resource groups for",
)
@credential_options
def list_resource_groups(
    subscription_id: str,
    tenant_id: Optional[str],
    client_id: Optional[str],
    client_secret: Optional[str],
):
    """List resource groups of a subscription."""
    try:
        with _client_from_options(tenant_id, client_id, client_secret) as client:
            groups = client.list_resource_groups(subscription_id)

        console.print(f"\n[bold]Resource Groups ({len(groups)} total):[/bold]\n")
        for group in groups:
            console.print(f"  • {group}")
        console.print()

    except AzureClientError as e:
        console.print(f"\n[red bold]Error:[/red bold] {str(e)}")
        sys.exit(1)


@cli.command("validate")
@credential_options
def validate_credentials(
    tenant_id: Optional[str],
    client_id: Optional[str],
    client_secret: Optional[str],
):
    """Validate Azure credentials and list visible subscriptions."""
    try:
        with _client_from_options(tenant_id, client_id, client_secret) as client:
            client.validate_credentials()
            subscriptions = client.list_subscriptions()

        console.print("\n[green bold]Azure credentials are valid![/green bold]")
        console.print(f"\n  Subscriptions: {len(subscriptions)}")
        for subscription in subscriptions:
            console.print(
                f"  • {subscription['display_name']} ({subscription['subscription_id']})"
            )
        console.print()

    except AzureClientError as e:
        console.print(f"\n[red bold]Validation Failed:[/red bold] {str(e)}")
        sys.exit(1)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
