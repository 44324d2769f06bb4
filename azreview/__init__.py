"""
azreview: Azure Resource Review
===============================

Scans Azure subscriptions resource group by resource group and evaluates
every resource against reliability, security, monitoring and governance
recommendations.

Modules
-------
core
    Core components (Azure client, scan context, recommendation engine,
    orchestrator)
scanners
    Resource-specific scanner implementations
reporters
    Output formatters (CLI, CSV, JSON)

Example
-------
>>> from azreview import AzureClient, ScanOrchestrator
>>> from azreview.scanners import get_scanners
>>>
>>> client = AzureClient()
>>> report = ScanOrchestrator(client, get_scanners()).scan("<subscription>")
>>> print(f"Found {report.total_violations} violations")

Notes
-----
Requires Azure credentials resolvable by ``DefaultAzureCredential``:
- Environment variables (AZURE_TENANT_ID, AZURE_CLIENT_ID, AZURE_CLIENT_SECRET)
- Azure CLI login (``az login``)
- Managed identity (when running on Azure)

See Also
--------
azure-identity : Azure Active Directory authentication for Python
"""

__version__ = "0.1.0"
__author__ = "azreview Team"
__license__ = "MIT"

# Public API
from azreview.core.azure_client import AzureClient
from azreview.core.base_scanner import BaseScanner, ServiceResult
from azreview.core.exceptions import AzReviewError, AzureClientError
from azreview.core.orchestrator import ScanOrchestrator, ScanReport
from azreview.core.scan_context import ScanContext

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Core classes
    "AzureClient",
    "AzureClientError",
    "AzReviewError",
    "BaseScanner",
    "ServiceResult",
    "ScanContext",
    "ScanOrchestrator",
    "ScanReport",
]
