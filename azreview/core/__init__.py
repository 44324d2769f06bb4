"""
Core Infrastructure Components
==============================

This module provides the foundational components for azreview:

- :class:`AzureClient` - Manages Azure credentials and management clients
- :class:`BaseScanner` - Abstract base class for resource scanners
- :class:`ScanContext` - Read-only subscription-wide facts
- :class:`RecommendationEngine` - Evaluates recommendation registries
- :class:`ScanOrchestrator` - Bounded-concurrency scan driver
- Exception hierarchy for error handling

Classes
-------
AzureClient
    Thread-safe credential and management client factory.
BaseScanner
    Abstract base class defining the scanner interface.
ServiceResult
    Recommendation outcomes for one resource.
ScanContext
    Diagnostic settings and private endpoint indices.
Recommendation
    One rule: id, metadata and predicate.
ScanOrchestrator
    Walks subscriptions and resource groups.
ScanReport
    Aggregated results of a scan.

Exceptions
----------
AzReviewError
    Base exception for all azreview errors.
AzureClientError
    Base exception for Azure client errors.
ScanContextError
    Raised when the scan context cannot be built.
ScannerError
    Base exception for scanner and scan-run errors.

Example
-------
>>> from azreview.core import AzureClient, ScanOrchestrator
>>> from azreview.scanners import get_scanners
>>>
>>> client = AzureClient()
>>> orchestrator = ScanOrchestrator(client, get_scanners(), concurrency=4)
>>> report = orchestrator.scan(subscription_id="...")

See Also
--------
azreview.scanners : Resource scanner implementations.
azreview.reporters : Output formatters.
"""

from azreview.core.azure_client import AzureClient
from azreview.core.base_scanner import BaseScanner, ScannerConfig, ServiceResult
from azreview.core.exceptions import (
    AzReviewError,
    AzureClientError,
    CredentialsError,
    ResourceFetchError,
    ResourceGroupNotFoundError,
    ScanAbortedError,
    ScanCancelledError,
    ScanContextError,
    ScannerError,
    ScannerInitError,
    ScanTimeoutError,
    ServiceError,
    SubscriptionError,
)
from azreview.core.orchestrator import (
    ScanOrchestrator,
    ScanReport,
    ScanRun,
    run_resource_group_scan,
)
from azreview.core.recommendations import (
    Category,
    Recommendation,
    RecommendationEngine,
    RuleResult,
    Severity,
    build_registry,
)
from azreview.core.resources import ResourceRef
from azreview.core.scan_context import ScanContext, build_scan_context

__all__ = [
    # Client
    "AzureClient",
    # Scanner base
    "BaseScanner",
    "ScannerConfig",
    "ServiceResult",
    # Recommendations
    "Category",
    "Recommendation",
    "RecommendationEngine",
    "RuleResult",
    "Severity",
    "build_registry",
    # Scan context
    "ResourceRef",
    "ScanContext",
    "build_scan_context",
    # Orchestration
    "ScanOrchestrator",
    "ScanReport",
    "ScanRun",
    "run_resource_group_scan",
    # Exceptions - Base
    "AzReviewError",
    # Exceptions - Azure Client
    "AzureClientError",
    "CredentialsError",
    "SubscriptionError",
    "ResourceGroupNotFoundError",
    "ServiceError",
    # Exceptions - Scan
    "ScanContextError",
    "ScannerError",
    "ScannerInitError",
    "ResourceFetchError",
    "ScanTimeoutError",
    "ScanCancelledError",
    "ScanAbortedError",
]
