"""
Custom Exceptions for azreview
==============================

This module defines a hierarchy of custom exceptions used throughout
the application for consistent error handling and reporting.

Exception Hierarchy
-------------------
::

    AzReviewError (base)
    ├── AzureClientError
    │   ├── CredentialsError
    │   ├── SubscriptionError
    │   ├── ResourceGroupNotFoundError
    │   └── ServiceError
    ├── ScanContextError
    └── ScannerError
        ├── ScannerInitError
        ├── ResourceFetchError
        ├── ScanTimeoutError
        ├── ScanCancelledError
        └── ScanAbortedError

Fatal setup errors (credentials, client construction, a missing resource
group, scan context build failures) abort the whole run. Scanner errors
abort the resource group being scanned. Recommendation predicate failures
never surface as exceptions: the recommendation engine degrades them to an
"unable to evaluate" result.

Example
-------
>>> from azreview.core.exceptions import AzureClientError, CredentialsError
>>>
>>> try:
...     client.validate_credentials()
... except CredentialsError as e:
...     print(f"Invalid credentials: {e}")
... except AzureClientError as e:
...     print(f"Azure error: {e}")
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AzReviewError(Exception):
    """
    Base exception for all azreview errors.

    All custom exceptions in the application inherit from this class,
    allowing for broad exception catching when needed.

    Parameters
    ----------
    message : str
        Human-readable error message.
    details : dict, optional
        Additional context about the error.

    Attributes
    ----------
    message : str
        The error message.
    details : dict
        Additional error details.

    Example
    -------
    >>> raise AzReviewError("Something went wrong", details={"code": 500})
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns
        -------
        dict
            Dictionary representation of the error.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Azure Client Exceptions
# =============================================================================


class AzureClientError(AzReviewError):
    """
    Base exception for Azure client-related errors.

    Raised when there's an issue with Azure connectivity, authentication,
    or management API access.

    Parameters
    ----------
    message : str
        Human-readable error message.
    service : str, optional
        The management client that caused the error.
    subscription_id : str, optional
        The subscription the call was made against.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        subscription_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        self.subscription_id = subscription_id
        full_details = details or {}
        if service:
            full_details["service"] = service
        if subscription_id:
            full_details["subscription_id"] = subscription_id
        super().__init__(message, full_details)


class CredentialsError(AzureClientError):
    """
    Raised when Azure credentials are invalid, missing, or expired.

    Example
    -------
    >>> raise CredentialsError(
    ...     "Azure credentials not found",
    ...     details={"hint": "Run 'az login' or set AZURE_CLIENT_ID"}
    ... )
    """

    pass


class SubscriptionError(AzureClientError):
    """Raised when subscriptions cannot be enumerated or resolved."""

    pass


class ResourceGroupNotFoundError(AzureClientError):
    """
    Raised when an explicitly requested resource group does not exist.

    Example
    -------
    >>> raise ResourceGroupNotFoundError(
    ...     "Resource group rg-missing does not exist",
    ...     subscription_id="00000000-0000-0000-0000-000000000000",
    ...     details={"resource_group": "rg-missing"},
    ... )
    """

    pass


class ServiceError(AzureClientError):
    """
    Raised when a management client cannot be created or called.

    Example
    -------
    >>> raise ServiceError(
    ...     "Failed to create ContainerRegistryManagementClient",
    ...     service="ContainerRegistryManagementClient",
    ...     subscription_id="00000000-0000-0000-0000-000000000000",
    ... )
    """

    pass


# =============================================================================
# Scan Context Exceptions
# =============================================================================


class ScanContextError(AzReviewError):
    """
    Raised when the subscription-wide scan context cannot be built.

    There is no partial scan context: this error aborts the scan of the
    whole subscription.

    Parameters
    ----------
    message : str
        Human-readable error message.
    subscription_id : str, optional
        The subscription whose context failed to build.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        subscription_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.subscription_id = subscription_id
        full_details = details or {}
        if subscription_id:
            full_details["subscription_id"] = subscription_id
        super().__init__(message, full_details)


# =============================================================================
# Scanner Exceptions
# =============================================================================


class ScannerError(AzReviewError):
    """
    Base exception for scanner-related errors.

    Raised when there's an issue during resource scanning.

    Parameters
    ----------
    message : str
        Human-readable error message.
    resource_type : str, optional
        The type of resource being scanned.
    resource_group : str, optional
        The resource group being scanned.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_group: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_group = resource_group
        full_details = details or {}
        if resource_type:
            full_details["resource_type"] = resource_type
        if resource_group:
            full_details["resource_group"] = resource_group
        super().__init__(message, full_details)


class ScannerInitError(ScannerError):
    """
    Raised when a scanner cannot be wired to its management client.

    Example
    -------
    >>> raise ScannerInitError(
    ...     "Failed to initialize ContainerRegistryScanner",
    ...     resource_type="Microsoft.ContainerRegistry/registries",
    ... )
    """

    pass


class ResourceFetchError(ScannerError):
    """
    Raised when unable to list resources from Azure.

    Example
    -------
    >>> raise ResourceFetchError(
    ...     "Failed to list container registries",
    ...     resource_type="Microsoft.ContainerRegistry/registries",
    ...     resource_group="rg-prod",
    ... )
    """

    pass


class ScanTimeoutError(ScannerError):
    """
    Raised when a resource group scan exceeds its deadline.

    Example
    -------
    >>> raise ScanTimeoutError(
    ...     "Scan timed out after 300 seconds",
    ...     resource_group="rg-prod",
    ...     details={"timeout_seconds": 300}
    ... )
    """

    pass


class ScanCancelledError(ScannerError):
    """Raised when a scan is cancelled from outside before it completes."""

    pass


class ScanAbortedError(ScannerError):
    """
    Raised by the subscription driver when a resource group scan fails.

    Carries the report of every resource group that completed before the
    failure so the caller can decide whether to keep that partial output.

    Parameters
    ----------
    message : str
        Human-readable error message.
    resource_group : str, optional
        The resource group whose scan failed.
    partial_report : ScanReport, optional
        Results of the resource groups scanned before the failure.
    cause : Exception, optional
        The error that aborted the scan.
    """

    def __init__(
        self,
        message: str,
        resource_group: Optional[str] = None,
        partial_report: Any = None,
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.partial_report = partial_report
        self.cause = cause
        super().__init__(message, resource_group=resource_group, details=details)
