"""
Azure Client Module
===================

Provides a thread-safe wrapper around the Azure SDK for managing
credentials, management clients, and the subscription / resource group
enumeration the scan driver needs.

This module implements the Azure client layer of the application
architecture, handling all direct communication with Azure Resource
Manager outside of the individual scanners.

Classes
-------
AzureClient
    Credential holder and management client factory.

Example
-------
>>> from azreview.core.azure_client import AzureClient
>>> from azure.mgmt.containerregistry import ContainerRegistryManagementClient
>>>
>>> client = AzureClient()
>>> client.validate_credentials()
>>>
>>> acr = client.get_management_client(
...     ContainerRegistryManagementClient, subscription_id
... )

Notes
-----
The credential and the management clients are created lazily and cached.
Management clients are cached per (client class, subscription id) pair.

See Also
--------
azure.identity : Azure credential implementations.
azure.mgmt.resource : Resource and subscription management clients.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from azure.core.exceptions import ClientAuthenticationError, HttpResponseError
from azure.identity import ClientSecretCredential, DefaultAzureCredential
from azure.mgmt.resource import ResourceManagementClient, SubscriptionClient

from azreview.core.exceptions import (
    AzureClientError,
    CredentialsError,
    ServiceError,
    SubscriptionError,
)
from azreview.core.logging import LogContext

# Module logger
logger = logging.getLogger(__name__)

ARM_SCOPE = "https://management.azure.com/.default"


class AzureClient:
    """
    Thread-safe Azure credential and management client factory.

    Parameters
    ----------
    tenant_id : str, optional
        Tenant for service principal authentication.
    client_id : str, optional
        Application (client) id of the service principal.
    client_secret : str, optional
        Secret of the service principal.
    max_retries : int, default=3
        Maximum number of retries for failed management API calls.
    timeout : int, default=30
        Connection and read timeout in seconds.

    Attributes
    ----------
    tenant_id : str or None
        The configured tenant.
    client_id : str or None
        The configured service principal id.
    max_retries : int
        Maximum retry attempts for API calls.
    timeout : int
        Request timeout in seconds.

    Examples
    --------
    Default credential chain (environment, managed identity, Azure CLI):

    >>> client = AzureClient()
    >>> client.validate_credentials()
    True

    Service principal:

    >>> client = AzureClient(
    ...     tenant_id="...", client_id="...", client_secret="..."
    ... )
    >>> subscriptions = client.list_subscriptions()

    Raises
    ------
    CredentialsError
        If credentials are missing or rejected.
    ServiceError
        If a management client cannot be created.
    """

    def __init__(
        self,
        tenant_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        max_retries: int = 3,
        timeout: int = 30,
    ) -> None:
        """Initialize the Azure client with the specified configuration."""
        self.tenant_id = tenant_id
        self.client_id = client_id
        self._client_secret = client_secret
        self.max_retries = max_retries
        self.timeout = timeout

        # Lazy-loaded components
        self._credential: Optional[Any] = None
        self._clients: Dict[Tuple[str, Optional[str]], Any] = {}
        self._lock = threading.Lock()

        logger.debug(
            "Initialized AzureClient",
            extra={"tenant_id": tenant_id, "client_id": client_id},
        )

    @property
    def uses_service_principal(self) -> bool:
        """Whether explicit service principal settings were supplied."""
        return bool(self.tenant_id and self.client_id and self._client_secret)

    @property
    def credential(self) -> Any:
        """
        Get or create the Azure credential (lazy initialization).

        Returns
        -------
        azure.core.credentials.TokenCredential
            ``ClientSecretCredential`` when a service principal is
            configured, otherwise ``DefaultAzureCredential``.
        """
        with self._lock:
            if self._credential is None:
                self._credential = self._create_credential()
            return self._credential

    def _create_credential(self) -> Any:
        try:
            if self.uses_service_principal:
                logger.debug("Using service principal credential")
                return ClientSecretCredential(
                    tenant_id=self.tenant_id,
                    client_id=self.client_id,
                    client_secret=self._client_secret,
                )
            logger.debug("Using default Azure credential chain")
            return DefaultAzureCredential(exclude_interactive_browser_credential=True)
        except Exception as e:
            logger.exception("Failed to create Azure credential")
            raise CredentialsError(f"Failed to create Azure credential: {e}")

    def _client_kwargs(self) -> Dict[str, Any]:
        return {
            "retry_total": self.max_retries,
            "connection_timeout": self.timeout,
            "read_timeout": self.timeout,
        }

    def get_management_client(
        self,
        client_class: type,
        subscription_id: Optional[str] = None,
    ) -> Any:
        """
        Get or create a management client for a subscription.

        Parameters
        ----------
        client_class : type
            Azure SDK management client class
            (e.g. ``ContainerRegistryManagementClient``).
        subscription_id : str, optional
            Subscription the client is bound to. Tenant-level clients such
            as ``SubscriptionClient`` take none.

        Returns
        -------
        object
            The cached or newly created management client.

        Raises
        ------
        CredentialsError
            If the credential cannot be created.
        ServiceError
            If the client constructor fails (e.g. malformed subscription id).
        """
        key = (client_class.__name__, subscription_id)
        cached = self._clients.get(key)
        if cached is not None:
            return cached

        credential = self.credential
        try:
            if subscription_id is None:
                client = client_class(credential, **self._client_kwargs())
            else:
                client = client_class(
                    credential, subscription_id, **self._client_kwargs()
                )
        except Exception as e:
            logger.exception(f"Failed to create {client_class.__name__}")
            raise ServiceError(
                f"Failed to create {client_class.__name__}: {e}",
                service=client_class.__name__,
                subscription_id=subscription_id,
            )

        with self._lock:
            self._clients.setdefault(key, client)
            logger.debug(
                f"Created {client_class.__name__} for subscription {subscription_id}"
            )
            return self._clients[key]

    # =========================================================================
    # Credential Operations
    # =========================================================================

    def validate_credentials(self) -> bool:
        """
        Validate credentials by requesting an Azure Resource Manager token.

        Returns
        -------
        bool
            True if a token was issued.

        Raises
        ------
        CredentialsError
            If credentials are invalid, expired, or missing.
        """
        try:
            # The default chain warns once per credential it skips
            with LogContext(logging.getLogger("azure.identity"), "ERROR"):
                self.credential.get_token(ARM_SCOPE)
            logger.info("Azure credentials validated")
            return True
        except CredentialsError:
            raise
        except ClientAuthenticationError as e:
            raise CredentialsError(
                "Invalid Azure credentials",
                details={
                    "error": str(e),
                    "hint": "Run 'az login' or set AZURE_TENANT_ID, "
                    "AZURE_CLIENT_ID and AZURE_CLIENT_SECRET",
                },
            )
        except Exception as e:
            logger.exception("Credential validation failed")
            raise CredentialsError(f"Failed to validate credentials: {e}")

    # =========================================================================
    # Subscription and Resource Group Enumeration
    # =========================================================================

    def list_subscriptions(self) -> List[Dict[str, str]]:
        """
        List every subscription visible to the credential.

        Returns
        -------
        list of dict
            Dictionaries with ``subscription_id`` and ``display_name``.

        Raises
        ------
        SubscriptionError
            If the subscriptions cannot be listed.
        """
        client = self.get_management_client(SubscriptionClient)
        try:
            subscriptions = [
                {
                    "subscription_id": s.subscription_id,
                    "display_name": s.display_name or "",
                }
                for s in client.subscriptions.list()
            ]
        except ClientAuthenticationError as e:
            raise CredentialsError(f"Failed to list subscriptions: {e}")
        except Exception as e:
            logger.exception("Failed to list subscriptions")
            raise SubscriptionError(f"Failed to list subscriptions: {e}")

        logger.info(f"Discovered {len(subscriptions)} subscriptions")
        return subscriptions

    def get_subscription_name(self, subscription_id: str) -> str:
        """
        Resolve a subscription's display name.

        Parameters
        ----------
        subscription_id : str
            Subscription to look up.

        Returns
        -------
        str
            The display name.

        Raises
        ------
        SubscriptionError
            If the subscription cannot be read.
        """
        client = self.get_management_client(SubscriptionClient)
        try:
            subscription = client.subscriptions.get(subscription_id)
        except ClientAuthenticationError as e:
            raise CredentialsError(f"Failed to read subscription: {e}")
        except HttpResponseError as e:
            raise SubscriptionError(
                f"Failed to read subscription {subscription_id}: {e.message}",
                subscription_id=subscription_id,
                details={"status_code": e.status_code},
            )
        return subscription.display_name or ""

    def list_resource_groups(self, subscription_id: str) -> List[str]:
        """
        List resource group names in a subscription, in provider order.

        Raises
        ------
        AzureClientError
            If the resource groups cannot be listed.
        """
        client = self.get_management_client(ResourceManagementClient, subscription_id)
        try:
            names = [rg.name for rg in client.resource_groups.list()]
        except Exception as e:
            logger.exception(f"Failed to list resource groups in {subscription_id}")
            raise AzureClientError(
                f"Failed to list resource groups: {e}",
                service="ResourceManagementClient",
                subscription_id=subscription_id,
            )
        logger.info(f"Found {len(names)} resource groups in {subscription_id}")
        return names

    def resource_group_exists(self, subscription_id: str, resource_group: str) -> bool:
        """
        Check whether a resource group exists.

        Raises
        ------
        AzureClientError
            If the existence check itself fails.
        """
        client = self.get_management_client(ResourceManagementClient, subscription_id)
        try:
            return bool(client.resource_groups.check_existence(resource_group))
        except Exception as e:
            logger.exception(f"Failed to check resource group {resource_group}")
            raise AzureClientError(
                f"Failed to check resource group {resource_group}: {e}",
                service="ResourceManagementClient",
                subscription_id=subscription_id,
            )

    # =========================================================================
    # Context Manager Support
    # =========================================================================

    def close(self) -> None:
        """Close cached management clients and the credential."""
        with self._lock:
            for client in self._clients.values():
                close = getattr(client, "close", None)
                if close is not None:
                    close()
            self._clients.clear()
            if self._credential is not None and hasattr(self._credential, "close"):
                self._credential.close()
            self._credential = None

    def __enter__(self) -> AzureClient:
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager and release resources."""
        self.close()

    def __repr__(self) -> str:
        """Return string representation of the client."""
        return (
            f"AzureClient(tenant_id={self.tenant_id!r}, "
            f"client_id={self.client_id!r}, "
            f"max_retries={self.max_retries})"
        )
