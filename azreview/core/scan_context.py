"""
Scan Context Module
===================

Subscription-wide facts computed once before any scanner runs, so that
individual recommendations can answer cross-cutting questions ("does this
resource send diagnostics anywhere?", "is it behind a private endpoint?")
without their own network calls.

Classes
-------
ScanContext
    Immutable lookup structure shared by every recommendation evaluation.

Functions
---------
build_scan_context
    Populate a ScanContext for one subscription.

Example
-------
>>> context = build_scan_context(azure_client, subscription_id)
>>> context.has_diagnostics(registry.id)
True

Notes
-----
A ScanContext is read-only after construction and is shared without
locking across concurrently running scanners. The next subscription gets
a freshly built context.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set

from azure.mgmt.monitor import MonitorManagementClient
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.resource import ResourceManagementClient

from azreview.core.exceptions import AzReviewError, ScanContextError
from azreview.core.resources import normalize_resource_id

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 10


@dataclass(frozen=True)
class ScanContext:
    """
    Read-only, precomputed facts about one subscription.

    Parameters
    ----------
    subscription_id : str
        Subscription the facts belong to.
    diagnostics : mapping, optional
        Resource id to whether diagnostic settings exist.
    private_endpoints : mapping, optional
        Resource id to the ids of private endpoints referencing it.

    Notes
    -----
    Keys are lowercased on construction and both indices are exposed as
    ``MappingProxyType``; lookups are case-insensitive and O(1).

    Examples
    --------
    >>> ctx = ScanContext(
    ...     "sub",
    ...     diagnostics={"/SUBSCRIPTIONS/sub/.../R1": True},
    ... )
    >>> ctx.has_diagnostics("/subscriptions/sub/.../r1")
    True
    """

    subscription_id: str
    diagnostics: Mapping[str, bool] = field(default_factory=dict)
    private_endpoints: Mapping[str, FrozenSet[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "diagnostics",
            MappingProxyType(
                {normalize_resource_id(k): bool(v) for k, v in self.diagnostics.items()}
            ),
        )
        object.__setattr__(
            self,
            "private_endpoints",
            MappingProxyType(
                {
                    normalize_resource_id(k): frozenset(v)
                    for k, v in self.private_endpoints.items()
                }
            ),
        )

    def has_diagnostics(self, resource_id: Optional[str]) -> bool:
        """Whether the resource has at least one diagnostic setting."""
        return self.diagnostics.get(normalize_resource_id(resource_id), False)

    def has_private_endpoint(self, resource_id: Optional[str]) -> bool:
        """Whether any private endpoint references the resource."""
        return bool(self.private_endpoints.get(normalize_resource_id(resource_id)))

    def private_endpoints_for(self, resource_id: Optional[str]) -> FrozenSet[str]:
        """Ids of the private endpoints referencing the resource."""
        return self.private_endpoints.get(normalize_resource_id(resource_id), frozenset())

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"ScanContext(subscription_id='{self.subscription_id}', "
            f"diagnostics={len(self.diagnostics)}, "
            f"private_endpoints={len(self.private_endpoints)})"
        )


def build_scan_context(
    azure_client: Any,
    subscription_id: str,
    resource_types: Optional[Iterable[str]] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> ScanContext:
    """
    Build the scan context for a subscription.

    Parameters
    ----------
    azure_client : AzureClient
        Client factory used for the listing calls.
    subscription_id : str
        Subscription to index.
    resource_types : iterable of str, optional
        Restrict the diagnostics index to these resource types (the types
        owned by the registered scanners). All resources when omitted.
    max_workers : int, default=10
        Parallel diagnostic-settings lookups.

    Returns
    -------
    ScanContext
        The populated, immutable context.

    Raises
    ------
    ScanContextError
        If any listing call fails. There is no partial context.
    """
    logger.info(f"Building scan context for subscription {subscription_id}")
    try:
        resource_ids = _list_resource_ids(azure_client, subscription_id, resource_types)
        diagnostics = _index_diagnostics(
            azure_client, subscription_id, resource_ids, max_workers
        )
        private_endpoints = _index_private_endpoints(azure_client, subscription_id)
    except ScanContextError:
        raise
    except AzReviewError as e:
        raise ScanContextError(
            f"Failed to build scan context: {e.message}",
            subscription_id=subscription_id,
            details=e.details,
        )
    except Exception as e:
        logger.exception(f"Failed to build scan context for {subscription_id}")
        raise ScanContextError(
            f"Failed to build scan context: {e}",
            subscription_id=subscription_id,
        )

    context = ScanContext(
        subscription_id=subscription_id,
        diagnostics=diagnostics,
        private_endpoints=private_endpoints,
    )
    logger.info(
        f"Scan context ready: {sum(diagnostics.values())} resources with diagnostics, "
        f"{len(private_endpoints)} behind private endpoints"
    )
    return context


def _list_resource_ids(
    azure_client: Any,
    subscription_id: str,
    resource_types: Optional[Iterable[str]],
) -> List[str]:
    wanted: Optional[Set[str]] = (
        {t.lower() for t in resource_types} if resource_types is not None else None
    )
    client = azure_client.get_management_client(ResourceManagementClient, subscription_id)
    ids = []
    for resource in client.resources.list():
        if wanted is None or (resource.type or "").lower() in wanted:
            ids.append(resource.id)
    logger.debug(f"{len(ids)} resources eligible for the diagnostics index")
    return ids


def _index_diagnostics(
    azure_client: Any,
    subscription_id: str,
    resource_ids: List[str],
    max_workers: int,
) -> Dict[str, bool]:
    if not resource_ids:
        return {}

    monitor = azure_client.get_management_client(MonitorManagementClient, subscription_id)

    def has_settings(resource_id: str) -> bool:
        return len(list(monitor.diagnostic_settings.list(resource_id))) > 0

    # map() re-raises the first failure when results are consumed
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        flags = list(executor.map(has_settings, resource_ids))

    return {
        normalize_resource_id(resource_id): flag
        for resource_id, flag in zip(resource_ids, flags)
    }


def _index_private_endpoints(azure_client: Any, subscription_id: str) -> Dict[str, Set[str]]:
    network = azure_client.get_management_client(NetworkManagementClient, subscription_id)
    index: Dict[str, Set[str]] = {}
    for endpoint in network.private_endpoints.list_by_subscription():
        connections = list(endpoint.private_link_service_connections or []) + list(
            endpoint.manual_private_link_service_connections or []
        )
        for connection in connections:
            target = connection.private_link_service_id
            if target:
                index.setdefault(normalize_resource_id(target), set()).add(endpoint.id)
    return index
