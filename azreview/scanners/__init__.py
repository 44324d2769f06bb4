"""
Resource Scanners
=================

This module provides scanner implementations for the supported Azure
resource types, plus the subscription-level Defender and Advisor
collectors.

Each resource scanner lists the resources of its type in a resource group
and evaluates its recommendation registry against every one of them.

Available Scanners
------------------
ContainerRegistryScanner
    ``cr``: Container Registries.
AppInsightsScanner
    ``appi``: Application Insights components.
WebPubSubScanner
    ``wps``: Web PubSub services.
SignalRScanner
    ``sigr``: SignalR services.
AKSScanner
    ``aks``: AKS managed clusters.
CosmosDBScanner
    ``cosmos``: Cosmos DB accounts.
StorageScanner
    ``st``: Storage accounts.
KeyVaultScanner
    ``kv``: Key Vaults.
AppServiceScanner
    ``app``: App Service sites.
DefenderScanner
    Defender for Cloud plan tiers.
AdvisorScanner
    Azure Advisor recommendations.

Example
-------
>>> from azreview.scanners import get_scanners
>>> scanners = get_scanners(["cr", "aks"])
>>> [s.service_key for s in scanners]
['cr', 'aks']

Adding New Scanners
-------------------
1. Create a new file in this directory (e.g., ``redis.py``)
2. Implement a class extending ``BaseScanner``
3. Implement ``resource_types``, ``_create_client``, ``_list_resources``
   and ``_build_recommendations``
4. Add the class to ``SCANNER_CLASSES`` below

See Also
--------
azreview.core.base_scanner : Base class for all scanners.
"""

from typing import Iterable, List, Optional

from azreview.core.base_scanner import BaseScanner
from azreview.scanners.advisor import AdvisorResult, AdvisorScanner
from azreview.scanners.aks import AKSScanner
from azreview.scanners.app_insights import AppInsightsScanner
from azreview.scanners.app_service import AppServiceScanner
from azreview.scanners.container_registry import ContainerRegistryScanner
from azreview.scanners.cosmosdb import CosmosDBScanner
from azreview.scanners.defender import DefenderResult, DefenderScanner
from azreview.scanners.key_vault import KeyVaultScanner
from azreview.scanners.signalr import SignalRScanner
from azreview.scanners.storage import StorageScanner
from azreview.scanners.web_pubsub import WebPubSubScanner

SCANNER_CLASSES = (
    ContainerRegistryScanner,
    AppInsightsScanner,
    WebPubSubScanner,
    SignalRScanner,
    AKSScanner,
    CosmosDBScanner,
    StorageScanner,
    KeyVaultScanner,
    AppServiceScanner,
)

SERVICE_KEYS = tuple(cls.service_key for cls in SCANNER_CLASSES)


def get_scanners(services: Optional[Iterable[str]] = None) -> List[BaseScanner]:
    """
    Instantiate resource scanners.

    Parameters
    ----------
    services : iterable of str, optional
        Service keys to include (``cr``, ``aks``, ...). All scanners when
        omitted.

    Returns
    -------
    list of BaseScanner
        Fresh scanner instances, in the order given by ``services``.

    Raises
    ------
    ValueError
        If a service key is unknown.
    """
    by_key = {cls.service_key: cls for cls in SCANNER_CLASSES}
    if services is None:
        return [cls() for cls in SCANNER_CLASSES]

    scanners = []
    for key in services:
        key = key.strip().lower()
        if key not in by_key:
            raise ValueError(
                f"Unknown service '{key}'. Valid services: {', '.join(SERVICE_KEYS)}"
            )
        scanners.append(by_key[key]())
    return scanners


__all__ = [
    "AKSScanner",
    "AdvisorResult",
    "AdvisorScanner",
    "AppInsightsScanner",
    "AppServiceScanner",
    "ContainerRegistryScanner",
    "CosmosDBScanner",
    "DefenderResult",
    "DefenderScanner",
    "KeyVaultScanner",
    "SCANNER_CLASSES",
    "SERVICE_KEYS",
    "SignalRScanner",
    "StorageScanner",
    "WebPubSubScanner",
    "get_scanners",
]
