"""
AKS Scanner Module
==================

Reviews Azure Kubernetes Service managed clusters.

Recommendations
---------------
aks-001  diagnostic settings enabled
aks-002  availability zones on every agent pool
aks-003  SLA (depends on the cluster SKU tier)
aks-004  private cluster
aks-005  SKU tier
aks-006  CAF naming convention
aks-007  Azure AD integration
aks-008  Kubernetes RBAC
aks-009  local accounts disabled
aks-010  tags
aks-011  network policy configured
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List, Tuple

from azure.mgmt.containerservice import ContainerServiceClient

from azreview.core.base_scanner import BaseScanner, ScannerConfig
from azreview.core.recommendations import (
    Category,
    Recommendation,
    Severity,
    build_registry,
)
from azreview.scanners.common import (
    CAF_NAMING_URL,
    TAGS_URL,
    caf_prefix,
    diagnostics_disabled,
    enum_value,
    has_no_tags,
)

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "Microsoft.ContainerService/managedClusters"


def _sku_tier(cluster: Any) -> str:
    sku = getattr(cluster, "sku", None)
    return enum_value(sku.tier) if sku is not None else "Free"


def _zones_disabled(cluster: Any, scan_context: Any) -> Tuple[bool, str]:
    pools = cluster.agent_pool_profiles or []
    if not pools:
        return True, ""
    return any(not pool.availability_zones for pool in pools), ""


def _sla(cluster: Any, scan_context: Any) -> Tuple[bool, str]:
    if _sku_tier(cluster).lower() == "free":
        return True, "None"
    zoned = not _zones_disabled(cluster, scan_context)[0]
    return False, "99.95%" if zoned else "99.9%"


def _not_private(cluster: Any, scan_context: Any) -> Tuple[bool, str]:
    profile = cluster.api_server_access_profile
    return not (profile is not None and profile.enable_private_cluster), ""


def _sku(cluster: Any, scan_context: Any) -> Tuple[bool, str]:
    tier = _sku_tier(cluster)
    return tier.lower() == "free", tier


def _no_aad(cluster: Any, scan_context: Any) -> Tuple[bool, str]:
    return cluster.aad_profile is None, ""


def _no_rbac(cluster: Any, scan_context: Any) -> Tuple[bool, str]:
    return not cluster.enable_rbac, ""


def _local_accounts_enabled(cluster: Any, scan_context: Any) -> Tuple[bool, str]:
    return not cluster.disable_local_accounts, ""


def _no_network_policy(cluster: Any, scan_context: Any) -> Tuple[bool, str]:
    profile = cluster.network_profile
    policy = enum_value(profile.network_policy) if profile is not None else ""
    return not policy, policy


class AKSScanner(BaseScanner):
    """
    Scanner for AKS managed clusters.

    Notes
    -----
    Cluster objects returned by ``managed_clusters.list_by_resource_group``
    already carry agent pool, network and AAD profiles; no per-cluster
    calls are made.
    """

    service_key = "aks"

    def resource_types(self) -> FrozenSet[str]:
        return frozenset({RESOURCE_TYPE})

    def _create_client(self, config: ScannerConfig) -> Any:
        return config.azure_client.get_management_client(
            ContainerServiceClient, config.subscription_id
        )

    def _list_resources(self, resource_group: str) -> List[Any]:
        return self._collect(
            self.client.managed_clusters.list_by_resource_group(resource_group)
        )

    def _build_recommendations(self) -> Dict[str, Recommendation]:
        return build_registry(
            Recommendation(
                recommendation_id="aks-001",
                resource_type=RESOURCE_TYPE,
                category=Category.MONITORING,
                severity=Severity.LOW,
                description="AKS Cluster should have diagnostic settings enabled",
                evaluate=diagnostics_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/aks/monitor-aks#collect-resource-logs",
            ),
            Recommendation(
                recommendation_id="aks-002",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="AKS Cluster should have availability zones enabled",
                evaluate=_zones_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/aks/availability-zones",
            ),
            Recommendation(
                recommendation_id="aks-003",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="AKS Cluster should have an SLA",
                evaluate=_sla,
                learn_more_url="https://learn.microsoft.com/en-us/azure/aks/free-standard-pricing-tiers",
            ),
            Recommendation(
                recommendation_id="aks-004",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.HIGH,
                description="AKS Cluster should be private",
                evaluate=_not_private,
                learn_more_url="https://learn.microsoft.com/en-us/azure/aks/private-clusters",
            ),
            Recommendation(
                recommendation_id="aks-005",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="AKS Production Cluster should use Standard SKU",
                evaluate=_sku,
                learn_more_url="https://learn.microsoft.com/en-us/azure/aks/free-standard-pricing-tiers",
            ),
            Recommendation(
                recommendation_id="aks-006",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="AKS Name should comply with naming conventions",
                evaluate=caf_prefix("aks"),
                learn_more_url=CAF_NAMING_URL,
            ),
            Recommendation(
                recommendation_id="aks-007",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.MEDIUM,
                description="AKS should integrate authentication with AAD (Managed)",
                evaluate=_no_aad,
                learn_more_url="https://learn.microsoft.com/en-us/azure/aks/managed-azure-ad",
            ),
            Recommendation(
                recommendation_id="aks-008",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.MEDIUM,
                description="AKS should be RBAC enabled",
                evaluate=_no_rbac,
                learn_more_url="https://learn.microsoft.com/en-us/azure/aks/manage-azure-rbac",
            ),
            Recommendation(
                recommendation_id="aks-009",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.MEDIUM,
                description="AKS should have local accounts disabled",
                evaluate=_local_accounts_enabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/aks/managed-aad#disable-local-accounts",
            ),
            Recommendation(
                recommendation_id="aks-010",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="AKS should have tags",
                evaluate=has_no_tags,
                learn_more_url=TAGS_URL,
            ),
            Recommendation(
                recommendation_id="aks-011",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.MEDIUM,
                description="AKS should have a network policy configured",
                evaluate=_no_network_policy,
                learn_more_url="https://learn.microsoft.com/en-us/azure/aks/use-network-policies",
            ),
        )
