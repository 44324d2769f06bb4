"""
Container Registry Scanner Module
=================================

Reviews Azure Container Registries against reliability, security and
governance recommendations.

Classes
-------
ContainerRegistryScanner
    Scanner for ``Microsoft.ContainerRegistry/registries``.

Example
-------
>>> scanner = ContainerRegistryScanner()
>>> scanner.init(config)
>>> results = scanner.scan("rg-prod", scan_context)
>>> for result in results:
...     print(result.service_name, len(result.violations))

Recommendations
---------------
cr-001  diagnostic settings enabled
cr-002  availability zones enabled
cr-003  SLA
cr-004  private endpoints enabled
cr-005  SKU
cr-006  CAF naming convention
cr-007  anonymous pull disabled
cr-008  admin account disabled
cr-009  tags
cr-010  retention policy enabled
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List, Tuple

from azure.mgmt.containerregistry import ContainerRegistryManagementClient

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
    fixed_sla,
    has_no_tags,
    private_endpoint_missing,
    sku_name,
)

# Module logger
logger = logging.getLogger(__name__)

RESOURCE_TYPE = "Microsoft.ContainerRegistry/registries"


def _zone_redundancy_disabled(registry: Any, scan_context: Any) -> Tuple[bool, str]:
    return enum_value(registry.zone_redundancy).lower() != "enabled", ""


def _anonymous_pull_enabled(registry: Any, scan_context: Any) -> Tuple[bool, str]:
    return bool(registry.anonymous_pull_enabled), ""


def _admin_user_enabled(registry: Any, scan_context: Any) -> Tuple[bool, str]:
    return bool(registry.admin_user_enabled), ""


def _retention_policy_disabled(registry: Any, scan_context: Any) -> Tuple[bool, str]:
    policies = registry.policies
    if policies is None or policies.retention_policy is None:
        return True, ""
    status = enum_value(policies.retention_policy.status).lower()
    return status != "enabled", ""


class ContainerRegistryScanner(BaseScanner):
    """
    Scanner for Azure Container Registries.

    See Also
    --------
    BaseScanner : Parent class defining the scanner interface.
    """

    service_key = "cr"

    def resource_types(self) -> FrozenSet[str]:
        return frozenset({RESOURCE_TYPE})

    def _create_client(self, config: ScannerConfig) -> Any:
        return config.azure_client.get_management_client(
            ContainerRegistryManagementClient, config.subscription_id
        )

    def _list_resources(self, resource_group: str) -> List[Any]:
        return self._collect(self.client.registries.list_by_resource_group(resource_group))

    def _build_recommendations(self) -> Dict[str, Recommendation]:
        return build_registry(
            Recommendation(
                recommendation_id="cr-001",
                resource_type=RESOURCE_TYPE,
                category=Category.MONITORING,
                severity=Severity.LOW,
                description="Container Registry should have diagnostic settings enabled",
                evaluate=diagnostics_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/container-registry/monitor-service",
            ),
            Recommendation(
                recommendation_id="cr-002",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="Container Registry should have availability zones enabled",
                evaluate=_zone_redundancy_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/container-registry/zone-redundancy",
            ),
            Recommendation(
                recommendation_id="cr-003",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="Container Registry should have a SLA",
                evaluate=fixed_sla("99.95%"),
                learn_more_url="https://www.azure.cn/en-us/support/sla/container-registry/",
            ),
            Recommendation(
                recommendation_id="cr-004",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.HIGH,
                description="Container Registry should have private endpoints enabled",
                evaluate=private_endpoint_missing(),
                learn_more_url="https://learn.microsoft.com/en-us/azure/container-registry/container-registry-private-link",
            ),
            Recommendation(
                recommendation_id="cr-005",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="Container Registry SKU",
                evaluate=sku_name,
                learn_more_url="https://learn.microsoft.com/en-us/azure/container-registry/container-registry-skus",
            ),
            Recommendation(
                recommendation_id="cr-006",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="Container Registry Name should comply with naming conventions",
                evaluate=caf_prefix("cr"),
                learn_more_url=CAF_NAMING_URL,
            ),
            Recommendation(
                recommendation_id="cr-007",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.MEDIUM,
                description="Container Registry should have anonymous pull access disabled",
                evaluate=_anonymous_pull_enabled,
                learn_more_url="https://learn.microsoft.com/azure/container-registry/anonymous-pull-access",
            ),
            Recommendation(
                recommendation_id="cr-008",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.MEDIUM,
                description="Container Registry should have the Administrator account disabled",
                evaluate=_admin_user_enabled,
                learn_more_url="https://learn.microsoft.com/azure/container-registry/container-registry-authentication-managed-identity",
            ),
            Recommendation(
                recommendation_id="cr-009",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="Container Registry should have tags",
                evaluate=has_no_tags,
                learn_more_url=TAGS_URL,
            ),
            Recommendation(
                recommendation_id="cr-010",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.MEDIUM,
                description="Container Registry should use retention policies",
                evaluate=_retention_policy_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/container-registry/container-registry-retention-policy",
            ),
        )
