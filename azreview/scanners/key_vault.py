"""
Key Vault Scanner Module
========================

Reviews Azure Key Vaults. Vault settings live under ``vault.properties``
in the management SDK models.

Recommendations
---------------
kv-001  diagnostic settings enabled
kv-002  SLA
kv-003  private endpoints enabled
kv-004  SKU
kv-005  CAF naming convention
kv-006  soft delete enabled
kv-007  purge protection enabled
kv-008  tags
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List, Tuple

from azure.mgmt.keyvault import KeyVaultManagementClient

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
)

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "Microsoft.KeyVault/vaults"


def _sku(vault: Any, scan_context: Any) -> Tuple[bool, str]:
    return False, enum_value(vault.properties.sku.name)


def _soft_delete_disabled(vault: Any, scan_context: Any) -> Tuple[bool, str]:
    # Soft delete defaults to on when the property is unset
    return vault.properties.enable_soft_delete is False, ""


def _purge_protection_disabled(vault: Any, scan_context: Any) -> Tuple[bool, str]:
    return not vault.properties.enable_purge_protection, ""


class KeyVaultScanner(BaseScanner):
    """Scanner for Key Vaults."""

    service_key = "kv"

    def resource_types(self) -> FrozenSet[str]:
        return frozenset({RESOURCE_TYPE})

    def _create_client(self, config: ScannerConfig) -> Any:
        return config.azure_client.get_management_client(
            KeyVaultManagementClient, config.subscription_id
        )

    def _list_resources(self, resource_group: str) -> List[Any]:
        return self._collect(self.client.vaults.list_by_resource_group(resource_group))

    def _build_recommendations(self) -> Dict[str, Recommendation]:
        return build_registry(
            Recommendation(
                recommendation_id="kv-001",
                resource_type=RESOURCE_TYPE,
                category=Category.MONITORING,
                severity=Severity.LOW,
                description="Key Vault should have diagnostic settings enabled",
                evaluate=diagnostics_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/key-vault/general/monitor-key-vault",
            ),
            Recommendation(
                recommendation_id="kv-002",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="Key Vault should have a SLA",
                evaluate=fixed_sla("99.99%"),
                learn_more_url="https://www.azure.cn/en-us/support/sla/key-vault/",
            ),
            Recommendation(
                recommendation_id="kv-003",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.HIGH,
                description="Key Vault should have private endpoints enabled",
                evaluate=private_endpoint_missing(
                    lambda vault: vault.properties.private_endpoint_connections
                ),
                learn_more_url="https://learn.microsoft.com/en-us/azure/key-vault/general/private-link-service",
            ),
            Recommendation(
                recommendation_id="kv-004",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="Key Vault SKU",
                evaluate=_sku,
                learn_more_url="https://azure.microsoft.com/en-us/pricing/details/key-vault/",
            ),
            Recommendation(
                recommendation_id="kv-005",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="Key Vault Name should comply with naming conventions",
                evaluate=caf_prefix("kv"),
                learn_more_url=CAF_NAMING_URL,
            ),
            Recommendation(
                recommendation_id="kv-006",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.MEDIUM,
                description="Key Vault should have soft delete enabled",
                evaluate=_soft_delete_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/key-vault/general/soft-delete-overview",
            ),
            Recommendation(
                recommendation_id="kv-007",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.MEDIUM,
                description="Key Vault should have purge protection enabled",
                evaluate=_purge_protection_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/key-vault/general/soft-delete-overview#purge-protection",
            ),
            Recommendation(
                recommendation_id="kv-008",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="Key Vault should have tags",
                evaluate=has_no_tags,
                learn_more_url=TAGS_URL,
            ),
        )
