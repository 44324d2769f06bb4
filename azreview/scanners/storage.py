"""
Storage Account Scanner Module
==============================

Reviews Azure Storage accounts.

Recommendations
---------------
st-001  diagnostic settings enabled
st-002  zone redundant replication
st-003  SLA
st-004  private endpoints enabled
st-005  SKU
st-006  CAF naming convention
st-007  HTTPS only
st-008  tags
st-009  minimum TLS 1.2
st-010  blob public access disabled
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List, Tuple

from azure.mgmt.storage import StorageManagementClient

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
    private_endpoint_missing,
    sku_name,
)

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "Microsoft.Storage/storageAccounts"

ZONE_REDUNDANT_SKUS = ("_ZRS", "_GZRS", "_RAGZRS")


def _replication(account: Any) -> str:
    return enum_value(account.sku.name).upper() if account.sku else ""


def _not_zone_redundant(account: Any, scan_context: Any) -> Tuple[bool, str]:
    return not _replication(account).endswith(ZONE_REDUNDANT_SKUS), ""


def _sla(account: Any, scan_context: Any) -> Tuple[bool, str]:
    tier = enum_value(account.access_tier).lower()
    replication = _replication(account)
    if replication.startswith("PREMIUM") or tier != "cool":
        sla = "99.99%" if "_RA" in replication else "99.9%"
    else:
        sla = "99.9%" if "_RA" in replication else "99%"
    return False, sla


def _https_not_enforced(account: Any, scan_context: Any) -> Tuple[bool, str]:
    return not account.enable_https_traffic_only, ""


def _weak_tls(account: Any, scan_context: Any) -> Tuple[bool, str]:
    version = enum_value(account.minimum_tls_version)
    return version < "TLS1_2", version


def _blob_public_access(account: Any, scan_context: Any) -> Tuple[bool, str]:
    return bool(account.allow_blob_public_access), ""


class StorageScanner(BaseScanner):
    """Scanner for Storage accounts."""

    service_key = "st"

    def resource_types(self) -> FrozenSet[str]:
        return frozenset({RESOURCE_TYPE})

    def _create_client(self, config: ScannerConfig) -> Any:
        return config.azure_client.get_management_client(
            StorageManagementClient, config.subscription_id
        )

    def _list_resources(self, resource_group: str) -> List[Any]:
        return self._collect(
            self.client.storage_accounts.list_by_resource_group(resource_group)
        )

    def _build_recommendations(self) -> Dict[str, Recommendation]:
        return build_registry(
            Recommendation(
                recommendation_id="st-001",
                resource_type=RESOURCE_TYPE,
                category=Category.MONITORING,
                severity=Severity.LOW,
                description="Storage should have diagnostic settings enabled",
                evaluate=diagnostics_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/storage/blobs/monitor-blob-storage",
            ),
            Recommendation(
                recommendation_id="st-002",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="Storage should have availability zones enabled",
                evaluate=_not_zone_redundant,
                learn_more_url="https://learn.microsoft.com/en-us/azure/storage/common/storage-redundancy",
            ),
            Recommendation(
                recommendation_id="st-003",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="Storage should have a SLA",
                evaluate=_sla,
                learn_more_url="https://www.azure.cn/en-us/support/sla/storage/",
            ),
            Recommendation(
                recommendation_id="st-004",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.HIGH,
                description="Storage should have private endpoints enabled",
                evaluate=private_endpoint_missing(),
                learn_more_url="https://learn.microsoft.com/en-us/azure/storage/common/storage-private-endpoints",
            ),
            Recommendation(
                recommendation_id="st-005",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="Storage SKU",
                evaluate=sku_name,
                learn_more_url="https://learn.microsoft.com/en-us/rest/api/storagerp/srp_sku_types",
            ),
            Recommendation(
                recommendation_id="st-006",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="Storage Name should comply with naming conventions",
                evaluate=caf_prefix("st"),
                learn_more_url=CAF_NAMING_URL,
            ),
            Recommendation(
                recommendation_id="st-007",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.HIGH,
                description="Storage Account should use HTTPS only",
                evaluate=_https_not_enforced,
                learn_more_url="https://learn.microsoft.com/en-us/azure/storage/common/storage-require-secure-transfer",
            ),
            Recommendation(
                recommendation_id="st-008",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="Storage Account should have tags",
                evaluate=has_no_tags,
                learn_more_url=TAGS_URL,
            ),
            Recommendation(
                recommendation_id="st-009",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.MEDIUM,
                description="Storage Account should enforce TLS >= 1.2",
                evaluate=_weak_tls,
                learn_more_url="https://learn.microsoft.com/en-us/azure/storage/common/transport-layer-security-configure-minimum-version",
            ),
            Recommendation(
                recommendation_id="st-010",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.HIGH,
                description="Storage Account should not allow public blob access",
                evaluate=_blob_public_access,
                learn_more_url="https://learn.microsoft.com/en-us/azure/storage/blobs/anonymous-read-access-prevent",
            ),
        )
