"""
Cosmos DB Scanner Module
========================

Reviews Azure Cosmos DB database accounts.

Recommendations
---------------
cosmos-001  diagnostic settings enabled
cosmos-002  availability zones enabled
cosmos-003  SLA
cosmos-004  private endpoints enabled
cosmos-005  SKU (offer type)
cosmos-006  CAF naming convention
cosmos-007  tags
cosmos-008  local (key) authentication disabled
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List, Tuple

from azure.mgmt.cosmosdb import CosmosDBManagementClient

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
)

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "Microsoft.DocumentDB/databaseAccounts"


def _zones_disabled(account: Any, scan_context: Any) -> Tuple[bool, str]:
    locations = account.locations or []
    return not any(loc.is_zone_redundant for loc in locations), ""


def _sla(account: Any, scan_context: Any) -> Tuple[bool, str]:
    locations = account.locations or []
    zoned = any(loc.is_zone_redundant for loc in locations)
    if len(locations) > 1:
        return False, "99.999%"
    return False, "99.995%" if zoned else "99.99%"


def _offer_type(account: Any, scan_context: Any) -> Tuple[bool, str]:
    return False, enum_value(account.database_account_offer_type)


def _local_auth_enabled(account: Any, scan_context: Any) -> Tuple[bool, str]:
    return not account.disable_local_auth, ""


class CosmosDBScanner(BaseScanner):
    """Scanner for Cosmos DB database accounts."""

    service_key = "cosmos"

    def resource_types(self) -> FrozenSet[str]:
        return frozenset({RESOURCE_TYPE})

    def _create_client(self, config: ScannerConfig) -> Any:
        return config.azure_client.get_management_client(
            CosmosDBManagementClient, config.subscription_id
        )

    def _list_resources(self, resource_group: str) -> List[Any]:
        return self._collect(
            self.client.database_accounts.list_by_resource_group(resource_group)
        )

    def _build_recommendations(self) -> Dict[str, Recommendation]:
        return build_registry(
            Recommendation(
                recommendation_id="cosmos-001",
                resource_type=RESOURCE_TYPE,
                category=Category.MONITORING,
                severity=Severity.LOW,
                description="CosmosDB should have diagnostic settings enabled",
                evaluate=diagnostics_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/cosmos-db/monitor-resource-logs",
            ),
            Recommendation(
                recommendation_id="cosmos-002",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="CosmosDB should have availability zones enabled",
                evaluate=_zones_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/cosmos-db/high-availability",
            ),
            Recommendation(
                recommendation_id="cosmos-003",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="CosmosDB should have a SLA",
                evaluate=_sla,
                learn_more_url="https://www.azure.cn/en-us/support/sla/cosmos-db/",
            ),
            Recommendation(
                recommendation_id="cosmos-004",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.HIGH,
                description="CosmosDB should have private endpoints enabled",
                evaluate=private_endpoint_missing(),
                learn_more_url="https://learn.microsoft.com/en-us/azure/cosmos-db/how-to-configure-private-endpoints",
            ),
            Recommendation(
                recommendation_id="cosmos-005",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="CosmosDB SKU",
                evaluate=_offer_type,
                learn_more_url="https://azure.microsoft.com/en-us/pricing/details/cosmos-db/autoscale-provisioned/",
            ),
            Recommendation(
                recommendation_id="cosmos-006",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="CosmosDB Name should comply with naming conventions",
                evaluate=caf_prefix("cosmos"),
                learn_more_url=CAF_NAMING_URL,
            ),
            Recommendation(
                recommendation_id="cosmos-007",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="CosmosDB should have tags",
                evaluate=has_no_tags,
                learn_more_url=TAGS_URL,
            ),
            Recommendation(
                recommendation_id="cosmos-008",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.MEDIUM,
                description="CosmosDB should disable key based authentication",
                evaluate=_local_auth_enabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/cosmos-db/how-to-setup-rbac#disable-local-auth",
            ),
        )
