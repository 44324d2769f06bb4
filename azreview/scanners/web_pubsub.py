"""
Web PubSub Scanner Module
=========================

Reviews Azure Web PubSub services.

Recommendations
---------------
wps-001  diagnostic settings enabled
wps-002  availability zones (Premium SKU)
wps-003  SLA
wps-004  private endpoints enabled
wps-005  SKU
wps-006  CAF naming convention
wps-007  tags
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List, Tuple

from azure.mgmt.webpubsub import WebPubSubManagementClient

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

RESOURCE_TYPE = "Microsoft.SignalRService/webPubSub"


def premium_sku(resource: Any) -> bool:
    """Whether the service runs on a Premium SKU (zone redundant)."""
    sku = getattr(resource, "sku", None)
    return sku is not None and "premium" in enum_value(sku.name).lower()


def premium_zones_disabled(resource: Any, scan_context: Any) -> Tuple[bool, str]:
    return not premium_sku(resource), ""


def tier_sla(resource: Any, scan_context: Any) -> Tuple[bool, str]:
    name = enum_value(resource.sku.name).lower() if resource.sku else ""
    if "free" in name:
        return True, "None"
    return False, "99.9%"


class WebPubSubScanner(BaseScanner):
    """Scanner for Azure Web PubSub."""

    service_key = "wps"

    def resource_types(self) -> FrozenSet[str]:
        return frozenset({RESOURCE_TYPE})

    def _create_client(self, config: ScannerConfig) -> Any:
        return config.azure_client.get_management_client(
            WebPubSubManagementClient, config.subscription_id
        )

    def _list_resources(self, resource_group: str) -> List[Any]:
        return self._collect(self.client.web_pub_sub.list_by_resource_group(resource_group))

    def _build_recommendations(self) -> Dict[str, Recommendation]:
        return build_registry(
            Recommendation(
                recommendation_id="wps-001",
                resource_type=RESOURCE_TYPE,
                category=Category.MONITORING,
                severity=Severity.LOW,
                description="Web Pub Sub should have diagnostic settings enabled",
                evaluate=diagnostics_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/azure-web-pubsub/howto-troubleshoot-resource-logs",
            ),
            Recommendation(
                recommendation_id="wps-002",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="Web Pub Sub should have availability zones enabled",
                evaluate=premium_zones_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/azure-web-pubsub/concept-availability-zones",
            ),
            Recommendation(
                recommendation_id="wps-003",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="Web Pub Sub should have a SLA",
                evaluate=tier_sla,
                learn_more_url="https://azure.microsoft.com/en-gb/support/legal/sla/web-pubsub/",
            ),
            Recommendation(
                recommendation_id="wps-004",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.HIGH,
                description="Web Pub Sub should have private endpoints enabled",
                evaluate=private_endpoint_missing(),
                learn_more_url="https://learn.microsoft.com/en-us/azure/azure-web-pubsub/howto-secure-private-endpoints",
            ),
            Recommendation(
                recommendation_id="wps-005",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="Web Pub Sub SKU",
                evaluate=sku_name,
                learn_more_url="https://azure.microsoft.com/en-us/pricing/details/web-pubsub/",
            ),
            Recommendation(
                recommendation_id="wps-006",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="Web Pub Sub Name should comply with naming conventions",
                evaluate=caf_prefix("wps"),
                learn_more_url=CAF_NAMING_URL,
            ),
            Recommendation(
                recommendation_id="wps-007",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="Web Pub Sub should have tags",
                evaluate=has_no_tags,
                learn_more_url=TAGS_URL,
            ),
        )
