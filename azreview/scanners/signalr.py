"""
SignalR Scanner Module
======================

Reviews Azure SignalR services. The rule kinds mirror Web PubSub, both
services share the ``Microsoft.SignalRService`` provider and SKU model.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List

from azure.mgmt.signalr import SignalRManagementClient

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
    has_no_tags,
    private_endpoint_missing,
    sku_name,
)
from azreview.scanners.web_pubsub import premium_zones_disabled, tier_sla

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "Microsoft.SignalRService/SignalR"


class SignalRScanner(BaseScanner):
    """Scanner for Azure SignalR."""

    service_key = "sigr"

    def resource_types(self) -> FrozenSet[str]:
        return frozenset({RESOURCE_TYPE})

    def _create_client(self, config: ScannerConfig) -> Any:
        return config.azure_client.get_management_client(
            SignalRManagementClient, config.subscription_id
        )

    def _list_resources(self, resource_group: str) -> List[Any]:
        return self._collect(self.client.signal_r.list_by_resource_group(resource_group))

    def _build_recommendations(self) -> Dict[str, Recommendation]:
        return build_registry(
            Recommendation(
                recommendation_id="sigr-001",
                resource_type=RESOURCE_TYPE,
                category=Category.MONITORING,
                severity=Severity.LOW,
                description="SignalR should have diagnostic settings enabled",
                evaluate=diagnostics_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/azure-signalr/signalr-howto-diagnostic-logs",
            ),
            Recommendation(
                recommendation_id="sigr-002",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="SignalR should have availability zones enabled",
                evaluate=premium_zones_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/azure-signalr/availability-zones",
            ),
            Recommendation(
                recommendation_id="sigr-003",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="SignalR should have a SLA",
                evaluate=tier_sla,
                learn_more_url="https://azure.microsoft.com/en-gb/support/legal/sla/signalr-service/",
            ),
            Recommendation(
                recommendation_id="sigr-004",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.HIGH,
                description="SignalR should have private endpoints enabled",
                evaluate=private_endpoint_missing(),
                learn_more_url="https://learn.microsoft.com/en-us/azure/azure-signalr/howto-private-endpoints",
            ),
            Recommendation(
                recommendation_id="sigr-005",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="SignalR SKU",
                evaluate=sku_name,
                learn_more_url="https://azure.microsoft.com/en-us/pricing/details/signalr-service/",
            ),
            Recommendation(
                recommendation_id="sigr-006",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="SignalR Name should comply with naming conventions",
                evaluate=caf_prefix("sigr"),
                learn_more_url=CAF_NAMING_URL,
            ),
            Recommendation(
                recommendation_id="sigr-007",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="SignalR should have tags",
                evaluate=has_no_tags,
                learn_more_url=TAGS_URL,
            ),
        )
