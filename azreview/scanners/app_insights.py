"""
Application Insights Scanner Module
===================================

Reviews Application Insights components.

Recommendations
---------------
appi-001  SLA
appi-002  CAF naming convention
appi-003  tags
appi-004  workspace-based component
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List, Tuple

from azure.mgmt.applicationinsights import ApplicationInsightsManagementClient

from azreview.core.base_scanner import BaseScanner, ScannerConfig
from azreview.core.recommendations import (
    Category,
    Recommendation,
    Severity,
    build_registry,
)
from azreview.scanners.common import CAF_NAMING_URL, TAGS_URL, caf_prefix, fixed_sla, has_no_tags

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "Microsoft.Insights/components"


def _not_workspace_based(component: Any, scan_context: Any) -> Tuple[bool, str]:
    return not getattr(component, "workspace_resource_id", None), ""


class AppInsightsScanner(BaseScanner):
    """Scanner for Application Insights components."""

    service_key = "appi"

    def resource_types(self) -> FrozenSet[str]:
        return frozenset({RESOURCE_TYPE})

    def _create_client(self, config: ScannerConfig) -> Any:
        return config.azure_client.get_management_client(
            ApplicationInsightsManagementClient, config.subscription_id
        )

    def _list_resources(self, resource_group: str) -> List[Any]:
        return self._collect(self.client.components.list_by_resource_group(resource_group))

    def _build_recommendations(self) -> Dict[str, Recommendation]:
        return build_registry(
            Recommendation(
                recommendation_id="appi-001",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="Application Insights should have a SLA",
                evaluate=fixed_sla("99.9%"),
                learn_more_url="https://www.azure.cn/en-us/support/sla/application-insights/",
            ),
            Recommendation(
                recommendation_id="appi-002",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="Application Insights Name should comply with naming conventions",
                evaluate=caf_prefix("appi"),
                learn_more_url=CAF_NAMING_URL,
            ),
            Recommendation(
                recommendation_id="appi-003",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="Application Insights should have tags",
                evaluate=has_no_tags,
                learn_more_url=TAGS_URL,
            ),
            Recommendation(
                recommendation_id="appi-004",
                resource_type=RESOURCE_TYPE,
                category=Category.MONITORING,
                severity=Severity.MEDIUM,
                description="Application Insights should store data in a Log Analytics workspace",
                evaluate=_not_workspace_based,
                learn_more_url="https://learn.microsoft.com/en-us/azure/azure-monitor/app/convert-classic-resource",
            ),
        )
