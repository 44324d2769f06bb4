"""
Advisor Scanner Module
======================

Collects Azure Advisor recommendations for a subscription, optionally
restricted to one resource group.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from azure.mgmt.advisor import AdvisorManagementClient

from azreview.core.base_scanner import ScannerConfig
from azreview.core.exceptions import ResourceFetchError, ScannerInitError
from azreview.core.resources import (
    get_resource_group_from_resource_id,
    normalize_resource_id,
)
from azreview.scanners.common import enum_value

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "Microsoft.Advisor/recommendations"


@dataclass(frozen=True)
class AdvisorResult:
    """One Azure Advisor recommendation."""

    subscription_id: str
    subscription_name: str
    name: str
    type: str
    category: str
    impact: str
    description: str
    resource_id: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "subscription_id": self.subscription_id,
            "subscription_name": self.subscription_name,
            "name": self.name,
            "type": self.type,
            "category": self.category,
            "impact": self.impact,
            "description": self.description,
            "resource_id": self.resource_id,
        }


class AdvisorScanner:
    """Lists Advisor recommendations for a subscription."""

    service_key = "advisor"

    def __init__(self) -> None:
        self.config: Optional[ScannerConfig] = None
        self.client: Any = None

    def init(self, config: ScannerConfig) -> None:
        self.config = config
        try:
            self.client = config.azure_client.get_management_client(
                AdvisorManagementClient, config.subscription_id
            )
        except Exception as e:
            raise ScannerInitError(
                f"Failed to initialize AdvisorScanner: {e}",
                resource_type=RESOURCE_TYPE,
                details={"subscription_id": config.subscription_id},
            )

    def list_recommendations(self) -> List[AdvisorResult]:
        """
        List Advisor recommendations.

        Returns
        -------
        list of AdvisorResult
            Recommendations for the subscription, or only for the configured
            resource group when one is set.

        Raises
        ------
        ResourceFetchError
            If the Advisor call fails.
        """
        resource_group = (self.config.resource_group or "").lower()
        logger.info(f"Collecting Advisor recommendations for {self.config.subscription_id}")
        results = []
        try:
            for rec in self.client.recommendations.list():
                resource_id = rec.resource_metadata.resource_id if rec.resource_metadata else ""
                if resource_group and (
                    get_resource_group_from_resource_id(resource_id) or ""
                ).lower() != resource_group:
                    continue
                problem = rec.short_description.problem if rec.short_description else ""
                results.append(
                    AdvisorResult(
                        subscription_id=self.config.subscription_id,
                        subscription_name=self.config.subscription_name,
                        name=rec.impacted_value or "",
                        type=rec.impacted_field or "",
                        category=enum_value(rec.category),
                        impact=enum_value(rec.impact),
                        description=problem or "",
                        resource_id=normalize_resource_id(resource_id),
                    )
                )
        except Exception as e:
            logger.error(f"Failed to list Advisor recommendations: {e}")
            raise ResourceFetchError(
                f"Failed to list Advisor recommendations: {e}",
                resource_type=RESOURCE_TYPE,
                resource_group=self.config.resource_group,
            )
        logger.debug(f"Found {len(results)} Advisor recommendations")
        return results
