"""
Defender Scanner Module
=======================

Collects the Microsoft Defender for Cloud plan configuration of a
subscription. Unlike resource scanners this runs once per subscription
and reports plan tiers rather than rule outcomes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from azure.mgmt.security import SecurityCenter

from azreview.core.base_scanner import ScannerConfig
from azreview.core.exceptions import ResourceFetchError, ScannerInitError
from azreview.scanners.common import enum_value

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "Microsoft.Security/pricings"


@dataclass(frozen=True)
class DefenderResult:
    """Pricing tier of one Defender plan."""

    subscription_id: str
    subscription_name: str
    name: str
    tier: str
    deprecated: bool = False

    @property
    def enabled(self) -> bool:
        return self.tier.lower() == "standard"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "subscription_id": self.subscription_id,
            "subscription_name": self.subscription_name,
            "name": self.name,
            "tier": self.tier,
            "deprecated": self.deprecated,
        }


class DefenderScanner:
    """
    Lists Defender for Cloud pricings for a subscription.

    Methods
    -------
    init(config)
        Create the Security Center client.
    list_configuration()
        Return one DefenderResult per plan.
    """

    service_key = "defender"

    def __init__(self) -> None:
        self.config: Optional[ScannerConfig] = None
        self.client: Any = None

    def init(self, config: ScannerConfig) -> None:
        self.config = config
        try:
            self.client = config.azure_client.get_management_client(
                SecurityCenter, config.subscription_id
            )
        except Exception as e:
            raise ScannerInitError(
                f"Failed to initialize DefenderScanner: {e}",
                resource_type=RESOURCE_TYPE,
                details={"subscription_id": config.subscription_id},
            )

    def list_configuration(self) -> List[DefenderResult]:
        """
        List Defender plan tiers.

        Returns
        -------
        list of DefenderResult
            One entry per plan, in provider order.

        Raises
        ------
        ResourceFetchError
            If the pricings call fails.
        """
        logger.info(f"Collecting Defender plans for {self.config.subscription_id}")
        try:
            response = self.client.pricings.list()
            # Older API versions return a PricingList, newer ones a pager
            pricings = getattr(response, "value", response) or []
            results = [
                DefenderResult(
                    subscription_id=self.config.subscription_id,
                    subscription_name=self.config.subscription_name,
                    name=pricing.name,
                    tier=enum_value(pricing.pricing_tier),
                    deprecated=bool(getattr(pricing, "deprecated", False)),
                )
                for pricing in pricings
            ]
        except Exception as e:
            logger.error(f"Failed to list Defender pricings: {e}")
            raise ResourceFetchError(
                f"Failed to list Defender pricings: {e}",
                resource_type=RESOURCE_TYPE,
            )
        logger.debug(f"Found {len(results)} Defender plans")
        return results
