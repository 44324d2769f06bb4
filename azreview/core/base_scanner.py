"""
Base Scanner Module
===================

Provides the abstract base class for all resource scanners in azreview.

A scanner owns one Azure resource type: it lists the resources of that
type in a resource group and runs its recommendation registry against each
of them, producing one :class:`ServiceResult` per resource.

Classes
-------
ScannerConfig
    Per-subscription configuration handed to every scanner.
ServiceResult
    All recommendation outcomes for one resource.
BaseScanner
    Abstract base class for resource scanners.

Example
-------
>>> class RegistryScanner(BaseScanner):
...     def resource_types(self):
...         return frozenset({"Microsoft.ContainerRegistry/registries"})
...
...     def _create_client(self, config):
...         return config.azure_client.get_management_client(
...             ContainerRegistryManagementClient, config.subscription_id
...         )
...
...     def _list_resources(self, resource_group):
...         return self._collect(
...             self.client.registries.list_by_resource_group(resource_group)
...         )
...
...     def _build_recommendations(self):
...         return build_registry(...)

Notes
-----
Listing failures are raised as :class:`ResourceFetchError`; a scanner never
returns partial results alongside an error.

See Also
--------
ContainerRegistryScanner : Concrete implementation for container registries.
RecommendationEngine : Evaluates a scanner's registry.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from azreview.core.exceptions import (
    AzReviewError,
    ResourceFetchError,
    ScanCancelledError,
    ScannerInitError,
)
from azreview.core.recommendations import (
    Recommendation,
    RecommendationEngine,
    RuleResult,
)
from azreview.core.resources import ResourceRef

# Module logger
logger = logging.getLogger(__name__)


@dataclass
class ScannerConfig:
    """
    Configuration shared by every scanner of one subscription pass.

    Parameters
    ----------
    subscription_id : str
        Subscription being scanned.
    azure_client : AzureClient
        Authenticated credential handle and management client factory.
    subscription_name : str, optional
        Display name, copied into results.
    resource_group : str, optional
        Resource group filter requested by the user.
    cancel_event : threading.Event, optional
        Cancellation signal of the surrounding execution.
    enable_detailed_scan : bool, default=False
        Enables extra, more expensive per-resource calls in scanners that
        support them.
    """

    subscription_id: str
    azure_client: Any
    subscription_name: str = ""
    resource_group: Optional[str] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)
    enable_detailed_scan: bool = False

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self.cancel_event.is_set()


@dataclass(frozen=True)
class ServiceResult:
    """
    Recommendation outcomes for a single resource.

    Parameters
    ----------
    subscription_id : str
        Subscription holding the resource.
    subscription_name : str
        Subscription display name.
    resource_group : str
        Resource group holding the resource.
    service_name : str
        Resource name.
    type : str
        Resource type.
    location : str
        Azure region.
    resource_id : str
        Fully qualified resource id.
    recommendations : tuple of RuleResult
        Outcomes in registry order.
    """

    subscription_id: str
    subscription_name: str
    resource_group: str
    service_name: str
    type: str
    location: str
    resource_id: str
    recommendations: Tuple[RuleResult, ...] = ()

    @property
    def violations(self) -> List[RuleResult]:
        """Recommendations this resource violates."""
        return [r for r in self.recommendations if r.evaluated and r.violated]

    @property
    def unevaluated(self) -> List[RuleResult]:
        """Recommendations that could not be evaluated."""
        return [r for r in self.recommendations if not r.evaluated]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "subscription_id": self.subscription_id,
            "subscription_name": self.subscription_name,
            "resource_group": self.resource_group,
            "service_name": self.service_name,
            "type": self.type,
            "location": self.location,
            "resource_id": self.resource_id,
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


class BaseScanner(ABC):
    """
    Abstract base class for all resource scanners.

    Subclasses declare their resource types, build their management client
    and recommendation registry, and list resources; :meth:`scan` ties
    these together.

    Attributes
    ----------
    config : ScannerConfig or None
        Set by :meth:`init`.
    client : object or None
        Management client created by :meth:`init`.

    Methods
    -------
    init(config)
        Wire the scanner to a subscription.
    resource_types()
        Resource types owned by this scanner (abstract).
    get_recommendations()
        The scanner's recommendation registry.
    scan(resource_group, scan_context, cancel_event=None)
        List and evaluate every resource in a resource group.
    """

    #: Short identifier used by the CLI ``--services`` filter.
    service_key: str = ""

    def __init__(self) -> None:
        self.config: Optional[ScannerConfig] = None
        self.client: Any = None
        self._engine = RecommendationEngine()
        self._recommendations = self._build_recommendations()
        # Cancellation signal of the run currently calling scan() on this thread
        self._run = threading.local()

    def init(self, config: ScannerConfig) -> None:
        """
        Wire the scanner to its management client and subscription.

        Parameters
        ----------
        config : ScannerConfig
            Subscription configuration.

        Raises
        ------
        ScannerInitError
            If the management client cannot be created. Fatal for the run.
        """
        self.config = config
        try:
            self.client = self._create_client(config)
        except Exception as e:
            logger.error(f"Failed to initialize {self.__class__.__name__}: {e}")
            raise ScannerInitError(
                f"Failed to initialize {self.__class__.__name__}: {e}",
                resource_type=self.primary_resource_type,
                details={"subscription_id": config.subscription_id},
            )
        logger.debug(
            f"Initialized {self.__class__.__name__} for subscription "
            f"{config.subscription_id}"
        )

    @abstractmethod
    def resource_types(self) -> FrozenSet[str]:
        """Resource types this scanner owns."""

    @abstractmethod
    def _create_client(self, config: ScannerConfig) -> Any:
        """Create the management client for ``config.subscription_id``."""

    @abstractmethod
    def _list_resources(self, resource_group: str) -> List[Any]:
        """List every resource of this scanner's type in a resource group."""

    @abstractmethod
    def _build_recommendations(self) -> Dict[str, Recommendation]:
        """Build the scanner's recommendation registry."""

    @property
    def primary_resource_type(self) -> str:
        """First resource type, in sorted order, for logs and errors."""
        return sorted(self.resource_types())[0]

    def get_recommendations(self) -> Dict[str, Recommendation]:
        """
        Get the recommendation registry.

        Returns
        -------
        dict
            Ordered mapping of recommendation id to Recommendation. The
            registry is built once, at construction time.
        """
        return self._recommendations

    def _raise_if_cancelled(self, resource_group: Optional[str] = None) -> None:
        run_event = getattr(self._run, "cancel_event", None)
        run_cancelled = run_event is not None and run_event.is_set()
        if run_cancelled or (self.config is not None and self.config.cancelled):
            raise ScanCancelledError(
                "Scan cancelled",
                resource_type=self.primary_resource_type,
                resource_group=resource_group,
            )

    def _collect(self, pager: Iterable[Any]) -> List[Any]:
        """
        Drain a pager, checking for cancellation between pages.

        Parameters
        ----------
        pager : iterable
            An ``azure.core.paging.ItemPaged`` or any iterable.

        Returns
        -------
        list
            Every item across every page.
        """
        pages = pager.by_page() if hasattr(pager, "by_page") else [pager]
        items: List[Any] = []
        for page in pages:
            self._raise_if_cancelled()
            items.extend(page)
        return items

    def _prepare_resource(self, resource: Any, resource_group: str) -> Any:
        """Hook for extra per-resource calls before evaluation."""
        return resource

    def scan(
        self,
        resource_group: str,
        scan_context: Any,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[ServiceResult]:
        """
        List and evaluate every resource of this type in a resource group.

        Parameters
        ----------
        resource_group : str
            Resource group to scan.
        scan_context : ScanContext
            Subscription-wide facts shared by all recommendations.
        cancel_event : threading.Event, optional
            Cancellation signal of the calling run, checked between pages
            alongside the configuration's own.

        Returns
        -------
        list of ServiceResult
            One entry per listed resource.

        Raises
        ------
        ResourceFetchError
            If listing fails.
        ScanCancelledError
            If the scan is cancelled while paging.
        """
        if self.config is None:
            raise ScannerInitError(
                f"{self.__class__.__name__} used before init()",
                resource_type=self.primary_resource_type,
            )

        logger.info(
            f"Scanning {self.primary_resource_type} in resource group {resource_group}"
        )

        self._run.cancel_event = cancel_event
        try:
            resources = self._list_resources(resource_group)
            resources = [self._prepare_resource(r, resource_group) for r in resources]
        except AzReviewError:
            raise
        except Exception as e:
            logger.error(
                f"Failed to list {self.primary_resource_type} in {resource_group}: {e}"
            )
            raise ResourceFetchError(
                f"Failed to list {self.primary_resource_type}: {e}",
                resource_type=self.primary_resource_type,
                resource_group=resource_group,
            )
        finally:
            self._run.cancel_event = None

        registry = self.get_recommendations()
        results = []
        for resource in resources:
            ref = ResourceRef.from_resource(self.config.subscription_id, resource)
            rule_results = self._engine.evaluate(registry, resource, scan_context, ref)
            results.append(
                ServiceResult(
                    subscription_id=self.config.subscription_id,
                    subscription_name=self.config.subscription_name,
                    resource_group=ref.resource_group or resource_group,
                    service_name=ref.name,
                    type=ref.type,
                    location=ref.location,
                    resource_id=ref.resource_id,
                    recommendations=tuple(rule_results),
                )
            )

        logger.debug(
            f"Evaluated {len(results)} {self.primary_resource_type} in {resource_group}"
        )
        return results

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"{self.__class__.__name__}("
            f"resource_types={sorted(self.resource_types())})"
        )
