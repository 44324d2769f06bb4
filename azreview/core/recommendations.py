"""
Recommendations Module
======================

Declarative best-practice rules and the engine that evaluates them.

Each scanner owns a registry: an insertion-ordered mapping from
recommendation id to :class:`Recommendation`. A recommendation carries an
``evaluate`` predicate taking the concrete SDK resource object and the
subscription's :class:`~azreview.core.scan_context.ScanContext` and
returning ``(violated, detail)``.

Classes
-------
Category
    Recommendation category.
Severity
    Impact of a violated recommendation.
Recommendation
    A named, categorized predicate.
RuleResult
    Outcome of one recommendation for one resource.
RecommendationEngine
    Applies a registry to a resource.

Example
-------
>>> registry = build_registry(
...     Recommendation(
...         recommendation_id="cr-009",
...         resource_type="Microsoft.ContainerRegistry/registries",
...         category=Category.GOVERNANCE,
...         severity=Severity.LOW,
...         description="Container Registry should have tags",
...         evaluate=lambda r, ctx: (not r.tags, ""),
...     ),
... )
>>> results = RecommendationEngine().evaluate(registry, registry_obj, ctx)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from azreview.core.resources import ResourceRef

# Module logger
logger = logging.getLogger(__name__)

Predicate = Callable[[Any, Any], Tuple[bool, str]]

UNABLE_TO_EVALUATE = "Unable to evaluate"


class Category(str, Enum):
    """Recommendation category."""

    RELIABILITY = "reliability"
    GOVERNANCE = "governance"
    SECURITY = "security"
    MONITORING = "monitoring"
    PERFORMANCE = "performance"


class Severity(str, Enum):
    """Impact of a violated recommendation."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Recommendation:
    """
    A named, categorized best-practice predicate.

    Parameters
    ----------
    recommendation_id : str
        Identifier, unique within its registry (e.g. ``cr-001``).
    resource_type : str
        Resource type the recommendation targets.
    category : Category
        Recommendation category.
    severity : Severity
        Impact when violated.
    description : str
        Human-readable recommendation text.
    evaluate : callable
        ``(resource, scan_context) -> (violated, detail)``.
    learn_more_url : str, optional
        Documentation reference, never interpreted by the engine.
    """

    recommendation_id: str
    resource_type: str
    category: Category
    severity: Severity
    description: str
    evaluate: Predicate
    learn_more_url: str = ""

    def applies_to(self, resource_type: Optional[str]) -> bool:
        """Whether this recommendation targets ``resource_type``."""
        return (resource_type or "").lower() == self.resource_type.lower()

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary for serialization (predicate omitted)."""
        return {
            "recommendation_id": self.recommendation_id,
            "resource_type": self.resource_type,
            "category": self.category.value,
            "severity": self.severity.value,
            "description": self.description,
            "learn_more_url": self.learn_more_url,
        }


@dataclass(frozen=True)
class RuleResult:
    """
    Outcome of one recommendation evaluated against one resource.

    ``evaluated`` is False when the predicate raised; such a result is
    never counted as a violation and its ``detail`` explains why.
    """

    recommendation_id: str
    resource: ResourceRef
    violated: bool
    detail: str
    evaluated: bool = True
    category: Category = Category.GOVERNANCE
    severity: Severity = Severity.LOW
    description: str = ""
    learn_more_url: str = ""

    @property
    def status(self) -> str:
        """Report label: ``violated``, ``passed`` or ``unevaluated``."""
        if not self.evaluated:
            return "unevaluated"
        return "violated" if self.violated else "passed"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "recommendation_id": self.recommendation_id,
            "category": self.category.value,
            "severity": self.severity.value,
            "description": self.description,
            "status": self.status,
            "violated": self.violated,
            "evaluated": self.evaluated,
            "detail": self.detail,
            "learn_more_url": self.learn_more_url,
        }


def build_registry(*recommendations: Recommendation) -> Dict[str, Recommendation]:
    """
    Build an ordered registry from recommendations.

    Raises
    ------
    ValueError
        If two recommendations share an id.
    """
    registry: Dict[str, Recommendation] = {}
    for recommendation in recommendations:
        if recommendation.recommendation_id in registry:
            raise ValueError(
                f"Duplicate recommendation id: {recommendation.recommendation_id}"
            )
        registry[recommendation.recommendation_id] = recommendation
    return registry


class RecommendationEngine:
    """
    Evaluates a recommendation registry against resource objects.

    The engine is stateless: its only inputs are the registry, the
    resource and the read-only scan context, so one instance may be shared
    by concurrently running scanners.

    Notes
    -----
    Predicates run synchronously in registry order. A predicate that raises
    (typically on a missing SDK property) is degraded to an unevaluated
    :class:`RuleResult` and evaluation continues with the next one.
    """

    def evaluate(
        self,
        registry: Dict[str, Recommendation],
        resource: Any,
        scan_context: Any,
        resource_ref: Optional[ResourceRef] = None,
    ) -> List[RuleResult]:
        """
        Evaluate every applicable recommendation for one resource.

        Parameters
        ----------
        registry : dict
            Ordered mapping of recommendation id to :class:`Recommendation`.
        resource : object
            Azure SDK resource model.
        scan_context : ScanContext
            Subscription-wide precomputed facts.
        resource_ref : ResourceRef, optional
            Reference attached to each result; built from ``resource`` and
            the context's subscription when omitted.

        Returns
        -------
        list of RuleResult
            One result per applicable recommendation, in registry order.
        """
        if resource_ref is None:
            resource_ref = ResourceRef.from_resource(
                getattr(scan_context, "subscription_id", ""), resource
            )

        results: List[RuleResult] = []
        for recommendation in registry.values():
            if not recommendation.applies_to(resource_ref.type):
                continue
            results.append(
                self._evaluate_one(recommendation, resource, scan_context, resource_ref)
            )
        return results

    @staticmethod
    def _evaluate_one(
        recommendation: Recommendation,
        resource: Any,
        scan_context: Any,
        resource_ref: ResourceRef,
    ) -> RuleResult:
        try:
            violated, detail = recommendation.evaluate(resource, scan_context)
            evaluated = True
        except Exception as e:
            logger.debug(
                f"Recommendation {recommendation.recommendation_id} failed "
                f"for {resource_ref.resource_id}: {type(e).__name__}: {e}"
            )
            violated = False
            detail = f"{UNABLE_TO_EVALUATE}: {type(e).__name__}: {e}"
            evaluated = False

        return RuleResult(
            recommendation_id=recommendation.recommendation_id,
            resource=resource_ref,
            violated=bool(violated),
            detail=detail or "",
            evaluated=evaluated,
            category=recommendation.category,
            severity=recommendation.severity,
            description=recommendation.description,
            learn_more_url=recommendation.learn_more_url,
        )
