"""
Shared Recommendation Predicates
================================

Predicate builders reused across scanners. Every predicate takes the SDK
resource object and the :class:`~azreview.core.scan_context.ScanContext`
and returns ``(violated, detail)``.

Example
-------
>>> build_registry(
...     Recommendation("cr-009", TYPE, Category.GOVERNANCE, Severity.LOW,
...                    "Container Registry should have tags", has_no_tags),
... )
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Tuple

Predicate = Callable[[Any, Any], Tuple[bool, str]]

CAF_NAMING_URL = (
    "https://learn.microsoft.com/en-us/azure/cloud-adoption-framework/ready/"
    "azure-best-practices/resource-abbreviations"
)
TAGS_URL = (
    "https://learn.microsoft.com/en-us/azure/azure-resource-manager/management/"
    "tag-resources?tabs=json"
)


def enum_value(value: Any) -> str:
    """Plain string of an SDK enum member (or of a plain string)."""
    if value is None:
        return ""
    return str(getattr(value, "value", value))


def diagnostics_disabled(resource: Any, scan_context: Any) -> Tuple[bool, str]:
    """Violated when no diagnostic setting targets the resource."""
    return not scan_context.has_diagnostics(resource.id), ""


def has_no_tags(resource: Any, scan_context: Any) -> Tuple[bool, str]:
    """Violated when the resource carries no tags."""
    return not resource.tags, ""


def caf_prefix(prefix: str) -> Predicate:
    """Violated when the resource name lacks the CAF abbreviation ``prefix``."""

    def evaluate(resource: Any, scan_context: Any) -> Tuple[bool, str]:
        return not resource.name.startswith(prefix), ""

    return evaluate


def fixed_sla(sla: str) -> Predicate:
    """Informational: reports ``sla`` and never flags the resource."""

    def evaluate(resource: Any, scan_context: Any) -> Tuple[bool, str]:
        return False, sla

    return evaluate


def sku_name(resource: Any, scan_context: Any) -> Tuple[bool, str]:
    """Informational: reports the SKU name."""
    return False, enum_value(resource.sku.name)


def private_endpoint_missing(
    connections: Callable[[Any], Iterable[Any]] = lambda r: r.private_endpoint_connections,
) -> Predicate:
    """
    Violated when no private endpoint reaches the resource.

    The subscription-wide private endpoint index is consulted first, then
    the connections the resource itself reports.
    """

    def evaluate(resource: Any, scan_context: Any) -> Tuple[bool, str]:
        if scan_context.has_private_endpoint(resource.id):
            return False, ""
        return not list(connections(resource) or []), ""

    return evaluate
