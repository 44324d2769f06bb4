"""
Resource References
===================

Identity of a single Azure resource as read from Resource Manager, plus
helpers for parsing Azure resource ids.

Azure resource ids look like::

    /subscriptions/<sub>/resourceGroups/<rg>/providers/<namespace>/<type>/<name>

and are compared case-insensitively throughout azreview.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


def normalize_resource_id(resource_id: Optional[str]) -> str:
    """Return the lowercased form used as a lookup key."""
    return (resource_id or "").lower()


def _segments(resource_id: str) -> Dict[str, str]:
    parts = [p for p in (resource_id or "").split("/") if p]
    return {
        parts[i].lower(): parts[i + 1]
        for i in range(0, len(parts) - 1, 2)
    }


def get_resource_group_from_resource_id(resource_id: str) -> str:
    """
    Extract the resource group name from a resource id.

    Returns an empty string when the id carries no resource group segment.

    Example
    -------
    >>> get_resource_group_from_resource_id(
    ...     "/subscriptions/s/resourceGroups/rg-app/providers/X/y/z"
    ... )
    'rg-app'
    """
    return _segments(resource_id).get("resourcegroups", "")


def get_subscription_from_resource_id(resource_id: str) -> str:
    """Extract the subscription id from a resource id."""
    return _segments(resource_id).get("subscriptions", "")


@dataclass(frozen=True)
class ResourceRef:
    """
    Immutable reference to one Azure resource.

    Parameters
    ----------
    subscription_id : str
        Subscription holding the resource.
    resource_group : str
        Resource group holding the resource.
    name : str
        Resource name.
    type : str
        Resource type (e.g. ``Microsoft.ContainerRegistry/registries``).
    location : str
        Azure region.
    resource_id : str
        Fully qualified Resource Manager id.
    """

    subscription_id: str
    resource_group: str
    name: str
    type: str
    location: str
    resource_id: str

    @property
    def key(self) -> str:
        """Case-insensitive identity of the resource."""
        return normalize_resource_id(self.resource_id)

    @classmethod
    def from_resource(cls, subscription_id: str, resource: Any) -> ResourceRef:
        """
        Build a reference from any Azure SDK resource model.

        Parameters
        ----------
        subscription_id : str
            Subscription being scanned.
        resource : object
            SDK model exposing ``id``, ``name``, ``type`` and ``location``.

        Returns
        -------
        ResourceRef
            The reference, with the resource group parsed from the id.
        """
        resource_id = getattr(resource, "id", None) or ""
        return cls(
            subscription_id=subscription_id,
            resource_group=get_resource_group_from_resource_id(resource_id),
            name=getattr(resource, "name", None) or "",
            type=getattr(resource, "type", None) or "",
            location=getattr(resource, "location", None) or "",
            resource_id=resource_id,
        )

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary for serialization."""
        return {
            "subscription_id": self.subscription_id,
            "resource_group": self.resource_group,
            "name": self.name,
            "type": self.type,
            "location": self.location,
            "resource_id": self.resource_id,
        }
