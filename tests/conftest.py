"""
Pytest configuration and shared fixtures for testing.
"""

import threading
import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from azreview.core.base_scanner import BaseScanner, ScannerConfig
from azreview.core.recommendations import (
    Category,
    Recommendation,
    Severity,
    build_registry,
)
from azreview.core.scan_context import ScanContext

SUBSCRIPTION_ID = "00000000-1111-2222-3333-abcdef123456"
STUB_TYPE = "Microsoft.Test/widgets"


def resource_id(name, resource_type=STUB_TYPE, resource_group="rg-test"):
    """Build a Resource Manager id for a test resource."""
    return (
        f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{resource_group}"
        f"/providers/{resource_type}/{name}"
    )


def make_resource(name, resource_type=STUB_TYPE, resource_group="rg-test", **attrs):
    """Create an SDK-like resource object."""
    values = {
        "id": resource_id(name, resource_type, resource_group),
        "name": name,
        "type": resource_type,
        "location": "westeurope",
        "tags": None,
    }
    values.update(attrs)
    return SimpleNamespace(**values)


class StubScanner(BaseScanner):
    """
    Scanner returning canned resources, with hooks to control timing.

    ``gate`` (an Event) blocks listing until set; ``error`` is raised from
    listing; ``on_start`` and ``on_finish`` bracket the listing call.
    """

    service_key = "stub"

    def __init__(self, label="stub", resources=None, error=None, delay=0.0, gate=None,
                 on_start=None, on_finish=None):
        self.label = label
        self.resources = resources if resources is not None else []
        self.error = error
        self.delay = delay
        self.gate = gate
        self.on_start = on_start
        self.on_finish = on_finish
        self.list_calls = 0
        super().__init__()

    def resource_types(self):
        return frozenset({STUB_TYPE})

    def _create_client(self, config):
        return MagicMock(name=f"{self.label}-client")

    def _list_resources(self, resource_group):
        self.list_calls += 1
        if self.on_start is not None:
            self.on_start(self)
        if self.gate is not None:
            self.gate.wait(5)
        if self.delay:
            time.sleep(self.delay)
        if self.on_finish is not None:
            self.on_finish(self)
        if self.error is not None:
            raise self.error
        return list(self.resources)

    def _build_recommendations(self):
        return build_registry(
            Recommendation(
                recommendation_id="stub-001",
                resource_type=STUB_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="Widget should have tags",
                evaluate=lambda r, ctx: (not r.tags, ""),
            ),
        )


class ConcurrencyTracker:
    """Records the peak number of scanners listing at once."""

    def __init__(self):
        self._lock = threading.Lock()
        self.active = 0
        self.peak = 0

    def start(self, scanner):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)

    def stop(self, scanner=None):
        with self._lock:
            self.active -= 1


@pytest.fixture
def azure_client():
    """A mocked AzureClient."""
    client = MagicMock(name="azure_client")
    client.get_subscription_name.return_value = "Test Subscription"
    client.list_subscriptions.return_value = [
        {"subscription_id": SUBSCRIPTION_ID, "display_name": "Test Subscription"}
    ]
    client.list_resource_groups.return_value = ["rg-test"]
    client.resource_group_exists.return_value = True
    return client


@pytest.fixture
def scanner_config(azure_client):
    """ScannerConfig bound to the mocked client."""
    return ScannerConfig(
        subscription_id=SUBSCRIPTION_ID,
        subscription_name="Test Subscription",
        azure_client=azure_client,
    )


@pytest.fixture
def empty_context():
    """ScanContext with no diagnostics and no private endpoints."""
    return ScanContext(SUBSCRIPTION_ID)


@pytest.fixture
def make_scanner(scanner_config):
    """Factory for initialized StubScanners."""

    def factory(**kwargs):
        scanner = StubScanner(**kwargs)
        scanner.init(scanner_config)
        return scanner

    return factory
