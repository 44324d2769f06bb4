"""
Tests for the ScanContext and its builder.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from azure.mgmt.monitor import MonitorManagementClient
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.resource import ResourceManagementClient

from azreview.core.exceptions import ScanContextError
from azreview.core.scan_context import ScanContext, build_scan_context

from conftest import STUB_TYPE, SUBSCRIPTION_ID, make_resource


class TestScanContext:
    """Tests for ScanContext lookups."""

    def test_lookups_are_case_insensitive(self):
        """Ids are normalized on construction."""
        rid = make_resource("w1").id
        context = ScanContext(
            SUBSCRIPTION_ID,
            diagnostics={rid.upper(): True},
            private_endpoints={rid: {"/pe/1"}},
        )

        assert context.has_diagnostics(rid.lower())
        assert context.has_private_endpoint(rid.upper())
        assert context.private_endpoints_for(rid) == frozenset({"/pe/1"})

    def test_unknown_resource(self, empty_context):
        """Unknown resources have neither diagnostics nor endpoints."""
        assert empty_context.has_diagnostics("/subscriptions/x/unknown") is False
        assert empty_context.has_private_endpoint(None) is False
        assert empty_context.private_endpoints_for("/x") == frozenset()

    def test_is_read_only(self):
        """Indices cannot be mutated after construction."""
        context = ScanContext(SUBSCRIPTION_ID, diagnostics={"/a": True})
        with pytest.raises(TypeError):
            context.diagnostics["/b"] = True
        with pytest.raises(AttributeError):
            context.subscription_id = "other"

    def test_source_mapping_changes_do_not_leak(self):
        """The context copies its inputs."""
        source = {"/a": True}
        context = ScanContext(SUBSCRIPTION_ID, diagnostics=source)
        source["/b"] = True
        assert not context.has_diagnostics("/b")


def _client_for(resources, diagnostics, endpoints):
    """AzureClient mock returning per-class management client mocks."""
    resource_client = MagicMock()
    resource_client.resources.list.return_value = resources

    monitor = MagicMock()
    monitor.diagnostic_settings.list.side_effect = lambda rid: diagnostics.get(rid, [])

    network = MagicMock()
    network.private_endpoints.list_by_subscription.return_value = endpoints

    clients = {
        ResourceManagementClient: resource_client,
        MonitorManagementClient: monitor,
        NetworkManagementClient: network,
    }
    azure_client = MagicMock()
    azure_client.get_management_client.side_effect = lambda cls, sub=None: clients[cls]
    return azure_client, monitor


class TestBuildScanContext:
    """Tests for build_scan_context."""

    def test_indexes_diagnostics_and_private_endpoints(self):
        """Diagnostics and private endpoint targets are indexed."""
        r1 = make_resource("w1")
        r2 = make_resource("w2")
        endpoint = SimpleNamespace(
            id="/pe/1",
            private_link_service_connections=[
                SimpleNamespace(private_link_service_id=r2.id.upper())
            ],
            manual_private_link_service_connections=None,
        )
        azure_client, _ = _client_for(
            [r1, r2], {r1.id: [SimpleNamespace(name="to-law")]}, [endpoint]
        )

        context = build_scan_context(azure_client, SUBSCRIPTION_ID)

        assert context.subscription_id == SUBSCRIPTION_ID
        assert context.has_diagnostics(r1.id)
        assert not context.has_diagnostics(r2.id)
        assert context.has_private_endpoint(r2.id)
        assert not context.has_private_endpoint(r1.id)

    def test_manual_connections_are_indexed(self):
        """Manual approval connections count as private endpoints."""
        r1 = make_resource("w1")
        endpoint = SimpleNamespace(
            id="/pe/manual",
            private_link_service_connections=[],
            manual_private_link_service_connections=[
                SimpleNamespace(private_link_service_id=r1.id)
            ],
        )
        azure_client, _ = _client_for([], {}, [endpoint])
        context = build_scan_context(azure_client, SUBSCRIPTION_ID)
        assert context.private_endpoints_for(r1.id) == frozenset({"/pe/manual"})

    def test_restricts_diagnostics_to_resource_types(self):
        """Only resources of the requested types are looked up."""
        wanted = make_resource("w1")
        other = make_resource("vm1", resource_type="Microsoft.Compute/virtualMachines")
        azure_client, monitor = _client_for([wanted, other], {}, [])

        build_scan_context(azure_client, SUBSCRIPTION_ID, resource_types=[STUB_TYPE.lower()])

        looked_up = [c.args[0] for c in monitor.diagnostic_settings.list.call_args_list]
        assert looked_up == [wanted.id]

    def test_failure_raises_scan_context_error(self):
        """A failing listing call yields no partial context."""
        azure_client, monitor = _client_for([make_resource("w1")], {}, [])
        monitor.diagnostic_settings.list.side_effect = RuntimeError("forbidden")

        with pytest.raises(ScanContextError, match="forbidden") as exc_info:
            build_scan_context(azure_client, SUBSCRIPTION_ID)
        assert exc_info.value.subscription_id == SUBSCRIPTION_ID
