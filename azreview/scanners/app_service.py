"""
App Service Scanner Module
==========================

Reviews Azure App Service sites (web, API and function apps).

The site configuration (TLS version, FTP state, always-on) is not part of
the list response. It is fetched with one extra call per site, and only
when the detailed scan is enabled; otherwise the rules that need it
report as unevaluated.

Recommendations
---------------
app-001  diagnostic settings enabled
app-002  SLA
app-003  private endpoints enabled
app-004  CAF naming convention
app-005  HTTPS only
app-006  tags
app-007  minimum TLS 1.2 (detailed scan)
app-008  FTPS only or FTP disabled (detailed scan)
app-009  always on (detailed scan)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List, Tuple

from azure.mgmt.web import WebSiteManagementClient

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
    enum_value,
    fixed_sla,
    has_no_tags,
    private_endpoint_missing,
)

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "Microsoft.Web/sites"


def _site_setting(site: Any, name: str) -> Any:
    # List responses carry a sparse site_config with most fields unset
    config = getattr(site, "site_config", None)
    value = getattr(config, name, None) if config is not None else None
    if value is None:
        raise ValueError(f"{name} not loaded, enable the detailed scan")
    return value


def _https_not_enforced(site: Any, scan_context: Any) -> Tuple[bool, str]:
    return not site.https_only, ""


def _weak_tls(site: Any, scan_context: Any) -> Tuple[bool, str]:
    version = enum_value(_site_setting(site, "min_tls_version"))
    return version < "1.2", version


def _ftp_allowed(site: Any, scan_context: Any) -> Tuple[bool, str]:
    state = enum_value(_site_setting(site, "ftps_state"))
    return state not in ("FtpsOnly", "Disabled"), state


def _always_off(site: Any, scan_context: Any) -> Tuple[bool, str]:
    return not _site_setting(site, "always_on"), ""


def _site_private_endpoints(site: Any) -> List[Any]:
    return list(getattr(site, "private_endpoint_connections", None) or [])


class AppServiceScanner(BaseScanner):
    """
    Scanner for App Service sites.

    Notes
    -----
    ``web_apps.list_by_resource_group`` returns sites without their
    ``site_config``; :meth:`_prepare_resource` loads it when
    ``config.enable_detailed_scan`` is set.
    """

    service_key = "app"

    def resource_types(self) -> FrozenSet[str]:
        return frozenset({RESOURCE_TYPE})

    def _create_client(self, config: ScannerConfig) -> Any:
        return config.azure_client.get_management_client(
            WebSiteManagementClient, config.subscription_id
        )

    def _list_resources(self, resource_group: str) -> List[Any]:
        return self._collect(self.client.web_apps.list_by_resource_group(resource_group))

    def _prepare_resource(self, resource: Any, resource_group: str) -> Any:
        if not self.config.enable_detailed_scan:
            return resource
        self._raise_if_cancelled(resource_group)
        logger.debug(f"Fetching site configuration for {resource.name}")
        resource.site_config = self.client.web_apps.get_configuration(
            resource_group, resource.name
        )
        return resource

    def _build_recommendations(self) -> Dict[str, Recommendation]:
        return build_registry(
            Recommendation(
                recommendation_id="app-001",
                resource_type=RESOURCE_TYPE,
                category=Category.MONITORING,
                severity=Severity.LOW,
                description="App Service should have diagnostic settings enabled",
                evaluate=diagnostics_disabled,
                learn_more_url="https://learn.microsoft.com/en-us/azure/app-service/troubleshoot-diagnostic-logs",
            ),
            Recommendation(
                recommendation_id="app-002",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.HIGH,
                description="App Service should have a SLA",
                evaluate=fixed_sla("99.95%"),
                learn_more_url="https://www.azure.cn/en-us/support/sla/app-service/",
            ),
            Recommendation(
                recommendation_id="app-003",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.HIGH,
                description="App Service should have private endpoints enabled",
                evaluate=private_endpoint_missing(_site_private_endpoints),
                learn_more_url="https://learn.microsoft.com/en-us/azure/app-service/networking/private-endpoint",
            ),
            Recommendation(
                recommendation_id="app-004",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="App Service Name should comply with naming conventions",
                evaluate=caf_prefix("app"),
                learn_more_url=CAF_NAMING_URL,
            ),
            Recommendation(
                recommendation_id="app-005",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.HIGH,
                description="App Service should use HTTPS only",
                evaluate=_https_not_enforced,
                learn_more_url="https://learn.microsoft.com/en-us/azure/app-service/configure-ssl-bindings#enforce-https",
            ),
            Recommendation(
                recommendation_id="app-006",
                resource_type=RESOURCE_TYPE,
                category=Category.GOVERNANCE,
                severity=Severity.LOW,
                description="App Service should have tags",
                evaluate=has_no_tags,
                learn_more_url=TAGS_URL,
            ),
            Recommendation(
                recommendation_id="app-007",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.MEDIUM,
                description="App Service should use TLS 1.2 or later",
                evaluate=_weak_tls,
                learn_more_url="https://learn.microsoft.com/en-us/azure/app-service/configure-ssl-bindings#enforce-tls-versions",
            ),
            Recommendation(
                recommendation_id="app-008",
                resource_type=RESOURCE_TYPE,
                category=Category.SECURITY,
                severity=Severity.MEDIUM,
                description="App Service should disable FTP or allow FTPS only",
                evaluate=_ftp_allowed,
                learn_more_url="https://learn.microsoft.com/en-us/azure/app-service/deploy-ftp#enforce-ftps",
            ),
            Recommendation(
                recommendation_id="app-009",
                resource_type=RESOURCE_TYPE,
                category=Category.RELIABILITY,
                severity=Severity.MEDIUM,
                description="App Service should have Always On enabled",
                evaluate=_always_off,
                learn_more_url="https://learn.microsoft.com/en-us/azure/app-service/configure-common#configure-general-settings",
            ),
        )
