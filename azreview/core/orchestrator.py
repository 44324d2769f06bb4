"""
Scan Orchestrator Module
========================

Runs resource scanners concurrently, one resource group at a time, and
aggregates their results.

This module handles:
- Bounded-concurrency fan-out of scanners over daemon threads
- Fail-fast cancellation on the first scanner error
- Optional deadlines and external cancellation
- The subscription-level driver that builds the scan context and walks
  resource groups sequentially

Classes
-------
ScanState
    Lifecycle state of a ScanRun.
ScanRun
    One bounded-concurrency execution of all scanners for a resource group.
ScanReport
    Aggregated results of a full scan.
ScanOrchestrator
    Subscription / resource group driver.

Functions
---------
run_resource_group_scan
    Scan one resource group with a fresh ScanRun.

Example
-------
>>> results = run_resource_group_scan(
...     scanners, "rg-prod", scan_context, concurrency=4
... )
>>> print(f"{len(results)} resources evaluated")

Notes
-----
Scanner threads hand their result lists back through a queue, so a
thread that finishes after its run was aborted never blocks on delivery;
its output is discarded. An aborted run does not wait for its stragglers
and they do not hold up interpreter exit.

See Also
--------
BaseScanner : Scanner interface.
ScanContext : Shared read-only facts.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from azreview.core.base_scanner import BaseScanner, ScannerConfig, ServiceResult
from azreview.core.exceptions import (
    ResourceGroupNotFoundError,
    ScanAbortedError,
    ScanCancelledError,
    ScannerError,
    ScanTimeoutError,
)
from azreview.core.scan_context import ScanContext, build_scan_context

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4

# Upper bound on how long the collector sleeps between cancellation checks
POLL_INTERVAL = 0.1

# (scanner, results, error) as reported by a scanner thread
Outcome = Tuple[BaseScanner, Optional[List[ServiceResult]], Optional[BaseException]]


class ScanState(str, Enum):
    """Lifecycle state of a :class:`ScanRun`."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class ScanRun:
    """
    Bounded-concurrency execution of every scanner for one resource group.

    Parameters
    ----------
    scanners : sequence of BaseScanner
        Initialized scanners to run.
    resource_group : str
        Resource group to scan.
    scan_context : ScanContext
        Shared read-only facts for the subscription.
    concurrency : int, default=0
        Maximum scanners running at once. ``0`` or less means one slot per
        scanner.
    cancel_event : threading.Event, optional
        External cancellation signal. Setting it aborts the run with
        :class:`ScanCancelledError`. The run only reads it.
    timeout : float, optional
        Deadline in seconds for the whole run.

    Attributes
    ----------
    state : ScanState
        Current lifecycle state.
    capacity : int
        Effective concurrency budget.
    cancel_event : threading.Event
        The run's own cancellation signal, set when the run aborts and
        handed to every scanner it starts.

    Notes
    -----
    Every scanner gets a daemon thread that must hold one of ``capacity``
    semaphore permits while it scans. A thread that obtains its permit
    after the run was cancelled returns without scanning and without
    reporting. Outcomes go through an unbounded queue, so a straggler that
    finishes after an abort never blocks, and it never keeps the
    interpreter from exiting.
    """

    def __init__(
        self,
        scanners: Sequence[BaseScanner],
        resource_group: str,
        scan_context: ScanContext,
        concurrency: int = 0,
        cancel_event: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.scanners = list(scanners)
        self.resource_group = resource_group
        self.scan_context = scan_context
        self.capacity = concurrency if concurrency > 0 else len(self.scanners)
        self.external_cancel = cancel_event
        self.cancel_event = threading.Event()
        self.timeout = timeout
        self.state = ScanState.IDLE
        self._permits = threading.BoundedSemaphore(max(self.capacity, 1))
        self._outcomes: queue.Queue[Outcome] = queue.Queue()
        self._results: List[ServiceResult] = []

    @property
    def cancelled(self) -> bool:
        """Whether the run's own cancellation signal is raised."""
        return self.cancel_event.is_set()

    def _externally_cancelled(self) -> bool:
        return self.external_cancel is not None and self.external_cancel.is_set()

    def _run_scanner(self, scanner: BaseScanner) -> Optional[List[ServiceResult]]:
        if self.cancel_event.is_set() or self._externally_cancelled():
            logger.debug(
                f"Skipping {scanner.__class__.__name__} in {self.resource_group}: "
                f"scan cancelled"
            )
            return None
        return scanner.scan(
            self.resource_group, self.scan_context, cancel_event=self.cancel_event
        )

    def _task(self, scanner: BaseScanner) -> None:
        with self._permits:
            try:
                result = self._run_scanner(scanner)
            # Forwarded to the collector, which decides the run's fate
            except BaseException as e:
                self._outcomes.put((scanner, None, e))
            else:
                self._outcomes.put((scanner, result, None))

    def _check_interrupted(self, deadline: Optional[float]) -> None:
        if self._externally_cancelled():
            raise ScanCancelledError(
                f"Scan of resource group {self.resource_group} was cancelled",
                resource_group=self.resource_group,
            )
        if deadline is not None and time.monotonic() >= deadline:
            raise ScanTimeoutError(
                f"Scan of resource group {self.resource_group} timed out "
                f"after {self.timeout} seconds",
                resource_group=self.resource_group,
                details={"timeout_seconds": self.timeout},
            )

    @staticmethod
    def _wait_interval(deadline: Optional[float]) -> float:
        if deadline is None:
            return POLL_INTERVAL
        return max(0.0, min(POLL_INTERVAL, deadline - time.monotonic()))

    def execute(self) -> List[ServiceResult]:
        """
        Run every scanner and collect their results.

        Returns
        -------
        list of ServiceResult
            Concatenated results, in completion order across scanners.

        Raises
        ------
        Exception
            The first error raised by any scanner, unchanged.
        ScanTimeoutError
            If the deadline expires first.
        ScanCancelledError
            If the external cancellation signal is raised.
        ScannerError
            If the run was already executed.
        """
        if self.state is not ScanState.IDLE:
            raise ScannerError(
                f"ScanRun for {self.resource_group} was already executed",
                resource_group=self.resource_group,
            )
        self.state = ScanState.RUNNING

        total = len(self.scanners)
        if total == 0:
            self.state = ScanState.COMPLETED
            return []

        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        logger.debug(
            f"Running {total} scanners on {self.resource_group} "
            f"with concurrency {self.capacity}"
        )

        try:
            for index, scanner in enumerate(self.scanners):
                threading.Thread(
                    target=self._task,
                    args=(scanner,),
                    name=f"scan-{self.resource_group}_{index}",
                    daemon=True,
                ).start()

            received = 0
            while received < total:
                self._check_interrupted(deadline)
                try:
                    scanner, result, error = self._outcomes.get(
                        timeout=self._wait_interval(deadline)
                    )
                except queue.Empty:
                    continue
                if error is not None:
                    logger.error(
                        f"{scanner.__class__.__name__} failed on "
                        f"{self.resource_group}: {error}"
                    )
                    raise error
                if result is None:
                    continue
                self._results.extend(result)
                received += 1
        except BaseException:
            self.state = ScanState.ABORTED
            self.cancel_event.set()
            self._results = []
            raise

        self.state = ScanState.COMPLETED
        logger.debug(
            f"Resource group {self.resource_group}: {len(self._results)} resources"
        )
        return list(self._results)

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"ScanRun(resource_group='{self.resource_group}', "
            f"scanners={len(self.scanners)}, capacity={self.capacity}, "
            f"state='{self.state.value}')"
        )


def run_resource_group_scan(
    scanners: Sequence[BaseScanner],
    resource_group: str,
    scan_context: ScanContext,
    concurrency: int = 0,
    cancel_event: Optional[threading.Event] = None,
    timeout: Optional[float] = None,
) -> List[ServiceResult]:
    """
    Scan one resource group with every scanner.

    Parameters
    ----------
    scanners : sequence of BaseScanner
        Initialized scanners.
    resource_group : str
        Resource group to scan.
    scan_context : ScanContext
        Shared read-only facts for the subscription.
    concurrency : int, default=0
        Concurrency bound; ``0`` or less runs every scanner at once.
    cancel_event : threading.Event, optional
        External cancellation signal.
    timeout : float, optional
        Deadline in seconds.

    Returns
    -------
    list of ServiceResult
        The complete aggregate. Nothing is returned on failure.

    Example
    -------
    >>> results = run_resource_group_scan(scanners, "rg-prod", ctx, concurrency=2)
    """
    run = ScanRun(
        scanners,
        resource_group,
        scan_context,
        concurrency=concurrency,
        cancel_event=cancel_event,
        timeout=timeout,
    )
    return run.execute()


@dataclass
class ScanReport:
    """
    Aggregated results of a scan across subscriptions.

    Parameters
    ----------
    service_results : list of ServiceResult
        Per-resource recommendation outcomes.
    defender_results : list
        Defender for Cloud plan configuration, when requested.
    advisor_results : list
        Azure Advisor recommendations, when requested.
    subscriptions : list of dict
        Scanned subscriptions (``subscription_id`` / ``display_name``).
    resource_groups_scanned : list of str
        Resource groups that completed, as ``<subscription>/<group>``.
    scan_time : datetime, optional
        When the scan started.
    """

    service_results: List[ServiceResult] = field(default_factory=list)
    defender_results: List[Any] = field(default_factory=list)
    advisor_results: List[Any] = field(default_factory=list)
    subscriptions: List[Dict[str, str]] = field(default_factory=list)
    resource_groups_scanned: List[str] = field(default_factory=list)
    scan_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_resources(self) -> int:
        """Number of resources evaluated."""
        return len(self.service_results)

    @property
    def total_recommendations(self) -> int:
        """Number of recommendation outcomes."""
        return sum(len(r.recommendations) for r in self.service_results)

    @property
    def total_violations(self) -> int:
        """Number of violated recommendations."""
        return sum(len(r.violations) for r in self.service_results)

    @property
    def total_unevaluated(self) -> int:
        """Number of recommendations that could not be evaluated."""
        return sum(len(r.unevaluated) for r in self.service_results)

    @property
    def is_empty(self) -> bool:
        """Whether there is nothing to report."""
        return not (self.service_results or self.defender_results or self.advisor_results)

    def violations_by_category(self) -> Dict[str, int]:
        """Count violations per category."""
        counts = Counter(
            v.category.value for r in self.service_results for v in r.violations
        )
        return dict(sorted(counts.items()))

    def violations_by_severity(self) -> Dict[str, int]:
        """Count violations per severity."""
        counts = Counter(
            v.severity.value for r in self.service_results for v in r.violations
        )
        return dict(sorted(counts.items()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "scan_time": self.scan_time.isoformat(),
            "subscriptions": self.subscriptions,
            "resource_groups_scanned": self.resource_groups_scanned,
            "summary": {
                "total_resources": self.total_resources,
                "total_recommendations": self.total_recommendations,
                "total_violations": self.total_violations,
                "total_unevaluated": self.total_unevaluated,
                "violations_by_category": self.violations_by_category(),
                "violations_by_severity": self.violations_by_severity(),
            },
            "service_results": [r.to_dict() for r in self.service_results],
            "defender_results": [r.to_dict() for r in self.defender_results],
            "advisor_results": [r.to_dict() for r in self.advisor_results],
        }

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"ScanReport(subscriptions={len(self.subscriptions)}, "
            f"resources={self.total_resources}, "
            f"violations={self.total_violations})"
        )


class ScanOrchestrator:
    """
    Drives a full scan: subscriptions, resource groups, scanners.

    For each subscription the orchestrator resolves the resource groups,
    builds the scan context once, initializes every scanner, then runs one
    :class:`ScanRun` per resource group in sequence. Defender and Advisor
    findings are collected afterwards when their scanners are supplied.

    Parameters
    ----------
    azure_client : AzureClient
        Credential handle and client factory.
    scanners : sequence of BaseScanner
        Resource scanners to run.
    concurrency : int, default=4
        Scanners running at once per resource group (``<= 0``: all).
    timeout : float, optional
        Overall deadline in seconds for the whole scan.
    enable_detailed_scan : bool, default=False
        Passed to scanners through :class:`ScannerConfig`.
    defender_scanner : DefenderScanner, optional
        Collects Defender for Cloud plans per subscription.
    advisor_scanner : AdvisorScanner, optional
        Collects Azure Advisor recommendations per subscription.
    cancel_event : threading.Event, optional
        External cancellation signal shared with every scanner.
    context_builder : callable, optional
        ``(azure_client, subscription_id, resource_types) -> ScanContext``.
    progress_callback : callable, optional
        Called with ``(resource_group, status)``; status is one of
        ``scanning``, ``complete``, ``error``.

    Examples
    --------
    >>> orchestrator = ScanOrchestrator(client, get_scanners(), concurrency=4)
    >>> report = orchestrator.scan(subscription_id="...", resource_group="rg-prod")
    >>> print(f"{report.total_violations} violations")
    """

    def __init__(
        self,
        azure_client: Any,
        scanners: Sequence[BaseScanner],
        concurrency: int = DEFAULT_CONCURRENCY,
        timeout: Optional[float] = None,
        enable_detailed_scan: bool = False,
        defender_scanner: Any = None,
        advisor_scanner: Any = None,
        cancel_event: Optional[threading.Event] = None,
        context_builder: Optional[Callable[..., ScanContext]] = None,
        progress_callback: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.azure_client = azure_client
        self.scanners = list(scanners)
        self.concurrency = concurrency
        self.timeout = timeout
        self.enable_detailed_scan = enable_detailed_scan
        self.defender_scanner = defender_scanner
        self.advisor_scanner = advisor_scanner
        self.cancel_event = cancel_event or threading.Event()
        self.context_builder = context_builder or build_scan_context
        self.progress_callback = progress_callback

        logger.debug(
            f"Initialized ScanOrchestrator with {len(self.scanners)} scanners, "
            f"concurrency={concurrency}"
        )

    def _notify(self, resource_group: str, status: str) -> None:
        if self.progress_callback:
            self.progress_callback(resource_group, status)

    def resource_types(self) -> List[str]:
        """Union of the resource types owned by the configured scanners."""
        types = set()
        for scanner in self.scanners:
            types.update(scanner.resource_types())
        return sorted(types)

    def resolve_subscriptions(
        self, subscription_id: Optional[str] = None
    ) -> List[Dict[str, str]]:
        """
        Resolve the subscriptions to scan.

        Parameters
        ----------
        subscription_id : str, optional
            Explicit subscription; every visible subscription when omitted.

        Returns
        -------
        list of dict
            ``subscription_id`` / ``display_name`` pairs.
        """
        if subscription_id:
            name = self.azure_client.get_subscription_name(subscription_id)
            return [{"subscription_id": subscription_id, "display_name": name}]
        return self.azure_client.list_subscriptions()

    def resolve_resource_groups(
        self,
        subscription_id: str,
        resource_group: Optional[str] = None,
    ) -> List[str]:
        """
        Resolve the resource groups to scan in a subscription.

        Raises
        ------
        ResourceGroupNotFoundError
            If ``resource_group`` was requested but does not exist.
        """
        if resource_group:
            if not self.azure_client.resource_group_exists(subscription_id, resource_group):
                raise ResourceGroupNotFoundError(
                    f"Resource group {resource_group} does not exist",
                    subscription_id=subscription_id,
                    details={"resource_group": resource_group},
                )
            return [resource_group]
        return self.azure_client.list_resource_groups(subscription_id)

    def _remaining(self, deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ScanTimeoutError(
                f"Scan timed out after {self.timeout} seconds",
                details={"timeout_seconds": self.timeout},
            )
        return remaining

    def scan(
        self,
        subscription_id: Optional[str] = None,
        resource_group: Optional[str] = None,
    ) -> ScanReport:
        """
        Scan subscriptions and resource groups.

        Parameters
        ----------
        subscription_id : str, optional
            Subscription to scan; all visible subscriptions when omitted.
        resource_group : str, optional
            Single resource group to scan. Requires ``subscription_id``.

        Returns
        -------
        ScanReport
            Complete, error-free aggregate.

        Raises
        ------
        ValueError
            If a resource group is given without a subscription.
        AzureClientError
            On credential, enumeration or missing resource group errors.
        ScanContextError
            If the scan context cannot be built.
        ScannerInitError
            If a scanner cannot be initialized.
        ScanAbortedError
            If a resource group scan or the Defender / Advisor collection
            fails; carries the partial report.
        """
        if resource_group and not subscription_id:
            raise ValueError("A resource group can only be used with a subscription id")

        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        report = ScanReport()

        subscriptions = self.resolve_subscriptions(subscription_id)
        logger.info(f"Scanning {len(subscriptions)} subscriptions")

        for subscription in subscriptions:
            report.subscriptions.append(subscription)
            self._scan_subscription(subscription, resource_group, report, deadline)

        logger.info(
            f"Scan complete: {report.total_resources} resources, "
            f"{report.total_violations} violations"
        )
        return report

    def _scan_subscription(
        self,
        subscription: Dict[str, str],
        resource_group: Optional[str],
        report: ScanReport,
        deadline: Optional[float],
    ) -> None:
        subscription_id = subscription["subscription_id"]
        resource_groups = self.resolve_resource_groups(subscription_id, resource_group)

        config = ScannerConfig(
            subscription_id=subscription_id,
            subscription_name=subscription.get("display_name", ""),
            azure_client=self.azure_client,
            resource_group=resource_group,
            cancel_event=self.cancel_event,
            enable_detailed_scan=self.enable_detailed_scan,
        )

        scan_context = self.context_builder(
            self.azure_client, subscription_id, self.resource_types()
        )

        for scanner in self.scanners:
            scanner.init(config)

        for group in resource_groups:
            logger.info(f"Scanning Resource Group {group}")
            self._notify(group, "scanning")
            try:
                results = run_resource_group_scan(
                    self.scanners,
                    group,
                    scan_context,
                    concurrency=self.concurrency,
                    cancel_event=self.cancel_event,
                    timeout=self._remaining(deadline),
                )
            except Exception as e:
                self._notify(group, "error")
                raise ScanAbortedError(
                    f"Scan of resource group {group} failed: {e}",
                    resource_group=group,
                    partial_report=report,
                    cause=e,
                    details={"subscription_id": subscription_id},
                ) from e
            report.service_results.extend(results)
            report.resource_groups_scanned.append(f"{subscription_id}/{group}")
            self._notify(group, "complete")

        try:
            if self.defender_scanner is not None:
                self.defender_scanner.init(config)
                report.defender_results.extend(self.defender_scanner.list_configuration())

            if self.advisor_scanner is not None:
                self.advisor_scanner.init(config)
                report.advisor_results.extend(self.advisor_scanner.list_recommendations())
        except Exception as e:
            raise ScanAbortedError(
                f"Subscription-level collection failed for {subscription_id}: {e}",
                partial_report=report,
                cause=e,
                details={"subscription_id": subscription_id},
            ) from e

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"ScanOrchestrator(scanners={len(self.scanners)}, "
            f"concurrency={self.concurrency})"
        )
