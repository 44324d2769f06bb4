"""
Tests for the scan orchestrator.
"""

import os
import subprocess
import sys
import textwrap
import threading
import time
from operator import attrgetter
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from azreview.core.exceptions import (
    ResourceFetchError,
    ResourceGroupNotFoundError,
    ScanAbortedError,
    ScanCancelledError,
    ScannerError,
    ScannerInitError,
    ScanTimeoutError,
)
from azreview.core.orchestrator import (
    DEFAULT_CONCURRENCY,
    ScanOrchestrator,
    ScanReport,
    ScanRun,
    ScanState,
    run_resource_group_scan,
)

from conftest import (
    STUB_TYPE,
    SUBSCRIPTION_ID,
    ConcurrencyTracker,
    StubScanner,
    make_resource,
)


def _names(results):
    return sorted(r.service_name for r in results)


class TestScanRun:
    """Tests for ScanRun and run_resource_group_scan."""

    def test_no_scanners_returns_empty(self, empty_context):
        """A run with no scanners completes immediately."""
        assert run_resource_group_scan([], "rg-test", empty_context, concurrency=4) == []

    def test_results_are_concatenated(self, make_scanner, empty_context):
        """Every scanner's results appear exactly once."""
        scanners = [
            make_scanner(label="a", resources=[make_resource("a1"), make_resource("a2")]),
            make_scanner(label="b", resources=[]),
            make_scanner(label="c", resources=[make_resource("c1"), make_resource("c2"),
                                               make_resource("c3")]),
        ]

        results = run_resource_group_scan(scanners, "rg-test", empty_context, concurrency=2)

        assert len(results) == 5
        assert _names(results) == ["a1", "a2", "c1", "c2", "c3"]
        assert all(len(r.recommendations) == 1 for r in results)

    def test_concurrency_bound(self, make_scanner, empty_context):
        """No more than ``concurrency`` scanners run at once."""
        tracker = ConcurrencyTracker()
        scanners = [
            make_scanner(
                label=f"s{i}",
                resources=[make_resource(f"r{i}")],
                delay=0.05,
                on_start=tracker.start,
                on_finish=tracker.stop,
            )
            for i in range(6)
        ]

        results = run_resource_group_scan(scanners, "rg-test", empty_context, concurrency=2)

        assert len(results) == 6
        assert 1 <= tracker.peak <= 2

    @pytest.mark.parametrize("concurrency", [0, -1])
    def test_non_positive_concurrency_runs_all_at_once(
        self, make_scanner, empty_context, concurrency
    ):
        """``concurrency <= 0`` behaves like ``len(scanners)``."""
        barrier = threading.Barrier(3)
        scanners = [
            make_scanner(
                label=f"s{i}",
                resources=[make_resource(f"r{i}")],
                on_start=lambda s: barrier.wait(timeout=2),
            )
            for i in range(3)
        ]

        run = ScanRun(scanners, "rg-test", empty_context, concurrency=concurrency)
        assert run.capacity == 3
        # The barrier only releases if all three are running together
        assert len(run.execute()) == 3

    def test_throttled_scanner_fails_fast(self, make_scanner, empty_context):
        """
        Three scanners at concurrency 2: A lists two resources (one
        violating) and is still in flight, B lists none, C is throttled.
        The error comes back promptly with an empty aggregate, and A's late
        result is delivered without blocking.
        """
        gate = threading.Event()
        a = make_scanner(
            label="a",
            resources=[make_resource("a1"), make_resource("a2", tags={"env": "prod"})],
            gate=gate,
        )
        b = make_scanner(label="b", resources=[])
        c = make_scanner(label="c", error=RuntimeError("throttled"))
        run = ScanRun([a, b, c], "rg-throttled", empty_context, concurrency=2)

        started = time.monotonic()
        try:
            with pytest.raises(ResourceFetchError, match="throttled"):
                run.execute()
            elapsed = time.monotonic() - started
        finally:
            gate.set()

        assert elapsed < 2
        assert run.state is ScanState.ABORTED
        assert run.cancelled
        assert run._results == []

        workers = [t for t in threading.enumerate() if t.name.startswith("scan-rg-throttled")]
        for worker in workers:
            worker.join(timeout=2)
        assert not any(worker.is_alive() for worker in workers)

    def test_straggler_threads_are_daemons(self, make_scanner, empty_context):
        """A blocked scanner left behind by an abort cannot hold up exit."""
        gate = threading.Event()
        straggler = make_scanner(label="slow", gate=gate)
        failing = make_scanner(label="bad", error=RuntimeError("throttled"), delay=0.05)
        run = ScanRun([straggler, failing], "rg-straggler", empty_context, concurrency=2)

        try:
            with pytest.raises(ResourceFetchError):
                run.execute()
            workers = [
                t for t in threading.enumerate() if t.name.startswith("scan-rg-straggler")
            ]
            assert workers
            assert all(worker.daemon for worker in workers)
        finally:
            gate.set()

    def test_abort_does_not_wait_for_stragglers_at_exit(self):
        """A process whose scan aborted exits without waiting on a stuck call."""
        script = textwrap.dedent(
            """
            import threading
            import time

            from azreview.core.orchestrator import run_resource_group_scan
            from azreview.core.scan_context import ScanContext

            class Stuck:
                def scan(self, resource_group, scan_context, cancel_event=None):
                    threading.Event().wait(60)
                    return []

            class Throttled:
                def scan(self, resource_group, scan_context, cancel_event=None):
                    time.sleep(0.2)
                    raise RuntimeError("throttled")

            try:
                run_resource_group_scan(
                    [Stuck(), Throttled()], "rg-test", ScanContext("sub"), concurrency=2
                )
            except RuntimeError:
                pass
            """
        )
        root = str(Path(__file__).resolve().parents[1])
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [root, env.get("PYTHONPATH")]))

        started = time.monotonic()
        completed = subprocess.run(
            [sys.executable, "-c", script], env=env, capture_output=True, timeout=45
        )

        assert completed.returncode == 0, completed.stderr.decode()
        assert time.monotonic() - started < 30

    def test_failed_run_leaves_caller_event_untouched(self, make_scanner, empty_context):
        """An abort is local to its run; the next run on the same signal succeeds."""
        shared = threading.Event()
        failing = make_scanner(label="bad", error=RuntimeError("throttled"))
        healthy = make_scanner(label="ok", resources=[make_resource("ok1")])

        with pytest.raises(ResourceFetchError):
            run_resource_group_scan(
                [failing], "rg-test", empty_context, concurrency=1, cancel_event=shared
            )

        assert not shared.is_set()
        results = run_resource_group_scan(
            [healthy], "rg-test", empty_context, concurrency=1, cancel_event=shared
        )
        assert _names(results) == ["ok1"]

    def test_scanners_receive_the_run_signal(self, make_scanner, empty_context):
        """Scanners are handed the run's own event, not the caller's."""
        seen = []

        class Recording(StubScanner):
            def scan(self, resource_group, scan_context, cancel_event=None):
                seen.append(cancel_event)
                return super().scan(resource_group, scan_context, cancel_event)

        scanner = Recording()
        scanner.init(make_scanner().config)
        shared = threading.Event()
        run = ScanRun([scanner], "rg-test", empty_context, cancel_event=shared)
        run.execute()

        assert seen == [run.cancel_event]
        assert run.cancel_event is not shared

    def test_error_discards_collected_results(self, make_scanner, empty_context):
        """Successful results received before the failure are not returned."""
        ok = make_scanner(label="ok", resources=[make_resource("ok1")])
        failing = make_scanner(label="bad", error=RuntimeError("boom"), delay=0.1)
        run = ScanRun([ok, failing], "rg-test", empty_context, concurrency=2)

        with pytest.raises(ResourceFetchError):
            run.execute()
        assert run._results == []

    def test_scanner_error_propagates_unchanged(self, make_scanner, empty_context):
        """Errors already typed by the scanner are re-raised as-is."""
        error = ResourceFetchError("listing failed", resource_type=STUB_TYPE)
        scanner = make_scanner(error=error)

        with pytest.raises(ResourceFetchError) as exc_info:
            run_resource_group_scan([scanner], "rg-test", empty_context, concurrency=1)
        assert exc_info.value is error

    def test_cancelled_task_skips_scanning(self, make_scanner, empty_context):
        """A task started after cancellation does not scan or report."""
        scanner = make_scanner(resources=[make_resource("r1")])
        run = ScanRun([scanner], "rg-test", empty_context)
        run.cancel_event.set()

        assert run._run_scanner(scanner) is None
        assert scanner.list_calls == 0

    def test_timeout(self, make_scanner, empty_context):
        """A stuck scanner trips the deadline."""
        gate = threading.Event()
        scanner = make_scanner(gate=gate)
        try:
            with pytest.raises(ScanTimeoutError):
                run_resource_group_scan(
                    [scanner], "rg-test", empty_context, concurrency=1, timeout=0.2
                )
        finally:
            gate.set()

    def test_external_cancellation(self, make_scanner, empty_context):
        """Setting the shared event aborts the run."""
        gate = threading.Event()
        cancel_event = threading.Event()
        scanner = make_scanner(gate=gate)
        timer = threading.Timer(0.1, cancel_event.set)
        timer.start()
        try:
            with pytest.raises(ScanCancelledError):
                run_resource_group_scan(
                    [scanner], "rg-test", empty_context,
                    concurrency=1, cancel_event=cancel_event,
                )
        finally:
            gate.set()
            timer.cancel()

    def test_executes_once(self, make_scanner, empty_context):
        """A ScanRun cannot be reused."""
        run = ScanRun([make_scanner()], "rg-test", empty_context)
        run.execute()
        assert run.state is ScanState.COMPLETED
        with pytest.raises(ScannerError, match="already executed"):
            run.execute()

    def test_repeated_runs_are_equivalent(self, make_scanner, empty_context):
        """Fresh runs over the same inputs produce the same results."""
        scanners = [
            make_scanner(label="a", resources=[make_resource("a1")], delay=0.02),
            make_scanner(label="b", resources=[make_resource("b1"), make_resource("b2")]),
        ]

        first = run_resource_group_scan(scanners, "rg-test", empty_context, concurrency=2)
        second = run_resource_group_scan(scanners, "rg-test", empty_context, concurrency=1)

        key = attrgetter("resource_id")
        assert sorted(first, key=key) == sorted(second, key=key)


class FlakyScanner(StubScanner):
    """Fails only in one resource group."""

    def __init__(self, failing_group, **kwargs):
        self.failing_group = failing_group
        super().__init__(**kwargs)

    def _list_resources(self, resource_group):
        if resource_group == self.failing_group:
            raise RuntimeError(f"throttled in {resource_group}")
        return [make_resource(f"{resource_group}-w1", resource_group=resource_group)]


class BrokenScanner(StubScanner):
    """Cannot create its management client."""

    def _create_client(self, config):
        raise RuntimeError("no provider registered")


@pytest.fixture
def context_builder(empty_context):
    """Scan context builder returning an empty context."""
    return MagicMock(return_value=empty_context)


class TestScanOrchestrator:
    """Tests for ScanOrchestrator."""

    def test_defaults(self, azure_client):
        """Default concurrency matches the CLI default."""
        orchestrator = ScanOrchestrator(azure_client, [])
        assert orchestrator.concurrency == DEFAULT_CONCURRENCY == 4

    def test_scan_single_resource_group(self, azure_client, context_builder):
        """An explicit subscription and resource group are scanned."""
        scanner = StubScanner(resources=[make_resource("w1"), make_resource("w2", tags={"a": "b"})])
        orchestrator = ScanOrchestrator(
            azure_client, [scanner], context_builder=context_builder
        )

        report = orchestrator.scan(SUBSCRIPTION_ID, "rg-test")

        azure_client.resource_group_exists.assert_called_once_with(SUBSCRIPTION_ID, "rg-test")
        azure_client.list_resource_groups.assert_not_called()
        context_builder.assert_called_once_with(azure_client, SUBSCRIPTION_ID, [STUB_TYPE])
        assert report.subscriptions == [
            {"subscription_id": SUBSCRIPTION_ID, "display_name": "Test Subscription"}
        ]
        assert report.resource_groups_scanned == [f"{SUBSCRIPTION_ID}/rg-test"]
        assert report.total_resources == 2
        assert report.total_violations == 1
        assert report.violations_by_category() == {"governance": 1}
        assert scanner.config.subscription_name == "Test Subscription"

    def test_resource_group_requires_subscription(self, azure_client, context_builder):
        """A resource group filter without a subscription is rejected."""
        orchestrator = ScanOrchestrator(azure_client, [], context_builder=context_builder)
        with pytest.raises(ValueError):
            orchestrator.scan(resource_group="rg-test")

    def test_missing_resource_group(self, azure_client, context_builder):
        """A resource group that does not exist is reported."""
        azure_client.resource_group_exists.return_value = False
        orchestrator = ScanOrchestrator(
            azure_client, [StubScanner()], context_builder=context_builder
        )
        with pytest.raises(ResourceGroupNotFoundError):
            orchestrator.scan(SUBSCRIPTION_ID, "rg-missing")
        context_builder.assert_not_called()

    def test_enumerates_subscriptions_and_groups(self, azure_client, context_builder):
        """Without filters every subscription and resource group is scanned."""
        azure_client.list_resource_groups.return_value = ["rg-a", "rg-b"]
        statuses = []
        orchestrator = ScanOrchestrator(
            azure_client,
            [FlakyScanner(failing_group=None)],
            context_builder=context_builder,
            progress_callback=lambda group, status: statuses.append((group, status)),
        )

        report = orchestrator.scan()

        azure_client.list_subscriptions.assert_called_once()
        assert _names(report.service_results) == ["rg-a-w1", "rg-b-w1"]
        assert statuses == [
            ("rg-a", "scanning"), ("rg-a", "complete"),
            ("rg-b", "scanning"), ("rg-b", "complete"),
        ]

    def test_abort_carries_partial_report(self, azure_client, context_builder):
        """A failing resource group aborts with the completed groups attached."""
        azure_client.list_resource_groups.return_value = ["rg-a", "rg-b", "rg-c"]
        statuses = []
        orchestrator = ScanOrchestrator(
            azure_client,
            [FlakyScanner(failing_group="rg-b")],
            context_builder=context_builder,
            progress_callback=lambda group, status: statuses.append((group, status)),
        )

        with pytest.raises(ScanAbortedError) as exc_info:
            orchestrator.scan(SUBSCRIPTION_ID)

        error = exc_info.value
        assert error.resource_group == "rg-b"
        assert isinstance(error.cause, ResourceFetchError)
        assert isinstance(error.partial_report, ScanReport)
        assert error.partial_report.resource_groups_scanned == [f"{SUBSCRIPTION_ID}/rg-a"]
        assert _names(error.partial_report.service_results) == ["rg-a-w1"]
        assert ("rg-c", "scanning") not in statuses
        assert statuses[-1] == ("rg-b", "error")

    def test_scan_after_abort_starts_clean(self, azure_client, context_builder):
        """An aborted scan does not poison the next one."""
        scanner = FlakyScanner(failing_group="rg-test")
        orchestrator = ScanOrchestrator(
            azure_client, [scanner], context_builder=context_builder
        )

        with pytest.raises(ScanAbortedError):
            orchestrator.scan(SUBSCRIPTION_ID, "rg-test")
        assert not orchestrator.cancel_event.is_set()

        scanner.failing_group = None
        report = orchestrator.scan(SUBSCRIPTION_ID, "rg-test")

        assert _names(report.service_results) == ["rg-test-w1"]

    def test_defender_failure_carries_partial_report(self, azure_client, context_builder):
        """Completed resource groups survive a failing subscription-level collector."""
        defender = MagicMock()
        defender.list_configuration.side_effect = RuntimeError("pricings unavailable")
        orchestrator = ScanOrchestrator(
            azure_client,
            [FlakyScanner(failing_group=None)],
            defender_scanner=defender,
            context_builder=context_builder,
        )

        with pytest.raises(ScanAbortedError, match="pricings unavailable") as exc_info:
            orchestrator.scan(SUBSCRIPTION_ID, "rg-test")

        error = exc_info.value
        assert isinstance(error.cause, RuntimeError)
        assert error.partial_report.resource_groups_scanned == [f"{SUBSCRIPTION_ID}/rg-test"]
        assert _names(error.partial_report.service_results) == ["rg-test-w1"]

    def test_scanner_init_failure_is_fatal(self, azure_client, context_builder):
        """A scanner that cannot initialize stops the scan."""
        orchestrator = ScanOrchestrator(
            azure_client, [BrokenScanner()], context_builder=context_builder
        )
        with pytest.raises(ScannerInitError, match="no provider registered"):
            orchestrator.scan(SUBSCRIPTION_ID)

    def test_defender_and_advisor(self, azure_client, context_builder):
        """Out-of-band collectors run once per subscription."""
        defender = MagicMock()
        defender.list_configuration.return_value = ["plan"]
        advisor = MagicMock()
        advisor.list_recommendations.return_value = ["advice"]
        orchestrator = ScanOrchestrator(
            azure_client,
            [StubScanner()],
            defender_scanner=defender,
            advisor_scanner=advisor,
            context_builder=context_builder,
        )

        report = orchestrator.scan(SUBSCRIPTION_ID, "rg-test")

        defender.init.assert_called_once()
        config = defender.init.call_args.args[0]
        assert config.subscription_id == SUBSCRIPTION_ID
        assert config.resource_group == "rg-test"
        assert report.defender_results == ["plan"]
        assert report.advisor_results == ["advice"]

    def test_detailed_scan_flag_reaches_scanners(self, azure_client, context_builder):
        """Scanner configuration carries the detailed scan toggle."""
        scanner = StubScanner()
        orchestrator = ScanOrchestrator(
            azure_client,
            [scanner],
            enable_detailed_scan=True,
            context_builder=context_builder,
        )
        orchestrator.scan(SUBSCRIPTION_ID, "rg-test")
        assert scanner.config.enable_detailed_scan is True
        assert scanner.config.cancel_event is orchestrator.cancel_event
