"""
Fleet collection engine.

Runs the single-host collector across many hosts with a fixed-size worker
pool. Workers pull hosts from a shared queue and push completions to a
result queue; the calling thread is the only consumer of that queue, so the
success/failure lists are only ever touched by one thread.
"""

import logging
import queue
import threading
import time

from collector import CollectFailure, CollectSuccess, HostCollector
from config import ConfigurationError, DeviceConfig
from constants import DEFAULT_COMMAND_TIMEOUT, DEFAULT_CONCURRENCY, VIEW_LAYERED
from export_text import render
from model import build_graph, islands_only_graph

log = logging.getLogger(__name__)

_WORKER_DONE = object()


class DiscoveryResult:
    """Aggregated outcome of one fleet collection run."""

    def __init__(self, successes=None, failures=None, cancelled=False, elapsed=0.0):

        self.successes = successes or []
        self.failures = failures or []
        self.cancelled = cancelled
        self.elapsed = elapsed


    @property
    def parse_results(self):

        return [s.parsed for s in self.successes]


    @property
    def failed_hosts(self):
        """Host keys whose collection failed outright."""

        return {f.host.host: f.summary for f in self.failures}


    def __len__(self):

        return len(self.successes) + len(self.failures)


def collect_for_hosts(inventory, targets, concurrency=DEFAULT_CONCURRENCY, collector=None,
                      cancel_event=None):
    """
    Collect neighbors from every target under bounded concurrency.

    Hosts that are not yet started when cancel_event fires are never started;
    in-flight collectors see the event and return promptly. Completed results
    are always returned.

    Args:
        inventory: Inventory the targets come from.
        targets: DeviceConfig list (de-duplication is the caller's job).
        concurrency: Maximum number of hosts collected at once.
        collector: Object with collect(device, cancel_event); defaults to HostCollector().
        cancel_event: threading.Event signalling cancellation.

    Returns:
        DiscoveryResult. Absent cancellation every target appears exactly once.

    Raises:
        ConfigurationError: If inventory is None.
    """

    if inventory is None:
        raise ConfigurationError("nil inventory: cannot collect without identity context")

    targets = list(targets or [])
    if not targets:
        return DiscoveryResult()

    collector = collector or HostCollector()
    if cancel_event is None:
        cancel_event = threading.Event()
    if concurrency is None or concurrency <= 0:
        concurrency = DEFAULT_CONCURRENCY

    jobs = queue.Queue()
    for device in targets:
        jobs.put(device)
    results = queue.Queue()

    def worker():
        try:
            while not cancel_event.is_set():
                try:
                    device = jobs.get_nowait()
                except queue.Empty:
                    return
                results.put(_collect_one(collector, device, cancel_event))
        finally:
            results.put(_WORKER_DONE)

    n_workers = min(concurrency, len(targets))
    log.info(f"Starting discovery on {len(targets)} host(s) with {n_workers} worker(s)...")
    start = time.monotonic()

    for i in range(n_workers):
        threading.Thread(target=worker, name=f"discovery-worker-{i}", daemon=True).start()

    successes = []
    failures = []
    finished = 0
    while finished < n_workers:
        item = results.get()
        if item is _WORKER_DONE:
            finished += 1
        elif isinstance(item, CollectSuccess):
            successes.append(item)
        else:
            failures.append(item)

    cancelled = cancel_event.is_set()
    elapsed = time.monotonic() - start
    if cancelled:
        log.warning(f"Discovery cancelled: {len(successes)} succeeded, {len(failures)} failed, "
                    f"{len(targets) - len(successes) - len(failures)} not started")
    else:
        log.info(f"Discovery finished in {elapsed:.1f}s: {len(successes)} succeeded, {len(failures)} failed")

    return DiscoveryResult(successes, failures, cancelled=cancelled, elapsed=elapsed)


def _collect_one(collector, device, cancel_event):
    """Run one collector, converting unexpected exceptions into a host failure."""

    try:
        return collector.collect(device, cancel_event)
    except Exception as e:
        log.exception(f"{device.host}: collector crashed")
        return CollectFailure(device, summary=f"collector error: {e}")


class DiscoverySession:
    """
    One operator run: targets, collection result and the graph built from it.

    Holds the last result and graph explicitly so callers can re-render
    without global state.
    """

    def __init__(self, inventory, concurrency=DEFAULT_CONCURRENCY,
                 default_timeout=DEFAULT_COMMAND_TIMEOUT, collector=None):

        if inventory is None:
            raise ConfigurationError("nil inventory")

        self.inventory = inventory
        self.concurrency = concurrency
        self.collector = collector or HostCollector(default_timeout=default_timeout)
        self.targets = []
        self.result = None
        self.graph = None


    def resolve_targets(self, targets):
        """
        Resolve host keys to DeviceConfig objects.

        Returns:
            Tuple of (devices, failures) where failures covers unknown host keys.
        """

        devices = []
        failures = []
        for target in targets or []:
            if isinstance(target, DeviceConfig):
                devices.append(target)
                continue
            device = self.inventory.get(target)
            if device is None:
                failures.append(CollectFailure(DeviceConfig(host=str(target)),
                                               summary="host not found in inventory"))
                continue
            devices.append(device)
        return devices, failures


    def trigger_discovery(self, targets, cancel_event=None):
        """
        Collect neighbors from targets.

        Args:
            targets: Host keys or DeviceConfig objects.
            cancel_event: threading.Event signalling cancellation.

        Returns:
            DiscoveryResult (partial when cancelled).
        """

        devices, unknown = self.resolve_targets(targets)
        for failure in unknown:
            log.warning(f"{failure.host.host}: {failure.summary}")

        result = collect_for_hosts(self.inventory, devices, concurrency=self.concurrency,
                                   collector=self.collector, cancel_event=cancel_event)
        result.failures.extend(unknown)

        self.targets = devices + [f.host for f in unknown]
        self.result = result
        self.graph = None
        return result


    def build_graph(self):
        """
        Build the topology graph from the last discovery result.

        Falls back to rendering the targets as edgeless islands when the
        graph cannot be built, e.g. after a caller cleared `inventory`.
        """

        result = self.result or DiscoveryResult()
        try:
            self.graph = build_graph(self.inventory, self.targets, result.parse_results,
                                     result.failed_hosts)
        except ConfigurationError as e:
            log.error(f"Topology build failed, showing targets as islands: {e}")
            self.graph = islands_only_graph(self.targets)
        return self.graph


    def render(self, view=VIEW_LAYERED, focused_id=None, width=None, rich_glyphs=False):
        """Render the current graph (building it first if needed)."""

        graph = self.graph or self.build_graph()
        return render(graph, view=view, focused_id=focused_id, width=width, rich_glyphs=rich_glyphs)
