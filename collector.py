"""
Single-host neighbor collection.

For one configured host the collector walks the host's ordered command
chain: run the command over SSH, parse the output, and stop at the first
successful parse. A parse that yields zero neighbors is still a success; a
quiet device is not a reason to keep probing.
"""

import logging
import time

from commands import neighbor_commands_for_host
from constants import DEFAULT_COMMAND_TIMEOUT
from parsers import ParseError, parse_neighbor_output
from router_base import get_router

log = logging.getLogger(__name__)

SUMMARY_CANCELLED = "cancelled"


class CollectAttempt:
    """One command attempt against a host."""

    def __init__(self, spec, stdout="", stderr="", exec_error="", parse_error="", elapsed=0.0):

        self.spec = spec
        self.stdout = stdout
        self.stderr = stderr
        self.exec_error = exec_error
        self.parse_error = parse_error
        self.elapsed = elapsed
        self.parsed = None


    @property
    def succeeded(self):

        return self.parsed is not None


class CollectSuccess:
    """A host whose command chain produced a parsed result (possibly with zero neighbors)."""

    def __init__(self, host, spec, parsed, stdout="", stderr="", elapsed=0.0):

        self.host = host
        self.spec = spec
        self.parsed = parsed
        self.stdout = stdout
        self.stderr = stderr
        self.elapsed = elapsed


    def __repr__(self):

        return f"CollectSuccess({self.host.host!r}, spec={self.spec.name!r}, entries={len(self.parsed.entries)})"


class CollectFailure:
    """A host where no command spec produced a successful parse."""

    def __init__(self, host, attempts=None, summary="", cancelled=False):

        self.host = host
        self.attempts = attempts or []
        self.summary = summary
        self.cancelled = cancelled


    def __repr__(self):

        return f"CollectFailure({self.host.host!r}, {self.summary!r})"


def summarize_attempts(attempts):
    """
    Summarize a failed chain for display.

    Prefers the last exec error, then the last parse error, then a generic message.
    """

    for attempt in reversed(attempts):
        if attempt.exec_error:
            return f"ssh failed: {attempt.exec_error}"
    for attempt in reversed(attempts):
        if attempt.parse_error:
            return f"parse failed: {attempt.parse_error}"
    return "all neighbor command attempts failed"


class HostCollector:
    """Runs one host's command chain with first-success-wins semantics."""

    def __init__(self, router_factory=get_router, parser=parse_neighbor_output,
                 default_timeout=DEFAULT_COMMAND_TIMEOUT, router_options=None):
        """
        Initialize collector.

        Args:
            router_factory: Callable(device, default_timeout=..., **options) -> Router_Base.
            parser: Callable(parser_id, local_device, output) -> ParseResult.
            default_timeout: Seconds per attempt when a spec has no timeout.
            router_options: Extra keyword arguments for the router factory.
        """

        self.router_factory = router_factory
        self.parser = parser
        self.default_timeout = default_timeout
        self.router_options = dict(router_options or {})


    def collect(self, device, cancel_event=None):
        """
        Collect neighbors from one host.

        Args:
            device: DeviceConfig of the host.
            cancel_event: threading.Event signalling cancellation.

        Returns:
            CollectSuccess or CollectFailure.
        """

        host_key = (device.host or "").strip()
        if not host_key:
            return CollectFailure(device, summary="empty host name")

        specs = neighbor_commands_for_host(device.device_os, device.neighbor_pref)
        if not specs:
            summary = (f"no neighbor discovery commands for device_os={device.device_os!r} "
                       f"pref={device.neighbor_pref!r}")
            log.warning(f"{host_key}: {summary}")
            return CollectFailure(device, summary=summary)

        attempts = []
        router = self.router_factory(device, default_timeout=self.default_timeout, **self.router_options)
        with router:
            for attempt in self.iter_attempts(router, host_key, specs, cancel_event):
                attempts.append(attempt)
                if attempt.succeeded:
                    log.info(f"{host_key}: {attempt.spec.name} -> {len(attempt.parsed.entries)} neighbor(s)")
                    return CollectSuccess(
                        host=device,
                        spec=attempt.spec,
                        parsed=attempt.parsed,
                        stdout=attempt.stdout,
                        stderr=attempt.stderr,
                        elapsed=attempt.elapsed,
                    )

        if cancel_event is not None and cancel_event.is_set():
            log.info(f"{host_key}: collection cancelled after {len(attempts)} attempt(s)")
            return CollectFailure(device, attempts, summary=SUMMARY_CANCELLED, cancelled=True)

        summary = summarize_attempts(attempts)
        log.warning(f"{host_key}: {summary}")
        return CollectFailure(device, attempts, summary=summary)


    def iter_attempts(self, router, host_key, specs, cancel_event=None):
        """
        Yield one CollectAttempt per spec until one parses.

        Generation stops right after the first successful attempt and before
        any spec once cancellation is requested. Failed specs are never retried.
        """

        for spec in specs:
            if cancel_event is not None and cancel_event.is_set():
                return

            start = time.monotonic()
            out = router.run_command(spec.command, timeout=spec.timeout or self.default_timeout,
                                     cancel_event=cancel_event)
            attempt = CollectAttempt(spec, stdout=out.stdout, stderr=out.stderr)

            if not out.ok:
                attempt.exec_error = out.error
                attempt.elapsed = time.monotonic() - start
                log.debug(f"{host_key}: {spec.name}: exec failed: {out.error}")
                yield attempt
                if out.cancelled:
                    return
                continue

            try:
                attempt.parsed = self.parser(spec.parser_id, host_key, out.stdout)
            except ParseError as e:
                attempt.parse_error = str(e)
                log.debug(f"{host_key}: {spec.name}: parse failed: {e}")
            attempt.elapsed = time.monotonic() - start

            yield attempt
            if attempt.succeeded:
                return
