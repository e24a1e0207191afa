"""Main entry point for neighbor discovery and topology rendering."""

import argparse
import logging
import signal
import sys
import threading

from config import ConfigurationError, load_inventory
from constants import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_CONCURRENCY,
    DEFAULT_RENDER_WIDTH,
    LOG_FORMAT,
    VIEWS,
    VISUALIZER_BANNER,
    VISUALIZER_TITLE,
)
from engine import DiscoverySession
from export_text import natural_sort_key

log = logging.getLogger(__name__)


def sort_segment_port_key(item):
    """
    Sort key for ((node_id, port), remotes) items using natural sort for ports.

    Args:
        item: Tuple of ((node_id, port), remotes).

    Returns:
        Tuple suitable for natural sorting.
    """

    (node_id, port), _ = item
    return (node_id, natural_sort_key(port))


class TopologyDiscoverer:
    """Discovers and renders network topology for inventory hosts."""

    def __init__(self, session, targets):
        """
        Initialize topology discoverer.

        Args:
            session: DiscoverySession bound to the inventory.
            targets: Host keys to discover.
        """

        self.session = session
        self.targets = targets
        self.cancel_event = threading.Event()


    def collect_data(self):
        """Collect neighbor data from all targets."""

        return self.session.trigger_discovery(self.targets, cancel_event=self.cancel_event)


    def visualize(self, views, focus=None, width=DEFAULT_RENDER_WIDTH, rich_glyphs=False):
        """
        Build the topology graph and print the requested views.

        Args:
            views: View names to render, in order.
            focus: Optional node name query to highlight.
            width: Maximum line width.
            rich_glyphs: Use Unicode glyphs.
        """

        self._print_banner()

        graph = self.session.build_graph()

        focused_id = None
        if focus:
            matches = graph.find_nodes(focus)
            if matches:
                focused_id = matches[0]
                if len(matches) > 1:
                    log.info(f"Focus {focus!r} matches {len(matches)} nodes, using {graph.label_of(focused_id)}")
            else:
                log.warning(f"Focus {focus!r} matches no node")

        for view in views:
            print(self.session.render(view, focused_id=focused_id, width=width, rich_glyphs=rich_glyphs))

        self._print_results(graph)


    def _print_banner(self):
        """Print visualization banner."""

        print(f"\n{VISUALIZER_BANNER}")
        print(VISUALIZER_TITLE)
        print(f"{VISUALIZER_BANNER}\n")


    def _print_results(self, graph):
        """Print per-host failures and shared-segment anomalies."""

        result = self.session.result
        if result is not None and result.cancelled:
            print("NOTE: Discovery was cancelled; topology is partial.")

        if result is not None and result.failures:
            print("\nFailed hosts:")
            for failure in sorted(result.failures, key=lambda f: f.host.host.lower()):
                print(f"  - {failure.host.host}: {failure.summary}")
                for attempt in failure.attempts:
                    reason = attempt.exec_error or attempt.parse_error
                    print(f"      {attempt.spec.name}: {reason}")

        shared = graph.shared_segment_ports()
        if not shared:
            return

        print("\nNOTE: Shared-segment / flooded LLDP detected:")

        for (node_id, port), remotes in sorted(shared.items(), key=sort_segment_port_key):
            remote_names = ", ".join(sorted(graph.label_of(r) for r in remotes))
            print(f"  - {graph.label_of(node_id)}:{port} sees multiple neighbors ({remote_names})")


def parse_args(argv=None):

    parser = argparse.ArgumentParser(description="Discover LLDP/CDP neighbors and render the topology.")
    parser.add_argument("hosts", nargs="*", help="Inventory host keys (default: every host with a device_os)")
    parser.add_argument("--inventory", "-i", required=True, help="YAML inventory file")
    parser.add_argument("--view", choices=VIEWS + ("all",), default="layered", help="View to render")
    parser.add_argument("--width", type=int, default=DEFAULT_RENDER_WIDTH, help="Maximum line width")
    parser.add_argument("--rich", action="store_true", help="Use Unicode glyphs")
    parser.add_argument("--focus", help="Highlight the node matching this name")
    parser.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY, help="Hosts collected at once")
    parser.add_argument("--timeout", type=float, default=DEFAULT_COMMAND_TIMEOUT,
                        help="Default per-command timeout in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for topology discovery."""

    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )

    try:
        inventory = load_inventory(args.inventory)
    except ConfigurationError as e:
        log.error(str(e))
        return 2

    targets = args.hosts or [d.host for d in inventory.network_devices()]
    if not targets:
        log.error("No discovery targets: pass host keys or set device_os in the inventory")
        return 2

    session = DiscoverySession(inventory, concurrency=args.concurrency, default_timeout=args.timeout)
    discoverer = TopologyDiscoverer(session, targets)

    def handle_sigint(sig, frame):
        """Handle SIGINT signal (Ctrl+C) by cancelling discovery."""

        log.info("Received Ctrl+C (SIGINT). Cancelling discovery...")
        discoverer.cancel_event.set()

    signal.signal(signal.SIGINT, handle_sigint)

    discoverer.collect_data()

    views = list(VIEWS) if args.view == "all" else [args.view]
    discoverer.visualize(views, focus=args.focus, width=args.width, rich_glyphs=args.rich)
    return 0


if __name__ == "__main__":

    sys.exit(main())
