"""
Topology model built from neighbor discovery results.

Matches discovered neighbors to configured hosts using, in order:
  1) exact normalized full-name match
  2) normalized shortname match (only when unambiguous)
  3) identity IP match (router-id / mgmt IP) against the neighbor's IPs
Unmatched neighbors become Discovered nodes. Configured targets without any
adjacency, or whose collection failed, are marked as islands.
"""

import logging
from collections import defaultdict

from config import ConfigurationError, DeviceConfig
from constants import CONFIGURED_NODE_PREFIX, DISCOVERED_NODE_PREFIX
from hostmatch import (
    choose_identity_ips,
    dedup_ips,
    host_name_matches,
    normalize_host_full,
    normalize_host_short,
)

log = logging.getLogger(__name__)

NODE_CONFIGURED = "configured"
NODE_DISCOVERED = "discovered"


class TopologyNode:
    """A device/system in the topology."""

    def __init__(self, id, kind, display_name, device=None, identity_ips=None):

        self.id = id
        self.kind = kind
        self.display_name = display_name
        self.device = device  # DeviceConfig, Configured nodes only
        self.identity_ips = identity_ips or []
        self.discovered_names = []
        self.has_data = False
        self.is_island = False
        self.errors = []
        self.warnings = []


    @property
    def configured(self):

        return self.kind == NODE_CONFIGURED


    @property
    def identity_hint(self):

        return self.identity_ips[0] if self.identity_ips else ""


    @property
    def label(self):

        return (self.display_name or "").strip() or self.id


    def __repr__(self):

        return f"TopologyNode({self.id!r}, island={self.is_island})"


class TopologyEdge:
    """A directional adjacency as observed by the local device."""

    def __init__(self, from_id, to_id, local_port="", remote_port="", capabilities=None,
                 mgmt_ips=None, raw=""):

        self.from_id = from_id
        self.to_id = to_id
        self.local_port = local_port
        self.remote_port = remote_port
        self.capabilities = capabilities or []
        self.mgmt_ips = mgmt_ips or []
        self.raw = raw


    def __repr__(self):

        return f"TopologyEdge({self.from_id}:{self.local_port} -> {self.to_id}:{self.remote_port})"


class TopologyGraph:
    """Nodes plus directed edges. Parallel edges (multiple physical links) are kept."""

    def __init__(self):

        self.nodes = {}
        self.edges = []
        self.adj_out = defaultdict(list)  # node id -> indices into edges
        self.adj_in = defaultdict(list)
        self.warnings = []


    def add_edge(self, edge):

        self.edges.append(edge)
        idx = len(self.edges) - 1
        self.adj_out[edge.from_id].append(idx)
        self.adj_in[edge.to_id].append(idx)
        return edge


    def incident_count(self, node_id):

        return len(self.adj_out.get(node_id, ())) + len(self.adj_in.get(node_id, ()))


    def degree(self, node_id):
        """Undirected degree; a self-loop counts twice."""

        return self.incident_count(node_id)


    def out_edges(self, node_id):

        return [self.edges[i] for i in self.adj_out.get(node_id, ())]


    def node_ids_sorted(self):

        return sorted(self.nodes)


    def sorted_nodes(self):
        """Configured nodes first, then by case-insensitive name, then ID."""

        return sorted(
            self.nodes.values(),
            key=lambda n: (not n.configured, n.label.lower(), n.id),
        )


    def label_of(self, node_id):

        node = self.nodes.get(node_id)
        return node.label if node else node_id


    def find_nodes(self, query):
        """Return sorted node IDs whose label or discovered names contain query (case-insensitive)."""

        q = (query or "").strip().lower()
        if not q:
            return []

        out = []
        for node_id, node in self.nodes.items():
            names = [node.label] + node.discovered_names + node.identity_ips
            if any(q in (name or "").lower() for name in names):
                out.append(node_id)
        return sorted(out)


    def shared_segment_ports(self):
        """
        Detect local ports that see multiple remote devices.

        This indicates shared segments, hub flooding, or network anomalies.

        Returns:
            Dict mapping (node_id, local_port) -> sorted remote node IDs.
        """

        per_port = defaultdict(set)
        for e in self.edges:
            if e.local_port:
                per_port[(e.from_id, e.local_port)].add(e.to_id)

        return {port: sorted(remotes) for port, remotes in per_port.items() if len(remotes) > 1}


class _ConfiguredIndex:
    """Lookup tables for matching discovered names/IPs to configured devices."""

    def __init__(self, devices, warnings):

        self.by_full = {}
        self.by_short = defaultdict(list)
        self.by_ip = {}

        for device in devices:
            full = normalize_host_full(device.host)
            if not full or full in self.by_full:
                continue
            self.by_full[full] = device
            self.by_short[normalize_host_short(full)].append(device)

            for ip in choose_identity_ips(device.router_id, [device.mgmt_ip]):
                owner = self.by_ip.get(ip)
                if owner is None:
                    self.by_ip[ip] = device
                elif owner is not device:
                    warnings.append(
                        f"identity ip {ip} claimed by {owner.host} and {device.host}; keeping {owner.host}"
                    )


    def match_name(self, name, warnings):

        full = normalize_host_full(name)
        if not full:
            return None

        device = self.by_full.get(full)
        if device is not None:
            return device

        candidates = self.by_short.get(normalize_host_short(full), [])
        if len(candidates) == 1:
            return candidates[0]
        if len(candidates) > 1:
            hosts = ", ".join(d.host for d in candidates)
            warnings.append(f"neighbor name {name!r} is ambiguous ({hosts}); not matched by name")
        return None


    def match_ip(self, ips):

        for ip in dedup_ips(ips):
            device = self.by_ip.get(ip)
            if device is not None:
                return device
        return None


def configured_node_id(host):

    return CONFIGURED_NODE_PREFIX + normalize_host_full(host)


def _ensure_configured(graph, device):

    node_id = configured_node_id(device.host)
    node = graph.nodes.get(node_id)
    if node is None:
        node = TopologyNode(
            id=node_id,
            kind=NODE_CONFIGURED,
            display_name=device.host,
            device=device,
            identity_ips=choose_identity_ips(device.router_id, [device.mgmt_ip]),
        )
        graph.nodes[node_id] = node
    return node


def _ensure_discovered(graph, name, mgmt_ips):
    """Create or reuse a Discovered node keyed by remote name, else by its first IP."""

    name = (name or "").strip()
    ips = dedup_ips(mgmt_ips)

    key = normalize_host_full(name)
    if not key:
        if not ips:
            return None
        key = ips[0]
        name = ips[0]

    node_id = DISCOVERED_NODE_PREFIX + key
    node = graph.nodes.get(node_id)
    if node is None:
        node = TopologyNode(id=node_id, kind=NODE_DISCOVERED, display_name=name)
        node.has_data = True
        graph.nodes[node_id] = node

    if name not in node.discovered_names:
        node.discovered_names.append(name)
    node.identity_ips = dedup_ips(node.identity_ips + ips)
    return node


def _resolve_remote(graph, index, entry, ip_matching):
    """Name match first, then identity IPs, else a Discovered node."""

    name = (entry.remote_device or "").strip()

    device = index.match_name(name, graph.warnings)
    if device is not None:
        return _ensure_configured(graph, device)

    if ip_matching:
        device = index.match_ip([name] + list(entry.mgmt_ips))
        if device is not None:
            return _ensure_configured(graph, device)

    return _ensure_discovered(graph, name, entry.mgmt_ips)


def _as_device(inventory, target):

    if isinstance(target, DeviceConfig):
        return target
    return inventory.get(target) or DeviceConfig(host=str(target))


def _failure_keys(failures):

    if not failures:
        return {}
    if isinstance(failures, dict):
        items = failures.items()
    else:
        items = ((f, "") for f in failures)
    return {normalize_host_full(host): summary for host, summary in items}


def build_graph(inventory, targets, results, failures=None, ip_matching=True):
    """
    Build a TopologyGraph from parsed neighbor results.

    Args:
        inventory: Inventory used to resolve neighbors to configured hosts.
        targets: Hosts that discovery ran against (host keys or DeviceConfig).
        results: ParseResult list, at most one per target.
        failures: Host keys whose collection failed outright (dict host -> summary, or iterable).
        ip_matching: Match neighbors by identity IP when name matching fails.

    Returns:
        TopologyGraph.

    Raises:
        ConfigurationError: If inventory is None.
    """

    if inventory is None:
        raise ConfigurationError("nil inventory: no identity context for topology")

    graph = TopologyGraph()
    devices = [_as_device(inventory, t) for t in targets or []]

    index_devices = list(inventory) + [d for d in devices if inventory.get(d.host) is None]
    index = _ConfiguredIndex(index_devices, graph.warnings)

    selected = []
    for device in devices:
        node = _ensure_configured(graph, device)
        if node.id not in selected:
            selected.append(node.id)

    failed = _failure_keys(failures)

    by_local = {}
    for result in results or []:
        key = normalize_host_full(result.local_device)
        if key:
            by_local[key] = result

    for device in devices:
        key = normalize_host_full(device.host)
        local = graph.nodes[configured_node_id(device.host)]
        result = by_local.get(key)

        if key in failed:
            summary = failed[key]
            local.errors.append(f"collection failed: {summary}" if summary else "collection failed")
            if result is not None:
                local.warnings.append("stale neighbor data ignored after collection failure")
            continue
        if result is None:
            local.errors.append("no neighbor data (collection not run)")
            continue

        local.has_data = True
        local.warnings.extend(w for w in result.warnings if w not in local.warnings)

        for entry in result.entries:
            if entry.local_device and not host_name_matches(entry.local_device, device.host):
                local.warnings.append(f"entry reported by {entry.local_device!r}, attributed to {device.host}")

            remote = _resolve_remote(graph, index, entry, ip_matching)
            if remote is None:
                graph.warnings.append(f"{device.host}:{entry.local_port}: neighbor has no usable name or IP")
                continue

            graph.add_edge(TopologyEdge(
                from_id=local.id,
                to_id=remote.id,
                local_port=(entry.local_port or "").strip(),
                remote_port=(entry.remote_port or "").strip(),
                capabilities=list(entry.capabilities),
                mgmt_ips=dedup_ips(entry.mgmt_ips),
                raw=entry.raw,
            ))

    for node_id in selected:
        node = graph.nodes[node_id]
        host_key = node_id[len(CONFIGURED_NODE_PREFIX):]
        node.is_island = host_key in failed or graph.incident_count(node_id) == 0

    for warning in graph.warnings:
        log.warning(warning)
    log.info(f"Topology: {len(graph.nodes)} node(s), {len(graph.edges)} edge(s), "
             f"{sum(1 for n in graph.nodes.values() if n.is_island)} island(s)")

    return graph


def islands_only_graph(targets):
    """
    Fallback graph: every target as an edgeless Configured island.

    Used when the real graph cannot be built, so rendering still shows the
    selected hosts.
    """

    graph = TopologyGraph()
    for target in targets or []:
        device = target if isinstance(target, DeviceConfig) else DeviceConfig(host=str(target))
        if not normalize_host_full(device.host):
            continue
        node = _ensure_configured(graph, device)
        node.is_island = True
    return graph
