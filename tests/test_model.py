"""Tests for topology graph building and identity reconciliation."""

import pytest

from config import ConfigurationError, DeviceConfig, Inventory
from model import NODE_DISCOVERED, build_graph, configured_node_id, islands_only_graph
from parsers import NeighborEntry, ParseResult


def inventory_of(*devices):
    return Inventory([d if isinstance(d, DeviceConfig) else DeviceConfig(host=d) for d in devices])


def result_for(local, *neighbors):
    """neighbors: (local_port, remote_name, remote_port[, mgmt_ips])"""

    entries = []
    for n in neighbors:
        mgmt = n[3] if len(n) > 3 else []
        entries.append(NeighborEntry(local, n[0], n[1], n[2], mgmt_ips=list(mgmt)))
    return ParseResult(local, entries)


def test_short_name_match_creates_single_edge():
    inventory = inventory_of("leaf01.lab.local", "spine01.lab.local")
    results = [
        result_for("leaf01.lab.local", ("Gi1/0/1", "spine01", "Gi1/0/49")),
        result_for("spine01.lab.local"),
    ]

    graph = build_graph(inventory, ["leaf01.lab.local", "spine01.lab.local"], results)

    assert len(graph.edges) == 1
    edge = graph.edges[0]
    assert edge.from_id == "cfg:leaf01.lab.local"
    assert edge.to_id == "cfg:spine01.lab.local"
    assert edge.local_port == "Gi1/0/1"
    assert edge.remote_port == "Gi1/0/49"
    assert graph.nodes["cfg:spine01.lab.local"].is_island is False
    assert graph.nodes["cfg:leaf01.lab.local"].is_island is False


def test_failed_host_is_island_even_with_stale_result():
    inventory = inventory_of("leaf01", "spine01")
    results = [
        result_for("leaf01", ("Eth1", "spine01", "Eth1")),
        result_for("spine01", ("Eth1", "leaf01", "Eth1")),
    ]

    graph = build_graph(inventory, ["leaf01", "spine01"], results, {"leaf01": "ssh failed: timeout after 12s"})

    leaf = graph.nodes["cfg:leaf01"]
    assert leaf.is_island is True
    assert leaf.errors == ["collection failed: ssh failed: timeout after 12s"]
    assert leaf.warnings == ["stale neighbor data ignored after collection failure"]
    assert [(e.from_id, e.to_id) for e in graph.edges] == [("cfg:spine01", "cfg:leaf01")]
    assert graph.nodes["cfg:spine01"].is_island is False


def test_failures_as_iterable():
    graph = build_graph(inventory_of("leaf01"), ["leaf01"], [], ["leaf01"])
    assert graph.nodes["cfg:leaf01"].errors == ["collection failed"]
    assert graph.nodes["cfg:leaf01"].is_island


def test_target_without_result_is_island():
    graph = build_graph(inventory_of("leaf01"), ["leaf01"], [])

    node = graph.nodes["cfg:leaf01"]
    assert node.is_island
    assert node.errors == ["no neighbor data (collection not run)"]


def test_identity_ip_match():
    inventory = inventory_of("leaf01", DeviceConfig(host="core01", router_id="10.0.0.9"))
    results = [result_for("leaf01", ("Eth1", "CORE-RTR-A", "Gi0/0", ["10.0.0.9"]))]

    graph = build_graph(inventory, ["leaf01"], results)

    assert graph.edges[0].to_id == "cfg:core01"
    # core01 was not a target but is in the inventory
    assert graph.nodes["cfg:core01"].configured
    assert not graph.nodes["cfg:core01"].is_island


def test_neighbor_named_by_ip_matches_mgmt_ip():
    inventory = inventory_of("leaf01", DeviceConfig(host="oob01", mgmt_ip="192.0.2.50"))
    results = [result_for("leaf01", ("Eth1", "192.0.2.50", "Eth9"))]

    graph = build_graph(inventory, ["leaf01", "oob01"], results)

    assert graph.edges[0].to_id == "cfg:oob01"


def test_ip_matching_can_be_disabled():
    inventory = inventory_of("leaf01", DeviceConfig(host="core01", router_id="10.0.0.9"))
    results = [result_for("leaf01", ("Eth1", "core-rtr-a", "Gi0/0", ["10.0.0.9"]))]

    graph = build_graph(inventory, ["leaf01"], results, ip_matching=False)

    assert graph.edges[0].to_id == "unk:core-rtr-a"


def test_name_wins_over_ip():
    inventory = inventory_of("leaf01", "spine01", DeviceConfig(host="core01", router_id="10.0.0.9"))
    results = [result_for("leaf01", ("Eth1", "spine01.lab.local", "Eth1", ["10.0.0.9"]))]

    graph = build_graph(inventory, ["leaf01", "spine01"], results)

    assert graph.edges[0].to_id == "cfg:spine01"


def test_ambiguous_short_name_is_not_matched():
    inventory = inventory_of("leaf01.dc1", "leaf01.dc2", "spine01")
    results = [result_for("spine01", ("Eth1", "leaf01", "Eth1"))]

    graph = build_graph(inventory, ["spine01"], results)

    assert graph.edges[0].to_id == "unk:leaf01"
    assert graph.nodes["unk:leaf01"].kind == NODE_DISCOVERED
    assert any("ambiguous" in w for w in graph.warnings)


def test_identity_ip_collision_first_wins():
    inventory = inventory_of(
        "leaf01",
        DeviceConfig(host="core01", router_id="10.0.0.9"),
        DeviceConfig(host="core02", router_id="10.0.0.9"),
    )
    results = [result_for("leaf01", ("Eth1", "mystery", "Gi0/0", ["10.0.0.9"]))]

    graph = build_graph(inventory, ["leaf01"], results)

    assert graph.edges[0].to_id == "cfg:core01"
    assert any("claimed by core01 and core02" in w for w in graph.warnings)


def test_parallel_links_are_kept():
    inventory = inventory_of("leaf01", "spine01")
    results = [result_for("leaf01", ("Eth1", "spine01", "Eth1"), ("Eth2", "spine01", "Eth2"))]

    graph = build_graph(inventory, ["leaf01"], results)

    assert len(graph.edges) == 2
    assert graph.degree("cfg:spine01") == 2


def test_discovered_nodes_keyed_by_name_or_ip():
    inventory = inventory_of("leaf01")
    results = [result_for(
        "leaf01",
        ("Eth1", "Phone-1.corp.", "port1", ["192.0.2.7"]),
        ("Eth2", "phone-1.corp", "port1"),
        ("Eth3", "", "port2", ["192.0.2.8"]),
        ("Eth4", "", "port3"),
    )]

    graph = build_graph(inventory, ["leaf01"], results)

    phone = graph.nodes["unk:phone-1.corp"]
    assert phone.discovered_names == ["Phone-1.corp.", "phone-1.corp"]
    assert phone.identity_ips == ["192.0.2.7"]
    assert "unk:192.0.2.8" in graph.nodes
    assert len(graph.edges) == 3
    assert any("no usable name or IP" in w for w in graph.warnings)


def test_target_not_in_inventory_gets_configured_node():
    graph = build_graph(inventory_of("leaf01"), ["leaf01", "ghost"], [result_for("leaf01")])

    assert graph.nodes["cfg:ghost"].configured
    assert graph.nodes["cfg:ghost"].is_island


def test_nil_inventory():
    with pytest.raises(ConfigurationError):
        build_graph(None, ["leaf01"], [])


def test_sorted_nodes_and_find():
    inventory = inventory_of("Leaf02", "leaf01")
    results = [result_for("leaf01", ("Eth1", "Zeta", "p"), ("Eth2", "alpha", "p"))]

    graph = build_graph(inventory, ["Leaf02", "leaf01"], results)

    assert [n.label for n in graph.sorted_nodes()] == ["leaf01", "Leaf02", "alpha", "Zeta"]
    assert graph.find_nodes("LEAF") == ["cfg:leaf01", "cfg:leaf02"]
    assert graph.find_nodes("") == []
    assert graph.node_ids_sorted() == sorted(graph.nodes)


def test_shared_segment_ports():
    inventory = inventory_of("leaf01")
    results = [result_for("leaf01", ("Eth1", "host-a", "eth0"), ("Eth1", "host-b", "eth0"), ("Eth2", "host-c", "eth0"))]

    graph = build_graph(inventory, ["leaf01"], results)

    assert graph.shared_segment_ports() == {("cfg:leaf01", "Eth1"): ["unk:host-a", "unk:host-b"]}


def test_islands_only_graph():
    graph = islands_only_graph(["leaf01", DeviceConfig(host="spine01"), " "])

    assert sorted(graph.nodes) == [configured_node_id("leaf01"), configured_node_id("spine01")]
    assert all(n.is_island for n in graph.nodes.values())
    assert graph.edges == []
