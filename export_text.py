"""
Export topology graph to text views.

Three views are available:
  - layered: heuristic "fabric" view, BFS-layered from high-degree spine nodes
  - edges: sorted, de-duplicated adjacency list (the ground truth view)
  - flat: per-node list with link counts and a short neighbor preview
Every view is deterministic: the same graph always renders the same text.
"""

import re
from collections import defaultdict

from constants import (
    DEFAULT_RENDER_WIDTH,
    MAX_FLAT_LINKS_PREVIEW,
    MAX_LAYER,
    MAX_LAYER_NEIGHBORS,
    VIEW_EDGES,
    VIEW_FLAT,
    VIEW_LAYERED,
)

_ASCII_GLYPHS = {
    "h": "-",
    "v": "|",
    "junction": "+",
    "arrow": "->",
    "link": "<->",
    "primary": "*",
    "secondary": ".",
    "ellipsis": "...",
}

_RICH_GLYPHS = {
    "h": "─",
    "v": "│",
    "junction": "┼",
    "arrow": "→",
    "link": "↔",
    "primary": "●",
    "secondary": "·",
    "ellipsis": "…",
}


def natural_sort_key(port):
    """
    Natural sort key for port names like 'Ethernet0', 'Ethernet4', etc.
    Splits the string into text and numeric parts for proper numeric sorting.
    """

    parts = re.split(r'(\d+)', port or "")
    # Numeric parts compare as ints, text parts case-insensitively
    return tuple((0, int(part), "") if part.isdigit() else (1, 0, part.lower()) for part in parts if part)


def _glyphs(rich_glyphs):

    return _RICH_GLYPHS if rich_glyphs else _ASCII_GLYPHS


def _fit(line, width, glyphs):

    if width <= 0 or len(line) <= width:
        return line
    ellipsis = glyphs["ellipsis"]
    return line[:max(0, width - len(ellipsis))] + ellipsis


def _finish(lines, width, glyphs):

    return "\n".join(_fit(line, width, glyphs) for line in lines) + "\n"


def _width(width):

    return width if width and width > 0 else DEFAULT_RENDER_WIDTH


def _focus_prefix(node_id, focused_id):

    return "> " if focused_id and node_id == focused_id else "  "


def choose_spines(graph, degree):
    """
    Pick BFS roots for the layered view.

    Up to 2 spines for fewer than 6 nodes, 3 for fewer than 10, else 4,
    ranked by degree, then configured-first, then name. Only nodes with
    links qualify; without any, the first node in display order is used so
    layering always has a root.
    """

    nodes = graph.sorted_nodes()
    if not nodes:
        return []

    if len(nodes) < 6:
        max_spines = 2
    elif len(nodes) < 10:
        max_spines = 3
    else:
        max_spines = 4

    ranked = sorted(nodes, key=lambda n: (-degree[n.id], not n.configured, n.label.lower(), n.id))
    spines = [n.id for n in ranked[:max_spines] if degree[n.id] > 0]
    if not spines:
        spines = [nodes[0].id]
    return spines


def assign_layers(spines, adjacency):
    """Multi-source BFS: layer = shortest hop count from any spine."""

    layer = {s: 0 for s in spines}
    queue = list(spines)
    for u in queue:
        for v in adjacency.get(u, ()):
            if v not in layer:
                layer[v] = layer[u] + 1
                queue.append(v)
    return layer


def render_layered(graph, focused_id=None, width=None, rich_glyphs=False):
    """
    Render a layered "fabric-like" view.

    Heuristic and designed for leaf/spine-ish topologies; it is a
    visualization aid, not the authoritative adjacency list.

    Args:
        graph: TopologyGraph.
        focused_id: Node ID to mark with "> ".
        width: Maximum line width.
        rich_glyphs: Use Unicode box drawing instead of ASCII.

    Returns:
        Rendered text.
    """

    width = _width(width)
    g = _glyphs(rich_glyphs)
    out = ["Layered view (heuristic):", ""]

    nodes = graph.sorted_nodes()
    if not nodes:
        out.append("  (no nodes)")
        return _finish(out, width, g)

    degree = defaultdict(int)
    adjacency = defaultdict(list)
    port_hints = defaultdict(list)  # (a, b) -> ["aPort:bPort", ...]
    for e in graph.edges:
        degree[e.from_id] += 1
        degree[e.to_id] += 1
        if e.to_id not in adjacency[e.from_id]:
            adjacency[e.from_id].append(e.to_id)
        if e.from_id not in adjacency[e.to_id]:
            adjacency[e.to_id].append(e.from_id)
        forward = ":".join(p for p in (e.local_port, e.remote_port) if p)
        backward = ":".join(p for p in (e.remote_port, e.local_port) if p)
        if forward:
            port_hints[(e.from_id, e.to_id)].append(forward)
            port_hints[(e.to_id, e.from_id)].append(backward)

    spines = choose_spines(graph, degree)
    layer = assign_layers(spines, adjacency)

    reached = [layer[n.id] for n in nodes if n.id in layer]
    max_layer = min(max(reached), MAX_LAYER)
    unreached = max_layer + 1

    by_layer = defaultdict(list)
    for n in nodes:
        depth = layer.get(n.id, unreached)
        by_layer[min(depth, unreached)].append(n.id)

    def name_key(node_id):
        return (graph.label_of(node_id).lower(), node_id)

    for depth in range(unreached + 1):
        ids = sorted(by_layer.get(depth, []), key=name_key)
        if not ids:
            continue

        if depth == unreached:
            title = "Unreached/other"
        elif depth == 0:
            title = "Spines (layer 0)"
        else:
            title = f"Layer {depth}"
        out.append(f"{title}:")

        for node_id in ids:
            node = graph.nodes[node_id]
            marker = g["secondary"] if (node.is_island or not node.configured) else g["primary"]
            out.append(f"{_focus_prefix(node_id, focused_id)}{marker} [{node.label}]")

            neighbors = adjacency.get(node_id, [])
            if not neighbors or node_id not in layer:
                continue

            down = [v for v in neighbors if layer.get(v) == layer[node_id] + 1]
            same = [v for v in neighbors if layer.get(v) == layer[node_id]]
            targets = sorted(down or same, key=name_key)

            for v in targets[:MAX_LAYER_NEIGHBORS]:
                line = f"   {g['v']} {g['junction']}{g['h'] * 2}{g['arrow']} [{graph.label_of(v)}]"
                hints = port_hints.get((node_id, v))
                if hints:
                    line += f" ({hints[0]})"
                out.append(line)
            if len(targets) > MAX_LAYER_NEIGHBORS:
                out.append(f"   {g['v']} +{len(targets) - MAX_LAYER_NEIGHBORS} more")
        out.append("")

    out.append(f"Legend: {g['junction']}{g['h'] * 2}{g['arrow']} link (local:remote port)  "
               f"{g['primary']} configured  {g['secondary']} discovered/island")
    return _finish(out, width, g)


def edge_rows(graph):
    """
    Return the de-duplicated, sorted edge rows used by the edge-list view.

    A:p1<->B:p2 and B:p2<->A:p1 collapse into one row. Each row is oriented
    so the endpoint with the smaller name is on the left.

    Returns:
        List of (left_id, left_port, right_id, right_port).
    """

    def end_key(node_id, port):
        return (graph.label_of(node_id).lower(), node_id, natural_sort_key(port))

    seen = set()
    rows = []
    for e in graph.edges:
        left = (e.from_id, (e.local_port or "").strip())
        right = (e.to_id, (e.remote_port or "").strip())
        if end_key(*right) < end_key(*left):
            left, right = right, left
        key = (left, right)
        if key in seen:
            continue
        seen.add(key)
        rows.append((left[0], left[1], right[0], right[1]))

    rows.sort(key=lambda r: (end_key(r[0], r[1]), end_key(r[2], r[3])))
    return rows


def render_edges(graph, focused_id=None, width=None, rich_glyphs=False):
    """
    Render a sorted, copy/paste friendly edge list.

    Args:
        graph: TopologyGraph.
        focused_id: Rows touching this node are marked with "> ".
        width: Maximum line width.
        rich_glyphs: Use Unicode link glyph.

    Returns:
        Rendered text.
    """

    width = _width(width)
    g = _glyphs(rich_glyphs)
    out = ["Edges:", ""]

    rows = edge_rows(graph)
    if not rows:
        out.append("  (no edges)")

    for a, ap, b, bp in rows:
        prefix = "> " if focused_id and focused_id in (a, b) else "  "
        line = f"{prefix}{graph.label_of(a)}:{ap} {g['link']} {graph.label_of(b)}:{bp}"
        out.append(line)

    return _finish(out, width, g)


def render_flat(graph, focused_id=None, width=None, rich_glyphs=False):
    """
    Render a compact per-node list.

    Configured nodes come first. Each node shows its outgoing link count and
    a preview of the first few links.
    """

    width = _width(width)
    g = _glyphs(rich_glyphs)
    out = ["Nodes:"]

    nodes = graph.sorted_nodes()
    if not nodes:
        out.append("  (no nodes)")

    for n in nodes:
        marker = g["secondary"] if (n.is_island or not n.configured) else g["primary"]
        kind = "[cfg]" if n.configured else "[unk]"
        line = f"{_focus_prefix(n.id, focused_id)}{marker} {kind} {n.label}"
        if n.identity_hint:
            line += f" ({n.identity_hint})"
        if n.is_island:
            line += " island"

        links = graph.out_edges(n.id)
        line += f"  {g['h']} {len(links)} link(s)"
        out.append(line)

        for e in links[:MAX_FLAT_LINKS_PREVIEW]:
            hint = f"     - {e.local_port} {g['arrow']} {graph.label_of(e.to_id)}"
            if e.remote_port:
                hint += f" ({e.remote_port})"
            out.append(hint)
        if len(links) > MAX_FLAT_LINKS_PREVIEW:
            out.append(f"     - +{len(links) - MAX_FLAT_LINKS_PREVIEW} more")

    out.append("")
    out.append(f"Legend: {g['primary']} configured  {g['secondary']} discovered or island")
    return _finish(out, width, g)


_RENDERERS = {
    VIEW_LAYERED: render_layered,
    VIEW_EDGES: render_edges,
    VIEW_FLAT: render_flat,
}


def render(graph, view=VIEW_LAYERED, focused_id=None, width=None, rich_glyphs=False):
    """Render graph with the named view."""

    try:
        renderer = _RENDERERS[view]
    except KeyError:
        raise ValueError(f"unknown view {view!r}; expected one of {', '.join(_RENDERERS)}") from None
    return renderer(graph, focused_id=focused_id, width=width, rich_glyphs=rich_glyphs)
