"""Canvas layout for the flow editor.

Two algorithms:

- :func:`layout_full` recomputes every position with a layered
  (Sugiyama-style) drawing: break cycles, rank by longest path, split long
  edges with virtual nodes, reduce crossings with barycenter sweeps, then
  assign slot coordinates.
- :func:`layout_tidy` keeps the author's arrangement and only resolves
  overlaps, snapping everything to a grid.

Both are pure: they return new nodes and never touch the inputs.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from flowform.models.flow import Position
from flowform.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from flowform.models.flow import FlowEdge, FlowNode

log = get_logger(__name__)

Direction = Literal["TB", "LR", "BT", "RL"]
TidyDirection = Literal["LR", "TB"]

LAYOUT_MARGIN = 40
MAX_SWEEPS = 24
_DUMMY_PREFIX = "__virtual__"


@dataclass(frozen=True)
class LayoutOptions:
    """Options for :func:`layout_full`.

    Attributes:
        direction: Rank axis: TB/BT stack ranks vertically, LR/RL horizontally.
        node_width: Width of every node's bounding box.
        node_height: Height of every node's bounding box.
        rank_gap: Space between consecutive ranks.
        node_gap: Space between neighbours within a rank.
    """

    direction: Direction = "LR"
    node_width: float = 280
    node_height: float = 180
    rank_gap: float = 80
    node_gap: float = 50


@dataclass(frozen=True)
class TidyOptions:
    """Options for :func:`layout_tidy`.

    Attributes:
        node_width: Width of every node's bounding box.
        node_height: Height of every node's bounding box.
        min_gap_x: Minimum horizontal space between two nodes.
        min_gap_y: Minimum vertical space between two nodes.
        grid_size: Every returned coordinate is a multiple of this.
        direction: Reading order: LR sorts by x first, TB by y first.
    """

    node_width: float = 280
    node_height: float = 180
    min_gap_x: float = 40
    min_gap_y: float = 40
    grid_size: float = 20
    direction: TidyDirection = "LR"


def _with_positions(nodes: Sequence[FlowNode], positions: dict[str, tuple[float, float]]) -> list[FlowNode]:
    return [
        node.model_copy(update={"position": Position(x=positions[node.id][0], y=positions[node.id][1])})
        for node in nodes
    ]


# ---------------------------------------------------------------------------
# Full layered layout
# ---------------------------------------------------------------------------


def _root_order(node_ids: list[str], nodes: Sequence[FlowNode], edges: list[tuple[str, str]]) -> list[str]:
    """Start nodes first, then every other node without incoming edges."""
    has_incoming = {target for _source, target in edges}
    starts = [n.id for n in nodes if n.type == "start"]
    return starts + [nid for nid in node_ids if nid not in has_incoming and nid not in starts]


def _break_cycles(
    roots: list[str],
    adjacency: dict[str, list[str]],
) -> tuple[list[str], set[tuple[str, str]]]:
    """Iterative DFS from ``roots``; returns preorder and the back edges."""
    state: dict[str, int] = {}  # 1 = on stack, 2 = done
    preorder: list[str] = []
    back_edges: set[tuple[str, str]] = set()

    for root in roots:
        if root in state:
            continue
        state[root] = 1
        preorder.append(root)
        work: list[tuple[str, int]] = [(root, 0)]
        while work:
            current, pos = work[-1]
            children = adjacency.get(current, [])
            if pos < len(children):
                work[-1] = (current, pos + 1)
                child = children[pos]
                child_state = state.get(child)
                if child_state is None:
                    state[child] = 1
                    preorder.append(child)
                    work.append((child, 0))
                elif child_state == 1:
                    back_edges.add((current, child))
                continue
            state[current] = 2
            work.pop()
    return preorder, back_edges


def _longest_path_ranks(order: list[str], dag_edges: list[tuple[str, str]]) -> dict[str, int]:
    """Kahn's algorithm; each node's rank is its longest distance from a source."""
    successors: dict[str, list[str]] = {}
    indegree = dict.fromkeys(order, 0)
    for source, target in dag_edges:
        successors.setdefault(source, []).append(target)
        indegree[target] += 1

    rank = dict.fromkeys(order, 0)
    queue: deque[str] = deque(nid for nid in order if indegree[nid] == 0)
    while queue:
        current = queue.popleft()
        for target in successors.get(current, []):
            rank[target] = max(rank[target], rank[current] + 1)
            indegree[target] -= 1
            if indegree[target] == 0:
                queue.append(target)
    return rank


def _split_long_edges(
    order: list[str],
    dag_edges: list[tuple[str, str]],
    rank: dict[str, int],
) -> tuple[list[list[str]], list[tuple[str, str]]]:
    """Insert virtual nodes so every edge spans exactly one rank."""
    layers: list[list[str]] = [[] for _ in range(max(rank.values()) + 1)]
    for nid in order:
        layers[rank[nid]].append(nid)

    unit_edges: list[tuple[str, str]] = []
    counter = 0
    for source, target in dag_edges:
        previous = source
        for r in range(rank[source] + 1, rank[target]):
            dummy = f"{_DUMMY_PREFIX}{counter}"
            counter += 1
            rank[dummy] = r
            layers[r].append(dummy)
            unit_edges.append((previous, dummy))
            previous = dummy
        unit_edges.append((previous, target))
    return layers, unit_edges


def _count_crossings(layers: list[list[str]], successors: dict[str, list[str]]) -> int:
    total = 0
    for upper, lower in zip(layers, layers[1:], strict=False):
        lower_pos = {nid: i for i, nid in enumerate(lower)}
        segments = [
            (i, lower_pos[target])
            for i, source in enumerate(upper)
            for target in successors.get(source, [])
            if target in lower_pos
        ]
        for a in range(len(segments)):
            for b in range(a + 1, len(segments)):
                (s1, t1), (s2, t2) = segments[a], segments[b]
                if (s1 - s2) * (t1 - t2) < 0:
                    total += 1
    return total


def _sort_by_barycenter(layer: list[str], neighbours: dict[str, list[str]], fixed: list[str]) -> list[str]:
    fixed_pos = {nid: i for i, nid in enumerate(fixed)}

    def weight(item: tuple[int, str]) -> float:
        index, nid = item
        positions = [fixed_pos[n] for n in neighbours.get(nid, []) if n in fixed_pos]
        if not positions:
            return float(index)
        return sum(positions) / len(positions)

    return [nid for _index, nid in sorted(enumerate(layer), key=weight)]


def _reduce_crossings(layers: list[list[str]], unit_edges: list[tuple[str, str]]) -> list[list[str]]:
    """Alternate down/up barycenter sweeps, keeping the best ordering seen."""
    successors: dict[str, list[str]] = {}
    predecessors: dict[str, list[str]] = {}
    for source, target in unit_edges:
        successors.setdefault(source, []).append(target)
        predecessors.setdefault(target, []).append(source)

    best = [list(layer) for layer in layers]
    best_crossings = _count_crossings(best, successors)
    current = [list(layer) for layer in layers]

    for _sweep in range(MAX_SWEEPS):
        if best_crossings == 0:
            break
        for r in range(1, len(current)):
            current[r] = _sort_by_barycenter(current[r], predecessors, current[r - 1])
        for r in range(len(current) - 2, -1, -1):
            current[r] = _sort_by_barycenter(current[r], successors, current[r + 1])

        crossings = _count_crossings(current, successors)
        if crossings < best_crossings:
            best = [list(layer) for layer in current]
            best_crossings = crossings

    return best


def layout_full(
    nodes: Sequence[FlowNode],
    edges: Sequence[FlowEdge],
    options: LayoutOptions | None = None,
) -> list[FlowNode]:
    """Recompute every node position with a layered drawing.

    Ranks follow the longest path from the roots (start node first, then
    nodes without incoming edges, then one node of each remaining cycle).
    Edges closing a cycle are reversed for ranking only. Prior positions are
    ignored.

    Args:
        nodes: All nodes of the flow.
        edges: All edges; dangling edges and self-loops are ignored.
        options: Layout options; defaults to :class:`LayoutOptions`.

    Returns:
        New nodes, in input order, with every position overwritten.
    """
    if not nodes:
        return []
    opts = options or LayoutOptions()

    node_ids = [n.id for n in nodes]
    known = set(node_ids)
    pairs: list[tuple[str, str]] = []
    for edge in edges:
        pair = (edge.source, edge.target)
        if edge.source in known and edge.target in known and edge.source != edge.target and pair not in pairs:
            pairs.append(pair)

    adjacency: dict[str, list[str]] = {}
    for source, target in pairs:
        adjacency.setdefault(source, []).append(target)

    preorder, back_edges = _break_cycles(_root_order(node_ids, nodes, pairs) + node_ids, adjacency)

    dag_edges: list[tuple[str, str]] = []
    for source, target in pairs:
        pair = (target, source) if (source, target) in back_edges else (source, target)
        if pair not in dag_edges:
            dag_edges.append(pair)

    rank = _longest_path_ranks(preorder, dag_edges)
    layers, unit_edges = _split_long_edges(preorder, dag_edges, rank)
    layers = _reduce_crossings(layers, unit_edges)

    vertical = opts.direction in ("TB", "BT")
    rank_extent = opts.node_height if vertical else opts.node_width
    slot_extent = opts.node_width if vertical else opts.node_height
    reversed_ranks = opts.direction in ("BT", "RL")

    def span(count: int) -> float:
        return count * slot_extent + max(count - 1, 0) * opts.node_gap

    widest = max(span(len(layer)) for layer in layers)
    last_rank = len(layers) - 1

    positions: dict[str, tuple[float, float]] = {}
    for r, layer in enumerate(layers):
        rank_index = last_rank - r if reversed_ranks else r
        along = LAYOUT_MARGIN + rank_index * (rank_extent + opts.rank_gap)
        offset = LAYOUT_MARGIN + (widest - span(len(layer))) / 2
        for i, nid in enumerate(layer):
            if nid.startswith(_DUMMY_PREFIX):
                continue
            across = offset + i * (slot_extent + opts.node_gap)
            positions[nid] = (across, along) if vertical else (along, across)

    log.debug(
        "layout_full_complete",
        nodes=len(nodes),
        ranks=len(layers),
        reversed_edges=len(back_edges),
        direction=opts.direction,
    )
    return _with_positions(nodes, positions)


# ---------------------------------------------------------------------------
# Incremental tidy layout
# ---------------------------------------------------------------------------


def _snap(value: float, grid: float) -> float:
    """Nearest grid multiple, halves rounding up."""
    if grid <= 0:
        return value
    return math.floor(value / grid + 0.5) * grid


def _ceil_to_grid(value: float, grid: float) -> float:
    if grid <= 0:
        return value
    return math.ceil(value / grid) * grid


def layout_tidy(nodes: Sequence[FlowNode], options: TidyOptions | None = None) -> list[FlowNode]:
    """Resolve overlaps while keeping the author's arrangement.

    Nodes are processed in reading order: coarse buckets of half a node
    extent along the primary axis (x for LR, y for TB), then the secondary
    axis. Each node is pushed clear of every earlier node along the axis
    needing the larger displacement, ties pushing down. Coordinates are then
    snapped to the grid and a final pass pushes any remaining collision along
    the primary axis to the next clear grid line.

    Args:
        nodes: Nodes with their current canvas positions.
        options: Tidy options; defaults to :class:`TidyOptions`.

    Returns:
        New nodes, in input order. No two bounding boxes (plus gaps) overlap,
        every coordinate is a grid multiple, and re-running is a no-op.
    """
    if not nodes:
        return []
    opts = options or TidyOptions()
    width, height = opts.node_width, opts.node_height
    gap_x, gap_y = opts.min_gap_x, opts.min_gap_y
    primary_is_x = opts.direction == "LR"

    xs = [n.position.x for n in nodes]
    ys = [n.position.y for n in nodes]

    def overlaps(a: int, b: int) -> bool:
        return abs(xs[a] - xs[b]) < width + gap_x and abs(ys[a] - ys[b]) < height + gap_y

    bucket = (width if primary_is_x else height) / 2

    def reading_key(i: int) -> tuple[float, float, float, int]:
        primary, secondary = (xs[i], ys[i]) if primary_is_x else (ys[i], xs[i])
        coarse = math.floor(primary / bucket) if bucket > 0 else primary
        return (coarse, secondary, primary, i)

    order = sorted(range(len(nodes)), key=reading_key)

    pushes = 0
    for k, current in enumerate(order):
        for previous in order[:k]:
            if not overlaps(previous, current):
                continue
            need_x = xs[previous] + width + gap_x - xs[current]
            need_y = ys[previous] + height + gap_y - ys[current]
            if need_x > need_y:
                xs[current] = xs[previous] + width + gap_x
            else:
                ys[current] = ys[previous] + height + gap_y
            pushes += 1

    xs = [_snap(x, opts.grid_size) for x in xs]
    ys = [_snap(y, opts.grid_size) for y in ys]

    for k, current in enumerate(order):
        earlier = order[:k]
        collision = next((p for p in earlier if overlaps(p, current)), None)
        while collision is not None:
            if primary_is_x:
                xs[current] = _ceil_to_grid(xs[collision] + width + gap_x, opts.grid_size)
            else:
                ys[current] = _ceil_to_grid(ys[collision] + height + gap_y, opts.grid_size)
            pushes += 1
            collision = next((p for p in earlier if overlaps(p, current)), None)

    log.debug("layout_tidy_complete", nodes=len(nodes), pushes=pushes, direction=opts.direction)
    positions = {node.id: (xs[i], ys[i]) for i, node in enumerate(nodes)}
    return _with_positions(nodes, positions)
