"""Reachability queries over a flow graph.

Pure functions that operate on node/edge snapshots without modifying them.
Used by the editor (branch highlighting), the piping picker ("which earlier
answers can this screen reference") and the validator.

Every traversal is breadth-first with a visited set, so cyclic graphs
(loop-back screens) terminate.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from flowform.models.flow import FlowEdge, FlowNode

BranchMode = Literal["full", "downstream", "upstream"]


@dataclass(frozen=True)
class Branch:
    """Nodes and edges of a highlighted branch.

    Attributes:
        node_ids: Node ids in the branch, queried node first.
        edge_ids: Ids of edges whose endpoints are both in the branch.
    """

    node_ids: list[str] = field(default_factory=list)
    edge_ids: list[str] = field(default_factory=list)


def build_adjacency(edges: Iterable[FlowEdge]) -> dict[str, list[str]]:
    """Map each source node id to its target ids, in edge order."""
    adjacency: dict[str, list[str]] = {}
    for edge in edges:
        adjacency.setdefault(edge.source, []).append(edge.target)
    return adjacency


def build_reverse_adjacency(edges: Iterable[FlowEdge]) -> dict[str, list[str]]:
    """Map each target node id to its source ids, in edge order."""
    reverse: dict[str, list[str]] = {}
    for edge in edges:
        reverse.setdefault(edge.target, []).append(edge.source)
    return reverse


def _bfs(start_ids: Iterable[str], adjacency: dict[str, list[str]]) -> list[str]:
    visited: set[str] = set()
    order: list[str] = []
    queue: deque[str] = deque()
    for start_id in start_ids:
        if start_id not in visited:
            visited.add(start_id)
            order.append(start_id)
            queue.append(start_id)

    while queue:
        current = queue.popleft()
        for neighbour in adjacency.get(current, []):
            if neighbour not in visited:
                visited.add(neighbour)
                order.append(neighbour)
                queue.append(neighbour)
    return order


def downstream(node_id: str, edges: Sequence[FlowEdge]) -> list[str]:
    """Return ``node_id`` and every node reachable from it along edges."""
    return _bfs([node_id], build_adjacency(edges))


def upstream(node_id: str, edges: Sequence[FlowEdge]) -> list[str]:
    """Return ``node_id`` and every node that can reach it along edges."""
    return _bfs([node_id], build_reverse_adjacency(edges))


def reachable_from(start_ids: Iterable[str], edges: Sequence[FlowEdge]) -> set[str]:
    """Return every node reachable from any of ``start_ids`` (inclusive)."""
    return set(_bfs(start_ids, build_adjacency(edges)))


def connected_branch(
    node_id: str,
    edges: Sequence[FlowEdge],
    mode: BranchMode = "full",
) -> Branch:
    """Collect the branch through ``node_id`` for highlighting.

    Args:
        node_id: The selected node.
        edges: All edges of the flow.
        mode: ``"downstream"``, ``"upstream"`` or ``"full"`` (both).

    Returns:
        The branch's node ids and the ids of edges between branch nodes.
    """
    if mode == "downstream":
        node_ids = downstream(node_id, edges)
    elif mode == "upstream":
        node_ids = upstream(node_id, edges)
    else:
        node_ids = downstream(node_id, edges)
        seen = set(node_ids)
        node_ids += [nid for nid in upstream(node_id, edges) if nid not in seen]

    members = set(node_ids)
    edge_ids = [e.id for e in edges if e.source in members and e.target in members]
    return Branch(node_ids=node_ids, edge_ids=edge_ids)


def ancestor_question_nodes(
    node_id: str,
    nodes: Sequence[FlowNode],
    edges: Sequence[FlowEdge],
) -> list[FlowNode]:
    """Return the question nodes that can come before ``node_id``.

    Walks edges backwards breadth-first. Each ancestor appears once, even when
    several paths converge on it (diamonds), and back-edges do not loop. The
    queried node itself is only returned if a cycle leads back to it.

    Args:
        node_id: The screen whose text is being edited.
        nodes: All nodes of the flow.
        edges: All edges of the flow.

    Returns:
        Question nodes in reverse-BFS order (nearest first).
    """
    by_id = {node.id: node for node in nodes}
    reverse = build_reverse_adjacency(edges)

    visited: set[str] = set()
    ancestors: list[FlowNode] = []
    queue: deque[str] = deque([node_id])

    while queue:
        current = queue.popleft()
        for source in reverse.get(current, []):
            if source in visited:
                continue
            visited.add(source)
            queue.append(source)
            source_node = by_id.get(source)
            if source_node is not None and source_node.type == "question":
                ancestors.append(source_node)

    return ancestors


def find_reachable_cycles(start_ids: Iterable[str], edges: Sequence[FlowEdge]) -> list[list[str]]:
    """Find the cycles reachable from ``start_ids``.

    Computes strongly connected components (iterative Tarjan) over the
    reachable subgraph. A component is a cycle if it has more than one node
    or a self-loop.

    Returns:
        One list per cycle, members ordered by BFS discovery from the starts.
        Cycles are ordered by their first member's discovery.
    """
    adjacency = build_adjacency(edges)
    order = _bfs(start_ids, adjacency)
    rank = {nid: i for i, nid in enumerate(order)}

    index_of: dict[str, int] = {}
    lowlink: dict[str, int] = {}
    on_stack: set[str] = set()
    stack: list[str] = []
    components: list[list[str]] = []
    counter = 0

    for root in order:
        if root in index_of:
            continue
        work: list[tuple[str, int]] = [(root, 0)]
        index_of[root] = lowlink[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)

        while work:
            current, child_pos = work[-1]
            children = adjacency.get(current, [])
            if child_pos < len(children):
                work[-1] = (current, child_pos + 1)
                child = children[child_pos]
                if child not in index_of:
                    index_of[child] = lowlink[child] = counter
                    counter += 1
                    stack.append(child)
                    on_stack.add(child)
                    work.append((child, 0))
                elif child in on_stack:
                    lowlink[current] = min(lowlink[current], index_of[child])
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[current])
            if lowlink[current] == index_of[current]:
                component: list[str] = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == current:
                        break
                components.append(component)

    cycles: list[list[str]] = []
    for component in components:
        is_cycle = len(component) > 1 or component[0] in adjacency.get(component[0], [])
        if is_cycle:
            cycles.append(sorted(component, key=lambda nid: rank[nid]))
    cycles.sort(key=lambda members: rank[members[0]])
    return cycles


def find_cycle_entries(start_id: str, edges: Sequence[FlowEdge]) -> list[str]:
    """Return the nodes reachable from ``start_id`` that can reach themselves.

    Members of every reachable cycle, in BFS discovery order from the start.
    """
    members = {nid for cycle in find_reachable_cycles([start_id], edges) for nid in cycle}
    return [nid for nid in _bfs([start_id], build_adjacency(edges)) if nid in members]
