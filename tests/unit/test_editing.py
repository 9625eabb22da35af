"""Tests for editor snapshot operations."""

from __future__ import annotations

from flowform.graph.editing import (
    can_disable_branching,
    connect,
    delete_node,
    remove_option,
    set_edge_condition,
    toggle_branching,
)
from flowform.graph.validation import validate_flow
from flowform.models.flow import EdgeCondition, FlowEdge, FlowNode
from tests.fixtures.flows import edge, end, question, start


def _node(nodes: list[FlowNode], node_id: str) -> FlowNode:
    return next(n for n in nodes if n.id == node_id)


class TestBranching:
    """Tests for per-option routing toggles."""

    def test_can_disable_with_single_target(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        _nodes, edges = color_flow
        assert can_disable_branching(edges, "q2")

    def test_cannot_disable_with_two_targets(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        _nodes, edges = color_flow
        edges.append(edge("q2", "end_b", handle="q2-blue"))
        assert not can_disable_branching(edges, "q2")

    def test_enable_moves_default_to_first_option(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        new_nodes, new_edges = toggle_branching(nodes, edges, "q2", enabled=True)
        data = _node(new_nodes, "q2").question
        assert data is not None and data.enable_branching
        from_q2 = [(e.target, e.source_handle) for e in new_edges if e.source == "q2"]
        assert from_q2 == [("end_a", "q2-red"), ("end_b", "q2-red")]

    def test_disable_collapses_same_target_handles(self) -> None:
        nodes = [start(), question("q", "yes_no", options=["Yes", "No"], enable_branching=True), end()]
        edges = [edge("start", "q"), edge("q", "end", handle="q-yes"), edge("q", "end", handle="q-no")]
        new_nodes, new_edges = toggle_branching(nodes, edges, "q", enabled=False)
        from_q = [e for e in new_edges if e.source == "q"]
        assert len(from_q) == 1
        assert from_q[0].is_default
        assert validate_flow(new_nodes, new_edges) == []

    def test_disable_never_resolves_ambiguity(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        new_nodes, new_edges = toggle_branching(nodes, edges, "q2", enabled=False)
        codes = [i.code for i in validate_flow(new_nodes, new_edges)]
        assert codes == ["duplicate_default"]

    def test_non_option_node_unchanged(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        assert toggle_branching(nodes, edges, "q1", enabled=True) == (nodes, edges)
        assert toggle_branching(nodes, edges, "ghost", enabled=True) == (nodes, edges)

    def test_inputs_not_mutated(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        toggle_branching(nodes, edges, "q2", enabled=True)
        assert edges[3].source_handle is None


class TestRemoveOption:
    """Tests for option deletion."""

    def test_drops_option_and_its_edges(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        new_nodes, new_edges = remove_option(nodes, edges, "q2", "q2-red")
        data = _node(new_nodes, "q2").question
        assert data is not None
        assert data.option_ids == ["q2-blue"]
        assert all(e.source_handle != "q2-red" for e in new_edges)
        assert "insufficient_options" in [i.code for i in validate_flow(new_nodes, new_edges)]

    def test_unknown_option_is_noop(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        assert remove_option(nodes, edges, "q2", "nope") == (nodes, edges)


class TestGraphEdits:
    """Tests for node deletion and edge edits."""

    def test_delete_node_removes_touching_edges(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        new_nodes, new_edges = delete_node(nodes, edges, "q2")
        assert "q2" not in {n.id for n in new_nodes}
        assert [e.id for e in new_edges] == ["start->q1"]

    def test_connect_adds_edge(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        _nodes, edges = color_flow
        new_edges = connect(edges, "q2", "end_b", source_handle="q2-blue")
        assert len(new_edges) == len(edges) + 1
        assert new_edges[-1].source_handle == "q2-blue"

    def test_connect_skips_duplicates(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        _nodes, edges = color_flow
        assert connect(edges, "q2", "end_a", source_handle="q2-red") == edges

    def test_set_and_clear_condition(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        _nodes, edges = color_flow
        condition = EdgeCondition(type="equals", value="Ana")
        updated = set_edge_condition(edges, "q1->q2", condition)
        assert updated[1].condition == condition
        assert set_edge_condition(updated, "q1->q2", None)[1].is_default
