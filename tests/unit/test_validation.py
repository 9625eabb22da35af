"""Tests for structural flow validation."""

from __future__ import annotations

from flowform.graph.validation import (
    check_cycles,
    check_default_edges,
    check_orphans,
    check_source_handles,
    run_all_checks,
    validate_flow,
)
from flowform.graph.validation_types import Issue, ValidationReport
from flowform.models.flow import FlowEdge, FlowNode
from tests.fixtures.flows import edge, end, make_color_flow, question, start


def _codes(issues: list[Issue], severity: str | None = None) -> list[str]:
    return [i.code for i in issues if severity is None or i.severity == severity]


def _linear() -> tuple[list[FlowNode], list[FlowEdge]]:
    nodes = [start(), question("q1"), end()]
    edges = [edge("start", "q1"), edge("q1", "end")]
    return nodes, edges


class TestWellFormedFlows:
    """One start plus a reachable end never yields errors."""

    def test_linear_flow_has_no_issues(self) -> None:
        assert validate_flow(*_linear()) == []

    def test_branching_flow_has_no_errors(self) -> None:
        nodes, edges = make_color_flow()
        assert _codes(validate_flow(nodes, edges), "error") == []

    def test_cycle_is_only_a_warning(self) -> None:
        nodes = [start(), question("q1"), question("q2"), end()]
        edges = [
            edge("start", "q1"),
            edge("q1", "q2"),
            edge("q2", "q1", condition=("equals", "again")),
            edge("q2", "end"),
        ]
        issues = validate_flow(nodes, edges)
        assert _codes(issues, "error") == []
        assert _codes(issues, "warning") == ["cycle"]

    def test_empty_question_is_a_warning(self) -> None:
        nodes = [start(), question("q1", text="   "), end()]
        edges = [edge("start", "q1"), edge("q1", "end")]
        issues = validate_flow(nodes, edges)
        assert _codes(issues) == ["empty_question"]
        assert issues[0].severity == "warning"


class TestStartNode:
    """Start count must be exactly one."""

    def test_removing_start_is_blocking(self) -> None:
        nodes, edges = _linear()
        issues = validate_flow(nodes[1:], edges)
        assert "missing_start" in _codes(issues, "error")

    def test_second_start_is_blocking(self) -> None:
        nodes, edges = _linear()
        nodes.append(start("start2"))
        edges.append(edge("start2", "q1"))
        issues = validate_flow(nodes, edges)
        assert "multiple_start" in _codes(issues, "error")


class TestEndReachability:
    """At least one end must be reachable."""

    def test_no_end_nodes(self) -> None:
        issues = validate_flow([start(), question("q1")], [edge("start", "q1")])
        assert "unreachable_end" in _codes(issues, "error")

    def test_end_not_reachable(self) -> None:
        nodes = [start(), question("q1"), end()]
        issues = validate_flow(nodes, [edge("start", "q1")])
        assert "unreachable_end" in _codes(issues, "error")

    def test_not_reported_without_single_start_when_end_exists(self) -> None:
        nodes = [question("q1"), end()]
        issues = validate_flow(nodes, [])
        assert "unreachable_end" not in _codes(issues)

    def test_end_reached_through_cycle(self) -> None:
        nodes = [start(), question("q1"), end()]
        edges = [edge("start", "q1"), edge("q1", "q1", condition=("equals", "x")), edge("q1", "end")]
        assert "unreachable_end" not in _codes(validate_flow(nodes, edges))


class TestEdges:
    """Dangling, duplicate-default and stale-handle edges."""

    def test_dangling_edge(self) -> None:
        nodes, edges = _linear()
        edges.append(edge("q1", "ghost", edge_id="bad"))
        issues = validate_flow(nodes, edges)
        dangling = [i for i in issues if i.code == "dangling_edge"]
        assert len(dangling) == 1
        assert dangling[0].edge_id == "bad"
        assert dangling[0].is_blocking

    def test_duplicate_default_edges(self) -> None:
        nodes = [start(), question("q1"), end("e1"), end("e2")]
        edges = [edge("start", "q1"), edge("q1", "e1"), edge("q1", "e2")]
        issues = check_default_edges(nodes, edges)
        assert len(issues) == 1
        assert issues[0].node_id == "q1"
        assert issues[0].code == "duplicate_default"

    def test_handle_plus_default_is_fine(self) -> None:
        nodes, edges = make_color_flow()
        assert check_default_edges(nodes, edges) == []

    def test_stale_handle_is_blocking(self) -> None:
        nodes, edges = make_color_flow()
        edges.append(edge("q2", "end_b", handle="q2-green", edge_id="stale"))
        issues = check_source_handles(nodes, edges)
        assert len(issues) == 1
        assert issues[0].severity == "error"
        assert issues[0].edge_id == "stale"

    def test_handle_on_text_question_is_warning(self) -> None:
        nodes, edges = make_color_flow()
        edges.append(edge("q1", "end_b", handle="whatever"))
        issues = check_source_handles(nodes, edges)
        assert [(i.code, i.severity) for i in issues] == [("stale_handle", "warning")]


class TestOptions:
    """Option-bearing questions need two options."""

    def test_single_option_is_blocking(self) -> None:
        nodes = [start(), question("q1", "dropdown", options=["Only"]), end()]
        edges = [edge("start", "q1"), edge("q1", "end")]
        assert _codes(validate_flow(nodes, edges), "error") == ["insufficient_options"]

    def test_text_question_needs_no_options(self) -> None:
        nodes, edges = _linear()
        assert "insufficient_options" not in _codes(validate_flow(nodes, edges))


class TestWarnings:
    """Orphans, broken pipes and cycles."""

    def test_orphan_question(self) -> None:
        nodes, edges = _linear()
        nodes.append(question("lonely"))
        issues = check_orphans(nodes, edges)
        assert [(i.code, i.node_id) for i in issues] == [("orphan", "lonely")]

    def test_orphan_check_skipped_without_start(self) -> None:
        assert check_orphans([question("q1")], []) == []

    def test_broken_pipe(self) -> None:
        nodes = [start(), question("q1", text="Hi {{gone:Name}}"), end()]
        edges = [edge("start", "q1"), edge("q1", "end")]
        issues = validate_flow(nodes, edges)
        assert [(i.code, i.node_id, i.severity) for i in issues] == [("broken_pipe", "q1", "warning")]

    def test_valid_pipe_is_not_reported(self) -> None:
        nodes, edges = make_color_flow()
        assert "broken_pipe" not in _codes(validate_flow(nodes, edges))

    def test_unreachable_cycle_not_reported(self) -> None:
        nodes = [start(), end(), question("a"), question("b")]
        edges = [edge("start", "end"), edge("a", "b"), edge("b", "a")]
        assert check_cycles(nodes, edges) == []

    def test_each_cycle_reported_once(self) -> None:
        nodes = [start(), question("a"), question("b"), question("c"), end()]
        edges = [
            edge("start", "a"),
            edge("a", "b"),
            edge("b", "a", condition=("equals", "x")),
            edge("b", "c"),
            edge("c", "c", condition=("equals", "y")),
            edge("c", "end"),
        ]
        issues = check_cycles(nodes, edges)
        assert [i.node_id for i in issues] == ["a", "c"]


class TestValidationReport:
    """Tests for the report wrapper."""

    def test_publishable_with_warnings(self) -> None:
        nodes, edges = _linear()
        nodes.append(question("lonely"))
        report = run_all_checks(nodes, edges)
        assert report.is_publishable
        assert report.has_warnings
        assert report.summary == "1 warning"

    def test_summary_counts(self) -> None:
        report = ValidationReport(
            issues=[Issue("error", "a"), Issue("error", "b"), Issue("warning", "c")]
        )
        assert report.summary == "2 errors, 1 warning"
        assert not report.is_publishable
        assert len(report.errors) == 2

    def test_empty_report(self) -> None:
        assert ValidationReport().summary == "no issues"
