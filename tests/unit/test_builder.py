"""Tests for building flows from generated assessments."""

from __future__ import annotations

from typing import Any

import pytest

from flowform.graph.builder import build_flow
from flowform.graph.errors import FlowBuildError
from flowform.graph.layout import LAYOUT_MARGIN
from flowform.graph.validation_types import Issue
from flowform.graph.walk import simulate
from flowform.models.generation import GeneratedAssessment


def _generated(**overrides: Any) -> GeneratedAssessment:
    data: dict[str, Any] = {
        "title": "Coffee habits",
        "description": "A short survey",
        "startNode": {"title": "Hi", "description": "Two minutes", "buttonText": "Begin"},
        "endNode": {"title": "Thanks", "showScore": True},
        "questions": [
            {"id": "q1", "type": "yes_no", "text": "Do you drink coffee?", "options": ["Yes", "No"]},
            {"id": "q2", "type": "number", "text": "Cups per day?", "min": 0},
            {"id": "q3", "type": "rating", "text": "How much do you like it?"},
        ],
        "branching": [
            {"from": "q1", "condition": "equals", "value": "No", "goto": "end"},
            {"from": "q2", "condition": "greater_than", "value": 5, "goto": "end"},
        ],
    }
    data.update(overrides)
    return GeneratedAssessment.model_validate(data)


class TestBuildFlow:
    """Tests for the linear chain plus branch hints."""

    def test_builds_chain_and_branches(self) -> None:
        result = build_flow(_generated())
        assert [n.type for n in result.nodes] == ["start", "question", "question", "question", "end"]
        assert len(result.edges) == 4 + 2
        assert result.issues == []
        assert set(result.id_map) == {"q1", "q2", "q3"}

    def test_screen_copy(self) -> None:
        result = build_flow(_generated())
        start, end = result.nodes[0], result.nodes[-1]
        assert start.data.title == "Hi"
        assert start.data.button_text == "Begin"  # type: ignore[union-attr]
        assert end.data.show_score is True  # type: ignore[union-attr]

    def test_question_fields(self) -> None:
        result = build_flow(_generated())
        q1, q2, q3 = (n.question for n in result.nodes[1:4])
        assert q1 is not None and q2 is not None and q3 is not None
        assert [o.text for o in q1.options or []] == ["Yes", "No"]
        assert q2.min_value == 0
        assert q2.max_value is None
        assert (q3.min_value, q3.max_value) == (1, 5)

    def test_branch_edges_are_conditioned(self) -> None:
        result = build_flow(_generated())
        end_id = result.nodes[-1].id
        branches = [e for e in result.edges if e.condition is not None]
        assert [(e.source, e.target) for e in branches] == [
            (result.id_map["q1"], end_id),
            (result.id_map["q2"], end_id),
        ]

    def test_built_flow_routes(self) -> None:
        result = build_flow(_generated())
        q1, q2, q3 = (result.id_map[k] for k in ("q1", "q2", "q3"))
        end_id = result.nodes[-1].id

        skipped = simulate(result.nodes, result.edges, {q1: "No"})
        assert skipped.path == [result.nodes[0].id, q1, end_id]

        full = simulate(result.nodes, result.edges, {q1: "Yes", q2: 2, q3: 4})
        assert full.path == [result.nodes[0].id, q1, q2, q3, end_id]

    def test_redundant_hint_is_dropped(self) -> None:
        result = build_flow(
            _generated(branching=[{"from": "q1", "condition": "equals", "value": "Yes", "goto": "q2"}])
        )
        assert len(result.edges) == 4
        assert all(e.is_default for e in result.edges)

    def test_unknown_hint_ids_are_skipped(self) -> None:
        result = build_flow(
            _generated(branching=[{"from": "q9", "condition": "equals", "value": "x", "goto": "end"}])
        )
        assert len(result.edges) == 4

    def test_laid_out_left_to_right(self) -> None:
        result = build_flow(_generated())
        xs = [n.position.x for n in result.nodes]
        assert xs[0] == LAYOUT_MARGIN
        assert xs == sorted(xs)

    def test_layout_can_be_skipped(self) -> None:
        result = build_flow(_generated(), layout=None)
        assert all(n.position.x == 0 and n.position.y == 0 for n in result.nodes)

    def test_document(self) -> None:
        result = build_flow(_generated())
        assert result.document.nodes == result.nodes


class TestBuildErrors:
    """Tests for rejecting unusable flows."""

    def test_blocking_issue_raises(self) -> None:
        generated = _generated(
            questions=[{"id": "q1", "type": "dropdown", "text": "Pick", "options": ["Only"]}],
            branching=[],
        )
        with pytest.raises(FlowBuildError, match="insufficient|at least 2 options") as exc_info:
            build_flow(generated)
        assert [i.code for i in exc_info.value.errors] == ["insufficient_options"]
        assert "Coffee habits" in str(exc_info.value)

    def test_message_truncates_long_lists(self) -> None:
        issues = [Issue("error", f"problem {i}") for i in range(5)] + [Issue("warning", "meh")]
        error = FlowBuildError(issues=issues, title="Quiz")
        assert str(error) == (
            "Built 'Quiz' has 5 blocking errors: problem 0; problem 1; problem 2 (and 2 more)"
        )

    def test_message_without_title(self) -> None:
        error = FlowBuildError(issues=[Issue("error", "bad")])
        assert str(error) == "Built flow has 1 blocking error: bad"
