"""Tests for respondent walks."""

from __future__ import annotations

import pytest

from flowform.graph.routing import RouteEnd
from flowform.graph.walk import advance, go_back, screen_text, simulate, start_walk
from flowform.models.flow import FlowEdge, FlowNode, TextAnswer
from tests.fixtures.flows import edge, end, question, start


class TestStartWalk:
    """Tests for beginning a walk."""

    def test_starts_on_start_node(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        state = start_walk(*color_flow)
        assert state.current == "start"
        assert state.history == ("start",)
        assert not state.finished

    def test_missing_start_raises(self) -> None:
        with pytest.raises(ValueError, match="no start node"):
            start_walk([question("q")], [])


class TestAdvance:
    """Tests for single steps."""

    def test_records_answer_and_moves(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        state = advance(start_walk(nodes, edges), nodes, edges)
        state = advance(state, nodes, edges, "Ana")
        assert state.current == "q2"
        assert state.answers == {"q1": TextAnswer(value="Ana")}
        assert state.history == ("start", "q1", "q2")

    def test_reaching_end_finishes(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        state = start_walk(nodes, edges)
        for answer in (None, "Ana", "Red"):
            state = advance(state, nodes, edges, answer)
        assert state.current == "end_a"
        assert state.finished
        assert state.end_reason is RouteEnd.TERMINAL

    def test_finished_walk_is_unchanged(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        state = simulate(nodes, edges, {"q2": "Red"}).state
        assert advance(state, nodes, edges, "x") is state

    def test_dead_end_finishes_in_place(self) -> None:
        nodes = [start(), question("q"), end()]
        edges = [edge("start", "q"), edge("q", "end", condition=("equals", "yes"))]
        state = advance(start_walk(nodes, edges), nodes, edges)
        state = advance(state, nodes, edges, "no")
        assert state.current == "q"
        assert state.finished
        assert state.end_reason is RouteEnd.DEAD_END

    def test_malformed_tagged_answer_not_recorded(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        state = advance(start_walk(nodes, edges), nodes, edges)
        state = advance(state, nodes, edges, {"kind": "number", "value": "zz"})
        assert state.current == "q2"
        assert state.answers == {}
        assert state.score == 0


class TestGoBack:
    """Tests for stepping backwards."""

    def test_drops_answers_off_the_path(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        state = start_walk(nodes, edges)
        for answer in (None, "Ana", "Blue"):
            state = advance(state, nodes, edges, answer)
        back = go_back(state)
        assert back.current == "q2"
        assert not back.finished
        assert set(back.answers) == {"q1", "q2"}

        back = go_back(back)
        assert back.current == "q1"
        assert set(back.answers) == {"q1"}

    def test_cannot_go_back_from_start(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        state = start_walk(nodes, edges)
        assert go_back(state) is state

    def test_score_drops_with_answers(self) -> None:
        nodes = [
            start(),
            question("q1", points=2, correct_answer="a"),
            question("q2", points=3, correct_answer="b"),
            end(),
        ]
        edges = [edge("start", "q1"), edge("q1", "q2"), edge("q2", "end")]
        state = simulate(nodes, edges, {"q1": "a", "q2": "b"}).state
        assert state.score == 5

        back = go_back(go_back(state))
        assert back.current == "q1"
        assert back.points == {"q1": 2}
        assert back.score == 2


class TestSimulate:
    """Tests for scripted walks."""

    @pytest.mark.parametrize(("colour", "ending"), [("Red", "end_a"), ("Blue", "end_b")])
    def test_branches_on_colour(
        self, color_flow: tuple[list[FlowNode], list[FlowEdge]], colour: str, ending: str
    ) -> None:
        nodes, edges = color_flow
        result = simulate(nodes, edges, {"q1": "Ana", "q2": colour})
        assert result.path == ["start", "q1", "q2", ending]
        assert not result.hit_step_limit

    def test_loop_hits_step_limit(self) -> None:
        nodes = [start(), question("q1"), question("q2"), end()]
        edges = [
            edge("start", "q1"),
            edge("q1", "q2"),
            edge("q2", "q1", condition=("equals", "again")),
            edge("q2", "end"),
        ]
        result = simulate(nodes, edges, {"q2": "again"}, max_steps=10)
        assert result.hit_step_limit
        assert len(result.path) == 11
        assert not result.state.finished

    def test_score_accumulates(self) -> None:
        nodes = [
            start(),
            question("q1", points=2, correct_answer="a"),
            question("q2", points=3, correct_answer="b"),
            end(),
        ]
        edges = [edge("start", "q1"), edge("q1", "q2"), edge("q2", "end")]
        result = simulate(nodes, edges, {"q1": "a", "q2": "b"})
        assert result.state.score == 5


class TestScreenText:
    """Tests for resolving piped screen text during a walk."""

    def test_resolves_previous_answer(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        state = start_walk(nodes, edges)
        state = advance(state, nodes, edges)
        state = advance(state, nodes, edges, "Ana")
        q2 = next(n for n in nodes if n.id == "q2")
        assert screen_text(q2, state)["question_text"] == "Favourite colour, Ana?"

    def test_unanswered_uses_fallback(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        q2 = next(n for n in nodes if n.id == "q2")
        texts = screen_text(q2, start_walk(nodes, edges), fallback="friend")
        assert texts["question_text"] == "Favourite colour, friend?"

    def test_end_screen_fields(self, color_flow: tuple[list[FlowNode], list[FlowEdge]]) -> None:
        nodes, edges = color_flow
        texts = screen_text(end(), start_walk(nodes, edges))
        assert texts == {"title": "Thank You!", "description": ""}
