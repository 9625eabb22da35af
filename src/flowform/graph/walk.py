"""Respondent walk helpers.

A respondent session is a plain immutable :class:`WalkState` value threaded
through :func:`advance` and :func:`go_back`. The engine keeps nothing
between calls; abandoning a walk is simply not calling it again.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from flowform.graph.piping import DEFAULT_FALLBACK, resolve_pipes
from flowform.graph.routing import RouteEnd, next_node
from flowform.graph.scoring import score_for_answer
from flowform.models.flow import QuestionNodeData, coerce_answer
from flowform.observability.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from flowform.models.flow import Answer, FlowEdge, FlowNode

log = get_logger(__name__)

DEFAULT_MAX_STEPS = 500


@dataclass(frozen=True)
class WalkState:
    """Where a respondent is and what they have answered.

    Attributes:
        current: Id of the screen being shown.
        history: Visited node ids, oldest first; ends with ``current``.
        answers: Answers keyed by question node id.
        points: Points earned per answered question node.
        score: Total of ``points``.
        finished: True once an end screen (or a dead end) is reached.
        end_reason: How the walk finished, if it has.
    """

    current: str
    history: tuple[str, ...] = ()
    answers: dict[str, Answer] = field(default_factory=dict)
    points: dict[str, float] = field(default_factory=dict)
    score: float = 0.0
    finished: bool = False
    end_reason: RouteEnd | None = None


@dataclass(frozen=True)
class WalkResult:
    """Outcome of :func:`simulate`.

    Attributes:
        state: The final walk state.
        path: Visited node ids in order.
        hit_step_limit: True if the walk was cut off by the step ceiling.
    """

    state: WalkState
    path: list[str]
    hit_step_limit: bool = False


def start_walk(nodes: Sequence[FlowNode], edges: Sequence[FlowEdge]) -> WalkState:
    """Begin a walk on the start screen.

    Raises:
        ValueError: If the flow has no start node.
    """
    start = next((node for node in nodes if node.type == "start"), None)
    if start is None:
        msg = "Flow has no start node"
        raise ValueError(msg)
    return WalkState(current=start.id, history=(start.id,))


def advance(
    state: WalkState,
    nodes: Sequence[FlowNode],
    edges: Sequence[FlowEdge],
    answer: Any = None,
) -> WalkState:
    """Record ``answer`` for the current screen and move to the next one.

    Reaching an end screen finishes the walk; so does a dead end, with
    ``end_reason`` set to :attr:`RouteEnd.DEAD_END`. Advancing a finished
    walk returns it unchanged.

    An answer that cannot be read as text, choices or a number is not
    recorded (any earlier answer for the screen is dropped) and routing
    treats the screen as unanswered.
    """
    if state.finished:
        return state

    by_id = {node.id: node for node in nodes}
    answers = dict(state.answers)
    points = dict(state.points)
    current = by_id.get(state.current)
    if current is not None and current.type == "question" and answer is not None:
        try:
            recorded = coerce_answer(answer)
        except (TypeError, ValidationError):
            log.warning("walk_answer_unsupported", node_id=state.current, answer_type=type(answer).__name__)
            answers.pop(state.current, None)
            points.pop(state.current, None)
        else:
            answers[state.current] = recorded
            points[state.current] = score_for_answer(current, recorded)

    result = next_node(state.current, nodes, edges, answer)
    score = sum(points.values())
    if isinstance(result, RouteEnd):
        log.debug("walk_finished", node_id=state.current, reason=result.value)
        return replace(state, answers=answers, points=points, score=score, finished=True, end_reason=result)

    finished = by_id[result].type == "end"
    return WalkState(
        current=result,
        history=(*state.history, result),
        answers=answers,
        points=points,
        score=score,
        finished=finished,
        end_reason=RouteEnd.TERMINAL if finished else None,
    )


def go_back(state: WalkState) -> WalkState:
    """Return to the previous screen.

    Answers and points for screens no longer on the path are dropped; the
    previous screen keeps its answer so it can be shown pre-filled.
    """
    if len(state.history) <= 1:
        return state
    history = state.history[:-1]
    on_path = set(history)
    points = {nid: earned for nid, earned in state.points.items() if nid in on_path}
    return WalkState(
        current=history[-1],
        history=history,
        answers={nid: answer for nid, answer in state.answers.items() if nid in on_path},
        points=points,
        score=sum(points.values()),
    )


def simulate(
    nodes: Sequence[FlowNode],
    edges: Sequence[FlowEdge],
    answers_by_node: Mapping[str, Any],
    max_steps: int = DEFAULT_MAX_STEPS,
) -> WalkResult:
    """Walk the flow from start, answering each screen from ``answers_by_node``.

    Screens without a scripted answer are answered with None. Loops are cut
    off after ``max_steps`` transitions.
    """
    state = start_walk(nodes, edges)
    steps = 0
    while not state.finished:
        if steps >= max_steps:
            log.warning("walk_step_limit", max_steps=max_steps, node_id=state.current)
            return WalkResult(state=state, path=list(state.history), hit_step_limit=True)
        state = advance(state, nodes, edges, answers_by_node.get(state.current))
        steps += 1
    return WalkResult(state=state, path=list(state.history))


def screen_text(
    node: FlowNode,
    state: WalkState,
    fallback: str = DEFAULT_FALLBACK,
) -> dict[str, str]:
    """Resolve the piped text fields of ``node`` against the walk's answers."""
    data = node.data
    if isinstance(data, QuestionNodeData):
        fields = {"question_text": data.question_text, "description": data.description or ""}
    else:
        fields = {"title": data.title, "description": data.description}
    return {name: resolve_pipes(text, state.answers, fallback) for name, text in fields.items()}
