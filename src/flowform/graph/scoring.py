"""Assessment scoring.

Option-bearing questions score the ``points`` of the selected options. Other
questions award their ``points`` only when the answer matches
``correct_answer``; without a correct answer they score nothing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flowform.graph.routing import chosen_option_ids
from flowform.models.flow import MULTI_SELECT_QUESTION_TYPES, ChoiceAnswer, answer_text, coerce_answer

if TYPE_CHECKING:
    from collections.abc import Iterable

    from flowform.models.flow import FlowNode, QuestionNodeData


def _has_option_points(question: QuestionNodeData) -> bool:
    return any(option.points is not None for option in question.options or [])


def _matches_correct(question: QuestionNodeData, raw: Any) -> bool:
    answer = coerce_answer(raw)
    if answer is None:
        return False
    correct = question.correct_answer
    if correct is None:
        return False
    if isinstance(correct, list):
        if isinstance(answer, ChoiceAnswer):
            return sorted(answer.values) == sorted(correct)
        return answer_text(answer) in correct
    if isinstance(answer, ChoiceAnswer):
        return answer.values == [correct]
    return answer_text(answer).strip().casefold() == correct.strip().casefold()


def score_for_answer(node: FlowNode, answer: Any) -> float:
    """Points earned by ``answer`` on ``node`` (0 for start and end screens)."""
    question = node.question
    if question is None or answer is None:
        return 0.0

    if question.is_option_bearing and _has_option_points(question):
        selected = set(chosen_option_ids(node, answer))
        return float(sum(option.points or 0 for option in question.options or [] if option.id in selected))

    if question.points is None:
        return 0.0
    if question.is_option_bearing and question.correct_answer is not None:
        # Correct answers on option questions may be stored as ids or texts.
        chosen = chosen_option_ids(node, answer)
        texts = {o.id: o.text for o in question.options or []}
        expected = question.correct_answer if isinstance(question.correct_answer, list) else [question.correct_answer]
        chosen_texts = sorted(texts[oid] for oid in chosen)
        expected_texts = sorted(texts.get(value, value) for value in expected)
        return question.points if chosen and chosen_texts == expected_texts else 0.0
    return question.points if _matches_correct(question, answer) else 0.0


def max_score(nodes: Iterable[FlowNode]) -> float:
    """Best achievable total over all question nodes.

    Single-select questions count their best option, multi-select questions
    the sum of their positive options, and other questions their ``points``
    when a correct answer is set. Visiting every question is assumed, so
    branching flows may report more than any single path can earn.
    """
    total = 0.0
    for node in nodes:
        question = node.question
        if question is None:
            continue
        if question.is_option_bearing and _has_option_points(question):
            points = [option.points or 0 for option in question.options or []]
            if question.question_type in MULTI_SELECT_QUESTION_TYPES:
                total += sum(p for p in points if p > 0)
            else:
                total += max(max(points), 0)
        elif question.points is not None and question.correct_answer is not None:
            total += max(question.points, 0)
    return float(total)
