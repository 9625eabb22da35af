"""Pydantic models for flow graphs and generated assessments.

Flow entities (nodes, edges, answers) live in ``models.flow``; the
intermediate shape produced by assessment generators lives in
``models.generation``.
"""

from flowform.models.flow import (
    MIN_OPTIONS,
    MULTI_SELECT_QUESTION_TYPES,
    OPTION_QUESTION_TYPES,
    SCALED_QUESTION_TYPES,
    Answer,
    ChoiceAnswer,
    ConditionType,
    EdgeCondition,
    EndNodeData,
    FlowDocument,
    FlowEdge,
    FlowNode,
    NodeType,
    NumberAnswer,
    Position,
    QuestionNodeData,
    QuestionOption,
    QuestionType,
    StartNodeData,
    TextAnswer,
    answer_text,
    coerce_answer,
    format_number,
)
from flowform.models.generation import (
    GeneratedAssessment,
    GeneratedBranch,
    GeneratedEnd,
    GeneratedQuestion,
    GeneratedStart,
)

__all__ = [
    "MIN_OPTIONS",
    "MULTI_SELECT_QUESTION_TYPES",
    "OPTION_QUESTION_TYPES",
    "SCALED_QUESTION_TYPES",
    "Answer",
    "ChoiceAnswer",
    "ConditionType",
    "EdgeCondition",
    "EndNodeData",
    "FlowDocument",
    "FlowEdge",
    "FlowNode",
    "GeneratedAssessment",
    "GeneratedBranch",
    "GeneratedEnd",
    "GeneratedQuestion",
    "GeneratedStart",
    "NodeType",
    "NumberAnswer",
    "Position",
    "QuestionNodeData",
    "QuestionOption",
    "QuestionType",
    "StartNodeData",
    "TextAnswer",
    "answer_text",
    "coerce_answer",
    "format_number",
]
