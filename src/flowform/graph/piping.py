"""Answer piping: reference earlier answers in screen text.

Storage format is ``{{nodeId:label}}``, where ``nodeId`` is the source
question's id and ``label`` a human-readable truncation of its text. A token
without the colon separator is malformed and left untouched everywhere.

All functions use a compiled pattern through ``re.sub``/``re.finditer``,
which carry no scan position between calls.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from flowform.models.flow import QuestionNodeData, answer_text, coerce_answer

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping

    from flowform.models.flow import FlowNode

DEFAULT_FALLBACK = "..."

PIPE_PATTERN = re.compile(r"\{\{([^:}]+):([^}]+)\}\}")


def build_pipe_token(node_id: str, label: str) -> str:
    """Build a token for insertion into screen text."""
    return f"{{{{{node_id}:{label}}}}}"


def has_pipe_references(text: str) -> bool:
    """True if ``text`` contains at least one well-formed token."""
    return PIPE_PATTERN.search(text) is not None


def pipe_references(text: str) -> list[tuple[str, str]]:
    """Return ``(node_id, label)`` for every well-formed token, in order."""
    return [(m.group(1), m.group(2)) for m in PIPE_PATTERN.finditer(text)]


def _render_answer(raw: Any, fallback: str) -> str:
    if raw is None:
        return fallback
    answer = coerce_answer(raw)
    if answer is None:
        return fallback
    rendered = answer_text(answer)
    return rendered if rendered != "" else fallback


def resolve_pipes(
    text: str,
    answers: Mapping[str, Any],
    fallback: str = DEFAULT_FALLBACK,
) -> str:
    """Replace every token with the current answer for its node.

    Args:
        text: Screen text containing tokens.
        answers: Answers keyed by node id; answer models or raw values.
        fallback: Rendered for missing or empty answers.

    Returns:
        The text with choice lists joined by ``", "`` and numbers stringified.
    """
    return PIPE_PATTERN.sub(lambda m: _render_answer(answers.get(m.group(1)), fallback), text)


def display_text(text: str) -> str:
    """Editor rendering: ``{{q-1:Favorite color}}`` becomes ``@Favorite color``."""
    return PIPE_PATTERN.sub(lambda m: f"@{m.group(2)}", text)


def node_text_fields(node: FlowNode) -> list[str]:
    """Return the text fields of a screen that may carry tokens."""
    data = node.data
    if isinstance(data, QuestionNodeData):
        texts = [data.question_text, data.description or ""]
    else:
        texts = [data.title, data.description]
    return [text for text in texts if text]


def find_broken_references(text: str, existing_node_ids: Collection[str]) -> list[str]:
    """Return referenced node ids that are not in ``existing_node_ids``.

    A node referenced twice is reported twice, in token order.
    """
    return [node_id for node_id, _label in pipe_references(text) if node_id not in existing_node_ids]


def pipe_label(question_text: str, max_length: int = 30) -> str:
    """Label for a new token: the referenced question's text, truncated."""
    return question_text[:max_length].strip()
