"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from flowform.models.flow import FlowEdge, FlowNode
from tests.fixtures.flows import make_color_flow


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def clear_flowform_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep FLOWFORM_* variables from a developer shell out of the tests."""
    for name in ("FLOWFORM_PIPE_FALLBACK", "FLOWFORM_LAYOUT_DIRECTION", "FLOWFORM_CONFIG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def color_flow() -> tuple[list[FlowNode], list[FlowEdge]]:
    """start → q1 (short text) → q2 (Red/Blue; Red → end_a, default → end_b)."""
    return make_color_flow()
