"""Reading and writing flow documents.

Flows are stored as ``{"nodes": [...], "edges": [...]}`` in the persisted
camelCase shape. The format follows the file suffix: ``.json`` for JSON,
``.yaml``/``.yml`` for YAML.
"""

from __future__ import annotations

import json
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from ruamel.yaml import YAML

from flowform.models.flow import FlowDocument
from flowform.models.generation import GeneratedAssessment

T = TypeVar("T", bound=BaseModel)

YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class FlowFileError(Exception):
    """Raised when a flow file can't be read or written."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Flow file error at {path}: {reason}")


def _yaml() -> YAML:
    yaml = YAML()
    yaml.default_flow_style = False
    yaml.indent(mapping=2, sequence=4, offset=2)
    return yaml


def _read_data(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FlowFileError(path, "File not found")

    try:
        with path.open("r", encoding="utf-8") as f:
            data = _yaml().load(f) if path.suffix.lower() in YAML_SUFFIXES else json.load(f)
    except Exception as e:
        raise FlowFileError(path, str(e)) from e

    if data is None:
        raise FlowFileError(path, "Empty file")
    if not isinstance(data, dict):
        raise FlowFileError(path, f"Expected a mapping at top level, got {type(data).__name__}")
    return dict(data)


def _read_validated(path: Path, model: type[T]) -> T:
    data = _read_data(path)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise FlowFileError(path, f"Invalid {model.__name__}: {e}") from e


def load_flow(path: Path) -> FlowDocument:
    """Load and validate a flow document.

    Raises:
        FlowFileError: If the file is missing, unparseable or malformed.
    """
    return _read_validated(path, FlowDocument)


def load_generated(path: Path) -> GeneratedAssessment:
    """Load a generated assessment (the builder's input).

    Raises:
        FlowFileError: If the file is missing, unparseable or malformed.
    """
    return _read_validated(path, GeneratedAssessment)


def save_flow(document: FlowDocument, path: Path) -> Path:
    """Write a flow document in the persisted camelCase shape.

    Parent directories are created as needed. Unset optional fields are
    omitted.

    Raises:
        FlowFileError: If the file can't be written.
    """
    data = document.model_dump(by_alias=True, mode="json", exclude_none=True)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                _yaml().dump(data, f)
            else:
                json.dump(data, f, indent=2)
                f.write("\n")
    except Exception as e:
        raise FlowFileError(path, str(e)) from e
    return path
