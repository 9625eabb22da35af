"""Engine configuration loading.

Configuration lives in an optional ``flowform.yaml``::

    layout:
      direction: LR
      rank_gap: 80
    tidy:
      grid_size: 20
    piping:
      fallback: "..."
    walk:
      max_steps: 500

Resolution order for each setting:
1. Environment variable (``FLOWFORM_PIPE_FALLBACK``, ``FLOWFORM_LAYOUT_DIRECTION``)
2. Config file
3. Built-in default
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, get_args

from ruamel.yaml import YAML

from flowform.graph.layout import Direction, LayoutOptions, TidyDirection, TidyOptions
from flowform.graph.piping import DEFAULT_FALLBACK
from flowform.graph.walk import DEFAULT_MAX_STEPS

CONFIG_FILENAME = "flowform.yaml"

ENV_PIPE_FALLBACK = "FLOWFORM_PIPE_FALLBACK"
ENV_LAYOUT_DIRECTION = "FLOWFORM_LAYOUT_DIRECTION"

_LAYOUT_DIRECTIONS: tuple[str, ...] = get_args(Direction)
_TIDY_DIRECTIONS: tuple[str, ...] = get_args(TidyDirection)


class FlowConfigError(Exception):
    """Raised when engine configuration cannot be loaded."""

    def __init__(self, source: Path | str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to load config from {source}: {reason}")


def _number(section: dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int | float):
        msg = f"'{key}' must be a number, got {value!r}"
        raise ValueError(msg)
    return value


def _direction(value: Any, allowed: tuple[str, ...]) -> str:
    direction = str(value).upper()
    if direction not in allowed:
        msg = f"direction must be one of {', '.join(allowed)}, got {value!r}"
        raise ValueError(msg)
    return direction


def _layout_from_dict(data: dict[str, Any]) -> LayoutOptions:
    defaults = LayoutOptions()
    return LayoutOptions(
        direction=_direction(data.get("direction", defaults.direction), _LAYOUT_DIRECTIONS),  # type: ignore[arg-type]
        node_width=_number(data, "node_width", defaults.node_width),
        node_height=_number(data, "node_height", defaults.node_height),
        rank_gap=_number(data, "rank_gap", defaults.rank_gap),
        node_gap=_number(data, "node_gap", defaults.node_gap),
    )


def _tidy_from_dict(data: dict[str, Any]) -> TidyOptions:
    defaults = TidyOptions()
    grid_size = _number(data, "grid_size", defaults.grid_size)
    if grid_size <= 0:
        msg = f"'grid_size' must be positive, got {grid_size!r}"
        raise ValueError(msg)
    return TidyOptions(
        node_width=_number(data, "node_width", defaults.node_width),
        node_height=_number(data, "node_height", defaults.node_height),
        min_gap_x=_number(data, "min_gap_x", defaults.min_gap_x),
        min_gap_y=_number(data, "min_gap_y", defaults.min_gap_y),
        grid_size=grid_size,
        direction=_direction(data.get("direction", defaults.direction), _TIDY_DIRECTIONS),  # type: ignore[arg-type]
    )


@dataclass
class EngineConfig:
    """Configuration for the flow engine and CLI.

    Attributes:
        layout: Defaults for the full layered layout.
        tidy: Defaults for the tidy layout.
        pipe_fallback: Text shown for missing piped answers.
        max_walk_steps: Step ceiling for simulated walks (loops).
    """

    layout: LayoutOptions = field(default_factory=LayoutOptions)
    tidy: TidyOptions = field(default_factory=TidyOptions)
    pipe_fallback: str = DEFAULT_FALLBACK
    max_walk_steps: int = DEFAULT_MAX_STEPS

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        """Create config from dictionary.

        Args:
            data: Dictionary with optional ``layout``, ``tidy``, ``piping``
                and ``walk`` sections.

        Returns:
            EngineConfig instance.

        Raises:
            ValueError: If a setting has the wrong type or value.
        """
        piping = dict(data.get("piping") or {})
        walk = dict(data.get("walk") or {})

        max_steps = walk.get("max_steps", DEFAULT_MAX_STEPS)
        if isinstance(max_steps, bool) or not isinstance(max_steps, int) or max_steps < 1:
            msg = f"'max_steps' must be a positive integer, got {max_steps!r}"
            raise ValueError(msg)

        return cls(
            layout=_layout_from_dict(dict(data.get("layout") or {})),
            tidy=_tidy_from_dict(dict(data.get("tidy") or {})),
            pipe_fallback=str(piping.get("fallback", DEFAULT_FALLBACK)),
            max_walk_steps=max_steps,
        )

    def with_env_overrides(self) -> EngineConfig:
        """Apply ``FLOWFORM_*`` environment variables on top of this config.

        Raises:
            FlowConfigError: If an environment value is invalid.
        """
        config = self
        fallback = os.getenv(ENV_PIPE_FALLBACK)
        if fallback is not None:
            config = replace(config, pipe_fallback=fallback)

        direction = os.getenv(ENV_LAYOUT_DIRECTION)
        if direction:
            try:
                value = _direction(direction, _LAYOUT_DIRECTIONS)
            except ValueError as e:
                raise FlowConfigError(ENV_LAYOUT_DIRECTION, str(e)) from e
            config = replace(config, layout=replace(config.layout, direction=value))
        return config


def load_config(config_path: Path) -> EngineConfig:
    """Load engine configuration from a YAML file.

    Environment overrides are applied to the result.

    Args:
        config_path: Path to the config file.

    Returns:
        EngineConfig instance.

    Raises:
        FlowConfigError: If config cannot be loaded.
    """
    if not config_path.exists():
        raise FlowConfigError(config_path, "File not found")

    yaml = YAML()
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)

        if data is None:
            return EngineConfig().with_env_overrides()

        return EngineConfig.from_dict(dict(data)).with_env_overrides()
    except Exception as e:
        if isinstance(e, FlowConfigError):
            raise
        raise FlowConfigError(config_path, str(e)) from e


def resolve_config(config_path: Path | None = None, search_dir: Path | None = None) -> EngineConfig:
    """Load the explicit config file, else ``flowform.yaml`` if present, else defaults.

    Args:
        config_path: Explicit config file; must exist.
        search_dir: Directory searched for ``flowform.yaml`` (default: cwd).

    Raises:
        FlowConfigError: If a config file exists but cannot be loaded.
    """
    if config_path is not None:
        return load_config(config_path)
    candidate = (search_dir or Path.cwd()) / CONFIG_FILENAME
    if candidate.exists():
        return load_config(candidate)
    return EngineConfig().with_env_overrides()
