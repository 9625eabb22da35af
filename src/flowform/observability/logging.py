"""Structured logging configuration for FlowForm.

Provides two logging modes:
- Console logging: Controlled by -v flag (INFO/DEBUG to stderr)
- File logging: Controlled by --log-dir (all events to {log_dir}/flowform.jsonl)

Engine modules only ever call :func:`get_logger`; configuration is the
caller's business (the CLI configures it once per invocation).

Every event carries a ``component`` field naming the engine module that
emitted it (``routing``, ``layout``, ``validation``, ...), so a JSONL log of a
walk or a build can be filtered per stage.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003 - Used at runtime for path operations
from typing import TYPE_CHECKING, Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from structlog.typing import EventDict, Processor, WrappedLogger

LOG_FILENAME = "flowform.jsonl"
PACKAGE_PREFIX = "flowform."

# Module-level state
_configured = False
_file_handler: logging.FileHandler | None = None
_logs_dir: Path | None = None


def component_for(logger_name: str) -> str:
    """Short component name for a logger: ``flowform.graph.routing`` → ``routing``."""
    if logger_name.startswith(PACKAGE_PREFIX):
        return logger_name.rsplit(".", 1)[-1]
    return logger_name


def add_component(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """structlog processor adding the emitting engine component."""
    name = getattr(logger, "name", None)
    if name:
        event_dict.setdefault("component", component_for(name))
    return event_dict


def _drop_console_meta(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    # RichHandler renders its own time and level columns
    event_dict.pop("timestamp", None)
    event_dict.pop("level", None)
    return event_dict


class JSONLFileHandler(logging.FileHandler):
    """File handler that writes one JSON object per event.

    Records look like ``{"timestamp", "level", "component", "event", ...}``
    with the event's key/value pairs flattened in.
    """

    def emit(self, record: logging.LogRecord) -> None:
        """Write log record as JSON line."""
        try:
            entry: dict[str, Any] = {
                "timestamp": datetime.now(UTC).isoformat(),
                "level": record.levelname.lower(),
                "component": component_for(record.name),
            }

            # structlog passes the event dict via record.msg when using wrap_for_formatter
            if isinstance(record.msg, dict):
                fields = {k: v for k, v in record.msg.items() if k not in ("level", "timestamp")}
                entry["event"] = fields.pop("event", "")
                entry.update(fields)
            else:
                entry["event"] = record.getMessage()

            line = json.dumps(entry, default=str) + "\n"
            if self.stream:
                self.stream.write(line)
                self.stream.flush()
        except Exception:
            self.handleError(record)


def configure_logging(
    verbosity: int = 0,
    log_dir: Path | None = None,
) -> None:
    """Configure logging for FlowForm.

    Args:
        verbosity: 0=WARNING (default), 1=INFO, 2+=DEBUG
        log_dir: If given, also write every event to ``{log_dir}/flowform.jsonl``.
    """
    global _configured, _file_handler, _logs_dir

    # Close existing file handler if reconfiguring
    if _file_handler is not None:
        _file_handler.close()
        _file_handler = None

    levels = {0: logging.WARNING, 1: logging.INFO}
    console_level = levels.get(verbosity, logging.DEBUG)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        add_component,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    console_handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbosity >= 2,
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
        markup=False,
        level=console_level,
    )
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _drop_console_meta,
                structlog.dev.ConsoleRenderer(colors=False),
            ],
            foreign_pre_chain=shared_processors,
        )
    )

    handlers: list[logging.Handler] = [console_handler]

    if log_dir is not None:
        _logs_dir = log_dir
        _logs_dir.mkdir(parents=True, exist_ok=True)

        _file_handler = JSONLFileHandler(str(_logs_dir / LOG_FILENAME), mode="a")
        _file_handler.setLevel(logging.DEBUG)
        handlers.append(_file_handler)
    else:
        _logs_dir = None

    root_level = logging.DEBUG if (verbosity > 0 or log_dir is not None) else logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(message)s",
        handlers=handlers,
        force=True,
    )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a structured logger instance.

    Automatically configures logging if not already done.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Bound logger instance.
    """
    if not _configured:
        configure_logging()

    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


def get_logs_dir() -> Path | None:
    """Get the configured logs directory.

    Returns:
        Path to logs directory if file logging is enabled, None otherwise.
    """
    return _logs_dir


def close_file_logging() -> None:
    """Close file logging handler."""
    global _file_handler
    if _file_handler:
        _file_handler.close()
        _file_handler = None
