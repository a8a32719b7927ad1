"""Structured logging utilities for PromptShield.

Guard log lines carry the current ``action_id`` so one intercepted submission
can be traced from trigger to decision to replay.

Never log scanned text. Log category labels and counts only.
"""

import logging
import sys
import time
from contextvars import ContextVar
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from promptshield.constants import SLOW_SCAN_WARN_MS

action_id_var: ContextVar[Optional[str]] = ContextVar("action_id", default=None)


def add_action_id(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    action_id = action_id_var.get()
    if action_id:
        event_dict["action_id"] = action_id
    return event_dict


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog: JSON lines on stderr, or coloured console output."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_action_id,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str = "promptshield") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class PerformanceLogger:
    """Times a block; slow blocks log at WARNING, failures at ERROR."""

    def __init__(self, operation: str, logger: Optional[structlog.stdlib.BoundLogger] = None):
        self.operation = operation
        self.logger = logger or get_logger()
        self.elapsed_ms: float = 0.0
        self._start = 0.0

    def __enter__(self) -> "PerformanceLogger":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000
        if exc_type is not None:
            self.logger.error(
                f"{self.operation}_failed",
                duration_ms=round(self.elapsed_ms, 3),
                error=f"{exc_type.__name__}: {exc_val}",
            )
        elif self.elapsed_ms > SLOW_SCAN_WARN_MS:
            self.logger.warning(f"{self.operation}_slow", duration_ms=round(self.elapsed_ms, 3))
        else:
            self.logger.debug(f"{self.operation}_completed", duration_ms=round(self.elapsed_ms, 3))


def set_action_id(action_id: Optional[str]) -> None:
    action_id_var.set(action_id)


def clear_action_id() -> None:
    action_id_var.set(None)


# Reconfigured by promptshield.runtime from the loaded Config.
configure_logging()
