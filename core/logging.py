# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - READINESS PROBING
# STATUS: Core - Structured logging with context
# PURPOSE: Consistent, queryable logging across all wait strategies
# CREATED: 18 OCT 2026
# ============================================================================
"""
Structured Logging

Provides structured logging for the readiness engine.

Features:
- Context-aware loggers
- Contextual fields (strategy, target, operation, attempt)
- JSON output for log aggregation
- Human-readable output for local test runs

Context is task-local (contextvars), so concurrent evaluations of
different targets in one event loop do not see each other's fields.

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger("wait.log")

    with log_context(strategy="LogStrategy", target="postgres-1"):
        logger.debug("Pattern not found yet", extra={"attempt": 3})
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Union

from core.config import get_defaults


@dataclass(frozen=True)
class LogContext:
    """
    Context for structured logging.

    Immutable; nested contexts are derived copies.
    """
    strategy: Optional[str] = None
    target: Optional[str] = None
    operation: Optional[str] = None
    attempt: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        result = {}
        for key, value in asdict(self).items():
            if value is not None and key != "extra":
                result[key] = value
        if self.extra:
            result.update(self.extra)
        return result


# Task-local context stack
_context_stack: ContextVar[Tuple[LogContext, ...]] = ContextVar("wait_log_context", default=())


def get_current_context() -> LogContext:
    """Get current logging context."""
    stack = _context_stack.get()
    if stack:
        return stack[-1]
    return LogContext()


@contextmanager
def log_context(**kwargs):
    """
    Context manager for adding logging context.

    Args:
        **kwargs: Context fields to add; unknown names go into `extra`

    Example:
        with log_context(strategy="HTTPStrategy", operation="wait_until_ready"):
            logger.debug("Probing endpoint")
    """
    parent = get_current_context()
    known = {k: v for k, v in kwargs.items() if k in ("strategy", "target", "operation", "attempt")}
    extra = {**parent.extra, **kwargs.get("extra", {})}
    extra.update({
        k: v for k, v in kwargs.items()
        if k not in known and k != "extra"
    })
    new_context = replace(parent, extra=extra, **known)

    token = _context_stack.set(_context_stack.get() + (new_context,))
    try:
        yield new_context
    finally:
        _context_stack.reset(token)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON for easy parsing by log aggregators.
    """

    def __init__(
        self,
        include_timestamp: bool = True,
        include_level: bool = True,
        include_logger: bool = True,
        include_context: bool = True,
    ):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_level = include_level
        self.include_logger = include_logger
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {}

        if self.include_timestamp:
            log_data["timestamp"] = datetime.now(timezone.utc).isoformat()

        if self.include_level:
            log_data["level"] = record.levelname

        if self.include_logger:
            log_data["logger"] = record.name

        log_data["message"] = record.getMessage()

        if self.include_context:
            context_dict = get_current_context().to_dict()
            if context_dict:
                log_data["context"] = context_dict

        # Include extra fields from record
        if hasattr(record, "extra") and record.extra:
            log_data["data"] = record.extra

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data["source"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }

        return json.dumps(log_data, default=str)


class HumanFormatter(logging.Formatter):
    """
    Human-readable formatter for development.

    Includes context fields inline for easy reading.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for human reading."""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname.ljust(8)

        context = get_current_context()
        context_parts = []
        if context.strategy:
            context_parts.append(f"strategy={context.strategy}")
        if context.target:
            context_parts.append(f"target={context.target}")
        if context.attempt is not None:
            context_parts.append(f"attempt={context.attempt}")

        context_str = f" [{', '.join(context_parts)}]" if context_parts else ""

        message = record.getMessage()

        extra_str = ""
        if hasattr(record, "extra") and record.extra:
            extra_str = f" {record.extra}"

        result = f"{timestamp} {level} {record.name}{context_str}: {message}{extra_str}"

        if record.exc_info:
            result += f"\n{self.formatException(record.exc_info)}"

        return result


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that includes context in log records.

    Automatically includes the task-local context in all log messages.
    """

    def process(self, msg, kwargs):
        """Process log record to include context."""
        extra = dict(kwargs.get("extra", {}))
        extra.update(get_current_context().to_dict())

        # Store as attribute for formatter access
        kwargs["extra"] = {"extra": extra}

        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    """
    Get a context-aware logger.

    Args:
        name: Logger name (e.g., "wait.http")

    Returns:
        ContextLogger instance
    """
    return ContextLogger(logging.getLogger(name), {})


def configure_logging(
    level: Optional[Union[str, int]] = None,
    json_output: Optional[bool] = None,
) -> None:
    """
    Configure logging for the process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR), LOG_LEVEL if omitted
        json_output: Use JSON format (for CI log collectors), LOG_FORMAT=json if omitted
    """
    defaults = get_defaults().logging
    if level is None:
        level = defaults.level
    if json_output is None:
        json_output = defaults.json_output

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_output:
        formatter = StructuredFormatter(include_context=True)
    else:
        formatter = HumanFormatter()

    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
]
