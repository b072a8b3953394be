# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core - Structured logging with context
# PURPOSE: Job-scoped log fields for every component
# CREATED: 19 OCT 2026
# ============================================================================
"""
Structured Logging

Every job runs as its own asyncio task on one loop thread, so per-job
fields (job_id, source_index, attempt, profile) live in a ContextVar and
are stamped onto each record by a logging filter. Plain
logging.getLogger(__name__) loggers get the fields too.

Output is one line per record: human-readable by default, JSON when
LOG_FORMAT=json.

Usage:
    from core.logging import log_context, log_checkpoint

    with log_context(job_id=job.job_id, source_index=0):
        logger.info("Staging source")
        log_checkpoint("source_staged", {"path": path}, logger)
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Union


class ComponentType(str, Enum):
    """Component types for logging categorization."""
    ORCHESTRATOR = "orchestrator"
    SEQUENCER = "sequencer"
    RUNNER = "runner"
    STAGING = "staging"
    VALIDATOR = "validator"
    PROVISIONER = "provisioner"
    API = "api"


# Client libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "aiohttp.access", "googleapiclient.discovery_cache")


# ============================================================================
# CONTEXT
# ============================================================================

@dataclass(frozen=True)
class LogContext:
    """Fields attached to every record emitted inside a log_context block."""
    job_id: Optional[str] = None
    source_index: Optional[int] = None
    attempt: Optional[int] = None
    profile: Optional[str] = None
    component: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def merged(self, **updates: Any) -> "LogContext":
        known = {f.name for f in fields(self)} - {"extra"}
        extra = dict(self.extra)
        extra.update({k: v for k, v in updates.items() if k not in known})
        return replace(
            self,
            extra=extra,
            **{k: v for k, v in updates.items() if k in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "extra" and getattr(self, f.name) is not None
        }
        result.update(self.extra)
        return result


_EMPTY = LogContext()
_context: ContextVar[LogContext] = ContextVar("relay_log_context", default=_EMPTY)


def get_current_context() -> LogContext:
    return _context.get()


@contextmanager
def log_context(**updates: Any) -> Iterator[LogContext]:
    """
    Layer fields over the current context for the duration of the block.

    Unknown keywords land in `extra`. Nested blocks inherit outer fields.
    """
    token = _context.set(_context.get().merged(**updates))
    try:
        yield _context.get()
    finally:
        _context.reset(token)


class ContextFilter(logging.Filter):
    """Copies the task's LogContext onto the record as `relay_context`."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.relay_context = get_current_context().to_dict()
        return True


# ============================================================================
# FORMATTERS
# ============================================================================

def _utc_iso(created: float) -> str:
    return datetime.fromtimestamp(created, timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": _utc_iso(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "relay_context", None)
        if context:
            payload["context"] = context

        checkpoint = getattr(record, "checkpoint", None)
        if checkpoint:
            payload["checkpoint"] = checkpoint
            payload["data"] = getattr(record, "checkpoint_data", None) or {}

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class HumanFormatter(logging.Formatter):
    """
    `2026-10-19 12:00:00 INFO     orchestrator.sequencer [job=job-1, source=0]: msg`
    """

    _SHORT = (
        ("job_id", "job"),
        ("source_index", "source"),
        ("attempt", "attempt"),
        ("profile", "profile"),
    )

    def __init__(self):
        super().__init__(fmt="%(asctime)s %(levelname)-8s %(name)s%(ctx)s: %(message)s",
                         datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        context = getattr(record, "relay_context", None) or {}
        parts = [f"{short}={context[key]}" for key, short in self._SHORT if key in context]
        record.ctx = f" [{', '.join(parts)}]" if parts else ""

        line = super().format(record)
        data = getattr(record, "checkpoint_data", None)
        if data:
            line += f" {data}"
        return line


# ============================================================================
# SETUP
# ============================================================================

class ComponentLogger(logging.LoggerAdapter):
    """Adapter that tags every record with a fixed component."""

    def process(self, msg, kwargs):
        # Component travels in the context, caller's extra stays untouched
        return msg, kwargs

    def log(self, level, msg, *args, **kwargs):
        component = self.extra.get("component")
        if component is None or get_current_context().component:
            return super().log(level, msg, *args, **kwargs)
        with log_context(component=component):
            return super().log(level, msg, *args, **kwargs)


def get_logger(
    name: str,
    component: Optional[ComponentType] = None,
) -> ComponentLogger:
    """Logger that falls back to `component` when no block has set one."""
    value = component.value if component is not None else None
    return ComponentLogger(logging.getLogger(name), {"component": value})


def configure_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = False,
) -> None:
    """
    Install one stdout handler on the root logger.

    Args:
        level: Log level name or number
        json_output: JSON lines instead of the human format
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    use_json = json_output or os.getenv("LOG_FORMAT", "").lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if use_json else HumanFormatter())
    handler.addFilter(ContextFilter())

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


# ============================================================================
# CHECKPOINTS
# ============================================================================

def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
) -> None:
    """
    Log a named sequencer checkpoint.

    job_admitted, job_started, source_staged, attempt_finished,
    source_abandoned and job_terminated let a job's path be rebuilt
    from logs alone.
    """
    (logger or logging.getLogger("checkpoint")).info(
        f"CHECKPOINT: {name}",
        extra={"checkpoint": name, "checkpoint_data": dict(data or {})},
    )


__all__ = [
    "ComponentType",
    "LogContext",
    "ContextFilter",
    "JsonFormatter",
    "HumanFormatter",
    "ComponentLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
]
