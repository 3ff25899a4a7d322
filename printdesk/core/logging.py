"""
PrintDesk - Structured Logging

Production writes one JSON object per line; dev gets short colored lines.
Fields bound with LogContext (order_id, stage, key, ...) ride along on every
record emitted inside the block, including records from library loggers.

Usage:
    from printdesk.core.logging import LogContext

    with LogContext(order_id=order.id, stage=stage):
        logger.info("Stage changed")
"""

from __future__ import annotations

import json
import logging
import re
import sys
import traceback
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Mapping, Optional

from pydantic import BaseModel

_bound_fields: ContextVar[Mapping[str, Any]] = ContextVar("printdesk_log_fields", default={})

# Substring match on the lowercased key. "key" alone is an S3 object key, not a secret.
_SENSITIVE_KEY = re.compile(
    r"password|secret|api_?key|token|authorization|credential|access_key|consumer_key"
)
_REDACTED = "[REDACTED]"

# Record attributes copied into the JSON body when a caller passes them via extra=.
RECORD_FIELDS = ("request_id", "order_id", "stage", "key", "status_code", "duration_ms", "count", "uid")


def get_current_context() -> Dict[str, Any]:
    return dict(_bound_fields.get())


def clear_context() -> None:
    _bound_fields.set({})


@contextmanager
def LogContext(**fields: Any) -> Iterator[None]:
    """Bind fields to every log record emitted inside the block."""
    token = _bound_fields.set({**_bound_fields.get(), **fields})
    try:
        yield
    finally:
        _bound_fields.reset(token)


def redact_sensitive(data: Any, max_depth: int = 10) -> Any:
    """Return a copy of ``data`` with credential-looking keys masked."""
    if max_depth <= 0:
        return "[MAX_DEPTH_EXCEEDED]"
    depth = max_depth - 1

    if isinstance(data, BaseModel):
        data = data.model_dump()
    if isinstance(data, dict):
        return {
            k: _REDACTED if _SENSITIVE_KEY.search(str(k).lower()) else redact_sensitive(v, depth)
            for k, v in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [redact_sensitive(item, depth) for item in data]
    return data


def _exception_payload(exc_info) -> Optional[Dict[str, Any]]:
    if not exc_info:
        return None
    exc_type, exc, tb = exc_info
    return {
        "type": exc_type.__name__ if exc_type else None,
        "message": str(exc) if exc else None,
        "traceback": traceback.format_exception(exc_type, exc, tb),
    }


class StructuredJsonFormatter(logging.Formatter):
    """
    One JSON document per record, e.g.::

        {"timestamp": "2026-01-01T00:00:00.000000+00:00", "level": "INFO",
         "logger": "printdesk.services.orders", "message": "Order stage changed",
         "order_id": "9f1c...", "stage": "Packed"}

    Bound context is applied first; per-call ``extra=`` fields win over it.
    """

    def __init__(self, redact_sensitive_data: bool = True):
        super().__init__()
        self.redact_sensitive_data = redact_sensitive_data

    def format(self, record: logging.LogRecord) -> str:
        body: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **get_current_context(),
        }
        body.update(
            (name, getattr(record, name))
            for name in RECORD_FIELDS
            if getattr(record, name, None) is not None
        )
        exception = _exception_payload(record.exc_info)
        if exception:
            body["exception"] = exception

        if self.redact_sensitive_data:
            body = redact_sensitive(body)
        return json.dumps(body, default=str, ensure_ascii=False)


class ColoredConsoleFormatter(logging.Formatter):
    """Single-line colored output for local development."""

    LEVEL_COLORS = {
        logging.DEBUG: "36",
        logging.INFO: "32",
        logging.WARNING: "33",
        logging.ERROR: "31",
        logging.CRITICAL: "35",
    }
    SHOWN_FIELDS = ("order_id", "stage", "key")

    def format(self, record: logging.LogRecord) -> str:
        code = self.LEVEL_COLORS.get(record.levelno, "0")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]

        bound = get_current_context()
        shown = ", ".join(f"{name}={bound[name]}" for name in self.SHOWN_FIELDS if name in bound)
        suffix = f" [{shown}]" if shown else ""

        text = f"\033[{code}m{clock} {record.levelname:<8}\033[0m {record.name}{suffix}: {record.getMessage()}"
        exception = _exception_payload(record.exc_info)
        if exception:
            text += "\n" + "".join(exception["traceback"])
        return text


class _BelowWarning(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.WARNING


def configure_structured_logging(
    level: str = "INFO",
    json_output: bool = True,
    service_name: str = "printdesk",
) -> None:
    """
    Install PrintDesk handlers on the root logger, replacing any already there.

    DEBUG/INFO go to stdout and WARNING and above go to stderr, so container
    log collectors can tell the two apart without parsing.

    Args:
        level: Root level name (DEBUG, INFO, WARNING, ...)
        json_output: JSON lines when True, colored console otherwise
        service_name: Bound as ``service`` on every record
    """
    threshold = logging.getLevelName(level.upper())
    if not isinstance(threshold, int):
        threshold = logging.INFO
    formatter = StructuredJsonFormatter() if json_output else ColoredConsoleFormatter()

    info_stream = logging.StreamHandler(sys.stdout)
    info_stream.addFilter(_BelowWarning())
    problem_stream = logging.StreamHandler(sys.stderr)
    problem_stream.setLevel(logging.WARNING)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(threshold)
    for handler in (info_stream, problem_stream):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for chatty in ("httpx", "httpcore", "botocore", "urllib3"):
        logging.getLogger(chatty).setLevel(logging.WARNING)

    _bound_fields.set({**_bound_fields.get(), "service": service_name})
