"""JSON Lines event log for the ``rexcap`` logger hierarchy.

Every record is one JSON object. Decode failures passed as ``error=`` to
:func:`log_event` (or logged with ``exc_info``) are expanded into the
structured fields of :func:`decode_error_fields` instead of a traceback, so
a log of skipped lines can be filtered by ``kind`` or ``field``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from uuid import uuid4

from ..errors import CompileError, DecodeError, FieldError, NoMatchError, TypeMismatchError

__all__ = [
    "JsonLogFormatter",
    "configure_json_logger",
    "decode_error_fields",
    "flush_handlers",
    "log_event",
]

ROOT_LOGGER = "rexcap"


def decode_error_fields(exc: DecodeError) -> Dict[str, Any]:
    """Structured view of a decode failure.

    ``kind`` and ``error`` are always present; the remaining keys depend on
    the failure: ``field`` for field errors, ``declared``/``raw`` for type
    mismatches, ``position`` for patterns that do not compile, and the
    ``pattern``/``excerpt`` context whenever it is known.
    """

    fields: Dict[str, Any] = {"kind": type(exc).__name__, "error": str(exc)}
    if isinstance(exc, FieldError):
        fields["field"] = exc.field
    if isinstance(exc, TypeMismatchError):
        fields["declared"] = exc.declared
        fields["raw"] = exc.raw
    if isinstance(exc, CompileError):
        fields["reason"] = exc.reason
        fields["position"] = exc.position
    if isinstance(exc, (FieldError, NoMatchError, CompileError)) and exc.pattern is not None:
        fields["pattern"] = exc.pattern
    excerpt = getattr(exc, "excerpt", None)
    if excerpt is not None:
        fields["excerpt"] = excerpt
    return fields


class JsonLogFormatter(logging.Formatter):
    """One JSON object per record, with decode failures flattened into keys."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": getattr(record, "event", None) or message,
        }
        trace_id = getattr(record, "trace_id", None)
        if trace_id:
            payload["trace_id"] = trace_id

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, Mapping):
            payload.update(extra_fields)

        if record.exc_info:
            exc = record.exc_info[1]
            if isinstance(exc, DecodeError):
                payload.update(decode_error_fields(exc))
            else:
                payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_json_logger(log_path: Optional[Path], level: int = logging.INFO) -> logging.Logger:
    """Route the ``rexcap`` logger hierarchy to ``log_path`` as JSON Lines.

    Library modules log through ``logging.getLogger(__name__)``, so the cache
    and registration warnings land in the same file as CLI events. Without a
    path the records are dropped by a :class:`logging.NullHandler`.
    """

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_path is None:
        logger.addHandler(logging.NullHandler())
        return logger

    log_path = Path(log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(JsonLogFormatter())
    handler.setLevel(level)
    logger.addHandler(handler)
    return logger


def flush_handlers(logger: logging.Logger) -> None:
    for handler in logger.handlers:
        handler.flush()


def log_event(
    logger: logging.Logger,
    event: str,
    *,
    trace_id: Optional[str] = None,
    level: int = logging.INFO,
    error: Optional[DecodeError] = None,
    **fields: Any,
) -> str:
    """Emit ``event`` with ``fields``; returns the trace id used.

    A new trace id is generated when none is given, so the first event of a
    run starts the trace and later events pass it back in.
    """

    event_trace_id = trace_id or uuid4().hex
    logger.log(
        level,
        event,
        exc_info=(type(error), error, error.__traceback__) if error is not None else None,
        extra={"trace_id": event_trace_id, "event": event, "extra_fields": fields},
    )
    return event_trace_id
