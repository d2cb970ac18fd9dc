"""Shared utilities (structured logging)."""

from .logging import (
    JsonLogFormatter,
    configure_json_logger,
    decode_error_fields,
    flush_handlers,
    log_event,
)

__all__ = [
    "JsonLogFormatter",
    "configure_json_logger",
    "decode_error_fields",
    "flush_handlers",
    "log_event",
]
