"""Decode driver: compile, extract, coerce every field, assemble.

Decoding is all-or-nothing. The first failing field aborts the call and no
partial record is returned.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Optional, Sequence, Union

from .cache import PatternCache, compile_or_get
from .captures import CaptureSource, excerpt, extract
from .coerce import coerce
from .errors import FieldError
from .shapes import FieldSpec, RecordShape

__all__ = ["PatternLike", "decode", "decode_record", "decode_source", "is_match", "resolve_pattern"]

PatternLike = Union[str, re.Pattern[str]]


def resolve_pattern(pattern: PatternLike, cache: Optional[PatternCache] = None) -> re.Pattern[str]:
    """Return a compiled handle, going through the cache for pattern text."""

    if isinstance(pattern, re.Pattern):
        return pattern
    return compile_or_get(pattern, cache)


def decode_source(
    source: CaptureSource,
    fields: Sequence[FieldSpec],
    *,
    pattern: Optional[str] = None,
    text: Optional[str] = None,
    cache: Optional[PatternCache] = None,
) -> Dict[str, Any]:
    """Coerce each field of ``fields`` from ``source``, in declaration order.

    ``pattern`` and ``text`` only feed the context attached to a
    :class:`FieldError`.
    """

    record: Dict[str, Any] = {}
    for spec in fields:
        raw = source.get_scalar(spec.capture_name)
        if raw is None and spec.has_default:
            record[spec.name] = spec.resolve_default()
            continue
        try:
            record[spec.name] = coerce(raw, spec.shape, field=spec.name, optional=spec.optional, cache=cache)
        except FieldError as exc:
            raise exc.with_context(pattern, excerpt(text) if text is not None else None)
    return record


def decode(
    pattern: PatternLike,
    fields: Sequence[FieldSpec],
    text: str,
    *,
    cache: Optional[PatternCache] = None,
) -> Dict[str, Any]:
    """Decode ``text`` into a field mapping keyed by field name.

    Raises
    ------
    CompileError
        ``pattern`` is not a valid regular expression.
    NoMatchError
        ``text`` does not match ``pattern``.
    MissingFieldError, TypeMismatchError
        A field could not be produced from the captures.
    """

    compiled = resolve_pattern(pattern, cache)
    captures = extract(compiled, text)
    return decode_source(CaptureSource(captures), fields, pattern=compiled.pattern, text=text, cache=cache)


def decode_record(shape: RecordShape, text: str, *, cache: Optional[PatternCache] = None) -> Any:
    """Decode ``text`` with ``shape`` and build the target through its factory."""

    return shape.factory(decode(shape.pattern, shape.fields, text, cache=cache))


def is_match(pattern: PatternLike, text: str, *, cache: Optional[PatternCache] = None) -> bool:
    """Whether ``pattern`` finds a match in ``text``; never raises for bad input text."""

    return resolve_pattern(pattern, cache).search(text) is not None
