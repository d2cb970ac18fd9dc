"""Rules turning a raw captured substring into a typed value."""
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, List, Optional

from .errors import FieldError, MissingFieldError, NoMatchError, TypeMismatchError
from .shapes import ListOf, OptionalOf, RecordShape, Scalar, ScalarType, Shape

if TYPE_CHECKING:  # pragma: no cover
    from .cache import PatternCache

__all__ = ["coerce", "parse_boolean", "parse_float", "parse_integer", "parse_scalar"]

# ASCII digits only; no surrounding whitespace, no underscores
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
_FLOAT_PATTERN = re.compile(
    r"[+-]?(?:(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|(?i:inf|infinity|nan))"
)


def parse_integer(raw: str) -> int:
    if not _INTEGER_PATTERN.fullmatch(raw):
        raise ValueError(f"invalid integer literal: {raw!r}")
    return int(raw)


def parse_float(raw: str) -> float:
    if not _FLOAT_PATTERN.fullmatch(raw):
        raise ValueError(f"invalid float literal: {raw!r}")
    return float(raw)


def parse_boolean(raw: str) -> bool:
    """Accept exactly ``true`` or ``false`` (case-sensitive)."""

    if raw == "true":
        return True
    if raw == "false":
        return False
    raise ValueError(f"invalid boolean literal: {raw!r}")


def parse_scalar(raw: str, scalar: Scalar) -> Any:
    """Parse ``raw`` as ``scalar``; raises ``ValueError`` when it does not fit."""

    if scalar.type is ScalarType.STRING:
        return raw
    if scalar.type is ScalarType.BOOLEAN:
        return parse_boolean(raw)
    if scalar.type is ScalarType.FLOAT:
        return parse_float(raw)
    value = parse_integer(raw)
    if not scalar.signed and raw.startswith("-"):
        raise ValueError(f"sign not allowed for {scalar.name}: {raw!r}")
    low, high = scalar.bounds
    if (low is not None and value < low) or (high is not None and value > high):
        raise ValueError(f"{value} out of range for {scalar.name}")
    return value


def _coerce_list(raw: str, shape: ListOf, field: str) -> List[Any]:
    if raw == "":
        return []
    try:
        return [parse_scalar(item, shape.inner) for item in raw.split(shape.separator)]
    except ValueError as exc:
        raise TypeMismatchError(field, shape.name, raw) from exc


def _coerce_record(raw: str, shape: RecordShape, field: str, cache: Optional["PatternCache"]) -> Any:
    from .decoder import decode_record

    try:
        return decode_record(shape, raw, cache=cache)
    except NoMatchError as exc:
        raise TypeMismatchError(field, shape.name, raw) from exc
    except FieldError as exc:
        raise exc.nested_under(field)


def coerce(
    raw: Optional[str],
    shape: Shape,
    *,
    field: str,
    optional: bool = False,
    cache: Optional["PatternCache"] = None,
) -> Any:
    """Coerce ``raw`` into a value of ``shape`` for the field named ``field``.

    ``None`` means the capture was absent: optional fields (or an
    :class:`OptionalOf` shape) yield ``None``, anything else is a
    :class:`MissingFieldError`. A present value, even an empty string, is
    always parsed. Strings are returned verbatim.

    Nested :class:`RecordShape` values are decoded with the nested pattern,
    compiled through ``cache``.
    """

    if raw is None:
        if optional or isinstance(shape, OptionalOf):
            return None
        raise MissingFieldError(field)

    if isinstance(shape, OptionalOf):
        return coerce(raw, shape.inner, field=field, optional=False, cache=cache)
    if isinstance(shape, Scalar):
        try:
            return parse_scalar(raw, shape)
        except ValueError as exc:
            raise TypeMismatchError(field, shape.name, raw) from exc
    if isinstance(shape, ListOf):
        return _coerce_list(raw, shape, field)
    if isinstance(shape, RecordShape):
        return _coerce_record(raw, shape, field, cache)
    raise TypeError(f"unsupported shape for field '{field}': {shape!r}")
