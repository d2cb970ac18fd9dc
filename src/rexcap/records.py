"""Register Python classes as decode targets.

Two flavours are supported:

* :func:`recap` decorates a :mod:`dataclasses` dataclass;
* :class:`CaptureModel` is a pydantic base model, usable both from text
  (``Model.parse(line)``) and from any other format pydantic understands
  (``Model.model_validate(json_payload)``). A string met by pydantic where a
  ``CaptureModel`` is expected is decoded with the model's pattern, which is
  how nested records work inside JSON documents too.

Field types are read from annotations: ``str``, ``bool``, ``int``, ``float``,
``Optional[X]``, ``list[X]`` of scalars, another registered class (nested
record) and ``Annotated[X, <shape>]`` to pick an explicit shape such as
``sized_integer(32, signed=False)``.
"""
from __future__ import annotations

import dataclasses
import logging
import types
import typing
from functools import lru_cache
from typing import Annotated, Any, Callable, ClassVar, Dict, Iterable, List, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator

from .cache import PatternCache, compile_or_get
from .decoder import decode, decode_record, is_match
from .shapes import (
    BOOLEAN,
    FLOAT,
    INTEGER,
    MISSING,
    STRING,
    FieldSpec,
    ListOf,
    OptionalOf,
    RecordShape,
    Scalar,
    Shape,
)

__all__ = ["CaptureModel", "recap", "shape_for_annotation"]

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_SCALARS: Dict[Any, Scalar] = {str: STRING, bool: BOOLEAN, int: INTEGER, float: FLOAT}
_SHAPE_TYPES = (Scalar, OptionalOf, ListOf, RecordShape)


def _registered_shape(annotation: Any) -> Optional[RecordShape]:
    if isinstance(annotation, type) and issubclass(annotation, CaptureModel):
        return annotation.recap_shape()
    shape = getattr(annotation, "__recap_shape__", None)
    return shape if isinstance(shape, RecordShape) else None


def shape_for_annotation(annotation: Any, metadata: Iterable[Any] = ()) -> Tuple[Shape, bool]:
    """Map a type annotation to ``(shape, optional)``.

    Raises
    ------
    TypeError
        If the annotation has no decoding rule.
    """

    explicit = [item for item in metadata if isinstance(item, _SHAPE_TYPES)]
    origin = typing.get_origin(annotation)

    if origin is Annotated:
        base, *extra = typing.get_args(annotation)
        return shape_for_annotation(base, [*extra, *explicit])

    if origin in (typing.Union, types.UnionType):
        members = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(members) != len(typing.get_args(annotation)) - 1 or len(members) != 1:
            raise TypeError(f"only Optional[X] unions are supported, got {annotation!r}")
        inner, _ = shape_for_annotation(members[0], explicit)
        return OptionalOf(inner), True

    if explicit:
        return explicit[0], isinstance(explicit[0], OptionalOf)

    if origin in (list, List):
        (item,) = typing.get_args(annotation) or (str,)
        inner, optional = shape_for_annotation(item)
        if optional or not isinstance(inner, Scalar):
            raise TypeError(f"list items must be plain scalars, got {annotation!r}")
        return ListOf(inner), False

    if annotation in _SCALARS:
        return _SCALARS[annotation], False

    nested = _registered_shape(annotation)
    if nested is not None:
        return nested, False

    raise TypeError(f"no decoding rule for annotation {annotation!r}")


def _check_groups(shape: RecordShape, cache: Optional[PatternCache]) -> None:
    compiled = compile_or_get(shape.pattern, cache)
    missing = shape.unmatched_fields(compiled)
    if missing:
        LOGGER.warning(
            "fields_without_capture_group",
            extra={"extra_fields": {"shape": shape.name, "captures": missing, "pattern": shape.pattern}},
        )


# ---------------- dataclasses -----------------


def _dataclass_fields(cls: type) -> List[FieldSpec]:
    hints = typing.get_type_hints(cls, include_extras=True)
    specs: List[FieldSpec] = []
    for item in dataclasses.fields(cls):
        if not item.init:
            continue
        shape, optional = shape_for_annotation(hints[item.name])
        default: Any = MISSING
        default_factory: Optional[Callable[[], Any]] = None
        if item.default is not dataclasses.MISSING:
            default = item.default
        elif item.default_factory is not dataclasses.MISSING:
            default_factory = item.default_factory
        specs.append(
            FieldSpec(
                name=item.name,
                shape=shape,
                optional=optional,
                capture=item.metadata.get("capture"),
                default=default,
                default_factory=default_factory,
            )
        )
    return specs


def _parse(cls: type, text: str, *, cache: Optional[PatternCache] = None) -> Any:
    return decode_record(cls.__recap_shape__, text, cache=cache)  # type: ignore[attr-defined]


def _is_match(cls: type, text: str, *, cache: Optional[PatternCache] = None) -> bool:
    return is_match(cls.__recap_shape__.pattern, text, cache=cache)  # type: ignore[attr-defined]


def recap(pattern: str, *, cache: Optional[PatternCache] = None) -> Callable[[type[T]], type[T]]:
    """Class decorator registering a dataclass as a decode target.

    The pattern is compiled immediately, so a malformed pattern fails at
    class definition time with :class:`~rexcap.errors.CompileError`. The
    decorated class gains ``parse(text)``, ``is_match(text)`` and
    ``__recap_shape__``.

    Use ``field(metadata={"capture": "group"})`` to read a field from a
    differently named capture group.
    """

    def wrap(cls: type[T]) -> type[T]:
        if not dataclasses.is_dataclass(cls):
            raise TypeError(f"@recap expects a dataclass, got {cls!r}")
        shape = RecordShape(cls.__name__, pattern, _dataclass_fields(cls), factory=lambda values: cls(**values))
        _check_groups(shape, cache)
        setattr(cls, "__recap_shape__", shape)
        setattr(cls, "parse", classmethod(_parse))
        setattr(cls, "is_match", classmethod(_is_match))
        return cls

    return wrap


# ---------------- pydantic -----------------


class CaptureModel(BaseModel):
    """Pydantic model decodable from text matched by ``capture_pattern``.

    Field aliases name the capture groups; pydantic defaults apply when a
    group did not participate in the match.
    """

    model_config = ConfigDict(populate_by_name=True)

    capture_pattern: ClassVar[str] = ""

    @classmethod
    def recap_shape(cls) -> RecordShape:
        return _model_shape(cls)

    @classmethod
    def parse(cls, text: str, *, cache: Optional[PatternCache] = None):
        """Decode ``text``; engine failures raise :class:`~rexcap.errors.DecodeError`."""

        return decode_record(cls.recap_shape(), text, cache=cache)

    @classmethod
    def is_match(cls, text: str, *, cache: Optional[PatternCache] = None) -> bool:
        return is_match(cls.recap_shape().pattern, text, cache=cache)

    @model_validator(mode="before")
    @classmethod
    def decode_from_text(cls, data: Any) -> Any:
        if isinstance(data, str):
            shape = cls.recap_shape()
            return decode(shape.pattern, shape.fields, data)
        return data


@lru_cache(maxsize=None)
def _model_shape(cls: type[CaptureModel]) -> RecordShape:
    if not cls.capture_pattern:
        raise TypeError(f"{cls.__name__} does not define capture_pattern")
    specs: List[FieldSpec] = []
    for name, info in cls.model_fields.items():
        shape, optional = shape_for_annotation(info.annotation, info.metadata)
        default: Any = MISSING
        default_factory: Optional[Callable[[], Any]] = None
        if not info.is_required():
            if info.default_factory is not None:
                default_factory = info.default_factory  # type: ignore[assignment]
            else:
                default = info.default
        specs.append(
            FieldSpec(
                name=name,
                shape=shape,
                optional=optional,
                capture=info.alias,
                default=default,
                default_factory=default_factory,
            )
        )
    shape = RecordShape(cls.__name__, cls.capture_pattern, specs, factory=cls.model_validate)
    _check_groups(shape, None)
    return shape
