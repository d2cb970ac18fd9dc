"""Descriptors for the shapes a decode call can produce.

The set of shapes is closed: :class:`Scalar`, :class:`OptionalOf`,
:class:`ListOf` and :class:`RecordShape` (a nested record decoded with its own
pattern). Coercion is a total match over these variants.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

__all__ = [
    "MISSING",
    "ScalarType",
    "Scalar",
    "OptionalOf",
    "ListOf",
    "RecordShape",
    "FieldSpec",
    "Shape",
    "STRING",
    "BOOLEAN",
    "INTEGER",
    "FLOAT",
    "sized_integer",
    "type_name",
]


class _MissingType:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _MissingType()


class ScalarType(str, Enum):
    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"


@dataclass(frozen=True)
class Scalar:
    """A leaf value; integers may be restricted to a fixed width."""

    type: ScalarType
    bits: Optional[int] = None
    signed: bool = True

    def __post_init__(self) -> None:
        if self.bits is not None:
            if self.type is not ScalarType.INTEGER:
                raise ValueError(f"bit width only applies to integers, not {self.type.value}")
            if self.bits not in (8, 16, 32, 64, 128):
                raise ValueError(f"unsupported integer width: {self.bits}")

    @property
    def name(self) -> str:
        if self.bits is not None:
            return f"{'i' if self.signed else 'u'}{self.bits}"
        if self.type is ScalarType.INTEGER and not self.signed:
            return "unsigned integer"
        return self.type.value

    @property
    def bounds(self) -> Tuple[Optional[int], Optional[int]]:
        if self.type is not ScalarType.INTEGER:
            return None, None
        if self.bits is None:
            return (None if self.signed else 0), None
        if self.signed:
            return -(1 << (self.bits - 1)), (1 << (self.bits - 1)) - 1
        return 0, (1 << self.bits) - 1


@dataclass(frozen=True)
class OptionalOf:
    inner: "Shape"

    @property
    def name(self) -> str:
        return f"optional {type_name(self.inner)}"


@dataclass(frozen=True)
class ListOf:
    """Separator-joined sequence of scalars captured as one group."""

    inner: Scalar
    separator: str = ","

    def __post_init__(self) -> None:
        if not isinstance(self.inner, Scalar):
            raise TypeError("list items must be scalars")
        if not self.separator:
            raise ValueError("list separator must not be empty")

    @property
    def name(self) -> str:
        return f"list of {self.inner.name}"


@dataclass(frozen=True)
class FieldSpec:
    """One target field: where its text comes from and what it becomes."""

    name: str
    shape: "Shape"
    optional: bool = False
    capture: Optional[str] = None
    default: Any = MISSING
    default_factory: Optional[Callable[[], Any]] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if isinstance(self.shape, OptionalOf) and not self.optional:
            object.__setattr__(self, "optional", True)
        if self.default is not MISSING and self.default_factory is not None:
            raise ValueError(f"field '{self.name}' cannot have both default and default_factory")

    @property
    def capture_name(self) -> str:
        return self.capture or self.name

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING or self.default_factory is not None

    def resolve_default(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        return self.default


def _identity(values: Dict[str, Any]) -> Dict[str, Any]:
    return values


@dataclass(frozen=True, init=False)
class RecordShape:
    """A record decoded from text by ``pattern``.

    ``factory`` turns the decoded field mapping into the caller's type
    (a dataclass, a pydantic model, ...); the default keeps the ``dict``.
    """

    name: str
    pattern: str
    fields: Tuple[FieldSpec, ...]
    factory: Callable[[Dict[str, Any]], Any] = field(default=_identity, compare=False, repr=False)

    def __init__(
        self,
        name: str,
        pattern: str,
        fields: Sequence[FieldSpec],
        factory: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ) -> None:
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "pattern", pattern)
        object.__setattr__(self, "fields", tuple(fields))
        object.__setattr__(self, "factory", factory or _identity)
        names = [spec.name for spec in self.fields]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate field names in shape '{name}': {names}")

    def unmatched_fields(self, compiled: re.Pattern[str]) -> list[str]:
        """Field capture names that the compiled pattern does not declare."""

        groups = set(compiled.groupindex)
        return [spec.capture_name for spec in self.fields if spec.capture_name not in groups]


Shape = Union[Scalar, OptionalOf, ListOf, RecordShape]

STRING = Scalar(ScalarType.STRING)
BOOLEAN = Scalar(ScalarType.BOOLEAN)
INTEGER = Scalar(ScalarType.INTEGER)
FLOAT = Scalar(ScalarType.FLOAT)


def sized_integer(bits: int, *, signed: bool = True) -> Scalar:
    return Scalar(ScalarType.INTEGER, bits=bits, signed=signed)


def type_name(shape: Shape) -> str:
    """Human readable name of ``shape`` used in error messages."""

    return shape.name
