"""rexcap – decode regex named capture groups into typed records.

>>> from dataclasses import dataclass
>>> from rexcap import recap
>>> @recap(r"(?P<foo>\\d+)\\s+(?P<bar>true|false)\\s+(?P<baz>\\S+)")
... @dataclass
... class LogEntry:
...     foo: int
...     bar: bool
...     baz: str
>>> LogEntry.parse("1 true hello")
LogEntry(foo=1, bar=True, baz='hello')
"""

from ._version import __version__
from .cache import PatternCache, compile_or_get, default_cache
from .captures import CaptureSet, CaptureSource, extract
from .coerce import coerce
from .decoder import decode, decode_record, decode_source, is_match
from .errors import (
    CompileError,
    DecodeError,
    FieldError,
    MissingFieldError,
    NoMatchError,
    TypeMismatchError,
)
from .records import CaptureModel, recap, shape_for_annotation
from .registry import ShapeRegistry, load_shapes, parse_field_decl, parse_type_expr
from .shapes import (
    BOOLEAN,
    FLOAT,
    INTEGER,
    STRING,
    FieldSpec,
    ListOf,
    OptionalOf,
    RecordShape,
    Scalar,
    ScalarType,
    sized_integer,
)

__all__ = [
    "__version__",
    "PatternCache",
    "compile_or_get",
    "default_cache",
    "CaptureSet",
    "CaptureSource",
    "extract",
    "coerce",
    "decode",
    "decode_record",
    "decode_source",
    "is_match",
    "DecodeError",
    "CompileError",
    "NoMatchError",
    "FieldError",
    "MissingFieldError",
    "TypeMismatchError",
    "CaptureModel",
    "recap",
    "shape_for_annotation",
    "ShapeRegistry",
    "load_shapes",
    "parse_field_decl",
    "parse_type_expr",
    "ScalarType",
    "Scalar",
    "OptionalOf",
    "ListOf",
    "RecordShape",
    "FieldSpec",
    "STRING",
    "BOOLEAN",
    "INTEGER",
    "FLOAT",
    "sized_integer",
]
