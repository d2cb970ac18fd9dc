"""Shape descriptor tables loaded from YAML, TOML or JSON documents.

A table maps shape names to a pattern and an ordered field declaration::

    shapes:
      inner:
        pattern: '(?P<foo>\\w+):(?P<bar>\\d+)'
        fields: {foo: str, bar: u32}
      outer:
        pattern: '(?P<first>[^ ]+)( (?P<second>[^ ]+))?'
        fields:
          first: inner
          second: inner?
          note: {type: str, capture: n, default: ""}

A type expression is a scalar name, ``list[<scalar>]`` or the name of
another shape in the same table, optionally followed by ``?``.
"""
from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from .config import get_settings
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
    sized_integer,
)

__all__ = [
    "SCALAR_NAMES",
    "ShapeDeclaration",
    "ShapeRegistry",
    "load_shapes",
    "parse_field_decl",
    "parse_type_expr",
]

SCALAR_NAMES: Dict[str, Scalar] = {
    "str": STRING,
    "string": STRING,
    "bool": BOOLEAN,
    "boolean": BOOLEAN,
    "int": INTEGER,
    "integer": INTEGER,
    "float": FLOAT,
    "f32": FLOAT,
    "f64": FLOAT,
    **{f"i{bits}": sized_integer(bits) for bits in (8, 16, 32, 64, 128)},
    **{f"u{bits}": sized_integer(bits, signed=False) for bits in (8, 16, 32, 64, 128)},
}

_LIST_EXPR = re.compile(r"list\[(?P<inner>[^\[\]]+)\]")
_FIELD_DECL = re.compile(r"(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?:=(?P<capture>[A-Za-z_][A-Za-z0-9_]*))?:(?P<type>.+)")


def parse_type_expr(expr: str, shapes: Optional[Mapping[str, RecordShape]] = None) -> Tuple[Shape, bool]:
    """Parse a type expression such as ``u32?`` into ``(shape, optional)``."""

    text = expr.strip()
    optional = text.endswith("?")
    if optional:
        text = text[:-1].strip()

    shape: Shape
    list_match = _LIST_EXPR.fullmatch(text)
    if list_match:
        inner = list_match.group("inner").strip()
        if inner not in SCALAR_NAMES:
            raise ValueError(f"list items must be scalars, got '{inner}' in '{expr}'")
        shape = ListOf(SCALAR_NAMES[inner])
    elif text in SCALAR_NAMES:
        shape = SCALAR_NAMES[text]
    elif shapes is not None and text in shapes:
        shape = shapes[text]
    else:
        raise ValueError(f"Unknown type '{text}' in '{expr}'")

    if optional:
        return OptionalOf(shape), True
    return shape, False


def parse_field_decl(decl: str, shapes: Optional[Mapping[str, RecordShape]] = None) -> FieldSpec:
    """Parse the command line form ``name[=capture]:type[?]``."""

    match = _FIELD_DECL.fullmatch(decl.strip())
    if match is None:
        raise ValueError(f"Invalid field declaration '{decl}', expected name:type")
    shape, optional = parse_type_expr(match.group("type"), shapes)
    return FieldSpec(name=match.group("name"), shape=shape, optional=optional, capture=match.group("capture"))


@dataclass(frozen=True)
class ShapeDeclaration:
    """Raw, unresolved entry of a shape table."""

    name: str
    pattern: str
    fields: Mapping[str, Any]

    def references(self) -> List[str]:
        refs: List[str] = []
        for value in self.fields.values():
            expr = value.get("type") if isinstance(value, Mapping) else value
            base = str(expr).strip().rstrip("?").strip()
            if base not in SCALAR_NAMES and not _LIST_EXPR.fullmatch(base):
                refs.append(base)
        return refs


def _declarations(payload: Mapping[str, Any]) -> List[ShapeDeclaration]:
    table = payload.get("shapes", payload)
    if not isinstance(table, Mapping):
        raise ValueError("Shape table must be a mapping of shape names")
    out: List[ShapeDeclaration] = []
    for name, entry in table.items():
        if not isinstance(entry, Mapping) or "pattern" not in entry:
            raise ValueError(f"Shape '{name}' must define a pattern")
        fields = entry.get("fields") or {}
        if not isinstance(fields, Mapping):
            raise ValueError(f"Fields of shape '{name}' must be a mapping")
        out.append(ShapeDeclaration(name=str(name), pattern=str(entry["pattern"]), fields=dict(fields)))
    return out


def _field_spec(name: str, value: Any, shapes: Mapping[str, RecordShape]) -> FieldSpec:
    if isinstance(value, Mapping):
        if "type" not in value:
            raise ValueError(f"Field '{name}' must declare a type")
        shape, optional = parse_type_expr(str(value["type"]), shapes)
        return FieldSpec(
            name=name,
            shape=shape,
            optional=optional,
            capture=value.get("capture"),
            default=value.get("default", MISSING),
        )
    shape, optional = parse_type_expr(str(value), shapes)
    return FieldSpec(name=name, shape=shape, optional=optional)


class ShapeRegistry:
    """Resolve and query a table of named record shapes."""

    def __init__(self, declarations: Iterable[ShapeDeclaration]):
        self._declarations: Dict[str, ShapeDeclaration] = {}
        for decl in declarations:
            if decl.name in self._declarations:
                raise ValueError(f"Duplicate shape '{decl.name}'")
            self._declarations[decl.name] = decl
        self.shapes: Dict[str, RecordShape] = {}
        for name in self._declarations:
            self._resolve(name, ())

    def _resolve(self, name: str, stack: Tuple[str, ...]) -> RecordShape:
        if name in self.shapes:
            return self.shapes[name]
        if name in stack:
            cycle = " -> ".join((*stack, name))
            raise ValueError(f"Cyclic shape reference: {cycle}")
        decl = self._declarations[name]
        for ref in decl.references():
            if ref in self._declarations:
                self._resolve(ref, (*stack, name))
        fields = [_field_spec(field_name, value, self.shapes) for field_name, value in decl.fields.items()]
        shape = RecordShape(decl.name, decl.pattern, fields)
        self.shapes[name] = shape
        return shape

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ShapeRegistry":
        return cls(_declarations(payload))

    @classmethod
    def from_file(cls, path: Path | str) -> "ShapeRegistry":
        return cls.from_mapping(_load_document(Path(path)))

    def get(self, name: str) -> Optional[RecordShape]:
        return self.shapes.get(name)

    def __getitem__(self, name: str) -> RecordShape:
        try:
            return self.shapes[name]
        except KeyError:
            raise KeyError(f"Unknown shape '{name}', available: {sorted(self.shapes)}") from None

    def __contains__(self, name: object) -> bool:
        return name in self.shapes

    def names(self) -> List[str]:
        return list(self.shapes)


def _load_document(path: Path) -> Mapping[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Shape file '{path}' does not exist")
    suffix = path.suffix.lower()
    if suffix == ".json":
        payload = json.loads(path.read_text(encoding="utf-8"))
    elif suffix == ".toml":
        with path.open("rb") as handle:
            payload = tomllib.load(handle)
    elif suffix in {".yaml", ".yml"}:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    else:
        raise ValueError(f"Unsupported shape file format: '{suffix}'")
    if not isinstance(payload, Mapping):
        raise ValueError(f"Shape file '{path}' must contain a mapping")
    return payload


def load_shapes(path: Path | str | None = None) -> ShapeRegistry:
    """Load the shape table at ``path`` (defaults to the configured one)."""

    if path is None:
        path = get_settings().shapes_path
        if path is None:
            raise ValueError("No shape file given and REXCAP_SHAPES_PATH is not configured")
    return ShapeRegistry.from_file(path)
