"""Error taxonomy raised while decoding text into typed records."""
from __future__ import annotations

import re
from typing import Optional, Sequence, Tuple

__all__ = [
    "DecodeError",
    "CompileError",
    "NoMatchError",
    "FieldError",
    "MissingFieldError",
    "TypeMismatchError",
]


class DecodeError(ValueError):
    """Base class for every failure produced by the decoding engine."""


class CompileError(DecodeError):
    """Raised when a pattern is not a valid regular expression."""

    def __init__(self, pattern: str, error: re.error):
        self.pattern = pattern
        self.reason = error.msg
        self.position: Optional[int] = error.pos
        where = f" at position {self.position}" if self.position is not None else ""
        super().__init__(f"Invalid pattern {pattern!r}: {self.reason}{where}")


class NoMatchError(DecodeError):
    """Raised when the input text does not satisfy the pattern."""

    def __init__(self, pattern: str, excerpt: str):
        self.pattern = pattern
        self.excerpt = excerpt
        super().__init__(f"No captures resolved in string {excerpt!r} (pattern {pattern!r})")


class FieldError(DecodeError):
    """A single field could not be produced from the captured text.

    Raised by the coercion layer without context; the decode driver attaches
    the pattern and an input excerpt through :meth:`with_context`.
    """

    def __init__(self, path: Sequence[str]):
        self.path: Tuple[str, ...] = tuple(path)
        self.pattern: Optional[str] = None
        self.excerpt: Optional[str] = None
        super().__init__(self._render())

    @property
    def field(self) -> str:
        return ".".join(self.path)

    def describe(self) -> str:  # pragma: no cover - overridden
        raise NotImplementedError

    def _render(self) -> str:
        message = f"field '{self.field}': {self.describe()}"
        if self.pattern is not None:
            message += f" (pattern {self.pattern!r}, input {self.excerpt!r})"
        return message

    def nested_under(self, parent: str) -> "FieldError":
        """Prefix the field path with ``parent`` (used by nested records)."""

        self.path = (parent, *self.path)
        self.args = (self._render(),)
        return self

    def with_context(self, pattern: Optional[str], excerpt: Optional[str]) -> "FieldError":
        """Attach the pattern and input excerpt of the outermost decode call."""

        if pattern is None and excerpt is None:
            return self
        self.pattern = pattern
        self.excerpt = excerpt
        self.args = (self._render(),)
        return self


class MissingFieldError(FieldError):
    """A required field's capture group did not participate in the match."""

    def __init__(self, field: str | Sequence[str]):
        super().__init__((field,) if isinstance(field, str) else field)

    def describe(self) -> str:
        return "required value is missing"


class TypeMismatchError(FieldError):
    """Captured text could not be coerced to the declared type."""

    def __init__(self, field: str | Sequence[str], declared: str, raw: str):
        self.declared = declared
        self.raw = raw
        super().__init__((field,) if isinstance(field, str) else field)

    def describe(self) -> str:
        return f"expected {self.declared}, got {self.raw!r}"
