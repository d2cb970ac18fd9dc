"""Run compiled patterns against text and expose the named captures."""
from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from typing import Dict, List, Optional, Sequence, Tuple

from .config import DEFAULT_EXCERPT_LIMIT, get_settings
from .errors import NoMatchError

__all__ = ["CaptureSet", "CaptureSource", "excerpt", "extract", "group_names"]

LOGGER = logging.getLogger(__name__)


def _configured_limit() -> int:
    # invalid settings fall back to the default limit
    try:
        return get_settings().excerpt_limit
    except (ValueError, OSError) as exc:
        LOGGER.warning(
            "excerpt_limit_fallback",
            extra={"extra_fields": {"error": str(exc), "limit": DEFAULT_EXCERPT_LIMIT}},
        )
        return DEFAULT_EXCERPT_LIMIT


def excerpt(text: str, limit: Optional[int] = None) -> str:
    """Return ``text`` bounded to ``limit`` characters for diagnostics."""

    if limit is None:
        limit = _configured_limit()
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def group_names(compiled: re.Pattern[str]) -> List[str]:
    """Named groups of ``compiled`` in declaration order."""

    return [name for name, _ in sorted(compiled.groupindex.items(), key=lambda item: item[1])]


class CaptureSet(Mapping[str, Optional[str]]):
    """Ordered, read-only mapping of group name to matched text.

    A value of ``None`` means the group did not participate in the match;
    an empty string means it matched zero characters.
    """

    __slots__ = ("_entries", "_index")

    def __init__(self, entries: Sequence[Tuple[str, Optional[str]]]):
        self._entries: Tuple[Tuple[str, Optional[str]], ...] = tuple(entries)
        self._index: Dict[str, Optional[str]] = dict(self._entries)

    def __getitem__(self, name: str) -> Optional[str]:
        return self._index[name]

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"CaptureSet({list(self._entries)!r})"

    def items_ordered(self) -> Tuple[Tuple[str, Optional[str]], ...]:
        return self._entries


def extract(
    compiled: re.Pattern[str],
    text: str,
    *,
    excerpt_limit: Optional[int] = None,
) -> CaptureSet:
    """Search ``text`` with ``compiled`` and collect every named group.

    Search semantics apply: without anchors in the pattern a match may start
    anywhere in ``text``.

    Raises
    ------
    NoMatchError
        If the pattern does not match anywhere in ``text``.
    """

    match = compiled.search(text)
    if match is None:
        raise NoMatchError(compiled.pattern, excerpt(text, excerpt_limit))
    return CaptureSet([(name, match.group(name)) for name in group_names(compiled)])


class CaptureSource:
    """Map-of-scalars view over raw string values.

    This is the only surface the decoder reads from: it knows nothing about
    regular expressions, so a :class:`CaptureSet` and any plain mapping of
    strings decode through exactly the same coercion rules.
    """

    def __init__(self, captures: Mapping[str, Optional[str]]):
        self._captures = captures

    @classmethod
    def from_mapping(cls, values: Mapping[str, object]) -> "CaptureSource":
        """Build a source from arbitrary values, rendered as text.

        ``None`` is kept as absent; ``bool`` renders as ``true``/``false``.
        """

        rendered: Dict[str, Optional[str]] = {}
        for key, value in values.items():
            if value is None:
                rendered[key] = None
            elif isinstance(value, bool):
                rendered[key] = "true" if value else "false"
            else:
                rendered[key] = str(value)
        return cls(rendered)

    def field_names(self) -> List[str]:
        return list(self._captures)

    def get_scalar(self, name: str) -> Optional[str]:
        return self._captures.get(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._captures.get(name) is not None

    def to_dict(self) -> Dict[str, str]:
        """Present values only, in declaration order."""

        return {name: value for name, value in self._captures.items() if value is not None}
