"""Process-wide store of compiled patterns.

Patterns are compiled at most once per distinct text and never evicted: the
set of patterns in a program is bounded by the number of registered record
shapes, not by input volume.
"""
from __future__ import annotations

import logging
import re
import threading
from typing import Dict, Iterator, Optional

from .errors import CompileError

__all__ = ["PatternCache", "compile_or_get", "default_cache"]

LOGGER = logging.getLogger(__name__)


class PatternCache:
    """Thread-safe, insert-once mapping from pattern text to ``re.Pattern``.

    Lookups of an already cached pattern never take the lock. First-time
    requests serialize on the lock, so concurrent callers asking for the same
    text all receive the single compiled object installed by the winner.
    Compilation failures are not cached; retrying fails identically.
    """

    def __init__(self) -> None:
        self._compiled: Dict[str, re.Pattern[str]] = {}
        self._lock = threading.Lock()

    def compile_or_get(self, pattern: str) -> re.Pattern[str]:
        compiled = self._compiled.get(pattern)
        if compiled is not None:
            return compiled
        with self._lock:
            compiled = self._compiled.get(pattern)
            if compiled is None:
                try:
                    compiled = re.compile(pattern)
                except re.error as exc:
                    raise CompileError(pattern, exc) from exc
                self._compiled[pattern] = compiled
                LOGGER.debug(
                    "pattern_compiled",
                    extra={"extra_fields": {"pattern": pattern, "groups": list(compiled.groupindex)}},
                )
        return compiled

    def __contains__(self, pattern: object) -> bool:
        return pattern in self._compiled

    def __len__(self) -> int:
        return len(self._compiled)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._compiled))


_DEFAULT_CACHE: Optional[PatternCache] = None
_DEFAULT_LOCK = threading.Lock()


def default_cache() -> PatternCache:
    """Return the process-wide cache, creating it on first use.

    It lives for the rest of the process; tests that need isolation should
    build their own :class:`PatternCache` and pass it explicitly.
    """

    global _DEFAULT_CACHE
    if _DEFAULT_CACHE is None:
        with _DEFAULT_LOCK:
            if _DEFAULT_CACHE is None:
                _DEFAULT_CACHE = PatternCache()
    return _DEFAULT_CACHE


def compile_or_get(pattern: str, cache: Optional[PatternCache] = None) -> re.Pattern[str]:
    """Compile ``pattern`` through ``cache`` (the default cache when omitted)."""

    if cache is None:
        cache = default_cache()
    return cache.compile_or_get(pattern)
