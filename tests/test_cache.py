import re
from concurrent.futures import ThreadPoolExecutor

import pytest

from rexcap import cache as cache_module
from rexcap.cache import PatternCache, compile_or_get, default_cache
from rexcap.errors import CompileError


def test_compile_or_get_returns_shared_handle() -> None:
    cache = PatternCache()
    first = cache.compile_or_get(r"(?P<foo>\d+)")
    second = cache.compile_or_get(r"(?P<foo>\d+)")

    assert first is second
    assert len(cache) == 1
    assert r"(?P<foo>\d+)" in cache


def test_pattern_identity_is_exact_text() -> None:
    cache = PatternCache()
    cache.compile_or_get(r"(?P<foo>\w+)")
    cache.compile_or_get(r"(?i)(?P<foo>\w+)")

    assert list(cache) == [r"(?P<foo>\w+)", r"(?i)(?P<foo>\w+)"]


def test_malformed_pattern_is_not_cached() -> None:
    cache = PatternCache()

    with pytest.raises(CompileError) as first:
        cache.compile_or_get(r"(?P<foo>\d+")
    with pytest.raises(CompileError) as second:
        cache.compile_or_get(r"(?P<foo>\d+")

    assert len(cache) == 0
    assert str(first.value) == str(second.value)
    assert first.value.pattern == r"(?P<foo>\d+"
    assert isinstance(first.value.__cause__, re.error)
    assert first.value.position is not None


def test_concurrent_first_use_compiles_once(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []
    real_compile = re.compile

    def counting_compile(pattern, flags=0):
        if pattern == r"(?P<line>\d+) (?P<word>\w+)":
            calls.append(pattern)
        return real_compile(pattern, flags)

    monkeypatch.setattr(cache_module.re, "compile", counting_compile)
    cache = PatternCache()

    with ThreadPoolExecutor(max_workers=16) as pool:
        handles = list(pool.map(lambda _: cache.compile_or_get(r"(?P<line>\d+) (?P<word>\w+)"), range(64)))

    assert len(calls) == 1
    assert all(handle is handles[0] for handle in handles)
    assert {handle.search("12 abc").group("word") for handle in handles} == {"abc"}


def test_default_cache_is_process_wide() -> None:
    compiled = compile_or_get(r"(?P<default_probe>x)")

    assert default_cache() is default_cache()
    assert r"(?P<default_probe>x)" in default_cache()
    assert compile_or_get(r"(?P<default_probe>x)") is compiled


def test_explicit_empty_cache_is_used() -> None:
    cache = PatternCache()
    compile_or_get(r"(?P<isolated>y)", cache)

    assert r"(?P<isolated>y)" in cache
