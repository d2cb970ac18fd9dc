import math

import pytest

from rexcap.coerce import coerce, parse_float, parse_integer
from rexcap.errors import MissingFieldError, TypeMismatchError
from rexcap.shapes import BOOLEAN, FLOAT, INTEGER, STRING, ListOf, OptionalOf, sized_integer


@pytest.mark.parametrize(
    "raw, shape, expected",
    [
        ("hello", STRING, "hello"),
        ("  padded ", STRING, "  padded "),
        ("", STRING, ""),
        ("true", BOOLEAN, True),
        ("false", BOOLEAN, False),
        ("42", INTEGER, 42),
        ("-7", INTEGER, -7),
        ("+12", INTEGER, 12),
        ("007", INTEGER, 7),
        ("123456789012345678901234567890", INTEGER, 123456789012345678901234567890),
        ("1.5", FLOAT, 1.5),
        ("-0.25", FLOAT, -0.25),
        ("3", FLOAT, 3.0),
        ("1e3", FLOAT, 1000.0),
        ("2.5E-2", FLOAT, 0.025),
        (".5", FLOAT, 0.5),
        ("7.", FLOAT, 7.0),
        ("255", sized_integer(8, signed=False), 255),
        ("-128", sized_integer(8), -128),
        ("4294967295", sized_integer(32, signed=False), 4294967295),
    ],
)
def test_coerce_present_values(raw: str, shape, expected) -> None:
    assert coerce(raw, shape, field="f") == expected


@pytest.mark.parametrize(
    "raw, shape, declared",
    [
        ("True", BOOLEAN, "boolean"),
        ("1", BOOLEAN, "boolean"),
        ("yes", BOOLEAN, "boolean"),
        ("", BOOLEAN, "boolean"),
        ("abc", INTEGER, "integer"),
        (" 1", INTEGER, "integer"),
        ("1_000", INTEGER, "integer"),
        ("1.0", INTEGER, "integer"),
        ("", INTEGER, "integer"),
        ("١٢", INTEGER, "integer"),
        ("1.2.3", FLOAT, "float"),
        ("1,5", FLOAT, "float"),
        ("e5", FLOAT, "float"),
        ("", FLOAT, "float"),
        ("256", sized_integer(8, signed=False), "u8"),
        ("-1", sized_integer(32, signed=False), "u32"),
        ("-0", sized_integer(32, signed=False), "u32"),
        ("-00", sized_integer(16, signed=False), "u16"),
        ("128", sized_integer(8), "i8"),
    ],
)
def test_coerce_type_mismatch(raw: str, shape, declared: str) -> None:
    with pytest.raises(TypeMismatchError) as excinfo:
        coerce(raw, shape, field="foo")

    err = excinfo.value
    assert err.field == "foo"
    assert err.declared == declared
    assert err.raw == raw


def test_special_float_tokens() -> None:
    assert math.isinf(parse_float("inf"))
    assert parse_float("-Infinity") == float("-inf")
    assert math.isnan(parse_float("NaN"))
    with pytest.raises(ValueError):
        parse_float("infinit")


def test_parse_integer_is_strict() -> None:
    assert parse_integer("-0") == 0
    with pytest.raises(ValueError):
        parse_integer("0x10")


def test_absent_required_value_is_missing() -> None:
    with pytest.raises(MissingFieldError) as excinfo:
        coerce(None, INTEGER, field="bar")

    assert excinfo.value.field == "bar"
    assert "missing" in str(excinfo.value)


def test_absent_optional_value_is_none() -> None:
    assert coerce(None, INTEGER, field="bar", optional=True) is None
    assert coerce(None, OptionalOf(INTEGER), field="bar") is None


def test_present_optional_value_is_coerced_as_inner() -> None:
    assert coerce("5", OptionalOf(INTEGER), field="bar") == 5
    assert coerce("", OptionalOf(STRING), field="bar") == ""
    with pytest.raises(TypeMismatchError):
        coerce("", OptionalOf(INTEGER), field="bar")


def test_list_values_split_on_separator() -> None:
    assert coerce("1,2,3", ListOf(INTEGER), field="ids") == [1, 2, 3]
    assert coerce("a|b", ListOf(STRING, separator="|"), field="tags") == ["a", "b"]
    assert coerce("", ListOf(INTEGER), field="ids") == []

    with pytest.raises(TypeMismatchError) as excinfo:
        coerce("1,x", ListOf(INTEGER), field="ids")
    assert excinfo.value.declared == "list of integer"


def test_coercion_is_deterministic() -> None:
    outcomes = {coerce("12", sized_integer(16), field="n") for _ in range(5)}
    assert outcomes == {12}
