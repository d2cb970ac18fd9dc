"""Tests for dataclass and pydantic record registration."""
import json
import logging
from dataclasses import dataclass, field
from typing import Annotated, List, Optional

import pytest
from pydantic import Field, ValidationError

from rexcap.errors import CompileError, MissingFieldError, NoMatchError, TypeMismatchError
from rexcap.records import CaptureModel, recap, shape_for_annotation
from rexcap.shapes import BOOLEAN, INTEGER, STRING, ListOf, OptionalOf, RecordShape, sized_integer

U32 = sized_integer(32, signed=False)


@recap(r"(?x) (?P<foo>\d+) \s+ (?P<bar>true|false) \s+ (?P<baz>\S+)")
@dataclass
class LogEntry:
    foo: int
    bar: bool
    baz: str


@recap(r"(?P<foo>\w+):(?P<bar>\d+)")
@dataclass
class Inner:
    foo: str
    bar: Annotated[int, U32]


@recap(r"(?P<first>[^ ]+)( (?P<second>[^ ]+))?")
@dataclass
class Outer:
    first: Inner
    second: Optional[Inner]


@recap(r"((?P<FirstAttribute>\w+):)?(?P<second_rename>\d+):(?P<ThirdAttribute>\w+)")
@dataclass
class Renamed:
    first_attribute: str = field(default="Some default", metadata={"capture": "FirstAttribute"})
    second_attribute: Annotated[int, U32] = field(default=0, metadata={"capture": "second_rename"})
    third_attribute: str = field(default="", metadata={"capture": "ThirdAttribute"})


@recap(r"(?P<name>\w+)(?: \[(?P<ids>[\d,]*)\])?")
@dataclass
class Tagged:
    name: str
    ids: List[int] = field(default_factory=list)


def test_dataclass_parse_log_lines() -> None:
    logs = "1 true hello\n  2 false world"

    entries = [LogEntry.parse(line) for line in logs.splitlines() if LogEntry.is_match(line)]

    assert entries == [LogEntry(1, True, "hello"), LogEntry(2, False, "world")]


def test_dataclass_shape_is_registered() -> None:
    shape = LogEntry.__recap_shape__

    assert isinstance(shape, RecordShape)
    assert [spec.name for spec in shape.fields] == ["foo", "bar", "baz"]
    assert [spec.shape for spec in shape.fields] == [INTEGER, BOOLEAN, STRING]


def test_dataclass_nested_records() -> None:
    assert Outer.parse("abc:123 def:456") == Outer(Inner("abc", 123), Inner("def", 456))
    assert Outer.parse("ghi:789") == Outer(Inner("ghi", 789), None)


def test_dataclass_rename_and_default() -> None:
    assert Renamed.parse("42:non_default") == Renamed("Some default", 42, "non_default")


def test_dataclass_default_factory_and_list() -> None:
    assert Tagged.parse("a [1,2]") == Tagged("a", [1, 2])
    assert Tagged.parse("b") == Tagged("b", [])
    assert Tagged.parse("c []") == Tagged("c", [])


def test_dataclass_errors() -> None:
    with pytest.raises(NoMatchError):
        LogEntry.parse("not a log line")
    with pytest.raises(TypeMismatchError) as excinfo:
        Outer.parse("abc:99999999999")
    assert excinfo.value.field == "first.bar"
    assert excinfo.value.declared == "u32"


def test_recap_rejects_bad_targets() -> None:
    with pytest.raises(TypeError):
        recap(r"(?P<x>\d+)")(type("NotADataclass", (), {}))

    with pytest.raises(CompileError):

        @recap(r"(?P<x>\d+")
        @dataclass
        class Broken:
            x: int


def test_recap_warns_about_fields_without_group(
    caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    # the CLI may have detached the package logger from the root handlers
    monkeypatch.setattr(logging.getLogger("rexcap"), "propagate", True)
    with caplog.at_level("WARNING", logger="rexcap.records"):

        @recap(r"(?P<x>\d+)")
        @dataclass
        class Partial:
            x: int
            y: Optional[int] = None

    assert any(record.getMessage() == "fields_without_capture_group" for record in caplog.records)
    assert Partial.parse("5") == Partial(5, None)


@pytest.mark.parametrize(
    "annotation, expected",
    [
        (int, (INTEGER, False)),
        (Optional[str], (OptionalOf(STRING), True)),
        (list[int], (ListOf(INTEGER), False)),
        (Annotated[int, U32], (U32, False)),
        (Optional[Annotated[int, U32]], (OptionalOf(U32), True)),
    ],
)
def test_shape_for_annotation(annotation, expected) -> None:
    assert shape_for_annotation(annotation) == expected


@pytest.mark.parametrize("annotation", [dict, bytes, int | str, list[Optional[int]]])
def test_shape_for_annotation_rejects_unsupported(annotation) -> None:
    with pytest.raises(TypeError):
        shape_for_annotation(annotation)


# ---------------- pydantic -----------------


class InnerModel(CaptureModel):
    capture_pattern = r"((?P<FirstAttribute>\w+):)?(?P<second_rename>\d+):(?P<ThirdAttribute>\w+)"

    first_attribute: str = Field("Some default", alias="FirstAttribute")
    second_attribute: Annotated[int, U32] = Field(alias="second_rename")
    third_attribute: str = Field(alias="ThirdAttribute")


class OuterModel(CaptureModel):
    capture_pattern = r"(?P<first>[^ ]+)( (?P<second>[^ ]+))? (?P<third>[^ ]+)"

    first: InnerModel
    second: Optional[InnerModel] = None
    third: Optional[InnerModel] = None


def test_model_parse_from_text() -> None:
    outer = OuterModel.parse("a:1:x 2:y")

    assert outer.first == InnerModel(first_attribute="a", second_attribute=1, third_attribute="x")
    assert outer.second is None
    assert outer.third is not None
    assert outer.third.first_attribute == "Some default"
    assert outer.third.second_attribute == 2


def test_model_validates_other_formats() -> None:
    raw_json = """
        {
            "first": {
                "FirstAttribute": "first_first",
                "second_rename": 123,
                "ThirdAttribute": "first_third"
            },
            "third": {
                "second_rename": 456,
                "ThirdAttribute": "third_third"
            }
        }
    """

    outer = OuterModel.model_validate_json(raw_json)

    assert outer.first.second_attribute == 123
    assert outer.second is None
    assert outer.third == InnerModel(first_attribute="Some default", second_attribute=456, third_attribute="third_third")


def test_model_accepts_strings_for_nested_records() -> None:
    payload = json.loads('{"first": "x:1:y", "third": "2:z"}')

    outer = OuterModel.model_validate(payload)

    assert outer.first.first_attribute == "x"
    assert outer.third is not None and outer.third.third_attribute == "z"


def test_model_errors() -> None:
    with pytest.raises(NoMatchError):
        InnerModel.parse("nothing")
    with pytest.raises(ValidationError):
        OuterModel.model_validate({"first": "nothing"})


def test_model_missing_required_capture() -> None:
    class Pair(CaptureModel):
        capture_pattern = r"(?P<left>\d+)(?:,(?P<right>\d+))?"

        left: int
        right: int

    assert Pair.parse("1,2") == Pair(left=1, right=2)
    with pytest.raises(MissingFieldError) as excinfo:
        Pair.parse("1")
    assert excinfo.value.field == "right"


def test_model_without_pattern_is_rejected() -> None:
    class NoPattern(CaptureModel):
        value: int

    with pytest.raises(TypeError):
        NoPattern.parse("1")
